"""Domain events for the conversion pipeline.

The orchestrator publishes these through the EventBus; the progress view in
`ui/progress_view.py` renders them. Events for one task are always published
in the order TaskStarted -> TaskProgress* -> (TaskSucceeded | TaskFailed).

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from typing import Optional
from pydantic import BaseModel
from .models import BatchReport, EncodeResult, EncodeTask, SourceDescriptor


class Event(BaseModel):
    """Base class for all domain events."""

    pass


class TaskEvent(Event):
    """Base class for events about one rendition of the current batch."""

    label: str
    task: EncodeTask
    index: int = 0
    total: int = 1


class TaskStarted(TaskEvent):
    """Emitted right before the encoder is spawned for a task."""

    pass


class TaskProgress(TaskEvent):
    """Emitted every time a new progress sample is parsed from ffmpeg."""

    percent: float


class TaskSucceeded(TaskEvent):
    """Emitted when the output file was written."""

    result: EncodeResult
    elapsed_seconds: float = 0.0


class TaskFailed(TaskEvent):
    """Emitted when a task failed or was aborted."""

    error_kind: str
    error: str
    aborted: bool = False
    elapsed_seconds: float = 0.0


class BatchStarted(Event):
    source: SourceDescriptor
    task_count: int


class BatchFinished(Event):
    report: BatchReport


class CancelRequested(Event):
    """Emitted when the user interrupts (Ctrl+C)."""

    reason: Optional[str] = None
