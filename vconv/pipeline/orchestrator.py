"""Conversion orchestrator: one source file, several renditions, one at a time.

Key responsibilities:
- Probe the source and offer renditions that do not upscale
- Snapshot the settings once per batch and turn the selection into EncodeTasks
- Run the tasks strictly sequentially (one ffmpeg process alive at a time)
- Record every task outcome in input order; a failed task never stops the batch
- Honour cancellation: terminate the running ffmpeg, skip the rest
- Emit events for the UI (TaskStarted, TaskProgress, TaskSucceeded, TaskFailed)
"""

import logging
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union
from vconv.domain.errors import ConversionError, EncodeAborted, RenditionNotOffered
from vconv.domain.events import (
    BatchFinished,
    BatchStarted,
    CancelRequested,
    TaskFailed,
    TaskProgress,
    TaskStarted,
    TaskSucceeded,
)
from vconv.domain.models import (
    BatchReport,
    EncodeSettings,
    EncodeTask,
    Rendition,
    SourceDescriptor,
    TaskOutcome,
    TaskStatus,
)
from vconv.infrastructure.event_bus import EventBus
from vconv.infrastructure.ffmpeg import FFmpegAdapter
from vconv.infrastructure.ffprobe import FFprobeAdapter
from vconv.pipeline.naming import name_for
from vconv.pipeline.quality import available_renditions


class SettingsProvider(Protocol):
    def get_settings(self) -> EncodeSettings:
        ...


class ConversionOrchestrator:
    """Sequences the encode jobs for a single source file.

    Args:
        settings_provider: Anything with get_settings(); read once per plan().
        event_bus: EventBus for publishing task lifecycle events.
        ffprobe_adapter: FFprobeAdapter used to describe the source.
        ffmpeg_adapter: FFmpegAdapter executing each EncodeTask.
    """

    def __init__(
        self,
        settings_provider: SettingsProvider,
        event_bus: EventBus,
        ffprobe_adapter: FFprobeAdapter,
        ffmpeg_adapter: FFmpegAdapter,
    ):
        self.settings_provider = settings_provider
        self.event_bus = event_bus
        self.ffprobe_adapter = ffprobe_adapter
        self.ffmpeg_adapter = ffmpeg_adapter
        self.logger = logging.getLogger(__name__)
        self._cancel_event = threading.Event()
        self.event_bus.subscribe(CancelRequested, self._on_cancel_requested)

    def _on_cancel_requested(self, event: CancelRequested):
        self.logger.info(f"Cancel requested ({event.reason or 'user'}) - stopping batch...")
        self.cancel()

    def cancel(self):
        """Terminates the running encode and skips the remaining tasks."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def probe(self, path: Union[str, Path]) -> SourceDescriptor:
        return self.ffprobe_adapter.probe(Path(path))

    def offer(self, descriptor: SourceDescriptor) -> List[Rendition]:
        return available_renditions(descriptor)

    def select(
        self, descriptor: SourceDescriptor, renditions: Optional[Iterable[Rendition]] = None
    ) -> List[Rendition]:
        """Validates a selection against the offered set; None selects everything offered.

        Duplicates are dropped, first occurrence wins. Raises RenditionNotOffered.
        """
        offered = self.offer(descriptor)
        if renditions is None:
            return offered
        selected = list(dict.fromkeys(renditions))
        not_offered = [r.value for r in selected if r not in offered]
        if not_offered:
            raise RenditionNotOffered(not_offered, descriptor.height)
        return selected

    def plan(
        self,
        descriptor: SourceDescriptor,
        renditions: Iterable[Rendition],
        output_paths: Optional[Dict[Rendition, Path]] = None,
    ) -> List[EncodeTask]:
        """Builds one EncodeTask per rendition from a fresh settings snapshot."""
        settings = self.settings_provider.get_settings()
        output_paths = output_paths or {}
        tasks = []
        for rendition in renditions:
            if not rendition.is_audio and settings.video_bitrate_for(rendition) is None:
                raise ValueError(f"No video bitrate configured for {rendition.value}")
            output_path = output_paths.get(rendition) or name_for(descriptor.path, rendition)
            tasks.append(
                EncodeTask(
                    source_path=descriptor.path,
                    output_path=Path(output_path),
                    rendition=rendition,
                    settings=settings,
                )
            )
        return tasks

    def _skipped(self, task: EncodeTask) -> TaskOutcome:
        return TaskOutcome(
            task=task,
            status=TaskStatus.ABORTED,
            error_kind=EncodeAborted.__name__,
            error="Not started: batch cancelled",
        )

    def _run_task(self, task: EncodeTask, index: int, total: int) -> TaskOutcome:
        label = task.rendition.label
        common = dict(label=label, task=task, index=index, total=total)
        self.event_bus.publish(TaskStarted(**common))

        def on_progress(percent: float):
            self.event_bus.publish(TaskProgress(percent=percent, **common))

        task_start = time.monotonic()
        try:
            result = self.ffmpeg_adapter.encode(task, on_progress=on_progress, cancel_event=self._cancel_event)
        except EncodeAborted as exc:
            elapsed = time.monotonic() - task_start
            self._cancel_event.set()
            self.logger.warning(f"TASK_ABORTED: {task.source_path.name} ({label}) after {elapsed:.2f}s")
            self.event_bus.publish(
                TaskFailed(error_kind=type(exc).__name__, error=str(exc), aborted=True, elapsed_seconds=elapsed, **common)
            )
            return TaskOutcome(
                task=task,
                status=TaskStatus.ABORTED,
                error_kind=type(exc).__name__,
                error=str(exc),
                elapsed_seconds=elapsed,
            )
        except ConversionError as exc:
            elapsed = time.monotonic() - task_start
            self.logger.error(f"TASK_FAILED: {task.source_path.name} ({label}): {exc}")
            self.event_bus.publish(
                TaskFailed(error_kind=type(exc).__name__, error=str(exc), elapsed_seconds=elapsed, **common)
            )
            return TaskOutcome(
                task=task,
                status=TaskStatus.FAILED,
                error_kind=type(exc).__name__,
                error=str(exc),
                elapsed_seconds=elapsed,
            )

        elapsed = time.monotonic() - task_start
        self.event_bus.publish(TaskSucceeded(result=result, elapsed_seconds=elapsed, **common))
        return TaskOutcome(task=task, status=TaskStatus.SUCCEEDED, result=result, elapsed_seconds=elapsed)

    def run(self, descriptor: SourceDescriptor, tasks: List[EncodeTask]) -> BatchReport:
        """Runs tasks in order; task n+1 starts only after task n has finished."""
        self._cancel_event.clear()
        batch_start = time.monotonic()
        total = len(tasks)
        self.logger.info(f"BATCH_START: {descriptor.display_name} tasks={total}")
        self.event_bus.publish(BatchStarted(source=descriptor, task_count=total))

        outcomes: List[TaskOutcome] = []
        for index, task in enumerate(tasks):
            if self._cancel_event.is_set():
                outcomes.append(self._skipped(task))
                continue
            outcomes.append(self._run_task(task, index, total))

        report = BatchReport(source=descriptor, outcomes=outcomes, total_seconds=time.monotonic() - batch_start)
        self.logger.info(
            f"BATCH_END: {descriptor.display_name} succeeded={report.succeeded_count}/{total} "
            f"elapsed={report.total_seconds:.2f}s"
        )
        self.event_bus.publish(BatchFinished(report=report))
        return report

    def convert(
        self,
        path: Union[str, Path],
        renditions: Optional[Iterable[Rendition]] = None,
        output_paths: Optional[Dict[Rendition, Path]] = None,
    ) -> BatchReport:
        """Probe, plan and run. Probe errors propagate before any task starts.

        Without an explicit selection every offered rendition is converted.
        """
        descriptor = self.probe(path)
        selected = self.select(descriptor, renditions)
        tasks = self.plan(descriptor, selected, output_paths)
        return self.run(descriptor, tasks)
