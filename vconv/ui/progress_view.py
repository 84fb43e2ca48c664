from typing import Dict, List, Optional
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text
from vconv.domain.events import TaskFailed, TaskProgress, TaskStarted, TaskSucceeded
from vconv.domain.models import BatchReport, TaskStatus
from vconv.infrastructure.event_bus import EventBus
from vconv.ui.formatting import estimate_eta, format_duration, format_file_size
from vconv.ui.messages import Messages


class EtaColumn(ProgressColumn):
    """Remaining time at the average rate since the rendition started."""

    def render(self, task) -> Text:
        eta = estimate_eta(task.completed, task.elapsed or 0.0) if task.total else None
        if eta is None:
            return Text("--:-- ETA", style="progress.remaining")
        return Text(f"{format_duration(eta)} ETA", style="progress.remaining")


class ProgressView:
    """Subscribes to task events and renders one progress bar per rendition."""

    def __init__(self, bus: EventBus, console: Optional[Console] = None, messages: Optional[Messages] = None):
        self.bus = bus
        self.console = console or Console()
        self.messages = messages or Messages()
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=30),
            TextColumn("[progress.percentage]{task.percentage:>5.1f}%"),
            TimeElapsedColumn(),
            EtaColumn(),
            console=self.console,
        )
        self._task_ids: Dict[int, TaskID] = {}
        self.lines: List[str] = []
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(TaskStarted, self.on_task_started)
        self.bus.subscribe(TaskProgress, self.on_task_progress)
        self.bus.subscribe(TaskSucceeded, self.on_task_succeeded)
        self.bus.subscribe(TaskFailed, self.on_task_failed)

    def __enter__(self):
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.progress.stop()
        return False

    def _print(self, message: str, style: str = ""):
        self.lines.append(message)
        self.progress.console.print(message, style=style or None, markup=False, highlight=False)

    def on_task_started(self, event: TaskStarted):
        description = self.messages.t("converting", label=event.label)
        # Indeterminate until the first sample arrives (unknown duration stays that way)
        self._task_ids[event.index] = self.progress.add_task(description, total=None)

    def on_task_progress(self, event: TaskProgress):
        task_id = self._task_ids.get(event.index)
        if task_id is None:
            return
        self.progress.update(task_id, total=100, completed=event.percent)

    def _finish(self, index: int):
        task_id = self._task_ids.pop(index, None)
        if task_id is not None:
            self.progress.remove_task(task_id)

    def on_task_succeeded(self, event: TaskSucceeded):
        self._finish(event.index)
        self._print(self.messages.t("success", label=event.label), style="green")
        self._print(
            self.messages.t(
                "file_info",
                filename=event.result.output_path.name,
                size=format_file_size(event.result.size_bytes),
            )
        )

    def on_task_failed(self, event: TaskFailed):
        self._finish(event.index)
        if event.aborted:
            self._print(self.messages.t("cancelled"), style="yellow")
            return
        self._print(self.messages.t("error", label=event.label, error=event.error), style="red")

    def print_summary(self, report: BatchReport):
        self._print(
            self.messages.t(
                "total",
                count=report.succeeded_count,
                total=len(report.outcomes),
                time=format_duration(report.total_seconds),
            ),
            style="bold green" if not report.failed else "bold yellow",
        )
        for outcome in report.outcomes:
            if outcome.succeeded and outcome.result:
                self._print(
                    self.messages.t(
                        "file_info",
                        filename=outcome.result.output_path.name,
                        size=format_file_size(outcome.result.size_bytes),
                    )
                )
            elif outcome.status == TaskStatus.ABORTED and outcome.elapsed_seconds == 0:
                self._print(self.messages.t("skipped", label=outcome.task.rendition.label), style="yellow")
