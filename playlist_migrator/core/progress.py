"""
Progress bar for migration runs, using the Rich library.

The bar is driven by ProgressEvents: the "Found N tracks" event sets the
total, and every per-track event advances it to the event's position and
updates the status counters. Messages are printed above the bar.

Usage:
    from playlist_migrator.core.progress import MigrationProgressBar

    with MigrationProgressBar() as bar:
        for event in channel:
            bar.handle(event)

Display:
    Migrating    ✓ 45  ↷ 3  ✗ 1          ━━━━━━━━━━━━━━━━━━━━━   49%
"""

from rich import get_console
from rich.markup import escape
from rich.progress import BarColumn, Progress, ProgressColumn, Task, TaskID
from rich.text import Text
from rich.theme import Theme

from playlist_migrator.core.models import TrackStatus
from playlist_migrator.migration.events import EventType, ProgressEvent


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})

EVENT_STYLES = {
    EventType.INFO: "white",
    EventType.WARNING: "yellow",
    EventType.SUCCESS: "green",
    EventType.ERROR: "red",
    EventType.COMPLETE: "bold green",
}


class SizedTextColumn(ProgressColumn):
    """Text column truncated with an ellipsis beyond a fixed width."""

    def __init__(self, text_format: str, width: int = 20, style: str = "none") -> None:
        self.text_format = text_format
        self.width = width
        self.style = style
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(self.text_format.format(task=task), style=self.style)
        text.truncate(max_width=self.width, overflow="ellipsis", pad=True)
        return text


class MigrationProgressBar:
    """
    Progress bar for one playlist migration.

    Attributes:
        migrated: Tracks migrated so far (including earlier runs).
        skipped: Tracks skipped so far.
        failed: Tracks failed in this run.
    """

    def __init__(self, description: str = "Migrating") -> None:
        self.description = description
        self.migrated = 0
        self.skipped = 0
        self.failed = 0

        self.console = get_console()

        self.progress = Progress(
            SizedTextColumn("[white]{task.description}", width=15),
            SizedTextColumn("{task.fields[status]}", width=30, style="white"),
            BarColumn(bar_width=40, finished_style="green"),
            "[progress.percentage]{task.percentage:>3.0f}%",
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )
        self.task_id: TaskID | None = None
        self._started = False

    def __enter__(self) -> "MigrationProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.console.push_theme(PROGRESS_THEME)
            self.progress.start()
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self._started = False
            self.console.pop_theme()

    def log(self, message: str) -> None:
        """Print a message (Rich markup allowed) above the bar."""
        self.progress.console.print(message, highlight=False)

    def _status_text(self) -> str:
        return (
            f"[green]✓ {self.migrated}[/green]  "
            f"[yellow]↷ {self.skipped}[/yellow]  "
            f"[red]✗ {self.failed}[/red]"
        )

    def handle(self, event: ProgressEvent) -> None:
        """Render one event: print its message and advance the bar."""
        style = EVENT_STYLES.get(event.type, "white")
        line = f"[{style}]{escape(event.message)}[/{style}]"
        if event.details:
            line += f" [dim]({escape(event.details)})[/dim]"
        self.log(line)

        if event.total is not None and self.task_id is None:
            self.task_id = self.progress.add_task(
                description=self.description,
                total=event.total,
                status=self._status_text(),
            )

        if event.track_status == TrackStatus.MIGRATED:
            self.migrated += 1
        elif event.track_status == TrackStatus.SKIPPED:
            self.skipped += 1
        elif event.track_status == TrackStatus.FAILED:
            self.failed += 1

        if self.task_id is not None and event.position is not None:
            self.progress.update(
                self.task_id,
                completed=event.position,
                status=self._status_text(),
            )
