"""Terminal progress helpers with Rich-based rendering."""

from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.errors import LiveError
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.text import Text


@dataclass
class ProgressState:
    total: int
    success: int = 0
    not_found: int = 0
    failed: int = 0
    skipped: int = 0
    current_id: int | None = None

    @property
    def completed(self) -> int:
        return self.success + self.not_found + self.failed + self.skipped


class RateColumn(ProgressColumn):
    """Subjects processed per second, e.g. ``4.9 it/s``."""

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text("", style="progress.percentage")
        return Text(f"{speed:.1f} it/s", style="progress.percentage")


class ProgressReporter:
    """Render progress and maintain counters for CLI feedback.

    Counters are kept even when rendering is disabled or the console is not a TTY.
    """

    def __init__(self, enabled: bool = True, console: Console | None = None) -> None:
        self.enabled = enabled
        self._console = console
        self._progress: Progress | None = None
        self._task_id: TaskID | None = None
        self.state: ProgressState | None = None
        self._label: str = "subjects"

    def set_label(self, label: str) -> None:
        self._label = label
        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, label=label)

    def start(self, total: int) -> None:
        self.state = ProgressState(total=total)
        if not self.enabled:
            return
        if self._console is None:
            self._console = Console()
        if not self._console.is_terminal:
            self.enabled = False
            return
        self._progress = Progress(
            SpinnerColumn(style="cyan"),
            TextColumn("[bold blue]{task.fields[label]:<12}", justify="left"),
            BarColumn(bar_width=None, complete_style="green", finished_style="green"),
            TaskProgressColumn(show_speed=False),
            TimeElapsedColumn(),
            RateColumn(),
            TextColumn("[green]✓{task.fields[success]:>5}", justify="right"),
            TextColumn("[white]∅{task.fields[not_found]:>4}", justify="right"),
            TextColumn("[red]✗{task.fields[failed]:>4}", justify="right"),
            TextColumn("[yellow]↺{task.fields[skipped]:>5}", justify="right"),
            TextColumn("[dim]{task.fields[current]}", justify="left"),
            refresh_per_second=8,
            expand=True,
            transient=True,
            console=self._console,
        )
        try:
            self._progress.start()
        except LiveError:
            # another live display owns the console
            self.enabled = False
            self._progress = None
            return
        self._task_id = self._progress.add_task(
            "fetch",
            total=total,
            label=self._label,
            success=0,
            not_found=0,
            failed=0,
            skipped=0,
            current="",
        )

    def advance(
        self,
        success: bool = False,
        not_found: bool = False,
        failed: bool = False,
        skipped: bool = False,
        current_id: int | None = None,
    ) -> None:
        if not self.state:
            raise RuntimeError("ProgressReporter.start must be called before advance")
        if current_id is not None:
            self.state.current_id = current_id
        if success:
            self.state.success += 1
        if not_found:
            self.state.not_found += 1
        if failed:
            self.state.failed += 1
        if skipped:
            self.state.skipped += 1
        if self._progress is not None and self._task_id is not None:
            self._progress.update(
                self._task_id,
                advance=1,
                success=self.state.success,
                not_found=self.state.not_found,
                failed=self.state.failed,
                skipped=self.state.skipped,
                current=f"#{self.state.current_id}" if self.state.current_id else "",
            )

    def close(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self._task_id = None

    def summary(self) -> dict[str, int]:
        if not self.state:
            return {"success": 0, "not_found": 0, "failed": 0, "skipped": 0}
        return {
            "success": self.state.success,
            "not_found": self.state.not_found,
            "failed": self.state.failed,
            "skipped": self.state.skipped,
        }


__all__ = ["ProgressReporter", "ProgressState", "RateColumn"]
