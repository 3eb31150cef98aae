"""
Batch Progress Tracker - Real-time progress display for batch execution

Features:
- Rich progress bar with succeeded / failed / cancelled counters
- Table of jobs currently running, with their latest remote status
- Plain one-line-per-event output when rich display is disabled

All output goes to stderr so that stdout stays free for reports.
"""
from __future__ import annotations

import sys
import time
from datetime import timedelta
from typing import Dict, Optional, TextIO

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from sora_batch.models.outcomes import JobOutcome, JobStatus


def _shorten(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


class BatchProgressTracker:
    """
    Tracks and displays progress for a batch of video jobs

    The batch runner calls job_started, job_progress, job_retrying and
    job_finished as events happen; start and stop bracket the run.
    """

    def __init__(
        self,
        total_jobs: int,
        batch_name: str,
        use_rich: bool = True,
        stream: Optional[TextIO] = None,
    ):
        """
        Initialize progress tracker

        Args:
            total_jobs: Total number of jobs in the batch
            batch_name: Display name (usually the config file name)
            use_rich: Use a live rich display (default: True)
            stream: Output stream for plain mode (default: stderr)
        """
        self.total_jobs = total_jobs
        self.batch_name = batch_name
        self.use_rich = use_rich
        self.stream = stream or sys.stderr

        self.succeeded = 0
        self.failed = 0
        self.cancelled = 0
        self.start_time: Optional[float] = None
        self.running: Dict[int, str] = {}  # job index -> status text

        if self.use_rich:
            self.console = Console(stderr=True)
            self.progress: Optional[Progress] = None
            self.task_id = None
            self.live: Optional[Live] = None

    @property
    def finished(self) -> int:
        return self.succeeded + self.failed + self.cancelled

    def _echo(self, message: str) -> None:
        print(message, file=self.stream)

    def start(self) -> None:
        """Start tracking batch progress"""
        self.start_time = time.time()

        if self.use_rich:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total} jobs"),
                TimeElapsedColumn(),
                console=self.console,
            )
            self.task_id = self.progress.add_task(f"[cyan]{self.batch_name}", total=self.total_jobs)

            self.live = Live(
                self._generate_display(),
                refresh_per_second=4,
                console=self.console,
            )
            self.live.start()
        else:
            self._echo(f"\n{'=' * 60}")
            self._echo(f"Batch: {self.batch_name}")
            self._echo(f"Total jobs: {self.total_jobs}")
            self._echo(f"{'=' * 60}\n")

    def stop(self) -> None:
        """Stop tracking and display final summary"""
        if self.use_rich and self.live:
            self.live.update(self._generate_display())
            self.live.stop()

        self._print_summary()

    def job_started(self, index: int, prompt: str) -> None:
        """A job acquired its slot and is about to submit"""
        self.running[index] = f"starting: {_shorten(prompt)}"

        if self.use_rich:
            self._refresh()
        else:
            self._echo(f"▶️  [{index}/{self.total_jobs}] {_shorten(prompt)}")

    def job_progress(self, index: int, status: str, attempt: int, max_attempts: int) -> None:
        """A poll returned a status"""
        self.running[index] = f"{status} (poll {attempt}/{max_attempts})"

        if self.use_rich:
            self._refresh()

    def job_retrying(self, index: int, attempt: int, error: BaseException) -> None:
        """A job failed with a retryable error and will try again"""
        self.running[index] = f"retrying (attempt {attempt}): {_shorten(str(error))}"

        if self.use_rich:
            self._refresh()
        else:
            self._echo(f"↻  [{index}] retrying (attempt {attempt}): {error}")

    def job_finished(self, outcome: JobOutcome) -> None:
        """A job's outcome was recorded"""
        status = JobStatus(outcome.status)
        if status == JobStatus.COMPLETED:
            self.succeeded += 1
        elif status == JobStatus.FAILED:
            self.failed += 1
        else:
            self.cancelled += 1

        self.running.pop(outcome.index, None)

        if self.use_rich and self.progress:
            self.progress.update(self.task_id, advance=1)
            self._refresh()
        else:
            symbol = {"completed": "✓", "failed": "❌", "cancelled": "⊘"}[status.value]
            detail = outcome.output_path if status == JobStatus.COMPLETED else outcome.error
            self._echo(f"{symbol} [{outcome.index}] {status.value}: {detail}")

    def _refresh(self) -> None:
        if self.live:
            self.live.update(self._generate_display())

    def _generate_display(self) -> Group:
        """Generate rich display"""
        stats_table = Table(show_header=False, box=None, padding=(0, 2))
        stats_table.add_column("Label", style="cyan")
        stats_table.add_column("Value", style="bold")
        stats_table.add_row("✓ Succeeded:", str(self.succeeded))
        stats_table.add_row("❌ Failed:", str(self.failed))
        stats_table.add_row("⊘ Cancelled:", str(self.cancelled))

        if self.running:
            current = "\n".join(
                f"[bold cyan]Job {index}:[/bold cyan] [dim]{status}[/dim]"
                for index, status in sorted(self.running.items())
            )
        else:
            current = "[dim]Waiting for jobs...[/dim]"

        return Group(
            self.progress,
            Panel(stats_table, title="Statistics", border_style="green"),
            Panel(current, title="Running", border_style="blue"),
        )

    def _print_summary(self) -> None:
        """Print final summary"""
        if not self.start_time:
            return

        duration_str = str(timedelta(seconds=int(time.time() - self.start_time)))

        if self.use_rich:
            summary_table = Table(title="Batch Execution Summary", show_header=False, box=None)
            summary_table.add_column("Label", style="cyan")
            summary_table.add_column("Value", style="bold")
            summary_table.add_row("Total Jobs:", str(self.total_jobs))
            summary_table.add_row("Succeeded:", str(self.succeeded))
            summary_table.add_row("Failed:", str(self.failed))
            summary_table.add_row("Cancelled:", str(self.cancelled))
            summary_table.add_row("Duration:", duration_str)
            self.console.print(summary_table)
        else:
            self._echo(f"\n{'=' * 60}")
            self._echo("Batch Execution Summary")
            self._echo(f"{'=' * 60}")
            self._echo(f"Total jobs: {self.total_jobs}")
            self._echo(f"Succeeded: {self.succeeded}")
            self._echo(f"Failed: {self.failed}")
            self._echo(f"Cancelled: {self.cancelled}")
            self._echo(f"Duration: {duration_str}")
            self._echo(f"{'=' * 60}\n")
