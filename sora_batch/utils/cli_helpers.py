"""
CLI helper utilities for Sora Batch

Provides common styling and formatting functions for consistent CLI output.
Every helper takes `err` so that human-readable output can be moved to stderr
when stdout carries a JSON report.
"""
import click
from typing import Optional

from sora_batch.models.outcomes import BatchReport, CostEstimate, JobOutcome, JobStatus
from sora_batch.utils.cost_estimator import format_cost


def print_header(title: str, subtitle: Optional[str] = None, err: bool = False) -> None:
    """
    Print a styled header

    Args:
        title: Main title text
        subtitle: Optional subtitle text
        err: Write to stderr
    """
    click.echo(err=err)
    click.echo(click.style(f"🎬 {title}", fg="bright_cyan", bold=True), err=err)
    click.echo(click.style("─" * 40, fg="cyan"), err=err)
    if subtitle:
        click.echo(click.style(subtitle, fg="cyan", dim=True), err=err)


def print_info(label: str, value: str, color: str = "green", err: bool = False) -> None:
    """
    Print an info line with icon, label and colored value

    Args:
        label: The label text (e.g., "Config")
        value: The value to display
        color: Color for the value
        err: Write to stderr
    """
    # Map common labels to emojis
    icons = {
        "Config": "📂",
        "Output": "📂",
        "Jobs": "🔢",
        "Concurrency": "🔀",
        "Timeout": "⏱️",
        "Estimated cost": "💰",
        "Version": "📦",
        "Status": "🚀",
    }

    icon = icons.get(label, "•")
    click.echo(f"{icon} {label}: " + click.style(value, fg=color), err=err)


def print_success(message: str, err: bool = False) -> None:
    """
    Print a success message

    Args:
        message: Success message to display
        err: Write to stderr
    """
    click.echo(err=err)
    click.echo(click.style(f"✓ {message}", fg="bright_green", bold=True), err=err)


def print_error(message: str, details: Optional[str] = None, tip: Optional[str] = None) -> None:
    """
    Print an error message with optional details and tip

    Args:
        message: Main error message
        details: Optional error details
        tip: Optional tip for resolution
    """
    click.echo(err=True)
    click.echo(click.style("✗ Error:", fg="bright_red", bold=True) + f" {message}", err=True)

    if details:
        click.echo(click.style(f"  {details}", fg="red", dim=True), err=True)

    if tip:
        click.echo(err=True)
        click.echo(click.style("💡 Tip:", fg="bright_blue") + f" {tip}", err=True)


def print_warning(message: str, err: bool = False) -> None:
    """
    Print a warning message

    Args:
        message: Warning message to display
        err: Write to stderr
    """
    click.echo(click.style(f"⚠️  {message}", fg="yellow", bold=True), err=err)


def print_section(title: str, err: bool = False) -> None:
    """
    Print a section header

    Args:
        title: Section title
        err: Write to stderr
    """
    click.echo(err=err)
    click.echo(click.style(title, fg="bright_white", bold=True), err=err)


def print_cost_estimate(estimate: CostEstimate, err: bool = False) -> None:
    """Print a cost estimate with its per-kind breakdown"""
    print_section("Cost estimate", err=err)
    print_info("Jobs", str(estimate.total_jobs), err=err)
    print_info(
        "Estimated cost",
        f"{format_cost(estimate.estimated_min)} - {format_cost(estimate.estimated_max)}",
        color="yellow",
        err=err,
    )
    for item in estimate.breakdown:
        click.echo(
            f"  {item.kind}: {item.count} job(s), ~{format_cost(item.estimated_cost)}",
            err=err,
        )


_STATUS_SYMBOLS = {
    JobStatus.COMPLETED: ("✓", "green"),
    JobStatus.FAILED: ("✗", "red"),
    JobStatus.CANCELLED: ("⊘", "yellow"),
}


def print_job_outcome(outcome: JobOutcome, err: bool = False) -> None:
    """Print one line per job, plus its error or output path"""
    symbol, color = _STATUS_SYMBOLS[JobStatus(outcome.status)]
    prompt = outcome.prompt if len(outcome.prompt) <= 60 else outcome.prompt[:57] + "..."
    click.echo(f"  {click.style(symbol, fg=color)} [{outcome.index}] {prompt}", err=err)

    if outcome.status == JobStatus.COMPLETED and outcome.output_path:
        click.echo(click.style(f"      → {outcome.output_path}", dim=True), err=err)
    elif outcome.error:
        click.echo(click.style(f"      {outcome.error}", fg=color, dim=True), err=err)


def print_batch_report(report: BatchReport, err: bool = False) -> None:
    """Print a human-readable batch summary"""
    print_section("Results", err=err)
    for outcome in report.results:
        print_job_outcome(outcome, err=err)

    print_section("Summary", err=err)
    print_info("Jobs", str(report.total), err=err)
    click.echo(
        f"  {click.style(str(report.succeeded), fg='green')} succeeded, "
        f"{click.style(str(report.failed), fg='red')} failed, "
        f"{click.style(str(report.cancelled), fg='yellow')} cancelled",
        err=err,
    )
    print_info("Estimated cost", format_cost(report.estimated_cost), color="yellow", err=err)
    print_info("Status", f"finished in {report.total_duration_ms / 1000:.1f}s", err=err)
