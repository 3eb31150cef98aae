"""
CLI interface for Sora Batch

Runs batches of Sora 2 video jobs from a JSON or YAML configuration file,
estimates their cost, and inspects individual videos.
"""
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from sora_batch import __version__
from sora_batch.batch.batch_progress_tracker import BatchProgressTracker
from sora_batch.batch.batch_runner import BatchRunner
from sora_batch.batch.job_executor import JobExecutor
from sora_batch.schemas.loader import BatchExecutionOptions, load_batch_config, merge_batch_config
from sora_batch.utils.api_client import VideoAPIClient
from sora_batch.utils.cli_helpers import (
    print_batch_report,
    print_cost_estimate,
    print_error,
    print_header,
    print_info,
    print_section,
    print_success,
    print_warning,
)
from sora_batch.utils.cost_estimator import estimate_batch_cost
from sora_batch.utils.errors import BatchValidationError, SoraBatchError
from sora_batch.utils.logging_config import setup_logging
from sora_batch.utils.settings import get_settings
from sora_batch.utils.video_pricing import MODELS, PRICING, get_valid_durations

logger = logging.getLogger(__name__)

API_KEY_TIP = "Set OPENAI_API_KEY in your environment or in a .env file"


def _load_config(config_path: str, options: BatchExecutionOptions):
    """Load and merge a batch config, exiting with status 1 on failure"""
    try:
        return merge_batch_config(load_batch_config(config_path), options)
    except BatchValidationError as e:
        print_error("Invalid batch configuration", "\n  ".join(e.errors))
        sys.exit(1)


def _require_api_key() -> str:
    settings = get_settings()
    if not settings.api_key:
        print_error("OPENAI_API_KEY environment variable is required", tip=API_KEY_TIP)
        sys.exit(1)
    return settings.api_key


def _make_client() -> VideoAPIClient:
    api_key = _require_api_key()
    return VideoAPIClient(api_key, api_base=get_settings().api_base)


def _show_estimate(config, output_format: str) -> None:
    estimate = estimate_batch_cost(config)
    if output_format == "json":
        click.echo(json.dumps(estimate.to_dict(), indent=2))
    else:
        print_header("Cost Estimation")
        print_cost_estimate(estimate)
        click.echo()


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.option(
    "--log-format",
    type=click.Choice(["colored", "json", "simple"]),
    default="colored",
    help="Log output format (logs go to stderr)",
)
def cli(verbose: bool, log_format: str) -> None:
    """
    Sora Batch - batch video generation with the Sora 2 API

    Examples:

        # Run a batch
        sora-batch run batch-config.json

        # Run with overrides and a JSON report
        sora-batch run batch-config.yaml --max-concurrent 3 --format json

        # Get a cost estimate
        sora-batch estimate batch-config.json
    """
    # Default: warnings only, so the progress display stays readable
    # Verbose (or DEBUG=true): full debug logging
    level = "DEBUG" if verbose or get_settings().debug else "WARNING"
    setup_logging(level=level, format_type=log_format)


@cli.command()
@click.argument("config_path", type=click.Path(dir_okay=False))
@click.option("--output-dir", type=click.Path(file_okay=False), help="Directory for downloaded videos")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Report format (json prints the report on stdout)",
)
@click.option("--timeout", type=click.IntRange(60_000, 3_600_000), help="Batch deadline in milliseconds")
@click.option("--max-concurrent", type=click.IntRange(1, 5), help="Maximum jobs in flight")
@click.option("--poll-interval", type=click.IntRange(5_000, 60_000), help="Delay between status polls in milliseconds")
@click.option("--max-poll-attempts", type=click.IntRange(min=1), help="Maximum status polls per job attempt")
@click.option("--estimate-only", is_flag=True, help="Print a cost estimate and exit without calling the API")
@click.option("--allow-any-path", is_flag=True, help="Allow output paths outside the output directory")
@click.option("--progress/--no-progress", default=True, help="Show a live progress display (text format only)")
def run(
    config_path: str,
    output_dir: Optional[str],
    output_format: str,
    timeout: Optional[int],
    max_concurrent: Optional[int],
    poll_interval: Optional[int],
    max_poll_attempts: Optional[int],
    estimate_only: bool,
    allow_any_path: bool,
    progress: bool,
) -> None:
    """
    Run a batch of video jobs

    CONFIG_PATH: Path to a JSON or YAML batch configuration

    Exits with status 1 if any job failed or was cancelled.
    """
    options = BatchExecutionOptions(
        output_dir=output_dir,
        format=output_format,
        timeout=timeout,
        max_concurrent=max_concurrent,
        poll_interval=poll_interval,
        max_poll_attempts=max_poll_attempts,
        estimate_only=estimate_only,
        allow_any_path=allow_any_path,
    )
    config = _load_config(config_path, options)

    if options.estimate_only:
        _show_estimate(config, output_format)
        return

    json_mode = output_format == "json"
    api_key = _require_api_key()
    settings = get_settings()

    # Human-readable output moves to stderr when stdout carries the report
    print_header("Sora Batch", f"v{__version__}", err=json_mode)
    print_info("Config", config_path, err=json_mode)
    print_info("Output", config.output_dir, "blue", err=json_mode)
    print_info("Jobs", str(len(config.jobs)), err=json_mode)
    print_info("Concurrency", str(config.max_concurrent), err=json_mode)
    print_info("Timeout", f"{config.timeout // 1000}s", err=json_mode)
    estimate = estimate_batch_cost(config)
    print_info(
        "Estimated cost",
        f"${estimate.estimated_min:.2f} - ${estimate.estimated_max:.2f}",
        "yellow",
        err=json_mode,
    )

    executor = JobExecutor(
        VideoAPIClient(api_key, api_base=settings.api_base),
        poll_interval_ms=config.poll_interval,
        max_poll_attempts=config.max_poll_attempts,
    )
    tracker = None
    if progress and not json_mode:
        tracker = BatchProgressTracker(total_jobs=len(config.jobs), batch_name=Path(config_path).name)

    runner = BatchRunner(
        config,
        executor,
        allow_any_path=options.allow_any_path,
        progress_tracker=tracker,
        batch_name=Path(config_path).stem,
    )

    try:
        report = asyncio.run(runner.run())
    except BatchValidationError as e:
        print_error("Invalid batch configuration", "\n  ".join(e.errors))
        sys.exit(1)
    except Exception as e:
        import traceback
        print_error("Batch execution failed", str(e))
        if logging.getLogger().level == logging.DEBUG:
            traceback.print_exc()
        sys.exit(1)

    if json_mode:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        print_batch_report(report)

    if report.all_succeeded:
        print_success(f"All {report.total} job(s) completed", err=json_mode)
    else:
        print_warning(
            f"{report.failed} failed, {report.cancelled} cancelled of {report.total} job(s)",
            err=True,
        )
        sys.exit(1)


@cli.command()
@click.argument("config_path", type=click.Path(dir_okay=False))
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def estimate(config_path: str, output_format: str) -> None:
    """
    Estimate batch cost without running

    CONFIG_PATH: Path to a JSON or YAML batch configuration
    """
    config = _load_config(config_path, BatchExecutionOptions(format=output_format, estimate_only=True))
    _show_estimate(config, output_format)


@cli.command()
@click.argument("video_id")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def status(video_id: str, output_format: str) -> None:
    """
    Show the status of a video

    VIDEO_ID: ID returned when the video was created
    """
    client = _make_client()
    try:
        video = client.get_video(video_id)
    except SoraBatchError as e:
        print_error("Could not get video status", str(e))
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(video.__dict__, indent=2, default=str))
        return

    print_header("Video Status")
    print_info("Video", video.id, "blue")
    print_info("Status", video.status, "green" if video.is_completed else "yellow")
    if video.model:
        print_info("Model", video.model)
    if video.size:
        print_info("Size", video.size)
    if video.progress is not None:
        print_info("Progress", f"{video.progress}%")
    if video.video_url:
        print_info("URL", video.video_url, "blue")
    if video.is_failed:
        print_warning(video.failure_reason or video.error or "Video generation failed")
    click.echo()


@cli.command(name="list")
@click.option("--limit", type=click.IntRange(1, 100), default=20, help="Number of videos to list (default: 20)")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def list_videos(limit: int, output_format: str) -> None:
    """List recent videos"""
    client = _make_client()
    try:
        videos = client.list_videos(limit=limit)
    except SoraBatchError as e:
        print_error("Could not list videos", str(e))
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps([video.__dict__ for video in videos], indent=2, default=str))
        return

    print_header("Recent Videos")
    if not videos:
        click.echo("No videos found.")
        return

    for video in videos:
        color = "green" if video.is_completed else "red" if video.is_failed else "yellow"
        click.echo(
            f"  {click.style(video.id, fg='blue')}  "
            f"{click.style(video.status, fg=color)}  "
            f"{video.model or ''} {video.size or ''}".rstrip()
        )
    click.echo()


@cli.command()
def version() -> None:
    """Show version information"""
    print_header("Sora Batch")
    print_info("Version", __version__)
    print_section("Supported models:")
    for model in MODELS:
        durations = ", ".join(str(d) for d in get_valid_durations(model))
        prices = " / ".join(f"${price:.2f}/s {tier}" for tier, price in PRICING[model].items() if tier != "default")
        click.echo(f"  {model:<11} {durations} seconds ({prices})")
    click.echo()


def main() -> None:
    """Entry point for CLI"""
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
