"""
cli.py: Command-line interface for yt-transcript-service.

Provides the `yt-transcript` command group (registered as a console script
in pyproject.toml):

    get       Extract a transcript through the strategy cascade.
    check     Pre-flight check: is the video reachable, does it have captions?
    video-id  Print the video ID a URL points at.

Usage examples:
    yt-transcript get "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    yt-transcript get dQw4w9WgXcQ --strategy manifest --format json
    yt-transcript -v check https://youtu.be/dQw4w9WgXcQ
    yt-transcript video-id "https://www.youtube.com/shorts/dQw4w9WgXcQ"
"""

from __future__ import annotations

import json
import sys

import click

from yt_transcript_service.availability import check_availability
from yt_transcript_service.config import configure_logging
from yt_transcript_service.errors import ExtractionError
from yt_transcript_service.extractor import extract_transcript, extract_video_id
from yt_transcript_service.strategies import STRATEGIES


def _fail(exc: ExtractionError) -> None:
    """Print an ExtractionError for a human and exit non-zero."""
    click.echo(f"Error: {exc.user_message}", err=True)
    if exc.message != exc.user_message:
        click.echo(f"  {exc.message}", err=True)
    if exc.suggest_fallback:
        click.echo("  Tip: try audio transcription for this video instead.", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group: the top-level `yt-transcript` command
# ---------------------------------------------------------------------------

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log each strategy attempt to stderr.")
def main(verbose: bool) -> None:
    """
    YouTube Transcript Service: extract transcripts with fallbacks.
    """
    configure_logging("DEBUG" if verbose else "ERROR", stream=sys.stderr)


# ---------------------------------------------------------------------------
# Subcommand: get
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@click.option(
    "--strategy", "-s",
    "strategies",
    multiple=True,
    type=click.Choice(sorted(STRATEGIES)),
    help="Only use these strategies, in the order given (repeatable). "
         "Defaults to the configured cascade.",
)
@click.option(
    "--format", "-f",
    "fmt",                           # avoid shadowing the builtin "format"
    type=click.Choice(["text", "json"], case_sensitive=False),
    default="text",
    show_default=True,
    help="Output format: plain transcript text, or JSON with metadata.",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write output to a file instead of stdout.",
)
def get(video: str, strategies: tuple[str, ...], fmt: str, output: str | None) -> None:
    """
    Extract a YouTube video transcript.

    URL_OR_ID can be a full YouTube URL or an 11-character video ID.
    """
    try:
        result = extract_transcript(video, strategies=list(strategies) or None)
    except ExtractionError as exc:
        _fail(exc)
        return

    if fmt == "json":
        text = json.dumps(result.to_json(), indent=2, ensure_ascii=False)
    else:
        text = result.text

    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.write("\n")
        click.echo(f"Transcript for {result.title} written to {output}", err=True)
    else:
        click.echo(text)


# ---------------------------------------------------------------------------
# Subcommand: check
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
def check(video: str) -> None:
    """
    Check whether a video can be transcribed, without extracting it.

    Exits with status 1 when extraction is expected to fail.
    """
    try:
        result = check_availability(video)
    except ExtractionError as exc:
        _fail(exc)
        return

    click.echo(f"{result.title or result.video_id}")
    click.echo(f"  ID:        {result.video_id}")
    click.echo(f"  Reachable: {'yes' if result.reachable else 'no'}")
    click.echo(f"  Captions:  {'yes' if result.has_captions else 'no'}")
    if result.duration is not None:
        minutes, seconds = divmod(result.duration, 60)
        click.echo(f"  Duration:  {minutes:d}:{seconds:02d}")
    click.echo(result.status_message)

    if result.error is not None:
        sys.exit(1)


# ---------------------------------------------------------------------------
# Subcommand: video-id
# ---------------------------------------------------------------------------

@main.command("video-id")
@click.argument("url")
def video_id(url: str) -> None:
    """
    Print the 11-character video ID a YouTube URL refers to.
    """
    try:
        click.echo(extract_video_id(url))
    except ExtractionError as exc:
        _fail(exc)
