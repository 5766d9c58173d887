"""
yt_transcript_service: Extract YouTube transcripts through a cascade of backends.

Public API:
    extract_transcript()   High-level one-call interface (URL → TranscriptResult).
    extract_video_id()     Parse a YouTube URL or validate a bare video ID.
    check_availability()   Pre-flight probe: reachable? captions present?
    TranscriptExtractor    The strategy cascade, for custom strategy lists.
    TranscriptResult       Dataclass holding text, title, duration, video ID.
    AvailabilityResult     Dataclass returned by check_availability().

Strategies (tried in this order by default):
    scraper          youtube-transcript-api
    embedded_client  yt-dlp player emulation (manual, then automatic captions)
    manifest         watch-page player response + timed-text XML
    official_api     YouTube Data API v3 + timed-text XML (needs YOUTUBE_API_KEY)

Errors:
    ExtractionError  The only exception callers need to handle.  Its `code`
                     (an ErrorKind) fixes status_code, can_retry and
                     suggest_fallback; to_json() gives the API error shape.

Usage:
    from yt_transcript_service import extract_transcript
    result = extract_transcript("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
    print(result.title, len(result.text))
"""

from yt_transcript_service.availability import AvailabilityResult, check_availability
from yt_transcript_service.errors import (
    ErrorKind,
    ExtractionError,
    classify,
    error_for,
)
from yt_transcript_service.extractor import (
    TranscriptExtractor,
    extract_transcript,
    extract_video_id,
)
from yt_transcript_service.strategies import (
    STRATEGIES,
    ExtractionStrategy,
    TranscriptResult,
)

__version__ = "0.1.0"

__all__ = [
    "extract_transcript",
    "extract_video_id",
    "check_availability",
    "TranscriptExtractor",
    "TranscriptResult",
    "AvailabilityResult",
    "ExtractionStrategy",
    "STRATEGIES",
    "ErrorKind",
    "ExtractionError",
    "classify",
    "error_for",
]
