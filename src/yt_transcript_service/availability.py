"""
availability.py: Pre-flight check before committing to a full extraction.

check_availability() does one metadata-only probe through the shared yt-dlp
client and reports whether the video is reachable and has captions.  Expected
outcomes, including "exists but has no captions", come back as a result
rather than an exception so clients can decide what to offer the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import yt_dlp

from yt_transcript_service.config import settings
from yt_transcript_service.errors import ErrorKind, ExtractionError, spec_for
from yt_transcript_service.extractor import extract_video_id
from yt_transcript_service.metadata import fetch_video_metadata

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilityResult:
    """
    Outcome of a pre-flight check.

    Attributes:
        video_id:     The 11-character YouTube video ID.
        reachable:    The video's metadata could be fetched.
        has_captions: At least one manual or automatic caption track exists.
        error:        Why extraction is expected to fail, if it is.
        title:        Video title, when reachable.
        duration:     Length in seconds, when known.
    """
    video_id: str
    reachable: bool
    has_captions: bool
    error: ErrorKind | None = None
    title: str | None = None
    duration: int | None = None

    @property
    def status_message(self) -> str:
        if self.error is not None:
            return spec_for(self.error).user_message
        if self.has_captions:
            return "Video is ready for transcript extraction"
        return "Video found but may not have captions available"

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "reachable": self.reachable,
            "hasCaptions": self.has_captions,
            "error": self.error.value if self.error else None,
            "title": self.title,
            "duration": self.duration,
        }


def check_availability(
    video_id_or_url: str,
    client: yt_dlp.YoutubeDL | None = None,
) -> AvailabilityResult:
    """
    Probe a video without fetching its transcript.

    Args:
        video_id_or_url: A YouTube URL or bare video ID.
        client:          A YoutubeDL to use instead of the shared one.

    Returns:
        An AvailabilityResult.  Unreachable videos carry the classified
        reason in `error`; live streams and videos over
        settings.max_video_duration_secs are reachable but carry
        LIVE_STREAM / TOO_LONG.

    Raises:
        ExtractionError: INVALID_URL if the input isn't a YouTube reference.
    """
    video_id = extract_video_id(video_id_or_url)

    try:
        meta = fetch_video_metadata(video_id, client)
    except ExtractionError as exc:
        logger.info("Video %s is not reachable [%s]: %s", video_id, exc.code.value, exc.message)
        return AvailabilityResult(video_id=video_id, reachable=False, has_captions=False, error=exc.code)

    error: ErrorKind | None = None
    if meta.is_live:
        error = ErrorKind.LIVE_STREAM
    elif meta.duration_secs is not None and meta.duration_secs > settings.max_video_duration_secs:
        error = ErrorKind.TOO_LONG

    return AvailabilityResult(
        video_id=video_id,
        reachable=True,
        has_captions=meta.has_captions,
        error=error,
        title=meta.title,
        duration=meta.duration_secs,
    )
