"""
metadata.py: The shared yt-dlp client and metadata-only video probes.

yt-dlp emulates YouTube's own player clients, so one extract_info() call in
metadata-only mode gives us title, duration, live status and the full list
of manual and automatic caption tracks without downloading any media.

The YoutubeDL instance is expensive to build (extractor registry, cookie jar,
network session), so a single one is created lazily on first use and shared
by every caller in the process:

    get_client()            Return the process-wide YoutubeDL, building it once.
    extract_player_info()   Raw info dict for a video (raises yt-dlp errors).
    fetch_video_metadata()  VideoMetadata for a video (raises ExtractionError).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

import yt_dlp

from yt_transcript_service.config import settings
from yt_transcript_service.errors import ErrorKind, error_for, wrap

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Process-wide client handle
# ---------------------------------------------------------------------------

# Built at most once, then only read.  The lock is only taken while the
# handle is still None.
_client: yt_dlp.YoutubeDL | None = None
_client_lock = threading.Lock()


def _client_options() -> dict[str, Any]:
    return {
        "skip_download": True,
        "quiet": True,
        "no_warnings": True,
        "noplaylist": True,
        "socket_timeout": settings.http_timeout_secs,
    }


def get_client() -> yt_dlp.YoutubeDL:
    """
    Return the shared YoutubeDL instance, constructing it on first call.

    Safe to call from several threads at once: the double-checked lock
    guarantees a single construction.
    """
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                logger.debug("Building shared yt-dlp client")
                _client = yt_dlp.YoutubeDL(_client_options())
    return _client


def reset_client() -> None:
    """Drop the shared client so the next get_client() builds a fresh one."""
    global _client
    with _client_lock:
        _client = None


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VideoMetadata:
    """
    What a metadata-only probe learns about a video.

    Attributes:
        video_id:          The 11-character YouTube video identifier.
        title:             The video title as displayed on YouTube.
        channel_name:      The human-readable channel name.
        duration_secs:     Length in seconds (None for ongoing livestreams).
        is_live:           True while the video is a live broadcast.
        has_captions:      Whether any manual or automatic track exists.
        caption_languages: Language codes of the manual tracks and of the
                           original-language automatic track.
    """
    video_id: str
    title: str
    channel_name: str
    duration_secs: int | None
    is_live: bool
    has_captions: bool
    caption_languages: tuple[str, ...]


# ---------------------------------------------------------------------------
# Metadata fetching
# ---------------------------------------------------------------------------

def extract_player_info(video_id: str, client: yt_dlp.YoutubeDL | None = None) -> dict[str, Any]:
    """
    Fetch yt-dlp's info dict for a video without downloading media.

    Errors from yt-dlp are left alone so callers can classify them.

    Raises:
        yt_dlp.utils.DownloadError: The video can't be extracted.
        LookupError:                yt-dlp returned nothing.
    """
    ydl = client or get_client()
    info = ydl.extract_info(watch_url(video_id), download=False)
    if not info:
        raise LookupError(f"yt-dlp returned no info for video {video_id}")
    return info


def caption_languages(info: dict[str, Any]) -> tuple[str, ...]:
    """
    Language codes with usable captions in a yt-dlp info dict.

    Automatic captions list every machine translation YouTube offers; only
    the "-orig" track (the spoken language) counts here.  "live_chat" is a
    chat replay, not captions.
    """
    manual = [lang for lang in (info.get("subtitles") or {}) if lang != "live_chat"]
    automatic = info.get("automatic_captions") or {}
    originals = [lang for lang in automatic if lang.endswith("-orig")]
    if not originals and automatic:
        originals = [next(iter(automatic))]
    return tuple(manual + [lang for lang in originals if lang not in manual])


def fetch_video_metadata(video_id: str, client: yt_dlp.YoutubeDL | None = None) -> VideoMetadata:
    """
    Probe a video's metadata without downloading it.

    Args:
        video_id: The 11-character YouTube video ID.
        client:   A YoutubeDL to use instead of the shared one.

    Returns:
        A VideoMetadata dataclass.

    Raises:
        ExtractionError: yt-dlp couldn't retrieve the video (classified from
            its message: private, not found, region blocked, ...).
    """
    try:
        info = extract_player_info(video_id, client)
    except yt_dlp.utils.DownloadError as exc:
        raise wrap(exc, {"videoId": video_id}) from exc
    except LookupError as exc:
        raise error_for(ErrorKind.EXTRACTION_FAILED, str(exc), {"videoId": video_id}) from exc

    duration = info.get("duration")
    languages = caption_languages(info)

    return VideoMetadata(
        video_id=video_id,
        title=info.get("title") or f"Video {video_id}",
        channel_name=info.get("channel") or info.get("uploader") or "Unknown Channel",
        duration_secs=int(duration) if duration is not None else None,
        is_live=bool(info.get("is_live")),
        has_captions=bool(languages),
        caption_languages=languages,
    )
