"""
extractor.py: Video ID parsing and the strategy cascade.

This is the heart of yt-transcript-service:

    1. Parsing YouTube URLs / IDs       → extract_video_id()
    2. Running strategies in order      → TranscriptExtractor.extract()
    3. One-call convenience             → extract_transcript()

Strategies run one at a time.  The first one to return text wins and no
later strategy is called.  A strategy failing is expected and only logged;
the caller sees an error only when every strategy has failed, and then it is
the most specific classification seen (see TranscriptExtractor.extract).
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Iterable, Sequence

from yt_transcript_service.config import settings
from yt_transcript_service.errors import (
    ConfigurationError,
    ErrorKind,
    classify,
    error_for,
)
from yt_transcript_service.strategies import (
    ExtractionStrategy,
    StrategyError,
    TranscriptResult,
    build_strategies,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_ID = r"(?P<id>[A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"
_HOST = r"(?:https?://)?(?:(?:www|m|music)\.)?"

# Tried in order, first match wins:
#   - https://www.youtube.com/watch?v=VIDEO_ID   (v may be any query param)
#   - https://youtu.be/VIDEO_ID
#   - https://www.youtube.com/embed/VIDEO_ID     (also youtube-nocookie.com)
#   - https://www.youtube.com/shorts/VIDEO_ID
#   - https://www.youtube.com/live/VIDEO_ID, /v/VIDEO_ID
# The lookahead rejects a 12+ character token instead of truncating it.
_URL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(_HOST + r"youtube\.com/watch/?\?(?:[^#\s]*?&)?v=" + _ID, re.IGNORECASE),
    re.compile(r"(?:https?://)?youtu\.be/" + _ID, re.IGNORECASE),
    re.compile(_HOST + r"youtube(?:-nocookie)?\.com/embed/" + _ID, re.IGNORECASE),
    re.compile(_HOST + r"youtube\.com/shorts/" + _ID, re.IGNORECASE),
    re.compile(_HOST + r"youtube\.com/(?:live|v)/" + _ID, re.IGNORECASE),
]

# A bare video ID is exactly 11 characters from the base64url alphabet.
_BARE_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")

# Conditions no other backend can get around.  Only consulted when
# short-circuiting is switched on.
PERMANENT_KINDS = frozenset({
    ErrorKind.VIDEO_NOT_FOUND,
    ErrorKind.VIDEO_PRIVATE,
    ErrorKind.AGE_RESTRICTED,
    ErrorKind.LIVE_STREAM,
    ErrorKind.REGION_BLOCKED,
})


# ---------------------------------------------------------------------------
# URL / ID parsing
# ---------------------------------------------------------------------------

def extract_video_id(url_or_id: str) -> str:
    """
    Extract a YouTube video ID from a URL string, or validate a raw 11-char ID.

    Args:
        url_or_id: A YouTube URL or a raw video ID.

    Returns:
        The 11-character video ID.

    Raises:
        ExtractionError: INVALID_URL if the string doesn't match any known
            format.
    """
    candidate = (url_or_id or "").strip()

    for pattern in _URL_PATTERNS:
        match = pattern.match(candidate)
        if match:
            return match.group("id")

    if _BARE_ID_PATTERN.fullmatch(candidate):
        return candidate

    raise error_for(
        ErrorKind.INVALID_URL,
        f"Invalid YouTube URL: {candidate!r}",
        {"input": candidate},
    )


# ---------------------------------------------------------------------------
# The cascade
# ---------------------------------------------------------------------------

class TranscriptExtractor:
    """
    Runs transcript strategies in priority order.

    Args:
        strategies:    Strategies to try, in order.  When omitted the list is
                       built from settings.strategy_order.  Passing a list
                       counts as explicitly selecting those strategies.
        short_circuit: Stop at the first failure whose classification is in
                       PERMANENT_KINDS.  Defaults to
                       settings.short_circuit_permanent_errors.
    """

    def __init__(
        self,
        strategies: Sequence[ExtractionStrategy] | None = None,
        *,
        short_circuit: bool | None = None,
    ) -> None:
        self.explicit = strategies is not None
        self.strategies = list(strategies) if strategies is not None else build_strategies(settings.strategy_order)
        self.short_circuit = (
            settings.short_circuit_permanent_errors if short_circuit is None else short_circuit
        )

    def extract(self, url: str) -> TranscriptResult:
        """
        Extract the transcript for a YouTube URL or video ID.

        Returns:
            The first successful strategy's result, with a synthetic
            "Video {id}" title if the strategy didn't supply one.

        Raises:
            ExtractionError: INVALID_URL before any strategy runs; otherwise
                the most recent specific classification once every strategy
                has failed, or EXTRACTION_FAILED if none was specific.
        """
        video_id = extract_video_id(url)
        attempts: list[dict[str, Any]] = []
        details: dict[str, Any] = {"videoId": video_id, "attempts": attempts}
        specific: tuple[ErrorKind, Exception] | None = None

        for strategy in self.strategies:
            logger.info("Trying %s strategy for %s", strategy.name, video_id)
            try:
                result = strategy.attempt(video_id)
                if not result.text or not result.text.strip():
                    raise StrategyError(f"{strategy.name} returned no caption text")
            except Exception as exc:
                kind = classify(exc)
                attempts.append({"strategy": strategy.name, "code": kind.value, "error": str(exc)})
                logger.warning("%s strategy failed for %s [%s]: %s", strategy.name, video_id, kind.value, exc)

                if isinstance(exc, ConfigurationError) and self.explicit:
                    raise error_for(
                        ErrorKind.EXTRACTION_FAILED,
                        str(exc),
                        {**details, "strategy": strategy.name, "reason": "configuration"},
                    ) from exc

                if kind is not ErrorKind.EXTRACTION_FAILED:
                    specific = (kind, exc)
                    if self.short_circuit and kind in PERMANENT_KINDS:
                        raise error_for(kind, str(exc), details) from exc
                continue

            logger.info(
                "%s strategy succeeded for %s (%d chars)", strategy.name, video_id, len(result.text)
            )
            return replace(
                result,
                title=result.title or f"Video {video_id}",
                video_id=video_id,
            )

        if specific is not None:
            kind, exc = specific
            raise error_for(kind, str(exc), details) from exc

        raise error_for(
            ErrorKind.EXTRACTION_FAILED,
            f"All {len(self.strategies)} transcript strategies failed for video {video_id}",
            details,
        )


def extract_transcript(url: str, strategies: Iterable[str] | None = None) -> TranscriptResult:
    """
    One-call interface: parse URL → run the cascade → return the transcript.

    Args:
        url:        A YouTube URL or raw video ID.
        strategies: Strategy names to use instead of settings.strategy_order.
                    Naming strategies selects them explicitly.

    Raises:
        ExtractionError: On any failure.
        ValueError:      An unknown strategy name was given.
    """
    if strategies is None:
        return TranscriptExtractor().extract(url)
    return TranscriptExtractor(build_strategies(strategies)).extract(url)
