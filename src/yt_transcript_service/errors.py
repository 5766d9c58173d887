"""
errors.py: Structured error taxonomy for yt-transcript-service.

Every failure that leaves this package is an ExtractionError.  Its `code`
(an ErrorKind) selects one row of _ERROR_TABLE, which fixes the HTTP status,
whether the caller may retry, whether an audio-transcription fallback should
be offered, and the user-facing message.  Strategies never build these
themselves; they raise whatever their backend raised and the orchestrator
runs classify() on it.

Table:
    ErrorKind               status  retry  fallback
    INVALID_URL             400     no     no
    VIDEO_NOT_FOUND         404     no     no
    VIDEO_PRIVATE           403     no     no
    VIDEO_AGE_RESTRICTED    403     no     no
    VIDEO_LIVE_STREAM       400     no     no
    VIDEO_TOO_LONG          400     no     no
    NO_CAPTIONS_AVAILABLE   404     no     yes
    REGION_BLOCKED          403     no     no
    EXTRACTION_FAILED       500     yes    no
    RATE_LIMITED            429     yes    no
    NETWORK_ERROR           503     yes    no
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import httpx
import youtube_transcript_api as yta_errors  # exception classes live here


# ---------------------------------------------------------------------------
# Error kinds and the code -> behaviour table
# ---------------------------------------------------------------------------

class ErrorKind(str, enum.Enum):
    """
    Every way a transcript request can fail.

    The values double as the wire codes returned to API clients, so they
    must stay stable.
    """

    INVALID_URL = "INVALID_URL"
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"
    VIDEO_PRIVATE = "VIDEO_PRIVATE"
    AGE_RESTRICTED = "VIDEO_AGE_RESTRICTED"
    LIVE_STREAM = "VIDEO_LIVE_STREAM"
    TOO_LONG = "VIDEO_TOO_LONG"
    NO_CAPTIONS_AVAILABLE = "NO_CAPTIONS_AVAILABLE"
    REGION_BLOCKED = "REGION_BLOCKED"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    NETWORK_ERROR = "NETWORK_ERROR"


@dataclass(frozen=True)
class ErrorSpec:
    """One row of the error table."""

    status_code: int
    can_retry: bool
    suggest_fallback: bool
    user_message: str


_ERROR_TABLE: dict[ErrorKind, ErrorSpec] = {
    ErrorKind.INVALID_URL: ErrorSpec(
        400, False, False,
        "Invalid YouTube URL format. Please check the link and try again.",
    ),
    ErrorKind.VIDEO_NOT_FOUND: ErrorSpec(
        404, False, False,
        "This video does not exist or has been deleted.",
    ),
    ErrorKind.VIDEO_PRIVATE: ErrorSpec(
        403, False, False,
        "This video is private. Only public videos can be transcribed.",
    ),
    ErrorKind.AGE_RESTRICTED: ErrorSpec(
        403, False, False,
        "Age-restricted videos cannot be transcribed automatically.",
    ),
    ErrorKind.LIVE_STREAM: ErrorSpec(
        400, False, False,
        "Live streams cannot be transcribed. Please wait until the stream ends.",
    ),
    ErrorKind.TOO_LONG: ErrorSpec(
        400, False, False,
        "Videos longer than 3 hours cannot be transcribed.",
    ),
    ErrorKind.NO_CAPTIONS_AVAILABLE: ErrorSpec(
        404, False, True,
        "No captions available for this video. The creator may not have added subtitles.",
    ),
    ErrorKind.REGION_BLOCKED: ErrorSpec(
        403, False, False,
        "This video is not available in your region.",
    ),
    ErrorKind.EXTRACTION_FAILED: ErrorSpec(
        500, True, False,
        "Failed to extract transcript. Please try again later.",
    ),
    ErrorKind.RATE_LIMITED: ErrorSpec(
        429, True, False,
        "Too many requests. Please wait a moment and try again.",
    ),
    ErrorKind.NETWORK_ERROR: ErrorSpec(
        503, True, False,
        "Network error. Please check your connection and try again.",
    ),
}


def spec_for(code: ErrorKind) -> ErrorSpec:
    """Return the table row for an error kind."""
    return _ERROR_TABLE[code]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ExtractionError(Exception):
    """
    The single error type surfaced to callers of this package.

    Attributes:
        code:             The ErrorKind this failure was classified as.
        message:          Diagnostic description (may include backend text).
        user_message:     Text safe to show an end user; always the table
                          message for `code`.
        status_code:      HTTP status for the API layer.
        can_retry:        Whether retrying the same request may succeed.
        suggest_fallback: Whether the client should offer audio
                          transcription instead.
        details:          Free-form context (video ID, per-strategy attempts).
    """

    def __init__(
        self,
        code: ErrorKind,
        custom_message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        row = spec_for(code)
        message = custom_message or row.user_message
        super().__init__(message)
        self.code = code
        self.message = message
        self.user_message = row.user_message
        self.status_code = row.status_code
        self.can_retry = row.can_retry
        self.suggest_fallback = row.suggest_fallback
        self.details = dict(details or {})

    def to_json(self) -> dict[str, Any]:
        """Serialise to the `error` object of a failed API response."""
        return {
            "code": self.code.value,
            "message": self.message,
            "userMessage": self.user_message,
            "canRetry": self.can_retry,
            "suggestAudioTranscription": self.suggest_fallback,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"ExtractionError({self.code.value}, {self.message!r})"


class ConfigurationError(RuntimeError):
    """
    Raised by a strategy that cannot run because a required setting is
    missing (e.g. the Data API key).

    This is a raw error like any other: the orchestrator classifies it.  It is
    only special when the caller explicitly selected the strategy, in which
    case there is nothing to cascade to and the orchestrator stops at once.
    """


def error_for(
    code: ErrorKind,
    custom_message: str | None = None,
    details: dict[str, Any] | None = None,
) -> ExtractionError:
    """
    Build the structured error for `code`.

    custom_message only replaces the diagnostic message; status, retry and
    fallback flags and the user message always come from the table.
    """
    return ExtractionError(code, custom_message, details)


# ---------------------------------------------------------------------------
# Classification of raw errors
# ---------------------------------------------------------------------------

# Exception types from the backend libraries that already tell us exactly
# what went wrong.  Checked in order before any message heuristics; order
# matters where one class subclasses another.
_TYPE_RULES: list[tuple[tuple[type[BaseException], ...], ErrorKind]] = [
    ((yta_errors.InvalidVideoId,), ErrorKind.INVALID_URL),
    ((yta_errors.AgeRestricted,), ErrorKind.AGE_RESTRICTED),
    ((yta_errors.TranscriptsDisabled, yta_errors.NoTranscriptFound), ErrorKind.NO_CAPTIONS_AVAILABLE),
    ((yta_errors.RequestBlocked,), ErrorKind.RATE_LIMITED),
    ((yta_errors.VideoUnavailable,), ErrorKind.VIDEO_NOT_FOUND),
    ((httpx.TimeoutException, httpx.TransportError), ErrorKind.NETWORK_ERROR),
]

# HTTP statuses with an unambiguous meaning for a YouTube request.
_STATUS_RULES: dict[int, ErrorKind] = {
    429: ErrorKind.RATE_LIMITED,
    404: ErrorKind.VIDEO_NOT_FOUND,
}

# Message heuristics, evaluated top to bottom; the first hit wins.  Specific
# conditions come before generic ones: "Sign in to confirm your age" must be
# AGE_RESTRICTED rather than VIDEO_PRIVATE, "could not find captions" must not
# fall into the generic not-found bucket, and yt-dlp's "Video unavailable. ...
# not available in your country" is a region block.
_MESSAGE_RULES: list[tuple[tuple[str, ...], ErrorKind]] = [
    (("age-restricted", "age restricted", "confirm your age", "inappropriate for some users"),
     ErrorKind.AGE_RESTRICTED),
    # The bot check also says "sign in", but it is throttling, not a private video.
    (("not a bot", "unusual traffic"), ErrorKind.RATE_LIMITED),
    (("private", "sign in"), ErrorKind.VIDEO_PRIVATE),
    (("no caption", "no transcript", "transcript is disabled", "transcripts are disabled",
      "subtitles are disabled", "could not find captions"),
     ErrorKind.NO_CAPTIONS_AVAILABLE),
    (("not available in your country", "blocked in your", "region", "country"),
     ErrorKind.REGION_BLOCKED),
    (("not found", "does not exist", "unavailable", "has been removed"), ErrorKind.VIDEO_NOT_FOUND),
    (("live stream", "livestream", "live event", "is live", "premiere"), ErrorKind.LIVE_STREAM),
    (("too long",), ErrorKind.TOO_LONG),
    (("rate limit", "rate-limit", "too many requests", "429", "quota", "blocking requests"),
     ErrorKind.RATE_LIMITED),
    (("network", "timeout", "timed out", "connection refused", "connection reset",
      "econnrefused", "name resolution"),
     ErrorKind.NETWORK_ERROR),
]


def classify_message(message: str) -> ErrorKind:
    """
    Classify a free-text error message using the ordered substring table.

    Args:
        message: Any error text; matching is case-insensitive.

    Returns:
        The first matching ErrorKind, or EXTRACTION_FAILED.
    """
    msg = message.lower()

    for needles, kind in _MESSAGE_RULES:
        if any(needle in msg for needle in needles):
            return kind

    # "invalid" alone is too vague; it has to be about the URL or the ID.
    if "invalid" in msg and ("url" in msg or "video id" in msg):
        return ErrorKind.INVALID_URL

    return ErrorKind.EXTRACTION_FAILED


def classify(raw: BaseException) -> ErrorKind:
    """
    Best-effort classification of an error raised by a strategy.

    Errors that already carry a structured code keep it.  Known library
    exception types map directly.  Everything else falls through to the
    message heuristics.

    Args:
        raw: The exception a strategy (or anything else) raised.

    Returns:
        The ErrorKind to report for it.
    """
    if isinstance(raw, ExtractionError):
        return raw.code

    for types, kind in _TYPE_RULES:
        if isinstance(raw, types):
            return kind

    if isinstance(raw, httpx.HTTPStatusError):
        kind = _STATUS_RULES.get(raw.response.status_code)
        if kind is not None:
            return kind

    return classify_message(str(raw))


def wrap(raw: BaseException, details: dict[str, Any] | None = None) -> ExtractionError:
    """
    Turn any exception into an ExtractionError.

    ExtractionErrors pass through untouched; anything else is classified and
    keeps its own text as the diagnostic message.
    """
    if isinstance(raw, ExtractionError):
        return raw
    merged = {"originalError": str(raw)}
    merged.update(details or {})
    return error_for(classify(raw), str(raw) or None, merged)
