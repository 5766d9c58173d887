"""
timedtext.py: Fetching and parsing YouTube timed-text (caption) payloads.

Shared by the strategies that talk to caption endpoints directly:

    choose_track()      Pick the preferred-language track from a track list.
    TimedTextFetcher    GET a caption URL with bounded, linearly backed-off retries.
    parse_timed_text()  Pull the <text>...</text> segments out of srv1/XML captions.
    parse_json3()       Pull the segments out of json3 captions.

Caption payloads are often not well-formed XML (stray ampersands, truncated
bodies), so segments are pulled out with a regex over <text> elements.
"""

from __future__ import annotations

import html
import json
import logging
import re
import time
from typing import Any, Callable, Iterable, TypeVar

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from yt_transcript_service.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# A desktop Chrome UA.  YouTube serves a stripped page (no player response)
# and empty caption bodies to clients it doesn't recognise as a browser.
BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"

# One caption segment: <text start="1.2" dur="3.4">Hello &amp; welcome</text>
_TEXT_PATTERN = re.compile(r"<text\b[^>]*>(.*?)</text>", re.DOTALL)

# Inline markup some tracks carry inside a segment (e.g. <font color=...>).
_INLINE_TAG_PATTERN = re.compile(r"<[^>]+>")

_WHITESPACE_PATTERN = re.compile(r"\s+")


def browser_headers(video_id: str | None = None) -> dict[str, str]:
    """Headers that make a request look like it came from the watch page."""
    headers = {
        "User-Agent": BROWSER_USER_AGENT,
        "Accept-Language": "en-US,en;q=0.9",
    }
    if video_id:
        headers["Referer"] = f"https://www.youtube.com/watch?v={video_id}"
    return headers


def timedtext_url(video_id: str, language: str, *, asr: bool = False) -> str:
    """Build the public timed-text URL for one language of a video."""
    url = f"{TIMEDTEXT_URL}?v={video_id}&lang={language}"
    if asr:
        url += "&kind=asr"
    return url


# ---------------------------------------------------------------------------
# Track selection
# ---------------------------------------------------------------------------

def choose_track(
    tracks: Iterable[T],
    language_of: Callable[[T], str],
    preferred: str | None = None,
) -> T | None:
    """
    Pick the caption track to download.

    Preference order: exact match on the preferred language, then a regional
    variant of it ("en-GB" for "en"), then the first track listed.

    Args:
        tracks:      Caption tracks in the order the backend listed them.
        language_of: Returns a track's language code.
        preferred:   Language code to look for; defaults to
                     settings.preferred_language.

    Returns:
        The chosen track, or None if there are no tracks at all.
    """
    tracks = list(tracks)
    if not tracks:
        return None

    wanted = (preferred or settings.preferred_language).lower()

    for track in tracks:
        if language_of(track).lower() == wanted:
            return track
    for track in tracks:
        if language_of(track).lower().startswith(f"{wanted}-"):
            return track
    return tracks[0]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def unescape_entities(text: str) -> str:
    """
    Decode HTML entities in a caption segment.

    Covers &amp; &lt; &gt; &quot; &#39; and every other named or numeric
    entity html.unescape knows.
    """
    return html.unescape(text)


def _clean(segment: str) -> str:
    # Tags come out before entities are decoded so "&lt;world&gt;" survives.
    text = unescape_entities(_INLINE_TAG_PATTERN.sub("", segment))
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def parse_timed_text(xml: str) -> list[str]:
    """
    Extract caption segments from a timed-text XML document.

    Args:
        xml: The raw srv1-style payload.

    Returns:
        The decoded, whitespace-normalised text of every non-empty segment,
        in document order.
    """
    segments = (_clean(raw) for raw in _TEXT_PATTERN.findall(xml))
    return [segment for segment in segments if segment]


def parse_json3(payload: str) -> list[str]:
    """
    Extract caption segments from a json3 timed-text payload.

    json3 splits each event into "segs" carrying a "utf8" fragment; the
    fragments of one event are concatenated into one segment.
    """
    data: dict[str, Any] = json.loads(payload)
    segments: list[str] = []
    for event in data.get("events") or []:
        text = "".join(seg.get("utf8", "") for seg in event.get("segs") or [])
        text = _WHITESPACE_PATTERN.sub(" ", text).strip()
        if text:
            segments.append(text)
    return segments


def join_segments(segments: Iterable[str]) -> str:
    """Join caption segments into one block of text, single-space separated."""
    return " ".join(segments)


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

class EmptyTimedTextError(Exception):
    """The caption endpoint answered 200 with an empty body."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Timed-text endpoint returned no captions: {url}")
        self.url = url


def is_transient(exc: BaseException) -> bool:
    """
    Whether a failed caption download is worth retrying.

    Connection problems, timeouts, 429s, 5xx responses and empty bodies are
    transient.  Anything else (404, 403, parse errors) will fail the same way
    again.
    """
    if isinstance(exc, (httpx.TransportError, EmptyTimedTextError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class TimedTextFetcher:
    """
    Downloads caption payloads over HTTP with bounded retries.

    The wait after failed attempt N is N * backoff_secs (1.5 s, then 3.0 s
    with the defaults), and at most max_attempts requests are made.  Only
    the calling strategy is held up by these waits.

    Args:
        client:       The httpx client to issue requests with.  Its timeout
                      bounds every attempt.
        max_attempts: Defaults to settings.timedtext_max_attempts.
        backoff_secs: Defaults to settings.timedtext_backoff_secs.
        sleep:        Called with the number of seconds to wait between
                      attempts; tests pass a recorder here.
    """

    def __init__(
        self,
        client: httpx.Client,
        *,
        max_attempts: int | None = None,
        backoff_secs: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self.max_attempts = max_attempts or settings.timedtext_max_attempts
        self.backoff_secs = settings.timedtext_backoff_secs if backoff_secs is None else backoff_secs
        self._sleep = sleep

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=self.backoff_secs, increment=self.backoff_secs),
            retry=retry_if_exception(is_transient),
            sleep=self._sleep,
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    def _get_once(self, url: str, video_id: str | None) -> str:
        response = self._client.get(url, headers=browser_headers(video_id))
        response.raise_for_status()
        if not response.text.strip():
            raise EmptyTimedTextError(url)
        return response.text

    def fetch(self, url: str, video_id: str | None = None) -> str:
        """
        Download one caption payload.

        Args:
            url:      Caption URL (a track baseUrl or a timedtext URL).
            video_id: Used for the Referer header only.

        Returns:
            The response body.

        Raises:
            httpx.HTTPError:     The last failure once retries are exhausted,
                                 or the first non-transient one.
            EmptyTimedTextError: Every attempt came back empty.
        """
        return self._retrying()(self._get_once, url, video_id)
