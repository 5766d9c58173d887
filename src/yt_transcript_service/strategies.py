"""
strategies.py: Interchangeable transcript backends.

Each strategy turns a video ID into a TranscriptResult or raises whatever its
backend raised.  None of them decide what the failure means to the user; the
orchestrator in extractor.py classifies every raw error in one place.

    ScraperStrategy         youtube-transcript-api (scrapes timed text).
    EmbeddedClientStrategy  yt-dlp's emulated player client; manual tracks,
                            then automatic captions.
    ManifestStrategy        Parses the watch page's player response and
                            downloads a caption track directly.
    OfficialApiStrategy     YouTube Data API v3 for metadata and the track
                            list, then the public timed-text endpoint.

STRATEGIES maps each strategy's name to its class; build_strategies() turns a
list of names into instances.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import httplib2
import httpx
import yt_dlp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from youtube_transcript_api import YouTubeTranscriptApi
import youtube_transcript_api as yta_errors  # exception classes live here

from yt_transcript_service import metadata
from yt_transcript_service.config import settings
from yt_transcript_service.errors import ConfigurationError
from yt_transcript_service.timedtext import (
    TimedTextFetcher,
    browser_headers,
    choose_track,
    join_segments,
    parse_json3,
    parse_timed_text,
    timedtext_url,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result type and strategy interface
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TranscriptResult:
    """
    A successfully extracted transcript.

    Strategies may leave title and duration as None; the orchestrator fills
    in a synthetic title before the result reaches a caller.

    Attributes:
        text:     All caption segments joined with single spaces.
        title:    Video title.
        duration: Video length in seconds, when the backend reports it.
        video_id: The 11-character YouTube video ID.
    """
    text: str
    title: str | None
    duration: int | None
    video_id: str

    def metadata_json(self) -> dict[str, Any]:
        """The `metadata` object of a successful API response."""
        return {"title": self.title, "duration": self.duration, "videoId": self.video_id}

    def to_json(self) -> dict[str, Any]:
        """Text plus metadata, as printed by `yt-transcript get --format json`."""
        return {"text": self.text, **self.metadata_json()}


class StrategyError(Exception):
    """A strategy-level failure described only by its message."""


class ExtractionStrategy:
    """
    Base class for transcript backends.

    Subclasses set `name` and implement attempt().  Instances hold no
    per-request state, so one instance can serve any number of calls.
    """

    name: str = ""

    def attempt(self, video_id: str) -> TranscriptResult:
        """
        Fetch the transcript for one video.

        Raises:
            Exception: Any backend failure, unclassified.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def _language_priority() -> list[str]:
    preferred = settings.preferred_language
    return [preferred] if preferred == "en" else [preferred, "en"]


# ---------------------------------------------------------------------------
# Scraper: youtube-transcript-api
# ---------------------------------------------------------------------------

class ScraperStrategy(ExtractionStrategy):
    """
    Fastest backend: youtube-transcript-api scrapes the timed-text data the
    watch page points at.  Breaks whenever YouTube changes its markup.
    """

    name = "scraper"

    def __init__(self, api: YouTubeTranscriptApi | None = None) -> None:
        self._api = api

    def attempt(self, video_id: str) -> TranscriptResult:
        api = self._api or YouTubeTranscriptApi()

        try:
            fetched = api.fetch(video_id, languages=_language_priority())
        except yta_errors.NoTranscriptFound:
            # Captions exist, just not in a preferred language: take the
            # first track YouTube lists.
            transcript = next(iter(api.list(video_id)), None)
            if transcript is None:
                raise
            logger.debug("No preferred-language track for %s, using %s", video_id, transcript.language_code)
            fetched = transcript.fetch()

        texts = [snippet.text.strip() for snippet in fetched if snippet.text and snippet.text.strip()]
        if not texts:
            raise StrategyError(f"Transcript scraper returned no caption text for {video_id}")

        return TranscriptResult(text=join_segments(texts), title=None, duration=None, video_id=video_id)


# ---------------------------------------------------------------------------
# Embedded client: yt-dlp player emulation
# ---------------------------------------------------------------------------

# Caption formats we can parse, best first.
_EMBEDDED_FORMATS = ("json3", "srv1")


def _pick_language(tracks: dict[str, list[dict[str, Any]]], preferred: str) -> str | None:
    """Choose a language key from a yt-dlp subtitles/automatic_captions dict."""
    languages = [lang for lang, formats in tracks.items() if formats and lang != "live_chat"]
    if not languages:
        return None
    # The "-orig" automatic track is the spoken language; everything else in
    # automatic_captions is a machine translation of it.
    for candidate in (preferred, f"{preferred}-orig"):
        if candidate in languages:
            return candidate
    originals = [lang for lang in languages if lang.endswith("-orig")]
    if originals:
        return originals[0]
    return choose_track(languages, lambda lang: lang, preferred)


def _pick_format(formats: list[dict[str, Any]]) -> dict[str, Any] | None:
    by_ext = {fmt.get("ext"): fmt for fmt in formats if fmt.get("url")}
    for ext in _EMBEDDED_FORMATS:
        if ext in by_ext:
            return by_ext[ext]
    return None


class EmbeddedClientStrategy(ExtractionStrategy):
    """
    yt-dlp emulates YouTube's internal player API, which makes it far more
    tolerant of page markup changes than the scraper.

    Two paths, tried in order: the creator's manual subtitle tracks, then
    the automatic (speech recognition) captions.  Caption bodies are
    downloaded through the client's own network session.

    Args:
        client: A YoutubeDL to use instead of the process-wide one.
    """

    name = "embedded_client"

    def __init__(self, client: yt_dlp.YoutubeDL | None = None) -> None:
        self._client = client

    def _download(self, client: yt_dlp.YoutubeDL, fmt: dict[str, Any]) -> list[str]:
        with client.urlopen(fmt["url"]) as response:
            payload = response.read().decode("utf-8", errors="replace")
        if fmt.get("ext") == "json3":
            return parse_json3(payload)
        return parse_timed_text(payload)

    def attempt(self, video_id: str) -> TranscriptResult:
        client = self._client or metadata.get_client()
        info = metadata.extract_player_info(video_id, client)

        if info.get("is_live"):
            raise StrategyError(f"Video {video_id} is a live stream in progress")

        preferred = settings.preferred_language
        last_error: Exception | None = None
        for source in ("subtitles", "automatic_captions"):
            tracks = info.get(source) or {}
            language = _pick_language(tracks, preferred)
            if language is None:
                continue
            fmt = _pick_format(tracks[language])
            if fmt is None:
                logger.debug("No parseable %s format for %s (%s)", source, video_id, language)
                continue

            try:
                texts = self._download(client, fmt)
            except Exception as exc:
                logger.debug("Downloading %s for %s (%s) failed: %s", source, video_id, language, exc)
                last_error = exc
                continue

            if texts:
                duration = info.get("duration")
                return TranscriptResult(
                    text=join_segments(texts),
                    title=info.get("title"),
                    duration=int(duration) if duration is not None else None,
                    video_id=video_id,
                )
            logger.debug("Empty %s track for %s (%s)", source, video_id, language)

        if last_error is not None:
            raise last_error
        raise StrategyError(f"No captions available from the embedded client for {video_id}")


# ---------------------------------------------------------------------------
# Manifest: watch-page player response
# ---------------------------------------------------------------------------

_PLAYER_RESPONSE_MARKER = re.compile(r"ytInitialPlayerResponse\s*=\s*")


def extract_player_response(page: str) -> dict[str, Any]:
    """
    Pull the ytInitialPlayerResponse object out of a watch page.

    Raises:
        StrategyError: The page doesn't embed a player response.
    """
    match = _PLAYER_RESPONSE_MARKER.search(page)
    if match is None:
        raise StrategyError("Watch page has no player response")
    try:
        player, _ = json.JSONDecoder().raw_decode(page, match.end())
    except json.JSONDecodeError as exc:
        raise StrategyError(f"Could not decode player response: {exc}") from exc
    return player


class ManifestStrategy(ExtractionStrategy):
    """
    Reads the caption track list straight out of the watch page's player
    response and downloads the chosen track's timed-text XML.

    Args:
        transport: httpx transport override (tests use httpx.MockTransport).
        sleep:     Passed to the TimedTextFetcher.
    """

    name = "manifest"

    def __init__(
        self,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._transport = transport
        self._sleep = sleep

    def _http_client(self) -> httpx.Client:
        return httpx.Client(
            transport=self._transport,
            timeout=settings.http_timeout_secs,
            follow_redirects=True,
        )

    def attempt(self, video_id: str) -> TranscriptResult:
        with self._http_client() as client:
            response = client.get(
                metadata.watch_url(video_id),
                params={"hl": "en"},
                headers=browser_headers(),
            )
            response.raise_for_status()
            player = extract_player_response(response.text)

            playability = player.get("playabilityStatus") or {}
            status = playability.get("status", "OK")
            if status != "OK":
                reason = playability.get("reason") or "unplayable"
                raise StrategyError(f"{status}: {reason}")

            details = player.get("videoDetails") or {}
            if details.get("isLive"):
                raise StrategyError(f"Video {video_id} is a live stream in progress")

            tracks = (
                (player.get("captions") or {})
                .get("playerCaptionsTracklistRenderer", {})
                .get("captionTracks")
                or []
            )
            track = choose_track(tracks, lambda t: t.get("languageCode", ""))
            if track is None or not track.get("baseUrl"):
                raise StrategyError(f"No caption tracks in the player response for {video_id}")

            # Strip any fmt override so the endpoint returns its default XML.
            url = re.sub(r"&fmt=[^&]*", "", track["baseUrl"])
            fetcher = TimedTextFetcher(client, sleep=self._sleep)
            texts = parse_timed_text(fetcher.fetch(url, video_id))

        if not texts:
            raise StrategyError(f"No caption text in the {track.get('languageCode')} track for {video_id}")

        length = details.get("lengthSeconds")
        return TranscriptResult(
            text=join_segments(texts),
            title=details.get("title"),
            duration=int(length) if length else None,
            video_id=video_id,
        )


# ---------------------------------------------------------------------------
# Official API: YouTube Data API v3
# ---------------------------------------------------------------------------

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_iso8601_duration(value: str | None) -> int | None:
    """
    Convert a Data API duration ("PT1H2M3S") to seconds.

    Returns None for missing or unparseable values (and "P0D", which the API
    reports for live broadcasts).
    """
    if not value:
        return None
    match = _ISO_DURATION.match(value)
    if match is None:
        return None
    parts = {key: int(num) for key, num in match.groupdict().items() if num}
    total = (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )
    return total or None


def _execute(request: Any) -> dict[str, Any]:
    """
    Run a Data API request.

    HttpError text embeds the request URI, API key included, so only the
    status and the reason YouTube gave survive into the raised error.
    """
    try:
        return request.execute()
    except HttpError as exc:
        raise StrategyError(f"Data API {exc.status_code}: {exc.reason}") from exc


def build_youtube_service(api_key: str) -> Any:
    """Build a Data API v3 client whose requests are bounded by the HTTP timeout."""
    return build(
        "youtube",
        "v3",
        developerKey=api_key,
        http=httplib2.Http(timeout=settings.http_timeout_secs),
        cache_discovery=False,
    )


class OfficialApiStrategy(ExtractionStrategy):
    """
    Most reliable and most expensive backend: costs Data API quota and needs
    YOUTUBE_API_KEY.  Video metadata and the caption-track list come from the
    API; the track text comes from the public timed-text endpoint, since
    captions.download requires OAuth as the video owner.

    Args:
        api_key:   Overrides settings.youtube_api_key.
        service:   A prebuilt Data API client (tests pass a MagicMock).
        transport: httpx transport override for the timed-text download.
        sleep:     Passed to the TimedTextFetcher.
    """

    name = "official_api"

    def __init__(
        self,
        api_key: str | None = None,
        service: Any = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._api_key = api_key
        self._service = service
        self._transport = transport
        self._sleep = sleep

    def _youtube(self) -> Any:
        if self._service is not None:
            return self._service
        api_key = self._api_key if self._api_key is not None else settings.youtube_api_key
        if not api_key:
            raise ConfigurationError("YOUTUBE_API_KEY is not configured; the official_api strategy cannot run")
        return build_youtube_service(api_key)

    def attempt(self, video_id: str) -> TranscriptResult:
        youtube = self._youtube()

        videos = _execute(youtube.videos().list(part="snippet,contentDetails", id=video_id))
        items = videos.get("items") or []
        if not items:
            raise StrategyError(f"Video {video_id} not found via the Data API")
        snippet = items[0].get("snippet") or {}
        content = items[0].get("contentDetails") or {}

        if snippet.get("liveBroadcastContent") == "live":
            raise StrategyError(f"Video {video_id} is a live stream in progress")

        captions = _execute(youtube.captions().list(part="snippet", videoId=video_id))
        track = choose_track(
            captions.get("items") or [],
            lambda item: (item.get("snippet") or {}).get("language", ""),
        )
        if track is None:
            raise StrategyError(f"No captions listed by the Data API for {video_id}")

        track_snippet = track.get("snippet") or {}
        url = timedtext_url(
            video_id,
            track_snippet.get("language", settings.preferred_language),
            asr=track_snippet.get("trackKind", "").lower() == "asr",
        )

        with httpx.Client(
            transport=self._transport,
            timeout=settings.http_timeout_secs,
            follow_redirects=True,
        ) as client:
            texts = parse_timed_text(TimedTextFetcher(client, sleep=self._sleep).fetch(url, video_id))

        if not texts:
            raise StrategyError(f"No caption text returned by the timed-text endpoint for {video_id}")

        return TranscriptResult(
            text=join_segments(texts),
            title=snippet.get("title"),
            duration=parse_iso8601_duration(content.get("duration")),
            video_id=video_id,
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

STRATEGIES: dict[str, type[ExtractionStrategy]] = {
    cls.name: cls
    for cls in (ScraperStrategy, EmbeddedClientStrategy, ManifestStrategy, OfficialApiStrategy)
}


def build_strategies(names: Iterable[str]) -> list[ExtractionStrategy]:
    """
    Instantiate strategies by name, keeping the given order.

    Raises:
        ValueError: A name isn't in STRATEGIES.
    """
    strategies = []
    for name in names:
        try:
            strategies.append(STRATEGIES[name]())
        except KeyError:
            raise ValueError(f"Unknown strategy {name!r}; expected one of {sorted(STRATEGIES)}") from None
    return strategies
