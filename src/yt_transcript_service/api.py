"""
api.py: FastAPI REST API for yt-transcript-service.

Endpoints:
    POST /api/youtube/transcript        Extract a transcript from a YouTube URL.
    GET  /api/youtube/check/{video_id}  Pre-flight availability check by ID.
    GET  /api/youtube/check?url=...     Pre-flight availability check by URL.
    POST /api/youtube/validate          Validate a URL and return its video ID.
    GET  /health                        Health check for load balancers / monitoring.

Run with:
    uvicorn yt_transcript_service.api:app

Every failure is rendered the same way:
    {"success": false, "error": {code, message, userMessage, canRetry,
                                 suggestAudioTranscription, details}}
with the HTTP status taken from the error's code.  The route functions are
plain `def` so FastAPI runs the blocking extraction in its thread pool.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from yt_transcript_service.availability import check_availability
from yt_transcript_service.config import configure_logging
from yt_transcript_service.errors import ErrorKind, ExtractionError, error_for, wrap
from yt_transcript_service.extractor import extract_transcript, extract_video_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    logger.info("yt-transcript-service API starting")
    yield


app = FastAPI(
    title="YouTube Transcript Service",
    description="Extract YouTube transcripts through a cascade of backends, "
                "with structured, user-actionable errors.",
    version="0.1.0",
    lifespan=lifespan,
)


class UrlRequest(BaseModel):
    """Request body carrying a YouTube URL."""

    # Optional so a missing url gets our INVALID_URL response rather than
    # FastAPI's generic 422.
    url: str | None = None


# ---------------------------------------------------------------------------
# Global error handler
# ---------------------------------------------------------------------------

@app.exception_handler(ExtractionError)
async def extraction_error_handler(request: Request, exc: ExtractionError) -> JSONResponse:
    """
    Translate any ExtractionError into the failure response shape.

    The status code comes from the error table, so endpoints just raise.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_json()},
    )


def _require_url(url: str | None, message: str) -> str:
    if not url or not url.strip():
        raise error_for(ErrorKind.INVALID_URL, message)
    return url.strip()


# ---------------------------------------------------------------------------
# Endpoints: transcript extraction
# ---------------------------------------------------------------------------

@app.post("/api/youtube/transcript")
def get_transcript(body: UrlRequest) -> JSONResponse:
    """
    Extract the transcript for the YouTube video at `url`.

    Success: `{success, url, transcript, metadata: {title, duration, videoId}}`.
    """
    url = _require_url(body.url, "YouTube URL is required in the request body.")

    try:
        result = extract_transcript(url)
    except ExtractionError:
        raise
    except Exception as exc:
        # Anything the cascade didn't already classify gets the same treatment
        # a strategy failure would.
        logger.exception("Unexpected error extracting transcript for %s", url)
        raise wrap(exc) from exc

    return JSONResponse(content={
        "success": True,
        "url": url,
        "transcript": result.text,
        "metadata": result.metadata_json(),
    })


# ---------------------------------------------------------------------------
# Endpoints: pre-flight checks
# ---------------------------------------------------------------------------

def _check(video_id_or_url: str) -> JSONResponse:
    try:
        availability = check_availability(video_id_or_url)
    except ExtractionError:
        raise
    except Exception as exc:
        logger.exception("Unexpected error checking %s", video_id_or_url)
        raise wrap(exc) from exc

    return JSONResponse(content={
        "success": True,
        **availability.to_dict(),
        "statusMessage": availability.status_message,
    })


@app.get("/api/youtube/check/{video_id}")
def check_video(video_id: str) -> JSONResponse:
    """Pre-flight check by video ID: reachable? captions present?"""
    return _check(video_id)


@app.get("/api/youtube/check")
def check_video_by_url(
    url: str | None = Query(default=None, description="YouTube URL or video ID to check."),
) -> JSONResponse:
    """Pre-flight check by URL."""
    return _check(_require_url(url, "Video ID or URL is required"))


@app.post("/api/youtube/validate")
def validate_url(body: UrlRequest) -> JSONResponse:
    """Validate a YouTube URL and return the video ID it points at."""
    url = _require_url(body.url, "YouTube URL is required in the request body.")
    return JSONResponse(content={"success": True, "url": url, "videoId": extract_video_id(url)})


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict:
    """
    Minimal health-check endpoint.

    Returns HTTP 200 with {"status": "ok"}.
    """
    return {"status": "ok"}
