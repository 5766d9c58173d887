"""
test_api.py: Tests for the FastAPI REST endpoints.

Uses FastAPI's TestClient with the extraction and availability layers mocked,
so no network access is needed.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from yt_transcript_service.api import app
from yt_transcript_service.availability import AvailabilityResult
from yt_transcript_service.errors import ErrorKind, error_for, spec_for
from yt_transcript_service.strategies import TranscriptResult

VIDEO_ID = "dQw4w9WgXcQ"
VIDEO_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"


@pytest.fixture
def client() -> TestClient:
    """Create a TestClient for the FastAPI app."""
    return TestClient(app)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health_returns_ok(self, client: TestClient) -> None:
        """GET /health returns 200 with status ok."""
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# POST /api/youtube/transcript
# ---------------------------------------------------------------------------

class TestTranscriptEndpoint:
    """Tests for POST /api/youtube/transcript."""

    @patch("yt_transcript_service.api.extract_transcript")
    def test_success(self, mock_extract: MagicMock, client: TestClient) -> None:
        mock_extract.return_value = TranscriptResult(
            text="Never gonna give you up", title="Never Gonna Give You Up", duration=212, video_id=VIDEO_ID,
        )

        resp = client.post("/api/youtube/transcript", json={"url": VIDEO_URL})

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "url": VIDEO_URL,
            "transcript": "Never gonna give you up",
            "metadata": {"title": "Never Gonna Give You Up", "duration": 212, "videoId": VIDEO_ID},
        }
        mock_extract.assert_called_once_with(VIDEO_URL)

    @patch("yt_transcript_service.api.extract_transcript")
    def test_missing_url(self, mock_extract: MagicMock, client: TestClient) -> None:
        """A missing url is INVALID_URL (400), not a validation 422."""
        resp = client.post("/api/youtube/transcript", json={})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "INVALID_URL"
        assert body["error"]["message"] == "YouTube URL is required in the request body."
        mock_extract.assert_not_called()

    @patch("yt_transcript_service.api.extract_transcript")
    def test_no_captions(self, mock_extract: MagicMock, client: TestClient) -> None:
        """The error's status and flags come straight from the table."""
        mock_extract.side_effect = error_for(
            ErrorKind.NO_CAPTIONS_AVAILABLE, "No caption tracks", {"videoId": VIDEO_ID},
        )

        resp = client.post("/api/youtube/transcript", json={"url": VIDEO_URL})

        assert resp.status_code == 404
        assert resp.json() == {
            "success": False,
            "error": {
                "code": "NO_CAPTIONS_AVAILABLE",
                "message": "No caption tracks",
                "userMessage": spec_for(ErrorKind.NO_CAPTIONS_AVAILABLE).user_message,
                "canRetry": False,
                "suggestAudioTranscription": True,
                "details": {"videoId": VIDEO_ID},
            },
        }

    @patch("yt_transcript_service.api.extract_transcript")
    def test_rate_limited(self, mock_extract: MagicMock, client: TestClient) -> None:
        mock_extract.side_effect = error_for(ErrorKind.RATE_LIMITED)

        resp = client.post("/api/youtube/transcript", json={"url": VIDEO_URL})

        assert resp.status_code == 429
        assert resp.json()["error"]["canRetry"] is True

    @patch("yt_transcript_service.api.extract_transcript")
    def test_unexpected_error_is_classified(self, mock_extract: MagicMock, client: TestClient) -> None:
        """Anything unclassified is wrapped the same way a strategy failure is."""
        mock_extract.side_effect = RuntimeError("Connection timed out")

        resp = client.post("/api/youtube/transcript", json={"url": VIDEO_URL})

        assert resp.status_code == 503
        error = resp.json()["error"]
        assert error["code"] == "NETWORK_ERROR"
        assert error["details"]["originalError"] == "Connection timed out"

    @patch("yt_transcript_service.api.extract_transcript")
    def test_unexpected_generic_error(self, mock_extract: MagicMock, client: TestClient) -> None:
        mock_extract.side_effect = KeyError("playerResponse")

        resp = client.post("/api/youtube/transcript", json={"url": VIDEO_URL})

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "EXTRACTION_FAILED"


# ---------------------------------------------------------------------------
# Pre-flight check endpoints
# ---------------------------------------------------------------------------

class TestCheckEndpoints:
    """Tests for GET /api/youtube/check[/{video_id}]."""

    @patch("yt_transcript_service.api.check_availability")
    def test_check_by_id(self, mock_check: MagicMock, client: TestClient) -> None:
        mock_check.return_value = AvailabilityResult(
            video_id=VIDEO_ID, reachable=True, has_captions=True, title="T", duration=212,
        )

        resp = client.get(f"/api/youtube/check/{VIDEO_ID}")

        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "videoId": VIDEO_ID,
            "reachable": True,
            "hasCaptions": True,
            "error": None,
            "title": "T",
            "duration": 212,
            "statusMessage": "Video is ready for transcript extraction",
        }
        mock_check.assert_called_once_with(VIDEO_ID)

    @patch("yt_transcript_service.api.check_availability")
    def test_check_unreachable_is_still_success(self, mock_check: MagicMock, client: TestClient) -> None:
        """An unreachable video is a result, not an HTTP error."""
        mock_check.return_value = AvailabilityResult(
            video_id=VIDEO_ID, reachable=False, has_captions=False, error=ErrorKind.VIDEO_PRIVATE,
        )

        resp = client.get(f"/api/youtube/check/{VIDEO_ID}")

        assert resp.status_code == 200
        body = resp.json()
        assert body["error"] == "VIDEO_PRIVATE"
        assert body["statusMessage"] == spec_for(ErrorKind.VIDEO_PRIVATE).user_message

    @patch("yt_transcript_service.api.check_availability")
    def test_check_by_url(self, mock_check: MagicMock, client: TestClient) -> None:
        mock_check.return_value = AvailabilityResult(video_id=VIDEO_ID, reachable=True, has_captions=False)

        resp = client.get("/api/youtube/check", params={"url": VIDEO_URL})

        assert resp.status_code == 200
        assert resp.json()["statusMessage"] == "Video found but may not have captions available"
        mock_check.assert_called_once_with(VIDEO_URL)

    def test_check_without_url(self, client: TestClient) -> None:
        resp = client.get("/api/youtube/check")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_URL"

    def test_check_invalid_id(self, client: TestClient) -> None:
        resp = client.get("/api/youtube/check/not-valid")

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_URL"


# ---------------------------------------------------------------------------
# POST /api/youtube/validate
# ---------------------------------------------------------------------------

class TestValidateEndpoint:
    def test_valid(self, client: TestClient) -> None:
        resp = client.post("/api/youtube/validate", json={"url": "https://youtu.be/dQw4w9WgXcQ"})

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "url": "https://youtu.be/dQw4w9WgXcQ", "videoId": VIDEO_ID}

    def test_invalid(self, client: TestClient) -> None:
        resp = client.post("/api/youtube/validate", json={"url": "https://vimeo.com/12345"})

        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "INVALID_URL"
        assert body["error"]["canRetry"] is False
