"""
test_cli.py: Tests for the Click CLI commands.

Uses Click's CliRunner to invoke commands in-process with extraction and
availability mocked.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from yt_transcript_service.availability import AvailabilityResult
from yt_transcript_service.cli import main
from yt_transcript_service.errors import ErrorKind, error_for, spec_for
from yt_transcript_service.strategies import TranscriptResult

VIDEO_ID = "dQw4w9WgXcQ"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _no_logging_setup():
    """Keep the CLI from pointing the root logger at CliRunner's streams."""
    with patch("yt_transcript_service.cli.configure_logging") as mock_configure:
        yield mock_configure


def _result() -> TranscriptResult:
    return TranscriptResult(text="Never gonna give you up", title="Never Gonna Give You Up", duration=212,
                            video_id=VIDEO_ID)


# ---------------------------------------------------------------------------
# get
# ---------------------------------------------------------------------------

class TestGetCommand:
    """Tests for `yt-transcript get`."""

    @patch("yt_transcript_service.cli.extract_transcript")
    def test_text_output(self, mock_extract: MagicMock, runner: CliRunner) -> None:
        mock_extract.return_value = _result()

        result = runner.invoke(main, ["get", VIDEO_ID])

        assert result.exit_code == 0
        assert "Never gonna give you up" in result.output
        mock_extract.assert_called_once_with(VIDEO_ID, strategies=None)

    @patch("yt_transcript_service.cli.extract_transcript")
    def test_json_output(self, mock_extract: MagicMock, runner: CliRunner) -> None:
        mock_extract.return_value = _result()

        result = runner.invoke(main, ["get", VIDEO_ID, "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data == {
            "text": "Never gonna give you up",
            "title": "Never Gonna Give You Up",
            "duration": 212,
            "videoId": VIDEO_ID,
        }

    @patch("yt_transcript_service.cli.extract_transcript")
    def test_explicit_strategies(self, mock_extract: MagicMock, runner: CliRunner) -> None:
        mock_extract.return_value = _result()

        result = runner.invoke(main, ["get", VIDEO_ID, "-s", "manifest", "-s", "official_api"])

        assert result.exit_code == 0
        mock_extract.assert_called_once_with(VIDEO_ID, strategies=["manifest", "official_api"])

    def test_unknown_strategy_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["get", VIDEO_ID, "-s", "carrier_pigeon"])
        assert result.exit_code == 2

    @patch("yt_transcript_service.cli.extract_transcript")
    def test_output_file(self, mock_extract: MagicMock, runner: CliRunner, tmp_path: Path) -> None:
        mock_extract.return_value = _result()
        out = tmp_path / "transcript.txt"

        result = runner.invoke(main, ["get", VIDEO_ID, "-o", str(out)])

        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8") == "Never gonna give you up\n"

    @patch("yt_transcript_service.cli.extract_transcript")
    def test_error_exits_nonzero(self, mock_extract: MagicMock, runner: CliRunner) -> None:
        """Errors print the user message and the audio-transcription tip."""
        mock_extract.side_effect = error_for(ErrorKind.NO_CAPTIONS_AVAILABLE, "No caption tracks")

        result = runner.invoke(main, ["get", VIDEO_ID])

        assert result.exit_code == 1
        assert spec_for(ErrorKind.NO_CAPTIONS_AVAILABLE).user_message in result.output
        assert "No caption tracks" in result.output
        assert "audio transcription" in result.output

    def test_verbose_flag_sets_debug(self, runner: CliRunner, _no_logging_setup: MagicMock) -> None:
        with patch("yt_transcript_service.cli.extract_transcript", return_value=_result()):
            runner.invoke(main, ["-v", "get", VIDEO_ID])

        assert _no_logging_setup.call_args[0][0] == "DEBUG"


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

class TestCheckCommand:
    """Tests for `yt-transcript check`."""

    @patch("yt_transcript_service.cli.check_availability")
    def test_ready(self, mock_check: MagicMock, runner: CliRunner) -> None:
        mock_check.return_value = AvailabilityResult(
            video_id=VIDEO_ID, reachable=True, has_captions=True, title="Never Gonna Give You Up", duration=212,
        )

        result = runner.invoke(main, ["check", VIDEO_ID])

        assert result.exit_code == 0
        assert "Never Gonna Give You Up" in result.output
        assert "3:32" in result.output
        assert "Video is ready for transcript extraction" in result.output

    @patch("yt_transcript_service.cli.check_availability")
    def test_unreachable_exits_nonzero(self, mock_check: MagicMock, runner: CliRunner) -> None:
        mock_check.return_value = AvailabilityResult(
            video_id=VIDEO_ID, reachable=False, has_captions=False, error=ErrorKind.VIDEO_PRIVATE,
        )

        result = runner.invoke(main, ["check", VIDEO_ID])

        assert result.exit_code == 1
        assert "Reachable: no" in result.output
        assert spec_for(ErrorKind.VIDEO_PRIVATE).user_message in result.output


# ---------------------------------------------------------------------------
# video-id
# ---------------------------------------------------------------------------

class TestVideoIdCommand:
    def test_prints_id(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["video-id", "https://www.youtube.com/shorts/dQw4w9WgXcQ"])

        assert result.exit_code == 0
        assert result.output.strip() == VIDEO_ID

    def test_invalid(self, runner: CliRunner) -> None:
        result = runner.invoke(main, ["video-id", "https://example.com"])

        assert result.exit_code == 1
        assert "Invalid YouTube URL" in result.output
