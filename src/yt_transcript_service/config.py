"""
config.py: Runtime settings for yt-transcript-service.

Settings are read from environment variables (or a local .env file) by
pydantic-settings, so `YOUTUBE_API_KEY=... yt-transcript get <url>` just works.
Everything has a usable default except the Data API key; without it the
official_api strategy refuses to run and the cascade skips past it.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Strategy names in the order the cascade tries them: cheapest and fastest
# first, quota-bound official API last.
DEFAULT_STRATEGY_ORDER = ["scraper", "embedded_client", "manifest", "official_api"]


class Settings(BaseSettings):
    """
    Settings loaded from the environment.

    Attributes are grouped by concern.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── YouTube Data API ──────────────────────────────────────────────────
    youtube_api_key: str = Field(default="", description="YouTube Data API v3 key")

    # ── Extraction ────────────────────────────────────────────────────────
    preferred_language: str = Field(default="en")
    strategy_order: list[str] = Field(default_factory=lambda: list(DEFAULT_STRATEGY_ORDER))
    # Stop the cascade as soon as one strategy reports a condition no other
    # backend can get around (private, deleted, age-gated...).
    short_circuit_permanent_errors: bool = Field(default=False)
    max_video_duration_secs: int = Field(default=3 * 60 * 60, ge=60)

    # ── HTTP ──────────────────────────────────────────────────────────────
    http_timeout_secs: float = Field(default=15.0, gt=0, le=120)
    timedtext_max_attempts: int = Field(default=3, ge=1, le=10)
    # Linear backoff: the wait after failed attempt N is N * this value.
    timedtext_backoff_secs: float = Field(default=1.5, ge=0)

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("strategy_order")
    @classmethod
    def validate_strategy_order(cls, v: list[str]) -> list[str]:
        unknown = [name for name in v if name not in DEFAULT_STRATEGY_ORDER]
        if unknown:
            raise ValueError(
                f"Unknown strategies {unknown}. Must be drawn from: {DEFAULT_STRATEGY_ORDER}"
            )
        if not v:
            raise ValueError("strategy_order must name at least one strategy")
        return v


settings = Settings()


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """
    Send log records to one stream in a single line format.

    Args:
        level:  Logging level name; defaults to settings.log_level.
        stream: Defaults to stdout (the CLI passes stderr so logs never mix
                with transcript output).
    """
    level_name = (level or settings.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        force=True,
    )

    # Per-request chatter from the HTTP stack drowns out the strategy logs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
