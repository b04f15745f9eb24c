# src/livespec/config.py

"""
Runtime configuration for the live sync engine.

Values come from LIVESPEC_* environment variables (a local .env is loaded by
livespec.main). Validation lives here so the services can trust what they get,
e.g. the orchestrator never re-checks the minimum poll interval.
"""

from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

MIN_POLL_INTERVAL_MS = 5000
DEFAULT_POLL_INTERVAL_MS = 30000
DEFAULT_FETCH_TIMEOUT_MS = 10000
MAX_CONSECUTIVE_ERRORS = 5
ERROR_HISTORY_LIMIT = 50

NotificationLevel = Literal["all", "errors-only", "silent"]


class PollingConfig(BaseModel):
    """Orchestrator settings."""

    default_poll_interval_ms: int = Field(
        default=DEFAULT_POLL_INTERVAL_MS, ge=MIN_POLL_INTERVAL_MS
    )
    max_consecutive_errors: int = Field(default=MAX_CONSECUTIVE_ERRORS, ge=1)


class ErrorHandlingConfig(BaseModel):
    """Recovery and retry settings."""

    max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=5000, ge=0)
    exponential_backoff: bool = True
    graceful_degradation: bool = True
    auto_recovery: bool = True
    notification_level: NotificationLevel = "all"


class DiffOptions(BaseModel):
    """Switches for the diff engine's hash normalization."""

    ignore_descriptions: bool = False
    ignore_examples: bool = False


class Settings(BaseModel):
    polling: PollingConfig = Field(default_factory=PollingConfig)
    error_handling: ErrorHandlingConfig = Field(default_factory=ErrorHandlingConfig)
    diff: DiffOptions = Field(default_factory=DiffOptions)
    fetch_timeout_ms: int = Field(default=DEFAULT_FETCH_TIMEOUT_MS, gt=0)
    fetch_retries: int = Field(default=2, ge=0)
    notify_webhook_url: Optional[str] = None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Raises pydantic.ValidationError when a value is out of bounds
    (for example LIVESPEC_DEFAULT_POLL_INTERVAL_MS below 5000).
    """
    return Settings(
        polling=PollingConfig(
            default_poll_interval_ms=_env_int(
                "LIVESPEC_DEFAULT_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS
            ),
            max_consecutive_errors=_env_int(
                "LIVESPEC_MAX_CONSECUTIVE_ERRORS", MAX_CONSECUTIVE_ERRORS
            ),
        ),
        error_handling=ErrorHandlingConfig(
            max_retries=_env_int("LIVESPEC_MAX_RETRIES", 3),
            retry_delay_ms=_env_int("LIVESPEC_RETRY_DELAY_MS", 5000),
            exponential_backoff=_env_bool("LIVESPEC_EXPONENTIAL_BACKOFF", True),
            graceful_degradation=_env_bool("LIVESPEC_GRACEFUL_DEGRADATION", True),
            auto_recovery=_env_bool("LIVESPEC_AUTO_RECOVERY", True),
            notification_level=os.getenv("LIVESPEC_NOTIFICATION_LEVEL", "all"),
        ),
        diff=DiffOptions(
            ignore_descriptions=_env_bool("LIVESPEC_IGNORE_DESCRIPTIONS", False),
            ignore_examples=_env_bool("LIVESPEC_IGNORE_EXAMPLES", False),
        ),
        fetch_timeout_ms=_env_int("LIVESPEC_FETCH_TIMEOUT_MS", DEFAULT_FETCH_TIMEOUT_MS),
        fetch_retries=_env_int("LIVESPEC_FETCH_RETRIES", 2),
        notify_webhook_url=os.getenv("LIVESPEC_NOTIFY_WEBHOOK_URL") or None,
    )
