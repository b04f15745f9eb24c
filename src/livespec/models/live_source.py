"""
LiveSpecSource: a development server (or local file) whose OpenAPI document is
kept in sync with a stored collection.
"""

from typing import Dict, Optional
from urllib.parse import urlparse
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from livespec.config import DEFAULT_FETCH_TIMEOUT_MS, MIN_POLL_INTERVAL_MS


def generate_source_id() -> str:
    return f"live-spec-{uuid4()}"


class LiveSpecSource(BaseModel):
    """
    A monitored spec source.

    Exactly one of `url` or `file_path` is set. `poll_interval_ms` is
    validated against the minimum here, so the orchestrator never has to.
    """

    id: str = Field(default_factory=generate_source_id)
    name: str
    url: Optional[str] = None
    file_path: Optional[str] = None
    framework: Optional[str] = None
    poll_interval_ms: Optional[int] = Field(default=None, ge=MIN_POLL_INTERVAL_MS)
    timeout_ms: int = Field(default=DEFAULT_FETCH_TIMEOUT_MS, gt=0)
    headers: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_location(self):
        if bool(self.url) == bool(self.file_path):
            raise ValueError("exactly one of url or file_path must be set")
        if self.url:
            parsed = urlparse(self.url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"unsupported source url: {self.url}")
        return self

    @property
    def source_type(self) -> str:
        return "url" if self.url else "file"

    @property
    def display_path(self) -> str:
        return self.url or self.file_path or "Unknown source"
