# src/livespec/models/error_context.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ErrorType(str, Enum):
    CONNECTION_FAILED = "connection_failed"
    TIMEOUT = "timeout"
    SPEC_NOT_FOUND = "spec_not_found"
    CORS_ERROR = "cors_error"
    NETWORK_ERROR = "network_error"
    AUTHENTICATION_FAILED = "authentication_failed"
    MALFORMED_SPEC = "malformed_spec"
    UNKNOWN = "unknown"


RECOVERABLE_ERROR_TYPES = frozenset(
    {
        ErrorType.CONNECTION_FAILED,
        ErrorType.TIMEOUT,
        ErrorType.SPEC_NOT_FOUND,
        ErrorType.CORS_ERROR,
        ErrorType.NETWORK_ERROR,
    }
)

# Override the type: an auth failure surfacing as a timeout is still fatal.
UNRECOVERABLE_PATTERNS = (
    "authentication failed",
    "permission denied",
    "invalid credentials",
    "malformed spec",
)


def classify_error(status_code: Optional[int], message: str) -> ErrorType:
    """
    Map a failed fetch onto the error taxonomy.

    Used when a fetch result carries no error_type of its own.
    """
    lowered = (message or "").lower()

    if status_code == 404:
        return ErrorType.SPEC_NOT_FOUND
    if status_code in (401, 403):
        return ErrorType.AUTHENTICATION_FAILED
    if "cors" in lowered or "access-control-allow-origin" in lowered:
        return ErrorType.CORS_ERROR
    if "timeout" in lowered or "timed out" in lowered:
        return ErrorType.TIMEOUT
    if "econnrefused" in lowered or "connection refused" in lowered or "connect" in lowered:
        return ErrorType.CONNECTION_FAILED
    if "malformed" in lowered or "parse" in lowered or "not a valid openapi" in lowered:
        return ErrorType.MALFORMED_SPEC
    if "404" in lowered or "not found" in lowered:
        return ErrorType.SPEC_NOT_FOUND
    if status_code is not None and status_code >= 500:
        return ErrorType.NETWORK_ERROR
    if "network" in lowered or "fetch failed" in lowered:
        return ErrorType.NETWORK_ERROR
    return ErrorType.UNKNOWN


def is_recoverable_error(error_type: str, error_message: str) -> bool:
    if error_type not in {t.value for t in RECOVERABLE_ERROR_TYPES}:
        return False
    lowered = (error_message or "").lower()
    return not any(pattern in lowered for pattern in UNRECOVERABLE_PATTERNS)


@dataclass(frozen=True)
class ErrorContext:
    """
    One handled error for one source.

    retry_count is the number of earlier entries in the source's history with
    the same error_type, so the first occurrence has 0.
    """

    source_id: str
    error_type: str
    error_message: str
    retry_count: int
    is_recoverable: bool
    suggested_actions: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "timestamp": self.timestamp.isoformat(),
            "retry_count": self.retry_count,
            "is_recoverable": self.is_recoverable,
            "suggested_actions": list(self.suggested_actions),
        }
