"""
Return and event types exchanged with the orchestrator's collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class FetchResult:
    ok: bool
    document: Optional[Dict[str, Any]] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def success(cls, document: Dict[str, Any], status_code: Optional[int] = None) -> "FetchResult":
        return cls(ok=True, document=document, status_code=status_code)

    @classmethod
    def failure(
        cls,
        error: str,
        *,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> "FetchResult":
        return cls(ok=False, error=error, status_code=status_code, error_type=error_type)


@dataclass(frozen=True)
class SyncResult:
    success: bool
    has_changes: bool = False
    error: Optional[str] = None


class NotificationKind(str, Enum):
    SYNC_SUCCESS = "sync-success"
    SYNC_ERROR = "sync-error"
    BREAKING_CHANGE = "breaking-change"


@dataclass(frozen=True)
class NotificationEvent:
    """
    Fire-and-forget event for the user.

    `terminal` marks the "polling stopped" escalation so it can be rendered
    differently from ordinary retry notifications.
    """

    kind: NotificationKind
    source_id: str
    title: str
    message: str
    actions: Tuple[str, ...] = ()
    terminal: bool = False
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source_id": self.source_id,
            "title": self.title,
            "message": self.message,
            "actions": list(self.actions),
            "terminal": self.terminal,
            "details": self.details,
            "created_at": self.created_at.isoformat(),
        }
