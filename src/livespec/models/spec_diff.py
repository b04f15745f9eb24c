# src/livespec/models/spec_diff.py

"""
Value types produced by the spec diff engine.

Instances are frozen: a SpecDiffResult is built once per comparison and
handed to notifiers, sync triggers and the HTTP layer as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ChangeType(str, Enum):
    ENDPOINT_ADDED = "endpoint-added"
    ENDPOINT_REMOVED = "endpoint-removed"
    ENDPOINT_MODIFIED = "endpoint-modified"
    PARAMETER_ADDED = "parameter-added"
    PARAMETER_REMOVED = "parameter-removed"
    PARAMETER_MODIFIED = "parameter-modified"
    SCHEMA_ADDED = "schema-added"
    SCHEMA_REMOVED = "schema-removed"
    SCHEMA_MODIFIED = "schema-modified"

    @property
    def action(self) -> str:
        """The trailing verb: "added", "removed" or "modified"."""
        return self.value.rsplit("-", 1)[1]


class ChangeSeverity(str, Enum):
    BREAKING = "breaking"
    NON_BREAKING = "non-breaking"


@dataclass(frozen=True)
class SpecChange:
    """
    A single classified difference between two specs.

    path:
        Where the change happened. Endpoint changes use "METHOD /path",
        parameter changes "METHOD /path/parameters/name", response changes
        "METHOD /path/responses/code" and schema changes
        "/components/schemas/Name".
    operation_id:
        Resolved identity of the endpoint involved, if any. A removed and an
        added change sharing one operation_id describe a moved endpoint.
    """

    type: ChangeType
    path: str
    severity: ChangeSeverity
    description: str
    affected_endpoints: Tuple[str, ...] = ()
    operation_id: Optional[str] = None
    old_value: Any = None
    new_value: Any = None

    @property
    def is_breaking(self) -> bool:
        return self.severity is ChangeSeverity.BREAKING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "path": self.path,
            "severity": self.severity.value,
            "description": self.description,
            "affected_endpoints": list(self.affected_endpoints),
            "operation_id": self.operation_id,
        }


@dataclass(frozen=True)
class DiffSummary:
    added: int = 0
    removed: int = 0
    modified: int = 0
    breaking: int = 0
    non_breaking: int = 0

    @classmethod
    def from_changes(cls, changes) -> "DiffSummary":
        counts = {"added": 0, "removed": 0, "modified": 0}
        breaking = 0
        for change in changes:
            counts[change.type.action] += 1
            if change.is_breaking:
                breaking += 1
        return cls(
            added=counts["added"],
            removed=counts["removed"],
            modified=counts["modified"],
            breaking=breaking,
            non_breaking=len(changes) - breaking,
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "added": self.added,
            "removed": self.removed,
            "modified": self.modified,
            "breaking": self.breaking,
            "non_breaking": self.non_breaking,
        }

    def describe(self) -> str:
        return f"{self.added} added, {self.modified} modified, {self.removed} removed"


@dataclass(frozen=True)
class SpecDiffResult:
    old_spec_hash: str
    new_spec_hash: str
    has_changes: bool
    changes: Tuple[SpecChange, ...] = ()
    summary: DiffSummary = field(default_factory=DiffSummary)
    compared_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def breaking_changes(self) -> Tuple[SpecChange, ...]:
        return tuple(c for c in self.changes if c.is_breaking)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_spec_hash": self.old_spec_hash,
            "new_spec_hash": self.new_spec_hash,
            "has_changes": self.has_changes,
            "changes": [c.to_dict() for c in self.changes],
            "summary": self.summary.to_dict(),
            "compared_at": self.compared_at.isoformat(),
        }
