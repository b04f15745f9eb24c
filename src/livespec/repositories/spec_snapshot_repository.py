# src/livespec/repositories/spec_snapshot_repository.py

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from opentelemetry import trace, metrics

from livespec.services.spec_hasher import hash_spec

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)

snapshot_save_counter = meter.create_counter(
    "livespec_spec_snapshot_save_total",
    description="Count of synced spec snapshots stored",
)


@dataclass(frozen=True)
class SpecSnapshot:
    source_id: str
    document: Dict[str, Any]
    spec_hash: str
    synced_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SpecSnapshotRepository:
    """
    Keeps the last successfully synced document per source.

    Only the latest snapshot is kept; the next comparison needs nothing older.
    Documents are deep-copied on the way in and out.
    """

    def __init__(self):
        self._snapshots: Dict[str, SpecSnapshot] = {}

    def save(self, source_id: str, document: Dict[str, Any]) -> SpecSnapshot:
        with tracer.start_as_current_span("repo.spec_snapshot.save") as span:
            span.set_attribute("source.id", source_id)
            snapshot = SpecSnapshot(
                source_id=source_id,
                document=copy.deepcopy(document),
                spec_hash=hash_spec(document),
            )
            self._snapshots[source_id] = snapshot
            snapshot_save_counter.add(1)
            logger.debug("Stored snapshot for %s (hash=%s)", source_id, snapshot.spec_hash)
            return snapshot

    def get(self, source_id: str) -> Optional[SpecSnapshot]:
        return self._snapshots.get(source_id)

    async def get_previous_document(self, source_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._snapshots.get(source_id)
        if snapshot is None:
            return None
        return copy.deepcopy(snapshot.document)

    def delete(self, source_id: str) -> None:
        self._snapshots.pop(source_id, None)
