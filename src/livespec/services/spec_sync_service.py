# src/livespec/services/spec_sync_service.py

"""
Default sync trigger: pulls the source's current document and stores it as
the new snapshot, which the next diff compares against.
"""

import logging

from opentelemetry import trace

from livespec.metrics import sync_triggers_total
from livespec.models.collaborators import SyncResult
from livespec.repositories.spec_snapshot_repository import SpecSnapshotRepository
from livespec.services.interfaces import SourceRegistry, SpecFetcher
from livespec.services.spec_hasher import hash_spec

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class SpecSyncService:
    def __init__(
        self,
        fetcher: SpecFetcher,
        sources: SourceRegistry,
        snapshots: SpecSnapshotRepository,
    ):
        self.fetcher = fetcher
        self.sources = sources
        self.snapshots = snapshots

    async def trigger_sync(self, source_id: str) -> SyncResult:
        with tracer.start_as_current_span("service.trigger_sync") as span:
            span.set_attribute("source.id", source_id)

            source = self.sources.get_source(source_id)
            if source is None:
                sync_triggers_total.labels(result="failed").inc()
                return SyncResult(success=False, error=f"Live source {source_id} not found")

            fetched = await self.fetcher.fetch_document(source)
            if not fetched.ok:
                logger.warning(f"Sync fetch failed for {source_id}: {fetched.error}")
                sync_triggers_total.labels(result="failed").inc()
                return SyncResult(success=False, error=fetched.error)

            previous = self.snapshots.get(source_id)
            has_changes = previous is None or previous.spec_hash != hash_spec(fetched.document)
            self.snapshots.save(source_id, fetched.document)

            span.set_attribute("sync.has_changes", has_changes)
            sync_triggers_total.labels(result="success").inc()
            logger.info(f"Synced {source_id} (has_changes={has_changes})")
            return SyncResult(success=True, has_changes=has_changes)
