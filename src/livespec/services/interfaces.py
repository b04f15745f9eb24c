# src/livespec/services/interfaces.py

"""
Narrow collaborator interfaces the polling orchestrator depends on.

The shipped implementations (HttpSpecFetcher, SpecSnapshotRepository,
SpecSyncService, ChangeNotificationService, LiveSourceRepository) satisfy
these structurally; tests pass mocks.
"""

from typing import Any, Dict, Optional, Protocol

from livespec.models.collaborators import FetchResult, NotificationEvent, SyncResult
from livespec.models.live_source import LiveSpecSource


class SpecFetcher(Protocol):
    async def fetch_document(self, source: LiveSpecSource) -> FetchResult: ...


class SnapshotStore(Protocol):
    async def get_previous_document(self, source_id: str) -> Optional[Dict[str, Any]]: ...


class SyncTrigger(Protocol):
    async def trigger_sync(self, source_id: str) -> SyncResult: ...


class Notifier(Protocol):
    async def notify(self, event: NotificationEvent) -> None: ...


class SourceRegistry(Protocol):
    def get_source(self, source_id: str) -> Optional[LiveSpecSource]: ...
