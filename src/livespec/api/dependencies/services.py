# src/livespec/api/dependencies/services.py

"""
Wiring for the live sync services.

One LiveSyncServices instance lives on app.state; routes pull the pieces
they need through the get_* dependencies below.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from livespec.config import Settings, load_settings
from livespec.repositories.live_source_repository import LiveSourceRepository
from livespec.repositories.spec_snapshot_repository import SpecSnapshotRepository
from livespec.services.change_notification_service import ChangeNotificationService
from livespec.services.error_recovery_service import ErrorRecoveryService
from livespec.services.polling_service import LiveSyncPollingService
from livespec.services.spec_diff_engine import SpecDiffEngine
from livespec.services.spec_fetcher import HttpSpecFetcher
from livespec.services.spec_sync_service import SpecSyncService


@dataclass
class LiveSyncServices:
    settings: Settings
    sources: LiveSourceRepository
    snapshots: SpecSnapshotRepository
    notifier: ChangeNotificationService
    recovery: ErrorRecoveryService
    polling: LiveSyncPollingService


def build_services(settings: Optional[Settings] = None) -> LiveSyncServices:
    settings = settings or load_settings()

    sources = LiveSourceRepository()
    snapshots = SpecSnapshotRepository()
    fetcher = HttpSpecFetcher(
        timeout_ms=settings.fetch_timeout_ms,
        retries=settings.fetch_retries,
    )
    notifier = ChangeNotificationService(webhook_url=settings.notify_webhook_url)
    recovery = ErrorRecoveryService(settings.error_handling, notifier=notifier)
    polling = LiveSyncPollingService(
        sources=sources,
        fetcher=fetcher,
        snapshots=snapshots,
        sync_trigger=SpecSyncService(fetcher, sources, snapshots),
        notifier=notifier,
        recovery=recovery,
        diff_engine=SpecDiffEngine(settings.diff),
        config=settings.polling,
    )

    return LiveSyncServices(
        settings=settings,
        sources=sources,
        snapshots=snapshots,
        notifier=notifier,
        recovery=recovery,
        polling=polling,
    )


def get_services(request: Request) -> LiveSyncServices:
    return request.app.state.services
