# src/livespec/services/polling_service.py

"""
Polling service for live OpenAPI sources.

One repeating schedule per monitored source. Each tick fetches the current
document, compares its hash with the last known one, runs the diff engine
when it changed, triggers the downstream sync and notifies. Fetch and sync
failures are routed to ErrorRecoveryService; five consecutive failures stop
polling for the source.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from opentelemetry import trace

from livespec.config import PollingConfig
from livespec.metrics import active_polls, polls_total, spec_changes_detected_total
from livespec.models.collaborators import FetchResult, NotificationEvent, NotificationKind
from livespec.models.error_context import ErrorType, classify_error
from livespec.models.live_source import LiveSpecSource
from livespec.models.polling_state import PollHandle, PollingState
from livespec.models.spec_diff import SpecDiffResult
from livespec.services.error_recovery_service import ErrorRecoveryService
from livespec.services.interfaces import (
    Notifier,
    SnapshotStore,
    SourceRegistry,
    SpecFetcher,
    SyncTrigger,
)
from livespec.services.spec_diff_engine import SpecDiffEngine

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PollingError(Exception):
    pass


class AlreadyPollingError(PollingError):
    def __init__(self, source_id: str):
        super().__init__(f"Already polling source {source_id}")
        self.source_id = source_id


class SourceNotFoundError(PollingError):
    def __init__(self, source_id: str):
        super().__init__(f"Live source {source_id} not found")
        self.source_id = source_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


class LiveSyncPollingService:
    """Owns every PollingState; nothing else mutates them."""

    def __init__(
        self,
        *,
        sources: SourceRegistry,
        fetcher: SpecFetcher,
        snapshots: SnapshotStore,
        sync_trigger: SyncTrigger,
        notifier: Notifier,
        recovery: Optional[ErrorRecoveryService] = None,
        diff_engine: Optional[SpecDiffEngine] = None,
        config: Optional[PollingConfig] = None,
    ):
        self.sources = sources
        self.fetcher = fetcher
        self.snapshots = snapshots
        self.sync_trigger = sync_trigger
        self.notifier = notifier
        self.config = config or PollingConfig()
        self.diff_engine = diff_engine or SpecDiffEngine()
        self.recovery = recovery or ErrorRecoveryService(notifier=notifier)

        self.recovery.retry_callback = self.poll_source
        self.recovery.on_degrade = self._degrade

        self._states: Dict[str, PollingState] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start_polling(
        self,
        source_id: str,
        poll_interval_ms: Optional[int] = None,
    ) -> PollingState:
        """
        Start polling a registered source.

        The baseline fetch is best-effort: a failure leaves last_spec_hash
        unset, so the first successful tick counts as a change.

        Raises:
            AlreadyPollingError: a state (active or paused) already exists
            SourceNotFoundError: the source isn't registered
        """
        with tracer.start_as_current_span("service.start_polling") as span:
            span.set_attribute("source.id", source_id)

            if source_id in self._states:
                raise AlreadyPollingError(source_id)

            source = self.sources.get_source(source_id)
            if source is None:
                raise SourceNotFoundError(source_id)

            interval = (
                poll_interval_ms
                or source.poll_interval_ms
                or self.config.default_poll_interval_ms
            )
            state = PollingState(source_id=source_id, poll_interval_ms=interval)
            # Registered before the first await so a concurrent start fails fast
            self._states[source_id] = state
            self.recovery.clear_degraded(source_id)

            try:
                baseline = await self.fetcher.fetch_document(source)
            except Exception as e:
                logger.warning(f"Baseline fetch for {source_id} raised: {e}")
                baseline = FetchResult.failure(str(e))

            if self._states.get(source_id) is not state:
                logger.info(f"Polling for {source_id} was stopped during start")
                return state

            if baseline.ok:
                state.last_spec_hash = self.diff_engine.spec_hash(baseline.document)
            else:
                logger.warning(f"Baseline fetch for {source_id} failed: {baseline.error}")

            self._schedule(state)
            span.set_attribute("poll.interval_ms", interval)
            logger.info(f"Started polling {source.display_path} every {interval}ms")
            return state

    def stop_polling(self, source_id: str, preserve_state: bool = False) -> bool:
        """
        Cancel the schedule for a source.

        With preserve_state the state is kept (paused) for resume_polling.
        A tick already in flight finishes; its result is discarded if the
        state is gone.
        """
        state = self._states.get(source_id)
        if state is None:
            return False

        if state.handle is not None:
            state.handle.cancel()
            state.handle = None
        state.is_polling = False
        self.recovery.cancel_retry(source_id)

        if not preserve_state:
            del self._states[source_id]

        self._refresh_active_gauge()
        logger.info(f"Stopped polling {source_id} (preserve_state={preserve_state})")
        return True

    def resume_polling(self, source_id: str) -> PollingState:
        """Restart a paused state; the stored hash is kept as the baseline."""
        state = self._states.get(source_id)
        if state is None:
            raise SourceNotFoundError(source_id)
        if state.is_polling:
            raise AlreadyPollingError(source_id)

        state.consecutive_error_count = 0
        self.recovery.clear_degraded(source_id)
        self._schedule(state)
        logger.info(f"Resumed polling {source_id}")
        return state

    def update_poll_interval(self, source_id: str, poll_interval_ms: int) -> PollingState:
        state = self._states.get(source_id)
        if state is None:
            raise SourceNotFoundError(source_id)

        state.poll_interval_ms = poll_interval_ms
        if state.is_polling:
            state.handle.cancel()
            self._schedule(state)
        logger.info(f"Poll interval for {source_id} set to {poll_interval_ms}ms")
        return state

    def stop_all_polling(self) -> None:
        for source_id in list(self._states):
            self.stop_polling(source_id)

    def get_polling_status(self, source_id: str) -> Optional[PollingState]:
        return self._states.get(source_id)

    def get_active_polls(self) -> List[str]:
        return [sid for sid, state in self._states.items() if state.is_polling]

    def shutdown(self) -> None:
        self.stop_all_polling()
        self.recovery.shutdown()

    def _schedule(self, state: PollingState) -> None:
        source_id = state.source_id
        state.is_polling = True
        state.handle = PollHandle(
            source_id,
            state.poll_interval_ms,
            lambda: self.poll_source(source_id),
        )
        self._refresh_active_gauge()

    def _degrade(self, source_id: str) -> None:
        # Manual sync stays available through poll_source
        self.stop_polling(source_id, preserve_state=True)

    def _refresh_active_gauge(self) -> None:
        active_polls.set(len(self.get_active_polls()))

    def _is_current(self, state: PollingState) -> bool:
        return self._states.get(state.source_id) is state

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def poll_source(self, source_id: str) -> Dict[str, Any]:
        """
        Run one polling tick for a source.

        Used by the schedule, by recovery retries, and by manual "poll now".
        Works on paused states too, which is how manual sync is offered.

        Returns a dict with a status:
        {
            "status": "no_change" | "synced" | "unchanged_diff" | "error"
                      | "skipped" | "discarded",
            ...
        }
        """
        with tracer.start_as_current_span("service.poll_source") as span:
            span.set_attribute("source.id", source_id)

            state = self._states.get(source_id)
            if state is None:
                polls_total.labels(outcome="skipped").inc()
                return {"status": "skipped", "reason": "not polling"}

            if state.in_flight:
                polls_total.labels(outcome="skipped").inc()
                return {"status": "skipped", "reason": "tick in flight"}

            source = self.sources.get_source(source_id)
            if source is None:
                logger.warning(f"Source {source_id} disappeared; stopping its polling")
                self.stop_polling(source_id)
                polls_total.labels(outcome="discarded").inc()
                return {"status": "discarded", "reason": "source removed"}

            state.in_flight = True
            try:
                result = await self._tick(source, state)
            finally:
                state.in_flight = False

            span.set_attribute("poll.status", result["status"])
            polls_total.labels(outcome=result["status"]).inc()
            return result

    async def _tick(self, source: LiveSpecSource, state: PollingState) -> Dict[str, Any]:
        try:
            fetched = await self.fetcher.fetch_document(source)
        except Exception as e:
            logger.exception(f"Fetch raised for {source.id}")
            fetched = FetchResult.failure(str(e))

        if not self._is_current(state):
            return {"status": "discarded", "reason": "polling stopped"}

        if not fetched.ok:
            error_type = fetched.error_type or classify_error(
                fetched.status_code, fetched.error or ""
            ).value
            return await self._handle_poll_error(
                source, state, fetched.error or "Unknown fetch error", error_type
            )

        new_hash = self.diff_engine.spec_hash(fetched.document)
        state.last_poll_time = _now()

        if new_hash == state.last_spec_hash:
            state.consecutive_error_count = 0
            logger.info(f"No changes detected for {source.display_path}")
            return {"status": "no_change", "spec_hash": new_hash}

        logger.info(f"Spec hash changed for {source.display_path}")

        try:
            previous = await self.snapshots.get_previous_document(source.id)
        except Exception as e:
            logger.warning(f"Could not load previous snapshot for {source.id}: {e}")
            previous = None

        if not self._is_current(state):
            return {"status": "discarded", "reason": "polling stopped"}

        diff: Optional[SpecDiffResult] = None
        if previous is not None:
            diff = await self.diff_engine.compare_specs(previous, fetched.document)
            if not diff.has_changes:
                state.last_spec_hash = new_hash
                state.consecutive_error_count = 0
                logger.info(f"Hash changed but no contract changes for {source.id}")
                return {"status": "unchanged_diff", "spec_hash": new_hash}

            for change in diff.changes:
                spec_changes_detected_total.labels(severity=change.severity.value).inc()

        return await self._sync(source, state, new_hash, diff)

    async def _sync(
        self,
        source: LiveSpecSource,
        state: PollingState,
        new_hash: str,
        diff: Optional[SpecDiffResult],
    ) -> Dict[str, Any]:
        try:
            sync = await self.sync_trigger.trigger_sync(source.id)
            sync_error = None if sync.success else (sync.error or "Sync failed")
        except Exception as e:
            logger.exception(f"Sync trigger raised for {source.id}")
            sync_error = str(e)

        if not self._is_current(state):
            return {"status": "discarded", "reason": "polling stopped"}

        if sync_error is not None:
            # Hash stays stale so the next tick detects the change again
            error_type = classify_error(None, sync_error)
            if error_type is ErrorType.UNKNOWN:
                error_type = ErrorType.NETWORK_ERROR
            return await self._handle_poll_error(source, state, sync_error, error_type.value)

        state.last_spec_hash = new_hash
        state.consecutive_error_count = 0
        self.recovery.clear_degraded(source.id)

        await self._notify_synced(source, diff)

        result: Dict[str, Any] = {"status": "synced", "spec_hash": new_hash}
        if diff is not None:
            result["summary"] = diff.summary.to_dict()
            result["breaking"] = diff.summary.breaking > 0
        return result

    async def _handle_poll_error(
        self,
        source: LiveSpecSource,
        state: PollingState,
        message: str,
        error_type: str,
    ) -> Dict[str, Any]:
        state.consecutive_error_count += 1
        count = state.consecutive_error_count
        logger.warning(
            f"Poll failed for {source.id} ({error_type}), "
            f"{count} consecutive failure(s): {message}"
        )

        result: Dict[str, Any] = {
            "status": "error",
            "error": message,
            "error_type": error_type,
            "consecutive_errors": count,
        }

        if count >= self.config.max_consecutive_errors:
            await self.recovery.handle_error(source, message, error_type, notify=False)
            self.stop_polling(source.id)
            logger.warning(
                f"Polling stopped for {source.id} after {count} consecutive failures"
            )
            await self._send(
                NotificationEvent(
                    kind=NotificationKind.SYNC_ERROR,
                    source_id=source.id,
                    title="Polling Stopped",
                    message=(
                        f"Stopped polling {source.name} after {count} consecutive "
                        f"errors. Last error: {message}"
                    ),
                    actions=("Check Source Configuration", "Restart Polling"),
                    terminal=True,
                    details={"error_type": error_type, "consecutive_errors": count},
                )
            )
            result["polling_stopped"] = True
            return result

        outcome = await self.recovery.handle_error(source, message, error_type)
        result.update(
            recovered=outcome.recovered,
            retry_scheduled=outcome.retry_scheduled,
            degraded=outcome.degraded,
        )
        return result

    async def _notify_synced(self, source: LiveSpecSource, diff: Optional[SpecDiffResult]) -> None:
        if diff is not None and diff.summary.breaking > 0:
            breaking = diff.breaking_changes
            await self._send(
                NotificationEvent(
                    kind=NotificationKind.BREAKING_CHANGE,
                    source_id=source.id,
                    title=f"Breaking Changes: {source.name}",
                    message=(
                        f"{len(breaking)} breaking change(s) detected "
                        f"({diff.summary.describe()})"
                    ),
                    actions=("View Changes",),
                    details={
                        "summary": diff.summary.to_dict(),
                        "breaking_changes": [c.description for c in breaking[:10]],
                    },
                )
            )
            return

        message = f"{source.name} is up to date"
        details: Dict[str, Any] = {}
        if diff is not None:
            message = f"{source.name} updated ({diff.summary.describe()})"
            details["summary"] = diff.summary.to_dict()

        await self._send(
            NotificationEvent(
                kind=NotificationKind.SYNC_SUCCESS,
                source_id=source.id,
                title="Sync Complete",
                message=message,
                details=details,
            )
        )

    async def _send(self, event: NotificationEvent) -> None:
        if not self.recovery.should_notify(event.kind):
            return
        try:
            await self.notifier.notify(event)
        except Exception as e:
            logger.error(f"Failed to send notification for {event.source_id}: {e}", exc_info=True)
