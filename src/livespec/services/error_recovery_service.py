# src/livespec/services/error_recovery_service.py

"""
Error recovery for live sources.

Every failed poll is turned into an ErrorContext, recorded in a bounded
per-source history (newest first) and routed through the recovery strategies.
When nothing recovers, the service either schedules a retry with backoff or,
once the retry budget for that error type is spent, degrades the source to
manual sync.

The service owns its state: strategy list, history, retry timers, URL
suggestions and guidance. One instance per orchestrator.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from opentelemetry import trace

from livespec.config import ERROR_HISTORY_LIMIT, ErrorHandlingConfig
from livespec.metrics import errors_handled_total, recovery_attempts_total
from livespec.models.collaborators import NotificationEvent, NotificationKind
from livespec.models.error_context import ErrorContext, ErrorType, is_recoverable_error
from livespec.models.live_source import LiveSpecSource
from livespec.services.framework_profiles import get_framework_error_message
from livespec.services.interfaces import Notifier
from livespec.services.recovery_strategies import (
    EndpointProber,
    RecoveryStrategy,
    build_default_strategies,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

GENERIC_FRAMEWORK_MESSAGE = "An error occurred during sync."
MAX_ACTION_LABEL = 30

_SUGGESTED_ACTIONS = {
    ErrorType.CONNECTION_FAILED.value: (
        "Check if your development server is running",
        "Verify the URL is correct",
        "Try common ports for your framework",
    ),
    ErrorType.CORS_ERROR.value: (
        "Configure CORS in your development server",
        "Add this origin to allowed origins",
    ),
    ErrorType.SPEC_NOT_FOUND.value: (
        "Check if OpenAPI documentation is enabled",
        "Try alternative endpoints (/api-docs, /swagger.json)",
    ),
    ErrorType.TIMEOUT.value: (
        "Check server performance",
        "Increase timeout settings",
    ),
}
_DEFAULT_ACTIONS = (
    "Check server logs for more details",
    "Verify server configuration",
)

RetryCallback = Callable[[str], Awaitable[Any]]
DegradeCallback = Callable[[str], Any]


@dataclass(frozen=True)
class RecoveryOutcome:
    """What handle_error did with one error."""

    context: ErrorContext
    recovered: bool = False
    strategy_id: Optional[str] = None
    retry_scheduled: bool = False
    retry_delay_ms: Optional[int] = None
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.context.to_dict(),
            "recovered": self.recovered,
            "strategy_id": self.strategy_id,
            "retry_scheduled": self.retry_scheduled,
            "retry_delay_ms": self.retry_delay_ms,
            "degraded": self.degraded,
        }


def suggested_actions_for(source: LiveSpecSource, error_type: str) -> List[str]:
    actions = list(_SUGGESTED_ACTIONS.get(error_type, _DEFAULT_ACTIONS))
    if source.framework:
        framework_message = get_framework_error_message(source.framework, error_type)
        if framework_message != GENERIC_FRAMEWORK_MESSAGE:
            actions.append(framework_message)
    return actions


def _action_label(action: str) -> str:
    if len(action) > MAX_ACTION_LABEL:
        return action[: MAX_ACTION_LABEL - 3] + "..."
    return action


class ErrorRecoveryService:
    def __init__(
        self,
        config: Optional[ErrorHandlingConfig] = None,
        *,
        notifier: Optional[Notifier] = None,
        prober: Optional[EndpointProber] = None,
        strategies: Optional[List[RecoveryStrategy]] = None,
        retry_callback: Optional[RetryCallback] = None,
        on_degrade: Optional[DegradeCallback] = None,
    ):
        self.config = config or ErrorHandlingConfig()
        self.notifier = notifier
        self.retry_callback = retry_callback
        self.on_degrade = on_degrade

        self._history: Dict[str, List[ErrorContext]] = {}
        self._retry_timers: Dict[str, asyncio.TimerHandle] = {}
        self._retry_tasks: Set[asyncio.Task] = set()
        self._url_suggestions: Dict[str, str] = {}
        self._guidance: Dict[str, List[str]] = {}
        self._degraded: Set[str] = set()

        if strategies is None:
            strategies = build_default_strategies(
                prober or EndpointProber(),
                on_url_suggestion=self._record_url_suggestion,
                on_guidance=self._record_guidance,
            )
        self._strategies = sorted(strategies, key=lambda s: s.priority)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle_error(
        self,
        source: LiveSpecSource,
        error: Any,
        error_type: str = ErrorType.UNKNOWN.value,
        *,
        notify: bool = True,
    ) -> RecoveryOutcome:
        """
        Record an error, try to recover, then retry or degrade.

        Args:
            source: The failing source
            error: Exception or message
            error_type: ErrorType value
            notify: False when the caller emits its own notification

        Returns:
            RecoveryOutcome. At most one notification is sent per call.
        """
        error_type = getattr(error_type, "value", error_type)
        message = str(error)

        with tracer.start_as_current_span("recovery.handle_error") as span:
            span.set_attribute("source.id", source.id)
            span.set_attribute("error.type", error_type)

            context = ErrorContext(
                source_id=source.id,
                error_type=error_type,
                error_message=message,
                retry_count=self._retry_count(source.id, error_type),
                is_recoverable=is_recoverable_error(error_type, message),
                suggested_actions=tuple(suggested_actions_for(source, error_type)),
            )
            self._add_to_history(context)
            errors_handled_total.labels(error_type=error_type).inc()

            span.set_attribute("error.retry_count", context.retry_count)
            span.set_attribute("error.recoverable", context.is_recoverable)

            logger.warning(
                f"Handling {error_type} for {source.id} "
                f"(retry_count={context.retry_count}, recoverable={context.is_recoverable}): {message}"
            )

            if self.config.auto_recovery and context.is_recoverable:
                strategy_id = await self._run_strategies(source, context)
                if strategy_id is not None:
                    self._degraded.discard(source.id)
                    if notify:
                        await self._notify_recovery(source, recovered=True)
                    return RecoveryOutcome(context=context, recovered=True, strategy_id=strategy_id)

            retry_delay_ms = None
            degraded = False
            if context.is_recoverable and context.retry_count < self.config.max_retries:
                retry_delay_ms = self._schedule_retry(source.id, context)
            elif self.config.graceful_degradation:
                degraded = True

            if notify:
                await self._notify_error(source, context, degraded=degraded)

            if degraded:
                await self._enable_graceful_degradation(source)

            return RecoveryOutcome(
                context=context,
                retry_scheduled=retry_delay_ms is not None,
                retry_delay_ms=retry_delay_ms,
                degraded=degraded,
            )

    async def attempt_recovery(self, source: LiveSpecSource, context: ErrorContext) -> bool:
        return await self._run_strategies(source, context) is not None

    async def trigger_manual_recovery(self, source: LiveSpecSource, context: ErrorContext) -> bool:
        """User-initiated "Retry Now": run the strategies regardless of auto_recovery."""
        recovered = await self.attempt_recovery(source, context)
        if recovered:
            self.clear_error_history(source.id, context.error_type)
            self._degraded.discard(source.id)
        await self._notify_recovery(source, recovered=recovered)
        return recovered

    def get_error_history(self, source_id: str) -> List[ErrorContext]:
        return list(self._history.get(source_id, []))

    def clear_error_history(self, source_id: str, error_type: Optional[str] = None) -> None:
        if error_type is None:
            self._history.pop(source_id, None)
            return
        error_type = getattr(error_type, "value", error_type)
        self._history[source_id] = [
            e for e in self._history.get(source_id, []) if e.error_type != error_type
        ]

    def update_config(self, **changes: Any) -> ErrorHandlingConfig:
        """Merge changes into the config; raises pydantic.ValidationError on bad values."""
        self.config = ErrorHandlingConfig(**{**self.config.model_dump(), **changes})
        return self.config

    def get_config(self) -> ErrorHandlingConfig:
        return self.config.model_copy()

    def get_url_suggestion(self, source_id: str) -> Optional[str]:
        return self._url_suggestions.get(source_id)

    def get_guidance(self, source_id: str) -> List[str]:
        return list(self._guidance.get(source_id, []))

    def is_degraded(self, source_id: str) -> bool:
        return source_id in self._degraded

    def clear_degraded(self, source_id: str) -> None:
        self._degraded.discard(source_id)

    def has_pending_retry(self, source_id: str) -> bool:
        return source_id in self._retry_timers

    def cancel_retry(self, source_id: str) -> None:
        timer = self._retry_timers.pop(source_id, None)
        if timer is not None:
            timer.cancel()

    def forget_source(self, source_id: str) -> None:
        self.cancel_retry(source_id)
        self._history.pop(source_id, None)
        self._url_suggestions.pop(source_id, None)
        self._guidance.pop(source_id, None)
        self._degraded.discard(source_id)

    def shutdown(self) -> None:
        for source_id in list(self._retry_timers):
            self.cancel_retry(source_id)
        for task in list(self._retry_tasks):
            task.cancel()
        self._retry_tasks.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _retry_count(self, source_id: str, error_type: str) -> int:
        return sum(1 for e in self._history.get(source_id, []) if e.error_type == error_type)

    def _add_to_history(self, context: ErrorContext) -> None:
        history = self._history.setdefault(context.source_id, [])
        history.insert(0, context)
        del history[ERROR_HISTORY_LIMIT:]

    async def _run_strategies(self, source: LiveSpecSource, context: ErrorContext) -> Optional[str]:
        applicable = [s for s in self._strategies if s.can_recover(context)]

        for strategy in applicable:
            with tracer.start_as_current_span("recovery.strategy") as span:
                span.set_attribute("strategy.id", strategy.id)
                try:
                    recovered = await strategy.recover(source, context)
                except Exception as e:
                    logger.warning(f"Recovery strategy {strategy.name} failed: {e}")
                    recovery_attempts_total.labels(strategy=strategy.id, outcome="error").inc()
                    continue

                span.set_attribute("strategy.recovered", bool(recovered))
                recovery_attempts_total.labels(
                    strategy=strategy.id,
                    outcome="recovered" if recovered else "failed",
                ).inc()

                if recovered:
                    logger.info(f"Recovery successful for {source.id} using strategy: {strategy.name}")
                    return strategy.id

        return None

    def _retry_delay_ms(self, retry_count: int) -> int:
        if self.config.exponential_backoff:
            return self.config.retry_delay_ms * (2 ** retry_count)
        return self.config.retry_delay_ms

    def _schedule_retry(self, source_id: str, context: ErrorContext) -> int:
        self.cancel_retry(source_id)
        delay_ms = self._retry_delay_ms(context.retry_count)

        loop = asyncio.get_running_loop()
        self._retry_timers[source_id] = loop.call_later(
            delay_ms / 1000, self._fire_retry, source_id, context.retry_count + 1
        )
        logger.info(f"Scheduled retry for {source_id} in {delay_ms}ms")
        return delay_ms

    def _fire_retry(self, source_id: str, attempt: int) -> None:
        self._retry_timers.pop(source_id, None)
        task = asyncio.ensure_future(self._run_retry(source_id, attempt))
        self._retry_tasks.add(task)
        task.add_done_callback(self._retry_tasks.discard)

    async def _run_retry(self, source_id: str, attempt: int) -> None:
        logger.info(f"Retrying sync for source {source_id} (attempt {attempt})")
        if self.retry_callback is None:
            return
        try:
            await self.retry_callback(source_id)
        except Exception:
            logger.exception(f"Retry for {source_id} failed")

    async def _enable_graceful_degradation(self, source: LiveSpecSource) -> None:
        logger.warning(f"Switching {source.id} to manual sync mode")
        self._degraded.add(source.id)
        if self.on_degrade is None:
            return
        result = self.on_degrade(source.id)
        if inspect.isawaitable(result):
            await result

    def _record_url_suggestion(self, source_id: str, url: str, reason: str) -> None:
        self._url_suggestions[source_id] = url

    def _record_guidance(self, source_id: str, message: str) -> None:
        guidance = self._guidance.setdefault(source_id, [])
        if message not in guidance:
            guidance.append(message)

    def should_notify(self, kind: NotificationKind) -> bool:
        level = self.config.notification_level
        if level == "silent":
            return False
        if level == "errors-only":
            return kind is NotificationKind.SYNC_ERROR
        return True

    async def _send(self, event: NotificationEvent) -> None:
        if self.notifier is None or not self.should_notify(event.kind):
            return
        try:
            await self.notifier.notify(event)
        except Exception as e:
            logger.error(f"Failed to send notification for {event.source_id}: {e}", exc_info=True)

    async def _notify_error(self, source: LiveSpecSource, context: ErrorContext, *, degraded: bool) -> None:
        actions = [_action_label(a) for a in context.suggested_actions[:2]]
        actions.append("Retry Now")

        message = context.error_message
        if degraded:
            message = f"{message} Switching to manual sync mode for {source.name}."

        await self._send(
            NotificationEvent(
                kind=NotificationKind.SYNC_ERROR,
                source_id=source.id,
                title=f"Sync Error: {source.name}",
                message=message,
                actions=tuple(actions),
                details={
                    "error_type": context.error_type,
                    "retry_count": context.retry_count,
                    "is_recoverable": context.is_recoverable,
                    "suggested_actions": list(context.suggested_actions),
                    "degraded": degraded,
                    "url_suggestion": self._url_suggestions.get(source.id),
                },
            )
        )

    async def _notify_recovery(self, source: LiveSpecSource, *, recovered: bool) -> None:
        details: Dict[str, Any] = {}
        suggestion = self._url_suggestions.get(source.id)
        if suggestion:
            details["url_suggestion"] = suggestion

        await self._send(
            NotificationEvent(
                kind=NotificationKind.SYNC_SUCCESS if recovered else NotificationKind.SYNC_ERROR,
                source_id=source.id,
                title="Recovery Successful" if recovered else "Recovery Failed",
                message=(
                    f"{source.name} is back online"
                    if recovered
                    else f"Could not recover {source.name}"
                ),
                details=details,
            )
        )
