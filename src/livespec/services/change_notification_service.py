# src/livespec/services/change_notification_service.py

"""
Default notifier.

Events are logged, kept in a bounded in-memory feed (served by the API), and
optionally POSTed to a webhook. Delivery failures are logged, never raised.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

import httpx
from opentelemetry import trace

from livespec.metrics import notifications_sent_total
from livespec.models.collaborators import NotificationEvent, NotificationKind

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_FEED_SIZE = 100


class ChangeNotificationService:
    def __init__(self, webhook_url: Optional[str] = None, feed_size: int = DEFAULT_FEED_SIZE):
        self.webhook_url = webhook_url
        self._feed: Deque[NotificationEvent] = deque(maxlen=feed_size)

    async def notify(self, event: NotificationEvent) -> None:
        with tracer.start_as_current_span("notification.send") as span:
            span.set_attribute("notification.kind", event.kind.value)
            span.set_attribute("notification.terminal", event.terminal)
            span.set_attribute("source.id", event.source_id)

            self._feed.appendleft(event)
            notifications_sent_total.labels(kind=event.kind.value).inc()

            if event.kind is NotificationKind.SYNC_SUCCESS:
                logger.info(f"[{event.source_id}] {event.title}: {event.message}")
            else:
                logger.warning(f"[{event.source_id}] {event.title}: {event.message}")

            if not self.webhook_url:
                return

            try:
                await self._send_webhook(event)
            except Exception as e:
                logger.error(
                    "Failed to deliver notification: source=%s kind=%s error=%s",
                    event.source_id, event.kind.value, str(e)
                )
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))

    async def _send_webhook(self, event: NotificationEvent) -> None:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(
                self.webhook_url,
                json=event.to_dict(),
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()

        logger.info(f"Notification webhook sent to {self.webhook_url}: status {response.status_code}")

    def recent(self, source_id: Optional[str] = None, limit: int = 20) -> List[NotificationEvent]:
        """Newest first."""
        events = [e for e in self._feed if source_id is None or e.source_id == source_id]
        return events[:limit]

    def clear(self) -> None:
        self._feed.clear()
