"""
Per-source polling state owned by LiveSyncPollingService.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class PollHandle:
    """
    A cancellable repeating schedule for one source.

    The schedule task sleeps for the interval, then awaits one tick. The tick
    runs in its own task behind asyncio.shield, so cancelling the handle stops
    further ticks without interrupting a fetch that has already started.
    cancel() is idempotent.
    """

    def __init__(self, source_id: str, interval_ms: int, tick: Callable[[], Awaitable[Any]]):
        self.source_id = source_id
        self.interval_ms = interval_ms
        self._tick = tick
        self._cancelled = False
        self._task: asyncio.Task = asyncio.get_running_loop().create_task(
            self._run(), name=f"poll:{source_id}"
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval_ms / 1000)
            if self._cancelled:
                return
            tick = asyncio.ensure_future(self._tick())
            try:
                await asyncio.shield(tick)
            except Exception:
                # The tick converts its own faults; anything reaching here is a bug
                logger.exception("Unhandled error in poll tick for %s", self.source_id)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if not self._task.done():
            self._task.cancel()


@dataclass
class PollingState:
    source_id: str
    poll_interval_ms: int
    last_spec_hash: Optional[str] = None
    is_polling: bool = False
    last_poll_time: Optional[datetime] = None
    consecutive_error_count: int = 0
    in_flight: bool = False
    handle: Optional[PollHandle] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "poll_interval_ms": self.poll_interval_ms,
            "last_spec_hash": self.last_spec_hash,
            "is_polling": self.is_polling,
            "last_poll_time": self.last_poll_time.isoformat() if self.last_poll_time else None,
            "consecutive_error_count": self.consecutive_error_count,
        }
