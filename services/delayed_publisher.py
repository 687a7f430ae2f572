"""Scheduled, fire-once delivery of realtime events."""

from __future__ import annotations

import asyncio
from typing import Optional, Set

from prometheus_client import Gauge

from core import get_logger
from services.broadcaster import Broadcaster, RealtimeMessage

logger = get_logger(__name__)

PENDING_BROADCASTS = Gauge(
    "delayed_broadcasts_pending",
    "Scheduled realtime events not yet published",
)


class DelayedPublisher:
    """Timer queue in front of a ``Broadcaster``.

    ``schedule`` arms one ``loop.call_later`` timer per event. A timer
    publishes exactly once and cannot be cancelled individually; all
    outstanding timers are cancelled by ``shutdown``. Delivery failures are
    logged and dropped.

    Must be used from the thread running its event loop.
    """

    def __init__(
        self,
        broadcaster: Broadcaster,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.broadcaster = broadcaster
        self._loop = loop
        self._handles: Set[asyncio.TimerHandle] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._handles)

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(
        self,
        session_id: int,
        message: RealtimeMessage,
        delay: float,
    ) -> Optional[asyncio.TimerHandle]:
        """Publish ``message`` to the session after ``delay`` seconds.

        Returns the timer handle, or None when the publisher is shut down.
        """
        if self._closed:
            logger.warning(
                f"Publisher shut down, dropping {message.event} for session {session_id}"
            )
            return None

        loop = self._loop or asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._handles.discard(handle)
            PENDING_BROADCASTS.set(len(self._handles))
            self._deliver(session_id, message)

        handle = loop.call_later(max(0.0, delay), fire)
        self._handles.add(handle)
        PENDING_BROADCASTS.set(len(self._handles))
        logger.info(f"Scheduled {message.event} for session {session_id} in {delay:.1f}s")
        return handle

    def _deliver(self, session_id: int, message: RealtimeMessage) -> None:
        try:
            self.broadcaster.publish(session_id, message)
        except Exception as e:
            logger.warning(
                f"Dropped {message.event} for session {session_id}: {e}"
            )

    def shutdown(self) -> int:
        """Cancel every pending timer. Returns how many were cancelled."""
        self._closed = True
        cancelled = 0
        for handle in list(self._handles):
            handle.cancel()
            cancelled += 1
        self._handles.clear()
        PENDING_BROADCASTS.set(0)
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending broadcasts on shutdown")
        return cancelled
