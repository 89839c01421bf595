"""
Heartbeat Monitor for the realtime client.

Sends a keep-alive ping on a fixed interval while the connection is
CONNECTED. A missing pong is not treated as a failure: transport close and
error events are the only failure detector, so the monitor never tears
anything down on its own.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from shared.config.logging import get_logger
from ws_client.components.core.constants import WSConstants

logger = get_logger(__name__)


class HeartbeatMonitor:
    """
    Periodic keep-alive sender.

    Owns at most one background task. `start()` replaces a running task,
    `stop()` cancels it immediately; a cancelled task is interrupted at its
    sleep and never sends again.
    """

    def __init__(self, interval: float = WSConstants.HEARTBEAT_INTERVAL):
        """
        Initialize heartbeat monitor.

        Args:
            interval: Seconds between pings.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._interval = interval
        self._task: asyncio.Task | None = None
        self._pings_sent = 0
        self._ping_failures = 0

    @property
    def interval(self) -> float:
        """Get the ping interval in seconds."""
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pings_sent(self) -> int:
        return self._pings_sent

    def start(self, send_ping: Callable[[], Awaitable[bool]]) -> None:
        """
        Begin sending pings.

        Args:
            send_ping: Coroutine function that transmits one ping frame and
                       returns whether it was sent.
        """
        self.stop()
        self._task = asyncio.create_task(self._run(send_ping), name="ws_heartbeat")
        logger.debug("Heartbeat started", interval=self._interval)

    def stop(self) -> None:
        """Stop sending pings. Safe to call when not running."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Heartbeat stopped", pings_sent=self._pings_sent)

    async def _run(self, send_ping: Callable[[], Awaitable[bool]]) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if await send_ping():
                self._pings_sent += 1
            else:
                # The close event that follows a dead transport drives recovery
                self._ping_failures += 1
                logger.warning("Heartbeat ping not sent", failures=self._ping_failures)

    def get_stats(self) -> dict[str, float | int | bool]:
        """Get heartbeat statistics."""
        return {
            "running": self.is_running,
            "interval_seconds": self._interval,
            "pings_sent": self._pings_sent,
            "ping_failures": self._ping_failures,
        }
