"""
Reconnect scheduling for the realtime client.

Provides exponential backoff with a hard attempt ceiling and a scheduler
that owns the single pending reconnect timer.

The delay is calculated as:
    delay = min(base_delay * (backoff_base ^ attempt), max_delay)

With the defaults this gives 5s, 10s, 20s, 40s, ... capped at 300s, for at
most 10 attempts. After the ceiling is reached scheduling is refused and
the counter starts over, so a later explicit start can try again.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Final

from shared.config.logging import get_logger
from ws_client.components.core.constants import WSConstants

logger = get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================


# Default exponential backoff base
DEFAULT_BACKOFF_BASE: Final[float] = 2.0


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """
    Configuration for reconnect behavior.

    Attributes:
        base_delay: Delay in seconds before the first reconnect (default: 5.0).
        max_delay: Maximum delay cap in seconds (default: 300.0).
        backoff_base: Exponential backoff multiplier (default: 2.0).
        max_attempts: Reconnects scheduled before recovery is suspended (default: 10).
    """

    base_delay: float = WSConstants.RECONNECT_BASE_DELAY
    max_delay: float = WSConstants.RECONNECT_MAX_DELAY
    backoff_base: float = DEFAULT_BACKOFF_BASE
    max_attempts: int = WSConstants.MAX_RECONNECT_ATTEMPTS

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if self.backoff_base < 1:
            raise ValueError("backoff_base must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")


# =============================================================================
# Delay Functions
# =============================================================================


def calculate_backoff_delay(
    attempt: int,
    config: RetryConfig | None = None,
) -> float:
    """
    Calculate the reconnect delay for an attempt.

    Args:
        attempt: Attempt number (0-indexed).
        config: Retry configuration (uses defaults if None).

    Returns:
        Delay in seconds.

    Example:
        >>> calculate_backoff_delay(0)
        5.0
        >>> calculate_backoff_delay(2)
        20.0
        >>> calculate_backoff_delay(9)
        300.0
    """
    if config is None:
        config = RetryConfig()

    base_delay = config.base_delay * (config.backoff_base ** attempt)
    return min(base_delay, config.max_delay)


def backoff_schedule(config: RetryConfig | None = None) -> list[float]:
    """Every delay the scheduler would use before suspending, in order."""
    if config is None:
        config = RetryConfig()
    return [calculate_backoff_delay(n, config) for n in range(config.max_attempts)]


# =============================================================================
# Scheduler
# =============================================================================


class ReconnectScheduler:
    """
    Arms and disarms the single pending reconnect timer.

    The scheduler only knows about attempts and timers. Whether a reconnect
    makes sense at all (credentials present, connection not already active)
    is decided by the ConnectionManager before calling `schedule()`.

    Usage:
        scheduler = ReconnectScheduler(RetryConfig(base_delay=5.0))
        delay = scheduler.schedule(lambda: manager.start(token, user_id))
        if delay is None:
            ...  # refused: timer pending or attempts exhausted
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            config: Backoff configuration.
            loop: Event loop used for timers. Defaults to the running loop
                  at scheduling time.
        """
        self._config = config or RetryConfig()
        self._loop = loop
        self._attempts = 0
        self._pending: asyncio.TimerHandle | None = None
        self._scheduled_total = 0
        self._exhausted_total = 0

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def attempts(self) -> int:
        """Reconnects scheduled since the last successful connection."""
        return self._attempts

    @property
    def pending(self) -> bool:
        """Whether a reconnect timer is armed."""
        return self._pending is not None

    def schedule(self, retry_fn: Callable[[], Any]) -> float | None:
        """
        Arm a reconnect timer.

        Args:
            retry_fn: Called (synchronously, on the event loop) when the
                      timer fires.

        Returns:
            The delay in seconds, or None if scheduling was refused.
        """
        if self._pending is not None:
            logger.debug("Reconnect already scheduled, not arming another timer")
            return None

        if self._attempts >= self._config.max_attempts:
            logger.warning(
                "Maximum reconnection attempts reached, suspending reconnection",
                max_attempts=self._config.max_attempts,
            )
            self._attempts = 0
            self._exhausted_total += 1
            return None

        delay = calculate_backoff_delay(self._attempts, self._config)
        loop = self._loop or asyncio.get_running_loop()
        self._pending = loop.call_later(delay, self._fire, retry_fn)
        self._attempts += 1
        self._scheduled_total += 1

        logger.info(
            "Scheduling reconnection",
            delay_seconds=delay,
            attempt=self._attempts,
            max_attempts=self._config.max_attempts,
        )
        return delay

    def cancel(self) -> bool:
        """
        Disarm the pending timer, if any.

        Returns:
            True if a timer was cancelled.
        """
        handle = self._pending
        self._pending = None
        if handle is None:
            return False
        handle.cancel()
        return True

    def reset(self) -> None:
        """Start counting attempts from zero again."""
        self._attempts = 0

    def _fire(self, retry_fn: Callable[[], Any]) -> None:
        self._pending = None
        logger.info(
            "Attempting reconnection",
            attempt=self._attempts,
            max_attempts=self._config.max_attempts,
        )
        retry_fn()

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "attempts": self._attempts,
            "pending": self.pending,
            "scheduled_total": self._scheduled_total,
            "exhausted_total": self._exhausted_total,
            "max_attempts": self._config.max_attempts,
        }


def create_reconnect_scheduler(
    base_delay: float | None = None,
    max_delay: float | None = None,
    max_attempts: int | None = None,
) -> ReconnectScheduler:
    """
    Create a scheduler from settings, with optional overrides.

    Args:
        base_delay: Delay before the first reconnect.
        max_delay: Maximum delay between attempts.
        max_attempts: Attempts before recovery is suspended.

    Returns:
        ReconnectScheduler configured for the realtime socket.
    """
    from shared.config.settings import settings

    return ReconnectScheduler(
        RetryConfig(
            base_delay=base_delay if base_delay is not None else settings.ws_reconnect_base_delay,
            max_delay=max_delay if max_delay is not None else settings.ws_reconnect_max_delay,
            max_attempts=max_attempts if max_attempts is not None else settings.ws_max_reconnect_attempts,
        )
    )
