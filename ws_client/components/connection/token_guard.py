"""
Single-flight guard for token announcements.

The token source re-announces the same credential on every page load. The
guard remembers the last token it let through and when, and refuses the
same token again inside the dedupe window. It also carries the in-flight
flag for the profile fetch, so overlapping announcements do not start a
second fetch.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from ws_client.components.core.constants import WSConstants


@dataclass(slots=True)
class TokenProcessingGuard:
    """
    Value object holding the dedupe state.

    Attributes:
        window: Seconds during which a repeated token is ignored.
        clock: Monotonic time source (injectable for tests).
        last_token: Last token that was let through.
        last_processed_at: Clock reading when `last_token` was let through.
        in_flight: Whether a profile fetch is currently running.
    """

    window: float = WSConstants.TOKEN_DEDUPE_WINDOW
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    last_token: str | None = field(default=None, repr=False)
    last_processed_at: float = 0.0
    in_flight: bool = False

    def should_process(self, token: str) -> bool:
        """
        Check a token and record it if it passes.

        Returns:
            False if the same token was let through less than `window`
            seconds ago, True otherwise.
        """
        now = self.clock()
        if (
            self.last_token is not None
            and token == self.last_token
            and now - self.last_processed_at < self.window
        ):
            return False
        self.last_token = token
        self.last_processed_at = now
        return True

    def begin_flight(self) -> bool:
        """
        Claim the single in-flight slot.

        Returns:
            False if a fetch is already running.
        """
        if self.in_flight:
            return False
        self.in_flight = True
        return True

    def end_flight(self) -> None:
        self.in_flight = False

    def forget(self) -> None:
        """Drop the remembered token so the next announcement is processed."""
        self.last_token = None
        self.last_processed_at = 0.0
