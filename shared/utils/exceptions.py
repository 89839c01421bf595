"""
Centralized exceptions for the realtime client.

Transport and authorization failures are absorbed where they are detected
and never surface as exceptions. The classes below cover the remaining
cases: programming errors in the state machine, and errors raised by
helpers whose callers turn them into log lines.

Usage:
    from shared.utils.exceptions import FrameDecodeError, ProfileFetchError

    raise FrameDecodeError("Frame is not a JSON object", raw=raw)
    raise ProfileFetchError("Profile request failed", status_code=401)
"""

from typing import Any


class RealtimeClientError(Exception):
    """
    Base exception for the realtime client.

    Keeps keyword context so handlers can pass it straight to the
    structured logger.
    """

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def __str__(self) -> str:
        if not self.context:
            return self.detail
        data_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.detail} ({data_str})"


# =============================================================================
# State machine
# =============================================================================


class InvalidTransitionError(RealtimeClientError):
    """
    A (state, event) pair that the connection state machine does not allow.

    Raised, never caught: reaching it means a handler fired in a state it
    should have been guarded against.
    """

    def __init__(self, state: Any, event: Any):
        super().__init__(
            "Illegal connection state transition",
            state=getattr(state, "value", state),
            event=getattr(event, "value", event),
        )
        self.state = state
        self.event = event


# =============================================================================
# Protocol
# =============================================================================


class FrameDecodeError(RealtimeClientError):
    """Inbound frame could not be decoded into a protocol frame."""


# =============================================================================
# HTTP collaborators
# =============================================================================


class ProfileFetchError(RealtimeClientError):
    """
    The profile API did not return a usable user id.

    Usage:
        raise ProfileFetchError("Profile response missing id")
        raise ProfileFetchError("Profile request failed", status_code=500)
    """
