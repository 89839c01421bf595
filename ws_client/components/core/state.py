"""
Connection state machine.

States and the events that move between them are declared as an explicit
transition table. Handlers in the ConnectionManager only perform side
effects; every state change goes through `transition()`, so an illegal
move (for example acknowledging a connection that is IDLE) fails loudly
instead of leaving the flags inconsistent.

    IDLE --START--> CONNECTING --ACKNOWLEDGED--> CONNECTED
      ^                 |                            |
      |               STOP/CLOSED                 STOP/CLOSED
      |                 v                            v
      +------CLOSED--- CLOSING <---------------------+
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Final

from shared.utils.exceptions import InvalidTransitionError


class ConnectionState(str, Enum):
    """Lifecycle states of the single realtime connection."""

    IDLE = "idle"
    CONNECTING = "connecting"  # Socket opening or waiting for the server ack
    CONNECTED = "connected"  # Server ack received, session id known
    CLOSING = "closing"  # Caller-initiated shutdown in progress


class ConnectionEvent(str, Enum):
    """Inputs of the state machine."""

    START = "start"
    ACKNOWLEDGED = "acknowledged"
    STOP = "stop"
    CLOSED = "closed"


# States in which a new connection attempt is refused
ACTIVE_STATES: Final[frozenset[ConnectionState]] = frozenset({
    ConnectionState.CONNECTING,
    ConnectionState.CONNECTED,
})


TRANSITIONS: Final[MappingProxyType[tuple[ConnectionState, ConnectionEvent], ConnectionState]] = MappingProxyType({
    (ConnectionState.IDLE, ConnectionEvent.START): ConnectionState.CONNECTING,
    (ConnectionState.CLOSING, ConnectionEvent.START): ConnectionState.CONNECTING,
    (ConnectionState.CONNECTING, ConnectionEvent.ACKNOWLEDGED): ConnectionState.CONNECTED,
    (ConnectionState.IDLE, ConnectionEvent.STOP): ConnectionState.IDLE,
    (ConnectionState.CONNECTING, ConnectionEvent.STOP): ConnectionState.CLOSING,
    (ConnectionState.CONNECTED, ConnectionEvent.STOP): ConnectionState.CLOSING,
    (ConnectionState.CLOSING, ConnectionEvent.STOP): ConnectionState.CLOSING,
    (ConnectionState.CONNECTING, ConnectionEvent.CLOSED): ConnectionState.IDLE,
    (ConnectionState.CONNECTED, ConnectionEvent.CLOSED): ConnectionState.IDLE,
    (ConnectionState.CLOSING, ConnectionEvent.CLOSED): ConnectionState.IDLE,
})


def transition(state: ConnectionState, event: ConnectionEvent) -> ConnectionState:
    """
    Compute the next state.

    Args:
        state: Current state.
        event: Event being applied.

    Returns:
        The next state.

    Raises:
        InvalidTransitionError: If the pair is not in the transition table.
    """
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state, event) from None


def can_transition(state: ConnectionState, event: ConnectionEvent) -> bool:
    """Check whether an event is legal in the given state."""
    return (state, event) in TRANSITIONS
