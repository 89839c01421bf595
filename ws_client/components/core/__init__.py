"""
Core realtime client components.

Foundational components: constants and the connection state machine.
"""

from ws_client.components.core.constants import WSCloseCode, WSConstants, ProtocolEvent
from ws_client.components.core.state import ConnectionState, ConnectionEvent, transition

__all__ = [
    # Constants
    "WSCloseCode",
    "WSConstants",
    "ProtocolEvent",
    # State machine
    "ConnectionState",
    "ConnectionEvent",
    "transition",
]
