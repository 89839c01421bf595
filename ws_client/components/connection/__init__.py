"""
Connection helpers: keep-alive and token intake guard.
"""

from ws_client.components.connection.heartbeat import HeartbeatMonitor
from ws_client.components.connection.token_guard import TokenProcessingGuard

__all__ = [
    "HeartbeatMonitor",
    "TokenProcessingGuard",
]
