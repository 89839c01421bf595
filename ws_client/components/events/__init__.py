"""
Event handling: frame types, routing and downstream sinks.
"""

from ws_client.components.events.types import Frame, NotificationType
from ws_client.components.events.router import MessageRouter, RoutingResult
from ws_client.components.events.sinks import NotificationSink, SettingsSink

__all__ = [
    "Frame",
    "NotificationType",
    "MessageRouter",
    "RoutingResult",
    "NotificationSink",
    "SettingsSink",
]
