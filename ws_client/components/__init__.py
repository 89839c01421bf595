"""
Realtime Client Components.

Organized into domain-specific modules:
- core/       - Constants and the connection state machine
- resilience/ - Reconnect backoff and scheduling
- connection/ - Heartbeat and token intake guard
- auth/       - Private channel authorization, profile lookup
- channels/   - Channel subscription
- events/     - Frames, routing, sinks

All public symbols are re-exported here. New code should import from the
specific submodules for clarity.
"""

# =============================================================================
# Core Components
# =============================================================================
from ws_client.components.core.constants import (
    WSCloseCode,
    WSConstants,
    ProtocolEvent,
    NOTIFICATION_EVENTS,
    SETTINGS_EVENTS,
    PRIVATE_CHANNEL_PREFIX,
)
from ws_client.components.core.state import (
    ConnectionState,
    ConnectionEvent,
    ACTIVE_STATES,
    transition,
    can_transition,
)

# =============================================================================
# Resilience
# =============================================================================
from ws_client.components.resilience.retry import (
    RetryConfig,
    ReconnectScheduler,
    calculate_backoff_delay,
    backoff_schedule,
    create_reconnect_scheduler,
)

# =============================================================================
# Connection
# =============================================================================
from ws_client.components.connection.heartbeat import HeartbeatMonitor
from ws_client.components.connection.token_guard import TokenProcessingGuard

# =============================================================================
# Auth
# =============================================================================
from ws_client.components.auth.channel_auth import AuthResult, ChannelAuthClient
from ws_client.components.auth.profile import ProfileClient

# =============================================================================
# Channels
# =============================================================================
from ws_client.components.channels.subscriber import (
    Channel,
    ChannelKind,
    ChannelSubscriber,
    private_channel_name,
)

# =============================================================================
# Events
# =============================================================================
from ws_client.components.events.types import Frame, NotificationType
from ws_client.components.events.router import MessageRouter, RoutingResult
from ws_client.components.events.sinks import (
    NotificationSink,
    SettingsSink,
    Notification,
    MaintenanceNotice,
    LoggingNotificationSink,
    MaintenanceSettingsSink,
)

__all__ = [
    # Core
    "WSCloseCode",
    "WSConstants",
    "ProtocolEvent",
    "NOTIFICATION_EVENTS",
    "SETTINGS_EVENTS",
    "PRIVATE_CHANNEL_PREFIX",
    "ConnectionState",
    "ConnectionEvent",
    "ACTIVE_STATES",
    "transition",
    "can_transition",
    # Resilience
    "RetryConfig",
    "ReconnectScheduler",
    "calculate_backoff_delay",
    "backoff_schedule",
    "create_reconnect_scheduler",
    # Connection
    "HeartbeatMonitor",
    "TokenProcessingGuard",
    # Auth
    "AuthResult",
    "ChannelAuthClient",
    "ProfileClient",
    # Channels
    "Channel",
    "ChannelKind",
    "ChannelSubscriber",
    "private_channel_name",
    # Events
    "Frame",
    "NotificationType",
    "MessageRouter",
    "RoutingResult",
    "NotificationSink",
    "SettingsSink",
    "Notification",
    "MaintenanceNotice",
    "LoggingNotificationSink",
    "MaintenanceSettingsSink",
]
