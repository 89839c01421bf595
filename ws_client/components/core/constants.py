"""
Realtime Client Constants.

Centralized constants with documentation explaining the value of each.
Runtime values come from `shared.config.settings`; the defaults here are
used when a component is built without settings (tests, the CLI).
"""

from enum import IntEnum
from typing import Final

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "ProtocolEvent",
    "NOTIFICATION_EVENTS",
    "SETTINGS_EVENTS",
    "PRIVATE_CHANNEL_PREFIX",
]


class WSCloseCode(IntEnum):
    """
    WebSocket close codes seen by the client.

    Standard codes (1000-1999) from RFC 6455. The Pusher protocol uses
    4000-4299 for application errors; any code other than NORMAL is
    treated as abnormal and triggers a reconnect.
    """

    NORMAL = 1000  # Caller-initiated shutdown, never reconnected
    GOING_AWAY = 1001  # Server shutting down
    PROTOCOL_ERROR = 1002
    NO_STATUS = 1005  # Close frame without a status code
    ABNORMAL = 1006  # Connection dropped without a close frame
    SERVER_ERROR = 1011

    # Pusher application codes
    PUSHER_APP_DOES_NOT_EXIST = 4001
    PUSHER_OVER_CONNECTION_QUOTA = 4004
    PUSHER_GENERIC_RECONNECT = 4200


class ProtocolEvent:
    """
    Event names on the wire.

    Outbound: SUBSCRIBE, UNSUBSCRIBE, PING, PONG.
    Inbound: everything else.
    """

    CONNECTION_ESTABLISHED: Final[str] = "pusher:connection_established"
    SUBSCRIPTION_SUCCEEDED: Final[str] = "pusher_internal:subscription_succeeded"
    ERROR: Final[str] = "pusher:error"
    PING: Final[str] = "pusher:ping"
    PONG: Final[str] = "pusher:pong"
    SUBSCRIBE: Final[str] = "pusher:subscribe"
    UNSUBSCRIBE: Final[str] = "pusher:unsubscribe"

    # Laravel broadcast events. Echo prefixes custom event names with a dot.
    NOTIFICATION_CREATED: Final[str] = "Illuminate\\Notifications\\Events\\BroadcastNotificationCreated"
    SETTING_CHANGED: Final[str] = ".SettingEvent"


NOTIFICATION_EVENTS: frozenset[str] = frozenset({
    ProtocolEvent.NOTIFICATION_CREATED,
    "." + ProtocolEvent.NOTIFICATION_CREATED,
})

SETTINGS_EVENTS: frozenset[str] = frozenset({
    ProtocolEvent.SETTING_CHANGED,
})

# Channels with this prefix need a signed authorization to subscribe
PRIVATE_CHANNEL_PREFIX: Final[str] = "private-"


class WSConstants:
    """
    Realtime client operational constants.

    These are defaults. The ConnectionManager and its components read the
    live values from `shared.config.settings.settings`, which can override
    them via environment variables.
    """

    # ==========================================================================
    # Timing
    # ==========================================================================

    # HEARTBEAT_INTERVAL: 30 seconds
    # Intermediaries (load balancers, proxies) commonly drop idle TCP
    # connections after 60 seconds; pinging at half that keeps the socket warm.
    HEARTBEAT_INTERVAL: Final[float] = 30.0

    # AUTH_TIMEOUT: 10 seconds
    # Upper bound for one private channel authorization round-trip.
    AUTH_TIMEOUT: Final[float] = 10.0

    # ==========================================================================
    # Reconnection
    # ==========================================================================

    # 5s, 10s, 20s, ... capped at 5 minutes; ten attempts is roughly 25
    # minutes of retrying before recovery is suspended.
    RECONNECT_BASE_DELAY: Final[float] = 5.0
    RECONNECT_MAX_DELAY: Final[float] = 300.0
    MAX_RECONNECT_ATTEMPTS: Final[int] = 10

    # ==========================================================================
    # Token intake
    # ==========================================================================

    # TOKEN_DEDUPE_WINDOW: 10 minutes
    # The token source re-announces unchanged credentials on page loads;
    # inside this window a repeat is ignored.
    TOKEN_DEDUPE_WINDOW: Final[float] = 600.0

    # ==========================================================================
    # Close
    # ==========================================================================

    NORMAL_CLOSE_REASON: Final[str] = "Normal closure"

