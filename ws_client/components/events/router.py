"""
Message Router - Demultiplexes inbound socket frames.

Protocol frames (connection ack, subscription ack, errors, pings) are
handled against the ConnectionManager; domain events are forwarded to the
notification and settings sinks.

Usage:
    router = MessageRouter(manager, notification_sink, settings_sink)
    result = await router.route(raw_message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol

from shared.config.logging import get_logger
from shared.utils.exceptions import FrameDecodeError
from ws_client.components.core.constants import (
    NOTIFICATION_EVENTS,
    SETTINGS_EVENTS,
    ProtocolEvent,
)
from ws_client.components.events.sinks import NotificationSink, SettingsSink
from ws_client.components.events.types import Frame

logger = get_logger(__name__)


class ConnectionManagerProtocol(Protocol):
    """Protocol for ConnectionManager to avoid circular imports."""

    def on_acknowledged(self, session_id: str) -> bool: ...

    def on_subscription_succeeded(self, channel: str | None) -> None: ...

    async def send(self, frame: Frame) -> bool: ...


@dataclass
class RoutingResult:
    """Result of routing one inbound message."""

    event: str | None = None
    handled: bool = False
    error: str | None = None

    @property
    def dropped(self) -> bool:
        """Whether the message could not be decoded."""
        return self.error is not None


class MessageRouter:
    """
    Routes inbound frames by event name.

    Routing rules:
    - pusher:connection_established: session id to the manager
    - pusher_internal:subscription_succeeded: mark channel subscribed
    - pusher:error: logged
    - pusher:ping: answered with pusher:pong
    - pusher:pong: ignored (no liveness tracking)
    - BroadcastNotificationCreated (with or without leading dot): NotificationSink
    - .SettingEvent: SettingsSink
    - anything else: ignored

    Frames are handled one at a time in the order the socket delivers them.
    """

    def __init__(
        self,
        manager: ConnectionManagerProtocol,
        notification_sink: NotificationSink,
        settings_sink: SettingsSink,
    ):
        """
        Initialize message router.

        Args:
            manager: ConnectionManager receiving protocol events.
            notification_sink: Receives notification payloads.
            settings_sink: Receives settings payloads.
        """
        self._manager = manager
        self._notification_sink = notification_sink
        self._settings_sink = settings_sink
        self._handlers: dict[str, Callable[[Frame], Awaitable[None]]] = {
            ProtocolEvent.CONNECTION_ESTABLISHED: self._on_connection_established,
            ProtocolEvent.SUBSCRIPTION_SUCCEEDED: self._on_subscription_succeeded,
            ProtocolEvent.ERROR: self._on_error,
            ProtocolEvent.PING: self._on_ping,
            ProtocolEvent.PONG: self._on_pong,
        }
        for event in NOTIFICATION_EVENTS:
            self._handlers[event] = self._on_notification
        for event in SETTINGS_EVENTS:
            self._handlers[event] = self._on_settings

        self._routed = 0
        self._dropped = 0
        self._ignored = 0

    async def route(self, raw: str | bytes) -> RoutingResult:
        """
        Decode and dispatch one inbound message.

        Never raises: decode failures and sink errors are logged.

        Args:
            raw: Message text as received from the socket.

        Returns:
            RoutingResult describing what happened.
        """
        try:
            frame = Frame.parse(raw)
        except FrameDecodeError as e:
            self._dropped += 1
            logger.warning("Dropping malformed frame", error=str(e))
            return RoutingResult(error=str(e))

        handler = self._handlers.get(frame.event)
        if handler is None:
            self._ignored += 1
            logger.debug("Ignoring unknown event", event=frame.event, channel=frame.channel)
            return RoutingResult(event=frame.event)

        self._routed += 1
        await handler(frame)
        return RoutingResult(event=frame.event, handled=True)

    # =========================================================================
    # Protocol events
    # =========================================================================

    async def _on_connection_established(self, frame: Frame) -> None:
        payload = frame.payload()
        session_id = payload.get("socket_id") if isinstance(payload, dict) else None
        if session_id is None or session_id == "":
            logger.error("Connection acknowledgement without session id", payload=payload)
            return

        logger.info("Connection established", session_id=session_id)
        self._manager.on_acknowledged(str(session_id))

    async def _on_subscription_succeeded(self, frame: Frame) -> None:
        logger.info("Successfully subscribed to channel", channel=frame.channel)
        self._manager.on_subscription_succeeded(frame.channel)

    async def _on_error(self, frame: Frame) -> None:
        payload = frame.payload()
        if isinstance(payload, dict):
            logger.error("Server error", code=payload.get("code"), message=payload.get("message"))
        else:
            logger.error("Server error", data=payload)

    async def _on_ping(self, frame: Frame) -> None:
        await self._manager.send(Frame.pong())

    async def _on_pong(self, frame: Frame) -> None:
        logger.debug("Pong received")

    # =========================================================================
    # Domain events
    # =========================================================================

    async def _on_notification(self, frame: Frame) -> None:
        logger.info("Notification received", channel=frame.channel)
        await self._forward(self._notification_sink.handle_notification, frame)

    async def _on_settings(self, frame: Frame) -> None:
        logger.info("Setting event received", channel=frame.channel)
        await self._forward(self._settings_sink.handle_settings, frame)

    async def _forward(self, handle: Callable[[Any], Awaitable[None]], frame: Frame) -> None:
        try:
            await handle(frame.data)
        except Exception as e:
            # Sinks are external; a failing sink must not stop frame processing
            logger.error(
                "Sink failed to process event",
                event=frame.event,
                error=f"{type(e).__name__}: {e}",
                exc_info=True,
            )

    def get_stats(self) -> dict[str, int]:
        return {
            "routed": self._routed,
            "dropped": self._dropped,
            "ignored": self._ignored,
        }
