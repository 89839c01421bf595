"""
Realtime Connection Manager.

Thin orchestrator that owns the single realtime socket and composes the
modular components:
- ReconnectScheduler: backoff and the pending reconnect timer
- HeartbeatMonitor: keep-alive pings while CONNECTED
- ChannelSubscriber (+ ChannelAuthClient): fixed channel set per session
- MessageRouter: inbound frame dispatch

All state lives on the instance and is only mutated from the event loop;
the state guards in `start()` take the place of a lock.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Awaitable, Callable, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from shared.config.logging import (
    audit_connection_event,
    bind_connection,
    get_logger,
    mask_token,
    mask_user_id,
)
from shared.config.settings import Settings, settings as default_settings
from ws_client.components.auth.channel_auth import ChannelAuthClient
from ws_client.components.channels.subscriber import ChannelSubscriber
from ws_client.components.connection.heartbeat import HeartbeatMonitor
from ws_client.components.core.constants import WSCloseCode, WSConstants
from ws_client.components.core.state import (
    ACTIVE_STATES,
    ConnectionEvent,
    ConnectionState,
    transition,
)
from ws_client.components.events.router import MessageRouter
from ws_client.components.events.sinks import NotificationSink, SettingsSink
from ws_client.components.events.types import Frame
from ws_client.components.resilience.retry import ReconnectScheduler, RetryConfig

logger = get_logger(__name__)


class SocketProtocol(Protocol):
    """The subset of a websockets client connection used by the manager."""

    close_code: int | None
    close_reason: str | None

    async def send(self, message: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    def __aiter__(self) -> Any: ...


Connector = Callable[[str], Awaitable[SocketProtocol]]


def default_connector(config: Settings) -> Connector:
    """websockets.connect with the configured timeouts and no built-in pings."""
    return functools.partial(
        websockets.connect,
        open_timeout=config.ws_open_timeout,
        close_timeout=config.ws_close_timeout,
        ping_interval=None,
    )


class ConnectionManager:
    """
    Manages the realtime connection.

    State machine: IDLE -> CONNECTING -> CONNECTED -> CLOSING -> IDLE, with
    CONNECTING/CONNECTED dropping straight to IDLE on close. See
    `ws_client.components.core.state` for the transition table.

    Every `start()` opens a new connection *generation*. Socket callbacks
    carry the generation they were created for and are ignored once a newer
    generation exists, so a superseded socket can never change state.
    """

    def __init__(
        self,
        notification_sink: NotificationSink,
        settings_sink: SettingsSink,
        *,
        auth_client: ChannelAuthClient | None = None,
        scheduler: ReconnectScheduler | None = None,
        heartbeat: HeartbeatMonitor | None = None,
        connect: Connector | None = None,
        config: Settings | None = None,
    ) -> None:
        """
        Initialize the connection manager.

        Args:
            notification_sink: Receives notification payloads.
            settings_sink: Receives settings payloads.
            auth_client: Private channel authorization (built from settings if omitted).
            scheduler: Reconnect scheduler (built from settings if omitted).
            heartbeat: Heartbeat monitor (built from settings if omitted).
            connect: Coroutine function opening a socket for a URL.
            config: Settings instance; defaults to the process settings.
        """
        self._config = config or default_settings
        self._url = self._config.ws_url

        self._auth_client = auth_client or ChannelAuthClient(
            self._config.auth_url,
            timeout=self._config.ws_auth_timeout,
            origin=self._config.auth_origin,
            accept_language=self._config.auth_accept_language,
        )
        self._scheduler = scheduler or ReconnectScheduler(
            RetryConfig(
                base_delay=self._config.ws_reconnect_base_delay,
                max_delay=self._config.ws_reconnect_max_delay,
                max_attempts=self._config.ws_max_reconnect_attempts,
            )
        )
        self._heartbeat = heartbeat or HeartbeatMonitor(self._config.ws_heartbeat_interval)
        self._connect = connect or default_connector(self._config)

        self._subscriber = ChannelSubscriber(
            send=self.send,
            auth_client=self._auth_client,
            is_current_session=self.is_current_session,
        )
        self._router = MessageRouter(self, notification_sink, settings_sink)

        # Connection
        self._state = ConnectionState.IDLE
        self._socket: SocketProtocol | None = None
        self._session_id: str | None = None
        self._token: str | None = None
        self._user_id: str | None = None
        self._generation = 0
        self._reader_task: asyncio.Task | None = None
        self._subscription_tasks: set[asyncio.Task] = set()
        self._background_tasks: set[asyncio.Task] = set()

        # Metrics
        self._connections_opened = 0
        self._frames_received = 0
        self._frames_sent = 0
        self._last_close_code: int | None = None

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def user_id(self) -> str | None:
        return self._user_id

    @property
    def scheduler(self) -> ReconnectScheduler:
        return self._scheduler

    @property
    def heartbeat(self) -> HeartbeatMonitor:
        return self._heartbeat

    @property
    def subscriber(self) -> ChannelSubscriber:
        return self._subscriber

    @property
    def is_active(self) -> bool:
        return self._state in ACTIVE_STATES

    def is_current_session(self, session_id: str) -> bool:
        return self._state is ConnectionState.CONNECTED and self._session_id == session_id

    def _apply(self, event: ConnectionEvent) -> None:
        previous = self._state
        self._state = transition(previous, event)
        if previous is not self._state:
            logger.debug(
                "Connection state changed",
                previous=previous.value,
                state=self._state.value,
                event=event.value,
            )

    # =========================================================================
    # Public operations
    # =========================================================================

    def start(self, token: str, user_id: str) -> bool:
        """
        Open a connection for the given credentials.

        A no-op while CONNECTING or CONNECTED. Must be called from the
        event loop; the socket is opened in a background task.

        Returns:
            True if a new connection attempt was started.
        """
        if self.is_active:
            logger.info("Connection already connecting or connected, skipping start")
            return False

        logger.info(
            "Initializing realtime connection",
            token=mask_token(token),
            user_id=mask_user_id(user_id),
        )

        self._scheduler.cancel()
        stale = self._socket
        self._retire_generation()
        if stale is not None:
            task = asyncio.create_task(self._close_socket(stale), name="ws_close_stale")
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

        self._token = token
        self._user_id = user_id
        self._apply(ConnectionEvent.START)

        generation = self._generation
        self._reader_task = asyncio.create_task(
            self._run_connection(generation),
            name=f"ws_connection_{generation}",
        )
        return True

    async def stop(self) -> None:
        """
        Shut the connection down without reconnecting.

        Closes the socket with a normal-closure code, cancels any pending
        reconnect and resets the attempt counter.
        """
        logger.info("Stopping realtime connection", state=self._state.value)
        self._scheduler.cancel()
        self._scheduler.reset()
        self._apply(ConnectionEvent.STOP)

        socket = self._socket
        reader = self._reader_task
        self._retire_generation()

        if socket is not None:
            await self._close_socket(socket)
        if reader is not None and not reader.done():
            await asyncio.wait({reader}, timeout=self._config.ws_close_timeout)

        if self._state is ConnectionState.CLOSING:
            self._apply(ConnectionEvent.CLOSED)

    async def rotate(self, token: str, user_id: str) -> bool:
        """
        Make the connection use new credentials.

        Active with the same credentials: no-op. Active with different
        credentials: stop, then start with the new ones. Idle: start.

        Returns:
            True if a connection attempt was started.
        """
        if self.is_active:
            if token == self._token and user_id == self._user_id:
                return False
            logger.info("Credentials changed, restarting connection", user_id=mask_user_id(user_id))
            await self.stop()
        return self.start(token, user_id)

    async def send(self, frame: Frame | dict[str, Any]) -> bool:
        """
        Serialize and transmit a frame.

        Returns:
            False (logged) when no socket is open or the send fails.
        """
        message = frame.encode() if isinstance(frame, Frame) else Frame(**frame).encode()
        socket = self._socket
        if socket is None:
            logger.error("Cannot send frame: socket is not open", message=message)
            return False

        try:
            await socket.send(message)
        except (ConnectionClosed, ConnectionError, OSError) as e:
            logger.error("Error sending frame", error=f"{type(e).__name__}: {e}")
            return False

        self._frames_sent += 1
        return True

    # =========================================================================
    # Router callbacks
    # =========================================================================

    def on_acknowledged(self, session_id: str) -> bool:
        """
        Server assigned a session id: the connection is now usable.

        Returns:
            True if the manager moved to CONNECTED.
        """
        if self._state is not ConnectionState.CONNECTING:
            logger.warning(
                "Unexpected connection acknowledgement",
                state=self._state.value,
                session_id=session_id,
            )
            return False

        self._apply(ConnectionEvent.ACKNOWLEDGED)
        self._session_id = session_id
        bind_connection(self._generation, session_id)
        self._scheduler.reset()
        self._heartbeat.start(self._send_ping)

        if self._token is None or self._user_id is None:
            logger.error("Cannot subscribe to channels: credentials missing")
            return True

        task = asyncio.create_task(
            self._subscriber.subscribe_defaults(
                session_id,
                self._user_id,
                self._token,
                settings_channel=self._config.settings_channel,
                user_channel_prefix=self._config.user_channel_prefix,
            ),
            name=f"ws_subscribe_{session_id}",
        )
        self._subscription_tasks.add(task)
        task.add_done_callback(self._subscription_tasks.discard)
        return True

    def on_subscription_succeeded(self, channel: str | None) -> None:
        self._subscriber.mark_subscribed(channel)

    # =========================================================================
    # Socket lifecycle
    # =========================================================================

    async def _run_connection(self, generation: int) -> None:
        bind_connection(generation)
        try:
            socket = await self._connect(self._url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.error("Realtime connection failed", error=f"{type(e).__name__}: {e}")
            self._handle_close(generation, WSCloseCode.ABNORMAL, str(e))
            return

        if generation != self._generation:
            logger.debug("Discarding superseded connection", generation=generation)
            await self._close_socket(socket)
            return

        self._socket = socket
        self._handle_open()

        try:
            async for message in socket:
                if generation != self._generation:
                    break
                self._frames_received += 1
                try:
                    await self._router.route(message)
                except Exception as e:
                    # One bad frame must not end the session
                    logger.error("Error routing frame", error=f"{type(e).__name__}: {e}", exc_info=True)
        except ConnectionClosed as e:
            self._handle_error(e)
        finally:
            code = socket.close_code if socket.close_code is not None else WSCloseCode.ABNORMAL
            self._handle_close(generation, code, socket.close_reason)

    def _handle_open(self) -> None:
        # Not CONNECTED yet: that needs the server's session id
        self._connections_opened += 1
        audit_connection_event("OPEN", url=self._url)
        logger.debug("Waiting for connection acknowledgement")

    def _handle_error(self, error: BaseException) -> None:
        # A close always follows; recovery happens there
        logger.error("Realtime socket error", error=f"{type(error).__name__}: {error}")

    def _handle_close(self, generation: int, code: int, reason: str | None) -> None:
        if generation != self._generation:
            return

        self._last_close_code = int(code)
        audit_connection_event("CLOSE", url=self._url, code=int(code), reason=reason or "")

        self._socket = None
        self._reader_task = None
        self._teardown_session()
        if self._state is not ConnectionState.IDLE:
            self._apply(ConnectionEvent.CLOSED)

        if code == WSCloseCode.NORMAL:
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> float | None:
        if self.is_active:
            return None
        if not self._token or not self._user_id:
            logger.warning("Not reconnecting: no credentials to reconnect with")
            return None
        return self._scheduler.schedule(self._reconnect)

    def _reconnect(self) -> None:
        if self._token and self._user_id:
            self.start(self._token, self._user_id)

    def _retire_generation(self) -> None:
        """Orphan the current socket and its callbacks."""
        self._generation += 1
        self._socket = None
        self._reader_task = None
        self._teardown_session()

    def _teardown_session(self) -> None:
        self._heartbeat.stop()
        self._session_id = None
        self._subscriber.reset()
        for task in list(self._subscription_tasks):
            task.cancel()
        self._subscription_tasks.clear()

    async def _close_socket(self, socket: SocketProtocol) -> None:
        try:
            await socket.close(WSCloseCode.NORMAL, WSConstants.NORMAL_CLOSE_REASON)
        except (ConnectionClosed, ConnectionError, OSError) as e:
            logger.debug("Error closing socket", error=str(e))

    async def _send_ping(self) -> bool:
        if self._state is not ConnectionState.CONNECTED:
            return False
        logger.debug("Sending ping")
        return await self.send(Frame.ping())

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats(self) -> dict[str, Any]:
        """Get connection statistics."""
        return {
            "state": self._state.value,
            "session_id": self._session_id,
            "generation": self._generation,
            "connections_opened": self._connections_opened,
            "frames_received": self._frames_received,
            "frames_sent": self._frames_sent,
            "last_close_code": self._last_close_code,
            "channels": self._subscriber.get_stats(),
            "reconnect": self._scheduler.get_stats(),
            "heartbeat": self._heartbeat.get_stats(),
            "router": self._router.get_stats(),
            "auth": self._auth_client.get_stats(),
        }

    async def aclose(self) -> None:
        """Stop the connection and release the HTTP client."""
        await self.stop()
        await self._auth_client.aclose()
