"""
Pytest configuration and fixtures for realtime client tests.

The transport is replaced by an in-memory FakeSocket, HTTP by
httpx.MockTransport, and reconnect timers by a FakeLoop whose timers only
fire when a test fires them.
"""

import asyncio
import json
from typing import Any

import httpx
import pytest

from shared.config.settings import Settings
from ws_client.components.auth.channel_auth import ChannelAuthClient
from ws_client.components.connection.heartbeat import HeartbeatMonitor
from ws_client.components.resilience.retry import ReconnectScheduler, RetryConfig
from ws_client.connection_manager import ConnectionManager


AUTH_URL = "https://api.test/api/b/broadcasting/auth"
PROFILE_URL = "https://api.test/api/v2/profile"

_CLOSED = object()


# =============================================================================
# Transport fakes
# =============================================================================


class FakeSocket:
    """In-memory socket: inbound messages are fed by the test."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_calls: list[tuple[int, str]] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._incoming: asyncio.Queue = asyncio.Queue()

    @property
    def closed(self) -> bool:
        return self.close_code is not None

    @property
    def frames(self) -> list[dict[str, Any]]:
        return [json.loads(message) for message in self.sent]

    def events(self, name: str) -> list[dict[str, Any]]:
        return [frame for frame in self.frames if frame["event"] == name]

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionError("socket is closed")
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls.append((code, reason))
        self._finish(code, reason)

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        while True:
            item = await self._incoming.get()
            if item is _CLOSED:
                return
            yield item

    # Test helpers

    def feed(self, frame: dict[str, Any] | str) -> None:
        self._incoming.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def acknowledge(self, session_id: str = "123.456") -> None:
        self.feed({
            "event": "pusher:connection_established",
            "data": json.dumps({"socket_id": session_id, "activity_timeout": 120}),
        })

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Server side (or network) closes the connection."""
        self._finish(code, reason)

    def _finish(self, code: int, reason: str) -> None:
        if self.close_code is None:
            self.close_code = code
            self.close_reason = reason
            self._incoming.put_nowait(_CLOSED)


class FakeConnector:
    """Stands in for websockets.connect and records every socket it opens."""

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []
        self.failures = 0
        self.gate: asyncio.Event | None = None

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            self.failures -= 1
            raise OSError("Connection refused")
        socket = FakeSocket()
        self.sockets.append(socket)
        return socket

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


class FakeTimer:
    def __init__(self, delay: float, callback, args) -> None:
        self.delay = delay
        self._callback = callback
        self._args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        assert not self.cancelled, "cancelled timer fired"
        self._callback(*self._args)


class FakeLoop:
    """Only `call_later` is used by the scheduler."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback, *args) -> FakeTimer:
        timer = FakeTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def delays(self) -> list[float]:
        return [timer.delay for timer in self.timers]

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled]


async def settle(rounds: int = 50) -> None:
    """Let background tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# =============================================================================
# HTTP fakes
# =============================================================================


class AuthEndpoint:
    """Mock broadcasting auth endpoint, optionally held open until released."""

    def __init__(self, status_code: int = 200, hang: bool = False) -> None:
        self.status_code = status_code
        self.hang = hang
        self.requests: list[httpx.Request] = []
        self.release = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.hang:
            await self.release.wait()
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"message": "Unauthenticated."})
        return httpx.Response(200, json={"auth": "app-key:signature"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_settings():
    return Settings(
        ws_host="socket.test",
        ws_port=443,
        ws_app_key="test-key",
        auth_base_url="https://api.test",
        api_base_url="https://api.test",
        environment="test",
    )


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def auth_endpoint():
    return AuthEndpoint()


@pytest.fixture
def notification_sink():
    from unittest.mock import AsyncMock, MagicMock

    sink = MagicMock()
    sink.handle_notification = AsyncMock()
    return sink


@pytest.fixture
def settings_sink():
    from unittest.mock import AsyncMock, MagicMock

    sink = MagicMock()
    sink.handle_settings = AsyncMock()
    return sink


@pytest.fixture
def make_manager(test_settings, connector, fake_loop, auth_endpoint, notification_sink, settings_sink):
    """Factory for a ConnectionManager wired to fakes."""
    managers: list[ConnectionManager] = []

    def _make(
        *,
        auth_timeout: float = 10.0,
        heartbeat_interval: float = 3600.0,
        max_attempts: int = 10,
    ) -> ConnectionManager:
        manager = ConnectionManager(
            notification_sink,
            settings_sink,
            auth_client=ChannelAuthClient(
                AUTH_URL,
                timeout=auth_timeout,
                origin="https://app.test",
                client=auth_endpoint.client(),
            ),
            scheduler=ReconnectScheduler(RetryConfig(max_attempts=max_attempts), loop=fake_loop),
            heartbeat=HeartbeatMonitor(heartbeat_interval),
            connect=connector,
            config=test_settings,
        )
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        manager.heartbeat.stop()
