"""
Realtime client wiring.

Builds the ConnectionManager, its components and the TokenIntake from
settings, and manages their lifetime.

Usage:
    async with client_lifespan() as client:
        await client.intake.on_token(token)
        ...
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from shared.config.logging import setup_logging, ws_client_logger as logger
from shared.config.settings import Settings, settings as default_settings
from ws_client.components.auth.profile import ProfileClient
from ws_client.components.connection.token_guard import TokenProcessingGuard
from ws_client.components.events.sinks import (
    LoggingNotificationSink,
    MaintenanceSettingsSink,
    NotificationSink,
    SettingsSink,
)
from ws_client.connection_manager import ConnectionManager, Connector
from ws_client.token_intake import TokenIntake


@dataclass
class RealtimeClient:
    """The wired-up client: manager, token intake and the profile client they share."""

    manager: ConnectionManager
    intake: TokenIntake
    profile_client: ProfileClient

    def get_stats(self) -> dict[str, Any]:
        return {
            "connection": self.manager.get_stats(),
            "intake": self.intake.get_stats(),
        }

    async def aclose(self) -> None:
        await self.manager.aclose()
        await self.profile_client.aclose()


def build_client(
    config: Settings | None = None,
    *,
    notification_sink: NotificationSink | None = None,
    settings_sink: SettingsSink | None = None,
    connect: Connector | None = None,
) -> RealtimeClient:
    """
    Create a client from settings.

    Args:
        config: Settings to build from (process settings if omitted).
        notification_sink: Notification consumer (logging sink if omitted).
        settings_sink: Settings consumer (maintenance sink if omitted).
        connect: Socket opener, mainly for tests.
    """
    config = config or default_settings

    manager_ref: list[ConnectionManager] = []

    def current_token() -> str | None:
        return manager_ref[0].token if manager_ref else None

    manager = ConnectionManager(
        notification_sink or LoggingNotificationSink(config.api_base_url, current_token),
        settings_sink or MaintenanceSettingsSink(),
        connect=connect,
        config=config,
    )
    manager_ref.append(manager)

    profile_client = ProfileClient(config.profile_url, timeout=config.profile_fetch_timeout)
    intake = TokenIntake(
        manager,
        profile_client,
        TokenProcessingGuard(window=config.token_dedupe_window),
    )
    return RealtimeClient(manager=manager, intake=intake, profile_client=profile_client)


@asynccontextmanager
async def client_lifespan(
    config: Settings | None = None,
    **kwargs: Any,
) -> AsyncIterator[RealtimeClient]:
    """
    Client lifespan handler.

    Configures logging, yields a built client and shuts it down with a
    normal closure on exit.
    """
    config = config or default_settings
    setup_logging()
    errors = config.validate_production_settings()
    for error in errors:
        logger.warning("Configuration problem", error=error)

    logger.info("Starting realtime client", url=config.ws_url, env=config.environment)
    client = build_client(config, **kwargs)
    try:
        yield client
    finally:
        logger.info("Shutting down realtime client")
        await client.aclose()
        logger.info("Realtime client shutdown complete")


async def run_client(
    token: str,
    user_id: str | None = None,
    *,
    config: Settings | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Announce a token and keep the client running until `stop_event` is set.

    Without a stop event this runs until cancelled.
    """
    stop_event = stop_event or asyncio.Event()
    async with client_lifespan(config) as client:
        await client.intake.on_token(token, user_id)
        await stop_event.wait()
