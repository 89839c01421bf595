"""
Channel subscription for the realtime client.

Public channels are subscribed with a bare subscribe frame. Private
channels first need a signature from the ChannelAuthClient; the subscribe
frame is only sent when that succeeds and the session it was issued for is
still the live one.

Channel state does not survive a reconnect: the ConnectionManager calls
`reset()` on every close and the next acknowledged session subscribes the
fixed channel set from scratch.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Awaitable, Callable

from shared.config.logging import get_logger
from ws_client.components.auth.channel_auth import ChannelAuthClient
from ws_client.components.core.constants import PRIVATE_CHANNEL_PREFIX
from ws_client.components.events.types import Frame

logger = get_logger(__name__)


class ChannelKind(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(slots=True)
class Channel:
    """
    One channel in the current session.

    Attributes:
        name: Full channel name as sent on the wire.
        kind: PUBLIC or PRIVATE.
        subscribed: Set when the server confirms the subscription.
        auth_signature: Signature used for a private subscription.
        session_id: Session the subscription was attempted in.
    """

    name: str
    kind: ChannelKind
    subscribed: bool = False
    auth_signature: str | None = None
    session_id: str | None = None


def private_channel_name(name: str) -> str:
    """Add the `private-` prefix unless the name already has it."""
    if name.startswith(PRIVATE_CHANNEL_PREFIX):
        return name
    return f"{PRIVATE_CHANNEL_PREFIX}{name}"


class ChannelSubscriber:
    """
    Issues subscribe / unsubscribe frames and tracks channel state.

    Args:
        send: Coroutine that transmits a frame, returning False when the
              socket is not open.
        auth_client: Authorization client for private channels.
        is_current_session: Predicate telling whether a session id is still
                            the live one.
    """

    def __init__(
        self,
        send: Callable[[Frame], Awaitable[bool]],
        auth_client: ChannelAuthClient,
        is_current_session: Callable[[str], bool],
    ) -> None:
        self._send = send
        self._auth_client = auth_client
        self._is_current_session = is_current_session
        self._channels: dict[str, Channel] = {}

    @property
    def channels(self) -> MappingProxyType[str, Channel]:
        """Read-only view of the channels of the current session."""
        return MappingProxyType(self._channels)

    async def subscribe_public(self, name: str) -> bool:
        """
        Subscribe to a public channel.

        Returns:
            True if the subscribe frame was sent.
        """
        self._channels[name] = Channel(name=name, kind=ChannelKind.PUBLIC)
        logger.info("Subscribing to channel", channel=name)
        return await self._send(Frame.subscribe(name))

    async def subscribe_private(self, name: str, session_id: str, token: str) -> bool:
        """
        Authorize and subscribe to a private channel.

        On failure the channel stays unsubscribed; there is no retry inside
        the session.

        Args:
            name: Channel name, with or without the `private-` prefix.
            session_id: Session the authorization is requested for.
            token: Bearer token of the user.

        Returns:
            True if the subscribe frame was sent.
        """
        channel_name = private_channel_name(name)
        channel = Channel(name=channel_name, kind=ChannelKind.PRIVATE, session_id=session_id)
        self._channels[channel_name] = channel
        logger.info("Subscribing to private channel", channel=channel_name, session_id=session_id)

        result = await self._auth_client.authorize(session_id, channel_name, token)
        if not result.success:
            logger.warning(
                "Private channel left unsubscribed",
                channel=channel_name,
                reason=result.reason,
            )
            return False

        if not self._is_current_session(session_id):
            logger.info(
                "Session changed during authorization, dropping subscription",
                channel=channel_name,
                session_id=session_id,
            )
            return False

        channel.auth_signature = result.signature
        return await self._send(Frame.subscribe(channel_name, auth=result.signature))

    async def subscribe_defaults(
        self,
        session_id: str,
        user_id: str,
        token: str,
        *,
        settings_channel: str,
        user_channel_prefix: str,
    ) -> None:
        """
        Subscribe the fixed channel set of a session.

        The public settings channel is sent first and does not depend on
        the outcome of the private authorization.
        """
        logger.info("Subscribing to channels", session_id=session_id)
        await self.subscribe_public(settings_channel)
        await self.subscribe_private(f"{user_channel_prefix}{user_id}", session_id, token)

    async def unsubscribe(self, name: str) -> bool:
        """Leave a channel of the current session."""
        if self._channels.pop(name, None) is None:
            return False
        logger.info("Unsubscribing from channel", channel=name)
        return await self._send(Frame.unsubscribe(name))

    def mark_subscribed(self, name: str | None) -> bool:
        """
        Record the server's subscription confirmation.

        Returns:
            True if the channel is known in the current session.
        """
        channel = self._channels.get(name) if name else None
        if channel is None:
            return False
        channel.subscribed = True
        return True

    def reset(self) -> None:
        """Discard all channel state (connection closed)."""
        self._channels.clear()

    def get_stats(self) -> dict[str, bool]:
        """Subscription status by channel name."""
        return {name: channel.subscribed for name, channel in self._channels.items()}
