"""
Frame Value Objects for the realtime client.

Every message on the socket is a JSON object `{event, data, channel?}`.
Inbound `data` is frequently a JSON-encoded string rather than an object
(the Pusher server double-encodes payloads), so decoding is done lazily
through `Frame.payload()`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Self

from shared.utils.exceptions import FrameDecodeError
from ws_client.components.core.constants import ProtocolEvent


class NotificationType(str, Enum):
    """
    Notification classes carried in the `type` field of a notification
    payload. Values are the server-side class names.
    """

    USER = "App\\Notifications\\UserNotification"
    ORDER = "App\\Notifications\\OrderNotification"
    DOWNLOAD = "App\\Notifications\\DownloadNotification"
    POINT_DOWNLOAD = "App\\Notifications\\PointDownloadNotification"
    USER_BANNED = "App\\Notifications\\UserBannedNotification"

    @classmethod
    def from_value(cls, value: Any) -> "NotificationType | None":
        """Look up a type by its wire value, None when unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class Frame:
    """
    Immutable protocol frame.

    Attributes:
        event: Event name.
        data: Raw payload, a dict or a JSON-encoded string.
        channel: Channel the event was published on, if any.
    """

    event: str
    data: Any = field(default_factory=dict)
    channel: str | None = None

    # =========================================================================
    # Decoding
    # =========================================================================

    @classmethod
    def parse(cls, raw: str | bytes) -> Self:
        """
        Decode one inbound socket message.

        Args:
            raw: Text (or UTF-8 bytes) received from the socket.

        Returns:
            Frame instance.

        Raises:
            FrameDecodeError: If the message is not a JSON object with a
                              string `event` field.
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise FrameDecodeError("Frame is not valid UTF-8", error=str(e)) from e

        try:
            message = json.loads(raw)
        except ValueError as e:
            raise FrameDecodeError("Frame is not valid JSON", error=str(e)) from e

        if not isinstance(message, dict):
            raise FrameDecodeError("Frame is not a JSON object", kind=type(message).__name__)

        event = message.get("event")
        if not isinstance(event, str) or not event:
            raise FrameDecodeError("Frame has no event name")

        channel = message.get("channel")
        return cls(
            event=event,
            data=message.get("data", {}),
            channel=channel if isinstance(channel, str) else None,
        )

    def payload(self) -> Any:
        """
        Decoded payload.

        Strings that hold JSON are decoded; anything else is returned as is.
        """
        if isinstance(self.data, str):
            try:
                return json.loads(self.data)
            except ValueError:
                return self.data
        return self.data

    # =========================================================================
    # Encoding
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        message: dict[str, Any] = {"event": self.event, "data": self.data}
        if self.channel is not None:
            message["channel"] = self.channel
        return message

    def encode(self) -> str:
        return json.dumps(self.to_dict())

    # =========================================================================
    # Outbound frames
    # =========================================================================

    @classmethod
    def subscribe(cls, channel: str, auth: str | None = None) -> Self:
        data: dict[str, Any] = {"channel": channel}
        if auth is not None:
            data["auth"] = auth
        return cls(event=ProtocolEvent.SUBSCRIBE, data=data)

    @classmethod
    def unsubscribe(cls, channel: str) -> Self:
        return cls(event=ProtocolEvent.UNSUBSCRIBE, data={"channel": channel})

    @classmethod
    def ping(cls) -> Self:
        return cls(event=ProtocolEvent.PING, data={})

    @classmethod
    def pong(cls) -> Self:
        return cls(event=ProtocolEvent.PONG, data={})
