"""
Downstream consumers of dispatched events.

The router forwards notification and settings payloads verbatim to a
NotificationSink and a SettingsSink. What happens next (rendering, sounds,
opening downloads) belongs to the host application; the default sinks
below decode the payloads into records and hand them to a `notify`
callable, which logs unless the host supplies its own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol
from urllib.parse import quote

from shared.config.logging import get_logger
from ws_client.components.events.types import NotificationType

logger = get_logger(__name__)


# Download status reported by the server once the file is available
DOWNLOAD_READY_STATUS = 4
# Point downloads delivered as a stored file rather than an external URL
POINT_DOWNLOAD_STORED_STATUS = 7

MAINTENANCE_SETTING_KEY = "site_maintenance"


# =============================================================================
# Protocols
# =============================================================================


class NotificationSink(Protocol):
    async def handle_notification(self, payload: Any) -> None: ...


class SettingsSink(Protocol):
    async def handle_settings(self, payload: Any) -> None: ...


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True, slots=True)
class Notification:
    """
    A decoded notification.

    Attributes:
        type: Notification class, None when the server sent an unknown one.
        title: Title shown to the user.
        message: Body shown to the user.
        download_url: Set when the notification announces a ready download.
        raw: Decoded payload.
    """

    type: NotificationType | None
    title: str
    message: str
    download_url: str | None = None
    raw: Any = None

    @property
    def is_download_ready(self) -> bool:
        return self.download_url is not None


@dataclass(frozen=True, slots=True)
class MaintenanceNotice:
    """Site maintenance status change."""

    ongoing: bool

    @property
    def message(self) -> str:
        if self.ongoing:
            return "Site maintenance is ongoing"
        return "Site maintenance has finished"


def _decode(payload: Any) -> Any:
    if isinstance(payload, str):
        try:
            return json.loads(payload)
        except ValueError:
            logger.warning("Failed to decode payload string")
            return payload
    return payload


async def _log_notification(record: Notification | MaintenanceNotice) -> None:
    logger.info("Notification", record=record)


# =============================================================================
# Default Sinks
# =============================================================================


class LoggingNotificationSink:
    """
    Turns notification payloads into Notification records.

    Download notifications that report a finished download also get the
    URL the file can be fetched from, authenticated with `_token`.
    """

    def __init__(
        self,
        api_base_url: str,
        token_provider: Callable[[], str | None],
        notify: Callable[[Notification], Awaitable[None]] | None = None,
    ) -> None:
        """
        Args:
            api_base_url: Base URL of the download API.
            token_provider: Returns the current bearer token, if any.
            notify: Receives each record. Defaults to logging it.
        """
        self._api_base_url = api_base_url.rstrip("/")
        self._token_provider = token_provider
        self._notify = notify or _log_notification

    async def handle_notification(self, payload: Any) -> None:
        record = self.build(payload)
        if record is None:
            return
        await self._notify(record)

    def build(self, payload: Any) -> Notification | None:
        """
        Decode a notification payload.

        Returns:
            The record, or None when the payload has no `type`.
        """
        data = _decode(payload)
        if not isinstance(data, dict) or not data.get("type"):
            logger.error("No notification type found", payload=data)
            return None

        kind = NotificationType.from_value(data["type"])
        if kind is None:
            logger.info("Unhandled notification type", type=data["type"])

        body = data.get("data") if isinstance(data.get("data"), dict) else {}
        download_url = None
        if kind is NotificationType.DOWNLOAD:
            download_url = self._download_url(body.get("data"))
        elif kind is NotificationType.POINT_DOWNLOAD:
            download_url = self._point_download_url(body.get("data"))

        return Notification(
            type=kind,
            title=str(body.get("title", "")),
            message=str(body.get("message", "")),
            download_url=download_url,
            raw=data,
        )

    def _with_token(self, url: str) -> str | None:
        token = self._token_provider()
        if not token:
            logger.error("No token available for download")
            return None
        if "_token=" in url:
            return url
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}_token={quote(token)}"

    def _stored_file_url(self, path: str, item: dict[str, Any]) -> str | None:
        downloaded = item.get("downloaded") if isinstance(item.get("downloaded"), dict) else {}
        file_name = downloaded.get("file_name")
        if item.get("id") is None or not file_name:
            return None
        return self._with_token(f"{self._api_base_url}{path}/{item['id']}/file/{file_name}")

    def _download_url(self, item: Any) -> str | None:
        if not isinstance(item, dict):
            return None
        if _as_int(item.get("download_status_id")) != DOWNLOAD_READY_STATUS:
            logger.info("Download not ready yet", status=item.get("download_status_id"))
            return None
        return self._stored_file_url("/api/v2/downloads", item)

    def _point_download_url(self, item: Any) -> str | None:
        if not isinstance(item, dict):
            return None
        status = _as_int(item.get("point_download_status_id"))
        if status == DOWNLOAD_READY_STATUS and item.get("download_url"):
            return self._with_token(str(item["download_url"]))
        if status == POINT_DOWNLOAD_STORED_STATUS:
            return self._stored_file_url("/v2/point_downloads", item)
        return None


class MaintenanceSettingsSink:
    """Watches settings broadcasts for the site maintenance flag."""

    def __init__(self, notify: Callable[[MaintenanceNotice], Awaitable[None]] | None = None) -> None:
        self._notify = notify or _log_notification

    async def handle_settings(self, payload: Any) -> None:
        notice = self.build(payload)
        if notice is not None:
            await self._notify(notice)

    def build(self, payload: Any) -> MaintenanceNotice | None:
        data = _decode(payload)
        settings = data.get("settings") if isinstance(data, dict) else None
        if not isinstance(settings, list):
            return None

        for setting in settings:
            if isinstance(setting, dict) and setting.get("key") == MAINTENANCE_SETTING_KEY:
                value = _decode(setting.get("val"))
                return MaintenanceNotice(ongoing=_as_int(value) == 1)
        return None


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
