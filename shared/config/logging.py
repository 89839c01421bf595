"""
Centralized structured logging for the realtime client.
Uses Python's standard logging with JSON formatting for production.

Loggers accept keyword context:
    logger.info("Subscribed to channel", channel="setting")

Every record is stamped with the connection it belongs to (generation and
session id, see `bind_connection`), and credential-bearing fields are
masked before they reach a handler.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


# Keys whose values are credentials and never logged in full
SENSITIVE_KEYS = frozenset({"token", "auth", "signature", "authorization"})

# (generation, session id) of the connection the current task works for
_connection: ContextVar[tuple[int, str | None] | None] = ContextVar("ws_connection", default=None)


def bind_connection(generation: int, session_id: str | None = None) -> None:
    """
    Tag log records emitted from the current task with a connection.

    Tasks created afterwards inherit the tag, so the heartbeat and the
    subscription tasks log under the session that started them.
    """
    _connection.set((generation, session_id))


def current_connection() -> tuple[int, str | None] | None:
    return _connection.get()


def redact(data: dict[str, Any]) -> dict[str, Any]:
    """Mask credential values in structured log data."""
    return {
        key: mask_token(value) if key.lower() in SENSITIVE_KEYS and isinstance(value, str) else value
        for key, value in data.items()
    }


class ConnectionContextFilter(logging.Filter):
    """Copies the bound connection onto each record as `connection`."""

    def filter(self, record: logging.LogRecord) -> bool:
        bound = _connection.get()
        if bound is None:
            record.connection = None
        else:
            generation, session_id = bound
            record.connection = f"g{generation}" + (f"/{session_id}" if session_id else "")
        return True


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    One object per line, for log shippers.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        connection = getattr(record, "connection", None)
        if connection:
            entry["connection"] = connection

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            entry["data"] = redact(extra_data)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            entry["source"] = f"{record.filename}:{record.lineno} in {record.funcName}"

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable, coloured single-line output for a terminal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        clock = datetime.now().strftime("%H:%M:%S")

        connection = getattr(record, "connection", None)
        tag = f"{self.DIM}[{connection}]{self.RESET} " if connection else ""

        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {tag}{record.name}: {record.getMessage()}"

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            line += " (" + ", ".join(f"{k}={v}" for k, v in redact(extra_data).items()) + ")"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


class StructuredLogger(logging.Logger):
    """
    Logger whose level methods take keyword context.

    Keyword arguments other than `exc_info` and `extra` become the
    record's `extra_data`.
    """

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        **context: Any,
    ) -> None:
        if not self.isEnabledFor(level):
            return
        extra = dict(extra or {})
        extra["extra_data"] = context or None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    JSON lines in production, coloured text otherwise. Chatty transport
    libraries are held at WARNING.
    """
    log_level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(ConnectionContextFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    for noisy in ("httpx", "httpcore", "websockets"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Connection acknowledged", session_id="123.456")
        logger.error("Authorization failed", channel=name, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


def mask_token(token: str | None) -> str:
    """
    Mask a bearer token for logging.

    Keeps the first 10 characters so log lines can be matched to a
    credential without exposing it.
    """
    if not token:
        return "<no-token>"

    if len(token) <= 10:
        return token[:2] + "***"
    return f"{token[:10]}..."


def mask_user_id(user_id: int | str | None) -> str:
    """Mask a user id down to its first two characters."""
    if user_id is None:
        return "<no-user>"

    user_str = str(user_id)
    if len(user_str) <= 2:
        return user_str[0] + "***"
    return f"{user_str[:2]}***"


# Pre-configured loggers
ws_client_logger = get_logger("ws_client")
connection_audit_logger = get_logger("ws_client.audit")


def audit_connection_event(
    event_type: str,
    *,
    url: str | None = None,
    code: int | None = None,
    reason: str | None = None,
    **extra: Any,
) -> None:
    """
    Record a connection lifecycle event (OPEN, CLOSE, RECONNECT_SUSPENDED).

    Abnormal closes and suspended recovery are logged at WARNING, the rest
    at INFO.
    """
    level = logging.INFO
    if event_type == "RECONNECT_SUSPENDED" or (code is not None and code != 1000):
        level = logging.WARNING

    connection_audit_logger._log_with_data(
        level,
        f"WS_AUDIT: {event_type}",
        (),
        event_type=event_type,
        url=url,
        code=code,
        reason=reason,
        **extra,
    )
