"""
Tests for settings, structured logging and exceptions.
"""

import contextvars
import json
import logging

import pytest

from shared.config.logging import (
    ConnectionContextFilter,
    DevelopmentFormatter,
    StructuredFormatter,
    StructuredLogger,
    audit_connection_event,
    bind_connection,
    get_logger,
    mask_token,
    mask_user_id,
    redact,
)
from shared.config.settings import Settings
from shared.utils.exceptions import ProfileFetchError


class TestSettings:

    def test_default_urls(self):
        config = Settings()

        assert config.ws_url == (
            "wss://socket.digitalpanel.id:2087/app/k96fb34aa1623a718b629a5db09591946"
            "?protocol=7&client=js&version=7.0.3&flash=false"
        )
        assert config.auth_url == "https://api.digitalpanel.id/api/b/broadcasting/auth"
        assert config.profile_url == "https://api.digitalpanel.id/api/v2/profile"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("WS_HEARTBEAT_INTERVAL", "15")
        monkeypatch.setenv("WS_MAX_RECONNECT_ATTEMPTS", "3")

        config = Settings()

        assert config.ws_heartbeat_interval == 15.0
        assert config.ws_max_reconnect_attempts == 3

    def test_production_validation(self):
        config = Settings(
            environment="production",
            ws_scheme="ws",
            auth_base_url="http://api.test",
            debug=True,
        )

        errors = config.validate_production_settings()

        assert "WS_SCHEME must be 'wss' in production" in errors
        assert "AUTH_BASE_URL must use https in production" in errors
        assert "DEBUG must be False in production" in errors

    def test_development_passes(self, test_settings):
        assert test_settings.validate_production_settings() == []

    def test_backoff_bounds_checked(self):
        errors = Settings(ws_reconnect_base_delay=10, ws_reconnect_max_delay=5).validate_production_settings()
        assert "WS_RECONNECT_MAX_DELAY must be >= WS_RECONNECT_BASE_DELAY" in errors


class TestStructuredLogging:

    def test_get_logger_is_structured(self):
        assert isinstance(get_logger("ws_client.test"), StructuredLogger)

    def test_keyword_context_attached(self, caplog):
        logger = get_logger("ws_client.test.context")

        with caplog.at_level(logging.INFO, logger="ws_client.test.context"):
            logger.info("Subscribed to channel", channel="setting")

        record = caplog.records[-1]
        assert record.getMessage() == "Subscribed to channel"
        assert record.extra_data == {"channel": "setting"}

    def test_disabled_level_not_emitted(self, caplog):
        logger = get_logger("ws_client.test.quiet")

        with caplog.at_level(logging.WARNING, logger="ws_client.test.quiet"):
            logger.debug("hidden", key="value")

        assert caplog.records == []

    def test_json_formatter(self):
        record = logging.LogRecord("ws_client", logging.INFO, __file__, 1, "hello", (), None)
        record.extra_data = {"session_id": "1.1"}

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["data"] == {"session_id": "1.1"}

    def test_development_formatter(self):
        record = logging.LogRecord("ws_client", logging.WARNING, __file__, 1, "careful", (), None)
        record.extra_data = {"code": 1006}

        line = DevelopmentFormatter().format(record)

        assert "careful" in line
        assert "code=1006" in line

    def test_credentials_redacted(self):
        record = logging.LogRecord("ws_client", logging.INFO, __file__, 1, "authorizing", (), None)
        record.extra_data = {"token": "eyJ0eXAiOiJKV1QiLCJhbGciOi", "channel": "setting"}

        data = json.loads(StructuredFormatter().format(record))

        assert data["data"] == {"token": "eyJ0eXAiOi...", "channel": "setting"}
        assert "JKV1Qi" not in DevelopmentFormatter().format(record)

    def test_redact_leaves_non_strings(self):
        assert redact({"auth": None, "Signature": "abcdefghijklmnop"}) == {
            "auth": None,
            "Signature": "abcdefghij...",
        }

    def test_connection_tag(self):
        def emit():
            bind_connection(3, "123.456")
            record = logging.LogRecord("ws_client", logging.INFO, __file__, 1, "hello", (), None)
            ConnectionContextFilter().filter(record)
            return record

        record = contextvars.copy_context().run(emit)

        assert record.connection == "g3/123.456"
        assert json.loads(StructuredFormatter().format(record))["connection"] == "g3/123.456"
        assert "[g3/123.456]" in DevelopmentFormatter().format(record)

    def test_unbound_record_has_no_tag(self):
        record = contextvars.copy_context().run(
            lambda: logging.LogRecord("ws_client", logging.INFO, __file__, 1, "hello", (), None)
        )
        ConnectionContextFilter().filter(record)

        assert record.connection is None
        assert "connection" not in json.loads(StructuredFormatter().format(record))

    @pytest.mark.parametrize("code,level", [(1000, logging.INFO), (1006, logging.WARNING)])
    def test_audit_close_level(self, caplog, code, level):
        with caplog.at_level(logging.INFO, logger="ws_client.audit"):
            audit_connection_event("CLOSE", url="ws://test", code=code, reason="")

        record = caplog.records[-1]
        assert record.levelno == level
        assert record.getMessage() == "WS_AUDIT: CLOSE"
        assert record.extra_data["code"] == code


class TestMasking:

    @pytest.mark.parametrize(
        "token,expected",
        [
            (None, "<no-token>"),
            ("", "<no-token>"),
            ("short", "sh***"),
            ("eyJ0eXAiOiJKV1QiLCJhbGciOi", "eyJ0eXAiOi..."),
        ],
    )
    def test_mask_token(self, token, expected):
        assert mask_token(token) == expected

    def test_mask_user_id(self):
        assert mask_user_id(None) == "<no-user>"
        assert mask_user_id(7) == "7***"
        assert mask_user_id("12345") == "12***"


class TestExceptions:

    def test_context_in_message(self):
        error = ProfileFetchError("Profile request failed", status_code=500)

        assert error.detail == "Profile request failed"
        assert error.context == {"status_code": 500}
        assert str(error) == "Profile request failed (status_code=500)"

    def test_plain_message(self):
        assert str(ProfileFetchError("Profile response missing id")) == "Profile response missing id"
