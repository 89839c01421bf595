"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Realtime client settings with defaults for the hosted service."""

    # Realtime socket endpoint (Pusher protocol)
    ws_host: str = "socket.digitalpanel.id"
    ws_port: int = 2087
    ws_app_key: str = "k96fb34aa1623a718b629a5db09591946"
    ws_scheme: str = "wss"
    # Protocol query string sent by the reference JS client; the server
    # negotiates features from these values
    ws_protocol_version: int = 7
    ws_client_name: str = "js"
    ws_client_version: str = "7.0.3"

    # Private channel authorization
    auth_base_url: str = "https://api.digitalpanel.id"
    auth_endpoint: str = "/api/b/broadcasting/auth"
    # The auth endpoint only accepts requests that look like they come from the web app
    auth_origin: str = "https://app.digitalpanel.id"
    auth_accept_language: str = "en-US,en;q=0.9,id;q=0.8"

    # Profile API (used to resolve the user id from a token)
    api_base_url: str = "https://api.digitalpanel.id"
    profile_endpoint: str = "/api/v2/profile"
    profile_fetch_timeout: float = 30.0

    # Connection behaviour
    ws_heartbeat_interval: float = 30.0  # Seconds between keep-alive pings
    ws_auth_timeout: float = 10.0  # Hard timeout for one channel authorization
    ws_open_timeout: float = 15.0  # Socket handshake timeout
    ws_close_timeout: float = 5.0

    # Reconnection - delay = min(base * 2**attempt, max)
    ws_reconnect_base_delay: float = 5.0
    ws_reconnect_max_delay: float = 300.0
    ws_max_reconnect_attempts: int = 10

    # Token intake: the same token re-announced inside this window is ignored
    token_dedupe_window: float = 10 * 60

    # Fixed channel set
    settings_channel: str = "setting"
    user_channel_prefix: str = "App.Models.User."

    # Environment
    environment: str = "development"
    debug: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def ws_url(self) -> str:
        """Full socket URL including the app key and protocol query string."""
        return (
            f"{self.ws_scheme}://{self.ws_host}:{self.ws_port}/app/{self.ws_app_key}"
            f"?protocol={self.ws_protocol_version}&client={self.ws_client_name}"
            f"&version={self.ws_client_version}&flash=false"
        )

    @property
    def auth_url(self) -> str:
        return f"{self.auth_base_url.rstrip('/')}{self.auth_endpoint}"

    @property
    def profile_url(self) -> str:
        return f"{self.api_base_url.rstrip('/')}{self.profile_endpoint}"

    def validate_production_settings(self) -> list[str]:
        """
        Validate that the configuration is safe for production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if self.environment == "production":
            if self.ws_scheme != "wss":
                errors.append("WS_SCHEME must be 'wss' in production")

            for name in ("auth_base_url", "api_base_url"):
                if not getattr(self, name).startswith("https://"):
                    errors.append(f"{name.upper()} must use https in production")

            if self.debug:
                errors.append("DEBUG must be False in production")

        if self.ws_reconnect_max_delay < self.ws_reconnect_base_delay:
            errors.append("WS_RECONNECT_MAX_DELAY must be >= WS_RECONNECT_BASE_DELAY")

        if self.ws_max_reconnect_attempts < 1:
            errors.append("WS_MAX_RECONNECT_ATTEMPTS must be >= 1")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()
