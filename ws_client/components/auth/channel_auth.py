"""
Private channel authorization.

A private channel subscription must carry a signature issued by the
application server for the pair (session id, channel name). The signature
is requested over HTTP, authenticated with the user's bearer token, and is
only valid for the session it was issued for.

The request is bounded by a hard timeout and is cancelled when it expires,
so a hung network call cannot hold a subscription open indefinitely.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from shared.config.logging import get_logger, mask_token
from ws_client.components.auth.schemas import ChannelAuthResponse
from ws_client.components.core.constants import WSConstants

logger = get_logger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class AuthResult:
    """
    Result of one authorization exchange.

    Attributes:
        success: Whether a signature was obtained.
        signature: The `auth` value to send with the subscribe frame.
        error_message: Human-readable reason if failed.
        reason: Short reason code for logs and stats.
    """

    success: bool
    signature: str | None = None
    error_message: str | None = None
    reason: str | None = None

    @classmethod
    def ok(cls, signature: str) -> "AuthResult":
        """Create successful authorization result."""
        return cls(success=True, signature=signature)

    @classmethod
    def fail(cls, message: str, reason: str = "auth_failed") -> "AuthResult":
        """Create failed authorization result."""
        return cls(success=False, error_message=message, reason=reason)

    @classmethod
    def timeout(cls, seconds: float) -> "AuthResult":
        return cls.fail(f"Authorization timed out after {seconds:g}s", reason="timeout")


# =============================================================================
# Client
# =============================================================================


class ChannelAuthClient:
    """
    Obtains signed authorizations for private channels.

    Usage:
        auth = ChannelAuthClient("https://api.example.com/api/b/broadcasting/auth")
        result = await auth.authorize("123.456", "private-App.Models.User.42", token)
        if result.success:
            subscribe_with(result.signature)
    """

    def __init__(
        self,
        auth_url: str,
        *,
        timeout: float = WSConstants.AUTH_TIMEOUT,
        origin: str | None = None,
        accept_language: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the authorization client.

        Args:
            auth_url: Full URL of the broadcasting auth endpoint.
            timeout: Hard timeout in seconds for one exchange.
            origin: Value for the Origin / x-host-origin headers.
            accept_language: Accept-Language header value.
            client: Shared httpx client. When omitted a client is created
                    lazily and closed by `aclose()`.
        """
        self._auth_url = auth_url
        self._timeout = timeout
        self._origin = origin
        self._accept_language = accept_language
        self._client = client
        self._owns_client = client is None
        self._requests = 0
        self._failures = 0

    @property
    def timeout(self) -> float:
        return self._timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    def _headers(self, token: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if self._accept_language:
            headers["Accept-Language"] = self._accept_language
        if self._origin:
            headers["Origin"] = self._origin
            headers["x-host-origin"] = self._origin
        return headers

    async def authorize(self, session_id: str, channel_name: str, token: str) -> AuthResult:
        """
        Request a signature for one channel in one session.

        Never raises for network or server failures; they are returned as a
        failed AuthResult.

        Args:
            session_id: Server-assigned session (socket) id.
            channel_name: Full channel name, including the `private-` prefix.
            token: Bearer token of the user.

        Returns:
            AuthResult with the signature on success.
        """
        self._requests += 1
        result = await self._exchange(session_id, channel_name, token)
        if not result.success:
            self._failures += 1
            logger.error(
                "Private channel authorization failed",
                channel=channel_name,
                session_id=session_id,
                reason=result.reason,
                error=result.error_message,
            )
        else:
            logger.debug("Private channel authorized", channel=channel_name, session_id=session_id)
        return result

    async def _exchange(self, session_id: str, channel_name: str, token: str) -> AuthResult:
        client = self._get_client()
        logger.debug(
            "Requesting channel authorization",
            channel=channel_name,
            session_id=session_id,
            token=mask_token(token),
        )

        try:
            response = await asyncio.wait_for(
                client.post(
                    self._auth_url,
                    data={"socket_id": session_id, "channel_name": channel_name},
                    headers=self._headers(token),
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            return AuthResult.timeout(self._timeout)
        except httpx.HTTPError as e:
            return AuthResult.fail(f"{type(e).__name__}: {e}", reason="transport_error")

        if not response.is_success:
            return AuthResult.fail(
                f"Auth endpoint returned HTTP {response.status_code}",
                reason="http_status",
            )

        try:
            body = response.json()
        except ValueError:
            return AuthResult.fail("Auth response is not JSON", reason="invalid_response")

        try:
            parsed = ChannelAuthResponse.model_validate(body)
        except ValidationError:
            return AuthResult.fail("Auth response has no signature", reason="invalid_response")

        return AuthResult.ok(parsed.auth)

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def get_stats(self) -> dict[str, int]:
        return {"requests": self._requests, "failures": self._failures}
