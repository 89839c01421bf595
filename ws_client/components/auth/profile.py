"""
Profile lookup: resolves the user id that belongs to a bearer token.

The private notification channel is keyed by user id, which the token
source does not always provide.
"""

from __future__ import annotations

import httpx
from pydantic import ValidationError

from shared.config.logging import get_logger
from shared.utils.exceptions import ProfileFetchError
from ws_client.components.auth.schemas import ProfileResponse

logger = get_logger(__name__)


class ProfileClient:
    """Fetches `GET /api/v2/profile` and extracts `data.id`."""

    def __init__(
        self,
        profile_url: str,
        *,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._profile_url = profile_url
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def fetch_user_id(self, token: str) -> str:
        """
        Resolve the user id for a token.

        Raises:
            ProfileFetchError: On transport failure, a non-2xx status, or a
                               response without a user id.
        """
        client = self._get_client()
        try:
            response = await client.get(
                self._profile_url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise ProfileFetchError("Profile request failed", error=f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise ProfileFetchError("Profile request failed", status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ProfileFetchError("Profile response is not JSON") from e

        try:
            user_id = ProfileResponse.model_validate(body).data.id
        except ValidationError as e:
            raise ProfileFetchError("Profile response missing id", errors=e.error_count()) from e

        logger.info("User profile fetched", user_id=user_id)
        return str(user_id)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
