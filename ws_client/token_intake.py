"""
Token intake: turns token announcements into connection starts.

The host application announces the bearer token whenever it (re)loads. An
announcement is deduplicated by the TokenProcessingGuard, the user id is
resolved through the profile API when it is not supplied, and the result is
handed to `ConnectionManager.rotate()`.
"""

from __future__ import annotations

from typing import Any

from shared.config.logging import get_logger, mask_token, mask_user_id
from shared.utils.exceptions import ProfileFetchError
from ws_client.components.auth.profile import ProfileClient
from ws_client.components.connection.token_guard import TokenProcessingGuard
from ws_client.connection_manager import ConnectionManager

logger = get_logger(__name__)


class TokenIntake:
    """
    Entry point for credentials.

    Usage:
        intake = TokenIntake(manager, ProfileClient(settings.profile_url))
        await intake.on_token(token)
    """

    def __init__(
        self,
        manager: ConnectionManager,
        profile_client: ProfileClient,
        guard: TokenProcessingGuard | None = None,
    ) -> None:
        self._manager = manager
        self._profile_client = profile_client
        self._guard = guard or TokenProcessingGuard()
        # user id resolved for the last token, so a rotation back to it skips the fetch
        self._known_user: tuple[str, str] | None = None
        self._accepted = 0
        self._deduplicated = 0
        self._profile_failures = 0

    @property
    def guard(self) -> TokenProcessingGuard:
        return self._guard

    async def on_token(self, token: str, user_id: str | None = None) -> bool:
        """
        Handle a token announcement.

        Args:
            token: Bearer token announced by the host.
            user_id: User id, when the host knows it.

        Returns:
            True if the announcement reached the connection manager.
        """
        if not token:
            logger.warning("Ignoring empty token announcement")
            return False

        if self._guard.in_flight:
            logger.info("Token processing already in progress, skipping", token=mask_token(token))
            return False

        if not self._guard.should_process(token):
            self._deduplicated += 1
            logger.debug("Token already processed recently, skipping", token=mask_token(token))
            return False

        if user_id:
            self._known_user = (token, user_id)
            return await self._hand_over(token, user_id)

        if self._known_user is not None and self._known_user[0] == token:
            return await self._hand_over(token, self._known_user[1])

        self._guard.begin_flight()
        try:
            resolved = await self._profile_client.fetch_user_id(token)
        except ProfileFetchError as e:
            self._profile_failures += 1
            logger.error("Failed to fetch user profile", error=str(e), token=mask_token(token))
            # Let the same token through again on its next announcement
            self._guard.forget()
            return False
        finally:
            self._guard.end_flight()

        self._known_user = (token, resolved)
        return await self._hand_over(token, resolved)

    async def _hand_over(self, token: str, user_id: str) -> bool:
        self._accepted += 1
        logger.info(
            "Token accepted, connecting",
            token=mask_token(token),
            user_id=mask_user_id(user_id),
        )
        await self._manager.rotate(token, user_id)
        return True

    def get_stats(self) -> dict[str, Any]:
        return {
            "accepted": self._accepted,
            "deduplicated": self._deduplicated,
            "profile_failures": self._profile_failures,
            "fetch_in_flight": self._guard.in_flight,
        }
