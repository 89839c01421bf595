"""
Tests for TokenIntake.

Tests verify:
- Repeated tokens inside the dedupe window do nothing
- User id resolution through the profile API is single-flight
- Profile failures are logged and allow a retry on the next announcement
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from shared.utils.exceptions import ProfileFetchError
from ws_client.components.connection.token_guard import TokenProcessingGuard
from ws_client.token_intake import TokenIntake


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def manager():
    manager = MagicMock()
    manager.rotate = AsyncMock(return_value=True)
    return manager


@pytest.fixture
def profile():
    client = MagicMock()
    client.fetch_user_id = AsyncMock(return_value="42")
    return client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def intake(manager, profile, clock):
    return TokenIntake(manager, profile, TokenProcessingGuard(window=600.0, clock=clock))


class TestTokenIntake:

    @pytest.mark.asyncio
    async def test_with_user_id_skips_profile_fetch(self, intake, manager, profile):
        assert await intake.on_token("tok1", "u1") is True

        profile.fetch_user_id.assert_not_awaited()
        manager.rotate.assert_awaited_once_with("tok1", "u1")

    @pytest.mark.asyncio
    async def test_resolves_user_id(self, intake, manager, profile):
        assert await intake.on_token("tok1") is True

        profile.fetch_user_id.assert_awaited_once_with("tok1")
        manager.rotate.assert_awaited_once_with("tok1", "42")

    @pytest.mark.asyncio
    async def test_same_token_inside_window_is_ignored(self, intake, manager, profile, clock):
        await intake.on_token("tok1")
        clock.now = 300.0

        assert await intake.on_token("tok1") is False

        assert profile.fetch_user_id.await_count == 1
        assert manager.rotate.await_count == 1
        assert intake.get_stats()["deduplicated"] == 1

    @pytest.mark.asyncio
    async def test_same_token_after_window_uses_cached_user(self, intake, manager, profile, clock):
        await intake.on_token("tok1")
        clock.now = 601.0

        assert await intake.on_token("tok1") is True

        assert profile.fetch_user_id.await_count == 1
        assert manager.rotate.await_count == 2

    @pytest.mark.asyncio
    async def test_new_token_fetches_again(self, intake, manager, profile):
        await intake.on_token("tok1")
        profile.fetch_user_id.return_value = "43"

        await intake.on_token("tok2")

        manager.rotate.assert_awaited_with("tok2", "43")

    @pytest.mark.asyncio
    async def test_concurrent_fetch_is_single_flight(self, intake, manager, profile):
        release = asyncio.Event()

        async def slow_fetch(token):
            await release.wait()
            return "42"

        profile.fetch_user_id.side_effect = slow_fetch

        first = asyncio.create_task(intake.on_token("tok1"))
        await asyncio.sleep(0)
        second = await intake.on_token("tok2")
        release.set()

        assert await first is True
        assert second is False
        assert profile.fetch_user_id.await_count == 1
        manager.rotate.assert_awaited_once_with("tok1", "42")
        assert intake.guard.in_flight is False

        # the skipped token was not recorded by the dedupe guard
        assert await intake.on_token("tok2") is True

    @pytest.mark.asyncio
    async def test_profile_failure_allows_retry(self, intake, manager, profile):
        profile.fetch_user_id.side_effect = ProfileFetchError("Profile request failed", status_code=500)

        assert await intake.on_token("tok1") is False

        manager.rotate.assert_not_awaited()
        assert intake.guard.in_flight is False
        assert intake.get_stats()["profile_failures"] == 1

        profile.fetch_user_id.side_effect = None
        assert await intake.on_token("tok1") is True
        manager.rotate.assert_awaited_once_with("tok1", "42")

    @pytest.mark.asyncio
    async def test_empty_token_ignored(self, intake, manager):
        assert await intake.on_token("") is False
        manager.rotate.assert_not_awaited()
