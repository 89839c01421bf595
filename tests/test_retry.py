"""
Tests for reconnect backoff and the ReconnectScheduler.
"""

import pytest

from tests.conftest import FakeLoop
from ws_client.components.resilience.retry import (
    ReconnectScheduler,
    RetryConfig,
    backoff_schedule,
    calculate_backoff_delay,
    create_reconnect_scheduler,
)


class TestRetryConfig:

    def test_defaults(self):
        config = RetryConfig()
        assert config.base_delay == 5.0
        assert config.max_delay == 300.0
        assert config.backoff_base == 2.0
        assert config.max_attempts == 10

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"base_delay": 0},
            {"base_delay": 10, "max_delay": 5},
            {"backoff_base": 0.5},
            {"max_attempts": 0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


class TestBackoffDelay:

    def test_doubles_from_five_seconds(self):
        assert [calculate_backoff_delay(n) for n in range(4)] == [5.0, 10.0, 20.0, 40.0]

    def test_capped_at_five_minutes(self):
        assert calculate_backoff_delay(6) == 300.0
        assert calculate_backoff_delay(9) == 300.0

    def test_schedule_has_one_delay_per_attempt(self):
        delays = backoff_schedule()
        assert len(delays) == 10
        assert delays[:6] == [5.0, 10.0, 20.0, 40.0, 80.0, 160.0]
        assert delays[6:] == [300.0] * 4


class TestReconnectScheduler:

    def test_schedule_arms_timer_and_counts(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(loop=loop)

        delay = scheduler.schedule(lambda: None)

        assert delay == 5.0
        assert scheduler.attempts == 1
        assert scheduler.pending is True
        assert loop.delays == [5.0]

    def test_refuses_second_timer_while_pending(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(loop=loop)
        scheduler.schedule(lambda: None)

        assert scheduler.schedule(lambda: None) is None
        assert len(loop.timers) == 1
        assert scheduler.attempts == 1

    def test_fire_clears_pending_before_retry(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(loop=loop)
        seen = []

        scheduler.schedule(lambda: seen.append(scheduler.pending))
        loop.timers[0].fire()

        assert seen == [False]
        assert scheduler.pending is False

    def test_consecutive_delays_double(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(loop=loop)

        for _ in range(3):
            scheduler.schedule(lambda: None)
            loop.timers[-1].fire()

        assert loop.delays == [5.0, 10.0, 20.0]

    def test_ceiling_refuses_and_resets(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(RetryConfig(max_attempts=3), loop=loop)

        for _ in range(3):
            assert scheduler.schedule(lambda: None) is not None
            loop.timers[-1].fire()

        assert scheduler.schedule(lambda: None) is None
        assert scheduler.attempts == 0
        assert len(loop.timers) == 3
        assert scheduler.get_stats()["exhausted_total"] == 1

        # a fresh cycle starts from the base delay again
        assert scheduler.schedule(lambda: None) == 5.0

    def test_cancel(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(loop=loop)

        assert scheduler.cancel() is False
        scheduler.schedule(lambda: None)

        assert scheduler.cancel() is True
        assert loop.timers[0].cancelled is True
        assert scheduler.pending is False
        assert scheduler.attempts == 1

    def test_reset(self):
        loop = FakeLoop()
        scheduler = ReconnectScheduler(loop=loop)
        scheduler.schedule(lambda: None)
        loop.timers[0].fire()

        scheduler.reset()

        assert scheduler.attempts == 0
        assert scheduler.schedule(lambda: None) == 5.0

    @pytest.mark.asyncio
    async def test_uses_running_loop_by_default(self):
        import asyncio

        scheduler = ReconnectScheduler(RetryConfig(base_delay=0.01, max_delay=0.01))
        fired = asyncio.Event()

        scheduler.schedule(fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1.0)

        assert scheduler.pending is False


class TestFactory:

    def test_create_from_settings_with_overrides(self):
        scheduler = create_reconnect_scheduler(base_delay=1.0, max_delay=8.0, max_attempts=4)

        assert scheduler.config == RetryConfig(base_delay=1.0, max_delay=8.0, max_attempts=4)
        assert backoff_schedule(scheduler.config) == [1.0, 2.0, 4.0, 8.0]

    def test_create_from_settings(self):
        scheduler = create_reconnect_scheduler()
        assert scheduler.config.base_delay == 5.0
        assert scheduler.config.max_attempts == 10
