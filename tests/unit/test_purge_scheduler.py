"""Tests for the daily purge of unactivated accounts."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from skc.application.services.user_service import UserService
from skc.services.purge_scheduler import StaleAccountPurger, seconds_until_next_run


@pytest.mark.parametrize(
    ("now", "expected"),
    [
        (datetime(2024, 3, 1, 0, 30, tzinfo=timezone.utc), 30 * 60),
        (datetime(2024, 3, 1, 1, 0, tzinfo=timezone.utc), 24 * 3600),
        (datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc), 13 * 3600),
    ],
)
def test_seconds_until_next_run(now, expected):
    assert seconds_until_next_run(now, 1) == expected


def test_run_once_delegates_to_user_service():
    user_service = MagicMock(spec=UserService)
    user_service.remove_not_activated_users.return_value = 3
    purger = StaleAccountPurger(user_service)

    assert purger.run_once() == 3


def test_invalid_hour_is_rejected():
    with pytest.raises(ValueError):
        StaleAccountPurger(MagicMock(spec=UserService), hour_utc=24)


def test_start_and_stop():
    user_service = MagicMock(spec=UserService)
    purger = StaleAccountPurger(user_service)

    async def scenario():
        await purger.start()
        assert purger.running
        await purger.stop()
        assert not purger.running

    asyncio.run(scenario())
    user_service.remove_not_activated_users.assert_not_called()


def test_runs_when_the_hour_is_reached():
    user_service = MagicMock(spec=UserService)
    user_service.remove_not_activated_users.return_value = 0
    # One microsecond before the purge hour, so the first wait is immediate.
    purger = StaleAccountPurger(
        user_service,
        hour_utc=1,
        clock=lambda: datetime(2024, 3, 1, 0, 59, 59, 999999, tzinfo=timezone.utc),
    )

    async def scenario():
        await purger.start()
        for _ in range(100):
            if user_service.remove_not_activated_users.called:
                break
            await asyncio.sleep(0.01)
        await purger.stop()

    asyncio.run(scenario())
    assert user_service.remove_not_activated_users.called


def test_scheduled_purge_runs_off_the_event_loop():
    loop_seen = []

    def remove_not_activated_users():
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            loop_seen.append(False)
        else:
            loop_seen.append(True)
        return 0

    user_service = MagicMock(spec=UserService)
    user_service.remove_not_activated_users.side_effect = remove_not_activated_users
    purger = StaleAccountPurger(
        user_service,
        hour_utc=1,
        clock=lambda: datetime(2024, 3, 1, 0, 59, 59, 999999, tzinfo=timezone.utc),
    )

    async def scenario():
        await purger.start()
        for _ in range(100):
            if loop_seen:
                break
            await asyncio.sleep(0.01)
        await purger.stop()

    asyncio.run(scenario())
    assert loop_seen and loop_seen[0] is False
