import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import Settings
from app.services.balance_manager import BalanceManager


class FakeRepository:
    """In-memory stand-in for the data-access layer that counts calls."""

    def __init__(self):
        self.friends = {}
        self.groups = {}
        self.expenses = {}
        self.calls = {"get_friends": 0, "get_user_groups": 0, "get_group_expenses": 0}
        self.fail_with = None
        self.failing_groups = set()
        self.delays = {}

    async def _pause(self, user_id):
        delay = self.delays.get(user_id)
        if delay:
            await asyncio.sleep(delay)

    async def get_friends(self, user_id):
        self.calls["get_friends"] += 1
        snapshot = list(self.friends.get(user_id, []))
        await self._pause(user_id)
        if self.fail_with:
            raise self.fail_with
        return snapshot

    async def get_user_groups(self, user_id):
        self.calls["get_user_groups"] += 1
        if self.fail_with:
            raise self.fail_with
        return list(self.groups.get(user_id, []))

    async def get_group_expenses(self, group_id):
        self.calls["get_group_expenses"] += 1
        if group_id in self.failing_groups:
            raise ConnectionError("expenses unavailable")
        return list(self.expenses.get(group_id, []))


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        BALANCE_CACHE_TTL_SECONDS=300,
        BALANCE_REFRESH_DEBOUNCE_MS=1000,
        BALANCE_CHANGE_DEBOUNCE_MS=500,
    )


@pytest.fixture
def manager(repository, settings, clock):
    manager = BalanceManager(repository, settings, clock=clock)
    yield manager
    manager.close()
