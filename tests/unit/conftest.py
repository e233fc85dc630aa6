"""Shared fixtures for unit tests."""

from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest


class FakeUnitOfWork:
    """Fake Unit of Work with the three repository mocks for unit testing."""

    def __init__(self) -> None:
        self.notifications = AsyncMock()
        self.templates = AsyncMock()
        self.users = AsyncMock()
        # No stored preferences unless a test says otherwise
        self.notifications.get_preference.return_value = None
        self.committed = False
        self.rolled_back = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


class FixedClock:
    """Settable clock standing in for the organization's wall clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def clock() -> FixedClock:
    """Wednesday 2025-01-15 at noon."""
    return FixedClock(datetime(2025, 1, 15, 12, 0))


@pytest.fixture
def user_id() -> int:
    return 42
