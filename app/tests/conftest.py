"""Shared fixtures for all tests."""

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, **kwargs) -> datetime:
        self.now = self.now + timedelta(seconds=seconds, **kwargs)
        return self.now


@pytest.fixture
def fake_clock():
    """Clock frozen at 2024-01-15 12:00 UTC until advanced."""
    return FakeClock()
