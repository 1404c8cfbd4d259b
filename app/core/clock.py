# app/core/clock.py
"""
Injectable source of the current instant.

Everything that asks "is this in the past?" or "what is today?" goes through a
Clock so tests can pin time with FrozenClock.
"""

from datetime import datetime, timedelta, timezone


class Clock:
    """Returns the current time as an aware UTC datetime."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    def __init__(self, frozen_at: datetime):
        if frozen_at.tzinfo is None:
            frozen_at = frozen_at.replace(tzinfo=timezone.utc)
        self._now = frozen_at.astimezone(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests."""
    return system_clock
