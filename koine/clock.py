"""Wall-clock sources for review timestamps."""

from datetime import datetime, timedelta, timezone


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock that only moves when told to. Used by tests and replays.

    Usage:
        clock = FixedClock(datetime(2024, 1, 15, 12, tzinfo=timezone.utc))
        clock.advance(minutes=10)
    """

    def __init__(self, start: datetime | None = None):
        if start is None:
            start = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime):
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        self._now = when

    def advance(self, **kwargs) -> datetime:
        """Move forward by timedelta(**kwargs) and return the new time."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
