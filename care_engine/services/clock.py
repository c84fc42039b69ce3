"""
Time context shared by every engine component.

"today" and "now" are the only clock reads in the engine. Components receive
a TimeContext instead of calling datetime directly so date-boundary behaviour
can be pinned to a fixed instant in tests.
"""

from datetime import date, datetime, timedelta
from typing import Protocol


class TimeContext(Protocol):
    """Supplies the current calendar date and local date-time."""

    def today(self) -> date: ...

    def now(self) -> datetime: ...


class SystemTimeContext:
    """Naive local wall-clock time."""

    def today(self) -> date:
        return date.today()

    def now(self) -> datetime:
        return datetime.now()


class FixedTimeContext:
    """A clock frozen at a chosen instant, moved only by advance()."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is not None:
            raise ValueError("FixedTimeContext expects a naive local datetime")
        self._instant = instant

    def today(self) -> date:
        return self._instant.date()

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> None:
        self._instant += delta


def day_bounds(day: date) -> tuple[str, str]:
    """ISO timestamp range [day 00:00, next day 00:00) for store range filters."""
    start = datetime.combine(day, datetime.min.time())
    return start.isoformat(), (start + timedelta(days=1)).isoformat()
