"""Injectable time source for attempt timestamps."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (sqlite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
