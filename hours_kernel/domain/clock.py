"""
Injectable time source.

Services take a ``Clock`` so that bonus evaluations, decisions,
redistributions and audit events are stamped from one place, and so that
capacity periods resolve against ``clock.today()`` rather than the host
date.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Fixed test clock, 2024-01-01 12:00 UTC unless told otherwise.

    Time only moves through ``advance``.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)
