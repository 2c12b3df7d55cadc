"""
Injectable time source.

Tier stamps and notification log rows take their time from a ``Clock`` so
tests can pin it.  Every clock returns timezone-aware UTC datetimes.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """Frozen clock; moves only when ``advance()`` is called."""

    DEFAULT_START = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __init__(self, start: datetime | None = None):
        self._current = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
