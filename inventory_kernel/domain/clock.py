"""
Clock -- Injectable time source for the ledger.

Responsibility:
    Stamps ``last_updated`` on items and ``created_at`` on transactions.
    Ledger code asks its Clock for the time and never calls
    ``datetime.now()`` itself.

Architecture position:
    Kernel > Domain -- pure core. SystemClock is the one place the kernel
    reads the wall clock.

Failure modes:
    - DeterministicClock rejects naive datetimes with ValueError.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value until ``advance()``, ``tick()`` or
    ``set_time()`` moves it. With ``auto_tick`` set, every ``now()`` call
    advances the clock by that many seconds first, which gives each ledger
    mutation a distinct timestamp.
    """

    def __init__(self, start: datetime | None = None, auto_tick: int = 0):
        start = start or DEFAULT_EPOCH
        if start.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware start")
        self._current = start.astimezone(timezone.utc)
        self._auto_tick = auto_tick

    def now(self) -> datetime:
        if self._auto_tick:
            self._current += timedelta(seconds=self._auto_tick)
        return self._current

    def set_time(self, time: datetime) -> None:
        """Jump the clock to a specific time."""
        if time.tzinfo is None:
            raise ValueError("DeterministicClock requires timezone-aware times")
        self._current = time.astimezone(timezone.utc)

    def advance(self, seconds: int = 1) -> None:
        """Move the clock forward."""
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance by 1 second and return the new time."""
        self.advance(1)
        return self._current
