"""Clocks — where a policy gets "now" from.

Aging and working-set policies make decisions by comparing a unit's
last access time against thresholds.  Reading the wall clock directly
would make those decisions depend on how fast the host runs, so every
policy reads time through a small ``Clock`` interface instead.

- **LogicalClock** is a counter that only moves when told to.  Tests and
  trace replays advance it explicitly, so age thresholds trigger at
  exactly the same access every run.
- **WallClock** reads a monotonic host timer in milliseconds, for
  interactive runs where real elapsed time should age the pages.

Both are monotonically non-decreasing.
"""

import time
from typing import Protocol


class Clock(Protocol):
    """Interface every clock must satisfy."""

    def now(self) -> float:
        """Return the current timestamp."""
        ...  # pragma: no cover


class LogicalClock:
    """A controllable counter clock.

    The clock starts at ``start`` and only moves forward when
    ``advance()`` or ``advance_to()`` is called.
    """

    def __init__(self, start: float = 0) -> None:
        """Create a logical clock.

        Args:
            start: The initial timestamp.

        Raises:
            ValueError: If start is negative.

        """
        if start < 0:
            msg = f"Clock start must be non-negative, got {start}"
            raise ValueError(msg)
        self._now = start

    def now(self) -> float:
        """Return the current logical timestamp."""
        return self._now

    def advance(self, delta: float = 1) -> float:
        """Move the clock forward by ``delta`` and return the new time.

        Raises:
            ValueError: If delta is negative.

        """
        if delta < 0:
            msg = f"Clock cannot move backwards (delta={delta})"
            raise ValueError(msg)
        self._now += delta
        return self._now

    def advance_to(self, timestamp: float) -> float:
        """Move the clock to an absolute timestamp.

        Raises:
            ValueError: If the timestamp is earlier than the current time.

        """
        if timestamp < self._now:
            msg = f"Clock cannot move backwards ({timestamp} < {self._now})"
            raise ValueError(msg)
        self._now = timestamp
        return self._now


class WallClock:
    """Milliseconds elapsed on the host's monotonic timer.

    Readings are relative to the moment the clock was created, so a
    fresh policy always starts near zero.
    """

    def __init__(self) -> None:
        """Create a wall clock anchored at the current instant."""
        self._origin = time.monotonic()

    def now(self) -> float:
        """Return milliseconds since the clock was created."""
        return (time.monotonic() - self._origin) * 1000
