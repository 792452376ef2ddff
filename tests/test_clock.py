"""Tests for the logical and wall clocks."""

import pytest

from py_pagesim.clock import LogicalClock, WallClock


class TestLogicalClock:
    """Verify the controllable counter clock."""

    def test_starts_at_zero(self) -> None:
        """The default start is zero."""
        assert LogicalClock().now() == 0

    def test_custom_start(self) -> None:
        """A start value can be given."""
        start = 100
        assert LogicalClock(start).now() == start

    def test_negative_start_rejected(self) -> None:
        """Timestamps are never negative."""
        with pytest.raises(ValueError, match="non-negative"):
            LogicalClock(-1)

    def test_advance(self) -> None:
        """advance() moves forward and returns the new time."""
        expected = 6
        clock = LogicalClock()
        clock.advance()
        assert clock.advance(5) == expected
        assert clock.now() == expected

    def test_advance_negative_rejected(self) -> None:
        """A negative delta would move backwards."""
        with pytest.raises(ValueError, match="cannot move backwards"):
            LogicalClock().advance(-1)

    def test_advance_to(self) -> None:
        """advance_to() jumps to an absolute time."""
        target = 250
        clock = LogicalClock(10)
        assert clock.advance_to(target) == target

    def test_advance_to_past_rejected(self) -> None:
        """advance_to() refuses an earlier timestamp."""
        clock = LogicalClock(10)
        with pytest.raises(ValueError, match="cannot move backwards"):
            clock.advance_to(5)

    def test_does_not_move_on_read(self) -> None:
        """Reading the time has no side effect."""
        clock = LogicalClock()
        clock.now()
        clock.now()
        assert clock.now() == 0


class TestWallClock:
    """Verify the monotonic host clock."""

    def test_starts_near_zero_and_never_decreases(self) -> None:
        """Readings start close to zero and are non-decreasing."""
        clock = WallClock()
        first = clock.now()
        second = clock.now()
        assert first >= 0
        assert second >= first
