"""Tests for the two-list (active/inactive) replacement policy.

The two-list policy keeps newly faulted pages on an inactive list and
promotes them to an active list on a repeat reference.  Reclaim scans the
inactive tail within a scan budget, giving referenced pages a second
chance; refill pulls cold pages off the active tail to keep roughly a
third of all pages inactive.
"""

import pytest

from py_pagesim.clock import LogicalClock
from py_pagesim.config import ConfigurationError
from py_pagesim.events import Effect, EffectKind, EventKind
from py_pagesim.logging import Logger, LogLevel
from py_pagesim.policies.two_list import TwoListPolicy

CAPACITY = 5
FIRST_FIVE = [1, 2, 3, 4, 5]
SECOND_REFERENCES = [2, 3, 5]


def _access_all(policy: TwoListPolicy, pages: list[int]) -> None:
    for page in pages:
        policy.access_page(page)


def _scenario_b() -> TwoListPolicy:
    """Fault in pages 1-5, then re-reference 2, 3 and 5."""
    policy = TwoListPolicy(CAPACITY)
    _access_all(policy, FIRST_FIVE)
    _access_all(policy, SECOND_REFERENCES)
    return policy


class TestConstruction:
    """Verify configuration validation."""

    def test_zero_capacity_rejected(self) -> None:
        """A capacity of zero should raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="capacity"):
            TwoListPolicy(0)

    def test_negative_capacity_rejected(self) -> None:
        """A negative capacity should raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            TwoListPolicy(-3)

    def test_zero_ratio_rejected(self) -> None:
        """The inactive ratio divides, so zero is invalid."""
        with pytest.raises(ConfigurationError, match="inactive_ratio"):
            TwoListPolicy(CAPACITY, inactive_ratio=0)

    def test_starts_empty(self) -> None:
        """A new policy should have empty lists and all slots free."""
        snap = TwoListPolicy(CAPACITY).snapshot()
        assert snap.active_ids == ()
        assert snap.inactive_ids == ()
        assert snap.free_count == CAPACITY
        assert snap.capacity == CAPACITY


class TestFaults:
    """Verify the fault path fills the inactive list newest-first."""

    def test_fault_event(self) -> None:
        """Accessing a missing page should report a hard fault."""
        policy = TwoListPolicy(CAPACITY)
        event = policy.access_page(1)
        assert event.kind is EventKind.HARD_FAULT
        assert event.is_fault
        assert 1 in policy

    def test_scenario_a_inactive_newest_first(self) -> None:
        """Five faults should leave inactive = [5, 4, 3, 2, 1] and active empty."""
        policy = TwoListPolicy(CAPACITY)
        _access_all(policy, FIRST_FIVE)
        snap = policy.snapshot()
        assert snap.inactive_ids == (5, 4, 3, 2, 1)
        assert snap.active_ids == ()
        assert snap.free_count == 0

    def test_fault_counts_as_first_reference_by_default(self) -> None:
        """By default a faulted page starts with its reference bit set."""
        policy = TwoListPolicy(CAPACITY)
        policy.access_page(1)
        unit = policy.unit(1)
        assert unit is not None
        assert unit.referenced

    def test_fault_unreferenced_when_configured(self) -> None:
        """With fault_marks_referenced off the page starts clean."""
        policy = TwoListPolicy(CAPACITY, fault_marks_referenced=False)
        policy.access_page(1)
        unit = policy.unit(1)
        assert unit is not None
        assert not unit.referenced


class TestPromotion:
    """Verify inactive → active promotion on repeat reference."""

    def test_scenario_b_promotes_in_access_order(self) -> None:
        """Re-referencing 2, 3, 5 should give active = [5, 3, 2], inactive = [4, 1]."""
        policy = _scenario_b()
        snap = policy.snapshot()
        assert snap.active_ids == (5, 3, 2)
        assert snap.inactive_ids == (4, 1)

    def test_promotion_event_and_clears_bit(self) -> None:
        """A promotion should be reported and start the page unreferenced."""
        policy = TwoListPolicy(CAPACITY)
        _access_all(policy, FIRST_FIVE)
        event = policy.access_page(2)
        assert event.kind is EventKind.PROMOTED
        unit = policy.unit(2)
        assert unit is not None
        assert not unit.referenced

    def test_first_reference_stays_inactive(self) -> None:
        """An unreferenced inactive page is only marked on its first reference."""
        policy = TwoListPolicy(CAPACITY, fault_marks_referenced=False)
        policy.access_page(1)
        event = policy.access_page(1)
        assert event.kind is EventKind.FIRST_REFERENCE
        assert policy.inactive == [1]
        assert policy.active == []

    def test_two_references_in_a_row_promote(self) -> None:
        """An unreferenced inactive page is active after two accesses in a row."""
        policy = TwoListPolicy(CAPACITY, fault_marks_referenced=False)
        _access_all(policy, [1, 2])
        policy.access_page(1)
        event = policy.access_page(1)
        assert event.kind is EventKind.PROMOTED
        assert policy.active == [1]

    def test_active_hits_do_not_move_pages(self) -> None:
        """Repeated hits on an active page only touch its reference bit."""
        clock = LogicalClock()
        policy = TwoListPolicy(CAPACITY, clock=clock)
        _access_all(policy, FIRST_FIVE)
        _access_all(policy, SECOND_REFERENCES)
        before = policy.snapshot()
        hit_count = 3
        for _ in range(hit_count):
            clock.advance()
            event = policy.access_page(3)
            assert event.kind is EventKind.HIT
            assert event.effects == ()
        after = policy.snapshot()
        assert after.active_ids == before.active_ids
        assert after.inactive_ids == before.inactive_ids
        unit = policy.unit(3)
        assert unit is not None
        assert unit.referenced
        assert unit.last_access == clock.now()


class TestReclaim:
    """Verify scan-limited reclaim with second chance."""

    def test_full_fault_reclaims_one_page(self) -> None:
        """Faulting into a full policy should evict exactly one page."""
        policy = _scenario_b()
        event = policy.access_page(6)
        assert event.kind is EventKind.HARD_FAULT
        assert event.evicted == (2,)
        assert len(policy.snapshot().resident_ids) == CAPACITY

    def test_second_chance_then_refill(self) -> None:
        """Referenced inactive pages move to active; refill feeds the victim."""
        policy = _scenario_b()
        event = policy.access_page(6)
        assert event.effects == (
            Effect(EffectKind.SECOND_CHANCE, 1),
            Effect(EffectKind.SECOND_CHANCE, 4),
            Effect(EffectKind.DEMOTED, 2),
            Effect(EffectKind.EVICTED, 2),
        )
        snap = policy.snapshot()
        assert snap.active_ids == (4, 1, 5, 3)
        assert snap.inactive_ids == (6,)

    def test_unreferenced_tail_evicted_first(self) -> None:
        """With clean faults the oldest inactive page is the victim."""
        policy = TwoListPolicy(CAPACITY, fault_marks_referenced=False)
        _access_all(policy, FIRST_FIVE)
        event = policy.access_page(6)
        assert event.evicted == (1,)
        assert policy.inactive == [6, 5, 4, 3, 2]

    def test_direct_reclaim(self) -> None:
        """reclaim(n) should free up to n pages and report them."""
        policy = TwoListPolicy(CAPACITY, fault_marks_referenced=False)
        _access_all(policy, FIRST_FIVE)
        reclaim_count = 2
        effects = policy.reclaim(reclaim_count)
        evicted = [e.page_id for e in effects if e.kind is EffectKind.EVICTED]
        assert evicted == [1, 2]
        assert policy.inactive == [5, 4, 3]

    def test_reclaim_zero_is_noop(self) -> None:
        """reclaim(0) should change nothing."""
        policy = _scenario_b()
        before = policy.snapshot()
        assert policy.reclaim(0) == ()
        assert policy.snapshot() == before

    def test_reclaim_negative_rejected(self) -> None:
        """A negative reclaim count is a caller error."""
        policy = TwoListPolicy(CAPACITY)
        with pytest.raises(ValueError, match="negative"):
            policy.reclaim(-1)

    def test_reclaim_on_empty_terminates(self) -> None:
        """Reclaiming from empty lists frees nothing and returns."""
        policy = TwoListPolicy(CAPACITY)
        assert policy.reclaim(3) == ()

    def test_reclaim_more_than_resident_terminates(self) -> None:
        """Asking for more pages than exist empties the lists and stops."""
        policy = _scenario_b()
        too_many = CAPACITY * 4
        policy.reclaim(too_many)
        assert policy.snapshot().resident_ids == frozenset()
        policy.check_invariants()

    def test_scan_budget(self) -> None:
        """The budget is max(len(inactive) // 6, n * 2)."""
        policy = TwoListPolicy(20, fault_marks_referenced=False)
        _access_all(policy, list(range(18)))
        by_length = 3
        by_request = 4
        assert policy.scan_budget(1) == by_length
        assert policy.scan_budget(2) == by_request

    def test_scan_budget_floor_on_short_list(self) -> None:
        """A short inactive list still gets a budget of n * 2."""
        policy = TwoListPolicy(CAPACITY)
        policy.access_page(1)
        expected = 2
        assert policy.scan_budget(1) == expected

    @pytest.mark.parametrize("capacity", [1, CAPACITY])
    def test_referenced_refill_still_evicts(self, capacity: int) -> None:
        """A page handed back referenced by refill is evicted on the next scan."""
        policy = TwoListPolicy(capacity, refill_marks_referenced=True)
        distinct_pages = 30
        for page in range(1, distinct_pages + 1):
            event = policy.access_page(page)
            assert len(policy.snapshot().resident_ids) <= capacity
            if page > capacity:
                assert len(event.evicted) == 1
        policy.check_invariants()

    def test_second_chance_once_per_reclaim(self) -> None:
        """Refill marks the moved page, but it cannot be spared twice in one reclaim."""
        policy = TwoListPolicy(1, refill_marks_referenced=True)
        policy.access_page(1)
        event = policy.access_page(2)
        assert event.effects == (
            Effect(EffectKind.SECOND_CHANCE, 1),
            Effect(EffectKind.DEMOTED, 1),
            Effect(EffectKind.EVICTED, 1),
        )
        assert policy.inactive == [2]

    def test_capacity_one(self) -> None:
        """With one slot every new fault replaces the resident page."""
        policy = TwoListPolicy(1)
        policy.access_page(1)
        event = policy.access_page(2)
        assert event.evicted == (1,)
        assert policy.inactive == [2]
        policy.check_invariants()


class TestRefill:
    """Verify active → inactive refill with clock-style rotation."""

    # Promote 1-5, reference 1 again, then fault 6 (target inactive = 6 // 3 = 2).
    TRACE = [1, 1, 1, 2, 2, 2, 3, 3, 3, 4, 4, 4, 5, 5, 5, 1, 6]

    def test_referenced_tail_rotates(self) -> None:
        """A referenced active tail is rotated to the head, not moved down."""
        policy = TwoListPolicy(10, fault_marks_referenced=False)
        *prefix, last = self.TRACE
        _access_all(policy, prefix)
        event = policy.access_page(last)
        assert event.effects == (
            Effect(EffectKind.ROTATED, 1),
            Effect(EffectKind.DEMOTED, 2),
        )
        snap = policy.snapshot()
        assert snap.active_ids == (1, 5, 4, 3)
        assert snap.inactive_ids == (2, 6)

    def test_refill_clears_reference_by_default(self) -> None:
        """A page moved down by refill starts unreferenced."""
        policy = TwoListPolicy(10, fault_marks_referenced=False)
        _access_all(policy, self.TRACE)
        unit = policy.unit(2)
        assert unit is not None
        assert not unit.referenced

    def test_refill_can_mark_reference(self) -> None:
        """With refill_marks_referenced the moved page keeps its bit set."""
        policy = TwoListPolicy(10, fault_marks_referenced=False, refill_marks_referenced=True)
        _access_all(policy, self.TRACE)
        unit = policy.unit(2)
        assert unit is not None
        assert unit.referenced

    def test_direct_refill_noop_when_balanced(self) -> None:
        """Refill does nothing when the inactive list already meets its target."""
        policy = TwoListPolicy(CAPACITY)
        _access_all(policy, FIRST_FIVE)
        assert policy.refill() == ()


class TestInvariants:
    """Verify list/index lock-step and capacity over long traces."""

    @pytest.mark.parametrize("capacity", [1, 2, 3, 5, 8])
    @pytest.mark.parametrize("fault_referenced", [True, False])
    @pytest.mark.parametrize("refill_referenced", [True, False])
    def test_invariants_hold_throughout(self, capacity: int, fault_referenced: bool, refill_referenced: bool) -> None:
        """Every access should leave the lists consistent and within capacity."""
        policy = TwoListPolicy(
            capacity,
            fault_marks_referenced=fault_referenced,
            refill_marks_referenced=refill_referenced,
        )
        trace_length = 300
        for i in range(trace_length):
            page = (i * 7 + i // 5) % 13
            policy.access_page(page, is_write=i % 3 == 0)
            policy.check_invariants()
            assert len(policy.snapshot().resident_ids) <= capacity


class TestStatsAndLogging:
    """Verify counters and the structured log."""

    def test_stats_after_scenario_b(self) -> None:
        """Five faults and three promotions should be counted."""
        stats = _scenario_b().stats
        expected_accesses = 8
        expected_faults = 5
        expected_promotions = 3
        assert stats.accesses == expected_accesses
        assert stats.hard_faults == expected_faults
        assert stats.promotions == expected_promotions
        assert stats.hits == expected_promotions
        assert stats.fault_rate == expected_faults / expected_accesses

    def test_logger_records_accesses_and_evictions(self) -> None:
        """Accesses log at DEBUG and evictions at INFO under the policy name."""
        logger = Logger()
        policy = TwoListPolicy(1, logger=logger)
        policy.access_page(1)
        policy.access_page(2)
        assert all(e.source == "two-list" for e in logger.entries)
        info = logger.filter(min_level=LogLevel.INFO)
        assert [e.message for e in info] == ["evicted page 1"]
        assert "read page 2: hard_fault" in [e.message for e in logger.entries]
