"""Two-list page replacement — active and inactive LRU lists.

This is the scheme Linux uses to approximate LRU cheaply.  Resident
pages live on one of two lists:

- **inactive** — newly faulted pages and pages that have cooled down.
  Eviction candidates are taken from here, oldest (tail) first.
- **active** — pages referenced at least twice.  Kept out of reach of
  reclaim until refill moves them back down.

Page states::

    fault ──► inactive/unreferenced ──access──► inactive/referenced
                      ▲                                │ access
                      │ refill (unreferenced tail)     ▼
                      └──────────────────────────── active

Three maintenance routines keep the lists healthy:

- **refill** keeps the inactive list at roughly a third of all pages by
  pulling the coldest entries off the active tail.  A referenced active
  page is rotated to the head with its bit cleared instead (clock-style
  second chance); rotations do not count toward the quota.
- **reclaim(n)** scans the inactive tail within a scan budget.
  Unreferenced pages are freed; referenced pages have their bit cleared
  and are moved to the active list (second chance).  If the quota is
  still unmet, refill feeds the inactive list and the scan repeats.
- **fault** reclaims one page when the lists are full, inserts the new
  page at the inactive head, then refills.

List orientation: both deques keep the newest entry at the left (head),
so snapshots read newest-first and scans walk from the right.
"""

from collections import deque

from py_pagesim.clock import Clock, LogicalClock
from py_pagesim.config import TwoListConfig
from py_pagesim.events import AccessEvent, Effect, EffectKind, EventKind
from py_pagesim.logging import Logger
from py_pagesim.policies.base import AccessRecorder, PolicyStats, Snapshot, check_membership, flagged
from py_pagesim.store import PageId, PageStore, Residency, Unit


class TwoListPolicy:
    """Active/inactive two-list replacement with scan-limited reclaim."""

    name = "two-list"

    def __init__(
        self,
        capacity: int,
        *,
        clock: Clock | None = None,
        logger: Logger | None = None,
        inactive_ratio: int = 3,
        scan_divisor: int = 6,
        scan_multiplier: int = 2,
        fault_marks_referenced: bool = True,
        refill_marks_referenced: bool = False,
    ) -> None:
        """Create a two-list policy.

        Args:
            capacity: Pages the two lists may hold together.
            clock: Timestamp source (defaults to a fresh LogicalClock).
            logger: Optional log for access outcomes and evictions.
            inactive_ratio: Refill target is ``total // inactive_ratio``.
            scan_divisor: Scan budget floor is ``len(inactive) // scan_divisor``.
            scan_multiplier: Scan budget floor is ``n * scan_multiplier``.
            fault_marks_referenced: Count the fault itself as the first reference.
            refill_marks_referenced: Keep the reference bit set on pages
                refill moves to the inactive list.

        Raises:
            ConfigurationError: If any setting is out of range.

        """
        self._config = TwoListConfig(
            capacity=capacity,
            inactive_ratio=inactive_ratio,
            scan_divisor=scan_divisor,
            scan_multiplier=scan_multiplier,
            fault_marks_referenced=fault_marks_referenced,
            refill_marks_referenced=refill_marks_referenced,
        )
        self._clock: Clock = clock if clock is not None else LogicalClock()
        self._store = PageStore()
        self._active: deque[PageId] = deque()
        self._inactive: deque[PageId] = deque()
        self._recorder = AccessRecorder(self.name, logger)

    @classmethod
    def from_config(
        cls,
        config: TwoListConfig,
        *,
        clock: Clock | None = None,
        logger: Logger | None = None,
    ) -> "TwoListPolicy":
        """Create a policy from a validated config object."""
        return cls(
            config.capacity,
            clock=clock,
            logger=logger,
            inactive_ratio=config.inactive_ratio,
            scan_divisor=config.scan_divisor,
            scan_multiplier=config.scan_multiplier,
            fault_marks_referenced=config.fault_marks_referenced,
            refill_marks_referenced=config.refill_marks_referenced,
        )

    @property
    def config(self) -> TwoListConfig:
        """Return the policy settings."""
        return self._config

    @property
    def capacity(self) -> int:
        """Return the combined capacity of both lists."""
        return self._config.capacity

    @property
    def active(self) -> list[PageId]:
        """Return the active list, most recently promoted first."""
        return list(self._active)

    @property
    def inactive(self) -> list[PageId]:
        """Return the inactive list, newest first."""
        return list(self._inactive)

    @property
    def stats(self) -> PolicyStats:
        """Return the access counters."""
        return self._recorder.stats()

    def unit(self, page_id: PageId) -> Unit | None:
        """Return the resident metadata for a page, or None."""
        return self._store.get(page_id)

    def __contains__(self, page_id: object) -> bool:
        """Return True if the page is resident."""
        return page_id in self._store

    # -- Access path ---------------------------------------------------------

    def access_page(self, page_id: PageId, is_write: bool = False) -> AccessEvent:
        """Reference a page.

        ``is_write`` is recorded on the page's dirty bit but does not
        change any decision: this policy does not distinguish clean and
        dirty pages.

        Args:
            page_id: The page being referenced.
            is_write: Whether the access is a write.

        Returns:
            The access outcome and any maintenance effects.

        """
        now = self._clock.now()
        self._recorder.begin()
        unit = self._store.get(page_id)

        if unit is None:
            kind = self._fault(page_id, now)
            unit = self._store.get(page_id)
        elif unit.residency is Residency.ACTIVE:
            unit.referenced = True
            kind = EventKind.HIT
        elif not unit.referenced:
            unit.referenced = True
            kind = EventKind.FIRST_REFERENCE
        else:
            self._inactive.remove(page_id)
            self._active.appendleft(page_id)
            unit.residency = Residency.ACTIVE
            unit.referenced = False
            kind = EventKind.PROMOTED

        if unit is not None:
            unit.touch(now, write=is_write)
        return self._recorder.finish(page_id, kind, is_write=is_write, time=now)

    def _fault(self, page_id: PageId, now: float) -> EventKind:
        if len(self._store) >= self.capacity:
            self._reclaim(1, now)
        unit = Unit(
            page_id=page_id,
            residency=Residency.INACTIVE,
            referenced=self._config.fault_marks_referenced,
            last_access=now,
        )
        self._store.insert(unit)
        self._inactive.appendleft(page_id)
        self._refill(now)
        return EventKind.HARD_FAULT

    # -- Maintenance ---------------------------------------------------------

    def refill(self) -> tuple[Effect, ...]:
        """Rebalance the lists outside of an access and return the effects."""
        self._recorder.begin()
        self._refill(self._clock.now())
        return self._recorder.drain()

    def _refill(self, now: float, *, at_least: int = 0) -> int:
        """Move cold active pages down until the inactive list meets its target.

        The target is ``total // inactive_ratio``, raised to ``at_least``
        when reclaim needs more candidates than the ratio alone provides.

        Returns:
            The number of pages moved to the inactive list.

        """
        total = len(self._active) + len(self._inactive)
        target = max(total // self._config.inactive_ratio, at_least)
        moved = 0
        while len(self._inactive) < target and self._active:
            page_id = self._active.pop()
            unit = self._store[page_id]
            if unit.referenced:
                unit.referenced = False
                self._active.appendleft(page_id)
                self._recorder.effect(EffectKind.ROTATED, page_id, time=now)
                continue
            unit.residency = Residency.INACTIVE
            unit.referenced = self._config.refill_marks_referenced
            self._inactive.appendleft(page_id)
            self._recorder.effect(EffectKind.DEMOTED, page_id, time=now)
            moved += 1
        return moved

    def reclaim(self, n: int = 1) -> tuple[Effect, ...]:
        """Free up to ``n`` pages outside of an access and return the effects.

        Raises:
            ValueError: If n is negative.

        """
        if n < 0:
            msg = f"Cannot reclaim a negative number of pages ({n})"
            raise ValueError(msg)
        self._recorder.begin()
        self._reclaim(n, self._clock.now())
        return self._recorder.drain()

    def scan_budget(self, n: int) -> int:
        """Return how many inactive entries one reclaim pass may inspect."""
        return max(len(self._inactive) // self._config.scan_divisor, n * self._config.scan_multiplier)

    def _reclaim(self, n: int, now: float) -> int:
        """Free up to ``n`` pages, best effort.

        Each pass scans at most ``scan_budget(n)`` inactive entries.  A page
        gets at most one second chance per reclaim call: if refill hands it
        back still referenced, the next scan takes it as a victim.  Every
        pass therefore evicts, spares a new page or feeds the inactive list,
        so twice the resident count plus two passes always suffice.

        Returns:
            The number of pages freed.

        """
        remaining = n
        freed_total = 0
        passes_left = 2 * len(self._store) + 2
        spared: set[PageId] = set()
        while remaining > 0 and (self._inactive or self._active) and passes_left > 0:
            passes_left -= 1
            max_scan = self.scan_budget(n)
            victims: list[PageId] = []
            second_chance: list[PageId] = []

            # Walk from the tail (oldest) towards the head.
            for page_id in reversed(self._inactive):
                if len(victims) >= remaining or len(victims) + len(second_chance) >= max_scan:
                    break
                unit = self._store[page_id]
                if unit.referenced and page_id not in spared:
                    unit.referenced = False
                    spared.add(page_id)
                    second_chance.append(page_id)
                else:
                    victims.append(page_id)

            for page_id in victims:
                self._inactive.remove(page_id)
                unit = self._store.remove(page_id)
                kind = EffectKind.WRITTEN_BACK if unit.modified else EffectKind.EVICTED
                self._recorder.effect(kind, page_id, time=now)
            for page_id in second_chance:
                self._inactive.remove(page_id)
                self._active.appendleft(page_id)
                self._store[page_id].residency = Residency.ACTIVE
                self._recorder.effect(EffectKind.SECOND_CHANCE, page_id, time=now)

            remaining -= len(victims)
            freed_total += len(victims)
            if remaining > 0 and self._active:
                moved = self._refill(now, at_least=remaining)
                if not victims and not second_chance and moved == 0:
                    break
        return freed_total

    # -- Inspection ----------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Return the lists (newest first), free slots and flag sets."""
        units = self._store.units()
        return Snapshot(
            active_ids=tuple(self._active),
            inactive_ids=tuple(self._inactive),
            free_count=max(0, self.capacity - len(self._store)),
            capacity=self.capacity,
            referenced=flagged(units, "referenced"),
            modified=flagged(units, "modified"),
        )

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the lists and index disagree."""
        check_membership(
            self._store,
            {Residency.ACTIVE: self._active, Residency.INACTIVE: self._inactive},
            capacity=self.capacity,
        )
