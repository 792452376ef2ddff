"""Aging page replacement — active/inactive queues with a page-out daemon.

This models the macOS-style virtual memory pager.  Physical memory is a
fixed number of page slots with an explicit **free page count**.
Resident pages sit on an active or an inactive queue, and age is
measured from each page's last access time.

Faults come in two flavours:

- **soft fault** — the page is still in RAM but on the inactive queue.
  It is simply moved back to the active queue; no load is needed.
- **hard fault** — the page is not resident at all and must be loaded
  into a free slot.  With no free slot the page-out daemon runs first;
  if that frees nothing, the oldest inactive page is force-freed.  If
  there is still no room the access is dropped (``NO_CAPACITY``).

After every access the queues are rebalanced:

1. Active pages idle longer than ``active_threshold`` are demoted to the
   inactive queue.
2. If free pages fall below the low-water mark ``min_free``, the
   **page-out daemon** walks the inactive queue (oldest first) paging
   out pages idle longer than ``inactive_threshold`` until the
   high-water mark ``target_free`` is reached.  Modified pages are
   tagged as written back to disk; clean pages are simply dropped.

Both queues keep insertion order with the oldest entry at the left.
"""

from collections import deque

from py_pagesim.clock import Clock, LogicalClock
from py_pagesim.config import AgingConfig
from py_pagesim.events import AccessEvent, Effect, EffectKind, EventKind
from py_pagesim.logging import Logger
from py_pagesim.policies.base import AccessRecorder, PolicyStats, Snapshot, check_membership, flagged
from py_pagesim.store import InvariantViolation, PageId, PageStore, Residency, Unit


class AgingPolicy:
    """Active/inactive aging with soft/hard faults and water-mark page-out."""

    name = "aging"

    def __init__(
        self,
        capacity: int,
        *,
        clock: Clock | None = None,
        logger: Logger | None = None,
        active_threshold: float = 400,
        inactive_threshold: float = 800,
        min_free: int | None = None,
        target_free: int | None = None,
        urgent_page_out: bool = False,
    ) -> None:
        """Create an aging policy.

        Args:
            capacity: Physical page slots.
            clock: Timestamp source (defaults to a fresh LogicalClock).
            logger: Optional log for access outcomes and page-outs.
            active_threshold: Idle time after which active pages are demoted.
            inactive_threshold: Idle time after which inactive pages may
                be paged out.
            min_free: Low-water mark (default ``max(1, capacity // 4)``).
            target_free: High-water mark (default ``max(min_free, capacity // 2)``).
            urgent_page_out: Ignore age when the daemon starts with no
                free pages.

        Raises:
            ConfigurationError: If any setting is out of range.

        """
        self._config = AgingConfig(
            capacity=capacity,
            active_threshold=active_threshold,
            inactive_threshold=inactive_threshold,
            min_free=min_free,
            target_free=target_free,
            urgent_page_out=urgent_page_out,
        )
        self._clock: Clock = clock if clock is not None else LogicalClock()
        self._store = PageStore()
        self._active: deque[PageId] = deque()
        self._inactive: deque[PageId] = deque()
        self._free_pages = capacity
        self._recorder = AccessRecorder(self.name, logger)

    @classmethod
    def from_config(
        cls,
        config: AgingConfig,
        *,
        clock: Clock | None = None,
        logger: Logger | None = None,
    ) -> "AgingPolicy":
        """Create a policy from a validated config object."""
        return cls(
            config.capacity,
            clock=clock,
            logger=logger,
            active_threshold=config.active_threshold,
            inactive_threshold=config.inactive_threshold,
            min_free=config.min_free,
            target_free=config.target_free,
            urgent_page_out=config.urgent_page_out,
        )

    @property
    def config(self) -> AgingConfig:
        """Return the policy settings with water marks resolved."""
        return self._config

    @property
    def capacity(self) -> int:
        """Return the number of physical page slots."""
        return self._config.capacity

    @property
    def free_pages(self) -> int:
        """Return the number of unused page slots."""
        return self._free_pages

    @property
    def min_free(self) -> int:
        """Return the low-water mark."""
        return self._config.low_water

    @property
    def target_free(self) -> int:
        """Return the high-water mark."""
        return self._config.high_water

    @property
    def active(self) -> list[PageId]:
        """Return the active queue, oldest first."""
        return list(self._active)

    @property
    def inactive(self) -> list[PageId]:
        """Return the inactive queue, oldest first."""
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
        """Reference a page, then rebalance the queues.

        Args:
            page_id: The page being referenced.
            is_write: Whether the access is a write (sets the dirty bit).

        Returns:
            The access outcome and any maintenance effects.

        """
        now = self._clock.now()
        self._recorder.begin()
        unit = self._store.get(page_id)

        if unit is None:
            kind = self._hard_fault(page_id, now, is_write=is_write)
        else:
            if unit.residency is Residency.INACTIVE:
                self._inactive.remove(page_id)
                self._active.append(page_id)
                unit.residency = Residency.ACTIVE
                kind = EventKind.SOFT_FAULT
            else:
                kind = EventKind.HIT
            unit.touch(now, write=is_write)

        self._balance(now)
        return self._recorder.finish(page_id, kind, is_write=is_write, time=now)

    def _hard_fault(self, page_id: PageId, now: float, *, is_write: bool) -> EventKind:
        if self._free_pages == 0:
            self._page_out(now)

        if self._free_pages == 0 and self._inactive:
            self._free(self._inactive.popleft(), now)

        if self._free_pages == 0:
            return EventKind.NO_CAPACITY

        self._free_pages -= 1
        unit = Unit(page_id=page_id, residency=Residency.ACTIVE, last_access=now)
        unit.touch(now, write=is_write)
        self._store.insert(unit)
        self._active.append(page_id)
        return EventKind.HARD_FAULT

    # -- Maintenance ---------------------------------------------------------

    def _balance(self, now: float) -> None:
        self._demote_idle(now)
        if self._free_pages < self.min_free:
            self._page_out(now)

    def _demote_idle(self, now: float) -> None:
        idle = [pid for pid in self._active if self._store[pid].age(now) > self._config.active_threshold]
        for page_id in idle:
            self._active.remove(page_id)
            self._inactive.append(page_id)
            self._store[page_id].residency = Residency.INACTIVE
            self._recorder.effect(EffectKind.DEMOTED, page_id, time=now)

    def run_page_out(self) -> tuple[Effect, ...]:
        """Run the page-out daemon outside of an access and return the effects."""
        self._recorder.begin()
        self._page_out(self._clock.now())
        return self._recorder.drain()

    def _page_out(self, now: float) -> int:
        """Page out old inactive pages until the high-water mark is reached.

        Returns:
            The number of pages freed.

        """
        urgent = self._config.urgent_page_out and self._free_pages == 0
        self._recorder.effect(EffectKind.PAGE_OUT, time=now)
        victims: list[PageId] = []
        free_after = self._free_pages
        for page_id in self._inactive:
            if free_after >= self.target_free:
                break
            if urgent or self._store[page_id].age(now) > self._config.inactive_threshold:
                victims.append(page_id)
                free_after += 1
        for page_id in victims:
            self._inactive.remove(page_id)
            self._free(page_id, now)
        return len(victims)

    def _free(self, page_id: PageId, now: float) -> None:
        """Drop an inactive page (already unlinked) and return its slot."""
        unit = self._store.remove(page_id)
        self._free_pages += 1
        kind = EffectKind.WRITTEN_BACK if unit.modified else EffectKind.EVICTED
        self._recorder.effect(kind, page_id, time=now)

    # -- Inspection ----------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Return the queues (oldest first), free count and flag sets."""
        units = self._store.units()
        return Snapshot(
            active_ids=tuple(self._active),
            inactive_ids=tuple(self._inactive),
            free_count=self._free_pages,
            capacity=self.capacity,
            referenced=flagged(units, "referenced"),
            modified=flagged(units, "modified"),
        )

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the queues, index or free count disagree."""
        check_membership(
            self._store,
            {Residency.ACTIVE: self._active, Residency.INACTIVE: self._inactive},
            capacity=self.capacity,
        )
        if self._free_pages != self.capacity - len(self._store):
            msg = f"free_pages={self._free_pages} but {len(self._store)} of {self.capacity} slots are used"
            raise InvariantViolation(msg)
