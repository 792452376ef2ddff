"""Working-set page replacement — one bounded set, aged by reference bits.

This models the Windows working-set manager.  There is no active/inactive
split: a process owns a single **working set** of at most ``capacity``
pages, each with a reference bit and a last access time.

On every access:

1. If ``reference_clear_interval`` has elapsed since the last sweep,
   every reference bit is cleared.  Pages that are touched again before
   the next sweep get their bit back; pages that are not stay clear.
2. A resident page is touched (hit).  A missing page faults in; if the
   set is full, **eviction** removes every page older than
   ``age_threshold`` whose bit is clear, or (when none qualify) the
   single least recently accessed page (lowest id breaks ties).
3. **Trim** walks the set: an old page with its bit set gets a second
   chance (bit cleared, stays resident); an old page with its bit clear
   is evicted.

The set keeps insertion order, so snapshots list the longest-resident
page first.
"""

from py_pagesim.clock import Clock, LogicalClock
from py_pagesim.config import WorkingSetConfig
from py_pagesim.events import AccessEvent, Effect, EffectKind, EventKind
from py_pagesim.logging import Logger
from py_pagesim.policies.base import AccessRecorder, PolicyStats, Snapshot, check_membership, flagged
from py_pagesim.store import PageId, PageStore, Residency, Unit


class WorkingSetPolicy:
    """Bounded working set with periodic reference clearing and age trimming."""

    name = "working-set"

    def __init__(
        self,
        capacity: int,
        *,
        clock: Clock | None = None,
        logger: Logger | None = None,
        age_threshold: float = 1000,
        reference_clear_interval: float = 1000,
    ) -> None:
        """Create a working-set policy.

        Args:
            capacity: Maximum number of pages in the set.
            clock: Timestamp source (defaults to a fresh LogicalClock).
            logger: Optional log for access outcomes and evictions.
            age_threshold: Idle time after which a page may be trimmed.
            reference_clear_interval: Clock time between reference sweeps.

        Raises:
            ConfigurationError: If any setting is out of range.

        """
        self._config = WorkingSetConfig(
            capacity=capacity,
            age_threshold=age_threshold,
            reference_clear_interval=reference_clear_interval,
        )
        self._clock: Clock = clock if clock is not None else LogicalClock()
        self._store = PageStore()
        # Ordered set: dict keys keep insertion order.
        self._working_set: dict[PageId, None] = {}
        self._last_clear = self._clock.now()
        self._recorder = AccessRecorder(self.name, logger)

    @classmethod
    def from_config(
        cls,
        config: WorkingSetConfig,
        *,
        clock: Clock | None = None,
        logger: Logger | None = None,
    ) -> "WorkingSetPolicy":
        """Create a policy from a validated config object."""
        return cls(
            config.capacity,
            clock=clock,
            logger=logger,
            age_threshold=config.age_threshold,
            reference_clear_interval=config.reference_clear_interval,
        )

    @property
    def config(self) -> WorkingSetConfig:
        """Return the policy settings."""
        return self._config

    @property
    def capacity(self) -> int:
        """Return the maximum working-set size."""
        return self._config.capacity

    @property
    def max_size(self) -> int:
        """Return the maximum working-set size (alias of ``capacity``)."""
        return self._config.capacity

    @property
    def working_set(self) -> list[PageId]:
        """Return the resident pages, longest-resident first."""
        return list(self._working_set)

    @property
    def stats(self) -> PolicyStats:
        """Return the access counters."""
        return self._recorder.stats()

    def unit(self, page_id: PageId) -> Unit | None:
        """Return the resident metadata for a page, or None."""
        return self._store.get(page_id)

    def __contains__(self, page_id: object) -> bool:
        """Return True if the page is in the working set."""
        return page_id in self._store

    def __len__(self) -> int:
        """Return the current working-set size."""
        return len(self._working_set)

    # -- Access path ---------------------------------------------------------

    def access_page(self, page_id: PageId, is_write: bool = False) -> AccessEvent:
        """Reference a page, then trim the working set.

        Args:
            page_id: The page being referenced.
            is_write: Whether the access is a write (sets the dirty bit).

        Returns:
            The access outcome and any maintenance effects.

        """
        now = self._clock.now()
        self._recorder.begin()
        self._clear_references(now)

        unit = self._store.get(page_id)
        if unit is not None:
            unit.touch(now, write=is_write)
            unit.referenced = True
            kind = EventKind.HIT
        else:
            if len(self._working_set) >= self.capacity:
                self._evict_for_fault(now)
            unit = Unit(page_id=page_id, residency=Residency.RESIDENT, referenced=True, last_access=now)
            unit.touch(now, write=is_write)
            self._store.insert(unit)
            self._working_set[page_id] = None
            kind = EventKind.HARD_FAULT

        self._trim(now)
        return self._recorder.finish(page_id, kind, is_write=is_write, time=now)

    # -- Maintenance ---------------------------------------------------------

    def _clear_references(self, now: float) -> None:
        if now - self._last_clear <= self._config.reference_clear_interval:
            return
        for unit in self._store:
            unit.referenced = False
        self._last_clear = now
        self._recorder.effect(EffectKind.REFERENCES_CLEARED, time=now)

    def _evict_for_fault(self, now: float) -> None:
        threshold = self._config.age_threshold
        stale = [u.page_id for u in self._store if u.age(now) > threshold and not u.referenced]
        if stale:
            for page_id in stale:
                self._evict(page_id, now)
            return
        oldest = min(self._store, key=lambda u: (u.last_access, u.page_id), default=None)
        if oldest is not None:
            self._evict(oldest.page_id, now)

    def trim(self) -> tuple[Effect, ...]:
        """Trim the working set outside of an access and return the effects."""
        self._recorder.begin()
        self._trim(self._clock.now())
        return self._recorder.drain()

    def _trim(self, now: float) -> None:
        threshold = self._config.age_threshold
        doomed: list[PageId] = []
        for unit in self._store:
            if unit.age(now) <= threshold:
                continue
            if unit.referenced:
                unit.referenced = False
                self._recorder.effect(EffectKind.SECOND_CHANCE, unit.page_id, time=now)
            else:
                doomed.append(unit.page_id)
        for page_id in doomed:
            self._evict(page_id, now)

    def _evict(self, page_id: PageId, now: float) -> None:
        unit = self._store.remove(page_id)
        del self._working_set[page_id]
        kind = EffectKind.WRITTEN_BACK if unit.modified else EffectKind.EVICTED
        self._recorder.effect(kind, page_id, time=now)

    # -- Inspection ----------------------------------------------------------

    def snapshot(self) -> Snapshot:
        """Return the working set as ``active_ids`` plus free slots and flags."""
        units = self._store.units()
        return Snapshot(
            active_ids=tuple(self._working_set),
            inactive_ids=(),
            free_count=self.capacity - len(self._working_set),
            capacity=self.capacity,
            referenced=flagged(units, "referenced"),
            modified=flagged(units, "modified"),
        )

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the set and index disagree or overflow."""
        check_membership(
            self._store,
            {Residency.RESIDENT: list(self._working_set)},
            capacity=self.capacity,
        )
