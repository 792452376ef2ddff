"""The policy interface and the pieces every policy shares.

All three replacement policies satisfy the same small ``Policy``
protocol (access a page, take a snapshot, read counters, check
invariants), but their behaviour has nothing in common beyond that, so
there is no base class.  What *is* shared lives here as plain helpers:

- **Snapshot** — an immutable view of the lists for display and tests.
- **PolicyStats** — access and fault counters.
- **AccessRecorder** — collects the effects of the access in progress,
  turns them into an ``AccessEvent``, counts them, and logs them.
- **check_membership** — the list/index lock-step check.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from py_pagesim.events import AccessEvent, Effect, EffectKind, EventKind
from py_pagesim.logging import Logger, LogLevel
from py_pagesim.store import InvariantViolation, PageId, PageStore, Residency, Unit


class Policy(Protocol):
    """Interface every page-replacement policy satisfies."""

    name: str

    @property
    def capacity(self) -> int:
        """Return the number of pages the policy may keep resident."""
        ...  # pragma: no cover

    def access_page(self, page_id: PageId, is_write: bool = False) -> AccessEvent:
        """Reference a page and return what happened."""
        ...  # pragma: no cover

    def snapshot(self) -> "Snapshot":
        """Return the current list contents."""
        ...  # pragma: no cover

    @property
    def stats(self) -> "PolicyStats":
        """Return the access counters."""
        ...  # pragma: no cover

    def check_invariants(self) -> None:
        """Raise InvariantViolation if the lists and index disagree."""
        ...  # pragma: no cover


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time view of a policy's resident pages.

    Attributes:
        active_ids: Active list (or the working set), in list order.
        inactive_ids: Inactive list, in list order (empty for working set).
        free_count: Page slots not currently in use.
        capacity: Total page slots.
        referenced: Resident pages whose reference bit is set.
        modified: Resident pages whose dirty bit is set.

    """

    active_ids: tuple[PageId, ...]
    inactive_ids: tuple[PageId, ...]
    free_count: int
    capacity: int
    referenced: frozenset[PageId] = frozenset()
    modified: frozenset[PageId] = frozenset()

    @property
    def resident_ids(self) -> frozenset[PageId]:
        """Return every resident page."""
        return frozenset(self.active_ids) | frozenset(self.inactive_ids)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly dict."""
        return {
            "active": list(self.active_ids),
            "inactive": list(self.inactive_ids),
            "free": self.free_count,
            "capacity": self.capacity,
            "referenced": sorted(self.referenced),
            "modified": sorted(self.modified),
        }


@dataclass(frozen=True)
class PolicyStats:
    """Access counters for one policy instance.

    ``hits`` counts accesses that needed no fault handling at all
    (plain hits, first references, promotions); soft faults are counted
    separately.  ``hard_faults`` includes accesses that were dropped for
    lack of capacity.
    """

    accesses: int = 0
    hits: int = 0
    first_references: int = 0
    promotions: int = 0
    soft_faults: int = 0
    hard_faults: int = 0
    dropped: int = 0
    evictions: int = 0
    write_backs: int = 0
    demotions: int = 0

    @property
    def fault_rate(self) -> float:
        """Return hard faults per access (0.0 before any access)."""
        if self.accesses == 0:
            return 0.0
        return self.hard_faults / self.accesses

    def to_dict(self) -> dict[str, float]:
        """Return a JSON-friendly dict including the fault rate."""
        return {
            "accesses": self.accesses,
            "hits": self.hits,
            "first_references": self.first_references,
            "promotions": self.promotions,
            "soft_faults": self.soft_faults,
            "hard_faults": self.hard_faults,
            "dropped": self.dropped,
            "evictions": self.evictions,
            "write_backs": self.write_backs,
            "demotions": self.demotions,
            "fault_rate": self.fault_rate,
        }


# Log level per effect; anything not listed is DEBUG.
_EFFECT_LEVELS = {
    EffectKind.EVICTED: LogLevel.INFO,
    EffectKind.WRITTEN_BACK: LogLevel.INFO,
    EffectKind.PAGE_OUT: LogLevel.INFO,
}


class AccessRecorder:
    """Collect effects for the access in progress and keep counters.

    A policy calls ``begin()`` at the start of ``access_page()``,
    ``effect()`` for each maintenance action, and ``finish()`` to build
    the returned event.  Maintenance run outside an access (e.g. a
    direct ``reclaim()`` call) uses ``drain()`` instead of ``finish()``.
    """

    def __init__(self, source: str, logger: Logger | None = None) -> None:
        """Create a recorder.

        Args:
            source: Name written into every log entry.
            logger: Optional log to append to.

        """
        self._source = source
        self._logger = logger
        self._events: Counter[EventKind] = Counter()
        self._effect_counts: Counter[EffectKind] = Counter()
        self._pending: list[Effect] = []

    def begin(self) -> None:
        """Start recording a new access."""
        self._pending = []

    def effect(self, kind: EffectKind, page_id: PageId | None = None, *, time: float = 0) -> None:
        """Record one side effect."""
        self._pending.append(Effect(kind=kind, page_id=page_id))
        self._effect_counts[kind] += 1
        if self._logger is not None:
            target = "" if page_id is None else f" page {page_id}"
            level = _EFFECT_LEVELS.get(kind, LogLevel.DEBUG)
            self._logger.log(level, f"{kind}{target}", source=self._source, time=time)

    def drain(self) -> tuple[Effect, ...]:
        """Return and forget the effects recorded since ``begin()``."""
        effects = tuple(self._pending)
        self._pending = []
        return effects

    def finish(
        self,
        page_id: PageId,
        kind: EventKind,
        *,
        is_write: bool,
        time: float,
    ) -> AccessEvent:
        """Count the access outcome and build its event."""
        self._events[kind] += 1
        if self._logger is not None:
            level = LogLevel.WARNING if kind is EventKind.NO_CAPACITY else LogLevel.DEBUG
            verb = "write" if is_write else "read"
            self._logger.log(level, f"{verb} page {page_id}: {kind}", source=self._source, time=time)
        return AccessEvent(
            page_id=page_id,
            kind=kind,
            is_write=is_write,
            time=time,
            effects=self.drain(),
        )

    def stats(self) -> PolicyStats:
        """Return counters accumulated so far."""
        events = self._events
        effects = self._effect_counts
        return PolicyStats(
            accesses=sum(events.values()),
            hits=events[EventKind.HIT] + events[EventKind.FIRST_REFERENCE] + events[EventKind.PROMOTED],
            first_references=events[EventKind.FIRST_REFERENCE],
            promotions=events[EventKind.PROMOTED],
            soft_faults=events[EventKind.SOFT_FAULT],
            hard_faults=events[EventKind.HARD_FAULT] + events[EventKind.NO_CAPACITY],
            dropped=events[EventKind.NO_CAPACITY],
            evictions=effects[EffectKind.EVICTED] + effects[EffectKind.WRITTEN_BACK],
            write_backs=effects[EffectKind.WRITTEN_BACK],
            demotions=effects[EffectKind.DEMOTED],
        )


def check_membership(
    store: PageStore,
    populations: Mapping[Residency, Sequence[PageId]],
    *,
    capacity: int,
) -> None:
    """Verify that every resident page sits in exactly one matching list.

    Raises:
        InvariantViolation: On a duplicate, a stray identifier, a
            residency mismatch, an unlisted unit, or an over-full store.

    """
    seen: set[PageId] = set()
    for residency, ids in populations.items():
        for page_id in ids:
            if page_id in seen:
                msg = f"Page {page_id} appears in more than one list position"
                raise InvariantViolation(msg)
            seen.add(page_id)
            unit = store.get(page_id)
            if unit is None:
                msg = f"Page {page_id} is listed as {residency} but not in the page index"
                raise InvariantViolation(msg)
            if unit.residency is not residency:
                msg = f"Page {page_id} is in the {residency} list but marked {unit.residency}"
                raise InvariantViolation(msg)
    if len(seen) != len(store):
        stray = sorted(set(store.ids()) - seen)
        msg = f"Pages {stray} are indexed but in no list"
        raise InvariantViolation(msg)
    if len(store) > capacity:
        msg = f"{len(store)} resident pages exceed capacity {capacity}"
        raise InvariantViolation(msg)


def flagged(units: Iterable[Unit], attribute: str) -> frozenset[PageId]:
    """Return the ids of units whose boolean ``attribute`` is set."""
    return frozenset(u.page_id for u in units if getattr(u, attribute))
