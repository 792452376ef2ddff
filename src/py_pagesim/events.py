"""Access events — the structured record of what one access did.

Policies never print.  Every ``access_page()`` call returns an
``AccessEvent`` describing the outcome for the accessed page (hit,
promotion, soft or hard fault, ...) plus an ordered tuple of side
``Effect`` records for everything maintenance did along the way:
evictions, write-backs, demotions, second chances.

A driver can narrate the events (see ``py_pagesim.narrate``), count them,
or assert on them in tests.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from py_pagesim.store import PageId


class EventKind(StrEnum):
    """Outcome of an access for the page that was accessed."""

    HIT = "hit"
    FIRST_REFERENCE = "first_reference"
    PROMOTED = "promoted"
    SOFT_FAULT = "soft_fault"
    HARD_FAULT = "hard_fault"
    NO_CAPACITY = "no_capacity"


class EffectKind(StrEnum):
    """Side effect of the maintenance that ran during an access."""

    EVICTED = "evicted"
    WRITTEN_BACK = "written_back"
    DEMOTED = "demoted"
    SECOND_CHANCE = "second_chance"
    ROTATED = "rotated"
    REFERENCES_CLEARED = "references_cleared"
    PAGE_OUT = "page_out"


# Effects that remove a page from residency.
REMOVALS = frozenset({EffectKind.EVICTED, EffectKind.WRITTEN_BACK})

# Outcomes where the accessed page was not resident beforehand.
FAULTS = frozenset({EventKind.HARD_FAULT, EventKind.NO_CAPACITY})


@dataclass(frozen=True)
class Effect:
    """One side effect.  ``page_id`` is None for whole-policy effects."""

    kind: EffectKind
    page_id: PageId | None = None


@dataclass(frozen=True)
class AccessEvent:
    """Everything that happened during a single access.

    Attributes:
        page_id: The page that was accessed.
        kind: The outcome for that page.
        is_write: Whether the access was a write.
        time: Clock reading when the access was made.
        effects: Maintenance side effects, in the order they happened.

    """

    page_id: PageId
    kind: EventKind
    is_write: bool = False
    time: float = 0
    effects: tuple[Effect, ...] = field(default_factory=tuple)

    @property
    def is_fault(self) -> bool:
        """Return True if the page was not resident when accessed."""
        return self.kind in FAULTS

    @property
    def evicted(self) -> tuple[PageId, ...]:
        """Return every page removed from residency, in removal order."""
        return tuple(e.page_id for e in self.effects if e.kind in REMOVALS and e.page_id is not None)

    @property
    def written_back(self) -> tuple[PageId, ...]:
        """Return removed pages that were modified (tagged as written to disk)."""
        return self._ids(EffectKind.WRITTEN_BACK)

    @property
    def demoted(self) -> tuple[PageId, ...]:
        """Return pages moved from the active to the inactive population."""
        return self._ids(EffectKind.DEMOTED)

    @property
    def second_chances(self) -> tuple[PageId, ...]:
        """Return pages whose eviction was deferred by their reference bit."""
        return self._ids(EffectKind.SECOND_CHANCE)

    def _ids(self, kind: EffectKind) -> tuple[PageId, ...]:
        return tuple(e.page_id for e in self.effects if e.kind is kind and e.page_id is not None)
