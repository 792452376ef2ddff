"""Narration — turn events and snapshots into human-readable lines.

The policies are silent: they return ``AccessEvent`` records and
``Snapshot`` views.  This module is the presentation side, producing
the kind of step-by-step commentary a teaching demo prints::

    Access page 4 (write)
      Page fault - page 4 loaded
      Page 1 evicted
      Active: [5, 3*] | Inactive: [4m, 2] | Free: 0/5

Page markers follow the usual convention: ``*`` for a set reference
bit, ``m`` for a modified (dirty) page.
"""

from collections.abc import Iterable

from py_pagesim.events import AccessEvent, Effect, EffectKind, EventKind
from py_pagesim.policies.base import PolicyStats, Snapshot
from py_pagesim.store import PageId

_OUTCOMES = {
    EventKind.HIT: "Page {page} hit",
    EventKind.FIRST_REFERENCE: "First reference to page {page} in inactive list",
    EventKind.PROMOTED: "Second reference - promoting page {page} to active list",
    EventKind.SOFT_FAULT: "Soft fault: page {page} moved to active list",
    EventKind.HARD_FAULT: "Page fault - page {page} loaded",
    EventKind.NO_CAPACITY: "No free pages available - access to page {page} dropped",
}

_EFFECTS = {
    EffectKind.EVICTED: "Page {page} evicted",
    EffectKind.WRITTEN_BACK: "Paging out modified page {page} to disk",
    EffectKind.DEMOTED: "Moved page {page} from active to inactive",
    EffectKind.SECOND_CHANCE: "Giving page {page} a second chance",
    EffectKind.ROTATED: "Page {page} rotated to the active head",
    EffectKind.REFERENCES_CLEARED: "Reference bits cleared",
    EffectKind.PAGE_OUT: "Page-out daemon running",
}


def mark(page_id: PageId, snapshot: Snapshot) -> str:
    """Return a page label with ``*``/``m`` markers from a snapshot."""
    label = str(page_id)
    if page_id in snapshot.referenced:
        label += "*"
    if page_id in snapshot.modified:
        label += "m"
    return label


def describe_effect(effect: Effect) -> str:
    """Return one line describing a maintenance effect."""
    return _EFFECTS[effect.kind].format(page=effect.page_id)


def describe_event(event: AccessEvent) -> list[str]:
    """Return the header, outcome and effect lines for an access."""
    header = f"Access page {event.page_id}" + (" (write)" if event.is_write else "")
    lines = [header, f"  {_OUTCOMES[event.kind].format(page=event.page_id)}"]
    lines.extend(f"  {describe_effect(e)}" for e in event.effects)
    return lines


def render_snapshot(snapshot: Snapshot) -> str:
    """Return the one-line list view of a snapshot."""
    active = ", ".join(mark(p, snapshot) for p in snapshot.active_ids)
    inactive = ", ".join(mark(p, snapshot) for p in snapshot.inactive_ids)
    return f"Active: [{active}] | Inactive: [{inactive}] | Free: {snapshot.free_count}/{snapshot.capacity}"


def render_stats(stats: PolicyStats) -> str:
    """Return a one-line summary of the counters."""
    return (
        f"Accesses: {stats.accesses}, hits: {stats.hits}, "
        f"soft faults: {stats.soft_faults}, hard faults: {stats.hard_faults}, "
        f"evictions: {stats.evictions} (fault rate {stats.fault_rate:.0%})"
    )


def narrate(events: Iterable[AccessEvent]) -> list[str]:
    """Return the narration for a sequence of events."""
    lines: list[str] = []
    for event in events:
        lines.extend(describe_event(event))
    return lines
