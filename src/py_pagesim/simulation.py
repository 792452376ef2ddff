"""Trace replay — build a policy by name and feed it an access sequence.

A driver needs three things from the core: a way to construct a policy
from plain options, a way to describe an access trace, and a loop that
replays the trace and collects what happened.  This module provides
them:

- **POLICIES** / **create_policy()** — name → policy class registry.
- **Access** / **parse_trace()** — normalise ints, ``(id, write)`` pairs
  and ``{"page": id, "write": bool}`` mappings into ``Access`` records.
- **run_trace()** — replay a trace, advancing a logical clock by a fixed
  ``step`` before each access so pages age deterministically.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from typing import Any

from py_pagesim.clock import Clock, LogicalClock
from py_pagesim.config import AgingConfig, ConfigurationError, TwoListConfig, WorkingSetConfig, config_options
from py_pagesim.events import AccessEvent
from py_pagesim.logging import Logger
from py_pagesim.policies import AgingPolicy, Policy, PolicyStats, Snapshot, TwoListPolicy, WorkingSetPolicy
from py_pagesim.store import PageId

POLICIES: dict[str, type[TwoListPolicy] | type[AgingPolicy] | type[WorkingSetPolicy]] = {
    TwoListPolicy.name: TwoListPolicy,
    AgingPolicy.name: AgingPolicy,
    WorkingSetPolicy.name: WorkingSetPolicy,
}

_PAIR = 2

_CONFIGS: dict[str, type] = {
    TwoListPolicy.name: TwoListConfig,
    AgingPolicy.name: AgingConfig,
    WorkingSetPolicy.name: WorkingSetConfig,
}


@dataclass(frozen=True)
class Access:
    """One entry of an access trace."""

    page_id: PageId
    is_write: bool = False


@dataclass(frozen=True)
class SimulationResult:
    """Everything a trace replay produced.

    Attributes:
        events: One event per access, in trace order.
        snapshot: The policy state after the last access.
        stats: The policy counters after the last access.

    """

    events: tuple[AccessEvent, ...]
    snapshot: Snapshot
    stats: PolicyStats


def policy_defaults(name: str) -> dict[str, Any]:
    """Return the configurable options of a policy with their defaults.

    Raises:
        ConfigurationError: If the policy name is unknown.

    """
    return config_options(_config_type(name))


def _config_type(name: str) -> type:
    config_type = _CONFIGS.get(name)
    if config_type is None:
        msg = f"Unknown policy {name!r}; expected one of {sorted(POLICIES)}"
        raise ConfigurationError(msg)
    return config_type


def create_policy(
    name: str,
    *,
    clock: Clock | None = None,
    logger: Logger | None = None,
    **options: Any,
) -> Policy:
    """Build a policy by registry name.

    Args:
        name: One of the keys of ``POLICIES``.
        clock: Timestamp source handed to the policy.
        logger: Optional log handed to the policy.
        **options: Settings for the policy's config (``capacity`` is required).

    Raises:
        ConfigurationError: If the name or an option is unknown, or a
            value is out of range.

    """
    config_type = _config_type(name)
    known = {f.name for f in fields(config_type) if f.init}
    unknown = sorted(set(options) - known)
    if unknown:
        msg = f"Unknown option(s) for {name}: {', '.join(unknown)}"
        raise ConfigurationError(msg)
    if "capacity" not in options:
        msg = f"Policy {name} requires a capacity"
        raise ConfigurationError(msg)
    config = config_type(**options)
    return POLICIES[name].from_config(config, clock=clock, logger=logger)


def parse_trace(items: Iterable[Any]) -> list[Access]:
    """Normalise a trace into ``Access`` records.

    Each item may be an ``Access``, a page id, an ``(id, write)`` pair,
    or a mapping with ``page`` and optional ``write`` keys.

    Raises:
        ValueError: If an item has none of those shapes.

    """
    trace: list[Access] = []
    for item in items:
        if isinstance(item, Access):
            trace.append(item)
        elif isinstance(item, bool):
            msg = f"Not a page id: {item!r}"
            raise ValueError(msg)
        elif isinstance(item, int):
            trace.append(Access(page_id=item))
        elif isinstance(item, Mapping):
            if "page" not in item:
                msg = f"Trace entry {item!r} has no 'page' key"
                raise ValueError(msg)
            trace.append(Access(page_id=int(item["page"]), is_write=bool(item.get("write", False))))
        elif isinstance(item, (list, tuple)) and len(item) == _PAIR:
            page_id, is_write = item
            trace.append(Access(page_id=int(page_id), is_write=bool(is_write)))
        else:
            msg = f"Cannot parse trace entry {item!r}"
            raise ValueError(msg)
    return trace


def run_trace(
    policy: Policy,
    trace: Iterable[Any],
    *,
    clock: LogicalClock | None = None,
    step: float = 0,
) -> SimulationResult:
    """Replay a trace against a policy.

    Args:
        policy: The policy to drive.
        trace: Accesses in any shape ``parse_trace`` accepts.
        clock: The policy's logical clock, advanced by ``step`` before
            each access.  Required when ``step`` is non-zero.
        step: Clock time that passes before each access.

    Raises:
        ValueError: If step is negative, or non-zero without a clock.

    """
    if step < 0:
        msg = f"Step must be non-negative, got {step}"
        raise ValueError(msg)
    if step and clock is None:
        msg = "A clock is required to advance time between accesses"
        raise ValueError(msg)

    events: list[AccessEvent] = []
    for access in parse_trace(trace):
        if clock is not None and step:
            clock.advance(step)
        events.append(policy.access_page(access.page_id, access.is_write))
    return SimulationResult(events=tuple(events), snapshot=policy.snapshot(), stats=policy.stats)
