"""py_pagesim — page-replacement policies from three operating systems.

Re-exports the public API so callers can write::

    from py_pagesim import TwoListPolicy, LogicalClock

    clock = LogicalClock()
    policy = TwoListPolicy(5, clock=clock)
    event = policy.access_page(1)
"""

from py_pagesim.clock import Clock, LogicalClock, WallClock
from py_pagesim.config import AgingConfig, ConfigurationError, TwoListConfig, WorkingSetConfig
from py_pagesim.events import AccessEvent, Effect, EffectKind, EventKind
from py_pagesim.logging import LogEntry, Logger, LogLevel
from py_pagesim.policies import AgingPolicy, Policy, PolicyStats, Snapshot, TwoListPolicy, WorkingSetPolicy
from py_pagesim.simulation import (
    POLICIES,
    Access,
    SimulationResult,
    create_policy,
    parse_trace,
    policy_defaults,
    run_trace,
)
from py_pagesim.store import (
    DuplicateKeyError,
    InvariantViolation,
    NotFoundError,
    PageId,
    PageStore,
    Residency,
    Unit,
)

__all__ = [
    "POLICIES",
    "Access",
    "AccessEvent",
    "AgingConfig",
    "AgingPolicy",
    "Clock",
    "ConfigurationError",
    "DuplicateKeyError",
    "Effect",
    "EffectKind",
    "EventKind",
    "InvariantViolation",
    "LogEntry",
    "LogLevel",
    "Logger",
    "LogicalClock",
    "NotFoundError",
    "PageId",
    "PageStore",
    "Policy",
    "PolicyStats",
    "Residency",
    "SimulationResult",
    "Snapshot",
    "TwoListConfig",
    "TwoListPolicy",
    "WallClock",
    "WorkingSetConfig",
    "WorkingSetPolicy",
    "create_policy",
    "parse_trace",
    "policy_defaults",
    "run_trace",
]
