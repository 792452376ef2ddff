"""Policy configuration — validated, immutable settings per policy.

Each policy has a frozen dataclass holding its capacity and the
constants that steer its decisions.  Several of those constants are
choices the three algorithms disagree on (whether a fault
counts as a reference, whether refill marks the moved page, whether the
page-out daemon ignores age under pressure), so they are settings rather
than hidden behaviour.

Validation happens once, in ``__post_init__``, and raises
``ConfigurationError``.  Derived defaults (the aging policy's water
marks) are resolved there too, into separate fields, so the requested
and the effective values are both kept.
"""

from dataclasses import dataclass, field, fields
from typing import Any


class ConfigurationError(ValueError):
    """Raised when a policy is constructed with invalid settings."""


def _require_count(name: str, value: int) -> None:
    # bool is an int subclass but never a meaningful count.
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigurationError(msg)


def _require_positive(name: str, value: int) -> None:
    _require_count(name, value)
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigurationError(msg)


def _require_non_negative(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{name} must be a number, got {value!r}"
        raise ConfigurationError(msg)
    if value < 0:
        msg = f"{name} must be non-negative, got {value}"
        raise ConfigurationError(msg)


@dataclass(frozen=True)
class TwoListConfig:
    """Settings for the two-list (active/inactive) policy.

    Attributes:
        capacity: Pages the two lists may hold together.
        inactive_ratio: Refill keeps ``inactive >= total // inactive_ratio``.
        scan_divisor: Reclaim scans at least ``len(inactive) // scan_divisor``.
        scan_multiplier: Reclaim scans at least ``n * scan_multiplier``.
        fault_marks_referenced: A faulted page starts with its reference
            bit set, so the next access promotes it.
        refill_marks_referenced: A page moved down by refill keeps its
            reference bit set instead of starting clean.

    """

    capacity: int
    inactive_ratio: int = 3
    scan_divisor: int = 6
    scan_multiplier: int = 2
    fault_marks_referenced: bool = True
    refill_marks_referenced: bool = False

    def __post_init__(self) -> None:
        """Validate the settings."""
        _require_positive("capacity", self.capacity)
        _require_positive("inactive_ratio", self.inactive_ratio)
        _require_positive("scan_divisor", self.scan_divisor)
        _require_positive("scan_multiplier", self.scan_multiplier)


@dataclass(frozen=True)
class AgingConfig:
    """Settings for the aging active/inactive policy.

    ``min_free`` and ``target_free`` are the requested water marks; left
    as None they default to ``max(1, capacity // 4)`` and
    ``max(low_water, capacity // 2)``.  The resolved values are always
    available as ``low_water`` and ``high_water``.

    Attributes:
        capacity: Physical pages available.
        active_threshold: Active pages older than this are demoted.
        inactive_threshold: Inactive pages older than this may be paged out.
        min_free: Requested low-water mark, or None for the default.
        target_free: Requested high-water mark, or None for the default.
        urgent_page_out: When the daemon starts with no free pages, page
            out inactive pages regardless of age.
        low_water: Resolved low-water mark; below it the page-out daemon runs.
        high_water: Resolved high-water mark; the daemon stops once it is reached.

    """

    capacity: int
    active_threshold: float = 400
    inactive_threshold: float = 800
    min_free: int | None = None
    target_free: int | None = None
    urgent_page_out: bool = False
    low_water: int = field(init=False)
    high_water: int = field(init=False)

    def __post_init__(self) -> None:
        """Validate the settings and resolve the water marks."""
        _require_positive("capacity", self.capacity)
        _require_non_negative("active_threshold", self.active_threshold)
        _require_non_negative("inactive_threshold", self.inactive_threshold)

        low_water = max(1, self.capacity // 4)
        if self.min_free is not None:
            _require_count("min_free", self.min_free)
            _require_non_negative("min_free", self.min_free)
            low_water = self.min_free
        high_water = max(low_water, self.capacity // 2)
        if self.target_free is not None:
            _require_count("target_free", self.target_free)
            high_water = self.target_free
        if high_water < low_water:
            msg = f"target_free ({high_water}) must be at least min_free ({low_water})"
            raise ConfigurationError(msg)
        if high_water > self.capacity:
            msg = f"target_free ({high_water}) cannot exceed capacity ({self.capacity})"
            raise ConfigurationError(msg)
        # Frozen dataclass: write the resolved values through object.__setattr__.
        object.__setattr__(self, "low_water", low_water)
        object.__setattr__(self, "high_water", high_water)


@dataclass(frozen=True)
class WorkingSetConfig:
    """Settings for the working-set policy.

    Attributes:
        capacity: Maximum size of the working set.
        age_threshold: Pages idle longer than this are trimmed.
        reference_clear_interval: Clock time between reference-bit sweeps.

    """

    capacity: int
    age_threshold: float = 1000
    reference_clear_interval: float = 1000

    def __post_init__(self) -> None:
        """Validate the settings."""
        _require_positive("capacity", self.capacity)
        _require_non_negative("age_threshold", self.age_threshold)
        _require_non_negative("reference_clear_interval", self.reference_clear_interval)


def config_options(config_type: type) -> dict[str, Any]:
    """Return the option names of a config class with their defaults.

    ``capacity`` has no default and is reported as None.  Values derived
    in ``__post_init__`` are not options and are left out.
    """
    return {f.name: (None if f.name == "capacity" else f.default) for f in fields(config_type) if f.init}
