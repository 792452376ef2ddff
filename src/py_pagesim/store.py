"""Page store — the single owner of resident unit metadata.

Every policy keeps its bookkeeping in two kinds of structure:

1. A **page store**: a dict from page identifier to a ``Unit`` record
   (reference bit, modified bit, residency, last access time).
2. One or more **lists** of identifiers (active, inactive, working set).

The lists never hold ``Unit`` objects, only identifiers.  Looking a unit
up through the store means there is exactly one copy of its state, and
removing it from a list can never remove "the wrong object".

The store holds no policy: it does not decide what to evict.  Inserting
an identifier twice or removing one that is absent means a policy's
lists have drifted from its index, so those raise ``InvariantViolation``
subclasses rather than failing quietly.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum

PageId = int


class InvariantViolation(Exception):
    """Raised when a policy's lists and page index disagree."""


class DuplicateKeyError(InvariantViolation):
    """Raised when inserting an identifier that is already resident."""


class NotFoundError(InvariantViolation):
    """Raised when looking up or removing an identifier that is not resident."""


class Residency(StrEnum):
    """Which population a resident unit belongs to."""

    INACTIVE = "inactive"
    ACTIVE = "active"
    RESIDENT = "resident"


@dataclass
class Unit:
    """Metadata for one resident page.

    Attributes:
        page_id: The page identifier.
        residency: Which list (or the working set) holds the page.
        referenced: Reference bit, set on access and cleared by scans.
        modified: Dirty bit, set on write access.
        last_access: Clock reading of the most recent access.

    """

    page_id: PageId
    residency: Residency
    referenced: bool = False
    modified: bool = False
    last_access: float = 0

    def touch(self, now: float, *, write: bool = False) -> None:
        """Record an access at time ``now``."""
        self.last_access = now
        if write:
            self.modified = True

    def age(self, now: float) -> float:
        """Return how long ago the page was last accessed."""
        return now - self.last_access

    def __str__(self) -> str:
        """Format as the page number with ``*`` (referenced) and ``m`` (modified)."""
        marks = ("*" if self.referenced else "") + ("m" if self.modified else "")
        return f"{self.page_id}{marks}"


class PageStore:
    """Identifier → unit index for the resident pages of one policy."""

    def __init__(self) -> None:
        """Create an empty store."""
        self._units: dict[PageId, Unit] = {}

    def get(self, page_id: PageId) -> Unit | None:
        """Return the unit for ``page_id``, or None if it is not resident."""
        return self._units.get(page_id)

    def __getitem__(self, page_id: PageId) -> Unit:
        """Return the unit for ``page_id``.

        Raises:
            NotFoundError: If the page is not resident.

        """
        unit = self._units.get(page_id)
        if unit is None:
            msg = f"Page {page_id} is not resident"
            raise NotFoundError(msg)
        return unit

    def insert(self, unit: Unit) -> None:
        """Add a newly resident unit.

        Raises:
            DuplicateKeyError: If the identifier is already resident.

        """
        if unit.page_id in self._units:
            msg = f"Page {unit.page_id} is already resident"
            raise DuplicateKeyError(msg)
        self._units[unit.page_id] = unit

    def remove(self, page_id: PageId) -> Unit:
        """Drop a unit from the index and return it.

        Raises:
            NotFoundError: If the page is not resident.

        """
        unit = self._units.pop(page_id, None)
        if unit is None:
            msg = f"Page {page_id} is not resident"
            raise NotFoundError(msg)
        return unit

    @property
    def size(self) -> int:
        """Return the number of resident units."""
        return len(self._units)

    def ids(self) -> list[PageId]:
        """Return resident identifiers in insertion order."""
        return list(self._units)

    def units(self) -> list[Unit]:
        """Return resident units in insertion order."""
        return list(self._units.values())

    def __contains__(self, page_id: object) -> bool:
        """Return True if the page is resident."""
        return page_id in self._units

    def __iter__(self) -> Iterator[Unit]:
        """Iterate over resident units in insertion order."""
        return iter(self._units.values())

    def __len__(self) -> int:
        """Return the number of resident units."""
        return len(self._units)
