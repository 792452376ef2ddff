"""Policy logging — a structured audit trail of paging decisions.

The logger records one structured entry per interesting event: every
access outcome, every eviction, every dropped access.  It is the
simulator's equivalent of the kernel log buffer (``dmesg``): policies
never print, they append to a log that a caller may inspect later.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, time).
- **Logger** — an append-only log with filtering and clearing.

Design choices:
    - **IntEnum for levels** so they compare naturally with ``<``.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **The clock reading is part of the entry** so a log can be lined
      up against the access trace that produced it.
"""

from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The policy that generated the event (e.g. "two-list").
        time: The policy clock reading when the event happened.

    """

    level: LogLevel
    message: str
    source: str
    time: float = 0

    def __str__(self) -> str:
        """Format as ``[LEVEL] source@time: message``."""
        return f"[{self.level.name}] {self.source}@{self.time:g}: {self.message}"


class Logger:
    """Append-only log buffer with filtering.

    Entries can be filtered by minimum level and/or source.  A logger may
    be shared by several policies; the ``source`` field tells them apart.
    """

    def __init__(self, *, min_level: LogLevel = LogLevel.DEBUG) -> None:
        """Create an empty logger.

        Args:
            min_level: Entries below this level are discarded on arrival.

        """
        self._min_level = min_level
        self._entries: list[LogEntry] = []

    @property
    def min_level(self) -> LogLevel:
        """Return the lowest level this logger keeps."""
        return self._min_level

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        time: float = 0,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Policy that generated the event.
            time: Clock reading at the time of the event.

        """
        if level < self._min_level:
            return
        self._entries.append(LogEntry(level=level, message=message, source=source, time=time))

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.

        Returns:
            A filtered list of log entries.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        return result if result is not self._entries else list(result)

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()

    def __len__(self) -> int:
        """Return the number of stored entries."""
        return len(self._entries)
