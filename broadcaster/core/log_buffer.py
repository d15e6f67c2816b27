"""Bounded, ordered buffer of operator-facing log entries."""

from __future__ import annotations

import secrets
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

__all__ = ["LogKind", "LogEntry", "LogBuffer", "DEFAULT_CAPACITY"]

DEFAULT_CAPACITY = 100


class LogKind(str, Enum):
    """Category of a log entry."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


def _new_id() -> str:
    return secrets.token_hex(4)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class LogEntry:
    """Immutable record of one scheduler event.

    Attributes:
        kind: Category (info, success, error).
        message: Human-readable text.
        id: Short random token; unique in practice, not guaranteed.
        timestamp: UTC time the entry was created.
    """

    kind: LogKind
    message: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_utc_now)


class LogBuffer:
    """Fixed-capacity FIFO of log entries.

    Appending to a full buffer evicts the oldest entry. Not thread-safe;
    owned by a single scheduler running on one event loop.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize an empty buffer.

        Args:
            capacity: Maximum number of entries kept.

        Raises:
            ValueError: If capacity is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"Log capacity must be positive (got: {capacity})")
        self._entries: deque[LogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, kind: LogKind, message: str) -> LogEntry:
        """Add an entry at the tail, evicting the head if full.

        Args:
            kind: Entry category.
            message: Human-readable text.

        Returns:
            The stored entry.
        """
        entry = LogEntry(kind=kind, message=message)
        self._entries.append(entry)
        return entry

    def snapshot(self) -> tuple[LogEntry, ...]:
        """Return a point-in-time copy in insertion order."""
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
