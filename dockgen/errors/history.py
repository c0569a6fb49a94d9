"""Bounded, time-ordered store of normalized failures.

Insertion always appends; once ``max_size`` is exceeded the oldest record is
evicted. Queries back the correlation analysis and the statistics summary.
"""
from __future__ import annotations

from collections import Counter, deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from .records import ErrorRecord
from .taxonomy import ErrorKind

RECENT_WINDOW = timedelta(seconds=60)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ErrorHistory:
    """FIFO history of ``ErrorRecord`` objects.

    Not thread-safe; the handler is driven by a single sequential caller.
    """

    def __init__(self, max_size: int = 100, clock: Callable[[], datetime] = _utcnow):
        if max_size < 0:
            raise ValueError(f"max_size must be >= 0, got {max_size}")
        self.max_size = max_size
        self._clock = clock
        self._records: deque[ErrorRecord] = deque(maxlen=max_size)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(tuple(self._records))

    def append(self, record: ErrorRecord) -> ErrorRecord | None:
        """Append a record; return the evicted record, if any."""
        if self.max_size == 0:
            return record
        evicted = self._records[0] if len(self._records) == self.max_size else None
        self._records.append(record)
        return evicted

    def snapshot(self) -> tuple[ErrorRecord, ...]:
        return tuple(self._records)

    def clear(self) -> None:
        self._records.clear()

    def recent(self, count: int) -> list[ErrorRecord]:
        """Most recent ``count`` records, oldest first."""
        if count <= 0:
            return []
        return list(self._records)[-count:]

    def recent_kinds(self, count: int) -> list[ErrorKind]:
        return [r.kind for r in self.recent(count)]

    def recent_of_kind(
        self,
        kind: ErrorKind,
        window: timedelta = RECENT_WINDOW,
        now: datetime | None = None,
    ) -> list[ErrorRecord]:
        """Records of ``kind`` whose timestamp falls inside the trailing window."""
        cutoff = (now or self._clock()) - window
        return [r for r in self._records if r.kind is kind and r.timestamp >= cutoff]

    def recent_count(self, window: timedelta = RECENT_WINDOW, now: datetime | None = None) -> int:
        cutoff = (now or self._clock()) - window
        return sum(1 for r in self._records if r.timestamp >= cutoff)

    def counts_by_kind(self) -> dict[str, int]:
        return dict(Counter(r.kind.value for r in self._records))

    def counts_by_severity(self) -> dict[str, int]:
        return dict(Counter(r.severity.value for r in self._records))


__all__ = ["ErrorHistory", "RECENT_WINDOW"]
