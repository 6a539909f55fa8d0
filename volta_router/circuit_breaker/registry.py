from datetime import datetime, timedelta, timezone

from volta_router.circuit_breaker.breaker import CLOSED, BreakerEntry, Open, derive_state
from volta_router.models.processor import CircuitState
from volta_router.storage.rwlock import ReadWriteLock


class CircuitRegistry:
    """
    Stores at most one breaker entry per (processor, country).
    Absence of an entry means CLOSED.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], Open] = {}
        self.lock = ReadWriteLock()

    def open(self, processor: str, country: str, now: datetime | None = None) -> None:
        """Upsert an open entry; re-opening an open breaker just refreshes opened_at."""
        opened_at = now or datetime.now(timezone.utc)
        with self.lock.write():
            self._entries[(processor, country)] = Open(opened_at=opened_at)

    def close(self, processor: str, country: str) -> None:
        with self.lock.write():
            self._entries.pop((processor, country), None)

    def lookup(self, processor: str, country: str) -> BreakerEntry:
        with self.lock.read():
            return self._entries.get((processor, country), CLOSED)

    def state_of(
        self,
        processor: str,
        country: str,
        timeout: timedelta,
        now: datetime | None = None,
    ) -> CircuitState:
        entry = self.lookup(processor, country)
        return derive_state(entry, now or datetime.now(timezone.utc), timeout)

    def opened_at_of(self, processor: str, country: str) -> datetime | None:
        entry = self.lookup(processor, country)
        return entry.opened_at if isinstance(entry, Open) else None

    def count(self) -> int:
        with self.lock.read():
            return len(self._entries)

    def clear(self) -> None:
        with self.lock.write():
            self.clear_unlocked()

    def clear_unlocked(self) -> None:
        self._entries = {}
