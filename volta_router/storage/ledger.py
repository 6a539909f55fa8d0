from datetime import datetime, timedelta, timezone
from typing import Iterable

from volta_router.models.transaction import OutcomeRecord
from volta_router.storage.rwlock import ReadWriteLock


class TransactionLedger:
    """
    Append-only, in-memory history of processor outcomes.

    Records are never evicted individually; the approval-rate window is
    applied at query time, so history simply grows until clear().
    Reads share the lock, appends and clear() take it exclusively.
    """

    def __init__(self) -> None:
        self._records: list[OutcomeRecord] = []
        self.lock = ReadWriteLock()

    def append(self, record: OutcomeRecord) -> None:
        with self.lock.write():
            self._records.append(record)

    def append_batch(self, records: Iterable[OutcomeRecord]) -> None:
        batch = list(records)
        with self.lock.write():
            self._records.extend(batch)

    def query(
        self,
        processor: str,
        country: str,
        window: timedelta,
        now: datetime | None = None,
    ) -> list[OutcomeRecord]:
        """Records for the exact (processor, country) pair newer than now - window."""
        cutoff = (now or datetime.now(timezone.utc)) - window
        with self.lock.read():
            return [
                r for r in self._records
                if r.processor == processor and r.country == country and r.timestamp > cutoff
            ]

    def count_all(self) -> int:
        with self.lock.read():
            return len(self._records)

    def snapshot_all(self) -> list[OutcomeRecord]:
        with self.lock.read():
            return list(self._records)

    def clear(self) -> None:
        with self.lock.write():
            self.clear_unlocked()

    def clear_unlocked(self) -> None:
        """Empty the ledger; caller must already hold the write lock."""
        self._records = []
