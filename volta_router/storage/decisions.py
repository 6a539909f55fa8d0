from collections import Counter

from volta_router.models.routing import RoutingDecision
from volta_router.storage.rwlock import ReadWriteLock


class DecisionTracker:
    """Append-only log of routing choices, read only for reporting."""

    def __init__(self) -> None:
        self._decisions: list[RoutingDecision] = []
        self.lock = ReadWriteLock()

    def record(self, decision: RoutingDecision) -> None:
        with self.lock.write():
            self._decisions.append(decision)

    def distribution(self, limit: int) -> dict[str, int]:
        """Processor -> count over the most recent *limit* decisions."""
        if limit <= 0:
            return {}
        with self.lock.read():
            recent = self._decisions[-limit:]
        return dict(Counter(d.processor for d in recent))

    def count(self) -> int:
        with self.lock.read():
            return len(self._decisions)

    def clear(self) -> None:
        with self.lock.write():
            self.clear_unlocked()

    def clear_unlocked(self) -> None:
        self._decisions = []
