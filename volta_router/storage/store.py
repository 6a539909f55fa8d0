import logging
from contextlib import ExitStack

from volta_router.circuit_breaker.registry import CircuitRegistry
from volta_router.storage.decisions import DecisionTracker
from volta_router.storage.ledger import TransactionLedger

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Owns the three process-lifetime stores.

    Each store has its own lock so unrelated reads and writes never
    contend. clear() takes all three write locks (always in the same
    order) before emptying anything, so no reader of any store sees a
    partially reset state.
    """

    def __init__(
        self,
        ledger: TransactionLedger | None = None,
        circuits: CircuitRegistry | None = None,
        decisions: DecisionTracker | None = None,
    ) -> None:
        self.ledger = ledger or TransactionLedger()
        self.circuits = circuits or CircuitRegistry()
        self.decisions = decisions or DecisionTracker()

    def clear(self) -> None:
        with ExitStack() as stack:
            for store in (self.ledger, self.circuits, self.decisions):
                stack.enter_context(store.lock.write())
            self.ledger.clear_unlocked()
            self.circuits.clear_unlocked()
            self.decisions.clear_unlocked()
        logger.info("All stores cleared")
