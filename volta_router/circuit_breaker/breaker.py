from dataclasses import dataclass
from datetime import datetime, timedelta

from volta_router.models.processor import CircuitState


@dataclass(frozen=True)
class Closed:
    """No stored entry for the key."""


@dataclass(frozen=True)
class Open:
    """
    A tripped breaker.

    Half-open is never stored: an Open entry older than the timeout reads
    as HALF_OPEN, so recovery needs no background timer.
    """

    opened_at: datetime

    def state_at(self, now: datetime, timeout: timedelta) -> CircuitState:
        if now - self.opened_at > timeout:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN


BreakerEntry = Closed | Open

CLOSED = Closed()


def derive_state(entry: BreakerEntry, now: datetime, timeout: timedelta) -> CircuitState:
    if isinstance(entry, Open):
        return entry.state_at(now, timeout)
    return CircuitState.CLOSED
