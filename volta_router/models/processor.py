from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CircuitState(str, Enum):
    CLOSED = "closed"       # healthy, eligible for routing
    OPEN = "open"           # tripped, excluded from ranking
    HALF_OPEN = "half_open" # timeout elapsed, eligible again as a probe


class ProcessorStats(BaseModel):
    name: str
    country: str
    approval_rate: float
    transaction_count: int
    last_updated: datetime
    circuit_state: Optional[CircuitState] = None
    circuit_opened_at: Optional[datetime] = None


class ProcessorHealthResponse(BaseModel):
    processors: list[ProcessorStats]


class HealthResponse(BaseModel):
    status: str


class ErrorResponse(BaseModel):
    error: str
    message: str
