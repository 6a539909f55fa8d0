from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RoutingRequest(BaseModel):
    amount: float = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    country: str = Field(..., min_length=2, max_length=2)


class FailoverOption(BaseModel):
    processor: str
    approval_rate: float


class RoutingResponse(BaseModel):
    processor: str
    approval_rate: float
    risk_level: RiskLevel
    reason: str
    timestamp: datetime
    fallback: Optional[FailoverOption] = None
    last_resort: Optional[FailoverOption] = None


class RoutingDecision(BaseModel):
    """Historical routing choice, kept only for distribution statistics."""

    processor: str
    country: str
    approval_rate: float
    timestamp: datetime

    model_config = {"frozen": True}


class RoutingStats(BaseModel):
    total_decisions: int
    distribution: Dict[str, int]
    window: str
