from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


class TransactionStatus(str, Enum):
    APPROVED = "approved"
    DECLINED = "declined"


class OutcomeRecord(BaseModel):
    """A single processor outcome. Immutable once created."""

    id: str = ""
    processor: str = Field(..., min_length=1)
    country: str = Field(..., min_length=2, max_length=2)
    currency: str = Field("", max_length=3)
    amount: float = 0.0
    status: TransactionStatus
    timestamp: datetime

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Naive timestamps from datasets are treated as UTC so window math never
        # compares naive and aware datetimes.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_approved(self) -> bool:
        return self.status == TransactionStatus.APPROVED


class TransactionDataset(BaseModel):
    transactions: list[OutcomeRecord] = Field(default_factory=list)


class LoadDataResponse(BaseModel):
    message: str
    transactions_loaded: int
