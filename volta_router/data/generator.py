"""
Synthetic outcome data for demos and local testing.

Every catalog processor gets the same number of records spread evenly
over the last ten minutes, so the whole dataset falls inside the default
fifteen-minute routing window. Profiles:

  strong      -> ~90% approval throughout
  normal      -> ~83% approval throughout
  bad_period  -> drops to 55% between 4 and 7 minutes ago
"""

import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

from volta_router.models.transaction import OutcomeRecord, TransactionDataset, TransactionStatus


@dataclass(frozen=True)
class ProcessorProfile:
    name: str
    country: str
    currency: str
    approval_rate: float
    pattern: str


PROFILES: tuple[ProcessorProfile, ...] = (
    ProcessorProfile("RapidPay_BR", "BR", "BRL", 0.92, "strong"),
    ProcessorProfile("TurboAcquire_BR", "BR", "BRL", 0.85, "normal"),
    ProcessorProfile("PayFlow_BR", "BR", "BRL", 0.55, "bad_period"),
    ProcessorProfile("RapidPay_MX", "MX", "MXN", 0.90, "strong"),
    ProcessorProfile("TurboAcquire_MX", "MX", "MXN", 0.82, "normal"),
    ProcessorProfile("PayFlow_MX", "MX", "MXN", 0.56, "bad_period"),
    ProcessorProfile("RapidPay_CO", "CO", "COP", 0.91, "strong"),
    ProcessorProfile("TurboAcquire_CO", "CO", "COP", 0.83, "normal"),
    ProcessorProfile("PayFlow_CO", "CO", "COP", 0.57, "bad_period"),
)

_SPREAD_MINUTES = 10.0
_BAD_PERIOD_MINUTES = (4, 7)
_BAD_PERIOD_APPROVAL = 0.55
_AMOUNT_RANGE = (5.0, 150.0)


def generate_test_transactions(
    count: int,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[OutcomeRecord]:
    now = now or datetime.now(timezone.utc)
    rng = rng or random.Random()

    per_processor = count // len(PROFILES)
    if per_processor == 0:
        return []
    interval = _SPREAD_MINUTES / per_processor

    records: list[OutcomeRecord] = []
    for profile in PROFILES:
        for i in range(per_processor):
            minutes_ago = int(i * interval)
            in_bad_period = (
                profile.pattern == "bad_period"
                and _BAD_PERIOD_MINUTES[0] <= minutes_ago <= _BAD_PERIOD_MINUTES[1]
            )
            approval = _BAD_PERIOD_APPROVAL if in_bad_period else profile.approval_rate
            status = TransactionStatus.APPROVED if rng.random() <= approval else TransactionStatus.DECLINED

            records.append(OutcomeRecord(
                id=f"txn_{uuid.UUID(int=rng.getrandbits(128)).hex[:8]}",
                processor=profile.name,
                country=profile.country,
                currency=profile.currency,
                amount=round(rng.uniform(*_AMOUNT_RANGE), 2),
                status=status,
                timestamp=now - timedelta(minutes=minutes_ago),
            ))
    return records


def save_transactions_to_file(records: list[OutcomeRecord], path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    dataset = TransactionDataset(transactions=records)
    path.write_text(dataset.model_dump_json(indent=2), encoding="utf-8")


def load_transactions_from_file(path: str | Path) -> list[OutcomeRecord]:
    """Raises OSError if unreadable, pydantic.ValidationError if malformed."""
    text = Path(path).read_text(encoding="utf-8")
    return TransactionDataset.model_validate_json(text).transactions
