"""Unit tests for the routing engine.

All tests drive the engine directly against an in-memory store — no HTTP
server is needed. Outcome history is seeded with helper functions and a
small fixture catalog is injected so no test depends on the default one.
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone

import pytest

from volta_router.circuit_breaker.breaker import Closed, Open
from volta_router.config import Settings, freeze_catalog
from volta_router.engine.errors import (
    NoDataAvailable,
    NoProcessorsConfigured,
    ProcessorNotFound,
    UnsupportedCountry,
)
from volta_router.engine.routing_engine import RoutingEngine
from volta_router.models.processor import CircuitState
from volta_router.models.routing import RiskLevel, RoutingRequest
from volta_router.models.transaction import OutcomeRecord, TransactionStatus
from volta_router.storage.store import InMemoryStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CATALOG = freeze_catalog({
    "BR": ["Alpha_BR", "Beta_BR", "Gamma_BR"],
    "MX": ["Alpha_MX", "Beta_MX"],
    "AR": [],
})


def _request(country: str = "BR") -> RoutingRequest:
    return RoutingRequest(amount=100.0, currency="BRL", country=country)


def _outcomes(
    processor: str,
    approved: int,
    declined: int,
    country: str = "BR",
    minutes_ago: float = 5,
) -> list[OutcomeRecord]:
    ts = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    statuses = [TransactionStatus.APPROVED] * approved + [TransactionStatus.DECLINED] * declined
    return [
        OutcomeRecord(
            id=f"{processor}-{i}",
            processor=processor,
            country=country,
            currency="BRL",
            amount=50.0,
            status=status,
            timestamp=ts,
        )
        for i, status in enumerate(statuses)
    ]


def _engine(settings: Settings | None = None, catalog=CATALOG) -> tuple[RoutingEngine, InMemoryStore]:
    store = InMemoryStore()
    engine = RoutingEngine(store=store, settings=settings or Settings(), catalog=catalog)
    return engine, store


# ---------------------------------------------------------------------------
# Approval rates
# ---------------------------------------------------------------------------

def test_approval_rate_counts_only_matching_pair():
    """9/10 approved for Alpha_BR; Alpha_MX and Beta_BR history must not leak in."""
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 9, 1))
    store.ledger.append_batch(_outcomes("Alpha_MX", 0, 10, country="MX"))
    store.ledger.append_batch(_outcomes("Beta_BR", 1, 9))

    assert engine.approval_rate("Alpha_BR", "BR") == 90.0


def test_approval_rate_no_data_is_zero():
    engine, _ = _engine()
    assert engine.approval_rate("Alpha_BR", "BR") == 0.0


def test_approval_rate_ignores_records_outside_window():
    """Only the two approvals inside the 15-minute window count."""
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 2, 0, minutes_ago=5))
    store.ledger.append_batch(_outcomes("Alpha_BR", 0, 5, minutes_ago=20))

    assert engine.approval_rate("Alpha_BR", "BR") == 100.0


def test_approval_rate_rounding_precision():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 2, 1))
    assert engine.approval_rate("Alpha_BR", "BR") == 66.67


# ---------------------------------------------------------------------------
# Ranking and failover
# ---------------------------------------------------------------------------

def test_selects_highest_rate_with_failover_ranking():
    """Rates 90/70/50 -> primary, fallback and last resort in order; 90% is low risk."""
    # Breaker threshold below 50 so every candidate stays eligible.
    engine, store = _engine(Settings(CB_THRESHOLD=40.0))
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))   # 50%
    store.ledger.append_batch(_outcomes("Beta_BR", 9, 1))    # 90%
    store.ledger.append_batch(_outcomes("Gamma_BR", 7, 3))   # 70%

    resp = engine.decide(_request(), want_failover=True)

    assert resp.processor == "Beta_BR"
    assert resp.approval_rate == 90.0
    assert resp.risk_level == RiskLevel.LOW
    assert resp.reason == "Highest approval rate for BR"
    assert resp.fallback.processor == "Gamma_BR"
    assert resp.fallback.approval_rate == 70.0
    assert resp.last_resort.processor == "Alpha_BR"
    assert resp.last_resort.approval_rate == 50.0


def test_no_failover_options_unless_requested():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 9, 1))
    store.ledger.append_batch(_outcomes("Beta_BR", 8, 2))

    resp = engine.decide(_request())

    assert resp.processor == "Alpha_BR"
    assert resp.fallback is None
    assert resp.last_resort is None


def test_failover_never_offers_no_data_processor():
    """Gamma_BR has no history, so only one backup can be offered."""
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 9, 1))
    store.ledger.append_batch(_outcomes("Beta_BR", 8, 2))

    resp = engine.decide(_request(), want_failover=True)

    assert resp.fallback.processor == "Beta_BR"
    assert resp.last_resort is None


def test_equal_rates_keep_catalog_order():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Gamma_BR", 8, 2))
    store.ledger.append_batch(_outcomes("Beta_BR", 8, 2))
    store.ledger.append_batch(_outcomes("Alpha_BR", 8, 2))

    resp = engine.decide(_request(), want_failover=True)

    assert resp.processor == "Alpha_BR"
    assert resp.fallback.processor == "Beta_BR"
    assert resp.last_resort.processor == "Gamma_BR"


@pytest.mark.parametrize(
    "rate, expected",
    [
        (60.0, RiskLevel.HIGH),
        (69.99, RiskLevel.HIGH),
        (70.0, RiskLevel.MEDIUM),
        (79.99, RiskLevel.MEDIUM),
        (80.0, RiskLevel.LOW),
        (100.0, RiskLevel.LOW),
    ],
)
def test_risk_classification_boundaries(rate, expected):
    engine, _ = _engine()
    assert engine.classify_risk(rate) == expected


def test_high_risk_reason_mentions_threshold():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 13, 7))   # 65%

    resp = engine.decide(_request())

    assert resp.risk_level == RiskLevel.HIGH
    assert resp.reason == "Best available processor for BR (all processors below 70%)"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

def test_unsupported_country_names_the_code():
    engine, _ = _engine()
    with pytest.raises(UnsupportedCountry) as exc_info:
        engine.decide(_request("ZZ"))
    assert str(exc_info.value) == "country ZZ not supported"
    assert exc_info.value.country == "ZZ"


def test_empty_catalog_entry_is_a_configuration_error():
    engine, _ = _engine()
    with pytest.raises(NoProcessorsConfigured):
        engine.decide(_request("AR"))


def test_no_history_raises_no_data_available():
    engine, store = _engine()
    with pytest.raises(NoDataAvailable):
        engine.decide(_request())
    assert store.decisions.count() == 0


def test_all_candidates_tripped_raises_no_data_available():
    """Every processor below the breaker threshold -> all excluded -> NoDataAvailable."""
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_MX", 5, 5, country="MX"))
    store.ledger.append_batch(_outcomes("Beta_MX", 4, 6, country="MX"))

    with pytest.raises(NoDataAvailable):
        engine.decide(_request("MX"))
    assert store.circuits.count() == 2


# ---------------------------------------------------------------------------
# Circuit breaker
# ---------------------------------------------------------------------------

def test_low_rate_trips_breaker_and_excludes_processor():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))   # 50% < 60%
    store.ledger.append_batch(_outcomes("Beta_BR", 8, 2))

    resp = engine.decide(_request(), want_failover=True)

    assert resp.processor == "Beta_BR"
    assert resp.fallback is None
    assert isinstance(store.circuits.lookup("Alpha_BR", "BR"), Open)


def test_zero_rate_never_trips_breaker():
    """All-declined history reads as 'no data' and leaves the breaker closed."""
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 0, 10))
    store.ledger.append_batch(_outcomes("Beta_BR", 9, 1))

    resp = engine.decide(_request())

    assert resp.processor == "Beta_BR"
    assert store.circuits.count() == 0


def test_open_breaker_excludes_until_timeout_then_half_open_probe():
    """
    Alpha_BR trips at 50%. It stays excluded on the next call, then re-enters
    ranking once the timeout elapses even though it is still below threshold.
    """
    engine, store = _engine(Settings(CB_TIMEOUT_SECONDS=0.2))
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))
    store.ledger.append_batch(_outcomes("Beta_BR", 9, 1))

    first = engine.decide(_request(), want_failover=True)
    assert first.fallback is None
    first_opened_at = store.circuits.opened_at_of("Alpha_BR", "BR")

    second = engine.decide(_request(), want_failover=True)
    assert second.fallback is None
    assert store.circuits.opened_at_of("Alpha_BR", "BR") == first_opened_at

    time.sleep(0.3)
    assert engine.stats_of("Alpha_BR").circuit_state == CircuitState.HALF_OPEN

    probe = engine.decide(_request(), want_failover=True)
    assert probe.processor == "Beta_BR"
    assert probe.fallback.processor == "Alpha_BR"
    assert probe.fallback.approval_rate == 50.0

    # Still degraded: the probe re-opened the breaker with a fresh timestamp
    assert store.circuits.opened_at_of("Alpha_BR", "BR") > first_opened_at
    third = engine.decide(_request(), want_failover=True)
    assert third.fallback is None


def test_half_open_breaker_closes_when_rate_recovers():
    engine, store = _engine(Settings(CB_TIMEOUT_SECONDS=0.1))
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))
    store.ledger.append_batch(_outcomes("Beta_BR", 7, 3))

    engine.decide(_request())
    assert isinstance(store.circuits.lookup("Alpha_BR", "BR"), Open)

    store.ledger.append_batch(_outcomes("Alpha_BR", 30, 0))  # 35/40 = 87.5%
    time.sleep(0.2)

    resp = engine.decide(_request())

    assert resp.processor == "Alpha_BR"
    assert resp.approval_rate == 87.5
    assert isinstance(store.circuits.lookup("Alpha_BR", "BR"), Closed)


def test_opening_an_open_breaker_is_idempotent():
    _, store = _engine()
    store.circuits.open("Alpha_BR", "BR")
    store.circuits.open("Alpha_BR", "BR")
    assert store.circuits.count() == 1


# ---------------------------------------------------------------------------
# Simulation
# ---------------------------------------------------------------------------

def test_simulate_has_no_side_effects_and_same_result():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))   # would trip
    store.ledger.append_batch(_outcomes("Beta_BR", 9, 1))
    store.ledger.append_batch(_outcomes("Gamma_BR", 7, 3))

    simulated = engine.decide(_request(), simulate=True, want_failover=True)

    assert store.decisions.count() == 0
    assert store.decisions.distribution(50) == {}
    assert store.circuits.count() == 0

    real = engine.decide(_request(), simulate=False, want_failover=True)

    assert store.decisions.count() == 1
    assert store.circuits.count() == 1
    assert simulated.model_dump(exclude={"timestamp"}) == real.model_dump(exclude={"timestamp"})


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

def test_stats_report_circuit_only_when_not_closed():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))
    store.ledger.append_batch(_outcomes("Beta_BR", 9, 1))
    engine.decide(_request())

    tripped = engine.stats_of("Alpha_BR")
    healthy = engine.stats_of("Beta_BR")

    assert tripped.circuit_state == CircuitState.OPEN
    assert tripped.circuit_opened_at is not None
    assert tripped.transaction_count == 10
    assert healthy.circuit_state is None
    assert healthy.circuit_opened_at is None
    assert healthy.approval_rate == 90.0


def test_stats_of_unknown_processor():
    engine, _ = _engine()
    with pytest.raises(ProcessorNotFound):
        engine.stats_of("Nope_BR")


def test_stats_of_all_follows_catalog_order():
    engine, _ = _engine()
    names = [s.name for s in engine.stats_of_all()]
    assert names == ["Alpha_BR", "Beta_BR", "Gamma_BR", "Alpha_MX", "Beta_MX"]


def test_routing_stats_distribution_over_recent_limit():
    engine, store = _engine(Settings(ROUTING_STATS_LIMIT=3))
    store.ledger.append_batch(_outcomes("Alpha_BR", 9, 1))
    store.ledger.append_batch(_outcomes("Alpha_MX", 9, 1, country="MX"))

    for _ in range(4):
        engine.decide(_request("BR"))
    for _ in range(2):
        engine.decide(_request("MX"))

    stats = engine.routing_stats()
    assert stats.total_decisions == 6
    assert stats.distribution == {"Alpha_BR": 1, "Alpha_MX": 2}
    assert stats.window == "last_3_decisions"


def test_clear_resets_every_store():
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 5, 5))
    store.ledger.append_batch(_outcomes("Beta_BR", 9, 1))
    engine.decide(_request())
    assert store.circuits.count() == 1

    store.clear()

    assert store.decisions.count() == 0
    assert store.ledger.count_all() == 0
    for stat in engine.stats_of_all():
        assert stat.transaction_count == 0
        assert stat.circuit_state is None


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

async def test_concurrent_decisions_from_many_tasks():
    """50 decide() calls on worker threads: every one recorded, one breaker entry."""
    engine, store = _engine()
    store.ledger.append_batch(_outcomes("Alpha_BR", 9, 1))
    store.ledger.append_batch(_outcomes("Beta_BR", 8, 2))
    store.ledger.append_batch(_outcomes("Gamma_BR", 3, 7))   # trips, possibly many times

    results = await asyncio.gather(
        *(asyncio.to_thread(engine.decide, _request(), False, True) for _ in range(50))
    )

    assert {r.processor for r in results} == {"Alpha_BR"}
    assert all(r.last_resort is None for r in results)
    assert store.decisions.count() == 50
    assert store.decisions.distribution(50) == {"Alpha_BR": 50}
    assert store.circuits.count() == 1
