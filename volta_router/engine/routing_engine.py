import logging
from datetime import datetime, timedelta, timezone

from volta_router.config import PROCESSORS_BY_COUNTRY, ProcessorCatalog, Settings
from volta_router.engine.errors import (
    NoDataAvailable,
    NoProcessorsConfigured,
    ProcessorNotFound,
    UnsupportedCountry,
)
from volta_router.models.processor import CircuitState, ProcessorStats
from volta_router.models.routing import (
    FailoverOption,
    RiskLevel,
    RoutingDecision,
    RoutingRequest,
    RoutingResponse,
    RoutingStats,
)
from volta_router.storage.store import InMemoryStore

logger = logging.getLogger(__name__)


class RoutingEngine:
    """
    Picks the processor with the best recent approval rate for a country.

    Per candidate, in catalog order:
      OPEN breaker               -> skipped, no rate computed
      no data in window          -> rate 0, eligible but never a winner
      0 < rate < CB_THRESHOLD    -> breaker opened, candidate excluded
      HALF_OPEN, rate >= th.     -> breaker closed, candidate ranked
      HALF_OPEN, 0 < rate < th.  -> ranked once as a probe, breaker re-opened

    Eligible candidates are ranked by rate with a stable sort, so equal
    rates keep catalog order.

    Simulation runs the same algorithm but writes nothing: no breaker
    transitions and no decision record.
    """

    def __init__(
        self,
        store: InMemoryStore,
        settings: Settings,
        catalog: ProcessorCatalog = PROCESSORS_BY_COUNTRY,
    ):
        self._store = store
        self._settings = settings
        self._catalog = catalog
        self._window = timedelta(seconds=settings.TIME_WINDOW_SECONDS)
        self._cb_timeout = timedelta(seconds=settings.CB_TIMEOUT_SECONDS)

    # ------------------------------------------------------------------
    # Approval rates
    # ------------------------------------------------------------------

    def _window_rate(self, processor: str, country: str, now: datetime) -> tuple[float, int]:
        records = self._store.ledger.query(processor, country, self._window, now=now)
        if not records:
            return 0.0, 0
        approved = sum(1 for r in records if r.is_approved)
        rate = round(100.0 * approved / len(records), self._settings.RATE_PRECISION)
        return rate, len(records)

    def approval_rate(self, processor: str, country: str, now: datetime | None = None) -> float:
        """Windowed approval rate in percent; 0.0 means no data."""
        rate, _ = self._window_rate(processor, country, now or datetime.now(timezone.utc))
        return rate

    def classify_risk(self, rate: float) -> RiskLevel:
        if rate < self._settings.HIGH_RISK_THRESHOLD:
            return RiskLevel.HIGH
        if rate < self._settings.MEDIUM_RISK_THRESHOLD:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def _rank(
        self,
        country: str,
        processors: tuple[str, ...],
        now: datetime,
        simulate: bool,
    ) -> list[tuple[str, float]]:
        circuits = self._store.circuits
        threshold = self._settings.CB_THRESHOLD
        eligible: list[tuple[str, float]] = []

        for processor in processors:
            state = circuits.state_of(processor, country, self._cb_timeout, now=now)
            if state == CircuitState.OPEN:
                logger.debug(f"[{processor}/{country}] Circuit OPEN — skipping")
                continue

            rate = self.approval_rate(processor, country, now=now)

            if 0 < rate < threshold:
                if not simulate:
                    circuits.open(processor, country, now=now)
                if state == CircuitState.HALF_OPEN:
                    logger.info(
                        f"[{processor}/{country}] Half-open probe at {rate:.2f}% "
                        f"(< {threshold:.0f}%) — circuit re-opened"
                    )
                else:
                    logger.warning(
                        f"[{processor}/{country}] Approval rate {rate:.2f}% "
                        f"below {threshold:.0f}% — circuit OPEN"
                    )
                    continue
            elif state == CircuitState.HALF_OPEN and rate >= threshold:
                if not simulate:
                    circuits.close(processor, country)
                logger.info(f"[{processor}/{country}] Recovered at {rate:.2f}% — circuit CLOSED")

            eligible.append((processor, rate))

        # sorted() is stable with reverse=True: equal rates keep catalog order
        return sorted(eligible, key=lambda candidate: candidate[1], reverse=True)

    def decide(
        self,
        request: RoutingRequest,
        simulate: bool = False,
        want_failover: bool = False,
    ) -> RoutingResponse:
        country = request.country
        if country not in self._catalog:
            raise UnsupportedCountry(country)
        processors = self._catalog[country]
        if not processors:
            raise NoProcessorsConfigured(country)

        now = datetime.now(timezone.utc)
        ranked = self._rank(country, processors, now, simulate)

        if not ranked or ranked[0][1] == 0:
            logger.warning(f"[{country}] No eligible processor with data — cannot route")
            raise NoDataAvailable(country)

        best, best_rate = ranked[0]
        risk = self.classify_risk(best_rate)

        if not simulate:
            self._store.decisions.record(
                RoutingDecision(processor=best, country=country, approval_rate=best_rate, timestamp=now)
            )

        if risk == RiskLevel.HIGH:
            reason = (
                f"Best available processor for {country} "
                f"(all processors below {self._settings.HIGH_RISK_THRESHOLD:g}%)"
            )
        else:
            reason = f"Highest approval rate for {country}"

        response = RoutingResponse(
            processor=best,
            approval_rate=best_rate,
            risk_level=risk,
            reason=reason,
            timestamp=now,
        )

        if want_failover:
            backups = [
                FailoverOption(processor=name, approval_rate=rate)
                for name, rate in ranked[1:3]
                if rate > 0
            ]
            if backups:
                response.fallback = backups[0]
            if len(backups) > 1:
                response.last_resort = backups[1]

        logger.info(
            f"[{country}] {request.amount} {request.currency} -> {best} "
            f"rate={best_rate:.2f}% risk={risk.value} simulate={simulate} "
            f"ranking={[name for name, _ in ranked]}"
        )
        return response

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _stat(self, processor: str, country: str, now: datetime) -> ProcessorStats:
        rate, count = self._window_rate(processor, country, now)
        stat = ProcessorStats(
            name=processor,
            country=country,
            approval_rate=rate,
            transaction_count=count,
            last_updated=now,
        )
        state = self._store.circuits.state_of(processor, country, self._cb_timeout, now=now)
        if state != CircuitState.CLOSED:
            stat.circuit_state = state
            stat.circuit_opened_at = self._store.circuits.opened_at_of(processor, country)
        return stat

    def stats_of_all(self) -> list[ProcessorStats]:
        now = datetime.now(timezone.utc)
        return [
            self._stat(processor, country, now)
            for country, processors in self._catalog.items()
            for processor in processors
        ]

    def stats_of(self, name: str) -> ProcessorStats:
        for country, processors in self._catalog.items():
            if name in processors:
                return self._stat(name, country, datetime.now(timezone.utc))
        raise ProcessorNotFound(name)

    def routing_stats(self) -> RoutingStats:
        limit = self._settings.ROUTING_STATS_LIMIT
        decisions = self._store.decisions
        return RoutingStats(
            total_decisions=decisions.count(),
            distribution=decisions.distribution(limit),
            window=f"last_{limit}_decisions",
        )
