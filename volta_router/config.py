from types import MappingProxyType
from typing import Mapping

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Approval-rate window
    TIME_WINDOW_SECONDS: float = 900.0   # 15 minutes
    RATE_PRECISION: int = 2              # decimal places for every approval rate

    # Risk classification (percent)
    HIGH_RISK_THRESHOLD: float = 70.0    # below -> high risk
    MEDIUM_RISK_THRESHOLD: float = 80.0  # below -> medium risk

    # Circuit Breaker
    CB_THRESHOLD: float = 60.0           # trip below 60% approval
    CB_TIMEOUT_SECONDS: float = 300.0    # 5 minutes until half-open

    # Reporting
    ROUTING_STATS_LIMIT: int = 50

    # Server
    SERVICE_NAME: str = "volta-router"
    API_VERSION: str = "v1"
    ENVIRONMENT: str = "development"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"
    TEST_DATA_PATH: str = "data/test_transactions.json"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True}

    @property
    def api_prefix(self) -> str:
        return f"/{self.SERVICE_NAME}/{self.API_VERSION}"


ProcessorCatalog = Mapping[str, tuple[str, ...]]

PROCESSORS_BY_COUNTRY: ProcessorCatalog = MappingProxyType({
    "BR": ("RapidPay_BR", "TurboAcquire_BR", "PayFlow_BR"),
    "MX": ("RapidPay_MX", "TurboAcquire_MX", "PayFlow_MX"),
    "CO": ("RapidPay_CO", "TurboAcquire_CO", "PayFlow_CO"),
})


def freeze_catalog(catalog: Mapping[str, list[str] | tuple[str, ...]]) -> ProcessorCatalog:
    """Return a read-only copy of a country -> processors mapping."""
    return MappingProxyType({country: tuple(names) for country, names in catalog.items()})


settings = Settings()
