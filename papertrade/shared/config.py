"""
Centralized Configuration for Paper Trading
Uses Pydantic Settings with .env loading.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from papertrade.shared.models import FeedKind


class MarketDataSettings(BaseSettings):
    """Quote provider selection and cache settings."""
    model_config = SettingsConfigDict(env_prefix="MARKET_DATA_", extra="ignore")

    provider: FeedKind = FeedKind.MOCK
    cache_ttl_seconds: float = 300.0
    default_suffix: str = ".NS"  # National Stock Exchange
    default_interval: str = "5m"
    default_range: str = "1d"

    @field_validator("provider", mode="before")
    @classmethod
    def validate_provider(cls, v: str) -> FeedKind:
        """Validate and convert provider kind."""
        if isinstance(v, FeedKind):
            return v
        return FeedKind(v.strip().lower().replace("-", "_"))


class AlphaVantageSettings(BaseSettings):
    """Alpha Vantage API settings."""
    model_config = SettingsConfigDict(env_prefix="ALPHA_VANTAGE_", extra="ignore")

    api_key: str = ""
    base_url: str = "https://www.alphavantage.co/query"
    timeout_seconds: float = 10.0


class ProxySettings(BaseSettings):
    """Same-origin proxy settings."""
    model_config = SettingsConfigDict(env_prefix="PROXY_", extra="ignore")

    base_url: str = "http://localhost:3001"
    timeout_seconds: float = 10.0


class MockFeedSettings(BaseSettings):
    """Mock generator settings."""
    model_config = SettingsConfigDict(env_prefix="MOCK_FEED_", extra="ignore")

    seed: Optional[int] = None
    volatility_pct: Decimal = Decimal("0.5")  # stddev of one step, in percent


class LedgerSettings(BaseSettings):
    """Paper ledger settings."""
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    initial_balance: Decimal = Field(default=Decimal("1000000"), alias="INITIAL_BALANCE")
    strict: bool = Field(default=False, alias="STRICT_LEDGER")
    match_limit_orders: bool = Field(default=True, alias="MATCH_LIMIT_ORDERS")


class PollingSettings(BaseSettings):
    """Quote polling settings."""
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    interval_seconds: float = Field(default=15.0, alias="POLL_INTERVAL_SECONDS")


class ServerSettings(BaseSettings):
    """Proxy server settings."""
    model_config = SettingsConfigDict(env_prefix="SERVER_", extra="ignore")

    host: str = "0.0.0.0"
    port: int = 3001
    allowed_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    cache_ttl_seconds: float = 300.0
    search_results: int = 10


class LoggingSettings(BaseSettings):
    """Logging settings."""
    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


class AppSettings(BaseSettings):
    """Main application settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings (loaded from same .env)
    market_data: MarketDataSettings = Field(default_factory=MarketDataSettings)
    alpha_vantage: AlphaVantageSettings = Field(default_factory=AlphaVantageSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)
    mock_feed: MockFeedSettings = Field(default_factory=MockFeedSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Get cached settings instance."""
    return AppSettings()


def reload_settings() -> AppSettings:
    """Force reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
