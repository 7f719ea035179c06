"""
Configuration settings for the switchboard quoting engine.

Uses pydantic-settings for environment variable management with validation.
Pricing defaults seed the global Settings record the first time it is read;
after that the stored record (and each quote's snapshot of it) wins.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection configuration."""

    model_config = SettingsConfigDict(env_prefix="DB_")

    host: str = "localhost"
    port: int = 5432
    name: str = "switchboard_quoting"
    user: str = "postgres"
    password: SecretStr = SecretStr("postgres")
    url: str | None = None
    pool_size: int = 10
    max_overflow: int = 5
    echo: bool = False

    @property
    def async_url(self) -> str:
        """Construct async database URL, preferring an explicit DB_URL."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:"
            f"{self.password.get_secret_value()}@"
            f"{self.host}:{self.port}/{self.name}"
        )


class PricingDefaults(BaseSettings):
    """Values used to create the global pricing Settings record."""

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    labour_rate: Decimal = Decimal("100")
    consumables_pct: Decimal = Decimal("0.03")
    overhead_pct: Decimal = Decimal("0.20")
    engineering_pct: Decimal = Decimal("0.20")
    target_margin_pct: Decimal = Decimal("0.18")
    gst_pct: Decimal = Decimal("0.10")
    rounding_increment: Decimal = Decimal("100")
    min_margin_alert_pct: Decimal = Decimal("0.05")
    company_name: str = "Switchboard Manufacturing Pty Ltd"
    company_address: str | None = None


class QuotingSettings(BaseSettings):
    """Quote engine behaviour."""

    model_config = SettingsConfigDict(env_prefix="QUOTING_")

    quote_number_floor: int = 1000
    # Placeholder until enclosures are priced from the catalog
    enclosure_reference_price: Decimal = Decimal("500")
    spd_price: Decimal = Decimal("150")
    spd_labour_hours: Decimal = Decimal("0.5")
    locked_statuses: list[str] = ["SENT", "APPROVED", "REJECTED"]
    operation_timeout_seconds: float = 30.0


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Switchboard Quoting Engine"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Sub-configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    pricing: PricingDefaults = Field(default_factory=PricingDefaults)
    quoting: QuotingSettings = Field(default_factory=QuotingSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()


settings = get_settings()
