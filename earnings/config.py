from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Earnings ledger settings, read from ``EARNINGS_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="EARNINGS_", env_file=".env", extra="ignore")

    currency: str = "ZAR"

    # Payout floor; creators below it keep accumulating
    minimum_payout: Decimal = Decimal("500.00")
    max_bonus_rate_percent: Decimal = Decimal("5")

    # Per-creator lock acquisition
    lock_timeout_seconds: float = 2.0
    lock_max_attempts: int = 3
    lock_retry_base_delay: float = 0.05

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
