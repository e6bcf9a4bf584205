"""Settings — environment-driven configuration via pydantic-settings.

Priority chain (highest to lowest):
  1. Init kwargs
  2. Env vars — ``CARTCORE_*`` prefix (lists as JSON, e.g. ``'["a", "b"]'``)
  3. ``.env`` file
  4. Code defaults

get_settings() is cached: one instance per process. Call
``get_settings.cache_clear()`` after changing the environment.
"""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pricing, surcharge and runtime settings."""

    model_config = SettingsConfigDict(
        env_prefix="CARTCORE_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    # Surcharge
    surcharge_rate: Decimal = Field(default=Decimal("3"), ge=0)
    surcharge_label: str = "Credit Card Surcharge (3%)"
    surcharge_gateways: tuple[str, ...] = ("intuit_payments_credit_card",)
    surcharge_taxable: bool = True

    # Fingerprint
    discount_labels: tuple[str, ...] = ("VIP Discount", "Bulk Discount")

    # Money
    money_places: int = Field(default=2, ge=0, le=8)
    price_change_threshold: Decimal = Decimal("0.01")

    # Pricing
    pricing_extension_active: bool = True

    # Persistence
    database_url: str = "sqlite+aiosqlite://"

    # Observability
    verbose: bool = False
    log_json: bool = False

    @field_validator("surcharge_label")
    @classmethod
    def label_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("surcharge_label must not be blank")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


__all__ = ("Settings", "get_settings")
