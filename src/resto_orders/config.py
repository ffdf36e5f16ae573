from __future__ import annotations

import os
from dataclasses import dataclass


def _env_or(key: str, default: str) -> str:
    v = os.getenv(key)
    return v if v is not None else default


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    urgency_warning_minutes: int = 10
    urgency_critical_minutes: int = 20
    takeaway_shipping_cost: int = 0
    currency_symbol: str = "$"

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            host=_env_or("RESTO_HOST", "0.0.0.0"),
            port=_env_int("RESTO_PORT", 8000),
            log_level=_env_or("LOG_LEVEL", "INFO"),
            urgency_warning_minutes=_env_int("URGENCY_WARNING_MINUTES", 10),
            urgency_critical_minutes=_env_int("URGENCY_CRITICAL_MINUTES", 20),
            takeaway_shipping_cost=_env_int("TAKEAWAY_SHIPPING_COST", 0),
            currency_symbol=_env_or("CURRENCY_SYMBOL", "$"),
        )
