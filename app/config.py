"""
app/config.py

Runtime settings for the metrics engine.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_COHORT_PERIODS = {"day", "week", "month"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    """
    Read a string restricted to *allowed*; anything else falls back.
    """

    _load_env_once()
    value = (os.getenv(name) or "").strip().lower()
    return value if value in allowed else default


@dataclass(frozen=True)
class MetricsSettings:
    """
    Tunables for metric computation.
    """

    default_lookback_days: int = 30
    cart_recovery_hours: float = 48.0
    churn_window_days: int = 90
    low_stock_threshold: int = 5
    forecast_horizon_days: int = 7
    cohort_period: str = "month"
    raise_on_adapter_failure: bool = False


@lru_cache(maxsize=1)
def get_metrics_settings() -> MetricsSettings:
    """
    Return cached metrics settings from environment variables.
    """

    return MetricsSettings(
        default_lookback_days=max(1, _get_int_env("METRICS_DEFAULT_LOOKBACK_DAYS", 30)),
        cart_recovery_hours=max(0.0, _get_float_env("METRICS_CART_RECOVERY_HOURS", 48.0)),
        churn_window_days=max(1, _get_int_env("METRICS_CHURN_WINDOW_DAYS", 90)),
        low_stock_threshold=max(0, _get_int_env("METRICS_LOW_STOCK_THRESHOLD", 5)),
        forecast_horizon_days=max(1, _get_int_env("METRICS_FORECAST_HORIZON_DAYS", 7)),
        cohort_period=_get_choice_env("METRICS_COHORT_PERIOD", "month", _ALLOWED_COHORT_PERIODS),
        raise_on_adapter_failure=_get_bool_env("METRICS_RAISE_ON_ADAPTER_FAILURE", False),
    )
