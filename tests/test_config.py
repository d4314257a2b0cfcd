"""
tests/test_config.py

Pytest unit tests for environment-driven settings and logging helpers.
"""

from __future__ import annotations

import json
import logging

import pytest

from app.config import MetricsSettings, get_metrics_settings
from app.logging_utils import configure_logging, log_event
from db.config import normalize_database_url, resolve_database_url

_URL_VARS = ("COMMERCE_DATABASE_URL", "DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")


@pytest.fixture()
def fresh_settings():
    get_metrics_settings.cache_clear()
    yield
    get_metrics_settings.cache_clear()


@pytest.fixture()
def no_database_env(monkeypatch):
    for name in _URL_VARS + ("ENVIRONMENT",):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# MetricsSettings
# ---------------------------------------------------------------------------


class TestMetricsSettings:
    def test_defaults(self, fresh_settings) -> None:
        assert get_metrics_settings() == MetricsSettings()

    def test_environment_overrides(self, fresh_settings, monkeypatch) -> None:
        monkeypatch.setenv("METRICS_DEFAULT_LOOKBACK_DAYS", "7")
        monkeypatch.setenv("METRICS_CART_RECOVERY_HOURS", "12.5")
        monkeypatch.setenv("METRICS_COHORT_PERIOD", "Week")
        monkeypatch.setenv("METRICS_RAISE_ON_ADAPTER_FAILURE", "yes")
        settings = get_metrics_settings()
        assert settings.default_lookback_days == 7
        assert settings.cart_recovery_hours == 12.5
        assert settings.cohort_period == "week"
        assert settings.raise_on_adapter_failure is True

    def test_invalid_values_fall_back(self, fresh_settings, monkeypatch) -> None:
        monkeypatch.setenv("METRICS_CHURN_WINDOW_DAYS", "ninety")
        monkeypatch.setenv("METRICS_COHORT_PERIOD", "fortnight")
        monkeypatch.setenv("METRICS_LOW_STOCK_THRESHOLD", "-3")
        settings = get_metrics_settings()
        assert settings.churn_window_days == 90
        assert settings.cohort_period == "month"
        assert settings.low_stock_threshold == 0

    def test_settings_are_cached(self, fresh_settings) -> None:
        assert get_metrics_settings() is get_metrics_settings()


# ---------------------------------------------------------------------------
# Database URL
# ---------------------------------------------------------------------------


class TestDatabaseUrl:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("postgres://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
            ("postgresql://u:p@h/db", "postgresql+psycopg://u:p@h/db"),
            ("sqlite:///metrics.db", "sqlite:///metrics.db"),
        ],
    )
    def test_normalize(self, raw, expected) -> None:
        assert normalize_database_url(raw) == expected

    def test_commerce_url_takes_priority(self, no_database_env) -> None:
        no_database_env.setenv("DATABASE_URL", "sqlite:///other.db")
        no_database_env.setenv("COMMERCE_DATABASE_URL", "postgres://replica/shop")
        assert resolve_database_url() == "postgresql+psycopg://replica/shop"

    def test_cloud_url_only_in_cloud_environments(self, no_database_env) -> None:
        no_database_env.setenv("CLOUD_DATABASE_URL", "sqlite:///cloud.db")
        no_database_env.setenv("LOCAL_DATABASE_URL", "sqlite:///local.db")
        assert resolve_database_url() == "sqlite:///local.db"
        no_database_env.setenv("ENVIRONMENT", "production")
        assert resolve_database_url() == "sqlite:///cloud.db"

    def test_missing_url_raises(self, no_database_env) -> None:
        with pytest.raises(RuntimeError, match="No database URL configured"):
            resolve_database_url()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestLogging:
    def test_log_event_emits_json(self, caplog) -> None:
        logger = logging.getLogger("tests.metrics")
        with caplog.at_level(logging.INFO, logger="tests.metrics"):
            log_event(logger, logging.INFO, "metric_computed", metric="total_revenue", status="ok")
        payload = json.loads(caplog.records[-1].getMessage())
        assert payload == {"event": "metric_computed", "metric": "total_revenue", "status": "ok"}

    def test_log_event_skips_disabled_levels(self, caplog) -> None:
        logger = logging.getLogger("tests.metrics.quiet")
        with caplog.at_level(logging.WARNING, logger="tests.metrics.quiet"):
            log_event(logger, logging.DEBUG, "ignored")
        assert not caplog.records

    def test_configure_logging_accepts_unknown_level(self) -> None:
        configure_logging("not-a-level")
