"""
app/services package marker.

:func:`build_metrics_service` wires the SQL event store, the availability
guard and settings together once at startup.
"""

from __future__ import annotations

from app.availability import AvailabilityGuard
from app.config import MetricsSettings, get_metrics_settings
from app.services.aggregation_service import AggregationEngine
from app.services.metrics_catalog import METRIC_CATALOG, MetricDefinition, get_metric
from app.services.metrics_service import MetricsService
from store.base import EventStore


def build_metrics_service(
    store: EventStore | None = None,
    settings: MetricsSettings | None = None,
) -> MetricsService:
    """
    Build a :class:`MetricsService` with a guard probing *store*.

    Without *store* the SQLAlchemy store over the configured database is
    used. The engine is created on the first probe, so a missing database
    URL surfaces as an unavailable platform rather than a startup error.
    """
    if store is None:
        from db.session import get_session_factory
        from store.sqlalchemy_store import SQLAlchemyEventStore

        store = SQLAlchemyEventStore(lambda: get_session_factory()())

    return MetricsService(
        store,
        AvailabilityGuard.for_store(store),
        settings=settings or get_metrics_settings(),
    )


__all__ = [
    "AggregationEngine",
    "build_metrics_service",
    "get_metric",
    "METRIC_CATALOG",
    "MetricDefinition",
    "MetricsService",
]
