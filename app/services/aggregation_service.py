"""
app/services/aggregation_service.py

Generic group/reduce engine over the event store.

Every named metric in the catalog is one call to
:meth:`AggregationEngine.aggregate` with a different entity, reducer,
grouping key and filter; there is no per-metric query code.

Result rules
------------
* scalar when ``group_by`` is ``None``, else ``{key: value}`` ordered by key
* currency values rounded to 2 places
* counts returned as unrounded ints
* empty scope (empty window, filter matching nothing) → the reducer's zero
  value (``0``, ``0.0`` or ``{}``) without touching the store

Query design
------------
Each call issues at most one store request. Backends decide whether the
reduction happens in the data source (SQL ``GROUP BY``) or in Python;
the engine only normalizes the output.
"""

from __future__ import annotations

import logging
from typing import Any

from stats.ratios import round_currency
from store.aggregates import Aggregate, AggregateKind, GroupedResult, Unit
from store.base import EventStore
from store.query import Entity, QueryFilter, TimeWindow

logger = logging.getLogger(__name__)


class AggregationEngine:
    """
    Runs aggregate descriptors against an :class:`EventStore`.

    Identical inputs over the same store snapshot always produce the same
    output. Store exceptions propagate; callers decide how to degrade.

    Parameters
    ----------
    store:
        Read-only event store. The engine never mutates it.
    """

    def __init__(self, store: EventStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def aggregate(
        self,
        entity: Entity,
        aggregate: Aggregate,
        *,
        group_by: str | None = None,
        window: TimeWindow | None = None,
        query_filter: QueryFilter | None = None,
    ) -> float | int | GroupedResult:
        """
        Reduce *entity* records in *window* matching *query_filter*.

        Returns
        -------
        float | int | dict
            Scalar, or ``{group key: value}`` when *group_by* is given.
        """
        window = window or TimeWindow.unbounded()
        query_filter = query_filter or QueryFilter()
        EventStore.check_aggregate(entity, aggregate, group_by)
        query_filter.validate(entity)

        if window.is_empty or query_filter.matches_nothing:
            logger.debug("aggregate %s %s → empty scope", entity.value, aggregate.kind.value)
            return {} if group_by is not None else aggregate.zero

        raw = self._store.aggregate(
            entity,
            aggregate,
            group_by=group_by,
            query_filter=query_filter,
            window=window,
        )

        if group_by is None:
            value = self._normalize(raw, aggregate)  # type: ignore[arg-type]
        else:
            value = {
                key: self._normalize(v, aggregate)
                for key, v in sorted(raw.items(), key=lambda kv: str(kv[0]))  # type: ignore[union-attr]
            }

        logger.debug(
            "aggregate %s %s(%s) group_by=%s [%s, %s) → %s",
            entity.value,
            aggregate.kind.value,
            aggregate.field or "*",
            group_by,
            window.start.isoformat() if window.start else "-inf",
            window.end.isoformat() if window.end else "+inf",
            value if group_by is None else f"{len(value)} groups",  # type: ignore[arg-type]
        )
        return value

    def records(
        self,
        entity: Entity,
        *,
        window: TimeWindow | None = None,
        query_filter: QueryFilter | None = None,
    ) -> list[Any]:
        """
        Fetch raw records for computations that are not plain reductions
        (medians, funnels, cohorts). Empty scopes return ``[]`` directly.
        """
        window = window or TimeWindow.unbounded()
        query_filter = query_filter or QueryFilter()
        query_filter.validate(entity)
        if window.is_empty or query_filter.matches_nothing:
            return []
        return self._store.find(entity, query_filter, window)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(value: Any, aggregate: Aggregate) -> float | int:
        if value is None:
            return aggregate.zero
        if aggregate.kind in (AggregateKind.COUNT, AggregateKind.COUNT_DISTINCT):
            return int(value)
        if aggregate.unit == Unit.CURRENCY:
            return round_currency(value)
        number = float(value)
        if aggregate.kind is AggregateKind.SUM and number.is_integer():
            return int(number)
        return number
