"""
Event-store interface consumed by the metrics engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from store.aggregates import Aggregate, GroupedResult, reduce_records
from store.query import ENTITY_SCHEMAS, Entity, QueryFilter, TimeWindow


class EventStore(ABC):
    """
    Read-only access to the commerce event log.

    Implementations must treat every call as an independent point-in-time
    read; the engine does not assume isolation across calls.
    """

    @abstractmethod
    def find(
        self,
        entity: Entity,
        query_filter: QueryFilter | None = None,
        window: TimeWindow | None = None,
    ) -> list[Any]:
        """
        Return the records of *entity* matching *query_filter* inside *window*.
        """

    def aggregate(
        self,
        entity: Entity,
        aggregate: Aggregate,
        group_by: str | None = None,
        query_filter: QueryFilter | None = None,
        window: TimeWindow | None = None,
    ) -> float | int | GroupedResult:
        """
        Reduce matching records. The default implementation reduces the
        output of :meth:`find` in Python; backends override it to push the
        work down to the data source.
        """
        self.check_aggregate(entity, aggregate, group_by)
        return reduce_records(self.find(entity, query_filter, window), aggregate, group_by)

    def probe(self) -> bool:
        """Return ``True`` when the backing data source is usable."""
        return True

    @staticmethod
    def check_aggregate(entity: Entity, aggregate: Aggregate, group_by: str | None) -> None:
        schema = ENTITY_SCHEMAS[entity]
        if aggregate.field is not None:
            schema.require_field(aggregate.field)
        if group_by is not None:
            schema.require_field(group_by)
