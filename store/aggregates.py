"""
store/aggregates.py

Aggregate descriptors and the pure group/reduce used over record snapshots.

Expected shape
--------------
    Aggregate.sum("total", unit="currency")
    Aggregate.count()
    Aggregate.count_distinct("customer_id")
    Aggregate.average("total", unit="currency")

Reduction rules
---------------
sum             = Σ non-null field values            (0 on empty input)
count           = number of records                  (0 on empty input)
count_distinct  = number of distinct non-null values (0 on empty input)
average         = sum / number of non-null values    (0.0 on empty input)

Grouping keys may be multi-valued (a tuple of categories or coupon codes);
such a record contributes to every key it carries. Records whose key is
``None`` are left out of grouped results. Groups come back ordered by key.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

GroupedResult = dict[Any, float]


class AggregateKind(str, enum.Enum):
    SUM = "sum"
    COUNT = "count"
    COUNT_DISTINCT = "count_distinct"
    AVERAGE = "average"


class Unit:
    CURRENCY = "currency"
    COUNT = "count"
    QUANTITY = "quantity"
    RATE = "rate"
    NUMBER = "number"
    # Non-scalar payloads returned by composite metrics.
    RECORD = "record"
    IDENTIFIERS = "identifiers"


@dataclass(frozen=True)
class Aggregate:
    """One reduce operation over a field of an entity."""

    kind: AggregateKind
    field: str | None = None
    unit: str = Unit.NUMBER

    def __post_init__(self) -> None:
        if self.kind is not AggregateKind.COUNT and not self.field:
            raise ValueError(f"Aggregate {self.kind.value!r} requires a field.")

    @classmethod
    def sum(cls, field: str, *, unit: str = Unit.CURRENCY) -> Aggregate:
        return cls(AggregateKind.SUM, field, unit)

    @classmethod
    def count(cls) -> Aggregate:
        return cls(AggregateKind.COUNT, None, Unit.COUNT)

    @classmethod
    def count_distinct(cls, field: str) -> Aggregate:
        return cls(AggregateKind.COUNT_DISTINCT, field, Unit.COUNT)

    @classmethod
    def average(cls, field: str, *, unit: str = Unit.CURRENCY) -> Aggregate:
        return cls(AggregateKind.AVERAGE, field, unit)

    @property
    def zero(self) -> float | int:
        """Value of this aggregate over an empty record set."""
        if self.kind is AggregateKind.AVERAGE:
            return 0.0
        if self.kind is AggregateKind.SUM and self.unit == Unit.CURRENCY:
            return 0.0
        return 0


def group_keys(record: Any, group_by: str) -> list[Any]:
    """Keys *record* contributes to under *group_by* (deduplicated, ordered)."""
    value = getattr(record, group_by)
    if value is None:
        return []
    if isinstance(value, (tuple, list, set, frozenset)):
        seen: list[Any] = []
        for item in value:
            if item is not None and item not in seen:
                seen.append(item)
        return seen
    return [value]


def reduce_values(records: Sequence[Any], aggregate: Aggregate) -> float | int:
    """Apply *aggregate* to *records* and return a single number."""
    if aggregate.kind is AggregateKind.COUNT:
        return len(records)

    values = [
        v for v in (getattr(r, aggregate.field) for r in records)  # type: ignore[arg-type]
        if v is not None
    ]

    if aggregate.kind is AggregateKind.COUNT_DISTINCT:
        return len(set(values))

    if not values:
        return aggregate.zero

    total = sum(values)
    if aggregate.kind is AggregateKind.SUM:
        return total
    return total / len(values)


def reduce_records(
    records: Iterable[Any],
    aggregate: Aggregate,
    group_by: str | None = None,
) -> float | int | GroupedResult:
    """
    Reduce *records* to a scalar, or to ``{key: value}`` when *group_by* is set.
    """
    rows = list(records)
    if group_by is None:
        return reduce_values(rows, aggregate)

    buckets: dict[Any, list[Any]] = {}
    for record in rows:
        for key in group_keys(record, group_by):
            buckets.setdefault(key, []).append(record)

    return {
        key: reduce_values(buckets[key], aggregate)
        for key in sorted(buckets, key=str)
    }
