"""
kpi/result.py

Structured result returned by every public metric operation.

Status vocabulary
-----------------
ok           the metric was computed from at least one record
empty        the scope held no data; ``value`` is the metric's zero value
unavailable  the commerce platform is not present; ``value`` is the safe default
error        the event store failed; ``value`` is the safe default

Keeping the status next to the value lets a caller tell "no data" apart
from "computed zero" (e.g. the median of ``[0, 0]`` versus that of ``[]``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class ResultStatus:
    OK = "ok"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass(frozen=True)
class MetricResult:
    """
    Outcome of one metric computation.

    ``value`` is always usable: when the computation could not run it holds
    the metric's documented safe default (0, 0.0, ``{}``, ``[]`` or ``None``)
    and ``status`` / ``error`` explain why.
    """

    metric: str
    """Metric name (e.g. ``"total_revenue"``, ``"refund_rate"``)."""

    value: Any
    """Primitive, flat mapping, identifier list or pydantic record."""

    unit: str
    """Unit of measurement (``"currency"``, ``"count"``, ``"rate"``, ...)."""

    status: str = ResultStatus.OK

    error: str | None = None
    """Short description when ``status`` is ``"unavailable"`` or ``"error"``."""

    computed_at: datetime = field(
        default_factory=lambda: datetime.now(tz=timezone.utc)
    )

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK
