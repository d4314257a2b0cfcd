"""
Cohort retention and churn over order snapshots.

Customers are grouped by the period of their first purchase. Guest orders
(no customer id) carry no identity across orders and are ignored. All
arithmetic is done on a pandas frame built from the order records; no
store access happens here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import List

import pandas as pd

from app.schemas.metrics import CohortRetention
from stats.ratios import percentage
from store.query import as_utc
from store.records import OrderRecord

logger = logging.getLogger(__name__)

_PERIOD_FREQ = {"day": "D", "week": "W", "month": "M"}


def order_frame(orders: Iterable[OrderRecord]) -> pd.DataFrame:
    """
    Build a ``customer_id`` / ``created_at`` / ``total`` frame of registered
    customers' orders.

    Args:
        orders: Order snapshots; guest orders are dropped.

    Returns:
        DataFrame with naive-UTC ``created_at`` (empty when no order
        qualifies).
    """
    rows = [
        {
            "customer_id": o.customer_id,
            "created_at": as_utc(o.created_at).replace(tzinfo=None),
            "total": float(o.total),
        }
        for o in orders
        if o.customer_id is not None
    ]
    frame = pd.DataFrame(rows, columns=["customer_id", "created_at", "total"])
    frame["created_at"] = pd.to_datetime(frame["created_at"])
    return frame


class CohortAnalyzer:
    """
    Computes first-purchase cohort retention.

    Responsibilities:
        - Bucket orders into day, week or month periods.
        - Report, per cohort, the share of customers active at each offset.

    Not responsible for:
        - Fetching orders or choosing which statuses count as a purchase.
    """

    def __init__(self, period: str = "month") -> None:
        if period not in _PERIOD_FREQ:
            raise ValueError(
                f"Unknown cohort period {period!r}. Allowed: {sorted(_PERIOD_FREQ)}."
            )
        self._freq = _PERIOD_FREQ[period]

    def retention(self, orders: Iterable[OrderRecord]) -> List[CohortRetention]:
        """
        Compute retention for every cohort present in *orders*.

        Args:
            orders: Order snapshots covering the analysis range.

        Returns:
            One :class:`CohortRetention` per cohort, oldest first.
            ``retention[n]`` covers period offset ``n`` up to the latest
            period seen in the data; empty input returns ``[]``.
        """
        frame = order_frame(orders)
        if frame.empty:
            return []

        periods = frame["created_at"].dt.to_period(self._freq)
        frame["period"] = periods.astype(str)
        frame["ordinal"] = periods.map(lambda p: p.ordinal).astype("int64")

        first = frame.groupby("customer_id")["ordinal"].transform("min")
        frame["offset"] = frame["ordinal"] - first
        frame["cohort_ordinal"] = first

        cohort_labels = (
            frame.loc[frame["offset"] == 0]
            .drop_duplicates("customer_id")
            .groupby("cohort_ordinal")["period"]
            .first()
        )
        sizes = frame.groupby("cohort_ordinal")["customer_id"].nunique()
        active = frame.groupby(["cohort_ordinal", "offset"])["customer_id"].nunique()
        last_ordinal = int(frame["ordinal"].max())

        result: List[CohortRetention] = []
        for cohort_ordinal in sorted(sizes.index):
            size = int(sizes[cohort_ordinal])
            span = last_ordinal - int(cohort_ordinal)
            retention = [
                percentage(int(active.get((cohort_ordinal, offset), 0)), size)
                for offset in range(span + 1)
            ]
            result.append(
                CohortRetention(
                    cohort=str(cohort_labels[cohort_ordinal]),
                    size=size,
                    retention=retention,
                )
            )

        logger.debug("cohort retention cohorts=%d freq=%s", len(result), self._freq)
        return result


def churn_rate(
    orders: Iterable[OrderRecord],
    *,
    now: datetime,
    churn_window_days: int,
) -> float:
    """
    Percentage of mature customers whose last order predates their cutoff.

    A customer is mature once their first order is at least
    *churn_window_days* old at *now*; the cutoff is
    ``first_order + churn_window_days``.

    Args:
        orders: Full order history of the customers to evaluate.
        now: Reference instant.
        churn_window_days: Cutoff distance from the first order.

    Returns:
        0–100 percentage rounded to 2 places; 0.0 when nobody is mature.
    """
    frame = order_frame(orders)
    if frame.empty:
        return 0.0

    window = pd.Timedelta(timedelta(days=churn_window_days))
    reference = pd.Timestamp(as_utc(now).replace(tzinfo=None))

    spans = frame.groupby("customer_id")["created_at"].agg(["min", "max"])
    mature = spans[spans["min"] <= reference - window]
    churned = mature[mature["max"] < mature["min"] + window]

    return percentage(len(churned), len(mature))
