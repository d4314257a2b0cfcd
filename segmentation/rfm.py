"""
Recency / frequency / monetary scoring and segment labeling.

Score boundaries and segment rules are supplied by the caller; nothing
about what counts as a "champion" or an "at risk" customer is hardcoded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import List

import numpy as np

from app.schemas.metrics import CustomerRFM, RFMThresholds, SegmentRule
from segmentation.cohorts import order_frame
from stats.ratios import round_currency
from store.query import as_utc
from store.records import OrderRecord

logger = logging.getLogger(__name__)


class RFMSegmenter:
    """
    Scores customers on recency, frequency and monetary value.

    Responsibilities:
        - Derive per-customer recency (days since last order), frequency
          (order count) and monetary (total spend) from the given orders.
        - Convert each dimension to a score against caller thresholds.
        - Assign the first matching segment rule, evaluated in order.

    Not responsible for:
        - Choosing the window or statuses of the orders it receives.
    """

    def __init__(
        self,
        thresholds: RFMThresholds,
        rules: Sequence[SegmentRule] = (),
    ) -> None:
        self._thresholds = thresholds
        self._rules = tuple(rules)

    def segment(self, orders: Iterable[OrderRecord], now: datetime) -> List[CustomerRFM]:
        """
        Score every registered customer present in *orders*.

        Args:
            orders: Orders inside the analysis window.
            now: Reference instant recency is measured from.

        Returns:
            One :class:`CustomerRFM` per customer ordered by customer id.
        """
        frame = order_frame(orders)
        if frame.empty:
            return []

        reference = np.datetime64(as_utc(now).replace(tzinfo=None), "ns")
        summary = frame.groupby("customer_id").agg(
            last_order=("created_at", "max"),
            frequency=("created_at", "size"),
            monetary=("total", "sum"),
        )

        result: List[CustomerRFM] = []
        for customer_id, row in summary.sort_index().iterrows():
            elapsed = (reference - row["last_order"].to_datetime64()) / np.timedelta64(1, "D")
            recency_days = max(0.0, float(elapsed))
            frequency = int(row["frequency"])
            monetary = round_currency(row["monetary"])

            r_score = self.recency_score(recency_days)
            f_score = self.frequency_score(frequency)
            m_score = self.monetary_score(monetary)

            result.append(
                CustomerRFM(
                    customer_id=str(customer_id),
                    recency_days=round(recency_days, 2),
                    frequency=frequency,
                    monetary=monetary,
                    recency_score=r_score,
                    frequency_score=f_score,
                    monetary_score=m_score,
                    segment=self._label(r_score, f_score, m_score),
                )
            )

        logger.debug("rfm customers=%d rules=%d", len(result), len(self._rules))
        return result

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def recency_score(self, recency_days: float) -> int:
        """One point plus one per boundary the recency is at or under."""
        bounds = self._thresholds.recency_days
        return 1 + len(bounds) - int(np.searchsorted(bounds, recency_days, side="left"))

    def frequency_score(self, frequency: float) -> int:
        """One point plus one per boundary the order count reaches."""
        return 1 + int(np.searchsorted(self._thresholds.frequency, frequency, side="right"))

    def monetary_score(self, monetary: float) -> int:
        """One point plus one per boundary the spend reaches."""
        return 1 + int(np.searchsorted(self._thresholds.monetary, monetary, side="right"))

    def _label(self, r_score: int, f_score: int, m_score: int) -> str | None:
        for rule in self._rules:
            if rule.matches(r_score, f_score, m_score):
                return rule.name
        return None
