"""
tests/test_rfm.py

Pytest unit tests for RFM scoring and segment labeling.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from app.schemas.metrics import RFMThresholds, SegmentRule
from segmentation.rfm import RFMSegmenter
from store.records import OrderRecord

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def thresholds() -> RFMThresholds:
    return RFMThresholds(recency_days=[7, 30], frequency=[2, 5], monetary=[100, 500])


@pytest.fixture()
def rules() -> list[SegmentRule]:
    return [
        SegmentRule(name="champion", min_recency=3, min_frequency=3, min_monetary=3),
        SegmentRule(name="loyal", min_frequency=2),
        SegmentRule(name="recent", min_recency=3),
    ]


def _orders(customer: str, days_ago: list[float], total: float) -> list[OrderRecord]:
    return [
        OrderRecord(
            id=f"{customer}-{i}",
            status="completed",
            customer_id=customer,
            created_at=NOW - timedelta(days=d),
            total=total,
        )
        for i, d in enumerate(days_ago)
    ]


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


class TestThresholds:
    def test_must_be_ascending(self) -> None:
        with pytest.raises(ValidationError, match="strictly ascending"):
            RFMThresholds(recency_days=[30, 7], frequency=[2], monetary=[100])

    def test_duplicates_are_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RFMThresholds(recency_days=[7], frequency=[2, 2], monetary=[100])

    def test_must_not_be_empty(self) -> None:
        with pytest.raises(ValidationError):
            RFMThresholds(recency_days=[], frequency=[2], monetary=[100])


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


class TestScores:
    @pytest.mark.parametrize(
        ("recency", "expected"),
        [(0.0, 3), (7.0, 3), (7.5, 2), (30.0, 2), (31.0, 1)],
    )
    def test_recency_boundaries(self, thresholds, recency, expected) -> None:
        assert RFMSegmenter(thresholds).recency_score(recency) == expected

    @pytest.mark.parametrize(
        ("frequency", "expected"),
        [(1, 1), (2, 2), (4, 2), (5, 3), (20, 3)],
    )
    def test_frequency_boundaries(self, thresholds, frequency, expected) -> None:
        assert RFMSegmenter(thresholds).frequency_score(frequency) == expected

    @pytest.mark.parametrize(
        ("monetary", "expected"),
        [(0.0, 1), (99.99, 1), (100.0, 2), (500.0, 3)],
    )
    def test_monetary_boundaries(self, thresholds, monetary, expected) -> None:
        assert RFMSegmenter(thresholds).monetary_score(monetary) == expected


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


class TestSegment:
    def test_customer_summary(self, thresholds, rules) -> None:
        orders = _orders("a", [1, 3, 10, 20, 40], total=120.0)
        (customer,) = RFMSegmenter(thresholds, rules).segment(orders, NOW)
        assert customer.customer_id == "a"
        assert customer.recency_days == 1.0
        assert customer.frequency == 5
        assert customer.monetary == 600.0
        assert (customer.recency_score, customer.frequency_score, customer.monetary_score) == (3, 3, 3)
        assert customer.segment == "champion"

    def test_first_matching_rule_wins(self, thresholds, rules) -> None:
        # frequency 2 and recency 1 day: both "loyal" and "recent" match
        orders = _orders("b", [1, 2], total=10.0)
        (customer,) = RFMSegmenter(thresholds, rules).segment(orders, NOW)
        assert customer.segment == "loyal"

    def test_no_matching_rule(self, thresholds, rules) -> None:
        (customer,) = RFMSegmenter(thresholds, rules).segment(_orders("c", [45], total=10.0), NOW)
        assert customer.segment is None

    def test_no_rules_leaves_segment_empty(self, thresholds) -> None:
        (customer,) = RFMSegmenter(thresholds).segment(_orders("d", [1], total=900.0), NOW)
        assert customer.segment is None
        assert customer.monetary_score == 3

    def test_ordered_by_customer_and_guests_skipped(self, thresholds) -> None:
        orders = _orders("z", [1], 10.0) + _orders("a", [2], 10.0) + [
            OrderRecord(id="g", status="completed", created_at=NOW, total=5.0),
        ]
        scored = RFMSegmenter(thresholds).segment(orders, NOW)
        assert [c.customer_id for c in scored] == ["a", "z"]

    def test_empty(self, thresholds) -> None:
        assert RFMSegmenter(thresholds).segment([], NOW) == []
