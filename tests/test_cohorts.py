"""
tests/test_cohorts.py

Pytest unit tests for cohort retention and churn.

Coverage
--------
- Monthly, weekly and daily cohorts
- Retention offsets up to the latest period in the data
- Guest orders are ignored
- Churn over mature customers only
- Empty input
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from segmentation.cohorts import CohortAnalyzer, churn_rate, order_frame
from store.records import OrderRecord

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _order(oid: str, customer: str | None, *args: int, total: float = 10.0) -> OrderRecord:
    return OrderRecord(
        id=oid,
        status="completed",
        customer_id=customer,
        created_at=datetime(*args, tzinfo=timezone.utc),
        total=total,
    )


@pytest.fixture()
def history() -> list[OrderRecord]:
    return [
        _order("1", "a", 2024, 1, 5),
        _order("2", "a", 2024, 2, 7),
        _order("3", "b", 2024, 1, 20),
        _order("4", "c", 2024, 2, 1),
        _order("5", "c", 2024, 3, 3),
        _order("6", None, 2024, 1, 9),
    ]


# ---------------------------------------------------------------------------
# order_frame
# ---------------------------------------------------------------------------


class TestOrderFrame:
    def test_drops_guests(self, history) -> None:
        frame = order_frame(history)
        assert len(frame) == 5
        assert frame["customer_id"].notna().all()

    def test_empty(self) -> None:
        frame = order_frame([])
        assert frame.empty
        assert list(frame.columns) == ["customer_id", "created_at", "total"]


# ---------------------------------------------------------------------------
# Retention
# ---------------------------------------------------------------------------


class TestCohortRetention:
    def test_monthly(self, history) -> None:
        cohorts = CohortAnalyzer("month").retention(history)
        assert [c.cohort for c in cohorts] == ["2024-01", "2024-02"]

        january, february = cohorts
        assert january.size == 2
        assert january.retention == [100.0, 50.0, 0.0]
        assert february.size == 1
        assert february.retention == [100.0, 100.0]

    def test_first_offset_is_always_full(self, history) -> None:
        for period in ("day", "week", "month"):
            for cohort in CohortAnalyzer(period).retention(history):
                assert cohort.retention[0] == 100.0

    def test_daily_cohorts(self) -> None:
        orders = [
            _order("1", "a", 2024, 6, 1, 9),
            _order("2", "a", 2024, 6, 1, 18),
            _order("3", "a", 2024, 6, 3),
        ]
        (cohort,) = CohortAnalyzer("day").retention(orders)
        assert cohort.cohort == "2024-06-01"
        assert cohort.retention == [100.0, 0.0, 100.0]

    def test_weekly_cohorts(self) -> None:
        orders = [
            _order("1", "a", 2024, 6, 3),
            _order("2", "b", 2024, 6, 5),
            _order("3", "a", 2024, 6, 12),
        ]
        (cohort,) = CohortAnalyzer("week").retention(orders)
        assert cohort.size == 2
        assert cohort.retention == [100.0, 50.0]

    def test_guests_only_is_empty(self) -> None:
        assert CohortAnalyzer().retention([_order("1", None, 2024, 1, 1)]) == []

    def test_empty(self) -> None:
        assert CohortAnalyzer().retention([]) == []

    def test_unknown_period_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown cohort period"):
            CohortAnalyzer("fortnight")


# ---------------------------------------------------------------------------
# Churn
# ---------------------------------------------------------------------------


class TestChurnRate:
    def test_mature_customers_only(self, history) -> None:
        # 60-day window at 06-15: mature if first order on or before 04-16.
        # a: 01-05 → 02-07 (inside cutoff 03-05)  → churned
        # b: 01-20 only                           → churned
        # c: 02-01 → 03-03 (inside cutoff 04-01)  → churned
        assert churn_rate(history, now=NOW, churn_window_days=60) == 100.0

    def test_retained_customer(self) -> None:
        orders = [
            _order("1", "a", 2024, 1, 1),
            _order("2", "a", 2024, 5, 1),
            _order("3", "b", 2024, 1, 1),
        ]
        assert churn_rate(orders, now=NOW, churn_window_days=90) == 50.0

    def test_immature_customers_are_excluded(self) -> None:
        orders = [_order("1", "a", 2024, 6, 1)]
        assert churn_rate(orders, now=NOW, churn_window_days=30) == 0.0

    def test_guests_are_ignored(self) -> None:
        orders = [_order("1", None, 2024, 1, 1), _order("2", "a", 2024, 1, 1), _order("3", "a", 2024, 6, 1)]
        assert churn_rate(orders, now=NOW, churn_window_days=30) == 0.0

    def test_empty(self) -> None:
        assert churn_rate([], now=NOW, churn_window_days=90) == 0.0
