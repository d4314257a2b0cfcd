"""
app/schemas/metrics.py

Structured metric payloads returned inside ``MetricResult.value``.

Percentages are 0–100 floats rounded to 2 places; currency values are
rounded to 2 places.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_FROZEN = ConfigDict(extra="forbid", frozen=True)


class CustomerTypeShare(BaseModel):
    """Share of orders placed by guests versus registered customers."""

    model_config = _FROZEN

    guest: float = Field(0.0, ge=0.0, le=100.0)
    registered: float = Field(0.0, ge=0.0, le=100.0)


class NewVsReturning(BaseModel):
    """
    Customers ordering in a window, split by whether they had ordered before it.
    """

    model_config = _FROZEN

    new: int = Field(0, ge=0)
    returning: int = Field(0, ge=0)
    new_share: float = Field(0.0, ge=0.0, le=100.0)
    returning_share: float = Field(0.0, ge=0.0, le=100.0)


# ---------------------------------------------------------------------------
# Funnel
# ---------------------------------------------------------------------------


class FunnelStage(BaseModel):
    model_config = _FROZEN

    name: str
    count: int = Field(..., ge=0)
    conversion_from_previous: float = Field(..., ge=0.0, le=100.0)
    """``100 * count / previous stage count``; 100.0 for the first stage."""


class FunnelReport(BaseModel):
    """
    Cart → checkout → completed funnel over one window.

    ``started >= checkout >= completed`` always holds.
    """

    model_config = _FROZEN

    started: int = Field(0, ge=0)
    checkout: int = Field(0, ge=0)
    completed: int = Field(0, ge=0)
    abandoned: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    open: int = Field(0, ge=0)

    checkout_conversion: float = 0.0
    completion_conversion: float = 0.0
    checkout_completion_rate: float = 0.0
    overall_conversion: float = 0.0
    abandonment_rate: float = 0.0

    stages: list[FunnelStage] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Cohorts
# ---------------------------------------------------------------------------


class CohortRetention(BaseModel):
    """
    Retention of one first-purchase cohort.

    ``retention[n]`` is the percentage of the cohort with at least one order
    in period offset ``n``; ``retention[0]`` is always 100.0.
    """

    model_config = _FROZEN

    cohort: str
    size: int = Field(..., ge=0)
    retention: list[float] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# RFM
# ---------------------------------------------------------------------------


class RFMThresholds(BaseModel):
    """
    Caller-supplied score boundaries, each list strictly ascending.

    With ``n`` boundaries a dimension scores from 1 to ``n + 1``:

    * recency  : one point for every boundary the recency (days) is at or under
    * frequency: one point for every boundary the order count reaches
    * monetary : one point for every boundary the spend reaches
    """

    model_config = _FROZEN

    recency_days: list[float] = Field(..., min_length=1)
    frequency: list[float] = Field(..., min_length=1)
    monetary: list[float] = Field(..., min_length=1)

    @field_validator("recency_days", "frequency", "monetary")
    @classmethod
    def validate_ascending(cls, v: list[float]) -> list[float]:
        """Ensure boundaries are strictly ascending."""
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Thresholds must be strictly ascending")
        return v


class SegmentRule(BaseModel):
    """
    Named segment matched when every score reaches its minimum.

    Rules are evaluated in the order given; the first match wins.
    """

    model_config = _FROZEN

    name: str = Field(min_length=1)
    min_recency: int = Field(1, ge=1)
    min_frequency: int = Field(1, ge=1)
    min_monetary: int = Field(1, ge=1)

    def matches(self, recency_score: int, frequency_score: int, monetary_score: int) -> bool:
        return (
            recency_score >= self.min_recency
            and frequency_score >= self.min_frequency
            and monetary_score >= self.min_monetary
        )


class CustomerRFM(BaseModel):
    model_config = _FROZEN

    customer_id: str
    recency_days: float = Field(..., ge=0.0)
    frequency: int = Field(..., ge=0)
    monetary: float
    recency_score: int = Field(..., ge=1)
    frequency_score: int = Field(..., ge=1)
    monetary_score: int = Field(..., ge=1)
    segment: str | None = None


# ---------------------------------------------------------------------------
# Trend
# ---------------------------------------------------------------------------


class RevenueTrend(BaseModel):
    """Fitted daily revenue line, its label and the projected total."""

    model_config = _FROZEN

    trend: Literal["strong_uptrend", "uptrend", "stable", "downtrend", "strong_downtrend"]
    slope: float
    intercept: float
    average_daily_revenue: float
    horizon_days: int = Field(..., ge=1)
    forecast_total: float
