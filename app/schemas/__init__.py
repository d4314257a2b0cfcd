"""
app/schemas package marker.
"""

from app.schemas.metrics import (
    CohortRetention,
    CustomerRFM,
    CustomerTypeShare,
    FunnelReport,
    FunnelStage,
    NewVsReturning,
    RevenueTrend,
    RFMThresholds,
    SegmentRule,
)

__all__ = [
    "CohortRetention",
    "CustomerRFM",
    "CustomerTypeShare",
    "FunnelReport",
    "FunnelStage",
    "NewVsReturning",
    "RevenueTrend",
    "RFMThresholds",
    "SegmentRule",
]
