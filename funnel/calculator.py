"""
funnel/calculator.py

Cart → checkout → completed funnel over a snapshot of cart attempts.

Formulas
--------
checkout_conversion       = 100 * checkout  / started
completion_conversion     = 100 * completed / started
checkout_completion_rate  = 100 * completed / checkout
overall_conversion        = 100 * completed / started
abandonment_rate          = 100 * abandoned / started

Every ratio goes through ``safe_ratio``; an empty snapshot yields an
all-zero report.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta

from app.schemas.metrics import FunnelReport, FunnelStage
from funnel.stages import STAGES, FunnelState, reached_checkout, resolve_state
from stats.ratios import percentage
from store.records import CartAttemptRecord

logger = logging.getLogger(__name__)


class FunnelCalculator:
    """
    Resolves each attempt through the funnel state machine and counts stages.

    Parameters
    ----------
    recovery_hours:
        Idle time after which an open attempt is considered abandoned.
    """

    def __init__(self, recovery_hours: float = 48.0) -> None:
        if recovery_hours < 0:
            raise ValueError("recovery_hours must be >= 0")
        self._recovery_window = timedelta(hours=recovery_hours)

    def build(self, attempts: Iterable[CartAttemptRecord], now: datetime) -> FunnelReport:
        states: Counter[str] = Counter()
        started = checkout = 0

        for attempt in attempts:
            started += 1
            state = resolve_state(attempt, now=now, recovery_window=self._recovery_window)
            states[state] += 1
            if reached_checkout(attempt):
                checkout += 1

        completed = states[FunnelState.COMPLETED]
        counts = {"started": started, "checkout": checkout, "completed": completed}

        logger.debug(
            "funnel started=%d checkout=%d completed=%d abandoned=%d",
            started, checkout, completed, states[FunnelState.ABANDONED],
        )

        return FunnelReport(
            started=started,
            checkout=checkout,
            completed=completed,
            abandoned=states[FunnelState.ABANDONED],
            failed=states[FunnelState.FAILED],
            open=states[FunnelState.OPEN],
            checkout_conversion=percentage(checkout, started),
            completion_conversion=percentage(completed, started),
            checkout_completion_rate=percentage(completed, checkout),
            overall_conversion=percentage(completed, started),
            abandonment_rate=percentage(states[FunnelState.ABANDONED], started),
            stages=_stages(counts),
        )


def _stages(counts: dict[str, int]) -> list[FunnelStage]:
    stages: list[FunnelStage] = []
    previous: int | None = None
    for name in STAGES:
        count = counts[name]
        conversion = 100.0 if previous is None else percentage(count, previous)
        stages.append(FunnelStage(name=name, count=count, conversion_from_previous=conversion))
        previous = count
    return stages
