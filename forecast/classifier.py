"""
forecast/classifier.py

Classifies a regression slope into a human-readable trend label.
No forecasting logic, no I/O, no side effects.
"""

from __future__ import annotations


class TrendClassifier:
    """
    Maps a linear regression slope to a discrete trend category.

    Classification is relative to the magnitude of *average_value* so that
    a daily slope of 10 means something different for a store averaging 100
    per day versus one averaging 10 000.

        slope / |average_value|  |  label
        -------------------------|------------------
        > +5 %                   |  strong_uptrend
        > +1 %                   |  uptrend
        -1 % .. +1 %             |  stable
        < -1 %                   |  downtrend
        < -5 %                   |  strong_downtrend
    """

    STRONG_UP_THRESHOLD: float = 0.05
    WEAK_UP_THRESHOLD: float = 0.01
    WEAK_DOWN_THRESHOLD: float = -0.01
    STRONG_DOWN_THRESHOLD: float = -0.05

    def __init__(
        self,
        *,
        strong_up: float | None = None,
        weak_up: float | None = None,
        weak_down: float | None = None,
        strong_down: float | None = None,
    ) -> None:
        self._strong_up = self.STRONG_UP_THRESHOLD if strong_up is None else strong_up
        self._weak_up = self.WEAK_UP_THRESHOLD if weak_up is None else weak_up
        self._weak_down = self.WEAK_DOWN_THRESHOLD if weak_down is None else weak_down
        self._strong_down = self.STRONG_DOWN_THRESHOLD if strong_down is None else strong_down

    def classify(self, slope: float, average_value: float) -> str:
        """
        Classify *slope* relative to *average_value*.

        When *average_value* is zero the raw slope is used directly as the
        ratio. Thresholds are evaluated from most to least extreme so
        boundary values resolve to the stronger label.
        """
        if average_value == 0.0:
            ratio: float = slope
        else:
            ratio = slope / abs(average_value)

        if ratio > self._strong_up:
            return "strong_uptrend"
        if ratio > self._weak_up:
            return "uptrend"
        if ratio < self._strong_down:
            return "strong_downtrend"
        if ratio < self._weak_down:
            return "downtrend"
        return "stable"
