"""
forecast/regression.py

Least-squares linear regression forecasting in plain Python.
"""

from __future__ import annotations

from collections.abc import Sequence

from forecast.base import BaseForecastModel


class LinearRegressionForecast(BaseForecastModel):
    """
    Fits an OLS line to ``(x, y)`` observations and projects it forward.

    The regression is computed analytically:

        m = cov(x, y) / var(x)
        b = mean(y) - m * mean(x)

    Projections are taken on the fitted line at the next *horizon* unit
    steps after the last observed x:

        y_k = m * (x_last + k) + b      (k = 1 .. horizon)

    ``total`` is the sum of the projected values. Fewer than
    :attr:`MIN_POINTS` observations, or a non-positive horizon, yield a
    total of ``0.0`` and an ``error`` entry.
    """

    MIN_POINTS: int = 5
    MODEL_NAME: str = "linear_regression"

    def forecast(self, series: Sequence[tuple[float, float]], horizon: int) -> dict:
        """
        Parameters
        ----------
        series:
            ``(x, y)`` pairs ordered by x (e.g. day index → revenue).
        horizon:
            Number of x-steps to project.

        Returns
        -------
        dict with keys:
            model, slope, intercept, points (list of {"x", "y"}), total,
            and ``error`` when the series cannot be fitted.
        """
        points = [(float(x), float(y)) for x, y in series]

        if len(points) < self.MIN_POINTS:
            return self._unfitted(
                f"Insufficient data: need at least {self.MIN_POINTS} points, "
                f"got {len(points)}."
            )
        if horizon <= 0:
            return self._unfitted("Horizon must be a positive number of steps.")

        n = len(points)
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]

        mean_x: float = sum(xs) / n
        mean_y: float = sum(ys) / n

        cov_xy: float = sum((xs[i] - mean_x) * (ys[i] - mean_y) for i in range(n))
        var_x: float = sum((xs[i] - mean_x) ** 2 for i in range(n))

        if var_x == 0.0:
            # All observations share one x; the best fit is the mean.
            slope, intercept = 0.0, mean_y
        else:
            slope = cov_xy / var_x
            intercept = mean_y - slope * mean_x

        last_x = xs[-1]
        projected = [
            {"x": last_x + k, "y": round(slope * (last_x + k) + intercept, 6)}
            for k in range(1, horizon + 1)
        ]
        total = sum(slope * (last_x + k) + intercept for k in range(1, horizon + 1))

        return {
            "model": self.MODEL_NAME,
            "slope": round(slope, 6),
            "intercept": round(intercept, 6),
            "points": projected,
            "total": round(total, 6),
        }

    def _unfitted(self, reason: str) -> dict:
        return {
            "model": self.MODEL_NAME,
            "slope": None,
            "intercept": None,
            "points": [],
            "total": 0.0,
            "error": reason,
        }


def linear_regression_forecast(series: Sequence[tuple[float, float]], horizon: int) -> float:
    """
    Sum of the least-squares projections over the next *horizon* x-steps.

    Returns ``0.0`` for fewer than 5 points or a non-positive horizon.
    """
    return float(LinearRegressionForecast().forecast(series, horizon)["total"])
