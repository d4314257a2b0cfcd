"""
forecast/base.py

Abstract base class for all forecast model implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class BaseForecastModel(ABC):
    """
    Contract for forecast model implementations.

    Subclasses receive an ordered series of ``(x, y)`` observations and a
    horizon, and return a plain dictionary describing the projection.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`forecast`.
    """

    @abstractmethod
    def forecast(self, series: Sequence[tuple[float, float]], horizon: int) -> dict:
        """
        Project *horizon* steps beyond the last observation of *series*.

        Returns
        -------
        dict
            Implementations include at minimum:

            - ``"total"`` – sum of the projected values (``0.0`` when the
              model cannot fit the series)
            - ``"model"`` – string identifier for the model used
        """
