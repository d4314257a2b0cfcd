"""
kpi/base.py

Abstract base class for derived KPI formula implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class BaseKPIFormula(ABC):
    """
    Contract for KPI formula implementations.

    Subclasses receive a dictionary of aggregates already read from the
    event store for one window and return a dictionary of derived values.

    No I/O, no logging, and no side effects are permitted inside
    :meth:`calculate`.
    """

    #: Input keys :meth:`calculate` reads. Missing keys are treated as zero.
    inputs: tuple[str, ...] = ()

    @abstractmethod
    def calculate(self, inputs: dict[str, Any]) -> dict[str, float]:
        """
        Derive KPI values from *inputs*.

        Parameters
        ----------
        inputs:
            Window-level aggregates keyed by the names in :attr:`inputs`.

        Returns
        -------
        dict[str, float]
            Derived metrics keyed by metric name.
        """
