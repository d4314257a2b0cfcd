"""
stats/descriptive.py

Descriptive statistics over plain numeric sequences.

Every function returns ``0.0`` for empty input instead of raising, so a
metric over an empty window still renders.
"""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np


def _as_array(values: Iterable[float]) -> np.ndarray:
    return np.asarray([float(v) for v in values], dtype=np.float64)


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean; ``0.0`` for empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def median(values: Iterable[float]) -> float:
    """
    Middle value of the ascending-sorted input.

    Odd lengths return the middle element; even lengths the average of the
    two middle elements. Empty input returns ``0.0``.
    """
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


def std_dev(values: Iterable[float]) -> float:
    """Population standard deviation (ddof=0); ``0.0`` for empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.std(ddof=0))
