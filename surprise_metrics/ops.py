"""Vectorised return and variance computations over price series."""

from __future__ import annotations

import operator
from typing import Iterable

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

HALF_PI = np.pi / 2


def _as_series(values: Iterable[float]) -> np.ndarray:
    series = np.asarray(values, dtype=np.float64)
    if series.ndim != 1:
        raise ValueError("expected a one-dimensional series")
    return series


def compute_returns(prices: Iterable[float]) -> np.ndarray:
    """Log returns between consecutive prices; one fewer than the prices."""
    series = _as_series(prices)
    if series.size < 2:
        return np.empty(0)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.log(series[1:] / series[:-1])


def compute_realized_variance(returns: Iterable[float], window: int) -> np.ndarray:
    """Sum of squared returns over each window starting at 0 .. n - window - 1."""
    window = operator.index(window)
    if window < 0:
        raise ValueError("window must not be negative")
    series = _as_series(returns)
    count = series.size - window
    if count <= 0:
        return np.empty(0)
    if window == 0:
        return np.zeros(count)
    squares = series * series
    return sliding_window_view(squares, window)[:count].sum(axis=1)


def compute_bipower_variation(returns: Iterable[float]) -> np.ndarray:
    """Scaled products of adjacent absolute returns: |r[i+1]| * |r[i]| * pi / 2."""
    series = _as_series(returns)
    if series.size < 2:
        return np.empty(0)
    magnitudes = np.abs(series)
    return magnitudes[1:] * magnitudes[:-1] * HALF_PI