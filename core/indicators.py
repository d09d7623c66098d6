"""Statistical primitives for market analytics.

All functions are total: empty or degenerate input yields a defined neutral
value rather than raising or returning NaN.
"""
import math
from typing import Sequence

import numpy as np

HOURLY_PERIODS_PER_YEAR = 365 * 24


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean (0 for an empty sequence)."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def std_dev(values: Sequence[float]) -> float:
    """Sample standard deviation (0 for fewer than two values)."""
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def log_returns(prices: Sequence[float]) -> np.ndarray:
    """
    Calculate log returns from a chronological (oldest-first) price series.

    Only consecutive pairs where both prices are positive contribute.

    Args:
        prices: Price series, oldest first

    Returns:
        Array of ln(p[i] / p[i-1]) values
    """
    series = np.asarray(prices, dtype=float)
    if series.size < 2:
        return np.empty(0)
    prev, curr = series[:-1], series[1:]
    valid = (prev > 0) & (curr > 0)
    return np.log(curr[valid] / prev[valid])


def annualized_volatility(
    returns: Sequence[float],
    periods_per_year: int = HOURLY_PERIODS_PER_YEAR
) -> float:
    """
    Calculate annualized volatility in percent.

    Args:
        returns: Log returns
        periods_per_year: Sampling periods per year (default hourly: 365 * 24)

    Returns:
        stdev(returns) * sqrt(periods_per_year) * 100, or 0 with fewer than two returns
    """
    if len(returns) < 2:
        return 0.0
    return std_dev(returns) * math.sqrt(periods_per_year) * 100


def max_drawdown(prices: Sequence[float]) -> float:
    """
    Calculate maximum drawdown (%) from a running peak.

    Args:
        prices: Price series, oldest first

    Returns:
        Largest (peak - price) / peak * 100 observed
    """
    series = np.asarray(prices, dtype=float)
    if series.size < 2:
        return 0.0
    peaks = np.maximum.accumulate(series)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peaks > 0, (peaks - series) / peaks * 100, 0.0)
    return float(max(drawdowns.max(), 0.0))


def percentile_rank(samples: Sequence[float], value: float) -> float:
    """Share of samples <= value, in percent (50 for no samples)."""
    if len(samples) == 0:
        return 50.0
    arr = np.asarray(samples, dtype=float)
    return float(np.count_nonzero(arr <= value) / arr.size * 100)


def basis_points(a: float, b: float) -> float:
    """Distance between two prices in bps of their midpoint."""
    mid = (a + b) / 2
    if mid == 0:
        return 0.0
    return abs(a - b) / mid * 10_000


def weighted_avg(values: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted average; 0 when lengths mismatch or weights sum to zero."""
    if len(values) == 0 or len(values) != len(weights):
        return 0.0
    total_weight = float(sum(weights))
    if total_weight == 0:
        return 0.0
    return float(np.dot(np.asarray(values, dtype=float), np.asarray(weights, dtype=float)) / total_weight)


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def round_to(value: float, decimals: int = 2) -> float:
    """Round to a fixed number of decimals, mapping non-finite values to 0."""
    if not math.isfinite(value):
        return 0.0
    return round(float(value), decimals)
