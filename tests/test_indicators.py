"""Tests for statistical primitives."""
import math

import numpy as np
import pytest

from core.indicators import (
    annualized_volatility,
    basis_points,
    clamp,
    log_returns,
    max_drawdown,
    mean,
    percentile_rank,
    round_to,
    std_dev,
    weighted_avg,
)


@pytest.mark.unit
class TestBasicStatistics:
    """Test mean and standard deviation."""

    def test_mean(self):
        assert mean([1, 2, 3, 4]) == 2.5
        assert mean([]) == 0.0

    def test_std_dev_is_sample_deviation(self):
        assert std_dev([2, 4, 4, 4, 5, 5, 7, 9]) == pytest.approx(2.138, abs=1e-3)

    def test_std_dev_needs_two_values(self):
        assert std_dev([]) == 0.0
        assert std_dev([5.0]) == 0.0

    def test_weighted_avg(self):
        assert weighted_avg([10, 20], [1, 3]) == pytest.approx(17.5)

    def test_weighted_avg_degenerate(self):
        assert weighted_avg([1, 2], [1]) == 0.0
        assert weighted_avg([1, 2], [0, 0]) == 0.0
        assert weighted_avg([], []) == 0.0


@pytest.mark.unit
class TestReturnsAndVolatility:
    """Test log returns and annualized volatility."""

    def test_log_returns(self):
        returns = log_returns([100, 110, 99])
        assert len(returns) == 2
        assert returns[0] == pytest.approx(math.log(1.1))
        assert returns[1] == pytest.approx(math.log(0.9))

    def test_log_returns_skip_non_positive_pairs(self):
        returns = log_returns([100, 0, 100, 105])
        assert len(returns) == 1
        assert returns[0] == pytest.approx(math.log(1.05))

    def test_log_returns_short_series(self):
        assert len(log_returns([])) == 0
        assert len(log_returns([100])) == 0

    def test_annualized_volatility(self):
        returns = [0.01, -0.01, 0.01, -0.01]
        expected = float(np.std(returns, ddof=1)) * math.sqrt(8760) * 100
        assert annualized_volatility(returns) == pytest.approx(expected)

    def test_annualized_volatility_custom_periods(self):
        returns = [0.01, -0.01]
        assert annualized_volatility(returns, 365) == pytest.approx(
            float(np.std(returns, ddof=1)) * math.sqrt(365) * 100
        )

    def test_annualized_volatility_needs_two_returns(self):
        assert annualized_volatility([]) == 0.0
        assert annualized_volatility([0.05]) == 0.0

    def test_constant_prices_have_zero_volatility(self):
        assert annualized_volatility(log_returns([100] * 30)) == 0.0


@pytest.mark.unit
class TestDrawdownAndRanks:
    """Test drawdown, percentile rank and basis points."""

    def test_max_drawdown(self):
        assert max_drawdown([100, 120, 90, 110]) == pytest.approx(25.0)

    def test_max_drawdown_monotonic_rise(self):
        assert max_drawdown([1, 2, 3, 4]) == 0.0

    def test_max_drawdown_short_series(self):
        assert max_drawdown([]) == 0.0
        assert max_drawdown([100]) == 0.0

    def test_percentile_rank(self):
        assert percentile_rank([1, 2, 3, 4], 2) == 50.0
        assert percentile_rank([1, 2, 3, 4], 10) == 100.0
        assert percentile_rank([1, 2, 3, 4], 0) == 0.0

    def test_percentile_rank_no_samples(self):
        assert percentile_rank([], 3) == 50.0

    def test_basis_points(self):
        assert basis_points(100, 101) == pytest.approx(99.502, abs=1e-3)
        assert basis_points(101, 100) == basis_points(100, 101)
        assert basis_points(0, 0) == 0.0


@pytest.mark.unit
class TestRounding:
    """Test clamping and rounding helpers."""

    def test_clamp(self):
        assert clamp(5, 0, 10) == 5
        assert clamp(-1, 0, 10) == 0
        assert clamp(11, 0, 10) == 10

    def test_round_to(self):
        assert round_to(1.23456) == 1.23
        assert round_to(1.23456, 3) == 1.235

    def test_round_to_non_finite(self):
        assert round_to(float("nan")) == 0.0
        assert round_to(float("inf")) == 0.0
