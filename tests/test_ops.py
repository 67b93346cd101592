import math

import numpy as np
import pytest

from surprise_metrics.ops import (
    compute_bipower_variation,
    compute_realized_variance,
    compute_returns,
)


def test_returns_reconstruct_prices():
    prices = [100.0, 101.5, 99.8, 102.3, 102.3, 98.0]
    returns = compute_returns(prices)
    rebuilt = prices[0] * np.exp(np.cumsum(returns))
    assert np.allclose(rebuilt, prices[1:])


def test_returns_have_one_fewer_element():
    assert len(compute_returns([1.0, 2.0, 3.0, 4.0, 5.0])) == 4


def test_constant_prices_give_zero_returns():
    returns = compute_returns([50.0] * 12)
    assert returns.tolist() == [0.0] * 11


@pytest.mark.parametrize("prices", [[], [100.0]])
def test_too_few_prices_give_no_returns(prices):
    assert compute_returns(prices).size == 0


def test_returns_reject_two_dimensional_input():
    with pytest.raises(ValueError):
        compute_returns([[1.0, 2.0], [3.0, 4.0]])


def test_realized_variance_of_unit_returns_equals_window():
    rv = compute_realized_variance([1.0] * 10, 3)
    assert len(rv) == 7
    assert np.all(rv == 3.0)


def test_realized_variance_small_example():
    rv = compute_realized_variance([1.0, 2.0, 3.0, 4.0], 2)
    assert rv.tolist() == [5.0, 13.0]


def test_realized_variance_ignores_sign():
    returns = np.array([0.01, -0.02, 0.005, -0.03, 0.04, -0.001])
    assert np.allclose(
        compute_realized_variance(returns, 2), compute_realized_variance(-returns, 2)
    )


def test_realized_variance_zero_window_gives_zeros():
    rv = compute_realized_variance([0.1, 0.2, 0.3], 0)
    assert rv.tolist() == [0.0, 0.0, 0.0]


def test_realized_variance_window_too_large_is_empty():
    assert compute_realized_variance([0.1, 0.2], 2).size == 0


def test_realized_variance_negative_window_raises():
    with pytest.raises(ValueError):
        compute_realized_variance([0.1, 0.2, 0.3], -1)


def test_bipower_variation_of_unit_returns_is_half_pi():
    bv = compute_bipower_variation([1.0, 1.0, 1.0])
    assert np.allclose(bv, [math.pi / 2, math.pi / 2])


def test_bipower_variation_is_sign_invariant_and_nonnegative():
    returns = np.array([0.01, -0.02, 0.005, -0.03, 0.04])
    bv = compute_bipower_variation(returns)
    assert len(bv) == len(returns) - 1
    assert np.all(bv >= 0)
    assert np.allclose(bv, compute_bipower_variation(-returns))


def test_bipower_variation_needs_two_returns():
    assert compute_bipower_variation([0.5]).size == 0