import pandas as pd

from hyperbacktest.utils.performance import (
    cagr,
    calmar_ratio,
    compute_returns,
    information_ratio,
    max_drawdown,
    sharpe_ratio,
    sortino_ratio,
)


def test_performance_metrics():
    prices = pd.Series([1, 1.1, 1.2, 1.1, 1.3])
    returns = compute_returns(prices)
    sr = sharpe_ratio(returns)
    dd = max_drawdown(returns)
    assert len(returns) == 4
    assert sr != 0
    assert dd <= 0
    assert sortino_ratio(returns) != 0
    assert calmar_ratio(returns, 0.5) > 0


def test_flat_series_ratios_are_zero():
    returns = compute_returns(pd.Series([2.0, 2.0, 2.0]))
    assert sharpe_ratio(returns) == 0.0
    assert sortino_ratio(returns) == 0.0
    assert information_ratio(returns, returns) == 0.0
    assert max_drawdown(returns) == 0.0


def test_cagr():
    assert round(cagr(100, 121, 730), 6) == 0.1
    assert cagr(0, 121, 730) == 0.0
