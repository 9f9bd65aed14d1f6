import numpy as np
import pandas as pd


def compute_returns(prices: pd.Series) -> pd.Series:
    """Compute simple returns from price series."""
    return prices.pct_change().dropna()


def sharpe_ratio(returns: pd.Series, risk_free_rate: float = 0.0) -> float:
    """Sharpe ratio scaled by the square root of the number of periods."""
    if returns.empty:
        return 0.0
    excess = returns - risk_free_rate / len(returns)
    std = excess.std(ddof=0)
    if std == 0 or np.isnan(std):
        return 0.0
    return float(np.sqrt(len(returns)) * excess.mean() / std)


def sortino_ratio(returns: pd.Series, risk_free_rate: float = 0.0) -> float:
    """Like :func:`sharpe_ratio` but only penalising downside deviation."""
    if returns.empty:
        return 0.0
    excess = returns - risk_free_rate / len(returns)
    downside = excess[excess < 0]
    if downside.empty:
        return 0.0
    dd = float(np.sqrt((downside**2).mean()))
    if dd == 0:
        return 0.0
    return float(np.sqrt(len(returns)) * excess.mean() / dd)


def information_ratio(returns: pd.Series, benchmark: pd.Series) -> float:
    """Mean active return over tracking error."""
    if returns.empty or benchmark.empty:
        return 0.0
    active = returns.reset_index(drop=True) - benchmark.reset_index(drop=True)
    active = active.dropna()
    std = active.std(ddof=0)
    if active.empty or std == 0 or np.isnan(std):
        return 0.0
    return float(active.mean() / std)


def max_drawdown(returns: pd.Series) -> float:
    """Compute maximum drawdown of a return series."""
    if returns.empty:
        return 0.0
    cum = (1 + returns).cumprod()
    peak = cum.cummax()
    drawdown = cum / peak - 1
    return float(drawdown.min())


def cagr(start_value: float, end_value: float, periods: int, periods_per_year: float = 365.0) -> float:
    """Compound annual growth rate between two values."""
    if start_value <= 0 or end_value <= 0 or periods <= 0:
        return 0.0
    years = periods / periods_per_year
    return float((end_value / start_value) ** (1 / years) - 1)


def calmar_ratio(returns: pd.Series, growth: float) -> float:
    """Annual growth over the absolute maximum drawdown."""
    dd = abs(max_drawdown(returns))
    if dd == 0:
        return 0.0
    return float(growth / dd)
