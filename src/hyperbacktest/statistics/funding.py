"""Run-wide funding report aggregated over every instrument's holdings."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List

import pandas as pd

from ..common import AssetType, NilArgumentsError
from ..currency import Pair
from ..utils import performance
from ..utils.logging import get_logger, log_json
from .currency import CurrencyPairStatistic

ZERO = Decimal(0)
HUNDRED = Decimal(100)

logger = get_logger("hyperbacktest.statistics")


@dataclass
class FundingItemStatistics:
    exchange: str
    asset: AssetType
    pair: Pair
    initial_value: Decimal = ZERO
    final_value: Decimal = ZERO
    movement_percent: Decimal = ZERO


@dataclass
class FundingStatistics:
    initial_total_value: Decimal = ZERO
    final_total_value: Decimal = ZERO
    total_movement_percent: Decimal = ZERO
    max_drawdown_percent: float = 0.0
    sharpe_ratio: float = 0.0
    items: List[FundingItemStatistics] = field(default_factory=list)

    def print_results(self, was_any_data_missing: bool = False) -> None:
        log_json(
            logger,
            "funding_results",
            initial_total_value=self.initial_total_value,
            final_total_value=self.final_total_value,
            total_movement_percent=self.total_movement_percent,
            max_drawdown_percent=self.max_drawdown_percent,
            sharpe_ratio=self.sharpe_ratio,
            missing_data=was_any_data_missing,
        )


def _movement(start: Decimal, end: Decimal) -> Decimal:
    if not start:
        return ZERO
    return (end - start) / start * HUNDRED


def calculate_funding_statistics(
    series: Iterable[CurrencyPairStatistic], risk_free_rate: float = 0.0
) -> FundingStatistics:
    """Sum holdings across instruments per timestamp and measure the whole run."""
    series = [s for s in series if s.events]
    if not series:
        raise NilArgumentsError("funding statistics require at least one series with events")

    stats = FundingStatistics()
    rows = []
    for s in series:
        initial = s.events[0].holdings.total_value
        final = s.events[-1].holdings.total_value
        stats.items.append(
            FundingItemStatistics(
                exchange=s.exchange,
                asset=s.asset,
                pair=s.pair,
                initial_value=initial,
                final_value=final,
                movement_percent=_movement(initial, final),
            )
        )
        stats.initial_total_value += initial
        stats.final_total_value += final
        rows.extend((ev.time, float(ev.holdings.total_value)) for ev in s.events)
    stats.total_movement_percent = _movement(stats.initial_total_value, stats.final_total_value)

    frame = pd.DataFrame(rows, columns=["time", "total_value"])
    totals = frame.groupby("time", sort=True)["total_value"].sum()
    if totals.gt(0).all():
        returns = performance.compute_returns(totals)
        stats.max_drawdown_percent = abs(performance.max_drawdown(returns)) * 100
        stats.sharpe_ratio = performance.sharpe_ratio(returns, risk_free_rate)
    return stats


__all__ = ["FundingItemStatistics", "FundingStatistics", "calculate_funding_statistics"]
