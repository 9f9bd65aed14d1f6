"""Per-instrument time series of backtest events and its derived results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional

import pandas as pd

from ..common import AssetType, NoEventsError, Side
from ..currency import EMPTY_PAIR, Pair
from ..events import DataEvent, Fill, OrderEvent, SignalEvent
from ..utils import performance
from .holdings import ComplianceSnapshot, Holding, PNLSummary

ZERO = Decimal(0)
HUNDRED = Decimal(100)


class SeriesKey(NamedTuple):
    exchange: str
    asset: AssetType
    pair: Pair


@dataclass
class DataAtOffset:
    """Everything recorded for one instrument at one offset."""

    offset: int
    time: Optional[datetime] = None
    close_price: Decimal = ZERO
    data_event: Optional[DataEvent] = None
    signal_event: Optional[SignalEvent] = None
    order_event: Optional[OrderEvent] = None
    fill_event: Optional[Fill] = None
    holdings: Holding = field(default_factory=Holding)
    pnl: Optional[PNLSummary] = None
    transactions: ComplianceSnapshot = field(default_factory=ComplianceSnapshot)


@dataclass
class ValueAtTime:
    time: Optional[datetime] = None
    value: Decimal = ZERO


@dataclass
class Swing:
    """A peak-to-trough move; ``drawdown_percent`` is the decline as a positive percentage."""

    highest: ValueAtTime = field(default_factory=ValueAtTime)
    lowest: ValueAtTime = field(default_factory=ValueAtTime)
    drawdown_percent: Decimal = ZERO
    interval_duration: int = 0


@dataclass
class Ratios:
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    information_ratio: float = 0.0
    calmar_ratio: float = 0.0
    compound_annual_growth_rate: float = 0.0


@dataclass(frozen=True)
class FinalResultsHolder:
    """Outcome of one instrument, used to compare instruments with each other."""

    exchange: str
    asset: AssetType
    pair: Pair
    max_drawdown: Swing
    market_movement: Decimal
    strategy_movement: Decimal


def calculate_biggest_drawdown(points: List[ValueAtTime]) -> Swing:
    """Return the largest peak-to-trough decline across ``points``."""
    if not points:
        return Swing()
    peak = points[0]
    peak_index = 0
    trough = peak
    biggest = Swing()
    for i, point in enumerate(points):
        if point.value > peak.value:
            peak, peak_index, trough = point, i, point
        elif point.value < trough.value:
            trough = point
            if peak.value <= 0:
                continue
            decline = (peak.value - trough.value) / peak.value * HUNDRED
            if decline > biggest.drawdown_percent:
                biggest = Swing(highest=peak, lowest=trough, drawdown_percent=decline, interval_duration=i - peak_index)
    return biggest


@dataclass
class CurrencyPairStatistic:
    """The time series and results of one (exchange, asset, pair)."""

    exchange: str
    asset: AssetType
    pair: Pair
    underlying_pair: Pair = EMPTY_PAIR
    events: List[DataAtOffset] = field(default_factory=list)

    initial_holdings: Holding = field(default_factory=Holding)
    final_holdings: Holding = field(default_factory=Holding)
    final_orders: ComplianceSnapshot = field(default_factory=ComplianceSnapshot)

    buy_orders: int = 0
    sell_orders: int = 0
    long_orders: int = 0
    short_orders: int = 0
    total_orders: int = 0

    lowest_close_price: ValueAtTime = field(default_factory=ValueAtTime)
    highest_close_price: ValueAtTime = field(default_factory=ValueAtTime)
    market_movement: Decimal = ZERO
    strategy_movement: Decimal = ZERO
    highest_committed_funds: ValueAtTime = field(default_factory=ValueAtTime)
    total_fees: Decimal = ZERO
    max_drawdown: Swing = field(default_factory=Swing)
    ratios: Ratios = field(default_factory=Ratios)
    is_strategy_profitable: bool = False
    does_performance_beat_the_market: bool = False
    show_missing_data_warning: bool = False

    _index: Dict[int, int] = field(default_factory=dict, repr=False, compare=False)

    @property
    def key(self) -> SeriesKey:
        return SeriesKey(self.exchange, self.asset, self.pair)

    # ------------------------------------------------------------------
    # offset bookkeeping

    def has_offset(self, offset: int) -> bool:
        return offset in self._index

    def append(self, entry: DataAtOffset) -> None:
        self._index[entry.offset] = len(self.events)
        self.events.append(entry)

    def at_offset(self, offset: int) -> Optional[DataAtOffset]:
        pos = self._index.get(offset)
        if pos is None:
            return None
        return self.events[pos]

    # ------------------------------------------------------------------
    # results

    def calculate_results(self, risk_free_rate: float = 0.0) -> None:
        """Derive order counts, movements, drawdown and ratios from the events."""
        if not self.events:
            raise NoEventsError(f"no events to calculate results for {self.exchange} {self.asset} {self.pair}")
        first = self.events[0]
        last = self.events[-1]

        self.buy_orders = self.sell_orders = self.long_orders = self.short_orders = 0
        self.lowest_close_price = ValueAtTime()
        self.highest_close_price = ValueAtTime()
        self.highest_committed_funds = ValueAtTime()
        closes: List[ValueAtTime] = []
        for ev in self.events:
            point = ValueAtTime(ev.time, ev.close_price)
            closes.append(point)
            if self.lowest_close_price.time is None or point.value < self.lowest_close_price.value:
                self.lowest_close_price = point
            if self.highest_close_price.time is None or point.value > self.highest_close_price.value:
                self.highest_close_price = point
            if ev.holdings.committed_funds > self.highest_committed_funds.value:
                self.highest_committed_funds = ValueAtTime(ev.time, ev.holdings.committed_funds)
            if ev.data_event is not None and ev.data_event.missing_data:
                self.show_missing_data_warning = True
            if ev.fill_event is None or ev.fill_event.order is None:
                continue
            direction = ev.fill_event.direction
            if direction in (Side.BUY, Side.BID):
                self.buy_orders += 1
            elif direction in (Side.SELL, Side.ASK):
                self.sell_orders += 1
            elif direction is Side.LONG:
                self.long_orders += 1
            elif direction is Side.SHORT:
                self.short_orders += 1
        self.total_orders = self.buy_orders + self.sell_orders + self.long_orders + self.short_orders

        if first.close_price:
            self.market_movement = (last.close_price - first.close_price) / first.close_price * HUNDRED
        start_value = first.holdings.total_value
        end_value = last.holdings.total_value
        if start_value:
            self.strategy_movement = (end_value - start_value) / start_value * HUNDRED
        self.is_strategy_profitable = end_value > start_value
        self.does_performance_beat_the_market = self.strategy_movement > self.market_movement
        self.total_fees = last.holdings.total_fees
        self.max_drawdown = calculate_biggest_drawdown(closes)
        self.ratios = self._calculate_ratios(risk_free_rate)

    def _calculate_ratios(self, risk_free_rate: float) -> Ratios:
        prices = pd.Series([float(ev.close_price) for ev in self.events])
        values = pd.Series([float(ev.holdings.total_value) for ev in self.events])
        benchmark = performance.compute_returns(prices)
        if values.gt(0).all():
            returns = performance.compute_returns(values)
            start, end = float(values.iloc[0]), float(values.iloc[-1])
        else:
            returns = benchmark
            start, end = float(prices.iloc[0]), float(prices.iloc[-1])
        growth = performance.cagr(start, end, len(self.events))
        return Ratios(
            sharpe_ratio=performance.sharpe_ratio(returns, risk_free_rate),
            sortino_ratio=performance.sortino_ratio(returns, risk_free_rate),
            information_ratio=performance.information_ratio(returns, benchmark),
            calmar_ratio=performance.calmar_ratio(returns, growth),
            compound_annual_growth_rate=growth,
        )

    def final_results(self) -> FinalResultsHolder:
        return FinalResultsHolder(
            exchange=self.exchange,
            asset=self.asset,
            pair=self.pair,
            max_drawdown=self.max_drawdown,
            market_movement=self.market_movement,
            strategy_movement=self.strategy_movement,
        )

    def summary(self) -> Dict[str, object]:
        """Headline results for logging."""
        return {
            "exchange": self.exchange,
            "asset": self.asset,
            "pair": str(self.pair),
            "buy_orders": self.buy_orders,
            "sell_orders": self.sell_orders,
            "long_orders": self.long_orders,
            "short_orders": self.short_orders,
            "total_orders": self.total_orders,
            "market_movement": self.market_movement,
            "strategy_movement": self.strategy_movement,
            "max_drawdown_percent": self.max_drawdown.drawdown_percent,
            "total_fees": self.total_fees,
            "sharpe_ratio": self.ratios.sharpe_ratio,
            "strategy_profitable": self.is_strategy_profitable,
            "beat_the_market": self.does_performance_beat_the_market,
            "missing_data": self.show_missing_data_warning,
        }


__all__ = [
    "SeriesKey",
    "DataAtOffset",
    "ValueAtTime",
    "Swing",
    "Ratios",
    "FinalResultsHolder",
    "CurrencyPairStatistic",
    "calculate_biggest_drawdown",
]
