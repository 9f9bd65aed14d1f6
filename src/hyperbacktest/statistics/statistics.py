"""Run-wide statistics over every traded instrument.

:class:`Statistic` owns one :class:`CurrencyPairStatistic` per
(exchange, asset, pair).  During a run the backtest loop records market
events, then enriches each offset with the signal, order, fill, holdings,
P&L and compliance data produced for it.  At the end
:meth:`Statistic.calculate_all_results` computes per-instrument results and
compares instruments with each other.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from ..common import (
    AlreadyProcessedError,
    CurrencyStatisticsUnsetError,
    ExchangeAssetPairStatsUnsetError,
    NilArgumentsError,
    NilEventError,
    NoDataAtOffsetError,
    NoRelevantStatsFoundError,
)
from ..events import DataEvent, Event, Fill, OrderEvent, SignalEvent
from ..utils.logging import _json_default, get_logger, log_json
from .currency import CurrencyPairStatistic, DataAtOffset, FinalResultsHolder, SeriesKey
from .funding import FundingStatistics, calculate_funding_statistics
from .holdings import ComplianceSnapshot, Holding, PNLSummary

logger = get_logger("hyperbacktest.statistics")


@dataclass
class EventOutputHolder:
    time: datetime
    events: List[str] = field(default_factory=list)


def add_event_output_to_time(events: List[EventOutputHolder], t: datetime, message: str) -> List[EventOutputHolder]:
    for holder in events:
        if holder.time == t:
            holder.events.append(message)
            return events
    events.append(EventOutputHolder(time=t, events=[message]))
    return events


def _best(results: List[FinalResultsHolder], metric) -> Optional[FinalResultsHolder]:
    # first candidate seeds the best, later ones must be strictly greater
    best: Optional[FinalResultsHolder] = None
    for result in results:
        if best is None or metric(result) > metric(best):
            best = result
    return best


@dataclass
class Statistic:
    """All per-instrument series of a backtest run and their aggregate results."""

    strategy_name: str = ""
    strategy_description: str = ""
    risk_free_rate: float = 0.0
    candle_interval: str = ""
    series: Dict[SeriesKey, CurrencyPairStatistic] = field(default_factory=dict)

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_buy_orders: int = 0
    total_sell_orders: int = 0
    total_long_orders: int = 0
    total_short_orders: int = 0
    total_orders: int = 0
    biggest_drawdown: Optional[FinalResultsHolder] = None
    best_strategy_results: Optional[FinalResultsHolder] = None
    best_market_movement: Optional[FinalResultsHolder] = None
    funding_statistics: Optional[FundingStatistics] = None
    was_any_data_missing: bool = False
    has_collateral: bool = False

    def reset(self) -> None:
        fresh = Statistic()
        self.__dict__.update(fresh.__dict__)

    def set_strategy_name(self, name: str) -> None:
        self.strategy_name = name

    # ------------------------------------------------------------------
    # recording

    def setup_event_for_time(self, ev: DataEvent) -> None:
        """Start a new offset for the event's instrument."""
        if ev is None:
            raise NilEventError("data event")
        key = SeriesKey(ev.exchange, ev.asset, ev.pair)
        lookup = self.series.get(key)
        if lookup is None:
            lookup = CurrencyPairStatistic(
                exchange=ev.exchange,
                asset=ev.asset,
                pair=ev.pair,
                underlying_pair=ev.underlying_pair,
            )
        if lookup.has_offset(ev.offset):
            raise AlreadyProcessedError(f"{ev.exchange} {ev.asset} {ev.pair} offset {ev.offset} already processed")
        lookup.append(
            DataAtOffset(offset=ev.offset, time=ev.time, close_price=ev.close_price, data_event=ev)
        )
        self.series[key] = lookup

    def _lookup(self, exchange, asset, pair, purpose: str) -> CurrencyPairStatistic:
        if not self.series:
            raise ExchangeAssetPairStatsUnsetError("exchange asset pair statistics unset")
        lookup = self.series.get(SeriesKey(exchange, asset, pair))
        if lookup is None:
            raise CurrencyStatisticsUnsetError(f"no statistics for {exchange} {asset} {pair} to set {purpose}")
        return lookup

    def set_event_for_offset(self, ev: Event) -> None:
        """Store ``ev`` in the slot matching its kind at its offset."""
        if ev is None:
            raise NilEventError("event")
        lookup = self._lookup(ev.exchange, ev.asset, ev.pair, f"{type(ev).__name__} event")
        entry = lookup.at_offset(ev.offset)
        if entry is None:
            raise NoRelevantStatsFoundError(
                f"no relevant stats found for event {ev.exchange} {ev.asset} {ev.pair} at offset {ev.offset}"
            )
        if isinstance(ev, DataEvent):
            entry.data_event = ev
        elif isinstance(ev, SignalEvent):
            entry.signal_event = ev
        elif isinstance(ev, OrderEvent):
            entry.order_event = ev
        elif isinstance(ev, Fill):
            entry.fill_event = ev
        else:
            raise TypeError(f"unknown event type received: {type(ev).__name__}")
        entry.time = ev.time
        entry.close_price = ev.close_price
        entry.offset = ev.offset

    def add_holdings_for_time(self, h: Holding) -> None:
        if h is None:
            raise NilArgumentsError("holdings")
        lookup = self._lookup(h.exchange, h.asset, h.pair, "holding event")
        entry = lookup.at_offset(h.offset)
        if entry is None:
            raise NoDataAtOffsetError(f"{h.exchange} {h.asset} {h.pair} no data at offset {h.offset}")
        entry.holdings = h

    def add_pnl_for_time(self, pnl: PNLSummary) -> None:
        """Store P&L and take the position exposure from it."""
        if pnl is None:
            raise NilArgumentsError("requires PNL")
        lookup = self._lookup(pnl.exchange, pnl.asset, pnl.pair, "pnl")
        entry = lookup.at_offset(pnl.offset)
        if entry is None:
            raise NoDataAtOffsetError(f"{pnl.exchange} {pnl.asset} {pnl.pair} no data at offset {pnl.offset}")
        entry.pnl = pnl
        entry.holdings.base_size = pnl.result.exposure

    def add_compliance_snapshot_for_time(self, snapshot: ComplianceSnapshot, ev: Fill) -> None:
        if ev is None:
            raise NilEventError("fill event")
        lookup = self._lookup(ev.exchange, ev.asset, ev.pair, "compliance snapshot")
        entry = lookup.at_offset(ev.offset)
        if entry is None:
            raise NoDataAtOffsetError(f"{ev.exchange} {ev.asset} {ev.pair} no data at offset {ev.offset}")
        entry.transactions = snapshot

    # ------------------------------------------------------------------
    # results

    def calculate_all_results(self) -> None:
        """Calculate every series' results, run totals and cross-instrument bests."""
        logger.info("Calculating backtesting results")
        self.print_all_events_chronologically()
        final_results: List[FinalResultsHolder] = []
        processed = 0
        for stats in self.series.values():
            if not stats.events:
                continue
            processed += 1
            first = stats.events[0]
            last = stats.events[-1]
            if last.pnl is not None:
                self.has_collateral = True
            try:
                stats.calculate_results(self.risk_free_rate)
            except Exception as exc:
                log_json(
                    logger,
                    "series_calculation_failed",
                    exchange=stats.exchange,
                    asset=stats.asset,
                    pair=str(stats.pair),
                    error=str(exc),
                )
            stats.final_holdings = last.holdings
            stats.initial_holdings = first.holdings
            stats.final_orders = last.transactions
            self.start_date = first.time
            self.end_date = last.time
            log_json(logger, "series_results", **stats.summary())

            final_results.append(stats.final_results())
            self.total_long_orders += stats.long_orders
            self.total_short_orders += stats.short_orders
            self.total_buy_orders += stats.buy_orders
            self.total_sell_orders += stats.sell_orders
            self.total_orders += stats.total_orders
            if stats.show_missing_data_warning:
                self.was_any_data_missing = True

        self.funding_statistics = calculate_funding_statistics(self.series.values(), self.risk_free_rate)
        self.funding_statistics.print_results(self.was_any_data_missing)
        if processed > 1:
            self.biggest_drawdown = self.get_the_biggest_drawdown_across_currencies(final_results)
            self.best_market_movement = self.get_best_market_performer(final_results)
            self.best_strategy_results = self.get_best_strategy_performer(final_results)
            self.print_total_results()

    def get_best_market_performer(self, results: List[FinalResultsHolder]) -> Optional[FinalResultsHolder]:
        return _best(results, lambda r: r.market_movement)

    def get_best_strategy_performer(self, results: List[FinalResultsHolder]) -> Optional[FinalResultsHolder]:
        return _best(results, lambda r: r.strategy_movement)

    def get_the_biggest_drawdown_across_currencies(
        self, results: List[FinalResultsHolder]
    ) -> Optional[FinalResultsHolder]:
        return _best(results, lambda r: r.max_drawdown.drawdown_percent)

    # ------------------------------------------------------------------
    # output

    def print_total_results(self) -> None:
        def _describe(r: Optional[FinalResultsHolder]) -> Optional[str]:
            if r is None:
                return None
            return f"{r.exchange} {r.asset} {r.pair}"

        log_json(
            logger,
            "total_results",
            strategy=self.strategy_name,
            total_buy_orders=self.total_buy_orders,
            total_sell_orders=self.total_sell_orders,
            total_long_orders=self.total_long_orders,
            total_short_orders=self.total_short_orders,
            total_orders=self.total_orders,
            biggest_drawdown=_describe(self.biggest_drawdown),
            biggest_drawdown_percent=self.biggest_drawdown.max_drawdown.drawdown_percent if self.biggest_drawdown else None,
            best_market_movement=_describe(self.best_market_movement),
            best_strategy_results=_describe(self.best_strategy_results),
        )

    def print_all_events_chronologically(self) -> None:
        """Log a one-line description of every recorded event, grouped by time."""
        results: List[EventOutputHolder] = []
        for stats in self.series.values():
            for entry in stats.events:
                if entry.time is None:
                    continue
                prefix = f"{stats.exchange} {stats.asset} {stats.pair}"
                if entry.fill_event is not None:
                    f = entry.fill_event
                    message = f"{prefix} fill {f.direction} amount {f.amount} price {f.purchase_price} fee {f.exchange_fee}"
                    if f.reasons:
                        message += f" | {f.reason}"
                elif entry.signal_event is not None:
                    s = entry.signal_event
                    message = f"{prefix} signal {s.direction} at close {s.close_price}"
                    if s.reasons:
                        message += f" | {s.reason}"
                elif entry.data_event is not None:
                    message = f"{prefix} close {entry.close_price}"
                    if entry.data_event.missing_data:
                        message += " (missing data)"
                else:
                    continue
                results = add_event_output_to_time(results, entry.time, message)
        results.sort(key=lambda holder: holder.time)
        for holder in results:
            log_json(logger, "event_timeline", time=holder.time, events=holder.events)

    def serialise(self) -> str:
        """Render the whole run, every series' timeline included, as indented JSON."""
        payload = {
            "strategy_name": self.strategy_name,
            "strategy_description": self.strategy_description,
            "risk_free_rate": self.risk_free_rate,
            "start_date": self.start_date,
            "end_date": self.end_date,
            "total_buy_orders": self.total_buy_orders,
            "total_sell_orders": self.total_sell_orders,
            "total_long_orders": self.total_long_orders,
            "total_short_orders": self.total_short_orders,
            "total_orders": self.total_orders,
            "biggest_drawdown": self.biggest_drawdown,
            "best_strategy_results": self.best_strategy_results,
            "best_market_movement": self.best_market_movement,
            "funding_statistics": self.funding_statistics,
            "was_any_data_missing": self.was_any_data_missing,
            "has_collateral": self.has_collateral,
            "currency_statistics": list(self.series.values()),
        }
        return json.dumps(payload, default=_json_default, indent=1)


__all__ = ["Statistic", "EventOutputHolder", "add_event_output_to_time"]
