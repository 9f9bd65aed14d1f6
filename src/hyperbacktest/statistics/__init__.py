"""Backtest statistics: per-instrument series, funding totals and the run aggregate."""

from .currency import CurrencyPairStatistic, DataAtOffset, FinalResultsHolder, SeriesKey, Swing, ValueAtTime
from .funding import FundingStatistics, calculate_funding_statistics
from .holdings import ComplianceSnapshot, Holding, PNLResult, PNLSummary, SnapshotOrder
from .statistics import Statistic

__all__ = [
    "Statistic",
    "CurrencyPairStatistic",
    "DataAtOffset",
    "FinalResultsHolder",
    "SeriesKey",
    "Swing",
    "ValueAtTime",
    "FundingStatistics",
    "calculate_funding_statistics",
    "ComplianceSnapshot",
    "Holding",
    "PNLResult",
    "PNLSummary",
    "SnapshotOrder",
]
