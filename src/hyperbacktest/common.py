"""Shared enums, errors and helpers for the backtesting core.

The execution simulator and the statistics ledger both reason about order
sides and asset types, and both report failures through the exception
hierarchy rooted at :class:`BacktesterError`.
"""

from __future__ import annotations

import enum
from typing import Any


class Side(str, enum.Enum):
    """Order direction, including the terminal "could not" variants."""

    BUY = "BUY"
    SELL = "SELL"
    BID = "BID"
    ASK = "ASK"
    LONG = "LONG"
    SHORT = "SHORT"
    CLOSE_POSITION = "CLOSE POSITION"
    DO_NOTHING = "DO NOTHING"
    TRANSFERRED_FUNDS = "TRANSFERRED FUNDS"
    COULD_NOT_BUY = "COULD NOT BUY"
    COULD_NOT_SELL = "COULD NOT SELL"
    COULD_NOT_LONG = "COULD NOT LONG"
    COULD_NOT_SHORT = "COULD NOT SHORT"
    COULD_NOT_CLOSE_SHORT = "COULD NOT CLOSE SHORT"
    COULD_NOT_CLOSE_LONG = "COULD NOT CLOSE LONG"
    MISSING_DATA = "MISSING DATA"
    UNKNOWN = "UNKNOWN"

    def __str__(self) -> str:
        return self.value


class AssetType(str, enum.Enum):
    """Asset class of a traded instrument."""

    EMPTY = ""
    SPOT = "spot"
    FUTURES = "futures"

    def is_futures(self) -> bool:
        return self is AssetType.FUTURES

    def __str__(self) -> str:
        return self.value


class OrderStatus(str, enum.Enum):
    """Order status used when querying the order manager."""

    UNKNOWN = "UNKNOWN"
    NEW = "NEW"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


BUY_SIDES = frozenset({Side.BUY, Side.BID})
SELL_SIDES = frozenset({Side.SELL, Side.ASK})

# Direction an order takes when it fails, keyed by its requested direction.
_DECLINED = {
    Side.BUY: Side.COULD_NOT_BUY,
    Side.BID: Side.COULD_NOT_BUY,
    Side.SELL: Side.COULD_NOT_SELL,
    Side.ASK: Side.COULD_NOT_SELL,
    Side.LONG: Side.COULD_NOT_LONG,
    Side.SHORT: Side.COULD_NOT_SHORT,
}


def can_transact(side: Side) -> bool:
    """Return ``True`` if ``side`` results in an order being placed."""

    return side in (
        Side.BUY,
        Side.SELL,
        Side.BID,
        Side.ASK,
        Side.LONG,
        Side.SHORT,
        Side.CLOSE_POSITION,
    )


def declined_side(side: Side) -> Side:
    """Map a requested direction to its failed variant.

    Directions without a failed variant become :attr:`Side.DO_NOTHING`.
    """

    return _DECLINED.get(side, Side.DO_NOTHING)


class BacktesterError(Exception):
    """Base class for every error raised by the backtesting core.

    Errors raised while executing an order carry the partially populated
    fill on ``fill`` so callers can inspect its direction and reasons.
    """

    def __init__(self, message: str = "", *, fill: Any = None) -> None:
        super().__init__(message)
        self.fill = fill


class NilEventError(BacktesterError):
    """An event argument was ``None``."""


class NilArgumentsError(BacktesterError):
    """A required argument was ``None`` or empty."""


class CannotTransactError(BacktesterError):
    """The order direction does not result in an order."""


class InvalidDirectionError(BacktesterError):
    """The order direction is not valid for the requested operation."""


class InvalidSideError(BacktesterError, ValueError):
    """Slippage cannot be applied for the given side."""


class InvalidDataTypeError(BacktesterError):
    """An unexpected asset type and direction combination."""


class NoCurrencySettingsError(BacktesterError):
    """No settings were registered for an exchange, asset and pair."""


class NilCurrencySettingsError(BacktesterError):
    """Settings were required but ``None`` was supplied."""


class ExceededPortfolioLimitError(BacktesterError):
    """The order size falls outside the configured minimum/maximum size."""


class OrderNotFoundError(BacktesterError):
    """A submitted order could not be found in the order manager."""


class AlreadyProcessedError(BacktesterError):
    """A market event for the offset has already been recorded."""


class ExchangeAssetPairStatsUnsetError(BacktesterError):
    """No statistics have been set up yet."""


class CurrencyStatisticsUnsetError(BacktesterError):
    """No statistics exist for the exchange, asset and pair."""


class NoRelevantStatsFoundError(BacktesterError):
    """No entry exists at the event's offset."""


class NoDataAtOffsetError(BacktesterError):
    """No entry exists at the offset of a holding, P&L or compliance record."""


class NoEventsError(BacktesterError):
    """A series has no recorded events to calculate results from."""


__all__ = [
    "Side",
    "AssetType",
    "OrderStatus",
    "BUY_SIDES",
    "SELL_SIDES",
    "can_transact",
    "declined_side",
    "BacktesterError",
    "NilEventError",
    "NilArgumentsError",
    "CannotTransactError",
    "InvalidDirectionError",
    "InvalidSideError",
    "InvalidDataTypeError",
    "NoCurrencySettingsError",
    "NilCurrencySettingsError",
    "ExceededPortfolioLimitError",
    "OrderNotFoundError",
    "AlreadyProcessedError",
    "ExchangeAssetPairStatsUnsetError",
    "CurrencyStatisticsUnsetError",
    "NoRelevantStatsFoundError",
    "NoDataAtOffsetError",
    "NoEventsError",
]
