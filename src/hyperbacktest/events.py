"""Event types flowing between the strategy, the exchange and statistics.

Every event shares :class:`Base`, which identifies the instrument and the
offset (simulated time step) the event belongs to.  Monetary values are
:class:`decimal.Decimal` so that funds conservation holds exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from .common import AssetType, Side
from .currency import EMPTY_PAIR, Pair

ZERO = Decimal(0)


def _epoch() -> datetime:
    return datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class Base:
    """Identity and audit trail shared by all events."""

    offset: int = 0
    exchange: str = ""
    time: datetime = field(default_factory=_epoch)
    interval: str = ""
    asset: AssetType = AssetType.SPOT
    pair: Pair = EMPTY_PAIR
    underlying_pair: Pair = EMPTY_PAIR
    reasons: List[str] = field(default_factory=list)

    def append_reason(self, reason: str) -> None:
        self.reasons.append(reason)

    @property
    def reason(self) -> str:
        """All reasons joined into one line."""
        return ". ".join(self.reasons)

    def base(self) -> "Base":
        """Return a copy of the identifying fields, without the reasons."""
        return Base(
            offset=self.offset,
            exchange=self.exchange,
            time=self.time,
            interval=self.interval,
            asset=self.asset,
            pair=self.pair,
            underlying_pair=self.underlying_pair,
        )


@dataclass
class DataEvent(Base):
    """One candle of market data."""

    open: Decimal = ZERO
    high: Decimal = ZERO
    low: Decimal = ZERO
    close: Decimal = ZERO
    volume: Decimal = ZERO
    missing_data: bool = False

    @property
    def close_price(self) -> Decimal:
        return self.close


@dataclass
class SignalEvent(Base):
    """A strategy decision for one offset."""

    direction: Side = Side.DO_NOTHING
    close_price: Decimal = ZERO
    amount: Decimal = ZERO
    buy_limit: Decimal = ZERO
    sell_limit: Decimal = ZERO


@dataclass
class OrderEvent(Base):
    """A sized order intent produced by the portfolio."""

    direction: Side = Side.DO_NOTHING
    amount: Decimal = ZERO
    close_price: Decimal = ZERO
    allocated_funds: Decimal = ZERO
    order_type: str = "market"
    leverage: Decimal = Decimal(1)
    liquidating: bool = False
    fill_dependent_event: Optional[SignalEvent] = None


@dataclass
class OrderRecord:
    """An order as stored by the order manager."""

    order_id: str
    exchange: str
    pair: Pair
    asset: AssetType
    side: Side
    price: float
    amount: float
    fee: float = 0.0
    cost: float = 0.0
    order_type: str = "market"
    status: str = "FILLED"
    date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    close_time: Optional[datetime] = None


@dataclass
class Fill(Base):
    """Outcome of executing one order."""

    direction: Side = Side.DO_NOTHING
    amount: Decimal = ZERO
    close_price: Decimal = ZERO
    volume_adjusted_price: Decimal = ZERO
    purchase_price: Decimal = ZERO
    exchange_fee: Decimal = ZERO
    slippage: Decimal = ZERO
    total: Decimal = ZERO
    liquidated: bool = False
    order: Optional[OrderRecord] = None
    fill_dependent_event: Optional[SignalEvent] = None

    def set_direction(self, side: Side) -> None:
        self.direction = side


Event = DataEvent | SignalEvent | OrderEvent | Fill

__all__ = [
    "ZERO",
    "Base",
    "DataEvent",
    "SignalEvent",
    "OrderEvent",
    "OrderRecord",
    "Fill",
    "Event",
]
