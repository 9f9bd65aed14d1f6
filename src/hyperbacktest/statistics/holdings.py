"""Point-in-time portfolio records attached to each offset of a series."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..common import AssetType, Side
from ..currency import EMPTY_PAIR, Pair
from ..events import OrderRecord

ZERO = Decimal(0)


@dataclass
class Holding:
    """Holdings of one instrument at one offset."""

    offset: int = 0
    exchange: str = ""
    asset: AssetType = AssetType.SPOT
    pair: Pair = EMPTY_PAIR
    time: Optional[datetime] = None
    base_initial_funds: Decimal = ZERO
    base_size: Decimal = ZERO
    base_value: Decimal = ZERO
    quote_initial_funds: Decimal = ZERO
    quote_size: Decimal = ZERO
    bought_amount: Decimal = ZERO
    sold_amount: Decimal = ZERO
    total_fees: Decimal = ZERO
    committed_funds: Decimal = ZERO
    total_value: Decimal = ZERO


@dataclass
class SnapshotOrder:
    """An executed order as seen by compliance."""

    order: OrderRecord
    close_price: Decimal = ZERO
    volume_adjusted_price: Decimal = ZERO
    slippage_rate: Decimal = ZERO
    cost_basis: Decimal = ZERO


@dataclass
class ComplianceSnapshot:
    """Every order executed up to and including an offset."""

    offset: int = 0
    time: Optional[datetime] = None
    orders: List[SnapshotOrder] = field(default_factory=list)


@dataclass
class PNLResult:
    time: Optional[datetime] = None
    unrealised_pnl: Decimal = ZERO
    realised_pnl: Decimal = ZERO
    price: Decimal = ZERO
    exposure: Decimal = ZERO
    direction: Side = Side.UNKNOWN
    fee: Decimal = ZERO
    is_liquidated: bool = False


@dataclass
class PNLSummary:
    """Futures position P&L for one instrument at one offset."""

    exchange: str
    asset: AssetType
    pair: Pair
    offset: int
    collateral_currency: str = ""
    result: PNLResult = field(default_factory=PNLResult)


__all__ = ["Holding", "SnapshotOrder", "ComplianceSnapshot", "PNLResult", "PNLSummary"]
