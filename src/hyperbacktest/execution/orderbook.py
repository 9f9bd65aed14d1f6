"""Order book snapshots used to estimate live-order slippage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from ..common import AssetType, BacktesterError
from ..currency import Pair
from ..utils.net import fetch_with_retry

Level = Tuple[Decimal, Decimal]


class OrderBookNotFoundError(BacktesterError):
    """No order book snapshot is stored for the instrument."""


@dataclass
class OrderBook:
    """Depth snapshot; bids sorted best (highest) first, asks lowest first."""

    exchange: str
    pair: Pair
    asset: AssetType
    bids: List[Level] = field(default_factory=list)
    asks: List[Level] = field(default_factory=list)
    last_updated: datetime | None = None

    def __post_init__(self) -> None:
        self.bids = sorted(((Decimal(str(p)), Decimal(str(a))) for p, a in self.bids), key=lambda lvl: lvl[0], reverse=True)
        self.asks = sorted(((Decimal(str(p)), Decimal(str(a))) for p, a in self.asks), key=lambda lvl: lvl[0])


class OrderBookStore:
    """Latest order book per (exchange, pair, asset)."""

    def __init__(self) -> None:
        self._books: Dict[Tuple[str, Pair, AssetType], OrderBook] = {}

    def update(self, book: OrderBook) -> None:
        self._books[(book.exchange.lower(), book.pair, book.asset)] = book

    def get(self, exchange: str, pair: Pair, asset: AssetType) -> OrderBook:
        try:
            return self._books[(exchange.lower(), pair, asset)]
        except KeyError:
            raise OrderBookNotFoundError(f"no orderbook for {exchange} {asset} {pair}") from None


def fetch_order_book(exchange: Any, pair: Pair, asset: AssetType = AssetType.SPOT, limit: int | None = None) -> OrderBook:
    """Load an order book snapshot from a synchronous ccxt exchange."""

    raw = fetch_with_retry(exchange.fetch_order_book, str(pair), limit)
    ts = raw.get("timestamp")
    return OrderBook(
        exchange=getattr(exchange, "id", ""),
        pair=pair,
        asset=asset,
        bids=[(lvl[0], lvl[1]) for lvl in raw.get("bids", [])],
        asks=[(lvl[0], lvl[1]) for lvl in raw.get("asks", [])],
        last_updated=datetime.fromtimestamp(ts / 1000, tz=timezone.utc) if ts else None,
    )


__all__ = ["OrderBook", "OrderBookStore", "OrderBookNotFoundError", "fetch_order_book"]
