"""In-memory order manager acting as the simulator's order sink.

Simulated orders are stored directly via :meth:`OrderManager.submit_fake_order`.
Real orders are forwarded to an :class:`OrderSubmitter`; :class:`CcxtSubmitter`
sends them to a venue through a synchronous CCXT exchange.  Retries and
timeouts are the submitter's concern.
"""

from __future__ import annotations

import copy
import os
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..common import AssetType, BacktesterError, InvalidDirectionError, OrderStatus, Side
from ..currency import Pair
from ..events import OrderRecord
from ..utils.logging import get_logger, log_json
from .validators import Limits, validate_order

logger = get_logger("hyperbacktest.orders")


class OrderValidationError(BacktesterError):
    """The submission is malformed or breaks the venue's limits."""


@dataclass(slots=True)
class OrderSubmission:
    """Order request handed to the order manager."""

    exchange: str
    pair: Pair
    asset: AssetType
    side: Side
    price: float
    amount: float
    order_type: str = "market"

    def validate(self) -> None:
        if not self.exchange:
            raise OrderValidationError("order submission requires an exchange")
        if self.pair.is_empty():
            raise OrderValidationError("order submission requires a currency pair")
        if self.amount <= 0:
            raise OrderValidationError(f"order amount {self.amount} must be positive")
        if self.side in (Side.DO_NOTHING, Side.UNKNOWN, Side.MISSING_DATA):
            raise OrderValidationError(f"order side {self.side} cannot be submitted")

    def derive_response(self, order_id: str) -> OrderRecord:
        """Build the order record an exchange would acknowledge this submission with."""
        return OrderRecord(
            order_id=order_id,
            exchange=self.exchange,
            pair=self.pair,
            asset=self.asset,
            side=self.side,
            price=self.price,
            amount=self.amount,
            order_type=self.order_type,
            status=OrderStatus.NEW.value,
        )


class OrderSubmitter(Protocol):
    def submit(self, submission: OrderSubmission) -> OrderRecord: ...


class CcxtSubmitter:
    """Send market orders through a synchronous CCXT exchange instance."""

    def __init__(self, exchange: Any) -> None:
        self.exchange = exchange

    @classmethod
    def from_env(cls, exchange_id: str | None = None) -> "CcxtSubmitter":
        import ccxt

        name = exchange_id or os.getenv("EXCHANGE", "binance")
        ex = getattr(ccxt, name)(
            {
                "apiKey": os.getenv("API_KEY"),
                "secret": os.getenv("API_SECRET"),
                "enableRateLimit": True,
            }
        )
        return cls(ex)

    def submit(self, submission: OrderSubmission) -> OrderRecord:
        if submission.side in (Side.BUY, Side.BID, Side.LONG):
            side = "buy"
        elif submission.side in (Side.SELL, Side.ASK, Side.SHORT):
            side = "sell"
        else:
            raise InvalidDirectionError(f"cannot send {submission.side} orders to {self.exchange.id}")

        symbol = str(submission.pair)
        self.exchange.load_markets()
        if not validate_order(0.0, submission.amount, self.exchange.market(symbol)):
            raise OrderValidationError("Order violates market limits")
        before = time.perf_counter()
        if submission.order_type == "market":
            raw = self.exchange.create_order(symbol, "market", side, submission.amount)
        else:
            raw = self.exchange.create_order(symbol, submission.order_type, side, submission.amount, submission.price)
        latency_ms = (time.perf_counter() - before) * 1000
        log_json(logger, "order_submitted", exchange=submission.exchange, symbol=symbol, latency_ms=round(latency_ms, 2))

        ts = raw.get("timestamp")
        placed = datetime.fromtimestamp(ts / 1000, tz=timezone.utc) if ts else None
        fee = (raw.get("fee") or {}).get("cost") or 0.0
        return OrderRecord(
            order_id=str(raw["id"]),
            exchange=submission.exchange,
            pair=submission.pair,
            asset=submission.asset,
            side=submission.side,
            price=float(raw.get("average") or raw.get("price") or submission.price),
            amount=float(raw.get("filled") or raw.get("amount") or submission.amount),
            fee=float(fee),
            cost=float(raw.get("cost") or 0.0),
            status=str(raw.get("status") or OrderStatus.NEW.value).upper(),
            date=placed,
            last_updated=placed,
        )


class OrderManager:
    """Track submitted orders and expose snapshots of them."""

    def __init__(self, submitter: Optional[OrderSubmitter] = None) -> None:
        self.submitter = submitter
        self.orders: Dict[str, OrderRecord] = {}
        self._limits: Dict[Tuple[str, AssetType, Pair], Limits] = {}

    def set_limits(self, exchange: str, asset: AssetType, pair: Pair, limits: Limits) -> None:
        self._limits[(exchange.lower(), asset, pair)] = limits

    def _check_limits(self, submission: OrderSubmission) -> None:
        limits = self._limits.get((submission.exchange.lower(), submission.asset, submission.pair))
        if limits is None:
            return
        if not validate_order(0.0, submission.amount, limits.as_market()):
            raise OrderValidationError(
                f"order amount {submission.amount} violates {submission.exchange} {submission.pair} limits"
            )

    def submit(self, submission: OrderSubmission) -> OrderRecord:
        """Place a real order with the configured submitter."""
        if self.submitter is None:
            raise BacktesterError("order manager has no submitter for real orders")
        submission.validate()
        record = self.submitter.submit(submission)
        self.orders[record.order_id] = record
        return record

    def submit_fake_order(
        self, submission: OrderSubmission, response: OrderRecord, use_exchange_limits: bool = False
    ) -> OrderRecord:
        """Store a simulated order without contacting any venue."""
        submission.validate()
        if use_exchange_limits:
            self._check_limits(submission)
        if not response.order_id:
            response.order_id = str(uuid.uuid4())
        self.orders[response.order_id] = response
        return response

    def get_orders_snapshot(self, status: OrderStatus = OrderStatus.UNKNOWN) -> List[OrderRecord]:
        """Return copies of stored orders, all of them for ``UNKNOWN``."""
        return [
            copy.copy(o)
            for o in self.orders.values()
            if status is OrderStatus.UNKNOWN or o.status == status.value
        ]

    def set_status(self, order_id: str, status: OrderStatus) -> None:
        order = self.orders.get(order_id)
        if order is not None:
            order.status = status.value

    def cancel_all(self) -> None:
        for order in self.orders.values():
            if order.status not in (OrderStatus.FILLED.value, OrderStatus.CANCELLED.value):
                order.status = OrderStatus.CANCELLED.value


__all__ = [
    "OrderValidationError",
    "OrderSubmission",
    "OrderSubmitter",
    "CcxtSubmitter",
    "OrderManager",
]
