"""Simulated exchange: turns order events into fills.

:meth:`Exchange.execute_order` sizes and prices an order against the
instrument's :class:`Settings`, the latest candle (or the live order book),
and the funds the portfolio allocated, places it with the order manager,
and reconciles the result with the funds ledger.

Failures raise a :class:`~hyperbacktest.common.BacktesterError` subclass
whose ``fill`` attribute holds the fill as it stood, including the
downgraded direction and the reasons explaining each adjustment.  Errors
from the order manager and the funds ledger are re-raised once the
allocation has been released.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Protocol, Sequence

import numpy as np

from ..common import (
    BUY_SIDES,
    SELL_SIDES,
    AssetType,
    BacktesterError,
    CannotTransactError,
    ExceededPortfolioLimitError,
    InvalidDataTypeError,
    InvalidDirectionError,
    NilArgumentsError,
    NilCurrencySettingsError,
    NilEventError,
    NoCurrencySettingsError,
    OrderNotFoundError,
    OrderStatus,
    Side,
    can_transact,
    declined_side,
)
from ..currency import EMPTY_PAIR, Pair
from ..events import Fill, OrderEvent
from ..funding import FundReleaser
from ..utils.logging import get_logger, log_json
from .order_manager import OrderManager, OrderSubmission
from .orderbook import OrderBookStore
from .slippage import (
    apply_slippage_to_price,
    calculate_exchange_fee,
    calculate_slippage_by_orderbook,
    ensure_order_fits_within_hlv,
    estimate_slippage_percentage,
    reduce_amount_to_fit_portfolio_limit,
)
from .validators import Limits

logger = get_logger("hyperbacktest.exchange")

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)
EIGHT_DP = Decimal("0.00000001")

DATA_MAY_BE_INCORRECT = "data may be incorrect"


class CandleSource(Protocol):
    """Market data needed for candle fitting, most recent sample last."""

    def stream_high(self) -> Sequence[Decimal]: ...

    def stream_low(self) -> Sequence[Decimal]: ...

    def stream_vol(self) -> Sequence[Decimal]: ...


@dataclass
class MinMax:
    """Order size bounds for one side; zero disables a bound."""

    minimum_size: Decimal = ZERO
    maximum_size: Decimal = ZERO


@dataclass
class Settings:
    """Trading constraints for one exchange, asset and pair."""

    exchange: str
    asset: AssetType
    pair: Pair
    underlying_pair: Pair = EMPTY_PAIR
    maker_fee: Decimal = ZERO
    taker_fee: Decimal = ZERO
    buy_side: MinMax = field(default_factory=MinMax)
    sell_side: MinMax = field(default_factory=MinMax)
    minimum_slippage_rate: Decimal = ONE
    maximum_slippage_rate: Decimal = ONE
    limits: Limits = field(default_factory=Limits)
    can_use_exchange_limits: bool = False
    skip_candle_volume_fitting: bool = False
    use_real_orders: bool = False


class Exchange:
    """Order execution simulator holding per-instrument settings."""

    def __init__(
        self,
        orderbooks: Optional[OrderBookStore] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self.currency_settings: List[Settings] = []
        self.orderbooks = orderbooks or OrderBookStore()
        self.rng = rng or np.random.default_rng()

    def reset(self) -> None:
        self.currency_settings = []
        self.orderbooks = OrderBookStore()

    # ------------------------------------------------------------------
    # Settings registry

    def set_exchange_asset_currency_settings(self, asset: AssetType, pair: Pair, settings: Settings) -> None:
        """Register ``settings``, replacing any for the same exchange, asset and pair.

        Settings missing an exchange, asset or pair are ignored.
        """
        if not settings.exchange or asset is AssetType.EMPTY or pair.is_empty():
            return
        for i, existing in enumerate(self.currency_settings):
            if existing.pair == pair and existing.asset == asset and existing.exchange.lower() == settings.exchange.lower():
                self.currency_settings[i] = settings
                return
        self.currency_settings.append(settings)

    def get_currency_settings(self, exchange: str, asset: AssetType, pair: Pair) -> Settings:
        for cs in self.currency_settings:
            if cs.pair == pair and cs.asset == asset and cs.exchange.lower() == exchange.lower():
                return cs
        raise NoCurrencySettingsError(f"no currency settings found for {exchange} {asset} {pair}")

    # ------------------------------------------------------------------
    # Execution

    def execute_order(
        self,
        order: OrderEvent,
        data: CandleSource,
        order_manager: OrderManager,
        funds: FundReleaser,
    ) -> Fill:
        """Execute ``order`` and return the resulting fill."""
        if order is None:
            raise NilEventError("order event")
        f = Fill(
            offset=order.offset,
            exchange=order.exchange,
            time=order.time,
            interval=order.interval,
            asset=order.asset,
            pair=order.pair,
            underlying_pair=order.underlying_pair,
            direction=order.direction,
            amount=order.amount,
            close_price=order.close_price,
            fill_dependent_event=order.fill_dependent_event,
            liquidated=order.liquidating,
        )
        if not can_transact(order.direction) and not order.liquidating:
            raise CannotTransactError(f"cannot transact order direction {order.direction}", fill=f)

        allocated_funds = order.allocated_funds
        try:
            cs = self.get_currency_settings(order.exchange, order.asset, order.pair)
        except NoCurrencySettingsError as exc:
            exc.fill = f
            raise

        if order.liquidating:
            # the venue liquidates; only local records change
            if order.asset.is_futures():
                funds.collateral_releaser().liquidate()
            else:
                funds.pair_releaser().liquidate()
            log_json(logger, "position_liquidated", exchange=f.exchange, asset=f.asset, pair=str(f.pair), offset=f.offset)
            return f

        amount = order.amount
        price = order.close_price
        fee_rate = cs.taker_fee if order.order_type == "market" else cs.maker_fee
        if cs.use_real_orders:
            try:
                book = self.orderbooks.get(f.exchange, f.pair, f.asset)
            except BacktesterError as exc:
                exc.fill = f
                raise
            price, amount = calculate_slippage_by_orderbook(book, order.direction, allocated_funds, fee_rate)
            f.volume_adjusted_price = price
            if f.close_price:
                f.slippage = (price - f.close_price) / f.close_price * HUNDRED
        else:
            slippage_rate = estimate_slippage_percentage(cs.minimum_slippage_rate, cs.maximum_slippage_rate, self.rng)
            if cs.skip_candle_volume_fitting or order.asset.is_futures():
                f.volume_adjusted_price = f.close_price
            else:
                high = data.stream_high()[-1]
                low = data.stream_low()[-1]
                volume = data.stream_vol()[-1]
                adjusted_price, adjusted_amount = ensure_order_fits_within_hlv(price, amount, high, low, volume)
                if adjusted_amount != amount:
                    f.append_reason(f"Order size shrunk from {amount} to {adjusted_amount} to fit candle")
                    amount = adjusted_amount
                if adjusted_price != price:
                    f.append_reason(f"Price adjusted fitting to candle from {price} to {adjusted_price}")
                    price = adjusted_price
                    f.volume_adjusted_price = price
            if amount <= 0 and f.amount > 0:
                f.append_reason(f"amount set to 0, {DATA_MAY_BE_INCORRECT}")
                release_failed_order(f, funds, order.amount, allocated_funds, order.direction)
                f.set_direction(declined_side(order.direction))
                return f
            try:
                adjusted_price = apply_slippage_to_price(f.direction, price, slippage_rate)
            except BacktesterError as exc:
                exc.fill = f
                release_failed_order(f, funds, order.amount, allocated_funds, order.direction)
                raise
            if adjusted_price != price:
                f.append_reason(f"Price has slipped from {price} to {adjusted_price}")
                price = adjusted_price
            f.slippage = slippage_rate * HUNDRED - HUNDRED

        adjusted_amount = reduce_amount_to_fit_portfolio_limit(price, amount, allocated_funds, f.direction, fee_rate)
        if adjusted_amount != amount:
            f.append_reason(f"Order size shrunk from {amount} to {adjusted_amount} to remain within portfolio limits")
            amount = adjusted_amount

        if cs.can_use_exchange_limits:
            adjusted_amount = cs.limits.conform_to_amount(amount)
            if adjusted_amount != amount:
                f.append_reason(
                    f"Order size shrunk from {amount} to {adjusted_amount} to remain within exchange step amount limits"
                )
                amount = adjusted_amount

        try:
            verify_order_within_limits(f, amount, cs)
        except BacktesterError as exc:
            exc.fill = f
            release_failed_order(f, funds, order.amount, allocated_funds, order.direction)
            raise

        fee = calculate_exchange_fee(price, amount, fee_rate)
        try:
            order_id = self.place_order(
                price, amount, fee, cs.use_real_orders, cs.can_use_exchange_limits, f, order_manager, order.order_type
            )
        except Exception as exc:
            if isinstance(exc, BacktesterError):
                exc.fill = f
            allocate_funds_post_order(
                f, funds, exc, order.amount, allocated_funds, amount, price, fee, requested_side=order.direction
            )
            raise

        for record in order_manager.get_orders_snapshot(OrderStatus.UNKNOWN):
            if record.order_id != order_id:
                continue
            record.date = order.time
            record.last_updated = order.time
            record.close_time = order.time
            f.order = record
            f.purchase_price = Decimal(str(record.price))
            f.amount = Decimal(str(record.amount))
            if record.fee > 0:
                f.exchange_fee = Decimal(str(record.fee))
            f.total = f.purchase_price * f.amount + f.exchange_fee

        if f.order is None:
            release_failed_order(f, funds, order.amount, allocated_funds, order.direction)
            raise OrderNotFoundError(f"placed order {order_id} not found in order manager", fill=f)

        try:
            allocate_funds_post_order(f, funds, None, order.amount, allocated_funds, amount, price, fee)
        except Exception as exc:
            if isinstance(exc, BacktesterError):
                exc.fill = f
            release_failed_order(f, funds, order.amount, allocated_funds, order.direction)
            order_manager.set_status(order_id, OrderStatus.REJECTED)
            f.order.status = OrderStatus.REJECTED.value
            raise
        logger.debug("executed %s %s %s amount=%s price=%s", f.exchange, f.pair, f.direction, f.amount, f.purchase_price)
        return f

    def place_order(
        self,
        price: Decimal,
        amount: Decimal,
        fee: Decimal,
        use_real_orders: bool,
        use_exchange_limits: bool,
        f: Fill,
        order_manager: OrderManager,
        order_type: str = "market",
    ) -> str:
        """Submit the order and return the identifier it was stored under."""
        if f is None:
            raise NilEventError("fill event")
        order_id = str(uuid.uuid4())
        submission = OrderSubmission(
            exchange=f.exchange,
            pair=f.pair,
            asset=f.asset,
            side=f.direction,
            price=float(price),
            amount=float(amount),
            order_type=order_type,
        )
        if use_real_orders:
            response = order_manager.submit(submission)
        else:
            response = submission.derive_response(order_id)
            response.status = OrderStatus.FILLED.value
            response.fee = float(fee)
            response.cost = submission.price
            response.date = f.time
            response.last_updated = f.time
            response = order_manager.submit_fake_order(submission, response, use_exchange_limits)
        return response.order_id


def release_failed_order(
    f: Fill,
    funds: FundReleaser,
    order_amount: Decimal,
    allocated_funds: Decimal,
    requested_side: Optional[Side] = None,
) -> None:
    """Hand the whole allocation back after a failed order and downgrade the fill.

    ``requested_side`` is the direction the order was placed with, used to
    pick the spot balance when the fill has already been downgraded.
    Ledger errors are recorded on the fill rather than raised.
    """
    if f is None:
        raise NilEventError("fill event")
    if funds is None:
        raise NilArgumentsError("funding")
    side = requested_side or f.direction
    if side is Side.CLOSE_POSITION:
        side = Side.SELL

    if f.asset is AssetType.SPOT:
        pr = funds.pair_releaser()
        try:
            pr.release(allocated_funds, allocated_funds, side)
        except Exception as exc:
            f.append_reason(str(exc))
        if f.direction in BUY_SIDES:
            f.set_direction(Side.COULD_NOT_BUY)
        elif f.direction in SELL_SIDES or f.direction is Side.CLOSE_POSITION:
            f.set_direction(Side.COULD_NOT_SELL)
    elif f.asset is AssetType.FUTURES:
        cr = funds.collateral_releaser()
        try:
            cr.release_contracts(order_amount)
        except Exception as exc:
            f.append_reason(str(exc))
        if f.direction is Side.SHORT:
            f.set_direction(Side.COULD_NOT_SHORT)
        elif f.direction is Side.LONG:
            f.set_direction(Side.COULD_NOT_LONG)
        elif f.direction is Side.CLOSE_POSITION:
            f.set_direction(Side.DO_NOTHING)
        elif f.direction not in (Side.COULD_NOT_SHORT, Side.COULD_NOT_LONG):
            raise InvalidDataTypeError(f"invalid direction {f.direction} for {f.asset} funds")
    else:
        raise InvalidDataTypeError(f"invalid asset type {f.asset}")


def allocate_funds_post_order(
    f: Fill,
    funds: FundReleaser,
    order_error: Optional[BaseException],
    order_amount: Decimal,
    allocated_funds: Decimal,
    amount: Decimal,
    price: Decimal,
    fee: Decimal,
    requested_side: Optional[Side] = None,
) -> None:
    """Settle the funds ledger after an order attempt.

    When ``order_error`` is set the allocation is released through
    :func:`release_failed_order` and ``order_error`` is re-raised unchanged.
    On success a spot buy spends ``amount * price + fee`` of quote and gains
    ``amount`` base; a spot sell spends ``amount`` base and gains
    ``amount * price - fee`` quote.  Futures collateral is consumed by the
    order itself.
    """
    if f is None:
        raise NilEventError("fill event")
    if funds is None:
        raise NilArgumentsError("funding")
    if order_error is not None:
        release_failed_order(f, funds, order_amount, allocated_funds, requested_side)
        raise order_error

    if f.asset is AssetType.SPOT:
        pr = funds.pair_releaser()
        if f.direction in BUY_SIDES:
            pr.release(allocated_funds, allocated_funds - (amount * price + fee), f.direction)
            pr.increase_available(amount, f.direction)
        elif f.direction in SELL_SIDES:
            pr.release(allocated_funds, allocated_funds - amount, f.direction)
            pr.increase_available(amount * price - fee, f.direction)
        else:
            raise InvalidDataTypeError(f"invalid direction {f.direction} for {f.asset} funds")
        f.append_reason(_summarise(f, EMPTY_PAIR))
    elif f.asset is AssetType.FUTURES:
        funds.collateral_releaser()
        f.append_reason(_summarise(f, f.underlying_pair))
    else:
        raise InvalidDataTypeError(f"invalid asset type {f.asset}")


def _summarise(f: Fill, underlying: Pair) -> str:
    pair = f.order.pair if f.order is not None else f.pair
    return summarise_position(f.direction, f.amount, f.amount * f.purchase_price, f.exchange_fee, pair, underlying)


def _fmt(value: Decimal) -> str:
    return f"{value.quantize(EIGHT_DP).normalize():f}"


def summarise_position(
    direction: Side, amount: Decimal, total: Decimal, fee: Decimal, pair: Pair, underlying: Pair
) -> str:
    """Describe a placed order for the fill's audit trail."""
    base = pair.base
    quote = pair.quote
    if not underlying.is_empty():
        base = str(pair)
        quote = underlying.quote
    return (
        f"Placed {direction} order of {_fmt(amount)} {base} for {_fmt(total)} {quote}, "
        f"with {_fmt(fee)} {quote} in fees, totalling {_fmt(total + fee)} {quote}"
    )


def verify_order_within_limits(f: Fill, amount: Decimal, cs: Settings) -> None:
    """Check ``amount`` against the side's minimum and maximum sizes.

    A violation downgrades the fill's direction, records why, and raises
    :class:`ExceededPortfolioLimitError`.  Close-position orders are exempt.
    """
    if f is None:
        raise NilEventError("fill event")
    if cs is None:
        raise NilCurrencySettingsError("currency settings")
    if f.direction is Side.CLOSE_POSITION:
        return
    if f.direction in BUY_SIDES or f.direction is Side.LONG:
        bounds = cs.buy_side
    elif f.direction in SELL_SIDES or f.direction is Side.SHORT:
        bounds = cs.sell_side
    else:
        direction = f.direction
        f.set_direction(Side.DO_NOTHING)
        raise InvalidDirectionError(f"invalid direction: {direction}")

    message = None
    if amount < bounds.minimum_size and bounds.minimum_size > 0:
        message = f"Order size {amount} below minimum size {bounds.minimum_size}"
    if amount > bounds.maximum_size and bounds.maximum_size > 0:
        message = f"Order size {amount} exceeded maximum size {bounds.maximum_size}"
    if message is not None:
        f.set_direction(declined_side(f.direction))
        f.append_reason(message)
        raise ExceededPortfolioLimitError("exceeded portfolio limit", fill=f)


__all__ = [
    "CandleSource",
    "MinMax",
    "Settings",
    "Exchange",
    "allocate_funds_post_order",
    "release_failed_order",
    "summarise_position",
    "verify_order_within_limits",
]
