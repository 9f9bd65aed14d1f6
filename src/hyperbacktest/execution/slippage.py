"""Pure pricing helpers used by the exchange simulator.

Nothing here touches funds or order state.  Each function takes the market
conditions it needs and returns adjusted values.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from typing import Tuple

import numpy as np

from ..common import BUY_SIDES, SELL_SIDES, InvalidSideError, Side
from .orderbook import OrderBook

ZERO = Decimal(0)
ONE = Decimal(1)

# Largest share of a candle's volume an order may take.  Never the whole
# candle, so the remaining OHLC values stay plausible.
CANDLE_VOLUME_CAP = Decimal("0.99999999")

# Capped buy amounts are truncated to this step so cost plus fee never
# exceeds the allocation.
AMOUNT_PRECISION = Decimal("0.00000001")


def ensure_order_fits_within_hlv(
    price: Decimal, amount: Decimal, high: Decimal, low: Decimal, volume: Decimal
) -> Tuple[Decimal, Decimal]:
    """Clamp ``price`` into ``[low, high]`` and shrink ``amount`` to fit ``volume``.

    ``volume`` is compared against the order's notional (``amount * price``).
    A non-positive ``volume`` leaves the amount untouched.
    """
    adjusted_price = price
    if adjusted_price < low:
        adjusted_price = low
    if adjusted_price > high:
        adjusted_price = high
    order_volume = amount * adjusted_price
    if volume <= 0 or order_volume <= volume:
        return adjusted_price, amount
    order_volume = volume * CANDLE_VOLUME_CAP
    return adjusted_price, order_volume / adjusted_price


def apply_slippage_to_price(side: Side, price: Decimal, slippage_rate: Decimal) -> Decimal:
    """Move ``price`` against the order by ``slippage_rate``.

    Buys pay ``price * (1 - rate)`` more, sells receive ``price * rate``.
    A zero result falls back to the original price.
    """
    if side in (Side.BUY, Side.BID, Side.LONG):
        adjusted = price + price * (ONE - slippage_rate)
    elif side in (Side.SELL, Side.ASK, Side.SHORT):
        adjusted = price * slippage_rate
    else:
        raise InvalidSideError(f"{side} side is invalid")
    if adjusted.is_zero():
        return price
    return adjusted


def calculate_exchange_fee(price: Decimal, amount: Decimal, fee_rate: Decimal) -> Decimal:
    return fee_rate * price * amount


def reduce_amount_to_fit_portfolio_limit(
    price: Decimal, amount: Decimal, allocated_funds: Decimal, side: Side, fee_rate: Decimal = ZERO
) -> Decimal:
    """Cap ``amount`` so the order stays within the funds the portfolio allocated.

    Buy allocations are quote currency and must also cover the fee, so a
    capped buy is rounded down to :data:`AMOUNT_PRECISION`.  Sell
    allocations are base units.
    """
    if side in BUY_SIDES:
        gross = price * (ONE + fee_rate)
        if gross * amount > allocated_funds:
            capped = (allocated_funds / gross).quantize(AMOUNT_PRECISION, rounding=ROUND_DOWN)
            return max(capped, ZERO)
    elif side in SELL_SIDES:
        if amount > allocated_funds:
            return allocated_funds
    return amount


def estimate_slippage_percentage(
    minimum_rate: Decimal, maximum_rate: Decimal, rng: np.random.Generator | None = None
) -> Decimal:
    """Draw a slippage multiplier uniformly from ``[minimum_rate, maximum_rate]``.

    A multiplier of 1 means no slippage.  Bounds outside ``(0, 1]`` or an
    inverted range disable slippage.
    """
    if not (ZERO < minimum_rate <= ONE) or not (ZERO < maximum_rate <= ONE):
        return ONE
    if minimum_rate > maximum_rate:
        return ONE
    if minimum_rate == maximum_rate:
        return minimum_rate
    rng = rng or np.random.default_rng()
    drawn = rng.uniform(float(minimum_rate), float(maximum_rate))
    return Decimal(str(round(drawn, 8)))


def calculate_slippage_by_orderbook(
    book: OrderBook, side: Side, allocated_funds: Decimal, fee_rate: Decimal
) -> Tuple[Decimal, Decimal]:
    """Estimate the average fill price and amount by walking the book.

    Buys spend ``allocated_funds`` of quote currency against the asks; sells
    offer ``allocated_funds`` base units into the bids.  The returned amount
    is net of ``fee_rate``.
    """
    buying = side in (Side.BUY, Side.BID, Side.LONG)
    levels = book.asks if buying else book.bids
    if not levels:
        return ZERO, ZERO

    remaining = allocated_funds
    filled = ZERO
    cost = ZERO
    for price, size in levels:
        if remaining <= 0:
            break
        if buying:
            take = min(size, remaining / price)
            remaining -= take * price
        else:
            take = min(size, remaining)
            remaining -= take
        filled += take
        cost += take * price

    if filled.is_zero():
        return levels[0][0], ZERO
    return cost / filled, filled * (ONE - fee_rate)


__all__ = [
    "CANDLE_VOLUME_CAP",
    "AMOUNT_PRECISION",
    "ensure_order_fits_within_hlv",
    "apply_slippage_to_price",
    "calculate_exchange_fee",
    "reduce_amount_to_fit_portfolio_limit",
    "estimate_slippage_percentage",
    "calculate_slippage_by_orderbook",
]
