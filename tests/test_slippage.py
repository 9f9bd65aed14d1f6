from decimal import Decimal

import numpy as np
import pytest

from hyperbacktest.common import AssetType, InvalidSideError, Side
from hyperbacktest.currency import Pair
from hyperbacktest.execution.orderbook import OrderBook
from hyperbacktest.execution.slippage import (
    CANDLE_VOLUME_CAP,
    apply_slippage_to_price,
    calculate_exchange_fee,
    calculate_slippage_by_orderbook,
    ensure_order_fits_within_hlv,
    estimate_slippage_percentage,
    reduce_amount_to_fit_portfolio_limit,
)

D = Decimal


def test_price_clamped_to_candle_range():
    price, amount = ensure_order_fits_within_hlv(D(120), D(1), D(110), D(90), D(1000))
    assert price == D(110)
    assert amount == D(1)
    price, _ = ensure_order_fits_within_hlv(D(80), D(1), D(110), D(90), D(1000))
    assert price == D(90)


def test_amount_shrunk_to_candle_volume():
    price, amount = ensure_order_fits_within_hlv(D(100), D(20), D(110), D(90), D(500))
    assert price == D(100)
    assert amount * price == D(500) * CANDLE_VOLUME_CAP


def test_zero_volume_leaves_amount():
    _, amount = ensure_order_fits_within_hlv(D(100), D(20), D(110), D(90), D(0))
    assert amount == D(20)


def test_apply_slippage_by_side():
    assert apply_slippage_to_price(Side.BUY, D(100), D("0.98")) == D(102)
    assert apply_slippage_to_price(Side.LONG, D(100), D("0.98")) == D(102)
    assert apply_slippage_to_price(Side.SELL, D(100), D("0.98")) == D(98)
    assert apply_slippage_to_price(Side.SHORT, D(100), D(1)) == D(100)


def test_apply_slippage_zero_result_keeps_price():
    assert apply_slippage_to_price(Side.SELL, D(100), D(0)) == D(100)
    assert apply_slippage_to_price(Side.BUY, D(100), D(0)) == D(200)


def test_apply_slippage_invalid_side():
    with pytest.raises(InvalidSideError):
        apply_slippage_to_price(Side.DO_NOTHING, D(100), D(1))


def test_exchange_fee():
    assert calculate_exchange_fee(D(98), D(5), D("0.001")) == D("0.49")


def test_reduce_amount_to_portfolio_limit():
    assert reduce_amount_to_fit_portfolio_limit(D(100), D(20), D(1000), Side.BUY) == D(10)
    assert reduce_amount_to_fit_portfolio_limit(D(100), D(5), D(1000), Side.BID) == D(5)
    assert reduce_amount_to_fit_portfolio_limit(D(100), D(5), D(2), Side.SELL) == D(2)
    assert reduce_amount_to_fit_portfolio_limit(D(100), D(5), D(2), Side.LONG) == D(5)


def test_reduce_amount_leaves_room_for_fee():
    fee_rate = D("0.001")
    amount = reduce_amount_to_fit_portfolio_limit(D(100), D(20), D(1000), Side.BUY, fee_rate)
    assert amount == D("9.99000999")
    assert amount * D(100) + calculate_exchange_fee(D(100), amount, fee_rate) <= D(1000)
    # an order that already fits with its fee is untouched
    assert reduce_amount_to_fit_portfolio_limit(D(100), D(9), D(1000), Side.BUY, fee_rate) == D(9)
    # sells are sized in base units, the fee comes out of the proceeds
    assert reduce_amount_to_fit_portfolio_limit(D(100), D(5), D(5), Side.SELL, fee_rate) == D(5)


def test_estimate_slippage_bounds():
    assert estimate_slippage_percentage(D("0.98"), D("0.98")) == D("0.98")
    assert estimate_slippage_percentage(D(0), D(1)) == D(1)
    assert estimate_slippage_percentage(D("0.99"), D("0.95")) == D(1)
    assert estimate_slippage_percentage(D("0.9"), D(2)) == D(1)


def test_estimate_slippage_draw_within_range():
    rng = np.random.default_rng(42)
    for _ in range(20):
        rate = estimate_slippage_percentage(D("0.95"), D("0.99"), rng)
        assert D("0.95") <= rate <= D("0.99")


def _book() -> OrderBook:
    return OrderBook(
        exchange="binance",
        pair=Pair("BTC", "USDT"),
        asset=AssetType.SPOT,
        bids=[(99, 1), (100, 2)],
        asks=[(102, 1), (101, 2)],
    )


def test_orderbook_buy_walks_asks():
    price, amount = calculate_slippage_by_orderbook(_book(), Side.BUY, D(304), D(0))
    # 2 @ 101 then 1 @ 102
    assert amount == D(3)
    assert price == D(304) / D(3)


def test_orderbook_sell_walks_bids_net_of_fee():
    price, amount = calculate_slippage_by_orderbook(_book(), Side.SELL, D(1), D("0.01"))
    assert price == D(100)
    assert amount == D("0.99")


def test_orderbook_empty_side():
    book = OrderBook(exchange="binance", pair=Pair("BTC", "USDT"), asset=AssetType.SPOT)
    assert calculate_slippage_by_orderbook(book, Side.BUY, D(100), D(0)) == (D(0), D(0))
