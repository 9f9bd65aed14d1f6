from datetime import datetime, timezone
from decimal import Decimal

import numpy as np
import pytest

from hyperbacktest.common import AssetType, Side
from hyperbacktest.currency import Pair
from hyperbacktest.events import OrderEvent
from hyperbacktest.execution import Exchange, MinMax, OrderManager, Settings
from hyperbacktest.funding import FundItem, FuturesCollateralFunds, SpotPairFunds

BTC_USDT = Pair("BTC", "USDT")
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class Candles:
    """Minimal market data source holding a single candle."""

    def __init__(self, high="110", low="90", volume="1000000"):
        self.high = [Decimal(high)]
        self.low = [Decimal(low)]
        self.vol = [Decimal(volume)]

    def stream_high(self):
        return self.high

    def stream_low(self):
        return self.low

    def stream_vol(self):
        return self.vol


def make_order(direction=Side.BUY, amount="20", price="100", allocated="1000", asset=AssetType.SPOT, **kwargs):
    return OrderEvent(
        offset=1,
        exchange="binance",
        time=T0,
        interval="1h",
        asset=asset,
        pair=BTC_USDT,
        direction=direction,
        amount=Decimal(amount),
        close_price=Decimal(price),
        allocated_funds=Decimal(allocated),
        **kwargs,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        exchange="binance",
        asset=AssetType.SPOT,
        pair=BTC_USDT,
        buy_side=MinMax(minimum_size=Decimal("0.01")),
        sell_side=MinMax(minimum_size=Decimal("0.01")),
    )


@pytest.fixture
def exchange(settings) -> Exchange:
    ex = Exchange(rng=np.random.default_rng(7))
    ex.set_exchange_asset_currency_settings(settings.asset, settings.pair, settings)
    return ex


@pytest.fixture
def order_manager() -> OrderManager:
    return OrderManager()


@pytest.fixture
def candles() -> Candles:
    return Candles()


@pytest.fixture
def spot_funds() -> SpotPairFunds:
    return SpotPairFunds(
        base=FundItem("BTC", available=Decimal("10")),
        quote=FundItem("USDT", available=Decimal("1000")),
    )


@pytest.fixture
def futures_funds() -> FuturesCollateralFunds:
    return FuturesCollateralFunds(
        contract=FundItem("BTC-PERP", available=Decimal("5")),
        collateral=FundItem("USDT", available=Decimal("500")),
    )


class DummyCcxtExchange:
    """Stand-in for a synchronous ccxt exchange."""

    id = "binance"

    def __init__(self, market=None):
        self.orders = []
        self.prices = []
        self._market = market or {"limits": {"amount": {"min": 0.001, "step": 0.001}}}

    def load_markets(self):
        return {"BTC/USDT": self._market}

    def market(self, symbol):
        return self._market

    def create_order(self, symbol, type, side, amount, price=None):
        self.orders.append((symbol, type, side, amount))
        self.prices.append(price)
        return {
            "id": f"x{len(self.orders)}",
            "timestamp": 1704067200000,
            "average": 101.5,
            "filled": amount,
            "cost": 101.5 * amount,
            "fee": {"cost": 0.1},
            "status": "closed",
        }

    def fetch_order_book(self, symbol, limit=None):
        return {
            "bids": [[99, 1], [100, 2]],
            "asks": [[102, 1], [101, 2]],
            "timestamp": 1704067200000,
        }
