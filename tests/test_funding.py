from decimal import Decimal

import pytest

from hyperbacktest.common import AssetType, InvalidDataTypeError, Side
from hyperbacktest.events import Fill
from hyperbacktest.execution.exchange import allocate_funds_post_order, release_failed_order
from hyperbacktest.funding import (
    CollateralReleaser,
    FundingError,
    FundItem,
    FundReleaser,
    PairReleaser,
)

D = Decimal


def test_fund_item_reserve_and_release():
    item = FundItem("USDT", available=D(100))
    item.reserve(D(40))
    assert (item.available, item.reserved) == (D(60), D(40))
    item.release(D(40), D(15))
    assert (item.available, item.reserved) == (D(75), D(0))


def test_fund_item_rejects_bad_amounts():
    item = FundItem("USDT", available=D(10))
    with pytest.raises(FundingError):
        item.reserve(D(11))
    with pytest.raises(FundingError):
        item.reserve(D(0))
    item.reserve(D(5))
    with pytest.raises(FundingError):
        item.release(D(6), D(6))
    with pytest.raises(FundingError):
        item.release(D(5), D(-1))
    with pytest.raises(FundingError):
        item.increase_available(D(0))


def test_ledgers_satisfy_protocols(spot_funds, futures_funds):
    assert isinstance(spot_funds, FundReleaser)
    assert isinstance(spot_funds.pair_releaser(), PairReleaser)
    assert isinstance(futures_funds.collateral_releaser(), CollateralReleaser)
    with pytest.raises(InvalidDataTypeError):
        spot_funds.collateral_releaser()
    with pytest.raises(InvalidDataTypeError):
        futures_funds.pair_releaser()


def test_spot_funds_reject_futures_sides(spot_funds):
    with pytest.raises(InvalidDataTypeError):
        spot_funds.reserve(D(1), Side.LONG)


def test_buy_settlement_conserves_funds(spot_funds):
    spot_funds.reserve(D(500), Side.BUY)
    f = Fill(asset=AssetType.SPOT, direction=Side.BUY, amount=D(4), purchase_price=D(100), exchange_fee=D(2))
    allocate_funds_post_order(f, spot_funds, None, D(4), D(500), D(4), D(100), D(2))

    # 402 spent, 98 returned
    assert spot_funds.quote.available == D(598)
    assert spot_funds.quote.reserved == D(0)
    assert spot_funds.base.available == D(14)


def test_failed_settlement_reraises_and_releases(spot_funds):
    spot_funds.reserve(D(500), Side.BUY)
    f = Fill(asset=AssetType.SPOT, direction=Side.BUY)
    with pytest.raises(RuntimeError, match="venue down"):
        allocate_funds_post_order(f, spot_funds, RuntimeError("venue down"), D(4), D(500), D(4), D(100), D(2))

    assert f.direction is Side.COULD_NOT_BUY
    assert spot_funds.quote.available == D(1000)


def test_release_errors_recorded_on_fill(spot_funds):
    f = Fill(asset=AssetType.SPOT, direction=Side.SELL)
    # nothing reserved, the ledger refuses the release
    release_failed_order(f, spot_funds, D(1), D(1))

    assert f.direction is Side.COULD_NOT_SELL
    assert any("only 0 reserved" in r for r in f.reasons)


def test_release_futures_short(futures_funds):
    futures_funds.reserve_contracts(D(3))
    f = Fill(asset=AssetType.FUTURES, direction=Side.SHORT)
    release_failed_order(f, futures_funds, D(3), D(300))

    assert f.direction is Side.COULD_NOT_SHORT
    assert futures_funds.contract.available == D(5)


def test_release_futures_unexpected_direction(futures_funds):
    f = Fill(asset=AssetType.FUTURES, direction=Side.BUY)
    futures_funds.reserve_contracts(D(1))
    with pytest.raises(InvalidDataTypeError):
        release_failed_order(f, futures_funds, D(1), D(1))


def test_release_unknown_asset(spot_funds):
    f = Fill(asset=AssetType.EMPTY, direction=Side.BUY)
    with pytest.raises(InvalidDataTypeError):
        release_failed_order(f, spot_funds, D(1), D(1))


def test_release_close_position(spot_funds, futures_funds):
    spot_funds.reserve(D(2), Side.SELL)
    f = Fill(asset=AssetType.SPOT, direction=Side.CLOSE_POSITION)
    release_failed_order(f, spot_funds, D(2), D(2))
    assert f.direction is Side.COULD_NOT_SELL
    assert spot_funds.base.available == D(10)

    futures_funds.reserve_contracts(D(1))
    f = Fill(asset=AssetType.FUTURES, direction=Side.CLOSE_POSITION)
    release_failed_order(f, futures_funds, D(1), D(100))
    assert f.direction is Side.DO_NOTHING
    assert futures_funds.contract.available == D(5)
