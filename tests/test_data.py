from decimal import Decimal
from pathlib import Path

import numpy as np
import pandas as pd

from conftest import BTC_USDT
from hyperbacktest.common import AssetType
from hyperbacktest.data import KlineHandler, load_klines_csv


def _frame() -> pd.DataFrame:
    index = pd.date_range("2024-01-01", periods=3, freq="h", tz="UTC")
    return pd.DataFrame(
        {
            "open": [100.0, np.nan, 104.0],
            "high": [110.0, np.nan, 112.0],
            "low": [95.0, np.nan, 101.0],
            "close": [105.0, np.nan, 108.0],
            "volume": [10.0, np.nan, 12.0],
        },
        index=index,
    )


def test_load_klines_csv(tmp_path: Path):
    path = tmp_path / "klines.csv"
    path.write_text("timestamp,open,high,low,close,volume\n3600000,2,3,1,2,5\n0,1,2,0,1,10\n")
    df = load_klines_csv(path)
    assert list(df.columns) == ["open", "high", "low", "close", "volume"]
    assert len(df) == 2
    assert df.index.is_monotonic_increasing
    assert df["close"].iloc[0] == 1.0


def test_handler_replays_with_offsets():
    handler = KlineHandler(_frame(), "binance", AssetType.SPOT, BTC_USDT)
    assert len(handler) == 3
    assert handler.latest() is None

    events = list(handler)
    assert [e.offset for e in events] == [1, 2, 3]
    assert events[0].close_price == Decimal("105.0")
    assert events[1].missing_data
    assert events[1].close == events[0].close
    assert not events[2].missing_data
    assert handler.next() is None


def test_streams_cover_replayed_candles():
    handler = KlineHandler(_frame(), "binance", AssetType.SPOT, BTC_USDT)
    handler.next()
    assert handler.stream_high() == [Decimal("110.0")]
    handler.next()
    assert handler.stream_vol()[-1] == Decimal("10.0")
    handler.reset()
    assert handler.history() == []
