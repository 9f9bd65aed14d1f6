from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from hyperbacktest.common import AssetType
from hyperbacktest.config import build_exchange, load_config
from hyperbacktest.currency import Pair

CONFIG = {
    "strategy": "dca",
    "risk_free_rate": 0.03,
    "currencies": [
        {
            "exchange": "binance",
            "asset": "spot",
            "base": "BTC",
            "quote": "USDT",
            "taker_fee": 0.001,
            "min_slippage_rate": 0.98,
            "max_slippage_rate": 1.0,
            "buy_side": {"minimum_size": 0.01},
            "limits": {"amount_step": 0.001},
        }
    ],
}


def test_load_config(tmp_path: Path):
    path = tmp_path / "backtest.yaml"
    path.write_text(yaml.safe_dump(CONFIG))

    loaded = load_config(path)
    assert loaded["strategy"] == "dca"
    assert loaded["currencies"][0]["asset"] is AssetType.SPOT
    assert loaded["currencies"][0]["sell_side"]["minimum_size"] == 0.0


def test_config_path_from_env(monkeypatch, tmp_path: Path):
    path = tmp_path / "other.yaml"
    path.write_text(yaml.safe_dump({"strategy": "hold"}))
    monkeypatch.setenv("BACKTEST_CONFIG", str(path))
    assert load_config()["strategy"] == "hold"


def test_invalid_config(tmp_path: Path):
    bad = {"currencies": [{"exchange": "binance", "base": "BTC", "quote": "USDT", "taker_fee": -1}]}
    path = tmp_path / "backtest.yaml"
    path.write_text(yaml.safe_dump(bad))
    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_missing_config(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_build_exchange(tmp_path: Path):
    path = tmp_path / "backtest.yaml"
    path.write_text(yaml.safe_dump(CONFIG))

    exchange = build_exchange(load_config(path))
    cs = exchange.get_currency_settings("BINANCE", AssetType.SPOT, Pair("BTC", "USDT"))
    assert cs.taker_fee == Decimal("0.001")
    assert cs.minimum_slippage_rate == Decimal("0.98")
    assert cs.buy_side.minimum_size == Decimal("0.01")
    assert cs.limits.amount_step == Decimal("0.001")
