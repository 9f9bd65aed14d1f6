import io
import json
from dataclasses import dataclass
from decimal import Decimal

from hyperbacktest.common import Side
from hyperbacktest.currency import Pair
from hyperbacktest.utils.logging import get_logger, log_json


def test_log_json(capsys):
    logger = get_logger("test")
    log_json(logger, "event_name", foo="bar")
    out = capsys.readouterr().err.strip()
    data = json.loads(out)
    assert data["event"] == "event_name"
    assert data["foo"] == "bar"


@dataclass
class Point:
    price: Decimal
    side: Side
    _hidden: int = 0


def test_log_json_encodes_domain_types():
    a, b = io.StringIO(), io.StringIO()
    logger = get_logger("multiwriter_test", writers=[a, b])
    log_json(logger, "fill", pair=Pair("btc", "usdt"), point=Point(Decimal("1.50"), Side.BUY))
    data = json.loads(a.getvalue())
    assert a.getvalue() == b.getvalue()
    assert data["pair"] == "BTC/USDT"
    assert data["point"] == {"price": "1.50", "side": "BUY"}
