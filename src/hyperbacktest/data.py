"""Candle data handler feeding market events into a backtest.

CSV schema expected: timestamp, open, high, low, close, volume (UTC ms or ISO ts).
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Iterator, List, Optional

import pandas as pd

from .common import AssetType
from .currency import EMPTY_PAIR, Pair
from .events import DataEvent

COLUMNS = ["open", "high", "low", "close", "volume"]


def load_klines_csv(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    if "timestamp" in df.columns:
        col = "timestamp"
    elif "ts" in df.columns:
        col = "ts"
    else:
        raise ValueError("CSV must have timestamp/ts column")
    if pd.api.types.is_numeric_dtype(df[col]):
        df[col] = pd.to_datetime(df[col], unit="ms", utc=True)
    else:
        df[col] = pd.to_datetime(df[col], utc=True)
    df = df.set_index(col).sort_index()
    return df[COLUMNS].astype(float)


def _dec(value: float) -> Decimal:
    return Decimal(str(value))


class KlineHandler:
    """Replay an OHLCV frame for one instrument as :class:`DataEvent` objects.

    Offsets start at 1 and increase by one per candle.  Rows with missing
    values are forward filled and flagged with ``missing_data``.  The
    ``stream_*`` accessors only cover candles that have already been
    replayed, most recent last.
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        exchange: str,
        asset: AssetType,
        pair: Pair,
        interval: str = "1h",
        underlying_pair: Pair = EMPTY_PAIR,
    ) -> None:
        missing = frame[COLUMNS].isna().any(axis=1)
        filled = frame[COLUMNS].ffill()
        self._events: List[DataEvent] = []
        for i, (ts, row) in enumerate(filled.iterrows(), start=1):
            self._events.append(
                DataEvent(
                    offset=i,
                    exchange=exchange,
                    time=pd.Timestamp(ts).to_pydatetime(),
                    interval=interval,
                    asset=asset,
                    pair=pair,
                    underlying_pair=underlying_pair,
                    open=_dec(row["open"]),
                    high=_dec(row["high"]),
                    low=_dec(row["low"]),
                    close=_dec(row["close"]),
                    volume=_dec(row["volume"]),
                    missing_data=bool(missing.iloc[i - 1]),
                )
            )
        self._position = 0

    def __len__(self) -> int:
        return len(self._events)

    def next(self) -> Optional[DataEvent]:
        """Advance one candle, returning ``None`` once the frame is exhausted."""
        if self._position >= len(self._events):
            return None
        ev = self._events[self._position]
        self._position += 1
        return ev

    def __iter__(self) -> Iterator[DataEvent]:
        while True:
            ev = self.next()
            if ev is None:
                return
            yield ev

    def latest(self) -> Optional[DataEvent]:
        if self._position == 0:
            return None
        return self._events[self._position - 1]

    def history(self) -> List[DataEvent]:
        return self._events[: self._position]

    def reset(self) -> None:
        self._position = 0

    def stream_open(self) -> List[Decimal]:
        return [e.open for e in self.history()]

    def stream_high(self) -> List[Decimal]:
        return [e.high for e in self.history()]

    def stream_low(self) -> List[Decimal]:
        return [e.low for e in self.history()]

    def stream_close(self) -> List[Decimal]:
        return [e.close for e in self.history()]

    def stream_vol(self) -> List[Decimal]:
        return [e.volume for e in self.history()]


__all__ = ["load_klines_csv", "KlineHandler"]
