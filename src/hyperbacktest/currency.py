from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Pair:
    """A base/quote currency pair such as ``BTC/USDT``.

    Pairs compare case-insensitively because the currency codes are
    normalised to upper case on construction.
    """

    base: str = ""
    quote: str = ""
    delimiter: str = "/"

    def __post_init__(self) -> None:
        object.__setattr__(self, "base", self.base.upper())
        object.__setattr__(self, "quote", self.quote.upper())

    @classmethod
    def parse(cls, symbol: str) -> "Pair":
        """Parse ``BTC/USDT``, ``BTC-USDT`` or ``BTC_USDT`` style symbols."""
        for delim in ("/", "-", "_"):
            if delim in symbol:
                base, quote = symbol.split(delim, 1)
                return cls(base, quote, delim)
        raise ValueError(f"cannot parse currency pair {symbol!r}")

    def is_empty(self) -> bool:
        return not self.base and not self.quote

    def __str__(self) -> str:
        if self.is_empty():
            return ""
        return f"{self.base}{self.delimiter}{self.quote}"

    def to_json(self) -> str:
        return str(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Pair):
            return NotImplemented
        return self.base == other.base and self.quote == other.quote

    def __hash__(self) -> int:
        return hash((self.base, self.quote))


EMPTY_PAIR = Pair()

__all__ = ["Pair", "EMPTY_PAIR"]
