"""Funds ledger contract consumed by the exchange simulator.

The simulator never owns funding state; it only talks to the protocols
below.  :class:`SpotPairFunds` and :class:`FuturesCollateralFunds` are small
in-memory ledgers that honour the contract for offline runs and tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, runtime_checkable

from .common import BUY_SIDES, SELL_SIDES, BacktesterError, InvalidDataTypeError, Side

ZERO = Decimal(0)


class FundingError(BacktesterError):
    """A funds ledger operation could not be applied."""


@runtime_checkable
class PairReleaser(Protocol):
    def release(self, amount: Decimal, diff: Decimal, side: Side) -> None: ...

    def increase_available(self, amount: Decimal, side: Side) -> None: ...

    def liquidate(self) -> None: ...


@runtime_checkable
class CollateralReleaser(Protocol):
    def release_contracts(self, amount: Decimal) -> None: ...

    def liquidate(self) -> None: ...


@runtime_checkable
class FundReleaser(Protocol):
    def pair_releaser(self) -> PairReleaser: ...

    def collateral_releaser(self) -> CollateralReleaser: ...


@dataclass
class FundItem:
    """Available and reserved balance of one currency."""

    currency: str
    available: Decimal = ZERO
    reserved: Decimal = ZERO

    def reserve(self, amount: Decimal) -> None:
        if amount <= 0:
            raise FundingError(f"cannot reserve {amount} {self.currency}, amount must be positive")
        if amount > self.available:
            raise FundingError(f"cannot reserve {amount} {self.currency}, only {self.available} available")
        self.available -= amount
        self.reserved += amount

    def release(self, amount: Decimal, diff: Decimal) -> None:
        """Drop ``amount`` from reserved funds and return ``diff`` to available."""
        if amount <= 0:
            raise FundingError(f"cannot release {amount} {self.currency}, amount must be positive")
        if diff < 0:
            raise FundingError(f"cannot release negative difference {diff} {self.currency}")
        if amount > self.reserved:
            raise FundingError(f"cannot release {amount} {self.currency}, only {self.reserved} reserved")
        self.reserved -= amount
        self.available += diff

    def increase_available(self, amount: Decimal) -> None:
        if amount <= 0:
            raise FundingError(f"cannot increase {self.currency} by {amount}, amount must be positive")
        self.available += amount

    def liquidate(self) -> None:
        self.available = ZERO
        self.reserved = ZERO


class SpotPairFunds:
    """Base and quote balances for a spot pair."""

    def __init__(self, base: FundItem, quote: FundItem) -> None:
        self.base = base
        self.quote = quote

    def reserve(self, amount: Decimal, side: Side) -> None:
        """Reserve quote funds for a buy or base funds for a sell."""
        self._spending_item(side).reserve(amount)

    def _spending_item(self, side: Side) -> FundItem:
        if side in BUY_SIDES:
            return self.quote
        if side in SELL_SIDES:
            return self.base
        raise InvalidDataTypeError(f"cannot use side {side} for spot funds")

    def release(self, amount: Decimal, diff: Decimal, side: Side) -> None:
        self._spending_item(side).release(amount, diff)

    def increase_available(self, amount: Decimal, side: Side) -> None:
        if side in BUY_SIDES:
            self.base.increase_available(amount)
        elif side in SELL_SIDES:
            self.quote.increase_available(amount)
        else:
            raise InvalidDataTypeError(f"cannot use side {side} for spot funds")

    def liquidate(self) -> None:
        self.base.liquidate()
        self.quote.liquidate()

    def pair_releaser(self) -> "SpotPairFunds":
        return self

    def collateral_releaser(self) -> CollateralReleaser:
        raise InvalidDataTypeError("spot funds have no collateral releaser")


class FuturesCollateralFunds:
    """Contract holdings backed by a collateral currency."""

    def __init__(self, contract: FundItem, collateral: FundItem) -> None:
        self.contract = contract
        self.collateral = collateral

    def reserve_contracts(self, amount: Decimal) -> None:
        self.contract.reserve(amount)

    def release_contracts(self, amount: Decimal) -> None:
        self.contract.release(amount, amount)

    def liquidate(self) -> None:
        self.contract.liquidate()
        self.collateral.liquidate()

    def pair_releaser(self) -> PairReleaser:
        raise InvalidDataTypeError("futures funds have no pair releaser")

    def collateral_releaser(self) -> "FuturesCollateralFunds":
        return self


__all__ = [
    "FundingError",
    "PairReleaser",
    "CollateralReleaser",
    "FundReleaser",
    "FundItem",
    "SpotPairFunds",
    "FuturesCollateralFunds",
]
