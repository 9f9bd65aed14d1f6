from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Any, Dict, Optional


def _is_multiple(value: float, step: float) -> bool:
    if step is None or step == 0:
        return True
    ratio = value / step
    return math.isclose(ratio, round(ratio), rel_tol=0, abs_tol=1e-8)


@dataclass(frozen=True)
class Limits:
    """Venue order limits for one instrument.

    Built from CCXT market metadata with :meth:`from_market`; ``None`` means
    the venue does not constrain that value.
    """

    amount_step: Optional[Decimal] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    price_step: Optional[Decimal] = None
    min_cost: Optional[Decimal] = None

    @classmethod
    def from_market(cls, market: Dict[str, Any]) -> "Limits":
        limits = market.get("limits", {})
        amount = limits.get("amount", {}) or {}
        price = limits.get("price", {}) or {}
        cost = limits.get("cost", {}) or {}

        def _dec(v: Any) -> Optional[Decimal]:
            return None if v is None else Decimal(str(v))

        return cls(
            amount_step=_dec(amount.get("step")),
            min_amount=_dec(amount.get("min")),
            max_amount=_dec(amount.get("max")),
            price_step=_dec(price.get("step")),
            min_cost=_dec(cost.get("min")),
        )

    def conform_to_amount(self, amount: Decimal) -> Decimal:
        """Round ``amount`` down to the amount step and cap it at the maximum."""
        if self.max_amount is not None and self.max_amount > 0 and amount > self.max_amount:
            amount = self.max_amount
        if self.amount_step is None or self.amount_step <= 0:
            return amount
        steps = (amount / self.amount_step).to_integral_value(rounding=ROUND_DOWN)
        return steps * self.amount_step

    def as_market(self) -> Dict[str, Any]:
        """Render the limits in the CCXT market layout understood by :func:`validate_order`."""

        def _f(v: Optional[Decimal]) -> Optional[float]:
            return None if v is None else float(v)

        return {
            "limits": {
                "amount": {"min": _f(self.min_amount), "max": _f(self.max_amount), "step": _f(self.amount_step)},
                "price": {"step": _f(self.price_step)},
                "cost": {"min": _f(self.min_cost)},
            }
        }


def validate_order(price: float, quantity: float, market: Dict[str, Any]) -> bool:
    """Return ``True`` if the order satisfies basic venue limits.

    Parameters
    ----------
    price:
        Order price. Used to compute notional for cost limits. When ``<= 0`` it
        is treated as a market order price placeholder and cost checks are
        skipped.
    quantity:
        Order quantity in base currency.
    market:
        Market metadata from CCXT, expected to contain ``limits`` with
        ``amount``/``price`` and ``cost`` entries and optionally ``precision``.
    """

    limits = market.get("limits", {})
    amount_limits = limits.get("amount", {}) or {}
    price_limits = limits.get("price", {}) or {}
    cost_limits = limits.get("cost", {}) or {}
    precision = market.get("precision", {})

    min_amount = amount_limits.get("min")
    max_amount = amount_limits.get("max")
    amount_step = amount_limits.get("step")
    min_cost = cost_limits.get("min")
    price_step = price_limits.get("step")
    price_min = price_limits.get("min")
    price_precision = precision.get("price")

    if min_amount is not None and quantity < min_amount:
        return False

    if max_amount is not None and max_amount > 0 and quantity > max_amount:
        return False

    if amount_step is not None and not _is_multiple(quantity, amount_step):
        return False

    # Price checks (only for limit-style orders where price > 0) --------
    if price is not None and price > 0:
        if price_min is not None and price < price_min:
            return False
        if price_step is not None:
            if not _is_multiple(price, price_step):
                return False
        elif isinstance(price_precision, int):
            rounded = round(price, price_precision)
            if not math.isclose(price, rounded, rel_tol=0, abs_tol=1e-8):
                return False

        if min_cost is not None and price * quantity < min_cost:
            return False

    return True


__all__ = ["Limits", "validate_order"]
