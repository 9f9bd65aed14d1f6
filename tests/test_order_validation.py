from decimal import Decimal

from hyperbacktest.execution.validators import Limits, validate_order


def test_validate_order_limits() -> None:
    market = {
        "limits": {
            "amount": {"min": 0.001, "step": 0.001},
            "cost": {"min": 10},
        }
    }
    assert not validate_order(20000, 0.0004, market)
    assert not validate_order(20000, 0.0015, market)
    assert validate_order(20000, 0.001, market)


def test_validate_order_max_amount() -> None:
    market = {"limits": {"amount": {"max": 5}}}
    assert validate_order(0.0, 5, market)
    assert not validate_order(0.0, 5.5, market)


def test_limits_from_market() -> None:
    limits = Limits.from_market(
        {"limits": {"amount": {"min": 0.01, "max": 100, "step": 0.01}, "price": {"step": 0.1}, "cost": {"min": 5}}}
    )
    assert limits.min_amount == Decimal("0.01")
    assert limits.max_amount == Decimal("100")
    assert limits.price_step == Decimal("0.1")
    assert limits.min_cost == Decimal("5")


def test_conform_to_amount() -> None:
    limits = Limits(amount_step=Decimal("0.01"), max_amount=Decimal("2"))
    assert limits.conform_to_amount(Decimal("1.23456")) == Decimal("1.23")
    assert limits.conform_to_amount(Decimal("3")) == Decimal("2")
    assert Limits().conform_to_amount(Decimal("1.23456")) == Decimal("1.23456")
