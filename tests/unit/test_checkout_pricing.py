import pytest
from decimal import Decimal

from salonbook.checkout.pricing import compute_breakdown, breakdown_for_cart, money
from salonbook.cart.models import CartAggregate
from salonbook.errors import ConfigurationError, ValidationError


def test_breakdown_deduct_mode_reference_amounts():
    b = compute_breakdown(1000, 10, tax_rate=18, fee_mode="deduct")
    assert b.booking_fee == Decimal("100")
    assert b.tax == Decimal("18")
    assert b.pay_now == Decimal("118")
    assert b.pay_at_venue == Decimal("900")
    assert b.customer_total == Decimal("1018")


def test_breakdown_additive_mode_keeps_full_total_at_venue():
    b = compute_breakdown(1000, 10, tax_rate=18, fee_mode="additive")
    assert b.pay_now == Decimal("118")
    assert b.pay_at_venue == Decimal("1000")


def test_fee_rounds_half_up_before_tax():
    # 10% de 1255 = 125.5 -> 126 ; taxe 18% de 126 = 22.68 -> 23
    b = compute_breakdown(1255, 10, tax_rate=18)
    assert b.booking_fee == Decimal("126")
    assert b.tax == Decimal("23")
    assert b.pay_now == Decimal("149")


def test_zero_total_gives_zero_amounts():
    b = compute_breakdown(0, 10)
    assert b.pay_now == 0
    assert b.pay_at_venue == 0


@pytest.mark.parametrize("fee", [None, ""])
def test_missing_fee_percentage_fails_closed(fee):
    with pytest.raises(ConfigurationError) as exc:
        compute_breakdown(1000, fee)
    assert exc.value.code == "configuration_error"


@pytest.mark.parametrize("fee", [-1, 101, "abc"])
def test_fee_out_of_bounds_is_configuration_error(fee):
    with pytest.raises(ConfigurationError):
        compute_breakdown(1000, fee)


def test_unknown_fee_mode_and_negative_tax():
    with pytest.raises(ConfigurationError):
        compute_breakdown(1000, 10, fee_mode="split")
    with pytest.raises(ConfigurationError):
        compute_breakdown(1000, 10, tax_rate=-5)


def test_negative_total_is_validation_error():
    with pytest.raises(ValidationError):
        compute_breakdown(-1, 10)


def test_amount_minor_and_as_dict():
    b = compute_breakdown(1000, 10, tax_rate=18)
    assert b.amount_minor() == 11800
    d = b.as_dict()
    assert d["pay_now"] == 118
    assert d["fee_mode"] == "deduct"
    assert isinstance(d["booking_fee"], int)


def test_breakdown_is_frozen():
    b = compute_breakdown(1000, 10)
    with pytest.raises(Exception):
        b.pay_now = Decimal("1")


def test_breakdown_for_cart_uses_derived_total(make_item):
    cart = CartAggregate([make_item("a", "400", quantity=2), make_item("b", "200")])
    b = breakdown_for_cart(cart, 10, tax_rate=18)
    assert b.service_total == Decimal("1000")
    assert b.pay_now == Decimal("118")


def test_money_helper():
    assert money(Decimal("118")) == 118
    assert money(Decimal("22.5")) == 22.5
