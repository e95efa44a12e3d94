from decimal import Decimal, InvalidOperation

import pytest

from bookshop.services.totals import DEFAULT_SHIPPING_COST, compute_totals, line_subtotal, to_money


def test_two_books_with_default_shipping():
    totals = compute_totals(
        [{"quantity": 2, "price": 25}, {"quantity": 1, "price": 40}],
        shipping_enabled=True,
    )
    assert totals.subtotal == Decimal("90.00")
    assert totals.shipping_cost == Decimal("10.00")
    assert totals.total == Decimal("100.00")
    assert totals.line_subtotals == [Decimal("50.00"), Decimal("40.00")]


def test_shipping_disabled_costs_nothing_even_when_quoted():
    totals = compute_totals([{"quantity": 3, "price": "12.90"}], shipping_enabled=False, shipping_cost=15)
    assert totals.shipping_cost == Decimal("0.00")
    assert totals.total == Decimal("38.70")


def test_explicit_zero_shipping_cost_is_honoured():
    totals = compute_totals([{"quantity": 1, "price": 20}], shipping_enabled=True, shipping_cost=0)
    assert totals.shipping_cost == Decimal("0.00")
    assert totals.total == Decimal("20.00")


def test_custom_default_shipping_cost():
    totals = compute_totals(
        [{"quantity": 1, "price": 20}],
        shipping_enabled=True,
        default_shipping_cost=Decimal("7.5"),
    )
    assert totals.shipping_cost == Decimal("7.50")
    assert totals.total == Decimal("27.50")


def test_float_prices_round_to_cents():
    assert line_subtotal(3, 0.1) == Decimal("0.30")
    totals = compute_totals([{"quantity": 1, "price": 0.1}, {"quantity": 1, "price": 0.2}])
    assert totals.total == Decimal("0.30")


def test_accepts_objects_with_quantity_and_price():
    class Line:
        def __init__(self, quantity, price):
            self.quantity = quantity
            self.price = price

    totals = compute_totals([Line(4, Decimal("32.50"))])
    assert totals.subtotal == Decimal("130.00")
    assert totals.as_dict() == {"subtotal": 130.0, "shippingCost": 0.0, "total": 130.0}


def test_no_lines_totals_zero():
    totals = compute_totals([], shipping_enabled=True, shipping_cost=DEFAULT_SHIPPING_COST)
    assert totals.subtotal == Decimal("0.00")
    assert totals.total == Decimal("10.00")


def test_to_money_rejects_garbage():
    with pytest.raises(InvalidOperation):
        to_money("ten ringgit")
    with pytest.raises(InvalidOperation):
        to_money(None)
