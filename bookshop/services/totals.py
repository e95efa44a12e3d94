# bookshop/services/totals.py
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
DEFAULT_SHIPPING_COST = Decimal("10.00")


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    shipping_cost: Decimal
    total: Decimal
    line_subtotals: list[Decimal] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "shippingCost": float(self.shipping_cost),
            "total": float(self.total),
        }


def to_money(value) -> Decimal:
    """Decimal rounded to cents; raises InvalidOperation on garbage."""
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except (TypeError, ValueError):
        raise InvalidOperation(f"Invalid amount: {value!r}")


def _field(item, name):
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def line_subtotal(quantity, price) -> Decimal:
    return to_money(Decimal(int(quantity)) * to_money(price))


def compute_totals(
    lines,
    shipping_enabled: bool = False,
    shipping_cost=None,
    default_shipping_cost=DEFAULT_SHIPPING_COST,
) -> Totals:
    """
    Derive line subtotals and order totals from quantity x price.

    Quantity bounds are the caller's business. A `shipping_cost` of None
    means "not quoted" and falls back to `default_shipping_cost`; shipping
    costs nothing unless enabled.
    """
    line_subtotals = [line_subtotal(_field(it, "quantity"), _field(it, "price")) for it in lines]
    subtotal = sum(line_subtotals, Decimal("0.00"))

    if shipping_enabled:
        cost = default_shipping_cost if shipping_cost is None else shipping_cost
        shipping = to_money(cost)
    else:
        shipping = Decimal("0.00")

    return Totals(
        subtotal=to_money(subtotal),
        shipping_cost=shipping,
        total=to_money(subtotal + shipping),
        line_subtotals=line_subtotals,
    )
