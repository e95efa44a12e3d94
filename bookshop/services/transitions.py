# bookshop/services/transitions.py
"""
Order status state machine.

ORDER_TRANSITIONS is the only place that says which status may follow which.
Every code path that changes `PurchasedOrder.status` goes through
`transition()`, the convenience helpers below included.

The shipping sub-status is a second, smaller machine. It follows the order
status (never backwards) and can also be moved on its own by an admin while
the order stays where it is.
"""
from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from bookshop.errors import ConcurrentUpdateError, IllegalTransitionError, ValidationError
from bookshop.extensions import db
from bookshop.models.order import ORDER_STATUSES, SHIPPING_STATUSES, PurchasedOrder
from bookshop.models.status_history import StatusHistoryEntry

ORDER_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": ("refunded",),
    "cancelled": (),
    "refunded": (),
}

SHIPPING_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "pending": ("processing", "cancelled"),
    "processing": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": (),
    "cancelled": (),
}

# order status -> shipping status it drags along
_SHIPPING_FOR_ORDER = {
    "processing": "processing",
    "shipped": "shipped",
    "delivered": "delivered",
    "cancelled": "cancelled",
}
_SHIPPING_RANK = {"pending": 0, "processing": 1, "shipped": 2, "delivered": 3}


def valid_transitions(status: str) -> tuple[str, ...]:
    return ORDER_TRANSITIONS.get(status, ())


def can_transition(current: str, new_status: str) -> bool:
    return new_status in valid_transitions(current)


def check_transition(order: PurchasedOrder, new_status: str) -> None:
    if new_status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'",
            {"status": f"must be one of: {', '.join(ORDER_STATUSES)}"},
        )
    if not can_transition(order.status, new_status):
        raise IllegalTransitionError(order.status, new_status, valid_transitions(order.status))


def _actor_id(actor):
    if actor is None:
        return None
    return getattr(actor, "id", actor)


def save(order: PurchasedOrder) -> PurchasedOrder:
    """Commit, turning a lost optimistic-lock race into ConcurrentUpdateError."""
    order_id = order.order_id
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        current_app.logger.warning("Concurrent update detected on order %s", order_id)
        raise ConcurrentUpdateError()
    return order


def _stamp_shipping(order: PurchasedOrder, shipping_status: str, now: datetime) -> None:
    order.shipping_status = shipping_status
    if shipping_status == "shipped" and order.shipped_at is None:
        order.shipped_at = now
    if shipping_status == "delivered" and order.delivered_at is None:
        order.delivered_at = now


def _sync_shipping(order: PurchasedOrder, status: str, now: datetime) -> None:
    if not order.shipping_enabled:
        return
    target = _SHIPPING_FOR_ORDER.get(status)
    current = order.shipping_status
    if target is None or current == target or current == "cancelled":
        return
    if target == "cancelled":
        if current != "delivered":
            _stamp_shipping(order, target, now)
        return
    if _SHIPPING_RANK[target] > _SHIPPING_RANK.get(current, -1):
        _stamp_shipping(order, target, now)


def transition(order: PurchasedOrder, new_status: str, actor=None, notes: str | None = None,
               commit: bool = True) -> PurchasedOrder:
    """
    Move `order` to `new_status` if the table allows it.

    On success exactly one history entry is appended. On failure the order
    is left untouched and IllegalTransitionError carries the legal targets.
    """
    check_transition(order, new_status)

    now = datetime.utcnow()
    previous = order.status
    # lazy-loading status_history would otherwise autoflush before save()
    with db.session.no_autoflush:
        order.status = new_status
        _sync_shipping(order, new_status, now)
        order.status_history.append(
            StatusHistoryEntry(
                status=new_status,
                timestamp=now,
                updated_by_id=_actor_id(actor),
                notes=notes,
            )
        )

    if commit:
        save(order)
    current_app.logger.info("Order %s: %s -> %s", order.order_id, previous, new_status)
    return order


def confirm(order, actor=None, notes=None):
    return transition(order, "confirmed", actor, notes or "Order confirmed")


def start_processing(order, actor=None, notes=None):
    return transition(order, "processing", actor, notes or "Order is being processed")


def ship(order, actor=None, tracking_number: str | None = None, carrier: str | None = None,
         notes: str | None = None):
    check_transition(order, "shipped")
    tracking_number = (tracking_number or "").strip() or None
    if order.shipping_enabled and not tracking_number:
        raise ValidationError("trackingNumber is required for shipping", {"trackingNumber": "required"})

    if tracking_number:
        order.tracking_number = tracking_number
    if carrier:
        order.carrier = carrier.strip()
    default_note = f"Shipped via {order.carrier}" if order.carrier else "Order shipped"
    return transition(order, "shipped", actor, notes or default_note)


def deliver(order, actor=None, notes=None):
    return transition(order, "delivered", actor, notes or "Order delivered")


def cancel(order, actor=None, notes=None):
    return transition(order, "cancelled", actor, notes or "Order cancelled")


def refund(order, actor=None, notes=None):
    return transition(order, "refunded", actor, notes or "Order refunded")


def update_shipping_status(order: PurchasedOrder, shipping_status: str, commit: bool = True) -> PurchasedOrder:
    """Admin override of the fulfilment sub-status; the order status is not touched."""
    if shipping_status not in SHIPPING_STATUSES:
        raise ValidationError(
            f"Invalid shipping status '{shipping_status}'",
            {"shippingStatus": f"must be one of: {', '.join(SHIPPING_STATUSES)}"},
        )
    if not order.shipping_enabled:
        raise ValidationError("Shipping is not enabled for this order")
    if shipping_status == order.shipping_status:
        return order

    allowed = SHIPPING_TRANSITIONS.get(order.shipping_status, ())
    if shipping_status not in allowed:
        raise IllegalTransitionError(order.shipping_status, shipping_status, allowed)

    _stamp_shipping(order, shipping_status, datetime.utcnow())
    if commit:
        save(order)
    return order
