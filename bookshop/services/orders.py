# bookshop/services/orders.py
from __future__ import annotations

from decimal import InvalidOperation

from flask import current_app

from bookshop.errors import AuthorizationError, NotFoundError, ValidationError
from bookshop.extensions import db
from bookshop.models import PurchasedOrder
from bookshop.services import transitions
from bookshop.services.checkout import ADDRESS_MAX, NOTES_MAX, clean_text, remove_payment_proofs
from bookshop.services.totals import to_money


def get_order_or_404(order_id: str) -> PurchasedOrder:
    order = PurchasedOrder.query.filter_by(order_id=str(order_id).strip().upper()).first()
    if order is None:
        raise NotFoundError("Order not found")
    return order


def can_view(order: PurchasedOrder, user) -> bool:
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    if user.is_admin:
        return True
    if order.user_id is not None:
        return order.user_id == user.id
    return bool(user.email) and user.email.lower() == order.customer_email


def ensure_can_view(order: PurchasedOrder, user) -> None:
    if not can_view(order, user):
        raise AuthorizationError("You do not have access to this order")


def change_status(order: PurchasedOrder, status: str, actor=None, notes: str | None = None,
                  shipping_info: dict | None = None) -> PurchasedOrder:
    """Route an admin status request to the matching lifecycle operation."""
    status = clean_text(status)
    notes = clean_text(notes) or None
    if status == "shipped":
        info = shipping_info if isinstance(shipping_info, dict) else {}
        return transitions.ship(
            order,
            actor,
            tracking_number=clean_text(info.get("trackingNumber")),
            carrier=clean_text(info.get("carrier")),
            notes=notes,
        )
    if status == "processing":
        return transitions.start_processing(order, actor, notes)
    if status == "delivered":
        return transitions.deliver(order, actor, notes)
    if status == "cancelled":
        return transitions.cancel(order, actor, notes or "Order cancelled by admin")
    return transitions.transition(order, status, actor, notes or f"Status updated to {status}")


def apply_admin_update(order: PurchasedOrder, data: dict, actor=None) -> PurchasedOrder:
    """
    Partial update from the admin panel.

    Field edits are applied first and committed together with the status
    change, if any, so the order is saved once.
    """
    data = data or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    if "adminNotes" in data:
        admin_notes = clean_text(data.get("adminNotes")) or None
        if admin_notes and len(admin_notes) > NOTES_MAX:
            raise ValidationError("Admin notes too long", {"adminNotes": f"cannot exceed {NOTES_MAX} characters"})
        order.admin_notes = admin_notes

    shipping = data.get("shipping") if isinstance(data.get("shipping"), dict) else {}
    if "enabled" in shipping:
        order.shipping_enabled = bool(shipping.get("enabled"))
    if "address" in shipping:
        address = clean_text(shipping.get("address")) or None
        if address and len(address) > ADDRESS_MAX:
            raise ValidationError("Address too long", {"shipping.address": f"cannot exceed {ADDRESS_MAX} characters"})
        order.shipping_address = address
    if "cost" in shipping:
        raw = shipping.get("cost")
        try:
            order.shipping_cost = None if raw in (None, "") else to_money(raw)
        except InvalidOperation:
            raise ValidationError("Invalid shipping cost", {"shipping.cost": "not a number"})

    tracking = clean_text(data.get("trackingNumber"))
    if tracking and order.shipping_enabled:
        order.tracking_number = tracking

    shipping_status = clean_text(data.get("shippingStatus"))
    if shipping_status:
        transitions.update_shipping_status(order, shipping_status, commit=False)

    status = clean_text(data.get("status"))
    if status and status != order.status:
        # commits everything above as well
        return change_status(order, status, actor, data.get("notes"), data.get("shippingInfo"))

    return transitions.save(order)


def delete_order(order: PurchasedOrder) -> None:
    if order.status != "pending":
        raise ValidationError("Only pending orders can be deleted")
    order_id = order.order_id
    db.session.delete(order)
    db.session.commit()
    remove_payment_proofs(order_id)
    current_app.logger.info("Order %s deleted", order_id)
