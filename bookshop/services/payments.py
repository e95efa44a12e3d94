# bookshop/services/payments.py
from __future__ import annotations

from datetime import datetime

from flask import current_app

from bookshop.errors import PaymentAlreadyProcessedError
from bookshop.models.order import PurchasedOrder
from bookshop.services import transitions
from bookshop.services.notifications import notify_payment_decision


def _ensure_pending(order: PurchasedOrder) -> None:
    # verified/rejected are final for the payment part of the order
    if order.verification_status != "pending":
        raise PaymentAlreadyProcessedError(
            f"Payment for order {order.order_id} has already been {order.verification_status}"
        )


def _stamp(order: PurchasedOrder, verification_status: str, verified_by) -> None:
    order.verification_status = verification_status
    order.verified_by_id = getattr(verified_by, "id", verified_by)
    order.verified_at = datetime.utcnow()


def verify_payment(order: PurchasedOrder, verified_by, transaction_id: str | None = None,
                   notes: str | None = None) -> PurchasedOrder:
    """Accept the payment proof and confirm the order."""
    _ensure_pending(order)
    if order.status != "confirmed":
        # raises before anything is stamped when the order cannot be confirmed
        transitions.check_transition(order, "confirmed")

    _stamp(order, "verified", verified_by)
    transaction_id = (transaction_id or "").strip()
    if transaction_id:
        order.transaction_id = transaction_id

    if order.status != "confirmed":
        transitions.transition(order, "confirmed", verified_by, notes or "Payment verified", commit=False)
    transitions.save(order)

    current_app.logger.info("Payment verified for order %s", order.order_id)
    notify_payment_decision(order)
    return order


def reject_payment(order: PurchasedOrder, verified_by, reason: str | None) -> PurchasedOrder:
    """Reject the payment proof and cancel the order."""
    _ensure_pending(order)
    transitions.check_transition(order, "cancelled")

    reason = (reason or "").strip() or None
    _stamp(order, "rejected", verified_by)
    order.rejection_reason = reason
    note = f"Payment rejected: {reason}" if reason else "Payment rejected"
    transitions.transition(order, "cancelled", verified_by, note, commit=False)
    transitions.save(order)

    current_app.logger.info("Payment rejected for order %s: %s", order.order_id, reason)
    notify_payment_decision(order)
    return order
