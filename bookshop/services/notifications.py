# bookshop/services/notifications.py
"""
Customer and owner e-mails around the order lifecycle.

All senders are best effort: a mail failure is logged and never undoes or
fails the order operation that triggered it.
"""
from __future__ import annotations

from flask import current_app

from bookshop.api.utils.email import send_email
from bookshop.models.order import PurchasedOrder


def _money(value) -> str:
    currency = current_app.config.get("CURRENCY", "MYR")
    return f"{currency} {float(value or 0):.2f}"


def _order_lines(order: PurchasedOrder) -> list[str]:
    return [
        f"• {line.title} × {line.quantity} at {_money(line.price)} each"
        for line in order.lines
    ]


def send_order_confirmation(order: PurchasedOrder) -> bool:
    lines = [
        f"Dear {order.customer_name},",
        "",
        "thank you for your order. Summary:",
        f"Order: {order.order_id}",
        "",
        "Items:",
        *_order_lines(order),
        "",
        f"Subtotal: {_money(order.subtotal)}",
    ]
    if order.shipping_enabled:
        lines += [
            f"Shipping: {_money(order.shipping_total)}",
            f"Delivery address: {order.shipping_address}",
        ]
    lines += [
        f"Total: {_money(order.total)}",
        "",
        "Payment instructions:",
        order.payment_instructions or "-",
    ]
    if order.bank_name:
        lines.append(f"Bank: {order.bank_name}, account {order.bank_account_number} ({order.bank_account_holder})")
    if order.epayum_link:
        lines.append(f"Pay online: {order.epayum_link}")
    lines += [
        "",
        "We will confirm your order once the payment is verified.",
        "",
        "Tamil Literature Society",
    ]

    try:
        send_email(
            subject=f"Order confirmation {order.order_id}",
            recipients=[order.customer_email],
            body="\n".join(lines),
        )
        return True
    except Exception:
        current_app.logger.exception("Order confirmation e-mail failed for %s", order.order_id)
        return False


def notify_owner_new_order(order: PurchasedOrder) -> bool:
    owner = current_app.config.get("ORDER_NOTIFY_EMAIL")
    if not owner:
        return False
    try:
        send_email(
            subject=f"New order {order.order_id}",
            recipients=[owner],
            body=(
                f"Order {order.order_id} ({order.order_type})\n"
                f"Customer: {order.customer_name} <{order.customer_email}> {order.customer_phone}\n"
                f"Payment: {order.payment_method}"
                f"{' (proof uploaded)' if order.payment_file else ''}\n"
                f"{order.order_summary}\n"
                f"Total: {_money(order.total)}"
            ),
        )
        return True
    except Exception:
        current_app.logger.exception("Owner notification failed for %s", order.order_id)
        return False


def notify_payment_decision(order: PurchasedOrder) -> bool:
    if order.verification_status == "verified":
        subject = f"Payment received for order {order.order_id}"
        body = (
            f"Dear {order.customer_name},\n\n"
            f"your payment of {_money(order.total)} has been verified and order "
            f"{order.order_id} is confirmed.\n\nTamil Literature Society"
        )
    elif order.verification_status == "rejected":
        subject = f"Payment not accepted for order {order.order_id}"
        reason = order.rejection_reason or "no reason given"
        body = (
            f"Dear {order.customer_name},\n\n"
            f"we could not verify the payment for order {order.order_id} ({reason}). "
            "The order has been cancelled. Reply to this e-mail if you think this is a mistake.\n\n"
            "Tamil Literature Society"
        )
    else:
        return False

    try:
        send_email(subject=subject, recipients=[order.customer_email], body=body)
        return True
    except Exception:
        current_app.logger.exception("Payment decision e-mail failed for %s", order.order_id)
        return False
