from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from bookshop.auth import admin_required
from bookshop.errors import NotFoundError, ValidationError
from bookshop.models import PurchasedOrder
from bookshop.services import orders as order_service
from bookshop.services import payments, reporting
from bookshop.services.checkout import CheckoutInput, clean_text, create_order

order_bp = Blueprint("order_bp", __name__, url_prefix="/api/orders")


def _iso(dt):
    return dt.isoformat() if dt else None


def _money(val):
    return float(val) if val is not None else None


def _order_dict(o: PurchasedOrder, admin: bool = False) -> dict:
    out = {
        "orderId": o.order_id,
        "userId": o.user_id,
        "user": {
            "name": o.customer_name,
            "email": o.customer_email,
            "phone": o.customer_phone,
        },
        "billingAddress": o.billing_address,
        "books": [
            {
                "bookId": line.book_id,
                "title": line.title,
                "quantity": line.quantity,
                "price": _money(line.price),
                "subtotal": _money(line.subtotal),
            }
            for line in o.lines
        ],
        "payment": {
            "method": o.payment_method,
            "instructions": o.payment_instructions,
            "file": o.payment_file,
            "bankDetails": {
                "bankName": o.bank_name,
                "accountNumber": o.bank_account_number,
                "accountHolder": o.bank_account_holder,
            } if o.bank_name else None,
            "epayumLink": o.epayum_link,
            "transactionId": o.transaction_id,
            "verificationStatus": o.verification_status,
            "verifiedBy": o.verified_by_id,
            "verifiedAt": _iso(o.verified_at),
            "rejectionReason": o.rejection_reason,
        },
        "shipping": {
            "enabled": bool(o.shipping_enabled),
            "address": o.shipping_address,
            "cost": _money(o.shipping_cost),
            "carrier": o.carrier,
            "trackingNumber": o.tracking_number,
            "shippingStatus": o.shipping_status,
            "shippedAt": _iso(o.shipped_at),
            "deliveredAt": _iso(o.delivered_at),
        },
        "totals": {
            "subtotal": _money(o.subtotal),
            "shippingCost": _money(o.shipping_total),
            "total": _money(o.total),
        },
        "status": o.status,
        "orderType": o.order_type,
        "notes": o.notes,
        "totalItems": o.total_items,
        "orderSummary": o.order_summary,
        "statusHistory": [
            {
                "status": h.status,
                "timestamp": _iso(h.timestamp),
                "updatedBy": h.updated_by_id,
                "notes": h.notes,
            }
            for h in o.status_history
        ],
        "createdAt": _iso(o.created_at),
        "updatedAt": _iso(o.updated_at),
    }
    if admin:
        out["adminNotes"] = o.admin_notes
        out["version"] = o.version
    return out


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _is_admin() -> bool:
    return current_user.is_authenticated and current_user.is_admin


@order_bp.post("")
def create_order_route():
    if request.mimetype == "multipart/form-data":
        data = request.form
        payment_file = request.files.get("paymentFile")
    else:
        data = request.get_json(silent=True)
        payment_file = None
        if data is None:
            raise ValidationError("Request body must be JSON or multipart form data")

    checkout = CheckoutInput.from_request(data)
    owner = current_user if current_user.is_authenticated else None
    order = create_order(checkout, payment_file=payment_file, owner=owner)

    return jsonify({
        "success": True,
        "message": "Order created successfully",
        "data": _order_dict(order, admin=_is_admin()),
    }), 201


@order_bp.get("")
@login_required
def list_orders():
    args = request.args
    filters = reporting.OrderFilters.from_args(args)
    if not current_user.is_admin:
        # customers only ever see their own orders, same rule as can_view
        filters.user_id = current_user.id
        filters.owner_email = (current_user.email or "").lower() or None

    page = reporting.list_orders(
        filters,
        page=args.get("page", 1, type=int),
        limit=args.get("limit", current_app.config.get("ORDERS_PER_PAGE", 10), type=int),
        sort_by=args.get("sortBy", "createdAt"),
        sort_order=(args.get("sortOrder") or "desc").lower(),
    )
    admin = current_user.is_admin
    return jsonify({
        "success": True,
        "data": [_order_dict(o, admin=admin) for o in page.items],
        "pagination": page.pagination,
        "summary": reporting.summarize_orders(filters),
    }), 200


@order_bp.get("/stats")
@admin_required
def order_stats():
    return jsonify({"success": True, "data": reporting.get_order_stats()}), 200


@order_bp.get("/track/<order_id>")
def track_order(order_id: str):
    """Public tracking: the buyer proves ownership with the order e-mail."""
    email = (request.args.get("email") or "").strip().lower()
    if not email:
        raise ValidationError("Query parameter 'email' is required")
    o = order_service.get_order_or_404(order_id)
    if o.customer_email != email:
        # same answer as a missing order, do not leak existence
        raise NotFoundError("Order not found")

    return jsonify({
        "success": True,
        "data": {
            "orderId": o.order_id,
            "status": o.status,
            "paymentStatus": o.verification_status,
            "shippingStatus": o.shipping_status if o.shipping_enabled else None,
            "trackingNumber": o.tracking_number,
            "carrier": o.carrier,
            "totals": {"total": _money(o.total)},
            "orderSummary": o.order_summary,
            "statusHistory": [
                {"status": h.status, "timestamp": _iso(h.timestamp)} for h in o.status_history
            ],
            "createdAt": _iso(o.created_at),
        },
    }), 200


@order_bp.get("/<order_id>")
@login_required
def get_order(order_id: str):
    o = order_service.get_order_or_404(order_id)
    order_service.ensure_can_view(o, current_user)
    return jsonify({"success": True, "data": _order_dict(o, admin=current_user.is_admin)}), 200


@order_bp.put("/<order_id>")
@admin_required
def update_order(order_id: str):
    o = order_service.get_order_or_404(order_id)
    o = order_service.apply_admin_update(o, _payload(), actor=current_user)
    return jsonify({
        "success": True,
        "message": "Order updated successfully",
        "data": _order_dict(o, admin=True),
    }), 200


@order_bp.post("/<order_id>/status")
@admin_required
def update_order_status(order_id: str):
    data = _payload()
    status = clean_text(data.get("status"))
    if not status:
        raise ValidationError("Status is required", {"status": "required"})

    o = order_service.get_order_or_404(order_id)
    o = order_service.change_status(
        o,
        status,
        actor=current_user,
        notes=data.get("notes"),
        shipping_info=data.get("shippingInfo"),
    )
    return jsonify({
        "success": True,
        "message": "Order status updated successfully",
        "order": _order_dict(o, admin=True),
    }), 200


@order_bp.post("/<order_id>/verify")
@admin_required
def verify_order_payment(order_id: str):
    data = _payload()
    is_approved = data.get("isApproved")
    if not isinstance(is_approved, bool):
        raise ValidationError("isApproved must be a boolean", {"isApproved": "boolean required"})

    o = order_service.get_order_or_404(order_id)
    if is_approved:
        o = payments.verify_payment(
            o, current_user, clean_text(data.get("transactionId")), clean_text(data.get("notes")) or None
        )
    else:
        o = payments.reject_payment(
            o, current_user, clean_text(data.get("reason")) or clean_text(data.get("notes"))
        )

    return jsonify({
        "success": True,
        "message": f"Payment {'approved' if is_approved else 'rejected'} successfully",
        "order": _order_dict(o, admin=True),
    }), 200


@order_bp.delete("/<order_id>")
@admin_required
def delete_order(order_id: str):
    o = order_service.get_order_or_404(order_id)
    order_service.delete_order(o)
    return jsonify({"success": True, "message": "Order deleted successfully"}), 200
