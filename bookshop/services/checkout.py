# bookshop/services/checkout.py
"""
Checkout: turn a storefront request into a persisted `PurchasedOrder`.

`CheckoutInput.from_request` is the only place that looks at raw request
data (JSON body or multipart form). Everything after it works on typed
fields.
"""
from __future__ import annotations

import json
import os
import re
import shutil
import time
from dataclasses import dataclass

from flask import current_app
from werkzeug.utils import secure_filename

from bookshop.errors import ValidationError
from bookshop.extensions import db
from bookshop.models import Book, OrderLine, PaymentSettings, PurchasedOrder
from bookshop.models.counter import next_order_id
from bookshop.models.order import ORDER_TYPES, PAYMENT_METHODS
from bookshop.models.order_item import MAX_QUANTITY, MIN_QUANTITY
from bookshop.services.notifications import notify_owner_new_order, send_order_confirmation

EMAIL_RE = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")
PHONE_RE = re.compile(r"^\+?[0-9\s\-()]{10,20}$")

NAME_MAX = 100
ADDRESS_MAX = 500
NOTES_MAX = 1000


@dataclass
class LineRequest:
    book_id: int
    quantity: int


@dataclass
class CheckoutInput:
    name: str
    email: str
    phone: str
    items: list[LineRequest]
    payment_method: str
    order_type: str = "buy_now"
    shipping_enabled: bool = False
    shipping_address: str | None = None
    billing_address: str | None = None
    notes: str | None = None

    @classmethod
    def from_request(cls, data) -> "CheckoutInput":
        """
        Parse and validate a checkout payload.

        `data` is a JSON dict or a form MultiDict. Nested JSON (`customer`,
        `shipping`) and the flat form names (`userName`, `shippingEnabled`,
        ...) are both understood. Raises ValidationError listing every bad
        field at once.
        """
        data = data or {}
        if not hasattr(data, "get"):
            raise ValidationError("Request body must be a JSON object")
        errors: dict[str, str] = {}

        customer = _mapping(data.get("customer")) or _mapping(data.get("user"))
        name = clean_text(customer.get("name")) or clean_text(data.get("userName"))
        email = (clean_text(customer.get("email")) or clean_text(data.get("userEmail"))).lower()
        phone = clean_text(customer.get("phone")) or clean_text(data.get("userPhone"))

        if not name:
            errors["customer.name"] = "required"
        elif len(name) > NAME_MAX:
            errors["customer.name"] = f"cannot exceed {NAME_MAX} characters"
        if not email:
            errors["customer.email"] = "required"
        elif not EMAIL_RE.match(email):
            errors["customer.email"] = "invalid e-mail address"
        if not phone:
            errors["customer.phone"] = "required"
        elif not PHONE_RE.match(phone):
            errors["customer.phone"] = "invalid phone number"

        items = _parse_items(data.get("items", data.get("books")), errors)

        payment_method = clean_text(data.get("paymentMethod"))
        if payment_method not in PAYMENT_METHODS:
            errors["paymentMethod"] = f"must be one of: {', '.join(PAYMENT_METHODS)}"

        order_type = clean_text(data.get("orderType")) or "buy_now"
        if order_type not in ORDER_TYPES:
            errors["orderType"] = f"must be one of: {', '.join(ORDER_TYPES)}"

        shipping = _mapping(data.get("shipping"))
        shipping_enabled = _bool(shipping.get("enabled", data.get("shippingEnabled")))
        shipping_address = clean_text(shipping.get("address")) or clean_text(data.get("shippingAddress")) or None
        if shipping_enabled and not shipping_address:
            errors["shipping.address"] = "required when shipping is enabled"
        elif shipping_address and len(shipping_address) > ADDRESS_MAX:
            errors["shipping.address"] = f"cannot exceed {ADDRESS_MAX} characters"

        notes = clean_text(data.get("notes")) or None
        if notes and len(notes) > NOTES_MAX:
            errors["notes"] = f"cannot exceed {NOTES_MAX} characters"

        if errors:
            raise ValidationError("Invalid order data", errors)

        return cls(
            name=name,
            email=email,
            phone=phone,
            items=items,
            payment_method=payment_method,
            order_type=order_type,
            shipping_enabled=shipping_enabled,
            shipping_address=shipping_address,
            billing_address=_format_address(data.get("billing")),
            notes=notes,
        )


# --- parsing helpers -----------------------------------------------------------

def clean_text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return clean_text(value).lower() in ("1", "true", "yes", "on")


def _mapping(value) -> dict:
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            value = json.loads(value)
        except ValueError:
            return {}
    return value if isinstance(value, dict) else {}


def _format_address(value) -> str | None:
    value = _mapping(value) or value
    if isinstance(value, dict):
        parts = [clean_text(value.get(k)) for k in ("address", "city", "state", "postalCode", "country")]
        return ", ".join(p for p in parts if p) or None
    return clean_text(value) or None


def _parse_items(raw, errors: dict) -> list[LineRequest]:
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            errors["items"] = "must be a JSON list"
            return []
    if not isinstance(raw, list) or not raw:
        errors["items"] = "at least one book is required"
        return []

    out = []
    for idx, it in enumerate(raw):
        if not isinstance(it, dict):
            errors[f"items[{idx}]"] = "must be an object"
            continue
        try:
            book_id = int(it.get("bookId", it.get("book_id", it.get("id"))))
        except (TypeError, ValueError):
            errors[f"items[{idx}].bookId"] = "required"
            continue
        try:
            quantity = int(it.get("quantity", 1))
        except (TypeError, ValueError):
            errors[f"items[{idx}].quantity"] = "must be a whole number"
            continue
        if quantity < MIN_QUANTITY or quantity > MAX_QUANTITY:
            errors[f"items[{idx}].quantity"] = f"must be between {MIN_QUANTITY} and {MAX_QUANTITY}"
            continue
        out.append(LineRequest(book_id=book_id, quantity=quantity))
    return out


# --- payment proof -------------------------------------------------------------

def _allowed_proof(filename: str, mimetype: str | None) -> bool:
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in current_app.config.get("PAYMENT_PROOF_EXTENSIONS", ()):
        return False
    mt = (mimetype or "").lower()
    return not mt or "pdf" in mt or mt.startswith("image/") or mt == "application/octet-stream"


def store_payment_proof(fs, order_id: str) -> tuple[str, str]:
    """
    Save an uploaded proof under UPLOAD_FOLDER/orders/<order_id>/.
    Returns (absolute path, path recorded on the order).
    """
    filename = secure_filename(fs.filename or "")
    if not filename or not _allowed_proof(filename, fs.mimetype):
        raise ValidationError(
            "Payment file must be a PDF or image",
            {"paymentFile": "allowed: " + ", ".join(current_app.config.get("PAYMENT_PROOF_EXTENSIONS", ()))},
        )

    order_dir = os.path.join(current_app.config["UPLOAD_FOLDER"], "orders", order_id)
    os.makedirs(order_dir, exist_ok=True)
    stored_name = f"payment_{int(time.time() * 1000)}_{filename}"
    abs_path = os.path.join(order_dir, stored_name)
    fs.save(abs_path)
    return abs_path, f"uploads/orders/{order_id}/{stored_name}"


def remove_payment_proofs(order_id: str) -> None:
    order_dir = os.path.join(current_app.config["UPLOAD_FOLDER"], "orders", order_id)
    shutil.rmtree(order_dir, ignore_errors=True)


# --- order creation ------------------------------------------------------------

def create_order(checkout: CheckoutInput, payment_file=None, owner=None) -> PurchasedOrder:
    book_ids = sorted({it.book_id for it in checkout.items})
    books = {
        b.id: b
        for b in Book.query.filter(Book.id.in_(book_ids), Book.status == "active").all()
    }
    missing = [bid for bid in book_ids if bid not in books]
    if missing:
        raise ValidationError("Some books are not available", {"books": missing})

    settings = PaymentSettings.current()
    if not settings.is_enabled(checkout.payment_method):
        raise ValidationError(
            f"Payment method '{checkout.payment_method}' is currently disabled",
            {"paymentMethod": "disabled"},
        )
    info = settings.instructions_for(checkout.payment_method)

    order = PurchasedOrder(
        order_id=next_order_id(),
        user_id=getattr(owner, "id", None),
        customer_name=checkout.name,
        customer_email=checkout.email,
        customer_phone=checkout.phone,
        billing_address=checkout.billing_address,
        payment_method=checkout.payment_method,
        payment_instructions=info["instructions"],
        status="pending",
        order_type=checkout.order_type,
        shipping_enabled=checkout.shipping_enabled,
        shipping_address=checkout.shipping_address,
        shipping_cost=settings.shipping_cost if checkout.shipping_enabled else None,
        notes=checkout.notes,
    )
    if checkout.payment_method == "fbx":
        order.bank_name = info.get("bankName")
        order.bank_account_number = info.get("accountNumber")
        order.bank_account_holder = info.get("accountHolder")
    else:
        order.epayum_link = info.get("link")

    # prices and titles are frozen from the catalog, never from the request
    for it in checkout.items:
        book = books[it.book_id]
        order.lines.append(
            OrderLine(book_id=book.id, title=book.title_en, quantity=it.quantity, price=book.selling_price)
        )

    stored_path = None
    if payment_file is not None and payment_file.filename:
        stored_path, order.payment_file = store_payment_proof(payment_file, order.order_id)

    db.session.add(order)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        if stored_path:
            remove_payment_proofs(order.order_id)
        raise

    current_app.logger.info(
        "Order %s created: %s, total %s, method %s",
        order.order_id, order.order_summary, order.total, order.payment_method,
    )
    send_order_confirmation(order)
    notify_owner_new_order(order)
    return order
