# bookshop/models/order.py
from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session, validates

from bookshop.errors import ImmutableFieldError, ValidationError
from bookshop.extensions import db
from bookshop.models.order_item import OrderLine
from bookshop.models.status_history import StatusHistoryEntry
from bookshop.services.totals import DEFAULT_SHIPPING_COST, compute_totals

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded")
TERMINAL_STATUSES = ("cancelled", "refunded")
INITIAL_STATUS = "pending"

PAYMENT_METHODS = ("epayum", "fbx")
VERIFICATION_STATUSES = ("pending", "verified", "rejected")
SHIPPING_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
ORDER_TYPES = ("buy_now", "cart_checkout")


def _check_choice(field: str, value, choices):
    if value not in choices:
        raise ValidationError(
            f"Invalid {field} '{value}'",
            {field: f"must be one of: {', '.join(choices)}"},
        )
    return value


class PurchasedOrder(db.Model):
    __tablename__ = "purchased_order"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(16), unique=True, index=True, nullable=False)

    # buyer account (optional) + contact snapshot taken at checkout
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(20), nullable=False)
    billing_address = db.Column(db.Text, nullable=True)

    # payment
    payment_method = db.Column(db.String(16), nullable=False, index=True)
    payment_instructions = db.Column(db.Text, nullable=False, default="")
    payment_file = db.Column(db.String(255), nullable=True)
    bank_name = db.Column(db.String(120), nullable=True)
    bank_account_number = db.Column(db.String(64), nullable=True)
    bank_account_holder = db.Column(db.String(120), nullable=True)
    epayum_link = db.Column(db.String(255), nullable=True)
    transaction_id = db.Column(db.String(120), nullable=True)
    verification_status = db.Column(db.String(16), nullable=False, default="pending")
    verified_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    # shipping; shipping_cost None = not quoted, default applies
    shipping_enabled = db.Column(db.Boolean, nullable=False, default=False)
    shipping_address = db.Column(db.String(500), nullable=True)
    shipping_cost = db.Column(db.Numeric(10, 2), nullable=True)
    carrier = db.Column(db.String(80), nullable=True)
    tracking_number = db.Column(db.String(120), nullable=True)
    shipping_status = db.Column(db.String(16), nullable=False, default="pending")
    shipped_at = db.Column(db.DateTime, nullable=True)
    delivered_at = db.Column(db.DateTime, nullable=True)

    # totals, always recomputed before flush
    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    shipping_total = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=INITIAL_STATUS, index=True)
    order_type = db.Column(db.String(16), nullable=False, default="buy_now")
    notes = db.Column(db.String(1000), nullable=True)
    admin_notes = db.Column(db.String(1000), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    version = db.Column(db.Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version}

    lines = db.relationship(
        OrderLine,
        backref="order",
        order_by=OrderLine.id,
        cascade="all, delete-orphan",
    )
    status_history = db.relationship(
        StatusHistoryEntry,
        backref="order",
        order_by=StatusHistoryEntry.id,
        cascade="all, delete-orphan",
    )
    owner = db.relationship("User", foreign_keys=[user_id])
    verified_by = db.relationship("User", foreign_keys=[verified_by_id])

    # --- validators --------------------------------------------------------
    @validates("order_id")
    def _validate_order_id(self, key, value):
        if self.order_id is not None and value != self.order_id:
            raise ImmutableFieldError(f"orderId {self.order_id} cannot be changed")
        return value

    @validates("status")
    def _validate_status(self, key, value):
        return _check_choice("status", value, ORDER_STATUSES)

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        return _check_choice("paymentMethod", value, PAYMENT_METHODS)

    @validates("verification_status")
    def _validate_verification_status(self, key, value):
        return _check_choice("verificationStatus", value, VERIFICATION_STATUSES)

    @validates("shipping_status")
    def _validate_shipping_status(self, key, value):
        return _check_choice("shippingStatus", value, SHIPPING_STATUSES)

    @validates("order_type")
    def _validate_order_type(self, key, value):
        return _check_choice("orderType", value, ORDER_TYPES)

    @validates("customer_email")
    def _normalize_email(self, key, value):
        return (value or "").strip().lower()

    @validates("shipping_cost")
    def _validate_shipping_cost(self, key, value):
        if value is not None and Decimal(value) < 0:
            raise ValidationError("Shipping cost cannot be negative", {"shippingCost": "must be >= 0"})
        return value

    # --- derived -----------------------------------------------------------
    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def order_summary(self) -> str:
        titles = ", ".join(line.title for line in self.lines)
        return f"{self.total_items} item(s): {titles}"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def recompute_totals(self, default_shipping_cost=DEFAULT_SHIPPING_COST) -> None:
        totals = compute_totals(
            self.lines,
            shipping_enabled=bool(self.shipping_enabled),
            shipping_cost=self.shipping_cost,
            default_shipping_cost=default_shipping_cost,
        )
        for line, line_total in zip(self.lines, totals.line_subtotals):
            line.subtotal = line_total
        self.subtotal = totals.subtotal
        self.shipping_total = totals.shipping_cost
        self.total = totals.total

    def __repr__(self):
        return f"<PurchasedOrder {self.order_id} {self.customer_name} {self.status}>"


def _default_shipping_cost() -> Decimal:
    if not has_app_context():
        return DEFAULT_SHIPPING_COST
    raw = current_app.config.get("DEFAULT_SHIPPING_COST", DEFAULT_SHIPPING_COST)
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        return DEFAULT_SHIPPING_COST


@event.listens_for(Session, "before_flush")
def _recompute_order_totals(session, flush_context, instances):
    """Totals never come from the caller: rebuild them for every touched order."""
    touched = set()
    for obj in list(session.new) + list(session.dirty):
        if isinstance(obj, PurchasedOrder):
            touched.add(obj)
        elif isinstance(obj, OrderLine) and obj.order is not None:
            touched.add(obj.order)

    if not touched:
        return

    default_cost = _default_shipping_cost()
    for order in touched:
        if order in session.deleted:
            continue
        if order in session.new and order.status in TERMINAL_STATUSES:
            raise ValidationError(f"An order cannot be created with status '{order.status}'")
        if order.shipping_enabled and not (order.shipping_address or "").strip():
            raise ValidationError(
                "Shipping address is required when shipping is enabled",
                {"shippingAddress": "required"},
            )
        order.recompute_totals(default_cost)
