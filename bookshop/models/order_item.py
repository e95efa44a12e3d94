# bookshop/models/order_item.py
from sqlalchemy.orm import validates

from bookshop.errors import ValidationError
from bookshop.extensions import db

MIN_QUANTITY = 1
MAX_QUANTITY = 100


class OrderLine(db.Model):
    """One book of an order, with title and price frozen at purchase time."""

    __tablename__ = "order_line"

    id = db.Column(db.Integer, primary_key=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("purchased_order.id"), nullable=False, index=True)
    book_id = db.Column(db.Integer, db.ForeignKey("book.id"), nullable=False)

    title = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    book = db.relationship("Book", lazy="joined")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        try:
            qty = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be a whole number", {"quantity": "not a number"})
        if qty < MIN_QUANTITY or qty > MAX_QUANTITY:
            raise ValidationError(
                f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}",
                {"quantity": f"out of range {MIN_QUANTITY}..{MAX_QUANTITY}"},
            )
        return qty

    @validates("price")
    def _validate_price(self, key, value):
        if value is None or value < 0:
            raise ValidationError("Price cannot be negative", {"price": "must be >= 0"})
        return value

    def __repr__(self):
        return f"<OrderLine {self.title} x{self.quantity}>"
