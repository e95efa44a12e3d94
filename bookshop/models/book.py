from datetime import datetime
from decimal import Decimal

from bookshop.extensions import db


class Book(db.Model):
    __tablename__ = "book"

    id = db.Column(db.Integer, primary_key=True)
    # bilingual catalog: orders snapshot the English title
    title_en = db.Column(db.String(255), nullable=False)
    title_ta = db.Column(db.String(255), nullable=True)
    author = db.Column(db.String(150), nullable=True)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    discounted_price = db.Column(db.Numeric(10, 2), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")  # active | inactive

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def selling_price(self) -> Decimal:
        """Current price a buyer pays: the discount when one is set."""
        if self.discounted_price is not None:
            return Decimal(self.discounted_price)
        return Decimal(self.price)

    def __repr__(self) -> str:
        return f"<Book {self.title_en}>"
