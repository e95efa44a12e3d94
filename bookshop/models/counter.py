# bookshop/models/counter.py
from sqlalchemy.exc import IntegrityError

from bookshop.extensions import db

ORDER_ID_SEQUENCE = "orderId"
ORDER_ID_PREFIX = "ORD-"
ORDER_ID_WIDTH = 5


class Counter(db.Model):
    """One row per named sequence; `seq` is only ever changed by the database."""

    __tablename__ = "order_counter"

    name = db.Column(db.String(64), primary_key=True)
    seq = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Counter {self.name}={self.seq}>"


def next_sequence(name: str) -> int:
    """
    Increment the counter row `name` and return the new value.

    The increment runs in the database (seq = seq + 1), so the row stays
    locked until the caller's transaction ends and no two callers can see
    the same value. Missing rows are created on first use.
    """
    updated = db.session.execute(
        db.text("UPDATE order_counter SET seq = seq + 1 WHERE name = :name"),
        {"name": name},
    )
    if updated.rowcount == 0:
        try:
            with db.session.begin_nested():
                db.session.execute(
                    db.text("INSERT INTO order_counter (name, seq) VALUES (:name, 1)"),
                    {"name": name},
                )
        except IntegrityError:
            # another transaction created the row first
            return next_sequence(name)

    return db.session.execute(
        db.text("SELECT seq FROM order_counter WHERE name = :name"),
        {"name": name},
    ).scalar_one()


def format_order_id(seq: int) -> str:
    return f"{ORDER_ID_PREFIX}{seq:0{ORDER_ID_WIDTH}d}"


def next_order_id() -> str:
    """Hand out the next human readable order id, e.g. ORD-00042."""
    return format_order_id(next_sequence(ORDER_ID_SEQUENCE))
