from datetime import datetime

from bookshop.extensions import db


class StatusHistoryEntry(db.Model):
    __tablename__ = "order_status_history"

    id = db.Column(db.Integer, primary_key=True)
    order_pk = db.Column(db.Integer, db.ForeignKey("purchased_order.id"), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_by_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    updated_by = db.relationship("User")

    def __repr__(self):
        return f"<StatusHistoryEntry {self.status} @ {self.timestamp}>"
