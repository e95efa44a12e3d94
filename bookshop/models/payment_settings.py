# bookshop/models/payment_settings.py
from datetime import datetime
from decimal import Decimal

from bookshop.extensions import db

METHOD_LABELS = {
    "epayum": "ePay UM",
    "fbx": "FBX Bank Transfer",
}


class PaymentSettings(db.Model):
    """Single row holding the payment instructions shown at checkout."""

    __tablename__ = "payment_settings"

    id = db.Column(db.Integer, primary_key=True)

    epayum_enabled = db.Column(db.Boolean, nullable=False, default=True)
    epayum_account_number = db.Column(db.String(64), default="157223402785")
    epayum_account_name = db.Column(db.String(120), default="Tamil Literature Society")
    epayum_bank_name = db.Column(db.String(120), default="University Malaya ePay")
    epayum_link = db.Column(db.String(255), default="")
    epayum_instructions = db.Column(
        db.Text, default="Transfer the amount to the ePay account and upload the transaction proof."
    )

    fbx_enabled = db.Column(db.Boolean, nullable=False, default=True)
    fbx_account_number = db.Column(db.String(64), default="157223402785")
    fbx_account_name = db.Column(db.String(120), default="Tamil Literature Society")
    fbx_bank_name = db.Column(db.String(120), default="Maybank")
    fbx_instructions = db.Column(
        db.Text, default="Transfer the amount to the FBX account and upload the transaction proof."
    )

    currency = db.Column(db.String(3), nullable=False, default="MYR")
    shipping_cost = db.Column(db.Numeric(10, 2), nullable=False, default=Decimal("10.00"))

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    EDITABLE_FIELDS = (
        "epayum_enabled", "epayum_account_number", "epayum_account_name", "epayum_bank_name",
        "epayum_link", "epayum_instructions",
        "fbx_enabled", "fbx_account_number", "fbx_account_name", "fbx_bank_name", "fbx_instructions",
        "currency", "shipping_cost",
    )

    @classmethod
    def current(cls) -> "PaymentSettings":
        """Return the settings row, creating it with defaults on first use."""
        settings = cls.query.order_by(cls.id.asc()).first()
        if settings is None:
            settings = cls()
            db.session.add(settings)
            db.session.flush()
        return settings

    def is_enabled(self, method: str) -> bool:
        return bool(getattr(self, f"{method}_enabled", False))

    def instructions_for(self, method: str) -> dict:
        """Instructions + bank details copied onto an order for `method`."""
        info = {
            "instructions": getattr(self, f"{method}_instructions", None) or "",
            "bankName": getattr(self, f"{method}_bank_name", None),
            "accountNumber": getattr(self, f"{method}_account_number", None),
            "accountHolder": getattr(self, f"{method}_account_name", None),
        }
        if method == "epayum":
            info["link"] = self.epayum_link or None
        return info

    def active_methods(self) -> list[dict]:
        out = []
        for method, label in METHOD_LABELS.items():
            if not self.is_enabled(method):
                continue
            out.append({"type": method, "name": label, **self.instructions_for(method)})
        return out

    def __repr__(self):
        return f"<PaymentSettings {self.currency} shipping={self.shipping_cost}>"
