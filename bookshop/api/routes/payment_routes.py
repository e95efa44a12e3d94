# bookshop/api/routes/payment_routes.py
from decimal import Decimal, InvalidOperation

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from bookshop.auth import admin_required
from bookshop.errors import ValidationError
from bookshop.extensions import db
from bookshop.models import PaymentSettings

payment_bp = Blueprint("payment_bp", __name__, url_prefix="/api/payment-settings")

# camelCase request keys -> column names
_FIELD_ALIASES = {
    "epayumEnabled": "epayum_enabled",
    "epayumAccountNumber": "epayum_account_number",
    "epayumAccountName": "epayum_account_name",
    "epayumBankName": "epayum_bank_name",
    "epayumLink": "epayum_link",
    "epayumInstructions": "epayum_instructions",
    "fbxEnabled": "fbx_enabled",
    "fbxAccountNumber": "fbx_account_number",
    "fbxAccountName": "fbx_account_name",
    "fbxBankName": "fbx_bank_name",
    "fbxInstructions": "fbx_instructions",
    "currency": "currency",
    "shippingCost": "shipping_cost",
}


def _settings_dict(s: PaymentSettings, admin: bool = False) -> dict:
    out = {
        "paymentMethods": s.active_methods(),
        "currency": s.currency,
        "shippingCost": float(s.shipping_cost) if s.shipping_cost is not None else None,
    }
    if admin:
        out["settings"] = {alias: getattr(s, col) for alias, col in _FIELD_ALIASES.items()}
        out["settings"]["shippingCost"] = out["shippingCost"]
        out["updatedAt"] = s.updated_at.isoformat() if s.updated_at else None
    return out


@payment_bp.get("")
def get_payment_settings():
    settings = PaymentSettings.current()
    db.session.commit()
    admin = current_user.is_authenticated and current_user.is_admin
    return jsonify({"success": True, "data": _settings_dict(settings, admin=admin)}), 200


@payment_bp.put("")
@admin_required
def update_payment_settings():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    settings = PaymentSettings.current()

    errors = {}
    for key, value in data.items():
        col = _FIELD_ALIASES.get(key, key)
        if col not in PaymentSettings.EDITABLE_FIELDS:
            continue
        if col.endswith("_enabled"):
            value = bool(value)
        elif col == "shipping_cost":
            try:
                value = Decimal(str(value)).quantize(Decimal("0.01"))
            except InvalidOperation:
                errors[key] = "not a number"
                continue
            if value < 0:
                errors[key] = "cannot be negative"
                continue
        elif col == "currency":
            value = str(value or "").strip().upper()
            if len(value) != 3:
                errors[key] = "3-letter currency code required"
                continue
        else:
            value = (str(value).strip() if value is not None else None) or None
        setattr(settings, col, value)

    if errors:
        raise ValidationError("Invalid payment settings", errors)

    if not settings.epayum_enabled and not settings.fbx_enabled:
        raise ValidationError("At least one payment method must stay enabled")

    db.session.commit()
    current_app.logger.info("Payment settings updated by %s", current_user.username)
    return jsonify({
        "success": True,
        "message": "Payment settings updated",
        "data": _settings_dict(settings, admin=True),
    }), 200
