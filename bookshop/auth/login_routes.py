# bookshop/auth/login_routes.py
from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from bookshop.errors import AuthenticationError, AuthorizationError
from bookshop.extensions import login_manager
from bookshop.models.user import User

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@login_manager.unauthorized_handler
def _unauthorized():
    raise AuthenticationError("Authentication required")


def admin_required(view):
    """Like login_required, plus the admin flag."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthenticationError("Unauthorized - Admin access required")
        if not current_user.is_admin:
            raise AuthorizationError("Admin access required")
        return view(*args, **kwargs)

    return wrapper


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or request.form or {}
    username = (data.get("username") or data.get("email") or "").strip()
    password = data.get("password") or ""

    user = User.query.filter((User.username == username) | (User.email == username.lower())).first()
    if not user or not user.check_password(password):
        current_app.logger.info("Failed login for '%s'", username)
        raise AuthenticationError("Invalid credentials")

    login_user(user, remember=bool(data.get("remember")))
    return jsonify({"success": True, "data": user.to_public_dict()}), 200


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"success": True, "message": "Logged out"}), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify({"success": True, "data": current_user.to_public_dict()}), 200
