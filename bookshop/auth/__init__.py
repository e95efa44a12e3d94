# bookshop/auth/__init__.py
from .login_routes import admin_required, auth_bp

__all__ = ["admin_required", "auth_bp"]
