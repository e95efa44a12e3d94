# bookshop/errors.py
"""
Error taxonomy of the order API and the Flask handlers that turn it into JSON.

Every response body produced here has the shape
``{"success": false, "message": ..., <extra payload>}``.
"""
from __future__ import annotations

from flask import jsonify
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException

from bookshop.extensions import db


class BookshopError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, payload: dict | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.payload = dict(payload or {})

    def to_dict(self) -> dict:
        body = {"success": False, "message": self.message}
        body.update(self.payload)
        return body


class ValidationError(BookshopError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, errors: dict | None = None):
        super().__init__(message, {"errors": errors} if errors else None)
        self.errors = dict(errors or {})


class ImmutableFieldError(ValidationError):
    default_message = "Field cannot be changed once set"


class IllegalTransitionError(BookshopError):
    status_code = 400

    def __init__(self, current: str, requested: str, valid_transitions):
        valid = list(valid_transitions)
        super().__init__(
            f"Cannot transition from {current} to {requested}",
            {"validTransitions": valid},
        )
        self.current = current
        self.requested = requested
        self.valid_transitions = valid


class PaymentAlreadyProcessedError(BookshopError):
    status_code = 400
    default_message = "Order payment has already been processed"


class AuthenticationError(BookshopError):
    status_code = 401
    default_message = "Unauthorized"


class AuthorizationError(BookshopError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(BookshopError):
    status_code = 404
    default_message = "Not found"


class ConcurrentUpdateError(BookshopError):
    status_code = 409
    default_message = "Order was modified by another request, reload and retry"


def register_error_handlers(app):
    @app.errorhandler(BookshopError)
    def _handle_bookshop_error(exc: BookshopError):
        # a failed flush leaves the session unusable until rolled back
        db.session.rollback()
        if exc.status_code >= 500:
            app.logger.error("%s: %s", type(exc).__name__, exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(StaleDataError)
    def _handle_stale_row(exc: StaleDataError):
        # version mismatch raised by a flush outside transitions.save()
        db.session.rollback()
        app.logger.warning("Stale row: %s", exc)
        error = ConcurrentUpdateError()
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(exc: HTTPException):
        body = {"success": False, "message": exc.description or exc.name}
        response = jsonify(body)
        if exc.code == 405 and getattr(exc, "valid_methods", None):
            response.headers["Allow"] = ", ".join(exc.valid_methods)
        return response, exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        body = {"success": False, "message": "Internal server error"}
        if app.config.get("EXPOSE_ERRORS"):
            body["error"] = str(exc)
        return jsonify(body), 500
