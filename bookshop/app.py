# bookshop/app.py
import logging
import os

# Show INFO logs even outside the werkzeug access log
logging.basicConfig(level=logging.INFO)

from flask import Flask, send_from_directory
from bookshop.config import Config

# Extensions
from bookshop.extensions import db, login_manager, bcrypt, migrate, cors, init_mail
from bookshop.errors import register_error_handlers

# Blueprints
from bookshop.auth import admin_required, auth_bp
from bookshop.api.routes.order_routes import order_bp
from bookshop.api.routes.payment_routes import payment_bp
from bookshop.cli import register_cli
from bookshop import models as _models  # noqa: F401


def create_app(config_object=Config, **overrides) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    # Init extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(__file__), "migrations"))
    login_manager.init_app(app)
    bcrypt.init_app(app)
    init_mail(app)

    cors.init_app(
        app,
        resources={
            r"/api/*": {
                "origins": app.config.get("CORS_ORIGINS") or [],
                "supports_credentials": True,
            }
        },
    )

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(order_bp)
    app.register_blueprint(payment_bp)

    register_cli(app)

    # Payment proofs are stored as "uploads/orders/<orderId>/<file>"
    @app.get("/uploads/<path:filename>")
    @admin_required
    def uploaded_file(filename):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.get("/api/health")
    def health():
        return {"success": True, "status": "ok"}, 200

    app.logger.info("Bookshop API ready (db=%s)", app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
