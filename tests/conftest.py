"""Pytest fixtures for the bookshop order API."""

from decimal import Decimal

import pytest
from flask import g

from bookshop.app import create_app
from bookshop.extensions import db
from bookshop.models import Book, PaymentSettings, User
from bookshop.services.checkout import CheckoutInput, LineRequest, create_order


class TestingConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    UPLOAD_FOLDER = None
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    PAYMENT_PROOF_EXTENSIONS = ("pdf", "jpg", "jpeg", "png")
    DEFAULT_SHIPPING_COST = "10.00"
    CURRENCY = "MYR"
    ORDER_NOTIFY_EMAIL = "owner@bookshop.test"
    ORDERS_PER_PAGE = 10
    CORS_ORIGINS = ["http://localhost:3000"]
    EXPOSE_ERRORS = False
    MAIL_SERVER = "localhost"
    MAIL_PORT = 25
    MAIL_USE_SSL = False
    MAIL_USE_TLS = False
    MAIL_DEFAULT_SENDER = "shop@bookshop.test"
    MAIL_SUPPRESS_SEND = True
    BCRYPT_LOG_ROUNDS = 4


@pytest.fixture
def app(tmp_path):
    """App bound to a fresh in-memory database."""
    app = create_app(TestingConfig, UPLOAD_FOLDER=str(tmp_path / "uploads"))

    @app.before_request
    def _reload_login_user():
        # requests share the app context held below, so g outlives a request
        g.pop("_login_user", None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def file_app(tmp_path):
    """App on a SQLite file, for tests that need several connections."""
    app = create_app(
        TestingConfig,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'orders.db'}",
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
    )
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def books(app):
    """Three active books and one withdrawn from sale."""
    rows = [
        Book(title_en="Thirukkural", title_ta="திருக்குறள்", author="Thiruvalluvar", price=Decimal("25.00")),
        Book(title_en="Silappathikaram", author="Ilango Adigal", price=Decimal("40.00"),
             discounted_price=Decimal("32.50")),
        Book(title_en="Ponniyin Selvan", author="Kalki", price=Decimal("12.90")),
        Book(title_en="Out of print", price=Decimal("5.00"), status="inactive"),
    ]
    db.session.add_all(rows)
    db.session.commit()
    return rows


@pytest.fixture
def settings(app):
    s = PaymentSettings.current()
    s.epayum_link = "https://epay.example/pay"
    db.session.commit()
    return s


def _user(username, email, is_admin=False, password="secret123"):
    u = User(username=username, email=email, name=username.title(), is_admin=is_admin)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def admin(app):
    return _user("admin", "admin@bookshop.test", is_admin=True)


@pytest.fixture
def customer(app):
    return _user("meena", "meena@example.com")


@pytest.fixture
def other_customer(app):
    return _user("arun", "arun@example.com")


@pytest.fixture
def login(client):
    def _login(username, password="secret123"):
        return client.post("/api/auth/login", json={"username": username, "password": password})

    return _login


@pytest.fixture
def admin_client(client, admin, login):
    assert login("admin").status_code == 200
    return client


@pytest.fixture
def customer_client(client, customer, login):
    assert login("meena").status_code == 200
    return client


@pytest.fixture
def make_order(app, books, settings):
    """Create an order through the checkout service."""

    def _make(items=None, payment_method="fbx", shipping=False, email="buyer@example.com",
              owner=None, name="Kavitha Raman"):
        checkout = CheckoutInput(
            name=name,
            email=email,
            phone="+60 12-345 6789",
            items=items or [LineRequest(book_id=books[0].id, quantity=2)],
            payment_method=payment_method,
            shipping_enabled=shipping,
            shipping_address="12 Jalan Ampang, Kuala Lumpur" if shipping else None,
        )
        return create_order(checkout, owner=owner)

    return _make
