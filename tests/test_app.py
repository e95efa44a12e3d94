from flask import Flask
from sqlalchemy.orm.exc import StaleDataError

from bookshop.extensions import init_mail


def test_stale_row_outside_save_is_a_conflict(app, client):
    @app.get("/api/_stale")
    def _stale():
        raise StaleDataError("UPDATE statement on table 'purchased_order' expected to update 1 row(s)")

    res = client.get("/api/_stale")

    assert res.status_code == 409
    assert res.get_json() == {
        "success": False,
        "message": "Order was modified by another request, reload and retry",
    }


def test_unknown_route_returns_json(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json()["success"] is False


def test_init_mail_normalises_settings():
    app = Flask(__name__)
    app.config.update(
        MAIL_SERVER=" smtp://mail.bookshop.test/ ",
        MAIL_USE_SSL=True,
        MAIL_USE_TLS=True,
        MAIL_USERNAME="orders@bookshop.test",
        MAIL_DEFAULT_SENDER=None,
        MAIL_SUPPRESS_SEND=True,
    )

    init_mail(app)

    assert app.config["MAIL_SERVER"] == "mail.bookshop.test"
    assert app.config["MAIL_USE_TLS"] is False
    assert app.config["MAIL_DEFAULT_SENDER"] == "orders@bookshop.test"
    assert app.extensions["mail"] is not None


def test_init_mail_falls_back_to_localhost():
    app = Flask(__name__)
    app.config.update(MAIL_SERVER="", MAIL_SUPPRESS_SEND=True)
    init_mail(app)
    assert app.config["MAIL_SERVER"] == "localhost"
