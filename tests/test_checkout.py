import io
import os
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from werkzeug.datastructures import FileStorage, MultiDict

from bookshop.errors import ValidationError
from bookshop.extensions import db, mail
from bookshop.models import PurchasedOrder
from bookshop.services.checkout import CheckoutInput, LineRequest, create_order


def _payload(**overrides):
    data = {
        "customer": {"name": "Kavitha Raman", "email": " Kavitha@Example.com ", "phone": "+60 12-345 6789"},
        "items": [{"bookId": 1, "quantity": 2}],
        "paymentMethod": "fbx",
    }
    data.update(overrides)
    return data


def test_from_request_parses_nested_json():
    checkout = CheckoutInput.from_request(
        _payload(shipping={"enabled": True, "address": "12 Jalan Ampang"}, orderType="cart_checkout")
    )
    assert checkout.name == "Kavitha Raman"
    assert checkout.email == "kavitha@example.com"
    assert checkout.items == [LineRequest(book_id=1, quantity=2)]
    assert checkout.shipping_enabled is True
    assert checkout.shipping_address == "12 Jalan Ampang"
    assert checkout.order_type == "cart_checkout"


def test_from_request_parses_flat_form_fields():
    form = MultiDict({
        "userName": "Arun",
        "userEmail": "arun@example.com",
        "userPhone": "0123456789",
        "books": '[{"bookId": 3, "quantity": 1}, {"bookId": 2, "quantity": 4}]',
        "paymentMethod": "epayum",
        "shippingEnabled": "true",
        "shippingAddress": "5 Lorong Maarof, Bangsar",
        "billing": '{"address": "5 Lorong Maarof", "city": "Kuala Lumpur", "postalCode": "59000"}',
    })
    checkout = CheckoutInput.from_request(form)
    assert [it.book_id for it in checkout.items] == [3, 2]
    assert checkout.payment_method == "epayum"
    assert checkout.shipping_enabled is True
    assert checkout.billing_address == "5 Lorong Maarof, Kuala Lumpur, 59000"


def test_from_request_lists_every_bad_field():
    with pytest.raises(ValidationError) as info:
        CheckoutInput.from_request({
            "customer": {"name": "", "email": "not-an-email", "phone": "12"},
            "items": [{"bookId": 1, "quantity": 0}, {"quantity": 1}],
            "paymentMethod": "cash",
            "shipping": {"enabled": True},
        })

    errors = info.value.errors
    assert set(errors) == {
        "customer.name", "customer.email", "customer.phone",
        "items[0].quantity", "items[1].bookId", "paymentMethod", "shipping.address",
    }


def test_from_request_requires_items():
    with pytest.raises(ValidationError) as info:
        CheckoutInput.from_request(_payload(items=[]))
    assert "items" in info.value.errors


def test_quantity_above_limit_is_rejected():
    with pytest.raises(ValidationError) as info:
        CheckoutInput.from_request(_payload(items=[{"bookId": 1, "quantity": 101}]))
    assert "items[0].quantity" in info.value.errors


def test_create_order_snapshots_catalog_prices(books, settings):
    checkout = CheckoutInput.from_request(_payload(items=[
        {"bookId": books[0].id, "quantity": 2, "price": 1},
        {"bookId": books[1].id, "quantity": 1},
    ]))
    order = create_order(checkout)

    assert order.order_id == "ORD-00001"
    assert order.status == "pending"
    assert order.verification_status == "pending"
    assert [(line.title, line.price) for line in order.lines] == [
        ("Thirukkural", Decimal("25.00")),
        ("Silappathikaram", Decimal("32.50")),
    ]
    assert order.subtotal == Decimal("82.50")
    assert order.total == Decimal("82.50")
    assert order.total_items == 3
    assert order.order_summary == "3 item(s): Thirukkural, Silappathikaram"


def test_create_order_copies_payment_details(make_order, settings):
    fbx = make_order(payment_method="fbx")
    assert fbx.bank_name == settings.fbx_bank_name
    assert fbx.bank_account_number == settings.fbx_account_number
    assert fbx.payment_instructions == settings.fbx_instructions

    epay = make_order(payment_method="epayum")
    assert epay.epayum_link == "https://epay.example/pay"
    assert epay.bank_name is None


def test_create_order_uses_settings_shipping_cost(make_order, settings):
    settings.shipping_cost = Decimal("8.00")
    db.session.commit()

    order = make_order(shipping=True)
    assert order.shipping_cost == Decimal("8.00")
    assert order.shipping_total == Decimal("8.00")
    assert order.total == Decimal("58.00")


def test_inactive_book_is_not_available(books, settings):
    checkout = CheckoutInput.from_request(_payload(items=[{"bookId": books[3].id, "quantity": 1}]))
    with pytest.raises(ValidationError) as info:
        create_order(checkout)
    assert info.value.errors == {"books": [books[3].id]}


def test_disabled_payment_method_is_refused(books, settings):
    settings.epayum_enabled = False
    db.session.commit()

    checkout = CheckoutInput.from_request(_payload(paymentMethod="epayum"))
    with pytest.raises(ValidationError):
        create_order(checkout)


def test_payment_proof_is_stored_under_order_folder(app, books, settings):
    proof = FileStorage(stream=io.BytesIO(b"%PDF-1.4 proof"), filename="bank slip.pdf",
                        content_type="application/pdf")
    order = create_order(CheckoutInput.from_request(_payload()), payment_file=proof)

    assert order.payment_file.startswith(f"uploads/orders/{order.order_id}/payment_")
    assert order.payment_file.endswith("_bank_slip.pdf")
    stored = os.path.join(app.config["UPLOAD_FOLDER"], order.payment_file[len("uploads/"):])
    assert os.path.isfile(stored)


def test_payment_proof_with_wrong_type_is_rejected(books, settings):
    proof = FileStorage(stream=io.BytesIO(b"MZ"), filename="setup.exe",
                        content_type="application/octet-stream")
    with pytest.raises(ValidationError):
        create_order(CheckoutInput.from_request(_payload()), payment_file=proof)
    assert PurchasedOrder.query.count() == 0


def test_failed_commit_removes_stored_proof(app, books, settings, monkeypatch):
    proof = FileStorage(stream=io.BytesIO(b"\x89PNG"), filename="slip.png", content_type="image/png")

    def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session(), "commit", broken_commit)
    with pytest.raises(OperationalError):
        create_order(CheckoutInput.from_request(_payload()), payment_file=proof)
    monkeypatch.undo()

    order_dir = os.path.join(app.config["UPLOAD_FOLDER"], "orders", "ORD-00001")
    assert not os.path.exists(order_dir)
    assert PurchasedOrder.query.count() == 0


def test_checkout_sends_customer_and_owner_mail(books, settings):
    with mail.record_messages() as outbox:
        order = create_order(CheckoutInput.from_request(_payload()))

    assert [m.recipients for m in outbox] == [["kavitha@example.com"], ["owner@bookshop.test"]]
    assert order.order_id in outbox[0].subject
