from decimal import Decimal

from bookshop.models import PaymentSettings


def test_public_settings_list_active_methods(client, settings):
    res = client.get("/api/payment-settings")

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert [m["type"] for m in data["paymentMethods"]] == ["epayum", "fbx"]
    assert data["paymentMethods"][0]["link"] == "https://epay.example/pay"
    assert data["currency"] == "MYR"
    assert data["shippingCost"] == 10.0
    assert "settings" not in data


def test_settings_row_is_created_on_first_read(client, app):
    assert PaymentSettings.query.count() == 0
    assert client.get("/api/payment-settings").status_code == 200
    assert PaymentSettings.query.count() == 1


def test_admin_updates_settings(admin_client, settings):
    res = admin_client.put(
        "/api/payment-settings",
        json={"fbxEnabled": False, "shippingCost": "12.5", "epayumInstructions": "Pay via ePay UM", "unknown": 1},
    )

    assert res.status_code == 200
    data = res.get_json()["data"]
    assert [m["type"] for m in data["paymentMethods"]] == ["epayum"]
    assert data["shippingCost"] == 12.5
    assert data["settings"]["epayumInstructions"] == "Pay via ePay UM"
    assert PaymentSettings.current().shipping_cost == Decimal("12.50")


def test_disabled_method_blocks_checkout(admin_client, books, settings):
    admin_client.put("/api/payment-settings", json={"fbxEnabled": False})

    res = admin_client.post("/api/orders", json={
        "customer": {"name": "Kavitha", "email": "kavitha@example.com", "phone": "0123456789"},
        "items": [{"bookId": books[0].id, "quantity": 1}],
        "paymentMethod": "fbx",
    })
    assert res.status_code == 400
    assert res.get_json()["errors"] == {"paymentMethod": "disabled"}


def test_cannot_disable_every_method(admin_client, settings):
    res = admin_client.put("/api/payment-settings", json={"fbxEnabled": False, "epayumEnabled": False})
    assert res.status_code == 400
    assert PaymentSettings.current().fbx_enabled is True


def test_invalid_values_are_reported(admin_client, settings):
    res = admin_client.put("/api/payment-settings", json={"shippingCost": "-1", "currency": "ringgit"})
    assert res.status_code == 400
    assert set(res.get_json()["errors"]) == {"shippingCost", "currency"}


def test_update_requires_admin(customer_client, settings):
    assert customer_client.put("/api/payment-settings", json={"currency": "USD"}).status_code == 403


def test_update_rejects_json_array(admin_client, settings):
    res = admin_client.put("/api/payment-settings", json=[{"currency": "USD"}])
    assert res.status_code == 400
    assert PaymentSettings.current().currency != "USD"
