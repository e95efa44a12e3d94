import pytest

from bookshop.errors import ConcurrentUpdateError, IllegalTransitionError, PaymentAlreadyProcessedError
from bookshop.extensions import db, mail
from bookshop.models import PurchasedOrder
from bookshop.services import transitions
from bookshop.services.payments import reject_payment, verify_payment


def test_verify_confirms_order_and_stamps_payment(make_order, admin):
    order = make_order()

    verify_payment(order, admin, transaction_id="TXN-778899", notes="Receipt matches")

    assert order.verification_status == "verified"
    assert order.verified_by_id == admin.id
    assert order.verified_at is not None
    assert order.transaction_id == "TXN-778899"
    assert order.status == "confirmed"
    assert [(h.status, h.notes) for h in order.status_history] == [("confirmed", "Receipt matches")]


def test_reject_cancels_order_and_records_reason(make_order, admin):
    order = make_order()

    reject_payment(order, admin, "Amount does not match")

    assert order.verification_status == "rejected"
    assert order.rejection_reason == "Amount does not match"
    assert order.status == "cancelled"
    assert order.status_history[-1].notes == "Payment rejected: Amount does not match"


def test_reject_after_verify_is_refused(make_order, admin):
    order = make_order()
    verify_payment(order, admin)

    with pytest.raises(PaymentAlreadyProcessedError):
        reject_payment(order, admin, "changed my mind")
    assert order.status == "confirmed"
    assert order.verification_status == "verified"


def test_verify_after_reject_is_refused(make_order, admin):
    order = make_order()
    reject_payment(order, admin, None)

    with pytest.raises(PaymentAlreadyProcessedError):
        verify_payment(order, admin)
    assert order.status == "cancelled"
    assert order.verification_status == "rejected"


def test_verify_of_an_already_confirmed_order_adds_no_history(make_order, admin):
    order = make_order()
    transitions.confirm(order, admin)

    verify_payment(order, admin)

    assert order.verification_status == "verified"
    assert [h.status for h in order.status_history] == ["confirmed"]


def test_verify_leaves_payment_pending_when_order_cannot_be_confirmed(make_order, admin):
    order = make_order()
    transitions.cancel(order, admin)

    with pytest.raises(IllegalTransitionError):
        verify_payment(order, admin)
    assert order.verification_status == "pending"
    assert order.verified_by_id is None


def test_decision_emails_the_customer(make_order, admin):
    order = make_order(email="reader@example.com")
    with mail.record_messages() as outbox:
        verify_payment(order, admin)

    assert len(outbox) == 1
    assert outbox[0].recipients == ["reader@example.com"]
    assert order.order_id in outbox[0].subject


@pytest.mark.parametrize("decide", [
    lambda order, admin: verify_payment(order, admin, transaction_id="TXN-1"),
    lambda order, admin: reject_payment(order, admin, "Blurry receipt"),
])
def test_decision_on_stale_order_is_a_conflict(make_order, admin, decide):
    order = make_order()
    db.session.execute(
        db.text("UPDATE purchased_order SET version = version + 1 WHERE id = :id"),
        {"id": order.id},
    )

    with mail.record_messages() as outbox:
        with pytest.raises(ConcurrentUpdateError):
            decide(order, admin)

    fresh = db.session.get(PurchasedOrder, order.id)
    assert fresh.verification_status == "pending"
    assert fresh.status == "pending"
    assert outbox == []
