import json
import time
from datetime import date

import pytest
import stripe

from discounts import get_registry
from integrations.calendar import CalendarError
from models.audit_log import AuditLog
from models.payment import Payment
from scheduling.slots import booking_row
from services.booking import confirm_payment, mark_payment_failed

from .conftest import WEBHOOK_SECRET, sign_payload

FRIDAY = "2025-07-18"


def booking_payload(**overrides):
    payload = {
        "name": "Mario Rossi",
        "email": "mario@example.com",
        "phone": "+39 333 1234567",
        "company": "Studio Rossi",
        "appointmentDate": FRIDAY,
        "appointmentTime": "09:00",
    }
    payload.update(overrides)
    return payload


def webhook(client, event_type, intent, secret=WEBHOOK_SECRET):
    body = json.dumps({
        "id": "evt_test",
        "object": "event",
        "type": event_type,
        "data": {"object": intent},
    })
    return client.post(
        "/api/stripe-webhook",
        data=body,
        headers={"Stripe-Signature": sign_payload(body, secret)},
        content_type="application/json",
    )


def paid(fake_stripe, intent_id):
    intent = fake_stripe["intents"][intent_id]
    intent["status"] = "succeeded"
    return intent


def test_create_intent_prices_discount_without_redeeming(app, client, fake_stripe):
    res = client.post("/api/create-payment-intent", json=booking_payload(discountCode="welcome10"))
    assert res.status_code == 200
    body = res.get_json()
    assert body["amount"] == 13500
    assert body["clientSecret"] == "pi_test_1_secret"
    assert body["discountInfo"]["discountAmount"] == 1500

    sent = fake_stripe["created"][0]
    assert sent["amount"] == 13500
    assert sent["currency"] == "eur"
    assert sent["metadata"]["discountCode"] == "WELCOME10"

    with app.app_context():
        payment = Payment.query.filter_by(stripe_payment_intent_id="pi_test_1").one()
        assert payment.status == "INIT"
        assert payment.appointment_date == date(2025, 7, 18)
        assert get_registry().get("WELCOME10").used_count == 0


def test_create_intent_without_discount(client, fake_stripe):
    body = client.post("/api/create-payment-intent", json=booking_payload()).get_json()
    assert body["amount"] == 15000
    assert body["discountInfo"] is None


@pytest.mark.parametrize("overrides", [
    {"email": ""},
    {"name": ""},
    {"email": "mario-at-example"},
    {"appointmentDate": "18/07/2025"},
    {"appointmentTime": "9am"},
])
def test_create_intent_rejects_bad_input(client, fake_stripe, overrides):
    assert client.post("/api/create-payment-intent", json=booking_payload(**overrides)).status_code == 400
    assert fake_stripe["created"] == []


def test_create_intent_rejects_invalid_code(client, fake_stripe):
    res = client.post("/api/create-payment-intent", json=booking_payload(discountCode="BOGUS123"))
    assert res.status_code == 400
    assert res.get_json()["error_code"] == "code_not_found"
    assert fake_stripe["created"] == []


def test_create_intent_for_booked_slot_conflicts(client, row_store, fake_stripe):
    row_store.append(booking_row("", "Anna", "anna@example.com", "", "", date(2025, 7, 18),
                                 "09:00", "€150.00", "None", "pi_old", "Confermata"))
    res = client.post("/api/create-payment-intent", json=booking_payload())
    assert res.status_code == 409
    assert res.get_json()["error_code"] == "slot_already_booked"

    res = client.post("/api/create-payment-intent", json=booking_payload(appointmentDate="2025-07-19"))
    assert res.status_code == 409
    assert res.get_json()["error_code"] == "slot_not_offered"
    assert fake_stripe["created"] == []


def test_create_intent_refused_when_sheet_unreachable(client, row_store, fake_stripe):
    row_store.unavailable = True
    res = client.post("/api/create-payment-intent", json=booking_payload())
    assert res.status_code == 503
    assert fake_stripe["created"] == []


def test_create_intent_without_stripe_key(app, client):
    app.config["STRIPE_SECRET_KEY"] = None
    assert client.post("/api/create-payment-intent", json=booking_payload()).status_code == 500


def test_webhook_confirmation_is_idempotent(app, client, row_store, fake_stripe, outbox):
    client.post("/api/create-payment-intent", json=booking_payload(discountCode="FIRST10"))
    intent = paid(fake_stripe, "pi_test_1")

    assert webhook(client, "payment_intent.succeeded", intent).status_code == 200
    assert webhook(client, "payment_intent.succeeded", intent).status_code == 200

    with app.app_context():
        assert Payment.query.filter_by(stripe_payment_intent_id="pi_test_1").one().status == "PAID"
        assert get_registry().get("FIRST10").used_count == 1
        assert AuditLog.query.filter_by(action="PAYMENT_PAID").count() == 1

    rows = row_store.read_all()
    assert len(rows) == 1
    assert rows[0][5] == "18/7/2025"
    assert rows[0][6] == "09:00"
    assert rows[0][9] == "pi_test_1"
    assert rows[0][10] == "Confermata"

    # customer confirmation + admin notification, once
    assert sorted(m["To"] for m in outbox) == ["admin@example.com", "mario@example.com"]

    # the slot is gone from availability now
    slots = client.get("/api/slots").get_json()["slots"]
    assert "09:00" not in slots[FRIDAY]


def test_booking_confirmation_endpoint(app, client, row_store, fake_stripe):
    client.post("/api/create-payment-intent", json=booking_payload())

    res = client.post("/api/booking-confirmation", json={"paymentIntentId": "pi_test_1"})
    assert res.status_code == 400

    paid(fake_stripe, "pi_test_1")
    res = client.post("/api/booking-confirmation", json={"paymentIntentId": "pi_test_1"})
    assert res.status_code == 200
    assert res.get_json()["appointmentDate"] == FRIDAY

    # webhook arriving afterwards changes nothing
    webhook(client, "payment_intent.succeeded", fake_stripe["intents"]["pi_test_1"])
    assert len(row_store.read_all()) == 1


def test_booking_confirmation_unknown_intent(client, fake_stripe):
    fake_stripe["intents"]["pi_foreign"] = {"id": "pi_foreign", "status": "succeeded", "amount": 100}
    res = client.post("/api/booking-confirmation", json={"paymentIntentId": "pi_foreign"})
    assert res.status_code == 404
    assert client.post("/api/booking-confirmation", json={}).status_code == 400


def test_failed_payment_does_not_redeem(app, client, row_store, fake_stripe, outbox):
    client.post("/api/create-payment-intent", json=booking_payload(discountCode="FIRST10"))
    intent = dict(fake_stripe["intents"]["pi_test_1"], last_payment_error={"message": "card declined"})

    assert webhook(client, "payment_intent.payment_failed", intent).status_code == 200

    with app.app_context():
        assert Payment.query.filter_by(stripe_payment_intent_id="pi_test_1").one().status == "FAILED"
        assert get_registry().get("FIRST10").used_count == 0
    assert row_store.read_all() == []
    assert outbox == []


def test_webhook_rejects_bad_signature(client, fake_stripe):
    res = webhook(client, "payment_intent.succeeded", {"id": "pi_x"}, secret="whsec_someone_else")
    assert res.status_code == 400

    body = json.dumps({"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_x"}}})
    stale = sign_payload(body, timestamp=int(time.time()) - 3600)
    res = client.post("/api/stripe-webhook", data=body, headers={"Stripe-Signature": stale},
                      content_type="application/json")
    assert res.status_code == 400


def test_webhook_without_secret(app, client, fake_stripe):
    app.config["STRIPE_WEBHOOK_SECRET"] = None
    assert webhook(client, "payment_intent.succeeded", {"id": "pi_x"}).status_code == 500


def test_single_use_code_in_two_checkouts(app, client, fake_stripe):
    with app.app_context():
        get_registry().generate(custom_code="ONCEONLY", max_uses=1)

    client.post("/api/create-payment-intent", json=booking_payload(discountCode="ONCEONLY"))
    client.post("/api/create-payment-intent", json=booking_payload(
        email="anna@example.com", appointmentTime="10:30", discountCode="ONCEONLY"))

    webhook(client, "payment_intent.succeeded", paid(fake_stripe, "pi_test_1"))
    webhook(client, "payment_intent.succeeded", paid(fake_stripe, "pi_test_2"))

    with app.app_context():
        statuses = {p.stripe_payment_intent_id: p.status for p in Payment.query.all()}
        assert statuses == {"pi_test_1": "PAID", "pi_test_2": "PAID"}
        assert get_registry().get("ONCEONLY").used_count == 1


def test_sheet_outage_after_payment_keeps_booking(app, client, row_store, fake_stripe, outbox):
    client.post("/api/create-payment-intent", json=booking_payload())
    row_store.unavailable = True

    assert webhook(client, "payment_intent.succeeded", paid(fake_stripe, "pi_test_1")).status_code == 200

    with app.app_context():
        assert Payment.query.one().status == "PAID"
    assert len(outbox) == 2


class BrokenCalendar:
    def create_meeting(self, **kwargs):
        raise CalendarError("calendar quota exceeded")


class TestCalendarFailure:
    @pytest.fixture
    def calendar_client(self):
        return BrokenCalendar()

    def test_emails_still_sent(self, app, client, fake_stripe, outbox):
        client.post("/api/create-payment-intent", json=booking_payload())
        webhook(client, "payment_intent.succeeded", paid(fake_stripe, "pi_test_1"))

        with app.app_context():
            assert Payment.query.one().status == "PAID"
        assert len(outbox) == 2


def test_confirmation_reads_stripe_objects(app, client, fake_stripe):
    client.post("/api/create-payment-intent", json=booking_payload())
    client.post("/api/create-payment-intent", json=booking_payload(appointmentTime="10:30"))

    with app.app_context():
        # no amount, no last_payment_error: keys Stripe may omit
        succeeded = stripe.PaymentIntent.construct_from({"id": "pi_test_1", "status": "succeeded"}, None)
        failed = stripe.PaymentIntent.construct_from({"id": "pi_test_2", "status": "canceled"}, None)

        assert confirm_payment(succeeded).status == "PAID"
        assert mark_payment_failed(failed).status == "FAILED"


def test_fully_discounted_booking_skips_stripe(app, client, row_store, fake_stripe, outbox):
    with app.app_context():
        get_registry().generate(custom_code="GIFT100", value=100, max_uses=1)

    res = client.post("/api/create-payment-intent", json=booking_payload(discountCode="gift100"))

    assert res.status_code == 200
    body = res.get_json()
    assert body["confirmed"] is True
    assert body["amount"] == 0
    assert body["clientSecret"] is None
    assert fake_stripe["created"] == []

    with app.app_context():
        payment = Payment.query.one()
        assert payment.status == "PAID"
        assert payment.stripe_payment_intent_id is None
        assert get_registry().get("GIFT100").used_count == 1

    rows = row_store.read_all()
    assert len(rows) == 1
    assert rows[0][9] == f"free-{body['paymentId']}"
    assert len(outbox) == 2
