import hashlib
import hmac
import time
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
import stripe

from app import create_app
from integrations.row_store import InMemoryRowStore
from models import db

ADMIN_TOKEN = "test-admin-token"
WEBHOOK_SECRET = "whsec_test_secret"
ROME = ZoneInfo("Europe/Rome")

# Monday 14 July 2025, 10:00 in Rome
FROZEN_NOW = datetime(2025, 7, 14, 10, 0, tzinfo=ROME)


class FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def row_store():
    return InMemoryRowStore()


@pytest.fixture
def calendar_client():
    return None


@pytest.fixture
def app(tmp_path, row_store, calendar_client):
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
            "AUTO_CREATE_TABLES": True,
            "STRIPE_SECRET_KEY": "sk_test_dummy",
            "STRIPE_PUBLISHABLE_KEY": "pk_test_dummy",
            "STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
            "ADMIN_API_TOKEN": ADMIN_TOKEN,
            "SMTP_HOST": "smtp.test",
            "SMTP_FROM_EMAIL": "noreply@example.com",
            "SMTP_USERNAME": None,
            "SMTP_PASSWORD": None,
            "ADMIN_EMAIL": "admin@example.com",
            "GOOGLE_CLIENT_ID": None,
            "GOOGLE_CALENDAR_ID": None,
            "GOOGLE_SPREADSHEET_ID": None,
            "CODE_SWEEP_INTERVAL_SECONDS": 0,
        },
        row_store=row_store,
        calendar_client=calendar_client,
    )
    app.extensions["slot_guard"].clock = lambda: FROZEN_NOW

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    FakeSMTP.sent = []
    monkeypatch.setattr("utils.emailer.smtplib.SMTP", FakeSMTP)
    return FakeSMTP.sent


@pytest.fixture
def fake_stripe(monkeypatch):
    """
    Stand-in for the PaymentIntent API. ``intents`` holds the raw payloads
    by id; create/retrieve hand back real Stripe objects built from them.
    """
    state = {"created": [], "intents": {}}

    def create(**kwargs):
        intent_id = f"pi_test_{len(state['created']) + 1}"
        state["created"].append(kwargs)
        state["intents"][intent_id] = {
            "id": intent_id,
            "object": "payment_intent",
            "client_secret": f"{intent_id}_secret",
            "amount": kwargs["amount"],
            "currency": kwargs["currency"],
            "status": "requires_payment_method",
            "metadata": kwargs.get("metadata", {}),
        }
        return stripe.PaymentIntent.construct_from(state["intents"][intent_id], None)

    def retrieve(intent_id):
        return stripe.PaymentIntent.construct_from(state["intents"][intent_id], None)

    monkeypatch.setattr(stripe.PaymentIntent, "create", create)
    monkeypatch.setattr(stripe.PaymentIntent, "retrieve", retrieve)
    return state


def sign_payload(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    """Stripe-Signature header for ``payload``, as Stripe computes it."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    mac = hmac.new(secret.encode("utf-8"), f"{timestamp}.{payload}".encode("utf-8"), hashlib.sha256)
    return f"t={timestamp},v1={mac.hexdigest()}"
