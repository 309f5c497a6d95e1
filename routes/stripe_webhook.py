import logging

import stripe
from flask import Blueprint, current_app, jsonify, request

from services.booking import confirm_payment, mark_payment_failed

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__, url_prefix="/api")


@webhook_bp.post("/stripe-webhook")
def stripe_webhook():
    endpoint_secret = current_app.config.get("STRIPE_WEBHOOK_SECRET")
    sig_header = request.headers.get("Stripe-Signature")
    payload = request.data

    if not endpoint_secret:
        return jsonify(error="Webhook secret not configured"), 500

    try:
        event = stripe.Webhook.construct_event(payload, sig_header, endpoint_secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        return jsonify(error="Invalid webhook signature"), 400

    event_type = event["type"]
    intent = event["data"]["object"]

    if event_type == "payment_intent.succeeded":
        confirm_payment(intent)
    elif event_type == "payment_intent.payment_failed":
        mark_payment_failed(intent)
    else:
        logger.info("Unhandled Stripe event %s", event_type)

    return jsonify(received=True), 200
