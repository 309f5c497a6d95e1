from flask import Blueprint, current_app, jsonify

from discounts.registry import get_registry
from utils.clock import utcnow
from utils.emailer import email_configured

health_bp = Blueprint("health", __name__, url_prefix="/api")


@health_bp.get("/health")
def health():
    return jsonify(
        status="Server is running!",
        timestamp=utcnow().isoformat(),
        totalDiscountCodes=get_registry().stats().total_codes,
        emailConfigured=email_configured(),
        googleSheetsConfigured=current_app.extensions.get("google_sheets_configured", False),
        googleCalendarConfigured=current_app.extensions.get("calendar_client") is not None,
        stripeConfigured=bool(current_app.config.get("STRIPE_SECRET_KEY")),
        env=current_app.config.get("ENV_NAME", "development"),
    ), 200


@health_bp.get("/config")
def public_config():
    key = current_app.config.get("STRIPE_PUBLISHABLE_KEY")
    if not key:
        return jsonify(error="Stripe publishable key not configured"), 500
    return jsonify(publishableKey=key), 200
