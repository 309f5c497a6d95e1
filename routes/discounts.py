import re
from datetime import datetime, timedelta, timezone

from flask import Blueprint, current_app, jsonify, request

from discounts.errors import CodeNotFound
from discounts.registry import DEFAULT_MAX_USES, get_registry
from security.admin import require_admin
from utils import email_templates
from utils.audit import log_event
from utils.clock import utcnow
from utils.emailer import email_configured, send_email

discounts_bp = Blueprint("discounts", __name__, url_prefix="/api")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SIGNUP_CODE_VALID_DAYS = 30


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and len(email) <= 255 and bool(EMAIL_RE.match(email))


def name_from_email(email: str):
    local_part = email.split("@")[0]
    clean = re.sub(r"[0-9._-]", " ", local_part).strip()
    return re.sub(r"\s+", " ", clean) or None


def code_to_json(d, now):
    return {
        "code": d.code,
        "description": d.description,
        "type": d.kind,
        "value": d.value,
        "active": d.active,
        "usedCount": d.used_count,
        "maxUses": d.max_uses,
        "remainingUses": d.remaining_uses if d.max_uses is not None else "Unlimited",
        "validUntil": d.valid_until.isoformat() if d.valid_until else None,
        "assignedTo": d.assigned_to,
        "category": d.category,
        "isExpired": d.is_expired(now),
    }


def _parse_datetime(value):
    if value in (None, ""):
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ---------- PUBLIC: validate a code against a price ----------
@discounts_bp.post("/validate-discount")
def validate_discount():
    data = request.get_json(silent=True) or {}
    code = (data.get("code") or "").strip()
    if not code:
        return jsonify(error="Discount code required"), 400

    amount = data.get("amount")
    if amount is None:
        amount = current_app.config["CONSULTATION_PRICE_CENTS"]
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        return jsonify(error="amount must be an integer number of cents"), 400
    if amount < 0:
        return jsonify(error="amount must be non-negative"), 400

    result = get_registry().evaluate(code, amount)
    return jsonify(
        valid=True,
        originalPrice=result.original_price,
        discountAmount=result.discount_amount,
        finalPrice=result.final_price,
        discountCode=result.code,
        description=result.description,
        savings=email_templates.euros(result.discount_amount),
    ), 200


# ---------- PUBLIC: newsletter sign-up code ----------
@discounts_bp.post("/send-discount-email")
def send_discount_email():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    name = (data.get("name") or "").strip() or None

    if not email:
        return jsonify(error="Email required"), 400
    if not email_configured():
        return jsonify(error="Email service not configured"), 500
    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400

    registry = get_registry()
    now = utcnow()
    assigned = registry.find_assigned(email)
    usable = [d for d in assigned if d.is_redeemable(now)]

    if usable:
        discount = usable[0]
        reused = True
    elif assigned:
        log_event("DISCOUNT_CODE_REISSUE_REFUSED", entity="discount_code", metadata={"email": email})
        return jsonify(error="A discount code was already sent to this address"), 409
    else:
        discount = registry.generate(
            "welcome",
            description="Email Signup Discount - 10% off",
            max_uses=1,
            valid_until=now + timedelta(days=SIGNUP_CODE_VALID_DAYS),
            assigned_to=email,
        )
        reused = False
        log_event("DISCOUNT_CODE_ISSUED", entity="discount_code", entity_id=discount.code,
                  metadata={"email": email})

    text, html = email_templates.discount_code(name or name_from_email(email), discount.code, discount.value)
    ok, _ = send_email(email, f"Your {discount.value}% Discount Code - VFX Consultation", text, html=html)
    if not ok:
        return jsonify(error="Error sending the email, please try again"), 500

    return jsonify(
        success=True,
        message="Discount code sent successfully",
        code=discount.code,
        email=email,
        reused=reused,
    ), 200


# ---------- ADMIN: statistics ----------
@discounts_bp.get("/discount-stats")
@require_admin
def discount_stats():
    registry = get_registry()
    now = utcnow()
    summary = registry.stats(now)
    return jsonify(
        discountCodes=[code_to_json(d, now) for d in registry.list_codes()],
        totalCodes=summary.total_codes,
        summary={
            "activeCodes": summary.active_codes,
            "expiredCodes": summary.expired_codes,
            "unlimitedCodes": summary.unlimited_codes,
            "emailCodes": summary.assigned_codes,
            "totalUsages": summary.total_uses,
        },
    ), 200


# ---------- ADMIN: manage codes ----------
@discounts_bp.post("/discount-codes")
@require_admin
def create_discount_code():
    data = request.get_json(silent=True) or {}
    try:
        valid_until = _parse_datetime(data.get("validUntil"))
        max_uses = data["maxUses"] if "maxUses" in data else DEFAULT_MAX_USES
        max_uses = int(max_uses) if max_uses is not None else None
        value = int(data.get("value", 10))
    except (TypeError, ValueError):
        return jsonify(error="Invalid maxUses, value or validUntil"), 400

    try:
        discount = get_registry().generate(
            data.get("category") or None,
            max_uses=max_uses,
            valid_until=valid_until,
            custom_code=data.get("customCode") or None,
            description=data.get("description") or None,
            kind=data.get("type") or "percentage",
            value=value,
            assigned_to=data.get("assignedTo") or None,
        )
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    log_event("DISCOUNT_CODE_CREATE", entity="discount_code", entity_id=discount.code,
              metadata={"category": discount.category, "max_uses": discount.max_uses})
    return jsonify(code_to_json(discount, utcnow())), 201


@discounts_bp.delete("/discount-codes/<code>")
@require_admin
def delete_discount_code(code: str):
    try:
        get_registry().delete(code)
    except CodeNotFound:
        return jsonify(error="Discount code not found"), 404

    log_event("DISCOUNT_CODE_DELETE", entity="discount_code", entity_id=code.upper())
    return jsonify(message="Discount code deleted"), 200


@discounts_bp.post("/discount-codes/sweep")
@require_admin
def sweep_discount_codes():
    count = get_registry().sweep_expired()
    return jsonify(deactivated=count), 200
