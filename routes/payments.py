from flask import Blueprint, current_app, jsonify, request

from routes.discounts import is_valid_email
from routes.slots import parse_slot
from services.booking import confirm_free_booking, confirm_payment, retrieve_intent, start_booking

payments_bp = Blueprint("payments", __name__, url_prefix="/api")


@payments_bp.post("/create-payment-intent")
def create_payment_intent():
    if not current_app.config.get("STRIPE_SECRET_KEY"):
        return jsonify(error="Stripe secret key missing (STRIPE_SECRET_KEY)"), 500

    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    name = (data.get("name") or "").strip()
    if not email or not name:
        return jsonify(error="Email and name are required"), 400
    if not is_valid_email(email):
        return jsonify(error="Invalid email"), 400

    parsed = parse_slot(data.get("appointmentDate"), data.get("appointmentTime"))
    if not parsed:
        return jsonify(error="appointmentDate (YYYY-MM-DD) and appointmentTime (HH:MM) are required"), 400
    day, slot_time = parsed

    # SlotConflict / AvailabilityUnknown / DiscountError are mapped in routes.errors
    payment, intent, price = start_booking(
        name=name,
        email=email,
        phone=(data.get("phone") or "").strip(),
        company=(data.get("company") or "").strip(),
        day=day,
        slot_time=slot_time,
        discount_code=(data.get("discountCode") or "").strip() or None,
    )

    discount_info = None
    if price:
        discount_info = {
            "code": price.code,
            "description": price.description,
            "originalAmount": price.original_price,
            "discountAmount": price.discount_amount,
            "finalAmount": price.final_price,
        }

    if intent is None:
        # discount covers the whole price: nothing to charge
        confirm_free_booking(payment)
        return jsonify(
            clientSecret=None,
            paymentIntentId=None,
            amount=0,
            discountInfo=discount_info,
            confirmed=True,
            paymentId=payment.id,
        ), 200

    return jsonify(
        clientSecret=intent["client_secret"],
        paymentIntentId=intent["id"],
        amount=payment.amount,
        discountInfo=discount_info,
        confirmed=False,
    ), 200


@payments_bp.post("/booking-confirmation")
def booking_confirmation():
    data = request.get_json(silent=True) or {}
    intent_id = (data.get("paymentIntentId") or data.get("paymentIntent") or "").strip()
    if not intent_id:
        return jsonify(error="paymentIntentId required"), 400

    intent = retrieve_intent(intent_id)
    if intent["status"] != "succeeded":
        return jsonify(error="Payment not completed", status=intent["status"]), 400

    payment = confirm_payment(intent)
    if payment is None:
        return jsonify(error="Payment not found"), 404

    return jsonify(
        success=True,
        paymentId=payment.id,
        appointmentDate=payment.appointment_date.isoformat(),
        appointmentTime=payment.appointment_time,
    ), 200
