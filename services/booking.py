"""
Booking orchestration: slot check, pricing, Stripe PaymentIntent, and the
confirmation step shared by the webhook and the synchronous client path.

A discount code is only priced when the intent is created. It is redeemed
when the payment is confirmed, once per Payment row, so abandoned or failed
payments never consume a use.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

import stripe
from flask import current_app
from sqlalchemy import update

from discounts.errors import DiscountError
from discounts.registry import get_registry
from integrations.row_store import RowStoreUnavailable
from models import db
from models.payment import Payment
from scheduling.slots import booking_row, get_slot_guard
from utils.audit import log_event
from utils.clock import utcnow
from utils.email_templates import euros

logger = logging.getLogger(__name__)

PRODUCT_DESCRIPTION = "VFX Career Consultation with Valentin Procida"


class PaymentGatewayError(Exception):
    pass


@dataclass(frozen=True)
class BookingConfirmed:
    payment_id: int
    payment_intent_id: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str]
    company: Optional[str]
    day: date
    time: str
    amount: int
    currency: str
    discount_code: Optional[str]
    discount_amount: int


def _stripe_key() -> str:
    key = current_app.config.get("STRIPE_SECRET_KEY")
    if not key:
        raise PaymentGatewayError("Stripe secret key missing (STRIPE_SECRET_KEY)")
    stripe.api_key = key
    return key


def start_booking(*, name: str, email: str, phone: str, company: str,
                  day: date, slot_time: str, discount_code: Optional[str] = None):
    """
    Check the slot, price the consultation and open a PaymentIntent.

    Raises SlotConflict, AvailabilityUnknown, DiscountError or
    PaymentGatewayError. Returns (payment, intent, price_result); intent is
    None when the discount covers the whole price, since Stripe refuses
    zero-amount intents. The caller confirms such bookings directly.
    """
    _stripe_key()
    get_slot_guard().ensure_bookable(day, slot_time)

    base_price = current_app.config["CONSULTATION_PRICE_CENTS"]
    currency = current_app.config.get("CURRENCY", "eur")
    price = None
    final_amount = base_price
    if discount_code:
        price = get_registry().evaluate(discount_code, base_price)
        final_amount = price.final_price

    payment = Payment(
        customer_name=name,
        customer_email=email,
        customer_phone=phone or None,
        company=company or None,
        appointment_date=day,
        appointment_time=slot_time,
        original_amount=base_price,
        discount_code=price.code if price else None,
        discount_amount=price.discount_amount if price else 0,
        amount=final_amount,
        currency=currency,
        status="INIT",
    )
    db.session.add(payment)
    db.session.commit()

    if final_amount == 0:
        log_event("FREE_BOOKING_CREATED", entity="payment", entity_id=payment.id,
                  metadata={"discount_code": payment.discount_code})
        return payment, None, price

    try:
        intent = stripe.PaymentIntent.create(
            amount=final_amount,
            currency=currency,
            automatic_payment_methods={"enabled": True},
            description=PRODUCT_DESCRIPTION,
            metadata={
                "payment_id": str(payment.id),
                "email": email,
                "name": name,
                "phone": phone or "",
                "company": company or "",
                "appointmentDate": day.isoformat(),
                "appointmentTime": slot_time,
                "originalAmount": str(base_price),
                "discountCode": payment.discount_code or "",
                "discountAmount": str(payment.discount_amount),
                "finalAmount": str(final_amount),
            },
        )
    except stripe.StripeError as exc:
        payment.status = "FAILED"
        db.session.commit()
        logger.error("PaymentIntent creation failed for payment %s: %s", payment.id, exc)
        raise PaymentGatewayError(str(exc)) from exc

    payment.stripe_payment_intent_id = intent["id"]
    db.session.commit()

    log_event("PAYMENT_INTENT_CREATED", entity="payment", entity_id=payment.id,
              metadata={"payment_intent": intent["id"], "amount": final_amount,
                        "discount_code": payment.discount_code})
    return payment, intent, price


def retrieve_intent(intent_id: str):
    _stripe_key()
    try:
        return stripe.PaymentIntent.retrieve(intent_id)
    except stripe.StripeError as exc:
        raise PaymentGatewayError(str(exc)) from exc


def _claim_payment(payment: Payment) -> bool:
    # INIT/FAILED -> PAID exactly once, even if webhook and client race
    result = db.session.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status != "PAID")
        .values(status="PAID", paid_at=utcnow())
    )
    db.session.commit()
    return result.rowcount == 1


def _booking_event(payment: Payment) -> BookingConfirmed:
    return BookingConfirmed(
        payment_id=payment.id,
        payment_intent_id=payment.stripe_payment_intent_id or f"free-{payment.id}",
        customer_name=payment.customer_name,
        customer_email=payment.customer_email,
        customer_phone=payment.customer_phone,
        company=payment.company,
        day=payment.appointment_date,
        time=payment.appointment_time,
        amount=payment.amount,
        currency=payment.currency,
        discount_code=payment.discount_code,
        discount_amount=payment.discount_amount,
    )


def _record_in_sheet(booking: BookingConfirmed) -> None:
    guard = get_slot_guard()
    discount = "None"
    if booking.discount_code:
        discount = f"{booking.discount_code} (-{euros(booking.discount_amount)})"
    row = booking_row(
        created_at=guard.local_now().strftime("%d/%m/%Y, %H:%M:%S"),
        customer_name=booking.customer_name,
        email=booking.customer_email,
        phone=booking.customer_phone or "",
        company=booking.company or "",
        day=booking.day,
        slot_time=booking.time,
        amount=euros(booking.amount),
        discount=discount,
        payment_id=booking.payment_intent_id,
        status=guard.confirmed_status,
    )
    try:
        guard.row_store.append(row)
    except RowStoreUnavailable as exc:
        logger.error("Booking %s paid but not written to the sheet: %s", booking.payment_intent_id, exc)


def _field(obj, key):
    # Stripe objects support item access but not dict.get
    return obj[key] if key in obj else None


def _finalize(payment: Payment, charged: Optional[int]) -> Payment:
    if not _claim_payment(payment):
        logger.info("Payment %s already confirmed", payment.id)
        return payment
    db.session.refresh(payment)

    if charged is not None and charged != payment.amount:
        logger.warning("Payment %s charged %s, expected %s", payment.id, charged, payment.amount)

    log_event("PAYMENT_PAID", entity="payment", entity_id=payment.id,
              metadata={"payment_intent": payment.stripe_payment_intent_id,
                        "amount": payment.amount, "discount_code": payment.discount_code})

    if payment.discount_code:
        try:
            redeemed = get_registry().redeem(payment.discount_code)
            log_event("DISCOUNT_CODE_REDEEMED", entity="discount_code", entity_id=redeemed.code,
                      metadata={"payment_id": payment.id, "used_count": redeemed.used_count})
        except DiscountError as exc:
            # The customer already paid the discounted price; keep the booking.
            logger.warning("Discount %s not redeemed for payment %s: %s",
                           payment.discount_code, payment.id, exc)

    booking = _booking_event(payment)
    _record_in_sheet(booking)
    current_app.extensions["booking_events"].publish(booking)
    return payment


def confirm_payment(intent) -> Optional[Payment]:
    """
    Finalize a succeeded PaymentIntent. Safe to call more than once per
    intent: only the first call redeems the code, writes the sheet row and
    publishes BookingConfirmed. Returns None for intents we did not create.
    """
    payment = Payment.query.filter_by(stripe_payment_intent_id=intent["id"]).first()
    if payment is None:
        logger.warning("Succeeded PaymentIntent %s has no local payment", intent["id"])
        return None
    return _finalize(payment, _field(intent, "amount"))


def confirm_free_booking(payment: Payment) -> Payment:
    """Confirm a booking whose discount covers the whole price. Nothing is charged."""
    if payment.amount != 0:
        raise ValueError(f"Payment {payment.id} is not free")
    return _finalize(payment, 0)


def mark_payment_failed(intent) -> Optional[Payment]:
    payment = Payment.query.filter_by(stripe_payment_intent_id=intent["id"]).first()
    last_error = _field(intent, "last_payment_error")
    error = _field(last_error, "message") if last_error else None
    logger.info("PaymentIntent %s failed: %s", intent["id"], error)
    if payment is None or payment.status == "PAID":
        return payment

    payment.status = "FAILED"
    db.session.commit()
    log_event("PAYMENT_FAILED", entity="payment", entity_id=payment.id,
              metadata={"payment_intent": intent["id"], "error": error,
                        "discount_code": payment.discount_code})
    return payment
