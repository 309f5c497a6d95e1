import logging

from flask import jsonify

from discounts.errors import DiscountError
from integrations.row_store import RowStoreUnavailable
from scheduling.errors import AvailabilityUnknown, SlotConflict
from services.booking import PaymentGatewayError

logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Service temporarily unavailable, please try again shortly"


def register_error_handlers(app):
    @app.errorhandler(DiscountError)
    def _discount_error(exc):
        return jsonify(error=str(exc), error_code=exc.error_code, code=exc.code), 400

    @app.errorhandler(SlotConflict)
    def _slot_conflict(exc):
        return jsonify(
            error=str(exc),
            error_code=exc.error_code,
            date=exc.day.isoformat() if exc.day else None,
            time=exc.time,
        ), 409

    @app.errorhandler(AvailabilityUnknown)
    def _availability_unknown(exc):
        return jsonify(error=RETRY_MESSAGE, error_code="availability_unknown"), 503

    @app.errorhandler(RowStoreUnavailable)
    def _row_store_unavailable(exc):
        return jsonify(error=RETRY_MESSAGE, error_code="service_unavailable"), 503

    @app.errorhandler(PaymentGatewayError)
    def _payment_gateway(exc):
        logger.error("Payment gateway error: %s", exc)
        return jsonify(error="Error processing the payment, please try again", error_code="payment_error"), 502
