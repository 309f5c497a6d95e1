from models.db import db
from utils.clock import utcnow

class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    stripe_payment_intent_id = db.Column(db.String(255), nullable=True, unique=True, index=True)

    customer_name = db.Column(db.String(120), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(40), nullable=True)
    company = db.Column(db.String(160), nullable=True)

    appointment_date = db.Column(db.Date, nullable=False)
    appointment_time = db.Column(db.String(5), nullable=False)  # HH:MM

    original_amount = db.Column(db.Integer, nullable=False)  # cents
    discount_code = db.Column(db.String(12), nullable=True)
    discount_amount = db.Column(db.Integer, nullable=False, default=0)
    amount = db.Column(db.Integer, nullable=False)  # charged, cents
    currency = db.Column(db.String(10), nullable=False, default="eur")

    status = db.Column(db.String(20), nullable=False, default="INIT")  # INIT, PAID, FAILED

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)
