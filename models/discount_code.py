from models.db import db
from utils.clock import utcnow

class DiscountCodeRow(db.Model):
    __tablename__ = "discount_codes"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(12), unique=True, nullable=False, index=True)  # always uppercase

    kind = db.Column(db.String(20), nullable=False, default="percentage")  # percentage, fixed
    value = db.Column(db.Integer, nullable=False, default=10)  # percent, or cents for fixed
    description = db.Column(db.String(255), nullable=True)

    active = db.Column(db.Boolean, default=True, nullable=False)
    max_uses = db.Column(db.Integer, nullable=True)  # NULL = unlimited
    used_count = db.Column(db.Integer, default=0, nullable=False)
    valid_until = db.Column(db.DateTime, nullable=True)

    assigned_to = db.Column(db.String(255), nullable=True, index=True)
    category = db.Column(db.String(40), nullable=False, default="generated")

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        db.CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="ck_discount_codes_usage"),
    )
