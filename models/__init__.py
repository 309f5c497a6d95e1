from .db import db
from .audit_log import AuditLog
from .discount_code import DiscountCodeRow
from .payment import Payment
