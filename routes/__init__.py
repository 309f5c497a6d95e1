from .health import health_bp
from .slots import slots_bp
from .discounts import discounts_bp
from .payments import payments_bp
from .stripe_webhook import webhook_bp
