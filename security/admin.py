import hmac
from functools import wraps
from flask import current_app, jsonify, request

ADMIN_TOKEN_HEADER = "X-Admin-Token"

def is_admin_request() -> bool:
    expected = current_app.config.get("ADMIN_API_TOKEN")
    supplied = request.headers.get(ADMIN_TOKEN_HEADER) or ""
    if not expected:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))

def require_admin(fn):
    """
    Usage: @require_admin
    Admin endpoints stay closed while ADMIN_API_TOKEN is unset.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not current_app.config.get("ADMIN_API_TOKEN"):
            return jsonify(error="Admin API disabled"), 403
        if not is_admin_request():
            return jsonify(error="Forbidden"), 403
        return fn(*args, **kwargs)
    return wrapper
