class DiscountError(Exception):
    """Base class for discount code validation failures."""

    error_code = "discount_error"
    message = "Invalid discount code"

    def __init__(self, code=None, message=None):
        self.code = code
        super().__init__(message or self.message)


class InvalidCategory(DiscountError):
    """Generation was asked for a category with no prefix pool."""

    error_code = "invalid_category"
    message = "Unknown discount code category"


class InvalidCodeFormat(DiscountError):
    """A custom code is not 6-12 uppercase letters or digits."""

    error_code = "invalid_code_format"
    message = "Discount codes must be 6-12 letters or digits"


class CodeAlreadyExists(DiscountError):
    error_code = "code_exists"
    message = "Discount code already exists"


class CodeNotFound(DiscountError):
    error_code = "code_not_found"
    message = "Discount code not valid"


class CodeInactive(DiscountError):
    error_code = "code_inactive"
    message = "Discount code is no longer active"


class CodeExpired(DiscountError):
    error_code = "code_expired"
    message = "Discount code expired"


class CodeExhausted(DiscountError):
    error_code = "code_exhausted"
    message = "Discount code usage limit reached"
