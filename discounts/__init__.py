from .errors import (
    CodeAlreadyExists,
    CodeExhausted,
    CodeExpired,
    CodeInactive,
    CodeNotFound,
    DiscountError,
    InvalidCategory,
    InvalidCodeFormat,
)
from .registry import DiscountRegistry, get_registry
from .storage import InMemoryCodeStore, SqlCodeStore
from .types import DiscountCode, PriceResult, RegistrySummary
