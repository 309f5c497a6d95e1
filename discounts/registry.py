"""
Discount code registry.

The registry is the single authority on whether a code can be used right
now and what it does to a price. It owns no storage of its own: the code
table lives in an injected CodeStore (in memory, or the ``discount_codes``
table). One registry is built per app and reached through
``get_registry()``.

Redemption is serialized twice: a registry lock orders concurrent callers
in this process, and the store's conditional increment keeps ``used_count``
under ``max_uses`` even if another process redeems the same code.
"""
import logging
import threading
from datetime import datetime
from typing import List, Optional

from flask import current_app

from discounts.errors import (
    CodeAlreadyExists,
    CodeExhausted,
    CodeExpired,
    CodeInactive,
    CodeNotFound,
)
from discounts.generator import CodeGenerator, check_category, describe, normalize_code, validate_custom_code
from discounts.storage import CodeStore
from discounts.types import FIXED, KINDS, PERCENTAGE, DiscountCode, PriceResult, RegistrySummary
from utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_USES = 100
DEFAULT_VALUE = 10

# Codes every deployment starts with
SEED_CODES = [
    {"code": "WELCOME10", "description": "Welcome - 10% off", "max_uses": None},
    {"code": "STUDENT10", "description": "Students - 10% off", "max_uses": None},
    {"code": "FIRST10", "description": "First consultation - 10% off", "max_uses": 500},
]


def compute_discount(kind: str, value: int, base_price: int) -> int:
    if kind == PERCENTAGE:
        # round half up, in integer arithmetic
        return (base_price * value * 2 + 100) // 200
    if kind == FIXED:
        return min(value, base_price)
    raise ValueError(f"Unknown discount kind: {kind}")


class DiscountRegistry:
    def __init__(self, store: CodeStore, generator: Optional[CodeGenerator] = None):
        self.store = store
        self.generator = generator or CodeGenerator()
        self._lock = threading.RLock()

    # ---------- generation ----------
    def generate(
        self,
        category: Optional[str] = None,
        *,
        max_uses: Optional[int] = DEFAULT_MAX_USES,
        valid_until: Optional[datetime] = None,
        custom_code: Optional[str] = None,
        description: Optional[str] = None,
        kind: str = PERCENTAGE,
        value: int = DEFAULT_VALUE,
        assigned_to: Optional[str] = None,
    ) -> DiscountCode:
        check_category(category)
        if kind not in KINDS:
            raise ValueError(f"Unknown discount kind: {kind}")
        if value < 0 or (kind == PERCENTAGE and value > 100):
            raise ValueError(f"Discount value out of range: {value}")
        if max_uses is not None and max_uses < 0:
            raise ValueError("max_uses must be non-negative")

        with self._lock:
            if custom_code:
                code = validate_custom_code(custom_code)
                if code in self.store:
                    raise CodeAlreadyExists(code)
                origin = category or "custom"
            else:
                code = self.generator.unique_code(lambda c: c in self.store, category)
                origin = category or "generated"

            discount = DiscountCode(
                code=code,
                kind=kind,
                value=value,
                description=description or describe(category, kind, value),
                active=True,
                max_uses=max_uses,
                used_count=0,
                valid_until=valid_until,
                assigned_to=assigned_to.strip().lower() if assigned_to else None,
                category=origin,
            )
            self.store.add(discount)

        logger.info("Discount code %s created (category=%s, max_uses=%s)", code, origin, max_uses)
        return discount

    def seed_defaults(self) -> int:
        created = 0
        with self._lock:
            for seed in SEED_CODES:
                if seed["code"] in self.store:
                    continue
                self.store.add(DiscountCode(
                    code=seed["code"],
                    description=seed["description"],
                    max_uses=seed["max_uses"],
                    category="seed",
                ))
                created += 1
        return created

    # ---------- validation & pricing ----------
    def _validated(self, code: str, now: datetime) -> DiscountCode:
        normalized = normalize_code(code)
        discount = self.store.get(normalized) if normalized else None
        if discount is None:
            raise CodeNotFound(normalized)
        if not discount.active:
            raise CodeInactive(normalized)
        if discount.is_expired(now):
            raise CodeExpired(normalized)
        if discount.is_exhausted():
            raise CodeExhausted(normalized)
        return discount

    def evaluate(self, code: str, base_price: int, now: Optional[datetime] = None) -> PriceResult:
        """Price ``base_price`` (cents) with ``code``. Never touches usage counters."""
        if base_price < 0:
            raise ValueError("base_price must be non-negative")
        discount = self._validated(code, now or utcnow())

        amount = compute_discount(discount.kind, discount.value, base_price)
        return PriceResult(
            code=discount.code,
            description=discount.description,
            kind=discount.kind,
            value=discount.value,
            original_price=base_price,
            discount_amount=amount,
            final_price=max(base_price - amount, 0),
        )

    def redeem(self, code: str, now: Optional[datetime] = None) -> DiscountCode:
        """Consume one use of ``code``. Callers dedupe per transaction."""
        with self._lock:
            discount = self._validated(code, now or utcnow())
            if not self.store.increment_usage(discount.code):
                # lost the last use to a writer outside this process
                raise CodeExhausted(discount.code)
            redeemed = self.store.get(discount.code)

        logger.info(
            "Discount code %s redeemed (%s/%s)",
            redeemed.code, redeemed.used_count, redeemed.max_uses or "unlimited",
        )
        return redeemed

    # ---------- maintenance ----------
    def sweep_expired(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        flipped = 0
        with self._lock:
            for discount in self.store.all():
                if discount.active and discount.is_expired(now):
                    if self.store.deactivate(discount.code):
                        flipped += 1
        if flipped:
            logger.info("Expiry sweep deactivated %d discount codes", flipped)
        return flipped

    def stats(self, now: Optional[datetime] = None) -> RegistrySummary:
        now = now or utcnow()
        codes = self.store.all()
        return RegistrySummary(
            total_codes=len(codes),
            active_codes=sum(1 for d in codes if d.active and not d.is_expired(now)),
            expired_codes=sum(1 for d in codes if d.is_expired(now)),
            unlimited_codes=sum(1 for d in codes if d.max_uses is None),
            assigned_codes=sum(1 for d in codes if d.assigned_to),
            total_uses=sum(d.used_count for d in codes),
        )

    # ---------- admin ----------
    def get(self, code: str) -> DiscountCode:
        discount = self.store.get(normalize_code(code))
        if discount is None:
            raise CodeNotFound(normalize_code(code))
        return discount

    def list_codes(self) -> List[DiscountCode]:
        return self.store.all()

    def find_assigned(self, recipient: str) -> List[DiscountCode]:
        return self.store.find_assigned(recipient)

    def delete(self, code: str) -> None:
        normalized = normalize_code(code)
        with self._lock:
            if not self.store.delete(normalized):
                raise CodeNotFound(normalized)
        logger.info("Discount code %s deleted", normalized)


def get_registry() -> DiscountRegistry:
    return current_app.extensions["discount_registry"]
