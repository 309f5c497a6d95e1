from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from utils.clock import utcnow

PERCENTAGE = "percentage"
FIXED = "fixed"
KINDS = (PERCENTAGE, FIXED)


@dataclass
class DiscountCode:
    code: str
    kind: str = PERCENTAGE
    value: int = 10
    description: str = ""
    active: bool = True
    max_uses: Optional[int] = None
    used_count: int = 0
    valid_until: Optional[datetime] = None
    assigned_to: Optional[str] = None
    category: str = "generated"
    created_at: datetime = field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        return self.valid_until is not None and now > self.valid_until

    def is_exhausted(self) -> bool:
        return self.max_uses is not None and self.used_count >= self.max_uses

    def is_redeemable(self, now: datetime) -> bool:
        return self.active and not self.is_expired(now) and not self.is_exhausted()

    @property
    def remaining_uses(self) -> Optional[int]:
        if self.max_uses is None:
            return None
        return self.max_uses - self.used_count


@dataclass(frozen=True)
class PriceResult:
    code: str
    description: str
    kind: str
    value: int
    original_price: int
    discount_amount: int
    final_price: int


@dataclass(frozen=True)
class RegistrySummary:
    total_codes: int
    active_codes: int
    expired_codes: int
    unlimited_codes: int
    assigned_codes: int
    total_uses: int
