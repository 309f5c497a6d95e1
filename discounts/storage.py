"""
Storage backends for the discount code registry.

Both stores hand out copies, so a DiscountCode only changes through the
store methods. ``increment_usage`` is the one write that has to be atomic:
it bumps ``used_count`` only while the code is still under ``max_uses``.
"""
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from sqlalchemy import or_, update

from discounts.types import DiscountCode
from models import db
from models.discount_code import DiscountCodeRow


class CodeStore:
    def get(self, code: str) -> Optional[DiscountCode]:
        raise NotImplementedError

    def add(self, discount: DiscountCode) -> None:
        raise NotImplementedError

    def delete(self, code: str) -> bool:
        raise NotImplementedError

    def all(self) -> List[DiscountCode]:
        raise NotImplementedError

    def find_assigned(self, recipient: str) -> List[DiscountCode]:
        raise NotImplementedError

    def deactivate(self, code: str) -> bool:
        raise NotImplementedError

    def increment_usage(self, code: str) -> bool:
        raise NotImplementedError

    def __contains__(self, code: str) -> bool:
        return self.get(code) is not None

    def __len__(self) -> int:
        return len(self.all())


class InMemoryCodeStore(CodeStore):
    def __init__(self):
        self._codes: Dict[str, DiscountCode] = {}
        self._lock = threading.Lock()

    def get(self, code):
        with self._lock:
            found = self._codes.get(code.upper())
            return replace(found) if found else None

    def add(self, discount):
        with self._lock:
            self._codes[discount.code.upper()] = replace(discount)

    def delete(self, code):
        with self._lock:
            return self._codes.pop(code.upper(), None) is not None

    def all(self):
        with self._lock:
            return [replace(d) for d in self._codes.values()]

    def find_assigned(self, recipient):
        recipient = recipient.strip().lower()
        with self._lock:
            return [
                replace(d) for d in self._codes.values()
                if d.assigned_to and d.assigned_to.lower() == recipient
            ]

    def deactivate(self, code):
        with self._lock:
            found = self._codes.get(code.upper())
            if not found or not found.active:
                return False
            found.active = False
            return True

    def increment_usage(self, code):
        with self._lock:
            found = self._codes.get(code.upper())
            if not found or found.is_exhausted():
                return False
            found.used_count += 1
            return True


def _to_domain(row: DiscountCodeRow) -> DiscountCode:
    return DiscountCode(
        code=row.code,
        kind=row.kind,
        value=row.value,
        description=row.description or "",
        active=row.active,
        max_uses=row.max_uses,
        used_count=row.used_count,
        valid_until=row.valid_until,
        assigned_to=row.assigned_to,
        category=row.category,
        created_at=row.created_at,
    )


class SqlCodeStore(CodeStore):
    """Discount codes in the ``discount_codes`` table. Needs an app context."""

    def _row(self, code: str) -> Optional[DiscountCodeRow]:
        return DiscountCodeRow.query.filter_by(code=code.upper()).first()

    def get(self, code):
        row = self._row(code)
        return _to_domain(row) if row else None

    def add(self, discount):
        row = DiscountCodeRow(
            code=discount.code.upper(),
            kind=discount.kind,
            value=discount.value,
            description=discount.description,
            active=discount.active,
            max_uses=discount.max_uses,
            used_count=discount.used_count,
            valid_until=discount.valid_until,
            assigned_to=discount.assigned_to,
            category=discount.category,
            created_at=discount.created_at,
        )
        db.session.add(row)
        db.session.commit()

    def delete(self, code):
        row = self._row(code)
        if not row:
            return False
        db.session.delete(row)
        db.session.commit()
        return True

    def all(self):
        rows = DiscountCodeRow.query.order_by(DiscountCodeRow.created_at.asc()).all()
        return [_to_domain(r) for r in rows]

    def find_assigned(self, recipient):
        rows = (
            DiscountCodeRow.query
            .filter(db.func.lower(DiscountCodeRow.assigned_to) == recipient.strip().lower())
            .all()
        )
        return [_to_domain(r) for r in rows]

    def deactivate(self, code):
        result = db.session.execute(
            update(DiscountCodeRow)
            .where(DiscountCodeRow.code == code.upper(), DiscountCodeRow.active.is_(True))
            .values(active=False)
        )
        db.session.commit()
        return result.rowcount == 1

    def increment_usage(self, code):
        # Conditional UPDATE: the database refuses to go past max_uses
        result = db.session.execute(
            update(DiscountCodeRow)
            .where(DiscountCodeRow.code == code.upper())
            .where(or_(
                DiscountCodeRow.max_uses.is_(None),
                DiscountCodeRow.used_count < DiscountCodeRow.max_uses,
            ))
            .values(used_count=DiscountCodeRow.used_count + 1)
        )
        db.session.commit()
        return result.rowcount == 1
