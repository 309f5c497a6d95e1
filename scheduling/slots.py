"""
Slot reconciliation guard.

Bookable slots are not stored anywhere. They are a deterministic template
(business days times business hours) minus the confirmed rows currently in
the booking sheet, recomputed on every call.

Failure policy when the sheet cannot be read:

* ``available_slots`` fails open: it returns the whole template and marks
  the view as degraded. It only feeds the booking calendar UI.
* ``is_booked`` fails closed: it raises AvailabilityUnknown, because it
  gates taking money for a slot.

Nothing serializes two customers paying for the same slot at the same
time. Both can pass ``is_booked`` before either confirmed row is written;
the second payment then lands on a slot that is already taken and has to
be resolved by hand.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from flask import current_app

from integrations.row_store import RowStore, RowStoreUnavailable
from scheduling.date_parsing import DateParseError, parse_sheet_date, parse_sheet_time
from scheduling.errors import AvailabilityUnknown, SlotAlreadyBooked, SlotNotOffered
from scheduling.holidays import is_holiday, is_weekend

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_HOURS = ("09:00", "10:30", "14:00", "15:30", "17:00")
DEFAULT_CUTOFF = time(17, 0)

# Column layout of the booking sheet (Prenotazioni!A:K)
COL_CREATED = 0
COL_NAME = 1
COL_EMAIL = 2
COL_PHONE = 3
COL_COMPANY = 4
COL_DATE = 5
COL_TIME = 6
COL_AMOUNT = 7
COL_DISCOUNT = 8
COL_PAYMENT_ID = 9
COL_STATUS = 10


@dataclass(frozen=True)
class ConfirmedBooking:
    day: date
    time: str
    customer_name: str
    status: str


@dataclass
class AvailabilityView:
    slots: Dict[date, List[str]] = field(default_factory=dict)
    degraded: bool = False

    def to_json(self) -> dict:
        return {
            "slots": {d.isoformat(): times for d, times in self.slots.items()},
            "degraded": self.degraded,
        }


def generate_template(
    horizon_days: int,
    business_hours: Iterable[str],
    today: date,
    now: time,
    cutoff: time = DEFAULT_CUTOFF,
) -> Dict[date, List[str]]:
    hours = list(business_hours)
    template: Dict[date, List[str]] = {}
    for offset in range(horizon_days):
        day = today + timedelta(days=offset)
        if is_weekend(day) or is_holiday(day):
            continue
        if offset == 0 and now >= cutoff:
            continue
        template[day] = list(hours)
    return template


def booking_row(created_at: str, customer_name: str, email: str, phone: str, company: str,
                day: date, slot_time: str, amount: str, discount: str, payment_id: str,
                status: str) -> list:
    """Row in the sheet's column order; ``fetch_confirmed`` reads it back."""
    row = [""] * (COL_STATUS + 1)
    row[COL_CREATED] = created_at
    row[COL_NAME] = customer_name
    row[COL_EMAIL] = email
    row[COL_PHONE] = phone
    row[COL_COMPANY] = company
    row[COL_DATE] = f"{day.day}/{day.month}/{day.year}"
    row[COL_TIME] = slot_time
    row[COL_AMOUNT] = amount
    row[COL_DISCOUNT] = discount
    row[COL_PAYMENT_ID] = payment_id
    row[COL_STATUS] = status
    return row


class SlotGuard:
    def __init__(
        self,
        row_store: RowStore,
        *,
        business_hours: Iterable[str] = DEFAULT_BUSINESS_HOURS,
        horizon_days: int = 30,
        cutoff: time = DEFAULT_CUTOFF,
        timezone: str = "Europe/Rome",
        confirmed_status: str = "Confermata",
        range_hint: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.row_store = row_store
        self.business_hours = tuple(business_hours)
        self.horizon_days = horizon_days
        self.cutoff = cutoff
        self.tz = ZoneInfo(timezone)
        self.confirmed_status = confirmed_status
        self.range_hint = range_hint
        self.clock = clock or (lambda: datetime.now(self.tz))

    def local_now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def template(self) -> Dict[date, List[str]]:
        now = self.local_now()
        return generate_template(
            self.horizon_days, self.business_hours, now.date(), now.time(), self.cutoff
        )

    def fetch_confirmed(self) -> List[ConfirmedBooking]:
        """Confirmed rows of the sheet. Raises RowStoreUnavailable."""
        rows = self.row_store.read_all(self.range_hint)
        confirmed = []
        for index, row in enumerate(rows, start=1):
            if len(row) <= COL_STATUS or row[COL_STATUS] != self.confirmed_status:
                continue
            try:
                day = parse_sheet_date(row[COL_DATE])
                slot_time = parse_sheet_time(row[COL_TIME])
            except DateParseError as exc:
                logger.warning("Skipping booking row %d: %s", index, exc)
                continue
            confirmed.append(ConfirmedBooking(
                day=day,
                time=slot_time,
                customer_name=row[COL_NAME],
                status=row[COL_STATUS],
            ))
        return confirmed

    def available_slots(self) -> AvailabilityView:
        template = self.template()
        try:
            confirmed = self.fetch_confirmed()
        except RowStoreUnavailable as exc:
            logger.warning("Booking sheet unreachable, serving unfiltered slots: %s", exc)
            return AvailabilityView(slots=template, degraded=True)

        taken: Dict[date, set] = {}
        for booking in confirmed:
            taken.setdefault(booking.day, set()).add(booking.time)

        slots = {}
        for day, times in template.items():
            free = [t for t in times if t not in taken.get(day, ())]
            if free:
                slots[day] = free
        return AvailabilityView(slots=slots)

    def is_booked(self, day: date, slot_time: str) -> bool:
        try:
            confirmed = self.fetch_confirmed()
        except RowStoreUnavailable as exc:
            logger.error("Cannot verify slot %s %s: %s", day, slot_time, exc)
            raise AvailabilityUnknown(f"availability of {day} {slot_time} unknown") from exc
        return any(b.day == day and b.time == slot_time for b in confirmed)

    def ensure_bookable(self, day: date, slot_time: str) -> None:
        if slot_time not in self.template().get(day, ()):
            raise SlotNotOffered(day, slot_time)
        if self.is_booked(day, slot_time):
            raise SlotAlreadyBooked(day, slot_time)


def get_slot_guard() -> SlotGuard:
    return current_app.extensions["slot_guard"]
