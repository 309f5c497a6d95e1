from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from integrations.row_store import InMemoryRowStore
from scheduling import AvailabilityUnknown, SlotAlreadyBooked, SlotGuard, SlotNotOffered
from scheduling.slots import DEFAULT_BUSINESS_HOURS, booking_row, generate_template

ROME = ZoneInfo("Europe/Rome")
MONDAY_MORNING = datetime(2025, 7, 14, 10, 0, tzinfo=ROME)
FRIDAY = date(2025, 7, 18)


def confirmed_row(day, slot_time, name="Mario Rossi", status="Confermata"):
    return booking_row("14/7/2025 10:00", name, "mario@example.com", "", "",
                       day, slot_time, "€150.00", "", "pi_x", status)


def make_guard(rows=(), now=MONDAY_MORNING, **kwargs):
    store = InMemoryRowStore(rows)
    return SlotGuard(store, clock=lambda: now, **kwargs), store


def test_template_skips_weekends_and_is_deterministic():
    kwargs = dict(horizon_days=14, business_hours=DEFAULT_BUSINESS_HOURS,
                  today=date(2025, 7, 14), now=time(10, 0))
    first = generate_template(**kwargs)
    assert first == generate_template(**kwargs)
    assert date(2025, 7, 19) not in first
    assert date(2025, 7, 20) not in first
    assert len(first) == 10
    assert first[FRIDAY] == list(DEFAULT_BUSINESS_HOURS)


def test_template_skips_holidays():
    template = generate_template(15, ["09:00"], date(2025, 12, 22), time(9, 0))
    assert date(2025, 12, 25) not in template
    assert date(2025, 12, 26) not in template
    assert date(2026, 1, 1) not in template
    assert date(2025, 12, 23) in template


def test_same_day_cutoff():
    before = generate_template(3, ["09:00"], date(2025, 7, 14), time(16, 59))
    after = generate_template(3, ["09:00"], date(2025, 7, 14), time(17, 0))
    assert date(2025, 7, 14) in before
    assert date(2025, 7, 14) not in after
    assert date(2025, 7, 15) in after


def test_confirmed_booking_is_removed_from_availability():
    guard, _ = make_guard([confirmed_row(FRIDAY, "09:00")])

    view = guard.available_slots()

    assert view.degraded is False
    assert "09:00" not in view.slots[FRIDAY]
    assert "10:30" in view.slots[FRIDAY]
    assert guard.is_booked(FRIDAY, "09:00") is True
    assert guard.is_booked(FRIDAY, "10:30") is False


def test_verbose_dates_in_sheet_are_reconciled():
    row = confirmed_row(FRIDAY, "14:00")
    row[5] = "venerdì 18 luglio 2025"
    guard, _ = make_guard([row])
    assert guard.is_booked(FRIDAY, "14:00")


def test_fully_booked_day_disappears():
    guard, _ = make_guard([confirmed_row(FRIDAY, t) for t in DEFAULT_BUSINESS_HOURS])
    assert FRIDAY not in guard.available_slots().slots


def test_unconfirmed_and_malformed_rows_are_ignored():
    rows = [
        ["Data", "Nome", "Email"],
        confirmed_row(FRIDAY, "09:00", status="Annullata"),
        confirmed_row(FRIDAY, "10:30")[:6],
        ["", "", "", "", "", "not a date", "09:00", "", "", "", "Confermata"],
    ]
    guard, _ = make_guard(rows)

    assert guard.fetch_confirmed() == []
    assert guard.available_slots().slots[FRIDAY] == list(DEFAULT_BUSINESS_HOURS)


def test_availability_fails_open_when_sheet_down():
    guard, store = make_guard([confirmed_row(FRIDAY, "09:00")])
    store.unavailable = True

    view = guard.available_slots()

    assert view.degraded is True
    assert "09:00" in view.slots[FRIDAY]
    assert view.to_json()["degraded"] is True


def test_is_booked_fails_closed_when_sheet_down():
    guard, store = make_guard()
    store.unavailable = True
    with pytest.raises(AvailabilityUnknown):
        guard.is_booked(FRIDAY, "09:00")
    with pytest.raises(AvailabilityUnknown):
        guard.ensure_bookable(FRIDAY, "09:00")


def test_ensure_bookable():
    guard, _ = make_guard([confirmed_row(FRIDAY, "09:00")])

    guard.ensure_bookable(FRIDAY, "10:30")
    with pytest.raises(SlotAlreadyBooked):
        guard.ensure_bookable(FRIDAY, "09:00")
    with pytest.raises(SlotNotOffered):
        guard.ensure_bookable(date(2025, 7, 19), "09:00")
    with pytest.raises(SlotNotOffered):
        guard.ensure_bookable(FRIDAY, "12:00")


def test_local_now_converts_to_configured_zone():
    utc_evening = datetime(2025, 7, 14, 15, 30, tzinfo=ZoneInfo("UTC"))
    guard, _ = make_guard(now=utc_evening)
    # 17:30 in Rome, past the cutoff
    assert date(2025, 7, 14) not in guard.available_slots().slots
