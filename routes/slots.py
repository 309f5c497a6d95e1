import re
from datetime import date

from flask import Blueprint, jsonify, request

from scheduling.slots import get_slot_guard

slots_bp = Blueprint("slots", __name__, url_prefix="/api")

TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def parse_slot(date_str: str, time_str: str):
    """Returns (day, time) or None for malformed input."""
    try:
        day = date.fromisoformat((date_str or "").strip())
    except ValueError:
        return None
    time_str = (time_str or "").strip()
    if not TIME_RE.match(time_str):
        return None
    return day, time_str


@slots_bp.get("/slots")
def available_slots():
    view = get_slot_guard().available_slots()
    return jsonify(view.to_json()), 200


@slots_bp.get("/slots/check")
def check_slot():
    parsed = parse_slot(request.args.get("date"), request.args.get("time"))
    if not parsed:
        return jsonify(error="date (YYYY-MM-DD) and time (HH:MM) are required"), 400
    day, slot_time = parsed

    booked = get_slot_guard().is_booked(day, slot_time)
    return jsonify(date=day.isoformat(), time=slot_time, booked=booked), 200
