"""
Tolerant parsing of the booking dates stored in the spreadsheet.

Rows are written with ``USER_ENTERED`` so the sheet may hand back a plain
locale date (``18/7/2025``), a weekday-qualified one
(``venerdì 18 luglio 2025``, ``Friday, 18/07/2025``) or an ISO date.
"""
import re
from datetime import date

MONTHS = {
    "gennaio": 1, "febbraio": 2, "marzo": 3, "aprile": 4, "maggio": 5, "giugno": 6,
    "luglio": 7, "agosto": 8, "settembre": 9, "ottobre": 10, "novembre": 11, "dicembre": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
}

ISO_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")
NUMERIC_RE = re.compile(r"\b(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})\b")
VERBOSE_RE = re.compile(r"\b(\d{1,2})\s+([^\W\d_]+)\s+(\d{4})\b", re.UNICODE)
TIME_RE = re.compile(r"^\s*(\d{1,2})[:.](\d{2})")


class DateParseError(ValueError):
    pass


def parse_sheet_date(raw) -> date:
    text = str(raw or "").strip()
    if not text:
        raise DateParseError("empty date")

    m = ISO_RE.search(text)
    if m:
        year, month, day = (int(x) for x in m.groups())
        return _build(year, month, day, text)

    m = NUMERIC_RE.search(text)
    if m:
        day, month, year = (int(x) for x in m.groups())
        return _build(year, month, day, text)

    m = VERBOSE_RE.search(text)
    if m:
        month = MONTHS.get(m.group(2).lower())
        if month is None:
            raise DateParseError(f"unknown month in {text!r}")
        return _build(int(m.group(3)), month, int(m.group(1)), text)

    raise DateParseError(f"unrecognised date {text!r}")


def _build(year: int, month: int, day: int, text: str) -> date:
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise DateParseError(f"invalid date {text!r}: {exc}") from exc


def parse_sheet_time(raw) -> str:
    """Normalise ``9:00`` / ``09.00`` / ``09:00:00`` to ``09:00``."""
    m = TIME_RE.match(str(raw or ""))
    if not m:
        raise DateParseError(f"unrecognised time {raw!r}")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise DateParseError(f"invalid time {raw!r}")
    return f"{hours:02d}:{minutes:02d}"
