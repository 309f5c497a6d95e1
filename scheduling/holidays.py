from datetime import date, timedelta
from functools import lru_cache
from typing import FrozenSet

# (month, day) closures that fall on the same date every year
FIXED_HOLIDAYS = (
    (1, 1),    # Capodanno
    (1, 6),    # Epifania
    (4, 25),   # Liberazione
    (5, 1),    # Festa del lavoro
    (6, 2),    # Festa della Repubblica
    (8, 15),   # Ferragosto
    (11, 1),   # Ognissanti
    (12, 8),   # Immacolata
    (12, 25),  # Natale
    (12, 26),  # Santo Stefano
)


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous algorithm)."""
    g = year % 19
    c = year // 100
    h = (c - c // 4 - (8 * c + 13) // 25 + 19 * g + 15) % 30
    i = h - (h // 28) * (1 - (29 // (h + 1)) * ((21 - g) // 11))
    j = (year + year // 4 + i + 2 - c + c // 4) % 7
    l = i - j
    month = 3 + (l + 40) // 44
    day = l + 28 - 31 * (month // 4)
    return date(year, month, day)


@lru_cache(maxsize=32)
def holidays_for(year: int) -> FrozenSet[date]:
    easter = easter_sunday(year)
    movable = {easter, easter + timedelta(days=1)}
    return frozenset({date(year, m, d) for m, d in FIXED_HOLIDAYS} | movable)


def is_holiday(day: date) -> bool:
    return day in holidays_for(day.year)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5
