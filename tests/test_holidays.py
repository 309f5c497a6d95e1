from datetime import date

import pytest

from scheduling.holidays import easter_sunday, holidays_for, is_holiday, is_weekend


@pytest.mark.parametrize("year,expected", [
    (2000, date(2000, 4, 23)),
    (2019, date(2019, 4, 21)),
    (2024, date(2024, 3, 31)),
    (2025, date(2025, 4, 20)),
    (2026, date(2026, 4, 5)),
    (2038, date(2038, 4, 25)),
])
def test_easter_sunday(year, expected):
    assert easter_sunday(year) == expected


def test_easter_monday_and_fixed_holidays():
    h = holidays_for(2025)
    assert date(2025, 4, 21) in h  # Pasquetta
    assert date(2025, 12, 25) in h
    assert date(2025, 1, 1) in h
    assert date(2025, 8, 15) in h
    assert not is_holiday(date(2025, 7, 18))


def test_weekend():
    assert is_weekend(date(2025, 7, 19))
    assert is_weekend(date(2025, 7, 20))
    assert not is_weekend(date(2025, 7, 18))
