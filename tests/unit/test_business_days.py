from datetime import date

from app.features.dialer_capacity.domain.business_days import (
    add_business_days,
    add_months,
    business_days_list,
)


def test_saturday_start_rolls_to_monday():
    days = business_days_list(date(2025, 1, 18), 15)

    assert days[0] == date(2025, 1, 20)
    assert len(days) == 15
    assert all(day.weekday() < 5 for day in days)


def test_weekday_start_is_included():
    assert business_days_list(date(2025, 1, 15), 3) == [
        date(2025, 1, 15),
        date(2025, 1, 16),
        date(2025, 1, 17),
    ]


def test_list_skips_weekend_in_the_middle():
    days = business_days_list(date(2025, 1, 16), 4)

    assert days == [date(2025, 1, 16), date(2025, 1, 17), date(2025, 1, 20), date(2025, 1, 21)]


def test_add_business_days():
    assert add_business_days(date(2025, 1, 17), 1) == date(2025, 1, 20)
    assert add_business_days(date(2025, 1, 15), 10) == date(2025, 1, 29)
    assert add_business_days(date(2025, 1, 18), 1) == date(2025, 1, 20)
    assert add_business_days(date(2025, 1, 15), 0) == date(2025, 1, 15)


def test_add_months_clamps_to_month_end():
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2025, 8, 15), 6) == date(2026, 2, 15)
    assert add_months(date(2025, 3, 10), 12) == date(2026, 3, 10)
