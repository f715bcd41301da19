"""
Business-day arithmetic (Monday to Friday) used by all scheduling windows.
"""

import calendar
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.config import settings

SATURDAY = 5


def is_business_day(day: date) -> bool:
    return day.weekday() < SATURDAY


def roll_forward(day: date) -> date:
    """Move a Saturday or Sunday to the following Monday."""
    while not is_business_day(day):
        day += timedelta(days=1)
    return day


def business_days_list(start: date, count: int) -> list[date]:
    """The next `count` business days beginning at `start` (inclusive)."""
    days: list[date] = []
    current = roll_forward(start)
    while len(days) < count:
        if is_business_day(current):
            days.append(current)
        current += timedelta(days=1)
    return days


def add_business_days(start: date, count: int) -> date:
    """Step forward `count` business days from `start`."""
    current = start
    remaining = count
    while remaining > 0:
        current += timedelta(days=1)
        if is_business_day(current):
            remaining -= 1
    return current


def add_months(start: date, months: int) -> date:
    """Calendar month offset, clamping to the last day of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def dialer_today() -> date:
    """Today's date in the dialer's configured timezone."""
    return datetime.now(ZoneInfo(settings.DIALER_TIMEZONE)).date()
