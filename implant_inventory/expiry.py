"""Expiry date interpretation for GS1 `YYMMDD` fields."""

from __future__ import annotations

import calendar
from datetime import date

EXPIRES_SOON_MONTHS = 6
DISPLAY_DATE_FORMAT = "%d.%m.%Y"

# Two-digit years below this pivot fall into the current century.
_CENTURY_PIVOT = 50


def _today(today: date | None) -> date:
    return date.today() if today is None else today


def decode_date(field: str | None, *, today: date | None = None) -> date | None:
    """Decode a 6-digit `YYMMDD` field using a sliding century window.

    Years `00`-`49` map into the current century and `50`-`99` into the
    previous one. A day of `00` denotes the last day of the month, following
    the GS1 general specification rather than rejecting the field as an
    impossible date. Returns None when the field is not six ASCII digits or
    names no calendar date.
    """

    if field is None or len(field) != 6 or not (field.isascii() and field.isdigit()):
        return None

    two_digit_year = int(field[0:2])
    month = int(field[2:4])
    day = int(field[4:6])

    century = _today(today).year // 100 * 100
    if two_digit_year < _CENTURY_PIVOT:
        year = century + two_digit_year
    else:
        year = century - 100 + two_digit_year

    if not 1 <= month <= 12:
        return None
    if day == 0:
        day = calendar.monthrange(year, month)[1]

    try:
        return date(year, month, day)
    except ValueError:
        return None


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping to the last day of the target month."""

    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def is_expired(expiry_date: date | None, *, today: date | None = None) -> bool:
    """Return whether the expiry date has been reached.

    An expiry date marks the start of that day, so a product expiring today
    already counts as expired.
    """

    if expiry_date is None:
        return False
    return expiry_date <= _today(today)


def expires_soon(expiry_date: date | None, *, today: date | None = None) -> bool:
    """Return whether a not-yet-expired date falls within the warning window.

    The window runs up to and including the same day six months from today.
    """

    if expiry_date is None:
        return False
    current = _today(today)
    horizon = add_months(current, EXPIRES_SOON_MONTHS)
    return expiry_date <= horizon and not is_expired(expiry_date, today=current)


def format_for_display(expiry_date: date | None) -> str:
    """Format an expiry date for operator display, empty when absent."""

    if expiry_date is None:
        return ""
    return expiry_date.strftime(DISPLAY_DATE_FORMAT)
