from __future__ import annotations

import math
import re
from datetime import date, datetime

_NON_NUMERIC_PATTERN = re.compile(r"[^0-9.\-]")

_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
)


def parse_money(value: object) -> float | None:
    """Parse a monetary amount given as a number or a string like "$1,234.50".

    Anything that does not end up as a finite number becomes None.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    else:
        cleaned = _NON_NUMERIC_PATTERN.sub("", str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return None

    return number if math.isfinite(number) else None


def parse_mileage(value: object) -> int | None:
    """Parse an odometer value such as "45,120 miles" into whole miles."""
    number = parse_money(value)
    if number is None:
        return None
    return int(number)


def parse_service_date(value: object) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None
