import re
from typing import Optional

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?:\s*([AaPp][Mm]))?$")


def departure_minutes(value: str | None) -> Optional[int]:
    """
    Converts a display time such as "09:00 AM", "12:30 PM" or "21:15" to
    minutes since midnight. Returns None when the value cannot be parsed.
    """
    if not value:
        return None

    match = _TIME_PATTERN.fullmatch(value.strip())
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    period = (match.group(3) or "").upper()

    if minutes > 59:
        return None
    if period:
        if not 1 <= hours <= 12:
            return None
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
    elif hours > 23:
        return None

    return hours * 60 + minutes


def departure_sort_key(value: str | None) -> tuple[int, int]:
    # Unparseable times sort after every parseable one.
    minutes = departure_minutes(value)
    if minutes is None:
        return (1, 0)
    return (0, minutes)
