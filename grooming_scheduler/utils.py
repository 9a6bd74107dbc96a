"""Shared utilities used across the grooming scheduler."""

import re
from datetime import date
from typing import Iterable, Optional

WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("98765 43210")
        '9876543210'
        >>> normalize_phone("+91 (987) 654-3210")
        '+919876543210'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def to_e164(value: str, default_country_code: str = "+91") -> str:
    """Format a contact number for outbound messaging.

    Numbers already carrying a ``+`` prefix are kept; a bare number that
    starts with the country digits gets a ``+``; anything else is prefixed
    with ``default_country_code``.

    Examples:
        >>> to_e164("98765 43210")
        '+919876543210'
        >>> to_e164("919876543210")
        '+919876543210'
    """
    cleaned = normalize_phone(value)
    if cleaned.startswith("+"):
        return cleaned
    country_digits = default_country_code.lstrip("+")
    if cleaned.startswith(country_digits) and len(cleaned) > 10:
        return "+" + cleaned
    return default_country_code + cleaned


def weekday_name(day: date) -> str:
    """Return the English weekday name for a date, independent of locale."""
    return WEEKDAYS[day.weekday()]


def normalize_weekday(value: str) -> Optional[str]:
    """Map 'monday', ' MONDAY ' or 'Mon' to 'Monday'. Returns None if unknown."""
    cleaned = value.strip().lower()
    if not cleaned:
        return None
    for name in WEEKDAYS:
        if name.lower() == cleaned or name.lower()[:3] == cleaned:
            return name
    return None


def order_weekdays(days: Iterable[str]) -> list[str]:
    """Deduplicate canonical weekday names and sort them Monday first."""
    return sorted(set(days), key=WEEKDAYS.index)


def slot_label(label: Optional[str], ordinal: Optional[int]) -> str:
    """Human description of a sub-slot: its label, else 'Slot N', else 'N/A'."""
    if label:
        return label
    if ordinal:
        return f"Slot {ordinal}"
    return "N/A"
