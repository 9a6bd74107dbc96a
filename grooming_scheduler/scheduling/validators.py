"""Field validators shared by the template store and the booking ledger."""

import re
from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from grooming_scheduler.errors import ValidationError
from grooming_scheduler.schemas.booking_schema import PaymentEntry
from grooming_scheduler.utils import normalize_weekday, order_weekdays

# Validation thresholds
MIN_NAME_LENGTH = 2
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 15
MIN_RATING = 1
MAX_RATING = 5


def _validate_name(value: str) -> bool:
    return len(value.strip()) >= MIN_NAME_LENGTH


def _validate_phone(value: str) -> bool:
    digits = re.sub(r"[^\d]", "", value)
    return MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS


def _validate_text(value: str) -> bool:
    return bool(value.strip())


CUSTOMER_FIELDS: list[tuple[str, str, Callable[[str], bool]]] = [
    ("customer_name", "customer name", _validate_name),
    ("contact_number", "contact number", _validate_phone),
    ("pet_name", "pet name", _validate_text),
    ("pet_breed", "pet breed", _validate_text),
]


def validate_customer_fields(fields: dict, partial: bool = False) -> dict:
    """Check customer/pet fields and return them stripped.

    With ``partial`` only the keys present (and not None) are checked.

    Raises:
        ValidationError: naming every missing or malformed field.
    """
    missing: list[str] = []
    invalid: list[str] = []
    cleaned: dict = {}
    for name, display, validator in CUSTOMER_FIELDS:
        value = fields.get(name)
        if value is None and partial:
            continue
        if value is None or not str(value).strip():
            missing.append(display)
            continue
        if not validator(str(value)):
            invalid.append(display)
            continue
        cleaned[name] = str(value).strip()

    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}.")
    if invalid:
        raise ValidationError(f"Invalid values for: {', '.join(invalid)}.")
    return cleaned


def validate_recurrence(applies_every_day: bool, weekdays: Optional[list[str]]) -> Optional[list[str]]:
    """Return the canonical weekday list to store (None for every-day templates)."""
    if applies_every_day:
        return None
    if not weekdays:
        raise ValidationError(
            "Recurrence must be every day or name at least one weekday."
        )
    canonical = []
    for raw in weekdays:
        day = normalize_weekday(raw)
        if day is None:
            raise ValidationError(f"Unknown weekday: {raw!r}")
        canonical.append(day)
    return order_weekdays(canonical)


def validate_rating(rating: int) -> int:
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}"
        )
    return rating


def validate_payment_details(details: Optional[list]) -> Optional[list[dict]]:
    """Coerce payment entries (models or dicts) to JSON-ready dicts."""
    if not details:
        return None
    try:
        entries = [PaymentEntry.model_validate(entry) for entry in details]
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid payment details: {e.error_count()} error(s)") from e
    return [entry.model_dump(mode="json") for entry in entries]
