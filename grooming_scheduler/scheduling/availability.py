"""
Availability resolver.

Computes the bookable (template, sub-slot) pairs for a location and date:
templates bound to the location that recur on the date's weekday, minus
every sub-slot already held by a non-cancelled booking on that date.

Nothing is cached between calls; the result is a snapshot and the ledger's
admission check is what actually decides who gets a slot.
"""

import logging
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Optional, TypedDict

from sqlalchemy import select
from sqlalchemy.orm import Session

from grooming_scheduler.config import settings
from grooming_scheduler.errors import ValidationError
from grooming_scheduler.lifecycle.state_machine import BookingStatus
from grooming_scheduler.models import Booking, SubSlot, TimeTemplate
from grooming_scheduler.scheduling.catalog import CatalogService
from grooming_scheduler.scheduling.templates import TemplateStore
from grooming_scheduler.utils import slot_label, weekday_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailableSlot:
    """A free sub-slot of a template on the requested date."""

    template: TimeTemplate
    sub_slot: SubSlot

    @property
    def template_id(self) -> int:
        return self.template.id

    @property
    def sub_slot_id(self) -> int:
        return self.sub_slot.id

    @property
    def start_time(self) -> time:
        return self.template.start_time

    @property
    def ordinal(self) -> int:
        return self.sub_slot.ordinal

    @property
    def label(self) -> Optional[str]:
        return self.sub_slot.label

    @property
    def display_label(self) -> str:
        return slot_label(self.sub_slot.label, self.sub_slot.ordinal)


class DateAvailability(TypedDict):
    """Summary of availability for a single date."""

    date: str
    day_name: str
    open_count: int


class AvailabilityResolver:
    """Answers "what can still be booked here on this day"."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)
        self.templates = TemplateStore(db)

    def resolve(self, location_id: int, on_date: date) -> list[AvailableSlot]:
        """
        List free sub-slots at a location for one date.

        Returns:
            AvailableSlot pairs ordered by start time, then ordinal.

        Raises:
            NotFoundError: If the location does not exist.
        """
        self.catalog.get_location(location_id)
        candidates = [
            t for t in self.templates.list_templates(location_id=location_id)
            if t.applies_on(on_date)
        ]
        if not candidates:
            logger.debug(
                "No templates at location %d on %s", location_id, weekday_name(on_date)
            )
            return []

        taken = self._taken_sub_slot_ids(location_id, on_date)
        slots = [
            AvailableSlot(template=t, sub_slot=s)
            for t in candidates
            for s in t.sub_slots
            if s.id not in taken
        ]
        slots.sort(key=lambda slot: (slot.start_time, slot.ordinal, slot.template_id))
        logger.debug(
            "Location %d on %s: %d open sub-slot(s), %d taken",
            location_id, on_date.isoformat(), len(slots), len(taken),
        )
        return slots

    def list_open_dates(
        self,
        location_id: int,
        start: Optional[date] = None,
        days: Optional[int] = None,
    ) -> list[DateAvailability]:
        """Open sub-slot counts for each date in ``[start, start + days)``.

        Dates with nothing open are included with ``open_count`` 0 so pickers
        can grey them out.
        """
        start = start or date.today()
        days = days or settings.booking.open_dates_window
        if days < 1 or days > settings.booking.max_page_size:
            raise ValidationError(
                f"days must be between 1 and {settings.booking.max_page_size}, got {days}"
            )

        results: list[DateAvailability] = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            results.append(DateAvailability(
                date=day.isoformat(),
                day_name=weekday_name(day),
                open_count=len(self.resolve(location_id, day)),
            ))
        return results

    def is_available(self, sub_slot_id: int, on_date: date) -> bool:
        """True when no non-cancelled booking holds this sub-slot on this date."""
        held = self.db.scalar(
            select(Booking.id).where(
                Booking.sub_slot_id == sub_slot_id,
                Booking.booking_date == on_date,
                Booking.status != BookingStatus.CANCELLED.value,
            ).limit(1)
        )
        return held is None

    def _taken_sub_slot_ids(self, location_id: int, on_date: date) -> set[int]:
        rows = self.db.scalars(
            select(Booking.sub_slot_id).where(
                Booking.location_id == location_id,
                Booking.booking_date == on_date,
                Booking.status != BookingStatus.CANCELLED.value,
                Booking.sub_slot_id.is_not(None),
            )
        )
        return set(rows)


def resolve_availability(db: Session, location_id: int, on_date: date) -> list[AvailableSlot]:
    """Shorthand for ``AvailabilityResolver(db).resolve(location_id, on_date)``."""
    return AvailabilityResolver(db).resolve(location_id, on_date)
