"""
Availability template store.

Owns recurring start times, the locations that offer them, and their
sub-slots. Updating a template is a full replacement: the caller sends
the complete definition and every existing sub-slot is deleted and
re-inserted with ordinals 1..N in the order given.

Templates cannot be edited or deleted while an active (reserved,
checked-in or progressing) booking references one of their sub-slots.
"""

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from grooming_scheduler.database import transaction
from grooming_scheduler.errors import ConflictError, NotFoundError, ValidationError
from grooming_scheduler.lifecycle.state_machine import ACTIVE_STATUSES, TERMINAL_STATUSES
from grooming_scheduler.models import Booking, SubSlot, TimeTemplate, template_locations
from grooming_scheduler.schemas.template_schema import SubSlotIn, TemplateDefinition
from grooming_scheduler.scheduling.catalog import CatalogService
from grooming_scheduler.scheduling.validators import validate_recurrence

logger = logging.getLogger(__name__)

MAX_SUB_SLOTS = 50


def _resolve_sub_slots(data: TemplateDefinition) -> list[SubSlotIn]:
    if data.sub_slots:
        sub_slots = list(data.sub_slots)
    elif data.sub_slot_count:
        sub_slots = [SubSlotIn() for _ in range(data.sub_slot_count)]
    else:
        sub_slots = []
    if not sub_slots:
        raise ValidationError("A template needs at least one sub-slot.")
    if len(sub_slots) > MAX_SUB_SLOTS:
        raise ValidationError(f"A template can have at most {MAX_SUB_SLOTS} sub-slots.")
    return sub_slots


class TemplateStore:
    """CRUD for time templates and their sub-slots."""

    def __init__(self, db: Session):
        self.db = db
        self.catalog = CatalogService(db)

    def create_template(self, data: TemplateDefinition) -> TimeTemplate:
        """Create a template with its locations and sub-slots in one transaction."""
        weekdays, locations, sub_slots = self._validate(data)

        template = TimeTemplate(
            start_time=data.start_time,
            applies_every_day=data.applies_every_day,
            specific_weekdays=weekdays,
        )
        template.locations = locations
        template.sub_slots = [
            SubSlot(ordinal=i, label=(s.label or None)) for i, s in enumerate(sub_slots, start=1)
        ]
        with transaction(self.db):
            self.db.add(template)
        self.db.refresh(template)
        logger.info(
            "Template #%d created: %s with %d sub-slot(s) at locations %s",
            template.id, template.start_time, len(template.sub_slots), template.location_ids,
        )
        return template

    def update_template(self, template_id: int, data: TemplateDefinition) -> TimeTemplate:
        """Replace a template's definition and its whole sub-slot set.

        This is not a patch: fields and sub-slots missing from ``data`` are
        gone afterwards. Sub-slot ids change, so callers must re-read them.

        Raises:
            ConflictError: an active booking references one of its sub-slots.
        """
        template = self.get_template(template_id)
        weekdays, locations, sub_slots = self._validate(data)
        self._ensure_no_active_bookings(template, "edit")

        with transaction(self.db, conflict_message="Template changed concurrently"):
            self._detach_archived_bookings(template)
            template.start_time = data.start_time
            template.applies_every_day = data.applies_every_day
            template.specific_weekdays = weekdays
            template.locations = locations
            template.sub_slots.clear()
            # Old rows must be gone before ordinals 1..N are reused
            self.db.flush()
            template.sub_slots.extend(
                SubSlot(ordinal=i, label=(s.label or None)) for i, s in enumerate(sub_slots, start=1)
            )
        self.db.refresh(template)
        logger.info(
            "Template #%d replaced: %s with %d sub-slot(s)",
            template.id, template.start_time, len(template.sub_slots),
        )
        return template

    def delete_template(self, template_id: int) -> None:
        """Delete a template and its sub-slots.

        Raises:
            ConflictError: an active booking references one of its sub-slots.
        """
        template = self.get_template(template_id)
        self._ensure_no_active_bookings(template, "delete")
        with transaction(self.db):
            self._detach_archived_bookings(template)
            self.db.delete(template)
        logger.info("Template #%d deleted", template_id)

    def get_template(self, template_id: int) -> TimeTemplate:
        template = self.db.get(TimeTemplate, template_id)
        if template is None:
            raise NotFoundError(f"Template {template_id} not found.")
        return template

    def get_sub_slot(self, sub_slot_id: int) -> SubSlot:
        sub_slot = self.db.get(SubSlot, sub_slot_id)
        if sub_slot is None:
            raise NotFoundError(f"Sub-slot {sub_slot_id} not found.")
        return sub_slot

    def list_templates(self, location_id: Optional[int] = None) -> list[TimeTemplate]:
        """All templates ordered by start time, optionally only those at one location."""
        query = select(TimeTemplate).order_by(TimeTemplate.start_time, TimeTemplate.id)
        if location_id is not None:
            query = query.join(
                template_locations, template_locations.c.template_id == TimeTemplate.id
            ).where(template_locations.c.location_id == location_id)
        return list(self.db.scalars(query))

    def _validate(self, data: TemplateDefinition):
        if data.start_time is None:
            raise ValidationError("Start time is required.")
        weekdays = validate_recurrence(data.applies_every_day, data.specific_weekdays)
        if not data.location_ids:
            raise ValidationError("A template must be offered at one location at least.")
        locations = self.catalog.require_locations(data.location_ids)
        sub_slots = _resolve_sub_slots(data)
        return weekdays, locations, sub_slots

    def _sub_slot_ids(self, template: TimeTemplate) -> list[int]:
        return [s.id for s in template.sub_slots]

    def _ensure_no_active_bookings(self, template: TimeTemplate, action: str) -> None:
        ids = self._sub_slot_ids(template)
        if not ids:
            return
        active = self.db.scalar(
            select(func.count(Booking.id)).where(
                Booking.sub_slot_id.in_(ids),
                Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
            )
        )
        if active:
            raise ConflictError(
                f"Cannot {action} template {template.id}: "
                f"{active} active booking(s) reference its sub-slots."
            )

    def _detach_archived_bookings(self, template: TimeTemplate) -> None:
        """Clear sub-slot references of terminal bookings before their rows go away.

        Active bookings keep theirs, so one created after the check above
        makes the sub-slot delete fail on the foreign key and the whole
        transaction rolls back as a ConflictError.
        """
        ids = self._sub_slot_ids(template)
        if ids:
            self.db.execute(
                update(Booking)
                .where(
                    Booking.sub_slot_id.in_(ids),
                    Booking.status.in_([s.value for s in TERMINAL_STATUSES]),
                )
                .values(sub_slot_id=None)
                .execution_options(synchronize_session=False)
            )
