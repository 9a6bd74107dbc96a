"""
Booking ledger: the live appointments table.

Admission is a single conditional insert. The partial unique index on
(sub_slot_id, booking_date) for non-cancelled rows decides races inside the
store; the availability read beforehand only fails fast for the common
case. Of N concurrent requests for the same sub-slot and date, one commits
and the rest get ConflictError.
"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from grooming_scheduler.config import settings
from grooming_scheduler.database import transaction
from grooming_scheduler.errors import (
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from grooming_scheduler.events import ChangeEvent, ChangeFeed, ChangeKind, change_feed
from grooming_scheduler.lifecycle.state_machine import ACTIVE_STATUSES, BookingStatus
from grooming_scheduler.logging_context import get_request_logger
from grooming_scheduler.models import Booking, ServiceSelection, SubSlot
from grooming_scheduler.notifications import WhatsAppNotifier
from grooming_scheduler.schemas.booking_schema import BookingCreate, BookingUpdate
from grooming_scheduler.scheduling.availability import AvailabilityResolver
from grooming_scheduler.scheduling.catalog import CatalogService
from grooming_scheduler.scheduling.templates import TemplateStore
from grooming_scheduler.scheduling.validators import validate_customer_fields
from grooming_scheduler.utils import weekday_name

logger = get_request_logger(__name__)

SLOT_TAKEN = "Slot no longer available"
BOOKING_SOURCES = ("staff", "customer")


class BookingLedger:
    """Creates, edits and lists bookings."""

    def __init__(
        self,
        db: Session,
        feed: ChangeFeed = change_feed,
        notifier: Optional[WhatsAppNotifier] = None,
    ):
        self.db = db
        self.feed = feed
        self.notifier = notifier
        self.catalog = CatalogService(db)
        self.templates = TemplateStore(db)
        self.resolver = AvailabilityResolver(db)

    def create_booking(self, data: BookingCreate, source: str = "staff") -> Booking:
        """
        Reserve one sub-slot on one date.

        Raises:
            ValidationError: Missing/malformed fields, or the sub-slot is not
                offered at this location on this weekday.
            NotFoundError: Unknown sub-slot or location.
            ConflictError: The sub-slot is already held on that date.
        """
        missing = [
            display for value, display in [
                (data.sub_slot_id, "sub-slot"),
                (data.booking_date, "booking date"),
                (data.location_id, "location"),
            ]
            if value is None
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}.")
        if source not in BOOKING_SOURCES:
            raise ValidationError(f"source must be one of {list(BOOKING_SOURCES)}")
        fields = validate_customer_fields(data.model_dump())

        location = self.catalog.get_location(data.location_id)
        sub_slot = self.templates.get_sub_slot(data.sub_slot_id)
        self._check_admission(sub_slot, location.id, data.booking_date)
        if not self.resolver.is_available(sub_slot.id, data.booking_date):
            raise ConflictError(SLOT_TAKEN)

        booking = Booking(
            **fields,
            booking_date=data.booking_date,
            sub_slot_id=sub_slot.id,
            location_id=location.id,
            slot_time=sub_slot.template.start_time,
            status=BookingStatus.RESERVED.value,
            source=source,
        )
        with transaction(self.db, conflict_message=SLOT_TAKEN):
            self.db.add(booking)
        self.db.refresh(booking)

        logger.info(
            "Booking #%d reserved: sub-slot %d on %s at location %d (%s)",
            booking.id, sub_slot.id, booking.booking_date, location.id, source,
        )
        self._publish(ChangeKind.INSERT, booking)
        if source == "customer":
            self._send_confirmation(booking)
        return booking

    def update_booking(self, booking_id: int, data: BookingUpdate) -> Booking:
        """
        Edit an active booking. Omitted fields are left unchanged.

        Raises:
            IllegalTransitionError: The booking is completed or cancelled.
            ConflictError: The new sub-slot/date is held by another booking.
        """
        booking = self.get_booking(booking_id)
        self._ensure_active(booking)

        changes = validate_customer_fields(data.model_dump(exclude_none=True), partial=True)
        new_sub_slot_id = data.sub_slot_id if data.sub_slot_id is not None else booking.sub_slot_id
        new_date = data.booking_date or booking.booking_date
        if (new_sub_slot_id, new_date) != (booking.sub_slot_id, booking.booking_date):
            if new_sub_slot_id is None:
                raise ValidationError("Missing required fields: sub-slot.")
            sub_slot = self.templates.get_sub_slot(new_sub_slot_id)
            self._check_admission(sub_slot, booking.location_id, new_date)
            if not self.resolver.is_available(sub_slot.id, new_date):
                raise ConflictError(SLOT_TAKEN)
            changes.update(
                sub_slot_id=sub_slot.id,
                booking_date=new_date,
                slot_time=sub_slot.template.start_time,
            )

        if not changes:
            return booking

        with transaction(self.db, conflict_message=SLOT_TAKEN):
            result = self.db.execute(
                update(Booking)
                .where(
                    Booking.id == booking_id,
                    Booking.status.in_([s.value for s in ACTIVE_STATUSES]),
                )
                .values(**changes)
                .execution_options(synchronize_session=False)
            )
            applied = result.rowcount == 1
        self.db.refresh(booking)
        if not applied:
            # Another request made it terminal between our read and write
            self._ensure_active(booking)

        logger.info("Booking #%d updated: %s", booking_id, sorted(changes))
        self._publish(ChangeKind.UPDATE, booking)
        return booking

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found.")
        return booking

    def list_bookings(
        self,
        location_id: Optional[int] = None,
        on_date: Optional[date] = None,
        search: Optional[str] = None,
        service_ids: Optional[list[int]] = None,
        status: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> tuple[list[Booking], int]:
        """
        Page through bookings in slot order.

        ``search`` matches customer name, contact number, pet name or breed
        (case-insensitive substring). ``service_ids`` keeps bookings with any
        of those services selected.

        Returns:
            Tuple of (bookings on the requested page, total matches).
        """
        page_size = page_size or settings.booking.page_size
        if page < 1:
            raise ValidationError(f"page must be >= 1, got {page}")
        if not 1 <= page_size <= settings.booking.max_page_size:
            raise ValidationError(
                f"page_size must be between 1 and {settings.booking.max_page_size}, got {page_size}"
            )

        stmt = select(Booking)
        if location_id is not None:
            stmt = stmt.where(Booking.location_id == location_id)
        if on_date is not None:
            stmt = stmt.where(Booking.booking_date == on_date)
        if status:
            try:
                stmt = stmt.where(Booking.status == BookingStatus(status.lower()).value)
            except ValueError:
                raise ValidationError(f"Unknown booking status: {status!r}") from None
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(or_(
                func.lower(Booking.customer_name).like(pattern),
                func.lower(Booking.contact_number).like(pattern),
                func.lower(Booking.pet_name).like(pattern),
                func.lower(Booking.pet_breed).like(pattern),
            ))
        if service_ids:
            stmt = stmt.where(Booking.services.any(ServiceSelection.service_id.in_(service_ids)))

        total = self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        items = list(self.db.scalars(
            stmt.order_by(Booking.booking_date, Booking.slot_time, Booking.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        ))
        return items, total or 0

    def _check_admission(self, sub_slot: SubSlot, location_id: int, on_date: date) -> None:
        template = sub_slot.template
        if location_id not in template.location_ids:
            raise ValidationError(
                f"Sub-slot {sub_slot.id} is not offered at location {location_id}."
            )
        if not template.applies_on(on_date):
            raise ValidationError(
                f"Sub-slot {sub_slot.id} is not offered on {weekday_name(on_date)}s."
            )

    def _ensure_active(self, booking: Booking) -> None:
        if BookingStatus(booking.status) not in ACTIVE_STATUSES:
            raise IllegalTransitionError(
                f"Booking {booking.id} is '{booking.status}' and can no longer be edited.",
                current_status=booking.status,
            )

    def _publish(self, kind: ChangeKind, booking: Booking) -> None:
        self.feed.publish(ChangeEvent(
            table=Booking.__tablename__, kind=kind, record_id=booking.id, status=booking.status,
        ))

    def _send_confirmation(self, booking: Booking) -> None:
        notifier = self.notifier or WhatsAppNotifier()
        try:
            sent, error = notifier.send_booking_confirmation(booking, booking.location)
        except Exception:
            logger.exception("Confirmation for booking %d raised", booking.id)
            return
        if not sent:
            logger.warning("Confirmation for booking %d not sent: %s", booking.id, error)
