"""
Lifecycle controller: applies booking status transitions with their side effects.

Every public method follows the same steps:
  1. ask BookingStateMachine whether the event is legal from the current status;
  2. inside one transaction, move the status with a compare-and-set update
     limited to the event's legal source statuses, then perform the side
     effect (service rows, archive snapshot, archive delete, feedback);
  3. after commit, publish the change.

If the compare-and-set matches no row, a concurrent request moved the
booking first; the transaction is rolled back and IllegalTransitionError
reports the status that request left behind.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from grooming_scheduler.database import transaction
from grooming_scheduler.errors import (
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from grooming_scheduler.events import ChangeEvent, ChangeFeed, ChangeKind, change_feed
from grooming_scheduler.lifecycle.state_machine import (
    BookingStateMachine,
    BookingStatus,
    LifecycleEvent,
    Role,
)
from grooming_scheduler.logging_context import get_request_logger
from grooming_scheduler.models import Booking, HistoricalRecord, Service, ServiceSelection
from grooming_scheduler.schemas.booking_schema import ServiceSelectionIn
from grooming_scheduler.scheduling.archive import ArchiveService
from grooming_scheduler.scheduling.validators import validate_payment_details, validate_rating

logger = get_request_logger(__name__)


class LifecycleController:
    """The only writer of booking status after creation."""

    def __init__(self, db: Session, feed: ChangeFeed = change_feed):
        self.db = db
        self.feed = feed
        self.archive = ArchiveService(db)

    def check_in(self, booking_id: int) -> Booking:
        """reserved -> checked_in, stamping the arrival time."""
        booking = self._load(booking_id)
        target = self._plan(booking, LifecycleEvent.CHECK_IN)
        with transaction(self.db):
            self._compare_and_set(
                booking, LifecycleEvent.CHECK_IN, target,
                check_in_time=datetime.now(timezone.utc),
            )
        return self._finish(booking, LifecycleEvent.CHECK_IN)

    def submit_services(self, booking_id: int, services: list[ServiceSelectionIn]) -> Booking:
        """
        Record the services for a booking and move it to progressing.

        The submitted list replaces any earlier submission entirely.

        Raises:
            ValidationError: Empty list or duplicate service ids.
            NotFoundError: A service id does not exist.
        """
        if not services:
            raise ValidationError("Select at least one service.")
        ids = [s.service_id for s in services]
        if len(set(ids)) != len(ids):
            raise ValidationError("Each service can be selected once.")
        known = set(self.db.scalars(select(Service.id).where(Service.id.in_(ids))))
        missing = sorted(set(ids) - known)
        if missing:
            raise NotFoundError(f"Services not found: {missing}")

        booking = self._load(booking_id)
        target = self._plan(booking, LifecycleEvent.SUBMIT_SERVICES)
        with transaction(self.db):
            self._compare_and_set(booking, LifecycleEvent.SUBMIT_SERVICES, target)
            booking.services.clear()
            # Old rows must be gone before the new set is inserted
            self.db.flush()
            booking.services.extend(
                ServiceSelection(
                    service_id=s.service_id,
                    input_value=(s.input_value or "").strip() or None,
                    care_note=(s.care_note or "").strip() or None,
                )
                for s in services
            )
        return self._finish(booking, LifecycleEvent.SUBMIT_SERVICES)

    def complete(
        self,
        booking_id: int,
        payment_mode: Optional[str] = None,
        payment_details: Optional[list] = None,
    ) -> HistoricalRecord:
        """
        checked_in/progressing -> completed, archiving the priced snapshot.

        ``payment_details`` entries may be PaymentEntry models or plain dicts.
        """
        payment_details = validate_payment_details(payment_details)
        booking = self._load(booking_id)
        target = self._plan(booking, LifecycleEvent.COMPLETE)
        if payment_details and not payment_mode:
            payment_mode = payment_details[0].get("mode")
        with transaction(self.db, conflict_message=f"Booking {booking_id} is already archived"):
            self._compare_and_set(booking, LifecycleEvent.COMPLETE, target)
            record = self.archive.snapshot(
                booking, target, payment_mode=payment_mode, payment_details=payment_details,
            )
        self.db.refresh(record)
        self._finish(booking, LifecycleEvent.COMPLETE)
        return record

    def cancel(self, booking_id: int) -> HistoricalRecord:
        """reserved/checked_in/progressing -> cancelled. The sub-slot frees up at once."""
        booking = self._load(booking_id)
        target = self._plan(booking, LifecycleEvent.CANCEL)
        with transaction(self.db, conflict_message=f"Booking {booking_id} is already archived"):
            self._compare_and_set(booking, LifecycleEvent.CANCEL, target)
            record = self.archive.snapshot(booking, target)
        self.db.refresh(record)
        self._finish(booking, LifecycleEvent.CANCEL)
        return record

    def restore(self, booking_id: int, role: Role = Role.STAFF) -> Booking:
        """
        Undo a completion or cancellation (admin only).

        Deletes the archive row and puts the booking back to progressing.

        Raises:
            IllegalTransitionError: Caller is not an admin, or the booking is not terminal.
            ConflictError: A cancelled booking's sub-slot was re-booked for that
                date, or the booking's template was deleted while it was archived.
        """
        booking = self._load(booking_id)
        target = self._plan(booking, LifecycleEvent.RESTORE, role)
        if booking.sub_slot_id is None:
            raise ConflictError(
                f"Booking {booking_id} no longer has a sub-slot; its template was removed."
            )
        with transaction(
            self.db, conflict_message="Slot was re-booked after this booking was cancelled",
        ):
            self._compare_and_set(
                booking, LifecycleEvent.RESTORE, target, Booking.sub_slot_id.is_not(None),
            )
            removed = self.archive.delete_for_booking(booking_id)
        logger.info("Booking #%d restored by %s; %d archive row(s) removed", booking_id, role.value, removed)
        return self._finish(booking, LifecycleEvent.RESTORE)

    def submit_feedback(self, booking_id: int, rating: int, comment: Optional[str] = None) -> HistoricalRecord:
        """Attach a 1-5 rating and comment to a completed booking's archive row."""
        validate_rating(rating)
        booking = self._load(booking_id)
        self._plan(booking, LifecycleEvent.SUBMIT_FEEDBACK)
        with transaction(self.db):
            record = self.archive.attach_feedback(booking_id, rating, comment)
        self.db.refresh(record)
        logger.info("Feedback %d/5 recorded for booking #%d", rating, booking_id)
        return record

    def _load(self, booking_id: int) -> Booking:
        booking = self.db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found.")
        return booking

    def _plan(self, booking: Booking, event: LifecycleEvent, role: Role = Role.STAFF) -> BookingStatus:
        return BookingStateMachine(BookingStatus(booking.status)).transition(event, role)

    def _compare_and_set(
        self, booking: Booking, event: LifecycleEvent, target: BookingStatus, *conditions, **values,
    ) -> None:
        sources = [s.value for s in BookingStateMachine.sources_for(event)]
        result = self.db.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status.in_(sources), *conditions)
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self.db.scalar(select(Booking.status).where(Booking.id == booking.id))
            raise IllegalTransitionError(
                f"Booking {booking.id} changed concurrently; it is now '{current}'.",
                current_status=current,
            )
        # Keep the in-memory row in step for the snapshot taken in this transaction
        set_committed_value(booking, "status", target.value)
        for key, value in values.items():
            set_committed_value(booking, key, value)

    def _finish(self, booking: Booking, event: LifecycleEvent) -> Booking:
        self.db.refresh(booking)
        logger.info("Booking #%d: %s -> %s", booking.id, event.value, booking.status)
        self.feed.publish(ChangeEvent(
            table=Booking.__tablename__, kind=ChangeKind.UPDATE,
            record_id=booking.id, status=booking.status,
        ))
        return booking
