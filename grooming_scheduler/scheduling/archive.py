"""
Historical archive of completed and cancelled bookings.

A record is a frozen copy of the booking at the moment it became
terminal: customer and pet data, the shop name, the sub-slot label and a
price snapshot of every selected service. The lifecycle controller adds
rows inside its own transaction (``snapshot`` never commits) and removes
them only when an admin restores the booking.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from grooming_scheduler.config import settings
from grooming_scheduler.errors import NotFoundError, ValidationError
from grooming_scheduler.lifecycle.state_machine import BookingStatus, TERMINAL_STATUSES
from grooming_scheduler.models import Booking, HistoricalRecord
from grooming_scheduler.schemas.archive_schema import ArchiveQuery
from grooming_scheduler.utils import slot_label

logger = logging.getLogger(__name__)

CREDIT = "credit"
RATING_SORTS = ("asc", "desc")


def compute_total(services: Iterable[dict]) -> Decimal:
    """Sum the ``price`` of archived service entries."""
    total = Decimal("0")
    for entry in services:
        total += Decimal(str(entry.get("price") or 0))
    return total.quantize(Decimal("0.01"))


def summarize_payment_modes(payment_mode: Optional[str], payment_details: Optional[list]) -> str:
    """
    Render how a booking was paid for display.

    Credit is an outstanding balance, not money received, so it only shows
    when nothing else was paid or when it settled the remainder:

        ["upi"]                    -> "upi"
        ["credit", "cash"]         -> "cash"
        ["cash", "credit"]         -> "credit"
        ["cash", "upi"]            -> "cash + upi"
        ["cash", "credit", "upi"]  -> "cash + upi"

    Without details the stored ``payment_mode`` is used, lowercased.
    """
    fallback = payment_mode.lower() if payment_mode else ""
    if not payment_details:
        return fallback
    if isinstance(payment_details, dict):
        payment_details = [payment_details]

    modes = [str((entry or {}).get("mode") or "").lower() for entry in payment_details]
    if len(modes) == 1:
        return modes[0]

    if len(modes) == 2:
        first, second = modes
        if first == CREDIT and second != CREDIT:
            return second
        if second == CREDIT and first != CREDIT:
            return CREDIT
        if first == second:
            return first
        return f"{first} + {second}"

    paid = [m for m in modes if m != CREDIT]
    if not paid:
        return CREDIT
    return " + ".join(paid)


def _rating(record: HistoricalRecord) -> int:
    return (record.feedback or {}).get("rating") or 0


class ArchiveService:
    """Writes snapshots and answers archive searches."""

    def __init__(self, db: Session):
        self.db = db

    def snapshot(
        self,
        booking: Booking,
        status: BookingStatus,
        payment_mode: Optional[str] = None,
        payment_details: Optional[list[dict]] = None,
    ) -> HistoricalRecord:
        """Stage an archive row for ``booking``; the caller's transaction commits it."""
        if BookingStatus(status) not in TERMINAL_STATUSES:
            raise ValidationError(f"Only terminal bookings are archived, not '{status}'")

        services = [
            {
                "id": sel.service_id,
                "name": sel.service.name if sel.service else None,
                "price": float(sel.service.price) if sel.service else 0.0,
                "input_value": sel.input_value,
                "care_note": sel.care_note,
            }
            for sel in booking.services
        ]
        sub_slot = booking.sub_slot
        record = HistoricalRecord(
            original_booking_id=booking.id,
            customer_name=booking.customer_name,
            contact_number=booking.contact_number,
            pet_name=booking.pet_name,
            pet_breed=booking.pet_breed,
            booking_date=booking.booking_date,
            slot_time=booking.slot_time,
            sub_slot_id=booking.sub_slot_id,
            location_id=booking.location_id,
            location_name=booking.location.name if booking.location else None,
            slot_label=slot_label(
                sub_slot.label if sub_slot else None,
                sub_slot.ordinal if sub_slot else None,
            ),
            status=BookingStatus(status).value,
            services=services,
            total_price=compute_total(services),
            payment_mode=payment_mode.lower() if payment_mode else None,
            payment_details=payment_details,
            check_in_time=booking.check_in_time,
        )
        self.db.add(record)
        return record

    def delete_for_booking(self, booking_id: int) -> int:
        """Remove the live archive row of a booking. Returns rows deleted."""
        result = self.db.execute(
            delete(HistoricalRecord)
            .where(HistoricalRecord.original_booking_id == booking_id)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    def attach_feedback(self, booking_id: int, rating: int, comment: Optional[str]) -> HistoricalRecord:
        record = self.get_record_for_booking(booking_id)
        record.feedback = {"rating": rating, "comment": (comment or "").strip() or None}
        return record

    def get_record(self, record_id: int) -> HistoricalRecord:
        record = self.db.get(HistoricalRecord, record_id)
        if record is None:
            raise NotFoundError(f"Historical record {record_id} not found.")
        return record

    def get_record_for_booking(self, booking_id: int) -> HistoricalRecord:
        record = self.db.scalar(
            select(HistoricalRecord).where(HistoricalRecord.original_booking_id == booking_id)
        )
        if record is None:
            raise NotFoundError(f"No archive record for booking {booking_id}.")
        return record

    def search_records(self, query: ArchiveQuery) -> tuple[list[HistoricalRecord], int]:
        """
        Search the archive, newest first.

        Column filters run in SQL. The service filter (match any of
        ``service_ids``) and the rating sort work on JSON columns, so they run
        over the SQL result before paging.

        Returns:
            Tuple of (records on the requested page, total matches).
        """
        if query.rating_sort and query.rating_sort not in RATING_SORTS:
            raise ValidationError(f"rating_sort must be one of {list(RATING_SORTS)}")
        page, page_size = _paging(query.page, query.page_size)

        stmt = select(HistoricalRecord).order_by(
            HistoricalRecord.archived_at.desc(), HistoricalRecord.id.desc()
        )
        if query.date_from:
            stmt = stmt.where(HistoricalRecord.booking_date >= query.date_from)
        if query.date_to:
            stmt = stmt.where(HistoricalRecord.booking_date <= query.date_to)
        if query.search:
            pattern = f"%{query.search.strip().lower()}%"
            stmt = stmt.where(or_(
                func.lower(HistoricalRecord.customer_name).like(pattern),
                func.lower(HistoricalRecord.pet_breed).like(pattern),
                func.lower(HistoricalRecord.contact_number).like(pattern),
                func.lower(HistoricalRecord.pet_name).like(pattern),
            ))
        if query.location_id is not None:
            stmt = stmt.where(HistoricalRecord.location_id == query.location_id)
        if query.status:
            stmt = stmt.where(HistoricalRecord.status == query.status.lower())
        if query.payment_mode:
            stmt = stmt.where(HistoricalRecord.payment_mode == query.payment_mode.lower())

        records = list(self.db.scalars(stmt))

        if query.service_ids:
            wanted = set(query.service_ids)
            records = [
                r for r in records
                if any(entry.get("id") in wanted for entry in (r.services or []))
            ]
        if query.rating_sort:
            records.sort(key=_rating, reverse=query.rating_sort == "desc")

        total = len(records)
        start = (page - 1) * page_size
        return records[start:start + page_size], total


def _paging(page: int, page_size: Optional[int]) -> tuple[int, int]:
    page_size = page_size or settings.booking.page_size
    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}")
    if not 1 <= page_size <= settings.booking.max_page_size:
        raise ValidationError(
            f"page_size must be between 1 and {settings.booking.max_page_size}, got {page_size}"
        )
    return page, page_size
