"""Historical archive endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from grooming_scheduler.api.deps import get_archive
from grooming_scheduler.config import settings
from grooming_scheduler.models import HistoricalRecord
from grooming_scheduler.schemas.archive_schema import (
    ArchivePage,
    ArchiveQuery,
    HistoricalRecordResponse,
)
from grooming_scheduler.scheduling.archive import ArchiveService, summarize_payment_modes

router = APIRouter(prefix="/archive", tags=["Archive"])


def to_record_response(record: HistoricalRecord) -> HistoricalRecordResponse:
    response = HistoricalRecordResponse.model_validate(record)
    response.display_payment_mode = summarize_payment_modes(
        record.payment_mode, record.payment_details
    )
    return response


@router.get("", response_model=ArchivePage)
def search_archive(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    location_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    payment_mode: Optional[str] = Query(None),
    service_ids: Optional[list[int]] = Query(None),
    rating_sort: Optional[str] = Query(None),
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    archive: ArchiveService = Depends(get_archive),
):
    query = ArchiveQuery(
        date_from=date_from,
        date_to=date_to,
        search=search,
        location_id=location_id,
        status=status,
        payment_mode=payment_mode,
        service_ids=service_ids or [],
        rating_sort=rating_sort,
        page=page,
        page_size=page_size,
    )
    records, total = archive.search_records(query)
    return ArchivePage(
        items=[to_record_response(r) for r in records],
        total=total,
        page=page,
        page_size=page_size or settings.booking.page_size,
    )


@router.get("/{record_id}", response_model=HistoricalRecordResponse)
def get_record(record_id: int, archive: ArchiveService = Depends(get_archive)):
    return to_record_response(archive.get_record(record_id))


@router.get("/bookings/{booking_id}", response_model=HistoricalRecordResponse)
def get_record_for_booking(booking_id: int, archive: ArchiveService = Depends(get_archive)):
    return to_record_response(archive.get_record_for_booking(booking_id))
