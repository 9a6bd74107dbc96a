"""Booking ledger endpoints: reserve, edit, read and list."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from grooming_scheduler.api.deps import Actor, get_actor, get_ledger
from grooming_scheduler.config import settings
from grooming_scheduler.schemas.booking_schema import (
    BookingCreate,
    BookingPage,
    BookingResponse,
    BookingUpdate,
)
from grooming_scheduler.scheduling.booking import BookingLedger

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    source: str = Query("staff"),
    actor: Actor = Depends(get_actor),
    ledger: BookingLedger = Depends(get_ledger),
):
    if data.location_id is None and actor.location_id is not None:
        data = data.model_copy(update={"location_id": actor.location_id})
    return ledger.create_booking(data, source=source)


@router.get("", response_model=BookingPage)
def list_bookings(
    on_date: Optional[date] = Query(None, alias="date"),
    location_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    service_ids: Optional[list[int]] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    page: int = Query(1),
    page_size: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    ledger: BookingLedger = Depends(get_ledger),
):
    items, total = ledger.list_bookings(
        location_id=location_id if location_id is not None else actor.location_id,
        on_date=on_date,
        search=search,
        service_ids=service_ids,
        status=status_filter,
        page=page,
        page_size=page_size,
    )
    return BookingPage(
        items=[BookingResponse.model_validate(b) for b in items],
        total=total,
        page=page,
        page_size=page_size or settings.booking.page_size,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: int, ledger: BookingLedger = Depends(get_ledger)):
    return ledger.get_booking(booking_id)


@router.patch("/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    ledger: BookingLedger = Depends(get_ledger),
):
    return ledger.update_booking(booking_id, data)
