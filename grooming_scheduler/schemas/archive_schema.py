"""Historical archive data models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ArchiveQuery(BaseModel):
    """Filters for searching the archive. Dates are inclusive."""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = None
    location_id: Optional[int] = None
    status: Optional[str] = None
    payment_mode: Optional[str] = None
    service_ids: list[int] = Field(default_factory=list)
    rating_sort: Optional[str] = None  # "asc" | "desc"
    page: int = 1
    page_size: Optional[int] = None


class HistoricalRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    original_booking_id: int
    customer_name: str
    contact_number: str
    pet_name: str
    pet_breed: str
    booking_date: date
    slot_time: Optional[time] = None
    sub_slot_id: Optional[int] = None
    location_id: int
    location_name: Optional[str] = None
    slot_label: Optional[str] = None
    status: str
    services: list[dict[str, Any]] = Field(default_factory=list)
    total_price: Decimal
    feedback: Optional[dict[str, Any]] = None
    payment_mode: Optional[str] = None
    payment_details: Optional[list[dict[str, Any]]] = None
    display_payment_mode: str = ""
    archived_at: Optional[datetime] = None


class ArchivePage(BaseModel):
    items: list[HistoricalRecordResponse]
    total: int
    page: int
    page_size: int
