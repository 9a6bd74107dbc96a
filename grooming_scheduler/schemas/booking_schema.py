"""Booking, service selection and lifecycle request models."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BookingCreate(BaseModel):
    """Step-complete reservation data."""
    sub_slot_id: Optional[int] = None
    booking_date: Optional[date] = None
    location_id: Optional[int] = None
    customer_name: str = ""
    contact_number: str = ""
    pet_name: str = ""
    pet_breed: str = ""


class BookingUpdate(BaseModel):
    """Partial edit of an active booking. Omitted fields are left as-is."""
    customer_name: Optional[str] = None
    contact_number: Optional[str] = None
    pet_name: Optional[str] = None
    pet_breed: Optional[str] = None
    booking_date: Optional[date] = None
    sub_slot_id: Optional[int] = None


class ServiceSelectionIn(BaseModel):
    service_id: int
    input_value: Optional[str] = None
    care_note: Optional[str] = None


class ServiceSubmission(BaseModel):
    """The complete set of services for a booking; replaces any previous set."""
    services: list[ServiceSelectionIn] = Field(default_factory=list)


class PaymentEntry(BaseModel):
    mode: str
    amount: Optional[Decimal] = None


class CompletionRequest(BaseModel):
    payment_mode: Optional[str] = None
    payment_details: Optional[list[PaymentEntry]] = None


class FeedbackRequest(BaseModel):
    rating: int
    comment: Optional[str] = None


class ServiceSelectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    input_value: Optional[str] = None
    care_note: Optional[str] = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_name: str
    contact_number: str
    pet_name: str
    pet_breed: str
    booking_date: date
    sub_slot_id: Optional[int] = None
    location_id: int
    slot_time: Optional[time] = None
    status: str
    source: str
    check_in_time: Optional[datetime] = None
    created_at: Optional[datetime] = None
    services: list[ServiceSelectionResponse] = Field(default_factory=list)


class BookingPage(BaseModel):
    items: list[BookingResponse]
    total: int
    page: int
    page_size: int
