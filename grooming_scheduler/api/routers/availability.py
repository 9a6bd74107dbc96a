"""Free sub-slots for a location and date, and open-date summaries for pickers."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from grooming_scheduler.api.deps import Actor, get_actor, get_resolver
from grooming_scheduler.errors import ValidationError
from grooming_scheduler.schemas.template_schema import (
    AvailableSlotResponse,
    DateAvailabilityResponse,
)
from grooming_scheduler.scheduling.availability import AvailabilityResolver

router = APIRouter(prefix="/availability", tags=["Availability"])


def _location(location_id: Optional[int], actor: Actor) -> int:
    location_id = location_id if location_id is not None else actor.location_id
    if location_id is None:
        raise ValidationError("location_id is required (query or X-Location-Id header).")
    return location_id


@router.get("", response_model=list[AvailableSlotResponse])
def get_availability(
    on_date: date = Query(..., alias="date"),
    location_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    slots = resolver.resolve(_location(location_id, actor), on_date)
    return [
        AvailableSlotResponse(
            template_id=s.template_id,
            sub_slot_id=s.sub_slot_id,
            start_time=s.start_time,
            ordinal=s.ordinal,
            label=s.label,
            display_label=s.display_label,
        )
        for s in slots
    ]


@router.get("/dates", response_model=list[DateAvailabilityResponse])
def get_open_dates(
    start: Optional[date] = Query(None),
    days: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    actor: Actor = Depends(get_actor),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    return resolver.list_open_dates(_location(location_id, actor), start=start, days=days)
