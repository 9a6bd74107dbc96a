"""Time template and sub-slot data models."""

from datetime import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubSlotIn(BaseModel):
    """One sub-slot in a template definition. Ordinals come from list position."""
    label: Optional[str] = None


class TemplateDefinition(BaseModel):
    """Full definition of a template, used for both create and replace.

    ``sub_slots`` is the complete set; ``sub_slot_count`` is shorthand for
    that many unlabelled sub-slots and is ignored when ``sub_slots`` is given.
    """
    start_time: time
    applies_every_day: bool = False
    specific_weekdays: Optional[list[str]] = None
    location_ids: list[int] = Field(default_factory=list)
    sub_slots: list[SubSlotIn] = Field(default_factory=list)
    sub_slot_count: Optional[int] = None


class SubSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    ordinal: int
    label: Optional[str] = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    start_time: time
    applies_every_day: bool
    specific_weekdays: Optional[list[str]] = None
    location_ids: list[int]
    sub_slots: list[SubSlotResponse] = Field(default_factory=list)


class AvailableSlotResponse(BaseModel):
    """A bookable (template, sub-slot) pair for one date."""
    template_id: int
    sub_slot_id: int
    start_time: time
    ordinal: int
    label: Optional[str] = None
    display_label: str


class DateAvailabilityResponse(BaseModel):
    date: str
    day_name: str
    open_count: int
