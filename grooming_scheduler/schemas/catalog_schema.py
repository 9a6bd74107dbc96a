"""Location and service catalog models."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict


class LocationCreate(BaseModel):
    name: str
    directions: Optional[str] = None
    phone_number: Optional[str] = None


class LocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    directions: Optional[str] = None
    phone_number: Optional[str] = None


class ServiceCreate(BaseModel):
    name: str
    price: Decimal = Decimal("0")
    kind: str = "checkbox"


class ServiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Decimal
    kind: str
    is_active: bool
