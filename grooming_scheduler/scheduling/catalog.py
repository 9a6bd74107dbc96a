"""Locations (shops) and the grooming service catalog."""

import logging
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from grooming_scheduler.database import transaction
from grooming_scheduler.errors import NotFoundError, ValidationError
from grooming_scheduler.models import Location, Service
from grooming_scheduler.schemas.catalog_schema import LocationCreate, ServiceCreate

logger = logging.getLogger(__name__)

SERVICE_KINDS = ("checkbox", "input")


class CatalogService:
    """Read and write access to locations and services."""

    def __init__(self, db: Session):
        self.db = db

    def create_location(self, data: LocationCreate) -> Location:
        if not data.name.strip():
            raise ValidationError("Location name is required.")
        location = Location(
            name=data.name.strip(),
            directions=data.directions,
            phone_number=data.phone_number,
        )
        with transaction(self.db):
            self.db.add(location)
        self.db.refresh(location)
        logger.info("Location created: %s (#%d)", location.name, location.id)
        return location

    def get_location(self, location_id: int) -> Location:
        location = self.db.get(Location, location_id)
        if location is None:
            raise NotFoundError(f"Location {location_id} not found.")
        return location

    def list_locations(self) -> list[Location]:
        return list(self.db.scalars(select(Location).order_by(Location.name)))

    def require_locations(self, location_ids: Iterable[int]) -> list[Location]:
        """Load every id or raise NotFoundError naming the missing ones."""
        ids = sorted(set(location_ids))
        found = list(self.db.scalars(select(Location).where(Location.id.in_(ids))))
        missing = sorted(set(ids) - {loc.id for loc in found})
        if missing:
            raise NotFoundError(f"Locations not found: {missing}")
        return found

    def create_service(self, data: ServiceCreate) -> Service:
        if not data.name.strip():
            raise ValidationError("Service name is required.")
        if data.kind not in SERVICE_KINDS:
            raise ValidationError(f"Service kind must be one of {list(SERVICE_KINDS)}")
        if data.price < Decimal("0"):
            raise ValidationError("Service price cannot be negative.")
        service = Service(name=data.name.strip(), price=data.price, kind=data.kind)
        with transaction(self.db):
            self.db.add(service)
        self.db.refresh(service)
        return service

    def get_service(self, service_id: int) -> Service:
        service = self.db.get(Service, service_id)
        if service is None:
            raise NotFoundError(f"Service {service_id} not found.")
        return service

    def list_services(self, active_only: bool = True) -> list[Service]:
        query = select(Service).order_by(Service.name)
        if active_only:
            query = query.where(Service.is_active.is_(True))
        return list(self.db.scalars(query))

