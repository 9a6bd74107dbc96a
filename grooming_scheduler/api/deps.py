"""Request-scoped dependencies: database session and caller identity."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from grooming_scheduler.database import get_db
from grooming_scheduler.errors import ValidationError
from grooming_scheduler.lifecycle.controller import LifecycleController
from grooming_scheduler.lifecycle.state_machine import Role
from grooming_scheduler.scheduling.archive import ArchiveService
from grooming_scheduler.scheduling.availability import AvailabilityResolver
from grooming_scheduler.scheduling.booking import BookingLedger
from grooming_scheduler.scheduling.catalog import CatalogService
from grooming_scheduler.scheduling.templates import TemplateStore


@dataclass(frozen=True)
class Actor:
    """Who is calling, as asserted by the identity provider in front of us."""
    role: Role
    location_id: Optional[int] = None


def get_actor(
    x_role: Optional[str] = Header(None),
    x_location_id: Optional[int] = Header(None),
) -> Actor:
    try:
        role = Role((x_role or Role.STAFF.value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown role: {x_role!r}") from None
    return Actor(role=role, location_id=x_location_id)


def get_catalog(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_template_store(db: Session = Depends(get_db)) -> TemplateStore:
    return TemplateStore(db)


def get_resolver(db: Session = Depends(get_db)) -> AvailabilityResolver:
    return AvailabilityResolver(db)


def get_ledger(db: Session = Depends(get_db)) -> BookingLedger:
    return BookingLedger(db)


def get_controller(db: Session = Depends(get_db)) -> LifecycleController:
    return LifecycleController(db)


def get_archive(db: Session = Depends(get_db)) -> ArchiveService:
    return ArchiveService(db)
