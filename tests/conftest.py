"""Shared test fixtures and helpers."""

from datetime import date, time
from decimal import Decimal
from typing import Optional

import pytest
from sqlalchemy.orm import sessionmaker

from grooming_scheduler.database import create_db_engine, init_db
from grooming_scheduler.events import ChangeFeed
from grooming_scheduler.lifecycle.controller import LifecycleController
from grooming_scheduler.schemas.booking_schema import BookingCreate
from grooming_scheduler.schemas.catalog_schema import LocationCreate, ServiceCreate
from grooming_scheduler.schemas.template_schema import SubSlotIn, TemplateDefinition
from grooming_scheduler.scheduling.booking import BookingLedger
from grooming_scheduler.scheduling.catalog import CatalogService
from grooming_scheduler.scheduling.templates import TemplateStore

# 2024-06-10 is a Monday
MONDAY = date(2024, 6, 10)
TUESDAY = date(2024, 6, 11)
WEDNESDAY = date(2024, 6, 12)


@pytest.fixture
def engine(tmp_path):
    # File-backed so several threads can hold their own connections
    engine = create_db_engine(f"sqlite:///{tmp_path / 'scheduler.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def location(db):
    return make_location(db)


@pytest.fixture
def services(db):
    return [
        make_service(db, "Bath", Decimal("500")),
        make_service(db, "Haircut", Decimal("800")),
        make_service(db, "Nail trim", Decimal("200"), kind="input"),
    ]


@pytest.fixture
def template(db, location):
    """10:00, every day, two sub-slots at ``location``."""
    return make_template(db, [location.id], start_time=time(10, 0), sub_slot_count=2)


@pytest.fixture
def ledger(db, feed):
    return BookingLedger(db, feed=feed)


@pytest.fixture
def controller(db, feed):
    return LifecycleController(db, feed=feed)


def make_location(db, name: str = "Indiranagar", directions: Optional[str] = "Near the metro"):
    return CatalogService(db).create_location(
        LocationCreate(name=name, directions=directions, phone_number="080-4000-1000")
    )


def make_service(db, name: str, price: Decimal, kind: str = "checkbox"):
    return CatalogService(db).create_service(ServiceCreate(name=name, price=price, kind=kind))


def make_template(
    db,
    location_ids: list[int],
    start_time: time = time(10, 0),
    applies_every_day: bool = True,
    specific_weekdays: Optional[list[str]] = None,
    sub_slot_count: Optional[int] = None,
    labels: Optional[list[Optional[str]]] = None,
):
    """Helper to create a template through the store."""
    return TemplateStore(db).create_template(TemplateDefinition(
        start_time=start_time,
        applies_every_day=applies_every_day,
        specific_weekdays=specific_weekdays,
        location_ids=location_ids,
        sub_slots=[SubSlotIn(label=label) for label in (labels or [])],
        sub_slot_count=sub_slot_count,
    ))


def booking_data(
    sub_slot_id: Optional[int],
    location_id: Optional[int],
    booking_date: Optional[date] = MONDAY,
    **overrides,
) -> BookingCreate:
    """Helper to create a valid BookingCreate with sensible defaults."""
    fields = {
        "customer_name": "Asha Rao",
        "contact_number": "98450 12345",
        "pet_name": "Bruno",
        "pet_breed": "Beagle",
    }
    fields.update(overrides)
    return BookingCreate(
        sub_slot_id=sub_slot_id,
        location_id=location_id,
        booking_date=booking_date,
        **fields,
    )
