"""SQLAlchemy models for templates, bookings and the historical archive."""

from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from grooming_scheduler.database import Base
from grooming_scheduler.lifecycle.state_machine import BookingStatus
from grooming_scheduler.utils import weekday_name


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


template_locations = Table(
    "template_locations",
    Base.metadata,
    Column("template_id", Integer, ForeignKey("time_templates.id", ondelete="CASCADE"), primary_key=True),
    Column("location_id", Integer, ForeignKey("locations.id", ondelete="CASCADE"), primary_key=True),
)


class Location(Base):
    """A shop offering appointments."""

    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    directions = Column(Text, nullable=True)
    phone_number = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Service(Base):
    """A catalog service that can be attached to a booking."""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    kind = Column(String(20), nullable=False, default="checkbox")  # checkbox | input
    is_active = Column(Boolean, nullable=False, default=True)


class TimeTemplate(Base):
    """A recurring appointment start time offered at one or more locations."""

    __tablename__ = "time_templates"

    id = Column(Integer, primary_key=True, index=True)
    start_time = Column(Time, nullable=False)
    applies_every_day = Column(Boolean, nullable=False, default=False)
    specific_weekdays = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    locations = relationship("Location", secondary=template_locations, lazy="selectin")
    sub_slots = relationship(
        "SubSlot",
        back_populates="template",
        order_by="SubSlot.ordinal",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def location_ids(self) -> list[int]:
        return sorted(loc.id for loc in self.locations)

    def applies_on(self, day: date) -> bool:
        """True when this template recurs on ``day``'s weekday."""
        if self.applies_every_day:
            return True
        return weekday_name(day) in (self.specific_weekdays or [])


class SubSlot(Base):
    """One parallel capacity unit (e.g. a grooming table) under a template."""

    __tablename__ = "sub_slots"
    __table_args__ = (
        UniqueConstraint("template_id", "ordinal", name="uq_sub_slots_template_ordinal"),
    )

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("time_templates.id", ondelete="CASCADE"), nullable=False, index=True)
    ordinal = Column(Integer, nullable=False)
    label = Column(String(255), nullable=True)

    template = relationship("TimeTemplate", back_populates="sub_slots")


class Booking(Base):
    """A reservation of one sub-slot on one calendar date."""

    __tablename__ = "bookings"
    __table_args__ = (
        # Admission guard: one non-cancelled booking per sub-slot and date
        Index(
            "uq_bookings_active_sub_slot_date",
            "sub_slot_id",
            "booking_date",
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        Index("ix_bookings_location_date", "location_id", "booking_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String(255), nullable=False)
    contact_number = Column(String(50), nullable=False)
    pet_name = Column(String(255), nullable=False)
    pet_breed = Column(String(255), nullable=False)
    booking_date = Column(Date, nullable=False)
    sub_slot_id = Column(Integer, ForeignKey("sub_slots.id", ondelete="RESTRICT"), nullable=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    slot_time = Column(Time, nullable=True)
    status = Column(String(20), nullable=False, default=BookingStatus.RESERVED.value)
    source = Column(String(20), nullable=False, default="staff")  # staff | customer
    check_in_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    sub_slot = relationship("SubSlot")
    location = relationship("Location")
    services = relationship(
        "ServiceSelection",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="ServiceSelection.id",
        lazy="selectin",
    )


class ServiceSelection(Base):
    """A service assigned to a booking, replaced as a batch on re-submission."""

    __tablename__ = "service_selections"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)
    input_value = Column(Text, nullable=True)
    care_note = Column(Text, nullable=True)

    booking = relationship("Booking", back_populates="services")
    service = relationship("Service", lazy="joined")


class HistoricalRecord(Base):
    """Frozen snapshot of a booking that reached completed or cancelled.

    Location name and slot label are copied at archival time so later
    template or shop edits do not rewrite history.
    """

    __tablename__ = "historical_records"

    id = Column(Integer, primary_key=True, index=True)
    # Unique: one live archive row per booking; restore deletes it first
    original_booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, unique=True)
    customer_name = Column(String(255), nullable=False)
    contact_number = Column(String(50), nullable=False)
    pet_name = Column(String(255), nullable=False)
    pet_breed = Column(String(255), nullable=False)
    booking_date = Column(Date, nullable=False, index=True)
    slot_time = Column(Time, nullable=True)
    sub_slot_id = Column(Integer, nullable=True)
    location_id = Column(Integer, nullable=False, index=True)
    location_name = Column(String(255), nullable=True)
    slot_label = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False)
    services = Column(JSON, nullable=False, default=list)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    feedback = Column(JSON, nullable=True)
    payment_mode = Column(String(50), nullable=True)
    payment_details = Column(JSON, nullable=True)
    check_in_time = Column(DateTime, nullable=True)
    archived_at = Column(DateTime, default=_utcnow, nullable=False)
