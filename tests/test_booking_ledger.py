"""Tests for booking creation, editing and listing."""

from datetime import time

import pytest

from grooming_scheduler.errors import (
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from grooming_scheduler.events import ChangeKind
from grooming_scheduler.schemas.booking_schema import BookingUpdate, ServiceSelectionIn
from grooming_scheduler.scheduling.booking import BookingLedger
from tests.conftest import (
    MONDAY,
    TUESDAY,
    WEDNESDAY,
    booking_data,
    make_location,
    make_template,
)


class TestCreateBooking:
    def test_new_booking_is_reserved(self, location, template, ledger):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        assert booking.id is not None
        assert booking.status == "reserved"
        assert booking.source == "staff"
        assert booking.slot_time == time(10, 0)
        assert booking.check_in_time is None

    def test_fields_are_stripped(self, location, template, ledger):
        booking = ledger.create_booking(booking_data(
            template.sub_slots[0].id, location.id, customer_name="  Asha Rao  ",
        ))
        assert booking.customer_name == "Asha Rao"

    def test_missing_sub_slot(self, location, ledger):
        with pytest.raises(ValidationError, match="sub-slot"):
            ledger.create_booking(booking_data(None, location.id))

    def test_missing_customer_fields_listed(self, location, template, ledger):
        with pytest.raises(ValidationError, match="pet name, pet breed"):
            ledger.create_booking(booking_data(
                template.sub_slots[0].id, location.id, pet_name="", pet_breed=" ",
            ))

    def test_invalid_phone(self, location, template, ledger):
        with pytest.raises(ValidationError, match="contact number"):
            ledger.create_booking(booking_data(
                template.sub_slots[0].id, location.id, contact_number="12",
            ))

    def test_unknown_sub_slot(self, location, ledger):
        with pytest.raises(NotFoundError):
            ledger.create_booking(booking_data(9999, location.id))

    def test_unknown_location(self, template, ledger):
        with pytest.raises(NotFoundError):
            ledger.create_booking(booking_data(template.sub_slots[0].id, 9999))

    def test_sub_slot_not_offered_at_location(self, db, template, ledger):
        other = make_location(db, name="Koramangala")
        with pytest.raises(ValidationError, match="not offered at location"):
            ledger.create_booking(booking_data(template.sub_slots[0].id, other.id))

    def test_sub_slot_not_offered_on_weekday(self, db, location, ledger):
        monday_only = make_template(
            db, [location.id], applies_every_day=False,
            specific_weekdays=["Monday"], sub_slot_count=1,
        )
        with pytest.raises(ValidationError, match="Tuesday"):
            ledger.create_booking(booking_data(monday_only.sub_slots[0].id, location.id, TUESDAY))

    def test_second_booking_for_same_slot_conflicts(self, location, template, ledger):
        ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        with pytest.raises(ConflictError, match="no longer available"):
            ledger.create_booking(booking_data(
                template.sub_slots[0].id, location.id, customer_name="Someone Else",
            ))

    def test_unknown_source(self, location, template, ledger):
        with pytest.raises(ValidationError, match="source"):
            ledger.create_booking(booking_data(template.sub_slots[0].id, location.id), source="kiosk")

    def test_insert_is_published(self, location, template, ledger, feed):
        events = []
        feed.subscribe(events.append, table="bookings")
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        assert [(e.kind, e.record_id, e.status) for e in events] == [
            (ChangeKind.INSERT, booking.id, "reserved"),
        ]


class TestCustomerConfirmation:
    class RecordingNotifier:
        def __init__(self, result=(True, None), raises=None):
            self.result = result
            self.raises = raises
            self.sent = []

        def send_booking_confirmation(self, booking, location):
            self.sent.append((booking.id, location.name))
            if self.raises:
                raise self.raises
            return self.result

    def test_customer_booking_sends_confirmation(self, db, feed, location, template):
        notifier = self.RecordingNotifier()
        ledger = BookingLedger(db, feed=feed, notifier=notifier)
        booking = ledger.create_booking(
            booking_data(template.sub_slots[0].id, location.id), source="customer",
        )
        assert notifier.sent == [(booking.id, location.name)]

    def test_staff_booking_sends_nothing(self, db, feed, location, template):
        notifier = self.RecordingNotifier()
        BookingLedger(db, feed=feed, notifier=notifier).create_booking(
            booking_data(template.sub_slots[0].id, location.id),
        )
        assert notifier.sent == []

    def test_notifier_failure_does_not_unwind_booking(self, db, feed, location, template):
        notifier = self.RecordingNotifier(raises=RuntimeError("gateway down"))
        ledger = BookingLedger(db, feed=feed, notifier=notifier)
        booking = ledger.create_booking(
            booking_data(template.sub_slots[0].id, location.id), source="customer",
        )
        assert ledger.get_booking(booking.id).status == "reserved"


class TestUpdateBooking:
    def test_edit_customer_fields(self, location, template, ledger):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        updated = ledger.update_booking(booking.id, BookingUpdate(pet_name="Max"))
        assert updated.pet_name == "Max"
        assert updated.customer_name == "Asha Rao"

    def test_move_to_free_sub_slot(self, location, template, ledger):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        updated = ledger.update_booking(booking.id, BookingUpdate(sub_slot_id=template.sub_slots[1].id))
        assert updated.sub_slot_id == template.sub_slots[1].id

    def test_move_to_other_date(self, location, template, ledger):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        updated = ledger.update_booking(booking.id, BookingUpdate(booking_date=WEDNESDAY))
        assert updated.booking_date == WEDNESDAY

    def test_move_onto_taken_sub_slot_conflicts(self, location, template, ledger):
        first = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        ledger.create_booking(booking_data(template.sub_slots[1].id, location.id))
        with pytest.raises(ConflictError):
            ledger.update_booking(first.id, BookingUpdate(sub_slot_id=template.sub_slots[1].id))

    def test_move_revalidates_weekday(self, db, location, template, ledger):
        monday_only = make_template(
            db, [location.id], start_time=time(12, 0), applies_every_day=False,
            specific_weekdays=["Monday"], sub_slot_count=1,
        )
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id, TUESDAY))
        with pytest.raises(ValidationError):
            ledger.update_booking(booking.id, BookingUpdate(sub_slot_id=monday_only.sub_slots[0].id))

    def test_moving_updates_slot_time(self, db, location, template, ledger):
        noon = make_template(db, [location.id], start_time=time(12, 0), sub_slot_count=1)
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        updated = ledger.update_booking(booking.id, BookingUpdate(sub_slot_id=noon.sub_slots[0].id))
        assert updated.slot_time == time(12, 0)

    def test_edit_cancelled_booking_rejected(self, location, template, ledger, controller):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        controller.cancel(booking.id)
        with pytest.raises(IllegalTransitionError) as excinfo:
            ledger.update_booking(booking.id, BookingUpdate(pet_name="Max"))
        assert excinfo.value.current_status == "cancelled"

    def test_blank_field_rejected(self, location, template, ledger):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        with pytest.raises(ValidationError, match="customer name"):
            ledger.update_booking(booking.id, BookingUpdate(customer_name="   "))

    def test_update_is_published(self, location, template, ledger, feed):
        booking = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        events = []
        feed.subscribe(events.append)
        ledger.update_booking(booking.id, BookingUpdate(pet_breed="Labrador"))
        assert [(e.kind, e.record_id) for e in events] == [(ChangeKind.UPDATE, booking.id)]


class TestListBookings:
    @pytest.fixture
    def three_bookings(self, location, template, ledger, controller, services):
        a = ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))
        b = ledger.create_booking(booking_data(
            template.sub_slots[1].id, location.id,
            customer_name="Vikram Shah", contact_number="99001 22334",
            pet_name="Luna", pet_breed="Shih Tzu",
        ))
        c = ledger.create_booking(booking_data(
            template.sub_slots[0].id, location.id, TUESDAY, pet_name="Coco",
        ))
        controller.submit_services(b.id, [ServiceSelectionIn(service_id=services[1].id)])
        return a, b, c

    def test_filter_by_date(self, location, ledger, three_bookings):
        a, b, _ = three_bookings
        items, total = ledger.list_bookings(location_id=location.id, on_date=MONDAY)
        assert total == 2
        assert [x.id for x in items] == [a.id, b.id]

    def test_search_matches_breed_case_insensitively(self, ledger, three_bookings):
        _, b, _ = three_bookings
        items, total = ledger.list_bookings(search="shih")
        assert total == 1 and items[0].id == b.id

    def test_search_matches_contact_number(self, ledger, three_bookings):
        _, b, _ = three_bookings
        items, _ = ledger.list_bookings(search="99001")
        assert [x.id for x in items] == [b.id]

    def test_filter_by_service(self, ledger, services, three_bookings):
        _, b, _ = three_bookings
        items, _ = ledger.list_bookings(service_ids=[services[1].id, services[2].id])
        assert [x.id for x in items] == [b.id]

    def test_filter_by_status(self, ledger, three_bookings):
        _, b, _ = three_bookings
        items, total = ledger.list_bookings(status="progressing")
        assert total == 1 and items[0].id == b.id

    def test_unknown_status(self, ledger, three_bookings):
        with pytest.raises(ValidationError):
            ledger.list_bookings(status="sleeping")

    def test_paging(self, ledger, three_bookings):
        items, total = ledger.list_bookings(page=2, page_size=2)
        assert total == 3
        assert [x.id for x in items] == [three_bookings[2].id]

    def test_bad_page(self, ledger):
        with pytest.raises(ValidationError):
            ledger.list_bookings(page=0)
