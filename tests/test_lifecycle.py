"""Tests for lifecycle transitions and their archive side effects."""

from decimal import Decimal

import pytest
from sqlalchemy import func, select

from grooming_scheduler.errors import (
    ConflictError,
    IllegalTransitionError,
    NotFoundError,
    ValidationError,
)
from grooming_scheduler.events import ChangeKind
from grooming_scheduler.lifecycle.state_machine import Role
from grooming_scheduler.models import Booking, HistoricalRecord
from grooming_scheduler.schemas.booking_schema import PaymentEntry, ServiceSelectionIn
from grooming_scheduler.scheduling.templates import TemplateStore
from tests.conftest import MONDAY, booking_data


@pytest.fixture
def booking(location, template, ledger):
    return ledger.create_booking(booking_data(template.sub_slots[0].id, location.id))


def _archive_rows(db, booking_id):
    return db.scalar(
        select(func.count(HistoricalRecord.id)).where(
            HistoricalRecord.original_booking_id == booking_id
        )
    )


def _status(db, booking_id):
    return db.scalar(select(Booking.status).where(Booking.id == booking_id))


def _select(*services):
    return [ServiceSelectionIn(service_id=s.id) for s in services]


class TestCheckIn:
    def test_stamps_check_in_time(self, controller, booking):
        checked_in = controller.check_in(booking.id)
        assert checked_in.status == "checked_in"
        assert checked_in.check_in_time is not None

    def test_twice_rejected(self, controller, booking):
        controller.check_in(booking.id)
        with pytest.raises(IllegalTransitionError) as excinfo:
            controller.check_in(booking.id)
        assert excinfo.value.current_status == "checked_in"

    def test_unknown_booking(self, controller):
        with pytest.raises(NotFoundError):
            controller.check_in(424242)


class TestSubmitServices:
    def test_first_submission_moves_to_progressing(self, controller, booking, services):
        updated = controller.submit_services(booking.id, [
            ServiceSelectionIn(service_id=services[0].id, care_note="Sensitive skin"),
            ServiceSelectionIn(service_id=services[2].id, input_value=" 4 paws "),
        ])
        assert updated.status == "progressing"
        assert [(s.service_id, s.input_value, s.care_note) for s in updated.services] == [
            (services[0].id, None, "Sensitive skin"),
            (services[2].id, "4 paws", None),
        ]

    def test_resubmission_replaces_set(self, controller, booking, services):
        controller.check_in(booking.id)
        controller.submit_services(booking.id, _select(services[0], services[1]))
        updated = controller.submit_services(booking.id, _select(services[2]))
        assert updated.status == "progressing"
        assert [s.service_id for s in updated.services] == [services[2].id]

    def test_empty_submission_rejected(self, controller, booking):
        with pytest.raises(ValidationError):
            controller.submit_services(booking.id, [])

    def test_duplicate_service_rejected(self, controller, booking, services):
        with pytest.raises(ValidationError):
            controller.submit_services(booking.id, _select(services[0], services[0]))

    def test_unknown_service(self, controller, booking):
        with pytest.raises(NotFoundError, match="777"):
            controller.submit_services(booking.id, [ServiceSelectionIn(service_id=777)])

    def test_rejected_after_completion(self, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        controller.complete(booking.id)
        with pytest.raises(IllegalTransitionError):
            controller.submit_services(booking.id, _select(services[1]))


class TestComplete:
    def test_archives_services_and_total(self, db, controller, booking, services, location):
        controller.submit_services(booking.id, _select(services[0], services[1]))
        record = controller.complete(booking.id, payment_mode="UPI")

        assert record.status == "completed"
        assert record.original_booking_id == booking.id
        assert record.location_name == location.name
        assert record.slot_label == "Slot 1"
        assert [s["name"] for s in record.services] == ["Bath", "Haircut"]
        assert record.total_price == Decimal("1300.00")
        assert record.payment_mode == "upi"
        assert record.feedback is None
        assert _archive_rows(db, booking.id) == 1

    def test_payment_mode_taken_from_details(self, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        record = controller.complete(booking.id, payment_details=[
            {"mode": "Cash", "amount": "300"}, {"mode": "credit", "amount": "200"},
        ])
        assert record.payment_mode == "cash"
        assert len(record.payment_details) == 2

    def test_decimal_payment_amounts_are_stored(self, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        record = controller.complete(booking.id, payment_details=[
            {"mode": "cash", "amount": Decimal("300")},
            PaymentEntry(mode="UPI", amount=Decimal("200.50")),
        ])
        assert record.payment_mode == "cash"
        assert record.payment_details == [
            {"mode": "cash", "amount": "300"},
            {"mode": "UPI", "amount": "200.50"},
        ]

    def test_malformed_payment_details_rejected(self, db, controller, booking):
        with pytest.raises(ValidationError, match="payment details"):
            controller.complete(booking.id, payment_details=[{"amount": "10"}])
        assert _status(db, booking.id) == "reserved"
        assert _archive_rows(db, booking.id) == 0

    def test_checked_in_booking_can_complete(self, controller, booking):
        controller.check_in(booking.id)
        record = controller.complete(booking.id)
        assert record.services == []
        assert record.total_price == Decimal("0.00")

    def test_reserved_booking_cannot_complete(self, controller, booking):
        with pytest.raises(IllegalTransitionError) as excinfo:
            controller.complete(booking.id)
        assert excinfo.value.current_status == "reserved"


class TestCancel:
    def test_snapshot_and_status(self, db, controller, ledger, booking, location):
        record = controller.cancel(booking.id)
        assert record.status == "cancelled"
        assert record.location_name == location.name
        assert record.slot_label == "Slot 1"
        assert ledger.get_booking(booking.id).status == "cancelled"
        assert _archive_rows(db, booking.id) == 1

    def test_restore_after_template_deleted_conflicts(self, db, controller, booking, template):
        controller.cancel(booking.id)
        TemplateStore(db).delete_template(template.id)

        with pytest.raises(ConflictError, match="no longer has a sub-slot"):
            controller.restore(booking.id, role=Role.ADMIN)

        assert _status(db, booking.id) == "cancelled"
        assert _archive_rows(db, booking.id) == 1

    def test_cancel_completed_rejected(self, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        controller.complete(booking.id)
        with pytest.raises(IllegalTransitionError) as excinfo:
            controller.cancel(booking.id)
        assert excinfo.value.current_status == "completed"

    def test_cancel_frees_slot_for_new_booking(self, controller, ledger, booking, template, location):
        controller.cancel(booking.id)
        again = ledger.create_booking(booking_data(
            template.sub_slots[0].id, location.id, customer_name="Next Customer",
        ))
        assert again.status == "reserved"

    def test_published_after_commit(self, controller, booking, feed):
        events = []
        feed.subscribe(events.append)
        controller.cancel(booking.id)
        assert [(e.kind, e.status) for e in events] == [(ChangeKind.UPDATE, "cancelled")]


class TestRestore:
    def test_admin_restores_completed(self, db, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        controller.complete(booking.id)

        restored = controller.restore(booking.id, role=Role.ADMIN)

        assert restored.status == "progressing"
        assert _archive_rows(db, booking.id) == 0

    def test_staff_cannot_restore(self, db, controller, booking):
        controller.cancel(booking.id)
        with pytest.raises(IllegalTransitionError, match="admin") as excinfo:
            controller.restore(booking.id, role=Role.STAFF)
        assert excinfo.value.current_status == "cancelled"
        assert _archive_rows(db, booking.id) == 1

    def test_restore_active_booking_rejected(self, controller, booking):
        with pytest.raises(IllegalTransitionError):
            controller.restore(booking.id, role=Role.ADMIN)

    def test_restore_cancelled_after_rebooking_conflicts(
        self, db, controller, ledger, booking, template, location,
    ):
        controller.cancel(booking.id)
        ledger.create_booking(booking_data(
            template.sub_slots[0].id, location.id, MONDAY, customer_name="Next Customer",
        ))

        with pytest.raises(ConflictError):
            controller.restore(booking.id, role=Role.ADMIN)

        assert ledger.get_booking(booking.id).status == "cancelled"
        assert _archive_rows(db, booking.id) == 1

    def test_complete_restore_complete_keeps_one_record(self, db, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        for _ in range(3):
            controller.complete(booking.id)
            assert _archive_rows(db, booking.id) == 1
            controller.restore(booking.id, role=Role.ADMIN)
            assert _archive_rows(db, booking.id) == 0
        record = controller.complete(booking.id)
        assert record.status == "completed"
        assert _archive_rows(db, booking.id) == 1


class TestFeedback:
    def test_attaches_to_archive_row(self, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        controller.complete(booking.id)
        record = controller.submit_feedback(booking.id, 5, "  Lovely groom ")
        assert record.feedback == {"rating": 5, "comment": "Lovely groom"}
        assert record.status == "completed"

    def test_rating_out_of_range(self, controller, booking, services):
        controller.submit_services(booking.id, _select(services[0]))
        controller.complete(booking.id)
        with pytest.raises(ValidationError):
            controller.submit_feedback(booking.id, 6)

    def test_only_for_completed(self, controller, booking):
        controller.cancel(booking.id)
        with pytest.raises(IllegalTransitionError):
            controller.submit_feedback(booking.id, 4)
