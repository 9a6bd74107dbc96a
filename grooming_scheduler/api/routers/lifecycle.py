"""Lifecycle endpoints: one POST per event on a booking."""

from fastapi import APIRouter, Depends

from grooming_scheduler.api.deps import Actor, get_actor, get_controller
from grooming_scheduler.api.routers.archive import to_record_response
from grooming_scheduler.lifecycle.controller import LifecycleController
from grooming_scheduler.schemas.archive_schema import HistoricalRecordResponse
from grooming_scheduler.schemas.booking_schema import (
    BookingResponse,
    CompletionRequest,
    FeedbackRequest,
    ServiceSubmission,
)

router = APIRouter(prefix="/bookings/{booking_id}", tags=["Lifecycle"])


@router.post("/check-in", response_model=BookingResponse)
def check_in(booking_id: int, controller: LifecycleController = Depends(get_controller)):
    return controller.check_in(booking_id)


@router.post("/services", response_model=BookingResponse)
def submit_services(
    booking_id: int,
    data: ServiceSubmission,
    controller: LifecycleController = Depends(get_controller),
):
    return controller.submit_services(booking_id, data.services)


@router.post("/complete", response_model=HistoricalRecordResponse)
def complete(
    booking_id: int,
    data: CompletionRequest,
    controller: LifecycleController = Depends(get_controller),
):
    record = controller.complete(
        booking_id, payment_mode=data.payment_mode, payment_details=data.payment_details,
    )
    return to_record_response(record)


@router.post("/cancel", response_model=HistoricalRecordResponse)
def cancel(booking_id: int, controller: LifecycleController = Depends(get_controller)):
    return to_record_response(controller.cancel(booking_id))


@router.post("/restore", response_model=BookingResponse)
def restore(
    booking_id: int,
    actor: Actor = Depends(get_actor),
    controller: LifecycleController = Depends(get_controller),
):
    return controller.restore(booking_id, role=actor.role)


@router.post("/feedback", response_model=HistoricalRecordResponse)
def submit_feedback(
    booking_id: int,
    data: FeedbackRequest,
    controller: LifecycleController = Depends(get_controller),
):
    record = controller.submit_feedback(booking_id, data.rating, data.comment)
    return to_record_response(record)
