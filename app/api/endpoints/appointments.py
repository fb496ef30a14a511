"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.dependencies import Booking
from app.schemas.appointments import (
    AppointmentResponse,
    AppointmentStatusUpdate,
    BookingRequest,
    BookingResponse,
)

router = APIRouter()


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
    summary="Book an appointment",
)
async def book_appointment(data: BookingRequest, booking: Booking) -> BookingResponse:
    """
    Reserve a slot with a staff member for a service.

    Args:
        data: Booking request
        booking: Booking orchestrator

    Returns:
        Created appointment and, for prepaid bookings, the payment intent
    """
    return await booking.book_appointment(
        client_id=data.client_id,
        staff_id=data.staff_id,
        service_id=data.service_id,
        start_ts=data.start_ts,
        notes=data.notes,
        prepay=data.prepay,
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(appointment_id: UUID, booking: Booking) -> AppointmentResponse:
    """Get a specific appointment by ID."""
    return await booking.get_appointment(appointment_id)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    booking: Booking,
) -> AppointmentResponse:
    """
    Confirm, cancel or complete an appointment.

    Cancelling removes the appointment's pending reminders.
    """
    return await booking.update_appointment_status(appointment_id, data.status)
