"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    BOOKED = "booked"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that occupy a staff member's time
BLOCKING_STATUSES: frozenset[AppointmentStatus] = frozenset(
    {AppointmentStatus.BOOKED, AppointmentStatus.CONFIRMED}
)

# cancelled and completed are terminal
ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.BOOKED: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}
    ),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


def can_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Check whether the state machine allows ``current -> new``."""
    return new in ALLOWED_TRANSITIONS[current]


class BookingRequest(CamelModel):
    """
    Body of a booking request.

    Required fields are optional here so that a missing one is reported as a
    booking validation error rather than a schema error.
    """

    client_id: UUID | None = None
    staff_id: UUID | None = None
    service_id: UUID | None = None
    start_ts: datetime | None = None
    notes: str | None = Field(None, max_length=1000)
    prepay: bool = False


class AppointmentCreateRecord(CamelModel):
    """Values written when an appointment is created."""

    client_id: UUID
    staff_id: UUID
    service_id: UUID
    start_ts: datetime
    end_ts: datetime
    price_cents: int = Field(..., ge=0)
    notes: str | None = None
    status: AppointmentStatus = AppointmentStatus.BOOKED


class AppointmentResponse(CamelModel):
    """Schema for appointment response."""

    id: UUID
    client_id: UUID
    staff_id: UUID
    service_id: UUID
    start_ts: datetime
    end_ts: datetime
    price_cents: int
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None


class AppointmentStatusUpdate(CamelModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class PaymentIntentReference(CamelModel):
    """Client-facing part of a payment intent created for prepayment."""

    id: str
    client_secret: str | None = None
    amount: int
    currency: str
    status: str | None = None


class BookingResponse(CamelModel):
    """Schema for a successful booking."""

    appointment: AppointmentResponse
    payment_intent: PaymentIntentReference | None = None
