"""Booking orchestration: availability, creation, prepayment and reminders."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog

from app.core.exceptions import (
    AppException,
    ConflictException,
    NotFoundException,
    ValidationException,
)
from app.core.time_window import compute_window
from app.schemas.appointments import (
    BLOCKING_STATUSES,
    AppointmentCreateRecord,
    AppointmentResponse,
    AppointmentStatus,
    BookingResponse,
    PaymentIntentReference,
    can_transition,
)
from app.schemas.services import ServiceResponse
from app.services.appointment_store import AppointmentStore
from app.services.availability_service import AvailabilityService
from app.services.payment_service import PaymentService
from app.services.reminder_service import ReminderScheduler

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    """Current time, timezone aware."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class SideEffectOutcome:
    """Result of a best-effort step that must never fail the booking."""

    name: str
    ok: bool
    value: Any = None
    error: str | None = None


async def run_best_effort(
    name: str,
    call: Callable[[], Awaitable[Any]],
    **context: Any,
) -> SideEffectOutcome:
    """
    Run a side effect, reporting instead of raising.

    Application errors are logged as warnings; anything else is logged with a
    traceback. Either way the caller gets a failed outcome.
    """
    try:
        value = await call()
    except AppException as e:
        logger.warning(f"{name}_failed", error=e.message, error_kind=e.kind, **context)
        return SideEffectOutcome(name=name, ok=False, error=e.message)
    except Exception as e:
        logger.exception(f"{name}_failed", error=str(e), **context)
        return SideEffectOutcome(name=name, ok=False, error=str(e))
    return SideEffectOutcome(name=name, ok=True, value=value)


class BookingService:
    """Books appointments without double booking and drives their reminders."""

    def __init__(
        self,
        store: AppointmentStore,
        reminders: ReminderScheduler,
        payments: PaymentService,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize service with its collaborators."""
        self.store = store
        self.availability = AvailabilityService(store)
        self.reminders = reminders
        self.payments = payments
        self.clock = clock

    async def book_appointment(
        self,
        client_id: UUID | None,
        staff_id: UUID | None,
        service_id: UUID | None,
        start_ts: datetime | str | None,
        notes: str | None = None,
        prepay: bool = False,
    ) -> BookingResponse:
        """
        Book an appointment.

        Args:
            client_id: Client making the booking
            staff_id: Staff member to book
            service_id: Service to book
            start_ts: Requested start time
            notes: Optional free-text notes
            prepay: Request a payment intent for the service price

        Returns:
            The created appointment and, if one was created, the payment intent

        Raises:
            ValidationException: If a required field is missing or invalid
            NotFoundException: If the service does not exist
            ConflictException: If the slot is taken
            DependencyException: If the store is unreachable
        """
        missing = [
            field
            for field, value in (
                ("clientId", client_id),
                ("staffId", staff_id),
                ("serviceId", service_id),
                ("startTs", start_ts),
            )
            if value is None or value == ""
        ]
        if missing:
            raise ValidationException(f"Missing fields: {', '.join(missing)}")

        service = await self.store.find_service_by_id(service_id)
        if service is None:
            raise NotFoundException("Service not found")

        start, end = compute_window(start_ts, service.duration_min)

        if not await self.availability.is_available(staff_id, start, end, BLOCKING_STATUSES):
            raise ConflictException("Time slot unavailable")

        payment_intent = None
        if prepay and self.payments.is_configured:
            outcome = await run_best_effort(
                "payment_intent",
                lambda: self._request_payment(service, client_id),
                service_id=str(service_id),
                client_id=str(client_id),
            )
            payment_intent = outcome.value

        record = AppointmentCreateRecord(
            client_id=client_id,
            staff_id=staff_id,
            service_id=service.id,
            start_ts=start,
            end_ts=end,
            price_cents=service.price_cents,
            notes=notes,
        )
        try:
            appointment = await self.store.create(record)
        except Exception:
            if payment_intent is not None:
                await self._release_payment(payment_intent)
            raise

        logger.info(
            "appointment_booked",
            appointment_id=str(appointment.id),
            staff_id=str(staff_id),
            start_ts=start.isoformat(),
            prepaid=payment_intent is not None,
        )

        await run_best_effort(
            "reminder_scheduling",
            lambda: self.reminders.schedule_reminders(
                appointment.id, appointment.start_ts, self.clock()
            ),
            appointment_id=str(appointment.id),
        )

        return BookingResponse(appointment=appointment, payment_intent=payment_intent)

    async def _request_payment(
        self,
        service: ServiceResponse,
        client_id: UUID,
    ) -> PaymentIntentReference:
        return await self.payments.create_payment_intent(
            amount_cents=service.price_cents,
            currency=service.currency,
            metadata={"serviceId": str(service.id), "clientId": str(client_id)},
        )

    async def _release_payment(self, payment_intent: PaymentIntentReference) -> None:
        # No appointment was stored for this intent; don't leave it payable
        await run_best_effort(
            "payment_intent_release",
            lambda: self.payments.cancel_payment_intent(payment_intent.id),
            payment_intent_id=payment_intent.id,
        )

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
        """
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        new_status: AppointmentStatus,
    ) -> AppointmentResponse:
        """
        Apply a lifecycle transition.

        Cancelling an appointment also removes its pending reminders.

        Raises:
            NotFoundException: If appointment not found
            ConflictException: If the transition is not allowed
        """
        current = await self.get_appointment(appointment_id)
        if current.status == new_status:
            return current
        if not can_transition(current.status, new_status):
            raise ConflictException(
                f"Cannot change status from {current.status.value} to {new_status.value}"
            )

        updated = await self.store.update_status(appointment_id, current.status, new_status)
        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=current.status.value,
            new_status=new_status.value,
        )

        if new_status == AppointmentStatus.CANCELLED:
            await run_best_effort(
                "reminder_cancellation",
                lambda: self.reminders.cancel_reminders(appointment_id),
                appointment_id=str(appointment_id),
            )

        return updated
