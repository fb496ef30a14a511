"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.queue import ReminderQueue, ReminderQueueConnector
from app.database import get_db
from app.services.appointment_store import AppointmentStore
from app.services.booking_service import BookingService
from app.services.payment_service import PaymentService
from app.services.reminder_service import ReminderScheduler

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


async def get_appointment_store(db: DatabaseSession) -> AppointmentStore:
    """Appointment store bound to the request's database session."""
    return AppointmentStore(db)


async def get_reminder_queue(request: Request) -> ReminderQueue | None:
    """
    Process-wide reminder queue opened during application startup.

    Returns:
        The queue, or None while it is unreachable
    """
    connector: ReminderQueueConnector | None = getattr(
        request.app.state, "reminder_queue_connector", None
    )
    if connector is None:
        return None
    return connector.get()


def get_payment_service() -> PaymentService:
    """Stripe payment collaborator built from settings."""
    return PaymentService.from_settings()


Store = Annotated[AppointmentStore, Depends(get_appointment_store)]
Queue = Annotated[ReminderQueue | None, Depends(get_reminder_queue)]
Payments = Annotated[PaymentService, Depends(get_payment_service)]


def get_reminder_scheduler(queue: Queue) -> ReminderScheduler:
    """Reminder scheduler over the shared queue."""
    return ReminderScheduler(queue)


Reminders = Annotated[ReminderScheduler, Depends(get_reminder_scheduler)]


def get_booking_service(
    store: Store,
    reminders: Reminders,
    payments: Payments,
) -> BookingService:
    """Booking orchestrator wired to its collaborators."""
    return BookingService(store, reminders, payments)


Booking = Annotated[BookingService, Depends(get_booking_service)]
