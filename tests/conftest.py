import asyncio
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.exceptions import ConflictException, DependencyException
from app.core.time_window import windows_overlap
from app.dependencies import get_appointment_store, get_payment_service, get_reminder_queue
from app.main import app
from app.schemas.appointments import (
    BLOCKING_STATUSES,
    AppointmentCreateRecord,
    AppointmentResponse,
    AppointmentStatus,
    PaymentIntentReference,
)
from app.schemas.services import ServiceResponse
from app.services.booking_service import BookingService
from app.services.reminder_service import ReminderScheduler

# Fixed "now" for service-level tests
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


class InMemoryAppointmentStore:
    """
    Appointment store kept in memory.

    ``create`` checks for overlap and inserts without suspending, so it is
    atomic with respect to other tasks on the event loop, like the exclusion
    constraint is for the real store. ``find_overlapping`` yields to the loop after
    reading, so concurrent bookings interleave between check and insert.
    """

    def __init__(self) -> None:
        self.services: dict[UUID, ServiceResponse] = {}
        self.appointments: dict[UUID, AppointmentResponse] = {}
        self.create_calls = 0

    def add_service(
        self,
        name: str = "Consultation",
        duration_min: int = 30,
        price_cents: int = 5000,
        currency: str = "usd",
    ) -> ServiceResponse:
        service = ServiceResponse(
            id=uuid4(),
            name=name,
            duration_min=duration_min,
            price_cents=price_cents,
            currency=currency,
        )
        self.services[service.id] = service
        return service

    def set_price(self, service_id: UUID, price_cents: int) -> None:
        self.services[service_id] = self.services[service_id].model_copy(
            update={"price_cents": price_cents}
        )

    async def list_services(self) -> list[ServiceResponse]:
        return sorted(self.services.values(), key=lambda s: (s.name, str(s.id)))

    async def find_service_by_id(self, service_id: UUID) -> ServiceResponse | None:
        return self.services.get(service_id)

    async def find_overlapping(
        self,
        staff_id: UUID,
        start: datetime,
        end: datetime,
        statuses: Any,
    ) -> AppointmentResponse | None:
        wanted = {AppointmentStatus(s) for s in statuses}
        found = None
        for existing in self.appointments.values():
            if (
                existing.staff_id == staff_id
                and existing.status in wanted
                and windows_overlap(existing.start_ts, existing.end_ts, start, end)
            ):
                found = existing
                break
        # Suspend after reading, the way a database round trip would
        await asyncio.sleep(0)
        return found

    async def create(self, record: AppointmentCreateRecord) -> AppointmentResponse:
        self.create_calls += 1
        for existing in self.appointments.values():
            if (
                existing.staff_id == record.staff_id
                and existing.status in BLOCKING_STATUSES
                and windows_overlap(
                    existing.start_ts, existing.end_ts, record.start_ts, record.end_ts
                )
            ):
                raise ConflictException("Time slot unavailable")

        now = datetime.now(UTC)
        appointment = AppointmentResponse(
            id=uuid4(),
            created_at=now,
            updated_at=now,
            **record.model_dump(),
        )
        self.appointments[appointment.id] = appointment
        return appointment

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse | None:
        return self.appointments.get(appointment_id)

    async def update_status(
        self,
        appointment_id: UUID,
        expected_status: AppointmentStatus,
        new_status: AppointmentStatus,
    ) -> AppointmentResponse:
        current = self.appointments[appointment_id]
        if current.status != expected_status:
            raise ConflictException("Appointment status changed concurrently")
        changes: dict[str, Any] = {"status": new_status, "updated_at": datetime.now(UTC)}
        if new_status == AppointmentStatus.CANCELLED:
            changes["cancelled_at"] = changes["updated_at"]
        updated = current.model_copy(update=changes)
        self.appointments[appointment_id] = updated
        return updated


class FakeReminderQueue:
    """Reminder queue that records jobs instead of talking to Redis."""

    def __init__(self) -> None:
        self.jobs: dict[str, dict[str, Any]] = {}
        self.enqueue_calls = 0
        self.cancelled: list[str] = []
        self.fail = False

    async def enqueue(self, function: str, job_id: str, delay: timedelta, **payload: str) -> bool:
        if self.fail:
            raise DependencyException("queue", "unreachable")
        self.enqueue_calls += 1
        if job_id in self.jobs:
            return False
        self.jobs[job_id] = {"function": function, "delay": delay, **payload}
        return True

    async def cancel(self, job_id: str) -> bool:
        if self.fail:
            raise DependencyException("queue", "unreachable")
        self.cancelled.append(job_id)
        return self.jobs.pop(job_id, None) is not None

    async def ping(self) -> bool:
        return not self.fail

    async def close(self) -> None:
        pass


class FakePaymentService:
    """Payment collaborator that hands out fake intents."""

    def __init__(self, configured: bool = True) -> None:
        self.configured = configured
        self.fail = False
        self.created: list[dict[str, Any]] = []
        self.cancelled: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str],
    ) -> PaymentIntentReference:
        if self.fail:
            raise DependencyException("payments", "card network down")
        self.created.append({"amount": amount_cents, "currency": currency, "metadata": metadata})
        return PaymentIntentReference(
            id=f"pi_test_{len(self.created)}",
            client_secret=f"pi_test_{len(self.created)}_secret",
            amount=amount_cents,
            currency=currency,
            status="requires_payment_method",
        )

    async def cancel_payment_intent(self, payment_intent_id: str) -> None:
        self.cancelled.append(payment_intent_id)


@pytest.fixture
def store() -> InMemoryAppointmentStore:
    return InMemoryAppointmentStore()


@pytest.fixture
def reminder_queue() -> FakeReminderQueue:
    return FakeReminderQueue()


@pytest.fixture
def payments() -> FakePaymentService:
    return FakePaymentService()


@pytest.fixture
def service(store: InMemoryAppointmentStore) -> ServiceResponse:
    """A 30 minute service priced at 5000."""
    return store.add_service()


@pytest.fixture
def booking_service(
    store: InMemoryAppointmentStore,
    reminder_queue: FakeReminderQueue,
    payments: FakePaymentService,
) -> BookingService:
    return BookingService(
        store,  # type: ignore[arg-type]
        ReminderScheduler(reminder_queue),  # type: ignore[arg-type]
        payments,  # type: ignore[arg-type]
        clock=lambda: NOW,
    )


@pytest_asyncio.fixture
async def client(
    store: InMemoryAppointmentStore,
    reminder_queue: FakeReminderQueue,
    payments: FakePaymentService,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with in-memory collaborators."""
    app.dependency_overrides[get_appointment_store] = lambda: store
    app.dependency_overrides[get_reminder_queue] = lambda: reminder_queue
    app.dependency_overrides[get_payment_service] = lambda: payments

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def booking_payload(service: ServiceResponse) -> dict:
    """Booking request two days ahead of the real clock."""
    start = (datetime.now(UTC) + timedelta(days=2)).replace(microsecond=0)
    return {
        "clientId": str(uuid4()),
        "staffId": str(uuid4()),
        "serviceId": str(service.id),
        "startTs": start.isoformat(),
        "notes": "First visit",
    }
