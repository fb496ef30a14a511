"""Tests for appointment endpoints."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient

from app.schemas.reminders import ReminderKind, reminder_job_id


@pytest.mark.asyncio
async def test_book_appointment(client: AsyncClient, booking_payload: dict, store) -> None:
    """Test booking a free slot."""
    response = await client.post("/api/appointments", json=booking_payload)

    assert response.status_code == 200
    data = response.json()
    appointment = data["appointment"]
    assert appointment["status"] == "booked"
    assert appointment["staffId"] == booking_payload["staffId"]
    assert appointment["priceCents"] == 5000
    assert appointment["notes"] == "First visit"
    assert datetime.fromisoformat(appointment["endTs"]) - datetime.fromisoformat(
        appointment["startTs"]
    ) == timedelta(minutes=30)
    assert data["paymentIntent"] is None
    assert len(store.appointments) == 1


@pytest.mark.asyncio
async def test_book_appointment_schedules_reminders(
    client: AsyncClient,
    booking_payload: dict,
    reminder_queue,
) -> None:
    """Test that a booking two days ahead queues both reminders."""
    response = await client.post("/api/appointments", json=booking_payload)
    appointment_id = response.json()["appointment"]["id"]

    assert set(reminder_queue.jobs) == {
        reminder_job_id(appointment_id, ReminderKind.DAY_BEFORE),
        reminder_job_id(appointment_id, ReminderKind.TWO_HOURS_BEFORE),
    }


@pytest.mark.asyncio
async def test_book_appointment_with_prepay(
    client: AsyncClient,
    booking_payload: dict,
    payments,
) -> None:
    """Test that a prepaid booking returns the payment intent."""
    response = await client.post("/api/appointments", json={**booking_payload, "prepay": True})

    assert response.status_code == 200
    intent = response.json()["paymentIntent"]
    assert intent["id"] == "pi_test_1"
    assert intent["clientSecret"] == "pi_test_1_secret"
    assert intent["amount"] == 5000
    assert len(payments.created) == 1


@pytest.mark.asyncio
async def test_book_appointment_missing_field(
    client: AsyncClient,
    booking_payload: dict,
    store,
) -> None:
    """Test that a missing field is a 400 and creates nothing."""
    del booking_payload["serviceId"]

    response = await client.post("/api/appointments", json=booking_payload)

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "ValidationError"
    assert "serviceId" in data["message"]
    assert data["path"] == "/api/appointments"
    assert store.appointments == {}


@pytest.mark.asyncio
async def test_book_appointment_malformed_start(client: AsyncClient, booking_payload: dict) -> None:
    """Test that an unparseable start time is a 400."""
    booking_payload["startTs"] = "not-a-date"

    response = await client.post("/api/appointments", json=booking_payload)

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_book_appointment_unknown_service(client: AsyncClient, booking_payload: dict) -> None:
    """Test booking a service that does not exist."""
    booking_payload["serviceId"] = str(uuid4())

    response = await client.post("/api/appointments", json=booking_payload)

    assert response.status_code == 404
    assert response.json() == {
        "error": "NotFoundError",
        "message": "Service not found",
        "path": "/api/appointments",
    }


@pytest.mark.asyncio
async def test_book_appointment_conflict(
    client: AsyncClient,
    booking_payload: dict,
    store,
    reminder_queue,
) -> None:
    """Test that an overlapping booking for the same staff member is a 409."""
    first = await client.post("/api/appointments", json=booking_payload)
    assert first.status_code == 200
    jobs_before = dict(reminder_queue.jobs)

    start = datetime.fromisoformat(booking_payload["startTs"]) + timedelta(minutes=15)
    response = await client.post(
        "/api/appointments",
        json={**booking_payload, "clientId": str(uuid4()), "startTs": start.isoformat()},
    )

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "ConflictError"
    assert data["message"] == "Time slot unavailable"
    assert len(store.appointments) == 1
    assert reminder_queue.jobs == jobs_before


@pytest.mark.asyncio
async def test_book_back_to_back_appointments(client: AsyncClient, booking_payload: dict) -> None:
    """Test that a booking starting when the previous one ends succeeds."""
    first = await client.post("/api/appointments", json=booking_payload)
    end_ts = first.json()["appointment"]["endTs"]

    response = await client.post("/api/appointments", json={**booking_payload, "startTs": end_ts})

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_book_same_slot_other_staff(client: AsyncClient, booking_payload: dict) -> None:
    """Test that different staff members can be booked at the same time."""
    await client.post("/api/appointments", json=booking_payload)

    response = await client.post(
        "/api/appointments",
        json={**booking_payload, "staffId": str(uuid4())},
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_get_appointment(client: AsyncClient, booking_payload: dict) -> None:
    """Test getting an appointment by ID."""
    created = await client.post("/api/appointments", json=booking_payload)
    appointment_id = created.json()["appointment"]["id"]

    response = await client.get(f"/api/appointments/{appointment_id}")

    assert response.status_code == 200
    assert response.json()["id"] == appointment_id


@pytest.mark.asyncio
async def test_get_appointment_not_found(client: AsyncClient) -> None:
    """Test getting an appointment that does not exist."""
    response = await client.get(f"/api/appointments/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"] == "NotFoundError"


@pytest.mark.asyncio
async def test_get_appointment_malformed_id(client: AsyncClient) -> None:
    """Test that a malformed ID is rejected as a validation error."""
    response = await client.get("/api/appointments/not-a-uuid")

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_cancel_appointment(
    client: AsyncClient,
    booking_payload: dict,
    reminder_queue,
) -> None:
    """Test cancelling an appointment removes its reminders and frees the slot."""
    created = await client.post("/api/appointments", json=booking_payload)
    appointment_id = created.json()["appointment"]["id"]
    assert len(reminder_queue.jobs) == 2

    response = await client.patch(
        f"/api/appointments/{appointment_id}/status",
        json={"status": "cancelled"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["cancelledAt"] is not None
    assert reminder_queue.jobs == {}

    rebooked = await client.post(
        "/api/appointments",
        json={**booking_payload, "clientId": str(uuid4())},
    )
    assert rebooked.status_code == 200


@pytest.mark.asyncio
async def test_illegal_status_transition(client: AsyncClient, booking_payload: dict) -> None:
    """Test that a booked appointment cannot jump to completed."""
    created = await client.post("/api/appointments", json=booking_payload)
    appointment_id = created.json()["appointment"]["id"]

    response = await client.patch(
        f"/api/appointments/{appointment_id}/status",
        json={"status": "completed"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "ConflictError"


@pytest.mark.asyncio
async def test_unknown_status_value(client: AsyncClient, booking_payload: dict) -> None:
    """Test that an unknown status value is rejected."""
    created = await client.post("/api/appointments", json=booking_payload)
    appointment_id = created.json()["appointment"]["id"]

    response = await client.patch(
        f"/api/appointments/{appointment_id}/status",
        json={"status": "scheduled"},
    )

    assert response.status_code == 400
