"""
arq worker that delivers appointment reminders.

Run with: ``arq app.worker.WorkerSettings``
"""

from typing import Any
from uuid import UUID

import structlog

from app.config import settings
from app.core.queue import get_redis_settings
from app.database import engine, session_scope
from app.middleware.logging import configure_logging
from app.schemas.appointments import BLOCKING_STATUSES
from app.schemas.reminders import ReminderKind
from app.services.appointment_store import AppointmentStore

logger = structlog.get_logger(__name__)


async def send_reminder(ctx: dict[str, Any], appointment_id: str, kind: str) -> str:
    """
    Deliver one reminder.

    The appointment is reloaded first; a reminder for an appointment that was
    cancelled or completed after scheduling is skipped.

    Args:
        ctx: arq job context
        appointment_id: Appointment ID
        kind: Reminder kind

    Returns:
        "sent", "skipped" or "missing"
    """
    reminder_kind = ReminderKind(kind)
    async with session_scope() as session:
        store = AppointmentStore(session)
        appointment = await store.get_appointment(UUID(appointment_id))

    if appointment is None:
        logger.warning("reminder_appointment_missing", appointment_id=appointment_id)
        return "missing"

    if appointment.status not in BLOCKING_STATUSES:
        logger.info(
            "reminder_skipped",
            appointment_id=appointment_id,
            kind=reminder_kind.value,
            status=appointment.status.value,
        )
        return "skipped"

    logger.info(
        "appointment_reminder",
        appointment_id=appointment_id,
        kind=reminder_kind.value,
        client_id=str(appointment.client_id),
        staff_id=str(appointment.staff_id),
        start_ts=appointment.start_ts.isoformat(),
        job_try=ctx.get("job_try"),
    )
    return "sent"


async def startup(ctx: dict[str, Any]) -> None:
    """Worker startup hook."""
    configure_logging()
    logger.info("reminder_worker_started", queue_name=settings.reminder_queue_name)


async def shutdown(ctx: dict[str, Any]) -> None:
    """Worker shutdown hook."""
    await engine.dispose()
    logger.info("reminder_worker_stopped")


class WorkerSettings:
    """arq worker settings for the reminder queue."""

    functions = [send_reminder]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = get_redis_settings(settings.redis_url)
    queue_name = settings.reminder_queue_name

    max_tries = 3
    job_timeout = 60
    keep_result = 3600

