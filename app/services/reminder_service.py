"""Reminder scheduling and cancellation."""

from datetime import datetime, timedelta
from uuid import UUID

import structlog

from app.core.exceptions import DependencyException
from app.core.queue import ReminderQueue
from app.core.time_window import parse_timestamp
from app.schemas.reminders import ReminderJob, ReminderKind, reminder_job_id

logger = structlog.get_logger(__name__)

# Name of the worker function that delivers a reminder
REMINDER_FUNCTION = "send_reminder"

REMINDER_OFFSETS: tuple[tuple[ReminderKind, timedelta], ...] = (
    (ReminderKind.DAY_BEFORE, timedelta(hours=24)),
    (ReminderKind.TWO_HOURS_BEFORE, timedelta(hours=2)),
)


def plan_reminders(
    appointment_id: UUID,
    appointment_start: datetime,
    now: datetime,
) -> list[ReminderJob]:
    """
    Compute the reminders still worth sending for an appointment.

    Candidates whose fire time is not after ``now`` are dropped.
    """
    start = parse_timestamp(appointment_start)
    current = parse_timestamp(now)

    jobs = []
    for kind, offset in REMINDER_OFFSETS:
        fire_at = start - offset
        if fire_at <= current:
            continue
        jobs.append(
            ReminderJob(
                appointment_id=appointment_id,
                kind=kind,
                fire_at=fire_at,
                delay=fire_at - current,
            )
        )
    return jobs


class ReminderScheduler:
    """Enqueues and cancels reminder jobs for appointments."""

    def __init__(self, queue: ReminderQueue | None):
        """
        Initialize scheduler.

        Args:
            queue: Open reminder queue, or None if it could not be connected
        """
        self.queue = queue

    def _require_queue(self) -> ReminderQueue:
        if self.queue is None:
            raise DependencyException("queue", "reminder queue is not connected")
        return self.queue

    async def schedule_reminders(
        self,
        appointment_id: UUID,
        appointment_start: datetime,
        now: datetime,
    ) -> list[ReminderJob]:
        """
        Enqueue the 24h and 2h reminders that still lie in the future.

        Each reminder uses a fixed job id, so scheduling the same appointment
        twice leaves a single job per kind in the queue.

        Args:
            appointment_id: Appointment ID
            appointment_start: Appointment start time
            now: Current time

        Returns:
            The reminders that are scheduled (0, 1 or 2)

        Raises:
            DependencyException: If the queue is unreachable
        """
        jobs = plan_reminders(appointment_id, appointment_start, now)
        if not jobs:
            logger.info("reminders_skipped", appointment_id=str(appointment_id))
            return []

        queue = self._require_queue()
        for job in jobs:
            created = await queue.enqueue(
                REMINDER_FUNCTION,
                job.job_id,
                job.delay,
                appointment_id=str(job.appointment_id),
                kind=job.kind.value,
            )
            logger.info(
                "reminder_scheduled" if created else "reminder_already_scheduled",
                appointment_id=str(appointment_id),
                kind=job.kind.value,
                fire_at=job.fire_at.isoformat(),
            )
        return jobs

    async def cancel_reminders(self, appointment_id: UUID) -> int:
        """
        Remove pending reminders of an appointment from the queue.

        Returns:
            Number of jobs removed

        Raises:
            DependencyException: If the queue is unreachable
        """
        queue = self._require_queue()
        removed = 0
        for kind, _ in REMINDER_OFFSETS:
            if await queue.cancel(reminder_job_id(appointment_id, kind)):
                removed += 1
        logger.info("reminders_cancelled", appointment_id=str(appointment_id), removed=removed)
        return removed
