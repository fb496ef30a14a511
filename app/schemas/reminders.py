"""Reminder job schemas."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class ReminderKind(str, Enum):
    """Reminder kinds, named by their offset before the appointment."""

    DAY_BEFORE = "24h-before"
    TWO_HOURS_BEFORE = "2h-before"


class ReminderJob(BaseModel):
    """A reminder handed to the delayed-job queue."""

    appointment_id: UUID
    kind: ReminderKind
    fire_at: datetime
    delay: timedelta

    @property
    def job_id(self) -> str:
        """Queue job id; one per appointment and kind."""
        return reminder_job_id(self.appointment_id, self.kind)


def reminder_job_id(appointment_id: UUID, kind: ReminderKind) -> str:
    """Build the queue job id for a reminder."""
    return f"reminder:{appointment_id}:{kind.value}"
