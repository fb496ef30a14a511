"""Slot availability checks."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

import structlog

from app.core.exceptions import InvalidInputException
from app.schemas.appointments import BLOCKING_STATUSES, AppointmentStatus
from app.services.appointment_store import AppointmentStore

logger = structlog.get_logger(__name__)


class AvailabilityService:
    """Decides whether a staff member is free for a time window."""

    def __init__(self, store: AppointmentStore):
        """Initialize service with the appointment store."""
        self.store = store

    async def is_available(
        self,
        staff_id: UUID,
        start: datetime,
        end: datetime,
        blocking_statuses: Iterable[AppointmentStatus] = BLOCKING_STATUSES,
    ) -> bool:
        """
        Check that no blocking appointment overlaps ``[start, end)``.

        An existing appointment conflicts when ``existing.start < end`` and
        ``existing.end > start``; windows that only touch are both allowed.

        Args:
            staff_id: Staff member ID
            start: Requested window start
            end: Requested window end (exclusive)
            blocking_statuses: Statuses that occupy the slot

        Returns:
            True if the slot is free

        Raises:
            InvalidInputException: If the window is empty or inverted
        """
        if end <= start:
            raise InvalidInputException("Window end must be after its start")

        statuses = frozenset(AppointmentStatus(s) for s in blocking_statuses)
        if not statuses:
            return True

        conflict = await self.store.find_overlapping(staff_id, start, end, statuses)
        if conflict is not None:
            logger.info(
                "slot_unavailable",
                staff_id=str(staff_id),
                start=start.isoformat(),
                end=end.isoformat(),
                conflicting_appointment_id=str(conflict.id),
            )
            return False
        return True
