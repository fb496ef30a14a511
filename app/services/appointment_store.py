"""Appointment store backed by PostgreSQL."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import and_, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import ConflictException
from app.core.resilience import guarded_call
from app.database import DATABASE_ERRORS
from app.models.appointments import NO_OVERLAP_CONSTRAINT, appointments
from app.models.services import services
from app.schemas.appointments import (
    AppointmentCreateRecord,
    AppointmentResponse,
    AppointmentStatus,
)
from app.schemas.services import ServiceResponse

logger = structlog.get_logger(__name__)

STORE_ERRORS = DATABASE_ERRORS


def _violated_constraint(error: IntegrityError) -> str:
    """Name of the constraint behind an IntegrityError, if the driver exposes it."""
    orig = getattr(error, "orig", None)
    # asyncpg errors sit behind the DBAPI adapter as __cause__
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    if orig is not None and NO_OVERLAP_CONSTRAINT in str(orig):
        return NO_OVERLAP_CONSTRAINT
    return ""


class AppointmentStore:
    """Durable record of services and appointments."""

    def __init__(self, db: AsyncSession, timeout: float | None = None):
        """Initialize store with database session."""
        self.db = db
        self.timeout = timeout or settings.external_call_timeout_seconds

    async def _execute(self, stmt: Any) -> Any:
        return await guarded_call(
            self.db.execute(stmt),
            dependency="database",
            timeout=self.timeout,
            errors=STORE_ERRORS,
        )

    async def _commit(self) -> None:
        await guarded_call(
            self.db.commit(),
            dependency="database",
            timeout=self.timeout,
            errors=STORE_ERRORS,
        )

    async def list_services(self) -> list[ServiceResponse]:
        """List the service catalog in a stable order."""
        stmt = select(services).order_by(services.c.name, services.c.id)
        result = await self._execute(stmt)
        return [ServiceResponse.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def find_service_by_id(self, service_id: UUID) -> ServiceResponse | None:
        """Get a service by ID, or None if it does not exist."""
        stmt = select(services).where(services.c.id == service_id)
        result = await self._execute(stmt)
        row = result.fetchone()
        if not row:
            return None
        return ServiceResponse.model_validate(dict(row._mapping))

    async def find_overlapping(
        self,
        staff_id: UUID,
        start: datetime,
        end: datetime,
        statuses: Iterable[AppointmentStatus],
    ) -> AppointmentResponse | None:
        """
        Find one appointment of a staff member that overlaps ``[start, end)``.

        Args:
            staff_id: Staff member ID
            start: Window start
            end: Window end (exclusive)
            statuses: Only appointments in these statuses are considered

        Returns:
            An overlapping appointment, or None
        """
        status_values = [AppointmentStatus(s).value for s in statuses]
        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.staff_id == staff_id,
                    appointments.c.status.in_(status_values),
                    appointments.c.start_ts < end,
                    appointments.c.end_ts > start,
                )
            )
            .limit(1)
        )
        result = await self._execute(stmt)
        row = result.fetchone()
        if not row:
            return None
        return AppointmentResponse.model_validate(dict(row._mapping))

    async def create(self, record: AppointmentCreateRecord) -> AppointmentResponse:
        """
        Insert an appointment unless it overlaps a blocking one.

        The no-overlap exclusion constraint makes the check and the insert a
        single atomic step, so a concurrent booking that passed the availability
        check still cannot commit an overlapping row.

        Raises:
            ConflictException: If the window is already taken
        """
        values = record.model_dump()
        values["status"] = record.status.value
        stmt = insert(appointments).values(**values).returning(appointments)

        try:
            result = await self._execute(stmt)
            row = result.fetchone()
            await self._commit()
        except IntegrityError as e:
            await self.db.rollback()
            constraint = _violated_constraint(e)
            if constraint == NO_OVERLAP_CONSTRAINT:
                logger.info(
                    "appointment_insert_conflict",
                    staff_id=str(record.staff_id),
                    start_ts=record.start_ts.isoformat(),
                )
                raise ConflictException("Time slot unavailable") from e
            raise

        return AppointmentResponse.model_validate(dict(row._mapping))

    async def get_appointment(self, appointment_id: UUID) -> AppointmentResponse | None:
        """Get appointment by ID, or None if it does not exist."""
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        result = await self._execute(stmt)
        row = result.fetchone()
        if not row:
            return None
        return AppointmentResponse.model_validate(dict(row._mapping))

    async def update_status(
        self,
        appointment_id: UUID,
        expected_status: AppointmentStatus,
        new_status: AppointmentStatus,
    ) -> AppointmentResponse:
        """
        Move an appointment from ``expected_status`` to ``new_status``.

        Raises:
            ConflictException: If the appointment's status changed meanwhile
        """
        now = datetime.now(UTC)
        update_values: dict[str, Any] = {"status": new_status.value, "updated_at": now}
        if new_status == AppointmentStatus.CANCELLED:
            update_values["cancelled_at"] = now

        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.id == appointment_id,
                    appointments.c.status == expected_status.value,
                )
            )
            .values(**update_values)
            .returning(appointments)
        )

        result = await self._execute(stmt)
        row = result.fetchone()
        if not row:
            await self.db.rollback()
            raise ConflictException("Appointment status changed concurrently")
        await self._commit()

        return AppointmentResponse.model_validate(dict(row._mapping))
