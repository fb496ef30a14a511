"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    event,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

from app.models.metadata import metadata

NO_OVERLAP_CONSTRAINT = "appointments_no_overlap_per_staff"

appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # References
    Column("client_id", UUID(as_uuid=True), nullable=False),
    Column("staff_id", UUID(as_uuid=True), nullable=False),
    Column(
        "service_id",
        UUID(as_uuid=True),
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    # Window
    Column("start_ts", TIMESTAMP(timezone=True), nullable=False),
    Column("end_ts", TIMESTAMP(timezone=True), nullable=False),
    # Snapshot of the service price at booking time
    Column("price_cents", Integer, nullable=False),
    # Status management
    Column("status", Text, nullable=False, server_default="booked"),
    Column("notes", Text, nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("cancelled_at", TIMESTAMP(timezone=True), nullable=True),
    # Constraints
    CheckConstraint("end_ts > start_ts", name="appointments_window_check"),
    CheckConstraint("price_cents >= 0", name="appointments_price_check"),
    CheckConstraint(
        "status IN ('booked', 'confirmed', 'cancelled', 'completed')",
        name="appointments_status_check",
    ),
    Index("ix_appointments_staff_id_start_ts", "staff_id", "start_ts"),
    Index("ix_appointments_client_id", "client_id"),
)

# Store-level guard against double booking: two blocking appointments of one
# staff member may not share any instant of their [start, end) windows.
event.listen(
    appointments,
    "after_create",
    DDL(
        f"ALTER TABLE appointments ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist ("
        "staff_id WITH =, "
        "tstzrange(start_ts, end_ts, '[)') WITH &&"
        ") WHERE (status IN ('booked', 'confirmed'))"
    ),
)
