"""Create appointments table with the per-staff no-overlap constraint.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:10:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Equality on uuid inside a gist index
    op.execute('CREATE EXTENSION IF NOT EXISTS "btree_gist"')

    op.create_table(
        "appointments",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("staff_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("service_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("start_ts", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_ts", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), server_default="booked", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("end_ts > start_ts", name="appointments_window_check"),
        sa.CheckConstraint("price_cents >= 0", name="appointments_price_check"),
        sa.CheckConstraint(
            "status IN ('booked', 'confirmed', 'cancelled', 'completed')",
            name="appointments_status_check",
        ),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_appointments_service_id",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "ix_appointments_staff_id_start_ts", "appointments", ["staff_id", "start_ts"]
    )
    op.create_index("ix_appointments_client_id", "appointments", ["client_id"])

    op.execute(
        """
        ALTER TABLE appointments
        ADD CONSTRAINT appointments_no_overlap_per_staff
        EXCLUDE USING gist (
            staff_id WITH =,
            tstzrange(start_ts, end_ts, '[)') WITH &&
        ) WHERE (status IN ('booked', 'confirmed'));
        """
    )


def downgrade() -> None:
    """Downgrade database schema."""
    op.execute("ALTER TABLE appointments DROP CONSTRAINT appointments_no_overlap_per_staff")
    op.drop_index("ix_appointments_client_id", table_name="appointments")
    op.drop_index("ix_appointments_staff_id_start_ts", table_name="appointments")
    op.drop_table("appointments")
