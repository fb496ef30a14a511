"""Services (catalog) table model using SQLAlchemy Core."""

from sqlalchemy import CheckConstraint, Column, Integer, Table, Text, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID, VARCHAR

from app.models.metadata import metadata

services = Table(
    "services",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column("name", Text, nullable=False),
    Column("duration_min", Integer, nullable=False),
    # Integer minor-currency units
    Column("price_cents", Integer, nullable=False),
    Column("currency", VARCHAR(3), nullable=False, server_default="usd"),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint("duration_min > 0", name="services_duration_positive"),
    CheckConstraint("price_cents >= 0", name="services_price_non_negative"),
)
