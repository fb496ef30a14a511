"""Service catalog schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from app.schemas.common import CamelModel


class ServiceResponse(CamelModel):
    """Schema for a bookable service."""

    id: UUID
    name: str
    duration_min: int = Field(..., gt=0)
    price_cents: int = Field(..., ge=0)
    currency: str = "usd"
    created_at: datetime | None = None
    updated_at: datetime | None = None
