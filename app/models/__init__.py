"""Database models."""

from app.models.appointments import appointments
from app.models.metadata import metadata
from app.models.services import services

__all__ = [
    "appointments",
    "metadata",
    "services",
]
