"""API router configuration."""

from fastapi import APIRouter

from app.api.endpoints import appointments, health, services, webhooks

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(services.router, prefix="/services", tags=["Services"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])

# Mounted at the application root, outside the API prefix
webhook_router = APIRouter()
webhook_router.include_router(webhooks.router, tags=["Webhooks"])
