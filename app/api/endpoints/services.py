"""Service catalog endpoints."""

from fastapi import APIRouter, status

from app.dependencies import Store
from app.schemas.services import ServiceResponse

router = APIRouter()


@router.get(
    "",
    response_model=list[ServiceResponse],
    status_code=status.HTTP_200_OK,
    summary="List services",
)
async def list_services(store: Store) -> list[ServiceResponse]:
    """
    List all bookable services.

    Returns:
        Services ordered by name
    """
    return await store.list_services()
