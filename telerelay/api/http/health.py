"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from telerelay.dependencies import RelayStateDep

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    connections: int
    rooms: int
    deliveries: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(relay: RelayStateDep) -> HealthResponse:
    """
    Report service status and the size of the relay registries.

    The relay keeps all of its state in process, so there is no external
    dependency to check: a response means the event loop is serving.
    """
    return HealthResponse(
        status="healthy",
        connections=len(relay.registry),
        rooms=len(relay.broker.rooms),
        deliveries=len(relay.deliveries.records),
    )
