"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics endpoint",
    tags=["metrics"],
)
async def metrics() -> Response:
    """
    Expose Prometheus metrics for monitoring.

    Returns all registered Prometheus metrics in the text-based exposition
    format that Prometheus can scrape.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
