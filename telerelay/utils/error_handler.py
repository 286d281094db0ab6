"""
Error handler decorator for HTTP endpoints.

Converts AppException instances raised by collaborator endpoints into
HTTPException responses, eliminating duplicate try/except blocks.
"""

from functools import wraps
from typing import Any, Callable

from fastapi import HTTPException

from telerelay.exceptions import AppException
from telerelay.logging import logger


def handle_http_errors(func: Callable) -> Callable:
    """
    Decorator for HTTP endpoints to convert AppException to HTTPException.

    Example:
        ```python
        @router.post("/deliveries")
        @handle_http_errors
        async def create_delivery(body: CreateDeliveryRequest, relay: RelayStateDep):
            return relay.deliveries.create(body.order_id)  # ConflictError -> 409
        ```
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except AppException as ex:
            logger.warning(
                f"AppException in {func.__name__}: {ex.message}",
                extra={"exception_type": type(ex).__name__},
            )
            raise HTTPException(
                status_code=ex.http_status,
                detail=ex.message,
            )

    return wrapper
