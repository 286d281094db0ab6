"""
Dependency injection configuration for FastAPI.

HTTP routes reach the relay state of their application through
`RelayStateDep`, so tests can serve several independent apps side by side.

Example:
    ```python
    @router.get("/deliveries/{order_id}")
    async def get_delivery(order_id: str, relay: RelayStateDep) -> DeliveryRecord:
        ...
    ```
"""

from typing import Annotated

from fastapi import Depends, Request

from telerelay.state import RelayState


def get_relay_state(request: Request) -> RelayState:
    """Return the relay state stored on the application."""
    return request.app.state.relay


RelayStateDep = Annotated[RelayState, Depends(get_relay_state)]
