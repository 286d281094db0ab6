"""
Delivery record endpoints used by the payment flow.

After a successful checkout the payment collaborator registers the order
here; the relay then pushes simulated position updates to the order's
tracking room until the order is delivered.
"""

from fastapi import APIRouter, Response, status

from telerelay.dependencies import RelayStateDep
from telerelay.exceptions import NotFoundError
from telerelay.logging import logger
from telerelay.schemas.delivery import CreateDeliveryRequest, DeliveryRecord
from telerelay.utils.error_handler import handle_http_errors

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.post(
    "",
    response_model=DeliveryRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Start tracking the delivery of a paid order",
)
@handle_http_errors
async def create_delivery(
    body: CreateDeliveryRequest, relay: RelayStateDep
) -> DeliveryRecord:
    record = relay.deliveries.create(body.order_id, body.location)
    logger.debug(f"Delivery record created for order {record.order_id}")
    return record


@router.get(
    "/{order_id}",
    response_model=DeliveryRecord,
    summary="Current delivery status of an order",
)
@handle_http_errors
async def get_delivery(order_id: str, relay: RelayStateDep) -> DeliveryRecord:
    record = relay.deliveries.get(order_id)
    if record is None:
        raise NotFoundError(f"Order {order_id} is not tracked")
    return record


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Stop tracking an order",
)
@handle_http_errors
async def delete_delivery(order_id: str, relay: RelayStateDep) -> Response:
    if not relay.deliveries.remove(order_id):
        raise NotFoundError(f"Order {order_id} is not tracked")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
