from telerelay.api.ws.validation import validator
from telerelay.managers.connection_registry import Connection
from telerelay.routing import event_router
from telerelay.schemas.events import ClientEvent, EventRequest
from telerelay.schemas.generic_typing import JsonSchemaType
from telerelay.state import RelayState

join_delivery_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "orderId": {"type": ["string", "integer"], "minLength": 1},
    },
    "required": ["orderId"],
}


@event_router.register(
    ClientEvent.JOIN_DELIVERY,
    json_schema=join_delivery_schema,
    validator_callback=validator,
)
async def join_delivery_handler(
    state: RelayState, connection: Connection, request: EventRequest
) -> None:
    """
    Subscribe to the tracking room of an order.

    Request Data:
        {"orderId": "a1b2c3"}

    The client then receives `delivery-update` frames:
        {"orderId": "a1b2c3", "status": "out for delivery",
         "location": {"lat": 19.07, "lng": 72.87}, "updatedAt": "..."}
    """
    state.deliveries.join(connection.connection_id, str(request.data["orderId"]))
