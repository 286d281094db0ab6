"""
WebRTC signaling and in-room chat.

Handlers translate each inbound event into a room broker call, stamping the
sender's connection id. SDP and ICE candidate blobs are forwarded untouched;
only `room`, `to` and the sender are interpreted.
"""

from telerelay.api.ws.validation import validator
from telerelay.constants import DEFAULT_CHAT_NAME, DELIVERY_ROOM_PREFIX
from telerelay.logging import logger
from telerelay.managers.connection_registry import Connection
from telerelay.routing import event_router
from telerelay.schemas.events import ClientEvent, EventRequest, ServerEvent, ServerMessage
from telerelay.schemas.generic_typing import JsonSchemaType
from telerelay.state import RelayState
from telerelay.utils.metrics import MetricsCollector
from telerelay.utils.timestamps import epoch_ms

_room = {"type": "string", "minLength": 1}


def _is_reserved_room(connection: Connection, room_id: str) -> bool:
    """Delivery tracking rooms only carry `delivery-update` frames."""
    if not room_id.startswith(DELIVERY_ROOM_PREFIX):
        return False

    logger.debug(
        f"Dropping message of {connection.connection_id} to reserved room {room_id!r}"
    )
    MetricsCollector.record_ws_message_dropped("reserved_room")
    return True


# ============================================================================
# JOIN / LEAVE
# ============================================================================

join_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "room": _room,
        "role": {"type": ["string", "null"]},
    },
    "required": ["room"],
}


@event_router.register(
    ClientEvent.JOIN, json_schema=join_schema, validator_callback=validator
)
async def join_handler(
    state: RelayState, connection: Connection, request: EventRequest
) -> None:
    """
    Join a call room.

    Request Data:
        {"room": "appointment-42", "role": "patient"}

    Delivery tracking rooms are reserved for `join-delivery`.
    """
    room_id = request.data["room"]
    if _is_reserved_room(connection, room_id):
        return

    state.broker.join(
        connection.connection_id,
        room_id,
        role=request.data.get("role"),
    )


leave_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {"room": _room},
    "required": ["room"],
}


@event_router.register(
    ClientEvent.LEAVE, json_schema=leave_schema, validator_callback=validator
)
async def leave_handler(
    state: RelayState, connection: Connection, request: EventRequest
) -> None:
    state.broker.leave(connection.connection_id, request.data["room"])


# ============================================================================
# OFFER / ANSWER / ICE CANDIDATE
# ============================================================================

description_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "room": _room,
        "sdp": {},
        "to": {"type": "string"},
    },
    "required": ["room", "sdp"],
}

candidate_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "room": _room,
        "candidate": {},
        "to": {"type": "string"},
    },
    "required": ["room", "candidate"],
}

_BLOB_FIELD = {
    ClientEvent.OFFER: "sdp",
    ClientEvent.ANSWER: "sdp",
    ClientEvent.ICE_CANDIDATE: "candidate",
}


def _relay_negotiation(
    state: RelayState, connection: Connection, request: EventRequest
) -> int:
    """
    Forward one negotiation payload to the room's other members.

    When `to` is given the payload goes to that member only.

    Returns:
        Number of connections the payload was queued for.
    """
    event = ClientEvent(request.event)
    room_id = request.data["room"]
    sender_id = connection.connection_id

    if _is_reserved_room(connection, room_id):
        return 0

    if not state.broker.is_member(sender_id, room_id):
        logger.debug(
            f"Dropping {event} from {sender_id}: not a member of {room_id!r}"
        )
        MetricsCollector.record_ws_message_dropped("not_member")
        return 0

    blob_field = _BLOB_FIELD[event]
    message = ServerMessage.build(
        ServerEvent(event.value),
        {
            "from": sender_id,
            "room": room_id,
            blob_field: request.data[blob_field],
        },
    )

    target_id = request.data.get("to")
    if target_id is None:
        return state.broker.send_to_room(
            room_id, message, sender_id=sender_id, exclude_sender=True
        )

    if target_id == sender_id or not state.broker.is_member(target_id, room_id):
        logger.debug(
            f"Dropping {event} from {sender_id}: target {target_id} "
            f"is not a peer in {room_id!r}"
        )
        MetricsCollector.record_ws_message_dropped("unknown_target")
        return 0

    return int(state.broker.send_to_connection(target_id, message))


@event_router.register(
    ClientEvent.OFFER,
    ClientEvent.ANSWER,
    json_schema=description_schema,
    validator_callback=validator,
)
async def session_description_handler(
    state: RelayState, connection: Connection, request: EventRequest
) -> None:
    """
    Relay an SDP offer or answer.

    Request Data:
        {"room": "appointment-42", "sdp": {...}, "to": "<peer id, optional>"}

    Peers receive:
        {"from": "<sender id>", "room": "appointment-42", "sdp": {...}}
    """
    _relay_negotiation(state, connection, request)


@event_router.register(
    ClientEvent.ICE_CANDIDATE,
    json_schema=candidate_schema,
    validator_callback=validator,
)
async def ice_candidate_handler(
    state: RelayState, connection: Connection, request: EventRequest
) -> None:
    _relay_negotiation(state, connection, request)


# ============================================================================
# CHAT
# ============================================================================

chat_schema: JsonSchemaType = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "room": _room,
        "message": {"type": "string", "minLength": 1},
        "name": {"type": ["string", "null"]},
        "ts": {"type": ["number", "string", "null"]},
    },
    "required": ["room", "message"],
}


@event_router.register(
    ClientEvent.CHAT, json_schema=chat_schema, validator_callback=validator
)
async def chat_handler(
    state: RelayState, connection: Connection, request: EventRequest
) -> None:
    """
    Broadcast a chat message to the whole room, sender included.

    Request Data:
        {"room": "appointment-42", "message": "Hello", "name": "Patient", "ts": 1700000000000}

    Members receive:
        {"from": "<sender id>", "room": ..., "message": ..., "name": ..., "ts": ...}
    """
    room_id = request.data["room"]
    sender_id = connection.connection_id

    if _is_reserved_room(connection, room_id):
        return

    if not state.broker.is_member(sender_id, room_id):
        logger.debug(f"Dropping chat from {sender_id}: not a member of {room_id!r}")
        MetricsCollector.record_ws_message_dropped("not_member")
        return

    ts = request.data.get("ts")
    state.broker.send_to_room(
        room_id,
        ServerMessage.build(
            ServerEvent.CHAT,
            {
                "from": sender_id,
                "room": room_id,
                "message": request.data["message"][: state.settings.CHAT_MAX_LENGTH],
                "name": request.data.get("name") or DEFAULT_CHAT_NAME,
                "ts": ts if ts is not None else epoch_ms(),
            },
        ),
        sender_id=sender_id,
        exclude_sender=False,
    )
