"""Call room allocation for appointments."""

import uuid

from fastapi import APIRouter, status

from telerelay.constants import APPOINTMENT_ROOM_PREFIX
from telerelay.dependencies import RelayStateDep
from telerelay.exceptions import NotFoundError
from telerelay.schemas.calls import (
    CallRoomDetails,
    CallRoomResponse,
    CreateCallRequest,
    RoomMember,
)
from telerelay.utils.error_handler import handle_http_errors

router = APIRouter(prefix="/calls", tags=["calls"])


@router.post(
    "",
    response_model=CallRoomResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Allocate the call room of an appointment",
)
async def create_call(body: CreateCallRequest | None = None) -> CallRoomResponse:
    """
    Return the room id both participants of a call join.

    The id is derived from the appointment id, so the doctor's and the
    patient's pages agree on it without further coordination. Without an
    appointment id a random room id is generated. The room itself only
    comes into existence when the first participant joins it.
    """
    if body is not None and body.appointment_id:
        room_id = f"{APPOINTMENT_ROOM_PREFIX}{body.appointment_id}"
    else:
        room_id = f"call-{uuid.uuid4().hex[:12]}"
    return CallRoomResponse(room_id=room_id)


@router.get(
    "/{room_id}",
    response_model=CallRoomDetails,
    summary="Current members of a call room",
)
@handle_http_errors
async def get_call(room_id: str, relay: RelayStateDep) -> CallRoomDetails:
    members = relay.broker.members(room_id)
    if not members:
        raise NotFoundError(f"Room {room_id} has no members")

    return CallRoomDetails(
        room_id=room_id,
        members=[
            RoomMember(id=member_id, role=role)
            for member_id, role in members.items()
        ],
    )
