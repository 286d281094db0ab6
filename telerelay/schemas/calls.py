from pydantic import BaseModel, ConfigDict, Field


class CreateCallRequest(BaseModel):
    """Request to allocate the call room of an appointment."""

    model_config = ConfigDict(populate_by_name=True)

    appointment_id: str | None = Field(
        default=None, alias="appointmentId", min_length=1
    )


class CallRoomResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_id: str = Field(alias="roomId")


class RoomMember(BaseModel):
    id: str
    role: str | None = None


class CallRoomDetails(CallRoomResponse):
    members: list[RoomMember]
