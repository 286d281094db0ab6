from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ClientEvent(str, Enum):
    """
    Events a client may send over the relay WebSocket.

    Attributes:
        JOIN: Join a call room, notifying the other members
        OFFER: WebRTC session description offer for the room's peers
        ANSWER: WebRTC session description answer
        ICE_CANDIDATE: Trickled ICE candidate
        CHAT: In-room chat message, broadcast to every member
        LEAVE: Leave a call room
        JOIN_DELIVERY: Subscribe to the tracking room of an order
    """

    JOIN = "join"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    CHAT = "chat"
    LEAVE = "leave"
    JOIN_DELIVERY = "join-delivery"

    def __str__(self):
        return self.value


class ServerEvent(str, Enum):
    """Events the relay emits to clients."""

    CONNECTED = "connected"
    JOINED = "joined"
    PEER_JOINED = "peer-joined"
    PEER_LEFT = "peer-left"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    CHAT = "chat"
    DELIVERY_UPDATE = "delivery-update"
    ROOM_EXPIRED = "room-expired"

    def __str__(self):
        return self.value


class EventRequest(BaseModel):
    """
    Inbound WebSocket frame.

    Attributes:
        event: Event name, routed by `telerelay.routing.event_router`.
        data: Event payload; validated per event against a JSON schema.
    """

    event: str = Field(frozen=True, min_length=1)
    data: dict[str, Any] = {}


class ServerMessage(BaseModel):
    """Outbound WebSocket frame."""

    event: ServerEvent = Field(frozen=True)
    data: dict[str, Any] = {}

    @classmethod
    def build(
        cls, event: ServerEvent, data: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Build the JSON-ready dict for an outbound frame."""
        return cls(event=event, data=data or {}).model_dump(mode="json")
