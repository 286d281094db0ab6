from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from telerelay.schemas.events import ServerEvent, ServerMessage
from telerelay.utils.timestamps import utc_now


class DeliveryStatus(str, Enum):
    ASSIGNED = "assigned"
    OUT_FOR_DELIVERY = "out for delivery"
    DELIVERED = "delivered"

    @property
    def is_terminal(self) -> bool:
        return self is DeliveryStatus.DELIVERED


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class DeliveryRecord(BaseModel):
    """
    Server-held tracking state for one order.

    Serialized with camelCase aliases (`orderId`, `updatedAt`) to match the
    browser clients.
    """

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(alias="orderId")
    status: DeliveryStatus = DeliveryStatus.ASSIGNED
    location: Location
    updated_at: datetime = Field(default_factory=utc_now, alias="updatedAt")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_update_message(self) -> dict[str, Any]:
        """Build the `delivery-update` frame broadcast to the order's room."""
        return ServerMessage.build(
            ServerEvent.DELIVERY_UPDATE,
            self.model_dump(mode="json", by_alias=True),
        )


class CreateDeliveryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str | None = Field(default=None, alias="orderId", min_length=1)
    location: Location | None = None
