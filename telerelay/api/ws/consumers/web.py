from typing import Any

from fastapi import APIRouter
from pydantic import ValidationError
from starlette.websockets import WebSocket

from telerelay.api.ws.handlers import load_handlers
from telerelay.api.ws.websocket import RelayWebSocketEndpoint
from telerelay.logging import logger
from telerelay.routing import event_router
from telerelay.schemas.events import EventRequest
from telerelay.utils.metrics import MetricsCollector

load_handlers()

router = APIRouter()


@router.websocket_route("/ws")
class Web(RelayWebSocketEndpoint):
    """
    Relay endpoint used by the video-call and delivery-tracking pages.

    Every frame is `{"event": <name>, "data": {...}}`; see
    `telerelay.schemas.events.ClientEvent` for the accepted events.
    """

    async def on_receive(self, websocket: WebSocket, data: dict[str, Any]):
        """
        Route one decoded frame to its event handler.

        Frames that do not match the event envelope are dropped and logged
        with the connection id; the connection stays open.
        """
        try:
            request = EventRequest(**data)
        except ValidationError:
            logger.debug(
                f"Received invalid frame: {data} "
                f"from connection {self.connection.connection_id}"
            )
            MetricsCollector.record_ws_message_dropped("invalid_frame")
            return

        await event_router.handle_event(self.state, self.connection, request)
