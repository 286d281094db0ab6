import json
from typing import Any

from starlette import status
from starlette.endpoints import WebSocketEndpoint
from starlette.websockets import WebSocket

from telerelay.logging import clear_log_context, logger, set_log_context
from telerelay.managers.connection_registry import Connection
from telerelay.middlewares.correlation_id import set_correlation_id
from telerelay.schemas.events import ServerEvent, ServerMessage
from telerelay.state import RelayState
from telerelay.utils.metrics import MetricsCollector


class RelayWebSocketEndpoint(WebSocketEndpoint):  # type: ignore[misc]
    """
    WebSocket endpoint bound to the application's relay state.

    Registers the connection on connect, starts its outbox writer and
    unregisters it on disconnect (which also removes it from every room).
    Frames that are not JSON objects are dropped; the socket stays open.
    """

    encoding = None

    async def dispatch(self) -> None:
        """
        Manage the WebSocket connection lifecycle.

        1. Calls on_connect.
        2. Receives frames until the client disconnects; each decodable frame
           goes to on_receive, undecodable ones are dropped.
        3. Always calls on_disconnect with the close code.
        """
        websocket = WebSocket(self.scope, receive=self.receive, send=self.send)
        await self.on_connect(websocket)

        close_code = status.WS_1000_NORMAL_CLOSURE

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.receive":
                    data = await self.decode(websocket, message)
                    if data is None:
                        MetricsCollector.record_ws_message_dropped("invalid_frame")
                        continue
                    await self.on_receive(websocket, data)
                elif message["type"] == "websocket.disconnect":
                    close_code = int(
                        message.get("code") or status.WS_1000_NORMAL_CLOSURE
                    )
                    break
        except Exception as exc:
            # Catch-all for unexpected errors
            close_code = status.WS_1011_INTERNAL_ERROR
            raise exc
        finally:
            await self.on_disconnect(websocket, close_code)

    async def decode(
        self, websocket: WebSocket, message: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Decode an incoming frame as a JSON object.

        Args:
            websocket: WebSocket connection instance
            message: Raw message dict from WebSocket

        Returns:
            The decoded object, or None when the frame is not a JSON object.
        """
        raw = message.get("text")
        if raw is None and message.get("bytes") is not None:
            raw = message["bytes"].decode("utf-8", errors="replace")
        if not raw:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Dropping frame that is not valid JSON")
            return None

        return data if isinstance(data, dict) else None

    async def on_connect(self, websocket: WebSocket) -> None:
        """
        Accept the socket and register the connection.

        The client receives `connected` with its connection id, which peers
        use as the `to` target of negotiation messages.
        """
        await websocket.accept()

        self.state: RelayState = self.scope["app"].state.relay
        self.connection: Connection = self.state.registry.on_connect(
            websocket.send_json
        )
        self.connection.start_writer()

        connection_id = self.connection.connection_id
        set_correlation_id(connection_id[:8])
        set_log_context(connection_id=connection_id)

        MetricsCollector.record_ws_connection_accepted()
        self.state.broker.send_to_connection(
            connection_id,
            ServerMessage.build(ServerEvent.CONNECTED, {"id": connection_id}),
        )
        logger.debug(f"Client connected to websocket (connection_id: {connection_id})")

    async def on_disconnect(self, websocket: WebSocket, close_code: int) -> None:
        """Unregister the connection, leaving every room it was in."""
        if hasattr(self, "connection"):
            self.state.registry.on_disconnect(self.connection.connection_id)
            MetricsCollector.record_ws_disconnection()
            logger.debug(
                f"Client {self.connection.connection_id} disconnected "
                f"with code {close_code}"
            )
        clear_log_context()
