import asyncio
import time
import uuid
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from starlette.websockets import WebSocketDisconnect

from telerelay.logging import logger
from telerelay.settings import app_settings
from telerelay.utils.metrics import MetricsCollector

SendCallable = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(eq=False)
class Connection:
    """
    One live client session.

    Outbound messages are never written to the transport directly: they are
    queued on `outbox` and a single writer task sends them in queue order.
    """

    connection_id: str
    send: SendCallable
    outbox: asyncio.Queue[dict[str, Any]]
    rooms: set[str] = field(default_factory=set)
    connected_at: float = field(default_factory=time.time)
    writer_task: asyncio.Task[None] | None = None

    def enqueue(self, message: dict[str, Any]) -> bool:
        """
        Queue a message for this connection without waiting.

        Returns:
            False when the outbox is full and the message was not queued.
        """
        try:
            self.outbox.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def start_writer(self) -> asyncio.Task[None]:
        """Start the task draining the outbox. Must run inside the event loop."""
        if self.writer_task is None:
            self.writer_task = asyncio.create_task(
                self.run_writer(), name=f"ws-writer-{self.connection_id[:8]}"
            )
        return self.writer_task

    async def run_writer(self) -> None:
        """Send queued messages until cancelled or the transport fails."""
        while True:
            message = await self.outbox.get()
            try:
                await self.send(message)
            except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
                # WebSocketDisconnect: Client disconnected
                # ConnectionError: Network errors
                # RuntimeError: WebSocket in invalid state
                logger.warning(
                    f"Failed to send to connection {self.connection_id}: {e}"
                )
                return
            MetricsCollector.record_ws_message_sent()

    def stop_writer(self) -> None:
        if self.writer_task is not None and not self.writer_task.done():
            self.writer_task.cancel()


DisconnectListener = Callable[[Connection], None]


class ConnectionRegistry:
    """
    Registry of live client connections.

    Owns every `Connection` from transport connect to transport disconnect
    and tells its disconnect listeners (the room broker) when one goes away.
    """

    def __init__(self, outbox_max_size: int | None = None) -> None:
        self.connections: dict[str, Connection] = {}
        self.outbox_max_size = (
            outbox_max_size
            if outbox_max_size is not None
            else app_settings.WS_OUTBOX_MAX_SIZE
        )
        self._disconnect_listeners: list[DisconnectListener] = []

    def add_disconnect_listener(self, listener: DisconnectListener) -> None:
        self._disconnect_listeners.append(listener)

    def on_connect(self, send: SendCallable) -> Connection:
        """
        Register a new connection with a fresh unique id.

        Args:
            send: Coroutine function writing one message to the transport.

        Returns:
            The registered connection, member of no room.
        """
        connection_id = str(uuid.uuid4())
        while connection_id in self.connections:
            connection_id = str(uuid.uuid4())

        connection = Connection(
            connection_id=connection_id,
            send=send,
            outbox=asyncio.Queue(maxsize=self.outbox_max_size),
        )
        self.connections[connection_id] = connection
        logger.debug(f"Connection {connection_id} registered")
        return connection

    def on_disconnect(self, connection_id: str) -> Connection | None:
        """
        Remove a connection and notify listeners.

        Unknown ids, including ids that were already disconnected, are a no-op.

        Returns:
            The removed connection, or None if it was not registered.
        """
        connection = self.connections.pop(connection_id, None)
        if connection is None:
            return None

        connection.stop_writer()

        for listener in self._disconnect_listeners:
            try:
                listener(connection)
            except Exception as ex:
                logger.error(
                    f"Disconnect listener failed for connection {connection_id}: {ex}",
                    exc_info=True,
                )

        logger.debug(
            f"Connection {connection_id} unregistered "
            f"({len(self.connections)} remaining)"
        )
        return connection

    def get(self, connection_id: str) -> Connection | None:
        return self.connections.get(connection_id)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self.connections

    def __len__(self) -> int:
        return len(self.connections)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self.connections.values()))
