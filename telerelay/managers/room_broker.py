import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from telerelay.logging import logger
from telerelay.managers.connection_registry import Connection, ConnectionRegistry
from telerelay.schemas.events import ServerEvent, ServerMessage
from telerelay.utils.metrics import MetricsCollector
from telerelay.utils.timestamps import epoch_ms


@dataclass
class Room:
    """
    Named group of connections.

    `members` maps connection id to the optional role label given at join
    time; insertion order is join order.
    """

    room_id: str
    members: dict[str, str | None] = field(default_factory=dict)
    created_at: float = 0.0
    last_activity: float = 0.0


class RoomBroker:
    """
    Maps room ids to their member connections and fans messages out to them.

    Rooms are created by the first `join` and removed as soon as the last
    member leaves, disconnects or the room is expired for inactivity.

    All methods are synchronous: sending means queueing on the recipients'
    outboxes, so the messages of one room reach every recipient in the order
    `send_to_room` was called.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.rooms: dict[str, Room] = {}
        self._clock = clock
        registry.add_disconnect_listener(self._on_connection_closed)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def join(
        self,
        connection_id: str,
        room_id: str,
        role: str | None = None,
        kind: str = "call",
    ) -> Room | None:
        """
        Add a connection to a room, creating the room if needed.

        The joiner receives `joined` with the members already present; the
        other members receive `peer-joined`. Joining a room the connection is
        already in only refreshes its role.

        Args:
            connection_id: Id of the joining connection.
            room_id: Room to join.
            role: Optional role label (e.g. "doctor", "patient").
            kind: Metrics label for the room type ("call" or "delivery").

        Returns:
            The room, or None when the connection is not registered.
        """
        connection = self.registry.get(connection_id)
        if connection is None:
            logger.debug(
                f"Ignoring join of unknown connection {connection_id} to {room_id}"
            )
            return None

        now = self._clock()
        room = self.rooms.get(room_id)
        if room is None:
            room = Room(room_id=room_id, created_at=now, last_activity=now)
            self.rooms[room_id] = room
            MetricsCollector.set_active_rooms(len(self.rooms))
            logger.info(f'Room "{room_id}" created')

        rejoin = connection_id in room.members
        peers = [
            {"id": member_id, "role": member_role}
            for member_id, member_role in room.members.items()
            if member_id != connection_id
        ]
        room.members[connection_id] = role
        room.last_activity = now
        connection.rooms.add(room_id)

        self.send_to_connection(
            connection_id,
            ServerMessage.build(
                ServerEvent.JOINED,
                {"room": room_id, "id": connection_id, "peers": peers},
            ),
        )

        if rejoin:
            return room

        MetricsCollector.record_room_join(kind)
        self.send_to_room(
            room_id,
            ServerMessage.build(
                ServerEvent.PEER_JOINED,
                {
                    "room": room_id,
                    "id": connection_id,
                    "role": role,
                    "ts": epoch_ms(),
                },
            ),
            sender_id=connection_id,
            exclude_sender=True,
        )
        logger.info(
            f'Connection {connection_id} joined room "{room_id}" '
            f"as {role or 'participant'} ({len(room.members)} members)"
        )
        return room

    def leave(self, connection_id: str, room_id: str) -> bool:
        """
        Remove a connection from a room and notify the remaining members.

        Returns:
            False when the connection was not a member of the room.
        """
        room = self.rooms.get(room_id)
        if room is None or connection_id not in room.members:
            return False

        del room.members[connection_id]
        if connection := self.registry.get(connection_id):
            connection.rooms.discard(room_id)

        self._member_left(room, connection_id)
        return True

    def _on_connection_closed(self, connection: Connection) -> None:
        """Disconnect listener: drop the connection from all of its rooms."""
        for room_id in sorted(connection.rooms):
            room = self.rooms.get(room_id)
            if room is None or connection.connection_id not in room.members:
                continue
            del room.members[connection.connection_id]
            self._member_left(room, connection.connection_id)
        connection.rooms.clear()

    def _member_left(self, room: Room, connection_id: str) -> None:
        if not room.members:
            del self.rooms[room.room_id]
            MetricsCollector.set_active_rooms(len(self.rooms))
            logger.info(
                f'Room "{room.room_id}" removed after its last member left'
            )
            return

        room.last_activity = self._clock()
        self.send_to_room(
            room.room_id,
            ServerMessage.build(
                ServerEvent.PEER_LEFT,
                {"room": room.room_id, "id": connection_id, "ts": epoch_ms()},
            ),
        )
        logger.info(
            f'Connection {connection_id} left room "{room.room_id}" '
            f"({len(room.members)} members)"
        )

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def send_to_room(
        self,
        room_id: str,
        message: dict[str, Any],
        sender_id: str | None = None,
        exclude_sender: bool = False,
    ) -> int:
        """
        Queue a message for every current member of a room.

        Args:
            room_id: Target room. Unknown or empty rooms are a no-op.
            message: JSON-ready frame.
            sender_id: Connection id of the sender, if any.
            exclude_sender: Skip `sender_id` when True.

        Returns:
            Number of members the message was queued for.
        """
        room = self.rooms.get(room_id)
        if room is None or not room.members:
            return 0

        room.last_activity = self._clock()
        queued = 0
        for member_id in list(room.members):
            if exclude_sender and member_id == sender_id:
                continue
            if self._enqueue(member_id, message):
                queued += 1
        return queued

    def send_to_connection(
        self, connection_id: str, message: dict[str, Any]
    ) -> bool:
        """Queue a message for one connection. Unknown ids are a no-op."""
        return self._enqueue(connection_id, message)

    def _enqueue(self, connection_id: str, message: dict[str, Any]) -> bool:
        connection = self.registry.get(connection_id)
        if connection is None:
            return False
        if not connection.enqueue(message):
            logger.warning(
                f"Outbox of connection {connection_id} is full, "
                f"dropping {message.get('event')} message"
            )
            MetricsCollector.record_ws_message_dropped("outbox_full")
            return False
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_room(self, room_id: str) -> Room | None:
        return self.rooms.get(room_id)

    def members(self, room_id: str) -> dict[str, str | None]:
        room = self.rooms.get(room_id)
        return dict(room.members) if room else {}

    def is_member(self, connection_id: str, room_id: str) -> bool:
        room = self.rooms.get(room_id)
        return room is not None and connection_id in room.members

    def rooms_of(self, connection_id: str) -> set[str]:
        connection = self.registry.get(connection_id)
        return set(connection.rooms) if connection else set()

    def room_ids(self) -> list[str]:
        return list(self.rooms)

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def expire_idle_rooms(self, max_idle_seconds: float) -> list[str]:
        """
        Close abandoned rooms without activity for at least `max_idle_seconds`.

        Only rooms left with a single member are expired: two connected
        members may be in a peer-to-peer call that needs no signaling, and
        their room must stay to deliver `peer-left` when one hangs up.

        Every member of an expired room receives `room-expired` and loses
        its membership; the connections themselves stay open.

        Returns:
            Ids of the expired rooms.
        """
        now = self._clock()
        expired = [
            room
            for room in self.rooms.values()
            if len(room.members) < 2
            and now - room.last_activity >= max_idle_seconds
        ]

        for room in expired:
            message = ServerMessage.build(
                ServerEvent.ROOM_EXPIRED, {"room": room.room_id}
            )
            for member_id in list(room.members):
                self._enqueue(member_id, message)
                if connection := self.registry.get(member_id):
                    connection.rooms.discard(room.room_id)
            del self.rooms[room.room_id]
            MetricsCollector.record_room_expired()
            logger.info(
                f'Room "{room.room_id}" expired after '
                f"{now - room.last_activity:.0f}s without activity"
            )

        if expired:
            MetricsCollector.set_active_rooms(len(self.rooms))
        return [room.room_id for room in expired]
