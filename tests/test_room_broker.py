"""
Tests for the room broker.

This module tests room membership, join/leave notifications, fan-out with
and without the sender, per-room ordering and idle room expiry.
"""

from unittest.mock import AsyncMock

from telerelay.managers.connection_registry import ConnectionRegistry
from telerelay.managers.room_broker import RoomBroker
from telerelay.schemas.events import ServerEvent, ServerMessage
from tests.mocks.websocket_mocks import drain, events


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_broker(outbox_max_size: int = 64, clock=None):
    registry = ConnectionRegistry(outbox_max_size=outbox_max_size)
    broker = RoomBroker(registry, clock=clock or FakeClock())
    return registry, broker


def chat(text: str) -> dict:
    return ServerMessage.build(ServerEvent.CHAT, {"message": text})


class TestRoomMembership:
    """Tests for join and leave."""

    def test_first_join_creates_room(self):
        """Test the first join creates the room and answers with no peers."""
        registry, broker = make_broker()
        doctor = registry.on_connect(AsyncMock())

        room = broker.join(doctor.connection_id, "appointment-1", role="doctor")

        assert room is not None
        assert broker.room_ids() == ["appointment-1"]
        assert broker.members("appointment-1") == {doctor.connection_id: "doctor"}
        assert doctor.rooms == {"appointment-1"}
        assert drain(doctor) == [
            {
                "event": "joined",
                "data": {
                    "room": "appointment-1",
                    "id": doctor.connection_id,
                    "peers": [],
                },
            }
        ]

    def test_second_join_notifies_existing_members(self):
        """Test the joiner gets the peer list and the others get peer-joined."""
        registry, broker = make_broker()
        doctor = registry.on_connect(AsyncMock())
        patient = registry.on_connect(AsyncMock())
        broker.join(doctor.connection_id, "appointment-1", role="doctor")
        drain(doctor)

        broker.join(patient.connection_id, "appointment-1", role="patient")

        joined = drain(patient)
        assert events(joined) == ["joined"]
        assert joined[0]["data"]["peers"] == [
            {"id": doctor.connection_id, "role": "doctor"}
        ]

        notified = drain(doctor)
        assert events(notified) == ["peer-joined"]
        assert notified[0]["data"]["id"] == patient.connection_id
        assert notified[0]["data"]["role"] == "patient"
        assert isinstance(notified[0]["data"]["ts"], int)

    def test_rejoin_does_not_notify_peers_again(self):
        """Test joining a room twice keeps one membership."""
        registry, broker = make_broker()
        doctor = registry.on_connect(AsyncMock())
        patient = registry.on_connect(AsyncMock())
        broker.join(doctor.connection_id, "r")
        broker.join(patient.connection_id, "r")
        drain(doctor)
        drain(patient)

        broker.join(patient.connection_id, "r", role="patient")

        assert events(drain(patient)) == ["joined"]
        assert drain(doctor) == []
        assert broker.members("r")[patient.connection_id] == "patient"

    def test_join_unknown_connection(self):
        """Test joining with an id that is not registered is ignored."""
        _, broker = make_broker()

        assert broker.join("ghost", "r") is None
        assert broker.room_ids() == []

    def test_leave_notifies_remaining_members(self):
        """Test leave removes the membership and sends peer-left."""
        registry, broker = make_broker()
        doctor = registry.on_connect(AsyncMock())
        patient = registry.on_connect(AsyncMock())
        broker.join(doctor.connection_id, "r")
        broker.join(patient.connection_id, "r")
        drain(doctor)

        assert broker.leave(patient.connection_id, "r")

        left = drain(doctor)
        assert events(left) == ["peer-left"]
        assert left[0]["data"]["id"] == patient.connection_id
        assert not broker.is_member(patient.connection_id, "r")
        assert patient.rooms == set()

    def test_leave_when_not_member(self):
        """Test leaving a room the connection is not in returns False."""
        registry, broker = make_broker()
        connection = registry.on_connect(AsyncMock())

        assert not broker.leave(connection.connection_id, "missing")

    def test_last_member_leaving_removes_room(self):
        """Test a room without members no longer exists."""
        registry, broker = make_broker()
        connection = registry.on_connect(AsyncMock())
        broker.join(connection.connection_id, "r")

        broker.leave(connection.connection_id, "r")

        assert broker.get_room("r") is None
        assert broker.members("r") == {}

    def test_disconnect_removes_from_every_room(self):
        """Test a closed connection leaves all of its rooms."""
        registry, broker = make_broker()
        leaving = registry.on_connect(AsyncMock())
        staying = registry.on_connect(AsyncMock())
        for room_id in ("a", "b"):
            broker.join(leaving.connection_id, room_id)
            broker.join(staying.connection_id, room_id)
        broker.join(leaving.connection_id, "solo")
        drain(staying)

        registry.on_disconnect(leaving.connection_id)

        assert events(drain(staying)) == ["peer-left", "peer-left"]
        assert broker.members("a") == {staying.connection_id: None}
        assert broker.members("b") == {staying.connection_id: None}
        assert broker.get_room("solo") is None
        assert broker.rooms_of(leaving.connection_id) == set()


class TestRoomFanOut:
    """Tests for send_to_room and send_to_connection."""

    def _room_of_three(self):
        registry, broker = make_broker()
        members = [registry.on_connect(AsyncMock()) for _ in range(3)]
        for member in members:
            broker.join(member.connection_id, "r")
        for member in members:
            drain(member)
        return registry, broker, members

    def test_exclude_sender(self):
        """Test the sender does not receive its own message."""
        _, broker, (sender, *others) = self._room_of_three()

        queued = broker.send_to_room(
            "r", chat("hi"), sender_id=sender.connection_id, exclude_sender=True
        )

        assert queued == 2
        assert drain(sender) == []
        for other in others:
            assert drain(other) == [chat("hi")]

    def test_include_sender(self):
        """Test every member, sender included, receives the message."""
        _, broker, members = self._room_of_three()

        queued = broker.send_to_room(
            "r", chat("hi"), sender_id=members[0].connection_id
        )

        assert queued == 3
        for member in members:
            assert drain(member) == [chat("hi")]

    def test_messages_keep_send_order(self):
        """Test each member receives a room's messages in send order."""
        _, broker, members = self._room_of_three()
        sent = [chat(str(n)) for n in range(5)]

        for message in sent:
            broker.send_to_room("r", message)

        for member in members:
            assert drain(member) == sent

    def test_unknown_room_is_noop(self):
        """Test sending to a room that does not exist."""
        _, broker, members = self._room_of_three()

        assert broker.send_to_room("nowhere", chat("hi")) == 0
        for member in members:
            assert drain(member) == []

    def test_send_to_connection(self):
        """Test a direct message reaches only its target."""
        _, broker, (target, other, _) = self._room_of_three()

        assert broker.send_to_connection(target.connection_id, chat("psst"))
        assert not broker.send_to_connection("ghost", chat("psst"))

        assert drain(target) == [chat("psst")]
        assert drain(other) == []

    def test_full_outbox_drops_message_for_that_member_only(self):
        """Test a slow consumer does not block the rest of the room."""
        registry, broker = make_broker(outbox_max_size=1)
        slow = registry.on_connect(AsyncMock())
        fast = registry.on_connect(AsyncMock())
        broker.join(slow.connection_id, "r")  # fills the outbox with `joined`
        broker.join(fast.connection_id, "r")  # peer-joined to slow is dropped
        drain(fast)

        queued = broker.send_to_room("r", chat("hi"))

        assert queued == 1
        assert drain(fast) == [chat("hi")]
        assert events(drain(slow)) == ["joined"]


class TestRoomExpiry:
    """Tests for expire_idle_rooms."""

    def test_idle_room_expires(self):
        """Test members of an idle room are told and lose the membership."""
        clock = FakeClock()
        registry, broker = make_broker(clock=clock)
        member = registry.on_connect(AsyncMock())
        broker.join(member.connection_id, "r")
        drain(member)

        clock.now += 60
        expired = broker.expire_idle_rooms(60)

        assert expired == ["r"]
        assert broker.get_room("r") is None
        assert member.rooms == set()
        assert drain(member) == [
            {"event": "room-expired", "data": {"room": "r"}}
        ]
        assert member.connection_id in registry

    def test_room_with_two_members_is_kept(self):
        """Test a silent peer-to-peer call keeps its room and peer-left."""
        clock = FakeClock()
        registry, broker = make_broker(clock=clock)
        doctor = registry.on_connect(AsyncMock())
        patient = registry.on_connect(AsyncMock())
        broker.join(doctor.connection_id, "r")
        broker.join(patient.connection_id, "r")
        drain(patient)

        clock.now += 3600
        assert broker.expire_idle_rooms(60) == []

        registry.on_disconnect(doctor.connection_id)

        assert events(drain(patient)) == ["peer-left"]
        assert broker.is_member(patient.connection_id, "r")

    def test_activity_keeps_room_alive(self):
        """Test messages reset the idle timer."""
        clock = FakeClock()
        registry, broker = make_broker(clock=clock)
        member = registry.on_connect(AsyncMock())
        broker.join(member.connection_id, "r")

        clock.now += 50
        broker.send_to_room("r", chat("still here"))
        clock.now += 50

        assert broker.expire_idle_rooms(60) == []
        assert broker.get_room("r") is not None
