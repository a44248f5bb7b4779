"""Tests for the WebSocket room manager."""

import asyncio
import json
from uuid import uuid4

from api.websocket.manager import ConnectionManager, make_event, room_name


class FakeWebSocket:
    """Records what the manager sends; can be told to fail."""

    def __init__(self, broken: bool = False):
        self.accepted = False
        self.broken = broken
        self.sent: list[dict] = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text: str):
        if self.broken:
            raise RuntimeError("connection closed")
        self.sent.append(json.loads(text))


def _connected(manager, *sockets):
    for socket in sockets:
        asyncio.run(manager.connect(socket))


class TestEnvelope:
    def test_room_name(self):
        workspace_id = uuid4()
        assert room_name(workspace_id) == f"workspace:{workspace_id}"

    def test_event_defaults_to_empty_data(self):
        assert make_event("pong") == {"event": "pong", "data": {}}


class TestRooms:
    def test_connect_accepts(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        _connected(manager, socket)

        assert socket.accepted
        assert manager.rooms_of(socket) == set()

    def test_join_is_idempotent(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        workspace_id = uuid4()
        _connected(manager, socket)

        manager.join(socket, workspace_id)
        manager.join(socket, workspace_id)

        assert manager.room_size(workspace_id) == 1
        assert manager.rooms_of(socket) == {room_name(workspace_id)}

    def test_connection_can_sit_in_several_rooms(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        first, second = uuid4(), uuid4()
        _connected(manager, socket)

        manager.join(socket, first)
        manager.join(socket, second)
        manager.leave(socket, first)

        assert manager.rooms_of(socket) == {room_name(second)}
        assert manager.room_size(first) == 0

    def test_leave_unjoined_room_is_harmless(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        _connected(manager, socket)

        manager.leave(socket, uuid4())

        assert manager.rooms_of(socket) == set()

    def test_disconnect_leaves_every_room(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        first, second = uuid4(), uuid4()
        _connected(manager, socket)
        manager.join(socket, first)
        manager.join(socket, second)

        manager.disconnect(socket)
        manager.disconnect(socket)

        assert manager.room_size(first) == 0
        assert manager.room_size(second) == 0
        assert manager.rooms == {}

    def test_leave_user_evicts_only_that_user(self):
        manager = ConnectionManager()
        phone, laptop, peer = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        leaving, staying = uuid4(), uuid4()
        workspace_id, other_workspace = uuid4(), uuid4()
        asyncio.run(manager.connect(phone, leaving))
        asyncio.run(manager.connect(laptop, leaving))
        asyncio.run(manager.connect(peer, staying))
        for socket in (phone, laptop, peer):
            manager.join(socket, workspace_id)
        manager.join(laptop, other_workspace)

        assert manager.leave_user(leaving, workspace_id) == 2

        assert manager.room_size(workspace_id) == 1
        assert manager.rooms_of(laptop) == {room_name(other_workspace)}
        delivered = asyncio.run(manager.broadcast(workspace_id, make_event("ping")))
        assert delivered == 1
        assert phone.sent == []
        assert peer.sent == [make_event("ping")]

    def test_leave_user_without_connections(self):
        manager = ConnectionManager()
        assert manager.leave_user(uuid4(), uuid4()) == 0

    def test_disconnect_forgets_user(self):
        manager = ConnectionManager()
        socket = FakeWebSocket()
        asyncio.run(manager.connect(socket, uuid4()))

        manager.disconnect(socket)

        assert manager.users == {}


class TestBroadcast:
    def test_reaches_whole_room_including_sender(self):
        manager = ConnectionManager()
        sender, peer, elsewhere = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        workspace_id = uuid4()
        _connected(manager, sender, peer, elsewhere)
        manager.join(sender, workspace_id)
        manager.join(peer, workspace_id)
        manager.join(elsewhere, uuid4())

        event = make_event("receive_message", {"id": "m-1"})
        delivered = asyncio.run(manager.broadcast(workspace_id, event))

        assert delivered == 2
        assert sender.sent == [event]
        assert peer.sent == [event]
        assert elsewhere.sent == []

    def test_broken_connection_is_dropped(self):
        manager = ConnectionManager()
        healthy, broken = FakeWebSocket(), FakeWebSocket(broken=True)
        workspace_id = uuid4()
        _connected(manager, healthy, broken)
        manager.join(healthy, workspace_id)
        manager.join(broken, workspace_id)

        delivered = asyncio.run(manager.broadcast(workspace_id, make_event("ping")))

        assert delivered == 1
        assert manager.room_size(workspace_id) == 1
        assert broken not in manager.connections

    def test_empty_room(self):
        manager = ConnectionManager()
        assert asyncio.run(manager.broadcast(uuid4(), make_event("ping"))) == 0

    def test_send_personal(self):
        manager = ConnectionManager()
        socket, broken = FakeWebSocket(), FakeWebSocket(broken=True)
        _connected(manager, socket, broken)

        assert asyncio.run(manager.send_personal(socket, make_event("pong"))) is True
        assert socket.sent == [{"event": "pong", "data": {}}]
        assert asyncio.run(manager.send_personal(broken, make_event("pong"))) is False
        assert broken not in manager.connections
