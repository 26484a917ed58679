"""Real-time rooms and the /ws endpoint.

Invariants:
    - Authenticated sockets join their role and user rooms on connect
    - A socket receives an event once even when it is in several target rooms
    - Sockets that fail to receive are dropped from every room
"""

from starlette.testclient import TestClient

from flame_kitchen.main import app
from flame_kitchen.services.realtime import KITCHEN_ROOM, POS_ROOM, ConnectionManager, manager, role_room, user_room


class FakeSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.fail = fail
        self.frames: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)


async def test_connect_joins_identity_rooms():
    rooms = ConnectionManager()
    socket = FakeSocket()

    await rooms.connect(socket, user_id="u1", role="CUSTOMER")

    assert socket.accepted
    assert rooms.room_size(role_room("CUSTOMER")) == 1
    assert rooms.room_size(user_room("u1")) == 1


async def test_anonymous_connect_joins_nothing():
    rooms = ConnectionManager()
    socket = FakeSocket()

    await rooms.connect(socket)

    assert rooms.rooms == {}
    assert await rooms.broadcast("ping", {}) == 1


async def test_emit_many_delivers_once_per_socket():
    rooms = ConnectionManager()
    both, kitchen_only, elsewhere = FakeSocket(), FakeSocket(), FakeSocket()
    for socket in (both, kitchen_only, elsewhere):
        await rooms.connect(socket)
    rooms.join(both, KITCHEN_ROOM)
    rooms.join(both, POS_ROOM)
    rooms.join(kitchen_only, KITCHEN_ROOM)

    delivered = await rooms.emit_many([KITCHEN_ROOM, POS_ROOM], "order:new", {"total": 52.5})

    assert delivered == 2
    assert both.frames == [{"event": "order:new", "data": {"total": 52.5}}]
    assert len(kitchen_only.frames) == 1
    assert elsewhere.frames == []


async def test_failed_socket_is_dropped():
    rooms = ConnectionManager()
    healthy, broken = FakeSocket(), FakeSocket(fail=True)
    await rooms.connect(healthy, user_id="a")
    await rooms.connect(broken, user_id="b")
    rooms.join(healthy, KITCHEN_ROOM)
    rooms.join(broken, KITCHEN_ROOM)

    delivered = await rooms.emit(KITCHEN_ROOM, "order:new", {})

    assert delivered == 1
    assert broken not in rooms.active
    assert rooms.room_size(KITCHEN_ROOM) == 1
    assert rooms.room_size(user_room("b")) == 0


async def test_emit_to_empty_room():
    rooms = ConnectionManager()

    assert await rooms.emit("nobody-here", "order:new", {}) == 0
    assert await rooms.emit_many(["a", "b"], "order:new", {}) == 0
    assert await rooms.broadcast("day:closed", {}) == 0


async def test_order_creation_reaches_kitchen_room(customer, place_order):
    kitchen_display = FakeSocket()
    await manager.connect(kitchen_display)
    manager.join(kitchen_display, KITCHEN_ROOM)
    try:
        order = await place_order(customer)
    finally:
        manager.disconnect(kitchen_display)

    events = [frame["event"] for frame in kitchen_display.frames]
    assert events == ["order:new"]
    assert kitchen_display.frames[0]["data"]["id"] == order["id"]


def test_websocket_join_kitchen_room():
    client = TestClient(app)

    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json({"event": "join:bar"})
        ws.send_json({"event": "join:kitchen"})
        ack = ws.receive_json()
        assert ack == {"event": "room:joined", "data": {"room": "kitchen"}}
        assert manager.room_size(KITCHEN_ROOM) == 1

    assert manager.room_size(KITCHEN_ROOM) == 0
