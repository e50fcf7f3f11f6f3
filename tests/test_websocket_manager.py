import asyncio
import json

from mermaid_sync.backend.websocket_manager import WebSocketManager


class FakeSocket:
    def __init__(self, broken=False):
        self.sent = []
        self.accepted = False
        self.broken = broken

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.broken:
            raise RuntimeError("closed")
        self.sent.append(json.loads(text))


def test_events_reach_every_view_and_broken_sockets_are_dropped():
    async def scenario():
        manager = WebSocketManager()
        good, broken = FakeSocket(), FakeSocket(broken=True)
        await manager.connect(good)
        await manager.connect(broken)
        assert good.accepted and manager.connection_count == 2

        await manager.notify_text_published("graph TD\n", 3)
        await manager.notify_graph_replaced(2, 4)
        return manager, good

    manager, good = asyncio.run(scenario())
    assert good.sent == [
        {"type": "text_published", "text": "graph TD\n", "revision": 3},
        {"type": "graph_replaced", "version": 2, "revision": 4},
    ]
    assert manager.connection_count == 1
    assert manager.last_revision == 4


def test_unknown_events_are_not_broadcast():
    async def scenario():
        manager = WebSocketManager()
        socket = FakeSocket()
        await manager.connect(socket)
        await manager.publish({"type": "mystery", "revision": 9})
        await manager.disconnect(socket)
        return manager, socket

    manager, socket = asyncio.run(scenario())
    assert socket.sent == []
    assert manager.last_revision == 0
    assert manager.connection_count == 0
