from __future__ import annotations

import asyncio
import json

import feed_api.relay as relay_mod
from feed_api.protocols import MSG_FILL, make_message
from feed_api.relay import FeedRelayServer


class FakeWS:
    def __init__(self, server: FeedRelayServer, inbound=()):
        self.server = server
        self.inbound = list(inbound)
        self.seen_registered = False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for message in self.inbound:
            self.seen_registered = self in self.server.clients
            yield message


def test_handler_tracks_clients_and_ignores_inbound():
    server = FeedRelayServer(port=0)
    ws = FakeWS(server, inbound=["hello", "subscribe"])

    asyncio.run(server._handler(ws))

    assert ws.seen_registered is True
    assert server.clients == set()


def test_broadcast_serialises_once_for_all_clients(monkeypatch):
    sent = []
    monkeypatch.setattr(relay_mod, "ws_broadcast", lambda clients, text: sent.append((clients, text)))
    server = FeedRelayServer(port=0)
    a, b = object(), object()
    server.clients.update({a, b})

    message = make_message(MSG_FILL, {"market": "m1", "slot": 5})
    server.broadcast(message)

    assert len(sent) == 1
    clients, text = sent[0]
    assert clients == {a, b}
    assert clients is not server.clients
    assert json.loads(text) == {"type": "fill", "data": {"market": "m1", "slot": 5}}


def test_broadcast_without_clients_is_noop(monkeypatch):
    sent = []
    monkeypatch.setattr(relay_mod, "ws_broadcast", lambda clients, text: sent.append(text))
    FeedRelayServer(port=0).broadcast(make_message(MSG_FILL, {}))
    assert sent == []


def test_close_is_idempotent():
    class FakeServer:
        def __init__(self):
            self.close_calls = 0

        def close(self):
            self.close_calls += 1

        async def wait_closed(self):
            return None

    server = FeedRelayServer(port=0)
    server.close()

    fake = FakeServer()
    server._server = fake
    server.close()
    server.close()
    asyncio.run(server.wait_closed())

    assert fake.close_calls == 1
