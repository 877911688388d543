from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Set

import websockets
from websockets.asyncio.server import broadcast as ws_broadcast  # type: ignore
from websockets.asyncio.server import serve as ws_serve  # type: ignore

from feed_api.protocols import Publisher

log = logging.getLogger("feed_api.relay")


class FeedRelayServer(Publisher):
    """Websocket server that fans decoded events out to every subscriber.

    Subscribers only listen; anything they send is logged and ignored.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 1234) -> None:
        self.host = host
        self.port = int(port)
        self.clients: Set[Any] = set()
        self._server: Optional[Any] = None
        self._closed = False

    async def start(self) -> None:
        self._server = await ws_serve(self._handler, self.host, self.port)
        log.info("Feed relay listening on ws://%s:%s", self.host, self.port)

    async def _handler(self, ws: Any) -> None:
        self.clients.add(ws)
        log.info("New client connected (clients=%d)", len(self.clients))
        try:
            async for message in ws:
                log.info("Received message: %s", message)
        except websockets.ConnectionClosed:
            pass
        finally:
            self.clients.discard(ws)
            log.info("Client disconnected (clients=%d)", len(self.clients))

    def broadcast(self, message: Dict[str, Any]) -> None:
        if not self.clients:
            return
        # Queued per connection; a slow subscriber is skipped, never awaited.
        ws_broadcast(set(self.clients), json.dumps(message, ensure_ascii=False))

    def close(self) -> None:
        if self._server is None or self._closed:
            return
        self._closed = True
        self._server.close()
        log.info("Feed relay closed")

    async def wait_closed(self) -> None:
        if self._server is not None:
            await self._server.wait_closed()
