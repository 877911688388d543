from __future__ import annotations

import asyncio
import json
import os

import websockets


async def main() -> None:
    # Usage:
    # FEED_HOST=localhost FEED_PORT=1234 TYPES=fill python ws_clients/feed_client.py
    host = os.getenv("FEED_HOST", "localhost")
    port = os.getenv("FEED_PORT", "1234")
    types = {t for t in os.getenv("TYPES", "").split(",") if t}

    url = f"ws://{host}:{port}"
    print(f"Connecting to {url}")
    async with websockets.connect(url) as ws:
        print("Connected.")
        async for message in ws:
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                print(message)
                continue
            if types and payload.get("type") not in types:
                continue
            print(json.dumps(payload, ensure_ascii=False))


if __name__ == "__main__":
    asyncio.run(main())
