"""
Order Feed

Keeps the WebSocket connections of kitchen and front-of-house screens and
pushes order snapshots to them:
    - "new": orders that were just placed
    - "update": orders that changed or were finalized
"""

import asyncio
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

CHANNELS = ("new", "update")


class OrderEventHub:
    """Registry of WebSocket connections grouped by channel."""

    def __init__(self):
        self._connections: dict[str, set[WebSocket]] = {channel: set() for channel in CHANNELS}
        self._lock = asyncio.Lock()

    def connection_count(self, channel: str) -> int:
        return len(self._connections.get(channel, ()))

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        if channel not in self._connections:
            raise ValueError(f"Unknown channel: {channel}")
        await websocket.accept()
        async with self._lock:
            self._connections[channel].add(websocket)
        logger.info(f"Client joined '{channel}' feed ({self.connection_count(channel)} connected)")

    async def disconnect(self, channel: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.get(channel, set()).discard(websocket)
        logger.info(f"Client left '{channel}' feed ({self.connection_count(channel)} connected)")

    async def broadcast(self, channel: str, payload: Any, exclude: WebSocket = None) -> int:
        """
        Send a JSON payload to every client of a channel.

        Clients whose send fails are dropped.

        Returns:
            Number of clients the payload reached
        """
        async with self._lock:
            targets = [ws for ws in self._connections.get(channel, ()) if ws is not exclude]

        delivered = 0
        stale = []
        for ws in targets:
            try:
                await ws.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping '{channel}' client after failed send: {e}")
                stale.append(ws)

        if stale:
            async with self._lock:
                for ws in stale:
                    self._connections[channel].discard(ws)

        return delivered
