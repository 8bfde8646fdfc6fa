from collections import defaultdict
from typing import Any

from fastapi import WebSocket
from loguru import logger
from starlette.websockets import WebSocketState


class WSConnectionManager:
    """Live push channels; one user may hold several sockets (tabs, devices)."""

    def __init__(self):
        self.channels: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, channel: str):
        self.channels[channel].add(websocket)
        logger.info(f"[WS] Joined {channel} ({len(self.channels[channel])} socket(s))")

    def disconnect(self, websocket: WebSocket, channel: str):
        sockets = self.channels.get(channel)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            self.channels.pop(channel, None)
        logger.info(f"[WS] Left {channel}")

    def connection_count(self, channel: str) -> int:
        return len(self.channels.get(channel, ()))

    async def publish(self, channel: str, event: str, data: Any) -> int:
        """Send ``{"type": event, "data": data}`` to every open socket; returns deliveries."""
        delivered = 0
        for ws in list(self.channels.get(channel, ())):
            if ws.client_state != WebSocketState.CONNECTED:
                self.disconnect(ws, channel)
                continue
            try:
                await ws.send_json({"type": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.warning(f"[WS] Send failed on {channel}: {e}")
                self.disconnect(ws, channel)
        return delivered


ws_manager = WSConnectionManager()
