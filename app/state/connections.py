# app/state/connections.py
"""
Registry of connected dashboard WebSockets.

One instance is owned by the application (`app.state.connections`) and handed to
the notification job; all mutation happens on the event loop thread.
"""
import logging
from typing import List

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger("call-center.state.connections")


class ConnectionRegistry:
    def __init__(self):
        self._clients: List[WebSocket] = []

    def __len__(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.append(websocket)
        logger.info("Client connected to WebSocket (%d connected)", len(self._clients))

    def disconnect(self, websocket: WebSocket) -> None:
        self._clients = [c for c in self._clients if c is not websocket]
        logger.info("Client disconnected from WebSocket (%d connected)", len(self._clients))

    async def broadcast(self, message: str) -> int:
        """Send `message` to every open client. Returns how many sends succeeded."""
        delivered = 0
        for client in list(self._clients):
            if client.application_state != WebSocketState.CONNECTED:
                continue
            try:
                await client.send_text(message)
                delivered += 1
            except Exception as exc:
                logger.warning("Dropping WebSocket client after failed send: %s", exc)
                self.disconnect(client)
        return delivered
