# app/api/realtime.py
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger("call-center.api.realtime")
router = APIRouter()


@router.websocket("/ws")
async def dashboard_updates(websocket: WebSocket):
    """Server-push feed of newly transcribed calls. Client messages are ignored."""
    registry = websocket.app.state.connections
    await registry.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        registry.disconnect(websocket)
