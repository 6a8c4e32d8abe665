"""
WebSocket endpoint for live order status on admin and kitchen screens
"""
import json
import logging
from typing import Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from catering_api.services.realtime import ALLOWED_ROLES, ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def order_updates(websocket: WebSocket):
    """Clients authenticate with {"type": "auth", "userId", "role"} then receive pushes"""
    registry: ConnectionRegistry = websocket.app.state.connections
    await websocket.accept()
    connection_id: Optional[str] = None
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed WebSocket message")
                continue
            if not isinstance(message, dict):
                logger.warning("Ignoring non-object WebSocket message")
                continue

            message_type = message.get("type")
            if message_type == "auth":
                role = message.get("role")
                if role not in ALLOWED_ROLES:
                    await websocket.send_json({"type": "error", "message": "Unauthorized role"})
                    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
                    return
                registry.unregister(connection_id)
                connection_id = registry.register(websocket, message.get("userId"), role)
                await websocket.send_json({
                    "type": "authConfirmed",
                    "userId": message.get("userId"),
                    "role": role,
                })
            elif message_type == "pong" and connection_id:
                registry.mark_alive(connection_id)
            else:
                logger.debug(f"Unhandled WebSocket message type {message_type}")
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(connection_id)
