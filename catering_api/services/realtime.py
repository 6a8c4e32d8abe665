"""
Real-time order status broadcast to admin and kitchen screens
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

ALLOWED_ROLES = ("admin", "kitchen")


class ClientConnection:
    """An authenticated socket plus its liveness flag"""

    def __init__(self, websocket: WebSocket, user_id: Any, role: str):
        self.websocket = websocket
        self.user_id = user_id
        self.role = role
        self.is_alive = True


class ConnectionRegistry:
    """Authenticated connections keyed by a generated connection id

    One registry lives on `app.state`; broadcasts are best effort and a socket
    that fails a send is dropped.
    """

    def __init__(self):
        self._connections: Dict[str, ClientConnection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def register(self, websocket: WebSocket, user_id: Any, role: str) -> str:
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = ClientConnection(websocket, user_id, role)
        logger.info(f"WebSocket {connection_id} authenticated as {role} user {user_id}")
        return connection_id

    def unregister(self, connection_id: Optional[str]):
        if connection_id and self._connections.pop(connection_id, None) is not None:
            logger.info(f"WebSocket {connection_id} removed")

    def mark_alive(self, connection_id: str):
        connection = self._connections.get(connection_id)
        if connection:
            connection.is_alive = True

    async def _send(self, connection_id: str, connection: ClientConnection, message: Dict[str, Any]) -> bool:
        try:
            await connection.websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"Dropping WebSocket {connection_id} after failed send: {e}")
            self.unregister(connection_id)
            return False

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """Send to every registered connection; returns the delivery count"""
        payload = jsonable_encoder(message)
        delivered = 0
        for connection_id, connection in list(self._connections.items()):
            if await self._send(connection_id, connection, payload):
                delivered += 1
        return delivered

    async def broadcast_order_status(self, order_id: int, status: str, status_history: List[Dict[str, Any]]) -> int:
        delivered = await self.broadcast({
            "type": "orderStatusUpdate",
            "orderId": order_id,
            "status": status,
            "statusHistory": status_history,
            "timestamp": datetime.utcnow().isoformat(),
        })
        logger.info(f"Order {order_id} status {status} broadcast to {delivered} client(s)")
        return delivered

    async def heartbeat(self):
        """Drop sockets that missed the last ping, then ping the rest"""
        for connection_id, connection in list(self._connections.items()):
            if not connection.is_alive:
                logger.info(f"WebSocket {connection_id} missed heartbeat, closing")
                self.unregister(connection_id)
                try:
                    await connection.websocket.close()
                except Exception as e:
                    logger.debug(f"Close failed for {connection_id}: {e}")
                continue
            connection.is_alive = False
            await self._send(connection_id, connection, {"type": "ping"})

    async def run_heartbeat(self, interval: float):
        while True:
            await asyncio.sleep(interval)
            await self.heartbeat()
