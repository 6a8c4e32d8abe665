import asyncio

import pytest
from fastapi.websockets import WebSocketDisconnect
from conftest import FakeSocket

from catering_api.main import app
from catering_api.services.realtime import ConnectionRegistry


def test_client_role_is_rejected(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "userId": 7, "role": "client"})
        assert ws.receive_json() == {"type": "error", "message": "Unauthorized role"}
        with pytest.raises(WebSocketDisconnect):
            ws.receive_json()
    assert len(app.state.connections) == 0


def test_staff_socket_is_confirmed_and_registered(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "auth", "userId": 3, "role": "kitchen"})
        assert ws.receive_json() == {"type": "authConfirmed", "userId": 3, "role": "kitchen"}
        assert len(app.state.connections) == 1


def test_malformed_messages_are_ignored(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json(["still", "not", "an", "object"])
        ws.send_json({"type": "auth", "userId": 1, "role": "admin"})
        assert ws.receive_json()["type"] == "authConfirmed"


def test_status_change_is_broadcast(client, kitchen_headers, create_order):
    order = create_order()
    screen = FakeSocket()
    app.state.connections.register(screen, 1, "admin")

    response = client.post(
        f"/api/orders/{order['id']}/status",
        json={"status": "preparing", "notes": "On the line"},
        headers=kitchen_headers,
    )
    assert response.status_code == 200

    assert len(screen.sent) == 1
    message = screen.sent[0]
    assert message["type"] == "orderStatusUpdate"
    assert message["orderId"] == order["id"]
    assert message["status"] == "preparing"
    assert [entry["status"] for entry in message["statusHistory"]] == ["pending", "preparing"]
    assert message["timestamp"]


def test_edit_without_status_is_not_broadcast(client, admin_headers, create_order):
    order = create_order()
    screen = FakeSocket()
    app.state.connections.register(screen, 1, "admin")

    client.patch(f"/api/orders/{order['id']}", json={"passengerCount": 8}, headers=admin_headers)
    assert screen.sent == []


def test_failed_socket_is_dropped_during_broadcast():
    registry = ConnectionRegistry()
    healthy = FakeSocket()
    broken = FakeSocket(fail=True)
    registry.register(healthy, 1, "admin")
    broken_id = registry.register(broken, 2, "kitchen")

    delivered = asyncio.run(registry.broadcast_order_status(5, "ready", []))

    assert delivered == 1
    assert broken_id not in registry
    assert len(registry) == 1
    assert healthy.sent[0]["status"] == "ready"


def test_heartbeat_pings_then_drops_silent_sockets():
    registry = ConnectionRegistry()
    responsive = FakeSocket()
    silent = FakeSocket()
    responsive_id = registry.register(responsive, 1, "admin")
    silent_id = registry.register(silent, 2, "kitchen")

    asyncio.run(registry.heartbeat())
    assert responsive.sent == [{"type": "ping"}]
    assert silent.sent == [{"type": "ping"}]

    registry.mark_alive(responsive_id)
    asyncio.run(registry.heartbeat())

    assert silent_id not in registry
    assert silent.closed
    assert responsive_id in registry
    assert responsive.sent == [{"type": "ping"}, {"type": "ping"}]
