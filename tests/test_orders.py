import re
from datetime import datetime

import pytest
from conftest import order_payload

from catering_api.core.config import settings
from catering_api.services.notification_service import NotificationType

ORDER_NUMBER = re.compile(r"^AG-\d{8}-[A-Z0-9]{4}$")


def test_guest_order_is_attributed_to_sentinel_user(create_order, sent_notifications):
    order = create_order()

    assert ORDER_NUMBER.match(order["orderNumber"])
    assert order["orderNumber"][3:11] == datetime.utcnow().strftime("%Y%m%d")
    assert order["userId"] == settings.GUEST_USER_ID
    assert order["status"] == "pending"
    assert order["kitchenLocation"] == "Thessaloniki"
    assert len(order["items"]) == 2
    assert sent_notifications == [(order["id"], NotificationType.NEW_ORDER)]


def test_total_includes_delivery_fee_but_not_vat(create_order):
    order = create_order()

    # 2 x 20.00 + 1 x 10.00 + 150.00 delivery
    assert order["deliveryFee"] == 15000
    assert order["totalPrice"] == 20000


def test_order_numbers_are_unique(create_order):
    numbers = {create_order()["orderNumber"] for _ in range(10)}
    assert len(numbers) == 10


def test_authenticated_order_belongs_to_caller(create_order, client_user, client_headers):
    order = create_order(headers=client_headers)
    assert order["userId"] == client_user


def test_mykonos_departure_routes_to_mykonos_kitchen(create_order):
    order = create_order(departureAirport="Mykonos (JMK)")
    assert order["kitchenLocation"] == "Mykonos"


def test_empty_items_rejected(client, sent_notifications):
    response = client.post("/api/orders", json=order_payload(items=[]))
    assert response.status_code == 400
    assert response.json()["detail"] == "Please select at least one menu item."

    response = client.post("/api/orders", json={"aircraftType": "Learjet"})
    assert response.status_code == 400
    assert sent_notifications == []


def test_invalid_item_returns_structured_errors(client):
    response = client.post(
        "/api/orders",
        json=order_payload(items=[{"menuItemId": 1, "quantity": 0, "unitPrice": 500}]),
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid request data"
    assert any("quantity" in error["path"] for error in body["errors"])


def test_malformed_flight_fields_are_coerced(create_order):
    order = create_order(
        passengerCount="lots",
        crewCount=None,
        departureAirport=None,
        dietaryRequirements="gluten-free",
        specialNotes=None,
    )
    assert order["passengerCount"] == 0
    assert order["crewCount"] == 0
    assert order["departureAirport"] == settings.DEFAULT_DEPARTURE_AIRPORT
    assert order["dietaryRequirements"] == ["gluten-free"]
    assert order["specialNotes"] == ""


@pytest.mark.parametrize("count", ["1e400", "-1e400", "nan", "inf"])
def test_out_of_range_counts_fall_back_to_zero(create_order, count):
    order = create_order(passengerCount=count, crewCount=count)
    assert order["passengerCount"] == 0
    assert order["crewCount"] == 0


def test_status_update_appends_history_and_bumps_updated(client, create_order, admin_headers, storage):
    order = create_order()
    previous_updated = datetime.fromisoformat(order["updated"])

    for new_status in ("confirmed", "processing", "preparing"):
        response = client.patch(
            f"/api/orders/{order['id']}",
            json={"status": new_status, "notes": f"moved to {new_status}"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == new_status
        updated = datetime.fromisoformat(body["updated"])
        assert updated > previous_updated
        previous_updated = updated

        history = storage.get_status_history(order["id"])
        assert history[-1].status == new_status
        assert history[-1].notes == f"moved to {new_status}"
        storage.db.expire_all()

    assert [h.status for h in storage.get_status_history(order["id"])] == [
        "pending", "confirmed", "processing", "preparing",
    ]


def test_field_update_without_status_sends_no_status_notification(
        client, create_order, admin_headers, storage, sent_notifications):
    order = create_order()
    sent_notifications.clear()

    response = client.patch(
        f"/api/orders/{order['id']}",
        json={"deliveryInstructions": "Gate B"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["deliveryInstructions"] == "Gate B"
    assert len(storage.get_status_history(order["id"])) == 1
    assert sent_notifications == []


def test_status_notification_mapping(client, create_order, kitchen_headers, sent_notifications):
    order = create_order()
    sent_notifications.clear()

    for new_status in ("confirmed", "ready", "delivered", "cancelled"):
        client.post(f"/api/orders/{order['id']}/status", json={"status": new_status}, headers=kitchen_headers)

    assert [kind for _, kind in sent_notifications] == [
        NotificationType.ORDER_UPDATED,
        NotificationType.ORDER_READY,
        NotificationType.ORDER_DELIVERED,
        NotificationType.ORDER_CANCELLED,
    ]


def test_any_status_can_follow_any_status(client, create_order, admin_headers):
    order = create_order()
    for new_status in ("delivered", "pending", "in_transit"):
        response = client.post(
            f"/api/orders/{order['id']}/status", json={"status": new_status}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["currentStatus"] == new_status


def test_non_owner_patch_is_forbidden(client, create_order, client_headers, other_client_headers):
    order = create_order(headers=client_headers)
    response = client.patch(
        f"/api/orders/{order['id']}", json={"specialNotes": "mine now"}, headers=other_client_headers
    )
    assert response.status_code == 403


def test_anonymous_patch_is_unauthorized(client, create_order):
    order = create_order()
    response = client.patch(f"/api/orders/{order['id']}", json={"specialNotes": "x"})
    assert response.status_code == 401


def test_owner_can_edit_only_while_order_is_early(client, create_order, client_headers, admin_headers):
    order = create_order(headers=client_headers)

    response = client.patch(f"/api/orders/{order['id']}", json={"crewCount": 4}, headers=client_headers)
    assert response.status_code == 200
    assert response.json()["crewCount"] == 4

    client.post(f"/api/orders/{order['id']}/status", json={"status": "preparing"}, headers=admin_headers)
    response = client.patch(f"/api/orders/{order['id']}", json={"crewCount": 5}, headers=client_headers)
    assert response.status_code == 403


def test_status_endpoint_is_staff_only(client, create_order, client_headers):
    order = create_order(headers=client_headers)
    response = client.post(
        f"/api/orders/{order['id']}/status", json={"status": "confirmed"}, headers=client_headers
    )
    assert response.status_code == 403


def test_status_endpoint_returns_history(client, create_order, kitchen_user, kitchen_headers):
    order = create_order()
    response = client.post(
        f"/api/orders/{order['id']}/status",
        json={"status": "ready", "notes": "Packed in cooler 3"},
        headers=kitchen_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["currentStatus"] == "ready"
    assert body["message"] == "Order status updated to Ready for Delivery"
    assert [entry["status"] for entry in body["statusHistory"]] == ["pending", "ready"]
    assert body["statusHistory"][-1]["performedBy"] == kitchen_user
    assert body["statusHistory"][-1]["performedByName"] == "Kitchen Tester"


def test_status_history_visibility(client, create_order, client_headers, other_client_headers, kitchen_headers):
    order = create_order(headers=client_headers)

    mine = client.get(f"/api/orders/{order['id']}/status-history", headers=client_headers)
    assert mine.status_code == 200
    assert mine.json()["currentStatus"] == "pending"

    assert client.get(f"/api/orders/{order['id']}/status-history", headers=kitchen_headers).status_code == 200
    assert client.get(f"/api/orders/{order['id']}/status-history", headers=other_client_headers).status_code == 403


def test_cancel_keeps_the_order(client, create_order, client_headers, sent_notifications):
    order = create_order(headers=client_headers)
    sent_notifications.clear()

    response = client.post(f"/api/orders/{order['id']}/cancel", json={"notes": "Flight scrubbed"},
                           headers=client_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert len(response.json()["items"]) == 2
    assert sent_notifications == [(order["id"], NotificationType.ORDER_CANCELLED)]

    detail = client.get(f"/api/orders/{order['id']}", headers=client_headers)
    assert detail.status_code == 200


def test_hard_delete_is_admin_only(client, create_order, client_headers, admin_headers, storage):
    order = create_order(headers=client_headers)

    assert client.delete(f"/api/orders/{order['id']}", headers=client_headers).status_code == 403
    assert client.delete(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 200

    assert client.get(f"/api/orders/{order['id']}", headers=admin_headers).status_code == 404
    assert storage.get_order_items(order["id"]) == []
    # Audit trail survives the delete
    assert len(storage.get_status_history(order["id"])) == 1


def test_listing_respects_roles(client, create_order, client_headers, other_client_headers, admin_headers):
    mine = create_order(headers=client_headers)
    create_order(headers=other_client_headers, departureAirport="Mykonos (JMK)")

    response = client.get("/api/orders", headers=client_headers)
    assert [o["id"] for o in response.json()] == [mine["id"]]

    everything = client.get("/api/orders", headers=admin_headers).json()
    assert len(everything) == 2

    mykonos = client.get("/api/orders", params={"kitchen": "Mykonos"}, headers=admin_headers).json()
    assert [o["kitchenLocation"] for o in mykonos] == ["Mykonos"]

    client.post(f"/api/orders/{mine['id']}/status", json={"status": "confirmed"}, headers=admin_headers)
    confirmed = client.get("/api/orders", params={"status": "confirmed"}, headers=admin_headers).json()
    assert [o["id"] for o in confirmed] == [mine["id"]]


def test_adding_an_item_updates_total(client, create_order, client_headers, sent_notifications):
    order = create_order(headers=client_headers)
    sent_notifications.clear()

    response = client.post(
        f"/api/orders/{order['id']}/items",
        json={"menuItemId": 3, "quantity": 2, "price": 750},
        headers=client_headers,
    )
    assert response.status_code == 201

    detail = client.get(f"/api/orders/{order['id']}", headers=client_headers).json()
    assert detail["totalPrice"] == 20000 + 1500
    assert len(detail["items"]) == 3
    assert sent_notifications == [(order["id"], NotificationType.ORDER_UPDATED)]


def test_replacing_items_recomputes_total(client, create_order, client_headers):
    order = create_order(headers=client_headers)
    response = client.put(
        f"/api/orders/{order['id']}/items",
        json=[{"menuItemId": 4, "quantity": 1, "unitPrice": 5000}],
        headers=client_headers,
    )
    assert response.status_code == 200
    detail = client.get(f"/api/orders/{order['id']}", headers=client_headers).json()
    assert [item["menuItemId"] for item in detail["items"]] == [4]
    assert detail["totalPrice"] == 5000 + 15000


def test_invoice_adds_vat_on_top(client, create_order, client_headers):
    order = create_order(headers=client_headers)
    invoice = client.get(f"/api/orders/{order['id']}/invoice", headers=client_headers).json()

    assert invoice["subtotal"] == 5000
    assert invoice["deliveryFee"] == 15000
    assert invoice["totalBeforeVat"] == 20000
    assert invoice["vatAmount"] == 2600
    assert invoice["grandTotal"] == 22600

    # Stored total stays VAT-free
    assert client.get(f"/api/orders/{order['id']}", headers=client_headers).json()["totalPrice"] == 20000


def test_side_effect_failure_does_not_fail_the_request(client, monkeypatch):
    from catering_api.services.notification_service import notification_service

    def explode(order_id, notification_type):
        raise RuntimeError("mail server down")

    monkeypatch.setattr(notification_service, "send_order_notification", explode)
    response = client.post("/api/orders", json=order_payload())
    assert response.status_code == 201


def test_activity_log_records_order_events(client, create_order, admin_headers):
    order = create_order()
    client.patch(f"/api/orders/{order['id']}", json={"status": "confirmed"}, headers=admin_headers)

    entries = client.get("/api/activity", params={"order_id": order["id"]}, headers=admin_headers)
    assert entries.status_code == 200
    actions = [entry["action"] for entry in entries.json()]
    assert "CREATE_ORDER" in actions
    assert "UPDATE_ORDER" in actions


def test_annotations_hide_internal_notes_from_clients(client, create_order, client_headers, kitchen_headers):
    order = create_order(headers=client_headers)
    url = f"/api/orders/{order['id']}/annotations"

    assert client.post(url, json={"content": "Extra ice please"}, headers=client_headers).status_code == 201
    assert client.post(url, json={"content": "Check allergy", "isInternal": True},
                       headers=kitchen_headers).status_code == 201
    assert client.post(url, json={"content": "sneaky", "isInternal": True},
                       headers=client_headers).status_code == 403

    client_view = client.get(url, headers=client_headers).json()
    staff_view = client.get(url, headers=kitchen_headers).json()
    assert [a["content"] for a in client_view] == ["Extra ice please"]
    assert len(staff_view) == 2


def test_mark_paid(client, create_order, admin_headers):
    order = create_order()
    response = client.post(
        f"/api/orders/{order['id']}/mark-paid", json={"paymentMethod": "bank_transfer"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["paymentStatus"] == "paid"
    assert response.json()["paymentMethod"] == "bank_transfer"
