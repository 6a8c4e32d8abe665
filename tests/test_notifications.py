import json

import pytest

from catering_api.models.order import ActivityLog
from catering_api.services import integrations
from catering_api.services.integrations import SlackService, ZapierService
from catering_api.services.notification_service import (
    AUTOMATION_RECIPIENT, NotificationService, NotificationType, notification_type_for_status,
)

ZAPIER_URL = "https://hooks.example.com/catering"


class FakeResponse:
    def raise_for_status(self):
        return None


@pytest.fixture
def posted(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json))
        return FakeResponse()

    monkeypatch.setattr(integrations.requests, "post", fake_post)
    return calls


@pytest.fixture
def service():
    return NotificationService(
        slack=SlackService(webhook_url=""),
        zapier=ZapierService(webhook_url=ZAPIER_URL, events=["order_created", "order_updated", "order_cancelled"]),
    )


def notification_logs(db, order_id):
    rows = (
        db.query(ActivityLog)
        .filter(ActivityLog.order_id == order_id, ActivityLog.action.like("NOTIFICATION_%"))
        .order_by(ActivityLog.id)
        .all()
    )
    return [(row.action, json.loads(row.details)) for row in rows]


@pytest.mark.parametrize("status, expected", [
    ("cancelled", NotificationType.ORDER_CANCELLED),
    ("ready", NotificationType.ORDER_READY),
    ("delivered", NotificationType.ORDER_DELIVERED),
    ("preparing", NotificationType.ORDER_UPDATED),
    ("confirmed", NotificationType.ORDER_UPDATED),
])
def test_status_maps_to_notification(status, expected):
    assert notification_type_for_status(status) == expected


def test_new_order_notifies_staff_client_and_automation(db, service, posted, client_headers, create_order):
    order = create_order(headers=client_headers)

    results = service.send_order_notification(order["id"], NotificationType.NEW_ORDER)

    # staff email, client confirmation, webhook; SMTP is unconfigured in tests
    assert results == [False, False, True]

    logs = notification_logs(db, order["id"])
    assert {action for action, _ in logs} == {"NOTIFICATION_NEW_ORDER"}
    assert [details["recipient"] for _, details in logs] == [
        "ops@airgourmet.gr",
        "kitchen-thessaloniki@airgourmet.gr",
        "captain@example.com",
        AUTOMATION_RECIPIENT,
    ]
    assert logs[-1][1]["success"] is True
    assert all(details["orderId"] == order["id"] for _, details in logs)

    url, payload = posted[0]
    assert url == ZAPIER_URL
    assert payload["event"] == "order_created"
    assert payload["orderId"] == order["id"]
    assert payload["data"]["orderNumber"] == order["orderNumber"]
    assert payload["data"]["totalPrice"] == order["totalPrice"]


def test_guest_orders_get_no_client_confirmation(db, service, posted, create_order):
    order = create_order()

    service.send_order_notification(order["id"], NotificationType.NEW_ORDER)

    recipients = [details["recipient"] for _, details in notification_logs(db, order["id"])]
    assert recipients == ["ops@airgourmet.gr", "kitchen-thessaloniki@airgourmet.gr", AUTOMATION_RECIPIENT]


def test_ready_goes_to_client_and_delivery_without_webhook(db, service, posted, client_headers, create_order):
    order = create_order(headers=client_headers, departureAirport="Mykonos (JMK)")

    service.send_order_notification(order["id"], NotificationType.ORDER_READY)

    logs = notification_logs(db, order["id"])
    assert [details["recipient"] for _, details in logs] == ["captain@example.com", "delivery@airgourmet.gr"]
    assert {action for action, _ in logs} == {"NOTIFICATION_ORDER_READY"}
    assert posted == []


def test_cancellation_reaches_the_right_kitchen(db, service, posted, client_headers, create_order):
    order = create_order(headers=client_headers, departureAirport="Mykonos (JMK)")

    service.send_order_notification(order["id"], NotificationType.ORDER_CANCELLED)

    recipients = [details["recipient"] for _, details in notification_logs(db, order["id"])]
    assert recipients == ["captain@example.com", "kitchen-mykonos@airgourmet.gr", AUTOMATION_RECIPIENT]
    assert posted[0][1]["event"] == "order_cancelled"


def test_missing_order_reports_failure(service, posted):
    assert service.send_order_notification(9999, NotificationType.NEW_ORDER) == [False]
    assert posted == []


def test_webhook_failure_is_reported_not_raised(db, monkeypatch, service, create_order):
    def broken_post(url, json=None, timeout=None):
        raise integrations.requests.ConnectionError("unreachable")

    monkeypatch.setattr(integrations.requests, "post", broken_post)
    order = create_order()

    results = service.send_order_notification(order["id"], NotificationType.ORDER_UPDATED)

    assert results[-1] is False
    automation = [d for _, d in notification_logs(db, order["id"]) if d["recipient"] == AUTOMATION_RECIPIENT]
    assert automation[0]["success"] is False


def test_zapier_respects_event_filter(posted):
    zapier = ZapierService(webhook_url=ZAPIER_URL, events=["order_created"])
    assert zapier.notify_order_event("order_updated", 1, {}) is False
    assert zapier.notify_order_event("order_created", 1, {"orderNumber": "AG-1"}) is True
    assert [payload["event"] for _, payload in posted] == ["order_created"]


def test_subjects_name_order_and_kitchen(service, storage, create_order):
    order = storage.get_order(create_order()["id"])
    number = order.order_number
    assert service.get_subject(NotificationType.NEW_ORDER, order) == f"[URGENT] New Order #{number} - Thessaloniki"
    assert service.get_subject(NotificationType.ORDER_DELIVERED, order) == f"Order #{number} Successfully Delivered"
    assert "€200.00" in service.render_email(NotificationType.NEW_ORDER, order)


def test_guest_supplied_fields_are_escaped(service, storage, create_order):
    order = storage.get_order(create_order(
        tailNumber="<script>alert(1)</script>", deliveryLocation="Gate 3 & <b>apron</b>",
    )["id"])

    body = service.render_email(NotificationType.NEW_ORDER, order)

    assert "<script>" not in body
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body
    assert "Gate 3 &amp; &lt;b&gt;apron&lt;/b&gt;" in body


def test_client_name_is_escaped_in_confirmation(service, storage, create_order):
    order = storage.get_order(create_order()["id"])
    client = storage.create_user({"username": "mallory", "password": "secret123", "first_name": "<img src=x>"})

    body = service.render_client_confirmation(order, client)

    assert "<img" not in body
    assert "Thank you, &lt;img src=x&gt;" in body


def test_saved_zapier_settings_override_environment(storage, service, posted, create_order):
    service.zapier.save_config(storage, "https://hooks.example.com/saved", ["order_cancelled"])
    order = create_order()

    assert service.send_order_notification(order["id"], NotificationType.NEW_ORDER)[-1] is False
    service.send_order_notification(order["id"], NotificationType.ORDER_CANCELLED)

    assert [(url, payload["event"]) for url, payload in posted] == [
        ("https://hooks.example.com/saved", "order_cancelled"),
    ]
