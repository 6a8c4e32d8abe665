import os
import tempfile

_db_dir = tempfile.mkdtemp(prefix="catering-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"
os.environ["ENVIRONMENT"] = "test"
for _key in ("SMTP_USERNAME", "SMTP_PASSWORD", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN",
             "SLACK_WEBHOOK_URL", "ZAPIER_WEBHOOK_URL", "STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET"):
    os.environ[_key] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from catering_api.core.database import SessionLocal, create_tables, drop_tables  # noqa: E402
from catering_api.core.security import create_access_token  # noqa: E402
from catering_api.main import app  # noqa: E402
from catering_api.storage import CateringStorage  # noqa: E402


class FakeSocket:
    """Stands in for a WebSocket inside the connection registry"""

    def __init__(self, fail=False):
        self.sent = []
        self.closed = False
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append(message)

    async def close(self, code=1000):
        self.closed = True


@pytest.fixture(autouse=True)
def database():
    create_tables()
    with SessionLocal() as db:
        CateringStorage(db).ensure_guest_user()
    yield
    drop_tables()


@pytest.fixture(autouse=True)
def reset_connections():
    app.state.connections._connections.clear()
    yield
    app.state.connections._connections.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(db):
    return CateringStorage(db)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def sent_notifications(monkeypatch):
    """Capture order notifications instead of running every channel"""
    from catering_api.services.notification_service import notification_service

    calls = []

    def record(order_id, notification_type):
        calls.append((order_id, notification_type))
        return [True]

    monkeypatch.setattr(notification_service, "send_order_notification", record)
    return calls


def _make_user(username, role, **extra):
    with SessionLocal() as db:
        user = CateringStorage(db).create_user({
            "username": username,
            "password": "secret123",
            "first_name": username.title(),
            "last_name": "Tester",
            "email": f"{username}@example.com",
            "role": role,
            **extra,
        })
        return user.id


def _headers(user_id):
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def admin_user():
    return _make_user("admin", "admin")


@pytest.fixture
def kitchen_user():
    return _make_user("kitchen", "kitchen")


@pytest.fixture
def client_user():
    return _make_user("captain", "client", phone="+306900000000")


@pytest.fixture
def other_client_user():
    return _make_user("stranger", "client")


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def kitchen_headers(kitchen_user):
    return _headers(kitchen_user)


@pytest.fixture
def client_headers(client_user):
    return _headers(client_user)


@pytest.fixture
def other_client_headers(other_client_user):
    return _headers(other_client_user)


def order_payload(**overrides):
    payload = {
        "aircraftType": "Gulfstream G650",
        "tailNumber": "SX-GRC",
        "departureDate": "2025-07-01",
        "departureTime": "14:30",
        "departureAirport": "Thessaloniki (SKG)",
        "arrivalAirport": "London (LTN)",
        "passengerCount": 6,
        "crewCount": 3,
        "dietaryRequirements": ["vegetarian"],
        "deliveryLocation": "FBO Terminal",
        "deliveryTime": "13:30",
        "items": [
            {"menuItemId": 1, "quantity": 2, "unitPrice": 2000},
            {"menuItemId": 2, "quantity": 1, "unitPrice": 1000},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def create_order(client, sent_notifications):
    def _create(headers=None, **overrides):
        response = client.post("/api/orders", json=order_payload(**overrides), headers=headers or {})
        assert response.status_code == 201, response.text
        return response.json()

    return _create
