import json

from catering_api.models.order import ActivityLog


def activity(db, action):
    rows = db.query(ActivityLog).filter(ActivityLog.action == action).order_by(ActivityLog.id).all()
    return [(row.user_id, json.loads(row.details)) for row in rows]


def test_profile_requires_login(client):
    assert client.get("/api/profile").status_code == 401
    assert client.patch("/api/profile", json={"company": "Olympic Jets"}).status_code == 401


def test_profile_update_ignores_protected_fields(client, client_headers, client_user):
    response = client.patch("/api/profile", json={
        "company": "Olympic Jets",
        "phone": "+302310000000",
        "username": "root",
        "role": "admin",
        "password": "hijacked",
    }, headers=client_headers)
    assert response.status_code == 200
    profile = response.json()
    assert profile["company"] == "Olympic Jets"
    assert profile["phone"] == "+302310000000"
    assert profile["username"] == "captain"
    assert profile["role"] == "client"

    login = client.post("/api/auth/login", data={"username": "captain", "password": "secret123"})
    assert login.status_code == 200
    assert client.get("/api/profile", headers=client_headers).json()["id"] == client_user


def test_anonymous_deletion_request_is_logged(client, db):
    response = client.post("/api/gdpr/data-deletion-request", json={
        "email": "former.client@example.com", "reason": "No longer flying",
    })
    assert response.status_code == 200
    assert response.json()["status"] == "PENDING"

    [(user_id, details)] = activity(db, "DATA_DELETION_REQUEST")
    assert user_id is None
    assert details["email"] == "former.client@example.com"
    assert details["status"] == "PENDING"


def test_deletion_request_needs_an_email(client):
    response = client.post("/api/gdpr/data-deletion-request", json={"email": "not-an-address"})
    assert response.status_code == 400
    assert response.json()["errors"][0]["path"] == ["email"]


def test_consent_update_is_recorded(client, db, client_headers, client_user):
    assert client.post("/api/gdpr/user-consent", json={"processingConsent": True}).status_code == 401

    response = client.post("/api/gdpr/user-consent", json={
        "processingConsent": True, "marketingEmail": True,
    }, headers=client_headers)
    assert response.status_code == 200

    [(user_id, details)] = activity(db, "CONSENT_UPDATE")
    assert user_id == client_user
    assert details["processingConsent"] is True
    assert details["marketingEmail"] is True
    assert details["marketingSms"] is False


def test_personal_data_export_contains_only_own_records(
        client, db, client_headers, other_client_headers, create_order):
    mine = create_order(headers=client_headers)
    create_order(headers=other_client_headers)

    response = client.get("/api/gdpr/export-personal-data", headers=client_headers)
    assert response.status_code == 200
    assert response.headers["content-disposition"] == "attachment; filename=personal-data.json"

    export = response.json()
    assert export["user"]["username"] == "captain"
    assert "password" not in export["user"]
    assert [order["id"] for order in export["orders"]] == [mine["id"]]
    assert len(export["orders"][0]["items"]) == 2
    assert export["conciergeRequests"] == []
    assert len(activity(db, "DATA_EXPORT_REQUEST")) == 1
