from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.crud import demo_request as crud_demo_request
from tests.utils.demo_request import create_confirmed_demo, valid_payload


# ==================== POST /demo-requests ====================


def test_create_demo_request_api(anonymous_client_e2e: TestClient, db_session):
    response = anonymous_client_e2e.post("/api/v1/demo-requests", json=valid_payload())

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert "24 hours" in data["message"]
    demo = data["demo_request"]
    assert demo["status"] == "pending"
    assert demo["source"] == "manual"
    assert demo["user_id"] is None
    assert demo["timezone"] == "America/New_York"
    assert demo["formatted_preferred_datetime"] == "Jun 16, 2025 at 2:00 PM EDT"
    assert demo["demo_type_label"] == "General Demo"
    assert crud_demo_request.get(db_session, id=demo["id"]) is not None


def test_create_demo_request_records_signed_in_user(anonymous_client_e2e: TestClient):
    token = jwt.encode(
        {"sub": "user_99", "exp": 9999999999}, settings.JWT_SECRET, algorithm="HS256"
    )

    response = anonymous_client_e2e.post(
        "/api/v1/demo-requests",
        json=valid_payload(),
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 201
    assert response.json()["demo_request"]["user_id"] == "user_99"


def test_create_demo_request_validation_errors(test_client: TestClient):
    response = test_client.post(
        "/api/v1/demo-requests",
        json={"email": "nope", "preferred_datetime": "2025-06-16 14:00"},
    )

    assert response.status_code == 422
    data = response.json()
    assert data["success"] is False
    assert data["codes"]["name"] == ["name_required"]
    assert data["codes"]["email"] == ["email_invalid"]
    assert data["codes"]["timezone"] == ["timezone_required"]
    assert "name" in data["errors"]


def test_create_demo_request_conflict(test_client_e2e: TestClient, db_session):
    create_confirmed_demo(db_session, "2025-06-16 14:30")

    response = test_client_e2e.post("/api/v1/demo-requests", json=valid_payload())

    assert response.status_code == 409
    data = response.json()
    assert data["success"] is False
    assert [slot["formatted"] for slot in data["suggested_times"]] == [
        "Jun 16, 2025 at 4:00 PM EDT",
        "Jun 17, 2025 at 2:00 PM EDT",
        "Jun 17, 2025 at 4:00 PM EDT",
    ]
    assert "requires_rescheduling" not in data


# ==================== POST /demo-requests/chatbot ====================


def test_chatbot_demo_request_api(test_client_e2e: TestClient):
    response = test_client_e2e.post(
        "/api/v1/demo-requests/chatbot",
        json=valid_payload(session_id="chat_1", metadata={"intent": "pricing"}),
    )

    assert response.status_code == 201
    demo = response.json()["demo_request"]
    assert demo["source"] == "chatbot"
    assert demo["session_id"] == "chat_1"
    assert demo["metadata"] == {"intent": "pricing"}


def test_chatbot_demo_request_requires_session(test_client: TestClient):
    response = test_client.post("/api/v1/demo-requests/chatbot", json=valid_payload())

    assert response.status_code == 422
    assert response.json()["codes"] == {"session_id": ["session_id_required"]}


def test_chatbot_demo_request_conflict_asks_to_reschedule(test_client_e2e: TestClient, db_session):
    create_confirmed_demo(db_session, "2025-06-16 14:00")

    response = test_client_e2e.post(
        "/api/v1/demo-requests/chatbot", json=valid_payload(session_id="chat_1")
    )

    assert response.status_code == 409
    data = response.json()
    assert data["requires_rescheduling"] is True
    assert len(data["suggested_times"]) == 3


# ==================== Availability ====================


def test_available_slots_api(test_client_e2e: TestClient, db_session):
    create_confirmed_demo(db_session, "2025-06-16 10:00")

    response = test_client_e2e.get(
        "/api/v1/demo-requests/available-slots",
        params={"date": "2025-06-16", "timezone": "America/New_York"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["date"] == "2025-06-16"
    assert len(data["slots"]) == 9
    assert data["slots"][0] == {
        "time": "09:00",
        "datetime": "2025-06-16T13:00:00Z",
        "formatted": "9:00 AM",
        "available": False,
    }
    assert data["slots"][3]["available"] is True


def test_available_slots_weekend(test_client_e2e: TestClient):
    response = test_client_e2e.get(
        "/api/v1/demo-requests/available-slots",
        params={"date": "2025-06-15", "timezone": "America/New_York"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "weekend_unavailable"


def test_available_slots_missing_params(test_client: TestClient):
    response = test_client.get("/api/v1/demo-requests/available-slots")

    assert response.status_code == 422
    assert response.json()["codes"] == {
        "date": ["date_required"],
        "timezone": ["timezone_required"],
    }


def test_available_slots_unknown_timezone(test_client: TestClient):
    response = test_client.get(
        "/api/v1/demo-requests/available-slots",
        params={"date": "2025-06-16", "timezone": "Nowhere/Special"},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "invalid_timezone"


def test_check_availability_api(test_client_e2e: TestClient, db_session):
    create_confirmed_demo(db_session, "2025-06-16 14:30")

    response = test_client_e2e.post(
        "/api/v1/demo-requests/check-availability",
        json={"preferred_datetime": "2025-06-16 14:00", "timezone": "America/New_York"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["available"] is False
    assert data["requested"] == "2025-06-16T18:00:00Z"
    assert len(data["suggested_times"]) == 3


def test_check_availability_free_slot(test_client_e2e: TestClient):
    response = test_client_e2e.post(
        "/api/v1/demo-requests/check-availability",
        json={"preferred_datetime": "2025-06-16 14:00", "timezone": "America/New_York"},
    )

    assert response.status_code == 200
    assert response.json()["available"] is True
    assert response.json()["suggested_times"] == []
