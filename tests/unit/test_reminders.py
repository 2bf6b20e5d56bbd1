"""Unit tests for reminder endpoints."""

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from cart_recovery.infrastructure.database.repository import ProductRecord


def test_scan_processes_recent_views(client: TestClient, repository, sms_sender) -> None:
    user_id = repository.add_user("a@x.com")
    repository.add_view(user_id, "p1", "Widget", datetime.now(timezone.utc) - timedelta(minutes=5))

    response = client.post("/api/v1/reminders/scan")

    assert response.status_code == 200
    data = response.json()
    assert data["users_processed"] == 1
    assert data["messages_recorded"] == 1
    assert data["dry_run"] is True
    assert data["outcomes"][0]["status"] == "processed"
    assert data["outcomes"][0]["urgency"] == "low"
    assert sms_sender.sent == []


def test_last_scan_before_any_scan(client: TestClient) -> None:
    response = client.get("/api/v1/reminders/scan/last")
    assert response.status_code == 404


def test_last_scan_after_scan(client: TestClient) -> None:
    tick_id = client.post("/api/v1/reminders/scan").json()["tick_id"]

    response = client.get("/api/v1/reminders/scan/last")

    assert response.status_code == 200
    assert response.json()["tick_id"] == tick_id


def test_preview_variations(client: TestClient, repository) -> None:
    response = client.post(
        "/api/v1/reminders/preview",
        json={"name": "Ann", "product_text": "Widget", "urgency": "high", "variations": 2},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["urgency"] == "high"
    assert len(data["messages"]) == 2
    assert repository.reminders == []


def test_preview_template(client: TestClient) -> None:
    response = client.post(
        "/api/v1/reminders/preview",
        json={
            "name": "Ann",
            "product_text": "Widget",
            "template": "Hey {name}! {product} is waiting",
            "variations": 4,
        },
    )

    assert response.status_code == 200
    assert response.json()["messages"] == ["Hey Ann! Widget is waiting"]


def test_preview_rejects_too_many_variations(client: TestClient) -> None:
    response = client.post(
        "/api/v1/reminders/preview",
        json={"name": "Ann", "product_text": "Widget", "variations": 9},
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid variations")


def test_preview_generation_failure(client: TestClient, composer) -> None:
    composer.fail_for.add("Ann")
    response = client.post(
        "/api/v1/reminders/preview",
        json={"name": "Ann", "product_text": "Widget", "variations": 1},
    )
    assert response.status_code == 502
    assert response.json() == {"error": "Message generation failed"}


def test_send_reminder(client: TestClient, repository) -> None:
    repository.add_user("a@x.com")
    repository.products["p1"] = ProductRecord("p1", "Widget")

    response = client.post(
        "/api/v1/reminders/send", json={"email": "a@x.com", "product_ids": ["p1"]}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["dry_run"] is True
    assert data["delivered"] is False
    assert data["message_id"] == repository.reminders[0].id


def test_send_reminder_unknown_user(client: TestClient) -> None:
    response = client.post(
        "/api/v1/reminders/send", json={"email": "ghost@x.com", "product_ids": ["p1"]}
    )
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_send_reminder_requires_products(client: TestClient) -> None:
    response = client.post("/api/v1/reminders/send", json={"email": "a@x.com", "product_ids": []})
    assert response.status_code == 400
