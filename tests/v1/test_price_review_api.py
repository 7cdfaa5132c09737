# tests/v1/test_price_review_api.py
"""Tests for the admin daily price-review endpoints."""

from decimal import Decimal

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from agricart.models import Product
from agricart.services import price_review

BASE = "/api/v1/admin/system-lockout"
CONFIRM = {"confirm": True}


def test_schedule_overview(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.get(BASE, headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["can_take_action"] is False
    assert data["next_action"] == "admin_decision"
    assert data["schedule"]["is_locked"] is False


def test_requires_admin(client: TestClient, customer_headers: dict[str, str]) -> None:
    response = client.get(BASE, headers=customer_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_keep_prices(
    client: TestClient, admin_headers: dict[str, str], db_session: Session
) -> None:
    price_review.initiate_lockout(db_session)
    assert client.get(BASE, headers=admin_headers).json()["can_take_action"] is True

    response = client.post(f"{BASE}/keep-prices", json=CONFIRM, headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    schedule = response.json()["schedule"]
    assert schedule["is_locked"] is False
    assert schedule["admin_action"] == "keep_prices"
    assert schedule["admin_user"]["email"] == "admin@example.com"

    again = client.post(f"{BASE}/keep-prices", json=CONFIRM, headers=admin_headers)
    assert again.status_code == status.HTTP_400_BAD_REQUEST
    assert again.json()["detail"] == "Action not available at this time."


def test_confirmation_required(
    client: TestClient, admin_headers: dict[str, str], db_session: Session
) -> None:
    price_review.initiate_lockout(db_session)

    assert (
        client.post(f"{BASE}/keep-prices", json={"confirm": False}, headers=admin_headers)
        .status_code
        == status.HTTP_422_UNPROCESSABLE_ENTITY
    )
    assert (
        client.post(f"{BASE}/keep-prices", json={}, headers=admin_headers).status_code
        == status.HTTP_422_UNPROCESSABLE_ENTITY
    )


def test_price_change_window(
    client: TestClient,
    admin_headers: dict[str, str],
    customer_headers: dict[str, str],
    db_session: Session,
    stocked_product: Product,
) -> None:
    price_url = f"/api/v1/admin/products/{stocked_product.id}/price"
    closed = client.put(price_url, json={"price": "60.00"}, headers=admin_headers)
    assert closed.status_code == status.HTTP_409_CONFLICT

    price_review.initiate_lockout(db_session)
    applied = client.post(f"{BASE}/apply-price-changes", json=CONFIRM, headers=admin_headers)
    assert applied.status_code == status.HTTP_200_OK
    assert applied.json()["schedule"]["price_change_status"] == "pending"

    blocked = client.get("/api/v1/customer/profile", headers=customer_headers)
    assert blocked.status_code == status.HTTP_423_LOCKED
    assert blocked.json()["detail"]["lockout_type"] == "daily"

    updated = client.put(price_url, json={"price": "60.00"}, headers=admin_headers)
    assert updated.status_code == status.HTTP_200_OK
    assert Decimal(updated.json()["price"]) == Decimal("60.00")

    approved = client.post(f"{BASE}/approve-price-changes", json=CONFIRM, headers=admin_headers)
    assert approved.status_code == status.HTTP_200_OK
    assert approved.json()["schedule"]["price_change_status"] == "approved"

    reopened = client.put(price_url, json={"price": "65.00"}, headers=admin_headers)
    assert reopened.status_code == status.HTTP_409_CONFLICT
    assert client.get("/api/v1/customer/profile", headers=customer_headers).status_code == 200


def test_cancel_price_changes(
    client: TestClient, admin_headers: dict[str, str], db_session: Session
) -> None:
    price_review.initiate_lockout(db_session)
    client.post(f"{BASE}/apply-price-changes", json=CONFIRM, headers=admin_headers)

    response = client.post(f"{BASE}/cancel-price-changes", json=CONFIRM, headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["schedule"]["price_change_status"] == "cancelled"
    assert response.json()["schedule"]["is_locked"] is False


def test_tracked_lockout_lifecycle(client: TestClient, admin_headers: dict[str, str]) -> None:
    created = client.post(
        f"{BASE}/schedule",
        json={"in_minutes": 30, "description": "Weekly price audit"},
        headers=admin_headers,
    )
    assert created.status_code == status.HTTP_201_CREATED
    lockout = created.json()
    assert lockout["status"] == "scheduled"
    assert lockout["description"] == "Weekly price audit"

    scheduled = client.get(f"{BASE}/scheduled", headers=admin_headers).json()
    assert [item["id"] for item in scheduled] == [lockout["id"]]

    cancelled = client.post(f"{BASE}/scheduled/{lockout['id']}/cancel", headers=admin_headers)
    assert cancelled.status_code == status.HTTP_200_OK
    assert cancelled.json()["status"] == "cancelled"

    again = client.post(f"{BASE}/scheduled/{lockout['id']}/cancel", headers=admin_headers)
    assert again.status_code == status.HTTP_400_BAD_REQUEST

    history = client.get(f"{BASE}/history", params={"limit": 5}, headers=admin_headers).json()
    assert [item["id"] for item in history] == [lockout["id"]]


def test_schedule_requires_a_time(client: TestClient, admin_headers: dict[str, str]) -> None:
    response = client.post(f"{BASE}/schedule", json={"description": "?"}, headers=admin_headers)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_due_scheduled_lockout_blocks_customers(
    client: TestClient,
    admin_headers: dict[str, str],
    customer_headers: dict[str, str],
) -> None:
    client.post(
        f"{BASE}/schedule",
        json={"in_minutes": 0, "description": "Emergency repricing"},
        headers=admin_headers,
    )

    response = client.get("/api/v1/customer/profile", headers=customer_headers)

    assert response.status_code == status.HTTP_423_LOCKED
    detail = response.json()["detail"]
    assert detail["lockout_type"] == "scheduled"
    assert detail["message"] == "Emergency repricing"

    client.post(f"{BASE}/keep-prices", json=CONFIRM, headers=admin_headers)
    assert client.get("/api/v1/customer/profile", headers=customer_headers).status_code == 200
