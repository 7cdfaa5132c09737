# tests/v1/test_profile.py
"""Tests for the customer profile, address book, and contact changes."""

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from agricart.core.security import verify_password
from agricart.core.settings import settings
from agricart.models import Notification, OtpRequest, User, UserAddress

PROFILE_URL = "/api/v1/customer/profile"

ADDRESS = {
    "street": "45 Mabini St",
    "barangay": "Poblacion",
    "city": "Gapan",
    "province": "Nueva Ecija",
}


class TestProfile:
    def test_get_profile(
        self, client: TestClient, customer: User, customer_headers: dict[str, str]
    ) -> None:
        response = client.get(PROFILE_URL, headers=customer_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["id"] == customer.id
        assert data["email"] == "juan@example.com"
        assert data["contact_number"] == "+639171234567"

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.get(PROFILE_URL)
        assert response.status_code in {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN}

    def test_admin_cannot_use_customer_profile(
        self, client: TestClient, admin_headers: dict[str, str]
    ) -> None:
        response = client.get(PROFILE_URL, headers=admin_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_update_profile_normalizes_phone(
        self, client: TestClient, customer_headers: dict[str, str]
    ) -> None:
        response = client.put(
            PROFILE_URL,
            json={"name": "Juan D. Cruz", "contact_number": "0918-765-4321"},
            headers=customer_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "Juan D. Cruz"
        assert response.json()["contact_number"] == "+639187654321"

    def test_update_profile_rejects_bad_phone(
        self, client: TestClient, customer_headers: dict[str, str]
    ) -> None:
        response = client.put(
            PROFILE_URL, json={"contact_number": "12345"}, headers=customer_headers
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["detail"]["field"] == "new_phone"

    def test_change_password(
        self,
        client: TestClient,
        customer: User,
        customer_headers: dict[str, str],
    ) -> None:
        wrong = client.post(
            f"{PROFILE_URL}/change-password",
            json={"current_password": "nope", "new_password": "newsecret1"},
            headers=customer_headers,
        )
        assert wrong.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert wrong.json()["detail"]["field"] == "current_password"

        ok = client.post(
            f"{PROFILE_URL}/change-password",
            json={"current_password": "password123", "new_password": "newsecret1"},
            headers=customer_headers,
        )
        assert ok.status_code == status.HTTP_200_OK
        assert verify_password("newsecret1", customer.password_hash)


class TestAddresses:
    def test_first_address_becomes_default(
        self, client: TestClient, customer_headers: dict[str, str]
    ) -> None:
        response = client.post(
            f"{PROFILE_URL}/addresses", json=ADDRESS, headers=customer_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["is_default"] is True

        current = client.get(f"{PROFILE_URL}/current-address", headers=customer_headers)
        assert current.json()["default_address"]["id"] == response.json()["id"]

    def test_current_address_empty(
        self, client: TestClient, customer_headers: dict[str, str]
    ) -> None:
        response = client.get(f"{PROFILE_URL}/current-address", headers=customer_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"default_address": None}

    def test_new_default_replaces_old(
        self,
        client: TestClient,
        customer_headers: dict[str, str],
        default_address: UserAddress,
    ) -> None:
        created = client.post(
            f"{PROFILE_URL}/addresses",
            json={**ADDRESS, "is_default": True},
            headers=customer_headers,
        ).json()

        listing = client.get(f"{PROFILE_URL}/addresses", headers=customer_headers).json()

        assert [a["id"] for a in listing if a["is_default"]] == [created["id"]]
        assert listing[0]["id"] == created["id"]

    def test_set_default_and_update(
        self,
        client: TestClient,
        customer_headers: dict[str, str],
        default_address: UserAddress,
    ) -> None:
        other = client.post(
            f"{PROFILE_URL}/addresses", json=ADDRESS, headers=customer_headers
        ).json()
        assert other["is_default"] is False

        promoted = client.post(
            f"{PROFILE_URL}/addresses/{other['id']}/set-default", headers=customer_headers
        )
        assert promoted.json()["is_default"] is True

        updated = client.put(
            f"{PROFILE_URL}/addresses/{default_address.id}",
            json={"street": "9 Luna St"},
            headers=customer_headers,
        )
        assert updated.status_code == status.HTTP_200_OK
        assert updated.json()["street"] == "9 Luna St"
        assert updated.json()["is_default"] is False

    def test_deleting_default_promotes_another(
        self,
        client: TestClient,
        customer_headers: dict[str, str],
        default_address: UserAddress,
    ) -> None:
        other = client.post(
            f"{PROFILE_URL}/addresses", json=ADDRESS, headers=customer_headers
        ).json()

        response = client.delete(
            f"{PROFILE_URL}/addresses/{default_address.id}", headers=customer_headers
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        fetched = client.get(f"{PROFILE_URL}/addresses/{other['id']}", headers=customer_headers)
        assert fetched.json()["is_default"] is True

    def test_other_users_address_is_not_found(
        self,
        client: TestClient,
        other_customer_headers: dict[str, str],
        default_address: UserAddress,
    ) -> None:
        headers = other_customer_headers
        url = f"{PROFILE_URL}/addresses/{default_address.id}"

        assert client.get(url, headers=headers).status_code == status.HTTP_404_NOT_FOUND
        assert client.put(url, json={"city": "X"}, headers=headers).status_code == 404
        assert client.delete(url, headers=headers).status_code == 404
        assert client.post(f"{url}/set-default", headers=headers).status_code == 404


class TestContactChange:
    @pytest.fixture(autouse=True)
    def fixed_code(self, mocker) -> None:
        mocker.patch("agricart.services.otp.generate_code", return_value="123456")

    def test_email_change_flow(
        self,
        client: TestClient,
        customer: User,
        customer_headers: dict[str, str],
        db_session: Session,
    ) -> None:
        sent = client.post(
            f"{PROFILE_URL}/email-change/send-otp",
            json={"new_email": "Juan.New@Example.com"},
            headers=customer_headers,
        )
        assert sent.status_code == status.HTTP_200_OK
        otp_request = sent.json()["otp_request"]
        assert otp_request["target"] == "juan.new@example.com"
        assert otp_request["otp"] is None

        wrong = client.post(
            f"{PROFILE_URL}/email-change/verify/{otp_request['id']}",
            json={"otp": "000000"},
            headers=customer_headers,
        )
        assert wrong.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert wrong.json()["detail"]["field"] == "otp"

        verified = client.post(
            f"{PROFILE_URL}/email-change/verify/{otp_request['id']}",
            json={"otp": "123456"},
            headers=customer_headers,
        )
        assert verified.status_code == status.HTTP_200_OK
        assert verified.json()["email"] == "juan.new@example.com"

        types = {n.type for n in db_session.query(Notification).all()}
        assert {"email_change_otp", "email_changed"} <= types

    def test_phone_change_flow(
        self, client: TestClient, customer_headers: dict[str, str]
    ) -> None:
        sent = client.post(
            f"{PROFILE_URL}/phone-change/send-otp",
            json={"new_phone": "0918 765 4321"},
            headers=customer_headers,
        ).json()

        verified = client.post(
            f"{PROFILE_URL}/phone-change/verify/{sent['otp_request']['id']}",
            json={"otp": "123456"},
            headers=customer_headers,
        )

        assert verified.status_code == status.HTTP_200_OK
        assert verified.json()["contact_number"] == "+639187654321"

    def test_rejects_current_and_taken_values(
        self,
        client: TestClient,
        customer_headers: dict[str, str],
        other_customer: User,
    ) -> None:
        same = client.post(
            f"{PROFILE_URL}/email-change/send-otp",
            json={"new_email": "juan@example.com"},
            headers=customer_headers,
        )
        taken = client.post(
            f"{PROFILE_URL}/email-change/send-otp",
            json={"new_email": "maria@example.com"},
            headers=customer_headers,
        )
        same_phone = client.post(
            f"{PROFILE_URL}/phone-change/send-otp",
            json={"new_phone": "+63 917 123 4567"},
            headers=customer_headers,
        )

        assert same.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert same.json()["detail"]["field"] == "new_email"
        assert taken.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert "already in use" in taken.json()["detail"]["message"]
        assert same_phone.json()["detail"]["field"] == "new_phone"

    def test_debug_mode_echoes_code(
        self, client: TestClient, customer_headers: dict[str, str], mocker
    ) -> None:
        mocker.patch.object(settings, "debug", True)

        sent = client.post(
            f"{PROFILE_URL}/email-change/send-otp",
            json={"new_email": "debug@example.com"},
            headers=customer_headers,
        )

        assert sent.json()["otp_request"]["otp"] == "123456"

    def test_resend_and_cancel(
        self,
        client: TestClient,
        customer_headers: dict[str, str],
        db_session: Session,
    ) -> None:
        request_id = client.post(
            f"{PROFILE_URL}/email-change/send-otp",
            json={"new_email": "juan.new@example.com"},
            headers=customer_headers,
        ).json()["otp_request"]["id"]

        resent = client.post(
            f"{PROFILE_URL}/email-change/resend/{request_id}", headers=customer_headers
        )
        assert resent.status_code == status.HTTP_200_OK
        assert resent.json()["otp_request"]["id"] == request_id

        cancelled = client.post(
            f"{PROFILE_URL}/email-change/cancel/{request_id}", headers=customer_headers
        )
        assert cancelled.status_code == status.HTTP_200_OK
        assert db_session.get(OtpRequest, request_id).is_used is True

        verify = client.post(
            f"{PROFILE_URL}/email-change/verify/{request_id}",
            json={"otp": "123456"},
            headers=customer_headers,
        )
        assert verify.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_channel_must_match_request(
        self, client: TestClient, customer_headers: dict[str, str]
    ) -> None:
        request_id = client.post(
            f"{PROFILE_URL}/email-change/send-otp",
            json={"new_email": "juan.new@example.com"},
            headers=customer_headers,
        ).json()["otp_request"]["id"]

        response = client.post(
            f"{PROFILE_URL}/phone-change/verify/{request_id}",
            json={"otp": "123456"},
            headers=customer_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
