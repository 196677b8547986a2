"""
Session & Users API Tests
=========================

Tests for the session cookie endpoints (/jwt, /logout) and the user
save endpoint.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from taskboard.config import settings
from taskboard.core.security import decode_token


def _session_token(response) -> str:
    """Pull the session token out of the Set-Cookie header."""
    header = response.headers["set-cookie"]
    prefix = f"{settings.AUTH_COOKIE_NAME}="
    assert header.startswith(prefix)
    return header[len(prefix):].split(";", 1)[0]


class TestIssueSession:

    @pytest.mark.asyncio
    async def test_jwt_sets_http_only_cookie(self, anon_client: AsyncClient):
        response = await anon_client.post(
            "/jwt", json={"email": "ada@example.com", "uid": "ada-uid"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}

        header = response.headers["set-cookie"]
        assert "HttpOnly" in header
        assert "SameSite=strict" in header

        payload = decode_token(_session_token(response))
        assert payload["sub"] == "ada-uid"
        assert payload["email"] == "ada@example.com"

    @pytest.mark.asyncio
    async def test_issued_token_authenticates(self, anon_client: AsyncClient):
        response = await anon_client.post(
            "/jwt", json={"email": "ada@example.com", "uid": "ada-uid"},
        )
        token = _session_token(response)

        response = await anon_client.get(
            "/tasks", headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 200
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_invalid_email_is_rejected(self, anon_client: AsyncClient):
        response = await anon_client.post("/jwt", json={"email": "nope"})

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "email"


class TestFirebaseVerification:
    """With a Firebase project configured the ID token is mandatory."""

    @pytest.fixture(autouse=True)
    def firebase_project(self, monkeypatch):
        monkeypatch.setattr(settings, "FIREBASE_PROJECT_ID", "demo-project")

    @pytest.mark.asyncio
    async def test_identity_comes_from_verified_claims(self, anon_client: AsyncClient):
        claims = {"user_id": "fb-uid", "sub": "fb-uid", "email": "fb@example.com"}
        with patch(
            "taskboard.api.v1.auth.verify_firebase_id_token",
            AsyncMock(return_value=claims),
        ) as verify:
            response = await anon_client.post(
                "/jwt",
                json={"email": "spoofed@example.com", "uid": "spoofed", "idToken": "tok"},
            )

        assert response.status_code == 200
        verify.assert_awaited_once_with("tok")
        payload = decode_token(_session_token(response))
        assert payload["sub"] == "fb-uid"
        assert payload["email"] == "fb@example.com"

    @pytest.mark.asyncio
    async def test_missing_id_token_is_unauthorized(self, anon_client: AsyncClient):
        response = await anon_client.post("/jwt", json={"email": "fb@example.com"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_002"

    @pytest.mark.asyncio
    async def test_rejected_id_token_is_unauthorized(self, anon_client: AsyncClient):
        with patch(
            "taskboard.api.v1.auth.verify_firebase_id_token",
            AsyncMock(side_effect=ValueError("Token expired")),
        ):
            response = await anon_client.post(
                "/jwt", json={"email": "fb@example.com", "idToken": "expired"},
            )

        assert response.status_code == 401
        assert "set-cookie" not in response.headers


class TestProductionWithoutFirebase:
    """Production never issues a session for an unverified identity."""

    @pytest.fixture(autouse=True)
    def production(self, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")
        monkeypatch.setattr(settings, "FIREBASE_PROJECT_ID", None)

    @pytest.mark.asyncio
    async def test_posted_uid_is_not_trusted(self, anon_client: AsyncClient):
        response = await anon_client.post(
            "/jwt", json={"email": "victim@example.com", "uid": "victim-uid"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_002"
        assert "set-cookie" not in response.headers



@pytest.mark.asyncio
async def test_logout_clears_cookie(client: AsyncClient):
    response = await client.get("/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    header = response.headers["set-cookie"]
    assert header.startswith(f"{settings.AUTH_COOKIE_NAME}=")
    assert "Max-Age=0" in header


class TestSaveUser:

    @pytest.mark.asyncio
    async def test_save_is_idempotent(self, anon_client: AsyncClient):
        """First save creates (201); the second returns the same user (200)."""
        body = {"uid": "ada-uid", "displayName": "Ada", "photoURL": "https://x/ada.png"}

        first = await anon_client.post("/users/Ada@Example.com", json=body)
        second = await anon_client.post(
            "/users/ada@example.com", json={"uid": "ada-uid", "displayName": "Changed"},
        )

        assert first.status_code == 201
        assert first.json()["created"] is True
        data = first.json()["data"]
        assert data["email"] == "ada@example.com"
        assert data["name"] == "Ada"
        assert data["photoURL"] == "https://x/ada.png"

        assert second.status_code == 200
        assert second.json()["created"] is False
        assert second.json()["data"]["id"] == data["id"]
        assert second.json()["data"]["name"] == "Ada"

    @pytest.mark.asyncio
    async def test_invalid_email_path_is_rejected(self, anon_client: AsyncClient):
        response = await anon_client.post("/users/not-an-email", json={})

        assert response.status_code == 400
        assert response.json()["error"]["field"] == "email"
