"""HTTP tests: auth guard, cookies, passkey and device verification endpoints."""

import re
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from authgate.app import App
from authgate.core.core import Core
from authgate.core.modules.email.service import EmailDeliveryError
from authgate.core.modules.webauthn.models import NotVerified, Verified
from authgate.web.server import create_fastapi_app


@pytest.fixture
def web_core(config, fake_redis, fake_mongo):
    return Core(config, mongo_client=fake_mongo, redis=fake_redis)


@pytest.fixture
def client(config, web_core):
    app = App(config, core=web_core)
    with TestClient(create_fastapi_app(app, config)) as client:
        yield client


@pytest.fixture
def outbox(web_core, monkeypatch):
    sent = []

    async def send_email(to: str, subject: str, html_body: str) -> None:
        sent.append((to, subject, html_body))

    monkeypatch.setattr(web_core.services.email, "send_email", send_email)
    return sent


def register_user(client, email="runner@example.com"):
    response = client.post("/api/v1/users/register", json={"email": email, "name": "Runner"})
    assert response.status_code == 201
    return response.json()["user_id"]


def login(client, web_core, monkeypatch, user_id):
    """Finish a (stubbed) passkey registration, which sets the session cookie."""
    monkeypatch.setattr(
        web_core.services.webauthn,
        "finish_registration",
        AsyncMock(return_value=Verified(user_id=user_id, credential_id="Y3JlZA")),
    )
    return client.post("/api/v1/passkey/register/finish", json={"user_id": user_id, "credential": {"id": "Y3JlZA"}})


class TestAuthGuard:
    def test_health_is_public(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_api_without_session(self, client):
        response = client.get("/api/v1/profile")
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized", "type": "authentication_error"}
        assert "set-cookie" not in response.headers

    def test_api_with_stale_cookie_clears_it(self, client):
        client.cookies.set("passkey_session", "stale")
        response = client.get("/api/v1/profile")
        assert response.status_code == 401
        assert "passkey_session=" in response.headers["set-cookie"]
        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_page_redirects_to_login(self, client):
        response = client.get("/dashboard/history", follow_redirects=False)
        assert response.status_code == 307
        assert response.headers["location"] == "/login?redirect=%2Fdashboard%2Fhistory"

    @pytest.mark.parametrize("path", ["/login", "/verify-device", "/_next/static/app.js", "/favicon.ico"])
    def test_public_paths_pass_through(self, client, path):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 404

    def test_store_outage_is_401_not_500(self, client, fake_redis):
        client.cookies.set("passkey_session", "anything")
        fake_redis.fail = True
        response = client.get("/api/v1/profile")
        assert response.status_code == 401


class TestSessionEndpoints:
    def test_login_sets_cookie(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        response = login(client, web_core, monkeypatch, user_id)

        assert response.status_code == 200
        assert response.json() == {"verified": True, "user_id": user_id}
        cookie = response.headers["set-cookie"]
        assert "passkey_session=" in cookie
        assert "HttpOnly" in cookie
        assert "Max-Age=3600" in cookie
        assert "SameSite=lax" in cookie
        assert "Path=/" in cookie

    def test_profile_and_session_status(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        login(client, web_core, monkeypatch, user_id)

        profile = client.get("/api/v1/profile")
        assert profile.status_code == 200
        assert profile.json()["email"] == "runner@example.com"
        assert client.get("/api/v1/auth/session").json() == {"authenticated": True, "user_id": user_id}

    def test_logout(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        login(client, web_core, monkeypatch, user_id)

        response = client.post("/api/v1/auth/logout")
        assert response.status_code == 204
        assert "Max-Age=0" in response.headers["set-cookie"]
        assert client.get("/api/v1/profile").status_code == 401

    def test_logout_without_session(self, client):
        assert client.post("/api/v1/auth/logout").status_code == 204
        assert client.post("/api/v1/auth/logout").status_code == 204

    def test_session_status_without_cookie(self, client):
        assert client.get("/api/v1/auth/session").json() == {"authenticated": False, "user_id": None}


class TestUserEndpoints:
    def test_duplicate_registration(self, client):
        register_user(client)
        response = client.post("/api/v1/users/register", json={"email": "RUNNER@example.com"})
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_find_user(self, client):
        user_id = register_user(client)
        assert client.post("/api/v1/users/find", json={"email": "runner@example.com"}).json()["user_id"] == user_id

    def test_find_unknown_user(self, client):
        response = client.post("/api/v1/users/find", json={"email": "ghost@example.com"})
        assert response.status_code == 404
        assert response.json()["type"] == "not_found"


class TestPasskeyEndpoints:
    def test_rejected_ceremony(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        monkeypatch.setattr(
            web_core.services.webauthn,
            "finish_authentication",
            AsyncMock(return_value=NotVerified(reason="unknown_credential")),
        )
        response = client.post("/api/v1/passkey/authenticate/finish", json={"user_id": user_id, "credential": {}})

        assert response.status_code == 400
        assert response.json() == {"message": "Verification failed", "type": "ceremony_failed"}
        assert "set-cookie" not in response.headers

    def test_authenticate_without_passkeys(self, client):
        user_id = register_user(client)
        response = client.post("/api/v1/passkey/authenticate/start", json={"user_id": user_id})
        assert response.status_code == 404
        assert response.json() == {"message": "No credentials found", "type": "no_credentials"}

    def test_register_start_returns_options(self, client):
        user_id = register_user(client)
        response = client.post("/api/v1/passkey/register/start", json={"user_id": user_id})
        assert response.status_code == 200
        assert response.json()["rp"]["id"] == "testserver"

    def test_list_requires_session(self, client):
        user_id = register_user(client)
        assert client.post("/api/v1/passkey/list", json={"user_id": user_id}).status_code == 401

    def test_list_other_users_passkeys(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        other_id = register_user(client, "other@example.com")
        login(client, web_core, monkeypatch, user_id)

        response = client.post("/api/v1/passkey/list", json={"user_id": other_id})
        assert response.status_code == 403
        assert response.json()["type"] == "access_denied"

    def test_list_own_passkeys(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        login(client, web_core, monkeypatch, user_id)
        response = client.post("/api/v1/passkey/list", json={"user_id": user_id})
        assert response.status_code == 200
        assert response.json() == {"passkeys": []}

    def test_delete_missing_passkey(self, client, web_core, monkeypatch):
        user_id = register_user(client)
        login(client, web_core, monkeypatch, user_id)
        response = client.post("/api/v1/passkey/delete", json={"user_id": user_id, "credential_id": "bm9wZQ"})
        assert response.status_code == 404


class TestDeviceVerificationEndpoints:
    def test_send_and_check(self, client, outbox):
        user_id = register_user(client)
        response = client.post("/api/v1/device/verify/send", json={"user_id": user_id, "email": "runner@example.com"})
        assert response.status_code == 200
        assert response.json() == {"success": True}

        html_body = outbox[0][2]
        assert "http://testserver/verify-device?token=" in html_body
        token = re.search(r"token=([A-Za-z0-9_-]+)", html_body).group(1)

        first = client.post("/api/v1/device/verify/check", json={"token": token})
        assert first.status_code == 200
        assert first.json() == {"user_id": user_id, "verified": True}

        second = client.post("/api/v1/device/verify/check", json={"token": token})
        assert second.status_code == 400
        assert second.json() == {"message": "Token already used", "type": "invalid_token"}

    def test_unknown_token(self, client):
        response = client.post("/api/v1/device/verify/check", json={"token": "nope"})
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid token", "type": "invalid_token"}

    def test_email_outage(self, client, web_core, monkeypatch):
        user_id = register_user(client)

        async def failing(to: str, subject: str, html_body: str) -> None:
            raise EmailDeliveryError("connection refused")

        monkeypatch.setattr(web_core.services.email, "send_email", failing)
        response = client.post("/api/v1/device/verify/send", json={"user_id": user_id, "email": "runner@example.com"})
        assert response.status_code == 503
        assert response.json()["type"] == "service_unavailable"
