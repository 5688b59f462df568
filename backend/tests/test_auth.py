"""
Authentication and profile tests.

Verifies that:
- Registration issues tokens and queues a verification email
- Login enforces credentials, verification and the per-IP rate limit
- Refresh tokens rotate and cannot be replayed
- Logout revokes the access token immediately
- Password reset revokes every refresh token of the user
"""

import uuid

import pytest

from planboard.core.config import settings

PASSWORD = "password123"


def unique_email(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


async def login(client, email: str, password: str = PASSWORD, ip: str | None = None):
    headers = {"X-Forwarded-For": ip} if ip else {}
    return await client.post("/api/auth/login", json={"email": email, "password": password}, headers=headers)


# ---------------------------------------------------------------------------
# 1. Register / login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_tokens_and_queues_verification(client, outbox):
    email = unique_email("reg")
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Rhea Register", "email": email.upper(), "password": PASSWORD},
    )
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["accessToken"]
    assert data["refreshToken"]
    assert data["tokenType"] == "bearer"
    assert data["user"]["email"] == email
    assert data["user"]["emailVerified"] is False
    assert "passwordHash" not in data["user"]

    assert len(outbox.verification.calls) == 1
    assert outbox.verification.calls[0]["to_email"] == email


@pytest.mark.asyncio
async def test_register_duplicate_email_is_conflict(client, register_user):
    user = await register_user("Dana Duplicate")
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Dana Again", "email": user.email.upper(), "password": PASSWORD},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "EMAIL_TAKEN"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"name": "Pat Password", "email": "pat@example.com", "password": "nodigitshere"},
        {"name": "Pat Password", "email": "pat@example.com", "password": "short1"},
        {"name": "P", "email": "pat@example.com", "password": PASSWORD},
        {"name": "Pat Password", "email": "not-an-email", "password": PASSWORD},
    ],
)
async def test_register_validation(client, body):
    resp = await client.post("/api/auth/register", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION"


@pytest.mark.asyncio
async def test_login_with_bad_credentials(client, register_user):
    user = await register_user("Lena Login")

    resp = await login(client, user.email, "wrongpass1")
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"

    resp = await login(client, unique_email("ghost"))
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"

    resp = await login(client, user.email.upper())
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == user.id


@pytest.mark.asyncio
async def test_unverified_login_blocked_when_verification_required(client, register_user, outbox, monkeypatch):
    user = await register_user("Vera Verify")
    monkeypatch.setattr(settings, "REQUIRE_EMAIL_VERIFICATION", True)

    resp = await login(client, user.email)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "EMAIL_NOT_VERIFIED"

    token = outbox.verification.calls[-1]["token"]
    resp = await client.post("/api/auth/verify-email", json={"token": token})
    assert resp.status_code == 200

    resp = await login(client, user.email)
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["emailVerified"] is True


@pytest.mark.asyncio
async def test_verify_email_rejects_bad_and_reused_tokens(client, register_user, outbox):
    await register_user("Vera Verify")
    token = outbox.verification.calls[-1]["token"]

    resp = await client.post("/api/auth/verify-email", json={"token": "bogus"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"

    resp = await client.post("/api/auth/verify-email", json={"token": token})
    assert resp.status_code == 200

    # The token is cleared on use
    resp = await client.post("/api/auth/verify-email", json={"token": token})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_resend_verification_is_silent(client, register_user, outbox):
    user = await register_user("Ravi Resend")
    first_token = outbox.verification.calls[-1]["token"]

    resp = await client.post("/api/auth/resend-verification", json={"email": user.email})
    assert resp.status_code == 200
    assert len(outbox.verification.calls) == 2
    assert outbox.verification.calls[-1]["token"] != first_token

    resp = await client.post("/api/auth/resend-verification", json={"email": unique_email("nobody")})
    assert resp.status_code == 200
    assert len(outbox.verification.calls) == 2


# ---------------------------------------------------------------------------
# 2. Rate limiting
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_rate_limited_per_ip(client, register_user):
    user = await register_user("Rory Rate")

    for _ in range(5):
        resp = await login(client, user.email, "wrongpass1", ip="10.0.0.1")
        assert resp.status_code == 401

    resp = await login(client, user.email, ip="10.0.0.1")
    assert resp.status_code == 429
    assert resp.json()["error"]["code"] == "RATE_LIMITED"

    # Another client address has its own window
    resp = await login(client, user.email, ip="10.0.0.2")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_password_reset_endpoints_share_a_window(client, register_user):
    user = await register_user("Rory Rate")
    headers = {"X-Forwarded-For": "10.0.0.9"}

    for _ in range(2):
        resp = await client.post("/api/auth/forgot-password", json={"email": user.email}, headers=headers)
        assert resp.status_code == 200
    resp = await client.post("/api/auth/resend-verification", json={"email": user.email}, headers=headers)
    assert resp.status_code == 200

    resp = await client.post("/api/auth/reset-password", json={"token": "x", "password": "newpass123"}, headers=headers)
    assert resp.status_code == 429


# ---------------------------------------------------------------------------
# 3. Tokens
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_rotates_tokens(client, register_user):
    user = await register_user("Theo Token")

    resp = await client.post("/api/auth/refresh", json={"refreshToken": user.refresh_token})
    assert resp.status_code == 200
    pair = resp.json()["data"]
    assert pair["refreshToken"] != user.refresh_token

    resp = await client.get("/api/users/me", headers={"Authorization": f"Bearer {pair['accessToken']}"})
    assert resp.status_code == 200

    # The old refresh token was consumed
    resp = await client.post("/api/auth/refresh", json={"refreshToken": user.refresh_token})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "TOKEN_REVOKED"

    resp = await client.post("/api/auth/refresh", json={"refreshToken": user.access_token})
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_logout_revokes_access_and_refresh_tokens(client, register_user):
    user = await register_user("Lou Logout")

    resp = await client.post("/api/auth/logout", json={"refreshToken": user.refresh_token}, headers=user.headers)
    assert resp.status_code == 200

    resp = await client.get("/api/users/me", headers=user.headers)
    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "TOKEN_REVOKED"

    resp = await client.post("/api/auth/refresh", json={"refreshToken": user.refresh_token})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_password_reset_flow(client, register_user, outbox):
    user = await register_user("Reese Reset")

    resp = await client.post("/api/auth/forgot-password", json={"email": user.email})
    assert resp.status_code == 200
    token = outbox.password_reset.calls[-1]["token"]

    resp = await client.post("/api/auth/reset-password", json={"token": token, "password": "brandnew123"})
    assert resp.status_code == 200

    resp = await login(client, user.email)
    assert resp.status_code == 401
    resp = await login(client, user.email, "brandnew123")
    assert resp.status_code == 200

    # Every refresh token issued before the reset is gone
    resp = await client.post("/api/auth/refresh", json={"refreshToken": user.refresh_token})
    assert resp.status_code == 401

    resp = await client.post("/api/auth/reset-password", json={"token": token, "password": "another123"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_silent(client, outbox):
    resp = await client.post("/api/auth/forgot-password", json={"email": unique_email("ghost")})
    assert resp.status_code == 200
    assert outbox.password_reset.calls == []


# ---------------------------------------------------------------------------
# 4. Profile
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_and_update_me(client, register_user):
    user = await register_user("Mia Me")

    resp = await client.get("/api/users/me", headers=user.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "Mia Me"

    resp = await client.patch(
        "/api/users/me", json={"name": "Mia Renamed", "avatar": "https://cdn.example.com/mia.png"}, headers=user.headers
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "Mia Renamed"
    assert data["avatar"] == "https://cdn.example.com/mia.png"

    resp = await client.patch("/api/users/me", json={"avatar": None}, headers=user.headers)
    assert resp.json()["data"]["avatar"] is None
    assert resp.json()["data"]["name"] == "Mia Renamed"


@pytest.mark.asyncio
async def test_email_change_requires_reverification(client, register_user, outbox):
    user = await register_user("Evan Email")
    other = await register_user("Olga Other")
    token = outbox.verification.calls[0]["token"]
    await client.post("/api/auth/verify-email", json={"token": token})

    resp = await client.patch("/api/users/me", json={"email": other.email}, headers=user.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "EMAIL_TAKEN"

    new_email = unique_email("evan")
    resp = await client.patch("/api/users/me", json={"email": new_email}, headers=user.headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == new_email
    assert resp.json()["data"]["emailVerified"] is False
    assert outbox.verification.calls[-1]["to_email"] == new_email


@pytest.mark.asyncio
async def test_public_user_lookup(client, register_user):
    viewer = await register_user("Vic Viewer")
    target = await register_user("Tara Target")

    resp = await client.get(f"/api/users/{target.id}", headers=viewer.headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == {"id": target.id, "name": "Tara Target", "email": target.email, "avatar": None}
