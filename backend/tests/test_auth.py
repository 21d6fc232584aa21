"""
Tests for /api/v1/auth – login, refresh, /me.
"""
import pytest
from caretrack.core.security import (
    ACCESS_TOKEN, REFRESH_TOKEN, create_refresh_token, decode_token, token_subject,
)
from tests.conftest import auth_headers


BASE = "/api/v1/auth"
EMAIL = "admin@caretrack.co.uk"


# ── Login ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_login_valid(client, admin_user):
    resp = await client.post(f"{BASE}/login", json={"email": EMAIL, "password": "testpass123"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"


@pytest.mark.asyncio
async def test_login_wrong_password(client, admin_user):
    resp = await client.post(f"{BASE}/login", json={"email": EMAIL, "password": "wrongpassword"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client):
    resp = await client.post(f"{BASE}/login", json={
        "email": "nobody@caretrack.co.uk",
        "password": "testpass123",
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_login_inactive_user(client, db, admin_user):
    admin_user.is_active = False
    await db.commit()

    resp = await client.post(f"{BASE}/login", json={"email": EMAIL, "password": "testpass123"})
    assert resp.status_code == 400


# ── Refresh ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_refresh_valid(client, admin_user):
    login = await client.post(f"{BASE}/login", json={"email": EMAIL, "password": "testpass123"})
    refresh_token = login.json()["refresh_token"]

    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": refresh_token})
    assert resp.status_code == 200
    assert resp.json()["access_token"]


@pytest.mark.asyncio
async def test_refresh_invalid_token(client):
    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": "invalid.token.here"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_access_token_is_not_a_refresh_token(client, admin_token):
    resp = await client.post(f"{BASE}/refresh", json={"refresh_token": admin_token})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token(client, admin_user):
    login = await client.post(f"{BASE}/login", json={"email": EMAIL, "password": "testpass123"})
    resp = await client.get(f"{BASE}/me", headers=auth_headers(login.json()["refresh_token"]))
    assert resp.status_code == 401


# ── /me ───────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_me_returns_user_info(client, admin_user, admin_token):
    resp = await client.get(f"{BASE}/me", headers=auth_headers(admin_token))
    assert resp.status_code == 200
    data = resp.json()
    assert data["email"] == EMAIL
    assert data["role"] == "admin"
    assert data["id"] == str(admin_user.id)


@pytest.mark.asyncio
async def test_me_without_token(client):
    resp = await client.get(f"{BASE}/me")
    assert resp.status_code in (401, 403)  # older FastAPI answers 403 for a missing bearer token


# ── Token helpers ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_decode_token_checks_type(admin_user):
    token = create_refresh_token(admin_user.id)
    assert token_subject(token, REFRESH_TOKEN) == admin_user.id
    with pytest.raises(ValueError):
        decode_token(token, ACCESS_TOKEN)
