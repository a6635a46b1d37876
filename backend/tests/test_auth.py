"""Tests for Auth API endpoints, sessions and the password policy."""
import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PasswordPolicyError
from app.models.user import UserRole
from app.services import auth_service
from app.services.auth_service import ensure_password_policy, validate_password
from tests.conftest import TEST_PASSWORD, _create_test_user


async def _login(client: AsyncClient, email: str, password: str = TEST_PASSWORD):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


# --- POST /api/v1/auth/login ---

async def test_login_success(client: AsyncClient, db_session: AsyncSession, org_a):
    user, _ = await _create_test_user(db_session, UserRole.ORGANIZATION, org_a, email="login@hopeyouth.org")
    resp = await _login(client, "login@hopeyouth.org")
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["access_token"]
    assert data["refresh_token"]


async def test_login_email_is_case_insensitive(client: AsyncClient, db_session: AsyncSession):
    await _create_test_user(db_session, UserRole.ADMIN, email="admin@hopeyouth.org")
    resp = await _login(client, "Admin@HopeYouth.org")
    assert resp.status_code == 200


async def test_login_wrong_password(client: AsyncClient, db_session: AsyncSession):
    await _create_test_user(db_session, UserRole.ADMIN, email="wrongpw@hopeyouth.org")
    resp = await _login(client, "wrongpw@hopeyouth.org", "Nope12345")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid credentials"


async def test_login_unknown_user(client: AsyncClient):
    resp = await _login(client, "nobody@hopeyouth.org")
    assert resp.status_code == 401


async def test_login_deactivated_account(client: AsyncClient, db_session: AsyncSession, org_a):
    await _create_test_user(
        db_session, UserRole.ORGANIZATION, org_a, email="gone@hopeyouth.org", archived=True,
    )
    resp = await _login(client, "gone@hopeyouth.org")
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Your account has been deactivated"


# --- GET /api/v1/auth/me ---

async def test_me_includes_organization(client: AsyncClient, org_a_auth, org_a):
    user, headers = org_a_auth
    resp = await client.get("/api/v1/auth/me", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["email"] == user.email
    assert data["role"] == "organization"
    assert data["organization_id"] == str(org_a.id)
    assert data["organization_name"] == "Hope Youth Center"


async def test_me_without_token(client: AsyncClient):
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401


async def test_me_with_garbage_token(client: AsyncClient):
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"


# --- refresh / logout ---

async def test_refresh_rotates_token(client: AsyncClient, db_session: AsyncSession):
    await _create_test_user(db_session, UserRole.ADMIN, email="rotate@hopeyouth.org")
    tokens = (await _login(client, "rotate@hopeyouth.org")).json()["data"]

    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 200
    rotated = resp.json()["data"]
    assert rotated["refresh_token"] != tokens["refresh_token"]

    # The old refresh token was consumed
    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401

    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {rotated['access_token']}"})
    assert resp.status_code == 200


async def test_sessions_and_refresh_tokens_expire_without_redis(
    client: AsyncClient, db_session: AsyncSession, monkeypatch,
):
    await _create_test_user(db_session, UserRole.ADMIN, email="expiry@hopeyouth.org")
    tokens = (await _login(client, "expiry@hopeyouth.org")).json()["data"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200

    later = auth_service._now() + auth_service._TTL + 1
    monkeypatch.setattr(auth_service, "_now", lambda: later)

    resp = await client.get("/api/v1/auth/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session has ended"
    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401
    assert tokens["refresh_token"] not in auth_service._refresh_tokens


async def test_logout_ends_session(client: AsyncClient, db_session: AsyncSession):
    await _create_test_user(db_session, UserRole.ADMIN, email="logout@hopeyouth.org")
    tokens = (await _login(client, "logout@hopeyouth.org")).json()["data"]
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    resp = await client.post("/api/v1/auth/logout", headers=headers)
    assert resp.status_code == 200

    resp = await client.get("/api/v1/auth/me", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Session has ended"

    resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert resp.status_code == 401


async def test_deactivated_user_token_is_refused(client: AsyncClient, db_session: AsyncSession, org_a):
    user, token = await _create_test_user(db_session, UserRole.ORGANIZATION, org_a)
    user.archived = True
    await db_session.commit()
    resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401


# --- PUT /api/v1/auth/me/password ---

async def test_change_password(client: AsyncClient, db_session: AsyncSession):
    _, token = await _create_test_user(db_session, UserRole.ADMIN, email="change@hopeyouth.org")
    headers = {"Authorization": f"Bearer {token}"}

    resp = await client.put(
        "/api/v1/auth/me/password",
        json={"current_password": TEST_PASSWORD, "new_password": "weak"},
        headers=headers,
    )
    assert resp.status_code == 422
    assert resp.json()["type"] == "weak-password"

    resp = await client.put(
        "/api/v1/auth/me/password",
        json={"current_password": "Wrong1234", "new_password": "Stronger123"},
        headers=headers,
    )
    assert resp.status_code == 401

    resp = await client.put(
        "/api/v1/auth/me/password",
        json={"current_password": TEST_PASSWORD, "new_password": "Stronger123"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert (await _login(client, "change@hopeyouth.org", "Stronger123")).status_code == 200


# --- password policy ---

def test_validate_password_lists_every_violation():
    errors = validate_password("abc")
    assert len(errors) == 3
    assert any("8 characters" in e for e in errors)
    assert any("uppercase" in e for e in errors)
    assert any("number" in e for e in errors)


def test_valid_password_passes():
    assert validate_password("Youth2026") == []
    ensure_password_policy("Youth2026")


def test_ensure_password_policy_raises():
    with pytest.raises(PasswordPolicyError) as exc_info:
        ensure_password_policy("alllowercase1")
    assert exc_info.value.errors == ["Password must contain at least one uppercase letter"]
