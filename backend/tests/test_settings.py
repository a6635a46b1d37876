"""Tests for Settings API (admin key/value store)."""
from httpx import AsyncClient


# --- PUT /settings/{key} ---

async def test_put_creates_then_updates(client: AsyncClient, admin_auth):
    admin, headers = admin_auth
    resp = await client.put(
        "/api/v1/settings/site.title",
        json={"setting_value": {"en": "Youth Network"}, "description": "Header title"},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["setting_key"] == "site.title"
    assert data["setting_value"] == {"en": "Youth Network"}
    assert data["updated_by"] == str(admin.id)

    resp = await client.put(
        "/api/v1/settings/site.title", json={"setting_value": {"en": "Youth Network 2026"}}, headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["setting_value"] == {"en": "Youth Network 2026"}
    assert resp.json()["data"]["description"] == "Header title"

    resp = await client.get("/api/v1/settings", headers=headers)
    assert len(resp.json()["data"]) == 1


async def test_put_rejects_bad_key(client: AsyncClient, admin_auth):
    _, headers = admin_auth
    resp = await client.put("/api/v1/settings/bad key!", json={"setting_value": 1}, headers=headers)
    assert resp.status_code == 422


# --- GET /settings/{key} ---

async def test_get_setting(client: AsyncClient, admin_auth):
    _, headers = admin_auth
    await client.put("/api/v1/settings/maintenance", json={"setting_value": False}, headers=headers)
    resp = await client.get("/api/v1/settings/maintenance", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["setting_value"] is False


async def test_get_missing_setting(client: AsyncClient, admin_auth):
    _, headers = admin_auth
    resp = await client.get("/api/v1/settings/nope", headers=headers)
    assert resp.status_code == 404
    assert resp.json()["instance"] == "/api/v1/settings/nope"


async def test_settings_forbidden_for_organization(client: AsyncClient, org_a_auth):
    _, headers = org_a_auth
    resp = await client.get("/api/v1/settings", headers=headers)
    assert resp.status_code == 403
    resp = await client.put("/api/v1/settings/x", json={"setting_value": 1}, headers=headers)
    assert resp.status_code == 403
