"""Tests for the colour palette document and its API."""
import json

import pytest

from app.config import settings
from app.exceptions import PaletteValidationError
from app.services import palette_service
from app.services.palette_service import COLOR_FAMILIES, SHADES, default_palette, validate_palette


# --- validation ---

def test_default_palette_is_valid():
    palette = default_palette()
    assert validate_palette(palette) == []
    assert set(palette["colors"]) == set(COLOR_FAMILIES)
    for shades in palette["colors"].values():
        assert tuple(shades) == SHADES


def test_missing_family_is_reported():
    palette = default_palette()
    del palette["colors"]["error"]
    assert "Missing colour family: error" in validate_palette(palette)


def test_invalid_and_unknown_shades_are_reported():
    palette = default_palette()
    palette["colors"]["primary"]["500"] = "blue"
    palette["colors"]["primary"]["1000"] = "#000000"
    del palette["colors"]["accent"]["950"]
    errors = validate_palette(palette)
    assert any("primary.500" in e for e in errors)
    assert "Unknown shade primary.1000" in errors
    assert "Missing shade accent.950" in errors


def test_semantic_colours_must_be_hex():
    palette = default_palette()
    palette["semantic"]["ring"] = "#abc"
    assert any("ring" in e for e in validate_palette(palette))


def test_non_object_palette():
    assert validate_palette(["not", "a", "palette"]) == ["Palette must be a JSON object"]


def test_missing_required_keys():
    errors = validate_palette({"colors": default_palette()["colors"]})
    assert "Missing required key: version" in errors
    assert "Missing required key: metadata" in errors


# --- service ---

async def test_get_palette_falls_back_to_default(storage):
    palette = await palette_service.get_palette(storage)
    assert palette["name"] == "Default Theme"


async def test_get_palette_ignores_corrupt_document(storage):
    await storage.upload(settings.PUBLIC_ASSETS_BUCKET, settings.PALETTE_PATH, b"{not json")
    palette = await palette_service.get_palette(storage)
    assert palette["name"] == "Default Theme"


async def test_update_palette_stamps_metadata(storage):
    palette = default_palette()
    palette["name"] = "Camp Colours"
    saved = await palette_service.update_palette(storage, palette, "user-1")
    assert saved["metadata"]["author"] == "user-1"
    assert palette["metadata"]["author"] == "System"

    stored = json.loads(await storage.download(settings.PUBLIC_ASSETS_BUCKET, settings.PALETTE_PATH))
    assert stored["name"] == "Camp Colours"


async def test_invalid_palette_is_never_written(storage):
    palette = default_palette()
    del palette["colors"]["error"]
    with pytest.raises(PaletteValidationError) as exc_info:
        await palette_service.update_palette(storage, palette, "user-1")
    assert "Missing colour family: error" in exc_info.value.errors
    assert await storage.list_objects(settings.PUBLIC_ASSETS_BUCKET) == []


async def test_upload_palette_file_rejects_malformed_json(storage):
    with pytest.raises(PaletteValidationError):
        await palette_service.upload_palette_file(storage, b"{\"version\": ", "user-1")


# --- API ---

async def test_get_palette_is_public(client):
    resp = await client.get("/api/v1/palette")
    assert resp.status_code == 200
    assert resp.json()["data"]["version"] == "1.0.0"


async def test_put_palette_requires_admin(client, org_a_auth):
    _, headers = org_a_auth
    resp = await client.put("/api/v1/palette", json=default_palette(), headers=headers)
    assert resp.status_code == 403


async def test_put_invalid_palette_returns_errors(client, admin_auth, storage):
    _, headers = admin_auth
    palette = default_palette()
    del palette["colors"]["error"]
    resp = await client.put("/api/v1/palette", json=palette, headers=headers)
    assert resp.status_code == 422
    body = resp.json()
    assert body["type"] == "invalid-palette"
    assert "Missing colour family: error" in body["errors"]
    assert await storage.list_objects(settings.PUBLIC_ASSETS_BUCKET) == []


async def test_upload_then_export(client, admin_auth):
    _, headers = admin_auth
    palette = default_palette()
    palette["name"] = "Uploaded"
    files = {"file": ("palette.json", json.dumps(palette).encode(), "application/json")}
    resp = await client.post("/api/v1/palette/upload", files=files, headers=headers)
    assert resp.status_code == 200

    resp = await client.get("/api/v1/palette/export")
    assert resp.status_code == 200
    assert "attachment" in resp.headers["content-disposition"]
    assert json.loads(resp.content)["name"] == "Uploaded"
