"""Site colour palette, stored as one JSON document in object storage."""
import copy
import json
import re
from datetime import datetime, timezone
from typing import Any

import structlog

from app.config import settings
from app.exceptions import NotFoundError, PaletteValidationError
from app.services.storage_service import ObjectStorage

logger = structlog.get_logger()

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

REQUIRED_KEYS = ("version", "name", "colors", "semantic", "metadata")
COLOR_FAMILIES = ("primary", "secondary", "accent", "neutral", "success", "warning", "error")
SHADES = ("50", "100", "200", "300", "400", "500", "600", "700", "800", "900", "950")

_DEFAULT_SHADES = {
    "primary": "#eff6ff #dbeafe #bfdbfe #93c5fd #60a5fa #3b82f6 #2563eb #1d4ed8 #1e40af #1e3a8a #172554",
    "secondary": "#f8fafc #f1f5f9 #e2e8f0 #cbd5e1 #94a3b8 #64748b #475569 #334155 #1e293b #0f172a #020617",
    "accent": "#fdf4ff #fae8ff #f5d0fe #f0abfc #e879f9 #d946ef #c026d3 #a21caf #86198f #701a75 #4a044e",
    "neutral": "#fafafa #f5f5f5 #e5e5e5 #d4d4d4 #a3a3a3 #737373 #525252 #404040 #262626 #171717 #0a0a0a",
    "success": "#f0fdf4 #dcfce7 #bbf7d0 #86efac #4ade80 #22c55e #16a34a #15803d #166534 #14532d #052e16",
    "warning": "#fffbeb #fef3c7 #fde68a #fcd34d #fbbf24 #f59e0b #d97706 #b45309 #92400e #78350f #451a03",
    "error": "#fef2f2 #fee2e2 #fecaca #fca5a5 #f87171 #ef4444 #dc2626 #b91c1c #991b1b #7f1d1d #450a0a",
}

_DEFAULT_SEMANTIC = {
    "background": "#ffffff",
    "foreground": "#0a0a0a",
    "card": "#ffffff",
    "cardForeground": "#0a0a0a",
    "popover": "#ffffff",
    "popoverForeground": "#0a0a0a",
    "muted": "#f5f5f5",
    "mutedForeground": "#737373",
    "border": "#e5e5e5",
    "input": "#e5e5e5",
    "ring": "#3b82f6",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def validate_color(value: Any) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR.match(value))


def default_palette() -> dict:
    now = _now()
    return {
        "version": "1.0.0",
        "name": "Default Theme",
        "colors": {
            family: dict(zip(SHADES, values.split()))
            for family, values in _DEFAULT_SHADES.items()
        },
        "semantic": dict(_DEFAULT_SEMANTIC),
        "metadata": {"createdAt": now, "updatedAt": now, "author": "System"},
    }


def validate_palette(doc: Any) -> list[str]:
    """Return every structural problem with ``doc``; empty means valid."""
    if not isinstance(doc, dict):
        return ["Palette must be a JSON object"]

    errors = [f"Missing required key: {key}" for key in REQUIRED_KEYS if not doc.get(key)]

    colors = doc.get("colors")
    if isinstance(colors, dict):
        for family in COLOR_FAMILIES:
            if family not in colors:
                errors.append(f"Missing colour family: {family}")
        for family in sorted(set(colors) - set(COLOR_FAMILIES)):
            errors.append(f"Unknown colour family: {family}")
        for family in COLOR_FAMILIES:
            shades = colors.get(family)
            if family not in colors:
                continue
            if not isinstance(shades, dict):
                errors.append(f"Colour family {family} must be an object")
                continue
            for shade in SHADES:
                if shade not in shades:
                    errors.append(f"Missing shade {family}.{shade}")
                elif not validate_color(shades[shade]):
                    errors.append(f"Invalid colour {family}.{shade}: {shades[shade]!r}")
            for shade in sorted(set(shades) - set(SHADES)):
                errors.append(f"Unknown shade {family}.{shade}")
    elif "colors" in doc:
        errors.append("colors must be an object")

    semantic = doc.get("semantic")
    if semantic is not None and not isinstance(semantic, dict):
        errors.append("semantic must be an object")
    elif isinstance(semantic, dict):
        for name, value in semantic.items():
            if not validate_color(value):
                errors.append(f"Invalid semantic colour {name}: {value!r}")

    if "metadata" in doc and not isinstance(doc["metadata"], dict):
        errors.append("metadata must be an object")
    return errors


async def get_palette(storage: ObjectStorage) -> dict:
    """Stored palette, or the default when it is missing or unreadable."""
    try:
        raw = await storage.download(settings.PUBLIC_ASSETS_BUCKET, settings.PALETTE_PATH)
    except NotFoundError:
        logger.warning("palette_not_found_using_default")
        return default_palette()

    try:
        palette = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("palette_unparseable_using_default")
        return default_palette()

    errors = validate_palette(palette)
    if errors:
        logger.warning("palette_invalid_using_default", errors=errors[:5])
        return default_palette()
    return palette


async def update_palette(storage: ObjectStorage, palette: dict, user_id: str) -> dict:
    palette = copy.deepcopy(palette)
    metadata = palette.get("metadata")
    if isinstance(metadata, dict):
        metadata.setdefault("createdAt", _now())
        metadata["updatedAt"] = _now()
        metadata["author"] = user_id

    errors = validate_palette(palette)
    if errors:
        raise PaletteValidationError("Invalid palette structure", errors)

    await storage.upload(
        settings.PUBLIC_ASSETS_BUCKET, settings.PALETTE_PATH, export_bytes(palette), upsert=True,
    )
    logger.info("palette_updated", author=user_id, name=palette["name"])
    return palette


async def upload_palette_file(storage: ObjectStorage, raw: bytes, user_id: str) -> dict:
    try:
        palette = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PaletteValidationError("Palette file is not valid JSON", [str(exc)]) from exc
    return await update_palette(storage, palette, user_id)


def export_bytes(palette: dict) -> bytes:
    return json.dumps(palette, indent=2).encode("utf-8")


async def export_palette(storage: ObjectStorage) -> bytes:
    return export_bytes(await get_palette(storage))
