"""File upload validation with MIME + magic byte dual verification.

Security measures:
- Content-Type header check against allowlist
- Magic byte detection for real file type verification
- File size limits per type
- Filename sanitization (random object names, path traversal block)
"""
import io
import logging
import os
import re
import uuid
from enum import Enum

from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.exceptions import FileValidationError

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class FileType(str, Enum):
    IMAGE = "image"
    DOCUMENT = "document"


ALLOWED_MIMES: dict[str, list[str]] = {
    "image": ["image/jpeg", "image/png", "image/gif", "image/webp"],
    "document": ["application/pdf"],
}

MAX_SIZES: dict[str, int] = {
    "image": settings.MAX_IMAGE_SIZE_MB * MB,
    "document": settings.MAX_DOCUMENT_SIZE_MB * MB,
}

EXTENSION_MAP: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "application/pdf": ".pdf",
}

# Magic byte signatures for file type detection
MAGIC_SIGNATURES: dict[str, list[tuple[bytes, int]]] = {
    "image/jpeg": [(b"\xff\xd8\xff", 0)],
    "image/png": [(b"\x89PNG\r\n\x1a\n", 0)],
    "image/gif": [(b"GIF87a", 0), (b"GIF89a", 0)],
    "image/webp": [(b"RIFF", 0)],  # RIFF....WEBP
    "application/pdf": [(b"%PDF", 0)],
}


def detect_mime_by_magic(file_bytes: bytes) -> str | None:
    """Detect MIME type by examining magic bytes."""
    if len(file_bytes) < 12:
        return None

    for mime, signatures in MAGIC_SIGNATURES.items():
        for magic_bytes, offset in signatures:
            end = offset + len(magic_bytes)
            if file_bytes[offset:end] == magic_bytes:
                # RIFF is shared with other containers
                if mime == "image/webp" and file_bytes[8:12] != b"WEBP":
                    continue
                return mime
    return None


def validate_content_type(content_type: str, file_type: FileType) -> None:
    allowed = ALLOWED_MIMES[file_type.value]
    if content_type not in allowed:
        noun = "an image" if file_type == FileType.IMAGE else "a PDF"
        raise FileValidationError(
            f"File must be {noun}",
            [f"Invalid content type '{content_type}'. Allowed: {', '.join(allowed)}"],
        )


def validate_magic_bytes(file_bytes: bytes, content_type: str, file_type: FileType) -> str:
    """Verify magic bytes match the declared type; returns the detected MIME."""
    detected = detect_mime_by_magic(file_bytes)
    if detected is None:
        raise FileValidationError("Cannot determine file type from its contents")
    if detected not in ALLOWED_MIMES[file_type.value]:
        raise FileValidationError(f"MIME mismatch: header={content_type}, detected={detected}")
    return detected


def validate_file_size(size: int, file_type: FileType, max_size: int | None = None) -> None:
    max_size = max_size or MAX_SIZES[file_type.value]
    if size == 0:
        raise FileValidationError("File is empty")
    if size > max_size:
        raise FileValidationError(
            f"File too large: {size} bytes (max: {max_size / MB:.0f} MB)"
        )


def sanitize_filename(original_filename: str) -> str:
    """Random object name that keeps only a safe, lowercase extension."""
    if ".." in original_filename or "/" in original_filename or "\\" in original_filename:
        raise FileValidationError("Invalid filename: path traversal detected")

    _, ext = os.path.splitext(original_filename)
    safe_ext = re.sub(r"[^a-z0-9.]", "", ext.lower())
    return f"{uuid.uuid4().hex}{safe_ext}"


def validate_file(
    file_bytes: bytes,
    content_type: str,
    file_type: FileType,
    filename: str | None = None,
    max_size: int | None = None,
) -> dict[str, str]:
    """Full validation pipeline.

    Returns:
        dict with safe_filename and detected_mime

    Raises:
        FileValidationError: If any check fails
    """
    validate_content_type(content_type, file_type)
    validate_file_size(len(file_bytes), file_type, max_size)
    detected = validate_magic_bytes(file_bytes, content_type, file_type)

    safe_name = sanitize_filename(filename or "file")
    if not os.path.splitext(safe_name)[1]:
        safe_name += EXTENSION_MAP.get(detected, "")

    return {"safe_filename": safe_name, "detected_mime": detected}


def fit_within(file_bytes: bytes, max_dimension: int) -> tuple[bytes, str]:
    """Shrink an image to fit a ``max_dimension`` square, keeping aspect ratio.

    Returns the encoded bytes and their MIME type (PNG when the image has
    transparency, JPEG otherwise).
    """
    try:
        img = Image.open(io.BytesIO(file_bytes))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise FileValidationError("Image could not be decoded") from exc

    img.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

    output = io.BytesIO()
    if img.mode in ("RGBA", "LA", "P"):
        img.save(output, format="PNG")
        return output.getvalue(), "image/png"
    if img.mode != "RGB":
        img = img.convert("RGB")
    img.save(output, format="JPEG", quality=90)
    return output.getvalue(), "image/jpeg"
