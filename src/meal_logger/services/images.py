"""Helpers for embedding meal photos as data URLs."""

import base64
import binascii

from meal_logger.domain.errors import ValidationError

INVALID_IMAGE_MESSAGE = "Attach the photo as a base64 data URL."

_DATA_URL_PREFIX = "data:image/"


def to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"


def is_data_url(value: str) -> bool:
    """Return True for ``data:image/...;base64,`` strings."""
    header, _, payload = value.partition(",")
    return (
        header.startswith(_DATA_URL_PREFIX)
        and header.endswith(";base64")
        and bool(payload)
    )


def normalize_image(value: str) -> str:
    """Return a data URL for a data URL or bare base64 image string."""
    cleaned = value.strip()
    if is_data_url(cleaned):
        return cleaned
    try:
        image_bytes = base64.b64decode(cleaned, validate=True)
    except binascii.Error as exc:
        raise ValidationError(INVALID_IMAGE_MESSAGE) from exc
    if not image_bytes:
        raise ValidationError(INVALID_IMAGE_MESSAGE)
    return to_data_url(image_bytes)
