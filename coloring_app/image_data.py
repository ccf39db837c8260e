import base64
import binascii
import re
from io import BytesIO
from typing import Tuple

from PIL import Image

from coloring_app.exceptions import InvalidImageException

DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]+)*?);base64,(?P<data>.*)$", re.DOTALL)

# Pillow format name -> mime type
MIME_MAP = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def is_data_uri(value: str) -> bool:
    return value.startswith("data:")


def decode_data_uri(uri: str) -> Tuple[str, bytes]:
    """Returns (declared mime type, raw bytes) of a base64 data URI."""
    match = DATA_URI_RE.match(uri)
    if not match:
        raise InvalidImageException("Image data URI must be base64 encoded")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageException("Image data URI is not valid base64")
    return match.group("mime") or "image/png", data


def validate_image_bytes(file_bytes: bytes) -> str:
    """Validate that the bytes are a real raster image, returns its mime type."""
    try:
        img = Image.open(BytesIO(file_bytes))
        img.load()
    except Exception:
        raise InvalidImageException("Invalid image file")
    mime_type = MIME_MAP.get((img.format or "").upper())
    if not mime_type:
        raise InvalidImageException(f"Unsupported image type: {img.format}")
    return mime_type
