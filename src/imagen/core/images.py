"""Helpers for image payloads: data URIs, uploads and safe display URLs."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(
    r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.S
)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


def image_bytes_to_data_uri(raw: bytes) -> str:
    """Validate uploaded bytes as an image and encode them as a data URI.

    Raises:
        ValueError: If the bytes are not an image Pillow can identify
    """
    try:
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
            media_type = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValueError("File is not a supported image") from e

    if not media_type:
        raise ValueError("File is not a supported image")

    encoded = base64.b64encode(raw).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into its media type and decoded bytes.

    Raises:
        ValueError: If ``uri`` is not a base64 data URI
    """
    match = _DATA_URI.match(uri)
    if not match or not match.group("b64"):
        raise ValueError("Not a base64 data URI")
    try:
        payload = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return match.group("media_type") or "image/png", payload


def extension_for(media_type: str) -> str:
    return _EXTENSIONS.get(media_type, "png")


def sanitize_image_url(url: str | None) -> str:
    """Return a URL that is safe to place in an ``<img src>`` attribute.

    Only ``data:image/`` URIs and ``https://`` URLs are allowed; quotes in
    https URLs are percent-encoded.  Anything else is blocked and an empty
    string is returned.
    """
    if not url:
        return ""
    if url.startswith("data:image/"):
        return url
    if url.startswith("https://"):
        return url.replace('"', "%22").replace("'", "%27")
    logger.warning(f"Blocked unsafe image URL: {url[:80]}")
    return ""
