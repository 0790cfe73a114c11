"""Extraction of the generated image from an OpenRouter response.

OpenRouter does not return images in the same place for every model.  The
lookup order is:

1. ``message.images`` (OpenRouter's image list, first entry)
2. image-bearing parts of a structured ``message.content`` list
3. a ``message.content`` string that is itself a data URI

Bare base64 payloads without a media type are assumed to be PNG.
"""

from __future__ import annotations

from typing import Any

from .errors import NoImageInResponse

DEFAULT_MEDIA_TYPE = "image/png"


def _as_data_uri(payload: str, media_type: str = DEFAULT_MEDIA_TYPE) -> str:
    return f"data:{media_type};base64,{payload}"


def _is_payload(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def get_message(data: Any) -> dict | None:
    """Return ``choices[0].message`` or None when the shape doesn't match."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    return message if isinstance(message, dict) else None


def _from_images_list(images: Any) -> str | None:
    if not isinstance(images, list) or not images:
        return None

    img = images[0]

    if isinstance(img, str):
        if not img:
            return None
        if img.startswith("data:") or img.startswith("http"):
            return img
        return _as_data_uri(img)

    if not isinstance(img, dict):
        return None

    image_url = img.get("image_url")
    if isinstance(image_url, dict) and _is_payload(image_url.get("url")):
        return image_url["url"]
    if _is_payload(img.get("url")):
        return img["url"]
    if _is_payload(img.get("b64_json")):
        return _as_data_uri(img["b64_json"])
    return None


def _from_content_parts(parts: list) -> str | None:
    for part in parts:
        if not isinstance(part, dict):
            continue

        # OpenAI-style part
        image_url = part.get("image_url")
        if (
            part.get("type") == "image_url"
            and isinstance(image_url, dict)
            and _is_payload(image_url.get("url"))
        ):
            return image_url["url"]

        # Gemini-style part
        inline = part.get("inlineData")
        if isinstance(inline, dict) and _is_payload(inline.get("data")):
            media_type = inline.get("mimeType")
            if not _is_payload(media_type):
                media_type = DEFAULT_MEDIA_TYPE
            return _as_data_uri(inline["data"], media_type)

        image = part.get("image")
        if part.get("type") == "image" and isinstance(image, str) and image:
            if image.startswith("data:"):
                return image
            return _as_data_uri(image)

    return None


def extract_image(data: Any) -> str:
    """Find the generated image in a parsed response body.

    Args:
        data: Parsed JSON response

    Returns:
        A data URI or remote URL for the image

    Raises:
        NoImageInResponse: If no recognisable image payload is present
    """
    message = get_message(data)
    if message is None:
        raise NoImageInResponse("No response from model")

    url = _from_images_list(message.get("images"))
    if url:
        return url

    content = message.get("content")

    if isinstance(content, list):
        url = _from_content_parts(content)
        if url:
            return url

    if isinstance(content, str) and content.startswith("data:image"):
        return content

    raise NoImageInResponse()
