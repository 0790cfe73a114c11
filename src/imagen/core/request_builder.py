"""Construction of OpenRouter chat-completion requests for image models.

Which parameters a request carries depends on the capability table in
:mod:`imagen.core.models`:

- reference images are attached only for models that accept image input,
  up to the model's ``max_references``
- Gemini models take an ``image_config`` with the size tier and aspect ratio
- other models that accept an aspect ratio take it as a top-level field
"""

from __future__ import annotations

import logging

from .models import GenerationSettings, ModelCapability

logger = logging.getLogger(__name__)


def is_gemini_model(model_id: str) -> bool:
    return "gemini" in model_id


def build_message_content(
    prompt: str, capability: ModelCapability, references: tuple[str, ...] | list[str]
) -> str | list[dict]:
    """Build the user message content.

    Reference images come first, followed by the prompt text.  When the
    prompt is the only part, the bare string is returned instead of a list.
    """
    content: list[dict] = []

    if capability.supports_image_input:
        usable = [ref for ref in references if ref]
        if len(usable) > capability.max_references:
            logger.warning(
                f"{capability.name} accepts {capability.max_references} reference(s); "
                f"dropping {len(usable) - capability.max_references}"
            )
            usable = usable[: capability.max_references]
        for ref in usable:
            content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": ref, "detail": "high"},
                }
            )

    content.append({"type": "text", "text": prompt})

    if len(content) == 1:
        return prompt
    return content


def build_request_body(
    prompt: str,
    model_id: str,
    capability: ModelCapability,
    settings: GenerationSettings,
) -> dict:
    """Build the JSON body for one generation unit.

    Args:
        prompt: Prompt text
        model_id: OpenRouter model identifier
        capability: Capability entry for ``model_id``
        settings: Parameters captured for the batch

    Returns:
        Dictionary ready to be sent as the request JSON
    """
    body: dict = {
        "model": model_id,
        "messages": [
            {
                "role": "user",
                "content": build_message_content(prompt, capability, settings.references),
            }
        ],
        "modalities": list(capability.modalities),
    }

    gemini = is_gemini_model(model_id)

    if capability.supports_image_size and gemini:
        body["image_config"] = {
            "image_size": settings.quality.lower(),
            "aspect_ratio": settings.aspect_ratio,
        }

    if capability.supports_aspect_ratio and not gemini:
        body["aspect_ratio"] = settings.aspect_ratio

    return body


def build_headers(api_key: str, referer: str, title: str) -> dict[str, str]:
    """Headers for an authenticated OpenRouter request."""
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "HTTP-Referer": referer,
        "X-Title": title,
    }
