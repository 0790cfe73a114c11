"""Pydantic request models for the Imagen UI host API.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
SettingsUpdate
    Payload for ``PUT /api/settings``; every field is optional and only the
    supplied ones are applied.
ApiKeyRequest
    Payload for ``POST /api/settings/api-key``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    Attributes:
        prompt: Prompt text.  ``None`` submits the draft prompt already held
            in the session state.
    """

    prompt: str | None = Field(
        default=None,
        description="Prompt text; omit to use the draft prompt in the session.",
    )


class SettingsUpdate(BaseModel):
    """Request body for the ``PUT /api/settings`` endpoint.

    Attributes:
        model: Model identifier from the capability table.
        quality: Size tier (``1K``, ``2K`` or ``4K``).
        aspect_ratio: Aspect ratio such as ``16:9``.
        image_count: Images per submission; clamped to the configured range.
        prompt: Draft prompt text.
    """

    model_config = ConfigDict(protected_namespaces=())

    model: str | None = Field(default=None, description="Model id from the capability table.")
    quality: str | None = Field(default=None, description="Size tier: 1K, 2K or 4K.")
    aspect_ratio: str | None = Field(default=None, description="Aspect ratio, e.g. '16:9'.")
    image_count: int | None = Field(default=None, description="Images per submission.")
    prompt: str | None = Field(default=None, description="Draft prompt text.")


class ApiKeyRequest(BaseModel):
    """Request body for the ``POST /api/settings/api-key`` endpoint."""

    api_key: str = Field(..., description="OpenRouter API key.")
