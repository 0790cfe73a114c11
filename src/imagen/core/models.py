"""Data models and static model metadata for Imagen.

This module holds the record type persisted to the gallery, the parameter
snapshot captured when a batch is submitted, and the capability table that
describes what each OpenRouter image model accepts.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class ModelCapability:
    """Static capabilities of one image generation model.

    Attributes
    ----------
    name : str
        Display name shown in the model picker and on gallery cards
    supports_image_size : bool
        Model accepts an explicit output size tier (``image_config.image_size``)
    supports_aspect_ratio : bool
        Model accepts an aspect ratio parameter
    supports_image_input : bool
        Model accepts reference images in the user message
    max_references : int
        Maximum number of reference images sent per request
    modalities : tuple[str, ...]
        Output modalities requested from OpenRouter
    """

    name: str
    supports_image_size: bool
    supports_aspect_ratio: bool
    supports_image_input: bool
    max_references: int
    modalities: tuple[str, ...] = ("image",)

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "supports_image_size": self.supports_image_size,
            "supports_aspect_ratio": self.supports_aspect_ratio,
            "supports_image_input": self.supports_image_input,
            "max_references": self.max_references,
            "modalities": list(self.modalities),
        }


_IMAGE_AND_TEXT = ("image", "text")
_IMAGE_ONLY = ("image",)

MODEL_CONFIGS: dict[str, ModelCapability] = {
    "google/gemini-2.5-flash-image": ModelCapability(
        name="Gemini 2.5 Flash Image",
        supports_image_size=True,
        supports_aspect_ratio=True,
        supports_image_input=True,
        max_references=3,
        modalities=_IMAGE_AND_TEXT,
    ),
    "google/gemini-2.5-flash-image-preview": ModelCapability(
        name="Gemini 2.5 Flash Image (Preview)",
        supports_image_size=True,
        supports_aspect_ratio=True,
        supports_image_input=True,
        max_references=3,
        modalities=_IMAGE_AND_TEXT,
    ),
    "google/gemini-3-pro-image-preview": ModelCapability(
        name="Gemini 3 Pro Image (Preview)",
        supports_image_size=True,
        supports_aspect_ratio=True,
        supports_image_input=True,
        max_references=14,
        modalities=_IMAGE_AND_TEXT,
    ),
    "openai/gpt-5-image": ModelCapability(
        name="GPT-5 Image",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=True,
        max_references=1,
        modalities=_IMAGE_AND_TEXT,
    ),
    "openai/gpt-5-image-mini": ModelCapability(
        name="GPT-5 Image Mini",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=True,
        max_references=1,
        modalities=_IMAGE_AND_TEXT,
    ),
    "black-forest-labs/flux.2-pro": ModelCapability(
        name="Flux 2 Pro",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "black-forest-labs/flux.2-max": ModelCapability(
        name="Flux 2 Max",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "black-forest-labs/flux.2-flex": ModelCapability(
        name="Flux 2 Flex",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "black-forest-labs/flux.2-klein-4b": ModelCapability(
        name="Flux 2 Klein 4B",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "bytedance-seed/seedream-4.5": ModelCapability(
        name="Seedream 4.5",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "sourceful/riverflow-v2-fast-preview": ModelCapability(
        name="Riverflow V2 Fast",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "sourceful/riverflow-v2-standard-preview": ModelCapability(
        name="Riverflow V2 Standard",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
    "sourceful/riverflow-v2-max-preview": ModelCapability(
        name="Riverflow V2 Max",
        supports_image_size=False,
        supports_aspect_ratio=True,
        supports_image_input=False,
        max_references=0,
        modalities=_IMAGE_ONLY,
    ),
}

DEFAULT_MODEL = "google/gemini-2.5-flash-image"

# Quality tier -> pixel size shown alongside it in the UI.
SIZE_PRESETS: dict[str, str] = {
    "1K": "1024x1024",
    "2K": "2048x2048",
    "4K": "4096x4096",
}

ASPECT_RATIOS = [
    "1:1",
    "2:3",
    "3:2",
    "3:4",
    "4:3",
    "4:5",
    "5:4",
    "9:16",
    "16:9",
    "21:9",
]

DEFAULT_QUALITY = "1K"
DEFAULT_SIZE = SIZE_PRESETS[DEFAULT_QUALITY]
DEFAULT_ASPECT_RATIO = "1:1"


def get_model_capability(model_id: str) -> ModelCapability:
    """Look up a model in the capability table.

    Raises:
        ValueError: If the model is not in the table
    """
    try:
        return MODEL_CONFIGS[model_id]
    except KeyError:
        raise ValueError(f"Unknown model: {model_id}") from None


@dataclass(frozen=True)
class GenerationSettings:
    """Parameters captured when a batch is submitted.

    A snapshot is taken so that changing the live settings while a batch is
    generating never affects the units already in flight.
    """

    model: str
    size: str = DEFAULT_SIZE
    quality: str = DEFAULT_QUALITY
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    references: tuple[str, ...] = ()


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the generation client needs for one unit."""

    prompt: str
    api_key: str
    capability: ModelCapability
    settings: GenerationSettings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ImageRecord(BaseModel):
    """A generated image plus the parameters that produced it.

    Records are immutable once created.  ``created_at`` is the gallery sort
    key (newest first).
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    url: str = Field(..., description="Remote https URL or data:image URI.")
    prompt: str
    model: str
    model_name: str
    size: str = DEFAULT_SIZE
    quality: str = DEFAULT_QUALITY
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    references: tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_generation(
        cls, url: str, prompt: str, model_name: str, settings: GenerationSettings
    ) -> "ImageRecord":
        """Build a fresh record for a successful generation unit."""
        return cls(
            url=url,
            prompt=prompt,
            model=settings.model,
            model_name=model_name,
            size=settings.size,
            quality=settings.quality,
            aspect_ratio=settings.aspect_ratio,
            references=settings.references,
        )


NotificationLevel = Literal["info", "success", "warning", "error"]


@dataclass
class Notification:
    """A transient message shown to the user as a toast.

    ``seq`` increases by one for every notification of a session, so a poller
    can ask for the ones it has not shown yet.
    """

    message: str
    level: NotificationLevel = "info"
    seq: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict:
        return {
            "message": self.message,
            "level": self.level,
            "seq": self.seq,
            "created_at": self.created_at.isoformat(),
        }
