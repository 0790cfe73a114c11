"""Imagen - local image generation tool with a persistent gallery."""

__version__ = "0.3.0"

from imagen.core.config import ImagenConfig, config
from imagen.core.models import MODEL_CONFIGS, ImageRecord, ModelCapability

__all__ = [
    "ImageRecord",
    "ImagenConfig",
    "MODEL_CONFIGS",
    "ModelCapability",
    "config",
]
