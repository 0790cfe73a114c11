"""Core functionality for Imagen.

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with IMAGEN_ in .env files

2. **Persistence Layer** (record_store.py, preferences.py):
   - SQLite store of immutable image records, newest first
   - JSON file for last-used API key and model

3. **Generation Layer** (request_builder.py, response_parser.py, generation_client.py):
   - Capability-driven request construction
   - Tolerant extraction of the image from model-specific response shapes
   - OpenRouter client over httpx

4. **State Layer** (batch_tracker.py, gallery.py, controller.py):
   - In-flight batches with completed/failed/pending counts
   - In-memory gallery mirrored to the store in the background
   - Controller owning the session state and all user commands

5. **View Projection** (view.py, images.py):
   - Cards and placeholders for the page, safe image URLs
"""

from .batch_tracker import BatchTracker, GenerationBatch
from .config import ImagenConfig, config
from .controller import AppState, ImagenController
from .gallery import GalleryState
from .generation_client import ImageGenerationClient, OpenRouterClient
from .models import MODEL_CONFIGS, GenerationSettings, ImageRecord, ModelCapability
from .preferences import PreferenceStore
from .record_store import ImageRecordStore

__all__ = [
    "AppState",
    "BatchTracker",
    "GalleryState",
    "GenerationBatch",
    "GenerationSettings",
    "ImageGenerationClient",
    "ImageRecord",
    "ImageRecordStore",
    "ImagenConfig",
    "ImagenController",
    "MODEL_CONFIGS",
    "ModelCapability",
    "OpenRouterClient",
    "PreferenceStore",
    "config",
]
