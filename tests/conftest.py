"""Shared pytest fixtures for Imagen tests."""

from __future__ import annotations

import asyncio
import base64
import io
import shutil
import tempfile
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator

import pytest
from PIL import Image

from imagen.core.config import ImagenConfig
from imagen.core.controller import ImagenController
from imagen.core.gallery import GalleryState
from imagen.core.generation_client import ImageGenerationClient
from imagen.core.models import GenerationRequest, ImageRecord
from imagen.core.preferences import PreferenceStore
from imagen.core.record_store import ImageRecordStore

PNG_DATA_URI = "data:image/png;base64,iVBORw0KGgo="


class FakeGenerationClient(ImageGenerationClient):
    """Scripted generation client.

    Each call pops the next entry of ``outcomes``: an exception instance is
    raised, anything else is returned as the image.  When the script runs
    out, every call succeeds with :data:`PNG_DATA_URI`.
    """

    def __init__(self, outcomes: list | None = None):
        self.outcomes = list(outcomes or [])
        self.requests: list[GenerationRequest] = []
        self.closed = False

    async def generate(self, request: GenerationRequest) -> str:
        self.requests.append(request)
        # Yield once so units of a batch interleave like real requests.
        await asyncio.sleep(0)
        outcome = self.outcomes.pop(0) if self.outcomes else PNG_DATA_URI
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> ImagenConfig:
    """Configuration rooted in a temporary data directory."""
    return ImagenConfig(
        data_dir=temp_dir / "data",
        api_url="https://openrouter.test/api/v1/chat/completions",
        request_timeout=5.0,
        _env_file=None,
    )


@pytest.fixture
def record_store(test_config: ImagenConfig) -> ImageRecordStore:
    return ImageRecordStore(test_config.database_path)


@pytest.fixture
def gallery(record_store: ImageRecordStore) -> Generator[GalleryState, None, None]:
    state = GalleryState(record_store)
    yield state
    state.close()


@pytest.fixture
def preferences(test_config: ImagenConfig) -> PreferenceStore:
    return PreferenceStore(test_config.preferences_path)


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def controller(
    gallery: GalleryState,
    fake_client: FakeGenerationClient,
    preferences: PreferenceStore,
) -> ImagenController:
    """Controller wired to a real store, a fake client, and an API key."""
    ctrl = ImagenController(gallery=gallery, client=fake_client, preferences=preferences)
    ctrl.state.api_key = "sk-or-test-key"
    return ctrl


@pytest.fixture
def make_record() -> Callable[..., ImageRecord]:
    """Factory for records with controllable timestamps.

    ``minutes`` offsets ``created_at`` from a fixed base time so tests can
    build records in a known chronological order.
    """
    base = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def _make(minutes: int = 0, **overrides) -> ImageRecord:
        fields = {
            "url": PNG_DATA_URI,
            "prompt": f"record at +{minutes}m",
            "model": "google/gemini-2.5-flash-image",
            "model_name": "Gemini 2.5 Flash Image",
            "created_at": base + timedelta(minutes=minutes),
        }
        fields.update(overrides)
        return ImageRecord(**fields)

    return _make


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny real PNG file."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(255, 0, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_data_uri(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def patched_app(monkeypatch, test_config: ImagenConfig, fake_client: FakeGenerationClient):
    """The FastAPI app wired to a temporary data directory and the fake client.

    The controller is built by the real wiring but talks to the scripted
    fake client instead of OpenRouter.
    """
    from imagen.api import main

    real_build = main.build_controller

    def build(cfg: ImagenConfig) -> ImagenController:
        ctrl = real_build(cfg)
        ctrl.client = fake_client
        return ctrl

    monkeypatch.setattr(main, "config", test_config)
    monkeypatch.setattr(main, "build_controller", build)
    return main.app


@pytest.fixture
def test_client(patched_app) -> Generator:
    """TestClient for the patched app.

    Entering the client runs the startup lifespan; leaving it runs shutdown,
    which drains pending store writes.
    """
    from fastapi.testclient import TestClient

    with TestClient(patched_app) as client:
        yield client
