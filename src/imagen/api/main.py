"""Imagen UI host: FastAPI application.

This module serves the single-page UI and a small JSON API whose routes map
one-to-one onto :class:`~imagen.core.controller.ImagenController` commands.
It binds to loopback by default: it is the local shell of a single-user tool,
not a shared backend.

Architecture
------------
- **Session state** lives in one controller created at startup and stored on
  ``app.state.controller``.
- **Image generation** runs as asyncio tasks on the server's event loop; the
  page polls ``/api/gallery`` to render placeholders and finished images.
- **Persistence** is the SQLite record store plus a JSON preferences file,
  both under ``config.data_dir``.
- **The HTML page** is served as a raw ``HTMLResponse`` from
  ``templates/index.html``.

Endpoints
---------
========  ================================  ================================
Method    Path                              Purpose
========  ================================  ================================
GET       ``/``                             Serve the main HTML page
GET       ``/api/config``                   Models, size tiers, aspect ratios
GET       ``/api/state``                    Session settings and references
PUT       ``/api/settings``                 Update generation settings
POST      ``/api/settings/api-key``         Save the API key
POST      ``/api/references``               Upload reference image(s)
DELETE    ``/api/references/{index}``       Remove one reference
DELETE    ``/api/references``               Clear references
POST      ``/api/generate``                 Submit a batch
GET       ``/api/batches``                  Active batches
GET       ``/api/gallery``                  Cards and placeholders
GET       ``/api/gallery/{id}``             Open an image's details
POST      ``/api/gallery/close``            Close the detail view
DELETE    ``/api/gallery/{id}``             Delete an image
DELETE    ``/api/gallery``                  Clear the gallery
POST      ``/api/gallery/{id}/reference``   Use an image as reference
POST      ``/api/gallery/{id}/recreate``    Restore an image's settings
GET       ``/api/gallery/{id}/download``    Download an image
GET       ``/api/notifications``            Toasts since a sequence number
========  ================================  ================================

Usage
-----
CLI (installed entry point)::

    imagen

Direct invocation::

    python -m imagen.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from imagen import __version__
from imagen.api.models import ApiKeyRequest, GenerateRequest, SettingsUpdate
from imagen.core.config import ImagenConfig, config
from imagen.core.controller import ImagenController
from imagen.core.errors import EmptyPrompt, ImageNotFound, MissingCredential
from imagen.core.gallery import GalleryState
from imagen.core.generation_client import OpenRouterClient
from imagen.core.models import ASPECT_RATIOS, MODEL_CONFIGS, SIZE_PRESETS
from imagen.core.preferences import PreferenceStore
from imagen.core.record_store import ImageRecordStore
from imagen.core.view import build_gallery_view, build_record_detail

logger = logging.getLogger(__name__)


def build_controller(cfg: ImagenConfig) -> ImagenController:
    """Wire the controller and its collaborators from configuration."""
    client = OpenRouterClient(
        api_url=cfg.api_url,
        timeout=cfg.request_timeout,
        referer=cfg.app_referer,
        title=cfg.app_title,
    )
    return ImagenController(
        gallery=GalleryState(ImageRecordStore(cfg.database_path)),
        client=client,
        preferences=PreferenceStore(cfg.preferences_path),
        max_image_count=cfg.max_image_count,
        default_model=cfg.default_model,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Builds the controller, restores preferences and loads the gallery.
        A gallery that fails to load starts empty.

    On shutdown:
        Waits for in-flight batches, flushes pending store writes, and closes
        the HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    controller = build_controller(config)
    await controller.initialize()
    app.state.controller = controller
    logger.info("Controller ready.")

    yield

    await controller.shutdown()
    logger.info("Controller shut down.")


app = FastAPI(
    title="Imagen",
    description="Local image generation tool with a persistent gallery.",
    version=__version__,
    lifespan=lifespan,
)


def _controller() -> ImagenController:
    return app.state.controller


# ---------------------------------------------------------------------------
# Page and configuration.
# ---------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the main application HTML page.

    Raises:
        HTTPException: 404 if ``index.html`` is not found.
    """
    index_path = config.templates_dir / "index.html"
    if index_path.exists():
        return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
    raise HTTPException(status_code=404, detail="index.html not found")


@app.get("/api/config")
async def get_config() -> dict:
    """Return the static configuration the page needs to build its controls."""
    controller = _controller()
    return {
        "version": __version__,
        "models": [
            {"id": model_id, **capability.as_dict()}
            for model_id, capability in MODEL_CONFIGS.items()
        ],
        "size_presets": SIZE_PRESETS,
        "aspect_ratios": ASPECT_RATIOS,
        "max_image_count": controller.max_image_count,
    }


@app.get("/api/state")
async def get_state() -> dict:
    """Return the session settings.  The API key is masked."""
    controller = _controller()
    return {
        **controller.state.as_dict(),
        "active_batches": len(controller.tracker),
        "navigation_warning": controller.navigation_warning(),
    }


@app.put("/api/settings")
async def update_settings(req: SettingsUpdate) -> dict:
    """Apply the supplied settings.

    Raises:
        HTTPException: 400 for an unknown model, size tier or aspect ratio.
    """
    controller = _controller()
    try:
        if req.model is not None:
            controller.select_model(req.model)
        if req.quality is not None:
            controller.set_quality(req.quality)
        if req.aspect_ratio is not None:
            controller.set_aspect_ratio(req.aspect_ratio)
        if req.image_count is not None:
            controller.set_image_count(req.image_count)
        if req.prompt is not None:
            controller.set_prompt(req.prompt)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return controller.state.as_dict()


@app.post("/api/settings/api-key")
async def save_api_key(req: ApiKeyRequest) -> dict:
    controller = _controller()
    controller.save_api_key(req.api_key)
    return {"success": True, "has_api_key": bool(controller.state.api_key)}


# ---------------------------------------------------------------------------
# Reference images.
# ---------------------------------------------------------------------------


@app.post("/api/references")
async def upload_references(files: list[UploadFile] = File(...)) -> dict:
    """Add uploaded files as reference images.  Non-image files are skipped.

    Raises:
        HTTPException: 400 if none of the files is an image.
    """
    controller = _controller()
    added = 0
    skipped: list[str] = []

    for upload in files:
        raw = await upload.read()
        try:
            controller.add_reference_bytes(raw)
            added += 1
        except ValueError:
            logger.warning(f"Skipping non-image upload: {upload.filename}")
            skipped.append(upload.filename or "")

    if not added:
        raise HTTPException(status_code=400, detail="No image files were uploaded")

    return {"added": added, "skipped": skipped, "references": controller.state.references}


@app.delete("/api/references/{index}")
async def remove_reference(index: int) -> dict:
    controller = _controller()
    try:
        controller.remove_reference(index)
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"references": controller.state.references}


@app.delete("/api/references")
async def clear_references() -> dict:
    controller = _controller()
    controller.clear_references()
    return {"references": []}


# ---------------------------------------------------------------------------
# Generation.
# ---------------------------------------------------------------------------


@app.post("/api/generate")
async def generate_images(req: GenerateRequest, wait: bool = False) -> dict:
    """Submit a batch of ``image_count`` images.

    Returns immediately with the batch id; the page polls ``/api/gallery``
    for progress.  ``wait=true`` blocks until every unit has settled, which
    is convenient for scripts.

    Raises:
        HTTPException: 400 for an empty prompt or missing API key.
    """
    controller = _controller()
    try:
        batch_id = controller.submit_generation(req.prompt)
    except (EmptyPrompt, MissingCredential) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    # The batch object keeps its final counts after the tracker drops it.
    batch = controller.tracker.get(batch_id)
    if wait:
        await controller.wait_for_batch(batch_id)

    return {"success": True, "batch_id": batch_id, "batch": batch.as_dict() if batch else None}


@app.get("/api/batches")
async def get_batches() -> dict:
    controller = _controller()
    return {"batches": [batch.as_dict() for batch in controller.tracker.active()]}


# ---------------------------------------------------------------------------
# Gallery.
# ---------------------------------------------------------------------------


@app.get("/api/gallery")
async def get_gallery() -> dict:
    """Return placeholders for pending units followed by gallery cards."""
    controller = _controller()
    return build_gallery_view(controller.tracker, controller.gallery)


@app.post("/api/gallery/close")
async def close_image() -> dict:
    _controller().close_image()
    return {"success": True}


@app.get("/api/gallery/{image_id}")
async def get_image(image_id: str) -> dict:
    """Open an image in the detail view and return its metadata.

    Raises:
        HTTPException: 404 if the image is not found.
    """
    try:
        record = _controller().open_image(image_id)
    except ImageNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return build_record_detail(record)


@app.delete("/api/gallery/{image_id}")
async def delete_image(image_id: str) -> dict:
    """Delete an image.

    Raises:
        HTTPException: 404 if the image is not found.
    """
    if not _controller().delete_image(image_id):
        raise HTTPException(status_code=404, detail="Image not found")
    return {"success": True, "deleted": image_id}


@app.delete("/api/gallery")
async def clear_gallery() -> dict:
    _controller().clear_gallery()
    return {"success": True}


@app.post("/api/gallery/{image_id}/reference")
async def use_as_reference(image_id: str) -> dict:
    controller = _controller()
    try:
        controller.use_as_reference(image_id)
    except ImageNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"references": controller.state.references}


@app.post("/api/gallery/{image_id}/recreate")
async def recreate_image(image_id: str) -> dict:
    """Restore the settings an image was generated with.

    Raises:
        HTTPException: 404 if the image is not found.
    """
    controller = _controller()
    try:
        controller.recreate(image_id)
    except ImageNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return controller.state.as_dict()


@app.get("/api/gallery/{image_id}/download")
async def download_image(image_id: str) -> Response:
    """Download an image as an attachment, or redirect to a remote image.

    Raises:
        HTTPException: 404 if the image is not found, 422 if it has no
            downloadable data.
    """
    try:
        payload = _controller().download(image_id)
    except ImageNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if payload.url is not None:
        return RedirectResponse(payload.url)

    return Response(
        content=payload.content,
        media_type=payload.media_type,
        headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
    )


@app.get("/api/notifications")
async def get_notifications(after: int = 0) -> dict:
    """Return notifications newer than sequence number ``after``.

    The page passes the highest ``seq`` it has already shown, so toasts keep
    flowing after older notifications have been dropped.
    """
    notifications = _controller().notifications(after)
    return {"notifications": [n.as_dict() for n in notifications]}


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host, port and log level come from :data:`~imagen.core.config.config`
    (``IMAGEN_SERVER_HOST``, ``IMAGEN_SERVER_PORT``, ``IMAGEN_LOG_LEVEL``).

    This function is registered as the ``imagen`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "imagen.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
