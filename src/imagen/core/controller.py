"""Application controller for Imagen.

The controller owns the single :class:`AppState` of the session and exposes
one method per user command.  The UI host calls these methods; it never
mutates the tracker, gallery, or state directly.

Generation flow
---------------
``submit_generation`` validates the input, snapshots the current settings,
registers a batch with the :class:`BatchTracker`, and launches every unit as
an asyncio task without waiting.  Each unit settles independently:

- success: a new :class:`ImageRecord` is inserted into the gallery (which
  persists it in the background) and the batch's completed count grows
- failure: the error is logged and the batch's failed count grows

When the last unit of a batch settles the batch is removed and a single
aggregate notification is emitted.  All of this runs on one event loop, so
no locking is required.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field

from .batch_tracker import BatchTracker
from .errors import EmptyPrompt, GenerationFailed, ImageNotFound, MissingCredential
from .gallery import GalleryState
from .generation_client import ImageGenerationClient
from .images import decode_data_uri, extension_for, image_bytes_to_data_uri
from .models import (
    ASPECT_RATIOS,
    DEFAULT_ASPECT_RATIO,
    DEFAULT_MODEL,
    DEFAULT_QUALITY,
    DEFAULT_SIZE,
    MODEL_CONFIGS,
    SIZE_PRESETS,
    GenerationRequest,
    GenerationSettings,
    ImageRecord,
    Notification,
    NotificationLevel,
    get_model_capability,
)
from .preferences import API_KEY, MODEL, PreferenceStore

logger = logging.getLogger(__name__)

NAVIGATION_WARNING = (
    "Images are still generating. If you leave now, the in-flight generations will be lost."
)


@dataclass
class AppState:
    """Session state for the single user of the tool.

    Attributes
    ----------
    api_key : str
        OpenRouter API key (empty when not configured)
    selected_model : str
        Model used for the next submission
    prompt : str
        Draft prompt in the input box
    image_size : str
        Pixel size matching ``image_quality``
    image_quality : str
        Size tier (1K, 2K, 4K)
    aspect_ratio : str
        Aspect ratio for the next submission
    image_count : int
        Number of images per submission
    references : list[str]
        Reference images (data URIs or URLs), in the order they were added
    current_image : ImageRecord | None
        Record open in the detail view
    """

    api_key: str = ""
    selected_model: str = DEFAULT_MODEL
    prompt: str = ""
    image_size: str = DEFAULT_SIZE
    image_quality: str = DEFAULT_QUALITY
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    image_count: int = 1
    references: list[str] = field(default_factory=list)
    current_image: ImageRecord | None = None

    def snapshot(self) -> GenerationSettings:
        """Capture the parameters a new batch will use."""
        return GenerationSettings(
            model=self.selected_model,
            size=self.image_size,
            quality=self.image_quality,
            aspect_ratio=self.aspect_ratio,
            references=tuple(self.references),
        )

    def masked_api_key(self) -> str:
        if not self.api_key:
            return ""
        if len(self.api_key) <= 8:
            return "*" * len(self.api_key)
        return f"{self.api_key[:4]}...{self.api_key[-4:]}"

    def as_dict(self) -> dict:
        return {
            "has_api_key": bool(self.api_key),
            "api_key": self.masked_api_key(),
            "selected_model": self.selected_model,
            "prompt": self.prompt,
            "image_size": self.image_size,
            "image_quality": self.image_quality,
            "aspect_ratio": self.aspect_ratio,
            "image_count": self.image_count,
            "references": list(self.references),
            "current_image_id": self.current_image.id if self.current_image else None,
        }


@dataclass
class DownloadPayload:
    """What the UI host needs to hand an image to the browser.

    Exactly one of ``content`` (decoded data URI) and ``url`` (remote image)
    is set.
    """

    filename: str
    media_type: str
    content: bytes | None = None
    url: str | None = None


class ImagenController:
    """Command handlers over the batch tracker, gallery, and session state."""

    def __init__(
        self,
        gallery: GalleryState,
        client: ImageGenerationClient,
        preferences: PreferenceStore | None = None,
        tracker: BatchTracker | None = None,
        state: AppState | None = None,
        max_image_count: int = 8,
        default_model: str = DEFAULT_MODEL,
        notification_limit: int = 50,
    ):
        self.gallery = gallery
        self.client = client
        self.preferences = preferences
        self.tracker = tracker if tracker is not None else BatchTracker()
        self.state = state if state is not None else AppState()
        self.max_image_count = max_image_count
        self.default_model = default_model if default_model in MODEL_CONFIGS else DEFAULT_MODEL
        self._notifications: deque[Notification] = deque(maxlen=notification_limit)
        self._notification_seq = itertools.count(1)
        self._batch_tasks: dict[str, asyncio.Task] = {}

    def __repr__(self) -> str:
        return (
            f"ImagenController(model={self.state.selected_model}, "
            f"images={len(self.gallery)}, active_batches={len(self.tracker)})"
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notify(self, message: str, level: NotificationLevel = "info") -> Notification:
        notification = Notification(
            message=message, level=level, seq=next(self._notification_seq)
        )
        self._notifications.append(notification)
        return notification

    def notifications(self, after: int = 0) -> list[Notification]:
        """Recent notifications with ``seq`` greater than ``after``, oldest first.

        Only the most recent ``notification_limit`` are retained.
        """
        return [n for n in self._notifications if n.seq > after]

    # ------------------------------------------------------------------
    # Startup and shutdown
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Restore saved preferences and load the gallery from the store."""
        if self.preferences is not None:
            self.state.api_key = self.preferences.get(API_KEY, "") or ""
            saved_model = self.preferences.get(MODEL)
            if saved_model in MODEL_CONFIGS:
                self.state.selected_model = saved_model
            else:
                if saved_model:
                    logger.warning(f"Saved model {saved_model} is unknown; using default")
                self.state.selected_model = self.default_model
        else:
            self.state.selected_model = self.default_model

        await self.gallery.load_all()
        logger.info(f"Controller initialised: {self!r}")

    async def shutdown(self) -> None:
        """Let in-flight batches settle, flush the store, and close the client."""
        if self._batch_tasks:
            logger.info(f"Waiting for {len(self._batch_tasks)} batch(es) to settle")
            await asyncio.gather(*list(self._batch_tasks.values()), return_exceptions=True)
        await self.gallery.drain()
        self.gallery.close()
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def _save_preference(self, key: str, value) -> None:
        if self.preferences is None:
            return
        try:
            self.preferences.set(key, value)
        except OSError as e:
            logger.warning(f"Could not save preference {key}: {e}")

    def save_api_key(self, api_key: str) -> None:
        self.state.api_key = api_key.strip()
        self._save_preference(API_KEY, self.state.api_key)
        self.notify("API key saved!", "success")

    def select_model(self, model_id: str) -> None:
        """Select the model for the next submission.

        Raises:
            ValueError: If the model is not in the capability table
        """
        get_model_capability(model_id)
        self.state.selected_model = model_id
        self._save_preference(MODEL, model_id)

    def set_quality(self, quality: str) -> None:
        """Select a size tier.

        Raises:
            ValueError: If ``quality`` is not a known tier
        """
        if quality not in SIZE_PRESETS:
            raise ValueError(f"Unknown quality: {quality}")
        self.state.image_quality = quality
        self.state.image_size = SIZE_PRESETS[quality]

    def set_aspect_ratio(self, aspect_ratio: str) -> None:
        """Select an aspect ratio.

        Raises:
            ValueError: If the ratio is not offered
        """
        if aspect_ratio not in ASPECT_RATIOS:
            raise ValueError(f"Unknown aspect ratio: {aspect_ratio}")
        self.state.aspect_ratio = aspect_ratio

    def set_image_count(self, count: int) -> int:
        """Set images per submission, clamped to ``1..max_image_count``."""
        self.state.image_count = max(1, min(int(count), self.max_image_count))
        return self.state.image_count

    def set_prompt(self, prompt: str) -> None:
        self.state.prompt = prompt

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def add_reference(self, url: str) -> None:
        self.state.references.append(url)

    def add_reference_bytes(self, raw: bytes) -> None:
        """Add an uploaded file as a reference image.

        Raises:
            ValueError: If the file is not an image
        """
        self.state.references.append(image_bytes_to_data_uri(raw))
        self.notify("Image added as reference", "success")

    def remove_reference(self, index: int) -> None:
        """Remove one reference image by position.

        Raises:
            IndexError: If ``index`` is out of range
        """
        if index < 0 or index >= len(self.state.references):
            raise IndexError(f"No reference at position {index}")
        del self.state.references[index]

    def clear_references(self) -> None:
        self.state.references = []
        self.notify("References cleared", "success")

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def submit_generation(self, prompt: str | None = None) -> str:
        """Start a batch of ``state.image_count`` images.

        Must be called from a running event loop.  Returns as soon as the
        units have been scheduled.

        Args:
            prompt: Prompt text; defaults to the draft prompt in the state

        Returns:
            The id of the new batch

        Raises:
            EmptyPrompt: If the prompt is empty
            MissingCredential: If no API key is configured
        """
        if prompt is not None:
            self.state.prompt = prompt
        text = self.state.prompt.strip()

        if not text:
            error = EmptyPrompt()
            self.notify(str(error), "warning")
            raise error

        if not self.state.api_key:
            error = MissingCredential()
            self.notify(str(error), "error")
            raise error

        capability = get_model_capability(self.state.selected_model)
        settings = self.state.snapshot()
        count = self.state.image_count
        api_key = self.state.api_key

        batch_id = self.tracker.submit(text, capability, count, settings)
        request = GenerationRequest(
            prompt=text, api_key=api_key, capability=capability, settings=settings
        )

        task = asyncio.get_running_loop().create_task(self._run_batch(batch_id, request, count))
        self._batch_tasks[batch_id] = task
        task.add_done_callback(lambda _: self._batch_tasks.pop(batch_id, None))
        return batch_id

    async def wait_for_batch(self, batch_id: str) -> None:
        """Wait until every unit of a launched batch has settled."""
        task = self._batch_tasks.get(batch_id)
        if task is not None:
            await task

    async def _run_batch(self, batch_id: str, request: GenerationRequest, count: int) -> None:
        await asyncio.gather(*(self._run_unit(batch_id, request) for _ in range(count)))

    async def _run_unit(self, batch_id: str, request: GenerationRequest) -> None:
        try:
            url = await self.client.generate(request)
            if batch_id not in self.tracker:
                logger.info(f"Batch {batch_id} is no longer tracked; discarding generated image")
                return
            record = ImageRecord.from_generation(
                url, request.prompt, request.capability.name, request.settings
            )
        except GenerationFailed as e:
            logger.error(f"Failed to generate image for batch {batch_id}: {e}")
            self.tracker.record_failure(batch_id)
        except Exception as e:
            logger.error(
                f"Unexpected error generating image for batch {batch_id}: {e}", exc_info=True
            )
            self.tracker.record_failure(batch_id)
        else:
            self.gallery.insert(record)
            self.tracker.record_success(batch_id)
        finally:
            self._settle(batch_id)

    def _settle(self, batch_id: str) -> None:
        if not self.tracker.is_complete(batch_id):
            return

        batch = self.tracker.remove(batch_id)
        if batch is None:
            return

        if batch.completed_count > 0:
            level = "success" if batch.failed_count == 0 else "warning"
            self.notify(
                f"{batch.completed_count} of {batch.requested_count} image(s) generated!", level
            )
        else:
            self.notify("Failed to generate images. Check the logs for details.", "error")

    def has_pending_batches(self) -> bool:
        return self.tracker.has_pending()

    def navigation_warning(self) -> str | None:
        """Advisory text shown before leaving the page while batches run."""
        return NAVIGATION_WARNING if self.has_pending_batches() else None

    # ------------------------------------------------------------------
    # Gallery
    # ------------------------------------------------------------------

    def get_record(self, record_id: str) -> ImageRecord:
        """Look up a gallery record.

        Raises:
            ImageNotFound: If no record has that id
        """
        record = self.gallery.get(record_id)
        if record is None:
            raise ImageNotFound(record_id)
        return record

    def _target(self, record_id: str | None) -> ImageRecord | None:
        if record_id is not None:
            return self.get_record(record_id)
        return self.state.current_image

    def open_image(self, record_id: str) -> ImageRecord:
        self.state.current_image = self.get_record(record_id)
        return self.state.current_image

    def close_image(self) -> None:
        self.state.current_image = None

    def delete_image(self, record_id: str) -> bool:
        removed = self.gallery.remove(record_id)
        if removed:
            if self.state.current_image is not None and self.state.current_image.id == record_id:
                self.state.current_image = None
            self.notify("Image deleted", "success")
        return removed

    def clear_gallery(self) -> None:
        self.gallery.clear()
        self.state.current_image = None
        self.notify("Gallery cleared", "success")

    def use_as_reference(self, record_id: str | None = None) -> bool:
        """Append a gallery image to the reference list.

        Returns:
            False when there is no target image
        """
        record = self._target(record_id)
        if record is None:
            return False

        self.state.references.append(record.url)
        self.close_image()
        self.notify("Image added as reference", "success")
        return True

    def recreate(self, record_id: str | None = None) -> bool:
        """Restore the settings a gallery image was generated with.

        Prompt, model, size tier, aspect ratio and references are replaced
        by the record's values so the next submission reproduces it.

        Returns:
            False when there is no target image
        """
        record = self._target(record_id)
        if record is None:
            return False

        self.state.prompt = record.prompt

        if record.model in MODEL_CONFIGS:
            self.state.selected_model = record.model
            self._save_preference(MODEL, record.model)
        else:
            logger.warning(f"Model {record.model} is no longer available; keeping current model")

        if record.quality in SIZE_PRESETS:
            self.state.image_quality = record.quality
            self.state.image_size = record.size or SIZE_PRESETS[record.quality]

        if record.aspect_ratio in ASPECT_RATIOS:
            self.state.aspect_ratio = record.aspect_ratio

        self.state.references = list(record.references)

        self.close_image()
        self.notify("Settings restored. Click Generate to recreate.", "success")
        return True

    def download(self, record_id: str) -> DownloadPayload:
        """Prepare a gallery image for download.

        Raises:
            ImageNotFound: If no record has that id
            ValueError: If the stored image is neither a data URI nor an https URL
        """
        record = self.get_record(record_id)

        if record.url.startswith("data:"):
            media_type, content = decode_data_uri(record.url)
            payload = DownloadPayload(
                filename=f"imagen_{record.id}.{extension_for(media_type)}",
                media_type=media_type,
                content=content,
            )
        elif record.url.startswith("https://"):
            payload = DownloadPayload(
                filename=f"imagen_{record.id}.png", media_type="image/png", url=record.url
            )
        else:
            raise ValueError(f"Image {record.id} has no downloadable data")

        self.notify("Download started", "success")
        return payload
