"""Tracking of in-flight generation batches.

A batch is the set of units launched for one submission.  Batches are kept
apart from the gallery because they have no persisted record yet: the view
renders ``pending_placeholder_count`` placeholders per active batch next to
the real images, and only successful units graduate into the gallery.

State machine::

    Pending(requested, completed, failed)
        -- unit settles -->   Pending(updated counts)
        -- all settled  -->   Removed

Counter updates for a batch that is no longer tracked are silently ignored.
Units may still be running after a batch was cleared externally; they must
settle without touching the remaining state.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .models import GenerationSettings, ModelCapability

logger = logging.getLogger(__name__)


@dataclass
class GenerationBatch:
    """One submission of ``requested_count`` concurrently generated images.

    ``prompt``, the model, and ``settings`` are captured at submission time.
    """

    id: str
    prompt: str
    model_id: str
    model_display_name: str
    requested_count: int
    settings: GenerationSettings
    completed_count: int = 0
    failed_count: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def settled_count(self) -> int:
        return self.completed_count + self.failed_count

    @property
    def pending_count(self) -> int:
        return self.requested_count - self.settled_count

    @property
    def is_complete(self) -> bool:
        return self.settled_count == self.requested_count

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "model_id": self.model_id,
            "model_display_name": self.model_display_name,
            "requested_count": self.requested_count,
            "completed_count": self.completed_count,
            "failed_count": self.failed_count,
            "pending_count": self.pending_count,
            "created_at": self.created_at.isoformat(),
        }


class BatchTracker:
    """The set of active batches, in submission order."""

    def __init__(self) -> None:
        self._batches: dict[str, GenerationBatch] = {}

    def __len__(self) -> int:
        return len(self._batches)

    def __contains__(self, batch_id: str) -> bool:
        return batch_id in self._batches

    def submit(
        self,
        prompt: str,
        model_config: ModelCapability,
        requested_count: int,
        settings: GenerationSettings,
    ) -> str:
        """Start tracking a new batch and return its id.

        Args:
            prompt: Prompt shared by every unit
            model_config: Capability entry of the model used by the batch
            requested_count: Number of units launched
            settings: Parameters captured at submission time

        Returns:
            The new batch id

        Raises:
            ValueError: If ``requested_count`` is less than 1
        """
        if requested_count < 1:
            raise ValueError(f"requested_count must be at least 1, got {requested_count}")

        batch = GenerationBatch(
            id=str(uuid.uuid4()),
            prompt=prompt,
            model_id=settings.model,
            model_display_name=model_config.name,
            requested_count=requested_count,
            settings=settings,
        )
        self._batches[batch.id] = batch
        logger.info(
            f"Batch {batch.id} submitted: {requested_count} image(s) with {settings.model}"
        )
        return batch.id

    def get(self, batch_id: str) -> GenerationBatch | None:
        return self._batches.get(batch_id)

    def active(self) -> list[GenerationBatch]:
        return list(self._batches.values())

    def has_pending(self) -> bool:
        return bool(self._batches)

    def record_success(self, batch_id: str) -> None:
        batch = self._batches.get(batch_id)
        if batch is None:
            logger.debug(f"Ignoring success for untracked batch {batch_id}")
            return
        if batch.is_complete:
            logger.warning(f"Batch {batch_id} already settled; success ignored")
            return
        batch.completed_count += 1

    def record_failure(self, batch_id: str) -> None:
        batch = self._batches.get(batch_id)
        if batch is None:
            logger.debug(f"Ignoring failure for untracked batch {batch_id}")
            return
        if batch.is_complete:
            logger.warning(f"Batch {batch_id} already settled; failure ignored")
            return
        batch.failed_count += 1

    def is_complete(self, batch_id: str) -> bool:
        """True once every unit of the batch has settled.

        Unknown batch ids are reported as not complete.
        """
        batch = self._batches.get(batch_id)
        return batch is not None and batch.is_complete

    def pending_placeholder_count(self, batch_id: str) -> int:
        batch = self._batches.get(batch_id)
        return batch.pending_count if batch is not None else 0

    def remove(self, batch_id: str) -> GenerationBatch | None:
        """Stop tracking a batch.  Removing an unknown id is a no-op."""
        batch = self._batches.pop(batch_id, None)
        if batch is not None:
            logger.info(
                f"Batch {batch_id} removed: {batch.completed_count} succeeded, "
                f"{batch.failed_count} failed"
            )
        return batch

    def clear(self) -> None:
        """Drop every active batch.  Units still running will settle silently."""
        if self._batches:
            logger.info(f"Clearing {len(self._batches)} active batch(es)")
        self._batches.clear()
