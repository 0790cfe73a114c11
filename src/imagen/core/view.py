"""Projection of batch and gallery state into what the page renders.

The page shows, newest first, one placeholder per pending unit of every
active batch followed by the realized gallery cards.  Everything here is a
pure function of the tracker and gallery; it is recomputed on every poll.
"""

from __future__ import annotations

from .batch_tracker import BatchTracker
from .gallery import GalleryState
from .images import sanitize_image_url
from .models import ImageRecord


def build_card(record: ImageRecord) -> dict:
    return {
        "id": record.id,
        "url": sanitize_image_url(record.url),
        "prompt": record.prompt,
        "model_label": record.model_name or record.model,
        "quality": record.quality or record.size,
        "aspect_ratio": record.aspect_ratio,
        "created_at": record.created_at.isoformat(),
    }


def build_placeholders(tracker: BatchTracker) -> list[dict]:
    """One entry per still-generating unit, most recent batch first."""
    placeholders = []
    for batch in reversed(tracker.active()):
        for _ in range(tracker.pending_placeholder_count(batch.id)):
            placeholders.append(
                {
                    "batch_id": batch.id,
                    "prompt": batch.prompt,
                    "model_label": batch.model_display_name,
                }
            )
    return placeholders


def build_gallery_view(tracker: BatchTracker, gallery: GalleryState) -> dict:
    cards = [build_card(record) for record in gallery.records]
    placeholders = build_placeholders(tracker)
    return {
        "placeholders": placeholders,
        "images": cards,
        "total": len(cards),
        "empty": not cards and not placeholders,
    }


def build_record_detail(record: ImageRecord) -> dict:
    """Metadata shown in the image detail view."""
    return {
        **build_card(record),
        "model": record.model,
        "size": record.size,
        "reference_count": len(record.references),
    }
