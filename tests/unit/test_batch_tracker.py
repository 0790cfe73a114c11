"""Tests for imagen.core.batch_tracker: in-flight batch bookkeeping.

Tests cover:
- Submission creates an active batch with zero counters.
- Success/failure counting and the completed + failed <= requested invariant.
- Completion detection and removal.
- Stale references (removed or unknown batches) are silently ignored.
- Several batches tracked independently.
"""

from __future__ import annotations

import pytest

from imagen.core.batch_tracker import BatchTracker
from imagen.core.models import MODEL_CONFIGS, GenerationSettings

GEMINI = "google/gemini-2.5-flash-image"


@pytest.fixture
def tracker() -> BatchTracker:
    return BatchTracker()


def _submit(tracker: BatchTracker, count: int, prompt: str = "a lighthouse") -> str:
    return tracker.submit(prompt, MODEL_CONFIGS[GEMINI], count, GenerationSettings(model=GEMINI))


def _assert_invariant(tracker: BatchTracker) -> None:
    for batch in tracker.active():
        assert batch.completed_count + batch.failed_count < batch.requested_count


class TestSubmit:
    """Tests for BatchTracker.submit."""

    def test_submit_creates_active_batch(self, tracker):
        batch_id = _submit(tracker, 3)

        batch = tracker.get(batch_id)
        assert batch is not None
        assert batch.requested_count == 3
        assert batch.completed_count == 0
        assert batch.failed_count == 0
        assert batch_id in tracker
        assert tracker.has_pending()

    def test_submit_captures_model_and_prompt(self, tracker):
        batch_id = _submit(tracker, 1, prompt="foggy harbour")

        batch = tracker.get(batch_id)
        assert batch.prompt == "foggy harbour"
        assert batch.model_id == GEMINI
        assert batch.model_display_name == "Gemini 2.5 Flash Image"

    def test_submit_returns_distinct_ids(self, tracker):
        ids = {_submit(tracker, 1) for _ in range(5)}
        assert len(ids) == 5
        assert len(tracker) == 5

    def test_submit_rejects_zero_count(self, tracker):
        with pytest.raises(ValueError):
            _submit(tracker, 0)

    def test_active_preserves_submission_order(self, tracker):
        first = _submit(tracker, 1)
        second = _submit(tracker, 1)
        assert [b.id for b in tracker.active()] == [first, second]


class TestCounting:
    """Tests for success/failure recording and completion."""

    def test_pending_placeholder_count_decreases(self, tracker):
        batch_id = _submit(tracker, 3)
        assert tracker.pending_placeholder_count(batch_id) == 3

        tracker.record_success(batch_id)
        assert tracker.pending_placeholder_count(batch_id) == 2

        tracker.record_failure(batch_id)
        assert tracker.pending_placeholder_count(batch_id) == 1
        _assert_invariant(tracker)

    def test_is_complete_when_all_units_settle(self, tracker):
        batch_id = _submit(tracker, 2)
        tracker.record_success(batch_id)
        assert not tracker.is_complete(batch_id)

        tracker.record_failure(batch_id)
        assert tracker.is_complete(batch_id)

    def test_counts_never_exceed_requested(self, tracker):
        batch_id = _submit(tracker, 1)
        tracker.record_success(batch_id)
        tracker.record_success(batch_id)
        tracker.record_failure(batch_id)

        batch = tracker.get(batch_id)
        assert batch.completed_count == 1
        assert batch.failed_count == 0

    def test_remove_drops_batch(self, tracker):
        batch_id = _submit(tracker, 1)
        tracker.record_success(batch_id)

        removed = tracker.remove(batch_id)

        assert removed is not None
        assert removed.completed_count == 1
        assert batch_id not in tracker
        assert not tracker.has_pending()


class TestStaleReferences:
    """Counter updates for untracked batches must be harmless."""

    def test_record_on_removed_batch_is_noop(self, tracker):
        batch_id = _submit(tracker, 2)
        tracker.remove(batch_id)

        tracker.record_success(batch_id)
        tracker.record_failure(batch_id)

        assert tracker.get(batch_id) is None
        assert len(tracker) == 0

    def test_record_after_clear_is_noop(self, tracker):
        batch_id = _submit(tracker, 2)
        tracker.clear()

        tracker.record_success(batch_id)

        assert len(tracker) == 0

    def test_unknown_batch_queries(self, tracker):
        assert tracker.is_complete("missing") is False
        assert tracker.pending_placeholder_count("missing") == 0
        assert tracker.remove("missing") is None


class TestIndependentBatches:
    """Several batches may be active at once."""

    def test_batches_count_independently(self, tracker):
        first = _submit(tracker, 2, prompt="first")
        second = _submit(tracker, 3, prompt="second")

        tracker.record_success(first)
        tracker.record_failure(second)
        tracker.record_failure(second)

        assert tracker.get(first).completed_count == 1
        assert tracker.get(first).failed_count == 0
        assert tracker.get(second).completed_count == 0
        assert tracker.get(second).failed_count == 2
        _assert_invariant(tracker)

    def test_removing_one_batch_keeps_others(self, tracker):
        first = _submit(tracker, 1)
        second = _submit(tracker, 1)

        tracker.record_success(first)
        tracker.remove(first)

        assert [b.id for b in tracker.active()] == [second]

    def test_as_dict_reports_pending(self, tracker):
        batch_id = _submit(tracker, 4)
        tracker.record_success(batch_id)

        data = tracker.get(batch_id).as_dict()

        assert data["requested_count"] == 4
        assert data["completed_count"] == 1
        assert data["pending_count"] == 3
