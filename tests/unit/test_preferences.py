"""Unit tests for the JSON preference store."""

import json

from imagen.core.preferences import API_KEY, MODEL, PreferenceStore


class TestPreferenceStore:
    """Tests for PreferenceStore."""

    def test_missing_file_returns_default(self, temp_dir):
        store = PreferenceStore(temp_dir / "prefs.json")
        assert store.get(API_KEY) is None
        assert store.get(MODEL, "fallback") == "fallback"

    def test_set_then_get(self, preferences):
        preferences.set(API_KEY, "sk-or-abc")
        preferences.set(MODEL, "openai/gpt-5-image")

        assert preferences.get(API_KEY) == "sk-or-abc"
        assert preferences.get(MODEL) == "openai/gpt-5-image"

    def test_values_survive_new_instance(self, preferences):
        preferences.set(MODEL, "bytedance-seed/seedream-4.5")
        assert PreferenceStore(preferences.path).get(MODEL) == "bytedance-seed/seedream-4.5"

    def test_file_is_readable_json(self, preferences):
        preferences.set(API_KEY, "sk-or-abc")
        assert json.loads(preferences.path.read_text()) == {"api_key": "sk-or-abc"}

    def test_corrupt_file_behaves_as_empty(self, temp_dir):
        path = temp_dir / "prefs.json"
        path.write_text("{ this is not json")
        store = PreferenceStore(path)

        assert store.get(API_KEY) is None

        store.set(API_KEY, "sk-or-new")
        assert store.get(API_KEY) == "sk-or-new"

    def test_non_object_file_behaves_as_empty(self, temp_dir):
        path = temp_dir / "prefs.json"
        path.write_text("[1, 2, 3]")
        assert PreferenceStore(path).get(MODEL) is None

    def test_creates_parent_directory(self, temp_dir):
        store = PreferenceStore(temp_dir / "a" / "b" / "prefs.json")
        store.set(MODEL, "google/gemini-2.5-flash-image")
        assert store.path.exists()
