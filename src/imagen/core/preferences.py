"""Last-used settings persisted between sessions.

Preferences live in a small JSON file next to the record database.  Reads are
forgiving: a missing, empty, or corrupt file behaves like an empty store, so a
damaged preferences file never blocks startup.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

API_KEY = "api_key"
MODEL = "model"


class PreferenceStore:
    """Key/value preferences backed by a JSON file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read preferences from {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Persist a single preference.

        Raises:
            OSError: If the file cannot be written
        """
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
