"""SQLite store for generated image records."""

import logging
import sqlite3
from datetime import timezone
from pathlib import Path

from pydantic import ValidationError

from .errors import StoreLoadFailed, StorePersistenceFailed
from .models import ImageRecord

logger = logging.getLogger(__name__)


class ImageRecordStore:
    """Durable key-value store of image records.

    Records are keyed by ``id`` and serialized as JSON.  A separate
    ``created_at`` column with its own index supports newest-first listing.

    The database is opened lazily: the schema is created on first use, and
    opening is idempotent, so constructing a store never touches the disk.
    Every method raises :class:`StorePersistenceFailed` or
    :class:`StoreLoadFailed` on database errors; callers decide how
    forgiving to be.
    """

    def __init__(self, db_path: Path):
        """Initialize the record store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._opened = False

    def _ensure_open(self) -> None:
        """Create the database file and schema if they don't exist."""
        if self._opened:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS images (
                    id TEXT PRIMARY KEY,
                    created_at TEXT NOT NULL,
                    payload TEXT NOT NULL
                )
                """)
            cursor.execute("""
                CREATE INDEX IF NOT EXISTS idx_images_created_at
                ON images(created_at DESC)
                """)
            conn.commit()

        self._opened = True
        logger.info(f"Opened image record store at {self.db_path}")

    @staticmethod
    def _sort_key(record: ImageRecord) -> str:
        # ISO strings in a single timezone sort the same way as the datetimes.
        created_at = record.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return created_at.astimezone(timezone.utc).isoformat()

    def put(self, record: ImageRecord) -> None:
        """Insert a record, replacing any existing record with the same id.

        Raises:
            StorePersistenceFailed: If the write fails
        """
        try:
            self._ensure_open()
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO images (id, created_at, payload)
                    VALUES (?, ?, ?)
                    """,
                    (record.id, self._sort_key(record), record.model_dump_json()),
                )
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorePersistenceFailed(f"Could not save image {record.id}: {e}") from e

        logger.debug(f"Saved image record {record.id}")

    def get_all(self) -> list[ImageRecord]:
        """Fetch every record, newest first.

        Rows whose payload no longer validates are skipped with a warning.

        Raises:
            StoreLoadFailed: If the read fails
        """
        try:
            self._ensure_open()
            with sqlite3.connect(self.db_path) as conn:
                rows = conn.execute(
                    "SELECT id, payload FROM images ORDER BY created_at DESC"
                ).fetchall()
        except (sqlite3.Error, OSError) as e:
            raise StoreLoadFailed(f"Could not load images: {e}") from e

        records = []
        for record_id, payload in rows:
            try:
                records.append(ImageRecord.model_validate_json(payload))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable image record {record_id}: {e}")
        return records

    def delete_by_id(self, record_id: str) -> None:
        """Delete a record by id.  Deleting an unknown id is not an error.

        Raises:
            StorePersistenceFailed: If the delete fails
        """
        try:
            self._ensure_open()
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM images WHERE id = ?", (record_id,))
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorePersistenceFailed(f"Could not delete image {record_id}: {e}") from e

        if cursor.rowcount > 0:
            logger.info(f"Deleted image record {record_id}")
        else:
            logger.debug(f"Image record not in store: {record_id}")

    def clear(self) -> None:
        """Delete every record.

        Raises:
            StorePersistenceFailed: If the clear fails
        """
        try:
            self._ensure_open()
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("DELETE FROM images")
                conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorePersistenceFailed(f"Could not clear images: {e}") from e

        logger.info("Cleared all image records")
