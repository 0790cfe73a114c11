"""In-memory gallery reconciled with the image record store.

The in-memory list is authoritative for the running session and is always
ordered newest first.  Every mutation is applied to memory immediately and
mirrored to the store in the background:

- inserts, deletes, and clears never wait for the store
- store failures are logged and never roll back the in-memory change
- a reload from the store resynchronizes memory with whatever was persisted

Store calls run on a single worker thread when an event loop is running, so
they reach the database in the order the mutations happened (a delete can
never overtake the insert of the same record).  Without a running loop they
run inline.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from .models import ImageRecord
from .record_store import ImageRecordStore

logger = logging.getLogger(__name__)


class GalleryState:
    """Ordered collection of image records, newest first."""

    def __init__(self, store: ImageRecordStore):
        self._store = store
        self._records: list[ImageRecord] = []
        self._pending: set[asyncio.Future] = set()
        self._executor: ThreadPoolExecutor | None = None

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[ImageRecord]:
        """Snapshot of the current records, newest first."""
        return list(self._records)

    def get(self, record_id: str) -> ImageRecord | None:
        return next((r for r in self._records if r.id == record_id), None)

    async def load_all(self) -> list[ImageRecord]:
        """Replace the in-memory collection with the store contents.

        A gallery that fails to load presents as empty instead of failing
        startup.

        Returns:
            The loaded records, newest first
        """
        await self.drain()
        try:
            records = await asyncio.to_thread(self._store.get_all)
        except Exception as e:
            logger.error(f"Failed to load images from store: {e}")
            records = []

        records.sort(key=lambda r: r.created_at, reverse=True)
        self._records = records
        logger.info(f"Loaded {len(records)} image(s) into the gallery")
        return self.records

    def insert(self, record: ImageRecord) -> None:
        """Add a new record at the head of the gallery and persist it."""
        self._records.insert(0, record)
        self._persist(f"save image {record.id}", self._store.put, record)

    def remove(self, record_id: str) -> bool:
        """Remove a record from memory, then delete it from the store.

        Returns:
            True if a record was removed, False if the id is unknown
        """
        index = next((i for i, r in enumerate(self._records) if r.id == record_id), None)
        if index is None:
            logger.debug(f"Image {record_id} not in gallery; nothing to delete")
            return False

        del self._records[index]
        self._persist(f"delete image {record_id}", self._store.delete_by_id, record_id)
        return True

    def clear(self) -> None:
        """Empty the gallery and clear the store."""
        count = len(self._records)
        self._records.clear()
        self._persist("clear images", self._store.clear)
        logger.info(f"Cleared {count} image(s) from the gallery")

    async def drain(self) -> None:
        """Wait for every background store call issued so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _persist(self, description: str, func: Callable, *args) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._call_store(description, func, *args)
            return

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="imagen-store")

        future = loop.run_in_executor(self._executor, self._call_store, description, func, *args)
        self._pending.add(future)
        future.add_done_callback(self._pending.discard)

    @staticmethod
    def _call_store(description: str, func: Callable, *args) -> None:
        try:
            func(*args)
        except Exception as e:
            logger.error(f"Could not {description}: {e}")
