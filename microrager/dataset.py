"""
Per-day collections assembled from a seed document and a runtime document.

In local mode a read-only seed document is prepended to every day's runtime
document on read, and any record carrying a seed id is dropped on write so
the seed file is never overwritten. Without a seed, the day's document is the
whole collection and is read and written verbatim.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError as PydanticValidationError

from .blobstore import BlobStore, LocalBlobStore, build_blob_store
from .config import Settings
from .errors import StoreError
from .models import Message

logger = logging.getLogger(__name__)


class DatasetMerger:
    """Loads and saves the logical message collection for a date."""

    def __init__(
        self,
        store: BlobStore,
        collection_name: str = "microrager",
        seed_store: BlobStore | None = None,
        seed_key: str | None = None,
    ) -> None:
        if (seed_store is None) != (seed_key is None):
            raise ValueError("seed_store and seed_key must be given together")
        self._store = store
        self._collection_name = collection_name
        self._seed_store = seed_store
        self._seed_key = seed_key

    @property
    def has_seed(self) -> bool:
        return self._seed_store is not None

    def document_key(self, date: str) -> str:
        return f"{date}-{self._collection_name}.json"

    async def load_collection(self, date: str) -> list[Message]:
        """
        Load the ordered collection for `date`.

        A missing document is an empty collection.

        Returns:
            Seed messages followed by runtime messages
        """
        runtime = await self._read(self._store, self.document_key(date))
        if not self.has_seed:
            return runtime
        seed = await self._read(self._seed_store, self._seed_key)
        return seed + runtime

    async def save_collection(self, date: str, messages: list[Message]) -> None:
        """
        Persist `messages` for `date`, excluding seed records when a seed exists.
        """
        records = messages
        if self.has_seed:
            seed_ids = {
                m.id for m in await self._read(self._seed_store, self._seed_key) if m.id
            }
            records = [m for m in messages if not m.id or m.id not in seed_ids]
            dropped = len(messages) - len(records)
            if dropped:
                logger.debug("Excluded %d seed records from %s", dropped, date)

        indent = 2 if self.has_seed else None
        payload = json.dumps([m.to_document() for m in records], indent=indent)
        await self._store.put(self.document_key(date), payload.encode("utf-8"))

    async def _read(self, store: BlobStore, key: str) -> list[Message]:
        raw = await store.get(key)
        if raw is None:
            return []
        try:
            document = json.loads(raw)
        except ValueError as exc:
            raise StoreError(f"Document {key} is not valid JSON: {exc}", action="read") from exc
        if not isinstance(document, list):
            raise StoreError(f"Document {key} is not a JSON array", action="read")
        try:
            return [Message.model_validate(record) for record in document]
        except PydanticValidationError as exc:
            raise StoreError(f"Document {key} has malformed records: {exc}", action="read") from exc


def build_dataset(settings: Settings) -> DatasetMerger:
    """Wire a merger for the configured storage mode."""
    store = build_blob_store(settings)
    if settings.storage_mode != "local":
        return DatasetMerger(store, settings.collection_name)
    return DatasetMerger(
        store,
        settings.collection_name,
        seed_store=LocalBlobStore(settings.local_seed_dir),
        seed_key=settings.local_seed_filename,
    )
