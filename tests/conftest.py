"""
Shared fixtures for the Microrager test suite.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import pytest

from microrager.blobstore import InMemoryBlobStore
from microrager.errors import StoreError

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
TODAY = "2024-01-01"


@dataclass
class RecordingBlobStore(InMemoryBlobStore):
    """In-memory store that counts writes and can be told to fail."""

    fail_get: bool = False
    fail_put: bool = False
    puts: list[str] = field(default_factory=list)

    async def get(self, key: str) -> bytes | None:
        if self.fail_get:
            raise StoreError("backend unavailable", action="read")
        return await super().get(key)

    async def put(self, key: str, data: bytes) -> None:
        if self.fail_put:
            raise StoreError("backend unavailable", action="write")
        self.puts.append(key)
        await super().put(key, data)


@pytest.fixture
def blob_store() -> RecordingBlobStore:
    return RecordingBlobStore()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
