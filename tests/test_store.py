"""
Tests for the MessageStore implementation.

These tests verify validation, the daily rate limit, and that rejected
submissions never touch storage.
"""

import json
import re

import pytest

from microrager.dataset import DatasetMerger
from microrager.errors import RateLimitError, StoreError, ValidationError
from microrager.store import MessageStore

TODAY = "2024-01-01"
KEY = "2024-01-01-microrager.json"


class TestMessageStore:
    """Test suite for MessageStore functionality."""

    @pytest.fixture(autouse=True)
    def _store(self, blob_store, clock):
        """Set up a fresh MessageStore for each test."""
        self.blob_store = blob_store
        self.store = MessageStore(DatasetMerger(blob_store), clock=clock)

    async def test_initial_state(self):
        """A day without a document has no messages."""
        assert await self.store.list(TODAY) == []
        assert self.blob_store.puts == []

    async def test_append_and_list(self):
        """Test message creation and retrieval."""
        message = await self.store.append(TODAY, "  hi there  ", "1.2.3.4")

        assert message.text == "hi there"
        assert message.source_identity == "1.2.3.4"
        assert message.date == TODAY
        assert message.votes == {}
        assert message.id.startswith("msg-")
        assert message.created_at == "2024-01-01T12:00:00.000Z"

        listed = await self.store.list(TODAY)
        assert [m.id for m in listed] == [message.id]

        stored = json.loads(self.blob_store.objects[KEY])
        assert stored[0]["ip"] == "1.2.3.4"
        assert stored[0]["message"] == "hi there"

    async def test_rate_limit(self):
        """A second message from the same identity on the same day is rejected."""
        await self.store.append(TODAY, "first", "1.2.3.4")

        with pytest.raises(RateLimitError):
            await self.store.append(TODAY, "second", "1.2.3.4")

        assert len(await self.store.list(TODAY)) == 1
        assert len(self.blob_store.puts) == 1

    async def test_rate_limit_is_per_identity_and_day(self):
        await self.store.append(TODAY, "first", "1.2.3.4")
        await self.store.append(TODAY, "other caller", "5.6.7.8")
        await self.store.append("2024-01-02", "next day", "1.2.3.4")

        assert len(await self.store.list(TODAY)) == 2
        assert len(await self.store.list("2024-01-02")) == 1

    @pytest.mark.parametrize(
        "candidate, error",
        [
            (None, "Message field is required"),
            (42, "Message must be a string"),
            (["hi"], "Message must be a string"),
            ("", "Message cannot be empty"),
            ("   \n\t", "Message cannot be empty"),
            ("x" * 201, "Message is too long (max 200 characters)"),
        ],
    )
    async def test_validation(self, candidate, error):
        """Invalid submissions fail before any storage access."""
        with pytest.raises(ValidationError, match=re.escape(error)):
            await self.store.append(TODAY, candidate, "1.2.3.4")

        assert self.blob_store.objects == {}

    async def test_length_limit_is_inclusive(self):
        message = await self.store.append(TODAY, "x" * 200, "1.2.3.4")
        assert len(message.text) == 200

    async def test_length_is_measured_after_trimming(self):
        message = await self.store.append(TODAY, "  " + "x" * 200 + "  ", "1.2.3.4")
        assert len(message.text) == 200

    async def test_custom_length_limit(self, clock):
        store = MessageStore(DatasetMerger(self.blob_store), max_length=5, clock=clock)
        with pytest.raises(ValidationError):
            await store.append(TODAY, "toolong", "1.2.3.4")

    async def test_read_failure_propagates(self):
        self.blob_store.fail_get = True
        with pytest.raises(StoreError) as excinfo:
            await self.store.append(TODAY, "hello", "1.2.3.4")
        assert excinfo.value.action == "read"

    async def test_write_failure_propagates(self):
        self.blob_store.fail_put = True
        with pytest.raises(StoreError) as excinfo:
            await self.store.append(TODAY, "hello", "1.2.3.4")
        assert excinfo.value.action == "write"
