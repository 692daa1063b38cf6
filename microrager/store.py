"""
Message storage for the Microrager service.

This module owns the per-day message board: it validates new submissions,
enforces the one-message-per-identity-per-day limit, and persists the board
through a `DatasetMerger`. Reads and writes are not guarded against
concurrent writers; the last `put` for a date wins.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .dataset import DatasetMerger
from .errors import RateLimitError, ValidationError
from .models import Message

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 200


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageStore:
    """
    Daily message board backed by a dataset merger.

    The store keeps no state between calls; every operation loads the
    collection for the requested date from storage.
    """

    def __init__(
        self,
        dataset: DatasetMerger,
        max_length: int = MAX_MESSAGE_LENGTH,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._dataset = dataset
        self._max_length = max_length
        self._clock = clock

    def validate(self, candidate: Any) -> str:
        """
        Check a submitted message and return its trimmed text.

        Raises:
            ValidationError: On the first failed check
        """
        if candidate is None:
            raise ValidationError("Message field is required")
        if not isinstance(candidate, str):
            raise ValidationError("Message must be a string")
        text = candidate.strip()
        if not text:
            raise ValidationError("Message cannot be empty")
        if len(text) > self._max_length:
            raise ValidationError(
                f"Message is too long (max {self._max_length} characters)"
            )
        return text

    async def append(self, date: str, candidate: Any, source_identity: str) -> Message:
        """
        Add a message to the board for `date`.

        Args:
            date: UTC calendar day, YYYY-MM-DD
            candidate: The raw submitted message value
            source_identity: Caller address used for the rate limit

        Returns:
            The created Message

        Raises:
            ValidationError: If the candidate is missing, not text, empty or too long
            RateLimitError: If this identity already posted on `date`
            StoreError: If the board cannot be read or written
        """
        text = self.validate(candidate)

        messages = await self._dataset.load_collection(date)
        if any(
            m.source_identity == source_identity and m.date == date for m in messages
        ):
            logger.info("Rate limit hit for %s on %s", source_identity, date)
            raise RateLimitError("Rate limit exceeded: Only one message per day allowed")

        message = Message.create(text, source_identity, date, self._clock())
        messages.append(message)
        await self._dataset.save_collection(date, messages)

        logger.info("Accepted message %s on %s", message.id, date)
        return message

    async def list(self, date: str) -> list[Message]:
        """
        Get the board for `date`.

        Returns:
            Messages in insertion order, seed messages first
        """
        return await self._dataset.load_collection(date)
