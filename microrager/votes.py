"""
Vote aggregation for daily messages.
"""

import logging
from typing import Any

from .dataset import DatasetMerger
from .models import Message, VoteItem

logger = logging.getLogger(__name__)


class VoteAggregator:
    """
    Applies batches of label votes to a day's messages.

    Malformed items and items for unknown messages are skipped without
    failing the batch. The collection is written once per batch.
    """

    def __init__(self, dataset: DatasetMerger, max_count: int | None = None) -> None:
        self._dataset = dataset
        self._max_count = max_count

    def _within_bounds(self, vote: VoteItem) -> bool:
        if self._max_count is None:
            return True
        return 0 <= vote.count <= self._max_count

    async def apply_batch(self, date: str, items: list[Any]) -> int:
        """
        Merge a batch of votes into the board for `date`.

        Args:
            date: UTC calendar day, YYYY-MM-DD
            items: Raw vote entries shaped like {id, color|emoji, count}

        Returns:
            The number of votes applied

        Raises:
            StoreError: If the board cannot be read or written
        """
        messages = await self._dataset.load_collection(date)
        by_id: dict[str, Message] = {}
        for message in messages:
            if message.id:
                by_id.setdefault(message.id, message)

        applied = 0
        for raw in items:
            vote = VoteItem.parse(raw)
            if vote is None or not self._within_bounds(vote):
                continue
            message = by_id.get(vote.id)
            if message is None:
                continue
            message.add_votes(vote.label, vote.count)
            applied += 1

        await self._dataset.save_collection(date, messages)

        skipped = len(items) - applied
        logger.info("Applied %d votes on %s (%d skipped)", applied, date, skipped)
        return applied
