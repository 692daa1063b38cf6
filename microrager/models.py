"""
Shared data models for the Microrager service.

This module defines the core domain models used across multiple layers
of the application (storage, business logic, CLI, API). Messages are
serialized under the wire names the stored documents and the UI use
(`ip`, `message`, `timestamp`), while Python code uses descriptive names.
"""

import math
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

LABEL_KEYS = ("color", "emoji", "label")


def format_timestamp(moment: datetime) -> str:
    """Render an aware datetime as ISO-8601 UTC with millisecond precision."""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Message(BaseModel):
    """One user-submitted entry on a daily board."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = Field(None, description="Opaque unique identifier")
    source_identity: str | None = Field(
        None, alias="ip", description="Caller address used for the daily rate limit"
    )
    date: str | None = Field(None, description="UTC calendar day, YYYY-MM-DD")
    text: str = Field("", alias="message", description="Trimmed message content")
    created_at: str | None = Field(
        None, alias="timestamp", description="ISO-8601 creation time"
    )
    votes: dict[str, int | float] = Field(
        default_factory=dict, description="Accumulated count per vote label"
    )

    @field_validator("votes", mode="before")
    @classmethod
    def _default_votes(cls, value: Any) -> Any:
        # Older documents carry `votes: null`, and JSON writers emit NaN or
        # Infinity tallies as null
        if value is None:
            return {}
        if isinstance(value, dict):
            return {label: 0 if count is None else count for label, count in value.items()}
        return value

    @classmethod
    def create(
        cls, text: str, source_identity: str, date: str, now: datetime
    ) -> "Message":
        """Build a new message with a fresh id and no votes."""
        millis = int(now.timestamp() * 1000)
        return cls(
            id=f"msg-{millis}-{uuid4().hex[:5]}",
            source_identity=source_identity,
            date=date,
            text=text,
            created_at=format_timestamp(now),
        )

    def add_votes(self, label: str, count: int | float) -> None:
        """Merge `count` into the tally for `label`."""
        self.votes[label] = self.votes.get(label, 0) + count

    def to_document(self) -> dict[str, Any]:
        """Serialize under the persisted wire names."""
        return self.model_dump(mode="json", by_alias=True)


class VoteItem(BaseModel):
    """A single well-formed entry of a vote batch."""

    id: str
    label: str
    count: int | float

    @classmethod
    def parse(cls, raw: Any) -> "VoteItem | None":
        """
        Extract a vote from a raw batch entry.

        The label is taken from `color`, then `emoji`, then `label`.

        Returns:
            The parsed vote, or None if the entry is malformed
        """
        if not isinstance(raw, dict):
            return None

        message_id = raw.get("id")
        if not isinstance(message_id, str) or not message_id:
            return None

        label = next(
            (raw[key] for key in LABEL_KEYS if isinstance(raw.get(key), str) and raw[key]),
            None,
        )
        if label is None:
            return None

        count = raw.get("count")
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            return None
        # Arbitrarily large JSON integers are exact; only floats can be inf or nan
        if isinstance(count, float) and not math.isfinite(count):
            return None

        return cls(id=message_id, label=label, count=count)
