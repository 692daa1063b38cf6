"""
Error taxonomy for the Microrager service.

Components raise these; the HTTP layer translates them into response
envelopes. A missing document is not an error and has no exception here.
"""

from typing import Literal


class MicroragerError(Exception):
    """Base class for all service errors."""


class ValidationError(MicroragerError):
    """Client input is malformed. Nothing was mutated."""


class RateLimitError(MicroragerError):
    """The source identity already posted a message for this date."""


class StoreError(MicroragerError):
    """The backing store failed for a reason other than a missing document."""

    def __init__(self, message: str, *, action: Literal["read", "write"]) -> None:
        super().__init__(message)
        self.action = action
