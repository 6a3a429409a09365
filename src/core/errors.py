"""BMO exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each pipeline stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class BmoError(Exception):
    """Base exception for all BMO failures."""


class BmoConfigError(BmoError):
    """Raised for invalid runtime configuration."""


class BmoIngestError(BmoError):
    """Raised for input reading, sequencing, and batching failures."""


class StreamParseError(BmoIngestError):
    """Raised when the input stream holds bytes that are not valid JSON.

    Attributes:
        sequence: Zero-based index of the value being decoded.
        context: Raw text snippet at the failure point.
        reason: Parser message describing the failure.
    """

    def __init__(self, sequence: int, context: str, reason: str) -> None:
        self.sequence = sequence
        self.context = context
        self.reason = reason
        super().__init__(
            f"Can't parse JSON input at object #{sequence}: {reason}. "
            f"Near {context!r}."
        )


class BmoStoreError(BmoError):
    """Raised for table store connection, creation, and write failures."""


class BmoDependencyError(BmoError):
    """Raised when an optional runtime dependency is missing."""
