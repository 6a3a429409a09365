"""Shared typed models.

This module defines immutable data models used by the ingest,
dispatch, and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.constants import STDIN_SOURCE


@dataclass(frozen=True)
class Envelope:
    """One decoded input value with its ingest metadata.

    Attributes:
        sequence: Zero-based arrival index, unique per run.
        ingested_at: Milliseconds since the Unix epoch at sequencing time.
        payload: Decoded JSON value, opaque to the pipeline.
    """

    sequence: int
    ingested_at: int
    payload: Any

    def to_document(self) -> dict[str, Any]:
        """Return the table document persisted for this envelope."""
        return {
            "sequence": self.sequence,
            "ingested_at": self.ingested_at,
            "payload": self.payload,
        }


@dataclass(frozen=True)
class Batch:
    """Sealed, ordered group of envelopes inserted together.

    Attributes:
        envelopes: Envelopes in sequence order, never empty.
    """

    envelopes: tuple[Envelope, ...]

    def __len__(self) -> int:
        return len(self.envelopes)

    @property
    def first_sequence(self) -> int:
        return self.envelopes[0].sequence

    @property
    def last_sequence(self) -> int:
        return self.envelopes[-1].sequence

    def documents(self) -> list[dict[str, Any]]:
        """Return store documents in envelope order."""
        return [envelope.to_document() for envelope in self.envelopes]


@dataclass(frozen=True)
class IngestOptions:
    """Ingest command options.

    Attributes:
        source_uri: ``-`` for stdin, a local path, or an ``s3://`` URI.
    """

    source_uri: str = STDIN_SOURCE


@dataclass(frozen=True)
class IngestSummary:
    """Outcome of a successful ingest run.

    Attributes:
        object_count: Number of decoded and inserted values.
        batch_count: Number of batches submitted.
        table_created: Whether the target table was created by this run.
    """

    object_count: int
    batch_count: int
    table_created: bool
