"""Sequence and timestamp assignment for decoded values.

The sequencer is owned by the producer loop. It keeps no lock, so it
must never be shared with insert workers.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from core.constants import MAX_SEQUENCE
from core.errors import BmoIngestError
from core.types import Envelope


def epoch_millis() -> int:
    """Return the current wall-clock time in Unix epoch milliseconds."""
    return time.time_ns() // 1_000_000


class Sequencer:
    """Wrap values in envelopes with strictly increasing sequence numbers."""

    def __init__(self, clock: Callable[[], int] = epoch_millis) -> None:
        self._clock = clock
        self._next_sequence = 0

    @property
    def next_sequence(self) -> int:
        """Sequence number the next envelope will receive."""
        return self._next_sequence

    def assign(self, value: Any) -> Envelope:
        """Wrap one decoded value.

        Args:
            value: Decoded JSON value.

        Returns:
            Envelope carrying the next sequence number.

        Raises:
            BmoIngestError: If the 64-bit sequence space is exhausted.
        """
        sequence = self._next_sequence
        if sequence > MAX_SEQUENCE:
            raise BmoIngestError(
                f"Sequence space exhausted after {MAX_SEQUENCE} objects. "
                "Split the input stream across runs."
            )
        self._next_sequence = sequence + 1
        return Envelope(sequence=sequence, ingested_at=self._clock(), payload=value)
