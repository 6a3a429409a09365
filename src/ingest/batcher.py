"""Fixed-capacity batching of envelopes.

Pending envelopes live in a producer-owned list. Sealing copies them
into an immutable ``Batch`` and starts a fresh list, so a sealed batch
is never aliased with the buffer that receives the next envelopes.
"""

from __future__ import annotations

from core.errors import BmoIngestError
from core.types import Batch, Envelope


class Batcher:
    """Accumulate envelopes and seal batches of at most ``max_batch``."""

    def __init__(self, max_batch: int) -> None:
        if max_batch < 1:
            raise BmoIngestError(f"Invalid batch size {max_batch}: expected at least 1.")
        self._max_batch = max_batch
        self._pending: list[Envelope] = []
        self._flushed = False

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def append(self, envelope: Envelope) -> Batch | None:
        """Add an envelope, returning a sealed batch once capacity is reached.

        Args:
            envelope: Next envelope in sequence order.

        Returns:
            The full batch when this append filled it, else None.

        Raises:
            BmoIngestError: If called after ``flush_partial``.
        """
        if self._flushed:
            raise BmoIngestError("Cannot append to a batcher after its final flush.")
        self._pending.append(envelope)
        if len(self._pending) < self._max_batch:
            return None
        return self._seal()

    def flush_partial(self) -> Batch | None:
        """Seal remaining envelopes at end of stream.

        Returns:
            The final, possibly short batch, or None when nothing is pending.

        Raises:
            BmoIngestError: If called more than once.
        """
        if self._flushed:
            raise BmoIngestError("Batcher final flush was already performed.")
        self._flushed = True
        if not self._pending:
            return None
        return self._seal()

    def _seal(self) -> Batch:
        batch = Batch(envelopes=tuple(self._pending))
        self._pending = []
        return batch
