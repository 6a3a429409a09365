"""Bounded worker pool for batch inserts.

This module runs insert calls on a fixed thread pool. Submission blocks
while every worker is busy, and the first worker failure is kept in a
shared slot that the producer observes on its next submit or at drain.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from core.errors import BmoError, BmoIngestError, BmoStoreError
from core.logging_config import get_logger
from core.types import Batch

_LOGGER = get_logger(__name__)


class BoundedDispatcher:
    """Fixed-size insert pool with backpressure and fail-fast semantics.

    At most ``pool_size`` inserts execute at once. A semaphore slot is
    taken before each submission and released when the worker finishes,
    so the executor queue never holds waiting batches.
    """

    def __init__(
        self,
        insert_fn: Callable[[Batch], object],
        pool_size: int,
        thread_name_prefix: str = "bmo-insert",
    ) -> None:
        if pool_size < 1:
            raise BmoIngestError(f"Invalid pool size {pool_size}: expected at least 1.")
        self._insert_fn = insert_fn
        self._pool_size = pool_size
        self._executor = ThreadPoolExecutor(
            max_workers=pool_size, thread_name_prefix=thread_name_prefix
        )
        self._slots = threading.BoundedSemaphore(pool_size)
        self._lock = threading.Lock()
        self._failure: BmoError | None = None
        self._in_flight = 0
        self._max_in_flight = 0
        self._submitted = 0
        self._closed = False

    def __enter__(self) -> "BoundedDispatcher":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        if exc is None:
            self.close()
            return
        # Drain without masking the exception already propagating.
        self._drain()

    @property
    def pool_size(self) -> int:
        return self._pool_size

    @property
    def submitted(self) -> int:
        return self._submitted

    @property
    def max_in_flight(self) -> int:
        """Highest number of inserts observed running at once."""
        with self._lock:
            return self._max_in_flight

    @property
    def failure(self) -> BmoError | None:
        """First insert failure recorded by any worker."""
        with self._lock:
            return self._failure

    def submit(self, batch: Batch) -> None:
        """Hand a sealed batch to the next free worker.

        Blocks while all workers are busy.

        Args:
            batch: Batch whose ownership moves to the worker.

        Raises:
            BmoStoreError: If a previous insert has failed.
            BmoIngestError: If the dispatcher is already closed.
        """
        if self._closed:
            raise BmoIngestError("Cannot submit a batch to a closed dispatcher.")
        self._raise_if_failed()
        self._slots.acquire()
        if self.failure is not None:
            self._slots.release()
            self._raise_if_failed()
        self._submitted += 1
        self._executor.submit(self._run, batch)

    def close(self) -> None:
        """Wait for all submitted inserts, then surface any failure.

        Raises:
            BmoStoreError: If any insert failed.
        """
        self._drain()
        self._raise_if_failed()

    def _drain(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        _LOGGER.debug(
            "dispatcher_drained",
            submitted=self._submitted,
            max_in_flight=self._max_in_flight,
        )

    def _run(self, batch: Batch) -> None:
        with self._lock:
            self._in_flight += 1
            self._max_in_flight = max(self._max_in_flight, self._in_flight)
        try:
            self._insert_fn(batch)
        except Exception as error:
            self._record_failure(batch, error)
        else:
            _LOGGER.debug(
                "batch_inserted",
                first_sequence=batch.first_sequence,
                last_sequence=batch.last_sequence,
                size=len(batch),
            )
        finally:
            with self._lock:
                self._in_flight -= 1
            self._slots.release()

    def _record_failure(self, batch: Batch, error: Exception) -> None:
        if isinstance(error, BmoError):
            failure: BmoError = error
        else:
            failure = BmoStoreError(
                f"Insert of objects #{batch.first_sequence}-#{batch.last_sequence} "
                f"failed: {error}"
            )
            failure.__cause__ = error
        with self._lock:
            if self._failure is None:
                self._failure = failure
        _LOGGER.warning(
            "batch_insert_failed",
            first_sequence=batch.first_sequence,
            last_sequence=batch.last_sequence,
            size=len(batch),
            error=str(error),
        )

    def _raise_if_failed(self) -> None:
        failure = self.failure
        if failure is not None:
            raise failure
