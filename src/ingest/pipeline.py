"""Ingest orchestration for streaming bulk loads.

This module wires the decoder, sequencer, and batcher on the calling
thread to a bounded insert pool, after making sure the target table
exists. Parse and store failures are fatal and are raised to the caller
once in-flight inserts have drained.
"""

from __future__ import annotations

from contextlib import ExitStack
from typing import BinaryIO

from core.config import BmoConfig
from core.errors import BmoError, StreamParseError
from core.logging_config import get_logger
from core.types import IngestOptions, IngestSummary
from ingest.batcher import Batcher
from ingest.dispatcher import BoundedDispatcher
from ingest.input_reader import open_input_stream
from ingest.sequencer import Sequencer
from ingest.stream_decoder import StreamDecoder
from store.table_store import TableStore

_LOGGER = get_logger(__name__)


class IngestPipelineRunner:
    """Single-use runner for one input stream."""

    def __init__(self, config: BmoConfig, store: TableStore) -> None:
        self._config = config
        self._store = store
        self._sequencer = Sequencer()
        self._batcher = Batcher(config.batch_size)

    def run(self, stream: BinaryIO) -> IngestSummary:
        """Load every JSON value from ``stream`` into the target table.

        Args:
            stream: Binary input stream of concatenated JSON values.

        Returns:
            Counts for the completed run.

        Raises:
            StreamParseError: If the input holds malformed JSON.
            BmoStoreError: If table setup or any insert fails.
        """
        try:
            table_created = self._store.ensure_table()
            if table_created:
                _LOGGER.info(
                    "table_created", database=self._store.database, table=self._store.table
                )
            dispatcher = BoundedDispatcher(self._store.insert_batch, self._config.pool_size)
            with dispatcher:
                try:
                    self._produce(StreamDecoder(stream), dispatcher)
                except StreamParseError as parse_error:
                    self._flush_after_parse_error(dispatcher, parse_error)
                    raise
        except BmoError as error:
            _log_ingest_failure(error, self._sequencer.next_sequence)
            raise
        summary = IngestSummary(
            object_count=self._sequencer.next_sequence,
            batch_count=dispatcher.submitted,
            table_created=table_created,
        )
        _LOGGER.info(
            "ingest_completed",
            database=self._store.database,
            table=self._store.table,
            object_count=summary.object_count,
            batch_count=summary.batch_count,
            max_in_flight=dispatcher.max_in_flight,
        )
        return summary

    def _produce(self, decoder: StreamDecoder, dispatcher: BoundedDispatcher) -> None:
        for value in decoder:
            batch = self._batcher.append(self._sequencer.assign(value))
            if batch is not None:
                dispatcher.submit(batch)
        final_batch = self._batcher.flush_partial()
        if final_batch is not None:
            dispatcher.submit(final_batch)

    def _flush_after_parse_error(
        self,
        dispatcher: BoundedDispatcher,
        parse_error: StreamParseError,
    ) -> None:
        """Deliver envelopes decoded before the failure, then drain."""
        try:
            final_batch = self._batcher.flush_partial()
            if final_batch is not None:
                dispatcher.submit(final_batch)
            dispatcher.close()
        except BmoError as error:
            _LOGGER.warning(
                "partial_flush_failed",
                sequence=parse_error.sequence,
                error=str(error),
            )


def ingest_stream(
    stream: BinaryIO,
    config: BmoConfig,
    store: TableStore | None = None,
) -> IngestSummary:
    """Run the ingest pipeline over an open stream.

    Args:
        stream: Binary input stream.
        config: Validated runtime configuration.
        store: Optional store connector; a RethinkDB one is built and
            closed here when omitted.

    Returns:
        Counts for the completed run.
    """
    if store is not None:
        return IngestPipelineRunner(config, store).run(stream)
    try:
        owned_store = TableStore.from_config(config)
    except BmoError as error:
        _log_ingest_failure(error, 0)
        raise
    try:
        return IngestPipelineRunner(config, owned_store).run(stream)
    finally:
        owned_store.close()


def ingest_source(
    options: IngestOptions,
    config: BmoConfig,
    store: TableStore | None = None,
) -> IngestSummary:
    """Open ``options.source_uri`` and ingest it.

    Raises:
        BmoIngestError: If the source cannot be opened or parsed.
        BmoStoreError: If table setup or any insert fails.
    """
    with ExitStack() as stack:
        try:
            stream = stack.enter_context(open_input_stream(options.source_uri, config))
        except BmoError as error:
            _log_ingest_failure(error, 0)
            raise
        return ingest_stream(stream, config, store)


def _log_ingest_failure(error: BmoError, object_count: int) -> None:
    """Emit the single diagnostic for a fatal ingest failure."""
    fields: dict[str, object] = {
        "kind": type(error).__name__,
        "object_count": object_count,
        "error": str(error),
    }
    if isinstance(error, StreamParseError):
        fields["sequence"] = error.sequence
        fields["context"] = error.context
    _LOGGER.error("ingest_failed", **fields)
