"""Public SDK surface for BMO.

This module provides a stable import path for library users.
It re-exports the pipeline entry points and typed models.
"""

from __future__ import annotations

from core.config import BmoConfig
from core.errors import BmoError, BmoIngestError, BmoStoreError, StreamParseError
from core.types import Batch, Envelope, IngestOptions, IngestSummary
from ingest.pipeline import IngestPipelineRunner, ingest_source, ingest_stream
from store.table_store import StoreBackend, TableStore

__all__ = [
    "Batch",
    "BmoConfig",
    "BmoError",
    "BmoIngestError",
    "BmoStoreError",
    "Envelope",
    "IngestOptions",
    "IngestPipelineRunner",
    "IngestSummary",
    "StoreBackend",
    "StreamParseError",
    "TableStore",
    "ingest_source",
    "ingest_stream",
]
