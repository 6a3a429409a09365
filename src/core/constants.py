"""Core constants used across BMO modules.

This module centralizes pipeline defaults and store settings.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_NODES = ()
DEFAULT_DATABASE = "sophia"
DEFAULT_TABLE = "bmo_test"
DEFAULT_POOL_SIZE = 20
# RethinkDB documents peak write throughput around two hundred documents per batch.
DEFAULT_BATCH_SIZE = 200
DEFAULT_PORT = 28015
DEFAULT_CONNECT_TIMEOUT = 20.0
DEFAULT_LOG_LEVEL = "INFO"
INSERT_MODE_BATCH = "batch"
INSERT_MODE_DOCUMENT = "document"
SUPPORTED_INSERT_MODES = (INSERT_MODE_BATCH, INSERT_MODE_DOCUMENT)
DEFAULT_INSERT_MODE = INSERT_MODE_BATCH
INSERT_DURABILITY = "soft"
MAX_SEQUENCE = 2**64 - 1
STDIN_SOURCE = "-"
READ_CHUNK_SIZE = 64 * 1024
MAX_VALUE_BYTES = 64 * 1024 * 1024
PARSE_CONTEXT_CHARS = 80
