"""Table store connector.

This module ensures the target table exists and writes sealed batches
with soft durability. Store access goes through the ``StoreBackend``
capability so the pipeline never touches driver objects directly.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from rethinkdb import RethinkDB
from rethinkdb.errors import ReqlError

from core.config import BmoConfig
from core.constants import (
    INSERT_DURABILITY,
    INSERT_MODE_BATCH,
    INSERT_MODE_DOCUMENT,
    SUPPORTED_INSERT_MODES,
)
from core.errors import BmoConfigError, BmoStoreError
from core.logging_config import get_logger
from core.types import Batch
from store.connection_pool import ConnectionPool

_LOGGER = get_logger(__name__)


class StoreBackend(Protocol):
    """Capabilities the pipeline needs from a networked table store."""

    def list_tables(self, database: str) -> set[str]:
        ...

    def create_table(self, database: str, table: str) -> None:
        ...

    def insert(
        self,
        database: str,
        table: str,
        documents: Sequence[Mapping[str, Any]],
        durability: str,
    ) -> Mapping[str, Any]:
        ...

    def close(self) -> None:
        ...


class RethinkBackend:
    """RethinkDB implementation of ``StoreBackend`` over a connection pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool
        self._r = RethinkDB()

    def list_tables(self, database: str) -> set[str]:
        query = self._r.db(database).table_list()
        return set(self._run(query, f"list tables in database '{database}'"))

    def create_table(self, database: str, table: str) -> None:
        query = self._r.db(database).table_create(table)
        self._run(query, f"create table '{database}.{table}'")

    def insert(
        self,
        database: str,
        table: str,
        documents: Sequence[Mapping[str, Any]],
        durability: str,
    ) -> Mapping[str, Any]:
        query = self._r.db(database).table(table).insert(
            list(documents), durability=durability
        )
        result = self._run(query, f"insert into '{database}.{table}'")
        errors = int(result.get("errors", 0))
        if errors:
            raise BmoStoreError(
                f"RethinkDB rejected {errors} of {len(documents)} documents "
                f"for '{database}.{table}': {result.get('first_error', 'unknown error')}."
            )
        return result

    def close(self) -> None:
        self._pool.close()

    def _run(self, query: Any, action: str) -> Any:
        with self._pool.connection() as conn:
            try:
                return query.run(conn)
            except ReqlError as error:
                raise BmoStoreError(f"Failed to {action}: {error}.") from error


class TableStore:
    """Store connector owning table setup and batched writes.

    Attributes are fixed at construction; the same instance is shared
    read-only by every insert worker.
    """

    def __init__(
        self,
        backend: StoreBackend,
        database: str,
        table: str,
        insert_mode: str = INSERT_MODE_BATCH,
    ) -> None:
        if insert_mode not in SUPPORTED_INSERT_MODES:
            raise BmoConfigError(
                f"Invalid insert mode '{insert_mode}': "
                f"expected one of {', '.join(SUPPORTED_INSERT_MODES)}."
            )
        self._backend = backend
        self._database = database
        self._table = table
        self._insert_mode = insert_mode

    @classmethod
    def from_config(cls, config: BmoConfig) -> "TableStore":
        """Build a RethinkDB-backed store sized for the worker pool."""
        pool = ConnectionPool(
            nodes=config.nodes,
            database=config.database,
            size=config.pool_size,
            timeout=config.connect_timeout,
        )
        return cls(RethinkBackend(pool), config.database, config.table, config.insert_mode)

    @property
    def database(self) -> str:
        return self._database

    @property
    def table(self) -> str:
        return self._table

    def ensure_table(self, table: str | None = None) -> bool:
        """Create a table when it is missing.

        Args:
            table: Table name, defaulting to the configured target table.

        Returns:
            ``True`` when this call created the table.

        Raises:
            BmoStoreError: If listing or creation fails.
        """
        name = table or self._table
        if name in self._backend.list_tables(self._database):
            return False
        _LOGGER.info("table_creating", database=self._database, table=name)
        self._backend.create_table(self._database, name)
        return True

    def insert_batch(self, batch: Batch) -> None:
        """Write a batch with soft durability.

        Args:
            batch: Sealed batch of envelopes.

        Raises:
            BmoStoreError: If the store rejects any write.
        """
        if self._insert_mode == INSERT_MODE_DOCUMENT:
            for envelope in batch.envelopes:
                self._backend.insert(
                    self._database, self._table, [envelope.to_document()], INSERT_DURABILITY
                )
            return
        self._backend.insert(self._database, self._table, batch.documents(), INSERT_DURABILITY)

    def close(self) -> None:
        self._backend.close()
