"""In-memory store backend used by pipeline and store tests."""

from __future__ import annotations

import threading
import time
from typing import Any, Mapping, Sequence

from core.errors import BmoStoreError


class InMemoryBackend:
    """Thread-safe ``StoreBackend`` recording every call it receives."""

    def __init__(
        self,
        tables: set[str] | None = None,
        fail_on_insert: int | None = None,
        insert_delay: float = 0.0,
    ) -> None:
        self.tables: set[str] = set(tables or ())
        self.created: list[str] = []
        self.inserts: list[list[dict[str, Any]]] = []
        self.durabilities: list[str] = []
        self.closed = False
        self.active = 0
        self.peak_active = 0
        self._fail_on_insert = fail_on_insert
        self._insert_delay = insert_delay
        self._lock = threading.Lock()

    @property
    def documents(self) -> list[dict[str, Any]]:
        with self._lock:
            return [document for batch in self.inserts for document in batch]

    def list_tables(self, database: str) -> set[str]:
        return set(self.tables)

    def create_table(self, database: str, table: str) -> None:
        self.tables.add(table)
        self.created.append(table)

    def insert(
        self,
        database: str,
        table: str,
        documents: Sequence[Mapping[str, Any]],
        durability: str,
    ) -> Mapping[str, Any]:
        with self._lock:
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            if self._insert_delay:
                time.sleep(self._insert_delay)
            with self._lock:
                call_index = len(self.durabilities)
                self.durabilities.append(durability)
                if self._fail_on_insert is not None and call_index == self._fail_on_insert:
                    raise BmoStoreError(f"insert #{call_index} rejected")
                self.inserts.append([dict(document) for document in documents])
            return {"inserted": len(documents), "errors": 0}
        finally:
            with self._lock:
                self.active -= 1

    def close(self) -> None:
        self.closed = True
