"""RethinkDB connection pool.

RethinkDB driver connections must not be used by two threads at once,
so the pool hands each worker an exclusive connection and takes it back
when the write finishes. Connections open lazily, round-robin across the
configured node addresses.
"""

from __future__ import annotations

import itertools
import queue
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from rethinkdb import RethinkDB
from rethinkdb.errors import ReqlError

from core.constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_PORT
from core.errors import BmoConfigError, BmoStoreError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class NodeAddress:
    """Parsed ``host[:port]`` store node address."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_node_address(raw_value: str) -> NodeAddress:
    """Parse a node address string.

    Args:
        raw_value: Address in ``host`` or ``host:port`` form.

    Returns:
        Parsed address with the default port applied.

    Raises:
        BmoConfigError: If host is empty or port is not numeric.
    """
    host, separator, port_value = raw_value.strip().rpartition(":")
    if not separator:
        host, port_value = port_value, ""
    if not host:
        raise BmoConfigError(f"Invalid node address '{raw_value}': expected host[:port].")
    if not port_value:
        return NodeAddress(host=host, port=DEFAULT_PORT)
    try:
        return NodeAddress(host=host, port=int(port_value))
    except ValueError as error:
        raise BmoConfigError(
            f"Invalid node address '{raw_value}': port must be numeric."
        ) from error


def rethinkdb_connect(address: NodeAddress, database: str, timeout: float) -> Any:
    """Open one RethinkDB driver connection."""
    return RethinkDB().connect(
        host=address.host, port=address.port, db=database, timeout=timeout
    )


class ConnectionPool:
    """Bounded set of exclusive store connections shared by insert workers."""

    def __init__(
        self,
        nodes: tuple[str, ...],
        database: str,
        size: int,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
        connect_fn: Callable[[NodeAddress, str, float], Any] = rethinkdb_connect,
    ) -> None:
        if not nodes:
            raise BmoConfigError("Specify at least one node address.")
        self._addresses = [parse_node_address(node) for node in nodes]
        self._address_cycle = itertools.cycle(self._addresses)
        self._database = database
        self._size = size
        self._timeout = timeout
        self._connect_fn = connect_fn
        self._idle: queue.LifoQueue[Any] = queue.LifoQueue()
        self._lock = threading.Lock()
        self._opened: list[Any] = []
        self._slots = threading.BoundedSemaphore(size)

    @property
    def database(self) -> str:
        return self._database

    @property
    def size(self) -> int:
        return self._size

    @property
    def open_count(self) -> int:
        with self._lock:
            return len(self._opened)

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Check out an exclusive connection for the duration of the block.

        Raises:
            BmoStoreError: If a new connection cannot be opened.
        """
        self._slots.acquire()
        try:
            conn = self._checkout()
            try:
                yield conn
            finally:
                self._idle.put(conn)
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close every connection the pool has opened."""
        with self._lock:
            opened, self._opened = self._opened, []
        while not self._idle.empty():
            self._idle.get_nowait()
        for conn in opened:
            try:
                conn.close()
            except ReqlError as error:
                _LOGGER.warning("connection_close_failed", error=str(error))

    def _checkout(self) -> Any:
        try:
            return self._idle.get_nowait()
        except queue.Empty:
            return self._open()

    def _open(self) -> Any:
        with self._lock:
            address = next(self._address_cycle)
        try:
            conn = self._connect_fn(address, self._database, self._timeout)
        except ReqlError as error:
            raise BmoStoreError(
                f"Failed to connect to RethinkDB node {address}: {error}. "
                "Check the node address and that the server is reachable."
            ) from error
        with self._lock:
            self._opened.append(conn)
        _LOGGER.debug("connection_opened", node=str(address), database=self._database)
        return conn
