"""Runtime configuration model for BMO.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DATABASE,
    DEFAULT_INSERT_MODE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_NODES,
    DEFAULT_POOL_SIZE,
    DEFAULT_TABLE,
    SUPPORTED_INSERT_MODES,
)
from core.errors import BmoConfigError


@dataclass(frozen=True)
class BmoConfig:
    """Validated runtime configuration.

    Attributes:
        nodes: RethinkDB node addresses in ``host[:port]`` form.
        database: Target database name.
        table: Target table name.
        pool_size: Number of concurrent insert workers.
        batch_size: Maximum envelopes per insert batch.
        insert_mode: ``batch`` for one write per batch, ``document`` for one per envelope.
        connect_timeout: Seconds to wait when opening a store connection.
        log_level: Minimum level for structured log output.
        s3_region: Optional default AWS region for S3 input sources.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    nodes: tuple[str, ...]
    database: str
    table: str
    pool_size: int
    batch_size: int
    insert_mode: str
    connect_timeout: float
    log_level: str
    s3_region: str | None
    s3_profile: str | None

    @classmethod
    def from_env(cls) -> "BmoConfig":
        """Build config from process environment variables.

        Returns:
            A config object with parsed values.

        Raises:
            BmoConfigError: If environment values are invalid.
        """
        nodes_value = os.getenv("BMO_NODES")
        return cls(
            nodes=_parse_nodes(nodes_value) if nodes_value is not None else DEFAULT_NODES,
            database=os.getenv("BMO_DATABASE", DEFAULT_DATABASE),
            table=os.getenv("BMO_TABLE", DEFAULT_TABLE),
            pool_size=_parse_int("BMO_POOL_SIZE", os.getenv("BMO_POOL_SIZE"), DEFAULT_POOL_SIZE),
            batch_size=_parse_int(
                "BMO_BATCH_SIZE", os.getenv("BMO_BATCH_SIZE"), DEFAULT_BATCH_SIZE
            ),
            insert_mode=os.getenv("BMO_INSERT_MODE", DEFAULT_INSERT_MODE),
            connect_timeout=_parse_timeout(os.getenv("BMO_CONNECT_TIMEOUT")),
            log_level=os.getenv("BMO_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            s3_region=os.getenv("BMO_S3_REGION"),
            s3_profile=os.getenv("BMO_S3_PROFILE"),
        )

    def validated(self) -> "BmoConfig":
        """Check cross-field constraints and return self.

        Returns:
            The same config when valid.

        Raises:
            BmoConfigError: If any field is out of range.
        """
        if not self.nodes:
            raise BmoConfigError("Specify at least one node address with --node or BMO_NODES.")
        if not self.database:
            raise BmoConfigError("Specify the database with --database or BMO_DATABASE.")
        if not self.table:
            raise BmoConfigError("Specify the target table with --table or BMO_TABLE.")
        if self.pool_size < 1:
            raise BmoConfigError(
                f"Invalid pool size {self.pool_size}: expected a positive worker count."
            )
        if self.batch_size < 1:
            raise BmoConfigError(
                f"Invalid batch size {self.batch_size}: expected a positive document count."
            )
        if self.insert_mode not in SUPPORTED_INSERT_MODES:
            raise BmoConfigError(
                f"Invalid insert mode '{self.insert_mode}': "
                f"expected one of {', '.join(SUPPORTED_INSERT_MODES)}."
            )
        return self


def _parse_nodes(raw_value: str) -> tuple[str, ...]:
    """Split a comma-separated node list, dropping blanks."""
    return tuple(node.strip() for node in raw_value.split(",") if node.strip())


def _parse_int(name: str, raw_value: str | None, default: int) -> int:
    """Parse an integer environment value.

    Args:
        name: Environment variable name for error context.
        raw_value: Raw string from environment, or None when unset.
        default: Value used when unset.

    Returns:
        Parsed integer.

    Raises:
        BmoConfigError: If value cannot be parsed into int.
    """
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError as error:
        raise BmoConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error


def _parse_timeout(raw_value: str | None) -> float:
    if raw_value is None:
        return DEFAULT_CONNECT_TIMEOUT
    try:
        return float(raw_value)
    except ValueError as error:
        raise BmoConfigError(
            f"Invalid BMO_CONNECT_TIMEOUT value: expected seconds, got '{raw_value}'."
        ) from error
