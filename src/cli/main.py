"""BMO CLI entry point.
This module parses loader flags, overlays them on environment config,
and runs the ingest pipeline over stdin, a file, or an S3 object.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from typing import Sequence

from core.config import BmoConfig
from core.constants import DEFAULT_LOG_LEVEL, STDIN_SOURCE, SUPPORTED_INSERT_MODES
from core.errors import BmoConfigError, BmoError
from core.logging_config import configure_logging, get_logger
from core.types import IngestOptions
from ingest.pipeline import ingest_source

_LOGGER = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="bmo",
        description="Stream concatenated JSON values into a RethinkDB table",
    )
    parser.add_argument(
        "source",
        nargs="?",
        default=STDIN_SOURCE,
        help="Input file, s3://bucket/key, or '-' for stdin (default)",
    )
    parser.add_argument(
        "--node",
        action="append",
        dest="nodes",
        help="RethinkDB host[:port], can specify multiple times",
    )
    parser.add_argument("--database", help="Name of target database")
    parser.add_argument("--table", help="Name of target table")
    parser.add_argument("--pool-size", type=int, help="Concurrent insert workers")
    parser.add_argument("--batch-size", type=int, help="Documents per insert batch")
    parser.add_argument(
        "--insert-mode",
        choices=SUPPORTED_INSERT_MODES,
        help="One write per batch or one write per document",
    )
    parser.add_argument("--log-level", help="Minimum log level, e.g. INFO or DEBUG")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the BMO CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or DEFAULT_LOG_LEVEL)
    try:
        config = _build_config(args)
    except BmoConfigError as error:
        parser.print_usage(sys.stderr)
        _LOGGER.error("invalid_configuration", error=str(error))
        return 2
    configure_logging(config.log_level)
    options = IngestOptions(source_uri=args.source)
    try:
        summary = ingest_source(options, config)
    except BmoConfigError:
        return 2
    except BmoError:
        return 1
    print(
        f"objects={summary.object_count}\t"
        f"batches={summary.batch_count}\t"
        f"table_created={str(summary.table_created).lower()}"
    )
    return 0


def _build_config(args: argparse.Namespace) -> BmoConfig:
    """Overlay CLI flags on environment configuration.

    Args:
        args: Parsed CLI args.

    Returns:
        Validated config.

    Raises:
        BmoConfigError: If environment or flag values are invalid.
    """
    config = BmoConfig.from_env()
    overrides: dict[str, object] = {}
    if args.nodes:
        overrides["nodes"] = tuple(args.nodes)
    if args.database is not None:
        overrides["database"] = args.database
    if args.table is not None:
        overrides["table"] = args.table
    if args.pool_size is not None:
        overrides["pool_size"] = args.pool_size
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.insert_mode is not None:
        overrides["insert_mode"] = args.insert_mode
    if args.log_level is not None:
        overrides["log_level"] = args.log_level.upper()
    return replace(config, **overrides).validated()
