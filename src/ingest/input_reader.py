"""Input byte stream sources for ingestion.

This module opens the stream the decoder reads from: process stdin,
a local file, or an S3 object body streamed through boto3.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Iterator

from core.config import BmoConfig
from core.constants import STDIN_SOURCE
from core.errors import BmoDependencyError, BmoIngestError
from core.s3_uri import is_s3_uri, parse_s3_uri


@contextmanager
def open_input_stream(source_uri: str, config: BmoConfig) -> Iterator[BinaryIO]:
    """Open a binary input stream for a source.

    Args:
        source_uri: ``-`` for stdin, a local path, or ``s3://bucket/key``.
        config: Runtime configuration for S3 session defaults.

    Yields:
        Readable binary stream. Stdin is left open on exit.

    Raises:
        BmoIngestError: If the source cannot be opened.
    """
    if source_uri == STDIN_SOURCE:
        yield sys.stdin.buffer
        return
    if is_s3_uri(source_uri):
        body = _open_s3_body(source_uri, config)
        try:
            yield body
        finally:
            body.close()
        return
    with _open_local_file(Path(source_uri).expanduser()) as stream:
        yield stream


def _open_local_file(source_path: Path) -> BinaryIO:
    """Open a local input file for binary reading.

    Raises:
        BmoIngestError: If path is missing or unreadable.
    """
    if not source_path.is_file():
        raise BmoIngestError(
            f"Failed to read source at {source_path}: file does not exist. "
            "Provide an existing file, an s3:// URI, or '-' for stdin."
        )
    try:
        return source_path.open("rb")
    except OSError as error:
        raise BmoIngestError(f"Failed to open source at {source_path}: {error}.") from error


def _open_s3_body(source_uri: str, config: BmoConfig) -> Any:
    """Start streaming an S3 object.

    Args:
        source_uri: S3 object URI.
        config: Runtime configuration for region/profile.

    Returns:
        Botocore streaming body with a ``read(size)`` method.

    Raises:
        BmoIngestError: If the object cannot be fetched.
    """
    location = parse_s3_uri(source_uri)
    s3_client = _create_s3_client(config)
    try:
        response = s3_client.get_object(Bucket=location.bucket, Key=location.key)
    except Exception as error:
        raise BmoIngestError(
            f"Failed to fetch {source_uri}: {error}. "
            "Check AWS credentials and that the object exists."
        ) from error
    return response["Body"]


def _create_s3_client(config: BmoConfig) -> Any:
    """Create a boto3 S3 client.

    Args:
        config: Runtime config containing optional profile/region.

    Returns:
        Boto3 S3 client.

    Raises:
        BmoDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise BmoDependencyError(
            "S3 input requires boto3, but it is not installed. "
            "Install boto3 to ingest from s3:// sources."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
