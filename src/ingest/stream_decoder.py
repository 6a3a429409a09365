"""Incremental JSON value decoder over a byte stream.

This module parses concatenated JSON values one at a time from a
binary stream read in fixed-size chunks. It never rewinds: consumed
text is dropped from the buffer once a value is returned.
"""

from __future__ import annotations

import codecs
import json
import re
from typing import Any, BinaryIO, Iterator

from core.constants import MAX_VALUE_BYTES, PARSE_CONTEXT_CHARS, READ_CHUNK_SIZE
from core.errors import StreamParseError

_WHITESPACE = re.compile(r"[ \t\n\r]*")


class _EndOfStream:
    """Sentinel type returned once the stream is cleanly exhausted."""

    def __repr__(self) -> str:
        return "END_OF_STREAM"


END_OF_STREAM = _EndOfStream()


class _NonStandardConstant(ValueError):
    """Raised for ``NaN`` and ``Infinity`` tokens, which JSON does not allow."""


def _reject_constant(token: str) -> Any:
    raise _NonStandardConstant(f"{token} is not a valid JSON value")


class StreamDecoder:
    """Lazy decoder yielding one JSON value per call.

    A value is accepted only when the parser finishes before the end of
    buffered text or the stream is exhausted, so number tokens split
    across chunk boundaries are never cut short. Consumed text is tracked
    by offset and dropped only when the next chunk is read. While a value
    stays incomplete, each read doubles in size so re-parsing the growing
    value costs linear time overall.
    """

    def __init__(
        self,
        stream: BinaryIO,
        chunk_size: int = READ_CHUNK_SIZE,
        max_value_bytes: int = MAX_VALUE_BYTES,
    ) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._max_value_bytes = max_value_bytes
        self._text_decoder = codecs.getincrementaldecoder("utf-8")()
        self._json_decoder = json.JSONDecoder(parse_constant=_reject_constant)
        self._buffer = ""
        self._offset = 0
        self._read_size = chunk_size
        self._eof = False
        self._index = 0

    @property
    def values_decoded(self) -> int:
        """Number of values returned so far."""
        return self._index

    def __iter__(self) -> Iterator[Any]:
        while True:
            value = self.next_value()
            if value is END_OF_STREAM:
                return
            yield value

    def next_value(self) -> Any:
        """Decode the next JSON value.

        Returns:
            The decoded value, or ``END_OF_STREAM`` at a clean boundary.

        Raises:
            StreamParseError: If remaining bytes are not valid JSON.
        """
        while True:
            self._skip_whitespace()
            if self._offset == len(self._buffer):
                if self._eof:
                    return END_OF_STREAM
                self._fill()
                continue
            try:
                value, end = self._json_decoder.raw_decode(self._buffer, self._offset)
            except json.JSONDecodeError as error:
                if self._eof:
                    raise self._parse_error(error.msg, error.pos) from error
                self._ensure_within_limit(error.msg)
                self._fill(grow=True)
                continue
            except _NonStandardConstant as error:
                raise self._parse_error(str(error), self._offset) from error
            if end == len(self._buffer) and not self._eof:
                self._fill(grow=True)
                continue
            self._offset = end
            self._read_size = self._chunk_size
            self._index += 1
            return value

    def _fill(self, grow: bool = False) -> None:
        """Read from the stream, dropping text already consumed."""
        if self._offset:
            self._buffer = self._buffer[self._offset :]
            self._offset = 0
        chunk = self._stream.read(self._read_size)
        if grow:
            self._read_size = min(self._read_size * 2, max(self._max_value_bytes, 1))
        try:
            if chunk:
                self._buffer += self._text_decoder.decode(chunk)
                return
            self._buffer += self._text_decoder.decode(b"", final=True)
        except UnicodeDecodeError as error:
            raise self._parse_error(f"invalid UTF-8 input ({error.reason})", 0) from error
        self._eof = True

    def _skip_whitespace(self) -> None:
        self._offset = _WHITESPACE.match(self._buffer, self._offset).end()

    def _ensure_within_limit(self, reason: str) -> None:
        if len(self._buffer) - self._offset > self._max_value_bytes:
            raise self._parse_error(
                f"{reason}; value exceeds {self._max_value_bytes} buffered characters",
                self._offset,
            )

    def _parse_error(self, reason: str, position: int) -> StreamParseError:
        start = max(self._offset, position - PARSE_CONTEXT_CHARS // 2)
        context = self._buffer[start : start + PARSE_CONTEXT_CHARS]
        return StreamParseError(sequence=self._index, context=context, reason=reason)
