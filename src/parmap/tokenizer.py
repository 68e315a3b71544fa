"""Quote-aware finite-state tokenizer for argument streams.

Tokens end at an unquoted delimiter byte. Single or double quotes make
delimiters literal until the matching quote; a backslash makes the next byte
literal both outside and inside quotes.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import BinaryIO

from parmap.errors import ResourceError, TokenOverflowError, UnterminatedQuoteError

DEFAULT_DELIMITERS = frozenset(b" \t\n\r\v\f")
READ_CHUNK_BYTES = 65_536

_BACKSLASH = ord("\\")
_QUOTES = frozenset(b"'\"")
_NUL = 0


class ParseState(str, Enum):
    """Tokenizer states; ESCAPED returns to the state that entered it."""

    NORMAL = "normal"
    QUOTED = "quoted"
    ESCAPED = "escaped"


def delimiter_set(spec: str | None) -> frozenset[int]:
    """Build the delimiter byte set for a `--delimiter` value.

    A custom set replaces the default whitespace set. NUL always terminates a
    token in a custom set, so an empty value splits NUL-separated input.
    """

    if spec is None:
        return DEFAULT_DELIMITERS
    return frozenset(os.fsencode(spec)) | {_NUL}


class Tokenizer:
    """Lazy token producer over a byte stream.

    The token buffer is allocated once and cleared between tokens. A token may
    hold exactly ``capacity`` bytes; one more byte is fatal for the whole run.
    Read failures on the stream surface as ResourceError.
    """

    def __init__(
        self,
        stream: BinaryIO,
        *,
        capacity: int,
        delimiters: Iterable[int] = DEFAULT_DELIMITERS,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"Token capacity must be positive: {capacity}")
        self.capacity = capacity
        self.delimiters = frozenset(delimiters)
        self._buffer = bytearray()
        self._chunks = _iter_bytes(stream)

    def __iter__(self) -> Iterator[str]:
        while (token := self.next_token()) is not None:
            yield token

    def next_token(self) -> str | None:
        """Return the next token, or None once the stream is exhausted.

        Consecutive delimiters produce an empty string.
        """

        buffer = self._buffer
        buffer.clear()
        state = ParseState.NORMAL
        resume = ParseState.NORMAL
        quote = 0

        for byte in self._chunks:
            if state is ParseState.ESCAPED:
                state = resume
            elif state is ParseState.QUOTED:
                if byte == _BACKSLASH:
                    state, resume = ParseState.ESCAPED, ParseState.QUOTED
                    continue
                if byte == quote:
                    state = ParseState.NORMAL
                    continue
            else:
                if byte in self.delimiters:
                    return os.fsdecode(bytes(buffer))
                if byte == _BACKSLASH:
                    state, resume = ParseState.ESCAPED, ParseState.NORMAL
                    continue
                if byte in _QUOTES:
                    state, quote = ParseState.QUOTED, byte
                    continue

            if len(buffer) >= self.capacity:
                raise TokenOverflowError(self.capacity)
            buffer.append(byte)

        if state is ParseState.QUOTED or (
            state is ParseState.ESCAPED and resume is ParseState.QUOTED
        ):
            raise UnterminatedQuoteError(chr(quote))
        if not buffer:
            return None
        return os.fsdecode(bytes(buffer))


def _iter_bytes(stream: BinaryIO) -> Iterator[int]:
    read = getattr(stream, "read1", None) or stream.read
    while True:
        try:
            chunk = read(READ_CHUNK_BYTES)
        except OSError as error:
            raise ResourceError.from_os_error("read", error) from error
        if not chunk:
            return
        yield from chunk
