"""Helpers for validating downloaded byte streams before decompression."""

from __future__ import annotations

import io
from typing import BinaryIO

from errors import ContentTypeError

GZIP_MAGIC = b"\x1f\x8b\x08"


def peekable(stream: BinaryIO) -> io.BufferedReader:
    """Return a buffered view of ``stream`` that supports ``peek()``."""
    if isinstance(stream, io.BufferedReader):
        return stream
    return io.BufferedReader(stream)  # type: ignore[arg-type]


def ensure_gzip_signature(stream: io.BufferedReader, label: str) -> io.BufferedReader:
    """Check the gzip magic bytes without consuming them.

    Args:
        stream: Buffered stream positioned at the start of the payload.
        label: Human-readable description used in the error message.

    Raises:
        ContentTypeError: If the payload does not start with the gzip signature.
    """
    head = stream.peek(len(GZIP_MAGIC))[: len(GZIP_MAGIC)]
    if head != GZIP_MAGIC:
        raise ContentTypeError(
            f"{label} is not a gzip-compressed archive (leading bytes: {head[:8]!r})"
        )
    return stream
