"""
Stream Reader
=============

Drains an already-opened byte source into memory.

Design Rules:
    - Reads fixed-size chunks until the source returns no bytes
    - Appends every non-empty chunk in order, whatever its size
    - Any read failure discards partial data and raises StreamReadError
    - Never closes the source (caller owns it)
"""

import logging
from typing import Protocol

from kiseki_thumb.errors import StreamReadError


logger = logging.getLogger(__name__)


DEFAULT_CHUNK_SIZE = 4096


class ByteSource(Protocol):
    """
    Protocol for readable byte sources.

    Binary file objects, io.BytesIO and socket makefile() objects all
    satisfy it. An empty return value signals end of data; raising
    signals an error.
    """

    def read(self, size: int) -> bytes:
        ...


def read_all(source: ByteSource, chunk_size: int = DEFAULT_CHUNK_SIZE) -> bytes:
    """
    Read a byte source to exhaustion.

    Args:
        source: Open byte source
        chunk_size: Bytes requested per read call

    Returns:
        Everything the source produced, in order

    Raises:
        ValueError: If chunk_size < 1
        StreamReadError: If any read attempt fails
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")

    buffer = bytearray()
    chunks = 0
    while True:
        try:
            chunk = source.read(chunk_size)
        except Exception as e:
            raise StreamReadError(
                f"Read failed after {len(buffer)} bytes: {e}"
            ) from e

        if not chunk:
            break

        buffer += chunk
        chunks += 1

    logger.debug(f"Read {len(buffer)} bytes in {chunks} chunks")
    return bytes(buffer)
