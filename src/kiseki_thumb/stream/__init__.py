"""
Stream Module
=============

Byte source consumption for the extraction pipeline.

Example:
    from kiseki_thumb.stream import read_all

    with open("place.rbxl", "rb") as f:
        raw = read_all(f, chunk_size=4096)
"""

from kiseki_thumb.stream.reader import DEFAULT_CHUNK_SIZE, ByteSource, read_all


__all__ = [
    "ByteSource",
    "DEFAULT_CHUNK_SIZE",
    "read_all",
]
