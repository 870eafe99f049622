"""
Packing Module
==============

Stride-padded pixel buffer layout.

Example:
    from kiseki_thumb.packing import pack, compute_stride

    assert compute_stride(5) == 16
    result = pack(decoded)
"""

from kiseki_thumb.packing.pixel_packer import (
    checked_buffer_size,
    compute_stride,
    pack,
)


__all__ = [
    "checked_buffer_size",
    "compute_stride",
    "pack",
]
