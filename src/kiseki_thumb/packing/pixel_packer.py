"""
Pixel Packer
============

Lays decoded BGR samples out in a stride-padded 24-bit buffer.

Layout:
    stride = ((width * 3) + 3) & ~3
    row y occupies pixels[y * stride : (y + 1) * stride]
    the last (stride - width * 3) bytes of each row are zero

Design Rules:
    - Buffer size is checked before allocation and fails closed
    - Output never carries an alpha channel
"""

import logging
import sys
from typing import Optional

import numpy as np

from kiseki_thumb.errors import AllocationError, DimensionOverflowError
from kiseki_thumb.models.image import DecodedImage, ThumbnailResult


logger = logging.getLogger(__name__)


BYTES_PER_PIXEL = 3
UINT32_MAX = 0xFFFFFFFF


def compute_stride(width: int) -> int:
    """Round a row of width 24-bit pixels up to a multiple of 4 bytes."""
    return ((width * BYTES_PER_PIXEL) + 3) & ~3


def checked_buffer_size(
    width: int,
    height: int,
    max_buffer_bytes: Optional[int] = None,
) -> int:
    """
    Compute height * stride, refusing sizes that cannot be addressed.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        max_buffer_bytes: Optional caller-imposed ceiling

    Returns:
        Buffer size in bytes

    Raises:
        DimensionOverflowError: If any output field exceeds 32 bits or the
            buffer exceeds the platform's addressable size or the ceiling
    """
    stride = compute_stride(width)
    if width > UINT32_MAX or height > UINT32_MAX or stride > UINT32_MAX:
        raise DimensionOverflowError(
            f"Dimensions {width}x{height} exceed 32-bit output fields",
            width=width,
            height=height,
        )

    limit = sys.maxsize
    if max_buffer_bytes is not None:
        limit = min(limit, max_buffer_bytes)

    if height and stride > limit // height:
        raise DimensionOverflowError(
            f"Buffer for {width}x{height} (stride {stride}) exceeds {limit} bytes",
            width=width,
            height=height,
        )
    return height * stride


def pack(decoded: DecodedImage, max_buffer_bytes: Optional[int] = None) -> ThumbnailResult:
    """
    Pack decoded samples into a stride-aligned buffer.

    Args:
        decoded: First frame as (H, W, 3) BGR samples
        max_buffer_bytes: Optional ceiling on the packed size

    Returns:
        ThumbnailResult with has_alpha False

    Raises:
        ValueError: If the samples do not match the declared dimensions
        DimensionOverflowError: If height * stride cannot be represented
        AllocationError: If the buffer cannot be allocated
    """
    width, height = decoded.width, decoded.height
    expected_shape = (height, width, BYTES_PER_PIXEL)
    if decoded.samples.shape != expected_shape:
        raise ValueError(
            f"Samples shape {decoded.samples.shape} does not match {expected_shape}"
        )

    size = checked_buffer_size(width, height, max_buffer_bytes)
    stride = size // height
    row_bytes = width * BYTES_PER_PIXEL

    try:
        out = np.zeros((height, stride), dtype=np.uint8)
        out[:, :row_bytes] = decoded.samples.reshape(height, row_bytes)
        pixels = out.tobytes()
    except MemoryError as e:
        raise AllocationError(f"Could not allocate {size} bytes") from e

    logger.debug(f"Packed {width}x{height}, stride {stride}, {size} bytes")
    return ThumbnailResult(
        width=width,
        height=height,
        stride=stride,
        pixels=pixels,
        has_alpha=False,
    )
