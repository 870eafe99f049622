"""
Image Data Models
=================

Typed records passed between the pipeline stages.

    ContainerPayload  ->  JpegFrameInfo / DecodedImage  ->  ThumbnailResult

Design Rules:
    - All records are created and dropped within a single extraction call
    - Records are immutable (frozen) once produced
    - reprs never dump pixel or payload bytes
"""

from dataclasses import dataclass
from typing import Iterator

import numpy as np


@dataclass(frozen=True, slots=True)
class ContainerPayload:
    """
    Compressed image bytes isolated from the container.

    Attributes:
        data: Bytes from just after the terminator to the end of the buffer
        offset: Index of data[0] within the raw buffer
    """

    data: bytes
    offset: int

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.data:
            raise ValueError("payload must be non-empty")
        if self.offset < 0:
            raise ValueError("offset must be non-negative")

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"ContainerPayload(offset={self.offset}, size={len(self.data)})"


@dataclass(frozen=True, slots=True)
class JpegFrameInfo:
    """
    Header of the first JPEG frame, parsed without decoding pixels.

    Attributes:
        width: Samples per line from the SOF segment
        height: Number of lines from the SOF segment
        components: Number of colour components (1 = grayscale, 3 = YCbCr)
        precision: Sample precision in bits
        progressive: True for progressive (SOF2/SOF6/...) frames
        offset: Position of the SOF marker within the payload
        scan_offset: Position of the first SOS marker within the payload
    """

    width: int
    height: int
    components: int
    precision: int
    progressive: bool
    offset: int
    scan_offset: int


@dataclass(frozen=True, slots=True, eq=False)
class DecodedImage:
    """
    First frame of the payload decoded to 3-byte BGR samples.

    Attributes:
        width: Image width in pixels (> 0)
        height: Image height in pixels (> 0)
        samples: Row-major (height, width, 3) uint8 array, blue-green-red
    """

    width: int
    height: int
    samples: np.ndarray

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"dimensions must be positive, got {self.width}x{self.height}"
            )

    def __repr__(self) -> str:
        return f"DecodedImage(width={self.width}, height={self.height})"


@dataclass(frozen=True, slots=True)
class ThumbnailResult:
    """
    Stride-padded 24-bit pixel buffer ready for display.

    Each row occupies `stride` bytes: width * 3 bytes of BGR samples
    followed by zero padding up to the next multiple of 4.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        stride: Bytes per row, a multiple of 4
        pixels: height * stride bytes
        has_alpha: Always False, the output is opaque
    """

    width: int
    height: int
    stride: int
    pixels: bytes
    has_alpha: bool = False

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.stride % 4 != 0 or self.stride < self.width * 3:
            raise ValueError(f"invalid stride {self.stride} for width {self.width}")
        if len(self.pixels) != self.height * self.stride:
            raise ValueError(
                f"pixel buffer is {len(self.pixels)} bytes, "
                f"expected {self.height * self.stride}"
            )

    @property
    def row_bytes(self) -> int:
        """Visible bytes per row, excluding padding."""
        return self.width * 3

    def rows(self) -> Iterator[bytes]:
        """Yield the visible bytes of each row, top to bottom."""
        for y in range(self.height):
            start = y * self.stride
            yield self.pixels[start:start + self.row_bytes]

    def to_array(self) -> np.ndarray:
        """
        Return the pixels as a contiguous (height, width, 3) BGR array.

        Padding bytes are dropped. The result is a copy and may be
        passed straight to OpenCV.
        """
        grid = np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            self.height, self.stride
        )
        visible = grid[:, :self.row_bytes]
        return np.ascontiguousarray(visible).reshape(self.height, self.width, 3)

    def __repr__(self) -> str:
        return (
            f"ThumbnailResult(width={self.width}, height={self.height}, "
            f"stride={self.stride}, has_alpha={self.has_alpha})"
        )
