"""
Error Taxonomy
==============

Exception hierarchy for the thumbnail extraction pipeline.

Every stage raises exactly one of these and never retries. Each exception
carries an ErrorKind so a host can tell which stage failed without
matching on exception classes:

    ThumbnailError
    ├── StreamReadError          (IO_ERROR)
    ├── ContainerFormatError
    │   ├── DelimiterNotFoundError  (DELIMITER_NOT_FOUND)
    │   └── NoPayloadError          (NO_PAYLOAD)
    ├── ImageDecodeError         (DECODE_ERROR)
    ├── DimensionOverflowError   (DIMENSION_OVERFLOW)
    ├── AllocationError          (ALLOCATION_ERROR)
    ├── PipelineStateError       (INVALID_STATE)
    └── RegistrationError        (REGISTRATION_ERROR)
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Machine-readable failure kinds.

    Attributes:
        IO_ERROR: Reading the byte source failed
        DELIMITER_NOT_FOUND: Container has no closing tag
        NO_PAYLOAD: Closing tag found but nothing follows the terminator
        DECODE_ERROR: Embedded image is not a decodable JPEG
        DIMENSION_OVERFLOW: Output buffer size does not fit
        ALLOCATION_ERROR: Output buffer could not be allocated
        INVALID_STATE: Pipeline object used out of order
        REGISTRATION_ERROR: Registry entry could not be written
    """

    IO_ERROR = "IO_ERROR"
    DELIMITER_NOT_FOUND = "DELIMITER_NOT_FOUND"
    NO_PAYLOAD = "NO_PAYLOAD"
    DECODE_ERROR = "DECODE_ERROR"
    DIMENSION_OVERFLOW = "DIMENSION_OVERFLOW"
    ALLOCATION_ERROR = "ALLOCATION_ERROR"
    INVALID_STATE = "INVALID_STATE"
    REGISTRATION_ERROR = "REGISTRATION_ERROR"


class ThumbnailError(Exception):
    """Base exception for all thumbnail extraction errors."""

    kind: Optional[ErrorKind] = None


class StreamReadError(ThumbnailError):
    """Raised when the byte source fails mid-read."""

    kind = ErrorKind.IO_ERROR


class ContainerFormatError(ThumbnailError):
    """Raised when the container structure is not as expected."""


class DelimiterNotFoundError(ContainerFormatError):
    """Raised when the closing tag does not occur in the buffer."""

    kind = ErrorKind.DELIMITER_NOT_FOUND


class NoPayloadError(ContainerFormatError):
    """Raised when no bytes follow the closing tag and its terminator."""

    kind = ErrorKind.NO_PAYLOAD


class ImageDecodeError(ThumbnailError):
    """Raised when image decoding fails."""

    kind = ErrorKind.DECODE_ERROR


class DimensionOverflowError(ThumbnailError):
    """Raised when the packed buffer size would overflow."""

    kind = ErrorKind.DIMENSION_OVERFLOW

    def __init__(self, message: str, width: Optional[int] = None, height: Optional[int] = None):
        super().__init__(message)
        self.width = width
        self.height = height


class AllocationError(ThumbnailError):
    """Raised when the packed buffer cannot be allocated."""

    kind = ErrorKind.ALLOCATION_ERROR


class PipelineStateError(ThumbnailError):
    """Raised when a ThumbnailPipeline is initialized twice or used uninitialized."""

    kind = ErrorKind.INVALID_STATE


class RegistrationError(ThumbnailError):
    """Raised when a registry entry cannot be applied or removed."""

    kind = ErrorKind.REGISTRATION_ERROR
