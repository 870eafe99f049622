"""
Container Scanner
=================

Locates the JPEG payload trailing a container's header.

Container layout:

    <header bytes ...></roblox>\x00<JPEG bytes ...>

There is no length prefix, so the payload is found by position: the first
occurrence of the closing tag, plus one terminator byte, marks its start.
The terminator's value is not checked and a closing tag occurring earlier
in the header wins.
"""

import logging

from kiseki_thumb.errors import DelimiterNotFoundError, NoPayloadError
from kiseki_thumb.models.image import ContainerPayload


logger = logging.getLogger(__name__)


DELIMITER = b"</roblox>"
TERMINATOR_LENGTH = 1


def locate_payload(buffer: bytes, delimiter: bytes = DELIMITER) -> ContainerPayload:
    """
    Isolate the bytes following the first delimiter and its terminator.

    Args:
        buffer: Whole container contents
        delimiter: Closing tag to search for

    Returns:
        ContainerPayload spanning to the end of buffer

    Raises:
        ValueError: If delimiter is empty
        DelimiterNotFoundError: If delimiter does not occur in buffer
        NoPayloadError: If nothing follows delimiter + terminator
    """
    if not delimiter:
        raise ValueError("delimiter must be non-empty")

    index = buffer.find(delimiter)
    if index < 0:
        raise DelimiterNotFoundError(
            f"Closing tag {delimiter!r} not found in {len(buffer)} bytes"
        )

    start = index + len(delimiter) + TERMINATOR_LENGTH
    if start >= len(buffer):
        raise NoPayloadError(
            f"No data after closing tag at offset {index}"
        )

    logger.debug(f"Closing tag at offset {index}, payload is {len(buffer) - start} bytes")
    return ContainerPayload(data=bytes(buffer[start:]), offset=start)
