"""
Container Module
================

Binary scanning of the container format.

Example:
    from kiseki_thumb.container import locate_payload

    payload = locate_payload(raw)
    print(payload.offset, len(payload))
"""

from kiseki_thumb.container.scanner import DELIMITER, TERMINATOR_LENGTH, locate_payload


__all__ = [
    "DELIMITER",
    "TERMINATOR_LENGTH",
    "locate_payload",
]
