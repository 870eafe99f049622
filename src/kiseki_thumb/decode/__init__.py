"""
Decode Module
=============

JPEG decoding of the container payload.

Example:
    from kiseki_thumb.decode import decode, JpegDecoder

    image = decode(payload)

    with JpegDecoder(payload) as decoder:
        print(decoder.frame_info.width, decoder.frame_info.height)
"""

from kiseki_thumb.decode.image_decoder import (
    JpegDecoder,
    decode,
    get_dimensions,
    read_frame_info,
)


__all__ = [
    "JpegDecoder",
    "decode",
    "get_dimensions",
    "read_frame_info",
]
