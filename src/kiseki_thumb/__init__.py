"""
kiseki_thumb
============

Preview extraction for Roblox place files.

A place file carries an XML-like header, the closing tag `</roblox>`, one
NUL byte and then a JPEG preview. This package locates that JPEG, decodes
its first frame and packs it into a stride-padded 24-bit BGR buffer ready
for a host to turn into a bitmap.

Components:
    - stream: Drains a byte source into memory
    - container: Finds the closing tag and isolates the JPEG payload
    - decode: Lazy JPEG header parsing and first-frame decoding
    - packing: Stride-aligned pixel layout
    - pipeline: The extract_thumbnail entry point
    - registration: File association table (deployment tooling)

Example:
    from kiseki_thumb import extract_thumbnail

    with open("place.rbxl", "rb") as f:
        thumb = extract_thumbnail(f)
"""

__version__ = "0.1.0"
__author__ = "Kiseki Project"

from kiseki_thumb.errors import ErrorKind, ThumbnailError
from kiseki_thumb.models.image import ThumbnailResult
from kiseki_thumb.pipeline import ThumbnailPipeline, extract_thumbnail

__all__ = [
    "__version__",
    "ErrorKind",
    "ThumbnailError",
    "ThumbnailPipeline",
    "ThumbnailResult",
    "extract_thumbnail",
]
