"""
Image Decoder
=============

Dedicated module for decoding the embedded JPEG into BGR samples.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Header (width, height) is parsed lazily by walking JPEG markers
    - Full pixel decode happens only when samples are requested
    - Only the first frame is decoded; bytes after its EOI are ignored
    - Output is (H, W, 3) uint8 in blue-green-red order
    - Fails fast on corrupt payloads with ImageDecodeError
"""

import logging
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from kiseki_thumb.errors import ImageDecodeError
from kiseki_thumb.models.image import ContainerPayload, DecodedImage, JpegFrameInfo


logger = logging.getLogger(__name__)


SOI = b"\xff\xd8"

# SOF0..SOF15, excluding DHT (C4), JPG (C8) and DAC (CC)
_SOF_MARKERS = frozenset(range(0xC0, 0xD0)) - {0xC4, 0xC8, 0xCC}
_PROGRESSIVE_MARKERS = frozenset({0xC2, 0xC6, 0xCA, 0xCE})
# Markers without a length field
_STANDALONE_MARKERS = frozenset({0x01, 0xD8}) | frozenset(range(0xD0, 0xD8))

SOI_MARKER = 0xD8
SOS_MARKER = 0xDA
EOI_MARKER = 0xD9

# Keep OpenCV from applying EXIF rotation; the frame is returned as stored.
_IMDECODE_FLAGS = cv2.IMREAD_COLOR | cv2.IMREAD_IGNORE_ORIENTATION


def _next_marker(data: bytes, start: int) -> int:
    """Offset of the next 0xFF that introduces a marker, or -1."""
    n = len(data)
    k = data.find(b"\xff", start)
    while 0 <= k < n - 1:
        if data[k + 1] not in (0x00, 0xFF):
            return k
        k = data.find(b"\xff", k + 1)
    return -1


def find_frame_end(data: bytes, scan_offset: int) -> int:
    """
    Locate the EOI closing the frame whose first scan starts at scan_offset.

    Walks entropy-coded data and any further marker segments (DHT, SOS,
    DQT, DRI, APPn, COM) of the same frame. Stuffed bytes and restart
    markers are stepped over.

    Returns:
        Offset of the frame's EOI marker, or -1 if the frame is truncated
        (data ends, a segment runs past the end, or a new SOI/SOF appears
        before EOI)
    """
    n = len(data)
    i = scan_offset
    while True:
        k = data.find(b"\xff", i)
        if k < 0:
            return -1

        j = k + 1
        while j < n and data[j] == 0xFF:
            j += 1
        if j >= n:
            return -1

        marker = data[j]
        if marker == EOI_MARKER:
            return j - 1
        if marker == SOI_MARKER or marker in _SOF_MARKERS:
            return -1
        if marker == 0x00 or marker in _STANDALONE_MARKERS:
            i = j + 1
            continue

        if j + 3 > n:
            return -1
        seglen = int.from_bytes(data[j + 1:j + 3], "big")
        if seglen < 2:
            return -1
        i = j + 1 + seglen


def read_frame_info(data: bytes) -> JpegFrameInfo:
    """
    Parse the first frame header of a JPEG stream without decoding pixels.

    Walks marker segments from SOI up to the first SOS, recording the
    first SOF segment on the way.

    Args:
        data: JPEG bytes

    Returns:
        JpegFrameInfo for the first frame

    Raises:
        ImageDecodeError: If the signature is wrong, the header is
            truncated, or no frame/scan header precedes the image data
    """
    if len(data) < 4 or not data.startswith(SOI):
        raise ImageDecodeError(
            f"Not a JPEG stream: signature {bytes(data[:2]).hex() or 'empty'}"
        )

    n = len(data)
    i = len(SOI)
    frame: Optional[dict] = None

    while i < n:
        if data[i] != 0xFF:
            # Extraneous bytes between segments are skipped, as libjpeg does
            k = _next_marker(data, i)
            if k < 0:
                break
            logger.debug(f"Skipped {k - i} extraneous bytes before marker at offset {k}")
            i = k

        # Skip fill bytes
        j = i
        while j < n and data[j] == 0xFF:
            j += 1
        if j >= n:
            break

        marker = data[j]
        marker_offset = j - 1
        pos = j + 1

        if marker in _STANDALONE_MARKERS:
            i = pos
            continue

        if marker == EOI_MARKER:
            raise ImageDecodeError(f"End of image at offset {marker_offset} before any scan")

        if pos + 2 > n:
            break
        seglen = int.from_bytes(data[pos:pos + 2], "big")
        if seglen < 2 or pos + seglen > n:
            break

        if marker == SOS_MARKER:
            if frame is None:
                raise ImageDecodeError(f"Scan at offset {marker_offset} before any frame header")
            return JpegFrameInfo(scan_offset=marker_offset, **frame)

        if marker in _SOF_MARKERS and frame is None:
            if seglen < 8:
                raise ImageDecodeError(f"Frame header at offset {marker_offset} is too short")
            # SOF: precision(1), height(2), width(2), components(1)
            precision = data[pos + 2]
            height = int.from_bytes(data[pos + 3:pos + 5], "big")
            width = int.from_bytes(data[pos + 5:pos + 7], "big")
            components = data[pos + 7]
            if width == 0 or height == 0:
                raise ImageDecodeError(f"Unsupported frame dimensions {width}x{height}")
            frame = {
                "width": width,
                "height": height,
                "components": components,
                "precision": precision,
                "progressive": marker in _PROGRESSIVE_MARKERS,
                "offset": marker_offset,
            }

        i = pos + seglen

    raise ImageDecodeError(f"JPEG header truncated after {n} bytes")


class JpegDecoder:
    """
    Scoped JPEG decoder for one payload.

    Holds the encoded payload as a numpy buffer for the lifetime of a
    `with` block and drops it (and any decoded samples) on exit, on
    every exit path.

    Attributes:
        frame_info: First-frame header, parsed on first access

    Example:
        with JpegDecoder(payload) as decoder:
            print(decoder.frame_info.width)
            image = decoder.decode_first_frame()
    """

    def __init__(self, payload: Union[ContainerPayload, bytes]) -> None:
        """
        Initialize decoder.

        Args:
            payload: ContainerPayload or raw JPEG bytes
        """
        if isinstance(payload, ContainerPayload):
            payload = payload.data
        self._data: Optional[bytes] = bytes(payload)
        self._encoded: Optional[np.ndarray] = None
        self._frame_info: Optional[JpegFrameInfo] = None
        self._decoded: Optional[DecodedImage] = None

    @property
    def released(self) -> bool:
        """Whether the decoder's buffers have been dropped."""
        return self._data is None

    @property
    def frame_info(self) -> JpegFrameInfo:
        """First-frame header, parsed lazily."""
        self._check_open()
        if self._frame_info is None:
            self._frame_info = read_frame_info(self._data)
            logger.debug(f"Frame header: {self._frame_info}")
        return self._frame_info

    def decode_first_frame(self) -> DecodedImage:
        """
        Decode the first frame to BGR samples.

        Returns:
            DecodedImage with (H, W, 3) uint8 samples

        Raises:
            ImageDecodeError: If decoding fails or the image is invalid
        """
        self._check_open()
        if self._decoded is not None:
            return self._decoded

        info = self.frame_info

        if find_frame_end(self._data, info.scan_offset) < 0:
            raise ImageDecodeError("JPEG stream truncated: first frame has no end-of-image marker")

        if self._encoded is None:
            self._encoded = np.frombuffer(self._data, np.uint8)

        try:
            bgr = cv2.imdecode(self._encoded, _IMDECODE_FLAGS)
        except cv2.error as e:
            raise ImageDecodeError(f"OpenCV failed to decode JPEG: {e}") from e

        if bgr is None:
            raise ImageDecodeError("Failed to decode JPEG: cv2.imdecode returned None")

        # Validate shape
        if bgr.ndim != 3 or bgr.shape[2] != 3:
            raise ImageDecodeError(f"Invalid image shape: {bgr.shape}")

        # Validate dtype
        if bgr.dtype != np.uint8:
            raise ImageDecodeError(f"Invalid dtype: {bgr.dtype}")

        height, width = bgr.shape[:2]
        if (width, height) != (info.width, info.height):
            raise ImageDecodeError(
                f"Decoded size {width}x{height} does not match "
                f"header size {info.width}x{info.height}"
            )

        self._decoded = DecodedImage(width=width, height=height, samples=bgr)
        return self._decoded

    def release(self) -> None:
        """Drop the encoded and decoded buffers."""
        self._data = None
        self._encoded = None
        self._decoded = None

    def _check_open(self) -> None:
        if self.released:
            raise RuntimeError("JpegDecoder used after release")

    def __enter__(self) -> "JpegDecoder":
        """Context manager entry."""
        self._check_open()
        logger.debug(f"Decoder acquired for {len(self._data)} bytes")
        return self

    def __exit__(self, *args) -> None:
        """Context manager exit."""
        self.release()
        logger.debug("Decoder released")


def decode(payload: Union[ContainerPayload, bytes]) -> DecodedImage:
    """
    Decode the first frame of a JPEG payload to BGR samples.

    Args:
        payload: ContainerPayload or raw JPEG bytes

    Returns:
        DecodedImage with (H, W, 3) uint8 BGR samples

    Raises:
        ImageDecodeError: If the payload is not a decodable JPEG
    """
    with JpegDecoder(payload) as decoder:
        return decoder.decode_first_frame()


def get_dimensions(payload: Union[ContainerPayload, bytes]) -> Optional[Tuple[int, int]]:
    """
    Get first-frame dimensions without a full decode.

    Args:
        payload: ContainerPayload or raw JPEG bytes

    Returns:
        Tuple of (width, height) or None if the header is invalid
    """
    try:
        with JpegDecoder(payload) as decoder:
            info = decoder.frame_info
            return info.width, info.height
    except ImageDecodeError:
        return None
