"""
Thumbnail Pipeline
==================

Single entry point turning a container byte source into a packed preview.

Stages:
    source -> read_all -> locate_payload -> JpegDecoder -> pack -> ThumbnailResult

State (per call):
    INITIALIZED -> PAYLOAD_LOCATED -> IMAGE_DECODED -> RESULT_PACKED
    any stage   -> FAILED

Design Rules:
    - Synchronous, single pass, no retries
    - Every failure is terminal and surfaces as a ThumbnailError
    - No state shared between calls
    - The source is read but never closed

Example:
    from kiseki_thumb.pipeline import extract_thumbnail

    with open("place.rbxl", "rb") as f:
        thumb = extract_thumbnail(f)
    print(thumb.width, thumb.height, thumb.stride)
"""

import logging
from typing import Optional

from kiseki_thumb.config import Settings, settings as default_settings
from kiseki_thumb.container.scanner import locate_payload
from kiseki_thumb.decode.image_decoder import JpegDecoder
from kiseki_thumb.errors import ErrorKind, PipelineStateError, ThumbnailError
from kiseki_thumb.models.image import ThumbnailResult
from kiseki_thumb.models.state import PipelineStage
from kiseki_thumb.packing.pixel_packer import checked_buffer_size, pack
from kiseki_thumb.stream.reader import ByteSource, read_all


logger = logging.getLogger(__name__)


class ThumbnailPipeline:
    """
    One extraction: attach a source once, then produce its thumbnail.

    Mirrors the host's two capabilities, stream initialization and
    thumbnail production, on a single object.

    Attributes:
        stage: Current PipelineStage
        failure: ErrorKind of the failing stage, or None

    Example:
        pipeline = ThumbnailPipeline()
        pipeline.initialize(stream)
        thumb = pipeline.get_thumbnail()
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        """
        Initialize pipeline.

        Args:
            settings: Configuration (defaults to the global settings)
        """
        self._settings = settings if settings is not None else default_settings
        self._source: Optional[ByteSource] = None
        self.stage: Optional[PipelineStage] = None
        self.failure: Optional[ErrorKind] = None

    def initialize(self, source: ByteSource) -> None:
        """
        Attach the byte source. May be called only once.

        Raises:
            PipelineStateError: If a source is already attached or source is None
        """
        if self._source is not None:
            raise PipelineStateError("Pipeline can only be initialized once")
        if source is None:
            raise PipelineStateError("Pipeline requires a byte source")
        self._source = source
        self.stage = PipelineStage.INITIALIZED

    def get_thumbnail(self) -> ThumbnailResult:
        """
        Run all stages against the attached source.

        Returns:
            Packed ThumbnailResult

        Raises:
            PipelineStateError: If not initialized or already run
            ThumbnailError: Subclass identifying the failing stage
        """
        if self.stage is not PipelineStage.INITIALIZED:
            raise PipelineStateError(
                f"get_thumbnail requires an initialized pipeline (stage={self.stage})"
            )

        try:
            raw = read_all(self._source, chunk_size=self._settings.reader.chunk_size)
            payload = locate_payload(raw)
            del raw
            self.stage = PipelineStage.PAYLOAD_LOCATED

            max_buffer_bytes = self._settings.packer.max_buffer_bytes
            with JpegDecoder(payload) as decoder:
                info = decoder.frame_info
                # Refuse oversized frames before the full decode
                checked_buffer_size(info.width, info.height, max_buffer_bytes)
                decoded = decoder.decode_first_frame()
            self.stage = PipelineStage.IMAGE_DECODED

            result = pack(decoded, max_buffer_bytes=max_buffer_bytes)
            self.stage = PipelineStage.RESULT_PACKED

        except ThumbnailError as e:
            logger.warning(f"Thumbnail extraction failed after {self.stage.value}: {e.kind.value}: {e}")
            self.stage = PipelineStage.FAILED
            self.failure = e.kind
            raise
        except Exception as e:
            logger.warning(f"Thumbnail extraction failed after {self.stage.value}: {type(e).__name__}: {e}")
            self.stage = PipelineStage.FAILED
            raise

        logger.debug(f"Extracted {result!r}")
        return result


def extract_thumbnail(source: ByteSource, *, settings: Optional[Settings] = None) -> ThumbnailResult:
    """
    Extract and pack the preview image embedded in a container.

    Args:
        source: Open byte source positioned at the container start
        settings: Configuration (defaults to the global settings)

    Returns:
        ThumbnailResult with width, height, stride and padded BGR pixels

    Raises:
        StreamReadError: Source read failed
        DelimiterNotFoundError: Closing tag missing
        NoPayloadError: Nothing after the closing tag
        ImageDecodeError: Payload is not a decodable JPEG
        DimensionOverflowError: Packed size cannot be represented
        AllocationError: Packed buffer could not be allocated
    """
    pipeline = ThumbnailPipeline(settings)
    pipeline.initialize(source)
    return pipeline.get_thumbnail()
