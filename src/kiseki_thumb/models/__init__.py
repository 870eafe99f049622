"""
Data Models
===========

Typed records for kiseki_thumb.

This module re-exports all data models for convenient access.

Models:
    Image:
        - ContainerPayload: JPEG bytes isolated from the container
        - JpegFrameInfo: First-frame header (lazy metadata)
        - DecodedImage: First frame as BGR samples
        - ThumbnailResult: Stride-padded output buffer

    State:
        - PipelineStage: Per-call stage enum

    Registry:
        - ValueType: STRING or INTEGER
        - RegistryEntry: One file-association value
"""

from kiseki_thumb.models.image import (
    ContainerPayload,
    DecodedImage,
    JpegFrameInfo,
    ThumbnailResult,
)
from kiseki_thumb.models.state import PipelineStage
from kiseki_thumb.models.registry import RegistryEntry, ValueType

__all__ = [
    # Image
    "ContainerPayload",
    "JpegFrameInfo",
    "DecodedImage",
    "ThumbnailResult",
    # State
    "PipelineStage",
    # Registry
    "ValueType",
    "RegistryEntry",
]
