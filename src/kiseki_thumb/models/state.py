"""
Pipeline State
==============

Per-call stage tracking for the extraction pipeline.

Transitions:
    INITIALIZED -> PAYLOAD_LOCATED -> IMAGE_DECODED -> RESULT_PACKED
    any stage   -> FAILED

No stage is retried. FAILED and RESULT_PACKED are terminal.
"""

from enum import Enum


class PipelineStage(str, Enum):
    """
    Stages of a single extraction call.

    Attributes:
        INITIALIZED: Source attached, nothing read yet
        PAYLOAD_LOCATED: Container scanned, JPEG payload isolated
        IMAGE_DECODED: First frame decoded to BGR samples
        RESULT_PACKED: Stride-padded result produced
        FAILED: A stage raised; see the pipeline's failure kind
    """

    INITIALIZED = "INITIALIZED"
    PAYLOAD_LOCATED = "PAYLOAD_LOCATED"
    IMAGE_DECODED = "IMAGE_DECODED"
    RESULT_PACKED = "RESULT_PACKED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStage.RESULT_PACKED, PipelineStage.FAILED)
