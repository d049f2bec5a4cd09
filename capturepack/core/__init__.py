"""Core models and constants for media capture requests."""

from capturepack.core.canonical import canonical_json, compute_checksum
from capturepack.core.exceptions import CaptureOptionsError
from capturepack.core.models import (
    CaptureOptions,
    Failure,
    Outcome,
    Request,
    ResultDescriptor,
    Success,
)
from capturepack.core.types import (
    AUDIO_3GPP,
    AUDIO_TYPES,
    IMAGE_JPEG,
    MAX_REQUEST_ID,
    VIDEO_3GPP,
    VIDEO_MP4,
    VIDEO_TYPES,
    CaptureMode,
    ErrorCode,
    RequestKind,
    RequestState,
)

__all__ = [
    "canonical_json",
    "compute_checksum",
    "CaptureOptions",
    "CaptureOptionsError",
    "CaptureMode",
    "ErrorCode",
    "Failure",
    "Outcome",
    "Request",
    "RequestKind",
    "RequestState",
    "ResultDescriptor",
    "Success",
    "AUDIO_3GPP",
    "AUDIO_TYPES",
    "IMAGE_JPEG",
    "MAX_REQUEST_ID",
    "VIDEO_3GPP",
    "VIDEO_MP4",
    "VIDEO_TYPES",
]
