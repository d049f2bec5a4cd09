"""Type definitions for media capture core models."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Literal


class RequestKind(IntEnum):
    AUDIO = 0
    IMAGE_OR_VIDEO = 1


class RequestState(str, Enum):
    CREATED = "created"
    AWAITING_PERMISSION = "awaiting_permission"
    AWAITING_EXTERNAL_RESULT = "awaiting_external_result"
    RESOLVED = "resolved"


class ErrorCode(IntEnum):
    INTERNAL_ERROR = 0
    NO_MEDIA_FILES = 3
    PERMISSION_DENIED = 4
    NOT_SUPPORTED = 20


CaptureMode = Literal["audio", "image", "video", "chooser"]

VIDEO_3GPP = "video/3gpp"
VIDEO_MP4 = "video/mp4"
AUDIO_3GPP = "audio/3gpp"
AUDIO_TYPES: tuple[str, ...] = ("audio/3gpp", "audio/aac", "audio/amr", "audio/wav")
VIDEO_TYPES: tuple[str, ...] = (VIDEO_3GPP, VIDEO_MP4)
IMAGE_JPEG = "image/jpeg"

MAX_REQUEST_ID = 0x10000
