"""Capture orchestration: permission gate, external surfaces and cleanup."""

from capturepack.capture.cleanup import (
    DUPLICATE_IMAGE_DELTA,
    discard_placeholder,
    remove_duplicate_image,
)
from capturepack.capture.demo import run_demo_capture
from capturepack.capture.descriptors import describe_media, guess_mime_type
from capturepack.capture.exceptions import CaptureError, CaptureFailedError, SurfaceUnavailableError
from capturepack.capture.fakes import (
    DirectoryMediaStore,
    ScriptedCaptureSurface,
    StaticPermissionBackend,
)
from capturepack.capture.formats import (
    FormatData,
    LocalMediaProbe,
    MediaInfo,
    MediaProbe,
    get_format_data,
)
from capturepack.capture.orchestrator import (
    MESSAGE_CANCELED,
    MESSAGE_DID_NOT_COMPLETE,
    MESSAGE_NO_DATA,
    MESSAGE_PERMISSION_DENIED,
    CaptureOrchestrator,
)
from capturepack.capture.permissions import (
    CAMERA,
    READ_STORAGE,
    STORAGE_CAPABILITIES,
    WRITE_STORAGE,
    Capability,
    PermissionBackend,
    PermissionCheck,
    PermissionGate,
)
from capturepack.capture.surface import (
    CaptureSurface,
    LaunchSpec,
    LocalPathResolver,
    MediaStore,
    PathResolver,
    SurfaceResult,
    uri_to_path,
)

__all__ = [
    "CaptureError",
    "CaptureFailedError",
    "SurfaceUnavailableError",
    "CaptureOrchestrator",
    "MESSAGE_CANCELED",
    "MESSAGE_DID_NOT_COMPLETE",
    "MESSAGE_NO_DATA",
    "MESSAGE_PERMISSION_DENIED",
    "Capability",
    "CAMERA",
    "READ_STORAGE",
    "WRITE_STORAGE",
    "STORAGE_CAPABILITIES",
    "PermissionBackend",
    "PermissionCheck",
    "PermissionGate",
    "CaptureSurface",
    "LaunchSpec",
    "LocalPathResolver",
    "MediaStore",
    "PathResolver",
    "SurfaceResult",
    "uri_to_path",
    "describe_media",
    "guess_mime_type",
    "DUPLICATE_IMAGE_DELTA",
    "discard_placeholder",
    "remove_duplicate_image",
    "FormatData",
    "LocalMediaProbe",
    "MediaInfo",
    "MediaProbe",
    "get_format_data",
    "DirectoryMediaStore",
    "ScriptedCaptureSurface",
    "StaticPermissionBackend",
    "run_demo_capture",
]
