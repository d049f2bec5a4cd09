"""Capture subsystem exceptions."""

from __future__ import annotations

from capturepack.core.types import ErrorCode


class CaptureError(Exception):
    """Base class for capture subsystem errors."""


class SurfaceUnavailableError(CaptureError):
    """Raised by a capture surface when nothing on this host handles the launch."""


class CaptureFailedError(CaptureError):
    """A logical capture resolved with a typed failure."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        return {"code": int(self.code), "message": self.message}
