"""Core model exceptions."""


class CaptureOptionsError(ValueError):
    """Raised when capture options are malformed."""
