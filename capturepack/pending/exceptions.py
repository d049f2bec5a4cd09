"""Pending request registry exceptions."""


class RegistryError(Exception):
    """Base class for request registry errors."""


class RequestIdExhaustedError(RegistryError):
    """Raised when every correlation id is held by a pending request."""


class RequestAlreadyResolvedError(RegistryError):
    """Raised in strict mode when a request is resolved a second time."""


class SnapshotError(RegistryError):
    """Snapshot failed version, checksum or shape validation."""
