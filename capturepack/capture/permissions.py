"""Permission gate guarding each capture step."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Mapping, Protocol

from capturepack.core.types import RequestKind

Capability = Literal["read_storage", "write_storage", "camera"]

READ_STORAGE: Capability = "read_storage"
WRITE_STORAGE: Capability = "write_storage"
CAMERA: Capability = "camera"
STORAGE_CAPABILITIES: tuple[str, ...] = (READ_STORAGE, WRITE_STORAGE)


@dataclass(frozen=True, slots=True)
class PermissionCheck:
    granted: tuple[str, ...]
    missing: tuple[str, ...]

    @property
    def ok(self) -> bool:
        return not self.missing


class PermissionBackend(Protocol):
    """Host side of the gate: reports held capabilities and shows the prompt.

    ``prompt`` returns immediately; the grant/deny outcome comes back later
    through ``CaptureOrchestrator.on_permission_result`` keyed by
    ``correlation_id``.
    """

    def has_capability(self, capability: str) -> bool:
        ...

    def prompt(self, capabilities: tuple[str, ...], correlation_id: int) -> None:
        ...


class PermissionGate:
    """Checks and requests the capabilities a capture kind needs."""

    def __init__(self, backend: PermissionBackend, declared_capabilities: Iterable[str] = ()) -> None:
        self._backend = backend
        # The camera capability only matters when the host application declares it.
        self._camera_declared = CAMERA in frozenset(declared_capabilities)

    @property
    def camera_declared(self) -> bool:
        return self._camera_declared

    def required_capabilities(self, kind: RequestKind) -> tuple[str, ...]:
        if kind == RequestKind.IMAGE_OR_VIDEO and self._camera_declared:
            return STORAGE_CAPABILITIES + (CAMERA,)
        return STORAGE_CAPABILITIES

    def check(self, capabilities: Iterable[str]) -> PermissionCheck:
        granted: list[str] = []
        missing: list[str] = []
        for capability in dict.fromkeys(capabilities):
            (granted if self._backend.has_capability(capability) else missing).append(capability)
        return PermissionCheck(granted=tuple(granted), missing=tuple(missing))

    def request(self, capabilities: Iterable[str], correlation_id: int) -> None:
        self._backend.prompt(tuple(dict.fromkeys(capabilities)), correlation_id)

    @staticmethod
    def is_granted(grants: Mapping[str, bool]) -> bool:
        """Fail closed: a single denied capability denies the whole step."""
        return all(bool(value) for value in grants.values())
