"""Stable public API surface for MediaCapture.

This module is the supported import path for library users.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Union

from capturepack.capture import (
    CaptureFailedError,
    CaptureOrchestrator,
    CaptureSurface,
    MediaProbe,
    MediaStore,
    PathResolver,
    PermissionBackend,
    PermissionGate,
    SurfaceResult,
    get_format_data,
)
from capturepack.config import CaptureConfig
from capturepack.core import (
    CaptureOptions,
    ErrorCode,
    Failure,
    Outcome,
    RequestKind,
    ResultDescriptor,
    Success,
)
from capturepack.pending import (
    CallbackSink,
    RequestRegistry,
    ResolutionCallback,
    SnapshotStore,
)
from capturepack.plugins import PluginManager, get_active_plugin_manager

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CaptureConfig",
    "CaptureFailedError",
    "CaptureOptions",
    "ErrorCode",
    "Failure",
    "MediaCapture",
    "PendingCapture",
    "ResultDescriptor",
    "Success",
    "SurfaceResult",
]

OptionsLike = Union[CaptureOptions, Mapping[str, Any], None]


@dataclass(frozen=True, slots=True)
class PendingCapture:
    """Handle for one in-flight logical capture."""

    request_id: int
    future: Future

    def result(self, timeout: float | None = None) -> tuple[ResultDescriptor, ...]:
        """Block for the results; raises ``CaptureFailedError`` on a typed failure."""
        return self.future.result(timeout=timeout)

    def done(self) -> bool:
        return self.future.done()


class MediaCapture:
    """Delegates capture to external surfaces and reconciles their results.

    The host forwards the two asynchronous callbacks it receives from the
    platform to ``on_permission_result`` and ``on_external_result``. After a
    process restart, call ``restore_state`` with a callback that should receive
    the results of requests started by the previous process.
    """

    def __init__(
        self,
        *,
        permission_backend: PermissionBackend,
        surface: CaptureSurface,
        media_store: MediaStore | None = None,
        path_resolver: PathResolver | None = None,
        probe: MediaProbe | None = None,
        config: CaptureConfig | None = None,
        plugin_manager: PluginManager | None = None,
        declared_capabilities: Iterable[str] | None = None,
    ) -> None:
        self.config = config or CaptureConfig.from_env()
        self.sink = CallbackSink()
        self._probe = probe
        self._snapshot_store = (
            SnapshotStore(self.config.state_file) if self.config.state_file is not None else None
        )
        declared = (
            self.config.declared_capabilities
            if declared_capabilities is None
            else frozenset(declared_capabilities)
        )
        self.orchestrator = CaptureOrchestrator(
            registry=RequestRegistry(
                self.sink,
                plugin_manager=plugin_manager or get_active_plugin_manager(self.config),
                strict=self.config.strict_resolution,
            ),
            gate=PermissionGate(permission_backend, declared),
            surface=surface,
            media_store=media_store,
            path_resolver=path_resolver,
            snapshot_store=self._snapshot_store,
        )

    @property
    def registry(self) -> RequestRegistry:
        return self.orchestrator.registry

    def capture_audio(self, options: OptionsLike = None) -> PendingCapture:
        return self._start(RequestKind.AUDIO, options)

    def capture_image_or_video(self, options: OptionsLike = None) -> PendingCapture:
        return self._start(RequestKind.IMAGE_OR_VIDEO, options)

    def on_permission_result(self, request_id: int, grants: Mapping[str, bool]) -> None:
        self.orchestrator.on_permission_result(request_id, grants)

    def on_external_result(
        self,
        request_id: int,
        result_code: int,
        data_uri: str | None = None,
    ) -> None:
        self.orchestrator.on_external_result(request_id, result_code, data_uri)

    def get_format_data(self, file_path: str, mime_type: str | None = None) -> dict[str, Any]:
        return get_format_data(file_path, mime_type, probe=self._probe).to_dict()

    def save_state(self) -> dict[str, Any]:
        return self.registry.serialize()

    def restore_state(
        self,
        callback: ResolutionCallback,
        snapshot: Mapping[str, Any] | None = None,
    ) -> list[int]:
        """Resume requests from ``snapshot`` (or the configured state file)."""
        if snapshot is None:
            snapshot = self._snapshot_store.load() if self._snapshot_store is not None else None
        if snapshot is None:
            return []
        token = self.sink.new_token(callback, once=False, prefix="resume")
        return self.orchestrator.restore(snapshot, token)

    def _start(self, kind: RequestKind, options: OptionsLike) -> PendingCapture:
        if not isinstance(options, CaptureOptions):
            options = CaptureOptions.from_mapping(options)
        future: Future = Future()
        token = self.sink.new_token(lambda outcome: _settle_future(future, outcome))
        request_id = self.orchestrator.start(kind, options, token)
        return PendingCapture(request_id=request_id, future=future)


def _settle_future(future: Future, outcome: Outcome) -> None:
    if isinstance(outcome, Failure):
        future.set_exception(CaptureFailedError(outcome.code, outcome.message))
    else:
        future.set_result(outcome.results)
