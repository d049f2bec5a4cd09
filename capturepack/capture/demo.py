"""Scripted multi-shot capture against on-disk fake collaborators."""

from __future__ import annotations

from pathlib import Path

from capturepack.capture.fakes import DirectoryMediaStore, ScriptedCaptureSurface, StaticPermissionBackend
from capturepack.capture.orchestrator import CaptureOrchestrator
from capturepack.capture.permissions import STORAGE_CAPABILITIES, PermissionGate
from capturepack.capture.surface import LaunchSpec, SurfaceResult
from capturepack.core.models import CaptureOptions, Outcome
from capturepack.core.types import RequestKind
from capturepack.pending import CallbackSink, RequestRegistry, SnapshotStore


def run_demo_capture(
    root: str | Path,
    *,
    kind: RequestKind = RequestKind.AUDIO,
    shots: int = 3,
    cancel_after: int | None = None,
    state_file: str | Path | None = None,
) -> Outcome:
    """Capture ``shots`` items, optionally cancelling once ``cancel_after`` exist."""
    store = DirectoryMediaStore(root)
    backend = StaticPermissionBackend()
    outcomes: list[Outcome] = []
    sink = CallbackSink()
    token = sink.new_token(outcomes.append, prefix="demo")
    surface = ScriptedCaptureSurface()
    orchestrator = CaptureOrchestrator(
        registry=RequestRegistry(sink),
        gate=PermissionGate(backend),
        surface=surface,
        media_store=store,
        snapshot_store=SnapshotStore(state_file) if state_file is not None else None,
    )
    delivered = 0

    def respond(request_id: int, spec: LaunchSpec) -> None:
        nonlocal delivered
        if cancel_after is not None and delivered >= cancel_after:
            orchestrator.on_external_result(request_id, SurfaceResult.CANCELED)
            return
        delivered += 1
        payload = f"demo-shot-{delivered}".encode("ascii")
        if spec.kind == RequestKind.AUDIO:
            uri = store.write_audio(f"clip-{delivered:03d}.wav", payload)
            orchestrator.on_external_result(request_id, SurfaceResult.OK, uri)
            return
        target = spec.image_uri or spec.video_uri
        if target is not None:
            store.fill(target, payload)
        orchestrator.on_external_result(request_id, SurfaceResult.OK)

    surface.responder = respond
    request_id = orchestrator.start(kind, CaptureOptions(limit=shots, image=True), token)
    # the first step parks on the permission prompt; answer it like a user would
    orchestrator.on_permission_result(request_id, backend.grant(*STORAGE_CAPABILITIES))
    return outcomes[0]
