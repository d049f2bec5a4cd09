from dataclasses import dataclass, field
from pathlib import Path
import threading

import pytest

from capturepack.capture import (
    CAMERA,
    STORAGE_CAPABILITIES,
    CaptureOrchestrator,
    DirectoryMediaStore,
    LaunchSpec,
    LocalPathResolver,
    PermissionGate,
    ScriptedCaptureSurface,
    StaticPermissionBackend,
    SurfaceResult,
    uri_to_path,
)
from capturepack.core import (
    CaptureOptions,
    ErrorCode,
    Failure,
    RequestKind,
    RequestState,
    Success,
)
from capturepack.pending import CallbackSink, RequestRegistry, SnapshotStore
from capturepack.plugins import LifecyclePlugin, PluginManager


@dataclass
class _Harness:
    orchestrator: CaptureOrchestrator
    registry: RequestRegistry
    sink: CallbackSink
    backend: StaticPermissionBackend
    surface: ScriptedCaptureSurface
    store: DirectoryMediaStore
    outcomes: list = field(default_factory=list)

    def start(self, kind: RequestKind, options: CaptureOptions | None = None) -> int:
        token = self.sink.new_token(self.outcomes.append)
        return self.orchestrator.start(kind, options, token)

    def last_launch(self) -> tuple[int, LaunchSpec]:
        return self.surface.launches[-1]

    def deliver_audio(self, request_id: int, name: str) -> None:
        uri = self.store.write_audio(name, b"pcm-" + name.encode("ascii"))
        self.orchestrator.on_external_result(request_id, SurfaceResult.OK, uri)


def _harness(
    tmp_path: Path,
    *,
    held=STORAGE_CAPABILITIES,
    declared=(),
    modes=("audio", "image", "video", "chooser"),
    responder=None,
    path_resolver=None,
    state_file: Path | None = None,
    snapshot_store: SnapshotStore | None = None,
    plugin_manager: PluginManager | None = None,
) -> _Harness:
    sink = CallbackSink()
    registry = RequestRegistry(sink, plugin_manager=plugin_manager or PluginManager())
    backend = StaticPermissionBackend(held)
    surface = ScriptedCaptureSurface(available_modes=modes, responder=responder)
    store = DirectoryMediaStore(tmp_path / "media")
    orchestrator = CaptureOrchestrator(
        registry=registry,
        gate=PermissionGate(backend, declared),
        surface=surface,
        media_store=store,
        path_resolver=path_resolver,
        snapshot_store=snapshot_store
        or (SnapshotStore(state_file) if state_file is not None else None),
    )
    return _Harness(orchestrator, registry, sink, backend, surface, store)


def test_single_audio_capture_resolves_with_one_descriptor(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO)

    assert harness.last_launch()[1].mode == "audio"
    assert harness.registry.get(request_id).state is RequestState.AWAITING_EXTERNAL_RESULT

    harness.deliver_audio(request_id, "clip-1.wav")

    [outcome] = harness.outcomes
    assert isinstance(outcome, Success)
    assert [result.name for result in outcome.results] == ["clip-1.wav"]
    assert outcome.results[0].type == "audio/wav"
    assert len(harness.registry) == 0


def test_multi_shot_relaunches_until_limit(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO, CaptureOptions(limit=3, duration=10))

    for shot in range(1, 4):
        assert len(harness.surface.launches) == shot
        assert harness.last_launch()[0] == request_id
        assert harness.last_launch()[1].duration == 10
        harness.deliver_audio(request_id, f"clip-{shot}.wav")

    [outcome] = harness.outcomes
    assert [result.name for result in outcome.results] == ["clip-1.wav", "clip-2.wav", "clip-3.wav"]


def test_cancel_after_partial_results_returns_them(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO, CaptureOptions(limit=3))
    harness.deliver_audio(request_id, "clip-1.wav")
    harness.deliver_audio(request_id, "clip-2.wav")

    harness.orchestrator.on_external_result(request_id, SurfaceResult.CANCELED)

    [outcome] = harness.outcomes
    assert isinstance(outcome, Success)
    assert len(outcome.results) == 2


@pytest.mark.parametrize(
    "code, message",
    [(SurfaceResult.CANCELED, "Canceled."), (5, "Did not complete!")],
)
def test_cancel_without_results_fails_with_no_media(tmp_path: Path, code: int, message: str) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO)

    harness.orchestrator.on_external_result(request_id, code)

    assert harness.outcomes == [Failure(code=ErrorCode.NO_MEDIA_FILES, message=message)]


def test_permission_prompt_then_grant_launches(tmp_path: Path) -> None:
    harness = _harness(tmp_path, held=())
    request_id = harness.start(RequestKind.AUDIO)

    assert harness.backend.prompts == [(STORAGE_CAPABILITIES, request_id)]
    assert harness.surface.launches == []
    assert harness.registry.get(request_id).state is RequestState.AWAITING_PERMISSION

    harness.orchestrator.on_permission_result(
        request_id, harness.backend.grant(*STORAGE_CAPABILITIES)
    )

    assert len(harness.surface.launches) == 1
    assert harness.outcomes == []


def test_permission_denied_fails_request(tmp_path: Path) -> None:
    harness = _harness(tmp_path, held=())
    request_id = harness.start(RequestKind.IMAGE_OR_VIDEO)

    harness.orchestrator.on_permission_result(
        request_id, {"read_storage": True, "write_storage": False}
    )

    assert harness.outcomes == [
        Failure(code=ErrorCode.PERMISSION_DENIED, message="Permission denied.")
    ]
    assert harness.surface.launches == []


def test_camera_prompted_only_when_declared(tmp_path: Path) -> None:
    declared = _harness(tmp_path / "declared", declared=[CAMERA])
    declared.start(RequestKind.IMAGE_OR_VIDEO)
    assert declared.backend.prompts == [((CAMERA,), 0)]

    undeclared = _harness(tmp_path / "undeclared")
    undeclared.start(RequestKind.IMAGE_OR_VIDEO)
    assert undeclared.backend.prompts == []
    assert len(undeclared.surface.launches) == 1


def test_permission_revoked_between_shots_keeps_partial_results(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO, CaptureOptions(limit=2))
    harness.backend.held.clear()

    harness.deliver_audio(request_id, "clip-1.wav")
    assert harness.backend.prompts == [(STORAGE_CAPABILITIES, request_id)]

    harness.orchestrator.on_permission_result(request_id, {"read_storage": False})

    [outcome] = harness.outcomes
    assert isinstance(outcome, Success)
    assert [result.name for result in outcome.results] == ["clip-1.wav"]


def test_late_and_unknown_callbacks_are_ignored(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO)
    harness.orchestrator.on_external_result(request_id, SurfaceResult.CANCELED)

    harness.orchestrator.on_external_result(request_id, SurfaceResult.OK, "file:///late.wav")
    harness.orchestrator.on_permission_result(request_id, {"read_storage": True})
    harness.orchestrator.on_external_result(999, SurfaceResult.OK)

    assert len(harness.outcomes) == 1


def test_permission_result_while_awaiting_capture_is_ignored(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO)

    harness.orchestrator.on_permission_result(request_id, {"read_storage": False})

    assert harness.outcomes == []
    assert harness.registry.get(request_id).state is RequestState.AWAITING_EXTERNAL_RESULT


def test_missing_surface_fails_not_supported(tmp_path: Path) -> None:
    harness = _harness(tmp_path, modes=("image",))

    harness.start(RequestKind.AUDIO)
    harness.start(RequestKind.IMAGE_OR_VIDEO, CaptureOptions(video=True))

    assert harness.outcomes == [
        Failure(code=ErrorCode.NOT_SUPPORTED, message="No capture surface found to handle Audio Capture."),
        Failure(
            code=ErrorCode.NOT_SUPPORTED,
            message="No capture surface found to handle Image or Video Capture.",
        ),
    ]
    assert list((tmp_path / "media" / "videos").iterdir()) == []


def test_audio_success_without_data_fails(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO)

    harness.orchestrator.on_external_result(request_id, SurfaceResult.OK, None)

    assert harness.outcomes == [
        Failure(code=ErrorCode.NO_MEDIA_FILES, message="Error: data is null")
    ]


def test_image_capture_finalizes_and_removes_duplicate(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    harness.store.add_image(b"someone else's photo")
    request_id = harness.start(RequestKind.IMAGE_OR_VIDEO, CaptureOptions(image=True))
    _, spec = harness.last_launch()
    assert spec.mode == "image"
    assert spec.video_uri is None
    harness.store.fill(spec.image_uri, b"\xff\xd8photo")

    harness.orchestrator.on_external_result(request_id, SurfaceResult.OK)

    [outcome] = harness.outcomes
    [result] = outcome.results
    assert result.type == "image/jpeg"
    assert result.size == len(b"\xff\xd8photo")
    assert harness.store.count_images() == 2
    assert uri_to_path(result.full_path).exists()


def test_chooser_recording_video_keeps_video_and_drops_image_placeholder(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.IMAGE_OR_VIDEO)
    _, spec = harness.last_launch()
    assert spec.mode == "chooser"
    assert spec.image_uri is not None and spec.video_uri is not None
    harness.store.fill(spec.video_uri, b"frames")

    harness.orchestrator.on_external_result(request_id, SurfaceResult.OK)

    [outcome] = harness.outcomes
    assert outcome.results[0].type == "video/mp4"
    assert outcome.results[0].full_path == spec.video_uri
    assert harness.store.count_images() == 0


def test_chooser_taking_photo_removes_empty_video_placeholder(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.IMAGE_OR_VIDEO)
    _, spec = harness.last_launch()
    harness.store.fill(spec.image_uri, b"photo")

    harness.orchestrator.on_external_result(request_id, SurfaceResult.OK)

    [outcome] = harness.outcomes
    assert outcome.results[0].type == "image/jpeg"
    assert list((tmp_path / "media" / "videos").iterdir()) == []


def test_cancel_discards_placeholders(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.IMAGE_OR_VIDEO)

    harness.orchestrator.on_external_result(request_id, SurfaceResult.CANCELED)

    assert harness.store.count_images() == 0
    assert list((tmp_path / "media" / "videos").iterdir()) == []


def test_resolver_failure_still_resolves_with_defaults(tmp_path: Path) -> None:
    class _BrokenUrlResolver(LocalPathResolver):
        def to_local_url(self, path: Path) -> str | None:
            raise RuntimeError("no local filesystem")

    harness = _harness(tmp_path, path_resolver=_BrokenUrlResolver())
    request_id = harness.start(RequestKind.AUDIO)
    harness.deliver_audio(request_id, "clip.wav")

    [outcome] = harness.outcomes
    assert outcome.results[0].local_url is None
    assert outcome.results[0].size > 0


def test_surface_crash_becomes_internal_error(tmp_path: Path) -> None:
    def explode(_request_id: int, _spec: LaunchSpec) -> None:
        raise RuntimeError("surface exploded")

    harness = _harness(tmp_path, responder=explode)
    harness.start(RequestKind.AUDIO)

    assert harness.outcomes == [
        Failure(code=ErrorCode.INTERNAL_ERROR, message="surface exploded")
    ]
    assert len(harness.registry) == 0


def test_concurrent_results_resolve_exactly_once(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.AUDIO)
    uri = harness.store.write_audio("clip.wav", b"pcm")
    barrier = threading.Barrier(8)

    def deliver() -> None:
        barrier.wait()
        harness.orchestrator.on_external_result(request_id, SurfaceResult.OK, uri)

    threads = [threading.Thread(target=deliver) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(harness.outcomes) == 1
    assert harness.outcomes[0].ok


def test_independent_requests_do_not_interfere(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    first = harness.start(RequestKind.AUDIO)
    second = harness.start(RequestKind.AUDIO)

    harness.orchestrator.on_external_result(second, SurfaceResult.CANCELED)
    harness.deliver_audio(first, "clip.wav")

    assert [outcome.ok for outcome in harness.outcomes] == [False, True]


def test_pending_request_survives_restart(tmp_path: Path) -> None:
    state_file = tmp_path / "state" / "pending.json"
    before = _harness(tmp_path, state_file=state_file)
    request_id = before.start(RequestKind.AUDIO, CaptureOptions(limit=2))
    before.deliver_audio(request_id, "clip-1.wav")
    assert state_file.exists()

    after = _harness(tmp_path, state_file=state_file)
    resumed: list = []
    token = after.sink.new_token(resumed.append, once=False, prefix="resume")
    assert after.orchestrator.restore(SnapshotStore(state_file).load(), token) == [request_id]

    after.deliver_audio(request_id, "clip-2.wav")

    assert before.outcomes == []
    [outcome] = resumed
    assert [result.name for result in outcome.results] == ["clip-1.wav", "clip-2.wav"]
    assert not state_file.exists()


def test_lifecycle_plugin_sees_every_transition(tmp_path: Path) -> None:
    class _Recorder(LifecyclePlugin):
        def __init__(self) -> None:
            self.events: list[tuple[str, object]] = []

        def on_request_created(self, event) -> None:
            self.events.append(("created", event))

        def on_request_transition(self, event) -> None:
            self.events.append(("transition", event.to_state))

        def on_request_resolved(self, event) -> None:
            self.events.append(("resolved", event.status))

    recorder = _Recorder()
    harness = _harness(tmp_path, held=(), plugin_manager=PluginManager(plugins=(recorder,)))
    request_id = harness.start(RequestKind.AUDIO)
    harness.orchestrator.on_permission_result(request_id, {"read_storage": False})

    assert [entry[0] for entry in recorder.events] == [
        "created",
        "transition",
        "transition",
        "resolved",
    ]
    assert recorder.events[1][1] == "awaiting_permission"
    assert recorder.events[2][1] == "resolved"
    assert recorder.events[3][1] == "error"


def test_synchronous_surface_collects_every_shot_without_recursion(tmp_path: Path) -> None:
    shots = 600
    harness = _harness(tmp_path)
    uri = harness.store.write_audio("clip.wav", b"pcm")
    harness.surface.responder = lambda request_id, _spec: harness.orchestrator.on_external_result(
        request_id, SurfaceResult.OK, uri
    )

    harness.start(RequestKind.AUDIO, CaptureOptions(limit=shots))

    [outcome] = harness.outcomes
    assert isinstance(outcome, Success)
    assert len(outcome.results) == shots
    assert len(harness.surface.launches) == shots
    assert len(harness.registry) == 0


def test_request_returns_to_created_between_shots(tmp_path: Path) -> None:
    class _Transitions(LifecyclePlugin):
        def __init__(self) -> None:
            self.states: list[str] = []

        def on_request_transition(self, event) -> None:
            self.states.append(event.to_state)

    recorder = _Transitions()
    harness = _harness(tmp_path, plugin_manager=PluginManager(plugins=(recorder,)))
    request_id = harness.start(RequestKind.AUDIO, CaptureOptions(limit=2))
    harness.deliver_audio(request_id, "clip-1.wav")

    assert recorder.states == [
        "awaiting_external_result",
        "created",
        "awaiting_external_result",
    ]
    assert len(harness.surface.launches) == 2


def test_restored_request_that_never_ran_is_launched(tmp_path: Path) -> None:
    earlier = RequestRegistry(CallbackSink(), plugin_manager=PluginManager())
    request = earlier.create(RequestKind.AUDIO, CaptureOptions(limit=1), "token")
    snapshot = earlier.serialize()

    harness = _harness(tmp_path)
    resumed: list = []
    token = harness.sink.new_token(resumed.append, prefix="resume")
    assert harness.orchestrator.restore(snapshot, token) == [request.id]

    assert harness.last_launch()[0] == request.id
    assert harness.registry.get(request.id).state is RequestState.AWAITING_EXTERNAL_RESULT
    harness.deliver_audio(request.id, "clip.wav")

    [outcome] = resumed
    assert [result.name for result in outcome.results] == ["clip.wav"]


def test_restored_request_that_never_ran_prompts_when_permission_missing(tmp_path: Path) -> None:
    earlier = RequestRegistry(CallbackSink(), plugin_manager=PluginManager())
    request = earlier.create(RequestKind.AUDIO, None, "token")

    harness = _harness(tmp_path, held=())
    harness.orchestrator.restore(earlier.serialize(), harness.sink.new_token(harness.outcomes.append))

    assert harness.backend.prompts == [(STORAGE_CAPABILITIES, request.id)]
    assert harness.registry.get(request.id).state is RequestState.AWAITING_PERMISSION
    assert harness.surface.launches == []


def test_video_result_at_external_uri_drops_empty_placeholder(tmp_path: Path) -> None:
    harness = _harness(tmp_path)
    request_id = harness.start(RequestKind.IMAGE_OR_VIDEO, CaptureOptions(video=True))
    _, spec = harness.last_launch()
    assert spec.mode == "video"
    external = harness.store.write_audio("recorded.mp4", b"frames")

    harness.orchestrator.on_external_result(request_id, SurfaceResult.OK, external)

    [outcome] = harness.outcomes
    assert outcome.results[0].full_path == external
    assert outcome.results[0].type == "video/mp4"
    assert list((tmp_path / "media" / "videos").iterdir()) == []


class _CountingSnapshotStore(SnapshotStore):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.saves = 0

    def save(self, snapshot) -> None:
        self.saves += 1
        super().save(snapshot)


def test_start_saves_pending_request_once(tmp_path: Path) -> None:
    store = _CountingSnapshotStore(tmp_path / "pending.json")
    harness = _harness(tmp_path, snapshot_store=store)

    harness.start(RequestKind.AUDIO)

    assert store.saves == 1
