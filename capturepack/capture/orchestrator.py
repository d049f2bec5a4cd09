"""Drives pending capture requests through permission, launch and resolution."""

from __future__ import annotations

from collections import deque
import logging
import threading
from typing import Any, Callable, Mapping

from capturepack.capture.cleanup import discard_placeholder, remove_duplicate_image
from capturepack.capture.descriptors import describe_media
from capturepack.capture.exceptions import SurfaceUnavailableError
from capturepack.capture.permissions import PermissionGate
from capturepack.capture.surface import (
    CaptureSurface,
    LaunchSpec,
    LocalPathResolver,
    MediaStore,
    PathResolver,
    SurfaceResult,
)
from capturepack.core.models import CaptureOptions, Request, ResultDescriptor
from capturepack.core.types import IMAGE_JPEG, VIDEO_MP4, ErrorCode, RequestKind, RequestState
from capturepack.pending import RequestRegistry, SnapshotStore

logger = logging.getLogger(__name__)

MESSAGE_CANCELED = "Canceled."
MESSAGE_DID_NOT_COMPLETE = "Did not complete!"
MESSAGE_PERMISSION_DENIED = "Permission denied."
MESSAGE_NO_DATA = "Error: data is null"

_KIND_LABELS = {
    RequestKind.AUDIO: "Audio",
    RequestKind.IMAGE_OR_VIDEO: "Image or Video",
}


class CaptureOrchestrator:
    """State machine for every request held in a ``RequestRegistry``.

    Entry points are ``start`` plus the two re-entry callbacks
    ``on_permission_result`` and ``on_external_result``. Both callbacks carry
    only the correlation id and look the request up again, so they work the
    same after ``restore`` as in the process that launched the step. Each
    request's lock is held while it is mutated; collaborators must not block
    waiting for their own callback to be delivered.
    """

    def __init__(
        self,
        *,
        registry: RequestRegistry,
        gate: PermissionGate,
        surface: CaptureSurface,
        media_store: MediaStore | None = None,
        path_resolver: PathResolver | None = None,
        snapshot_store: SnapshotStore | None = None,
    ) -> None:
        self.registry = registry
        self._gate = gate
        self._surface = surface
        self._media_store = media_store
        self._path_resolver = path_resolver or LocalPathResolver()
        self._snapshot_store = snapshot_store
        self._persist_lock = threading.Lock()
        self._local = threading.local()

    def start(
        self,
        kind: RequestKind,
        options: CaptureOptions | None,
        callback_token: str,
    ) -> int:
        """Register a new logical capture and run its first step; returns its id."""
        request = self.registry.create(kind, options, callback_token)
        with request.lock:
            self._guarded(request, self._execute)
            resolved = request.is_resolved
        # a pending request was already saved before its prompt or launch
        if resolved:
            self.persist()
        self._drain_relaunches()
        return request.id

    def capture_audio(self, options: CaptureOptions | None, callback_token: str) -> int:
        return self.start(RequestKind.AUDIO, options, callback_token)

    def capture_image_or_video(self, options: CaptureOptions | None, callback_token: str) -> int:
        return self.start(RequestKind.IMAGE_OR_VIDEO, options, callback_token)

    def on_permission_result(self, request_id: int, grants: Mapping[str, bool]) -> None:
        request = self.registry.get(request_id)
        if request is None:
            logger.info("ignoring permission result for unknown request id=%s", request_id)
            return
        with request.lock:
            if request.state is not RequestState.AWAITING_PERMISSION:
                logger.info(
                    "ignoring permission result for request id=%s in state %s",
                    request_id,
                    request.state.value,
                )
                return
            if PermissionGate.is_granted(grants):
                self._guarded(request, self._execute)
            else:
                denied = sorted(name for name, value in grants.items() if not value)
                logger.info("request id=%s denied capabilities %s", request_id, denied)
                self._settle(request, ErrorCode.PERMISSION_DENIED, MESSAGE_PERMISSION_DENIED)
            resolved = request.is_resolved
        if resolved:
            self.persist()
        self._drain_relaunches()

    def on_external_result(
        self,
        request_id: int,
        result_code: int,
        data_uri: str | None = None,
    ) -> None:
        request = self.registry.get(request_id)
        if request is None:
            logger.info("ignoring capture result for unknown request id=%s", request_id)
            return
        with request.lock:
            if request.state is not RequestState.AWAITING_EXTERNAL_RESULT:
                logger.info(
                    "ignoring capture result for request id=%s in state %s",
                    request_id,
                    request.state.value,
                )
                return
            if result_code == SurfaceResult.OK:
                self._guarded(request, lambda current: self._accept(current, data_uri))
            else:
                # Anything that is not OK ends the request; partial work is kept.
                self._discard_outputs(request)
                message = (
                    MESSAGE_CANCELED if result_code == SurfaceResult.CANCELED else MESSAGE_DID_NOT_COMPLETE
                )
                self._settle(request, ErrorCode.NO_MEDIA_FILES, message)
        self.persist()
        self._drain_relaunches()

    def restore(self, snapshot: Mapping[str, Any], callback_token: str) -> list[int]:
        restored = self.registry.restore(snapshot, callback_token)
        self.persist()
        # a request saved before its first step ran has nothing to re-enter it
        for request in restored:
            if request.state is RequestState.CREATED:
                self._relaunch_queue().append(request.id)
        self._drain_relaunches()
        return [request.id for request in restored]

    def persist(self) -> None:
        if self._snapshot_store is None:
            return
        with self._persist_lock:
            snapshot = self.registry.serialize()
            if snapshot["requests"]:
                self._snapshot_store.save(snapshot)
            else:
                self._snapshot_store.clear()

    def _execute(self, request: Request) -> None:
        required = self._gate.required_capabilities(request.kind)
        check = self._gate.check(required)
        if not check.ok:
            self.registry.transition(request, RequestState.AWAITING_PERMISSION)
            # the prompt may outlive this process
            self.persist()
            self._gate.request(check.missing, request.id)
            return
        self._launch(request)

    def _launch(self, request: Request) -> None:
        mode = request.options.capture_mode(request.kind)
        store = self._media_store
        if request.kind == RequestKind.IMAGE_OR_VIDEO and store is not None:
            request.image_baseline = store.count_images()
            if mode in ("image", "chooser"):
                request.image_uri = store.create_placeholder("image", IMAGE_JPEG)
            if mode in ("video", "chooser"):
                request.video_uri = store.create_placeholder("video", VIDEO_MP4)

        spec = LaunchSpec(
            kind=request.kind,
            mode=mode,
            image_uri=request.image_uri,
            video_uri=request.video_uri,
            duration=request.duration,
            quality=request.quality,
            mime_type_filter=request.options.mime_type_filter,
        )
        self.registry.transition(request, RequestState.AWAITING_EXTERNAL_RESULT)
        self.persist()
        logger.debug("launching request id=%s mode=%s shot=%d", request.id, mode, len(request.results) + 1)
        try:
            self._surface.launch(request.id, spec)
        except SurfaceUnavailableError:
            logger.warning("no capture surface for request id=%s mode=%s", request.id, mode)
            self._discard_outputs(request)
            self._settle(
                request,
                ErrorCode.NOT_SUPPORTED,
                f"No capture surface found to handle {_KIND_LABELS[request.kind]} Capture.",
            )

    def _accept(self, request: Request, data_uri: str | None) -> None:
        if request.kind == RequestKind.AUDIO:
            descriptor = self._describe(data_uri) if data_uri else None
            is_image = False
        else:
            descriptor, is_image = self._accept_image_or_video(request, data_uri)

        if descriptor is None:
            self._discard_outputs(request)
            self._settle(request, ErrorCode.NO_MEDIA_FILES, MESSAGE_NO_DATA)
            return

        request.accumulate(descriptor)
        if is_image and self._media_store is not None:
            remove_duplicate_image(self._media_store, request.image_baseline)
        request.clear_outputs()
        logger.info(
            "request id=%s accumulated %d/%d (%s)",
            request.id,
            len(request.results),
            request.limit,
            descriptor.type,
        )

        if request.is_complete:
            self.registry.resolve_with_success(request)
        else:
            # relaunched once the current callback unwinds
            self.registry.transition(request, RequestState.CREATED)
            self._relaunch_queue().append(request.id)

    def _accept_image_or_video(
        self,
        request: Request,
        data_uri: str | None,
    ) -> tuple[ResultDescriptor | None, bool]:
        store = self._media_store
        if store is None:
            if not data_uri:
                return None, False
            descriptor = self._describe(data_uri)
            return descriptor, descriptor.type.startswith("image/")

        if request.video_uri is not None and store.has_content(request.video_uri):
            discard_placeholder(store, request.image_uri, only_if_empty=True)
            return self._describe(request.video_uri), False

        if request.image_uri is not None:
            discard_placeholder(store, request.video_uri)
            return self._describe(store.finalize_image(request.image_uri)), True

        if data_uri:
            if data_uri != request.video_uri:
                discard_placeholder(store, request.video_uri, only_if_empty=True)
            return self._describe(data_uri), False
        return None, False

    def _relaunch_queue(self) -> deque[int]:
        queue = getattr(self._local, "queue", None)
        if queue is None:
            queue = self._local.queue = deque()
        return queue

    def _drain_relaunches(self) -> None:
        """Run queued relaunches iteratively on this thread.

        Surfaces that report synchronously re-enter ``on_external_result`` from
        inside ``launch``. Those nested calls only queue the next shot, so the
        stack depth stays flat however many shots a request takes.
        """
        if getattr(self._local, "draining", False):
            return
        self._local.draining = True
        try:
            queue = self._relaunch_queue()
            while queue:
                self._relaunch(queue.popleft())
        finally:
            self._local.draining = False

    def _relaunch(self, request_id: int) -> None:
        request = self.registry.get(request_id)
        if request is None:
            return
        with request.lock:
            if request.state is not RequestState.CREATED:
                return
            self._guarded(request, self._execute)
            resolved = request.is_resolved
        if resolved:
            self.persist()

    def _describe(self, uri: str) -> ResultDescriptor:
        return describe_media(uri, path_resolver=self._path_resolver)

    def _discard_outputs(self, request: Request) -> None:
        if self._media_store is not None:
            discard_placeholder(self._media_store, request.image_uri)
            discard_placeholder(self._media_store, request.video_uri)
        request.clear_outputs()

    def _settle(self, request: Request, code: ErrorCode, message: str) -> None:
        if request.results:
            self.registry.resolve_with_success(request)
        else:
            self.registry.resolve_with_failure(request, code, message)

    def _guarded(self, request: Request, step: Callable[[Request], None]) -> None:
        try:
            step(request)
        except Exception as error:
            logger.exception("capture step failed for request id=%s", request.id)
            if request.is_resolved:
                return
            self._discard_outputs(request)
            self._settle(request, ErrorCode.INTERNAL_ERROR, str(error) or error.__class__.__name__)
