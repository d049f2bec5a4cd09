"""Keyed store of in-flight capture requests."""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping
import warnings

from capturepack.core.canonical import compute_checksum
from capturepack.core.models import CaptureOptions, Failure, Outcome, Request, Success
from capturepack.core.types import MAX_REQUEST_ID, ErrorCode, RequestKind, RequestState
from capturepack.pending.exceptions import (
    RequestAlreadyResolvedError,
    RequestIdExhaustedError,
    SnapshotError,
)
from capturepack.pending.schema import SNAPSHOT_VERSION, validate_snapshot
from capturepack.pending.sink import ResolutionSink
from capturepack.plugins import (
    PluginManager,
    RequestCreatedEvent,
    RequestResolvedEvent,
    RequestTransitionEvent,
    get_active_plugin_manager,
)

logger = logging.getLogger(__name__)


class RequestRegistry:
    """Assigns correlation ids and resolves each request exactly once.

    Correlation ids are the registry's primary key: nothing outside the registry
    should hold a ``Request`` across an asynchronous hop. Callers re-enter with
    the id and look the request up again via ``get``.
    """

    def __init__(
        self,
        sink: ResolutionSink,
        *,
        plugin_manager: PluginManager | None = None,
        strict: bool = False,
        max_request_id: int = MAX_REQUEST_ID,
    ) -> None:
        if max_request_id < 1:
            raise ValueError("max_request_id must be positive")
        self._sink = sink
        self._plugins = plugin_manager or get_active_plugin_manager()
        self._strict = strict
        self._max_request_id = max_request_id
        self._requests: dict[int, Request] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._requests

    def create(
        self,
        kind: RequestKind,
        options: CaptureOptions | None,
        callback_token: str,
    ) -> Request:
        with self._lock:
            request = Request(
                id=self._allocate_id(),
                kind=RequestKind(kind),
                callback_token=callback_token,
                options=options or CaptureOptions(),
            )
            self._requests[request.id] = request
        logger.debug("created request id=%s kind=%s", request.id, request.kind.name)
        self._plugins.on_request_created(
            RequestCreatedEvent(
                request_id=request.id,
                kind=request.kind.name,
                limit=request.limit,
            )
        )
        return request

    def get(self, request_id: int) -> Request | None:
        with self._lock:
            return self._requests.get(request_id)

    def pending(self) -> tuple[Request, ...]:
        with self._lock:
            return tuple(self._requests[key] for key in sorted(self._requests))

    def transition(self, request: Request, state: RequestState) -> None:
        with request.lock:
            if request.is_resolved:
                raise RuntimeError(f"Request {request.id} is resolved and cannot move to {state.value}.")
            previous = request.state
            request.state = state
        if previous is not state:
            self._plugins.on_request_transition(
                RequestTransitionEvent(
                    request_id=request.id,
                    from_state=previous.value,
                    to_state=state.value,
                    result_count=len(request.results),
                )
            )

    def resolve_with_success(self, request: Request) -> bool:
        with request.lock:
            outcome = Success(results=tuple(request.results))
            return self._resolve(request, outcome)

    def resolve_with_failure(self, request: Request, code: ErrorCode, message: str) -> bool:
        return self._resolve(request, Failure(code=ErrorCode(code), message=message))

    def serialize(self) -> dict[str, Any]:
        """Produce a checksummed snapshot of every pending request."""
        # Only the registry lock is taken here. Callers may already hold one
        # request lock, and request locks are always acquired before this one.
        with self._lock:
            entries = {
                str(request_id): request.to_dict()
                for request_id, request in sorted(self._requests.items())
                if not request.is_resolved
            }
        body = {"version": SNAPSHOT_VERSION, "requests": entries}
        return {**body, "checksum": compute_checksum(body)}

    def restore(self, snapshot: Mapping[str, Any], callback_token: str) -> list[Request]:
        """Re-populate from ``snapshot``, rebinding every request to ``callback_token``."""
        restored = [
            _rebind(request, callback_token) for request in requests_from_snapshot(snapshot)
        ]
        with self._lock:
            clashes = sorted(request.id for request in restored if request.id in self._requests)
            if clashes:
                raise SnapshotError(
                    f"Snapshot request id(s) already pending: {', '.join(map(str, clashes))}"
                )
            for request in restored:
                self._requests[request.id] = request
        logger.info("restored %d pending request(s)", len(restored))
        return restored

    def _allocate_id(self) -> int:
        for candidate in range(self._max_request_id):
            if candidate not in self._requests:
                return candidate
        raise RequestIdExhaustedError(
            f"All {self._max_request_id} request ids are held by pending requests."
        )

    def _resolve(self, request: Request, outcome: Outcome) -> bool:
        with request.lock:
            with self._lock:
                live = self._requests.get(request.id) is request
                if live and not request.is_resolved:
                    del self._requests[request.id]
            if request.is_resolved or not live:
                self._report_double_resolution(request, outcome)
                return False
            previous = request.state
            request.state = RequestState.RESOLVED

        logger.info(
            "resolved request id=%s status=%s results=%d",
            request.id,
            "ok" if outcome.ok else "error",
            len(request.results),
        )
        try:
            self._sink.resolve(request.callback_token, outcome)
        finally:
            self._plugins.on_request_transition(
                RequestTransitionEvent(
                    request_id=request.id,
                    from_state=previous.value,
                    to_state=RequestState.RESOLVED.value,
                    result_count=len(request.results),
                )
            )
            self._plugins.on_request_resolved(_resolved_event(request, outcome))
        return True

    def _report_double_resolution(self, request: Request, outcome: Outcome) -> None:
        message = (
            f"Request {request.id} is already resolved or released; "
            f"ignoring second resolution ({'ok' if outcome.ok else 'error'})."
        )
        if self._strict:
            raise RequestAlreadyResolvedError(message)
        logger.warning(message)
        warnings.warn(message, RuntimeWarning, stacklevel=3)


def _resolved_event(request: Request, outcome: Outcome) -> RequestResolvedEvent:
    if isinstance(outcome, Failure):
        return RequestResolvedEvent(
            request_id=request.id,
            status="error",
            result_count=len(request.results),
            error_code=int(outcome.code),
            error_message=outcome.message,
        )
    return RequestResolvedEvent(
        request_id=request.id,
        status="ok",
        result_count=len(outcome.results),
    )


def _rebind(request: Request, callback_token: str) -> Request:
    request.callback_token = callback_token
    return request


def requests_from_snapshot(snapshot: Mapping[str, Any]) -> list[Request]:
    """Validate ``snapshot`` and return its still-pending requests ordered by id."""
    if not isinstance(snapshot, Mapping):
        raise SnapshotError("Snapshot must be a mapping.")
    snapshot = dict(snapshot)
    validate_snapshot(snapshot)

    entries = snapshot["requests"]
    expected = compute_checksum({"version": snapshot["version"], "requests": entries})
    actual = snapshot["checksum"]
    if actual != expected:
        raise SnapshotError(f"Snapshot checksum mismatch: expected {expected}, got {actual}")

    requests: list[Request] = []
    for key, raw in sorted(entries.items(), key=lambda item: int(item[0])):
        request = Request.from_dict(raw)
        if request.id != int(key):
            raise SnapshotError(f"Snapshot entry {key!r} carries mismatched id {request.id}.")
        if request.is_resolved:
            logger.debug("skipping resolved request id=%s in snapshot", request.id)
            continue
        requests.append(request)
    return requests
