"""Reference lifecycle plugin implementation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
from pathlib import Path
import threading

from capturepack.plugins.base import (
    LifecyclePlugin,
    RequestCreatedEvent,
    RequestResolvedEvent,
    RequestTransitionEvent,
)

_WRITE_LOCK = threading.Lock()


@dataclass(slots=True)
class RequestTracePlugin(LifecyclePlugin):
    """Appends every request lifecycle hook to an NDJSON trace."""

    output_path: str = "runs/plugins/request-trace.ndjson"
    name: str = "request-trace"

    def on_request_created(self, event: RequestCreatedEvent) -> None:
        self._append("on_request_created", event)

    def on_request_transition(self, event: RequestTransitionEvent) -> None:
        self._append("on_request_transition", event)

    def on_request_resolved(self, event: RequestResolvedEvent) -> None:
        self._append("on_request_resolved", event)

    def _append(self, hook: str, event: object) -> None:
        path = Path(self.output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(
            {"hook": hook, "plugin": self.name, "event": asdict(event)},
            ensure_ascii=True,
            sort_keys=True,
            separators=(",", ":"),
        )
        # callbacks may arrive on worker threads
        with _WRITE_LOCK, path.open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
