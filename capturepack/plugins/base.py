"""Versioned plugin interfaces and request lifecycle event payloads."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

PLUGIN_API_VERSION = "1.0"
PLUGIN_CONFIG_VERSION = 1
PLUGIN_CONFIG_ENV_VAR = "MEDIACAPTURE_PLUGIN_CONFIG"
REQUEST_HOOKS: tuple[str, ...] = (
    "on_request_created",
    "on_request_transition",
    "on_request_resolved",
)

ResolutionStatus = Literal["ok", "error"]


@dataclass(frozen=True, slots=True)
class RequestCreatedEvent:
    request_id: int
    kind: str
    limit: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class RequestTransitionEvent:
    request_id: int
    from_state: str
    to_state: str
    result_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class RequestResolvedEvent:
    request_id: int
    status: ResolutionStatus
    result_count: int
    error_code: int | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LifecyclePlugin:
    """Base no-op lifecycle plugin interface (API v1.x)."""

    api_version = PLUGIN_API_VERSION
    name = "lifecycle-plugin"

    def on_request_created(self, event: RequestCreatedEvent) -> None:
        return None

    def on_request_transition(self, event: RequestTransitionEvent) -> None:
        return None

    def on_request_resolved(self, event: RequestResolvedEvent) -> None:
        return None
