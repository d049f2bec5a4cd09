"""Core data models for pending capture requests and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
import threading
from typing import Any, Mapping, Union

from capturepack.core.exceptions import CaptureOptionsError
from capturepack.core.types import CaptureMode, ErrorCode, RequestKind, RequestState


@dataclass(frozen=True, slots=True)
class CaptureOptions:
    """Caller-supplied knobs for a single logical capture."""

    limit: int = 1
    duration: int = 0
    quality: int = 1
    image: bool = False
    video: bool = False
    mime_type_filter: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.limit, bool) or not isinstance(self.limit, int):
            raise CaptureOptionsError("limit must be an integer")
        if self.limit < 1:
            raise CaptureOptionsError(f"limit must be >= 1, got {self.limit}")
        for name in ("duration", "quality"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise CaptureOptionsError(f"{name} must be an integer")

    def capture_mode(self, kind: RequestKind) -> CaptureMode:
        if kind == RequestKind.AUDIO:
            return "audio"
        if self.image:
            return "image"
        if self.video:
            return "video"
        return "chooser"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "limit": self.limit,
            "duration": self.duration,
            "quality": self.quality,
            "image": self.image,
            "video": self.video,
        }
        if self.mime_type_filter is not None:
            payload["mime_type_filter"] = self.mime_type_filter
        return payload

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "CaptureOptions":
        """Build options from a loosely typed bridge payload."""
        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise CaptureOptionsError("capture options must be a mapping")
        mime_filter = raw.get("mime_type_filter", raw.get("mimeTypeFilter"))
        return cls(
            limit=_coerce_int(raw.get("limit"), default=1, name="limit"),
            duration=_coerce_int(raw.get("duration"), default=0, name="duration"),
            quality=_coerce_int(raw.get("quality"), default=1, name="quality"),
            image=_coerce_bool(raw.get("image")),
            video=_coerce_bool(raw.get("video")),
            mime_type_filter=str(mime_filter) if mime_filter is not None else None,
        )


@dataclass(frozen=True, slots=True)
class ResultDescriptor:
    """File reference and derived metadata for one captured item."""

    name: str
    full_path: str
    type: str
    last_modified_date: int = 0
    size: int = 0
    local_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "fullPath": self.full_path,
            "type": self.type,
            "lastModifiedDate": self.last_modified_date,
            "size": self.size,
        }
        if self.local_url is not None:
            payload["localURL"] = self.local_url
        return payload

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ResultDescriptor":
        return cls(
            name=str(raw.get("name", "")),
            full_path=str(raw.get("fullPath", "")),
            type=str(raw.get("type", "")),
            last_modified_date=int(raw.get("lastModifiedDate", 0)),
            size=int(raw.get("size", 0)),
            local_url=raw.get("localURL"),
        )


@dataclass(frozen=True, slots=True)
class Success:
    results: tuple[ResultDescriptor, ...]

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return {"status": "ok", "results": [result.to_dict() for result in self.results]}


@dataclass(frozen=True, slots=True)
class Failure:
    code: ErrorCode
    message: str

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return {"status": "error", "code": int(self.code), "message": self.message}


Outcome = Union[Success, Failure]


@dataclass(slots=True)
class Request:
    """Mutable state for one in-flight logical capture."""

    id: int
    kind: RequestKind
    callback_token: str
    options: CaptureOptions = field(default_factory=CaptureOptions)
    results: list[ResultDescriptor] = field(default_factory=list)
    state: RequestState = RequestState.CREATED
    image_uri: str | None = None
    video_uri: str | None = None
    image_baseline: int | None = None
    lock: threading.RLock = field(
        default_factory=threading.RLock,
        init=False,
        repr=False,
        compare=False,
    )

    @property
    def limit(self) -> int:
        return self.options.limit

    @property
    def duration(self) -> int:
        return self.options.duration

    @property
    def quality(self) -> int:
        return self.options.quality

    @property
    def is_resolved(self) -> bool:
        return self.state is RequestState.RESOLVED

    @property
    def is_complete(self) -> bool:
        return len(self.results) >= self.limit

    def accumulate(self, descriptor: ResultDescriptor) -> None:
        if self.is_resolved:
            raise RuntimeError(f"Request {self.id} is resolved; results are frozen.")
        if self.is_complete:
            raise RuntimeError(
                f"Request {self.id} already holds {len(self.results)} of {self.limit} results."
            )
        self.results.append(descriptor)

    def clear_outputs(self) -> None:
        self.image_uri = None
        self.video_uri = None
        self.image_baseline = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "kind": int(self.kind),
            "callback_token": self.callback_token,
            "options": self.options.to_dict(),
            "results": [result.to_dict() for result in self.results],
            "state": self.state.value,
        }
        if self.image_uri is not None:
            payload["image_uri"] = self.image_uri
        if self.video_uri is not None:
            payload["video_uri"] = self.video_uri
        if self.image_baseline is not None:
            payload["image_baseline"] = self.image_baseline
        return payload

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Request":
        baseline = raw.get("image_baseline")
        return cls(
            id=int(raw["id"]),
            kind=RequestKind(int(raw["kind"])),
            callback_token=str(raw["callback_token"]),
            options=CaptureOptions.from_mapping(raw.get("options")),
            results=[ResultDescriptor.from_dict(item) for item in raw.get("results", [])],
            state=RequestState(raw.get("state", RequestState.CREATED.value)),
            image_uri=raw.get("image_uri"),
            video_uri=raw.get("video_uri"),
            image_baseline=int(baseline) if baseline is not None else None,
        )


def _coerce_int(value: Any, *, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise CaptureOptionsError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as error:
        raise CaptureOptionsError(f"{name} must be an integer, got {value!r}") from error


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)
