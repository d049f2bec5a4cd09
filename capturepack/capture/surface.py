"""Interfaces of the collaborators the orchestrator drives."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Literal, Protocol, Sequence
from urllib.parse import unquote, urlparse

from capturepack.core.types import CaptureMode, RequestKind

PlaceholderMedia = Literal["image", "video"]


class SurfaceResult(IntEnum):
    """Outcome codes reported by the external capture surface."""

    OK = -1
    CANCELED = 0


@dataclass(frozen=True, slots=True)
class LaunchSpec:
    """Everything the external surface needs for one shot."""

    kind: RequestKind
    mode: CaptureMode
    image_uri: str | None = None
    video_uri: str | None = None
    duration: int = 0
    quality: int = 1
    mime_type_filter: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["kind"] = self.kind.name
        return payload


class CaptureSurface(Protocol):
    """Opaque producer of captured media.

    ``launch`` hands control to the surface and returns. The surface later calls
    ``CaptureOrchestrator.on_external_result(request_id, code, data_uri)``.
    Raise ``SurfaceUnavailableError`` when no handler exists for ``spec``.
    """

    def launch(self, request_id: int, spec: LaunchSpec) -> None:
        ...


class MediaStore(Protocol):
    """Shared media store the image and video surfaces write into."""

    def count_images(self) -> int:
        ...

    def image_ids(self) -> Sequence[int]:
        ...

    def delete_image(self, image_id: int) -> None:
        ...

    def create_placeholder(self, media: PlaceholderMedia, mime_type: str) -> str:
        ...

    def has_content(self, uri: str) -> bool:
        ...

    def delete_placeholder(self, uri: str) -> None:
        ...

    def finalize_image(self, uri: str) -> str:
        """Run post-capture image processing and return the stored image reference."""
        ...


class PathResolver(Protocol):
    def to_local_path(self, uri: str) -> Path:
        ...

    def to_local_url(self, path: Path) -> str | None:
        ...


class LocalPathResolver:
    """Maps ``file:`` URIs and plain paths; has no local filesystem URL scheme."""

    def to_local_path(self, uri: str) -> Path:
        return uri_to_path(uri)

    def to_local_url(self, path: Path) -> str | None:
        return None


def uri_to_path(uri: str) -> Path:
    if uri.startswith("file:"):
        return Path(unquote(urlparse(uri).path))
    return Path(uri)
