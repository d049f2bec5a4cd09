"""In-memory and on-disk collaborators for demos and tests."""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
from pathlib import Path
import shutil
import threading
from typing import Callable, Iterable, Sequence

from capturepack.capture.exceptions import SurfaceUnavailableError
from capturepack.capture.surface import LaunchSpec, PlaceholderMedia, uri_to_path
from capturepack.core.types import CaptureMode


class StaticPermissionBackend:
    """Holds a fixed capability set and records every prompt."""

    def __init__(self, held: Iterable[str] = ()) -> None:
        self.held = set(held)
        self.prompts: list[tuple[tuple[str, ...], int]] = []

    def has_capability(self, capability: str) -> bool:
        return capability in self.held

    def prompt(self, capabilities: tuple[str, ...], correlation_id: int) -> None:
        self.prompts.append((capabilities, correlation_id))

    def grant(self, *capabilities: str) -> dict[str, bool]:
        self.held.update(capabilities)
        return {capability: True for capability in capabilities}


@dataclass(slots=True)
class ScriptedCaptureSurface:
    """Records launches; an optional responder plays the user's part."""

    available_modes: tuple[CaptureMode, ...] = ("audio", "image", "video", "chooser")
    responder: Callable[[int, LaunchSpec], None] | None = None
    launches: list[tuple[int, LaunchSpec]] = field(default_factory=list)

    def launch(self, request_id: int, spec: LaunchSpec) -> None:
        if spec.mode not in self.available_modes:
            raise SurfaceUnavailableError(f"no surface handles mode {spec.mode!r}")
        self.launches.append((request_id, spec))
        if self.responder is not None:
            self.responder(request_id, spec)


class DirectoryMediaStore:
    """Media store backed by a directory tree.

    Image placeholders are registered as store entries the moment they are
    created. ``finalize_image`` copies the captured bytes into a new entry, so
    a single photo grows the store by two unless ``replace_on_finalize`` is set.
    """

    def __init__(self, root: str | Path, *, replace_on_finalize: bool = False) -> None:
        self.root = Path(root).absolute()
        self.replace_on_finalize = replace_on_finalize
        self._images: dict[int, Path] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        for folder in ("images", "videos", "audio"):
            (self.root / folder).mkdir(parents=True, exist_ok=True)

    def count_images(self) -> int:
        with self._lock:
            return len(self._images)

    def image_ids(self) -> Sequence[int]:
        with self._lock:
            return tuple(sorted(self._images))

    def delete_image(self, image_id: int) -> None:
        with self._lock:
            path = self._images.pop(image_id, None)
        if path is not None:
            path.unlink(missing_ok=True)

    def create_placeholder(self, media: PlaceholderMedia, mime_type: str) -> str:
        if media == "image":
            return self.add_image(b"")
        with self._lock:
            path = self.root / "videos" / f"VID_{next(self._ids):05d}.mp4"
        path.touch()
        return path.as_uri()

    def has_content(self, uri: str) -> bool:
        path = uri_to_path(uri)
        return path.is_file() and path.stat().st_size > 0

    def delete_placeholder(self, uri: str) -> None:
        path = uri_to_path(uri)
        with self._lock:
            for image_id, image_path in list(self._images.items()):
                if image_path == path:
                    del self._images[image_id]
        path.unlink(missing_ok=True)

    def finalize_image(self, uri: str) -> str:
        source = uri_to_path(uri)
        if self.replace_on_finalize:
            return source.as_uri()
        target = uri_to_path(self.add_image(b""))
        shutil.copyfile(source, target)
        return target.as_uri()

    def add_image(self, data: bytes) -> str:
        with self._lock:
            image_id = next(self._ids)
            path = self.root / "images" / f"IMG_{image_id:05d}.jpg"
            self._images[image_id] = path
        path.write_bytes(data)
        return path.as_uri()

    def write_audio(self, name: str, data: bytes) -> str:
        path = self.root / "audio" / name
        path.write_bytes(data)
        return path.as_uri()

    @staticmethod
    def fill(uri: str, data: bytes) -> None:
        """Write captured bytes into a placeholder, as a surface would."""
        uri_to_path(uri).write_bytes(data)
