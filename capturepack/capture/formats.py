"""Format metadata for captured media files."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import struct
from typing import Any, Protocol
import wave

from PIL import Image

from capturepack.capture.descriptors import guess_mime_type
from capturepack.capture.surface import uri_to_path
from capturepack.core.types import AUDIO_TYPES, IMAGE_JPEG, VIDEO_TYPES

logger = logging.getLogger(__name__)

_PROBE_ERRORS = (OSError, EOFError, ValueError, struct.error, wave.Error, Image.DecompressionBombError)


@dataclass(frozen=True, slots=True)
class FormatData:
    height: int = 0
    width: int = 0
    bitrate: int = 0
    duration: int = 0
    codecs: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "width": self.width,
            "bitrate": self.bitrate,
            "duration": self.duration,
            "codecs": self.codecs,
        }


@dataclass(frozen=True, slots=True)
class MediaInfo:
    duration_ms: int = 0
    width: int = 0
    height: int = 0


class MediaProbe(Protocol):
    def image_bounds(self, path: Path) -> tuple[int, int] | None:
        """Return ``(width, height)`` or ``None`` when undeterminable."""
        ...

    def media_info(self, path: Path, *, video: bool) -> MediaInfo | None:
        ...


class LocalMediaProbe:
    """Reads image bounds with Pillow and WAV durations from the RIFF header.

    Other audio and video containers are reported as undeterminable.
    """

    def image_bounds(self, path: Path) -> tuple[int, int] | None:
        # only the header is parsed; pixel data is never decoded
        with Image.open(path) as image:
            return image.size

    def media_info(self, path: Path, *, video: bool) -> MediaInfo | None:
        if path.suffix.lower() != ".wav":
            return None
        with wave.open(str(path), "rb") as reader:
            rate = reader.getframerate()
            if rate <= 0:
                return None
            return MediaInfo(duration_ms=reader.getnframes() * 1000 // rate)


def get_format_data(
    file_path: str,
    mime_type: str | None = None,
    *,
    probe: MediaProbe | None = None,
) -> FormatData:
    """Probe ``file_path`` for height, width, duration; zero fields when unknown."""
    probe = probe or LocalMediaProbe()
    path = uri_to_path(file_path)

    if not mime_type or mime_type == "null":
        mime_type = guess_mime_type(path, source=file_path)
    logger.debug("format data for %s mime=%s", file_path, mime_type)

    if mime_type == IMAGE_JPEG or file_path.endswith(".jpg"):
        bounds = _safe_probe(probe.image_bounds, path)
        if bounds is None:
            return FormatData()
        width, height = bounds
        return FormatData(height=height, width=width)

    if mime_type in AUDIO_TYPES or mime_type in VIDEO_TYPES:
        video = mime_type in VIDEO_TYPES
        info = _safe_probe(probe.media_info, path, video=video)
        if info is None:
            return FormatData()
        return FormatData(
            height=info.height if video else 0,
            width=info.width if video else 0,
            duration=info.duration_ms // 1000,
        )

    return FormatData()


def _safe_probe(func: Any, path: Path, **kwargs: Any) -> Any:
    try:
        return func(path, **kwargs)
    except _PROBE_ERRORS:
        logger.warning("could not probe %s", path, exc_info=True)
        return None
