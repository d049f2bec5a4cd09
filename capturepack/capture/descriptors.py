"""Derive result descriptors for captured files."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path, PurePosixPath

from capturepack.capture.surface import PathResolver
from capturepack.core.models import ResultDescriptor
from capturepack.core.types import AUDIO_3GPP, IMAGE_JPEG, VIDEO_3GPP, VIDEO_MP4

logger = logging.getLogger(__name__)

_3GPP_SUFFIXES = frozenset({".3gp", ".3gpp"})
_FALLBACK_MIME_TYPE = "application/octet-stream"
# pinned so results do not depend on the host mime.types tables
_SUFFIX_TYPES = {
    ".jpg": IMAGE_JPEG,
    ".jpeg": IMAGE_JPEG,
    ".png": "image/png",
    ".mp4": VIDEO_MP4,
    ".wav": "audio/wav",
    ".aac": "audio/aac",
    ".amr": "audio/amr",
}


def guess_mime_type(path: str | Path, *, source: str | None = None) -> str:
    """Guess a MIME type, telling 3GPP audio apart from 3GPP video.

    Extension lookup reports every ``.3gp`` file as video, so the source reference
    decides: anything that came out of an ``/audio/`` store is audio.
    """
    suffix = PurePosixPath(str(path)).suffix.lower()
    if suffix in _3GPP_SUFFIXES:
        return AUDIO_3GPP if "/audio/" in (source or str(path)) else VIDEO_3GPP
    if suffix in _SUFFIX_TYPES:
        return _SUFFIX_TYPES[suffix]
    guessed, _encoding = mimetypes.guess_type(str(path), strict=False)
    return guessed or _FALLBACK_MIME_TYPE


def describe_media(uri: str, *, path_resolver: PathResolver) -> ResultDescriptor:
    """Build the descriptor for ``uri``; unknown fields default rather than fail."""
    try:
        path = path_resolver.to_local_path(uri)
    except Exception:
        logger.warning("could not map %s to a local path", uri, exc_info=True)
        return ResultDescriptor(
            name=PurePosixPath(uri).name,
            full_path=uri,
            type=guess_mime_type(uri, source=uri),
        )

    path = path.absolute()
    local_url: str | None = None
    try:
        local_url = path_resolver.to_local_url(path)
    except Exception:
        logger.warning("local URL lookup failed for %s", path, exc_info=True)

    last_modified = 0
    size = 0
    try:
        stat = path.stat()
        last_modified = int(stat.st_mtime * 1000)
        size = stat.st_size
    except OSError:
        logger.warning("could not stat captured file %s", path, exc_info=True)

    return ResultDescriptor(
        name=path.name,
        full_path=path.as_uri(),
        type=guess_mime_type(path, source=uri),
        last_modified_date=last_modified,
        size=size,
        local_url=local_url,
    )
