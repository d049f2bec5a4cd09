"""Durable snapshot files for pending capture requests."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import zstandard as zstd

logger = logging.getLogger(__name__)

_COMPRESSED_SUFFIX = ".zst"


def default_state_path() -> Path:
    return Path("runs/mediacapture/pending.json")


def load_snapshot(path: str | Path) -> dict[str, Any] | None:
    target = Path(path)
    if not target.exists():
        return None
    try:
        raw_bytes = target.read_bytes()
        if target.suffix == _COMPRESSED_SUFFIX:
            raw_bytes = zstd.ZstdDecompressor().decompress(raw_bytes)
        raw = json.loads(raw_bytes.decode("utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, zstd.ZstdError):
        logger.warning("ignoring unreadable snapshot file %s", target, exc_info=True)
        return None
    if not isinstance(raw, dict):
        return None
    return raw


def write_snapshot(path: str | Path, payload: dict[str, Any]) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    data = (json.dumps(payload, indent=2, ensure_ascii=True, sort_keys=True) + "\n").encode("utf-8")
    if target.suffix == _COMPRESSED_SUFFIX:
        data = zstd.ZstdCompressor().compress(data)
    # the process may be killed mid-write; never leave a torn snapshot behind
    scratch = target.with_name(target.name + ".tmp")
    scratch.write_bytes(data)
    os.replace(scratch, target)


def remove_snapshot(path: str | Path) -> None:
    target = Path(path)
    try:
        target.unlink()
    except FileNotFoundError:
        return


class SnapshotStore:
    """File-backed home for the registry snapshot."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_state_path()

    def load(self) -> dict[str, Any] | None:
        return load_snapshot(self.path)

    def save(self, snapshot: dict[str, Any]) -> None:
        write_snapshot(self.path, snapshot)

    def clear(self) -> None:
        remove_snapshot(self.path)
