"""JSON schema and validation for pending-request snapshots."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jsonschema import Draft202012Validator

from capturepack.core.types import MAX_REQUEST_ID, RequestKind, RequestState
from capturepack.pending.exceptions import SnapshotError

SNAPSHOT_VERSION = "1"

_RESULT_DESCRIPTOR_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name", "fullPath", "type"],
    "additionalProperties": True,
    "properties": {
        "name": {"type": "string"},
        "fullPath": {"type": "string"},
        "type": {"type": "string"},
        "lastModifiedDate": {"type": "integer", "minimum": 0},
        "size": {"type": "integer", "minimum": 0},
        "localURL": {"type": ["string", "null"]},
    },
}

_REQUEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["id", "kind", "callback_token", "options", "results", "state"],
    "additionalProperties": True,
    "properties": {
        "id": {"type": "integer", "minimum": 0, "maximum": MAX_REQUEST_ID - 1},
        "kind": {"type": "integer", "enum": [int(kind) for kind in RequestKind]},
        "callback_token": {"type": "string"},
        "options": {
            "type": "object",
            "required": ["limit"],
            "additionalProperties": True,
            "properties": {
                "limit": {"type": "integer", "minimum": 1},
                "duration": {"type": "integer", "minimum": 0},
                "quality": {"type": "integer"},
                "image": {"type": "boolean"},
                "video": {"type": "boolean"},
                "mime_type_filter": {"type": ["string", "null"]},
            },
        },
        "results": {"type": "array", "items": _RESULT_DESCRIPTOR_SCHEMA},
        "state": {"type": "string", "enum": [state.value for state in RequestState]},
        "image_uri": {"type": "string"},
        "video_uri": {"type": "string"},
        "image_baseline": {"type": "integer", "minimum": 0},
    },
}

SNAPSHOT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "MediaCapture pending request snapshot",
    "type": "object",
    "required": ["version", "requests", "checksum"],
    "additionalProperties": True,
    "properties": {
        "version": {"type": "string", "const": SNAPSHOT_VERSION},
        "requests": {
            "type": "object",
            # keys are the decimal correlation ids
            "patternProperties": {r"^(0|[1-9][0-9]*)$": _REQUEST_SCHEMA},
            "additionalProperties": False,
        },
        "checksum": {"type": "string", "pattern": r"^sha256:[0-9a-f]{64}$"},
    },
}


@lru_cache(maxsize=1)
def _snapshot_validator() -> Draft202012Validator:
    return Draft202012Validator(SNAPSHOT_SCHEMA)


def validate_snapshot(snapshot: Any) -> None:
    """Validate snapshot shape and version; raises ``SnapshotError``."""
    if isinstance(snapshot, dict) and snapshot.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError(
            f"Unsupported snapshot version {snapshot.get('version')!r}; "
            f"expected {SNAPSHOT_VERSION!r}."
        )

    errors = sorted(
        _snapshot_validator().iter_errors(snapshot),
        key=lambda err: [str(part) for part in err.path],
    )
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.path) or "$"
        raise SnapshotError(f"Invalid snapshot at {location}: {first.message}")
