"""Pending request registry, resolution sink and durable snapshots."""

from capturepack.pending.exceptions import (
    RegistryError,
    RequestAlreadyResolvedError,
    RequestIdExhaustedError,
    SnapshotError,
)
from capturepack.pending.registry import RequestRegistry, requests_from_snapshot
from capturepack.pending.schema import SNAPSHOT_SCHEMA, SNAPSHOT_VERSION, validate_snapshot
from capturepack.pending.sink import CallbackSink, ResolutionCallback, ResolutionSink
from capturepack.pending.state import (
    SnapshotStore,
    default_state_path,
    load_snapshot,
    remove_snapshot,
    write_snapshot,
)

__all__ = [
    "RegistryError",
    "RequestAlreadyResolvedError",
    "RequestIdExhaustedError",
    "SnapshotError",
    "SNAPSHOT_SCHEMA",
    "SNAPSHOT_VERSION",
    "RequestRegistry",
    "requests_from_snapshot",
    "validate_snapshot",
    "CallbackSink",
    "ResolutionCallback",
    "ResolutionSink",
    "SnapshotStore",
    "default_state_path",
    "load_snapshot",
    "remove_snapshot",
    "write_snapshot",
]
