"""Environment-driven configuration for media capture hosts."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
from typing import Mapping

from capturepack.capture.permissions import CAMERA
from capturepack.plugins.base import PLUGIN_CONFIG_ENV_VAR

STATE_FILE_ENV_VAR = "MEDIACAPTURE_STATE_FILE"
LOG_LEVEL_ENV_VAR = "MEDIACAPTURE_LOG_LEVEL"
LOG_JSON_ENV_VAR = "MEDIACAPTURE_LOG_JSON"
STRICT_RESOLUTION_ENV_VAR = "MEDIACAPTURE_STRICT_RESOLUTION"
CAMERA_DECLARED_ENV_VAR = "MEDIACAPTURE_CAMERA_DECLARED"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class CaptureConfigError(ValueError):
    """Raised when capture configuration is invalid."""


@dataclass(slots=True)
class CaptureConfig:
    """Host-level settings shared by every capture request."""

    state_file: Path | None = None
    log_level: str = "WARNING"
    log_json: bool = False
    strict_resolution: bool = False
    declared_capabilities: frozenset[str] = field(default_factory=frozenset)
    plugin_config: Path | None = None

    def __post_init__(self) -> None:
        self.log_level = str(self.log_level).strip().upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise CaptureConfigError(f"Unknown log level: {self.log_level!r}")
        if self.state_file is not None:
            self.state_file = Path(self.state_file)
        self.declared_capabilities = frozenset(self.declared_capabilities)
        if self.plugin_config is not None:
            self.plugin_config = Path(self.plugin_config)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CaptureConfig":
        env = os.environ if environ is None else environ
        state_file = env.get(STATE_FILE_ENV_VAR, "").strip()
        declared = {CAMERA} if _parse_bool(env, CAMERA_DECLARED_ENV_VAR) else set()
        plugin_config = env.get(PLUGIN_CONFIG_ENV_VAR, "").strip()
        return cls(
            state_file=Path(state_file) if state_file else None,
            log_level=env.get(LOG_LEVEL_ENV_VAR, "WARNING"),
            log_json=_parse_bool(env, LOG_JSON_ENV_VAR),
            strict_resolution=_parse_bool(env, STRICT_RESOLUTION_ENV_VAR),
            declared_capabilities=frozenset(declared),
            plugin_config=Path(plugin_config) if plugin_config else None,
        )


def _parse_bool(env: Mapping[str, str], name: str) -> bool:
    raw = env.get(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise CaptureConfigError(f"{name} must be a boolean flag, got {raw!r}")
