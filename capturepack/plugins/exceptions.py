"""Errors raised while configuring request lifecycle plugins."""

from __future__ import annotations

from pathlib import Path


class PluginError(Exception):
    """Base class for request lifecycle plugin errors."""


class PluginConfigError(PluginError):
    """A plugin config file cannot be turned into request hooks."""

    def __init__(self, message: str, *, config_path: str | Path | None = None) -> None:
        super().__init__(message)
        self.config_path = Path(config_path) if config_path is not None else None


class PluginLoadError(PluginError):
    """A configured plugin could not be imported, built or bound to request hooks."""

    def __init__(self, message: str, *, entrypoint: str | None = None) -> None:
        super().__init__(message)
        self.entrypoint = entrypoint
