"""Selects which plugin manager receives request lifecycle events."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
import logging
import os
from pathlib import Path
import threading
from typing import TYPE_CHECKING, Iterator

from capturepack.plugins.base import PLUGIN_CONFIG_ENV_VAR
from capturepack.plugins.loader import load_plugin_manager_from_file
from capturepack.plugins.manager import PluginManager

if TYPE_CHECKING:
    from capturepack.config import CaptureConfig

logger = logging.getLogger(__name__)

_ACTIVE_PLUGIN_MANAGER: ContextVar[PluginManager | None] = ContextVar(
    "capturepack_request_plugins",
    default=None,
)
_NO_PLUGINS = PluginManager(plugins=())
_LOADED: dict[Path, PluginManager] = {}
_LOADED_LOCK = threading.Lock()


def get_active_plugin_manager(config: CaptureConfig | None = None) -> PluginManager:
    """Resolve the manager for new registries.

    A manager activated with ``use_plugin_manager`` wins. Otherwise the config
    file named by ``config.plugin_config`` (or, without a config, by
    ``MEDIACAPTURE_PLUGIN_CONFIG``) is loaded once per path and shared by every
    registry in the process.
    """
    manager = _ACTIVE_PLUGIN_MANAGER.get()
    if manager is not None:
        return manager

    if config is not None:
        config_path = config.plugin_config
    else:
        raw = os.getenv(PLUGIN_CONFIG_ENV_VAR, "").strip()
        config_path = Path(raw) if raw else None
    if config_path is None:
        return _NO_PLUGINS
    return _load_shared(config_path)


def _load_shared(config_path: Path) -> PluginManager:
    key = config_path.expanduser().resolve()
    with _LOADED_LOCK:
        loaded = _LOADED.get(key)
        if loaded is None:
            loaded = load_plugin_manager_from_file(key)
            _LOADED[key] = loaded
            logger.info("loaded %d request plugin(s) from %s", len(loaded.plugins), key)
    return loaded


@contextmanager
def use_plugin_manager(manager: PluginManager) -> Iterator[PluginManager]:
    """Route lifecycle events of registries created in this context to ``manager``."""
    token = _ACTIVE_PLUGIN_MANAGER.set(manager)
    try:
        yield manager
    finally:
        _ACTIVE_PLUGIN_MANAGER.reset(token)


def reset_plugin_runtime_cache() -> None:
    with _LOADED_LOCK:
        _LOADED.clear()
