"""Versioned loader for request lifecycle plugin config files."""

from __future__ import annotations

import importlib
import inspect
import json
from pathlib import Path
from typing import Any

from capturepack.plugins.base import PLUGIN_API_VERSION, PLUGIN_CONFIG_VERSION, REQUEST_HOOKS
from capturepack.plugins.exceptions import PluginConfigError, PluginLoadError
from capturepack.plugins.manager import PluginManager

_SUPPORTED_ENTRY_KEYS = frozenset({"entrypoint", "options", "enabled"})


def load_plugin_manager_from_file(path: str | Path) -> PluginManager:
    """Build a ``PluginManager`` whose plugins receive request lifecycle hooks.

    The file is a JSON object ``{"config_version": 1, "plugins": [...]}``; each
    entry names a ``module:attribute`` entrypoint plus optional constructor
    ``options`` and an ``enabled`` flag.
    """
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as error:
        raise PluginConfigError(
            f"Cannot read request plugin config {config_path}: {error}",
            config_path=config_path,
        ) from error
    except json.JSONDecodeError as error:
        raise PluginConfigError(
            f"Invalid request plugin config JSON ({config_path}): {error}",
            config_path=config_path,
        ) from error

    if not isinstance(raw, dict):
        raise PluginConfigError(
            f"Request plugin config must be a JSON object ({config_path}).",
            config_path=config_path,
        )

    version = raw.get("config_version")
    if version != PLUGIN_CONFIG_VERSION:
        raise PluginConfigError(
            "Unsupported plugin config version "
            f"{version!r}; expected {PLUGIN_CONFIG_VERSION}.",
            config_path=config_path,
        )

    entries = raw.get("plugins")
    if not isinstance(entries, list):
        raise PluginConfigError(
            "Request plugin config key 'plugins' must be a JSON array.",
            config_path=config_path,
        )

    plugins = []
    for index, entry in enumerate(entries, start=1):
        try:
            plugin = _load_entry(entry, index=index)
        except PluginConfigError as error:
            error.config_path = config_path
            raise
        if plugin is not None:
            plugins.append(plugin)
    return PluginManager(plugins=tuple(plugins))


def _load_entry(entry: Any, *, index: int) -> object | None:
    if not isinstance(entry, dict):
        raise PluginConfigError(f"Plugin entry #{index} must be a JSON object.")

    unknown = sorted(set(entry.keys()) - _SUPPORTED_ENTRY_KEYS)
    if unknown:
        raise PluginConfigError(
            f"Plugin entry #{index} contains unsupported keys: {', '.join(unknown)}"
        )

    enabled = entry.get("enabled", True)
    if not isinstance(enabled, bool):
        raise PluginConfigError(f"Plugin entry #{index} key 'enabled' must be boolean.")
    if not enabled:
        return None

    entrypoint = entry.get("entrypoint")
    if not isinstance(entrypoint, str) or ":" not in entrypoint:
        raise PluginConfigError(
            f"Plugin entry #{index} key 'entrypoint' must be 'module:attribute'."
        )

    options = entry.get("options", {})
    if not isinstance(options, dict):
        raise PluginConfigError(f"Plugin entry #{index} key 'options' must be a JSON object.")

    module_name, _, attribute = entrypoint.partition(":")
    try:
        target = getattr(importlib.import_module(module_name), attribute)
    except ImportError as error:
        raise PluginLoadError(
            f"Plugin entry #{index} failed to import module '{module_name}': {error}",
            entrypoint=entrypoint,
        ) from error
    except AttributeError as error:
        raise PluginLoadError(
            f"Plugin entry #{index} could not find attribute '{attribute}' in '{module_name}'.",
            entrypoint=entrypoint,
        ) from error

    if inspect.isclass(target) or callable(target):
        try:
            plugin = target(**options)
        except Exception as error:
            raise PluginLoadError(
                f"Plugin entry #{index} failed to instantiate '{entrypoint}': {error}",
                entrypoint=entrypoint,
            ) from error
    elif options:
        raise PluginLoadError(
            f"Plugin entry #{index} uses non-callable '{entrypoint}' and cannot accept options.",
            entrypoint=entrypoint,
        )
    else:
        plugin = target

    version = str(getattr(plugin, "api_version", PLUGIN_API_VERSION))
    expected_major = PLUGIN_API_VERSION.split(".", 1)[0]
    if version.split(".", 1)[0] != expected_major:
        raise PluginLoadError(
            f"Plugin entry #{index} '{entrypoint}' declares unsupported api_version "
            f"{version!r}; supported major version is {expected_major}.",
            entrypoint=entrypoint,
        )

    if not any(callable(getattr(plugin, hook, None)) for hook in REQUEST_HOOKS):
        raise PluginLoadError(
            f"Plugin entry #{index} '{entrypoint}' implements none of the request hooks "
            f"({', '.join(REQUEST_HOOKS)}).",
            entrypoint=entrypoint,
        )
    return plugin
