"""Plugin subsystem for request lifecycle extensions."""

from capturepack.plugins.base import (
    PLUGIN_API_VERSION,
    PLUGIN_CONFIG_ENV_VAR,
    PLUGIN_CONFIG_VERSION,
    REQUEST_HOOKS,
    LifecyclePlugin,
    RequestCreatedEvent,
    RequestResolvedEvent,
    RequestTransitionEvent,
)
from capturepack.plugins.exceptions import PluginConfigError, PluginError, PluginLoadError
from capturepack.plugins.loader import load_plugin_manager_from_file
from capturepack.plugins.manager import PluginDiagnostic, PluginManager
from capturepack.plugins.reference import RequestTracePlugin
from capturepack.plugins.runtime import (
    get_active_plugin_manager,
    reset_plugin_runtime_cache,
    use_plugin_manager,
)

__all__ = [
    "PLUGIN_API_VERSION",
    "PLUGIN_CONFIG_VERSION",
    "PLUGIN_CONFIG_ENV_VAR",
    "REQUEST_HOOKS",
    "PluginError",
    "PluginConfigError",
    "PluginLoadError",
    "LifecyclePlugin",
    "RequestCreatedEvent",
    "RequestTransitionEvent",
    "RequestResolvedEvent",
    "PluginDiagnostic",
    "PluginManager",
    "RequestTracePlugin",
    "load_plugin_manager_from_file",
    "get_active_plugin_manager",
    "use_plugin_manager",
    "reset_plugin_runtime_cache",
]
