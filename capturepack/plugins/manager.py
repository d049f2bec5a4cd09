"""Runtime plugin manager with fault-isolated hook dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import warnings

from capturepack.plugins.base import (
    RequestCreatedEvent,
    RequestResolvedEvent,
    RequestTransitionEvent,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PluginDiagnostic:
    plugin_name: str
    hook: str
    error_type: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "plugin_name": self.plugin_name,
            "hook": self.hook,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass(slots=True)
class PluginManager:
    """Executes request lifecycle hooks and captures plugin failures."""

    plugins: tuple[object, ...] = ()
    diagnostics: list[PluginDiagnostic] = field(default_factory=list)

    def clear_diagnostics(self) -> None:
        self.diagnostics.clear()

    def on_request_created(self, event: RequestCreatedEvent) -> None:
        self._dispatch("on_request_created", event)

    def on_request_transition(self, event: RequestTransitionEvent) -> None:
        self._dispatch("on_request_transition", event)

    def on_request_resolved(self, event: RequestResolvedEvent) -> None:
        self._dispatch("on_request_resolved", event)

    def _dispatch(self, hook: str, event: object) -> None:
        for plugin in self.plugins:
            callback = getattr(plugin, hook, None)
            if callback is None:
                continue
            try:
                callback(event)
            except Exception as error:
                diagnostic = PluginDiagnostic(
                    plugin_name=_plugin_name(plugin),
                    hook=hook,
                    error_type=error.__class__.__name__,
                    message=str(error),
                )
                self.diagnostics.append(diagnostic)
                logger.warning(
                    "plugin hook failed: plugin=%s hook=%s",
                    diagnostic.plugin_name,
                    diagnostic.hook,
                    exc_info=True,
                )
                warnings.warn(
                    (
                        f"MediaCapture plugin failure: plugin={diagnostic.plugin_name} "
                        f"hook={diagnostic.hook} "
                        f"error={diagnostic.error_type}: {diagnostic.message}"
                    ),
                    RuntimeWarning,
                    stacklevel=2,
                )


def _plugin_name(plugin: object) -> str:
    name = getattr(plugin, "name", plugin.__class__.__name__)
    return str(name)
