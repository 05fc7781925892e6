"""
Containment feature configuration.

Provides thread-local storage for the current ContainmentConfig, the same way
the settings surface publishes its values for the coordinator to read.
A coordinator constructed without an explicit config reads the current one at
construction time; the enabled flag is re-checked at enter_assign_mode().
"""

import threading
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class ContainmentConfig:
    """Feature switches and timing for one coordinator."""
    enabled: bool = True
    # Quiet window after the last host change notification before a pass runs
    debounce_seconds: float = 0.2
    # Time the guard stays set after a pass so the host's own re-render settles
    settle_seconds: float = 0.1
    # Settings namespace the relation is persisted under ("<namespace>.containment")
    namespace: str = "promptnest"

    def with_enabled(self, enabled: bool) -> 'ContainmentConfig':
        return replace(self, enabled=enabled)


DEFAULT_CONFIG = ContainmentConfig()

_current_config_context = threading.local()


def set_current_config(config: ContainmentConfig) -> None:
    """Publish the config seen by coordinators created on this thread.

    Called when:
    - App startup loads the extension settings
    - User flips the feature switch in the settings panel
    - Tests set up a specific config
    """
    _current_config_context.value = config


def get_current_config() -> ContainmentConfig:
    """Current config, or DEFAULT_CONFIG if none was published on this thread."""
    return getattr(_current_config_context, 'value', None) or DEFAULT_CONFIG


def clear_current_config() -> Optional[ContainmentConfig]:
    """Drop the published config. Returns what was set, if anything."""
    previous = getattr(_current_config_context, 'value', None)
    _current_config_context.value = None
    return previous
