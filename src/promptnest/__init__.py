"""
Containment overlay for host-owned, reorderable prompt lists.

This package lets one list item "contain" other items (one level deep) on top
of a list editor it does not own. The host keeps drag-reordering and
re-renders on its own schedule; promptnest keeps its markers consistent
across those re-renders without reacting to its own writes.

Key Features:
- Invariant-preserving relation store (depth 1, exclusive membership, no
  empty containers, no cycles), validated again on every persisted load
- Pure visual-role projection per item
- Two-click assignment gesture as an explicit three-state machine
- Debounced, reentrancy-guarded reconciliation against host change feeds

Quick Start:
    Timers run on the asyncio event loop, so the coordinator is driven from
    inside it (or given another Scheduler):

    >>> import asyncio
    >>> from promptnest import (
    ...     ContainmentCoordinator,
    ...     InMemoryHostList,
    ...     InMemorySettingsStore,
    ... )
    >>>
    >>> async def main():
    ...     host = InMemoryHostList(["main", "persona", "scenario"])
    ...     coordinator = ContainmentCoordinator(host, settings=InMemorySettingsStore())
    ...     coordinator.initialize()
    ...     coordinator.enter_assign_mode()
    ...     coordinator.handle_item_activated("persona")   # child
    ...     coordinator.handle_item_activated("main")      # container
    ...     coordinator.destroy()
    >>>
    >>> asyncio.run(main())

Architecture:
    host change -> ReconciliationLoop (debounced, guarded) -> project() -> markers
    user click  -> AssignmentStateMachine -> RelationStore -> save -> reconcile_now()

Modules:
    - relation_store: the containment relation and collapsed set
    - relation_snapshot: serializable snapshot used for persistence and export
    - visual_roles: pure projection of an item to its visual role
    - interaction: two-click assignment gesture
    - reconciliation: debounce + reentrancy guard against the host change feed
    - coordinator: root object wiring the above
    - host_list / persistence / notifications / scheduling: collaborator seams
    - config: feature switch and timings
"""

from promptnest.errors import (
    PromptNestError,
    HostUnavailableError,
    PersistenceError,
    AssignError,
    AssignResult,
)

from promptnest.relation_snapshot import RelationSnapshot
from promptnest.relation_store import RelationStore, build_store

from promptnest.visual_roles import (
    VisualRole,
    ItemMarker,
    PLAIN_MARKER,
    project,
    project_marker,
    is_hidden,
)

from promptnest.config import (
    ContainmentConfig,
    DEFAULT_CONFIG,
    set_current_config,
    get_current_config,
    clear_current_config,
)

from promptnest.scheduling import Scheduler, AsyncioScheduler
from promptnest.notifications import (
    MessageLevel,
    Notifier,
    LoggingNotifier,
    RecordingNotifier,
)
from promptnest.persistence import (
    SettingsStore,
    InMemorySettingsStore,
    JsonFileSettingsStore,
    RelationPersistence,
)
from promptnest.host_list import HostList, HostItem, InMemoryHostList

from promptnest.interaction import AssignmentStateMachine, InteractionState
from promptnest.reconciliation import ReconciliationLoop
from promptnest.coordinator import ContainmentCoordinator

__all__ = [
    # Errors
    'PromptNestError',
    'HostUnavailableError',
    'PersistenceError',
    'AssignError',
    'AssignResult',
    # Relation
    'RelationSnapshot',
    'RelationStore',
    'build_store',
    # Projection
    'VisualRole',
    'ItemMarker',
    'PLAIN_MARKER',
    'project',
    'project_marker',
    'is_hidden',
    # Configuration
    'ContainmentConfig',
    'DEFAULT_CONFIG',
    'set_current_config',
    'get_current_config',
    'clear_current_config',
    # Collaborators
    'Scheduler',
    'AsyncioScheduler',
    'MessageLevel',
    'Notifier',
    'LoggingNotifier',
    'RecordingNotifier',
    'SettingsStore',
    'InMemorySettingsStore',
    'JsonFileSettingsStore',
    'RelationPersistence',
    'HostList',
    'HostItem',
    'InMemoryHostList',
    # Interaction / reconciliation / root
    'AssignmentStateMachine',
    'InteractionState',
    'ReconciliationLoop',
    'ContainmentCoordinator',
]

__version__ = '1.0.0'
__description__ = 'Containment overlay for host-owned, reorderable prompt lists'
