"""
ContainmentCoordinator: root object wiring store, projector, gesture and loop.

One coordinator per host list editor. It owns a RelationStore, an
AssignmentStateMachine and a ReconciliationLoop, and talks to four external
collaborators: the host list, the settings store, the notifier and the
scheduler. Nothing is process-global; tearing down the coordinator tears
down all of its state.

Typical embedding:

    coordinator = ContainmentCoordinator(host_list, settings=extension_settings,
                                         notifier=toasts, scheduler=AsyncioScheduler())
    coordinator.initialize()
    # toolbar
    coordinator.enter_assign_mode()
    # item click handler
    coordinator.handle_item_activated(item_id)
"""
import logging
from typing import Any, Dict, Mapping, Optional

from promptnest.config import ContainmentConfig, get_current_config
from promptnest.host_list import HostList
from promptnest.interaction import AssignmentStateMachine, InteractionState
from promptnest.notifications import LoggingNotifier, MessageLevel, Notifier, notify_safely
from promptnest.persistence import InMemorySettingsStore, RelationPersistence, SettingsStore
from promptnest.reconciliation import ReconciliationLoop
from promptnest.relation_snapshot import RelationSnapshot
from promptnest.relation_store import RelationStore
from promptnest.scheduling import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)


class ContainmentCoordinator:
    """Public surface used by the toolbar, the item click handler and settings.

    Every user-triggered mutation completes its store update, its save call
    and a synchronous reconciliation pass before returning. When the feature
    is disabled the interaction entry points are no-ops and host items carry
    no markers.
    """

    def __init__(
        self,
        host: HostList,
        settings: Optional[SettingsStore] = None,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[ContainmentConfig] = None,
    ):
        self.config = config or get_current_config()
        self.host = host
        self.notifier = notifier or LoggingNotifier()
        self.persistence = RelationPersistence(settings or InMemorySettingsStore(), self.config.namespace)

        self.store = RelationStore()
        self.loop = ReconciliationLoop(
            self.store,
            host,
            scheduler or AsyncioScheduler(),
            debounce_seconds=self.config.debounce_seconds,
            settle_seconds=self.config.settle_seconds,
        )
        self.interaction = AssignmentStateMachine(
            self.store,
            host,
            self.notifier,
            is_enabled=lambda: self._enabled,
            after_mutation=self.reconcile_now,
        )

        self._enabled = self.config.enabled
        self._initialized = False

    # === Lifecycle ===

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> int:
        """Load persisted state and start (or strip) markers.

        With the default AsyncioScheduler this must run inside the event loop
        that will drive the timers.

        Raises:
            RuntimeError: the default scheduler has no event loop to use.

        Returns:
            Number of containers loaded.
        """
        if self._initialized:
            logger.warning("ContainmentCoordinator.initialize() called twice, ignoring")
            return len(self.store)
        if isinstance(self.loop.scheduler, AsyncioScheduler):
            # Raises before any state is loaded when no event loop is reachable.
            _ = self.loop.scheduler.loop

        self._enabled = self.config.enabled and self.persistence.load_enabled(default=True)
        loaded = self.store.load_snapshot(self.persistence.load())
        self.store.on_changed(self._persist)
        self._initialized = True

        if self._enabled:
            self.loop.start()
            self.loop.reconcile_now()
        else:
            self.loop.strip_markers()
        logger.info(f"Containment coordinator initialized: enabled={self._enabled}, containers={loaded}")
        return loaded

    def destroy(self) -> None:
        """Stop the loop, drop the gesture and strip markers. Safe to call twice."""
        if not self._initialized:
            return
        self.interaction.exit_assign_mode()
        self.loop.stop()
        self.loop.strip_markers()
        self.store.off_changed(self._persist)
        self._initialized = False
        logger.debug("Containment coordinator destroyed")

    def set_enabled(self, enabled: bool) -> None:
        """Flip the feature switch at runtime and persist it."""
        enabled = bool(enabled)
        if enabled == self._enabled:
            return
        self._enabled = enabled
        self.persistence.save_enabled(enabled)

        if enabled:
            if self._initialized:
                self.loop.start()
                self.loop.reconcile_now()
            notify_safely(self.notifier, "Item grouping enabled", MessageLevel.SUCCESS)
        else:
            self.interaction.exit_assign_mode()
            self.loop.stop()
            self.loop.strip_markers()
            notify_safely(self.notifier, "Item grouping disabled", MessageLevel.INFO)
        logger.info(f"Containment feature {'enabled' if enabled else 'disabled'}")

    def _persist(self) -> None:
        self.persistence.save(self.store.snapshot())

    def _active(self) -> bool:
        return self._enabled and self._initialized

    # === Interaction entry points ===

    @property
    def mode(self) -> InteractionState:
        return self.interaction.state

    def enter_assign_mode(self) -> bool:
        if not self._initialized:
            logger.debug("enter_assign_mode before initialize(), ignoring")
            return False
        return self.interaction.enter_assign_mode()

    def exit_assign_mode(self) -> None:
        self.interaction.exit_assign_mode()

    def handle_item_activated(self, item_id: str) -> InteractionState:
        if not self._active():
            return self.interaction.state
        return self.interaction.handle_item_activated(item_id)

    def handle_item_removed_externally(self, item_id: str) -> bool:
        """Host deleted an item. Applied even while disabled so no reference dangles."""
        changed = self.interaction.handle_item_removed_externally(item_id)
        if changed and self._active():
            self.loop.reconcile_now()
        return changed

    def handle_host_ready(self) -> None:
        """Host (re)rendered its list container."""
        if self._active():
            self.loop.notify_host_ready()

    # === Direct mutations ===

    def unassign(self, item_id: str) -> bool:
        if not self._active():
            return False
        changed = self.store.unassign(item_id)
        if changed:
            self.loop.reconcile_now()
        return changed

    def toggle_collapse(self, container_id: str) -> bool:
        """Returns the new collapsed state (False when disabled)."""
        if not self._active():
            return False
        collapsed = self.store.toggle_collapse(container_id)
        self.loop.reconcile_now()
        return collapsed

    def clear_all(self) -> int:
        """Remove every container. Returns how many existed."""
        if not self._active():
            return 0
        removed = self.store.clear_all()
        self.loop.reconcile_now()
        if removed:
            notify_safely(self.notifier, f"Removed {removed} group(s)", MessageLevel.INFO)
        else:
            notify_safely(self.notifier, "There are no groups to remove", MessageLevel.INFO)
        return removed

    def reconcile_now(self) -> bool:
        if not self._active():
            return False
        return self.loop.reconcile_now()

    # === Import / export ===

    def export_state(self) -> Dict[str, Any]:
        """JSON-serializable copy of the relation and collapsed set."""
        return self.store.snapshot().to_dict()

    def import_state(self, data: Mapping[str, Any]) -> int:
        """Replace the relation with an exported blob (validated entry by entry).

        Raises:
            TypeError: data is not a mapping.

        Returns:
            Number of containers imported (0 when disabled).
        """
        snapshot = RelationSnapshot.from_dict(data)
        if not self._active():
            return 0
        loaded = self.store.load_snapshot(snapshot, notify=True)
        self.loop.reconcile_now()
        notify_safely(self.notifier, f"Imported {loaded} group(s)", MessageLevel.SUCCESS)
        return loaded

    # === Introspection ===

    def get_stats(self) -> Dict[str, Any]:
        relation = self.store.relation
        return {
            'enabled': self._enabled,
            'initialized': self._initialized,
            'mode': self.interaction.state.value,
            'pending': self.interaction.pending,
            'containers': len(relation),
            'nested_children': sum(len(children) for children in relation.values()),
            'collapsed': len([c for c in self.store.collapsed if c in relation]),
            'reconciliation_passes': self.loop.pass_count,
        }
