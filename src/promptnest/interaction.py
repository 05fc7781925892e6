"""
AssignmentStateMachine: the two-click "put this item into that container" gesture.

    IDLE --enter_assign_mode--> ASSIGNING --click a--> AWAITING_CONTAINER(pending=a)
    AWAITING_CONTAINER --click a again--> ASSIGNING            (self-cancel)
    AWAITING_CONTAINER --click b--> assign(a, b) --> ASSIGNING (success or failure)
    AWAITING_CONTAINER --click ineligible b--> ASSIGNING       (nothing assigned)
    any --exit_assign_mode--> IDLE

The only memory is the pending item. There is no timeout: a pending selection
stays until the user clicks again or leaves assignment mode.
"""
import logging
from enum import Enum
from typing import Callable, List, Optional

from promptnest.host_list import HostList
from promptnest.notifications import MessageLevel, Notifier, notify_safely
from promptnest.relation_store import RelationStore

logger = logging.getLogger(__name__)


class InteractionState(Enum):
    IDLE = "idle"
    ASSIGNING = "assigning"
    AWAITING_CONTAINER = "awaiting_container"


class AssignmentStateMachine:
    """Turns item clicks into RelationStore.assign() calls.

    Args:
        store: Relation store mutated on a completed gesture.
        host: Host list, consulted for item eligibility.
        notifier: Sink for user-facing messages.
        is_enabled: Returns the current feature switch.
        after_mutation: Called after a successful assignment (the coordinator
                        passes reconcile_now so markers refresh immediately).
    """

    def __init__(
        self,
        store: RelationStore,
        host: HostList,
        notifier: Notifier,
        is_enabled: Callable[[], bool] = lambda: True,
        after_mutation: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.host = host
        self.notifier = notifier
        self._is_enabled = is_enabled
        self._after_mutation = after_mutation

        self._state = InteractionState.IDLE
        self._pending: Optional[str] = None
        self._on_state_changed_callbacks: List[Callable[[InteractionState], None]] = []

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    @property
    def is_active(self) -> bool:
        return self._state is not InteractionState.IDLE

    # === State Change Subscription ===

    def on_state_changed(self, callback: Callable[[InteractionState], None]) -> None:
        """Subscribe to state transitions (e.g. a toolbar button reflecting the mode)."""
        if callback not in self._on_state_changed_callbacks:
            self._on_state_changed_callbacks.append(callback)

    def off_state_changed(self, callback: Callable[[InteractionState], None]) -> None:
        if callback in self._on_state_changed_callbacks:
            self._on_state_changed_callbacks.remove(callback)

    def _transition(self, state: InteractionState, pending: Optional[str] = None) -> None:
        previous = self._state
        self._state = state
        self._pending = pending
        logger.debug(f"Interaction: {previous.value} -> {state.value} (pending={pending!r})")
        if previous is state:
            return
        for callback in list(self._on_state_changed_callbacks):
            try:
                callback(state)
            except Exception as e:
                logger.warning(f"Error in interaction state_changed callback: {e}")

    # === Transitions ===

    def enter_assign_mode(self) -> bool:
        """IDLE -> ASSIGNING. Returns False if the feature is disabled."""
        if not self._is_enabled():
            logger.info("enter_assign_mode ignored: containment feature is disabled")
            notify_safely(self.notifier, "Item grouping is disabled in settings", MessageLevel.WARNING)
            return False
        if self._state is InteractionState.IDLE:
            self._transition(InteractionState.ASSIGNING)
            notify_safely(self.notifier, "Click an item, then click the item that should contain it", MessageLevel.INFO)
        return True

    def exit_assign_mode(self) -> None:
        """Any state -> IDLE. Drops a pending selection without committing it."""
        if self._pending is not None:
            logger.debug(f"Discarding pending selection {self._pending!r}")
        self._transition(InteractionState.IDLE)

    def handle_item_activated(self, item_id: str) -> InteractionState:
        """Feed one item click into the gesture. Returns the resulting state."""
        if self._state is InteractionState.IDLE:
            return self._state

        if self._state is InteractionState.ASSIGNING:
            if not self.host.is_eligible(item_id):
                logger.debug(f"Item {item_id!r} is not eligible for grouping")
                notify_safely(self.notifier, "This item cannot be grouped", MessageLevel.WARNING)
                return self._state
            self._transition(InteractionState.AWAITING_CONTAINER, pending=item_id)
            return self._state

        child_id = self._pending
        if item_id == child_id:
            logger.debug(f"Selection {item_id!r} cancelled by clicking it again")
            self._transition(InteractionState.ASSIGNING)
            return self._state

        if not self.host.is_eligible(item_id):
            logger.info(f"Rejected grouping {child_id!r} -> {item_id!r}: target is not eligible")
            notify_safely(self.notifier, "This item cannot hold other items", MessageLevel.WARNING)
            self._transition(InteractionState.ASSIGNING)
            return self._state

        result = self.store.assign(child_id, item_id)
        self._transition(InteractionState.ASSIGNING)
        if result.ok:
            if self._after_mutation is not None:
                self._after_mutation()
            if result.changed:
                notify_safely(self.notifier, f"Moved {child_id} into {item_id}", MessageLevel.SUCCESS)
            else:
                notify_safely(self.notifier, f"{child_id} is already in {item_id}", MessageLevel.INFO)
        else:
            logger.info(f"Rejected grouping {child_id!r} -> {item_id!r}: {result.error.value}")
            notify_safely(self.notifier, result.error.message, MessageLevel.ERROR)
        return self._state

    def handle_item_removed_externally(self, item_id: str) -> bool:
        """Host deleted item_id: drop it from the gesture and the relation.

        A removed container is dissolved so its children are released.

        Returns:
            True if the relation changed.
        """
        if self._pending == item_id:
            logger.info(f"Pending selection {item_id!r} was removed from the host list")
            notify_safely(self.notifier, "The selected item was removed; selection cancelled", MessageLevel.INFO)
            self._transition(InteractionState.ASSIGNING)
        changed = self.store.unassign(item_id)
        if self.store.is_container(item_id):
            self.store.dissolve(item_id)
            changed = True
        return changed
