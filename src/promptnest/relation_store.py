"""
RelationStore: the containment relation and the collapsed-container set.

Pure data plus invariant-preserving mutators. No host, timer or UI knowledge.

Invariants (hold after every public call):
- max depth 1: a container never appears as a child
- exclusive membership: a child sits in at most one container
- no empty containers: removing the last child dissolves the container
- no cycles (implied by depth 1, still checked before every assign)

The forward map (container -> ordered children) is mirrored by a reverse index
(child -> container) so every membership query is a dict lookup.
"""
from typing import Callable, Dict, Iterable, List, Optional, Set
import logging

from promptnest.errors import AssignError, AssignResult
from promptnest.relation_snapshot import RelationSnapshot

logger = logging.getLogger(__name__)


class RelationStore:
    """Owns the container -> children mapping and the collapsed set.

    Lifecycle: created empty by the coordinator, filled by load_snapshot() at
    initialization, discarded with the coordinator.

    Change listeners fire once per effective mutation (no-op calls stay
    silent); the coordinator hooks persistence onto them.
    """

    def __init__(self):
        self._children: Dict[str, List[str]] = {}
        self._parent_of: Dict[str, str] = {}
        self._collapsed: Set[str] = set()
        self._on_changed_callbacks: List[Callable[[], None]] = []

    # === Change Subscription ===

    def on_changed(self, callback: Callable[[], None]) -> None:
        """Subscribe to relation/collapsed-set mutations."""
        if callback not in self._on_changed_callbacks:
            self._on_changed_callbacks.append(callback)

    def off_changed(self, callback: Callable[[], None]) -> None:
        """Unsubscribe from mutation notifications."""
        if callback in self._on_changed_callbacks:
            self._on_changed_callbacks.remove(callback)

    def _notify_changed(self) -> None:
        for callback in list(self._on_changed_callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Error in relation changed callback: {e}")

    # === Queries ===

    def is_container(self, item_id: str) -> bool:
        return item_id in self._children

    def is_nested_child(self, item_id: str) -> bool:
        return item_id in self._parent_of

    def is_collapsed(self, item_id: str) -> bool:
        return item_id in self._collapsed

    def container_of(self, item_id: str) -> Optional[str]:
        return self._parent_of.get(item_id)

    def children_of(self, container_id: str) -> List[str]:
        return list(self._children.get(container_id, ()))

    def containers(self) -> List[str]:
        return list(self._children)

    @property
    def collapsed(self) -> Set[str]:
        """Copy of the collapsed set (stale entries included)."""
        return set(self._collapsed)

    @property
    def relation(self) -> Dict[str, List[str]]:
        """Deep copy of the container -> children mapping."""
        return {container: list(children) for container, children in self._children.items()}

    def descendants_of(self, container_id: str) -> List[str]:
        """All items transitively contained in container_id, breadth-first.

        Depth is 1 today, so this equals children_of(); the walk stays
        transitive so deeper nesting would not change the interface.
        """
        result: List[str] = []
        seen = {container_id}
        frontier = [container_id]
        while frontier:
            next_frontier = []
            for node in frontier:
                for child in self._children.get(node, ()):
                    if child in seen:
                        continue
                    seen.add(child)
                    result.append(child)
                    next_frontier.append(child)
            frontier = next_frontier
        return result

    def __len__(self) -> int:
        return len(self._children)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._children or item_id in self._parent_of

    # === Mutators ===

    def check_assign(self, child_id: str, container_id: str) -> Optional[AssignError]:
        """Return the invariant assign(child_id, container_id) would violate, if any."""
        if child_id == container_id:
            return AssignError.SELF_ASSIGNMENT
        if self._violates_depth(child_id, container_id):
            return AssignError.DEPTH_VIOLATION
        if self._creates_cycle(child_id, container_id):
            return AssignError.CYCLE_DETECTED
        return None

    def _violates_depth(self, child_id: str, container_id: str) -> bool:
        return self.is_nested_child(container_id) or self.is_container(child_id)

    def _creates_cycle(self, child_id: str, container_id: str) -> bool:
        return container_id in self.descendants_of(child_id)

    def assign(self, child_id: str, container_id: str) -> AssignResult:
        """Place child_id into container_id, moving it out of any previous container.

        Returns:
            AssignResult.success(changed=False) if child_id already sits in
            container_id, AssignResult.failure(error) if an invariant would break.
        """
        error = self.check_assign(child_id, container_id)
        if error is not None:
            logger.debug(f"assign rejected: child={child_id!r} container={container_id!r} error={error.value}")
            return AssignResult.failure(error)

        current = self._parent_of.get(child_id)
        if current == container_id:
            return AssignResult.success(changed=False)
        if current is not None:
            self._detach(child_id)

        self._children.setdefault(container_id, []).append(child_id)
        self._parent_of[child_id] = container_id
        logger.info(f"Assigned {child_id!r} into container {container_id!r}")
        self._notify_changed()
        return AssignResult.success(changed=True)

    def unassign(self, child_id: str) -> bool:
        """Remove child_id from whatever container holds it.

        Returns:
            True if a removal happened.
        """
        if child_id not in self._parent_of:
            return False
        container_id = self._detach(child_id)
        logger.info(f"Unassigned {child_id!r} from container {container_id!r}")
        self._notify_changed()
        return True

    def dissolve(self, container_id: str) -> List[str]:
        """Release every child of container_id and drop the container.

        Returns:
            The released children, in their former order.
        """
        children = self._children.pop(container_id, None)
        if children is None:
            return []
        for child in children:
            self._parent_of.pop(child, None)
        self._collapsed.discard(container_id)
        logger.info(f"Dissolved container {container_id!r} ({len(children)} children released)")
        self._notify_changed()
        return children

    def toggle_collapse(self, container_id: str) -> bool:
        """Flip the collapsed flag and return the new state.

        Non-containers keep the flag too; the projector ignores it until the
        id becomes a live container.
        """
        if container_id in self._collapsed:
            self._collapsed.discard(container_id)
            collapsed = False
        else:
            self._collapsed.add(container_id)
            collapsed = True
        if not self.is_container(container_id):
            logger.debug(f"toggle_collapse on non-container {container_id!r} (flag kept)")
        self._notify_changed()
        return collapsed

    def clear_all(self) -> int:
        """Empty the relation and collapsed set.

        Returns:
            Number of containers that existed.
        """
        removed = len(self._children)
        had_state = bool(self._children or self._collapsed)
        self._children.clear()
        self._parent_of.clear()
        self._collapsed.clear()
        if had_state:
            logger.info(f"Cleared containment relation ({removed} containers)")
            self._notify_changed()
        return removed

    def _detach(self, child_id: str) -> str:
        """Remove child_id from its container, dissolving it when emptied."""
        container_id = self._parent_of.pop(child_id)
        children = self._children[container_id]
        children.remove(child_id)
        if not children:
            del self._children[container_id]
            self._collapsed.discard(container_id)
            logger.debug(f"Container {container_id!r} emptied and dissolved")
        return container_id

    # === Snapshots ===

    def snapshot(self) -> RelationSnapshot:
        return RelationSnapshot.create(self._children, self._collapsed)

    def load_snapshot(self, snapshot: RelationSnapshot, notify: bool = False) -> int:
        """Replace the current state with snapshot, dropping invalid entries.

        Persisted state may be hand-edited or corrupted, so every entry is
        replayed through the assign rules; violating entries are logged and
        skipped instead of raised.

        Args:
            snapshot: State to load.
            notify: Fire change listeners afterwards (True for user imports,
                    False for the startup load).

        Returns:
            Number of containers loaded.
        """
        self._children.clear()
        self._parent_of.clear()
        self._collapsed.clear()

        dropped = 0
        for container_id, children in snapshot.relation:
            if not _is_valid_id(container_id):
                logger.warning(f"Dropping container with invalid id {container_id!r}")
                dropped += len(children)
                continue
            for child_id in children:
                if not _is_valid_id(child_id):
                    logger.warning(f"Dropping invalid child id {child_id!r} of {container_id!r}")
                    dropped += 1
                    continue
                if self.is_nested_child(child_id):
                    logger.warning(
                        f"Dropping duplicate membership: {child_id!r} already in "
                        f"{self._parent_of[child_id]!r}, listed again under {container_id!r}"
                    )
                    dropped += 1
                    continue
                error = self.check_assign(child_id, container_id)
                if error is not None:
                    logger.warning(f"Dropping persisted entry {container_id!r} -> {child_id!r}: {error.value}")
                    dropped += 1
                    continue
                self._children.setdefault(container_id, []).append(child_id)
                self._parent_of[child_id] = container_id

        self._collapsed.update(c for c in snapshot.collapsed if _is_valid_id(c))

        if dropped:
            logger.warning(f"Loaded relation with {dropped} invalid entries dropped")
        logger.debug(f"Loaded relation: {len(self._children)} containers, {len(self._collapsed)} collapsed")
        if notify:
            self._notify_changed()
        return len(self._children)


def _is_valid_id(item_id) -> bool:
    return isinstance(item_id, str) and item_id != ""


def build_store(relation: Dict[str, Iterable[str]], collapsed: Iterable[str] = ()) -> RelationStore:
    """Construct a store from plain containers (validated like a persisted load)."""
    store = RelationStore()
    store.load_snapshot(RelationSnapshot.create({k: list(v) for k, v in relation.items()}, collapsed))
    return store
