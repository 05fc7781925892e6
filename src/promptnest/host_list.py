"""
Host list interface: the externally owned, reorderable list of prompt items.

promptnest never owns this list. It reads identifiers and eligibility,
subscribes to structural-change notifications, and writes one ItemMarker per
item. It never reorders, inserts or deletes host items.

InMemoryHostList is a reference host: it behaves like a DOM list watched by a
mutation observer, so marker writes are reported to listeners exactly like
structural changes are. That is the feedback the reconciliation loop's
reentrancy guard exists to break.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from promptnest.errors import HostUnavailableError
from promptnest.visual_roles import ItemMarker, PLAIN_MARKER

logger = logging.getLogger(__name__)


class HostList(Protocol):
    """What the coordinator needs from the host list editor."""

    def is_available(self) -> bool:
        """False while the host has not rendered the list container."""
        ...

    def item_ids(self) -> List[str]:
        """Identifiers in display order. Raises HostUnavailableError if absent."""
        ...

    def is_eligible(self, item_id: str) -> bool:
        """False for item kinds that cannot take part in containment."""
        ...

    def connect_listener(self, callback: Callable[[], None]) -> None: ...

    def disconnect_listener(self, callback: Callable[[], None]) -> None: ...

    def apply_marker(self, item_id: str, marker: ItemMarker) -> None:
        """Annotate one item. Unknown ids are ignored."""
        ...

    def revision(self) -> int:
        """Counter that moves on every change the host would report.

        Structural changes, re-renders and marker writes all advance it, whether
        or not a listener was connected at the time.
        """
        ...


@dataclass
class HostItem:
    item_id: str
    eligible: bool = True
    marker: ItemMarker = field(default=PLAIN_MARKER)


class InMemoryHostList:
    """Host list kept in memory, with mutation-observer style notifications."""

    def __init__(self, items: Iterable = (), available: bool = True):
        self._items: List[HostItem] = [
            item if isinstance(item, HostItem) else HostItem(item) for item in items
        ]
        self._available = available
        self._listeners: List[Callable[[], None]] = []
        self.marker_writes = 0
        self.notifications_sent = 0
        self._revision = 0

    # === HostList interface ===

    def is_available(self) -> bool:
        return self._available

    def item_ids(self) -> List[str]:
        self._require_available()
        return [item.item_id for item in self._items]

    def is_eligible(self, item_id: str) -> bool:
        item = self._find(item_id)
        return item is not None and item.eligible

    def connect_listener(self, callback: Callable[[], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)
            logger.debug(f"Connected host listener: {callback}")

    def disconnect_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)
            logger.debug(f"Disconnected host listener: {callback}")

    def apply_marker(self, item_id: str, marker: ItemMarker) -> None:
        self._require_available()
        item = self._find(item_id)
        if item is None or item.marker == marker:
            return
        item.marker = marker
        self.marker_writes += 1
        self._notify()

    def revision(self) -> int:
        return self._revision

    # === Host-side behaviour (what the real editor does on its own) ===

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def marker_of(self, item_id: str) -> ItemMarker:
        item = self._find(item_id)
        if item is None:
            raise KeyError(item_id)
        return item.marker

    def markers(self) -> Dict[str, ItemMarker]:
        return {item.item_id: item.marker for item in self._items}

    def set_available(self, available: bool) -> None:
        self._available = available
        if available:
            self._notify()

    def insert(self, item_id: str, index: Optional[int] = None, eligible: bool = True) -> None:
        item = HostItem(item_id, eligible)
        if index is None:
            self._items.append(item)
        else:
            self._items.insert(index, item)
        self._notify()

    def remove(self, item_id: str) -> None:
        item = self._find(item_id)
        if item is None:
            raise KeyError(item_id)
        self._items.remove(item)
        self._notify()

    def move(self, item_id: str, index: int) -> None:
        """Drag-reorder an item."""
        item = self._find(item_id)
        if item is None:
            raise KeyError(item_id)
        self._items.remove(item)
        self._items.insert(index, item)
        self._notify()

    def rerender(self) -> None:
        """Rebuild every node: annotations written by extensions are lost."""
        for item in self._items:
            item.marker = PLAIN_MARKER
        self._notify()

    def _find(self, item_id: str) -> Optional[HostItem]:
        for item in self._items:
            if item.item_id == item_id:
                return item
        return None

    def _require_available(self) -> None:
        if not self._available:
            raise HostUnavailableError("Host list container is not rendered")

    def _notify(self) -> None:
        self._revision += 1
        if not self._available:
            return
        self.notifications_sent += 1
        for callback in list(self._listeners):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Host listener failed: {e}")
