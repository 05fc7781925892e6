"""
Visual state projection: (relation, collapsed set, item id) -> visual role.

Pure functions only. No host reads, no writes, no caching. The reconciliation
loop calls project_marker() once per visible item per pass; with a
RelationStore as the relation argument every call is a couple of dict lookups.

A plain Mapping[str, List[str]] is accepted as well (handy in tests and for
previewing imported state); nested-child lookups on a mapping scan its values.
"""
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, List, Mapping, Optional, Union

from promptnest.relation_store import RelationStore

RelationView = Union[RelationStore, Mapping[str, List[str]]]


class VisualRole(Enum):
    """Marker role an item should display."""
    PLAIN = "plain"
    CONTAINER_EXPANDED = "container-expanded"
    CONTAINER_COLLAPSED = "container-collapsed"
    NESTED_CHILD = "nested-child"

    @property
    def icon(self) -> Optional[str]:
        """Icon name the host renders next to the item (None for plain items)."""
        return _ROLE_ICONS[self]

    @property
    def is_container(self) -> bool:
        return self in (VisualRole.CONTAINER_EXPANDED, VisualRole.CONTAINER_COLLAPSED)


_ROLE_ICONS = {
    VisualRole.PLAIN: None,
    VisualRole.CONTAINER_EXPANDED: "fa-folder-open",
    VisualRole.CONTAINER_COLLAPSED: "fa-folder",
    VisualRole.NESTED_CHILD: "fa-turn-up fa-rotate-90",
}


@dataclass(frozen=True)
class ItemMarker:
    """What gets written onto one host item: its role and whether it is hidden."""
    role: VisualRole = VisualRole.PLAIN
    hidden: bool = False


PLAIN_MARKER = ItemMarker()


def _is_container(relation: RelationView, item_id: str) -> bool:
    if isinstance(relation, RelationStore):
        return relation.is_container(item_id)
    return bool(relation.get(item_id))


def _container_of(relation: RelationView, item_id: str) -> Optional[str]:
    if isinstance(relation, RelationStore):
        return relation.container_of(item_id)
    for container_id, children in relation.items():
        if item_id in children:
            return container_id
    return None


def project(relation: RelationView, collapsed: AbstractSet[str], item_id: str) -> VisualRole:
    """Map an item to its visual role.

    Collapsed-set entries for ids that are not live containers are ignored.
    """
    if _is_container(relation, item_id):
        if item_id in collapsed:
            return VisualRole.CONTAINER_COLLAPSED
        return VisualRole.CONTAINER_EXPANDED
    if _container_of(relation, item_id) is not None:
        return VisualRole.NESTED_CHILD
    return VisualRole.PLAIN


def is_hidden(relation: RelationView, collapsed: AbstractSet[str], item_id: str) -> bool:
    """True for a nested child whose container is collapsed."""
    container_id = _container_of(relation, item_id)
    return container_id is not None and container_id in collapsed


def project_marker(relation: RelationView, collapsed: AbstractSet[str], item_id: str) -> ItemMarker:
    """Role plus visibility for one item, as written by the reconciliation loop."""
    role = project(relation, collapsed, item_id)
    if role is VisualRole.PLAIN:
        return PLAIN_MARKER
    hidden = role is VisualRole.NESTED_CHILD and is_hidden(relation, collapsed, item_id)
    return ItemMarker(role=role, hidden=hidden)
