"""
RelationSnapshot: the serializable shape of the containment relation.

Used for persistence (settings blob) and import/export.

Design Philosophy: data only
- Immutable (frozen dataclass)
- Plain dict/list payload, JSON-serializable without custom encoders
- from_dict() is lenient about shape; invariant checking belongs to
  RelationStore.load_snapshot(), which replays entries through assign rules
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Tuple
import logging

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class RelationSnapshot:
    """Immutable copy of the relation and collapsed set at a point in time.

    relation is stored as a tuple of (container_id, children) pairs so the
    snapshot stays hashable and keeps container insertion order.
    """
    relation: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    collapsed: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def create(cls, relation: Mapping[str, List[str]], collapsed=()) -> 'RelationSnapshot':
        """Build a snapshot from live containers (copies everything)."""
        return cls(
            relation=tuple((container, tuple(children)) for container, children in relation.items()),
            collapsed=frozenset(collapsed),
        )

    @property
    def container_count(self) -> int:
        return len(self.relation)

    def relation_dict(self) -> Dict[str, List[str]]:
        return {container: list(children) for container, children in self.relation}

    def to_dict(self) -> Dict[str, Any]:
        """Export to JSON-serializable dict."""
        return {
            'version': SNAPSHOT_VERSION,
            'relation': self.relation_dict(),
            'collapsed': sorted(self.collapsed),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RelationSnapshot':
        """Import from dict (e.g., loaded from settings or a JSON export).

        Raises:
            TypeError: data is not a mapping.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"Relation snapshot must be a mapping, got {type(data).__name__}")

        version = data.get('version', SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            logger.warning(f"Loading relation snapshot with unknown version {version!r}")

        raw_relation = data.get('relation') or {}
        if not isinstance(raw_relation, Mapping):
            logger.warning(f"Ignoring malformed relation payload of type {type(raw_relation).__name__}")
            raw_relation = {}

        relation = []
        for container, children in raw_relation.items():
            if isinstance(children, (list, tuple)):
                relation.append((container, tuple(children)))
            else:
                logger.warning(f"Ignoring children of {container!r}: expected a list, got {type(children).__name__}")

        raw_collapsed = data.get('collapsed') or ()
        if not isinstance(raw_collapsed, (list, tuple, set, frozenset)):
            logger.warning(f"Ignoring malformed collapsed payload of type {type(raw_collapsed).__name__}")
            raw_collapsed = ()

        return cls(
            relation=tuple(relation),
            collapsed=frozenset(c for c in raw_collapsed if isinstance(c, str)),
        )
