"""
Persistence collaborator: the containment relation stored in a key-value
settings blob.

SettingsStore is the external store (the host's extension settings with a
debounced save). RelationPersistence is the seam promptnest talks to:
load() at startup, save() once per mutation. It never retries; a backend
failure is logged and the coordinator keeps running in memory.

Settings layout (one JSON-compatible blob per namespace):

    {
        "<namespace>": {
            "enabled": true,
            "containment": {"version": 1, "relation": {...}, "collapsed": [...]}
        }
    }
"""
import copy
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union

from promptnest.errors import PersistenceError
from promptnest.relation_snapshot import RelationSnapshot

logger = logging.getLogger(__name__)

CONTAINMENT_KEY = 'containment'
ENABLED_KEY = 'enabled'


class SettingsStore(Protocol):
    """Key-value blob store owned by the host."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def save(self) -> None:
        """Request a (possibly debounced) flush."""
        ...


class InMemorySettingsStore:
    """Dict-backed settings store. save() only counts flush requests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None, on_save: Optional[Callable[[], None]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})
        self._on_save = on_save
        self.save_count = 0

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def save(self) -> None:
        self.save_count += 1
        if self._on_save is not None:
            self._on_save()

    def as_dict(self) -> Dict[str, Any]:
        return json.loads(json.dumps(self._data))


class JsonFileSettingsStore:
    """Settings blob kept in a JSON file; save() rewrites the file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, Any] = {}
        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    self._data = json.load(f)
            except (OSError, ValueError) as e:
                raise PersistenceError(f"Cannot read settings file {self.path}: {e}") from e
            if not isinstance(self._data, dict):
                raise PersistenceError(f"Settings file {self.path} does not hold a JSON object")

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise PersistenceError(f"Cannot write settings file {self.path}: {e}") from e
        logger.debug(f"Saved settings to {self.path}")


class RelationPersistence:
    """Reads and writes the relation under settings[namespace]['containment']."""

    def __init__(self, settings: SettingsStore, namespace: str = 'promptnest'):
        self.settings = settings
        self.namespace = namespace

    def _section(self) -> Dict[str, Any]:
        section = self.settings.get(self.namespace)
        if not isinstance(section, dict):
            if section is not None:
                logger.warning(f"Settings section {self.namespace!r} is not a mapping, resetting it")
            section = {}
        return section

    def load(self) -> RelationSnapshot:
        """Load the persisted relation; empty snapshot if absent or unreadable."""
        try:
            raw = self._section().get(CONTAINMENT_KEY)
        except PersistenceError as e:
            logger.warning(f"Failed to load containment state, starting empty: {e}")
            return RelationSnapshot()
        if raw is None:
            logger.debug(f"No persisted containment state under {self.namespace!r}")
            return RelationSnapshot()
        try:
            return RelationSnapshot.from_dict(raw)
        except TypeError as e:
            logger.warning(f"Ignoring corrupt containment state: {e}")
            return RelationSnapshot()

    def save(self, snapshot: RelationSnapshot) -> bool:
        """Write snapshot and request a flush. Returns False on backend failure."""
        return self._write(CONTAINMENT_KEY, snapshot.to_dict())

    def load_enabled(self, default: bool = True) -> bool:
        try:
            value = self._section().get(ENABLED_KEY)
        except PersistenceError as e:
            logger.warning(f"Failed to load enabled flag, using {default}: {e}")
            return default
        return default if value is None else value is not False

    def save_enabled(self, enabled: bool) -> bool:
        return self._write(ENABLED_KEY, bool(enabled))

    def _write(self, key: str, value: Any) -> bool:
        try:
            # The stored section may be shared with the caller; replace it whole.
            section = dict(self._section())
            section[key] = value
            self.settings.set(self.namespace, section)
            self.settings.save()
        except PersistenceError as e:
            logger.warning(f"Failed to save {key!r} for {self.namespace!r}, continuing in memory: {e}")
            return False
        logger.debug(f"Saved {key!r} for {self.namespace!r}")
        return True
