"""Tests for relation snapshots and the settings-backed persistence seam."""
import json

import pytest

from promptnest import (
    InMemorySettingsStore,
    JsonFileSettingsStore,
    PersistenceError,
    RelationPersistence,
    RelationSnapshot,
)


class TestRelationSnapshot:

    def test_to_dict_shape(self):
        snapshot = RelationSnapshot.create({"g": ["x", "y"]}, collapsed={"g"})

        assert snapshot.to_dict() == {"version": 1, "relation": {"g": ["x", "y"]}, "collapsed": ["g"]}
        assert snapshot.container_count == 1

    def test_snapshot_is_a_copy(self):
        relation = {"g": ["x"]}
        snapshot = RelationSnapshot.create(relation)

        relation["g"].append("y")

        assert snapshot.relation_dict() == {"g": ["x"]}

    def test_from_dict_missing_keys(self):
        assert RelationSnapshot.from_dict({}) == RelationSnapshot()

    def test_from_dict_malformed_parts(self):
        snapshot = RelationSnapshot.from_dict({
            "relation": {"g": "x", "h": ["y"]},
            "collapsed": ["h", 3],
        })

        assert snapshot.relation_dict() == {"h": ["y"]}
        assert snapshot.collapsed == frozenset({"h"})

    def test_from_dict_relation_not_mapping(self):
        snapshot = RelationSnapshot.from_dict({"relation": ["g", "x"], "collapsed": "g"})

        assert snapshot == RelationSnapshot()

    def test_from_dict_rejects_non_mapping(self):
        with pytest.raises(TypeError):
            RelationSnapshot.from_dict("not a dict")


class TestRelationPersistence:

    def test_load_empty(self):
        persistence = RelationPersistence(InMemorySettingsStore())

        assert persistence.load() == RelationSnapshot()
        assert persistence.load_enabled() is True

    def test_save_then_load(self):
        settings = InMemorySettingsStore()
        persistence = RelationPersistence(settings, namespace="ext")

        assert persistence.save(RelationSnapshot.create({"g": ["x"]}, ["g"]))

        assert settings.save_count == 1
        assert settings.get("ext")["containment"]["relation"] == {"g": ["x"]}
        assert persistence.load().relation_dict() == {"g": ["x"]}

    def test_sections_share_namespace(self):
        settings = InMemorySettingsStore({"ext": {"other_feature": 1}})
        persistence = RelationPersistence(settings, namespace="ext")

        persistence.save_enabled(False)
        persistence.save(RelationSnapshot())

        section = settings.get("ext")
        assert section["other_feature"] == 1
        assert section["enabled"] is False
        assert persistence.load_enabled() is False

    def test_initial_settings_not_mutated(self):
        initial = {"ext": {"other_feature": 1}}
        settings = InMemorySettingsStore(initial)
        persistence = RelationPersistence(settings, namespace="ext")

        persistence.save(RelationSnapshot.create({"g": ["x"]}))
        persistence.save_enabled(False)

        assert initial == {"ext": {"other_feature": 1}}
        assert settings.get("ext")["enabled"] is False

    def test_section_read_earlier_not_mutated(self):
        settings = InMemorySettingsStore({"ext": {"enabled": True}})
        persistence = RelationPersistence(settings, namespace="ext")
        before = settings.get("ext")

        persistence.save_enabled(False)

        assert before == {"enabled": True}
        assert persistence.load_enabled() is False

    def test_corrupt_section_reset(self):
        persistence = RelationPersistence(InMemorySettingsStore({"ext": "garbage"}), namespace="ext")

        assert persistence.load() == RelationSnapshot()
        assert persistence.save(RelationSnapshot.create({"g": ["x"]}))

    def test_corrupt_containment_payload(self):
        persistence = RelationPersistence(InMemorySettingsStore({"ext": {"containment": [1, 2]}}), namespace="ext")

        assert persistence.load() == RelationSnapshot()

    def test_save_failure_reported_not_raised(self):
        class FailingSettings(InMemorySettingsStore):
            def save(self):
                raise PersistenceError("quota exceeded")

        persistence = RelationPersistence(FailingSettings())

        assert persistence.save(RelationSnapshot()) is False

    def test_on_save_hook(self):
        flushed = []
        settings = InMemorySettingsStore(on_save=lambda: flushed.append(1))

        RelationPersistence(settings).save(RelationSnapshot())

        assert flushed == [1]


class TestJsonFileSettingsStore:

    def test_round_trip(self, tmp_path):
        path = tmp_path / "settings" / "extension.json"
        store = JsonFileSettingsStore(path)
        RelationPersistence(store, namespace="ext").save(RelationSnapshot.create({"g": ["x"]}))

        reloaded = RelationPersistence(JsonFileSettingsStore(path), namespace="ext").load()

        assert reloaded.relation_dict() == {"g": ["x"]}
        assert json.loads(path.read_text(encoding="utf-8"))["ext"]["containment"]["version"] == 1

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonFileSettingsStore(path)

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonFileSettingsStore(path)
