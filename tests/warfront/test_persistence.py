"""Unit tests for PersistenceManager -- atomic snapshots and fatal loads."""

from __future__ import annotations

import json

import pytest

from warfront.errors import FatalConfigError
from warfront.initializer import ObjectiveInitializer
from warfront.lifecycle import ObjectiveLifecycle
from warfront.persistence import PersistenceManager


pytestmark = pytest.mark.unit


@pytest.fixture
def manager(settings) -> PersistenceManager:
    return PersistenceManager(settings.save_path, settings)


@pytest.fixture
def store(mission, settings, t0):
    return ObjectiveInitializer(mission, settings).run(t0)


class TestSaveLoad:
    def test_round_trip(self, manager, store, settings, t0):
        lifecycle = ObjectiveLifecycle(store, settings)
        armor = store.get_objective_by_name("KRYMSK").side_groups()["RARMOR#001"]
        lifecycle.unit_killed(store.units_by_id[store.require_group(armor).units[0]].name, t0)
        store.register_player("ucid-1", "Viper", store.get_objective_by_name("SENAKI").owner)

        assert manager.maybe_save(store) is True
        loaded = manager.load()

        assert loaded.to_dict() == store.to_dict()
        krymsk = loaded.get_objective_by_name("KRYMSK")
        assert krymsk.health < 100
        assert krymsk.last_change == t0
        assert loaded.get_objective_by_slot("Krymsk Su-27 1") is krymsk
        assert loaded.objective_for_group(armor) is krymsk

    def test_save_replaces_atomically(self, manager, store):
        manager.save({"version": 1, "old": True})
        manager.save(store.to_dict())
        assert not manager.path.with_suffix(".tmp").exists()
        with open(manager.path) as f:
            assert "old" not in json.load(f)

    def test_maybe_save_only_when_dirty(self, manager, store):
        assert manager.maybe_save(store) is True
        assert manager.maybe_save(store) is False
        store.mark_dirty()
        assert manager.maybe_save(store) is True

    def test_creates_parent_directory(self, tmp_path, store, settings):
        manager = PersistenceManager(tmp_path / "nested" / "dir" / "save.json", settings)
        manager.save(store.to_dict())
        assert manager.exists()


class TestFatalLoads:
    def test_missing_file(self, manager):
        assert manager.exists() is False
        with pytest.raises(FatalConfigError):
            manager.load()

    def test_not_json(self, manager):
        manager.path.write_text("{ this is not json")
        with pytest.raises(FatalConfigError):
            manager.load()

    def test_not_a_document(self, manager):
        manager.path.write_text("[1, 2, 3]")
        with pytest.raises(FatalConfigError):
            manager.load()

    def test_missing_fields(self, manager):
        manager.path.write_text(json.dumps({"version": 1, "units": [{"id": 1}]}))
        with pytest.raises(FatalConfigError):
            manager.load()

    def test_bad_enum_value(self, manager, store):
        data = store.to_dict()
        data["objectives"][0]["owner"] = "purple"
        manager.save(data)
        with pytest.raises(FatalConfigError):
            manager.load()

    def test_dangling_group_reference(self, manager, store):
        data = store.to_dict()
        data["groups"] = data["groups"][1:]
        manager.save(data)
        with pytest.raises(FatalConfigError):
            manager.load()
