"""Unit tests for ObjectiveInitializer -- cold start from mission geometry."""

from __future__ import annotations

import pytest

from warfront.errors import FatalConfigError
from warfront.host import ZoneShape
from warfront.initializer import ObjectiveInitializer
from warfront.models import GroupClass, ObjectiveKind, Origin, Side


pytestmark = pytest.mark.unit


class TestObjectives:
    def test_builds_objectives_from_zones(self, mission, settings, t0):
        store = ObjectiveInitializer(mission, settings).run(t0)

        assert set(store.objectives_by_name) == {"KRYMSK", "SENAKI"}
        krymsk = store.get_objective_by_name("KRYMSK")
        assert krymsk.kind is ObjectiveKind.AIRBASE
        assert krymsk.owner is Side.RED
        assert krymsk.radius == 5000.0
        assert krymsk.trigger_name == "OABRKRYMSK"
        assert krymsk.last_change == t0
        assert krymsk.spawned is False
        senaki = store.get_objective_by_name("SENAKI")
        assert senaki.kind is ObjectiveKind.FOB
        assert senaki.owner is Side.BLUE

    def test_groups_attach_to_containing_objective(self, mission, settings, t0):
        store = ObjectiveInitializer(mission, settings).run(t0)
        krymsk = store.get_objective_by_name("KRYMSK")
        senaki = store.get_objective_by_name("SENAKI")

        assert set(krymsk.side_groups()) == {"RLOGI#001", "RSRSHORAD#001", "RARMOR#001"}
        assert set(senaki.side_groups()) == {"BLOGI#001", "BLRSAM#001"}
        for obj in (krymsk, senaki):
            for gid in obj.side_groups().values():
                group = store.require_group(gid)
                assert store.objective_for_group(gid) is obj
                assert group.side is obj.owner
                assert group.origin is Origin.OBJECTIVE

    def test_logistics_groups_marked(self, mission, settings, t0):
        store = ObjectiveInitializer(mission, settings).run(t0)
        krymsk = store.get_objective_by_name("KRYMSK")
        assert krymsk.logistics_groups == {"RLOGI#001"}
        logi = store.require_group(krymsk.side_groups()["RLOGI#001"])
        assert logi.group_class is GroupClass.LOGI

    def test_slots_attach_to_objectives(self, mission, settings, t0):
        store = ObjectiveInitializer(mission, settings).run(t0)
        assert store.get_objective_by_slot("Krymsk Su-27 1").name == "KRYMSK"
        assert store.get_objective_by_slot("Senaki F-16 1").name == "SENAKI"
        assert "Krymsk Su-27 1" in store.get_objective_by_name("KRYMSK").slots

    def test_nothing_published_and_store_dirty(self, mission, settings, t0):
        store = ObjectiveInitializer(mission, settings).run(t0)
        assert mission.spawned == []
        assert store.dirty is True

    def test_nearest_objective_wins_when_overlapping(self, host, settings, t0):
        host.add_zone("OABRNORTH", (0.0, 0.0), radius=10_000.0)
        host.add_zone("OSABSOUTH", (0.0, -8000.0), radius=10_000.0)
        host.add_zone("GBARMOR#001", (0.0, -6000.0))
        store = ObjectiveInitializer(host, settings).run(t0)
        south = store.get_objective_by_name("SOUTH")
        assert "BARMOR#001" in south.side_groups()
        assert store.get_objective_by_name("NORTH").side_groups() == {}


class TestFatalGeometry:
    def test_non_circular_objective(self, host, settings, t0):
        host.add_zone("OABRKRYMSK", (0.0, 0.0), radius=5000.0, shape=ZoneShape.QUAD)
        with pytest.raises(FatalConfigError):
            ObjectiveInitializer(host, settings).run(t0)

    def test_duplicate_objective_name(self, host, settings, t0):
        host.add_zone("OABRKRYMSK", (0.0, 0.0), radius=5000.0)
        host.add_zone("OFORKRYMSK", (50_000.0, 0.0), radius=5000.0)
        with pytest.raises(FatalConfigError):
            ObjectiveInitializer(host, settings).run(t0)

    def test_group_outside_every_objective(self, mission, settings, t0):
        mission.add_zone("GRARMOR#002", (50_000.0, 0.0))
        with pytest.raises(FatalConfigError):
            ObjectiveInitializer(mission, settings).run(t0)

    def test_slot_outside_every_objective(self, mission, settings, t0):
        mission.add_slot("Nowhere Su-25 1", Side.RED, (50_000.0, 0.0))
        with pytest.raises(FatalConfigError):
            ObjectiveInitializer(mission, settings).run(t0)

    def test_bad_zone_name(self, mission, settings, t0):
        mission.add_zone("Zbogus", (0.0, 0.0))
        with pytest.raises(FatalConfigError):
            ObjectiveInitializer(mission, settings).run(t0)

    def test_group_template_missing(self, mission, settings, t0):
        mission.add_zone("GRNOSUCH#001", (0.0, 0.0))
        with pytest.raises(FatalConfigError):
            ObjectiveInitializer(mission, settings).run(t0)
