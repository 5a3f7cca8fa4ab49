"""Shared fixtures for warfront tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from warfront.config import Settings
from warfront.errors import HostQueryError
from warfront.geo import Vec2, Vec3
from warfront.host import (
    Despawn,
    GroupTemplate,
    PlayerSlot,
    TriggerZone,
    UnitState,
    UnitTemplate,
    ZoneShape,
)
from warfront.models import GroupCategory, Side

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeHost:
    """In-memory host simulation for unit testing.

    Holds a template library, mission zones and slots, and records every
    spawn/despawn the engine asks for.  Live unit states and line of sight
    are controllable per test.
    """

    def __init__(self) -> None:
        self.templates: dict[tuple[Side, str], GroupTemplate] = {}
        self.zones: list[TriggerZone] = []
        self.slots: list[PlayerSlot] = []
        self.spawned: list[GroupTemplate] = []
        self.despawned: list[Despawn] = []
        self.states: dict[str, UnitState] = {}
        self.failing: set[str] = set()
        self.blocked: set[tuple[float, float]] = set()  # target xy with no LOS
        self.los_failing: set[tuple[float, float]] = set()
        self.los_queries: list[tuple[Vec3, Vec3]] = []

    # -- setup helpers --

    def add_template(
        self,
        side: Side,
        name: str,
        units: int = 4,
        category: GroupCategory = GroupCategory.GROUND,
        origin: Vec2 = (1000.0, 1000.0),
        spacing: float = 10.0,
    ) -> GroupTemplate:
        tmpl = GroupTemplate(
            name=name,
            side=side,
            category=category,
            position=origin,
            units=[
                UnitTemplate(
                    name=f"{name} unit {i + 1}",
                    unit_type="generic",
                    position=(origin[0] + i * spacing, origin[1]),
                )
                for i in range(units)
            ],
            late_activation=True,
        )
        self.templates[(side, name)] = tmpl
        return tmpl

    def add_zone(self, name: str, position: Vec2, radius: float = 0.0, shape: ZoneShape = ZoneShape.CIRCLE) -> None:
        self.zones.append(TriggerZone(name=name, position=position, shape=shape, radius=radius))

    def add_slot(self, name: str, side: Side, position: Vec2) -> None:
        self.slots.append(PlayerSlot(name=name, side=side, position=position))

    def set_state(
        self, name: str, position: Vec2, altitude: float = 3000.0,
        velocity: Vec3 = (0.0, 200.0, 0.0), in_air: bool = True,
    ) -> None:
        self.states[name] = UnitState(position=position, altitude=altitude, velocity=velocity, in_air=in_air)

    # -- HostSimulation --

    def get_template(self, category, side, name):
        return self.templates.get((side, name))

    def spawn(self, template: GroupTemplate) -> None:
        self.spawned.append(template)

    def despawn(self, request: Despawn) -> None:
        self.despawned.append(request)

    def get_trigger_zone(self, name):
        for zone in self.zones:
            if zone.name == name:
                return zone
        return None

    def trigger_zones(self):
        return list(self.zones)

    def player_slots(self):
        return list(self.slots)

    def unit_state(self, name: str) -> UnitState:
        if name in self.failing or name not in self.states:
            raise HostQueryError(f"unit {name} not found")
        return self.states[name]

    @property
    def los_calls(self) -> int:
        return len(self.los_queries)

    def is_visible(self, a, b) -> bool:
        self.los_queries.append((a, b))
        if (b[0], b[1]) in self.los_failing:
            raise HostQueryError("los query failed")
        return (b[0], b[1]) not in self.blocked


def standard_templates(host: FakeHost) -> FakeHost:
    """Templates used by most scenarios."""
    for side in (Side.RED, Side.BLUE, Side.NEUTRAL):
        code = side.code
        host.add_template(side, f"{code}LOGI", units=8)
        host.add_template(side, f"{code}SRSHORAD", units=2)
        host.add_template(side, f"{code}ARMOR", units=4)
        host.add_template(side, f"{code}LRSAM", units=6)
    host.add_template(Side.RED, "RSTANDARDTROOP", units=4)
    host.add_template(Side.BLUE, "BSTANDARDTROOP", units=4)
    host.add_template(Side.RED, "RIGLATROOP", units=2)
    host.add_template(Side.RED, "DEPRED1L13", units=1)
    host.add_template(Side.BLUE, "DEPBLUEFPS117", units=1)
    host.add_template(Side.BLUE, "DEPVULCAN", units=1)
    host.add_template(Side.RED, "RCRATE", units=1, category=GroupCategory.STATIC)
    return host


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(save_path=tmp_path / "warfront.json", _env_file=None)


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def empty_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def host() -> FakeHost:
    return standard_templates(FakeHost())


@pytest.fixture
def mission(host) -> FakeHost:
    """Two objectives 100km apart with groups and slots.

    Krymsk (red airbase at 0,0 r=5000): RLOGI, RSRSHORAD, RARMOR
    Senaki (blue fob at 100000,0 r=3000): BLOGI, BLRSAM
    """
    host.add_zone("OABRKRYMSK", (0.0, 0.0), radius=5000.0)
    host.add_zone("OFOBSENAKI", (100_000.0, 0.0), radius=3000.0)
    host.add_zone("GRLOGI#001", (100.0, 100.0))
    host.add_zone("GRSRSHORAD#001", (-200.0, 300.0))
    host.add_zone("GRARMOR#001", (400.0, -400.0))
    host.add_zone("GBLOGI#001", (100_100.0, 0.0))
    host.add_zone("GBLRSAM#001", (99_500.0, 500.0))
    host.add_zone("TSOMEWHERE", (50_000.0, 50_000.0))
    host.add_slot("Krymsk Su-27 1", Side.RED, (10.0, 10.0))
    host.add_slot("Senaki F-16 1", Side.BLUE, (100_010.0, 10.0))
    return host
