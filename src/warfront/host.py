"""Host Simulation Interface -- what the engine needs from the live simulator.

The host owns rendering, physics and line-of-sight.  The engine only ever
talks to it through the HostSimulation protocol below:

  - template library:  get_template(category, side, name) -> GroupTemplate
  - publish/unpublish: spawn(GroupTemplate), despawn(Despawn)
  - mission geometry:  trigger_zones(), get_trigger_zone(name), player_slots()
  - live queries:      unit_state(name), is_visible(a, b)

Live queries may raise HostQueryError; callers treat that as "skip this
entity for the tick".  Template and zone lookups raising is fatal at cold
start.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Protocol

from warfront.geo import Vec2, Vec3
from warfront.models import GroupCategory, Side


class ZoneShape(str, Enum):
    CIRCLE = "circle"
    QUAD = "quad"


@dataclass
class TriggerZone:
    """A named mission trigger zone."""
    name: str
    position: Vec2
    shape: ZoneShape = ZoneShape.CIRCLE
    radius: float = 0.0


@dataclass
class UnitTemplate:
    name: str
    unit_type: str
    position: Vec2


@dataclass
class GroupTemplate:
    """A group definition the host can spawn.

    Fetched templates are deep-copied before the engine rewrites them, so
    the host's library is never mutated.
    """

    name: str
    side: Side
    category: GroupCategory
    position: Vec2
    units: list[UnitTemplate] = field(default_factory=list)
    late_activation: bool = False

    def clone(self) -> "GroupTemplate":
        return copy.deepcopy(self)


@dataclass(frozen=True)
class Despawn:
    """Request to remove a live projection from the host.

    ``static`` is True for standalone objects, which the host removes one
    unit name at a time.
    """
    name: str
    static: bool = False


@dataclass
class PlayerSlot:
    """A player-spawnable aircraft slot from the mission file."""
    name: str
    side: Side
    position: Vec2


@dataclass
class UnitState:
    """Live kinematic state of one unit."""
    position: Vec2
    altitude: float = 0.0
    velocity: Vec3 = (0.0, 0.0, 0.0)
    in_air: bool = False


class HostSimulation(Protocol):
    """Operations the engine consumes from the live simulator."""

    def get_template(self, category: GroupCategory, side: Side, name: str) -> Optional[GroupTemplate]: ...

    def spawn(self, template: GroupTemplate) -> None: ...

    def despawn(self, request: Despawn) -> None: ...

    def get_trigger_zone(self, name: str) -> Optional[TriggerZone]: ...

    def trigger_zones(self) -> Iterable[TriggerZone]: ...

    def player_slots(self) -> Iterable[PlayerSlot]: ...

    def unit_state(self, name: str) -> UnitState: ...

    def is_visible(self, a: Vec3, b: Vec3) -> bool: ...
