"""ObjectiveInitializer -- builds a fresh EntityStore from mission geometry.

Runs once, on cold start, before anything else mutates the store:

  1. Every ``O...`` zone becomes an Objective.  Its zone must be a circle.
  2. Every ``G...`` zone instantiates its template for the owner of the
     nearest objective whose circle contains the zone centre.  A group
     outside every objective is fatal.  The side's logistics template marks
     the group as logistics for that objective.
  3. Every player slot is attached to an objective the same way.

Any grammar violation raises FatalConfigError and the partially built store
is discarded by the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from loguru import logger

from warfront import geo
from warfront.config import Settings
from warfront.errors import FatalConfigError
from warfront.geo import Vec2
from warfront.host import HostSimulation, TriggerZone, ZoneShape
from warfront.models import AtPos, GroupCategory, Objective, Origin
from warfront.store import EntityStore
from warfront.zones import GroupZoneName, ObjectiveZoneName, parse_zone_name


class ObjectiveInitializer:
    """Cold-start parser for the zone-naming grammar."""

    def __init__(self, host: HostSimulation, settings: Settings | None = None) -> None:
        self.host = host
        self.store = EntityStore(settings)

    def run(self, now: datetime) -> EntityStore:
        zones = list(self.host.trigger_zones())
        parsed = [(zone, parse_zone_name(zone.name)) for zone in zones]

        for zone, name in parsed:
            if isinstance(name, ObjectiveZoneName):
                self._init_objective(zone, name, now)

        for zone, name in parsed:
            if isinstance(name, GroupZoneName):
                self._init_group(zone, name)

        for slot in self.host.player_slots():
            obj = self._containing_objective(slot.position)
            if obj is None:
                raise FatalConfigError(f"slot {slot.name!r} isn't associated with an objective")
            obj.slots.add(slot.name)
            self.store.objectives_by_slot[slot.name] = obj.id

        self.store.mark_dirty()
        logger.info(
            f"Initialized {len(self.store.objectives)} objectives, "
            f"{len(self.store.groups_by_id)} groups, {len(self.store.objectives_by_slot)} slots"
        )
        return self.store

    def _init_objective(self, zone: TriggerZone, name: ObjectiveZoneName, now: datetime) -> None:
        if zone.shape is not ZoneShape.CIRCLE:
            raise FatalConfigError(f"objective zone {zone.name!r} must be a circle, got {zone.shape.value}")
        if name.name in self.store.objectives_by_name:
            raise FatalConfigError(f"duplicate objective name {name.name!r}")
        oid = self.store.objective_ids.allocate()
        self.store.objectives[oid] = Objective(
            id=oid,
            name=name.name,
            trigger_name=zone.name,
            position=zone.position,
            radius=zone.radius,
            owner=name.owner,
            kind=name.kind,
            last_change=now,
        )
        self.store.objectives_by_name[name.name] = oid
        logger.debug(f"Objective {name.name} ({name.kind.name}, {name.owner.value}) r={zone.radius:.0f}")

    def _init_group(self, zone: TriggerZone, name: GroupZoneName) -> None:
        obj = self._containing_objective(zone.position)
        if obj is None:
            raise FatalConfigError(f"group {zone.name!r} isn't associated with an objective")
        side = obj.owner
        gid, _ = self.store.instantiate(
            self.host, side, GroupCategory.ANY, AtPos(zone.position), name.template,
            origin=Origin.OBJECTIVE,
        )
        obj.groups.setdefault(side, {})[name.key] = gid
        self.store.objectives_by_group[gid] = obj.id
        if name.template == self.store.settings.logistics_templates.get(side):
            obj.logistics_groups.add(name.key)

    def _containing_objective(self, pos: Vec2) -> Optional[Objective]:
        """Nearest objective whose circle contains ``pos``; lowest id on ties."""
        best = None
        best_d2 = 0.0
        for obj in self.store.objectives.values():
            d2 = geo.distance_sq(pos, obj.position)
            if d2 > obj.radius * obj.radius:
                continue
            if best is None or d2 < best_d2:
                best = obj
                best_d2 = d2
        return best
