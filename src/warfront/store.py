"""EntityStore -- authoritative registry of groups, units, objectives and players.

Architecture
------------
The store is an arena of integer-keyed tables:

  groups_by_id / units_by_id / objectives      -- the records themselves
  groups_by_name / units_by_name               -- name -> id
  groups_by_side                               -- side -> group ids
  objectives_by_group / _by_slot / _by_name    -- reverse indices

Objectives own their group mapping (side -> key -> group id).  Groups never
point back at their objective; objectives_by_group is the reverse index and
is kept in step by every mutation here.

Instantiation and publication are separate.  instantiate() records a group
and returns the rewritten template, but nothing reaches the host until
publish() is called -- usually via the spawn queue drained once per tick.
An objective that is culled keeps all of its records; only the host's live
copy goes away.

Single writer: the store is mutated from the host tick only, so there is no
locking here.  Every mutation sets ``dirty``; maybe_snapshot() is the only
thing that clears it.
"""

from __future__ import annotations

from collections import deque
from typing import Iterator, Optional

from loguru import logger

from warfront import geo
from warfront.config import Settings
from warfront.errors import FatalConfigError, HostQueryError, InvariantViolation
from warfront.geo import Vec2
from warfront.host import Despawn, GroupTemplate, HostSimulation
from warfront.ids import IdAllocator
from warfront.models import (
    AtPos,
    AtTrigger,
    GroupCategory,
    GroupClass,
    InstancedPlayer,
    Objective,
    Origin,
    Player,
    Side,
    SpawnedGroup,
    SpawnedUnit,
    SpawnLoc,
)

SNAPSHOT_VERSION = 1


class EwrSensor:
    """An early-warning radar: where it is, whose it is, how far it sees."""

    __slots__ = ("group_id", "position", "side", "range")

    def __init__(self, group_id: int, position: Vec2, side: Side, range: float) -> None:
        self.group_id = group_id
        self.position = position
        self.side = side
        self.range = range

    def __repr__(self) -> str:
        return f"<EwrSensor group={self.group_id} side={self.side.value} range={self.range:.0f}>"


class EntityStore:
    """Owns the lifetime of every spawned entity and objective."""

    def __init__(self, settings: Settings | None = None) -> None:
        if settings is None:
            from warfront.config import settings as default_settings
            settings = default_settings
        self.settings = settings

        self.group_ids = IdAllocator("group")
        self.unit_ids = IdAllocator("unit")
        self.objective_ids = IdAllocator("objective")

        self.groups_by_id: dict[int, SpawnedGroup] = {}
        self.units_by_id: dict[int, SpawnedUnit] = {}
        self.groups_by_name: dict[str, int] = {}
        self.units_by_name: dict[str, int] = {}
        self.groups_by_side: dict[Side, set[int]] = {}
        self.objectives: dict[int, Objective] = {}
        self.objectives_by_name: dict[str, int] = {}
        self.objectives_by_slot: dict[str, int] = {}
        self.objectives_by_group: dict[int, int] = {}
        self.players: dict[str, Player] = {}

        # -- ephemeral, never persisted --
        self.dirty = False
        self.spawn_queue: deque[int] = deque()
        self.despawn_queue: deque[Despawn] = deque()
        self.players_by_slot: dict[str, str] = {}

    # ==================
    # Lookups
    # ==================

    def get_group(self, gid: int) -> Optional[SpawnedGroup]:
        return self.groups_by_id.get(gid)

    def require_group(self, gid: int) -> SpawnedGroup:
        group = self.groups_by_id.get(gid)
        if group is None:
            raise InvariantViolation(f"no such group {gid}")
        return group

    def get_group_by_name(self, name: str) -> Optional[SpawnedGroup]:
        gid = self.groups_by_name.get(name)
        return self.groups_by_id.get(gid) if gid is not None else None

    def get_unit(self, uid: int) -> Optional[SpawnedUnit]:
        return self.units_by_id.get(uid)

    def require_unit(self, uid: int) -> SpawnedUnit:
        unit = self.units_by_id.get(uid)
        if unit is None:
            raise InvariantViolation(f"no such unit {uid}")
        return unit

    def get_unit_by_name(self, name: str) -> Optional[SpawnedUnit]:
        uid = self.units_by_name.get(name)
        return self.units_by_id.get(uid) if uid is not None else None

    def get_objective(self, oid: int) -> Optional[Objective]:
        return self.objectives.get(oid)

    def require_objective(self, oid: int) -> Objective:
        obj = self.objectives.get(oid)
        if obj is None:
            raise InvariantViolation(f"no such objective {oid}")
        return obj

    def get_objective_by_name(self, name: str) -> Optional[Objective]:
        oid = self.objectives_by_name.get(name)
        return self.objectives.get(oid) if oid is not None else None

    def get_objective_by_slot(self, slot: str) -> Optional[Objective]:
        oid = self.objectives_by_slot.get(slot)
        return self.objectives.get(oid) if oid is not None else None

    def objective_for_group(self, gid: int) -> Optional[Objective]:
        oid = self.objectives_by_group.get(gid)
        return self.require_objective(oid) if oid is not None else None

    def groups(self) -> Iterator[SpawnedGroup]:
        return iter(self.groups_by_id.values())

    def units_of(self, group: SpawnedGroup) -> Iterator[SpawnedUnit]:
        for uid in group.units:
            yield self.require_unit(uid)

    def troops(self) -> list[SpawnedGroup]:
        return [g for g in self.groups_by_id.values() if g.origin is Origin.TROOP]

    def deployed(self) -> list[SpawnedGroup]:
        return [g for g in self.groups_by_id.values() if g.origin is Origin.DEPLOYED]

    def crates(self) -> list[SpawnedGroup]:
        return [g for g in self.groups_by_id.values() if g.origin is Origin.CRATE]

    def ewrs(self) -> list[EwrSensor]:
        """Deployed groups configured as early-warning radars with a live unit."""
        sensors = []
        for group in self.deployed():
            cfg = self.settings.deployable(group.side, group.origin_name or "")
            if cfg is None or cfg.ewr_range <= 0:
                continue
            alive = [u.position for u in self.units_of(group) if not u.dead]
            if not alive:
                continue
            sensors.append(EwrSensor(group.id, geo.centroid(alive), group.side, cfg.ewr_range))
        return sensors

    # ==================
    # Mutation
    # ==================

    def mark_dirty(self) -> None:
        self.dirty = True

    def unit_dead(self, uid: int, dead: bool = True) -> None:
        """Set the soft-delete flag of a unit."""
        unit = self.units_by_id.get(uid)
        if unit is not None:
            unit.dead = dead
        self.dirty = True

    def resolve_location(self, host: HostSimulation, location: SpawnLoc) -> Vec2:
        if isinstance(location, AtPos):
            return location.position
        if isinstance(location, AtTrigger):
            zone = host.get_trigger_zone(location.name)
            if zone is None:
                raise FatalConfigError(f"no such trigger zone {location.name!r}")
            return geo.add(zone.position, location.offset)
        raise TypeError(f"unknown spawn location {location!r}")

    def _fetch_template(
        self, host: HostSimulation, category: GroupCategory, side: Side, template_name: str,
    ) -> GroupTemplate:
        template = host.get_template(category, side, template_name)
        if template is None:
            raise FatalConfigError(f"no such template {template_name!r} ({side.value}, {category.value})")
        return template.clone()

    def classify(self, side: Side, template_name: str) -> GroupClass:
        if template_name == self.settings.logistics_templates.get(side):
            return GroupClass.LOGI
        return GroupClass.from_template(template_name)

    def instantiate(
        self,
        host: HostSimulation,
        side: Side,
        category: GroupCategory,
        location: SpawnLoc,
        template_name: str,
        origin: Origin = Origin.OBJECTIVE,
        origin_name: str | None = None,
        can_capture: bool = False,
    ) -> tuple[int, GroupTemplate]:
        """Record a new group cloned from ``template_name`` without spawning it.

        Returns the new group id and the rewritten definition ready for
        publish().
        """
        template = self._fetch_template(host, category, side, template_name)
        pos = self.resolve_location(host, location)
        gid = self.group_ids.allocate()
        group_name = f"{template_name}-{gid}"

        anchor = geo.centroid([u.position for u in template.units]) if template.units else template.position
        template.late_activation = False
        template.name = group_name
        template.position = pos

        group = SpawnedGroup(
            id=gid,
            name=group_name,
            template_name=template_name,
            side=side,
            category=template.category,
            group_class=self.classify(side, template_name),
            origin=origin,
            origin_name=origin_name,
            can_capture=can_capture,
        )
        for unit_tmpl in template.units:
            uid = self.unit_ids.allocate()
            unit_name = f"{group_name}-{uid}"
            unit_pos = geo.add(pos, geo.sub(unit_tmpl.position, anchor))
            spawned = SpawnedUnit(
                id=uid,
                name=unit_name,
                group=gid,
                template_name=unit_tmpl.name,
                position=unit_pos,
            )
            unit_tmpl.name = unit_name
            unit_tmpl.position = unit_pos
            group.units.append(uid)
            self.units_by_id[uid] = spawned
            self.units_by_name[unit_name] = uid

        self.groups_by_id[gid] = group
        self.groups_by_name[group_name] = gid
        self.groups_by_side.setdefault(side, set()).add(gid)
        logger.debug(f"Instantiated {group_name} ({len(group.units)} units) for {side.value}")
        return gid, template

    def publish(self, host: HostSimulation, definition: GroupTemplate) -> None:
        """Hand a prepared definition to the host to become live."""
        host.spawn(definition)

    def respawn(self, host: HostSimulation, group: SpawnedGroup) -> bool:
        """Republish ``group`` with its surviving units at their persisted identity.

        Returns True if anything was published.  A group with no survivors
        is left alone.
        """
        template = self._fetch_template(host, group.category, group.side, group.template_name)
        template.late_activation = False
        template.name = group.name
        survivors = {
            unit.template_name: unit for unit in self.units_of(group) if not unit.dead
        }
        kept = []
        for unit_tmpl in template.units:
            su = survivors.get(unit_tmpl.name)
            if su is None:
                continue
            unit_tmpl.name = su.name
            unit_tmpl.position = su.position
            template.position = su.position
            kept.append(unit_tmpl)
        template.units = kept
        if not kept:
            logger.debug(f"Not respawning {group.name}: no surviving units")
            return False
        self.publish(host, template)
        return True

    def spawn_template_as_new(
        self,
        host: HostSimulation,
        side: Side,
        category: GroupCategory,
        location: SpawnLoc,
        template_name: str,
        **kwargs,
    ) -> int:
        """Instantiate a template and queue it for publication."""
        gid, _ = self.instantiate(host, side, category, location, template_name, **kwargs)
        self.dirty = True
        self.spawn_queue.append(gid)
        return gid

    def spawn_troop(self, host: HostSimulation, side: Side, location: SpawnLoc, troop_name: str) -> int:
        troop = self.settings.troop(side, troop_name)
        if troop is None:
            raise FatalConfigError(f"no troop named {troop_name!r} for {side.value}")
        return self.spawn_template_as_new(
            host, side, GroupCategory.GROUND, location, troop.template,
            origin=Origin.TROOP, origin_name=troop.name, can_capture=troop.can_capture,
        )

    def spawn_deployable(self, host: HostSimulation, side: Side, location: SpawnLoc, name: str) -> int:
        dep = self.settings.deployable(side, name)
        if dep is None:
            raise FatalConfigError(f"no deployable named {name!r} for {side.value}")
        return self.spawn_template_as_new(
            host, side, GroupCategory.ANY, location, dep.template,
            origin=Origin.DEPLOYED, origin_name=dep.name,
        )

    def spawn_crate(self, host: HostSimulation, side: Side, location: SpawnLoc) -> int:
        template = self.settings.crate_templates.get(side)
        if template is None:
            raise FatalConfigError(f"no crate template for {side.value}")
        return self.spawn_template_as_new(
            host, side, GroupCategory.STATIC, location, template, origin=Origin.CRATE,
        )

    def enqueue_despawn(self, group: SpawnedGroup) -> None:
        """Queue removal of a group's live projection."""
        if group.category is GroupCategory.STATIC:
            for unit in self.units_of(group):
                self.despawn_queue.append(Despawn(unit.name, static=True))
        else:
            self.despawn_queue.append(Despawn(group.name))

    def dequeue_spawn(self, gid: int) -> None:
        """Drop every pending publish of ``gid``."""
        if gid in self.spawn_queue:
            self.spawn_queue = deque(g for g in self.spawn_queue if g != gid)

    def delete_group(self, gid: int) -> None:
        """Remove a group, its units and every index row; queue its despawn."""
        group = self.groups_by_id.pop(gid, None)
        if group is None:
            raise InvariantViolation(f"no such group {gid}")
        self.enqueue_despawn(group)
        for uid in group.units:
            unit = self.units_by_id.pop(uid, None)
            if unit is not None:
                self.units_by_name.pop(unit.name, None)
        self.groups_by_name.pop(group.name, None)
        self.groups_by_side.get(group.side, set()).discard(gid)
        oid = self.objectives_by_group.pop(gid, None)
        if oid is not None:
            obj = self.require_objective(oid)
            for side_groups in obj.groups.values():
                for key in [k for k, v in side_groups.items() if v == gid]:
                    del side_groups[key]
                    obj.logistics_groups.discard(key)
        self.dequeue_spawn(gid)
        self.dirty = True
        logger.debug(f"Deleted group {group.name}")

    # ==================
    # Host boundary
    # ==================

    def drain(self, host: HostSimulation, max_spawns: int | None = None, max_despawns: int | None = None) -> tuple[int, int]:
        """Execute queued despawns then spawns against the host.

        Returns (spawned, despawned) counts.  Anything beyond the per-tick
        budget stays queued for the next tick.
        """
        if max_spawns is None:
            max_spawns = self.settings.max_spawns_per_tick
        if max_despawns is None:
            max_despawns = self.settings.max_despawns_per_tick
        despawned = 0
        while self.despawn_queue and despawned < max_despawns:
            host.despawn(self.despawn_queue.popleft())
            despawned += 1
        spawned = 0
        while self.spawn_queue and spawned < max_spawns:
            gid = self.spawn_queue.popleft()
            group = self.groups_by_id.get(gid)
            if group is None:
                continue
            if self.respawn(host, group):
                spawned += 1
        return spawned, despawned

    # ==================
    # Players
    # ==================

    def register_player(self, ucid: str, name: str, side: Side) -> Player:
        player = self.players.get(ucid)
        if player is None:
            player = Player(ucid=ucid, name=name, side=side)
            self.players[ucid] = player
        else:
            player.name = name
            player.side = side
        self.dirty = True
        return player

    def bind_slot(self, ucid: str, slot: str) -> None:
        if ucid not in self.players:
            raise InvariantViolation(f"unknown player {ucid}")
        self.players_by_slot[slot] = ucid

    def unbind_slot(self, slot: str) -> None:
        self.players_by_slot.pop(slot, None)

    def locate_players(self, host: HostSimulation) -> list[InstancedPlayer]:
        """Fetch a live fix for every player in a slot.

        A failed lookup is logged and that player is left out of this tick.
        """
        located = []
        for slot, ucid in self.players_by_slot.items():
            player = self.players.get(ucid)
            if player is None:
                raise InvariantViolation(f"slot {slot} bound to unknown player {ucid}")
            try:
                state = host.unit_state(slot)
            except HostQueryError as e:
                logger.info(f"Failed to get position of player {ucid} in {slot}: {e}")
                continue
            located.append(InstancedPlayer(
                ucid=ucid,
                slot=slot,
                side=player.side,
                position=state.position,
                altitude=state.altitude,
                velocity=state.velocity,
                in_air=state.in_air,
            ))
        return located

    # ==================
    # Snapshot
    # ==================

    def maybe_snapshot(self) -> Optional[dict]:
        """Return a snapshot and clear ``dirty`` if anything changed since the last one."""
        if not self.dirty:
            return None
        self.dirty = False
        return self.to_dict()

    def to_dict(self) -> dict:
        return {
            "version": SNAPSHOT_VERSION,
            "groups": [g.to_dict() for g in self.groups_by_id.values()],
            "units": [u.to_dict() for u in self.units_by_id.values()],
            "objectives": [o.to_dict() for o in self.objectives.values()],
            "players": [p.to_dict() for p in self.players.values()],
        }

    @classmethod
    def from_dict(cls, data: dict, settings: Settings | None = None) -> "EntityStore":
        """Rebuild a store and its indices from a snapshot document.

        Raises FatalConfigError if the document references ids it does not
        contain.
        """
        store = cls(settings)
        for raw in sorted(data.get("units", []), key=lambda u: u["id"]):
            unit = SpawnedUnit.from_dict(raw)
            store.units_by_id[unit.id] = unit
            store.units_by_name[unit.name] = unit.id
            store.unit_ids.observe(unit.id)
        for raw in sorted(data.get("groups", []), key=lambda g: g["id"]):
            group = SpawnedGroup.from_dict(raw)
            for uid in group.units:
                if uid not in store.units_by_id:
                    raise FatalConfigError(f"group {group.id} references missing unit {uid}")
            store.groups_by_id[group.id] = group
            store.groups_by_name[group.name] = group.id
            store.groups_by_side.setdefault(group.side, set()).add(group.id)
            store.group_ids.observe(group.id)
        for raw in sorted(data.get("objectives", []), key=lambda o: o["id"]):
            obj = Objective.from_dict(raw)
            for side_groups in obj.groups.values():
                for gid in side_groups.values():
                    if gid not in store.groups_by_id:
                        raise FatalConfigError(f"objective {obj.name} references missing group {gid}")
                    store.objectives_by_group[gid] = obj.id
            for slot in obj.slots:
                store.objectives_by_slot[slot] = obj.id
            store.objectives[obj.id] = obj
            store.objectives_by_name[obj.name] = obj.id
            store.objective_ids.observe(obj.id)
        for raw in data.get("players", []):
            player = Player.from_dict(raw)
            store.players[player.ucid] = player
        return store

    def summary(self) -> str:
        """One line per objective for logs and the CLI."""
        lines = []
        for obj in self.objectives.values():
            lines.append(
                f"{obj.id:>4} {obj.name:<24} {obj.kind.name:<9} {obj.owner.value:<8}"
                f" health {obj.health:>3}% logi {obj.logistics:>3}%"
                f"{' spawned' if obj.spawned else ''}"
            )
        return "\n".join(lines)
