"""ObjectiveLifecycle -- health, logistics, repair, culling and capture.

State machine per objective, driven from the host tick:

  unit dies ──> update_status ──> health/logistics recomputed, timestamp
                     │            logistics == 0  ==>  owner = NEUTRAL
                     v
  periodic_repair_tick: health < 100 and
       now - last_change >= repair_time / logistics_fraction
                     │
                     v
  repair_one_step: heal the most damaged group of the highest-priority
                   damaged class (logi, sr, aaa, mr, lr, armor, other)

  cull_or_respawn: objectives with an enemy aircraft inside
                   unit_cull_distance are spawned, others culled.
                   Logistics groups are never culled.

  check_capture:   capturable objectives change hands when every
                   capture-capable troop group inside the radius belongs
                   to one side.  The troops are consumed.

Nothing here talks to the host directly.  Spawns and despawns go onto the
store's queues and are drained at the host boundary once per tick.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol

from loguru import logger

from warfront import geo
from warfront.config import Settings
from warfront.models import REPAIR_PRIORITY, GroupClass, InstancedPlayer, Objective, Side
from warfront.store import EntityStore


class CaptureRules(Protocol):
    """Decides which objectives may currently change hands."""

    def captureable(self, obj: Objective) -> bool: ...


class NeutralCaptureRules:
    """Only objectives that have fallen to Neutral can be captured."""

    def captureable(self, obj: Objective) -> bool:
        return obj.owner is Side.NEUTRAL


def _pct(alive: int, total: int) -> int:
    if total == 0:
        return 100
    return (100 * alive) // total


class ObjectiveLifecycle:
    """Periodic objective state machine over an EntityStore."""

    def __init__(
        self,
        store: EntityStore,
        settings: Settings | None = None,
        rules: CaptureRules | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or store.settings
        self.rules = rules or NeutralCaptureRules()

    # ==================
    # Status
    # ==================

    def compute_status(self, obj: Objective, side: Side | None = None) -> tuple[int, int]:
        """Return (health%, logistics%) over the owner's groups (or ``side``'s).

        Pure: reads dead flags only.  No groups for the side means (100, 100),
        and a side with no logistics units reports 100% logistics.
        """
        groups = obj.groups.get(side if side is not None else obj.owner)
        if not groups:
            return 100, 100
        total = alive = logi_total = logi_alive = 0
        for gid in groups.values():
            group = self.store.require_group(gid)
            logi = group.group_class.is_logi()
            for unit in self.store.units_of(group):
                total += 1
                if logi:
                    logi_total += 1
                if not unit.dead:
                    alive += 1
                    if logi:
                        logi_alive += 1
        return _pct(alive, total), _pct(logi_alive, logi_total)

    def update_status(self, obj: Objective, now: datetime) -> None:
        """Recompute and store status; an objective without logistics falls to Neutral."""
        health, logi = self.compute_status(obj)
        obj.health = health
        obj.logistics = logi
        obj.last_change = now
        if logi == 0 and obj.owner is not Side.NEUTRAL:
            logger.info(f"Objective {obj.name} lost its logistics, {obj.owner.value} -> neutral")
            obj.owner = Side.NEUTRAL
        self.store.mark_dirty()
        logger.debug(f"Objective {obj.name} health: {obj.health}, logi: {obj.logistics}")

    def unit_killed(self, unit_name: str, now: datetime) -> bool:
        """Record a host death event.  Returns False for units the store doesn't know."""
        unit = self.store.get_unit_by_name(unit_name)
        if unit is None:
            return False
        self.store.unit_dead(unit.id, True)
        obj = self.store.objective_for_group(unit.group)
        if obj is not None:
            self.update_status(obj, now)
        return True

    # ==================
    # Repair
    # ==================

    def repair_one_step(self, obj: Objective, now: datetime) -> Optional[int]:
        """Heal the single most damaged group of the most urgent damaged class.

        Returns the healed group id, or None when nothing is damaged.
        """
        damaged: dict[GroupClass, list[tuple[int, int]]] = {}
        for gid in obj.side_groups().values():
            group = self.store.require_group(gid)
            dead = sum(1 for u in self.store.units_of(group) if u.dead)
            if dead > 0:
                damaged.setdefault(group.group_class, []).append((dead, gid))
        for klass in REPAIR_PRIORITY:
            candidates = damaged.get(klass)
            if not candidates:
                continue
            # most dead first, lowest id on ties
            _, gid = min(candidates, key=lambda c: (-c[0], c[1]))
            group = self.store.require_group(gid)
            for unit in self.store.units_of(group):
                unit.dead = False
            if klass is GroupClass.LOGI or obj.spawned:
                self.store.spawn_queue.append(gid)
            self.update_status(obj, now)
            self.store.mark_dirty()
            logger.info(f"Repaired {group.name} ({klass.value}) at {obj.name}")
            return gid
        return None

    def repair_logistics_step(self, side: Side, obj: Objective, now: datetime) -> Optional[int]:
        """Partially rebuild ``side``'s most damaged logistics group at ``obj``.

        The group comes back to ceil(logi * size) + max(1, size // 4) alive
        units, capped at its size, so recovery is fastest when logistics are
        low.  Returns the repaired group id, or None if nothing was damaged.
        """
        _, logi_pct = self.compute_status(obj, side)
        target_gid = None
        most_dead = 0
        for gid in obj.side_groups(side).values():
            group = self.store.require_group(gid)
            if not group.group_class.is_logi():
                continue
            dead = sum(1 for u in self.store.units_of(group) if u.dead)
            if dead > most_dead or (dead == most_dead and dead > 0 and gid < target_gid):
                target_gid = gid
                most_dead = dead
        if target_gid is not None:
            group = self.store.require_group(target_gid)
            size = len(group.units)
            alive_now = size - most_dead
            target = -(-logi_pct * size // 100) + max(1, size >> 2)
            target = max(alive_now, min(size, target))
            revive = target - alive_now
            for unit in self.store.units_of(group):
                if revive <= 0:
                    break
                if unit.dead:
                    unit.dead = False
                    revive -= 1
            self.store.spawn_queue.append(target_gid)
            logger.info(f"Logistics step at {obj.name}: {group.name} {alive_now} -> {target} of {size}")
        self.update_status(obj, now)
        return target_gid

    def repair_due(self, obj: Objective, now: datetime) -> bool:
        """True when ``obj`` is damaged and has waited repair_time / logistics."""
        health, logi = self.compute_status(obj)
        if health >= 100 or logi <= 0:
            return False
        wait = self.settings.repair_time / (logi / 100.0)
        return (now - obj.last_change).total_seconds() >= wait

    def periodic_repair_tick(self, now: datetime) -> list[int]:
        """Apply one repair step to every objective whose repair timer elapsed."""
        due = [oid for oid, obj in self.store.objectives.items() if self.repair_due(obj, now)]
        for oid in due:
            self.repair_one_step(self.store.require_objective(oid), now)
        return due

    # ==================
    # Culling
    # ==================

    def cull_or_respawn(self, players: Iterable[InstancedPlayer]) -> tuple[list[int], list[int]]:
        """Spawn objectives with enemy aircraft nearby; cull the rest.

        Returns (spawned, culled) objective ids.
        """
        airborne = [(p.side, p.position) for p in players if p.in_air]
        cull_d2 = self.settings.unit_cull_distance ** 2
        to_spawn = []
        to_cull = []
        for oid, obj in self.store.objectives.items():
            if obj.owner is Side.NEUTRAL:
                continue
            threatened = any(
                side is not obj.owner and geo.distance_sq(obj.position, pos) <= cull_d2
                for side, pos in airborne
            )
            if threatened and not obj.spawned:
                to_spawn.append(oid)
            elif obj.spawned and not threatened:
                to_cull.append(oid)

        for oid in to_spawn:
            obj = self.store.require_objective(oid)
            obj.spawned = True
            for gid in obj.side_groups().values():
                if not self.store.require_group(gid).group_class.is_logi():
                    self.store.spawn_queue.append(gid)
            logger.info(f"Spawning objective {obj.name}")
        for oid in to_cull:
            obj = self.store.require_objective(oid)
            obj.spawned = False
            for gid in obj.side_groups().values():
                group = self.store.require_group(gid)
                if not group.group_class.is_logi():
                    self.store.dequeue_spawn(gid)
                    self.store.enqueue_despawn(group)
            logger.info(f"Culling objective {obj.name}")
        if to_spawn or to_cull:
            self.store.mark_dirty()
        return to_spawn, to_cull

    # ==================
    # Capture
    # ==================

    def capturable_objectives(self) -> list[int]:
        return [oid for oid, obj in self.store.objectives.items() if self.rules.captureable(obj)]

    def check_capture(self, now: datetime) -> list[tuple[Side, int]]:
        """Resolve captures.  Returns (new_owner, objective id) pairs.

        A troop group counts toward at most one objective: the nearest
        capturable one with an alive unit of the group inside its radius,
        lowest id on ties.
        """
        capturable = [self.store.require_objective(oid) for oid in self.capturable_objectives()]
        contributors: dict[int, list[tuple[Side, int]]] = {}
        for group in self.store.troops():
            if not group.can_capture:
                continue
            alive = [u.position for u in self.store.units_of(group) if not u.dead]
            best = None
            best_d2 = 0.0
            for obj in capturable:
                inside = [geo.distance_sq(p, obj.position) for p in alive if geo.in_circle(p, obj.position, obj.radius)]
                if not inside:
                    continue
                d2 = min(inside)
                if best is None or d2 < best_d2 or (d2 == best_d2 and obj.id < best.id):
                    best = obj
                    best_d2 = d2
            if best is not None:
                contributors.setdefault(best.id, []).append((group.side, group.id))

        captured = []
        for oid, groups in contributors.items():
            side = groups[0][0]
            if any(s is not side for s, _ in groups):
                logger.debug(f"Objective {oid} contested, no capture")
                continue
            obj = self.store.require_objective(oid)
            obj.owner = side
            captured.append((side, oid))
            self.repair_logistics_step(side, obj, now)
            for _, gid in groups:
                self.store.delete_group(gid)
            self.store.mark_dirty()
            logger.info(f"Objective {obj.name} captured by {side.value} with {len(groups)} troop group(s)")
        return captured
