"""MissionSession -- one live mission, driven synchronously by the host.

The host calls into the session from its own scripting context:

  start(now)            once, at mission load
  on_unit_dead(name)    from the host's death/destroy events
  tick(now)             from a periodic host timer

Each tick runs, in order:
  1. locate players in slots (failed lookups are skipped)
  2. refresh EWR tracks
  3. cull or respawn objectives around enemy aircraft
  4. periodic repair
  5. capture resolution
  6. drain the spawn/despawn queues into the host (bounded per tick)
  7. save the snapshot if anything changed

There is exactly one writer.  Nothing in here suspends or runs in the
background; the host's tick is the only scheduling primitive.
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger

from warfront.config import Settings
from warfront.ewr import Braa, Ewr
from warfront.host import HostSimulation
from warfront.initializer import ObjectiveInitializer
from warfront.lifecycle import CaptureRules, ObjectiveLifecycle
from warfront.models import Side
from warfront.persistence import PersistenceManager
from warfront.store import EntityStore


class MissionSession:
    """Wires the store, lifecycle, EWR and persistence for one mission."""

    def __init__(
        self,
        host: HostSimulation,
        settings: Settings | None = None,
        rules: CaptureRules | None = None,
    ) -> None:
        if settings is None:
            from warfront.config import settings as default_settings
            settings = default_settings
        self.host = host
        self.settings = settings
        self.rules = rules
        self.persistence = PersistenceManager(settings.save_path, settings)
        self.ewr = Ewr()
        self.store: EntityStore | None = None
        self.lifecycle: ObjectiveLifecycle | None = None

    def start(self, now: datetime) -> EntityStore:
        """Load the saved mission, or cold-start from mission geometry."""
        if self.persistence.exists():
            store = self.persistence.load()
            # Live projections start empty; logistics are always live and
            # spawned objectives come back on the next cull pass.
            for obj in store.objectives.values():
                obj.spawned = False
                for gid in obj.side_groups().values():
                    if store.require_group(gid).group_class.is_logi():
                        store.spawn_queue.append(gid)
            for group in store.groups():
                if store.objective_for_group(group.id) is None:
                    store.spawn_queue.append(group.id)
        else:
            logger.info(f"No save file at {self.persistence.path}, initializing from mission")
            store = ObjectiveInitializer(self.host, self.settings).run(now)
            for obj in store.objectives.values():
                for gid in obj.side_groups().values():
                    if store.require_group(gid).group_class.is_logi():
                        store.spawn_queue.append(gid)
        self.store = store
        self.lifecycle = ObjectiveLifecycle(store, self.settings, self.rules)
        self.persistence.maybe_save(store)
        return store

    def _require_started(self) -> tuple[EntityStore, ObjectiveLifecycle]:
        if self.store is None or self.lifecycle is None:
            raise RuntimeError("session not started")
        return self.store, self.lifecycle

    def on_unit_dead(self, unit_name: str, now: datetime) -> bool:
        _, lifecycle = self._require_started()
        return lifecycle.unit_killed(unit_name, now)

    def tick(self, now: datetime) -> list[tuple[Side, int]]:
        """Run one lifecycle pass.  Returns the captures resolved this tick."""
        store, lifecycle = self._require_started()
        players = store.locate_players(self.host)
        self.ewr.update_tracks(self.host, store.ewrs(), players, now)
        lifecycle.cull_or_respawn(players)
        lifecycle.periodic_repair_tick(now)
        captured = lifecycle.check_capture(now)
        store.drain(self.host)
        self.persistence.maybe_save(store)
        return captured

    def ewr_report(self, ucid: str, friendly: bool, now: datetime) -> list[str]:
        """Formatted BRAA lines for a player, empty when throttled or out of a slot."""
        store, _ = self._require_started()
        for player in store.locate_players(self.host):
            if player.ucid == ucid:
                reports: list[Braa] = self.ewr.query(now, friendly, player)
                return [str(r) for r in reports]
        return []
