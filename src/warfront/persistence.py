"""Snapshot persistence for the EntityStore.

The whole persisted state lives in one JSON document.  Saves are atomic:
the document is written to ``<path>.tmp`` and renamed over the old file,
so a crash mid-write leaves the previous snapshot intact.

Saving is gated by the store's dirty flag: maybe_save() takes a snapshot
only when something changed, and taking it clears the flag.
"""

import json
import os
from pathlib import Path

from loguru import logger

from warfront.config import Settings
from warfront.errors import FatalConfigError
from warfront.store import EntityStore


class PersistenceManager:
    """Loads and saves EntityStore snapshots at a fixed path."""

    def __init__(self, path: Path, settings: Settings | None = None):
        """Initialize persistence manager.

        Args:
            path: Snapshot document location
            settings: Settings handed to stores built by load()
        """
        self.path = Path(path)
        self.settings = settings

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> EntityStore:
        """Load the snapshot.  Missing or malformed files are fatal."""
        try:
            with open(self.path) as f:
                data = json.load(f)
        except OSError as e:
            logger.error(f"Failed to open save file {self.path}: {e}")
            raise FatalConfigError(f"cannot read save file {self.path}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Failed to decode save file {self.path}: {e}")
            raise FatalConfigError(f"cannot decode save file {self.path}") from e

        if not isinstance(data, dict):
            raise FatalConfigError(f"save file {self.path} is not a snapshot document")
        try:
            store = EntityStore.from_dict(data, self.settings)
        except (KeyError, TypeError, ValueError, IndexError) as e:
            logger.error(f"Malformed save file {self.path}: {e}")
            raise FatalConfigError(f"malformed save file {self.path}: {e}") from e
        logger.info(
            f"Loaded {len(store.objectives)} objectives, {len(store.groups_by_id)} groups, "
            f"{len(store.units_by_id)} units from {self.path}"
        )
        return store

    def save(self, snapshot: dict) -> None:
        """Atomically write a snapshot document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(snapshot, f)
        os.replace(tmp, self.path)

    def maybe_save(self, store: EntityStore) -> bool:
        """Save if the store changed since the last snapshot."""
        snapshot = store.maybe_snapshot()
        if snapshot is None:
            return False
        self.save(snapshot)
        logger.debug(f"Saved snapshot to {self.path}")
        return True
