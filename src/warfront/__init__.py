"""warfront -- persistent mission-state engine for a hosted military simulation.

Tracks spawned groups, units and strategic objectives across a live session,
runs the objective repair/capture lifecycle, fuses early-warning radar
contacts, and keeps a crash-recoverable snapshot on disk.
"""

from warfront.errors import FatalConfigError, HostQueryError, InvariantViolation, WarfrontError
from warfront.ewr import Braa, Ewr, EwrUnits
from warfront.lifecycle import ObjectiveLifecycle
from warfront.models import GroupCategory, GroupClass, ObjectiveKind, Origin, Side
from warfront.persistence import PersistenceManager
from warfront.session import MissionSession
from warfront.store import EntityStore

__all__ = [
    "Braa",
    "EntityStore",
    "Ewr",
    "EwrUnits",
    "FatalConfigError",
    "GroupCategory",
    "GroupClass",
    "HostQueryError",
    "InvariantViolation",
    "MissionSession",
    "ObjectiveKind",
    "ObjectiveLifecycle",
    "Origin",
    "PersistenceManager",
    "Side",
    "WarfrontError",
]
