"""Persistent records for the mission-state engine.

Side          -- coalition enum (RED / BLUE / NEUTRAL)
SpawnedUnit   -- one unit; soft-deleted through ``dead``
SpawnedGroup  -- a group of units instantiated from a template
Objective     -- a strategic point composed of owned groups
Player        -- a persisted player identity

Records refer to each other by integer id only.  Every record round-trips
through to_dict()/from_dict() for the snapshot document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from warfront.geo import Vec2, Vec3

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Side(str, Enum):
    """Coalition that owns an entity."""
    RED = "red"
    BLUE = "blue"
    NEUTRAL = "neutral"

    @property
    def code(self) -> str:
        return self.name[0]

    @classmethod
    def from_code(cls, code: str) -> "Side":
        for side in cls:
            if side.code == code:
                return side
        raise ValueError(f"invalid side code {code!r}, expected R, B, or N")


class ObjectiveKind(str, Enum):
    """Type of strategic objective, keyed by its two-letter zone code."""
    AIRBASE = "AB"
    FOB = "FO"
    FUELBASE = "FB"
    SAMSITE = "SA"


class GroupCategory(str, Enum):
    """Host-side category of a group template."""
    ANY = "any"
    GROUND = "ground"
    SHIP = "ship"
    PLANE = "plane"
    HELICOPTER = "helicopter"
    STATIC = "static"  # standalone objects; despawned unit by unit


class GroupClass(str, Enum):
    """Repair priority class of a group."""
    LOGI = "logi"
    SR = "sr"
    AAA = "aaa"
    MR = "mr"
    LR = "lr"
    ARMOR = "armor"
    OTHER = "other"

    @classmethod
    def from_template(cls, template_name: str) -> "GroupClass":
        """Classify by template name with its leading side letter removed.

        e.g. ``RLOGI`` -> LOGI, ``BSRSHORAD`` -> SR, ``RLRSA10`` -> LR.
        """
        s = template_name
        if s[:1] in ("R", "B", "N"):
            s = s[1:]
        for prefix, klass in (
            ("LOGI", cls.LOGI),
            ("SR", cls.SR),
            ("AAA", cls.AAA),
            ("MR", cls.MR),
            ("LR", cls.LR),
            ("ARMOR", cls.ARMOR),
        ):
            if s.startswith(prefix):
                return klass
        return cls.OTHER

    def is_logi(self) -> bool:
        return self is GroupClass.LOGI


# Fixed repair order: the first damaged class in this list is repaired first.
REPAIR_PRIORITY: tuple[GroupClass, ...] = (
    GroupClass.LOGI,
    GroupClass.SR,
    GroupClass.AAA,
    GroupClass.MR,
    GroupClass.LR,
    GroupClass.ARMOR,
    GroupClass.OTHER,
)


class Origin(str, Enum):
    """Why a group exists."""
    OBJECTIVE = "objective"
    TROOP = "troop"
    DEPLOYED = "deployed"
    CRATE = "crate"


@dataclass
class SpawnedUnit:
    id: int
    name: str
    group: int
    template_name: str
    position: Vec2
    dead: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "group": self.group,
            "template_name": self.template_name,
            "position": list(self.position),
            "dead": self.dead,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SpawnedUnit":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            group=int(data["group"]),
            template_name=data["template_name"],
            position=(float(data["position"][0]), float(data["position"][1])),
            dead=bool(data.get("dead", False)),
        )


@dataclass
class SpawnedGroup:
    id: int
    name: str
    template_name: str
    side: Side
    category: GroupCategory
    units: list[int] = field(default_factory=list)
    group_class: GroupClass = GroupClass.OTHER
    origin: Origin = Origin.OBJECTIVE
    origin_name: Optional[str] = None  # troop/deployable config name
    can_capture: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "template_name": self.template_name,
            "side": self.side.value,
            "category": self.category.value,
            "units": list(self.units),
            "group_class": self.group_class.value,
            "origin": self.origin.value,
            "origin_name": self.origin_name,
            "can_capture": self.can_capture,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SpawnedGroup":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            template_name=data["template_name"],
            side=Side(data["side"]),
            category=GroupCategory(data["category"]),
            units=[int(u) for u in data["units"]],
            group_class=GroupClass(data.get("group_class", "other")),
            origin=Origin(data.get("origin", "objective")),
            origin_name=data.get("origin_name"),
            can_capture=bool(data.get("can_capture", False)),
        )


@dataclass
class Objective:
    """A strategic point.  Owns the mapping of its groups per side."""

    id: int
    name: str
    trigger_name: str
    position: Vec2
    radius: float
    owner: Side
    kind: ObjectiveKind
    spawned: bool = False
    groups: dict[Side, dict[str, int]] = field(default_factory=dict)
    logistics_groups: set[str] = field(default_factory=set)
    slots: set[str] = field(default_factory=set)
    health: int = 100
    logistics: int = 100
    last_change: datetime = EPOCH

    def side_groups(self, side: Side | None = None) -> dict[str, int]:
        """Group keys -> ids for ``side`` (the owner by default)."""
        return self.groups.get(side if side is not None else self.owner, {})

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "trigger_name": self.trigger_name,
            "position": list(self.position),
            "radius": self.radius,
            "owner": self.owner.value,
            "kind": self.kind.value,
            "spawned": self.spawned,
            "groups": {
                side.value: dict(sorted(keys.items()))
                for side, keys in self.groups.items()
            },
            "logistics_groups": sorted(self.logistics_groups),
            "slots": sorted(self.slots),
            "health": self.health,
            "logistics": self.logistics,
            "last_change": self.last_change.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Objective":
        return cls(
            id=int(data["id"]),
            name=data["name"],
            trigger_name=data["trigger_name"],
            position=(float(data["position"][0]), float(data["position"][1])),
            radius=float(data["radius"]),
            owner=Side(data["owner"]),
            kind=ObjectiveKind(data["kind"]),
            spawned=bool(data.get("spawned", False)),
            groups={
                Side(side): {key: int(gid) for key, gid in keys.items()}
                for side, keys in data.get("groups", {}).items()
            },
            logistics_groups=set(data.get("logistics_groups", [])),
            slots=set(data.get("slots", [])),
            health=int(data.get("health", 100)),
            logistics=int(data.get("logistics", 100)),
            last_change=datetime.fromisoformat(data["last_change"]) if data.get("last_change") else EPOCH,
        )


@dataclass
class Player:
    ucid: str
    name: str
    side: Side

    def to_dict(self) -> dict:
        return {"ucid": self.ucid, "name": self.name, "side": self.side.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        return cls(ucid=data["ucid"], name=data["name"], side=Side(data["side"]))


@dataclass
class InstancedPlayer:
    """A player currently occupying a slot, with a live position fix.

    Never persisted; rebuilt every tick from host queries.
    """

    ucid: str
    slot: str
    side: Side
    position: Vec2
    altitude: float = 0.0
    velocity: Vec3 = (0.0, 0.0, 0.0)
    in_air: bool = False


@dataclass(frozen=True)
class AtPos:
    """Spawn at a literal map point."""
    position: Vec2


@dataclass(frozen=True)
class AtTrigger:
    """Spawn at a named trigger zone plus an offset."""
    name: str
    offset: Vec2 = (0.0, 0.0)


SpawnLoc = AtPos | AtTrigger
