"""Trigger-zone naming grammar.

Objectives and their groups are laid out in the mission editor as trigger
zones whose names carry a type code:

  O<kind><owner><name>   objective.  kind: AB airbase, FO fob, FB fuel base,
                         SA sam site.  owner: R, B or N.
                         e.g. OABBTBLISI -> airbase, default Blue, "TBLISI"
  G<template>#<n>        objective group, the n'th instance of <template>,
                         attached to the objective whose circle contains it.
                         e.g. GRIRSRAD#001
  T<anything>            generic zone, ignored by the engine

Anything else is a fatal mission error.
"""

from __future__ import annotations

from dataclasses import dataclass

from warfront.errors import FatalConfigError
from warfront.models import ObjectiveKind, Side


@dataclass(frozen=True)
class ObjectiveZoneName:
    kind: ObjectiveKind
    owner: Side
    name: str


@dataclass(frozen=True)
class GroupZoneName:
    """A qualified objective group key, ``<template>#<n>``."""
    key: str

    @property
    def template(self) -> str:
        return self.key.split("#", 1)[0]


@dataclass(frozen=True)
class IgnoredZoneName:
    name: str


ZoneName = ObjectiveZoneName | GroupZoneName | IgnoredZoneName


def parse_objective(body: str) -> ObjectiveZoneName:
    """Parse the part of an objective zone name after the leading ``O``."""
    try:
        kind = ObjectiveKind(body[:2])
    except ValueError:
        raise FatalConfigError(f"invalid objective type in {body!r}, expected AB, FO, FB, or SA") from None
    try:
        owner = Side.from_code(body[2:3])
    except ValueError:
        raise FatalConfigError(f"invalid default coalition in {body!r}, expected B, R, or N") from None
    name = body[3:]
    if not name:
        raise FatalConfigError(f"objective zone {body!r} has no name")
    return ObjectiveZoneName(kind=kind, owner=owner, name=name)


def parse_group(body: str) -> GroupZoneName:
    """Parse the part of a group zone name after the leading ``G``."""
    template, sep, _ = body.partition("#")
    if not sep:
        raise FatalConfigError(f"group zone {body!r}: expected a #")
    if not template:
        raise FatalConfigError(f"group zone {body!r} has no template name")
    return GroupZoneName(key=body)


def parse_zone_name(name: str) -> ZoneName:
    """Classify a trigger zone name.  Raises FatalConfigError on bad names."""
    if name.startswith("O"):
        return parse_objective(name[1:])
    if name.startswith("G"):
        return parse_group(name[1:])
    if name.startswith("T"):
        return IgnoredZoneName(name)
    raise FatalConfigError(f"invalid trigger zone type code in {name!r}, expected O, G, or T")
