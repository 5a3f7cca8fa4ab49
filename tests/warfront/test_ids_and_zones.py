"""Unit tests for id allocation and the trigger-zone grammar."""

from __future__ import annotations

import pytest

from warfront.errors import FatalConfigError
from warfront.ids import IdAllocator
from warfront.models import ObjectiveKind, Side
from warfront.zones import (
    GroupZoneName,
    IgnoredZoneName,
    ObjectiveZoneName,
    parse_zone_name,
)


pytestmark = pytest.mark.unit


class TestIdAllocator:
    def test_allocate_is_monotonic(self):
        ids = IdAllocator("group")
        got = [ids.allocate() for _ in range(5)]
        assert got == sorted(got)
        assert len(set(got)) == 5

    def test_observe_advances_past_seen(self):
        ids = IdAllocator("unit")
        ids.observe(41)
        assert ids.allocate() == 42

    def test_observe_below_counter_is_ignored(self):
        ids = IdAllocator("unit", start=100)
        ids.observe(7)
        assert ids.allocate() == 100

    def test_observe_at_counter_advances(self):
        ids = IdAllocator("objective", start=3)
        ids.observe(3)
        assert ids.next_id == 4


class TestZoneGrammar:
    def test_objective_zone(self):
        parsed = parse_zone_name("OABBTBLISI")
        assert parsed == ObjectiveZoneName(kind=ObjectiveKind.AIRBASE, owner=Side.BLUE, name="TBLISI")

    @pytest.mark.parametrize("code,kind", [
        ("AB", ObjectiveKind.AIRBASE),
        ("FO", ObjectiveKind.FOB),
        ("FB", ObjectiveKind.FUELBASE),
        ("SA", ObjectiveKind.SAMSITE),
    ])
    def test_objective_kinds(self, code, kind):
        parsed = parse_zone_name(f"O{code}RNAME")
        assert parsed.kind is kind
        assert parsed.owner is Side.RED

    def test_neutral_owner(self):
        assert parse_zone_name("OFBNDEPOT").owner is Side.NEUTRAL

    def test_bad_objective_kind(self):
        with pytest.raises(FatalConfigError):
            parse_zone_name("OXXBNAME")

    def test_bad_owner(self):
        with pytest.raises(FatalConfigError):
            parse_zone_name("OABXNAME")

    def test_objective_without_name(self):
        with pytest.raises(FatalConfigError):
            parse_zone_name("OABB")

    def test_group_zone(self):
        parsed = parse_zone_name("GRIRSRAD#001")
        assert isinstance(parsed, GroupZoneName)
        assert parsed.key == "RIRSRAD#001"
        assert parsed.template == "RIRSRAD"

    def test_group_zone_without_hash(self):
        with pytest.raises(FatalConfigError):
            parse_zone_name("GRIRSRAD001")

    def test_ignored_zone(self):
        assert isinstance(parse_zone_name("Tanything goes"), IgnoredZoneName)

    def test_unknown_prefix(self):
        with pytest.raises(FatalConfigError):
            parse_zone_name("Xfoo")
