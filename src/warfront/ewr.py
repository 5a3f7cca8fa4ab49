"""EWR track fusion -- per-side radar picture built from line-of-sight polls.

Each tick every early-warning radar looks at every airborne player.  A
player inside the radar's range with line of sight to it refreshes that
side's Track for the player.  A track is refreshed at most once per tick,
so the first radar to see a player in a tick wins.

Reports (BRAA: bearing, range, altitude, aspect) are built on demand for a
requesting player from their side's tracks:

  - only tracks seen within STALE_AFTER seconds
  - nearest MAX_REPORTS, ascending by range
  - throttled: a report is emitted only if THROTTLE seconds passed since
    the last one, or the nearest contact is within NEAR_RANGE, or it is
    within MID_RANGE and MID_THROTTLE seconds passed

Values are metric internally and converted to the player's unit system
only when the report is emitted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable

import numpy as np
from loguru import logger

from warfront.errors import HostQueryError
from warfront.geo import Vec2, Vec3, heading_deg
from warfront.host import HostSimulation
from warfront.models import EPOCH, InstancedPlayer, Side
from warfront.store import EwrSensor

METERS_PER_NM = 1852.0
FEET_PER_METER = 3.28084
KNOTS_PER_MPS = 1.943844
KMH_PER_MPS = 3.6


class EwrUnits(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


@dataclass
class Track:
    """Last radar fix of one player as seen by one side."""
    position: Vec2
    altitude: float
    velocity: Vec3
    last: datetime
    side: Side


@dataclass(frozen=True)
class Braa:
    """One contact line of an EWR report, already in the player's units."""
    bearing: int
    range: int
    altitude: int
    heading: int
    speed: int
    age: int
    units: EwrUnits = EwrUnits.METRIC

    @classmethod
    def from_metric(
        cls,
        bearing: float,
        range_m: float,
        altitude_m: float,
        heading: float,
        speed_mps: float,
        age: float,
        units: EwrUnits,
    ) -> "Braa":
        if units is EwrUnits.IMPERIAL:
            rng = range_m / METERS_PER_NM
            alt = altitude_m * FEET_PER_METER
            spd = speed_mps * KNOTS_PER_MPS
        else:
            rng = range_m / 1000.0
            alt = altitude_m
            spd = speed_mps * KMH_PER_MPS
        return cls(
            bearing=int(bearing) % 360,
            range=int(rng),
            altitude=int(alt),
            heading=int(heading) % 360,
            speed=int(spd),
            age=int(age),
            units=units,
        )

    def __str__(self) -> str:
        if self.units is EwrUnits.IMPERIAL:
            range_u, altitude_u, speed_u = "nm", "ft", "kts"
        else:
            range_u, altitude_u, speed_u = "km", "m", "km/h"
        return (
            f"{self.bearing:03} {self.range:03}{range_u} {self.altitude:>5}{altitude_u} "
            f"{self.heading:03} {self.speed:04}{speed_u} {self.age:03}s"
        )


@dataclass
class PlayerEwrState:
    enabled: bool = True
    units: EwrUnits = EwrUnits.METRIC
    last: datetime = field(default=EPOCH)


class Ewr:
    """Per-side radar contact table."""

    STALE_AFTER = 120.0
    MAX_REPORTS = 10
    THROTTLE = 60.0
    MID_THROTTLE = 30.0
    NEAR_RANGE = 20_000.0
    MID_RANGE = 40_000.0

    def __init__(self) -> None:
        self.tracks: dict[Side, dict[str, Track]] = {}
        self.player_state: dict[str, PlayerEwrState] = {}

    def update_tracks(
        self,
        host: HostSimulation,
        sensors: Iterable[EwrSensor],
        players: Iterable[InstancedPlayer],
        now: datetime,
    ) -> int:
        """Refresh tracks from every sensor's view of every airborne player.

        Returns the number of tracks refreshed.  A failed line-of-sight query
        skips that sensor/player pair for the tick.  Tracks older than
        STALE_AFTER are dropped first.
        """
        self.prune(now)
        airborne = [p for p in players if p.in_air]
        updated = 0
        for sensor in sensors:
            range_sq = sensor.range * sensor.range
            tracks = self.tracks.setdefault(sensor.side, {})
            # radars sit on the ground
            origin = (sensor.position[0], sensor.position[1], 0.0)
            for player in airborne:
                track = tracks.get(player.ucid)
                if track is not None and track.last == now:
                    continue
                dx = player.position[0] - sensor.position[0]
                dy = player.position[1] - sensor.position[1]
                if dx * dx + dy * dy > range_sq:
                    continue
                try:
                    visible = host.is_visible(origin, (player.position[0], player.position[1], player.altitude))
                except HostQueryError as e:
                    logger.warning(f"EWR line of sight failed for {player.ucid}: {e}")
                    continue
                if not visible:
                    continue
                tracks[player.ucid] = Track(
                    position=player.position,
                    altitude=player.altitude,
                    velocity=player.velocity,
                    last=now,
                    side=player.side,
                )
                updated += 1
        return updated

    def prune(self, now: datetime) -> int:
        """Drop tracks not refreshed within STALE_AFTER seconds.  Returns how many."""
        dropped = 0
        for tracks in self.tracks.values():
            stale = [ucid for ucid, t in tracks.items() if (now - t.last).total_seconds() > self.STALE_AFTER]
            for ucid in stale:
                del tracks[ucid]
            dropped += len(stale)
        if dropped:
            logger.debug(f"Dropped {dropped} stale EWR track(s)")
        return dropped

    def toggle(self, ucid: str) -> bool:
        """Flip report delivery for a player; returns the new state."""
        st = self.player_state.setdefault(ucid, PlayerEwrState())
        st.enabled = not st.enabled
        return st.enabled

    def set_units(self, ucid: str, units: EwrUnits) -> None:
        self.player_state.setdefault(ucid, PlayerEwrState()).units = units

    def query(self, now: datetime, friendly: bool, requester: InstancedPlayer) -> list[Braa]:
        """Build a throttled BRAA report of friendly or hostile contacts."""
        state = self.player_state.setdefault(requester.ucid, PlayerEwrState())
        if not state.enabled:
            return []
        tracks = self.tracks.get(requester.side)
        if not tracks:
            return []

        fresh = []
        for ucid, track in tracks.items():
            if ucid == requester.ucid:
                continue
            age = (now - track.last).total_seconds()
            same_side = track.side is requester.side
            if age <= self.STALE_AFTER and same_side == friendly:
                fresh.append((track, age))
        if not fresh:
            return []

        pos = np.array([t.position for t, _ in fresh], dtype=float)
        delta = pos - np.asarray(requester.position, dtype=float)
        ranges = np.hypot(delta[:, 0], delta[:, 1])
        order = np.argsort(ranges, kind="stable")[: self.MAX_REPORTS]

        nearest = float(ranges[order[0]])
        since_last = (now - state.last).total_seconds()
        if not (
            since_last >= self.THROTTLE
            or nearest <= self.NEAR_RANGE
            or (nearest <= self.MID_RANGE and since_last >= self.MID_THROTTLE)
        ):
            return []
        state.last = now

        reports = []
        for i in order:
            track, age = fresh[i]
            vx, vy, vz = track.velocity
            reports.append(Braa.from_metric(
                bearing=heading_deg(float(delta[i, 0]), float(delta[i, 1])),
                range_m=float(ranges[i]),
                altitude_m=track.altitude,
                heading=heading_deg(vx, vy),
                speed_mps=math.sqrt(vx * vx + vy * vy + vz * vz),
                age=age,
                units=state.units,
            ))
        return reports
