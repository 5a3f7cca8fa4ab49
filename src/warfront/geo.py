"""Planar geometry helpers for mission coordinates.

Convention:
    - 1 unit = 1 meter
    - +X = East, +Y = North; altitude is carried separately
    - Bearing/heading 0 = North, clockwise in degrees
"""

from __future__ import annotations

import math

Vec2 = tuple[float, float]
Vec3 = tuple[float, float, float]


def distance_sq(a: Vec2, b: Vec2) -> float:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    return dx * dx + dy * dy


def in_circle(point: Vec2, center: Vec2, radius: float) -> bool:
    """Point-in-circle test, boundary inclusive."""
    return distance_sq(point, center) <= radius * radius


def heading_deg(dx: float, dy: float) -> float:
    """Compass direction of the vector (dx, dy) in [0, 360)."""
    return math.degrees(math.atan2(dx, dy)) % 360.0


def add(a: Vec2, b: Vec2) -> Vec2:
    return (a[0] + b[0], a[1] + b[1])


def sub(a: Vec2, b: Vec2) -> Vec2:
    return (a[0] - b[0], a[1] - b[1])


def centroid(points: list[Vec2]) -> Vec2:
    if not points:
        return (0.0, 0.0)
    n = len(points)
    return (sum(p[0] for p in points) / n, sum(p[1] for p in points) / n)
