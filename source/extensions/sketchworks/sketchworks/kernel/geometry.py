"""
Small 2D vector helpers shared by snapping, tools, patterns and picking.

Points are plain ``(x, y)`` tuples in sketch-local coordinates.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

Point2 = Tuple[float, float]


def distance(a: Point2, b: Point2) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def midpoint(a: Point2, b: Point2) -> Point2:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def normalize(dx: float, dy: float) -> Optional[Point2]:
    length = math.hypot(dx, dy)
    if length < 1e-10:
        return None
    return (dx / length, dy / length)


def point_segment_distance(p: Point2, a: Point2, b: Point2) -> float:
    """Distance from *p* to the segment *a*-*b* (clamped to the ends)."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    if dx == 0 and dy == 0:
        return distance(p, a)
    t = max(0.0, min(1.0, ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / (dx * dx + dy * dy)))
    return math.hypot(p[0] - (a[0] + t * dx), p[1] - (a[1] + t * dy))


def project_onto_line(p: Point2, a: Point2, b: Point2) -> Optional[Point2]:
    """Foot of the perpendicular from *p* onto the infinite line *a*-*b*."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    len_sq = dx * dx + dy * dy
    if len_sq < 1e-12:
        return None
    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / len_sq
    return (a[0] + t * dx, a[1] + t * dy)


def segment_intersection(
    a1: Point2, a2: Point2, b1: Point2, b2: Point2,
) -> Optional[Point2]:
    """Intersection of two segments, or ``None`` if parallel / disjoint."""
    d1x, d1y = a2[0] - a1[0], a2[1] - a1[1]
    d2x, d2y = b2[0] - b1[0], b2[1] - b1[1]
    cross = d1x * d2y - d1y * d2x
    if abs(cross) < 1e-10:
        return None
    dx, dy = b1[0] - a1[0], b1[1] - a1[1]
    t = (dx * d2y - dy * d2x) / cross
    s = (dx * d1y - dy * d1x) / cross
    if 0.0 <= t <= 1.0 and 0.0 <= s <= 1.0:
        return (a1[0] + t * d1x, a1[1] + t * d1y)
    return None


def line_intersection(
    a1: Point2, a2: Point2, b1: Point2, b2: Point2, eps: float = 1e-4,
) -> Optional[Point2]:
    """Intersection of two infinite lines, or ``None`` if (near) parallel."""
    x1, y1 = a1
    x2, y2 = a2
    x3, y3 = b1
    x4, y4 = b2
    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) <= eps:
        return None
    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    return (x1 + t * (x2 - x1), y1 + t * (y2 - y1))


def wrap_angle(a: float) -> float:
    """Wrap an angle into ``(-pi, pi]``."""
    while a > math.pi:
        a -= 2.0 * math.pi
    while a <= -math.pi:
        a += 2.0 * math.pi
    return a
