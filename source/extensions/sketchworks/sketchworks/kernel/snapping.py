"""
Snap detection — finds the existing geometry a cursor should lock onto.

Candidates are collected from every committed entity (preview entities are
skipped) plus the sketch origin and, optionally, a grid.  When several
candidates are within ``snap_radius`` the winner is chosen by type
priority first and distance second::

    Endpoint (1) < Center (2) < Intersection (3) < Midpoint (4)
        < Origin (5) < Grid (10)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .geometry import Point2, distance, midpoint, point_segment_distance, segment_intersection
from .sketch import (
    ArcGeometry,
    CircleGeometry,
    EllipseGeometry,
    LineGeometry,
    PointGeometry,
    Sketch,
)


class SnapType(Enum):
    ENDPOINT = "Endpoint"
    MIDPOINT = "Midpoint"
    CENTER = "Center"
    INTERSECTION = "Intersection"
    ORIGIN = "Origin"
    GRID = "Grid"

    @property
    def priority(self) -> int:
        return _SNAP_PRIORITY[self]


_SNAP_PRIORITY = {
    SnapType.ENDPOINT: 1,
    SnapType.CENTER: 2,
    SnapType.INTERSECTION: 3,
    SnapType.MIDPOINT: 4,
    SnapType.ORIGIN: 5,
    SnapType.GRID: 10,
}


@dataclass(frozen=True)
class SnapPoint:
    """A snap candidate near the cursor."""
    position: Point2
    snap_type: SnapType
    entity_id: Optional[str] = None
    distance: float = 0.0

    @property
    def is_hard(self) -> bool:
        """True for geometry snaps (everything except the grid)."""
        return self.snap_type != SnapType.GRID

    def to_dict(self) -> dict:
        return {
            "position": list(self.position),
            "snap_type": self.snap_type.value,
            "entity_id": self.entity_id,
            "distance": self.distance,
        }


@dataclass
class SnapConfig:
    """Which snap kinds are active and how far they reach (sketch units)."""
    snap_radius: float = 0.5
    enable_endpoint: bool = True
    enable_midpoint: bool = True
    enable_center: bool = True
    enable_intersection: bool = True
    enable_origin: bool = True
    enable_grid: bool = False
    grid_spacing: float = 1.0


def find_snap_points(cursor: Point2, sketch: Sketch, config: SnapConfig) -> List[SnapPoint]:
    """Collect every snap candidate within ``config.snap_radius``."""
    snaps: List[SnapPoint] = []

    def _consider(pos: Point2, kind: SnapType, entity_id: Optional[str]):
        d = distance(cursor, pos)
        if d <= config.snap_radius:
            snaps.append(SnapPoint(pos, kind, entity_id, d))

    lines: List[Tuple[Point2, Point2]] = []
    for entity in sketch.committed_entities():
        geom = entity.geometry
        if isinstance(geom, LineGeometry):
            lines.append((geom.start, geom.end))
            if config.enable_endpoint:
                _consider(geom.start, SnapType.ENDPOINT, entity.id)
                _consider(geom.end, SnapType.ENDPOINT, entity.id)
            if config.enable_midpoint:
                _consider(midpoint(geom.start, geom.end), SnapType.MIDPOINT, entity.id)
        elif isinstance(geom, CircleGeometry):
            if config.enable_center:
                _consider(geom.center, SnapType.CENTER, entity.id)
        elif isinstance(geom, ArcGeometry):
            if config.enable_center:
                _consider(geom.center, SnapType.CENTER, entity.id)
            if config.enable_endpoint:
                _consider(geom.start_point, SnapType.ENDPOINT, entity.id)
                _consider(geom.end_point, SnapType.ENDPOINT, entity.id)
        elif isinstance(geom, EllipseGeometry):
            if config.enable_center:
                _consider(geom.center, SnapType.CENTER, entity.id)
        elif isinstance(geom, PointGeometry):
            if config.enable_endpoint:
                _consider(geom.pos, SnapType.ENDPOINT, entity.id)

    # Line-line intersections (the intersection belongs to two entities,
    # so it carries no entity id)
    if config.enable_intersection:
        for i in range(len(lines)):
            for j in range(i + 1, len(lines)):
                hit = segment_intersection(lines[i][0], lines[i][1], lines[j][0], lines[j][1])
                if hit is not None:
                    _consider(hit, SnapType.INTERSECTION, None)

    if config.enable_origin:
        _consider((0.0, 0.0), SnapType.ORIGIN, None)

    if config.enable_grid and config.grid_spacing > 0:
        step = config.grid_spacing
        grid_pt = (round(cursor[0] / step) * step, round(cursor[1] / step) * step)
        _consider(grid_pt, SnapType.GRID, None)

    return snaps


def snap_cursor(cursor: Point2, sketch: Sketch, config: SnapConfig) -> Optional[SnapPoint]:
    """Best snap for *cursor*: lowest priority value, then nearest."""
    snaps = find_snap_points(cursor, sketch, config)
    if not snaps:
        return None
    return min(snaps, key=lambda s: (s.snap_type.priority, s.distance))


def apply_snapping(
    cursor: Point2, sketch: Sketch, config: SnapConfig,
) -> Tuple[Point2, Optional[SnapPoint]]:
    """Return ``(effective_position, snap_or_None)`` for *cursor*."""
    snap = snap_cursor(cursor, sketch, config)
    if snap is not None:
        return snap.position, snap
    return cursor, None


# ---------------------------------------------------------------------------
# Hit testing for selection tools
# ---------------------------------------------------------------------------

LINE_HIT_THRESHOLD = 2.0
POINT_HIT_THRESHOLD = 1.5
CANDIDATE_HIT_THRESHOLD = 0.5


def find_closest_line(
    cursor: Point2, sketch: Sketch, threshold: float = LINE_HIT_THRESHOLD,
) -> Optional[str]:
    """Id of the committed line nearest *cursor* (segment distance)."""
    best_id, best_d = None, threshold
    for entity in sketch.committed_entities():
        geom = entity.geometry
        if not isinstance(geom, LineGeometry):
            continue
        d = point_segment_distance(cursor, geom.start, geom.end)
        if d < best_d:
            best_id, best_d = entity.id, d
    return best_id


def curve_distance(cursor: Point2, geom) -> Optional[float]:
    if isinstance(geom, LineGeometry):
        return point_segment_distance(cursor, geom.start, geom.end)
    if isinstance(geom, CircleGeometry):
        return abs(distance(cursor, geom.center) - geom.radius)
    if isinstance(geom, ArcGeometry):
        angle = math.atan2(cursor[1] - geom.center[1], cursor[0] - geom.center[0])
        sweep = (geom.end_angle - geom.start_angle) % (2.0 * math.pi)
        if (angle - geom.start_angle) % (2.0 * math.pi) <= sweep:
            return abs(distance(cursor, geom.center) - geom.radius)
        return min(distance(cursor, geom.start_point), distance(cursor, geom.end_point))
    if isinstance(geom, PointGeometry):
        return distance(cursor, geom.pos)
    if isinstance(geom, EllipseGeometry):
        return distance(cursor, geom.center)
    return None


def find_closest_entity(
    cursor: Point2,
    sketch: Sketch,
    threshold: float = CANDIDATE_HIT_THRESHOLD,
    kinds: Optional[Tuple[type, ...]] = None,
) -> Optional[str]:
    """
    Id of the committed entity whose curve passes nearest *cursor*.

    *kinds* restricts the search to the given geometry classes.
    """
    best_id, best_d = None, threshold
    for entity in sketch.committed_entities():
        if kinds is not None and not isinstance(entity.geometry, kinds):
            continue
        d = curve_distance(cursor, entity.geometry)
        if d is not None and d < best_d:
            best_id, best_d = entity.id, d
    return best_id


def entity_points(entity) -> List[Tuple[int, Point2]]:
    """``(index, position)`` for every canonical point of an entity."""
    geom = entity.geometry
    if isinstance(geom, LineGeometry):
        return [(0, geom.start), (1, geom.end)]
    if isinstance(geom, ArcGeometry):
        return [(0, geom.center), (1, geom.start_point), (2, geom.end_point)]
    if isinstance(geom, (CircleGeometry, EllipseGeometry)):
        return [(0, geom.center)]
    if isinstance(geom, PointGeometry):
        return [(0, geom.pos)]
    return []


def find_closest_point(
    cursor: Point2, sketch: Sketch, threshold: float = POINT_HIT_THRESHOLD,
) -> Optional[Tuple[str, int, Point2]]:
    """``(entity_id, index, position)`` of the nearest canonical point."""
    best, best_d = None, threshold
    for entity in sketch.committed_entities():
        for index, pos in entity_points(entity):
            d = distance(cursor, pos)
            if d < best_d:
                best, best_d = (entity.id, index, pos), d
    return best
