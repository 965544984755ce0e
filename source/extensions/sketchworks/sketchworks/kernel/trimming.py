"""
Trim: cut a curve back to its nearest intersections with other geometry.

The clicked span of a Line or Arc runs between the two intersections that
bracket the click, or out to the curve's own end when no intersection lies
on that side.  Removing it leaves one of:

* nothing, so the entity is deleted with every constraint on it;
* one piece, so the entity keeps its id and is shortened;
* two pieces, so the entity keeps the first and a new entity takes the
  second.

A circle has no ends.  It needs at least two distinct intersections, and
trimming it turns it into an arc with the same id.

Constraints pinned to an end that moved are dropped.  When a curve is
split, constraints on its far end follow that end to the new entity.

Like the pattern engine this module is pure: :func:`trim_at` returns a
:class:`TrimResult` and :meth:`TrimResult.apply_to` edits the sketch.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from .constraints import Coincident, ConstraintPoint, Equal, Horizontal, Vertical
from .geometry import Point2, distance, segment_intersection
from .sketch import (
    ArcGeometry,
    CircleGeometry,
    Geometry,
    LineGeometry,
    Sketch,
    SketchEntity,
    new_entity_id,
)
from .snapping import LINE_HIT_THRESHOLD, find_closest_entity

TWO_PI = 2.0 * math.pi
TRIM_EPSILON = 1e-3
_CURVES = (LineGeometry, CircleGeometry, ArcGeometry)


class TrimAction(Enum):
    DELETE = auto()
    SHORTEN = auto()
    SPLIT = auto()


@dataclass
class TrimResult:
    """
    One trim, ready to apply.

    Attributes:
        entity_id:   The trimmed entity.
        geometry:    Its new geometry, or ``None`` when it is deleted.
        split:       The second piece when the clicked span was interior.
        constraints: New constraints tying the pieces together.
        moved:       Point indices on *entity_id* that no longer hold.
        follow:      Point index on *entity_id* -> point on *split*.
    """
    entity_id: str
    geometry: Optional[Geometry] = None
    split: Optional[SketchEntity] = None
    constraints: list = field(default_factory=list)
    moved: Tuple[int, ...] = ()
    follow: Dict[int, ConstraintPoint] = field(default_factory=dict)

    @property
    def action(self) -> TrimAction:
        if self.geometry is None:
            return TrimAction.DELETE
        return TrimAction.SPLIT if self.split is not None else TrimAction.SHORTEN

    def remap(self, point: ConstraintPoint) -> Optional[ConstraintPoint]:
        if point.id != self.entity_id:
            return point
        if point.index in self.follow:
            return self.follow[point.index]
        if point.index in self.moved:
            return None
        return point

    def apply_to(self, sketch: Sketch):
        if self.geometry is None:
            sketch.remove_entity(self.entity_id)
            return
        sketch.replace_geometry(self.entity_id, self.geometry)
        if self.split is not None:
            sketch.add_entity(self.split)
        sketch.remap_points(self.remap)
        for constraint in self.constraints:
            sketch.add_constraint(constraint)


# ---------------------------------------------------------------------------
# Curve intersections
# ---------------------------------------------------------------------------

def arc_sweep(arc: ArcGeometry) -> float:
    """Counter-clockwise sweep in ``(0, 2*pi]``."""
    sweep = (arc.end_angle - arc.start_angle) % TWO_PI
    return sweep if sweep > 1e-12 else TWO_PI


def _on_curve(geom, p: Point2, tol: float = 1e-9) -> bool:
    if not isinstance(geom, ArcGeometry):
        return True
    angle = math.atan2(p[1] - geom.center[1], p[0] - geom.center[0])
    offset = (angle - geom.start_angle) % TWO_PI
    return offset <= arc_sweep(geom) + tol or offset >= TWO_PI - tol


def line_circle_points(start: Point2, end: Point2, center: Point2, radius: float) -> List[Point2]:
    """Where the segment *start*-*end* crosses a circle."""
    dx, dy = end[0] - start[0], end[1] - start[1]
    fx, fy = start[0] - center[0], start[1] - center[1]
    a = dx * dx + dy * dy
    if a < 1e-12:
        return []
    b = 2.0 * (fx * dx + fy * dy)
    c = fx * fx + fy * fy - radius * radius
    disc = b * b - 4.0 * a * c
    if disc < -1e-12:
        return []
    root = math.sqrt(max(disc, 0.0))
    ts = [(-b - root) / (2.0 * a)]
    if root > 1e-12:
        ts.append((-b + root) / (2.0 * a))
    return [
        (start[0] + t * dx, start[1] + t * dy)
        for t in ts
        if -1e-9 <= t <= 1.0 + 1e-9
    ]


def circle_circle_points(c1: Point2, r1: float, c2: Point2, r2: float) -> List[Point2]:
    d = distance(c1, c2)
    if d < 1e-12 or d > r1 + r2 + 1e-9 or d < abs(r1 - r2) - 1e-9:
        return []
    a = (r1 * r1 - r2 * r2 + d * d) / (2.0 * d)
    h = math.sqrt(max(r1 * r1 - a * a, 0.0))
    ux, uy = (c2[0] - c1[0]) / d, (c2[1] - c1[1]) / d
    base = (c1[0] + a * ux, c1[1] + a * uy)
    if h < 1e-9:
        return [base]
    return [
        (base[0] - h * uy, base[1] + h * ux),
        (base[0] + h * uy, base[1] - h * ux),
    ]


def curve_intersections(a, b) -> List[Point2]:
    """Intersection points of two Line / Circle / Arc geometries."""
    if isinstance(a, LineGeometry) and isinstance(b, LineGeometry):
        p = segment_intersection(a.start, a.end, b.start, b.end)
        return [p] if p is not None else []
    if isinstance(a, LineGeometry):
        a, b = b, a
    if isinstance(b, LineGeometry):
        points = line_circle_points(b.start, b.end, a.center, a.radius)
    else:
        points = circle_circle_points(a.center, a.radius, b.center, b.radius)
    return [p for p in points if _on_curve(a, p) and _on_curve(b, p)]


# ---------------------------------------------------------------------------
# Curve parameters
# ---------------------------------------------------------------------------

def _line_param(line: LineGeometry, p: Point2) -> float:
    dx, dy = line.end[0] - line.start[0], line.end[1] - line.start[1]
    len_sq = dx * dx + dy * dy
    if len_sq <= 0.0:
        return 0.0
    return ((p[0] - line.start[0]) * dx + (p[1] - line.start[1]) * dy) / len_sq


def _line_at(line: LineGeometry, t: float) -> Point2:
    return (
        line.start[0] + t * (line.end[0] - line.start[0]),
        line.start[1] + t * (line.end[1] - line.start[1]),
    )


def _angle_of(center: Point2, p: Point2) -> float:
    return math.atan2(p[1] - center[1], p[0] - center[0])


def _arc_param(arc: ArcGeometry, p: Point2) -> float:
    return ((_angle_of(arc.center, p) - arc.start_angle) % TWO_PI) / arc_sweep(arc)


def _cut_bounds(ts: List[float], click_t: float) -> Tuple[float, float]:
    """Nearest parameters either side of the click, defaulting to the ends."""
    left, right = 0.0, 1.0
    for t in ts:
        if left < t < click_t:
            left = t
        if click_t < t < right:
            right = t
    return left, right


# ---------------------------------------------------------------------------
# Trim
# ---------------------------------------------------------------------------

def _intersection_points(sketch: Sketch, target: SketchEntity) -> List[Point2]:
    points = []
    for other in sketch.committed_entities():
        if other.id == target.id or not isinstance(other.geometry, _CURVES):
            continue
        points.extend(curve_intersections(target.geometry, other.geometry))
    return points


def _carry_orientation(sketch: Sketch, entity_id: str, new_id: str) -> list:
    """Horizontal / Vertical on a split line also hold for its second piece."""
    carried = []
    for c in sketch.active_constraints():
        if isinstance(c, Horizontal) and c.entity == entity_id:
            carried.append(Horizontal(entity=new_id))
        elif isinstance(c, Vertical) and c.entity == entity_id:
            carried.append(Vertical(entity=new_id))
    return carried


def _trim_line(sketch, entity, click, points) -> TrimResult:
    line = entity.geometry
    left, right = _cut_bounds([_line_param(line, p) for p in points], _line_param(line, click))
    has_start, has_end = left > TRIM_EPSILON, right < 1.0 - TRIM_EPSILON

    if has_start and has_end:
        split = SketchEntity(
            new_entity_id(),
            LineGeometry(_line_at(line, right), line.end),
            entity.is_construction,
        )
        return TrimResult(
            entity.id,
            LineGeometry(line.start, _line_at(line, left)),
            split=split,
            constraints=_carry_orientation(sketch, entity.id, split.id),
            follow={1: ConstraintPoint(split.id, 1)},
        )
    if has_start:
        return TrimResult(entity.id, LineGeometry(line.start, _line_at(line, left)), moved=(1,))
    if has_end:
        return TrimResult(entity.id, LineGeometry(_line_at(line, right), line.end), moved=(0,))
    return TrimResult(entity.id)


def _trim_arc(entity, click, points) -> TrimResult:
    arc = entity.geometry
    sweep = arc_sweep(arc)
    left, right = _cut_bounds([_arc_param(arc, p) for p in points], _arc_param(arc, click))
    has_start, has_end = left > TRIM_EPSILON, right < 1.0 - TRIM_EPSILON
    cut_start = arc.start_angle + left * sweep
    cut_end = arc.start_angle + right * sweep

    if has_start and has_end:
        split = SketchEntity(
            new_entity_id(),
            ArcGeometry(arc.center, arc.radius, cut_end, arc.start_angle + sweep),
            entity.is_construction,
        )
        return TrimResult(
            entity.id,
            ArcGeometry(arc.center, arc.radius, arc.start_angle, cut_start),
            split=split,
            constraints=[
                Coincident(points=(ConstraintPoint(entity.id, 0), ConstraintPoint(split.id, 0))),
                Equal(entities=(entity.id, split.id)),
            ],
            follow={2: ConstraintPoint(split.id, 2)},
        )
    if has_start:
        return TrimResult(
            entity.id, ArcGeometry(arc.center, arc.radius, arc.start_angle, cut_start), moved=(2,),
        )
    if has_end:
        return TrimResult(
            entity.id, ArcGeometry(arc.center, arc.radius, cut_end, arc.start_angle + sweep), moved=(1,),
        )
    return TrimResult(entity.id)


def _trim_circle(entity, click, points) -> Optional[TrimResult]:
    circle = entity.geometry
    angles: List[float] = []
    for p in points:
        a = _angle_of(circle.center, p)
        if all(abs(math.remainder(a - b, TWO_PI)) > 1e-6 for b in angles):
            angles.append(a)
    if len(angles) < 2:
        return None
    click_angle = _angle_of(circle.center, click)
    # The removed span runs CCW from `before` through the click to `after`
    after = min(angles, key=lambda a: (a - click_angle) % TWO_PI)
    before = max(angles, key=lambda a: (a - click_angle) % TWO_PI)
    end = after + (before - after) % TWO_PI
    return TrimResult(entity.id, ArcGeometry(circle.center, circle.radius, after, end))


def trim_entity(sketch: Sketch, entity_id: str, click: Point2) -> Optional[TrimResult]:
    """
    Trim *entity_id* at the span under *click*.

    Returns ``None`` when there is nothing to cut against: no intersection
    for a line or arc, fewer than two for a circle.
    """
    entity = sketch.get_entity(entity_id)
    if entity is None or entity.is_preview or not isinstance(entity.geometry, _CURVES):
        return None
    points = _intersection_points(sketch, entity)
    if not points:
        return None
    if isinstance(entity.geometry, LineGeometry):
        return _trim_line(sketch, entity, click, points)
    if isinstance(entity.geometry, ArcGeometry):
        return _trim_arc(entity, click, points)
    return _trim_circle(entity, click, points)


def trim_at(
    sketch: Sketch, click: Point2, threshold: float = LINE_HIT_THRESHOLD,
) -> Tuple[Optional[str], Optional[TrimResult]]:
    """
    Find the curve under *click* and trim it.

    Returns ``(entity_id, result)``; the id is ``None`` when nothing was
    hit and the result is ``None`` when the hit curve cannot be trimmed.
    """
    entity_id = find_closest_entity(click, sketch, threshold, kinds=_CURVES)
    if entity_id is None:
        return None, None
    return entity_id, trim_entity(sketch, entity_id, click)
