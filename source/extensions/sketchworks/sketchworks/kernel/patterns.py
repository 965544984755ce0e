"""
Pattern engine — mirror, linear and circular replication of sketch entities.

Each operation builds new entities (fresh ids) plus the constraints that
keep copies tied to their sources:

* **Mirror** — Symmetric for every defining point, across the axis line.
  Circles, arcs and ellipses also get an Equal (reflection alone does not
  constrain their size).
* **Linear / circular pattern** — one Equal per non-Point copy, linking it
  back to its source.

Copy ``i`` of a circular pattern sits at ``total_angle * i / count``: the
sweep is divided by ``count``, so a 360 degree pattern never places a copy
on top of the source.

All operations are pure: they return a :class:`PatternResult` and leave the
sketch untouched.  Degenerate input (missing axis, zero-length direction,
``count < 2``) yields an empty result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .constraints import ConstraintPoint, Equal, Symmetric
from .geometry import Point2, normalize
from .sketch import (
    ArcGeometry,
    CircleGeometry,
    EllipseGeometry,
    Geometry,
    LineGeometry,
    PointGeometry,
    Sketch,
    SketchEntity,
    new_entity_id,
)

ORIGIN_CENTER = "origin"


@dataclass
class PatternResult:
    """New entities and constraints produced by a pattern operation."""
    entities: List[SketchEntity] = field(default_factory=list)
    constraints: list = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.entities

    def apply_to(self, sketch: Sketch):
        """Append entities, then constraints, to *sketch* (and its history)."""
        for entity in self.entities:
            sketch.add_entity(entity)
        for constraint in self.constraints:
            sketch.add_constraint(constraint)


# ---------------------------------------------------------------------------
# Point transforms
# ---------------------------------------------------------------------------

def reflect(p: Point2, a: Point2, b: Point2) -> Point2:
    """Reflect *p* across the line through *a* and *b*."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    len_sq = dx * dx + dy * dy
    if len_sq < 1e-4:
        return p
    ca = (dx * dx - dy * dy) / len_sq
    cb = 2.0 * dx * dy / len_sq
    px, py = p[0] - a[0], p[1] - a[1]
    return (ca * px + cb * py + a[0], cb * px - ca * py + a[1])


def translate(p: Point2, direction: Point2, distance: float) -> Point2:
    return (p[0] + direction[0] * distance, p[1] + direction[1] * distance)


def rotate(p: Point2, center: Point2, angle: float) -> Point2:
    c, s = math.cos(angle), math.sin(angle)
    dx, dy = p[0] - center[0], p[1] - center[1]
    return (center[0] + dx * c - dy * s, center[1] + dx * s + dy * c)


# ---------------------------------------------------------------------------
# Geometry transforms
# ---------------------------------------------------------------------------

def transform_geometry(
    geometry: Geometry,
    fn: Callable[[Point2], Point2],
    mirrored: bool = False,
) -> Geometry:
    """
    Apply a point transform to every defining point of *geometry*.

    Angles (arc sweep, ellipse rotation) are recomputed from the transformed
    points.  When *mirrored* is True the transform reverses orientation, so
    an arc's boundary points swap roles to keep its sweep counter-clockwise.
    """
    if isinstance(geometry, PointGeometry):
        return PointGeometry(pos=fn(geometry.pos))
    if isinstance(geometry, LineGeometry):
        return LineGeometry(start=fn(geometry.start), end=fn(geometry.end))
    if isinstance(geometry, CircleGeometry):
        return CircleGeometry(center=fn(geometry.center), radius=geometry.radius)
    if isinstance(geometry, ArcGeometry):
        c = fn(geometry.center)
        s = fn(geometry.start_point)
        e = fn(geometry.end_point)
        if mirrored:
            s, e = e, s
        start_angle = math.atan2(s[1] - c[1], s[0] - c[0])
        end_angle = math.atan2(e[1] - c[1], e[0] - c[0])
        # Keep the original sweep length (atan2 folds it into (-pi, pi])
        sweep = geometry.end_angle - geometry.start_angle
        end_angle = start_angle + sweep if abs(sweep) > 1e-12 else end_angle
        return ArcGeometry(c, geometry.radius, start_angle, end_angle)
    if isinstance(geometry, EllipseGeometry):
        c = fn(geometry.center)
        tip = (
            geometry.center[0] + math.cos(geometry.rotation),
            geometry.center[1] + math.sin(geometry.rotation),
        )
        t = fn(tip)
        rotation = math.atan2(t[1] - c[1], t[0] - c[0])
        return EllipseGeometry(c, geometry.semi_major, geometry.semi_minor, rotation)
    raise TypeError(f"Unsupported geometry: {type(geometry).__name__}")


def _point_indices(geometry: Geometry) -> List[int]:
    """Defining constraint-point indices per geometry kind."""
    if isinstance(geometry, LineGeometry):
        return [0, 1]
    if isinstance(geometry, ArcGeometry):
        return [0, 1, 2]
    return [0]


def _copy_entity(entity: SketchEntity, geometry: Geometry) -> SketchEntity:
    return SketchEntity(
        id=new_entity_id(), geometry=geometry, is_construction=entity.is_construction,
    )


def _has_size(geometry: Geometry) -> bool:
    return not isinstance(geometry, PointGeometry)


# ---------------------------------------------------------------------------
# Mirror
# ---------------------------------------------------------------------------

def mirror_entity(entity: SketchEntity, axis_start: Point2, axis_end: Point2, axis_id: str):
    """Mirror one entity.  Returns ``(new_entity, constraints)``."""
    geom = transform_geometry(
        entity.geometry, lambda p: reflect(p, axis_start, axis_end), mirrored=True,
    )
    new = _copy_entity(entity, geom)

    constraints = []
    for idx in _point_indices(entity.geometry):
        target = idx
        # Arc boundaries swap under reflection
        if isinstance(entity.geometry, ArcGeometry) and idx in (1, 2):
            target = 3 - idx
        constraints.append(Symmetric(
            p1=ConstraintPoint(entity.id, idx),
            p2=ConstraintPoint(new.id, target),
            axis=axis_id,
        ))
    if isinstance(entity.geometry, (CircleGeometry, ArcGeometry, EllipseGeometry)):
        constraints.append(Equal(entities=(entity.id, new.id)))
    return new, constraints


def mirror(sketch: Sketch, entity_ids: List[str], axis_id: str) -> PatternResult:
    """Mirror *entity_ids* across the line *axis_id*."""
    result = PatternResult()
    axis = sketch.get_entity(axis_id)
    if axis is None or not isinstance(axis.geometry, LineGeometry):
        print(f"[SketchWorks] Mirror: axis {axis_id} is not a line")
        return result
    if axis.geometry.length < 1e-2:
        print("[SketchWorks] Mirror: degenerate axis")
        return result

    for eid in entity_ids:
        if eid == axis_id:
            continue
        entity = sketch.get_entity(eid)
        if entity is None or entity.is_preview:
            continue
        new, constraints = mirror_entity(entity, axis.geometry.start, axis.geometry.end, axis_id)
        result.entities.append(new)
        result.constraints.extend(constraints)
    return result


# ---------------------------------------------------------------------------
# Linear pattern
# ---------------------------------------------------------------------------

def pattern_direction(sketch: Sketch, direction_line_id: str, flip: bool = False) -> Optional[Point2]:
    """Unit direction of the reference line, optionally flipped."""
    line = sketch.get_entity(direction_line_id)
    if line is None or not isinstance(line.geometry, LineGeometry):
        return None
    g = line.geometry
    d = normalize(g.end[0] - g.start[0], g.end[1] - g.start[1])
    if d is None or g.length < 1e-4:
        return None
    return (-d[0], -d[1]) if flip else d


def _linear_copies(sketch, entity_ids, direction, count, spacing):
    for i in range(1, count):
        dist = spacing * i
        for eid in entity_ids:
            entity = sketch.get_entity(eid)
            if entity is None:
                continue
            geom = transform_geometry(entity.geometry, lambda p: translate(p, direction, dist))
            yield entity, _copy_entity(entity, geom)


def linear_pattern(
    sketch: Sketch,
    entity_ids: List[str],
    direction_line_id: str,
    count: int,
    spacing: float,
    flip: bool = False,
) -> PatternResult:
    """
    Copy *entity_ids* ``count - 1`` times along the reference line.

    Copy ``i`` (``1 <= i < count``) is translated by ``spacing * i``.
    """
    result = PatternResult()
    if count < 2 or not entity_ids:
        return result
    direction = pattern_direction(sketch, direction_line_id, flip)
    if direction is None:
        print(f"[SketchWorks] Linear pattern: no usable direction from {direction_line_id}")
        return result

    for source, copy in _linear_copies(sketch, entity_ids, direction, count, spacing):
        result.entities.append(copy)
        if _has_size(source.geometry):
            result.constraints.append(Equal(entities=(source.id, copy.id)))
    return result


def preview_linear_pattern(
    sketch: Sketch,
    entity_ids: List[str],
    direction_line_id: str,
    count: int,
    spacing: float,
    flip: bool = False,
) -> List[SketchEntity]:
    """Entities a linear pattern would create (no constraints, no history)."""
    if count < 2:
        return []
    direction = pattern_direction(sketch, direction_line_id, flip)
    if direction is None:
        return []
    return [copy for _, copy in _linear_copies(sketch, entity_ids, direction, count, spacing)]


# ---------------------------------------------------------------------------
# Circular pattern
# ---------------------------------------------------------------------------

def pattern_center(sketch: Sketch, center_ref: str) -> Optional[Point2]:
    """Origin, a Point, or the center of a Circle / Arc."""
    if center_ref == ORIGIN_CENTER:
        return (0.0, 0.0)
    entity = sketch.get_entity(center_ref)
    if entity is None:
        return None
    geom = entity.geometry
    if isinstance(geom, PointGeometry):
        return geom.pos
    if isinstance(geom, (CircleGeometry, ArcGeometry)):
        return geom.center
    return None


def circular_step(total_angle_deg: float, count: int, flip: bool = False) -> float:
    """Rotation between consecutive copies, in radians (sweep / count)."""
    step = math.radians(total_angle_deg) / count
    return -step if flip else step


def _circular_copies(sketch, entity_ids, center, count, step):
    for i in range(1, count):
        angle = step * i
        for eid in entity_ids:
            entity = sketch.get_entity(eid)
            if entity is None:
                continue
            geom = transform_geometry(entity.geometry, lambda p: rotate(p, center, angle))
            yield entity, _copy_entity(entity, geom)


def circular_pattern(
    sketch: Sketch,
    entity_ids: List[str],
    center_ref: str,
    count: int,
    total_angle_deg: float = 360.0,
    flip: bool = False,
) -> PatternResult:
    """Copy *entity_ids* ``count - 1`` times about *center_ref*."""
    result = PatternResult()
    if count < 2 or not entity_ids:
        return result
    center = pattern_center(sketch, center_ref)
    if center is None:
        print(f"[SketchWorks] Circular pattern: no usable center from {center_ref}")
        return result

    step = circular_step(total_angle_deg, count, flip)
    for source, copy in _circular_copies(sketch, entity_ids, center, count, step):
        result.entities.append(copy)
        if _has_size(source.geometry):
            result.constraints.append(Equal(entities=(source.id, copy.id)))
    return result


def preview_circular_pattern(
    sketch: Sketch,
    entity_ids: List[str],
    center_ref: str,
    count: int,
    total_angle_deg: float = 360.0,
    flip: bool = False,
) -> List[SketchEntity]:
    """Entities a circular pattern would create (no constraints, no history)."""
    if count < 2:
        return []
    center = pattern_center(sketch, center_ref)
    if center is None:
        return []
    step = circular_step(total_angle_deg, count, flip)
    return [copy for _, copy in _circular_copies(sketch, entity_ids, center, count, step)]
