"""
Auto-constraint inference — derives constraints from how geometry was placed.

Two kinds of inference happen while drawing:

1. **Coincidence from snaps.**  When a click snapped onto an existing
   endpoint, center, or the origin, the new entity's point is made
   Coincident with that point (:func:`apply_auto_constraints`).

2. **Direction from angular / geometric snapping.**  While a line is being
   drawn, a near-horizontal or near-vertical direction is locked exactly
   and produces a Horizontal / Vertical constraint; failing that, a
   direction near-parallel or near-perpendicular to an existing line is
   locked and produces Parallel / Perpendicular
   (:func:`check_constraint_snap`, :func:`infer_line_constraints`).

Angular snapping only engages when there is no snap or a grid snap.  A
hard geometry snap always wins over direction locking.

:func:`detect_inferred_constraints` produces display-only hints for the
viewport (icons with a confidence value); it never changes geometry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .constraints import (
    Coincident,
    ConstraintPoint,
    Horizontal,
    Parallel,
    Perpendicular,
    Vertical,
    origin_point,
)
from .geometry import Point2, distance, midpoint
from .sketch import ArcGeometry, LineGeometry, PointGeometry, Sketch
from .snapping import SnapPoint, SnapType


class InferenceType(Enum):
    COINCIDENT = "coincident"
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    PARALLEL = "parallel"
    PERPENDICULAR = "perpendicular"
    TANGENT = "tangent"


@dataclass
class InferenceConfig:
    """Tolerances for direction inference (radians)."""
    angle_tolerance: float = 0.087        # ~5 degrees
    parallel_tolerance: float = 0.052     # ~3 degrees
    max_parallel_candidates: int = 10
    enable_coincident: bool = True
    enable_hv: bool = True
    enable_parallel_perp: bool = True


@dataclass(frozen=True)
class ConstraintSnap:
    """A direction lock applied to the second point of a line."""
    position: Point2
    kind: InferenceType
    entity_id: Optional[str] = None


@dataclass
class InferredConstraint:
    """A display hint for a constraint that a click would create."""
    type: InferenceType
    entities: List[str] = field(default_factory=list)
    display_position: Point2 = (0.0, 0.0)
    confidence: float = 1.0


# Tools for which inference hints are shown
DRAWING_TOOLS = ("line", "rectangle", "polygon", "arc")

_MIN_DIRECTION_LENGTH = 0.01


# ---------------------------------------------------------------------------
# Direction snapping
# ---------------------------------------------------------------------------

def apply_angular_snapping(
    start: Point2, cursor: Point2, tolerance: float = 0.087,
) -> Optional[ConstraintSnap]:
    """Lock a near-horizontal / near-vertical direction exactly."""
    dx = cursor[0] - start[0]
    dy = cursor[1] - start[1]
    if math.hypot(dx, dy) < _MIN_DIRECTION_LENGTH:
        return None

    abs_angle = abs(math.atan2(dy, dx))
    if min(abs_angle, abs(abs_angle - math.pi)) < tolerance:
        return ConstraintSnap((cursor[0], start[1]), InferenceType.HORIZONTAL)
    if abs(abs_angle - math.pi / 2.0) < tolerance:
        return ConstraintSnap((start[0], cursor[1]), InferenceType.VERTICAL)
    return None


def _line_candidates(sketch: Sketch, limit: int) -> List[Tuple[str, LineGeometry]]:
    lines = []
    for entity in sketch.committed_entities():
        if len(lines) >= limit:
            break
        if isinstance(entity.geometry, LineGeometry) and entity.geometry.length > 1e-10:
            lines.append((entity.id, entity.geometry))
    return lines


def _undirected_angle_diff(a: float, b: float) -> float:
    """Angle between two undirected lines, in ``[0, pi/2]``."""
    diff = abs(a - b)
    if diff > math.pi:
        diff = 2.0 * math.pi - diff
    if diff > math.pi / 2.0:
        diff = math.pi - diff
    return diff


def apply_geometric_snapping(
    start: Point2,
    cursor: Point2,
    sketch: Sketch,
    tolerance: float = 0.052,
    max_candidates: int = 10,
) -> Optional[ConstraintSnap]:
    """
    Lock the direction parallel or perpendicular to an existing line.

    The cursor is projected onto the locked direction so the drawn length
    along that direction is preserved.
    """
    dx = cursor[0] - start[0]
    dy = cursor[1] - start[1]
    if math.hypot(dx, dy) < _MIN_DIRECTION_LENGTH:
        return None
    current = math.atan2(dy, dx)

    for line_id, line in _line_candidates(sketch, max_candidates):
        lx = line.end[0] - line.start[0]
        ly = line.end[1] - line.start[1]
        diff = _undirected_angle_diff(current, math.atan2(ly, lx))
        length = line.length
        ux, uy = lx / length, ly / length

        if diff < tolerance:
            along = dx * ux + dy * uy
            return ConstraintSnap(
                (start[0] + ux * along, start[1] + uy * along),
                InferenceType.PARALLEL, line_id,
            )
        if abs(diff - math.pi / 2.0) < tolerance:
            px, py = -uy, ux
            along = dx * px + dy * py
            return ConstraintSnap(
                (start[0] + px * along, start[1] + py * along),
                InferenceType.PERPENDICULAR, line_id,
            )
    return None


def check_constraint_snap(
    start: Point2,
    current: Point2,
    snap: Optional[SnapPoint],
    sketch: Sketch,
    config: Optional[InferenceConfig] = None,
) -> Tuple[Point2, Optional[ConstraintSnap]]:
    """
    Direction locking for the end point of a line.

    A hard snap keeps its position untouched.  Otherwise H/V is tried
    first, then parallel / perpendicular.
    """
    cfg = config or InferenceConfig()
    if snap is not None and snap.is_hard:
        return current, None

    if cfg.enable_hv:
        res = apply_angular_snapping(start, current, cfg.angle_tolerance)
        if res is not None:
            return res.position, res
    if cfg.enable_parallel_perp:
        res = apply_geometric_snapping(
            start, current, sketch, cfg.parallel_tolerance, cfg.max_parallel_candidates,
        )
        if res is not None:
            return res.position, res
    return current, None


# ---------------------------------------------------------------------------
# Constraint derivation
# ---------------------------------------------------------------------------

def snap_target_point(sketch: Sketch, snap: Optional[SnapPoint]) -> Optional[ConstraintPoint]:
    """
    The constraint point a snap coincides with, or ``None`` if the snap
    does not correspond to a referenceable point (grid, midpoint,
    intersection, or a since-deleted entity).
    """
    if snap is None:
        return None
    if snap.snap_type == SnapType.ORIGIN:
        return origin_point()
    if snap.entity_id is None:
        return None
    entity = sketch.get_entity(snap.entity_id)
    if entity is None:
        return None

    if snap.snap_type == SnapType.CENTER:
        return ConstraintPoint(entity.id, 0)
    if snap.snap_type != SnapType.ENDPOINT:
        return None

    geom = entity.geometry
    if isinstance(geom, LineGeometry):
        idx = 0 if distance(snap.position, geom.start) <= distance(snap.position, geom.end) else 1
        return ConstraintPoint(entity.id, idx)
    if isinstance(geom, ArcGeometry):
        idx = 1 if distance(snap.position, geom.start_point) <= distance(snap.position, geom.end_point) else 2
        return ConstraintPoint(entity.id, idx)
    if isinstance(geom, PointGeometry):
        return ConstraintPoint(entity.id, 0)
    return None


def apply_auto_constraints(
    sketch: Sketch,
    new_id: str,
    start_snap: Optional[SnapPoint],
    end_snap: Optional[SnapPoint],
) -> list:
    """
    Coincident constraints implied by the snaps captured at creation.

    *start_snap* ties the new entity's point 0 (start / center / position),
    *end_snap* ties point 1 (end).
    """
    constraints = []
    for snap, index in ((start_snap, 0), (end_snap, 1)):
        target = snap_target_point(sketch, snap)
        if target is None or target.id == new_id:
            continue
        constraints.append(Coincident(points=(ConstraintPoint(new_id, index), target)))
    return constraints


def infer_line_constraints(new_id: str, constraint_snap: Optional[ConstraintSnap]) -> list:
    """Direction constraint implied by a line's direction lock."""
    if constraint_snap is None:
        return []
    kind = constraint_snap.kind
    if kind == InferenceType.HORIZONTAL:
        return [Horizontal(entity=new_id)]
    if kind == InferenceType.VERTICAL:
        return [Vertical(entity=new_id)]
    if constraint_snap.entity_id is None:
        return []
    if kind == InferenceType.PARALLEL:
        return [Parallel(lines=(new_id, constraint_snap.entity_id))]
    if kind == InferenceType.PERPENDICULAR:
        return [Perpendicular(lines=(new_id, constraint_snap.entity_id))]
    return []


# ---------------------------------------------------------------------------
# Display hints
# ---------------------------------------------------------------------------

def detect_inferred_constraints(
    cursor: Point2,
    start_point: Optional[Point2],
    sketch: Sketch,
    active_tool: str,
    current_snap: Optional[SnapPoint],
    config: Optional[InferenceConfig] = None,
    snap_radius: float = 0.5,
) -> List[InferredConstraint]:
    """Hints for the constraints the next click would create."""
    cfg = config or InferenceConfig()
    hints: List[InferredConstraint] = []
    if active_tool not in DRAWING_TOOLS:
        return hints

    if cfg.enable_coincident and current_snap is not None:
        kind = current_snap.snap_type
        if kind in (SnapType.ENDPOINT, SnapType.CENTER, SnapType.MIDPOINT, SnapType.INTERSECTION):
            hints.append(InferredConstraint(
                type=InferenceType.COINCIDENT,
                entities=[current_snap.entity_id] if current_snap.entity_id else [],
                display_position=current_snap.position,
                confidence=max(0.0, 1.0 - current_snap.distance / snap_radius),
            ))
        elif kind == SnapType.ORIGIN:
            hints.append(InferredConstraint(
                type=InferenceType.COINCIDENT,
                entities=["origin"],
                display_position=(0.0, 0.0),
            ))

    hard_snap = current_snap is not None and current_snap.is_hard
    if start_point is None or active_tool != "line" or hard_snap:
        return hints

    mid = midpoint(start_point, cursor)
    dx = cursor[0] - start_point[0]
    dy = cursor[1] - start_point[1]
    if math.hypot(dx, dy) < _MIN_DIRECTION_LENGTH:
        return hints
    current = math.atan2(dy, dx)

    if cfg.enable_hv:
        abs_angle = abs(current)
        h_diff = min(abs_angle, abs(abs_angle - math.pi))
        v_diff = abs(abs_angle - math.pi / 2.0)
        if h_diff < cfg.angle_tolerance:
            hints.append(InferredConstraint(
                InferenceType.HORIZONTAL, [], mid, 1.0 - h_diff / cfg.angle_tolerance,
            ))
        elif v_diff < cfg.angle_tolerance:
            hints.append(InferredConstraint(
                InferenceType.VERTICAL, [], mid, 1.0 - v_diff / cfg.angle_tolerance,
            ))

    if cfg.enable_parallel_perp:
        tol = cfg.parallel_tolerance
        for line_id, line in _line_candidates(sketch, cfg.max_parallel_candidates):
            diff = _undirected_angle_diff(
                current, math.atan2(line.end[1] - line.start[1], line.end[0] - line.start[0]),
            )
            if diff < tol:
                hints.append(InferredConstraint(
                    InferenceType.PARALLEL, [line_id], mid, 1.0 - diff / tol,
                ))
                break
            perp_diff = abs(diff - math.pi / 2.0)
            if perp_diff < tol:
                hints.append(InferredConstraint(
                    InferenceType.PERPENDICULAR, [line_id], mid, 1.0 - perp_diff / tol,
                ))
                break

    return hints


def has_inference(hints: List[InferredConstraint], kind: InferenceType) -> bool:
    return any(h.type == kind for h in hints)


def strongest_inference(
    hints: List[InferredConstraint], kind: InferenceType,
) -> Optional[InferredConstraint]:
    of_kind = [h for h in hints if h.type == kind]
    if not of_kind:
        return None
    return max(of_kind, key=lambda h: h.confidence)
