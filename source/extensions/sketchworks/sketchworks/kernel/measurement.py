"""
Dimension proposal and ephemeral measurement.

Both the Dimension tool and the Measure tool accumulate a small list of
:class:`SelectionCandidate` objects.  From that list:

* :func:`propose_dimension` decides which dimensional constraint the
  selection describes (and, for two points, which of Distance /
  Horizontal / Vertical the mouse position asks for);
* :func:`build_dimension_constraint` turns a proposal into a driving
  constraint with a :class:`DimensionStyle`;
* :func:`compute_measurement` produces a read-out that is never written
  to the sketch.

Nothing here raises for unusable selections; the result is ``None``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple

from .constraints import (
    Angle,
    ConstraintPoint,
    DimensionStyle,
    Distance,
    DistanceParallelLines,
    DistancePointLine,
    HorizontalDistance,
    Parallel,
    Radius,
    VerticalDistance,
    origin_point,
)
from .geometry import Point2, distance, midpoint
from .sketch import (
    ArcGeometry,
    CircleGeometry,
    LineGeometry,
    PointGeometry,
    Sketch,
    constraint_point_position,
)

CANDIDATE_ENTITY = "entity"
CANDIDATE_POINT = "point"
CANDIDATE_ORIGIN = "origin"

DEFAULT_OFFSET = (0.0, 1.0)
RADIUS_OFFSET = (0.7, 0.7)


@dataclass(frozen=True)
class SelectionCandidate:
    """
    One picked thing in a dimension / measurement selection.

    ``kind`` is ``"entity"`` (a whole entity), ``"point"`` (a canonical
    point ``index`` on entity ``id``) or ``"origin"``.
    """
    id: str
    kind: str = CANDIDATE_ENTITY
    index: Optional[int] = None
    position: Optional[Point2] = None

    def same_target(self, other: "SelectionCandidate") -> bool:
        return self.id == other.id and self.kind == other.kind and self.index == other.index

    def to_constraint_point(self) -> ConstraintPoint:
        if self.kind == CANDIDATE_ORIGIN:
            return origin_point()
        return ConstraintPoint(self.id, self.index or 0)


def toggle_candidate(
    selection: List[SelectionCandidate], candidate: SelectionCandidate,
) -> List[SelectionCandidate]:
    """Add *candidate*, or remove it if already selected."""
    kept = [c for c in selection if not c.same_target(candidate)]
    if len(kept) != len(selection):
        return kept
    return selection + [candidate]


class DimensionKind(Enum):
    LENGTH = auto()
    RADIUS = auto()
    DISTANCE = auto()
    HORIZONTAL_DISTANCE = auto()
    VERTICAL_DISTANCE = auto()
    DISTANCE_POINT_LINE = auto()
    DISTANCE_PARALLEL_LINES = auto()
    ANGLE = auto()


@dataclass
class DimensionProposal:
    kind: DimensionKind
    value: float
    label: str
    selection: List[SelectionCandidate] = field(default_factory=list)
    # Point-to-line only: which selected entity is the line
    line_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Candidate resolution
# ---------------------------------------------------------------------------

def _entity_geometry(sketch: Sketch, c: SelectionCandidate):
    if c.kind == CANDIDATE_ORIGIN:
        return None
    entity = sketch.get_entity(c.id)
    return entity.geometry if entity is not None else None


def candidate_position(sketch: Sketch, c: SelectionCandidate) -> Optional[Point2]:
    """2D position a candidate stands for (origin, point, or entity anchor)."""
    if c.kind == CANDIDATE_ORIGIN:
        return (0.0, 0.0)
    if c.kind == CANDIDATE_POINT:
        pos = constraint_point_position(sketch, c.to_constraint_point())
        return pos if pos is not None else c.position
    geom = _entity_geometry(sketch, c)
    if isinstance(geom, PointGeometry):
        return geom.pos
    if isinstance(geom, LineGeometry):
        return geom.start
    if isinstance(geom, (CircleGeometry, ArcGeometry)):
        return geom.center
    return None


def is_point_like(sketch: Sketch, c: SelectionCandidate) -> bool:
    if c.kind in (CANDIDATE_POINT, CANDIDATE_ORIGIN):
        return True
    return isinstance(_entity_geometry(sketch, c), PointGeometry)


def _candidate_line(sketch: Sketch, c: SelectionCandidate) -> Optional[LineGeometry]:
    if c.kind != CANDIDATE_ENTITY:
        return None
    geom = _entity_geometry(sketch, c)
    return geom if isinstance(geom, LineGeometry) else None


# ---------------------------------------------------------------------------
# Proposal
# ---------------------------------------------------------------------------

def dimension_mode_from_mouse(p1: Point2, p2: Point2, mouse: Optional[Point2]) -> DimensionKind:
    """
    Distance, Horizontal or Vertical, from where the mouse sits relative to
    the bounding box of the two points.
    """
    if mouse is None:
        return DimensionKind.DISTANCE
    min_x, max_x = min(p1[0], p2[0]), max(p1[0], p2[0])
    min_y, max_y = min(p1[1], p2[1]), max(p1[1], p2[1])
    mx, my = mouse
    outside_h = mx < min_x or mx > max_x
    outside_v = my < min_y or my > max_y

    if outside_h and not outside_v:
        return DimensionKind.HORIZONTAL_DISTANCE
    if outside_v and not outside_h:
        return DimensionKind.VERTICAL_DISTANCE
    if outside_h and outside_v:
        to_vertical_edge = min(abs(mx - min_x), abs(mx - max_x))
        to_horizontal_edge = min(abs(my - min_y), abs(my - max_y))
        if to_vertical_edge < to_horizontal_edge:
            return DimensionKind.HORIZONTAL_DISTANCE
        return DimensionKind.VERTICAL_DISTANCE
    return DimensionKind.DISTANCE


def _lines_constrained_parallel(sketch: Sketch, id1: str, id2: str) -> bool:
    pair = {id1, id2}
    for c in sketch.active_constraints():
        if isinstance(c, Parallel) and set(c.lines) == pair:
            return True
        if isinstance(c, Angle) and set(c.lines) == pair:
            if abs(c.value) < 0.01 or abs(c.value - math.pi) < 0.01:
                return True
    return False


def _perpendicular_distance(p: Point2, line: LineGeometry) -> Optional[float]:
    lx = line.end[0] - line.start[0]
    ly = line.end[1] - line.start[1]
    length = math.hypot(lx, ly)
    if length <= 1e-4:
        return None
    nx, ny = -ly / length, lx / length
    return abs((p[0] - line.start[0]) * nx + (p[1] - line.start[1]) * ny)


def propose_dimension(
    sketch: Sketch,
    selection: List[SelectionCandidate],
    mouse: Optional[Point2] = None,
) -> Optional[DimensionProposal]:
    """The dimension the current selection describes, or ``None``."""
    sel = list(selection)

    if len(sel) == 1:
        c = sel[0]
        if c.kind != CANDIDATE_ENTITY:
            return None
        geom = _entity_geometry(sketch, c)
        if isinstance(geom, LineGeometry):
            return DimensionProposal(DimensionKind.LENGTH, geom.length, f"Length ({geom.length:.2f})", sel)
        if isinstance(geom, (CircleGeometry, ArcGeometry)):
            return DimensionProposal(DimensionKind.RADIUS, geom.radius, f"Radius (R{geom.radius:.2f})", sel)
        return None

    if len(sel) != 2:
        return None
    c1, c2 = sel

    if is_point_like(sketch, c1) and is_point_like(sketch, c2):
        p1 = candidate_position(sketch, c1)
        p2 = candidate_position(sketch, c2)
        if p1 is None or p2 is None:
            return None
        mode = dimension_mode_from_mouse(p1, p2, mouse)
        if mode == DimensionKind.HORIZONTAL_DISTANCE:
            value = abs(p2[0] - p1[0])
            return DimensionProposal(mode, value, f"Horizontal ({value:.2f})", sel)
        if mode == DimensionKind.VERTICAL_DISTANCE:
            value = abs(p2[1] - p1[1])
            return DimensionProposal(mode, value, f"Vertical ({value:.2f})", sel)
        value = distance(p1, p2)
        return DimensionProposal(mode, value, f"Distance ({value:.2f})", sel)

    if is_point_like(sketch, c1) != is_point_like(sketch, c2):
        point_c, line_c = (c1, c2) if is_point_like(sketch, c1) else (c2, c1)
        line = _candidate_line(sketch, line_c)
        p = candidate_position(sketch, point_c)
        if line is None or p is None:
            return None
        value = _perpendicular_distance(p, line)
        if value is None:
            return None
        return DimensionProposal(
            DimensionKind.DISTANCE_POINT_LINE, value, f"Distance ({value:.2f})", sel, line_id=line_c.id,
        )

    l1 = _candidate_line(sketch, c1)
    l2 = _candidate_line(sketch, c2)
    if l1 is None or l2 is None or l1.length <= 1e-4 or l2.length <= 1e-4:
        return None
    n1 = ((l1.end[0] - l1.start[0]) / l1.length, (l1.end[1] - l1.start[1]) / l1.length)
    n2 = ((l2.end[0] - l2.start[0]) / l2.length, (l2.end[1] - l2.start[1]) / l2.length)
    cross = n1[0] * n2[1] - n1[1] * n2[0]
    parallel = abs(cross) < 0.1 or _lines_constrained_parallel(sketch, c1.id, c2.id)

    if parallel:
        value = _perpendicular_distance(l2.midpoint, l1)
        if value is None:
            return None
        return DimensionProposal(DimensionKind.DISTANCE_PARALLEL_LINES, value, f"Distance ({value:.2f})", sel)

    dot = n1[0] * n2[0] + n1[1] * n2[1]
    value = math.acos(min(1.0, max(-1.0, abs(dot))))
    return DimensionProposal(DimensionKind.ANGLE, value, f"Angle ({math.degrees(value):.1f}°)", sel)


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------

def _point_line_pair(
    proposal: DimensionProposal, sketch: Optional[Sketch],
) -> Optional[Tuple[SelectionCandidate, SelectionCandidate]]:
    """``(point, line)`` candidates of a point-to-line proposal."""
    c1, c2 = proposal.selection
    if proposal.line_id is not None:
        def is_line(c):
            return c.kind == CANDIDATE_ENTITY and c.id == proposal.line_id
    elif sketch is not None:
        def is_line(c):
            return _candidate_line(sketch, c) is not None
    else:
        return None
    if is_line(c1) and not is_line(c2):
        return c2, c1
    if is_line(c2) and not is_line(c1):
        return c1, c2
    return None


def build_dimension_constraint(
    proposal: DimensionProposal,
    offset: Optional[Tuple[float, float]] = None,
    sketch: Optional[Sketch] = None,
):
    """
    Driving constraint for *proposal*, or ``None`` if the selection no longer fits.

    *sketch* is only consulted to tell the line from the point when a
    point-to-line proposal was built without ``line_id``.
    """
    sel = proposal.selection
    kind = proposal.kind
    default = RADIUS_OFFSET if kind == DimensionKind.RADIUS else DEFAULT_OFFSET
    off = offset if offset is not None else default
    style = DimensionStyle(driven=False, offset=(float(off[0]), float(off[1])))

    if kind == DimensionKind.LENGTH:
        c = sel[0]
        points = (ConstraintPoint(c.id, 0), ConstraintPoint(c.id, 1))
        return Distance(points=points, value=proposal.value, style=style)
    if kind == DimensionKind.RADIUS:
        return Radius(entity=sel[0].id, value=proposal.value, style=style)
    if len(sel) != 2:
        return None
    c1, c2 = sel

    if kind in (DimensionKind.DISTANCE, DimensionKind.HORIZONTAL_DISTANCE, DimensionKind.VERTICAL_DISTANCE):
        points = (c1.to_constraint_point(), c2.to_constraint_point())
        cls = {
            DimensionKind.DISTANCE: Distance,
            DimensionKind.HORIZONTAL_DISTANCE: HorizontalDistance,
            DimensionKind.VERTICAL_DISTANCE: VerticalDistance,
        }[kind]
        return cls(points=points, value=proposal.value, style=style)
    if kind == DimensionKind.DISTANCE_POINT_LINE:
        pair = _point_line_pair(proposal, sketch)
        if pair is None:
            return None
        point_c, line_c = pair
        return DistancePointLine(
            point=point_c.to_constraint_point(), line=line_c.id, value=proposal.value, style=style,
        )
    if kind == DimensionKind.DISTANCE_PARALLEL_LINES:
        return DistanceParallelLines(lines=(c1.id, c2.id), value=proposal.value, style=style)
    if kind == DimensionKind.ANGLE:
        return Angle(lines=(c1.id, c2.id), value=proposal.value, style=style)
    return None


def commit_dimension(
    sketch: Sketch,
    proposal: DimensionProposal,
    offset: Optional[Tuple[float, float]] = None,
) -> Optional[int]:
    """Append the proposal's constraint to *sketch*; return its index."""
    constraint = build_dimension_constraint(proposal, offset, sketch)
    if constraint is None:
        return None
    return sketch.add_constraint(constraint)


# ---------------------------------------------------------------------------
# Ephemeral measurement
# ---------------------------------------------------------------------------

class MeasurementKind(Enum):
    DISTANCE = "Distance"
    ANGLE = "Angle"
    RADIUS = "Radius"


@dataclass
class Measurement:
    """A read-out between one or two selections.  Angles are in degrees."""
    kind: MeasurementKind
    value: float
    display_position: Point2
    first: Optional[SelectionCandidate] = None
    second: Optional[SelectionCandidate] = None

    @property
    def label(self) -> str:
        if self.kind == MeasurementKind.ANGLE:
            return f"{self.value:.1f}°"
        if self.kind == MeasurementKind.RADIUS:
            return f"R{self.value:.2f}"
        return f"{self.value:.2f}"


def _point_line_distance(p: Point2, line: LineGeometry) -> Tuple[float, Point2]:
    """Distance from *p* to its projection on *line*, and the projection."""
    dx = line.end[0] - line.start[0]
    dy = line.end[1] - line.start[1]
    len_sq = dx * dx + dy * dy
    if len_sq < 1e-6:
        return distance(p, line.start), line.start
    t = ((p[0] - line.start[0]) * dx + (p[1] - line.start[1]) * dy) / len_sq
    proj = (line.start[0] + t * dx, line.start[1] + t * dy)
    return distance(p, proj), proj


def compute_measurement(
    sketch: Sketch,
    first: SelectionCandidate,
    second: Optional[SelectionCandidate] = None,
) -> Optional[Measurement]:
    """
    Measure between *first* and *second*, or the radius (or length) of
    *first* alone.  Returns ``None`` if the pair has no measurement.
    """
    geom1 = _entity_geometry(sketch, first) if first.kind == CANDIDATE_ENTITY else None

    if second is None:
        if isinstance(geom1, (CircleGeometry, ArcGeometry)):
            return Measurement(MeasurementKind.RADIUS, geom1.radius, geom1.center, first)
        if isinstance(geom1, LineGeometry):
            return Measurement(MeasurementKind.DISTANCE, geom1.length, geom1.midpoint, first)
        return None

    first_point = is_point_like(sketch, first)
    second_point = is_point_like(sketch, second)

    if first_point and second_point:
        p1 = candidate_position(sketch, first)
        p2 = candidate_position(sketch, second)
        if p1 is None or p2 is None:
            return None
        return Measurement(MeasurementKind.DISTANCE, distance(p1, p2), midpoint(p1, p2), first, second)

    if first_point:
        line = _candidate_line(sketch, second)
        p = candidate_position(sketch, first)
        if line is None or p is None:
            return None
        value, proj = _point_line_distance(p, line)
        return Measurement(MeasurementKind.DISTANCE, value, midpoint(p, proj), first, second)

    if second_point:
        return compute_measurement(sketch, second, first)

    l1 = _candidate_line(sketch, first)
    l2 = _candidate_line(sketch, second)
    if l1 is None or l2 is None:
        if isinstance(geom1, (CircleGeometry, ArcGeometry)):
            return Measurement(MeasurementKind.RADIUS, geom1.radius, geom1.center, first)
        return None

    dx1, dy1 = l1.end[0] - l1.start[0], l1.end[1] - l1.start[1]
    dx2, dy2 = l2.end[0] - l2.start[0], l2.end[1] - l2.start[1]
    if abs(dx1 * dy2 - dy1 * dx2) < 1e-6:
        value, _ = _point_line_distance(l1.start, l2)
        return Measurement(MeasurementKind.DISTANCE, value, l1.midpoint, first, second)

    angle = abs(math.atan2(dy1, dx1) - math.atan2(dy2, dx2))
    if angle > math.pi:
        angle = 2.0 * math.pi - angle
    display = (
        (l1.start[0] + l1.end[0] + l2.start[0] + l2.end[0]) / 4.0,
        (l1.start[1] + l1.end[1] + l2.start[1] + l2.end[1]) / 4.0,
    )
    return Measurement(MeasurementKind.ANGLE, math.degrees(angle), display, first, second)
