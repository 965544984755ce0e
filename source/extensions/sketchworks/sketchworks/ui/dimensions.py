"""
Dimension Interaction — annotation layout, drag-to-reposition and value edits.

:class:`DimensionRenderer` turns every dimensional constraint of a sketch
into a :class:`DimensionGraphic`: extension / dimension lines, an optional
arc, the value text and a pickable :class:`DimensionHitbox`.  Everything
is expressed in plane-local ``(u, v)`` coordinates; the viewport lifts it
to 3D with the sketch plane.

Offsets live in each dimension's own frame:

==============================  ==========================================
Distance / point-line / lines   ``(along axis, away from the geometry)``
Horizontal distance             ``offset[1]`` moves the dimension line in y
Vertical distance               ``offset[0]`` moves the dimension line in x
Radius                          ``offset[0]`` is the leader angle (radians)
Angle                           ``offset[1]`` grows the arc radius
==============================  ==========================================

:class:`DimensionDragController` edits those offsets while a hitbox is
dragged.  Drag updates are local only; the sketch is sent once on release.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..kernel.constraints import (
    CONSTRAINT_TAGS,
    Angle,
    DimensionStyle,
    Distance,
    DistanceParallelLines,
    DistancePointLine,
    HorizontalDistance,
    Radius,
    VerticalDistance,
    is_dimensional,
    with_style,
    with_value,
)
from ..kernel.geometry import (
    Point2,
    distance,
    line_intersection,
    midpoint,
    normalize,
    project_onto_line,
    wrap_angle,
)
from ..kernel.sketch import (
    ArcGeometry,
    CircleGeometry,
    LineGeometry,
    Sketch,
    constraint_point_position,
    line_geometry,
)
from ..session.sketch_session import SketchSession

COLOR_DRIVEN = 0x888888
COLOR_DRIVING = 0x00DDDD
COLOR_ANGLE_DRIVING = 0xFF8800

TEXT_CHAR_WIDTH = 0.1
HITBOX_HEIGHT = 0.3
BASE_EXTENSION = 1.0
RADIUS_LEADER_EXTRA = 2.0
ANGLE_BASE_RADIUS = 1.5
ANGLE_MIN_RADIUS = 0.5
ANGLE_ARC_SEGMENTS = 24

Segment = Tuple[Point2, Point2]


@dataclass
class DimensionHitbox:
    """
    Oriented text rectangle used for picking a dimension.

    ``axis`` is the measuring direction of distance-like dimensions and
    ``pivot`` the center of angle / radius dimensions; the drag controller
    reads them to convert pointer motion into offset changes.
    """
    center: Point2
    direction: Point2
    width: float
    height: float
    index: int
    constraint_type: str
    axis: Optional[Point2] = None
    pivot: Optional[Point2] = None

    @property
    def user_data(self) -> dict:
        return {
            "index": self.index,
            "type": self.constraint_type,
            "dir": self.axis,
            "center": self.pivot,
        }

    def contains(self, p: Point2) -> bool:
        dx, dy = p[0] - self.center[0], p[1] - self.center[1]
        ux, uy = self.direction
        along = dx * ux + dy * uy
        across = -dx * uy + dy * ux
        return abs(along) <= self.width / 2.0 and abs(across) <= self.height / 2.0


@dataclass
class DimensionGraphic:
    index: int
    constraint_type: str
    text: str
    text_position: Point2
    hitbox: DimensionHitbox
    color: int
    lines: List[Segment] = field(default_factory=list)
    arc_points: List[Point2] = field(default_factory=list)


def dimension_text(constraint) -> str:
    if isinstance(constraint, Angle):
        return f"{math.degrees(constraint.value):.1f}°"
    if isinstance(constraint, Radius):
        return f"R{constraint.value:.2f}"
    return f"{constraint.value:.2f}"


def _style(constraint) -> DimensionStyle:
    return constraint.style or DimensionStyle()


def _perp(d: Point2) -> Point2:
    return (-d[1], d[0])


class DimensionRenderer:
    """Lays out every visible dimension of a sketch."""

    def render(self, sketch: Sketch) -> List[DimensionGraphic]:
        """Graphics for every unsuppressed dimension that carries a style."""
        graphics = []
        for index, entry in enumerate(sketch.constraints):
            if entry.suppressed or not is_dimensional(entry.constraint):
                continue
            # Only styled dimensions are annotated
            if entry.constraint.style is None:
                continue
            graphic = self.render_constraint(sketch, index, entry.constraint)
            if graphic is not None:
                graphics.append(graphic)
        return graphics

    def render_constraint(self, sketch: Sketch, index: int, constraint) -> Optional[DimensionGraphic]:
        if isinstance(constraint, Distance):
            return self._distance(sketch, index, constraint)
        if isinstance(constraint, HorizontalDistance):
            return self._horizontal(sketch, index, constraint)
        if isinstance(constraint, VerticalDistance):
            return self._vertical(sketch, index, constraint)
        if isinstance(constraint, DistancePointLine):
            return self._point_line(sketch, index, constraint)
        if isinstance(constraint, DistanceParallelLines):
            return self._parallel_lines(sketch, index, constraint)
        if isinstance(constraint, Radius):
            return self._radius(sketch, index, constraint)
        if isinstance(constraint, Angle):
            return self._angle(sketch, index, constraint)
        return None

    # -- Helpers --------------------------------------------------------------

    def _graphic(
        self, index, constraint, text_pos, direction, lines,
        axis=None, pivot=None, arc_points=None,
    ) -> DimensionGraphic:
        text = dimension_text(constraint)
        style = _style(constraint)
        if style.driven:
            color = COLOR_DRIVEN
        elif isinstance(constraint, Angle):
            color = COLOR_ANGLE_DRIVING
        else:
            color = COLOR_DRIVING
        tag = CONSTRAINT_TAGS[constraint.ctype]
        hitbox = DimensionHitbox(
            center=text_pos,
            direction=direction,
            width=len(text) * TEXT_CHAR_WIDTH,
            height=HITBOX_HEIGHT,
            index=index,
            constraint_type=tag,
            axis=axis,
            pivot=pivot,
        )
        return DimensionGraphic(
            index=index,
            constraint_type=tag,
            text=text,
            text_position=text_pos,
            hitbox=hitbox,
            color=color,
            lines=lines,
            arc_points=arc_points or [],
        )

    def _aligned(self, index, constraint, p1: Point2, p2: Point2, axis: Point2):
        """
        Aligned layout: extension lines from *p1* / *p2*, dimension line
        parallel to *axis* at the perpendicular offset.
        """
        off = _style(constraint).offset
        n = _perp(axis)
        h = BASE_EXTENSION + off[1]
        d_start = (p1[0] + n[0] * h, p1[1] + n[1] * h)
        along = (p2[0] - d_start[0]) * axis[0] + (p2[1] - d_start[1]) * axis[1]
        d_end = (d_start[0] + axis[0] * along, d_start[1] + axis[1] * along)
        mid = midpoint(d_start, d_end)
        text_pos = (mid[0] + axis[0] * off[0], mid[1] + axis[1] * off[0])
        lines = [(p1, d_start), (p2, d_end), (d_start, d_end)]
        return self._graphic(index, constraint, text_pos, axis, lines, axis=axis)

    # -- Distance-like --------------------------------------------------------

    def _distance(self, sketch, index, c: Distance):
        cp1, cp2 = c.points
        p1 = constraint_point_position(sketch, cp1)
        p2 = constraint_point_position(sketch, cp2)
        if p1 is None or p2 is None:
            return None

        axis = normalize(p2[0] - p1[0], p2[1] - p1[1]) or (1.0, 0.0)
        line1 = line_geometry(sketch, cp1.id)
        line2 = line_geometry(sketch, cp2.id)
        if cp1.id == cp2.id and line1 is not None:
            # Both ends of one line: measure along the line itself
            axis = normalize(line1.end[0] - line1.start[0], line1.end[1] - line1.start[1]) or axis
        else:
            line = line1 if line1 is not None else line2
            if line is not None and line.length > 0.001:
                u = normalize(line.end[0] - line.start[0], line.end[1] - line.start[1])
                axis = _perp(u)
                if (p2[0] - p1[0]) * axis[0] + (p2[1] - p1[1]) * axis[1] < 0:
                    axis = (-axis[0], -axis[1])
        return self._aligned(index, c, p1, p2, axis)

    def _point_line(self, sketch, index, c: DistancePointLine):
        p = constraint_point_position(sketch, c.point)
        line = line_geometry(sketch, c.line)
        if p is None or line is None:
            return None
        return self._to_line(index, c, p, line)

    def _parallel_lines(self, sketch, index, c: DistanceParallelLines):
        l1 = line_geometry(sketch, c.lines[0])
        l2 = line_geometry(sketch, c.lines[1])
        if l1 is None or l2 is None:
            return None
        return self._to_line(index, c, l2.midpoint, l1)

    def _to_line(self, index, c, p: Point2, line: LineGeometry):
        foot = project_onto_line(p, line.start, line.end)
        if foot is None:
            return None
        axis = normalize(p[0] - foot[0], p[1] - foot[1])
        if axis is None:
            u = normalize(line.end[0] - line.start[0], line.end[1] - line.start[1])
            axis = _perp(u)
        return self._aligned(index, c, foot, p, axis)

    def _horizontal(self, sketch, index, c: HorizontalDistance):
        p1 = constraint_point_position(sketch, c.points[0])
        p2 = constraint_point_position(sketch, c.points[1])
        if p1 is None or p2 is None:
            return None
        off = _style(c).offset
        y = (p1[1] + p2[1]) / 2.0 + off[1]
        d_start, d_end = (p1[0], y), (p2[0], y)
        lines = [(p1, d_start), (p2, d_end), (d_start, d_end)]
        return self._graphic(index, c, midpoint(d_start, d_end), (1.0, 0.0), lines, axis=(1.0, 0.0))

    def _vertical(self, sketch, index, c: VerticalDistance):
        p1 = constraint_point_position(sketch, c.points[0])
        p2 = constraint_point_position(sketch, c.points[1])
        if p1 is None or p2 is None:
            return None
        off = _style(c).offset
        x = (p1[0] + p2[0]) / 2.0 + off[0]
        d_start, d_end = (x, p1[1]), (x, p2[1])
        lines = [(p1, d_start), (p2, d_end), (d_start, d_end)]
        return self._graphic(index, c, midpoint(d_start, d_end), (0.0, 1.0), lines, axis=(0.0, 1.0))

    # -- Radial ---------------------------------------------------------------

    def _radius(self, sketch, index, c: Radius):
        entity = sketch.get_entity(c.entity)
        if entity is None or not isinstance(entity.geometry, (CircleGeometry, ArcGeometry)):
            return None
        center, r = entity.geometry.center, entity.geometry.radius
        angle = _style(c).offset[0]
        d = (math.cos(angle), math.sin(angle))
        leader_end = (center[0] + (r + RADIUS_LEADER_EXTRA) * d[0],
                      center[1] + (r + RADIUS_LEADER_EXTRA) * d[1])
        return self._graphic(index, c, leader_end, d, [(center, leader_end)], pivot=center)

    def _angle(self, sketch, index, c: Angle):
        l1 = line_geometry(sketch, c.lines[0])
        l2 = line_geometry(sketch, c.lines[1])
        if l1 is None or l2 is None:
            return None

        center = line_intersection(l1.start, l1.end, l2.start, l2.end)
        if center is None:
            center = midpoint(l1.end, l2.start)
        radius = max(ANGLE_MIN_RADIUS, ANGLE_BASE_RADIUS + _style(c).offset[1])

        def _far_end(line: LineGeometry) -> Point2:
            if distance(line.end, center) > distance(line.start, center):
                return line.end
            return line.start

        f1, f2 = _far_end(l1), _far_end(l2)
        start = math.atan2(f1[1] - center[1], f1[0] - center[0])
        diff = wrap_angle(math.atan2(f2[1] - center[1], f2[0] - center[0]) - start)

        arc = [
            (center[0] + radius * math.cos(start + diff * i / ANGLE_ARC_SEGMENTS),
             center[1] + radius * math.sin(start + diff * i / ANGLE_ARC_SEGMENTS))
            for i in range(ANGLE_ARC_SEGMENTS + 1)
        ]
        mid_angle = start + diff / 2.0
        text_pos = (center[0] + 1.5 * radius * math.cos(mid_angle),
                    center[1] + 1.5 * radius * math.sin(mid_angle))
        lines = [(center, arc[0]), (center, arc[-1])]
        direction = _perp((math.cos(mid_angle), math.sin(mid_angle)))
        return self._graphic(index, c, text_pos, direction, lines, pivot=center, arc_points=arc)


# ---------------------------------------------------------------------------
# Drag and edit
# ---------------------------------------------------------------------------

_ALIGNED_TYPES = ("Distance", "DistancePointLine", "DistanceParallelLines")


class DimensionDragController:
    """
    Drags a dimension annotation by its hitbox.

    ``controls`` is the camera controller; its ``enabled`` flag is cleared
    for the duration of a drag and always restored on release.
    """

    def __init__(self, session: SketchSession, controls=None):
        self.session = session
        self.controls = controls
        self._hitbox: Optional[DimensionHitbox] = None
        self._start_local: Optional[Point2] = None
        self._start_offset: Tuple[float, float] = (0.0, 0.0)

    @property
    def is_dragging(self) -> bool:
        return self._hitbox is not None

    def pointer_down(self, hitbox: DimensionHitbox, local: Point2) -> bool:
        entries = self.session.sketch.constraints
        if hitbox.index < 0 or hitbox.index >= len(entries):
            return False
        constraint = entries[hitbox.index].constraint
        if not is_dimensional(constraint):
            return False
        self._hitbox = hitbox
        self._start_local = (float(local[0]), float(local[1]))
        self._start_offset = _style(constraint).offset
        self._set_controls(False)
        return True

    def drag_offset(self, local: Point2) -> Optional[Tuple[float, float]]:
        """Offset the dragged dimension would take with the pointer at *local*."""
        hb = self._hitbox
        if hb is None:
            return None
        sx, sy = self._start_local
        dx, dy = local[0] - sx, local[1] - sy
        o0, o1 = self._start_offset
        kind = hb.constraint_type

        if kind in _ALIGNED_TYPES:
            ax, ay = hb.axis or (1.0, 0.0)
            return (o0 + dx * ax + dy * ay, o1 + dx * -ay + dy * ax)
        if kind == "HorizontalDistance":
            return (o0, o1 + dy)
        if kind == "VerticalDistance":
            return (o0 + dx, o1)
        if kind == "Angle" and hb.pivot is not None:
            return (o0, o1 + distance(local, hb.pivot) - distance(self._start_local, hb.pivot))
        if kind == "Radius" and hb.pivot is not None:
            cx, cy = hb.pivot
            delta = math.atan2(local[1] - cy, local[0] - cx) - math.atan2(sy - cy, sx - cx)
            return (o0 + delta, o1)
        return None

    def pointer_move(self, local: Point2) -> Optional[Tuple[float, float]]:
        offset = self.drag_offset(local)
        if offset is None:
            return None
        index = self._hitbox.index
        entries = self.session.sketch.constraints
        if index >= len(entries):
            return None
        constraint = entries[index].constraint
        updated = with_style(constraint, _style(constraint).with_offset(offset))
        self.session.replace_constraint(index, updated, send=False)
        return offset

    def pointer_up(self) -> bool:
        """End the drag and send the sketch.  Returns True if it was sent."""
        was_dragging = self.is_dragging
        try:
            if was_dragging:
                return self.session.send()
            return False
        finally:
            self._hitbox = None
            self._start_local = None
            self._set_controls(True)

    def _set_controls(self, enabled: bool):
        if self.controls is not None:
            self.controls.enabled = enabled


def edit_dimension_value(
    session: SketchSession,
    index: int,
    value: float,
    expression: Optional[str] = None,
) -> bool:
    """Change the value (and optionally the expression) of dimension *index*."""
    entries = session.sketch.constraints
    if index < 0 or index >= len(entries):
        return False
    constraint = entries[index].constraint
    if not is_dimensional(constraint):
        print(f"[SketchWorks] Constraint {index} is not a dimension")
        return False
    if value < 0:
        print(f"[SketchWorks] Rejected negative dimension value {value}")
        return False
    return session.replace_constraint(index, with_value(constraint, value, expression))
