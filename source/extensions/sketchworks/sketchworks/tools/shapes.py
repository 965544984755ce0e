"""
Composite drawing tools: Rectangle, Polygon and Slot.

These tools add several entities in one commit together with the
constraints that keep the shape intact (corners coincident, sides
horizontal / vertical, equal spokes, tangent slot ends, ...).
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

from ..kernel.constraints import (
    Coincident,
    ConstraintPoint,
    Equal,
    Horizontal,
    Parallel,
    Tangent,
    Vertical,
)
from ..kernel.geometry import Point2, distance
from ..kernel.inference import apply_auto_constraints
from ..kernel.sketch import ArcGeometry, LineGeometry, SketchEntity
from ..kernel.snapping import SnapPoint
from .base import SketchTool
from .primitives import MIN_SIZE

POLYGON_SIDES = 6
SLOT_DEFAULT_RADIUS = 1.0


def _coincident(id_a: str, index_a: int, id_b: str, index_b: int) -> Coincident:
    return Coincident(points=(ConstraintPoint(id_a, index_a), ConstraintPoint(id_b, index_b)))


# ---------------------------------------------------------------------------
# Rectangle
# ---------------------------------------------------------------------------

class RectangleTool(SketchTool):
    """
    Two opposite corners.  Produces four lines l1..l4 joined end to start,
    l1/l3 horizontal and l2/l4 vertical.
    """

    name = "rectangle"
    preview_prefix = "preview_rect"

    def __init__(self, context):
        super().__init__(context)
        self._start: Optional[Point2] = None
        self._start_snap: Optional[SnapPoint] = None

    def reset(self):
        self._start = None
        self._start_snap = None

    def prompt(self) -> str:
        return "Rectangle: click first corner"

    @staticmethod
    def corners(p1: Point2, p2: Point2) -> List[Point2]:
        return [(p1[0], p1[1]), (p2[0], p1[1]), (p2[0], p2[1]), (p1[0], p2[1])]

    def _lines(self, p1: Point2, p2: Point2, ids: List[str]) -> List[SketchEntity]:
        verts = self.corners(p1, p2)
        return [
            self._entity(LineGeometry(start=verts[i], end=verts[(i + 1) % 4]), ids[i])
            for i in range(4)
        ]

    def pointer_down(self, u, v, event=None):
        pos, snap = self._snapped(u, v)
        if self._start is None:
            self._start, self._start_snap = pos, snap
            self._emit_status(
                f"Corner 1 ({pos[0]:.1f}, {pos[1]:.1f}): click opposite corner"
            )
            return

        w = abs(pos[0] - self._start[0])
        h = abs(pos[1] - self._start[1])
        if w < MIN_SIZE or h < MIN_SIZE:
            self._emit_status("Rectangle too small: click a different point")
            return

        sketch = self.context.sketch
        lines = self._lines(self._start, pos, [None] * 4)
        l1, l2, l3, l4 = (e.id for e in lines)
        constraints = [
            Horizontal(entity=l1),
            Vertical(entity=l2),
            Horizontal(entity=l3),
            Vertical(entity=l4),
            _coincident(l1, 1, l2, 0),
            _coincident(l2, 1, l3, 0),
            _coincident(l3, 1, l4, 0),
            _coincident(l4, 1, l1, 0),
        ]
        # First corner is l1's start, opposite corner is l3's start
        constraints += apply_auto_constraints(sketch, l1, self._start_snap, None)
        constraints += apply_auto_constraints(sketch, l3, snap, None)
        self._commit(lines, constraints)
        self._emit_status(f"Rectangle {w:.1f} x {h:.1f}: click for another")
        self.reset()

    def pointer_move(self, u, v, event=None):
        if self._start is None:
            return
        pos, _ = self._snapped(u, v)
        ids = [f"{self.preview_prefix}_{i}" for i in range(1, 5)]
        self._set_preview(self._lines(self._start, pos, ids))


# ---------------------------------------------------------------------------
# Polygon
# ---------------------------------------------------------------------------

class PolygonTool(SketchTool):
    """
    Regular polygon from its center and one vertex.

    Built from ``sides`` construction spokes (center to vertex) and
    ``sides`` perimeter edges; equal spokes and equal edges keep it regular.
    """

    name = "polygon"
    preview_prefix = "preview_poly"

    def __init__(self, context, sides: int = POLYGON_SIDES):
        super().__init__(context)
        self.sides = sides
        self._center: Optional[Point2] = None

    def reset(self):
        self._center = None

    def prompt(self) -> str:
        return f"Polygon ({self.sides} sides): click center"

    def vertices(self, center: Point2, vertex: Point2) -> List[Point2]:
        radius = distance(center, vertex)
        start = math.atan2(vertex[1] - center[1], vertex[0] - center[0])
        return [
            (
                center[0] + radius * math.cos(start + i * 2.0 * math.pi / self.sides),
                center[1] + radius * math.sin(start + i * 2.0 * math.pi / self.sides),
            )
            for i in range(self.sides)
        ]

    def _build(self, center: Point2, vertex: Point2, preview: bool):
        verts = self.vertices(center, vertex)
        n = self.sides
        spokes = [
            self._entity(
                LineGeometry(start=center, end=verts[i]),
                f"{self.preview_prefix}_s_{i}" if preview else None,
                construction=True,
            )
            for i in range(n)
        ]
        perimeter = [
            self._entity(
                LineGeometry(start=verts[i], end=verts[(i + 1) % n]),
                f"{self.preview_prefix}_p_{i}" if preview else None,
            )
            for i in range(n)
        ]
        return spokes, perimeter

    def pointer_down(self, u, v, event=None):
        pos, _ = self._snapped(u, v)
        if self._center is None:
            self._center = pos
            self._emit_status("Center placed: click a vertex")
            return

        if distance(self._center, pos) <= MIN_SIZE:
            self._emit_status("Polygon too small: click farther away")
            return

        spokes, perimeter = self._build(self._center, pos, preview=False)
        s = [e.id for e in spokes]
        p = [e.id for e in perimeter]
        n = self.sides
        constraints = [Equal(entities=(s[0], s[i])) for i in range(1, n)]
        constraints += [Equal(entities=(p[0], p[i])) for i in range(1, n)]
        constraints += [_coincident(s[0], 0, s[i], 0) for i in range(1, n)]
        for i in range(n):
            constraints.append(_coincident(s[i], 1, p[i], 0))
            constraints.append(_coincident(p[(i - 1) % n], 1, p[i], 0))

        self._commit(spokes + perimeter, constraints)
        self._emit_status(f"Polygon with {n} sides: click for another")
        self.reset()

    def pointer_move(self, u, v, event=None):
        if self._center is None:
            return
        pos, _ = self._snapped(u, v)
        if distance(self._center, pos) <= MIN_SIZE:
            return
        spokes, perimeter = self._build(self._center, pos, preview=True)
        self._set_preview(spokes + perimeter)


# ---------------------------------------------------------------------------
# Slot
# ---------------------------------------------------------------------------

class SlotTool(SketchTool):
    """
    Straight slot between two arc centers.

    Two clicks place the centers and commit with ``default_radius``.  With
    ``radius_click=True`` a third click sets the radius from its distance
    to the axis.
    """

    name = "slot"
    preview_prefix = "preview_slot"

    def __init__(self, context, default_radius: float = SLOT_DEFAULT_RADIUS,
                 radius_click: bool = False):
        super().__init__(context)
        self.default_radius = default_radius
        self.radius_click = radius_click
        self._c1: Optional[Point2] = None
        self._c2: Optional[Point2] = None

    def reset(self):
        self._c1 = None
        self._c2 = None

    def prompt(self) -> str:
        return "Slot: click first center"

    @staticmethod
    def radius_from_cursor(c1: Point2, c2: Point2, cursor: Point2) -> float:
        dx, dy = c2[0] - c1[0], c2[1] - c1[1]
        length = math.hypot(dx, dy)
        if length < MIN_SIZE:
            return SLOT_DEFAULT_RADIUS
        d = abs((cursor[0] - c1[0]) * -dy / length + (cursor[1] - c1[1]) * dx / length)
        return d if d > MIN_SIZE else 0.1

    def _build(self, c1: Point2, c2: Point2, radius: float, preview: bool):
        dx, dy = c2[0] - c1[0], c2[1] - c1[1]
        length = math.hypot(dx, dy)
        nx, ny = (-dy / length, dx / length) if length > MIN_SIZE else (0.0, 1.0)
        angle = math.atan2(dy, dx)

        def _id(suffix):
            return f"{self.preview_prefix}_{suffix}" if preview else None

        axis = self._entity(LineGeometry(start=c1, end=c2), _id("axis"), construction=True)
        a1 = self._entity(ArcGeometry(
            c1, radius, angle + math.pi / 2.0, angle + 3.0 * math.pi / 2.0), _id("a1"))
        a2 = self._entity(ArcGeometry(
            c2, radius, angle - math.pi / 2.0, angle + math.pi / 2.0), _id("a2"))
        top = self._entity(LineGeometry(
            start=(c1[0] + radius * nx, c1[1] + radius * ny),
            end=(c2[0] + radius * nx, c2[1] + radius * ny),
        ), _id("l1"))
        bottom = self._entity(LineGeometry(
            start=(c1[0] - radius * nx, c1[1] - radius * ny),
            end=(c2[0] - radius * nx, c2[1] - radius * ny),
        ), _id("l2"))
        return axis, a1, a2, top, bottom

    @staticmethod
    def _boundary_index(arc: ArcGeometry, p: Point2) -> int:
        """Arc point index (1 start, 2 end) lying at *p*."""
        return 1 if distance(arc.start_point, p) <= distance(arc.end_point, p) else 2

    def _constraints(self, axis, a1, a2, top, bottom) -> list:
        constraints = [
            _coincident(axis.id, 0, a1.id, 0),
            _coincident(axis.id, 1, a2.id, 0),
            Parallel(lines=(top.id, axis.id)),
            Parallel(lines=(bottom.id, axis.id)),
            Equal(entities=(a1.id, a2.id)),
        ]
        joins: List[Tuple[SketchEntity, int, SketchEntity]] = [
            (top, 0, a1), (bottom, 0, a1), (top, 1, a2), (bottom, 1, a2),
        ]
        for line, end, arc in joins:
            p = line.geometry.start if end == 0 else line.geometry.end
            constraints.append(
                _coincident(line.id, end, arc.id, self._boundary_index(arc.geometry, p))
            )
        constraints += [Tangent(entities=(line.id, arc.id)) for line, _, arc in joins]
        return constraints

    def _create(self, c1: Point2, c2: Point2, radius: float):
        parts = self._build(c1, c2, radius, preview=False)
        self._commit(list(parts), self._constraints(*parts))
        self._emit_status(f"Slot r={radius:.1f}: click for another")
        self.reset()

    def pointer_down(self, u, v, event=None):
        pos, _ = self._snapped(u, v)
        if self._c1 is None:
            self._c1 = pos
            self._emit_status("First center placed: click second center")
            return
        if self._c2 is None:
            if distance(self._c1, pos) < MIN_SIZE:
                self._emit_status("Slot too short: click a different point")
                return
            if not self.radius_click:
                self._create(self._c1, pos, self.default_radius)
                return
            self._c2 = pos
            self._emit_status("Second center placed: click to set radius")
            return
        self._create(self._c1, self._c2, self.radius_from_cursor(self._c1, self._c2, pos))

    def pointer_move(self, u, v, event=None):
        if self._c1 is None:
            return
        pos, _ = self._snapped(u, v)
        if self._c2 is None:
            c2, radius = pos, self.default_radius
        else:
            c2, radius = self._c2, self.radius_from_cursor(self._c1, self._c2, pos)
        self._set_preview(list(self._build(self._c1, c2, radius, preview=True)))
