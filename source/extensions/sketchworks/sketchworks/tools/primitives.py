"""
Single-entity drawing tools: Point, Line, Circle, Arc and Ellipse.

Each click position is taken from the current snap when there is one.
Coincident constraints are inferred from the snaps captured at the
defining clicks; the Line tool additionally locks near-H/V and
near-parallel/perpendicular directions and records the matching
constraint.
"""

from __future__ import annotations

import math
from typing import Optional

from ..kernel.geometry import Point2, distance
from ..kernel.inference import (
    apply_auto_constraints,
    check_constraint_snap,
    infer_line_constraints,
)
from ..kernel.sketch import (
    ArcGeometry,
    CircleGeometry,
    EllipseGeometry,
    LineGeometry,
    PointGeometry,
)
from ..kernel.snapping import SnapPoint
from .base import SketchTool

MIN_SIZE = 0.001


class PointTool(SketchTool):
    """One click places a point."""

    name = "point"
    preview_prefix = "preview_point"

    def reset(self):
        pass

    def prompt(self) -> str:
        return "Point: click to place"

    def pointer_down(self, u, v, event=None):
        pos, snap = self._snapped(u, v)
        entity = self._entity(PointGeometry(pos=pos))
        constraints = apply_auto_constraints(self.context.sketch, entity.id, snap, None)
        self._commit([entity], constraints)
        self._emit_status(f"Point at ({pos[0]:.1f}, {pos[1]:.1f})")

    def pointer_move(self, u, v, event=None):
        pos, _ = self._snapped(u, v)
        self._set_preview([self._entity(PointGeometry(pos=pos), self.preview_prefix)])


class LineTool(SketchTool):
    """
    Two clicks: start, then end.  The tool resets after each segment.

    While the second point is being placed the direction is locked to
    horizontal / vertical, then to parallel / perpendicular of an existing
    line, unless a geometry snap is active.
    """

    name = "line"
    preview_prefix = "preview_line"

    def __init__(self, context):
        super().__init__(context)
        self._start: Optional[Point2] = None
        self._start_snap: Optional[SnapPoint] = None

    @property
    def start_point(self) -> Optional[Point2]:
        return self._start

    def reset(self):
        self._start = None
        self._start_snap = None

    def prompt(self) -> str:
        return "Line: click start point"

    def _end_point(self, u, v):
        pos, snap = self._snapped(u, v)
        pos, constraint_snap = check_constraint_snap(
            self._start, pos, snap, self.context.sketch, self.context.inference_config,
        )
        return pos, snap, constraint_snap

    def pointer_down(self, u, v, event=None):
        if self._start is None:
            self._start, self._start_snap = self._snapped(u, v)
            self._emit_status(
                f"Start ({self._start[0]:.1f}, {self._start[1]:.1f}): click end point"
            )
            return

        end, end_snap, constraint_snap = self._end_point(u, v)
        if distance(self._start, end) < MIN_SIZE:
            self._emit_status("Line too short: click a different point")
            return

        sketch = self.context.sketch
        entity = self._entity(LineGeometry(start=self._start, end=end))
        constraints = apply_auto_constraints(sketch, entity.id, self._start_snap, end_snap)
        constraints += infer_line_constraints(entity.id, constraint_snap)
        self._commit([entity], constraints)
        self._emit_status(f"Line to ({end[0]:.1f}, {end[1]:.1f}): click next start point")
        self.reset()

    def pointer_move(self, u, v, event=None):
        if self._start is None:
            return
        end, _, _ = self._end_point(u, v)
        self._set_preview([
            self._entity(LineGeometry(start=self._start, end=end), self.preview_prefix)
        ])


class CircleTool(SketchTool):
    """Center click, then a click on the rim."""

    name = "circle"
    preview_prefix = "preview_circle"

    def __init__(self, context):
        super().__init__(context)
        self._center: Optional[Point2] = None
        self._center_snap: Optional[SnapPoint] = None

    def reset(self):
        self._center = None
        self._center_snap = None

    def prompt(self) -> str:
        return "Circle: click to place center"

    def pointer_down(self, u, v, event=None):
        pos, snap = self._snapped(u, v)
        if self._center is None:
            self._center, self._center_snap = pos, snap
            self._emit_status(f"Center ({pos[0]:.1f}, {pos[1]:.1f}): click to set radius")
            return

        radius = distance(self._center, pos)
        if radius < MIN_SIZE:
            self._emit_status("Radius too small: click farther away")
            return

        entity = self._entity(CircleGeometry(center=self._center, radius=radius))
        constraints = apply_auto_constraints(
            self.context.sketch, entity.id, self._center_snap, None,
        )
        self._commit([entity], constraints)
        self._emit_status(f"Circle r={radius:.1f}: click for another")
        self.reset()

    def pointer_move(self, u, v, event=None):
        if self._center is None:
            return
        pos, _ = self._snapped(u, v)
        geom = CircleGeometry(center=self._center, radius=distance(self._center, pos))
        self._set_preview([self._entity(geom, self.preview_prefix)])


class ArcTool(SketchTool):
    """
    Three clicks: center, start point (sets the radius), end point (sets
    the end angle).  The arc runs counter-clockwise from start to end.
    """

    name = "arc"
    preview_prefix = "preview_arc"

    def __init__(self, context):
        super().__init__(context)
        self._center: Optional[Point2] = None
        self._start: Optional[Point2] = None
        self._center_snap: Optional[SnapPoint] = None

    def reset(self):
        self._center = None
        self._start = None
        self._center_snap = None

    def prompt(self) -> str:
        return "Arc: click to place center"

    def _angle_to(self, p: Point2) -> float:
        return math.atan2(p[1] - self._center[1], p[0] - self._center[0])

    def pointer_down(self, u, v, event=None):
        pos, snap = self._snapped(u, v)
        if self._center is None:
            self._center, self._center_snap = pos, snap
            self._emit_status("Center placed: click arc start")
            return
        if self._start is None:
            if distance(self._center, pos) < MIN_SIZE:
                self._emit_status("Radius too small: click farther away")
                return
            self._start = pos
            self._emit_status("Start placed: click arc end")
            return

        geom = ArcGeometry(
            center=self._center,
            radius=distance(self._center, self._start),
            start_angle=self._angle_to(self._start),
            end_angle=self._angle_to(pos),
        )
        entity = self._entity(geom)
        constraints = apply_auto_constraints(
            self.context.sketch, entity.id, self._center_snap, None,
        )
        self._commit([entity], constraints)
        self._emit_status(f"Arc r={geom.radius:.1f}: click for another")
        self.reset()

    def pointer_move(self, u, v, event=None):
        if self._center is None:
            return
        pos, _ = self._snapped(u, v)
        if self._start is None:
            radius = distance(self._center, pos)
            start_angle = end_angle = self._angle_to(pos)
        else:
            radius = distance(self._center, self._start)
            start_angle = self._angle_to(self._start)
            end_angle = self._angle_to(pos)
        geom = ArcGeometry(self._center, radius, start_angle, end_angle)
        self._set_preview([self._entity(geom, self.preview_prefix)])


class EllipseTool(SketchTool):
    """
    Three clicks: center, end of the major axis, then a point that sets
    the minor radius (its distance from the major axis).
    """

    name = "ellipse"
    preview_prefix = "preview_ellipse"

    def __init__(self, context):
        super().__init__(context)
        self._center: Optional[Point2] = None
        self._major_end: Optional[Point2] = None
        self._center_snap: Optional[SnapPoint] = None

    def reset(self):
        self._center = None
        self._major_end = None
        self._center_snap = None

    def prompt(self) -> str:
        return "Ellipse: click to place center"

    def _geometry(self, major_end: Point2, cursor: Optional[Point2]) -> EllipseGeometry:
        dx = major_end[0] - self._center[0]
        dy = major_end[1] - self._center[1]
        semi_major = math.hypot(dx, dy)
        rotation = math.atan2(dy, dx)
        if cursor is None:
            semi_minor = semi_major * 0.5
        else:
            ux, uy = (dx / semi_major, dy / semi_major) if semi_major > 0 else (1.0, 0.0)
            vx = cursor[0] - self._center[0]
            vy = cursor[1] - self._center[1]
            semi_minor = abs(vx * -uy + vy * ux)
            if semi_minor <= 1e-6:
                semi_minor = 0.1
        return EllipseGeometry(self._center, semi_major, semi_minor, rotation)

    def pointer_down(self, u, v, event=None):
        pos, snap = self._snapped(u, v)
        if self._center is None:
            self._center, self._center_snap = pos, snap
            self._emit_status("Center placed: click end of major axis")
            return
        if self._major_end is None:
            if distance(self._center, pos) < MIN_SIZE:
                self._emit_status("Major axis too small: click farther away")
                return
            self._major_end = pos
            self._emit_status("Major axis placed: click to set minor radius")
            return

        entity = self._entity(self._geometry(self._major_end, pos))
        constraints = apply_auto_constraints(
            self.context.sketch, entity.id, self._center_snap, None,
        )
        self._commit([entity], constraints)
        self._emit_status("Ellipse created: click for another")
        self.reset()

    def pointer_move(self, u, v, event=None):
        if self._center is None:
            return
        pos, _ = self._snapped(u, v)
        if self._major_end is None:
            if distance(self._center, pos) < 1e-9:
                return
            geom = self._geometry(pos, None)
        else:
            geom = self._geometry(self._major_end, pos)
        self._set_preview([self._entity(geom, self.preview_prefix)])
