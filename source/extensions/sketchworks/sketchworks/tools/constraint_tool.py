"""
Constraint Tool: adds one geometric constraint by clicking geometry.

Single-argument kinds (Horizontal, Vertical, Fix) commit on the first hit.
Two-argument kinds (Coincident, Parallel, Perpendicular, Equal) keep the
first hit and commit when a second, different one is clicked.  A miss, or
the same target clicked twice, leaves the state unchanged.  After a
commit the tool hands back to select mode.
"""

from __future__ import annotations

from typing import List, Optional

from ..kernel.constraints import (
    CONSTRAINT_TAGS,
    Coincident,
    ConstraintPoint,
    ConstraintType,
    Equal,
    Fix,
    Horizontal,
    Parallel,
    Perpendicular,
    Vertical,
)
from ..kernel.sketch import (
    ArcGeometry,
    CircleGeometry,
    LineGeometry,
    constraint_point_position,
)
from ..kernel.snapping import (
    LINE_HIT_THRESHOLD,
    find_closest_entity,
    find_closest_line,
    find_closest_point,
)
from .base import SketchTool

SUPPORTED_CONSTRAINTS = (
    ConstraintType.HORIZONTAL,
    ConstraintType.VERTICAL,
    ConstraintType.COINCIDENT,
    ConstraintType.PARALLEL,
    ConstraintType.PERPENDICULAR,
    ConstraintType.EQUAL,
    ConstraintType.FIX,
)

_LINE_KINDS = (
    ConstraintType.HORIZONTAL,
    ConstraintType.VERTICAL,
    ConstraintType.PARALLEL,
    ConstraintType.PERPENDICULAR,
)
_POINT_KINDS = (ConstraintType.COINCIDENT, ConstraintType.FIX)


class ConstraintTool(SketchTool):
    name = "constraint"

    def __init__(self, context, constraint_type: ConstraintType = ConstraintType.HORIZONTAL):
        super().__init__(context)
        self.constraint_type = constraint_type
        self._selection: List[ConstraintPoint] = []

    @property
    def selection(self) -> List[ConstraintPoint]:
        return list(self._selection)

    @property
    def label(self) -> str:
        return CONSTRAINT_TAGS[self.constraint_type]

    def set_constraint_type(self, constraint_type: ConstraintType) -> bool:
        if constraint_type not in SUPPORTED_CONSTRAINTS:
            self._emit_status(f"{CONSTRAINT_TAGS[constraint_type]} cannot be added by clicking")
            return False
        self.constraint_type = constraint_type
        self.reset()
        return True

    def reset(self):
        self._selection = []

    def prompt(self) -> str:
        kind = self.constraint_type
        if kind in _POINT_KINDS:
            return f"{CONSTRAINT_TAGS[kind]}: click a point"
        if kind == ConstraintType.EQUAL:
            return "Equal: click a line, circle or arc"
        return f"{CONSTRAINT_TAGS[kind]}: click a line"

    # -- Hit testing ----------------------------------------------------------

    def _hit(self, u: float, v: float) -> Optional[ConstraintPoint]:
        sketch = self.context.sketch
        kind = self.constraint_type
        if kind in _POINT_KINDS:
            hit = find_closest_point((u, v), sketch)
            return ConstraintPoint(hit[0], hit[1]) if hit is not None else None
        if kind in _LINE_KINDS:
            line_id = find_closest_line((u, v), sketch)
            return ConstraintPoint(line_id, 0) if line_id is not None else None
        entity_id = find_closest_entity(
            (u, v), sketch, LINE_HIT_THRESHOLD,
            kinds=(LineGeometry, CircleGeometry, ArcGeometry),
        )
        return ConstraintPoint(entity_id, 0) if entity_id is not None else None

    def _same(self, a: ConstraintPoint, b: ConstraintPoint) -> bool:
        if self.constraint_type == ConstraintType.COINCIDENT:
            return a.id == b.id and a.index == b.index
        return a.id == b.id

    def _compatible(self, a: ConstraintPoint, b: ConstraintPoint) -> bool:
        """Equal needs two lines, or two curves (circle / arc)."""
        if self.constraint_type != ConstraintType.EQUAL:
            return True
        ea = self.context.sketch.get_entity(a.id)
        eb = self.context.sketch.get_entity(b.id)
        if ea is None or eb is None:
            return False
        return isinstance(ea.geometry, LineGeometry) == isinstance(eb.geometry, LineGeometry)

    # -- Events ---------------------------------------------------------------

    def pointer_down(self, u, v, event=None):
        target = self._hit(u, v)
        if target is None:
            return

        kind = self.constraint_type
        if kind in (ConstraintType.HORIZONTAL, ConstraintType.VERTICAL, ConstraintType.FIX):
            constraint = self._single(target)
            if constraint is not None:
                self._apply(constraint)
            return

        if not self._selection:
            self._selection = [target]
            self._emit_status(f"{CONSTRAINT_TAGS[kind]}: first selection made, click the second")
            return
        first = self._selection[0]
        if self._same(first, target) or not self._compatible(first, target):
            return
        self._apply(self._pair(first, target))

    def _single(self, target: ConstraintPoint):
        kind = self.constraint_type
        if kind == ConstraintType.HORIZONTAL:
            return Horizontal(entity=target.id)
        if kind == ConstraintType.VERTICAL:
            return Vertical(entity=target.id)
        pos = constraint_point_position(self.context.sketch, target)
        if pos is None:
            return None
        return Fix(point=target, position=pos)

    def _pair(self, first: ConstraintPoint, second: ConstraintPoint):
        kind = self.constraint_type
        if kind == ConstraintType.COINCIDENT:
            return Coincident(points=(first, second))
        if kind == ConstraintType.PARALLEL:
            return Parallel(lines=(first.id, second.id))
        if kind == ConstraintType.PERPENDICULAR:
            return Perpendicular(lines=(first.id, second.id))
        return Equal(entities=(first.id, second.id))

    def _apply(self, constraint):
        self.context.session.commit(constraints=[constraint])
        print(f"[SketchWorks] Added {self.label} constraint")
        self._emit_status(f"Added {self.label} constraint")
        self.reset()
        self._finish()
