"""
Selection-driven tools: Dimension and Measure.

Both build a list of :class:`SelectionCandidate` from clicks.  A click is
resolved, in order, against the current snap (an endpoint or center snap
selects that point, any other entity snap the whole entity), an origin
snap, and finally the nearest entity within a small radius.  Clicking an
already selected candidate removes it again.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ..kernel.constraints import ORIGIN_ID
from ..kernel.inference import snap_target_point
from ..kernel.measurement import (
    CANDIDATE_ENTITY,
    CANDIDATE_ORIGIN,
    CANDIDATE_POINT,
    DimensionProposal,
    Measurement,
    SelectionCandidate,
    build_dimension_constraint,
    compute_measurement,
    propose_dimension,
    toggle_candidate,
)
from ..kernel.sketch import (
    ArcGeometry,
    CircleGeometry,
    PointGeometry,
    constraint_point_position,
)
from ..kernel.snapping import CANDIDATE_HIT_THRESHOLD, SnapType, find_closest_entity
from .base import SketchTool


def candidate_at(context, u: float, v: float) -> Optional[SelectionCandidate]:
    """Resolve a click to a selection candidate, or ``None`` for empty space."""
    sketch = context.sketch
    snap = context.current_snap

    if snap is not None and snap.entity_id is not None:
        if sketch.get_entity(snap.entity_id) is None:
            return None
        target = snap_target_point(sketch, snap)
        if target is not None:
            return SelectionCandidate(
                target.id, CANDIDATE_POINT, target.index,
                constraint_point_position(sketch, target),
            )
        return SelectionCandidate(snap.entity_id, CANDIDATE_ENTITY)

    if snap is not None and snap.snap_type == SnapType.ORIGIN:
        return SelectionCandidate(ORIGIN_ID, CANDIDATE_ORIGIN, None, (0.0, 0.0))

    entity_id = find_closest_entity((u, v), sketch, CANDIDATE_HIT_THRESHOLD)
    if entity_id is None:
        return None
    geom = sketch.get_entity(entity_id).geometry
    if isinstance(geom, PointGeometry):
        return SelectionCandidate(entity_id, CANDIDATE_POINT, 0, geom.pos)
    return SelectionCandidate(entity_id, CANDIDATE_ENTITY)


class DimensionTool(SketchTool):
    """
    Collects up to two candidates and proposes a dimension for them.

    The proposal follows the mouse (horizontal / vertical / aligned for
    two points).  ``finish()`` commits it as a driving constraint; a click
    on empty space does the same when a proposal exists, otherwise it
    clears the selection.
    """

    name = "dimension"

    def reset(self):
        self.context.dimension_selection = []
        self.context.dimension_mouse = None

    def prompt(self) -> str:
        return "Dimension: click geometry to measure"

    @property
    def selection(self) -> List[SelectionCandidate]:
        return list(self.context.dimension_selection)

    @property
    def proposal(self) -> Optional[DimensionProposal]:
        return propose_dimension(
            self.context.sketch, self.context.dimension_selection, self.context.dimension_mouse,
        )

    def pointer_down(self, u, v, event=None):
        candidate = candidate_at(self.context, u, v)
        if candidate is None:
            if self.proposal is not None:
                self.finish()
            else:
                self.context.dimension_selection = []
            return

        self.context.dimension_selection = toggle_candidate(
            self.context.dimension_selection, candidate,
        )
        proposal = self.proposal
        if proposal is not None:
            self._emit_status(f"{proposal.label}: click empty space to place")

    def pointer_move(self, u, v, event=None):
        self.context.dimension_mouse = (float(u), float(v))

    def finish(self, offset: Optional[Tuple[float, float]] = None) -> Optional[int]:
        """
        Commit the current proposal with a dimension style at *offset*.

        Returns the new constraint index, or ``None`` when the selection
        does not describe a dimension.
        """
        proposal = self.proposal
        if proposal is None:
            self._emit_status("Nothing to dimension: select geometry first")
            return None
        constraint = build_dimension_constraint(proposal, offset, self.context.sketch)
        if constraint is None:
            return None
        index = self.context.session.commit(constraints=[constraint])[0]
        print(f"[SketchWorks] Added dimension {proposal.label}")
        self._emit_status(f"Added {proposal.label}")
        self.reset()
        self._finish()
        return index


class MeasureTool(SketchTool):
    """
    Session-only measurements.  Nothing is written to the sketch.

    Two picks produce a measurement; a single circle or arc produces its
    radius straight away.  Existing measurements survive ``cancel()``.
    """

    name = "measure"

    def reset(self):
        self.context.measurement_selection = []

    def prompt(self) -> str:
        return "Measure: click two items"

    @property
    def measurements(self) -> List[Measurement]:
        return list(self.context.measurements)

    def clear_measurements(self):
        self.context.measurements = []

    def live_measurements(self) -> List[Measurement]:
        """Measurements recomputed against the current geometry."""
        live = []
        for m in self.context.measurements:
            updated = compute_measurement(self.context.sketch, m.first, m.second)
            if updated is not None:
                live.append(updated)
        return live

    def pointer_down(self, u, v, event=None):
        candidate = candidate_at(self.context, u, v)
        if candidate is None:
            self.context.measurement_selection = []
            return

        current = self.context.measurement_selection
        selection = toggle_candidate(current, candidate)
        if len(selection) < len(current):
            self.context.measurement_selection = selection
            return

        if len(selection) == 1 and not self._is_curve(candidate):
            self.context.measurement_selection = selection
            return

        second = selection[1] if len(selection) >= 2 else None
        measurement = compute_measurement(self.context.sketch, selection[0], second)
        if measurement is not None:
            self.context.measurements.append(measurement)
            self._emit_status(f"Measured {measurement.label}")
        self.context.measurement_selection = []

    def _is_curve(self, candidate: SelectionCandidate) -> bool:
        if candidate.kind != CANDIDATE_ENTITY:
            return False
        entity = self.context.sketch.get_entity(candidate.id)
        return entity is not None and isinstance(entity.geometry, (CircleGeometry, ArcGeometry))
