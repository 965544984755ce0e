"""
Sketch Session — the single owner of the sketch being edited.

All mutation of the current :class:`Sketch` goes through a session, so the
sketch has exactly one writer at a time (the active tool, a pattern
operation, or a dimension drag).  Two kinds of change exist:

* **Preview** — rubber-band entities and drag feedback.  Applied locally,
  observers are notified with ``preview=True``, nothing is sent.
* **Commit** — entities/constraints appended to the model and history.
  Observers are notified with ``preview=False`` and the whole sketch is
  sent to the solver as an ``UpdateFeature`` command.  Edits of existing
  geometry (trim, delete) notify and send the same way but leave history
  alone.

The solver's echo is applied with :meth:`SketchSession.apply_authoritative`:
last message wins, but the local preview entities of the active tool are
carried over so live feedback is never clobbered.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional

from ..bridge.solver_bridge import SolveResult, SolverBridge
from ..kernel.sketch import PREVIEW_PREFIX, Sketch, SketchEntity
from ..kernel.sketch_plane import SketchPlane


class SketchSession:
    """
    Owns one Sketch feature during editing.

    Callbacks:
        on_sketch_changed(sketch, preview): after every local or remote change.
        on_solve_result(result): after a new SKETCH_STATUS arrives.
    """

    def __init__(
        self,
        feature_id: str,
        sketch: Optional[Sketch] = None,
        bridge: Optional[SolverBridge] = None,
    ):
        self.feature_id = feature_id
        self._sketch = sketch if sketch is not None else Sketch()
        self.bridge = bridge
        self._solve_result: Optional[SolveResult] = None
        self._send_count = 0

        # -- Callbacks --------------------------------------------------------
        self.on_sketch_changed: Optional[Callable[[Sketch, bool], None]] = None
        self.on_solve_result: Optional[Callable[[SolveResult], None]] = None

    # -- Properties -----------------------------------------------------------

    @property
    def sketch(self) -> Sketch:
        return self._sketch

    @property
    def plane(self) -> SketchPlane:
        return self._sketch.plane

    @property
    def solve_result(self) -> Optional[SolveResult]:
        return self._solve_result

    @property
    def send_count(self) -> int:
        """How many times the sketch has been sent to the solver."""
        return self._send_count

    # -- Preview --------------------------------------------------------------

    def preview(self, mutate: Callable[[Sketch], None]):
        """Apply a local-only change and notify observers."""
        mutate(self._sketch)
        self._notify(preview=True)

    def set_preview(self, entities: List[SketchEntity], prefix: str):
        self._sketch.set_preview(entities, prefix)
        self._notify(preview=True)

    def clear_preview(self, prefix: Optional[str] = None) -> int:
        removed = self._sketch.clear_preview(prefix)
        if removed:
            self._notify(preview=True)
        return removed

    # -- Commit ---------------------------------------------------------------

    def commit(
        self,
        entities: Iterable[SketchEntity] = (),
        constraints: Iterable = (),
        clear_prefix: Optional[str] = None,
    ) -> List[int]:
        """
        Append *entities* then *constraints*, drop the preview matching
        *clear_prefix*, notify and send.

        Returns the indices of the new constraints.
        """
        if clear_prefix is not None:
            self._sketch.clear_preview(clear_prefix)
        for entity in entities:
            if entity.id.startswith(PREVIEW_PREFIX):
                print(f"[SketchWorks] Refusing to commit preview entity {entity.id}")
                continue
            self._sketch.add_entity(entity)
        indices = [self._sketch.add_constraint(c) for c in constraints]
        self._notify(preview=False)
        self.send()
        return indices

    def replace_constraint(self, index: int, constraint, send: bool = True) -> bool:
        """Swap constraint *index* in place (value / style edits)."""
        if index < 0 or index >= len(self._sketch.constraints):
            return False
        self._sketch.constraints[index].constraint = constraint
        self._notify(preview=not send)
        if send:
            self.send()
        return True

    def remove_entity(self, entity_id: str) -> bool:
        """Delete an entity (and dependent constraints), then send."""
        if self._sketch.remove_entity(entity_id) is None:
            return False
        self._notify(preview=False)
        self.send()
        return True

    def edit(self, mutate: Callable[[Sketch], None]):
        """Apply an in-place edit of committed geometry, notify and send."""
        mutate(self._sketch)
        self._notify(preview=False)
        self.send()

    def send(self) -> bool:
        """Send the whole committed sketch to the solver."""
        self._send_count += 1
        if self.bridge is None:
            return False
        return self.bridge.send_sketch(self.feature_id, self._sketch)

    # -- Remote ---------------------------------------------------------------

    def apply_authoritative(self, sketch: Sketch):
        """
        Replace the sketch with the solver's version (last message wins).

        Preview entities of the local sketch are kept.
        """
        previews = self._sketch.preview_entities()
        incoming = sketch.copy()
        incoming.entities = incoming.committed_entities() + previews
        self._sketch = incoming
        self._notify(preview=False)

    def apply_solve_result(self, result: SolveResult):
        self._solve_result = result
        if self.on_solve_result:
            self.on_solve_result(result)

    # -- Helpers --------------------------------------------------------------

    def _notify(self, preview: bool):
        if self.on_sketch_changed:
            self.on_sketch_changed(self._sketch, preview)
