"""
Offset Tool: pick lines, circles and arcs, then place parallel copies.

Clicks toggle curves in and out of the selection.  While anything is
selected the copies are shown as a preview; ``set_distance`` and
``flip`` update it.  ``confirm()`` commits the copies and their
constraints and hands back to select mode; ``cancel()`` leaves the
sketch untouched.
"""

from __future__ import annotations

from typing import List

from ..kernel.offset import offset_entities, preview_offset
from ..kernel.sketch import (
    PREVIEW_PREFIX,
    ArcGeometry,
    CircleGeometry,
    LineGeometry,
    SketchEntity,
)
from ..kernel.snapping import LINE_HIT_THRESHOLD, find_closest_entity
from .base import SketchTool

DEFAULT_OFFSET_DISTANCE = 1.0
_CURVES = (LineGeometry, CircleGeometry, ArcGeometry)


class OffsetTool(SketchTool):
    name = "offset"
    preview_prefix = PREVIEW_PREFIX + "offset_"

    def __init__(self, context):
        super().__init__(context)
        self.distance = DEFAULT_OFFSET_DISTANCE
        self.flipped = False
        self._selection: List[str] = []

    @property
    def selection(self) -> List[str]:
        return list(self._selection)

    def reset(self):
        self._selection = []
        self.flipped = False

    def prompt(self) -> str:
        return "Offset: click lines, circles or arcs, then confirm"

    # -- Parameters -----------------------------------------------------------

    def set_distance(self, distance: float) -> bool:
        if distance <= 0.0:
            self._emit_status("Offset: distance must be positive")
            return False
        self.distance = float(distance)
        self._refresh_preview()
        return True

    def flip(self):
        self.flipped = not self.flipped
        self._refresh_preview()

    def select(self, entity_ids: List[str]):
        """Replace the selection, keeping only curves that exist."""
        selection = []
        for eid in entity_ids:
            entity = self.context.sketch.get_entity(eid)
            if entity is not None and isinstance(entity.geometry, _CURVES):
                selection.append(eid)
        self._selection = selection
        self._refresh_preview()

    # -- Events ---------------------------------------------------------------

    def pointer_down(self, u, v, event=None):
        entity_id = find_closest_entity(
            (u, v), self.context.sketch, LINE_HIT_THRESHOLD, kinds=_CURVES,
        )
        if entity_id is None:
            return
        if entity_id in self._selection:
            self._selection.remove(entity_id)
        else:
            self._selection.append(entity_id)
        self._emit_status(f"Offset Entities ({len(self._selection)})")
        self._refresh_preview()

    def confirm(self) -> List[str]:
        """Commit the copies.  Returns the new entity ids."""
        if not self._selection:
            self._emit_status("Offset: nothing selected")
            return []
        result = offset_entities(self.context.sketch, self._selection, self.distance, self.flipped)
        if result.is_empty:
            self._emit_status("Offset: nothing to create")
            return []
        self._commit(result.entities, result.constraints)
        print(f"[SketchWorks] Offset {len(self._selection)} entities by {self.distance}")
        self._emit_status(f"Offset: created {len(result.entities)} entities")
        self.reset()
        self._finish()
        return [e.id for e in result.entities]

    def _refresh_preview(self):
        copies = preview_offset(self.context.sketch, self._selection, self.distance, self.flipped)
        self._set_preview([
            SketchEntity(f"{self.preview_prefix}{i}", e.geometry, e.is_construction)
            for i, e in enumerate(copies)
        ])
