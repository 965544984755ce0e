"""
Trim Tool: click a line, circle or arc to cut away the span under the cursor.

The span is bounded by the nearest intersections with other committed
geometry (see :mod:`sketchworks.kernel.trimming`).  The raw pointer is
used, never a snap, so clicking near an intersection still picks the
segment beside it.  The tool stays active for further trims.
"""

from __future__ import annotations

from ..kernel.trimming import TrimAction, trim_at
from .base import SketchTool

TRIM_ACTION_WORDS = {
    TrimAction.DELETE: "deleted",
    TrimAction.SHORTEN: "shortened",
    TrimAction.SPLIT: "split",
}


class TrimTool(SketchTool):
    name = "trim"

    def reset(self):
        pass

    def prompt(self) -> str:
        return "Trim: click the segment to remove"

    def pointer_down(self, u, v, event=None):
        entity_id, result = trim_at(self.context.sketch, (float(u), float(v)))
        if entity_id is None:
            self._emit_status("Trim: nothing under the cursor")
            return
        if result is None:
            print(f"[SketchWorks] Trim: no intersections on {entity_id}")
            self._emit_status("Trim: no intersections to trim at")
            return
        self.context.session.edit(result.apply_to)
        word = TRIM_ACTION_WORDS[result.action]
        print(f"[SketchWorks] Trim: {entity_id} {word}")
        self._emit_status(f"Trim: {word}")
