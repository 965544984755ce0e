"""
Project Tool: brings an edge or vertex of an existing solid into the sketch.

The tool does not compute the projection itself.  It sends a
``ProjectEntity`` command naming the picked topology; the kernel answers
with an updated sketch that contains the projected, externally-referenced
entity.
"""

from __future__ import annotations

from typing import Optional

from ..bridge.solver_bridge import project_entity
from ..kernel.sketch import TopoId
from .base import SketchTool


class ProjectTool(SketchTool):
    name = "project"

    def __init__(self, context):
        super().__init__(context)
        self.last_projected: Optional[TopoId] = None

    def reset(self):
        pass

    def prompt(self) -> str:
        return "Project: click an edge or vertex of a solid"

    def pointer_down(self, u, v, event=None):
        """
        *event* is the :class:`~sketchworks.ui.picking.PickResult` under the
        cursor; its ``topo_id`` names the solid topology to project.
        """
        topo_id = getattr(event, "topo_id", None)
        if topo_id is None:
            self._emit_status("Project: no solid edge or vertex under the cursor")
            return
        self.select(topo_id)

    def select(self, topo_id: TopoId) -> bool:
        """Request projection of *topo_id* into the active sketch."""
        send = self.context.send_command
        if send is None:
            self._emit_status("Project: no connection to the kernel")
            return False
        sketch_id = self.context.session.feature_id
        ok = bool(send(project_entity(sketch_id, topo_id)))
        if ok:
            self.last_projected = topo_id
            print(f"[SketchWorks] Projecting {topo_id.feature_id}/{topo_id.local_id} into {sketch_id}")
            self._emit_status(f"Projected {topo_id.local_id}")
        return ok
