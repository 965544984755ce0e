"""
SketchWorks Programmatic API — headless facade for sketch authoring.

This module provides a ``SketchWorksAPI`` class that wraps the
SketchRegistry, the tool manager, the pattern engine, dimension
interaction, picking and the solver bridge in a single, UI-free interface.
Use it for:

- **Unit / integration tests**: drive tools with plane-local pointer
  events and assert on the resulting sketch.
- **Scripting / automation**: build sketches from Python code.

Example::

    from sketchworks.api import SketchWorksAPI
    from sketchworks.tools import SketchToolMode

    api = SketchWorksAPI()
    api.create_sketch("XY")
    api.activate_tool(SketchToolMode.RECTANGLE)
    api.click(0, 0)
    api.click(4, 3)
    assert len(api.sketch.committed_entities()) == 4
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple, Union

from .bridge.solver_bridge import SolveResult, SolverBridge
from .kernel.constraints import ConstraintType
from .kernel.geometry import Point2
from .kernel.measurement import Measurement
from .kernel.offset import offset_entities
from .kernel.patterns import (
    PatternResult,
    circular_pattern,
    linear_pattern,
    mirror,
    preview_circular_pattern,
    preview_linear_pattern,
)
from .kernel.sketch import PREVIEW_PREFIX, Sketch, SketchEntity, TopoId
from .kernel.sketch_plane import SketchPlane, plane_from_str
from .kernel.tessellator import TessellatedMesh
from .kernel.trimming import trim_at
from .session.sketch_registry import SketchRegistry
from .session.sketch_session import SketchSession
from .tools.base import ToolContext
from .tools.manager import SketchToolManager, SketchToolMode
from .tools.offset import OffsetTool
from .tools.selection import DimensionTool, MeasureTool
from .tools.trim import TRIM_ACTION_WORDS
from .ui.dimensions import (
    DimensionDragController,
    DimensionGraphic,
    DimensionRenderer,
    edit_dimension_value,
)
from .ui.picking import Camera, PickingConfig, PickingService, PickKind, PickResult

PATTERN_PREVIEW_PREFIX = PREVIEW_PREFIX + "pattern_"


class SketchWorksAPI:
    """
    Headless programmatic API for sketch authoring.

    Parameters:
        transport: Callable receiving each outbound JSON line.  ``None``
            keeps everything in memory (sends are counted, not delivered).
        camera: Camera used by :meth:`pick`.  Defaults to a perspective
            camera looking down -Z at the origin.
    """

    def __init__(
        self,
        transport: Optional[Callable[[str], None]] = None,
        camera: Optional[Camera] = None,
        picking_config: Optional[PickingConfig] = None,
    ):
        self._bridge = SolverBridge(transport)
        self._registry = SketchRegistry(self._bridge)
        self._renderer = DimensionRenderer()
        self._picking = PickingService(camera or Camera(), picking_config)
        self._context: Optional[ToolContext] = None
        self._manager: Optional[SketchToolManager] = None
        self._drag: Optional[DimensionDragController] = None
        self._statuses: List[str] = []

        self.on_status_changed: Optional[Callable[[str], None]] = None

        self._bridge.on_solve_result = self._on_solve_result

    # =====================================================================
    # Internal helpers
    # =====================================================================

    def _emit_status(self, msg: str):
        self._statuses.append(msg)
        if self.on_status_changed:
            self.on_status_changed(msg)

    def _on_solve_result(self, result: SolveResult):
        session = self._registry.active
        if session is not None:
            session.apply_solve_result(result)

    def _bind(self, session: SketchSession):
        """Point the tools and the drag controller at *session*."""
        if self._manager is not None:
            self._manager.cancel()
        if self._context is None:
            self._context = ToolContext(session=session, send_command=self._bridge.send)
            self._manager = SketchToolManager(self._context)
            self._manager.on_status_changed = self._emit_status
        else:
            self._context.session = session
            self._context.dimension_selection.clear()
            self._context.measurement_selection.clear()
            self._context.measurements.clear()
        self._drag = DimensionDragController(session)

    def _require_session(self) -> SketchSession:
        session = self._registry.active
        if session is None:
            raise RuntimeError("No active sketch; call create_sketch() first")
        return session

    # =====================================================================
    # Sketches
    # =====================================================================

    @property
    def registry(self) -> SketchRegistry:
        return self._registry

    @property
    def bridge(self) -> SolverBridge:
        return self._bridge

    @property
    def session(self) -> Optional[SketchSession]:
        return self._registry.active

    @property
    def sketch(self) -> Optional[Sketch]:
        session = self._registry.active
        return session.sketch if session is not None else None

    @property
    def statuses(self) -> List[str]:
        """Every status message emitted so far, oldest first."""
        return list(self._statuses)

    def create_sketch(self, plane: Union[str, SketchPlane] = "XY") -> SketchSession:
        """
        Create an empty sketch and make it the one being edited.

        Args:
            plane: A :class:`SketchPlane` or one of ``"XY"``, ``"XZ"``, ``"YZ"``.

        Raises:
            ValueError: *plane* names no standard plane.
        """
        if isinstance(plane, str):
            plane = plane_from_str(plane)
        session = self._registry.create(plane)
        self._bind(session)
        print(f"[SketchWorks] Editing {session.feature_id}")
        return session

    def edit_sketch(self, feature_id: str) -> bool:
        """Switch editing to an existing sketch."""
        session = self._registry.get(feature_id)
        if session is None:
            return False
        self._registry.active_id = feature_id
        self._bind(session)
        return True

    # =====================================================================
    # Tools
    # =====================================================================

    @property
    def tool_manager(self) -> Optional[SketchToolManager]:
        return self._manager

    @property
    def active_mode(self) -> SketchToolMode:
        if self._manager is None:
            return SketchToolMode.SELECT
        return self._manager.active_mode

    @property
    def construction_mode(self) -> bool:
        return bool(self._context and self._context.construction_mode)

    @construction_mode.setter
    def construction_mode(self, value: bool):
        self._require_session()
        self._context.construction_mode = value

    def activate_tool(
        self,
        mode: SketchToolMode,
        constraint_type: Optional[ConstraintType] = None,
    ) -> bool:
        self._require_session()
        return self._manager.activate_tool(mode, constraint_type)

    def cancel(self):
        """Escape: drop the active tool's state and return to select."""
        if self._manager is not None:
            self._manager.cancel()

    def pointer_down(self, u: float, v: float, event=None):
        self._require_session()
        self._manager.pointer_down(u, v, event)

    def pointer_move(self, u: float, v: float, event=None):
        self._require_session()
        self._manager.pointer_move(u, v, event)

    def pointer_up(self, u: float, v: float, event=None):
        self._require_session()
        self._manager.pointer_up(u, v, event)

    def click(self, u: float, v: float, event=None):
        """Move to, press and release at ``(u, v)``."""
        self.pointer_move(u, v, event)
        self.pointer_down(u, v, event)
        self.pointer_up(u, v, event)

    def inference_hints(self, u: float, v: float):
        self._require_session()
        self._manager.refresh_snap(u, v)
        return self._manager.inference_hints(u, v)

    def project(self, topo_id: TopoId) -> bool:
        """Ask the kernel to project solid topology into the sketch."""
        self._require_session()
        if self.active_mode != SketchToolMode.PROJECT:
            self._manager.activate_tool(SketchToolMode.PROJECT)
        return self._manager.active_tool.select(topo_id)

    # =====================================================================
    # Patterns
    # =====================================================================

    def _commit_pattern(self, result: PatternResult, label: str) -> List[str]:
        session = self._require_session()
        if result.is_empty:
            self._emit_status(f"{label}: nothing to create")
            return []
        session.commit(result.entities, result.constraints, clear_prefix=PATTERN_PREVIEW_PREFIX)
        self._emit_status(f"{label}: created {len(result.entities)} entities")
        return [e.id for e in result.entities]

    def mirror(self, entity_ids: List[str], axis_id: str) -> List[str]:
        """Mirror entities about a line.  Returns the new entity ids."""
        return self._commit_pattern(mirror(self.sketch, entity_ids, axis_id), "Mirror")

    def linear_pattern(
        self,
        entity_ids: List[str],
        direction_line_id: str,
        count: int,
        spacing: float,
        flip: bool = False,
    ) -> List[str]:
        result = linear_pattern(self.sketch, entity_ids, direction_line_id, count, spacing, flip)
        return self._commit_pattern(result, "Linear pattern")

    def circular_pattern(
        self,
        entity_ids: List[str],
        center_ref: str,
        count: int,
        total_angle_deg: float = 360.0,
        flip: bool = False,
    ) -> List[str]:
        result = circular_pattern(self.sketch, entity_ids, center_ref, count, total_angle_deg, flip)
        return self._commit_pattern(result, "Circular pattern")

    def _show_pattern_preview(self, copies: List[SketchEntity]) -> int:
        session = self._require_session()
        preview = [
            SketchEntity(
                id=f"{PATTERN_PREVIEW_PREFIX}{i}",
                geometry=e.geometry,
                is_construction=e.is_construction,
            )
            for i, e in enumerate(copies)
        ]
        session.set_preview(preview, PATTERN_PREVIEW_PREFIX)
        return len(preview)

    def preview_linear_pattern(
        self,
        entity_ids: List[str],
        direction_line_id: str,
        count: int,
        spacing: float,
        flip: bool = False,
    ) -> int:
        """Show the copies a linear pattern would make; returns their number."""
        copies = preview_linear_pattern(
            self.sketch, entity_ids, direction_line_id, count, spacing, flip,
        )
        return self._show_pattern_preview(copies)

    def preview_circular_pattern(
        self,
        entity_ids: List[str],
        center_ref: str,
        count: int,
        total_angle_deg: float = 360.0,
        flip: bool = False,
    ) -> int:
        copies = preview_circular_pattern(
            self.sketch, entity_ids, center_ref, count, total_angle_deg, flip,
        )
        return self._show_pattern_preview(copies)

    def clear_pattern_preview(self) -> int:
        return self._require_session().clear_preview(PATTERN_PREVIEW_PREFIX)

    # =====================================================================
    # Trim / Offset
    # =====================================================================

    def trim(self, u: float, v: float) -> bool:
        """Trim the curve under the plane-local point.  True if anything changed."""
        session = self._require_session()
        entity_id, result = trim_at(session.sketch, (u, v))
        if result is None:
            self._emit_status("Trim: nothing to trim")
            return False
        session.edit(result.apply_to)
        self._emit_status(f"Trim: {entity_id} {TRIM_ACTION_WORDS[result.action]}")
        return True

    def offset(self, entity_ids: List[str], distance: float, flip: bool = False) -> List[str]:
        """Offset lines, circles and arcs.  Returns the new entity ids."""
        result = offset_entities(self._require_session().sketch, entity_ids, distance, flip)
        return self._commit_pattern(result, "Offset")

    def confirm_offset(self, distance: Optional[float] = None) -> List[str]:
        """Commit the OFFSET tool's selection, optionally at a new distance."""
        self._require_session()
        tool = self._manager.get_tool(SketchToolMode.OFFSET)
        if not isinstance(tool, OffsetTool):
            return []
        if distance is not None and not tool.set_distance(distance):
            return []
        return tool.confirm()

    # =====================================================================
    # Dimensions
    # =====================================================================

    def render_dimensions(self) -> List[DimensionGraphic]:
        sketch = self.sketch
        return self._renderer.render(sketch) if sketch is not None else []

    def finish_dimension(self, offset: Optional[Tuple[float, float]] = None) -> Optional[int]:
        """Commit the dimension proposed by the DIMENSION tool's selection."""
        self._require_session()
        tool = self._manager.get_tool(SketchToolMode.DIMENSION)
        if not isinstance(tool, DimensionTool):
            return None
        return tool.finish(offset)

    def drag_dimension(self, index: int, start: Point2, end: Point2) -> bool:
        """
        Drag dimension *index* by its hitbox from *start* to *end* (both
        plane-local).  *start* must lie inside the hitbox.
        """
        self._require_session()
        for graphic in self.render_dimensions():
            if graphic.index == index and graphic.hitbox.contains(start):
                if not self._drag.pointer_down(graphic.hitbox, start):
                    return False
                self._drag.pointer_move(end)
                return self._drag.pointer_up()
        return False

    def edit_dimension(self, index: int, value: float, expression: Optional[str] = None) -> bool:
        return edit_dimension_value(self._require_session(), index, value, expression)

    # =====================================================================
    # Measurement
    # =====================================================================

    @property
    def measurements(self) -> List[Measurement]:
        if self._manager is None:
            return []
        tool = self._manager.get_tool(SketchToolMode.MEASURE)
        return tool.live_measurements() if isinstance(tool, MeasureTool) else []

    def clear_measurements(self):
        if self._manager is not None:
            self._manager.get_tool(SketchToolMode.MEASURE).clear_measurements()

    # =====================================================================
    # Picking
    # =====================================================================

    @property
    def camera(self) -> Camera:
        return self._picking.camera

    @property
    def picking(self) -> PickingService:
        return self._picking

    def set_meshes(self, meshes: List[TessellatedMesh]):
        self._picking.meshes = list(meshes)

    def pick(self, x: float, y: float) -> PickResult:
        """Resolve a pixel against the active sketch, its dimensions and the meshes."""
        self._picking.set_sketch(self.sketch)
        snap = self._context.current_snap if self._context is not None else None
        self._picking.snaps = [snap] if snap is not None else []
        return self._picking.pick(x, y)

    def pick_pointer_down(self, x: float, y: float) -> PickResult:
        """
        Pixel press: a dimension hitbox starts a drag, anything else is
        forwarded to the active tool at the plane-local point, with the
        pick result as the event.
        """
        result = self.pick(x, y)
        if result.kind == PickKind.DIMENSION and self._drag is not None:
            self._drag.pointer_down(result.hitbox, result.local)
            return result
        local = self._picking.plane_point(x, y)
        if local is not None and self._manager is not None:
            self._manager.pointer_down(*local, event=result)
        return result

    def pick_pointer_move(self, x: float, y: float) -> Optional[Point2]:
        self._picking.set_sketch(self.sketch)
        local = self._picking.plane_point(x, y)
        if local is None:
            return None
        if self._drag is not None and self._drag.is_dragging:
            self._drag.pointer_move(local)
        elif self._manager is not None:
            self._manager.pointer_move(*local)
        return local

    def pick_pointer_up(self, x: float, y: float):
        if self._drag is not None and self._drag.is_dragging:
            self._drag.pointer_up()
            return
        self._picking.set_sketch(self.sketch)
        local = self._picking.plane_point(x, y)
        if local is not None and self._manager is not None:
            self._manager.pointer_up(*local)

    # =====================================================================
    # Inbound
    # =====================================================================

    def handle_line(self, line: str) -> Optional[str]:
        """Feed one inbound solver line.  Returns the tag handled, or None."""
        return self._bridge.handle_line(line)

    def apply_authoritative(self, sketch: Sketch):
        """The solver's sketch replaces the local one (previews are kept)."""
        self._require_session().apply_authoritative(sketch)
