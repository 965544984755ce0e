"""
Sketch Tool Manager: owns the tool instances and routes pointer events.

Exactly one tool is active at a time (or none, in select mode).  Before
each pointer event the manager refreshes the snap under the cursor and
stores it on the shared :class:`ToolContext`, so tools only ever read
``context.current_snap``.

Lifecycle:

1. ``activate_tool(LINE)``: the previous tool is deactivated (its preview
   removed and its clicks discarded), the new one is reset.
2. ``pointer_down`` / ``pointer_move`` / ``pointer_up``: snap, then
   delegate.
3. ``cancel()`` (Escape): discards the tool's in-progress state and
   returns to select mode.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Callable, Dict, List, Optional

from ..kernel.constraints import ConstraintType
from ..kernel.inference import InferredConstraint, detect_inferred_constraints
from ..kernel.snapping import SnapPoint, snap_cursor
from .base import SketchTool, ToolContext
from .constraint_tool import ConstraintTool
from .primitives import ArcTool, CircleTool, EllipseTool, LineTool, PointTool
from .offset import OffsetTool
from .projection import ProjectTool
from .selection import DimensionTool, MeasureTool
from .shapes import PolygonTool, RectangleTool, SlotTool
from .trim import TrimTool


class SketchToolMode(Enum):
    """Which tool is active."""
    SELECT = auto()     # No tool
    POINT = auto()
    LINE = auto()
    CIRCLE = auto()
    ARC = auto()
    ELLIPSE = auto()
    RECTANGLE = auto()
    POLYGON = auto()
    SLOT = auto()
    DIMENSION = auto()
    MEASURE = auto()
    CONSTRAINT = auto()
    PROJECT = auto()
    TRIM = auto()
    OFFSET = auto()


_TOOL_CLASSES = {
    SketchToolMode.POINT: PointTool,
    SketchToolMode.LINE: LineTool,
    SketchToolMode.CIRCLE: CircleTool,
    SketchToolMode.ARC: ArcTool,
    SketchToolMode.ELLIPSE: EllipseTool,
    SketchToolMode.RECTANGLE: RectangleTool,
    SketchToolMode.POLYGON: PolygonTool,
    SketchToolMode.SLOT: SlotTool,
    SketchToolMode.DIMENSION: DimensionTool,
    SketchToolMode.MEASURE: MeasureTool,
    SketchToolMode.CONSTRAINT: ConstraintTool,
    SketchToolMode.PROJECT: ProjectTool,
    SketchToolMode.TRIM: TrimTool,
    SketchToolMode.OFFSET: OffsetTool,
}

# Tools that act on the raw pointer position
_UNSNAPPED_MODES = (
    SketchToolMode.SELECT,
    SketchToolMode.CONSTRAINT,
    SketchToolMode.TRIM,
    SketchToolMode.OFFSET,
)


class SketchToolManager:
    """
    Tool registry keyed by :class:`SketchToolMode`.

    Callbacks:
        on_status_changed(msg): prompts and results from every tool.
        on_tool_changed(mode): after the active tool changes.
    """

    def __init__(self, context: ToolContext):
        self.context = context
        self._tools: Dict[SketchToolMode, SketchTool] = {
            mode: cls(context) for mode, cls in _TOOL_CLASSES.items()
        }
        self._active_mode: SketchToolMode = SketchToolMode.SELECT

        # -- Callbacks --------------------------------------------------------
        self.on_status_changed: Optional[Callable[[str], None]] = None
        self.on_tool_changed: Optional[Callable[[SketchToolMode], None]] = None

        context.on_status_changed = self._emit_status
        context.on_tool_finished = self.activate_select

    # -- Properties -----------------------------------------------------------

    @property
    def active_mode(self) -> SketchToolMode:
        return self._active_mode

    @property
    def active_tool(self) -> Optional[SketchTool]:
        return self._tools.get(self._active_mode)

    @property
    def is_select_mode(self) -> bool:
        return self._active_mode == SketchToolMode.SELECT

    def get_tool(self, mode: SketchToolMode) -> Optional[SketchTool]:
        return self._tools.get(mode)

    # -- Activation -----------------------------------------------------------

    def activate_tool(
        self,
        mode: SketchToolMode,
        constraint_type: Optional[ConstraintType] = None,
    ) -> bool:
        """
        Make *mode* the active tool.  The previous tool is deactivated first.

        *constraint_type* selects the constraint kind for the CONSTRAINT tool.
        """
        if constraint_type is not None:
            tool = self._tools[SketchToolMode.CONSTRAINT]
            if not tool.set_constraint_type(constraint_type):
                return False

        previous = self.active_tool
        if previous is not None:
            previous.deactivate()
        self.context.current_snap = None
        self._active_mode = mode

        tool = self.active_tool
        if tool is not None:
            tool.activate()
        else:
            self._emit_status("Select: click and drag to edit")
        if self.on_tool_changed:
            self.on_tool_changed(mode)
        return True

    def activate_select(self):
        self.activate_tool(SketchToolMode.SELECT)

    def cancel(self):
        """Escape: drop in-progress input and return to select mode."""
        tool = self.active_tool
        if tool is not None:
            tool.cancel()
        if not self.is_select_mode:
            self.activate_select()

    # -- Pointer events -------------------------------------------------------

    def refresh_snap(self, u: float, v: float) -> Optional[SnapPoint]:
        """Recompute the snap under the cursor and publish it on the context."""
        if self._active_mode in _UNSNAPPED_MODES:
            snap = None
        else:
            snap = snap_cursor((u, v), self.context.sketch, self.context.snap_config)
        self.context.current_snap = snap
        return snap

    def pointer_down(self, u: float, v: float, event=None):
        tool = self.active_tool
        if tool is None:
            return
        self.refresh_snap(u, v)
        tool.pointer_down(u, v, event)

    def pointer_move(self, u: float, v: float, event=None):
        tool = self.active_tool
        if tool is None:
            return
        self.refresh_snap(u, v)
        tool.pointer_move(u, v, event)

    def pointer_up(self, u: float, v: float, event=None):
        tool = self.active_tool
        if tool is None:
            return
        self.refresh_snap(u, v)
        tool.pointer_up(u, v, event)

    # -- Inference hints ------------------------------------------------------

    def inference_hints(self, u: float, v: float) -> List[InferredConstraint]:
        """Display hints for what the next click of a drawing tool would infer."""
        tool = self.active_tool
        if tool is None:
            return []
        start = tool.start_point if isinstance(tool, LineTool) else None
        return detect_inferred_constraints(
            (u, v),
            start,
            self.context.sketch,
            tool.name,
            self.context.current_snap,
            self.context.inference_config,
            self.context.snap_config.snap_radius,
        )

    # -- Helpers --------------------------------------------------------------

    def _emit_status(self, msg: str):
        if self.on_status_changed:
            self.on_status_changed(msg)
