"""
Base class and shared context for interactive sketch tools.

A tool is a small state machine driven by pointer events in plane-local
``(u, v)`` coordinates.  Tools never hold the sketch themselves: they read
and write it through the :class:`ToolContext`, whose session is the single
writer of the sketch being edited.

Every tool owns one preview id or id prefix.  ``cancel()`` removes that
preview and resets the click state; calling it twice is harmless.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from ..kernel.geometry import Point2
from ..kernel.inference import InferenceConfig
from ..kernel.measurement import Measurement, SelectionCandidate
from ..kernel.sketch import Geometry, Sketch, SketchEntity, new_entity_id
from ..kernel.snapping import SnapConfig, SnapPoint
from ..session.sketch_session import SketchSession


@dataclass
class ToolContext:
    """
    Capabilities handed to every tool.

    ``current_snap`` is refreshed by the tool manager before each pointer
    event.  ``send_command`` ships a command envelope to the solver (used
    by tools that do more than edit the sketch, e.g. projection).
    """
    session: SketchSession
    current_snap: Optional[SnapPoint] = None
    snap_config: SnapConfig = field(default_factory=SnapConfig)
    inference_config: InferenceConfig = field(default_factory=InferenceConfig)
    construction_mode: bool = False
    dimension_selection: List[SelectionCandidate] = field(default_factory=list)
    dimension_mouse: Optional[Point2] = None
    measurement_selection: List[SelectionCandidate] = field(default_factory=list)
    measurements: List[Measurement] = field(default_factory=list)
    send_command: Optional[Callable[[dict], bool]] = None
    on_status_changed: Optional[Callable[[str], None]] = None
    # Fired when a tool is done and the manager should fall back to select
    on_tool_finished: Optional[Callable[[], None]] = None

    @property
    def sketch(self) -> Sketch:
        return self.session.sketch


class SketchTool(ABC):
    """Abstract interactive tool."""

    name: str = ""
    preview_prefix: Optional[str] = None

    def __init__(self, context: ToolContext):
        self.context = context

    # -- Lifecycle ------------------------------------------------------------

    def activate(self):
        self.reset()
        self._emit_status(self.prompt())

    def deactivate(self):
        self.cancel()

    def cancel(self):
        """Discard the preview and any in-progress clicks."""
        self.reset()
        if self.preview_prefix is not None:
            self.context.session.clear_preview(self.preview_prefix)

    @abstractmethod
    def reset(self):
        """Forget accumulated click state."""

    def prompt(self) -> str:
        return f"{self.name.title()} tool active"

    # -- Pointer events -------------------------------------------------------

    @abstractmethod
    def pointer_down(self, u: float, v: float, event=None):
        ...

    def pointer_move(self, u: float, v: float, event=None):
        pass

    def pointer_up(self, u: float, v: float, event=None):
        pass

    # -- Helpers --------------------------------------------------------------

    def _snapped(self, u: float, v: float) -> Tuple[Point2, Optional[SnapPoint]]:
        """Effective position: the current snap overrides the raw pointer."""
        snap = self.context.current_snap
        if snap is not None:
            return snap.position, snap
        return (float(u), float(v)), None

    def _entity(
        self,
        geometry: Geometry,
        entity_id: Optional[str] = None,
        construction: Optional[bool] = None,
    ) -> SketchEntity:
        return SketchEntity(
            id=entity_id or new_entity_id(),
            geometry=geometry,
            is_construction=(
                self.context.construction_mode if construction is None else construction
            ),
        )

    def _set_preview(self, entities: List[SketchEntity]):
        self.context.session.set_preview(entities, self.preview_prefix)

    def _commit(self, entities: Iterable[SketchEntity], constraints: Iterable = ()) -> List[int]:
        return self.context.session.commit(
            entities, constraints, clear_prefix=self.preview_prefix,
        )

    def _finish(self):
        """Ask the manager to return to select mode."""
        if self.context.on_tool_finished:
            self.context.on_tool_finished()

    def _emit_status(self, msg: str):
        if self.context.on_status_changed:
            self.context.on_status_changed(msg)
