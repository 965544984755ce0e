"""
Sketch Registry — central store for all sketch sessions.

The registry owns one :class:`SketchSession` per sketch feature, keyed by
the feature id the kernel knows it by.  Inbound solver messages are routed
to the session of the sketch being edited.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from ..bridge.solver_bridge import SolverBridge
from ..kernel.sketch import Sketch
from ..kernel.sketch_plane import SketchPlane
from .sketch_session import SketchSession


class SketchRegistry:
    """
    Owns all sketch sessions.

    Feature ids are auto-generated (``"Sketch1"``, ``"Sketch2"``, ...) unless
    given explicitly.
    """

    def __init__(self, bridge: Optional[SolverBridge] = None):
        self.bridge = bridge
        self._sessions: Dict[str, SketchSession] = {}
        self._counter: int = 0
        self.active_id: Optional[str] = None

    # ── Queries ─────────────────────────────────────────────────────────────

    @property
    def sketch_ids(self) -> List[str]:
        return list(self._sessions.keys())

    @property
    def count(self) -> int:
        return len(self._sessions)

    @property
    def active(self) -> Optional[SketchSession]:
        if self.active_id is None:
            return None
        return self._sessions.get(self.active_id)

    def get(self, feature_id: str) -> Optional[SketchSession]:
        return self._sessions.get(feature_id)

    def __contains__(self, feature_id: str) -> bool:
        return feature_id in self._sessions

    # ── Mutations ───────────────────────────────────────────────────────────

    def create(
        self,
        plane: Optional[SketchPlane] = None,
        feature_id: Optional[str] = None,
    ) -> SketchSession:
        """Create an empty sketch on *plane* and make it active."""
        if feature_id is None:
            self._counter += 1
            feature_id = f"Sketch{self._counter}"
        else:
            # Keep counter in sync with any manually-set IDs
            try:
                num = int(feature_id.replace("Sketch", ""))
                if num > self._counter:
                    self._counter = num
            except ValueError:
                pass
        session = SketchSession(
            feature_id, Sketch(plane=plane or SketchPlane()), bridge=self.bridge,
        )
        self._sessions[feature_id] = session
        self.active_id = feature_id
        return session

    def remove(self, feature_id: str) -> Optional[SketchSession]:
        """Remove and return a session by id, or None if not found."""
        if self.active_id == feature_id:
            self.active_id = None
        return self._sessions.pop(feature_id, None)

    def clear(self):
        """Remove all sessions and reset the counter."""
        self._sessions.clear()
        self._counter = 0
        self.active_id = None

    # ── Serialization ───────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "counter": self._counter,
            "sketches": {
                sid: session.sketch.to_dict()
                for sid, session in self._sessions.items()
            },
        }

    @classmethod
    def from_dict(cls, d: dict, bridge: Optional[SolverBridge] = None) -> "SketchRegistry":
        registry = cls(bridge)
        registry._counter = d.get("counter", 0)
        for sid, sdata in d.get("sketches", {}).items():
            registry._sessions[sid] = SketchSession(sid, Sketch.from_dict(sdata), bridge=bridge)
        return registry
