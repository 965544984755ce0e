"""
Solver Bridge — the message channel between the sketch engine and the
external solver / modelling kernel process.

Outbound
--------
Every request is a command envelope::

    {"command": "<Name>", "payload": {...}}

serialised to JSON and handed to a ``transport`` callable (the WebSocket
layer in the app, a list's ``append`` in tests).  Sketch edits always send
the *whole* sketch under ``params.sketch_data``.

Inbound
-------
The kernel answers with line-prefixed tagged messages, e.g.::

    SKETCH_STATUS:{"converged": true, "dof": 0, ...}

Only ``SKETCH_STATUS:`` feeds the sketch engine directly (entity colours by
constraint status).  All other tags are parsed and forwarded to optional
callbacks for the surrounding UI.  Malformed lines are logged and dropped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..kernel.sketch import Sketch, TopoId


# Inbound message tags
GRAPH_UPDATE = "GRAPH_UPDATE"
RENDER_UPDATE = "RENDER_UPDATE"
SELECTION_UPDATE = "SELECTION_UPDATE"
ZOMBIE_UPDATE = "ZOMBIE_UPDATE"
SKETCH_STATUS = "SKETCH_STATUS"
REGIONS_UPDATE = "REGIONS_UPDATE"
SELECTION_GROUPS_UPDATE = "SELECTION_GROUPS_UPDATE"
ERROR_UPDATE = "ERROR_UPDATE"

INBOUND_TAGS = (
    GRAPH_UPDATE,
    RENDER_UPDATE,
    SELECTION_UPDATE,
    ZOMBIE_UPDATE,
    SKETCH_STATUS,
    REGIONS_UPDATE,
    SELECTION_GROUPS_UPDATE,
    ERROR_UPDATE,
)

# Entity colours by constraint status
COLOR_UNDER_CONSTRAINED = 0xFFDD00
COLOR_FULLY_CONSTRAINED = 0x44CC44
COLOR_OVER_CONSTRAINED = 0xFF4444


# ---------------------------------------------------------------------------
# Solve result
# ---------------------------------------------------------------------------

@dataclass
class EntityStatus:
    """Per-entity degrees-of-freedom report from the solver."""
    id: str
    total_dof: int = 0
    constrained_dof: int = 0
    remaining_dof: int = 0
    is_fully_constrained: bool = False
    is_over_constrained: bool = False
    involved_in_conflict: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> "EntityStatus":
        return cls(
            id=str(d["id"]),
            total_dof=int(d.get("total_dof", 0)),
            constrained_dof=int(d.get("constrained_dof", 0)),
            remaining_dof=int(d.get("remaining_dof", 0)),
            is_fully_constrained=bool(d.get("is_fully_constrained", False)),
            is_over_constrained=bool(d.get("is_over_constrained", False)),
            involved_in_conflict=bool(d.get("involved_in_conflict", False)),
        )


@dataclass
class SolveResult:
    """
    Outcome of one solver run.

    ``dof`` is negative when over-constrained, zero when fully constrained
    and positive when under-constrained.
    """
    converged: bool = False
    iterations: int = 0
    max_error: float = 0.0
    entity_count: int = 0
    constraint_count: int = 0
    dof: int = 0
    status_message: str = ""
    entity_statuses: List[EntityStatus] = field(default_factory=list)
    redundant_constraints: List[dict] = field(default_factory=list)
    conflicts: Optional[dict] = None

    @property
    def is_fully_constrained(self) -> bool:
        return self.converged and self.dof == 0

    def status_for(self, entity_id: str) -> Optional[EntityStatus]:
        for s in self.entity_statuses:
            if s.id == entity_id:
                return s
        return None

    @classmethod
    def from_dict(cls, d: dict) -> "SolveResult":
        return cls(
            converged=bool(d.get("converged", False)),
            iterations=int(d.get("iterations", 0)),
            max_error=float(d.get("max_error", 0.0)),
            entity_count=int(d.get("entity_count", 0)),
            constraint_count=int(d.get("constraint_count", 0)),
            dof=int(d.get("dof", 0)),
            status_message=str(d.get("status_message", "")),
            entity_statuses=[EntityStatus.from_dict(s) for s in d.get("entity_statuses") or []],
            redundant_constraints=list(d.get("redundant_constraints") or []),
            conflicts=d.get("conflicts"),
        )


def entity_status_color(status: Optional[EntityStatus]) -> int:
    """Render colour for an entity: red (over / conflict), green (fully), yellow."""
    if status is None:
        return COLOR_UNDER_CONSTRAINED
    if status.is_over_constrained or status.involved_in_conflict:
        return COLOR_OVER_CONSTRAINED
    if status.is_fully_constrained:
        return COLOR_FULLY_CONSTRAINED
    return COLOR_UNDER_CONSTRAINED


@dataclass
class KernelError:
    code: str = "UNKNOWN"
    message: str = "Unknown error"
    severity: str = "error"
    context: Any = None

    @classmethod
    def from_dict(cls, d: dict) -> "KernelError":
        return cls(
            code=d.get("code") or "UNKNOWN",
            message=d.get("message") or "Unknown error",
            severity=d.get("severity") or "error",
            context=d.get("context"),
        )


# ---------------------------------------------------------------------------
# Command envelopes
# ---------------------------------------------------------------------------

def command(name: str, payload: Optional[dict] = None) -> dict:
    """Build a ``{command, payload}`` envelope (payload omitted when None)."""
    env: Dict[str, Any] = {"command": name}
    if payload is not None:
        env["payload"] = payload
    return env


def create_feature(feature_type: str, name: str, **params) -> dict:
    return command("CreateFeature", {"feature_type": feature_type, "name": name, **params})


def update_feature(feature_id: str, params: dict) -> dict:
    return command("UpdateFeature", {"id": feature_id, "params": params})


def update_sketch(feature_id: str, sketch: Sketch) -> dict:
    """UpdateFeature carrying the whole sketch under ``sketch_data``."""
    return update_feature(feature_id, {"sketch_data": {"Sketch": sketch.to_dict()}})


def delete_feature(feature_id: str) -> dict:
    return command("DeleteFeature", {"id": feature_id})


def select(topo_id: TopoId, modifier: str = "replace") -> dict:
    return command("Select", {"id": topo_id.to_dict(), "modifier": modifier})


def clear_selection() -> dict:
    return command("ClearSelection")


def set_filter(filter_name: str) -> dict:
    return command("SetFilter", {"filter": filter_name})


def variable_add(name: str, expression: str, **extra) -> dict:
    return command("VariableAdd", {"name": name, "expression": expression, **extra})


def variable_update(variable_id: str, **changes) -> dict:
    return command("VariableUpdate", {"id": variable_id, **changes})


def variable_delete(variable_id: str) -> dict:
    return command("VariableDelete", {"id": variable_id})


def variable_reorder(variable_id: str, new_index: int) -> dict:
    return command("VariableReorder", {"id": variable_id, "new_index": new_index})


def get_regions(sketch_id: str) -> dict:
    return command("GetRegions", {"id": sketch_id})


def selection_group_create(name: str) -> dict:
    return command("SelectionGroupCreate", {"name": name})


def selection_group_restore(name: str) -> dict:
    return command("SelectionGroupRestore", {"name": name})


def selection_group_delete(name: str) -> dict:
    return command("SelectionGroupDelete", {"name": name})


def project_entity(sketch_id: str, topo_id: TopoId) -> dict:
    return command("ProjectEntity", {"sketch_id": sketch_id, "topo_id": topo_id.to_dict()})


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------

class SolverBridge:
    """
    Sends command envelopes and dispatches inbound tagged messages.

    Usage:
        sent = []
        bridge = SolverBridge(transport=sent.append)
        bridge.send_sketch("sketch-1", sketch)
        bridge.handle_line('SKETCH_STATUS:{"converged": true, "dof": 0}')
    """

    def __init__(self, transport: Optional[Callable[[str], None]] = None):
        self.transport = transport
        self.latest_solve: Optional[SolveResult] = None

        # -- Callbacks --------------------------------------------------------
        self.on_solve_result: Optional[Callable[[SolveResult], None]] = None
        self.on_error: Optional[Callable[[KernelError], None]] = None
        self.on_graph_update: Optional[Callable[[Any], None]] = None
        self.on_render_update: Optional[Callable[[Any], None]] = None
        self.on_selection_update: Optional[Callable[[Any], None]] = None
        self.on_zombie_update: Optional[Callable[[Any], None]] = None
        self.on_regions_update: Optional[Callable[[Any], None]] = None
        self.on_selection_groups_update: Optional[Callable[[Any], None]] = None

    # -- Outbound ------------------------------------------------------------

    def send(self, envelope: dict) -> bool:
        """Serialise and hand *envelope* to the transport."""
        if self.transport is None:
            print(f"[SketchWorks] No transport, dropping {envelope.get('command')}")
            return False
        self.transport(json.dumps(envelope))
        return True

    def send_sketch(self, feature_id: str, sketch: Sketch) -> bool:
        return self.send(update_sketch(feature_id, sketch))

    # -- Inbound -------------------------------------------------------------

    @staticmethod
    def parse_line(line: str):
        """
        Split ``TAG:json`` into ``(tag, payload)``.

        Returns ``None`` for unknown tags or invalid JSON.
        """
        tag, sep, body = line.partition(":")
        if not sep or tag not in INBOUND_TAGS:
            return None
        try:
            return tag, json.loads(body)
        except ValueError:
            return None

    def handle_line(self, line: str) -> Optional[str]:
        """
        Dispatch one inbound message.  Returns the tag handled, or ``None``
        if the line was ignored.
        """
        parsed = self.parse_line(line.strip())
        if parsed is None:
            print(f"[SketchWorks] Ignoring inbound message: {line[:80]}")
            return None
        tag, payload = parsed

        if tag == SKETCH_STATUS:
            try:
                result = SolveResult.from_dict(payload)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                print(f"[SketchWorks] Failed to parse sketch status: {e}")
                return None
            self.latest_solve = result
            print(f"[SketchWorks] Solve status: DOF={result.dof} converged={result.converged}")
            self._fire(self.on_solve_result, result)
        elif tag == ERROR_UPDATE:
            if not isinstance(payload, dict):
                print("[SketchWorks] Failed to parse error update")
                return None
            error = KernelError.from_dict(payload)
            print(f"[SketchWorks] Kernel error {error.code}: {error.message}")
            self._fire(self.on_error, error)
        else:
            self._fire(self._callback_for(tag), payload)
        return tag

    def _callback_for(self, tag: str) -> Optional[Callable]:
        return {
            GRAPH_UPDATE: self.on_graph_update,
            RENDER_UPDATE: self.on_render_update,
            SELECTION_UPDATE: self.on_selection_update,
            ZOMBIE_UPDATE: self.on_zombie_update,
            REGIONS_UPDATE: self.on_regions_update,
            SELECTION_GROUPS_UPDATE: self.on_selection_groups_update,
        }.get(tag)

    @staticmethod
    def _fire(callback: Optional[Callable], value):
        if callback:
            callback(value)
