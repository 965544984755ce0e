"""
2D Sketch model — entities, constraints and the replayable history log.

A Sketch holds geometry entities expressed in plane-local ``(u, v)``
coordinates, the constraints between them, and an append-only history of
``AddGeometry`` / ``AddConstraint`` operations.  The whole Sketch is sent
to the solver on every edit; the history exists so the solver can replay
the edits in order, it is not an undo stack.

Preview entities
----------------
Entities whose id starts with ``"preview_"`` are ephemeral rubber-band
feedback owned by the active drawing tool.  They live only in the local
sketch view, are never written to history, and are stripped before a
Sketch is serialised for the solver.

Reference integrity
-------------------
Every entity id referenced by a constraint must resolve to an entity in
``entities`` (or to ``ORIGIN_ID``).  :meth:`Sketch.remove_entity` removes
any constraint that would be left dangling.
"""

from __future__ import annotations

import copy
import math
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .constraints import (
    ORIGIN_ID,
    ConstraintPoint,
    SketchConstraintEntry,
    constraint_from_dict,
    map_points,
)
from .sketch_plane import SketchPlane

Point2 = Tuple[float, float]

PREVIEW_PREFIX = "preview_"


def new_entity_id() -> str:
    """Client-generated globally unique entity id."""
    return str(uuid.uuid4())


def _pt(v) -> Point2:
    return (float(v[0]), float(v[1]))


# ---------------------------------------------------------------------------
# Geometry variants, one immutable dataclass per kind
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PointGeometry:
    pos: Point2

    def to_dict(self) -> dict:
        return {"Point": {"pos": list(self.pos)}}


@dataclass(frozen=True)
class LineGeometry:
    start: Point2
    end: Point2

    @property
    def length(self) -> float:
        return math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1])

    @property
    def midpoint(self) -> Point2:
        return ((self.start[0] + self.end[0]) / 2.0, (self.start[1] + self.end[1]) / 2.0)

    def to_dict(self) -> dict:
        return {"Line": {"start": list(self.start), "end": list(self.end)}}


@dataclass(frozen=True)
class CircleGeometry:
    center: Point2
    radius: float

    def to_dict(self) -> dict:
        return {"Circle": {"center": list(self.center), "radius": self.radius}}


@dataclass(frozen=True)
class ArcGeometry:
    """Counter-clockwise arc from ``start_angle`` to ``end_angle`` (radians)."""
    center: Point2
    radius: float
    start_angle: float
    end_angle: float

    def point_at(self, angle: float) -> Point2:
        return (
            self.center[0] + self.radius * math.cos(angle),
            self.center[1] + self.radius * math.sin(angle),
        )

    @property
    def start_point(self) -> Point2:
        return self.point_at(self.start_angle)

    @property
    def end_point(self) -> Point2:
        return self.point_at(self.end_angle)

    def to_dict(self) -> dict:
        return {"Arc": {
            "center": list(self.center),
            "radius": self.radius,
            "start_angle": self.start_angle,
            "end_angle": self.end_angle,
        }}


@dataclass(frozen=True)
class EllipseGeometry:
    center: Point2
    semi_major: float
    semi_minor: float
    rotation: float = 0.0

    def to_dict(self) -> dict:
        return {"Ellipse": {
            "center": list(self.center),
            "semi_major": self.semi_major,
            "semi_minor": self.semi_minor,
            "rotation": self.rotation,
        }}


Geometry = Union[PointGeometry, LineGeometry, CircleGeometry, ArcGeometry, EllipseGeometry]


_GEOMETRY_DESERIALIZERS = {
    "Point": lambda d: PointGeometry(pos=_pt(d["pos"])),
    "Line": lambda d: LineGeometry(start=_pt(d["start"]), end=_pt(d["end"])),
    "Circle": lambda d: CircleGeometry(center=_pt(d["center"]), radius=float(d["radius"])),
    "Arc": lambda d: ArcGeometry(
        center=_pt(d["center"]),
        radius=float(d["radius"]),
        start_angle=float(d["start_angle"]),
        end_angle=float(d["end_angle"]),
    ),
    "Ellipse": lambda d: EllipseGeometry(
        center=_pt(d["center"]),
        semi_major=float(d["semi_major"]),
        semi_minor=float(d["semi_minor"]),
        rotation=float(d.get("rotation", 0.0)),
    ),
}


def geometry_from_dict(d: dict) -> Geometry:
    """Deserialize any geometry variant from its externally-tagged dict."""
    (tag, body), = d.items()
    try:
        return _GEOMETRY_DESERIALIZERS[tag](body)
    except KeyError:
        raise ValueError(f"Unknown geometry kind: {tag}") from None


# ---------------------------------------------------------------------------
# Entities and history
# ---------------------------------------------------------------------------

@dataclass
class SketchEntity:
    """A geometry variant with identity and a construction flag."""
    id: str
    geometry: Geometry
    is_construction: bool = False

    @property
    def is_preview(self) -> bool:
        return self.id.startswith(PREVIEW_PREFIX)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "geometry": self.geometry.to_dict(),
            "is_construction": self.is_construction,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SketchEntity":
        return cls(
            id=d["id"],
            geometry=geometry_from_dict(d["geometry"]),
            is_construction=bool(d.get("is_construction", False)),
        )


@dataclass(frozen=True)
class AddGeometry:
    id: str
    geometry: Geometry

    def to_dict(self) -> dict:
        return {"AddGeometry": {"id": self.id, "geometry": self.geometry.to_dict()}}


@dataclass(frozen=True)
class AddConstraint:
    constraint: object

    def to_dict(self) -> dict:
        return {"AddConstraint": {"constraint": self.constraint.to_dict()}}


SketchOperation = Union[AddGeometry, AddConstraint]


def operation_from_dict(d: dict) -> SketchOperation:
    if "AddGeometry" in d:
        body = d["AddGeometry"]
        return AddGeometry(id=body["id"], geometry=geometry_from_dict(body["geometry"]))
    if "AddConstraint" in d:
        return AddConstraint(constraint=constraint_from_dict(d["AddConstraint"]["constraint"]))
    raise ValueError(f"Unknown history operation: {list(d)}")


@dataclass(frozen=True)
class TopoId:
    """Stable topological name of a solid face/edge/vertex, as issued by the kernel."""
    feature_id: str
    local_id: str
    rank: int = 0

    def matches(self, other: Optional["TopoId"]) -> bool:
        if other is None:
            return False
        return (
            str(self.feature_id) == str(other.feature_id)
            and str(self.local_id) == str(other.local_id)
            and str(self.rank) == str(other.rank)
        )

    def to_dict(self) -> dict:
        return {"feature_id": self.feature_id, "local_id": self.local_id, "rank": self.rank}

    @classmethod
    def from_dict(cls, d: dict) -> "TopoId":
        return cls(feature_id=str(d["feature_id"]), local_id=str(d["local_id"]), rank=int(d.get("rank", 0)))


# ---------------------------------------------------------------------------
# Sketch
# ---------------------------------------------------------------------------

@dataclass
class Sketch:
    """
    A 2D sketch on an oriented plane.

    Attributes:
        plane:       The immutable :class:`SketchPlane`.
        entities:    Committed entities, plus any transient preview entities.
        constraints: Constraint entries (constraint + suppression flag).
        history:     Append-only log of applied operations.
        external_references: Projected entity id -> source :class:`TopoId`.
    """
    plane: SketchPlane = field(default_factory=SketchPlane)
    entities: List[SketchEntity] = field(default_factory=list)
    constraints: List[SketchConstraintEntry] = field(default_factory=list)
    history: List[SketchOperation] = field(default_factory=list)
    external_references: Dict[str, TopoId] = field(default_factory=dict)

    # -- Queries -------------------------------------------------------------

    def get_entity(self, entity_id: str) -> Optional[SketchEntity]:
        for e in self.entities:
            if e.id == entity_id:
                return e
        return None

    def __contains__(self, entity_id: str) -> bool:
        return self.get_entity(entity_id) is not None

    def committed_entities(self) -> List[SketchEntity]:
        return [e for e in self.entities if not e.is_preview]

    def preview_entities(self) -> List[SketchEntity]:
        return [e for e in self.entities if e.is_preview]

    def active_constraints(self) -> list:
        """Constraints that are not suppressed."""
        return [c.constraint for c in self.constraints if not c.suppressed]

    def dangling_references(self) -> List[Tuple[int, str]]:
        """
        Return ``(constraint_index, entity_id)`` pairs that no longer
        resolve.  A healthy sketch returns an empty list.
        """
        ids = {e.id for e in self.entities}
        ids.add(ORIGIN_ID)
        return [
            (i, ref)
            for i, entry in enumerate(self.constraints)
            for ref in entry.constraint.references()
            if ref not in ids
        ]

    # -- Mutations -----------------------------------------------------------

    def add_entity(self, entity: SketchEntity) -> SketchEntity:
        """Append a committed entity and record it in history."""
        self.entities.append(entity)
        self.history.append(AddGeometry(id=entity.id, geometry=entity.geometry))
        return entity

    def add_constraint(self, constraint, suppressed: bool = False) -> int:
        """Append a constraint, record it in history, return its index."""
        self.constraints.append(SketchConstraintEntry(constraint, suppressed))
        self.history.append(AddConstraint(constraint=constraint))
        return len(self.constraints) - 1

    def set_preview(self, entities: List[SketchEntity], prefix: str):
        """
        Replace every preview entity whose id starts with *prefix* by
        *entities*.  History is never touched.
        """
        self.clear_preview(prefix)
        self.entities.extend(entities)

    def clear_preview(self, prefix: Optional[str] = None) -> int:
        """Remove preview entities (all, or those matching *prefix*)."""
        match = prefix or PREVIEW_PREFIX
        before = len(self.entities)
        self.entities = [e for e in self.entities if not e.id.startswith(match)]
        return before - len(self.entities)

    def remove_entity(self, entity_id: str) -> Optional[SketchEntity]:
        """
        Remove an entity and every constraint that references it.

        Returns the removed entity, or ``None`` if it wasn't present.
        """
        entity = self.get_entity(entity_id)
        if entity is None:
            return None
        self.entities = [e for e in self.entities if e.id != entity_id]
        kept = [c for c in self.constraints if entity_id not in c.constraint.references()]
        dropped = len(self.constraints) - len(kept)
        self.constraints = kept
        self.external_references.pop(entity_id, None)
        if dropped:
            print(f"[SketchWorks] Removed {dropped} constraint(s) referencing {entity_id}")
        return entity

    def replace_geometry(self, entity_id: str, geometry: Geometry) -> bool:
        """
        Swap the geometry of an existing entity, keeping its id and flags.

        Like :meth:`remove_entity` this is an edit, not an addition, so
        history is left alone.
        """
        entity = self.get_entity(entity_id)
        if entity is None:
            return False
        entity.geometry = geometry
        return True

    def remap_points(self, fn) -> int:
        """
        Rewrite every constraint point through ``fn(point)``.

        Constraints for which *fn* returns ``None`` on some point are
        dropped.  Returns how many were dropped.
        """
        kept = []
        for entry in self.constraints:
            mapped = map_points(entry.constraint, fn)
            if mapped is None:
                continue
            entry.constraint = mapped
            kept.append(entry)
        dropped = len(self.constraints) - len(kept)
        self.constraints = kept
        if dropped:
            print(f"[SketchWorks] Dropped {dropped} constraint(s) on moved points")
        return dropped

    def copy(self) -> "Sketch":
        return copy.deepcopy(self)

    # -- Serialization -------------------------------------------------------

    def to_dict(self, include_preview: bool = False) -> dict:
        entities = self.entities if include_preview else self.committed_entities()
        return {
            "plane": self.plane.to_dict(),
            "entities": [e.to_dict() for e in entities],
            "constraints": [c.to_dict() for c in self.constraints],
            "history": [op.to_dict() for op in self.history],
            "external_references": {
                eid: topo.to_dict() for eid, topo in self.external_references.items()
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Sketch":
        return cls(
            plane=SketchPlane.from_dict(d["plane"]) if "plane" in d else SketchPlane(),
            entities=[SketchEntity.from_dict(e) for e in d.get("entities", [])],
            constraints=[SketchConstraintEntry.from_dict(c) for c in d.get("constraints", [])],
            history=[operation_from_dict(op) for op in d.get("history", [])],
            external_references={
                eid: TopoId.from_dict(t)
                for eid, t in d.get("external_references", {}).items()
            },
        )


# ---------------------------------------------------------------------------
# Pure query helpers: return None for anything that does not resolve
# ---------------------------------------------------------------------------

def get_entity(sketch: Sketch, entity_id: str) -> Optional[SketchEntity]:
    return sketch.get_entity(entity_id)


def constraint_point_position(sketch: Sketch, cp: ConstraintPoint) -> Optional[Point2]:
    """Resolve a constraint point to its current 2D position."""
    if cp.id == ORIGIN_ID:
        return (0.0, 0.0)
    entity = sketch.get_entity(cp.id)
    if entity is None:
        return None
    return geometry_point(entity.geometry, cp.index)


def geometry_point(geom: Geometry, index: int) -> Optional[Point2]:
    """Canonical point *index* on a geometry variant."""
    if isinstance(geom, LineGeometry):
        return geom.start if index == 0 else geom.end
    if isinstance(geom, CircleGeometry):
        return geom.center
    if isinstance(geom, ArcGeometry):
        if index == 0:
            return geom.center
        return geom.start_point if index == 1 else geom.end_point
    if isinstance(geom, PointGeometry):
        return geom.pos
    if isinstance(geom, EllipseGeometry):
        return geom.center
    return None


def line_geometry(sketch: Sketch, entity_id: str) -> Optional[LineGeometry]:
    entity = sketch.get_entity(entity_id)
    if entity is None or not isinstance(entity.geometry, LineGeometry):
        return None
    return entity.geometry


def circle_geometry(sketch: Sketch, entity_id: str) -> Optional[CircleGeometry]:
    entity = sketch.get_entity(entity_id)
    if entity is None or not isinstance(entity.geometry, CircleGeometry):
        return None
    return entity.geometry


def arc_geometry(sketch: Sketch, entity_id: str) -> Optional[ArcGeometry]:
    entity = sketch.get_entity(entity_id)
    if entity is None or not isinstance(entity.geometry, ArcGeometry):
        return None
    return entity.geometry


def line_midpoint(sketch: Sketch, entity_id: str) -> Optional[Point2]:
    line = line_geometry(sketch, entity_id)
    return line.midpoint if line is not None else None


def line_direction(sketch: Sketch, entity_id: str) -> Optional[Point2]:
    """Unit direction start -> end, or ``None`` for a degenerate line."""
    line = line_geometry(sketch, entity_id)
    if line is None:
        return None
    length = line.length
    if length < 1e-10:
        return None
    return (
        (line.end[0] - line.start[0]) / length,
        (line.end[1] - line.start[1]) / length,
    )


def line_length(sketch: Sketch, entity_id: str) -> Optional[float]:
    line = line_geometry(sketch, entity_id)
    return line.length if line is not None else None
