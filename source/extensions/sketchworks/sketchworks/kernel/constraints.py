"""
Sketch constraints — the closed set of relations the solver understands.

Each relation kind is its own small dataclass so that a constraint can
never carry fields that don't belong to it.  ``ConstraintType`` names the
kind, and ``constraint_from_dict`` dispatches on the wire tag the same way
``primitive_from_dict`` dispatches sketch primitives.

Wire format
-----------
Constraints serialise to an externally-tagged dict, e.g.::

    {"Coincident": {"points": [{"id": "...", "index": 1},
                               {"id": "...", "index": 0}]}}
    {"Distance": {"points": [...], "value": 4.0,
                  "style": {"driven": false, "offset": [0.0, 1.0]}}}

Entity references
-----------------
A :class:`ConstraintPoint` names a canonical point on an entity:

* Line    — 0 = start, 1 = end
* Circle  — 0 = center
* Arc     — 0 = center, 1 = start boundary, 2 = end boundary
* Point   — 0 = position
* Ellipse — 0 = center

``ORIGIN_ID`` (the all-zero UUID) refers to the sketch origin.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum, auto
from typing import Callable, Dict, List, Optional, Tuple, Union

ORIGIN_ID = "00000000-0000-0000-0000-000000000000"


class ConstraintType(Enum):
    COINCIDENT = auto()
    HORIZONTAL = auto()
    VERTICAL = auto()
    PARALLEL = auto()
    PERPENDICULAR = auto()
    EQUAL = auto()
    TANGENT = auto()
    SYMMETRIC = auto()
    FIX = auto()
    DISTANCE = auto()
    HORIZONTAL_DISTANCE = auto()
    VERTICAL_DISTANCE = auto()
    ANGLE = auto()
    RADIUS = auto()
    DISTANCE_POINT_LINE = auto()
    DISTANCE_PARALLEL_LINES = auto()


# Wire tag for each kind (matches the solver's enum variant names)
CONSTRAINT_TAGS: Dict[ConstraintType, str] = {
    ConstraintType.COINCIDENT: "Coincident",
    ConstraintType.HORIZONTAL: "Horizontal",
    ConstraintType.VERTICAL: "Vertical",
    ConstraintType.PARALLEL: "Parallel",
    ConstraintType.PERPENDICULAR: "Perpendicular",
    ConstraintType.EQUAL: "Equal",
    ConstraintType.TANGENT: "Tangent",
    ConstraintType.SYMMETRIC: "Symmetric",
    ConstraintType.FIX: "Fix",
    ConstraintType.DISTANCE: "Distance",
    ConstraintType.HORIZONTAL_DISTANCE: "HorizontalDistance",
    ConstraintType.VERTICAL_DISTANCE: "VerticalDistance",
    ConstraintType.ANGLE: "Angle",
    ConstraintType.RADIUS: "Radius",
    ConstraintType.DISTANCE_POINT_LINE: "DistancePointLine",
    ConstraintType.DISTANCE_PARALLEL_LINES: "DistanceParallelLines",
}


# ---------------------------------------------------------------------------
# Shared value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConstraintPoint:
    """A canonical point on an entity (see module docstring for indices)."""
    id: str
    index: int = 0

    @property
    def is_origin(self) -> bool:
        return self.id == ORIGIN_ID

    def to_dict(self) -> dict:
        return {"id": self.id, "index": self.index}

    @classmethod
    def from_dict(cls, d: dict) -> "ConstraintPoint":
        return cls(id=d["id"], index=int(d.get("index", 0)))


def origin_point() -> ConstraintPoint:
    return ConstraintPoint(ORIGIN_ID, 0)


@dataclass(frozen=True)
class DimensionStyle:
    """
    Presentation of a visible dimension.

    Attributes:
        driven:     Reference-only (read-out) when True; driving otherwise.
        offset:     Annotation placement in the constraint's own local frame
                    (parallel / perpendicular for distances, angle / radius
                    for radial and angular dimensions).
        expression: Optional parameter expression (e.g. ``"@width * 2"``).
    """
    driven: bool = False
    offset: Tuple[float, float] = (0.0, 1.0)
    expression: Optional[str] = None

    def with_offset(self, offset: Tuple[float, float]) -> "DimensionStyle":
        return replace(self, offset=(float(offset[0]), float(offset[1])))

    def to_dict(self) -> dict:
        d = {"driven": self.driven, "offset": [self.offset[0], self.offset[1]]}
        if self.expression is not None:
            d["expression"] = self.expression
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "DimensionStyle":
        off = d.get("offset", (0.0, 1.0))
        return cls(
            driven=bool(d.get("driven", False)),
            offset=(float(off[0]), float(off[1])),
            expression=d.get("expression"),
        )


def _pair(values) -> Tuple[str, str]:
    return (values[0], values[1])


def _point_pair(values) -> Tuple[ConstraintPoint, ConstraintPoint]:
    return (ConstraintPoint.from_dict(values[0]), ConstraintPoint.from_dict(values[1]))


def _style_from(d: dict) -> Optional[DimensionStyle]:
    s = d.get("style")
    return DimensionStyle.from_dict(s) if s is not None else None


def _with_style(body: dict, style: Optional[DimensionStyle]) -> dict:
    if style is not None:
        body["style"] = style.to_dict()
    return body


# ---------------------------------------------------------------------------
# Geometric relations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coincident:
    points: Tuple[ConstraintPoint, ConstraintPoint]
    ctype = ConstraintType.COINCIDENT

    def references(self) -> List[str]:
        return [p.id for p in self.points]

    def to_dict(self) -> dict:
        return {"Coincident": {"points": [p.to_dict() for p in self.points]}}


@dataclass(frozen=True)
class Horizontal:
    entity: str
    ctype = ConstraintType.HORIZONTAL

    def references(self) -> List[str]:
        return [self.entity]

    def to_dict(self) -> dict:
        return {"Horizontal": {"entity": self.entity}}


@dataclass(frozen=True)
class Vertical:
    entity: str
    ctype = ConstraintType.VERTICAL

    def references(self) -> List[str]:
        return [self.entity]

    def to_dict(self) -> dict:
        return {"Vertical": {"entity": self.entity}}


@dataclass(frozen=True)
class Parallel:
    lines: Tuple[str, str]
    ctype = ConstraintType.PARALLEL

    def references(self) -> List[str]:
        return list(self.lines)

    def to_dict(self) -> dict:
        return {"Parallel": {"lines": list(self.lines)}}


@dataclass(frozen=True)
class Perpendicular:
    lines: Tuple[str, str]
    ctype = ConstraintType.PERPENDICULAR

    def references(self) -> List[str]:
        return list(self.lines)

    def to_dict(self) -> dict:
        return {"Perpendicular": {"lines": list(self.lines)}}


@dataclass(frozen=True)
class Equal:
    entities: Tuple[str, str]
    ctype = ConstraintType.EQUAL

    def references(self) -> List[str]:
        return list(self.entities)

    def to_dict(self) -> dict:
        return {"Equal": {"entities": list(self.entities)}}


@dataclass(frozen=True)
class Tangent:
    entities: Tuple[str, str]
    ctype = ConstraintType.TANGENT

    def references(self) -> List[str]:
        return list(self.entities)

    def to_dict(self) -> dict:
        return {"Tangent": {"entities": list(self.entities)}}


@dataclass(frozen=True)
class Symmetric:
    """``p2`` is the reflection of ``p1`` across the ``axis`` line."""
    p1: ConstraintPoint
    p2: ConstraintPoint
    axis: str
    ctype = ConstraintType.SYMMETRIC

    def references(self) -> List[str]:
        return [self.p1.id, self.p2.id, self.axis]

    def to_dict(self) -> dict:
        return {"Symmetric": {
            "p1": self.p1.to_dict(),
            "p2": self.p2.to_dict(),
            "axis": self.axis,
        }}


@dataclass(frozen=True)
class Fix:
    point: ConstraintPoint
    position: Tuple[float, float]
    ctype = ConstraintType.FIX

    def references(self) -> List[str]:
        return [self.point.id]

    def to_dict(self) -> dict:
        return {"Fix": {
            "point": self.point.to_dict(),
            "position": [self.position[0], self.position[1]],
        }}


# ---------------------------------------------------------------------------
# Dimensional relations: all carry a value and an optional style
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Distance:
    points: Tuple[ConstraintPoint, ConstraintPoint]
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.DISTANCE

    def references(self) -> List[str]:
        return [p.id for p in self.points]

    def to_dict(self) -> dict:
        body = {"points": [p.to_dict() for p in self.points], "value": self.value}
        return {"Distance": _with_style(body, self.style)}


@dataclass(frozen=True)
class HorizontalDistance:
    points: Tuple[ConstraintPoint, ConstraintPoint]
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.HORIZONTAL_DISTANCE

    def references(self) -> List[str]:
        return [p.id for p in self.points]

    def to_dict(self) -> dict:
        body = {"points": [p.to_dict() for p in self.points], "value": self.value}
        return {"HorizontalDistance": _with_style(body, self.style)}


@dataclass(frozen=True)
class VerticalDistance:
    points: Tuple[ConstraintPoint, ConstraintPoint]
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.VERTICAL_DISTANCE

    def references(self) -> List[str]:
        return [p.id for p in self.points]

    def to_dict(self) -> dict:
        body = {"points": [p.to_dict() for p in self.points], "value": self.value}
        return {"VerticalDistance": _with_style(body, self.style)}


@dataclass(frozen=True)
class Angle:
    """Angle between two lines, in radians."""
    lines: Tuple[str, str]
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.ANGLE

    def references(self) -> List[str]:
        return list(self.lines)

    def to_dict(self) -> dict:
        body = {"lines": list(self.lines), "value": self.value}
        return {"Angle": _with_style(body, self.style)}


@dataclass(frozen=True)
class Radius:
    entity: str
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.RADIUS

    def references(self) -> List[str]:
        return [self.entity]

    def to_dict(self) -> dict:
        body = {"entity": self.entity, "value": self.value}
        return {"Radius": _with_style(body, self.style)}


@dataclass(frozen=True)
class DistancePointLine:
    point: ConstraintPoint
    line: str
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.DISTANCE_POINT_LINE

    def references(self) -> List[str]:
        return [self.point.id, self.line]

    def to_dict(self) -> dict:
        body = {"point": self.point.to_dict(), "line": self.line, "value": self.value}
        return {"DistancePointLine": _with_style(body, self.style)}


@dataclass(frozen=True)
class DistanceParallelLines:
    lines: Tuple[str, str]
    value: float
    style: Optional[DimensionStyle] = None
    ctype = ConstraintType.DISTANCE_PARALLEL_LINES

    def references(self) -> List[str]:
        return list(self.lines)

    def to_dict(self) -> dict:
        body = {"lines": list(self.lines), "value": self.value}
        return {"DistanceParallelLines": _with_style(body, self.style)}


SketchConstraint = Union[
    Coincident, Horizontal, Vertical, Parallel, Perpendicular, Equal,
    Tangent, Symmetric, Fix, Distance, HorizontalDistance, VerticalDistance,
    Angle, Radius, DistancePointLine, DistanceParallelLines,
]

DIMENSIONAL_TYPES = (
    Distance, HorizontalDistance, VerticalDistance, Angle, Radius,
    DistancePointLine, DistanceParallelLines,
)


def is_dimensional(constraint) -> bool:
    return isinstance(constraint, DIMENSIONAL_TYPES)


def with_style(constraint, style: DimensionStyle):
    """Return a copy of a dimensional constraint with *style* replaced."""
    return replace(constraint, style=style)


def with_value(constraint, value: float, expression: Optional[str] = None):
    """Return a copy of a dimensional constraint with a new value."""
    if expression is not None:
        style = constraint.style or DimensionStyle()
        return replace(constraint, value=float(value), style=replace(style, expression=expression))
    return replace(constraint, value=float(value))


def constraint_points(constraint) -> List[ConstraintPoint]:
    """Every :class:`ConstraintPoint` a constraint names, in field order."""
    points = []
    for f in fields(constraint):
        value = getattr(constraint, f.name)
        if isinstance(value, ConstraintPoint):
            points.append(value)
        elif isinstance(value, tuple):
            points.extend(p for p in value if isinstance(p, ConstraintPoint))
    return points


def map_points(constraint, fn: Callable[[ConstraintPoint], Optional[ConstraintPoint]]):
    """
    Return a copy of *constraint* with each point replaced by ``fn(point)``.

    If *fn* returns ``None`` for any point the constraint no longer holds
    and ``None`` is returned.  Entity-level references are left alone.
    """
    changes = {}
    for f in fields(constraint):
        value = getattr(constraint, f.name)
        if isinstance(value, ConstraintPoint):
            mapped = fn(value)
            if mapped is None:
                return None
            changes[f.name] = mapped
        elif isinstance(value, tuple) and value and isinstance(value[0], ConstraintPoint):
            mapped = tuple(fn(p) for p in value)
            if any(p is None for p in mapped):
                return None
            changes[f.name] = mapped
    return replace(constraint, **changes) if changes else constraint


# ---------------------------------------------------------------------------
# Deserialization
# ---------------------------------------------------------------------------

_CONSTRAINT_DESERIALIZERS = {
    "Coincident": lambda d: Coincident(points=_point_pair(d["points"])),
    "Horizontal": lambda d: Horizontal(entity=d["entity"]),
    "Vertical": lambda d: Vertical(entity=d["entity"]),
    "Parallel": lambda d: Parallel(lines=_pair(d["lines"])),
    "Perpendicular": lambda d: Perpendicular(lines=_pair(d["lines"])),
    "Equal": lambda d: Equal(entities=_pair(d["entities"])),
    "Tangent": lambda d: Tangent(entities=_pair(d["entities"])),
    "Symmetric": lambda d: Symmetric(
        p1=ConstraintPoint.from_dict(d["p1"]),
        p2=ConstraintPoint.from_dict(d["p2"]),
        axis=d["axis"],
    ),
    "Fix": lambda d: Fix(
        point=ConstraintPoint.from_dict(d["point"]),
        position=(float(d["position"][0]), float(d["position"][1])),
    ),
    "Distance": lambda d: Distance(
        points=_point_pair(d["points"]), value=float(d["value"]), style=_style_from(d),
    ),
    "HorizontalDistance": lambda d: HorizontalDistance(
        points=_point_pair(d["points"]), value=float(d["value"]), style=_style_from(d),
    ),
    "VerticalDistance": lambda d: VerticalDistance(
        points=_point_pair(d["points"]), value=float(d["value"]), style=_style_from(d),
    ),
    "Angle": lambda d: Angle(
        lines=_pair(d["lines"]), value=float(d["value"]), style=_style_from(d),
    ),
    "Radius": lambda d: Radius(
        entity=d["entity"], value=float(d["value"]), style=_style_from(d),
    ),
    "DistancePointLine": lambda d: DistancePointLine(
        point=ConstraintPoint.from_dict(d["point"]), line=d["line"],
        value=float(d["value"]), style=_style_from(d),
    ),
    "DistanceParallelLines": lambda d: DistanceParallelLines(
        lines=_pair(d["lines"]), value=float(d["value"]), style=_style_from(d),
    ),
}


def constraint_from_dict(d: dict):
    """Deserialize any constraint from its externally-tagged dict."""
    if len(d) != 1:
        raise ValueError(f"Expected a single constraint tag, got {list(d)}")
    (tag, body), = d.items()
    try:
        builder = _CONSTRAINT_DESERIALIZERS[tag]
    except KeyError:
        raise ValueError(f"Unknown constraint kind: {tag}") from None
    return builder(body)


# ---------------------------------------------------------------------------
# Constraint entry (suppression wrapper)
# ---------------------------------------------------------------------------

@dataclass
class SketchConstraintEntry:
    """A constraint plus its suppression flag, as stored on a Sketch."""
    constraint: SketchConstraint
    suppressed: bool = False

    def to_dict(self) -> dict:
        return {"constraint": self.constraint.to_dict(), "suppressed": self.suppressed}

    @classmethod
    def from_dict(cls, d: dict) -> "SketchConstraintEntry":
        # Older payloads store the bare constraint without a wrapper
        if "constraint" not in d:
            return cls(constraint=constraint_from_dict(d))
        return cls(
            constraint=constraint_from_dict(d["constraint"]),
            suppressed=bool(d.get("suppressed", False)),
        )
