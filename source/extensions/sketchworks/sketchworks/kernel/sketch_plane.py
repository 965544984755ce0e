"""
Sketch Plane — the oriented 2D frame that every sketch lives on.

A sketch plane is an origin plus three mutually orthonormal axes
(``x_axis``, ``y_axis``, ``normal``) with ``x_axis × y_axis == normal``.
All sketch geometry is stored in plane-local ``(u, v)`` coordinates;
``to_world`` / ``to_local`` are the only places where the 3D frame is
consulted, so the rest of the engine can stay purely 2D.

The plane is immutable once a sketch is created.  Moving a sketch to a
different plane means creating a new sketch.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from build123d import Plane, Vector

Vec3 = Tuple[float, float, float]


def _as_tuple(v) -> Vec3:
    """Accept a build123d ``Vector``, numpy array, or any 3-sequence."""
    if isinstance(v, Vector):
        return (float(v.X), float(v.Y), float(v.Z))
    return (float(v[0]), float(v[1]), float(v[2]))


def _dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _normalize(a: Vec3) -> Vec3:
    mag = math.sqrt(_dot(a, a))
    if mag < 1e-12:
        return (0.0, 0.0, 0.0)
    return (a[0] / mag, a[1] / mag, a[2] / mag)


@dataclass(frozen=True)
class SketchPlane:
    """
    An oriented plane in world space.

    Attributes:
        origin: World position of the sketch origin ``(0, 0)``.
        normal: Unit normal (the sketch's local +Z).
        x_axis: Unit world direction of the local +U axis.
        y_axis: Unit world direction of the local +V axis.
    """
    origin: Vec3 = (0.0, 0.0, 0.0)
    normal: Vec3 = (0.0, 0.0, 1.0)
    x_axis: Vec3 = (1.0, 0.0, 0.0)
    y_axis: Vec3 = (0.0, 1.0, 0.0)

    # -- Construction ---------------------------------------------------------

    @classmethod
    def from_normal(
        cls,
        origin: Sequence[float],
        normal: Sequence[float],
        x_hint: Optional[Sequence[float]] = None,
    ) -> "SketchPlane":
        """
        Build a right-handed orthonormal frame from an origin and normal.

        *x_hint* is projected into the plane to become the U axis.  When it
        is missing (or parallel to the normal) a reference axis that is not
        parallel to the normal is used instead, the same way construction
        plane quads pick their tangent vectors.
        """
        n = _normalize(_as_tuple(normal))
        if x_hint is not None:
            hint = _as_tuple(x_hint)
        elif abs(n[0]) < 0.9:
            hint = (1.0, 0.0, 0.0)
        else:
            hint = (0.0, 1.0, 0.0)

        # Gram-Schmidt: remove the normal component from the hint
        d = _dot(hint, n)
        x = _normalize((hint[0] - d * n[0], hint[1] - d * n[1], hint[2] - d * n[2]))
        if x == (0.0, 0.0, 0.0):
            return cls.from_normal(origin, n, None)
        y = _cross(n, x)
        return cls(origin=_as_tuple(origin), normal=n, x_axis=x, y_axis=y)

    @classmethod
    def from_build123d_plane(cls, plane: Plane) -> "SketchPlane":
        """Adopt a ``build123d.Plane`` (its x_dir / y_dir / z_dir)."""
        return cls(
            origin=_as_tuple(plane.origin),
            normal=_as_tuple(plane.z_dir),
            x_axis=_as_tuple(plane.x_dir),
            y_axis=_as_tuple(plane.y_dir),
        )

    def to_build123d_plane(self) -> Plane:
        """Convert to a ``build123d.Plane`` for profile construction."""
        return Plane(
            origin=Vector(*self.origin),
            x_dir=Vector(*self.x_axis),
            z_dir=Vector(*self.normal),
        )

    # -- Invariants -----------------------------------------------------------

    def is_orthonormal(self, tol: float = 1e-9) -> bool:
        """True when all axes are unit length and ``x × y == normal``."""
        for axis in (self.x_axis, self.y_axis, self.normal):
            if abs(_dot(axis, axis) - 1.0) > tol:
                return False
        if abs(_dot(self.x_axis, self.y_axis)) > tol:
            return False
        c = _cross(self.x_axis, self.y_axis)
        return all(abs(c[i] - self.normal[i]) <= tol for i in range(3))

    # -- Serialization --------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "origin": list(self.origin),
            "normal": list(self.normal),
            "x_axis": list(self.x_axis),
            "y_axis": list(self.y_axis),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SketchPlane":
        return cls(
            origin=_as_tuple(d["origin"]),
            normal=_as_tuple(d.get("normal", (0.0, 0.0, 1.0))),
            x_axis=_as_tuple(d["x_axis"]),
            y_axis=_as_tuple(d["y_axis"]),
        )


# ---------------------------------------------------------------------------
# Local <-> world transforms
# ---------------------------------------------------------------------------

def to_world(u: float, v: float, plane: SketchPlane) -> Vector:
    """Map sketch-local ``(u, v)`` to a world-space point."""
    o, x, y = plane.origin, plane.x_axis, plane.y_axis
    return Vector(
        o[0] + u * x[0] + v * y[0],
        o[1] + u * x[1] + v * y[1],
        o[2] + u * x[2] + v * y[2],
    )


def to_local(point, plane: SketchPlane) -> Tuple[float, float]:
    """
    Map a world-space point to sketch-local ``(u, v)``.

    Points off the plane are projected along the normal.
    """
    p = _as_tuple(point)
    o = plane.origin
    diff = (p[0] - o[0], p[1] - o[1], p[2] - o[2])
    return (_dot(diff, plane.x_axis), _dot(diff, plane.y_axis))


def plane_matrix(plane: SketchPlane) -> np.ndarray:
    """4x4 homogeneous matrix taking local ``(u, v, w, 1)`` to world."""
    m = np.identity(4, dtype=np.float64)
    m[:3, 0] = plane.x_axis
    m[:3, 1] = plane.y_axis
    m[:3, 2] = plane.normal
    m[:3, 3] = plane.origin
    return m


def ray_plane_intersection(
    origin: Sequence[float],
    direction: Sequence[float],
    plane: SketchPlane,
) -> Optional[np.ndarray]:
    """
    Intersect a ray with the sketch plane.

    Returns the world-space hit point, or ``None`` when the ray is parallel
    to the plane or the plane lies behind the ray origin.
    """
    o = np.asarray(origin, dtype=np.float64)
    d = np.asarray(direction, dtype=np.float64)
    n = np.asarray(plane.normal, dtype=np.float64)
    denom = float(np.dot(d, n))
    if abs(denom) < 1e-9:
        return None
    t = float(np.dot(np.asarray(plane.origin) - o, n)) / denom
    if t < 0.0:
        return None
    return o + d * t


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def standard_planes() -> Dict[str, SketchPlane]:
    """
    The three origin planes, matching build123d's ``Plane.XY/XZ/YZ``.
    """
    return {
        "XY": SketchPlane.from_build123d_plane(Plane.XY),
        "XZ": SketchPlane.from_build123d_plane(Plane.XZ),
        "YZ": SketchPlane.from_build123d_plane(Plane.YZ),
    }


def plane_from_str(name: str) -> SketchPlane:
    """
    Return a standard plane by name (``"XY"``, ``"XZ"``, ``"YZ"``, any case).

    Raises:
        ValueError: *name* is not one of the standard planes.
    """
    planes = standard_planes()
    try:
        return planes[name.upper()]
    except KeyError:
        raise ValueError(f"Unknown sketch plane: {name!r}") from None
