"""
Picking Service — resolves a screen pixel to the thing under the cursor.

A ray is cast from the camera through the pixel and tested against four
target groups:

1. dimension hitboxes (overlays on the sketch plane, drawn without depth)
2. sketch entities (curves and their defining points)
3. snap markers
4. solid tessellations (faces, plus edge polylines and vertices)

Hits are ordered by ray distance; distances within ``distance_epsilon``
count as a tie and are broken by a per-kind score (lower wins).  Dimension
hitboxes are overlays, so any hitbox hit comes before every other hit.
When nothing is hit the result is ``EMPTY`` and carries the plane-local
``(u, v)`` under the cursor and the profile region enclosing it, if any.
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..kernel.geometry import Point2, distance
from ..kernel.profiles import ProfileRegion, detect_regions, find_region_at
from ..kernel.sketch import Sketch, TopoId
from ..kernel.sketch_plane import SketchPlane, ray_plane_intersection, to_local
from ..kernel.snapping import SnapPoint, curve_distance, entity_points
from ..kernel.tessellator import TessellatedMesh
from .dimensions import DimensionGraphic, DimensionHitbox, DimensionRenderer


class PickKind(Enum):
    DIMENSION = auto()
    SKETCH_POINT = auto()
    SKETCH_ENTITY = auto()
    SNAP = auto()
    VERTEX = auto()
    EDGE = auto()
    FACE = auto()
    EMPTY = auto()


DEFAULT_TYPE_SCORES: Dict[PickKind, int] = {
    PickKind.DIMENSION: -3,
    PickKind.SKETCH_POINT: -2,
    PickKind.SKETCH_ENTITY: -2,
    PickKind.SNAP: -1,
    PickKind.VERTEX: -1,
    PickKind.EDGE: 0,
    PickKind.FACE: 2,
}


@dataclass
class PickingConfig:
    """Hit tolerances in world / sketch units."""
    point_threshold: float = 0.3
    line_threshold: float = 0.2
    edge_threshold: float = 0.1
    vertex_threshold: float = 0.15
    distance_epsilon: float = 1e-4
    type_scores: Dict[PickKind, int] = field(default_factory=lambda: dict(DEFAULT_TYPE_SCORES))


# ---------------------------------------------------------------------------
# Camera and rays
# ---------------------------------------------------------------------------

@dataclass
class Ray:
    origin: np.ndarray
    direction: np.ndarray

    def point_at(self, t: float) -> np.ndarray:
        return self.origin + self.direction * t

    def closest_t(self, p: np.ndarray) -> float:
        return float(np.dot(p - self.origin, self.direction))

    def distance_to(self, p: np.ndarray) -> float:
        t = max(0.0, self.closest_t(p))
        return float(np.linalg.norm(p - self.point_at(t)))


def _unit(v: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(v)
    return v / n if n > 1e-12 else v


@dataclass
class Camera:
    """
    Look-at camera producing pick rays from pixel coordinates.

    ``(x, y)`` pixels have their origin at the top-left of the viewport.
    Orthographic cameras use ``ortho_height`` as the visible world height.
    """
    position: Tuple[float, float, float] = (0.0, 0.0, 10.0)
    target: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    up: Tuple[float, float, float] = (0.0, 1.0, 0.0)
    fov_deg: float = 45.0
    width: int = 800
    height: int = 600
    orthographic: bool = False
    ortho_height: float = 10.0

    @property
    def aspect(self) -> float:
        return self.width / float(self.height) if self.height else 1.0

    def basis(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """``(forward, right, up)`` unit vectors."""
        forward = _unit(np.asarray(self.target, float) - np.asarray(self.position, float))
        right = _unit(np.cross(forward, np.asarray(self.up, float)))
        true_up = np.cross(right, forward)
        return forward, right, true_up

    def ray(self, x: float, y: float) -> Ray:
        ndc_x = 2.0 * x / self.width - 1.0
        ndc_y = 1.0 - 2.0 * y / self.height
        forward, right, up = self.basis()
        eye = np.asarray(self.position, dtype=np.float64)

        if self.orthographic:
            half_h = self.ortho_height / 2.0
            origin = eye + right * (ndc_x * half_h * self.aspect) + up * (ndc_y * half_h)
            return Ray(origin, forward)

        tan = math.tan(math.radians(self.fov_deg) / 2.0)
        direction = forward + right * (ndc_x * tan * self.aspect) + up * (ndc_y * tan)
        return Ray(eye, _unit(direction))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class PickResult:
    kind: PickKind
    distance: float = math.inf
    point: Optional[np.ndarray] = None
    local: Optional[Point2] = None
    entity_id: Optional[str] = None
    point_index: Optional[int] = None
    dimension_index: Optional[int] = None
    hitbox: Optional[DimensionHitbox] = None
    snap: Optional[SnapPoint] = None
    topo_id: Optional[TopoId] = None
    region: Optional[ProfileRegion] = None

    @property
    def is_empty(self) -> bool:
        return self.kind == PickKind.EMPTY


def ray_triangle_hits(ray: Ray, vertices: np.ndarray, triangles: np.ndarray) -> np.ndarray:
    """
    Vectorised Möller-Trumbore: ray parameter ``t`` per triangle, ``inf``
    where the triangle is missed.
    """
    if len(triangles) == 0:
        return np.empty((0,))
    v0 = vertices[triangles[:, 0]]
    e1 = vertices[triangles[:, 1]] - v0
    e2 = vertices[triangles[:, 2]] - v0
    p = np.cross(ray.direction, e2)
    det = np.einsum("ij,ij->i", e1, p)
    valid = np.abs(det) > 1e-12
    inv = np.where(valid, 1.0 / np.where(valid, det, 1.0), 0.0)
    s = ray.origin - v0
    u = np.einsum("ij,ij->i", s, p) * inv
    q = np.cross(s, e1)
    v = (q @ ray.direction) * inv
    t = np.einsum("ij,ij->i", e2, q) * inv
    hit = valid & (u >= 0.0) & (v >= 0.0) & (u + v <= 1.0) & (t > 1e-9)
    return np.where(hit, t, np.inf)


def _ray_segment(ray: Ray, a: np.ndarray, b: np.ndarray) -> Tuple[float, float]:
    """``(distance, t)`` of the closest approach between *ray* and segment a-b."""
    d = b - a
    w = ray.origin - a
    aa = float(np.dot(ray.direction, ray.direction))
    bb = float(np.dot(ray.direction, d))
    cc = float(np.dot(d, d))
    dd = float(np.dot(ray.direction, w))
    ee = float(np.dot(d, w))
    denom = aa * cc - bb * bb
    if cc < 1e-18:
        s = 0.0
    elif denom < 1e-12:
        s = max(0.0, min(1.0, ee / cc))
    else:
        s = max(0.0, min(1.0, (aa * ee - bb * dd) / denom))
    closest = a + d * s
    t = max(0.0, ray.closest_t(closest))
    return float(np.linalg.norm(ray.point_at(t) - closest)), t


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class PickingService:
    """
    Holds the pickable scene and answers ``pick(x, y)``.

    Usage:
        picking = PickingService(camera)
        picking.set_sketch(sketch)
        picking.meshes = [tessellator.tessellate(part, "Extrude1")]
        result = picking.pick(400, 300)
    """

    def __init__(self, camera: Camera, config: Optional[PickingConfig] = None):
        self.camera = camera
        self.config = config or PickingConfig()
        self.sketch: Optional[Sketch] = None
        self.dimensions: List[DimensionGraphic] = []
        self.snaps: List[SnapPoint] = []
        self.meshes: List[TessellatedMesh] = []
        self._regions: Optional[List[ProfileRegion]] = None

    @property
    def plane(self) -> Optional[SketchPlane]:
        return self.sketch.plane if self.sketch is not None else None

    def set_sketch(
        self,
        sketch: Optional[Sketch],
        dimensions: Optional[List[DimensionGraphic]] = None,
    ):
        """Use *sketch* as the active sketch; dimensions are laid out if not given."""
        self.sketch = sketch
        self._regions = None
        if sketch is None:
            self.dimensions = []
        elif dimensions is None:
            self.dimensions = DimensionRenderer().render(sketch)
        else:
            self.dimensions = list(dimensions)

    # -- Public API -----------------------------------------------------------

    def pick(self, x: float, y: float) -> PickResult:
        hits = self.pick_all(x, y)
        if hits:
            return hits[0]
        return self._empty(self.camera.ray(x, y))

    def pick_all(self, x: float, y: float) -> List[PickResult]:
        """Every hit under the pixel, best first."""
        ray = self.camera.ray(x, y)
        overlay: List[PickResult] = []
        others: List[PickResult] = []

        plane_hit = self._plane_hit(ray)
        if plane_hit is not None:
            world, t, local = plane_hit
            overlay.extend(self._dimension_hits(world, t, local))
            others.extend(self._sketch_hits(world, t, local))
            others.extend(self._snap_hits(world, t, local))
        for mesh in self.meshes:
            others.extend(self._mesh_hits(ray, mesh))

        return self._sorted(overlay) + self._sorted(others)

    def plane_point(self, x: float, y: float) -> Optional[Point2]:
        """Plane-local ``(u, v)`` under the pixel, or None if the ray misses the plane."""
        hit = self._plane_hit(self.camera.ray(x, y))
        return hit[2] if hit is not None else None

    # -- Ordering -------------------------------------------------------------

    def _sorted(self, hits: List[PickResult]) -> List[PickResult]:
        eps = self.config.distance_epsilon
        scores = self.config.type_scores

        def _cmp(a: PickResult, b: PickResult) -> int:
            if abs(a.distance - b.distance) > eps:
                return -1 if a.distance < b.distance else 1
            sa, sb = scores.get(a.kind, 0), scores.get(b.kind, 0)
            return (sa > sb) - (sa < sb)

        return sorted(hits, key=functools.cmp_to_key(_cmp))

    # -- Target groups --------------------------------------------------------

    def _plane_hit(self, ray: Ray):
        if self.plane is None:
            return None
        world = ray_plane_intersection(ray.origin, ray.direction, self.plane)
        if world is None:
            return None
        return world, ray.closest_t(world), to_local(world, self.plane)

    def _dimension_hits(self, world, t: float, local: Point2) -> List[PickResult]:
        return [
            PickResult(
                PickKind.DIMENSION, t, world, local,
                dimension_index=g.index, hitbox=g.hitbox,
            )
            for g in self.dimensions
            if g.hitbox.contains(local)
        ]

    def _sketch_hits(self, world, t: float, local: Point2) -> List[PickResult]:
        hits = []
        cfg = self.config
        for entity in self.sketch.committed_entities():
            points = [
                (index, distance(local, pos)) for index, pos in entity_points(entity)
            ]
            near = [(i, d) for i, d in points if d <= cfg.point_threshold]
            if near:
                index, _ = min(near, key=lambda p: p[1])
                hits.append(PickResult(
                    PickKind.SKETCH_POINT, t, world, local,
                    entity_id=entity.id, point_index=index,
                ))
                continue
            d = curve_distance(local, entity.geometry)
            if d is not None and d <= cfg.line_threshold:
                hits.append(PickResult(
                    PickKind.SKETCH_ENTITY, t, world, local, entity_id=entity.id,
                ))
        return hits

    def _snap_hits(self, world, t: float, local: Point2) -> List[PickResult]:
        return [
            PickResult(PickKind.SNAP, t, world, local, entity_id=s.entity_id, snap=s)
            for s in self.snaps
            if distance(local, s.position) <= self.config.point_threshold
        ]

    def _mesh_hits(self, ray: Ray, mesh: TessellatedMesh) -> List[PickResult]:
        hits = []
        if mesh.face_count:
            ts = ray_triangle_hits(ray, mesh.vertices, mesh.face_indices)
            tri = int(np.argmin(ts))
            if np.isfinite(ts[tri]):
                t = float(ts[tri])
                hits.append(PickResult(
                    PickKind.FACE, t, ray.point_at(t), topo_id=mesh.triangle_topo_id(tri),
                ))

        for topo_id, polyline in mesh.edges:
            best = None
            for a, b in zip(polyline[:-1], polyline[1:]):
                d, t = _ray_segment(ray, a, b)
                if d <= self.config.edge_threshold and (best is None or t < best):
                    best = t
            if best is not None:
                hits.append(PickResult(PickKind.EDGE, best, ray.point_at(best), topo_id=topo_id))

        for topo_id, position in mesh.corners:
            if ray.distance_to(position) <= self.config.vertex_threshold:
                t = max(0.0, ray.closest_t(position))
                hits.append(PickResult(PickKind.VERTEX, t, position, topo_id=topo_id))
        return hits

    def _empty(self, ray: Ray) -> PickResult:
        hit = self._plane_hit(ray)
        if hit is None:
            return PickResult(PickKind.EMPTY)
        world, t, local = hit
        if self._regions is None:
            self._regions = detect_regions(self.sketch)
        return PickResult(
            PickKind.EMPTY, t, world, local, region=find_region_at(self._regions, local),
        )
