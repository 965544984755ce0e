"""
Profile regions — closed areas of a sketch that can later be extruded.

Regions come from three sources, all restricted to committed,
non-construction entities:

- closed loops of connected Line entities (head-to-tail, either direction)
- full circles
- full ellipses

The picking service uses :func:`find_region_at` to turn an "empty space"
click into a region, and :func:`build_region_face` converts a region into a
build123d Face on the sketch plane.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from build123d import (
    BuildLine,
    BuildSketch,
    Circle as B3dCircle,
    Ellipse as B3dEllipse,
    Line,
    Plane,
    make_face,
)

from .geometry import Point2
from .sketch import CircleGeometry, EllipseGeometry, LineGeometry, Sketch
from .sketch_plane import SketchPlane, to_world

LOOP = "loop"
CIRCLE = "circle"
ELLIPSE = "ellipse"


@dataclass
class ProfileRegion:
    """
    A closed region of the sketch.

    Attributes:
        kind:       ``"loop"``, ``"circle"`` or ``"ellipse"``.
        entity_ids: Entities bounding the region (in loop order for loops).
        boundary:   Ordered boundary vertices for loops; empty otherwise.
        geometry:   The circle / ellipse geometry for curved regions.
    """
    kind: str
    entity_ids: List[str] = field(default_factory=list)
    boundary: List[Point2] = field(default_factory=list)
    geometry: object = None

    @property
    def area(self) -> float:
        if self.kind == CIRCLE:
            return math.pi * self.geometry.radius ** 2
        if self.kind == ELLIPSE:
            return math.pi * self.geometry.semi_major * self.geometry.semi_minor
        pts = self.boundary
        acc = 0.0
        for i in range(len(pts)):
            x1, y1 = pts[i]
            x2, y2 = pts[(i + 1) % len(pts)]
            acc += x1 * y2 - x2 * y1
        return abs(acc) / 2.0

    def contains(self, p: Point2) -> bool:
        if self.kind == CIRCLE:
            c = self.geometry.center
            return math.hypot(p[0] - c[0], p[1] - c[1]) <= self.geometry.radius
        if self.kind == ELLIPSE:
            g = self.geometry
            if g.semi_major <= 0 or g.semi_minor <= 0:
                return False
            cos_r, sin_r = math.cos(-g.rotation), math.sin(-g.rotation)
            dx, dy = p[0] - g.center[0], p[1] - g.center[1]
            lx = dx * cos_r - dy * sin_r
            ly = dx * sin_r + dy * cos_r
            return (lx / g.semi_major) ** 2 + (ly / g.semi_minor) ** 2 <= 1.0
        return _point_in_polygon(p, self.boundary)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "entity_ids": list(self.entity_ids),
            "boundary": [list(pt) for pt in self.boundary],
        }


def _point_in_polygon(p: Point2, polygon: List[Point2]) -> bool:
    """Even-odd ray crossing test."""
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > p[1]) != (yj > p[1]):
            x_cross = (xj - xi) * (p[1] - yi) / (yj - yi) + xi
            if p[0] < x_cross:
                inside = not inside
        j = i
    return inside


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def detect_closed_loops(
    sketch: Sketch, tolerance: float = 0.01,
) -> List[List[Tuple[str, Point2, Point2]]]:
    """
    Find closed loops formed by connected Line entities.

    Walks the profile lines and greedily chains them where each segment's
    start matches the previous segment's end (within *tolerance*),
    reversing segments as needed.

    Returns:
        A list of loops.  Each loop is a list of ``(entity_id, start, end)``
        segments oriented head-to-tail.
    """
    lines = [
        (e.id, e.geometry.start, e.geometry.end)
        for e in sketch.committed_entities()
        if isinstance(e.geometry, LineGeometry) and not e.is_construction
    ]
    if not lines:
        return []

    def _close(a: Point2, b: Point2) -> bool:
        return math.hypot(a[0] - b[0], a[1] - b[1]) < tolerance

    used = [False] * len(lines)
    loops = []

    for start_idx, seg in enumerate(lines):
        if used[start_idx]:
            continue
        chain = [seg]
        used[start_idx] = True
        chain_end = seg[2]

        changed = True
        while changed:
            changed = False
            for j, (oid, o_start, o_end) in enumerate(lines):
                if used[j]:
                    continue
                if _close(chain_end, o_start):
                    chain.append((oid, o_start, o_end))
                    chain_end = o_end
                elif _close(chain_end, o_end):
                    chain.append((oid, o_end, o_start))
                    chain_end = o_start
                else:
                    continue
                used[j] = True
                changed = True
                break

        if len(chain) >= 3 and _close(chain_end, chain[0][1]):
            loops.append(chain)

    return loops


def detect_regions(sketch: Sketch, tolerance: float = 0.01) -> List[ProfileRegion]:
    """Every closed profile region of *sketch*."""
    regions = []
    for loop in detect_closed_loops(sketch, tolerance):
        regions.append(ProfileRegion(
            kind=LOOP,
            entity_ids=[seg[0] for seg in loop],
            boundary=[seg[1] for seg in loop],
        ))
    for e in sketch.committed_entities():
        if e.is_construction:
            continue
        if isinstance(e.geometry, CircleGeometry) and e.geometry.radius > 0:
            regions.append(ProfileRegion(kind=CIRCLE, entity_ids=[e.id], geometry=e.geometry))
        elif isinstance(e.geometry, EllipseGeometry):
            regions.append(ProfileRegion(kind=ELLIPSE, entity_ids=[e.id], geometry=e.geometry))
    return regions


def find_region_at(regions: List[ProfileRegion], p: Point2) -> Optional[ProfileRegion]:
    """Innermost (smallest) region containing *p*."""
    hits = [r for r in regions if r.contains(p)]
    if not hits:
        return None
    return min(hits, key=lambda r: r.area)


# ---------------------------------------------------------------------------
# build123d faces
# ---------------------------------------------------------------------------

def _extract_face(result):
    """First Face of a build123d result (or the result itself)."""
    if hasattr(result, "faces"):
        faces = result.faces()
        if faces:
            return faces[0]
    return result


def build_region_face(region: ProfileRegion, plane: SketchPlane):
    """
    Build a build123d Face for *region* on *plane*.

    Returns ``None`` (with a log line) if build123d cannot make the face.
    """
    b3d_plane = plane.to_build123d_plane()
    try:
        if region.kind == LOOP:
            pts = [to_world(u, v, plane) for (u, v) in region.boundary]
            pts.append(pts[0])
            with BuildLine() as bl:
                for i in range(len(pts) - 1):
                    Line(pts[i], pts[i + 1])
            if bl.line is None:
                print("[SketchWorks] BuildLine produced no wire")
                return None
            return _extract_face(make_face(bl.line))

        g = region.geometry
        local = Plane(
            origin=to_world(g.center[0], g.center[1], plane),
            x_dir=b3d_plane.x_dir,
            z_dir=b3d_plane.z_dir,
        )
        with BuildSketch(local) as sk:
            if region.kind == CIRCLE:
                B3dCircle(g.radius)
            else:
                B3dEllipse(g.semi_major, g.semi_minor, rotation=math.degrees(g.rotation))
        return _extract_face(sk.sketch)
    except Exception as e:
        print(f"[SketchWorks] Failed to build {region.kind} face: {e}")
        return None


def build_all_faces(sketch: Sketch) -> list:
    """Faces for every region of *sketch*, skipping any that fail to build."""
    faces = []
    for region in detect_regions(sketch):
        face = build_region_face(region, sketch.plane)
        if face is not None:
            faces.append(face)
    return faces
