"""
Tessellator — converts build123d solids into pickable triangle meshes.

Each B-Rep face is tessellated separately so every triangle remembers which
face it came from; faces, edges and vertices are named with a
:class:`TopoId` so a pick can be reported back to the kernel (e.g. for
projecting a solid edge into a sketch).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .sketch import TopoId


@dataclass
class TessellatedMesh:
    """
    Triangle mesh plus topology for picking.

    Attributes:
        vertices:     Nx3 array of vertex positions
        face_indices: Mx3 array of triangle vertex indices
        normals:      Nx3 array of per-vertex normals
        face_ids:     length-M array, index into ``faces`` for each triangle
        faces:        TopoId per B-Rep face
        edges:        ``(TopoId, Kx3 polyline)`` per B-Rep edge
        corners:      ``(TopoId, position)`` per B-Rep vertex
    """
    vertices: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    face_indices: np.ndarray = field(default_factory=lambda: np.empty((0, 3), dtype=int))
    normals: np.ndarray = field(default_factory=lambda: np.empty((0, 3)))
    face_ids: np.ndarray = field(default_factory=lambda: np.empty((0,), dtype=int))
    faces: List[TopoId] = field(default_factory=list)
    edges: List[Tuple[TopoId, np.ndarray]] = field(default_factory=list)
    corners: List[Tuple[TopoId, np.ndarray]] = field(default_factory=list)

    @property
    def vertex_count(self) -> int:
        return len(self.vertices)

    @property
    def face_count(self) -> int:
        return len(self.face_indices)

    @property
    def is_valid(self) -> bool:
        return self.vertex_count > 0 and self.face_count > 0

    def triangle_topo_id(self, triangle: int) -> Optional[TopoId]:
        if triangle < 0 or triangle >= len(self.face_ids):
            return None
        face = int(self.face_ids[triangle])
        return self.faces[face] if 0 <= face < len(self.faces) else None

    @classmethod
    def from_triangles(
        cls,
        vertices,
        triangles,
        face_ids=None,
        faces: Optional[List[TopoId]] = None,
    ) -> "TessellatedMesh":
        """Build a mesh from raw arrays (every triangle on face 0 by default)."""
        verts = np.asarray(vertices, dtype=np.float64).reshape(-1, 3)
        tris = np.asarray(triangles, dtype=np.int32).reshape(-1, 3)
        ids = (
            np.zeros(len(tris), dtype=np.int32) if face_ids is None
            else np.asarray(face_ids, dtype=np.int32)
        )
        return cls(
            vertices=verts,
            face_indices=tris,
            normals=Tessellator._compute_vertex_normals(verts, tris),
            face_ids=ids,
            faces=list(faces) if faces is not None else [TopoId("mesh", "face:0")],
        )


class Tessellator:
    """
    Converts build123d/OCC solids into triangle meshes.

    Parameters:
        linear_tolerance: Maximum distance between the mesh and the real surface.
            Smaller = more triangles, more accurate.
        angular_tolerance: Maximum angular deflection in radians.
        edge_samples: Points sampled along each B-Rep edge polyline.
    """

    def __init__(
        self,
        linear_tolerance: float = 0.001,
        angular_tolerance: float = 0.5,
        edge_samples: int = 16,
    ):
        self.linear_tolerance = linear_tolerance
        self.angular_tolerance = angular_tolerance
        self.edge_samples = edge_samples

    def tessellate(self, solid, feature_id: str = "") -> TessellatedMesh:
        """
        Tessellate a build123d Part/Solid face by face.

        Args:
            solid: A build123d Part, Solid, or Shape object.
            feature_id: Feature that produced the solid, used in TopoIds.
        """
        if solid is None:
            return TessellatedMesh()

        try:
            return self._tessellate_faces(solid, feature_id)
        except Exception as e:
            print(f"[SketchWorks] Tessellation error: {e}")
            return TessellatedMesh()

    def _tessellate_faces(self, solid, feature_id: str) -> TessellatedMesh:
        all_vertices = []
        all_triangles = []
        all_face_ids = []
        faces: List[TopoId] = []
        offset = 0

        for face_idx, face in enumerate(solid.faces()):
            raw_vertices, raw_triangles = face.tessellate(
                self.linear_tolerance, self.angular_tolerance
            )
            faces.append(TopoId(feature_id, f"face:{face_idx}"))
            if not raw_vertices or not raw_triangles:
                continue
            all_vertices.extend([v.X, v.Y, v.Z] for v in raw_vertices)
            all_triangles.extend(
                (a + offset, b + offset, c + offset) for (a, b, c) in raw_triangles
            )
            all_face_ids.extend([face_idx] * len(raw_triangles))
            offset += len(raw_vertices)

        if not all_triangles:
            return TessellatedMesh(faces=faces)

        vertices = np.array(all_vertices, dtype=np.float64)
        face_indices = np.array(all_triangles, dtype=np.int32)

        return TessellatedMesh(
            vertices=vertices,
            face_indices=face_indices,
            normals=self._compute_vertex_normals(vertices, face_indices),
            face_ids=np.array(all_face_ids, dtype=np.int32),
            faces=faces,
            edges=self._edge_polylines(solid, feature_id),
            corners=[
                (TopoId(feature_id, f"vertex:{i}"), np.array([v.X, v.Y, v.Z]))
                for i, v in enumerate(solid.vertices())
            ],
        )

    def _edge_polylines(self, solid, feature_id: str) -> List[Tuple[TopoId, np.ndarray]]:
        ts = np.linspace(0.0, 1.0, self.edge_samples)
        edges = []
        for i, edge in enumerate(solid.edges()):
            pts = [edge.position_at(float(t)) for t in ts]
            edges.append((
                TopoId(feature_id, f"edge:{i}"),
                np.array([[p.X, p.Y, p.Z] for p in pts], dtype=np.float64),
            ))
        return edges

    @staticmethod
    def _compute_vertex_normals(
        vertices: np.ndarray, faces: np.ndarray
    ) -> np.ndarray:
        """
        Compute smooth per-vertex normals by averaging face normals.
        """
        normals = np.zeros_like(vertices)
        if len(faces) == 0:
            return normals

        v0 = vertices[faces[:, 0]]
        face_normals = np.cross(vertices[faces[:, 1]] - v0, vertices[faces[:, 2]] - v0)
        lengths = np.linalg.norm(face_normals, axis=1, keepdims=True)
        face_normals = face_normals / np.where(lengths < 1e-10, 1.0, lengths)
        for k in range(3):
            np.add.at(normals, faces[:, k], face_normals)

        norms = np.linalg.norm(normals, axis=1, keepdims=True)
        norms = np.where(norms < 1e-10, 1.0, norms)
        normals /= norms

        return normals
