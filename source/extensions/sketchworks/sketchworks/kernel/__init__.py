from .sketch_plane import SketchPlane, to_world, to_local, standard_planes, plane_from_str
from .constraints import ORIGIN_ID, ConstraintPoint, ConstraintType, DimensionStyle
from .sketch import (
    Sketch,
    SketchEntity,
    PointGeometry,
    LineGeometry,
    CircleGeometry,
    ArcGeometry,
    EllipseGeometry,
    TopoId,
)
from .snapping import SnapConfig, SnapPoint, SnapType
from .inference import InferenceConfig, InferenceType
from .patterns import PatternResult, mirror, linear_pattern, circular_pattern
from .tessellator import Tessellator, TessellatedMesh
