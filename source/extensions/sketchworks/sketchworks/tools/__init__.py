from .base import SketchTool, ToolContext
from .primitives import ArcTool, CircleTool, EllipseTool, LineTool, PointTool
from .shapes import PolygonTool, RectangleTool, SlotTool
from .constraint_tool import ConstraintTool
from .selection import DimensionTool, MeasureTool
from .projection import ProjectTool
from .trim import TrimTool
from .offset import OffsetTool
from .manager import SketchToolManager, SketchToolMode
