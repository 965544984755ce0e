from .sketch_session import SketchSession
from .sketch_registry import SketchRegistry
