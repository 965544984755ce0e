from .dimensions import (
    DimensionDragController,
    DimensionGraphic,
    DimensionHitbox,
    DimensionRenderer,
    edit_dimension_value,
)
from .picking import Camera, PickingConfig, PickingService, PickKind, PickResult, Ray
