"""
Tests for dimension layout, drag-to-reposition and value editing.
"""

import math
import unittest
from types import SimpleNamespace


class DimensionTestCase(unittest.TestCase):

    def setUp(self):
        from sketchworks.kernel.sketch import (
            CircleGeometry, LineGeometry, Sketch, SketchEntity,
        )
        from sketchworks.session.sketch_session import SketchSession
        sketch = Sketch()
        sketch.add_entity(SketchEntity("h", LineGeometry((0.0, 0.0), (4.0, 0.0))))
        sketch.add_entity(SketchEntity("v", LineGeometry((0.0, 0.0), (0.0, 3.0))))
        sketch.add_entity(SketchEntity("c", CircleGeometry((10.0, 10.0), 2.0)))
        self.session = SketchSession("Sketch1", sketch)
        self.sketch = sketch

    def add(self, constraint):
        return self.sketch.add_constraint(constraint)

    def length_of_h(self, style=None):
        from sketchworks.kernel.constraints import ConstraintPoint, DimensionStyle, Distance
        return Distance(
            (ConstraintPoint("h", 0), ConstraintPoint("h", 1)), 4.0,
            style or DimensionStyle(driven=False),
        )


class TestRenderer(DimensionTestCase):

    def test_line_length_layout(self):
        from sketchworks.ui.dimensions import COLOR_DRIVING, DimensionRenderer
        self.add(self.length_of_h())
        (g,) = DimensionRenderer().render(self.sketch)
        self.assertEqual(g.text, "4.00")
        self.assertEqual(g.constraint_type, "Distance")
        self.assertEqual(g.color, COLOR_DRIVING)
        self.assertEqual(g.text_position, (2.0, 2.0))
        self.assertAlmostEqual(g.hitbox.width, 0.4)
        self.assertEqual(g.hitbox.axis, (1.0, 0.0))
        self.assertEqual(len(g.lines), 3)

    def test_driven_and_angle_colors(self):
        from sketchworks.kernel.constraints import Angle, DimensionStyle
        from sketchworks.ui.dimensions import (
            COLOR_ANGLE_DRIVING, COLOR_DRIVEN, DimensionRenderer,
        )
        self.add(self.length_of_h(DimensionStyle(driven=True)))
        self.add(Angle(("h", "v"), math.pi / 2.0, DimensionStyle(driven=False)))
        driven, angle = DimensionRenderer().render(self.sketch)
        self.assertEqual(driven.color, COLOR_DRIVEN)
        self.assertEqual(angle.color, COLOR_ANGLE_DRIVING)
        self.assertEqual(angle.text, "90.0°")
        self.assertEqual(len(angle.arc_points), 25)
        self.assertEqual(angle.hitbox.pivot, (0.0, 0.0))

    def test_radius_leader(self):
        from sketchworks.kernel.constraints import DimensionStyle, Radius
        from sketchworks.ui.dimensions import DimensionRenderer
        self.add(Radius("c", 2.0, DimensionStyle(offset=(math.pi / 2.0, 0.0))))
        (g,) = DimensionRenderer().render(self.sketch)
        self.assertEqual(g.text, "R2.00")
        self.assertAlmostEqual(g.text_position[0], 10.0)
        self.assertAlmostEqual(g.text_position[1], 14.0)
        self.assertEqual(g.hitbox.pivot, (10.0, 10.0))

    def test_horizontal_and_vertical_offsets(self):
        from sketchworks.kernel.constraints import (
            ConstraintPoint, DimensionStyle, HorizontalDistance, VerticalDistance,
        )
        from sketchworks.ui.dimensions import DimensionRenderer
        pts = (ConstraintPoint("h", 1), ConstraintPoint("v", 1))
        self.add(HorizontalDistance(pts, 4.0, DimensionStyle(offset=(0.0, 5.0))))
        self.add(VerticalDistance(pts, 3.0, DimensionStyle(offset=(-2.0, 0.0))))
        horizontal, vertical = DimensionRenderer().render(self.sketch)
        self.assertEqual(horizontal.text_position, (2.0, 6.5))
        self.assertEqual(vertical.text_position, (0.0, 1.5))

    def test_skips_suppressed_and_geometric(self):
        from sketchworks.kernel.constraints import Horizontal
        from sketchworks.ui.dimensions import DimensionRenderer
        self.add(Horizontal("h"))
        self.sketch.add_constraint(self.length_of_h(), suppressed=True)
        self.assertEqual(DimensionRenderer().render(self.sketch), [])

    def test_unresolved_reference_skipped(self):
        from sketchworks.kernel.constraints import DimensionStyle, Radius
        from sketchworks.ui.dimensions import DimensionRenderer
        self.add(Radius("h", 1.0, DimensionStyle()))
        self.add(Radius("missing", 1.0, DimensionStyle()))
        self.assertEqual(DimensionRenderer().render(self.sketch), [])

    def test_unstyled_dimension_not_drawn(self):
        from sketchworks.kernel.constraints import ConstraintPoint, Distance, Radius
        from sketchworks.ui.dimensions import DimensionRenderer
        self.add(Radius("c", 2.0))
        self.add(Distance((ConstraintPoint("h", 0), ConstraintPoint("h", 1)), 4.0))
        self.assertEqual(DimensionRenderer().render(self.sketch), [])
        index = self.add(self.length_of_h())
        (g,) = DimensionRenderer().render(self.sketch)
        self.assertEqual(g.hitbox.user_data["index"], index)

    def test_hitbox_contains(self):
        from sketchworks.ui.dimensions import DimensionHitbox
        hb = DimensionHitbox((1.0, 1.0), (0.0, 1.0), 1.0, 0.2, 0, "Distance")
        self.assertTrue(hb.contains((1.05, 1.4)))
        self.assertFalse(hb.contains((1.2, 1.0)))
        self.assertEqual(hb.user_data["index"], 0)


class TestDrag(DimensionTestCase):

    def setUp(self):
        super().setUp()
        from sketchworks.ui.dimensions import DimensionDragController, DimensionRenderer
        self.index = self.add(self.length_of_h())
        self.hitbox = DimensionRenderer().render(self.sketch)[0].hitbox
        self.controls = SimpleNamespace(enabled=True)
        self.drag = DimensionDragController(self.session, self.controls)

    def offset(self):
        return self.sketch.constraints[self.index].constraint.style.offset

    def test_perpendicular_drag_changes_only_distance_from_geometry(self):
        self.assertTrue(self.drag.pointer_down(self.hitbox, (2.0, 2.0)))
        self.assertFalse(self.controls.enabled)
        self.drag.pointer_move((2.0, 3.5))
        self.assertEqual(self.offset(), (0.0, 2.5))

    def test_parallel_drag_slides_text(self):
        self.drag.pointer_down(self.hitbox, (2.0, 2.0))
        self.drag.pointer_move((3.0, 2.0))
        self.assertEqual(self.offset(), (1.0, 1.0))

    def test_drag_is_local_until_release(self):
        self.drag.pointer_down(self.hitbox, (2.0, 2.0))
        self.drag.pointer_move((2.0, 4.0))
        self.drag.pointer_move((2.0, 5.0))
        self.assertEqual(self.session.send_count, 0)
        self.drag.pointer_up()
        self.assertEqual(self.session.send_count, 1)
        self.assertTrue(self.controls.enabled)
        self.assertFalse(self.drag.is_dragging)

    def test_release_without_drag_restores_controls(self):
        self.controls.enabled = False
        self.assertFalse(self.drag.pointer_up())
        self.assertTrue(self.controls.enabled)
        self.assertEqual(self.session.send_count, 0)

    def test_non_dimension_hitbox_rejected(self):
        from sketchworks.kernel.constraints import Horizontal
        from sketchworks.ui.dimensions import DimensionHitbox
        index = self.add(Horizontal("h"))
        hb = DimensionHitbox((0.0, 0.0), (1.0, 0.0), 1.0, 1.0, index, "Horizontal")
        self.assertFalse(self.drag.pointer_down(hb, (0.0, 0.0)))
        self.assertTrue(self.controls.enabled)

    def test_radius_drag_rotates_leader(self):
        from sketchworks.kernel.constraints import DimensionStyle, Radius
        from sketchworks.ui.dimensions import DimensionRenderer
        index = self.add(Radius("c", 2.0, DimensionStyle()))
        radius = self.sketch.constraints[index].constraint
        hb = DimensionRenderer().render_constraint(self.sketch, index, radius).hitbox
        self.drag.pointer_down(hb, (14.0, 10.0))
        self.drag.pointer_move((10.0, 14.0))
        offset = self.sketch.constraints[index].constraint.style.offset
        self.assertAlmostEqual(offset[0], math.pi / 2.0)


class TestEditValue(DimensionTestCase):

    def test_edit_updates_value_and_sends(self):
        from sketchworks.ui.dimensions import edit_dimension_value
        index = self.add(self.length_of_h())
        self.assertTrue(edit_dimension_value(self.session, index, 6.0, "@width"))
        c = self.sketch.constraints[index].constraint
        self.assertEqual(c.value, 6.0)
        self.assertEqual(c.style.expression, "@width")
        self.assertEqual(self.session.send_count, 1)

    def test_negative_value_rejected(self):
        from sketchworks.ui.dimensions import edit_dimension_value
        index = self.add(self.length_of_h())
        self.assertFalse(edit_dimension_value(self.session, index, -1.0))
        self.assertEqual(self.sketch.constraints[index].constraint.value, 4.0)

    def test_bad_index_or_kind(self):
        from sketchworks.kernel.constraints import Horizontal
        from sketchworks.ui.dimensions import edit_dimension_value
        index = self.add(Horizontal("h"))
        self.assertFalse(edit_dimension_value(self.session, index, 1.0))
        self.assertFalse(edit_dimension_value(self.session, 99, 1.0))


if __name__ == "__main__":
    unittest.main()
