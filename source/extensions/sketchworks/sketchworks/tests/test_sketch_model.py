"""
Tests for the sketch data model: entities, constraints, history, previews
and the wire format.
"""

import math
import unittest


def _line(x1, y1, x2, y2, entity_id=None):
    from sketchworks.kernel.sketch import LineGeometry, SketchEntity, new_entity_id
    return SketchEntity(entity_id or new_entity_id(), LineGeometry((x1, y1), (x2, y2)))


class TestSketchModel(unittest.TestCase):
    """Mutation, reference integrity and preview handling."""

    def setUp(self):
        from sketchworks.kernel.sketch import Sketch
        self.sketch = Sketch()

    def test_add_entity_records_history(self):
        from sketchworks.kernel.sketch import AddGeometry
        e = self.sketch.add_entity(_line(0, 0, 1, 0))
        self.assertIn(e.id, self.sketch)
        self.assertEqual(len(self.sketch.history), 1)
        self.assertIsInstance(self.sketch.history[0], AddGeometry)

    def test_add_constraint_returns_index(self):
        from sketchworks.kernel.constraints import Horizontal, Vertical
        a = self.sketch.add_entity(_line(0, 0, 1, 0))
        b = self.sketch.add_entity(_line(0, 0, 0, 1))
        self.assertEqual(self.sketch.add_constraint(Horizontal(a.id)), 0)
        self.assertEqual(self.sketch.add_constraint(Vertical(b.id)), 1)
        self.assertEqual(len(self.sketch.active_constraints()), 2)

    def test_suppressed_constraint_is_not_active(self):
        from sketchworks.kernel.constraints import Horizontal
        a = self.sketch.add_entity(_line(0, 0, 1, 0))
        self.sketch.add_constraint(Horizontal(a.id), suppressed=True)
        self.assertEqual(self.sketch.active_constraints(), [])

    def test_remove_entity_drops_dependent_constraints(self):
        from sketchworks.kernel.constraints import Coincident, ConstraintPoint, Horizontal
        a = self.sketch.add_entity(_line(0, 0, 1, 0))
        b = self.sketch.add_entity(_line(1, 0, 1, 1))
        self.sketch.add_constraint(Horizontal(a.id))
        self.sketch.add_constraint(Coincident((ConstraintPoint(a.id, 1), ConstraintPoint(b.id, 0))))
        removed = self.sketch.remove_entity(a.id)
        self.assertIs(removed, a)
        self.assertEqual(self.sketch.constraints, [])
        self.assertEqual(self.sketch.dangling_references(), [])

    def test_remove_missing_entity_returns_none(self):
        self.assertIsNone(self.sketch.remove_entity("missing"))

    def test_origin_reference_is_not_dangling(self):
        from sketchworks.kernel.constraints import Coincident, ConstraintPoint, origin_point
        a = self.sketch.add_entity(_line(0, 0, 1, 0))
        self.sketch.add_constraint(Coincident((ConstraintPoint(a.id, 0), origin_point())))
        self.assertEqual(self.sketch.dangling_references(), [])

    def test_dangling_reference_reported(self):
        from sketchworks.kernel.constraints import Horizontal
        self.sketch.add_constraint(Horizontal("ghost"))
        self.assertEqual(self.sketch.dangling_references(), [(0, "ghost")])

    def test_preview_entities_never_enter_history(self):
        self.sketch.set_preview([_line(0, 0, 2, 2, "preview_line")], "preview_line")
        self.assertEqual(len(self.sketch.preview_entities()), 1)
        self.assertEqual(self.sketch.history, [])
        self.assertEqual(self.sketch.committed_entities(), [])

    def test_set_preview_replaces_by_prefix(self):
        self.sketch.set_preview([_line(0, 0, 1, 1, "preview_rect_1")], "preview_rect")
        self.sketch.set_preview([_line(0, 0, 2, 2, "preview_rect_1")], "preview_rect")
        self.sketch.set_preview([_line(0, 0, 3, 3, "preview_line")], "preview_line")
        self.assertEqual(len(self.sketch.preview_entities()), 2)
        self.assertEqual(self.sketch.clear_preview("preview_rect"), 1)
        self.assertEqual(self.sketch.clear_preview(), 1)

    def test_to_dict_strips_previews(self):
        self.sketch.add_entity(_line(0, 0, 1, 0))
        self.sketch.set_preview([_line(0, 0, 2, 2, "preview_line")], "preview_line")
        self.assertEqual(len(self.sketch.to_dict()["entities"]), 1)
        self.assertEqual(len(self.sketch.to_dict(include_preview=True)["entities"]), 2)


class TestQueryHelpers(unittest.TestCase):
    """Pure lookup helpers return None for anything unresolved."""

    def setUp(self):
        from sketchworks.kernel.sketch import ArcGeometry, Sketch, SketchEntity
        self.sketch = Sketch()
        self.line = self.sketch.add_entity(_line(0, 0, 3, 4))
        self.arc = self.sketch.add_entity(
            SketchEntity("arc", ArcGeometry((0.0, 0.0), 2.0, 0.0, math.pi / 2.0))
        )

    def test_constraint_point_positions(self):
        from sketchworks.kernel.constraints import ConstraintPoint, origin_point
        from sketchworks.kernel.sketch import constraint_point_position
        pos = constraint_point_position
        self.assertEqual(pos(self.sketch, ConstraintPoint(self.line.id, 1)), (3.0, 4.0))
        self.assertEqual(pos(self.sketch, origin_point()), (0.0, 0.0))
        start = pos(self.sketch, ConstraintPoint("arc", 1))
        end = pos(self.sketch, ConstraintPoint("arc", 2))
        self.assertAlmostEqual(start[0], 2.0)
        self.assertAlmostEqual(end[1], 2.0)
        self.assertIsNone(pos(self.sketch, ConstraintPoint("missing", 0)))

    def test_line_helpers(self):
        from sketchworks.kernel.sketch import line_direction, line_length, line_midpoint
        self.assertAlmostEqual(line_length(self.sketch, self.line.id), 5.0)
        self.assertEqual(line_midpoint(self.sketch, self.line.id), (1.5, 2.0))
        dx, dy = line_direction(self.sketch, self.line.id)
        self.assertAlmostEqual(dx, 0.6)
        self.assertAlmostEqual(dy, 0.8)
        self.assertIsNone(line_length(self.sketch, "arc"))
        self.assertIsNone(line_direction(self.sketch, "missing"))

    def test_degenerate_line_has_no_direction(self):
        from sketchworks.kernel.sketch import line_direction
        zero = self.sketch.add_entity(_line(1, 1, 1, 1))
        self.assertIsNone(line_direction(self.sketch, zero.id))


class TestWireFormat(unittest.TestCase):
    """Serialisation of constraints and whole sketches."""

    def test_constraint_tags(self):
        from sketchworks.kernel.constraints import (
            ConstraintPoint, Distance, DimensionStyle, Horizontal,
        )
        self.assertEqual(Horizontal("a").to_dict(), {"Horizontal": {"entity": "a"}})
        d = Distance(
            (ConstraintPoint("a", 0), ConstraintPoint("a", 1)), 5.0,
            DimensionStyle(offset=(0.5, 2.0), expression="@w"),
        ).to_dict()
        self.assertEqual(d["Distance"]["value"], 5.0)
        self.assertEqual(d["Distance"]["style"]["offset"], [0.5, 2.0])
        self.assertEqual(d["Distance"]["style"]["expression"], "@w")

    def test_dimension_without_style_omits_it(self):
        from sketchworks.kernel.constraints import Radius
        self.assertNotIn("style", Radius("c", 2.0).to_dict()["Radius"])

    def test_constraint_round_trip(self):
        from sketchworks.kernel.constraints import (
            Angle, ConstraintPoint, DimensionStyle, Fix, Symmetric, constraint_from_dict,
        )
        for c in (
            Symmetric(ConstraintPoint("a", 1), ConstraintPoint("b", 2), "axis"),
            Fix(ConstraintPoint("p"), (1.0, 2.0)),
            Angle(("l1", "l2"), 0.5, DimensionStyle(driven=True)),
        ):
            self.assertEqual(constraint_from_dict(c.to_dict()), c)

    def test_unknown_constraint_raises(self):
        from sketchworks.kernel.constraints import constraint_from_dict
        with self.assertRaises(ValueError):
            constraint_from_dict({"Bogus": {}})

    def test_with_value_keeps_style(self):
        from sketchworks.kernel.constraints import DimensionStyle, Radius, with_value
        r = Radius("c", 2.0, DimensionStyle(offset=(1.0, 0.0)))
        updated = with_value(r, 3.0, "@r")
        self.assertEqual(updated.value, 3.0)
        self.assertEqual(updated.style.offset, (1.0, 0.0))
        self.assertEqual(updated.style.expression, "@r")

    def test_sketch_round_trip(self):
        from sketchworks.kernel.constraints import Horizontal
        from sketchworks.kernel.sketch import Sketch, TopoId
        from sketchworks.kernel.sketch_plane import plane_from_str
        sketch = Sketch(plane=plane_from_str("XZ"))
        line = sketch.add_entity(_line(0, 0, 2, 0))
        sketch.add_constraint(Horizontal(line.id))
        sketch.external_references[line.id] = TopoId("Extrude1", "edge:3", 1)

        again = Sketch.from_dict(sketch.to_dict())
        self.assertEqual(again.entities, sketch.entities)
        self.assertEqual(again.active_constraints(), sketch.active_constraints())
        self.assertEqual(len(again.history), 2)
        self.assertEqual(again.external_references[line.id], TopoId("Extrude1", "edge:3", 1))
        self.assertEqual(again.plane, sketch.plane)

    def test_bare_constraint_entry_accepted(self):
        from sketchworks.kernel.constraints import Horizontal, SketchConstraintEntry
        entry = SketchConstraintEntry.from_dict({"Horizontal": {"entity": "a"}})
        self.assertEqual(entry.constraint, Horizontal("a"))
        self.assertFalse(entry.suppressed)

    def test_topo_id_matches(self):
        from sketchworks.kernel.sketch import TopoId
        self.assertTrue(TopoId("F", "face:1").matches(TopoId("F", "face:1")))
        self.assertFalse(TopoId("F", "face:1").matches(TopoId("F", "face:2")))
        self.assertFalse(TopoId("F", "face:1").matches(None))


if __name__ == "__main__":
    unittest.main()
