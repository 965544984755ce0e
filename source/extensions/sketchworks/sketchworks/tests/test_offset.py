"""
Tests for offsetting lines, circles and arcs.
"""

import math
import unittest


def _sketch_with(*entities):
    from sketchworks.kernel.sketch import Sketch
    sketch = Sketch()
    for e in entities:
        sketch.add_entity(e)
    return sketch


def _entity(entity_id, geometry, construction=False):
    from sketchworks.kernel.sketch import SketchEntity
    return SketchEntity(entity_id, geometry, construction)


class TestOffsetLines(unittest.TestCase):

    def setUp(self):
        from sketchworks.kernel.sketch import LineGeometry
        self.sketch = _sketch_with(_entity("h", LineGeometry((0.0, 0.0), (4.0, 0.0)), True))

    def test_single_line(self):
        from sketchworks.kernel.constraints import (
            ConstraintPoint, DimensionStyle, DistancePointLine, Parallel,
        )
        from sketchworks.kernel.offset import offset_entities
        result = offset_entities(self.sketch, ["h"], 2.0)
        (copy,) = result.entities
        self.assertAlmostEqual(copy.geometry.start[1], 2.0)
        self.assertAlmostEqual(copy.geometry.end[0], 4.0)
        self.assertFalse(copy.is_construction)
        self.assertEqual(result.constraints, [
            Parallel(("h", copy.id)),
            DistancePointLine(
                ConstraintPoint(copy.id, 0), "h", 2.0, DimensionStyle(driven=False, offset=(0.0, 0.0)),
            ),
        ])

    def test_flip_moves_to_the_other_side(self):
        from sketchworks.kernel.offset import offset_entities
        result = offset_entities(self.sketch, ["h"], 2.0, flip=True)
        (copy,) = result.entities
        self.assertAlmostEqual(copy.geometry.start[1], -2.0)
        self.assertEqual(result.constraints[1].value, 2.0)

    def test_sketch_untouched_until_applied(self):
        from sketchworks.kernel.offset import offset_entities, preview_offset
        self.assertEqual(len(preview_offset(self.sketch, ["h"], 1.0)), 1)
        result = offset_entities(self.sketch, ["h"], 1.0)
        self.assertEqual(len(self.sketch.entities), 1)
        result.apply_to(self.sketch)
        self.assertEqual(len(self.sketch.entities), 2)
        self.assertEqual(len(self.sketch.constraints), 2)
        self.assertEqual(self.sketch.dangling_references(), [])

    def test_unusable_selection(self):
        from sketchworks.kernel.offset import offset_entities
        from sketchworks.kernel.sketch import LineGeometry, PointGeometry
        self.sketch.add_entity(_entity("p", PointGeometry((1.0, 1.0))))
        self.sketch.add_entity(_entity("z", LineGeometry((1.0, 1.0), (1.0, 1.0))))
        self.assertTrue(offset_entities(self.sketch, ["p", "z", "missing"], 1.0).is_empty)


class TestOffsetLoop(unittest.TestCase):

    def setUp(self):
        from sketchworks.kernel.sketch import LineGeometry
        corners = [(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)]
        self.ids = ["b", "r", "t", "l"]
        self.sketch = _sketch_with(*[
            _entity(eid, LineGeometry(corners[i], corners[(i + 1) % 4]))
            for i, eid in enumerate(self.ids)
        ])

    def test_rectangle_offset_stays_closed(self):
        from sketchworks.kernel.constraints import Coincident
        from sketchworks.kernel.offset import offset_entities
        result = offset_entities(self.sketch, self.ids, 1.0)
        self.assertEqual(len(result.entities), 4)
        starts = [e.geometry.start for e in result.entities]
        expected = [(1.0, 1.0), (3.0, 1.0), (3.0, 2.0), (1.0, 2.0)]
        for got, want in zip(starts, expected):
            self.assertAlmostEqual(got[0], want[0])
            self.assertAlmostEqual(got[1], want[1])
        coincident = [c for c in result.constraints if isinstance(c, Coincident)]
        self.assertEqual(len(coincident), 4)

    def test_flipped_rectangle_grows(self):
        from sketchworks.kernel.offset import offset_entities
        result = offset_entities(self.sketch, self.ids, 1.0, flip=True)
        bottom = result.entities[0].geometry
        self.assertAlmostEqual(bottom.start[0], -1.0)
        self.assertAlmostEqual(bottom.start[1], -1.0)
        self.assertAlmostEqual(bottom.end[0], 5.0)


class TestOffsetCurves(unittest.TestCase):

    def setUp(self):
        from sketchworks.kernel.sketch import ArcGeometry, CircleGeometry
        self.sketch = _sketch_with(
            _entity("c", CircleGeometry((2.0, 2.0), 1.5)),
            _entity("a", ArcGeometry((0.0, 0.0), 2.0, 0.0, math.pi / 2.0)),
        )

    def test_circle_grows_about_its_center(self):
        from sketchworks.kernel.constraints import Coincident, ConstraintPoint, Radius
        from sketchworks.kernel.offset import offset_entities
        result = offset_entities(self.sketch, ["c"], 0.5)
        (copy,) = result.entities
        self.assertEqual(copy.geometry.center, (2.0, 2.0))
        self.assertAlmostEqual(copy.geometry.radius, 2.0)
        coincident, radius = result.constraints
        self.assertEqual(coincident, Coincident((ConstraintPoint("c", 0), ConstraintPoint(copy.id, 0))))
        self.assertIsInstance(radius, Radius)
        self.assertAlmostEqual(radius.value, 2.0)

    def test_arc_keeps_its_sweep(self):
        from sketchworks.kernel.offset import offset_entities
        (copy,) = offset_entities(self.sketch, ["a"], 1.0, flip=True).entities
        self.assertAlmostEqual(copy.geometry.radius, 1.0)
        self.assertAlmostEqual(copy.geometry.end_angle, math.pi / 2.0)

    def test_collapsing_curve_skipped(self):
        from sketchworks.kernel.offset import offset_entities
        result = offset_entities(self.sketch, ["c", "a"], 2.0, flip=True)
        self.assertTrue(result.is_empty)


if __name__ == "__main__":
    unittest.main()
