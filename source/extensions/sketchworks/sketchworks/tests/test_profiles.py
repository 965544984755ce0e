"""
Tests for profile region detection and face building.
"""

import math
import unittest


def _rectangle_sketch(reverse_one=False):
    from sketchworks.kernel.sketch import LineGeometry, Sketch, SketchEntity
    sketch = Sketch()
    corners = [(0.0, 0.0), (4.0, 0.0), (4.0, 3.0), (0.0, 3.0)]
    for i in range(4):
        start, end = corners[i], corners[(i + 1) % 4]
        if reverse_one and i == 2:
            start, end = end, start
        sketch.add_entity(SketchEntity(f"l{i + 1}", LineGeometry(start, end)))
    return sketch


class TestLoops(unittest.TestCase):

    def test_rectangle_is_one_loop(self):
        from sketchworks.kernel.profiles import LOOP, detect_regions
        (region,) = detect_regions(_rectangle_sketch())
        self.assertEqual(region.kind, LOOP)
        self.assertEqual(region.entity_ids, ["l1", "l2", "l3", "l4"])
        self.assertAlmostEqual(region.area, 12.0)

    def test_reversed_segment_still_closes(self):
        from sketchworks.kernel.profiles import detect_closed_loops
        (loop,) = detect_closed_loops(_rectangle_sketch(reverse_one=True))
        self.assertEqual(len(loop), 4)
        self.assertEqual(loop[2][1], (4.0, 3.0))

    def test_open_chain_is_not_a_region(self):
        from sketchworks.kernel.profiles import detect_regions
        sketch = _rectangle_sketch()
        sketch.remove_entity("l4")
        self.assertEqual(detect_regions(sketch), [])

    def test_construction_lines_ignored(self):
        from sketchworks.kernel.profiles import detect_regions
        from sketchworks.kernel.sketch import LineGeometry, SketchEntity
        sketch = _rectangle_sketch()
        sketch.remove_entity("l4")
        sketch.add_entity(SketchEntity(
            "c4", LineGeometry((0.0, 3.0), (0.0, 0.0)), is_construction=True,
        ))
        self.assertEqual(detect_regions(sketch), [])

    def test_contains(self):
        from sketchworks.kernel.profiles import detect_regions
        (region,) = detect_regions(_rectangle_sketch())
        self.assertTrue(region.contains((1.0, 1.0)))
        self.assertFalse(region.contains((5.0, 1.0)))


class TestCurvedRegions(unittest.TestCase):

    def setUp(self):
        from sketchworks.kernel.sketch import CircleGeometry, EllipseGeometry, SketchEntity
        self.sketch = _rectangle_sketch()
        self.sketch.add_entity(SketchEntity("c", CircleGeometry((2.0, 1.5), 1.0)))
        self.sketch.add_entity(SketchEntity(
            "e", EllipseGeometry((10.0, 0.0), 3.0, 1.0, math.pi / 2.0),
        ))

    def test_innermost_region_wins(self):
        from sketchworks.kernel.profiles import CIRCLE, LOOP, detect_regions, find_region_at
        regions = detect_regions(self.sketch)
        self.assertEqual(len(regions), 3)
        self.assertEqual(find_region_at(regions, (2.2, 1.5)).kind, CIRCLE)
        self.assertEqual(find_region_at(regions, (0.2, 0.2)).kind, LOOP)
        self.assertIsNone(find_region_at(regions, (-5.0, -5.0)))

    def test_rotated_ellipse_contains(self):
        from sketchworks.kernel.profiles import ELLIPSE, detect_regions, find_region_at
        regions = detect_regions(self.sketch)
        self.assertEqual(find_region_at(regions, (10.0, 2.5)).kind, ELLIPSE)
        self.assertIsNone(find_region_at(regions, (12.5, 0.0)))

    def test_to_dict(self):
        from sketchworks.kernel.profiles import detect_regions
        d = detect_regions(self.sketch)[0].to_dict()
        self.assertEqual(d["kind"], "loop")
        self.assertEqual(d["boundary"][1], [4.0, 0.0])


class TestFaces(unittest.TestCase):

    def test_rectangle_face_area(self):
        from sketchworks.kernel.profiles import build_all_faces
        (face,) = build_all_faces(_rectangle_sketch())
        self.assertAlmostEqual(face.area, 12.0, places=4)

    def test_circle_face_on_xz_plane(self):
        from sketchworks.kernel.profiles import build_region_face, detect_regions
        from sketchworks.kernel.sketch import CircleGeometry, Sketch, SketchEntity
        from sketchworks.kernel.sketch_plane import plane_from_str
        sketch = Sketch(plane=plane_from_str("XZ"))
        sketch.add_entity(SketchEntity("c", CircleGeometry((0.0, 0.0), 2.0)))
        (region,) = detect_regions(sketch)
        face = build_region_face(region, sketch.plane)
        self.assertAlmostEqual(face.area, math.pi * 4.0, places=3)


if __name__ == "__main__":
    unittest.main()
