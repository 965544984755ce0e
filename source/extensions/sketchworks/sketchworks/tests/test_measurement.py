"""
Tests for dimension proposals and session-only measurements.
"""

import math
import unittest


class MeasurementTestCase(unittest.TestCase):

    def setUp(self):
        from sketchworks.kernel.sketch import (
            CircleGeometry, LineGeometry, PointGeometry, Sketch, SketchEntity,
        )
        self.sketch = Sketch()
        for entity in (
            SketchEntity("h1", LineGeometry((0.0, 0.0), (4.0, 0.0))),
            SketchEntity("h2", LineGeometry((0.0, 3.0), (4.0, 3.0))),
            SketchEntity("diag", LineGeometry((0.0, 0.0), (2.0, 2.0))),
            SketchEntity("c", CircleGeometry((10.0, 10.0), 2.5)),
            SketchEntity("p", PointGeometry((1.0, 5.0))),
        ):
            self.sketch.add_entity(entity)

    @staticmethod
    def entity(entity_id):
        from sketchworks.kernel.measurement import SelectionCandidate
        return SelectionCandidate(entity_id)

    @staticmethod
    def point(entity_id, index):
        from sketchworks.kernel.measurement import CANDIDATE_POINT, SelectionCandidate
        return SelectionCandidate(entity_id, CANDIDATE_POINT, index)


class TestProposal(MeasurementTestCase):

    def test_single_line_is_length(self):
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("h1")])
        self.assertEqual(proposal.kind, DimensionKind.LENGTH)
        self.assertEqual(proposal.value, 4.0)
        self.assertEqual(proposal.label, "Length (4.00)")

    def test_single_circle_is_radius(self):
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("c")])
        self.assertEqual(proposal.kind, DimensionKind.RADIUS)
        self.assertEqual(proposal.value, 2.5)

    def test_single_point_proposes_nothing(self):
        from sketchworks.kernel.measurement import propose_dimension
        self.assertIsNone(propose_dimension(self.sketch, [self.point("h1", 0)]))
        self.assertIsNone(propose_dimension(self.sketch, []))

    def test_two_points_follow_mouse(self):
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        sel = [self.point("h1", 0), self.point("diag", 1)]
        cases = (
            (None, DimensionKind.DISTANCE, math.hypot(2.0, 2.0)),
            ((1.0, 1.0), DimensionKind.DISTANCE, math.hypot(2.0, 2.0)),
            ((5.0, 1.0), DimensionKind.HORIZONTAL_DISTANCE, 2.0),
            ((1.0, -3.0), DimensionKind.VERTICAL_DISTANCE, 2.0),
        )
        for mouse, kind, value in cases:
            proposal = propose_dimension(self.sketch, sel, mouse)
            self.assertEqual(proposal.kind, kind, mouse)
            self.assertAlmostEqual(proposal.value, value)

    def test_mouse_outside_both_ranges_picks_nearer_edge(self):
        from sketchworks.kernel.measurement import DimensionKind, dimension_mode_from_mouse
        p1, p2 = (0.0, 0.0), (2.0, 2.0)
        self.assertEqual(
            dimension_mode_from_mouse(p1, p2, (2.5, 6.0)), DimensionKind.HORIZONTAL_DISTANCE,
        )
        self.assertEqual(
            dimension_mode_from_mouse(p1, p2, (6.0, 2.5)), DimensionKind.VERTICAL_DISTANCE,
        )

    def test_point_and_line(self):
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("p"), self.entity("h1")])
        self.assertEqual(proposal.kind, DimensionKind.DISTANCE_POINT_LINE)
        self.assertAlmostEqual(proposal.value, 5.0)

    def test_parallel_lines(self):
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("h1"), self.entity("h2")])
        self.assertEqual(proposal.kind, DimensionKind.DISTANCE_PARALLEL_LINES)
        self.assertAlmostEqual(proposal.value, 3.0)

    def test_lines_at_an_angle(self):
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("h1"), self.entity("diag")])
        self.assertEqual(proposal.kind, DimensionKind.ANGLE)
        self.assertAlmostEqual(proposal.value, math.pi / 4.0)
        self.assertEqual(proposal.label, "Angle (45.0°)")

    def test_constrained_parallel_overrides_geometry(self):
        from sketchworks.kernel.constraints import Parallel
        from sketchworks.kernel.measurement import DimensionKind, propose_dimension
        self.sketch.add_constraint(Parallel(("diag", "h1")))
        proposal = propose_dimension(self.sketch, [self.entity("h1"), self.entity("diag")])
        self.assertEqual(proposal.kind, DimensionKind.DISTANCE_PARALLEL_LINES)

    def test_toggle_candidate(self):
        from sketchworks.kernel.measurement import toggle_candidate
        sel = toggle_candidate([], self.entity("h1"))
        sel = toggle_candidate(sel, self.point("h1", 1))
        self.assertEqual(len(sel), 2)
        self.assertEqual(toggle_candidate(sel, self.entity("h1")), [self.point("h1", 1)])


class TestBuildConstraint(MeasurementTestCase):

    def test_length_becomes_driving_distance(self):
        from sketchworks.kernel.constraints import ConstraintPoint, Distance
        from sketchworks.kernel.measurement import build_dimension_constraint, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("h1")])
        c = build_dimension_constraint(proposal)
        self.assertIsInstance(c, Distance)
        self.assertEqual(c.points, (ConstraintPoint("h1", 0), ConstraintPoint("h1", 1)))
        self.assertFalse(c.style.driven)
        self.assertEqual(c.style.offset, (0.0, 1.0))

    def test_radius_default_offset(self):
        from sketchworks.kernel.constraints import Radius
        from sketchworks.kernel.measurement import build_dimension_constraint, propose_dimension
        c = build_dimension_constraint(propose_dimension(self.sketch, [self.entity("c")]))
        self.assertIsInstance(c, Radius)
        self.assertEqual(c.style.offset, (0.7, 0.7))

    def test_point_line_orders_arguments(self):
        from sketchworks.kernel.constraints import ConstraintPoint, DistancePointLine
        from sketchworks.kernel.measurement import build_dimension_constraint, propose_dimension
        proposal = propose_dimension(self.sketch, [self.point("diag", 1), self.entity("h2")])
        c = build_dimension_constraint(proposal, (1.0, 0.0))
        self.assertIsInstance(c, DistancePointLine)
        self.assertEqual(c.point, ConstraintPoint("diag", 1))
        self.assertEqual(c.line, "h2")
        self.assertAlmostEqual(c.value, 1.0)

    def test_point_entity_after_line_keeps_roles(self):
        from sketchworks.kernel.constraints import ConstraintPoint, DistancePointLine
        from sketchworks.kernel.measurement import build_dimension_constraint, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("h1"), self.entity("p")])
        self.assertEqual(proposal.line_id, "h1")
        c = build_dimension_constraint(proposal)
        self.assertIsInstance(c, DistancePointLine)
        self.assertEqual(c.point, ConstraintPoint("p", 0))
        self.assertEqual(c.line, "h1")
        self.assertAlmostEqual(c.value, 5.0)

    def test_point_line_roles_from_sketch_geometry(self):
        from sketchworks.kernel.measurement import (
            DimensionKind, DimensionProposal, build_dimension_constraint,
        )
        proposal = DimensionProposal(
            DimensionKind.DISTANCE_POINT_LINE, 2.0, "Distance (2.00)",
            [self.entity("h2"), self.entity("p")],
        )
        self.assertIsNone(build_dimension_constraint(proposal))
        c = build_dimension_constraint(proposal, sketch=self.sketch)
        self.assertEqual(c.line, "h2")
        self.assertEqual(c.point.id, "p")

    def test_commit_dimension_appends(self):
        from sketchworks.kernel.measurement import commit_dimension, propose_dimension
        proposal = propose_dimension(self.sketch, [self.entity("h1"), self.entity("diag")])
        self.assertEqual(commit_dimension(self.sketch, proposal), 0)
        self.assertEqual(len(self.sketch.history), 6)


class TestMeasurement(MeasurementTestCase):

    def test_point_to_point(self):
        from sketchworks.kernel.measurement import MeasurementKind, compute_measurement
        m = compute_measurement(self.sketch, self.point("h1", 0), self.point("h2", 1))
        self.assertEqual(m.kind, MeasurementKind.DISTANCE)
        self.assertAlmostEqual(m.value, 5.0)
        self.assertEqual(m.display_position, (2.0, 1.5))

    def test_point_to_line_either_order(self):
        from sketchworks.kernel.measurement import compute_measurement
        a = compute_measurement(self.sketch, self.entity("p"), self.entity("h2"))
        b = compute_measurement(self.sketch, self.entity("h2"), self.entity("p"))
        self.assertAlmostEqual(a.value, 2.0)
        self.assertAlmostEqual(b.value, 2.0)

    def test_parallel_lines_distance(self):
        from sketchworks.kernel.measurement import MeasurementKind, compute_measurement
        m = compute_measurement(self.sketch, self.entity("h1"), self.entity("h2"))
        self.assertEqual(m.kind, MeasurementKind.DISTANCE)
        self.assertAlmostEqual(m.value, 3.0)

    def test_angle_in_degrees(self):
        from sketchworks.kernel.measurement import MeasurementKind, compute_measurement
        m = compute_measurement(self.sketch, self.entity("h1"), self.entity("diag"))
        self.assertEqual(m.kind, MeasurementKind.ANGLE)
        self.assertAlmostEqual(m.value, 45.0)
        self.assertEqual(m.label, "45.0°")

    def test_single_entity(self):
        from sketchworks.kernel.measurement import MeasurementKind, compute_measurement
        self.assertEqual(
            compute_measurement(self.sketch, self.entity("c")).kind, MeasurementKind.RADIUS,
        )
        self.assertAlmostEqual(compute_measurement(self.sketch, self.entity("h1")).value, 4.0)
        self.assertIsNone(compute_measurement(self.sketch, self.entity("p")))

    def test_missing_entity(self):
        from sketchworks.kernel.measurement import compute_measurement
        self.assertIsNone(compute_measurement(self.sketch, self.entity("gone"), self.entity("h1")))


if __name__ == "__main__":
    unittest.main()
