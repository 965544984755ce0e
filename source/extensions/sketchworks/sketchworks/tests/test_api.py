"""
End-to-end tests for the headless SketchWorksAPI.
"""

import json
import unittest


def _line(entity_id, x1, y1, x2, y2):
    from sketchworks.kernel.sketch import LineGeometry, SketchEntity
    return SketchEntity(entity_id, LineGeometry((x1, y1), (x2, y2)))


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        from sketchworks.api import SketchWorksAPI
        from sketchworks.ui.picking import Camera
        self.sent = []
        camera = Camera(width=1000, height=1000, orthographic=True, ortho_height=10.0)
        self.api = SketchWorksAPI(transport=self.sent.append, camera=camera)

    def commands(self):
        return [json.loads(s)["command"] for s in self.sent]


class TestSketches(ApiTestCase):

    def test_requires_active_sketch(self):
        from sketchworks.tools import SketchToolMode
        self.assertIsNone(self.api.sketch)
        with self.assertRaises(RuntimeError):
            self.api.activate_tool(SketchToolMode.LINE)
        with self.assertRaises(RuntimeError):
            self.api.mirror(["a"], "b")

    def test_create_sketch_on_named_plane(self):
        from sketchworks.tools import SketchToolMode
        session = self.api.create_sketch("XZ")
        self.assertEqual(session.feature_id, "Sketch1")
        self.assertAlmostEqual(self.api.sketch.plane.normal[1], -1.0)
        self.assertEqual(self.api.active_mode, SketchToolMode.SELECT)

    def test_unknown_plane_name_rejected(self):
        with self.assertRaises(ValueError):
            self.api.create_sketch("XW")
        self.assertIsNone(self.api.session)
        self.assertEqual(self.sent, [])

    def test_rectangle_round_trip(self):
        from sketchworks.tools import SketchToolMode
        self.api.create_sketch()
        self.api.activate_tool(SketchToolMode.RECTANGLE)
        self.api.click(1, 1)
        self.api.click(5, 4)
        self.assertEqual(len(self.api.sketch.committed_entities()), 4)
        self.assertEqual(self.commands(), ["UpdateFeature"])
        self.assertEqual(self.api.active_mode, SketchToolMode.RECTANGLE)
        self.assertIn("Rectangle 4.0 x 3.0: click for another", self.api.statuses)

    def test_switching_sketches_cancels_tool(self):
        from sketchworks.tools import SketchToolMode
        self.api.create_sketch()
        self.api.create_sketch("YZ")
        self.api.activate_tool(SketchToolMode.LINE)
        self.api.click(1, 1)
        self.api.pointer_move(3, 4)
        self.assertEqual(len(self.api.sketch.preview_entities()), 1)

        self.assertTrue(self.api.edit_sketch("Sketch1"))
        self.assertEqual(self.api.session.feature_id, "Sketch1")
        self.assertEqual(self.api.active_mode, SketchToolMode.SELECT)
        self.assertEqual(self.api.registry.get("Sketch2").sketch.preview_entities(), [])
        self.assertFalse(self.api.edit_sketch("Sketch9"))

    def test_construction_mode(self):
        from sketchworks.tools import SketchToolMode
        self.api.create_sketch()
        self.api.construction_mode = True
        self.api.activate_tool(SketchToolMode.CIRCLE)
        self.api.click(3, 3)
        self.api.click(5, 3)
        self.assertTrue(self.api.sketch.entities[0].is_construction)

    def test_inference_hints(self):
        from sketchworks.kernel.inference import InferenceType, has_inference
        from sketchworks.tools import SketchToolMode
        self.api.create_sketch()
        self.api.activate_tool(SketchToolMode.LINE)
        self.api.click(2, 2)
        self.assertTrue(has_inference(self.api.inference_hints(7, 2.1), InferenceType.HORIZONTAL))


class TestPatterns(ApiTestCase):

    def setUp(self):
        super().setUp()
        from sketchworks.kernel.sketch import CircleGeometry, SketchEntity
        self.api.create_sketch()
        self.api.session.commit([
            _line("axis", 0, -5, 0, 5),
            _line("dir", 0, -6, 2, -6),
            SketchEntity("c", CircleGeometry((2.0, 2.0), 0.5)),
        ])

    def test_mirror_returns_new_ids(self):
        ids = self.api.mirror(["c"], "axis")
        self.assertEqual(len(ids), 1)
        mirrored = self.api.sketch.get_entity(ids[0])
        self.assertAlmostEqual(mirrored.geometry.center[0], -2.0)
        self.assertEqual(self.api.sketch.dangling_references(), [])

    def test_preview_then_commit(self):
        self.assertEqual(self.api.preview_linear_pattern(["c"], "dir", 3, 2.0), 2)
        previews = self.api.sketch.preview_entities()
        self.assertEqual([e.id for e in previews], ["preview_pattern_0", "preview_pattern_1"])
        self.assertEqual(self.commands(), ["UpdateFeature"])

        ids = self.api.linear_pattern(["c"], "dir", 3, 2.0)
        self.assertEqual(len(ids), 2)
        self.assertEqual(self.api.sketch.preview_entities(), [])

    def test_circular_preview_cleared(self):
        self.assertEqual(self.api.preview_circular_pattern(["c"], "origin", 4), 3)
        self.assertEqual(self.api.clear_pattern_preview(), 3)

    def test_degenerate_pattern_creates_nothing(self):
        before = len(self.sent)
        self.assertEqual(self.api.circular_pattern(["c"], "dir", 4), [])
        self.assertEqual(len(self.sent), before)
        self.assertEqual(self.api.statuses[-1], "Circular pattern: nothing to create")


class TestTrimAndOffset(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.api.create_sketch()
        self.api.session.commit([_line("h", -10, 0, 10, 0), _line("v", 0, -5, 0, 5)])

    def test_trim_sends_edited_sketch(self):
        self.assertTrue(self.api.trim(-5.0, 0.1))
        self.assertEqual(self.api.statuses[-1], "Trim: h shortened")
        self.assertEqual(self.commands()[-1], "UpdateFeature")
        self.assertEqual(self.api.sketch.get_entity("h").geometry.start, (0.0, 0.0))
        self.assertFalse(self.api.trim(40.0, 40.0))

    def test_offset_returns_new_ids(self):
        ids = self.api.offset(["h"], 1.5)
        self.assertEqual(len(ids), 1)
        self.assertAlmostEqual(self.api.sketch.get_entity(ids[0]).geometry.start[1], 1.5)
        self.assertEqual(self.api.offset(["missing"], 1.0), [])
        self.assertEqual(self.api.statuses[-1], "Offset: nothing to create")

    def test_offset_tool_confirm(self):
        from sketchworks.tools import SketchToolMode
        self.api.activate_tool(SketchToolMode.OFFSET)
        self.api.click(5.0, 0.1)
        ids = self.api.confirm_offset(3.0)
        self.assertEqual(len(ids), 1)
        self.assertAlmostEqual(self.api.sketch.get_entity(ids[0]).geometry.start[1], 3.0)
        self.assertEqual(self.api.active_mode, SketchToolMode.SELECT)


class TestDimensionsAndMeasure(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.api.create_sketch()
        self.api.session.commit([_line("h", 1, 1, 5, 1)])

    def add_length(self):
        from sketchworks.tools import SketchToolMode
        self.api.activate_tool(SketchToolMode.DIMENSION)
        self.api.click(3.8, 1.1)
        return self.api.finish_dimension()

    def offset(self, index):
        return self.api.sketch.constraints[index].constraint.style.offset

    def test_finish_and_render(self):
        from sketchworks.tools import SketchToolMode
        index = self.add_length()
        self.assertEqual(index, 0)
        self.assertEqual(self.api.active_mode, SketchToolMode.SELECT)
        (graphic,) = self.api.render_dimensions()
        self.assertEqual(graphic.text, "4.00")
        self.assertEqual(graphic.text_position, (3.0, 3.0))

    def test_drag_sends_once(self):
        index = self.add_length()
        sent_before = len(self.sent)
        self.assertTrue(self.api.drag_dimension(index, (3.0, 3.0), (3.0, 4.0)))
        self.assertEqual(self.offset(index), (0.0, 2.0))
        self.assertEqual(len(self.sent), sent_before + 1)

    def test_drag_outside_hitbox_does_nothing(self):
        index = self.add_length()
        self.assertFalse(self.api.drag_dimension(index, (0.0, 0.0), (3.0, 4.0)))
        self.assertEqual(self.offset(index), (0.0, 1.0))

    def test_edit_dimension(self):
        index = self.add_length()
        self.assertTrue(self.api.edit_dimension(index, 6.0))
        self.assertFalse(self.api.edit_dimension(index, -2.0))
        self.assertEqual(self.api.sketch.constraints[index].constraint.value, 6.0)

    def test_measure_two_points(self):
        from sketchworks.tools import SketchToolMode
        self.api.activate_tool(SketchToolMode.POINT)
        self.api.click(2, 5)
        self.api.click(5, 9)
        self.api.activate_tool(SketchToolMode.MEASURE)
        self.api.click(2, 5)
        self.api.click(5, 9)
        (m,) = self.api.measurements
        self.assertAlmostEqual(m.value, 5.0)
        self.api.clear_measurements()
        self.assertEqual(self.api.measurements, [])


class TestPickingFlow(ApiTestCase):
    """Pixel events through the picking service (1 unit = 100 px, origin at 500, 500)."""

    def setUp(self):
        super().setUp()
        self.api.create_sketch()
        self.api.session.commit([_line("h", 1, 1, 5, 1)])

    @staticmethod
    def px(u, v):
        return (u + 5.0) * 100.0, (5.0 - v) * 100.0

    def test_drag_dimension_by_pixels(self):
        from sketchworks.tools import SketchToolMode
        from sketchworks.ui.picking import PickKind
        self.api.activate_tool(SketchToolMode.DIMENSION)
        self.api.click(3.8, 1.1)
        index = self.api.finish_dimension()

        result = self.api.pick_pointer_down(*self.px(3.0, 3.0))
        self.assertEqual(result.kind, PickKind.DIMENSION)
        self.api.pick_pointer_move(*self.px(3.0, 4.5))
        self.api.pick_pointer_up(*self.px(3.0, 4.5))
        offset = self.api.sketch.constraints[index].constraint.style.offset
        self.assertAlmostEqual(offset[0], 0.0)
        self.assertAlmostEqual(offset[1], 2.5)

    def test_empty_space_press_reaches_tool(self):
        from sketchworks.tools import SketchToolMode
        self.api.activate_tool(SketchToolMode.LINE)
        result = self.api.pick_pointer_down(*self.px(-3.0, -3.0))
        self.assertTrue(result.is_empty)
        start = self.api.tool_manager.active_tool.start_point
        self.assertAlmostEqual(start[0], -3.0)
        self.assertAlmostEqual(start[1], -3.0)

    def test_project_tool_takes_picked_edge(self):
        import numpy as np
        from sketchworks.kernel.sketch import TopoId
        from sketchworks.kernel.tessellator import TessellatedMesh
        from sketchworks.tools import SketchToolMode
        from sketchworks.ui.picking import PickKind
        mesh = TessellatedMesh.from_triangles(
            [[-10.0, -10.0, 1.0], [10.0, -10.0, 1.0], [0.0, 10.0, 1.0]], [[0, 1, 2]],
        )
        mesh.edges = [(TopoId("Extrude1", "edge:7"), np.array([[-4.0, -3.0, 1.0], [-2.0, -3.0, 1.0]]))]
        self.api.set_meshes([mesh])
        self.api.activate_tool(SketchToolMode.PROJECT)
        result = self.api.pick_pointer_down(*self.px(-3.0, -3.0))
        self.assertEqual(result.kind, PickKind.EDGE)
        self.assertEqual(self.commands()[-1], "ProjectEntity")
        self.assertEqual(json.loads(self.sent[-1])["payload"]["topo_id"]["local_id"], "edge:7")

    def test_pick_sketch_entity(self):
        from sketchworks.ui.picking import PickKind
        result = self.api.pick(*self.px(3.0, 1.05))
        self.assertEqual(result.kind, PickKind.SKETCH_ENTITY)
        self.assertEqual(result.entity_id, "h")


class TestInbound(ApiTestCase):

    def test_sketch_status_reaches_active_session(self):
        self.api.create_sketch()
        tag = self.api.handle_line('SKETCH_STATUS:{"converged": true, "dof": 3}')
        self.assertEqual(tag, "SKETCH_STATUS")
        self.assertEqual(self.api.session.solve_result.dof, 3)

    def test_apply_authoritative(self):
        from sketchworks.kernel.sketch import Sketch
        self.api.create_sketch()
        remote = Sketch()
        remote.add_entity(_line("k", 0, 0, 1, 1))
        self.api.apply_authoritative(remote)
        self.assertEqual([e.id for e in self.api.sketch.entities], ["k"])

    def test_project_sends_command(self):
        from sketchworks.kernel.sketch import TopoId
        from sketchworks.tools import SketchToolMode
        self.api.create_sketch()
        self.assertTrue(self.api.project(TopoId("Extrude1", "edge:2")))
        self.assertEqual(self.commands(), ["ProjectEntity"])
        self.assertEqual(self.api.active_mode, SketchToolMode.PROJECT)


if __name__ == "__main__":
    unittest.main()
