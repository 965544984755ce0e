"""
Tests for the solver bridge, sketch sessions and the sketch registry.
"""

import json
import unittest


def _line(entity_id, x1, y1, x2, y2):
    from sketchworks.kernel.sketch import LineGeometry, SketchEntity
    return SketchEntity(entity_id, LineGeometry((x1, y1), (x2, y2)))


class TestEnvelopes(unittest.TestCase):

    def test_payload_omitted_when_none(self):
        from sketchworks.bridge.solver_bridge import clear_selection, command
        self.assertEqual(clear_selection(), {"command": "ClearSelection"})
        self.assertEqual(command("X", {}), {"command": "X", "payload": {}})

    def test_update_sketch_carries_whole_sketch(self):
        from sketchworks.bridge.solver_bridge import update_sketch
        from sketchworks.kernel.sketch import Sketch
        sketch = Sketch()
        sketch.add_entity(_line("a", 0, 0, 1, 0))
        env = update_sketch("Sketch1", sketch)
        self.assertEqual(env["command"], "UpdateFeature")
        self.assertEqual(env["payload"]["id"], "Sketch1")
        data = env["payload"]["params"]["sketch_data"]["Sketch"]
        self.assertEqual(len(data["entities"]), 1)

    def test_feature_and_variable_commands(self):
        from sketchworks.bridge import solver_bridge as sb
        self.assertEqual(
            sb.create_feature("Extrude", "Extrude1", distance=5.0)["payload"],
            {"feature_type": "Extrude", "name": "Extrude1", "distance": 5.0},
        )
        self.assertEqual(sb.variable_reorder("v1", 2)["payload"], {"id": "v1", "new_index": 2})
        self.assertEqual(sb.get_regions("Sketch1")["command"], "GetRegions")


class TestBridge(unittest.TestCase):

    def setUp(self):
        from sketchworks.bridge.solver_bridge import SolverBridge
        self.sent = []
        self.bridge = SolverBridge(transport=self.sent.append)
        self.results = []
        self.errors = []
        self.bridge.on_solve_result = self.results.append
        self.bridge.on_error = self.errors.append

    def test_send_serialises_json(self):
        from sketchworks.bridge.solver_bridge import delete_feature
        self.assertTrue(self.bridge.send(delete_feature("Sketch1")))
        self.assertEqual(json.loads(self.sent[0]), {
            "command": "DeleteFeature", "payload": {"id": "Sketch1"},
        })

    def test_send_without_transport(self):
        from sketchworks.bridge.solver_bridge import SolverBridge, clear_selection
        self.assertFalse(SolverBridge().send(clear_selection()))

    def test_sketch_status(self):
        line = json.dumps({
            "converged": True, "dof": 0,
            "entity_statuses": [{"id": "a", "is_fully_constrained": True}],
        })
        self.assertEqual(self.bridge.handle_line("SKETCH_STATUS:" + line), "SKETCH_STATUS")
        (result,) = self.results
        self.assertTrue(result.is_fully_constrained)
        self.assertTrue(result.status_for("a").is_fully_constrained)
        self.assertIsNone(result.status_for("b"))
        self.assertIs(self.bridge.latest_solve, result)

    def test_error_update(self):
        self.bridge.handle_line('ERROR_UPDATE:{"code": "E42", "message": "boom"}')
        (error,) = self.errors
        self.assertEqual(error.code, "E42")
        self.assertEqual(error.severity, "error")

    def test_other_tags_forwarded(self):
        graph = []
        self.bridge.on_graph_update = graph.append
        self.assertEqual(self.bridge.handle_line('GRAPH_UPDATE:{"nodes": []}'), "GRAPH_UPDATE")
        self.assertEqual(graph, [{"nodes": []}])
        self.assertEqual(self.bridge.handle_line("ZOMBIE_UPDATE:[]"), "ZOMBIE_UPDATE")

    def test_malformed_lines_dropped(self):
        for line in ("SKETCH_STATUS:{not json", "UNKNOWN:{}", "no tag here", "ERROR_UPDATE:[1]"):
            self.assertIsNone(self.bridge.handle_line(line), line)
        self.assertEqual(self.results, [])
        self.assertEqual(self.errors, [])

    def test_status_colors(self):
        from sketchworks.bridge.solver_bridge import (
            COLOR_FULLY_CONSTRAINED, COLOR_OVER_CONSTRAINED, COLOR_UNDER_CONSTRAINED,
            EntityStatus, entity_status_color,
        )
        self.assertEqual(entity_status_color(None), COLOR_UNDER_CONSTRAINED)
        self.assertEqual(
            entity_status_color(EntityStatus("a", is_fully_constrained=True)),
            COLOR_FULLY_CONSTRAINED,
        )
        self.assertEqual(
            entity_status_color(EntityStatus("a", is_fully_constrained=True, involved_in_conflict=True)),
            COLOR_OVER_CONSTRAINED,
        )


class TestSession(unittest.TestCase):

    def setUp(self):
        from sketchworks.bridge.solver_bridge import SolverBridge
        from sketchworks.session.sketch_session import SketchSession
        self.sent = []
        self.session = SketchSession("Sketch1", bridge=SolverBridge(self.sent.append))
        self.changes = []
        self.session.on_sketch_changed = lambda sketch, preview: self.changes.append(preview)

    def test_commit_sends_whole_sketch(self):
        from sketchworks.kernel.constraints import Horizontal
        indices = self.session.commit([_line("a", 0, 0, 2, 0)], [Horizontal("a")])
        self.assertEqual(indices, [0])
        self.assertEqual(self.changes, [False])
        (payload,) = [json.loads(s) for s in self.sent]
        self.assertEqual(payload["payload"]["id"], "Sketch1")

    def test_preview_is_local_only(self):
        self.session.set_preview([_line("preview_line", 0, 0, 1, 1)], "preview_line")
        self.assertEqual(self.changes, [True])
        self.assertEqual(self.sent, [])
        self.assertEqual(self.session.send_count, 0)

    def test_commit_refuses_preview_ids(self):
        self.session.commit([_line("preview_x", 0, 0, 1, 1)])
        self.assertEqual(self.session.sketch.entities, [])

    def test_commit_clears_matching_preview(self):
        self.session.set_preview([_line("preview_rect_1", 0, 0, 1, 1)], "preview_rect")
        self.session.set_preview([_line("preview_line", 0, 0, 1, 1)], "preview_line")
        self.session.commit([_line("a", 0, 0, 1, 1)], clear_prefix="preview_rect")
        ids = [e.id for e in self.session.sketch.entities]
        self.assertEqual(sorted(ids), ["a", "preview_line"])

    def test_apply_authoritative_keeps_previews(self):
        from sketchworks.kernel.sketch import Sketch
        self.session.commit([_line("a", 0, 0, 1, 0)])
        self.session.set_preview([_line("preview_line", 0, 0, 3, 3)], "preview_line")
        remote = Sketch()
        remote.add_entity(_line("a", 0, 0, 2, 0))
        remote.add_entity(_line("b", 2, 0, 2, 2))
        self.session.apply_authoritative(remote)
        ids = [e.id for e in self.session.sketch.entities]
        self.assertEqual(ids, ["a", "b", "preview_line"])
        self.assertEqual(self.session.sketch.get_entity("a").geometry.end, (2, 0))
        self.assertEqual(len(remote.entities), 2)

    def test_replace_constraint_without_send(self):
        from sketchworks.kernel.constraints import Horizontal, Vertical
        self.session.commit([_line("a", 0, 0, 1, 0)], [Horizontal("a")])
        self.assertTrue(self.session.replace_constraint(0, Vertical("a"), send=False))
        self.assertEqual(self.session.send_count, 1)
        self.assertFalse(self.session.replace_constraint(5, Vertical("a")))

    def test_remove_entity(self):
        self.session.commit([_line("a", 0, 0, 1, 0)])
        self.assertTrue(self.session.remove_entity("a"))
        self.assertFalse(self.session.remove_entity("a"))
        self.assertEqual(self.session.send_count, 2)

    def test_solve_result_forwarded(self):
        from sketchworks.bridge.solver_bridge import SolveResult
        seen = []
        self.session.on_solve_result = seen.append
        result = SolveResult(converged=True, dof=2)
        self.session.apply_solve_result(result)
        self.assertIs(self.session.solve_result, result)
        self.assertEqual(seen, [result])


class TestRegistry(unittest.TestCase):

    def setUp(self):
        from sketchworks.session.sketch_registry import SketchRegistry
        self.registry = SketchRegistry()

    def test_auto_naming_and_active(self):
        a = self.registry.create()
        b = self.registry.create()
        self.assertEqual((a.feature_id, b.feature_id), ("Sketch1", "Sketch2"))
        self.assertIs(self.registry.active, b)
        self.assertEqual(self.registry.count, 2)

    def test_explicit_id_advances_counter(self):
        self.registry.create(feature_id="Sketch7")
        self.assertEqual(self.registry.create().feature_id, "Sketch8")
        self.registry.create(feature_id="Profile")
        self.assertIn("Profile", self.registry)

    def test_remove_clears_active(self):
        self.registry.create()
        self.assertIsNotNone(self.registry.remove("Sketch1"))
        self.assertIsNone(self.registry.active)
        self.assertIsNone(self.registry.remove("Sketch1"))

    def test_round_trip(self):
        from sketchworks.kernel.sketch_plane import plane_from_str
        from sketchworks.session.sketch_registry import SketchRegistry
        session = self.registry.create(plane_from_str("YZ"))
        session.commit([_line("a", 0, 0, 1, 0)])
        again = SketchRegistry.from_dict(self.registry.to_dict())
        self.assertEqual(again.sketch_ids, ["Sketch1"])
        self.assertEqual(again.get("Sketch1").sketch.entities, session.sketch.entities)
        self.assertEqual(again.create().feature_id, "Sketch2")

    def test_clear(self):
        self.registry.create()
        self.registry.clear()
        self.assertEqual(self.registry.count, 0)
        self.assertEqual(self.registry.create().feature_id, "Sketch1")


if __name__ == "__main__":
    unittest.main()
