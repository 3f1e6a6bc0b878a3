"""
Tests for the force-directed layout simulation.
"""

import math
import unittest

from scholargraph.core.exceptions import NotFound
from scholargraph.core.layout import LayoutConfig, LayoutSimulation, LayoutState, label_radius
from scholargraph.core.models import Link, Node, NodeKind


def nodes(*ids):
    return [Node(id=i, label=f"Node {i}", kind=NodeKind.PAPER) for i in ids]


def distance(p, q):
    return math.hypot(p[0] - q[0], p[1] - q[1])


class TestLayoutSimulation(unittest.TestCase):
    def setUp(self):
        self.sim = LayoutSimulation()
        self.nodes = nodes("A", "B", "C", "D")
        self.links = [Link("A", "B"), Link("B", "C"), Link("C", "A"), Link("C", "D")]

    def test_empty_graph_is_idle(self):
        self.sim.set_graph([], [])
        self.assertEqual(self.sim.state, LayoutState.IDLE)
        self.assertFalse(self.sim.tick())
        self.assertEqual(self.sim.run(), 0)

    def test_settles(self):
        self.sim.set_graph(self.nodes, self.links)
        self.assertEqual(self.sim.state, LayoutState.SETTLING)
        taken = self.sim.run(max_ticks=2000)
        self.assertTrue(self.sim.settled)
        self.assertLess(taken, 2000)
        self.assertLess(self.sim.kinetic_energy(), 1.0)

    def test_run_counts_every_tick_taken(self):
        self.sim.set_graph(self.nodes, self.links)
        taken = self.sim.run(max_ticks=2000)
        self.assertEqual(taken, self.sim.ticks)

        manual = LayoutSimulation()
        manual.set_graph(nodes("A", "B", "C", "D"), list(self.links))
        count = 1
        while manual.tick():
            count += 1
        self.assertEqual(taken, count)
        self.assertEqual(self.sim.run(), 0)

    def test_settled_layout_is_spread_out(self):
        self.sim.set_graph(self.nodes, self.links)
        self.sim.run(max_ticks=2000)
        positions = self.sim.positions()
        for a, b in [("A", "B"), ("B", "C"), ("C", "D")]:
            d = distance(positions[a], positions[b])
            self.assertGreater(d, 50)
            self.assertLess(d, 400)
        ids = list(positions)
        for i, a in enumerate(ids):
            for b in ids[i + 1:]:
                self.assertGreater(distance(positions[a], positions[b]), 20)

    def test_positions_are_finite_and_near_center(self):
        self.sim.set_graph(self.nodes, self.links)
        self.sim.run(max_ticks=2000)
        cx, cy = self.sim.center
        for x, y in self.sim.positions().values():
            self.assertTrue(math.isfinite(x) and math.isfinite(y))
            self.assertLess(distance((x, y), (cx, cy)), 600)

    def test_deterministic(self):
        other = LayoutSimulation()
        self.sim.set_graph(self.nodes, self.links)
        other.set_graph(nodes("A", "B", "C", "D"), list(self.links))
        self.sim.run(max_ticks=100)
        other.run(max_ticks=100)
        self.assertEqual(self.sim.positions(), other.positions())

    def test_new_graph_preserves_existing_positions(self):
        self.sim.set_graph(self.nodes[:2], self.links[:1])
        self.sim.run(max_ticks=2000)
        before = self.sim.positions()

        self.sim.set_graph(self.nodes, self.links)
        after = self.sim.positions()
        self.assertEqual(after["A"], before["A"])
        self.assertEqual(after["B"], before["B"])
        self.assertEqual(self.sim.state, LayoutState.SETTLING)
        self.assertAlmostEqual(self.sim.alpha, 0.3, delta=0.05)

    def test_hidden_node_returns_to_last_position(self):
        self.sim.set_graph(self.nodes, self.links)
        self.sim.run(max_ticks=50)
        last_d = self.sim.position("D")

        self.sim.set_graph(self.nodes[:3], self.links[:3])
        with self.assertRaises(NotFound):
            self.sim.position("D")
        self.sim.set_graph(self.nodes, self.links)
        self.assertEqual(self.sim.position("D"), last_d)

    def test_drag_pins_node(self):
        self.sim.set_graph(self.nodes, self.links)
        self.sim.run(max_ticks=2000)
        self.sim.drag_start("A")
        self.assertEqual(self.sim.state, LayoutState.DRAGGING)
        self.sim.drag_move("A", 10, 20)
        for _ in range(5):
            self.sim.tick()
        self.assertEqual(self.sim.position("A"), (10.0, 20.0))
        self.assertEqual(self.sim.state, LayoutState.DRAGGING)

    def test_release_never_snaps_back(self):
        self.sim.set_graph(self.nodes, self.links)
        self.sim.run(max_ticks=2000)
        start = self.sim.position("A")
        drop = (start[0] + 200, start[1] + 150)

        self.sim.drag_start("A")
        self.sim.drag_move("A", *drop)
        self.sim.tick()
        self.sim.drag_end("A")
        self.assertEqual(self.sim.position("A"), drop)
        self.assertEqual(self.sim.state, LayoutState.SETTLING)

        previous = drop
        for _ in range(30):
            self.sim.tick()
            current = self.sim.position("A")
            self.assertLess(distance(previous, current), 100)
            previous = current
        self.assertGreater(distance(self.sim.position("A"), start), 1)

    def test_drag_unknown_node(self):
        self.sim.set_graph(self.nodes, self.links)
        with self.assertRaises(NotFound):
            self.sim.drag_start("missing")

    def test_graph_change_during_drag_keeps_dragging(self):
        self.sim.set_graph(self.nodes, self.links)
        self.sim.drag_start("A")
        self.sim.set_graph(self.nodes[:3], self.links[:3])
        self.assertEqual(self.sim.state, LayoutState.DRAGGING)
        self.sim.set_graph(self.nodes[1:], self.links[1:2])
        self.assertIsNone(self.sim.dragging)

    def test_label_radius(self):
        cfg = LayoutConfig()
        self.assertEqual(label_radius("abc", cfg), cfg.node_radius)
        self.assertEqual(label_radius("x" * 40, cfg), 18 * cfg.char_width / 2)

    def test_config_from_yaml_section(self):
        cfg = LayoutConfig.from_config({"layout": {"link_distance": 80, "unknown": 1}})
        self.assertEqual(cfg.link_distance, 80)
        self.assertAlmostEqual(cfg.alpha_decay, 1 - 0.001 ** (1 / 300))


if __name__ == '__main__':
    unittest.main()
