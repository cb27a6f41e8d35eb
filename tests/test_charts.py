from __future__ import annotations

import math
import unittest
from unittest import mock

import numpy as np

from livechart import BarChart, ChartInvariantError, ChartOptions, LineChart, RecordingScene
from livechart.adapters import normalize_bars
from livechart.elements import PointAttrs


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _line(**overrides) -> tuple[LineChart, RecordingScene, FakeClock]:
    clock = FakeClock()
    scene = RecordingScene()
    chart = LineChart(scene=scene, clock=clock, **overrides)
    chart.set_size(400, 200)
    return chart, scene, clock


def _bar(**overrides) -> tuple[BarChart, RecordingScene, FakeClock]:
    clock = FakeClock()
    scene = RecordingScene()
    chart = BarChart(scene=scene, clock=clock, **overrides)
    chart.set_size(400, 200)
    return chart, scene, clock


class LineChartTests(unittest.TestCase):
    def test_appending_a_point_adds_exactly_one_marker(self) -> None:
        chart, scene, _ = _line()
        data = [[0, 0], [1, 1], [2, 0]]
        first = chart.set_data(data)
        self.assertEqual((first.added, first.removed, first.live), (3, 0, 3))

        data.append([3, 1])
        result = chart.render()
        self.assertEqual((result.added, result.removed, result.live), (1, 0, 4))
        self.assertTrue(result.limits_changed)
        self.assertEqual(len(scene.live_nodes("point")), 4)

    def test_render_needs_a_drawable_size(self) -> None:
        chart = LineChart(scene=RecordingScene())
        self.assertIsNone(chart.set_data([[0, 0], [1, 1]]))
        padded = LineChart(ChartOptions(padding=(5.0, 5.0, 5.0, 5.0)), scene=RecordingScene())
        padded.set_size(10, 10)
        self.assertIsNone(padded.set_data([[0, 0], [1, 1]]))

    def test_empty_series_clears_the_chart(self) -> None:
        chart, scene, _ = _line()
        chart.set_data([[0, 0], [1, 1]])
        self.assertIsNone(chart.set_data([]))
        self.assertEqual(scene.live_nodes(), [])
        self.assertEqual(chart.live_count(), 0)
        self.assertIsNone(chart.nearest(10.0))

    def test_replaced_series_objects_are_new_items(self) -> None:
        chart, _, _ = _line()
        chart.set_data([[0, 0], [1, 1]])
        result = chart.set_data([[0, 0], [1, 1]])
        self.assertEqual((result.added, result.removed), (2, 2))

    def test_key_function_matches_rebuilt_records(self) -> None:
        chart, _, _ = _line(key=lambda item: item["id"])
        chart.set_data([{"id": "a", "x": 0, "y": 1}, {"id": "b", "x": 1, "y": 2}])
        result = chart.set_data([{"id": "a", "x": 0, "y": 1}, {"id": "b", "x": 1, "y": 3}])
        self.assertEqual((result.added, result.removed), (0, 0))

    def test_removed_markers_are_destroyed_after_idle_collection(self) -> None:
        chart, scene, clock = _line()
        data = [[0, 0], [1, 1], [2, 0]]
        chart.set_data(data)
        data.pop(0)
        result = chart.render()
        self.assertEqual(result.removed, 1)
        self.assertEqual(scene.count("exit"), 1)
        self.assertEqual(scene.count("destroy"), 0)

        clock.now = 1100.0
        chart.scheduler.run_idle()
        self.assertEqual(scene.count("destroy"), 1)
        self.assertEqual(len(chart.reconciler.arena.purgatory), 0)

    def test_disabled_animation_destroys_immediately(self) -> None:
        chart, scene, _ = _line(disable_animation=True)
        data = [[0, 0], [1, 1], [2, 0]]
        chart.set_data(data)
        data.pop(0)
        chart.render()
        self.assertEqual(scene.count("destroy"), 1)
        self.assertEqual(chart.scheduler.pending, 0)

    def test_hidden_points_draw_only_paths(self) -> None:
        chart, scene, _ = _line(hide_points=True)
        result = chart.set_data([[0, 0], [1, 1], [2, 0]])
        self.assertEqual(result.added, 0)
        self.assertEqual(scene.live_nodes("point"), [])
        coords, closed = scene.paths["line"]
        self.assertEqual(len(coords), 3)
        self.assertFalse(closed)
        area, closed = scene.paths["area"]
        self.assertEqual(len(area), 5)
        self.assertTrue(closed)

    def test_point_count_change_emits_morph_start_path(self) -> None:
        chart, scene, _ = _line()
        data = [[0, 0], [1, 1], [2, 0]]
        chart.set_data(data)
        self.assertEqual(scene.ops.count(("path", "line")), 1)

        scene.clear_ops()
        data.append([3, 1])
        chart.render()
        self.assertEqual(scene.ops.count(("path", "line")), 2)

        scene.clear_ops()
        chart.render()
        self.assertEqual(scene.ops.count(("path", "line")), 1)

    def test_resampled_series_keeps_element_count_bounded(self) -> None:
        chart, _, _ = _line(resample_threshold=50)
        data = [[i, math.sin(i / 5.0)] for i in range(1000)]
        first = chart.set_data(data)
        self.assertTrue(first.resampled)
        self.assertEqual((first.drawn, first.live), (50, 50))
        for i in range(1000, 1010):
            data.append([i, math.sin(i / 5.0)])
            result = chart.render()
            self.assertEqual(result.added, 0)
            self.assertLessEqual(result.live, 50)

    def test_nearest_and_overlay_probe(self) -> None:
        chart, _, _ = _line()
        data = [[0, 0], [1, 1], [2, 0]]
        chart.set_data(data)
        hit = chart.nearest(190.0)
        self.assertEqual(hit.index, 1)
        self.assertIs(hit.entry.ref, data[1])
        self.assertIs(chart.entry_at(2).entry.ref, data[2])

        child, _, _ = _line()
        child.set_data([[0, 5], [1, 6]])
        chart.add_chart(child, offset=100.0)
        hits = chart.probe(190.0)
        self.assertEqual([(h.chart, h.index) for h in hits], [(chart, 1), (child, 0)])
        with self.assertRaises(ValueError):
            chart.add_chart(chart)

    def test_ticks_follow_limits(self) -> None:
        chart, _, _ = _line()
        chart.set_data([[0, 0], [10, 10]])
        self.assertEqual(chart.ticks.x.tolist(), [0.0, 2.0, 4.0, 6.0, 8.0, 10.0])

    def test_segments_share_fills_and_are_collected(self) -> None:
        chart, scene, clock = _line()
        chart.set_data([[0, 0], [1, 1], [2, 0]])
        chart.set_segments([{"x": 0, "width": 1, "color": "red"}, {"x": 1, "width": 1, "color": "red"}])
        self.assertEqual(len(scene.live_nodes("segment")), 2)
        self.assertEqual(list(scene.fills.values()), [("red",)])

        chart.set_segments([])
        clock.now = 1100.0
        chart.scheduler.run_idle()
        self.assertEqual(scene.live_nodes("segment"), [])
        self.assertEqual(scene.fills, {})

    def test_markers_and_segments_share_one_collection_pass(self) -> None:
        chart, scene, clock = _line()
        data = [[0, 0], [1, 1], [2, 0]]
        chart.set_data(data)
        chart.set_segments([{"x": 0, "width": 1, "color": "red"}])
        data.pop(0)
        chart.set_segments([])
        self.assertEqual(len(chart.collector), 1)
        self.assertEqual(len(chart.segment_collector), 1)
        self.assertLessEqual(chart.scheduler.pending, 1)

        clock.now = 1100.0
        chart.scheduler.run_idle()
        self.assertEqual(scene.count("destroy"), 2)
        self.assertEqual(scene.fills, {})
        self.assertEqual(chart.scheduler.pending, 0)

    def test_prepending_to_a_float_list_keeps_markers(self) -> None:
        chart, scene, _ = _line()
        data = [1.5, 2.5, 3.5]
        chart.set_data(data)

        def node_at(i):
            return chart.reconciler.arena.get_live(chart.identities.peek(data[i], i)).node

        before = [node_at(i) for i in range(3)]
        data.insert(0, 0.5)
        result = chart.render()
        self.assertEqual((result.added, result.removed), (1, 0))
        for i in range(3):
            self.assertIs(node_at(i + 1), before[i])
        self.assertEqual(len(scene.live_nodes("point")), 4)

    def test_rebuilt_arrays_match_markers_by_position(self) -> None:
        chart, _, _ = _line()
        chart.set_data(np.asarray([1.0, 2.0, 3.0]))
        result = chart.set_data(np.asarray([3.0, 2.0, 1.0]))
        self.assertEqual((result.added, result.removed, result.live), (0, 0, 3))

    def test_marker_sliding_in_starts_at_previous_edge_point(self) -> None:
        chart, scene, _ = _line()
        data = [[0, 0], [1, 1], [2, 0]]
        chart.set_data(data)
        data.pop(0)
        data.append([3, 1])
        scene.clear_ops()
        chart.render()
        inserted = [scene.nodes[node_id] for name, node_id in scene.ops if name == "insert"]
        self.assertEqual(len(inserted), 1)
        self.assertEqual(inserted[0].start, PointAttrs(cx=400.0, cy=200.0))

    def test_marker_without_edge_match_starts_on_the_floor(self) -> None:
        chart, scene, _ = _line()
        chart.set_data([[0, 0], [1, 1], [2, 0]])
        scene.clear_ops()
        chart.set_data([[10, 1], [11, 2]])
        inserted = [scene.nodes[node_id] for name, node_id in scene.ops if name == "insert"]
        self.assertEqual(
            [n.start for n in inserted],
            [PointAttrs(cx=0.0, cy=200.0), PointAttrs(cx=400.0, cy=200.0)],
        )

    def test_aborted_render_leaves_limits_and_scene_untouched(self) -> None:
        chart, scene, _ = _line()
        data = [[0, 0], [1, 1]]
        chart.set_data(data)
        data.append([2, 5])
        chart.render()
        limits = chart.scales.limits
        previous = chart.scales.previous_limits
        ops = list(scene.ops)

        with mock.patch.object(chart, "normalize", return_value=normalize_bars([[5, 50], [6, 60]])):
            with self.assertRaises(ChartInvariantError):
                chart.render()
        self.assertIs(chart.scales.limits, limits)
        self.assertIs(chart.scales.previous_limits, previous)
        self.assertEqual(scene.ops, ops)


class BarChartTests(unittest.TestCase):
    def test_bars_share_fills_by_colour_and_direction(self) -> None:
        chart, scene, _ = _bar()
        result = chart.set_data([[1, 5], [1, -2], [1, 3]])
        self.assertEqual(result.added, 3)
        self.assertEqual(sorted(scene.fills.values()), [("#3e95ff", "down"), ("#3e95ff", "up")])

    def test_bar_padding_is_applied_to_drawn_width(self) -> None:
        chart, _, _ = _bar()
        chart.set_data([[1, 5], [1, 2]])
        for element in chart.reconciler.arena.live_elements():
            self.assertAlmostEqual(element.node.attrs.width, element.attrs.width - 6.0)
            self.assertAlmostEqual(element.node.attrs.x, element.attrs.x + 3.0)
            self.assertAlmostEqual(element.node.attrs.radius, min(4.0, abs(element.attrs.height)))

    def test_baseline_is_zero_when_domain_crosses_it(self) -> None:
        chart, _, _ = _bar()
        chart.set_data([[1, 5], [1, -5]])
        base_y = chart.scales.to_y(0.0)
        self.assertAlmostEqual(base_y, 100.0)
        heights = sorted(e.attrs.height for e in chart.reconciler.arena.live_elements())
        self.assertAlmostEqual(heights[0], -100.0)
        self.assertAlmostEqual(heights[1], 100.0)

    def test_removed_bar_exits_to_baseline_then_frees_its_fill(self) -> None:
        chart, scene, clock = _bar()
        data = [[1, 5], [1, -2]]
        chart.set_data(data)
        data.pop()
        result = chart.render()
        self.assertEqual(result.removed, 1)
        exiting = [n for n in scene.live_nodes("bar") if n.exiting]
        self.assertEqual(len(exiting), 1)
        self.assertEqual(exiting[0].attrs.height, 0.0)
        self.assertEqual(exiting[0].end, exiting[0].attrs)

        clock.now = 1100.0
        chart.scheduler.run_idle()
        self.assertEqual(scene.count("destroy"), 1)
        self.assertEqual(list(scene.fills.values()), [("#3e95ff", "up")])

    def test_new_bar_grows_from_the_previous_baseline(self) -> None:
        chart, scene, _ = _bar()
        data = [[1, 5], [1, 2]]
        chart.set_data(data)
        data.append([1, -4])
        scene.clear_ops()
        chart.render()

        inserted = [scene.nodes[node_id] for name, node_id in scene.ops if name == "insert"]
        self.assertEqual(len(inserted), 1)
        start = inserted[0].start
        previous = chart.scales.previous_limits
        self.assertEqual(previous.ymin, 2.0)
        # Baseline moved from ymin=2 down to 0; the bar starts where 0 sat before.
        self.assertAlmostEqual(start.y, chart.scales.to_y(0.0, previous))
        self.assertAlmostEqual(start.y, 200.0 + 2.0 * 200.0 / 3.0)
        self.assertAlmostEqual(start.x, chart.scales.to_x(2.5))
        self.assertEqual((start.width, start.height), (0.0, 0.0))

    def test_first_bars_grow_from_the_baseline(self) -> None:
        chart, scene, _ = _bar()
        chart.set_data([[1, 5], [1, -5]])
        starts = [n.start for n in scene.live_nodes("bar")]
        self.assertEqual([s.y for s in starts], [100.0, 100.0])
        self.assertEqual([s.height for s in starts], [0.0, 0.0])

    def test_transition_duration_delays_collection(self) -> None:
        chart, scene, clock = _bar(transition_duration_ms=300.0)
        data = [[1, 5], [1, 2]]
        chart.set_data(data)
        clock.now = 900.0
        data.pop()
        chart.render()
        clock.now = 1100.0
        chart.scheduler.run_idle()
        self.assertEqual(scene.count("destroy"), 0)
        self.assertTrue(chart.collector.pending)

        clock.now = 2200.0
        chart.scheduler.run_idle()
        self.assertEqual(scene.count("destroy"), 1)

    def test_nearest_bar_is_found_by_its_centre(self) -> None:
        chart, _, _ = _bar()
        data = [[1, 5], [1, 2]]
        chart.set_data(data)
        # Centres sit at 100 and 300; left edges would be 0 and 200.
        self.assertEqual(chart.nearest(190.0).index, 0)
        self.assertIs(chart.nearest(190.0).entry.ref, data[0])
        self.assertEqual(chart.nearest(200.0).index, 1)

    def test_reset_releases_nodes_and_fills(self) -> None:
        chart, scene, _ = _bar()
        chart.set_data([[1, 5], [1, -2]])
        chart.reset()
        self.assertEqual(scene.live_nodes(), [])
        self.assertEqual(scene.fills, {})
        self.assertEqual(chart.scheduler.pending, 0)


if __name__ == "__main__":
    unittest.main()
