from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from livechart.adapters import as_items, normalize_line, normalize_segments
from livechart.chart import Chart, RenderResult
from livechart.collector import CollectionPass, QueuedCollector
from livechart.elements import FillKey, PointAttrs, SegmentAttrs
from livechart.fills import FillRegistry
from livechart.identity import IdentityArena
from livechart.reconcile import Layout, Reconciler
from livechart.series import Entry

# How far in from each edge to look for the previous frame's edge point.
EDGE_SEARCH = 10


class LineChart(Chart):
    kind = "line"

    def init(self) -> None:
        self.x_values: Any = None
        self.segments: Any = None
        self._prev_coords: np.ndarray | None = None
        self._prev_entries: Sequence[Entry] | None = None

        self.identities = IdentityArena(key=self.key)
        self.reconciler = Reconciler(identities=self.identities, clock=self.clock)
        self.collector = QueuedCollector(
            arena=self.reconciler.arena,
            identities=self.identities,
            destroy_element=self._destroy_node,
            scheduler=self.scheduler,
            timing=self.timing,
            clock=self.clock,
            delay=self.options.gc_delay_ms,
            max_delay=self.options.gc_max_idle_ms,
        )

        self.segment_identities = IdentityArena()
        self.segment_fills = FillRegistry(self.scene.create_fill, self.scene.destroy_fill)
        self.segment_reconciler = Reconciler(
            identities=self.segment_identities,
            fills=self.segment_fills,
            clock=self.clock,
        )
        self.segment_collector = QueuedCollector(
            arena=self.segment_reconciler.arena,
            identities=self.segment_identities,
            destroy_element=self._destroy_node,
            scheduler=self.scheduler,
            fills=self.segment_fills,
            timing=self.timing,
            clock=self.clock,
            delay=self.options.gc_delay_ms,
            max_delay=self.options.gc_max_idle_ms,
        )
        # Markers and segments share one pass so a chart never queues two.
        self.gc_pass = CollectionPass(
            self.scheduler,
            delay=self.options.gc_delay_ms,
            max_delay=self.options.gc_max_idle_ms,
        )
        self.gc_pass.add(self.collector)
        self.gc_pass.add(self.segment_collector)

    def set_data(self, series: Any, *, x: Any = None) -> RenderResult | None:
        self.x_values = x
        return super().set_data(series)

    def set_segments(self, segments: Any) -> RenderResult | None:
        """Shade ``{x, width, color}`` spans under the line."""
        self.segments = segments
        return self.render()

    def normalize(self, items: Sequence[Any]) -> list[Entry]:
        return normalize_line(items, x=self.x_values)

    def live_count(self) -> int:
        return len(self.reconciler.arena.live)

    def do_render(
        self,
        entries: Sequence[Entry],
        *,
        stable_items: bool,
        resampled: bool,
        disable_animation: bool,
    ) -> Layout:
        scales = self.scales
        xs = scales.map_x(np.fromiter((e.x for e in entries), dtype=np.float64, count=len(entries)))
        ys = scales.map_y(np.fromiter((e.y for e in entries), dtype=np.float64, count=len(entries)))
        coords = np.column_stack((xs, ys))

        if self.options.hide_points:
            if len(self.reconciler.arena):
                self._drop_markers()
            layout = Layout()
        else:
            layout = self._render_markers(
                entries,
                coords,
                stable_items=stable_items,
                resampled=resampled,
                disable_animation=disable_animation,
            )

        if not disable_animation:
            start = self._morph_start(entries, coords)
            if start is not None:
                self.scene.set_path("line", start)
                self.scene.set_path("area", self._close(start), closed=True)
        self.scene.set_path("line", coords)
        self.scene.set_path("area", self._close(coords), closed=True)

        self._render_segments(disable_animation=disable_animation)
        self._prev_coords = coords
        self._prev_entries = entries
        return layout

    def _render_markers(
        self,
        entries: Sequence[Entry],
        coords: np.ndarray,
        *,
        stable_items: bool,
        resampled: bool,
        disable_animation: bool,
    ) -> Layout:
        scales = self.scales

        def geometry(entry: Entry) -> tuple[PointAttrs, None]:
            return PointAttrs(cx=scales.to_x(entry.x), cy=scales.to_y(entry.y)), None

        layout = self.reconciler.reconcile(
            entries,
            geometry,
            stable_items=stable_items,
            resampled=resampled,
            disable_animation=disable_animation,
        )
        if layout.add:
            positions = {id(e): i for i, e in enumerate(entries)}
            left_begin, right_begin = self._edge_begins(entries)
            for element in layout.add:
                element.node = self.scene.create_node("point")
                start = None
                if not disable_animation and self._prev_coords is not None:
                    pos = positions.get(id(element.entry), 0)
                    begin = right_begin if pos >= len(entries) / 2 else left_begin
                    if begin is None:
                        begin = PointAttrs(cx=float(coords[pos, 0]), cy=self.area.bottom)
                    start = begin
                self.scene.insert(element.node, start=start)
        for element in layout.update:
            self.scene.update(element.node, element.attrs)
        for element in layout.remove:
            end = None
            if not disable_animation:
                end = PointAttrs(cx=element.attrs.cx, cy=self.area.bottom)
            self.scene.exit(element.node, end=end)
            if element.last_used is not None:
                self.collector.enqueue(element)
        self._flush(self.collector, disable_animation)
        return layout

    def _render_segments(self, *, disable_animation: bool) -> None:
        seg_items = as_items(self.segments)
        if len(seg_items) == 0 and len(self.segment_reconciler.arena) == 0:
            return
        scales = self.scales

        def geometry(entry: Entry) -> tuple[SegmentAttrs, FillKey]:
            key: FillKey = (entry.color or self.options.color,)
            return SegmentAttrs(x=scales.to_x(entry.x), width=scales.x_span(entry.width), fill=key), key

        layout = self.segment_reconciler.reconcile(
            normalize_segments(seg_items),
            geometry,
            items=seg_items,
            stable_items=seg_items is self.segments,
            disable_animation=disable_animation,
        )
        for element in layout.add:
            element.node = self.scene.create_node("segment")
            start = None
            if not disable_animation:
                start = SegmentAttrs(x=element.attrs.x, width=0.0, fill=element.attrs.fill)
            self.scene.insert(element.node, start=start)
        for element in layout.update:
            fill = self.segment_fills.acquire(element.attrs.fill).resource
            self.scene.update(element.node, element.attrs, fill=fill)
        for element in layout.remove:
            end = None
            if not disable_animation:
                end = SegmentAttrs(x=element.attrs.x, width=0.0, fill=element.attrs.fill)
            self.scene.exit(element.node, end=end)
            if element.last_used is not None:
                self.segment_collector.enqueue(element)
        if layout.update and not layout.remove:
            # Recoloured segments can orphan a fill without purging anything.
            self.segment_collector.schedule()
        self._flush(self.segment_collector, disable_animation)

    def _flush(self, collector: QueuedCollector, disable_animation: bool) -> None:
        collector.instant = disable_animation
        if disable_animation:
            collector.collect(immediate=True)
        elif len(collector):
            collector.schedule()

    def _edge_begins(self, entries: Sequence[Entry]) -> tuple[PointAttrs | None, PointAttrs | None]:
        """Start points for new markers when the data slid in from an edge."""
        prev = self._prev_entries
        prev_coords = self._prev_coords
        if not prev or prev_coords is None:
            return None, None
        limit = min(EDGE_SEARCH, len(entries))
        left = right = None
        first = prev[0]
        if any(e.x == first.x and e.y == first.y for e in entries[:limit]):
            left = PointAttrs(cx=float(prev_coords[0, 0]), cy=float(prev_coords[0, 1]))
        last = prev[-1]
        if any(e.x == last.x and e.y == last.y for e in entries[len(entries) - limit :]):
            right = PointAttrs(cx=float(prev_coords[-1, 0]), cy=float(prev_coords[-1, 1]))
        return left, right

    def _morph_start(self, entries: Sequence[Entry], coords: np.ndarray) -> np.ndarray | None:
        """Previous path padded or trimmed to the new point count.

        Path interpolation needs matching point counts, so the old path is
        re-emitted at the new length before the real one.
        """
        prev = self._prev_coords
        prev_entries = self._prev_entries
        if prev is None or not prev_entries or len(prev) == len(coords):
            return None
        n = len(coords)
        pivot_index = n // 2
        pivot = entries[pivot_index]
        prev_index = next(
            (i for i, e in enumerate(prev_entries) if e.x == pivot.x and e.y == pivot.y),
            -1,
        )
        left_to_right = prev_index == -1 or pivot_index <= prev_index
        if left_to_right:
            if len(prev) > n:
                return prev[len(prev) - n :]
            pad = np.repeat(prev[-1:], n - len(prev), axis=0)
            return np.concatenate((prev, pad))
        if len(prev) > n:
            return prev[:n]
        pad = np.repeat(prev[:1], n - len(prev), axis=0)
        return np.concatenate((pad, prev))

    def _close(self, coords: np.ndarray) -> np.ndarray:
        area = self.area
        if len(coords) == 0:
            return coords
        floor_left = np.asarray([[area.left, area.bottom]], dtype=np.float64)
        floor_right = np.asarray([[area.left + area.plot_width, area.bottom]], dtype=np.float64)
        return np.concatenate((floor_left, coords, floor_right))

    def _drop_markers(self) -> None:
        self.collector.clear()
        for element in self.reconciler.reset():
            self._destroy_node(element)

    def do_reset(self) -> None:
        self.gc_pass.cancel()
        self._drop_markers()
        self.segment_collector.clear()
        for element in self.segment_reconciler.reset():
            self._destroy_node(element)
        self.segment_fills.clear()
        self._prev_coords = None
        self._prev_entries = None
        super().do_reset()
