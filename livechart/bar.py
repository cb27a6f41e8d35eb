from __future__ import annotations

from typing import Any, Sequence

from livechart.adapters import normalize_bars
from livechart.chart import Chart
from livechart.collector import SweepCollector
from livechart.elements import BarAttrs, FillKey
from livechart.fills import FillRegistry
from livechart.identity import IdentityArena
from livechart.reconcile import Layout, Reconciler
from livechart.series import Entry


class BarChart(Chart):
    """Bars laid edge to edge, rising from ``max(0, ymin)``.

    Bars sharing a colour and direction share one fill. Removed bars shrink to
    the baseline and are destroyed by a sweep once their exit has run.
    """

    kind = "bar"

    def init(self) -> None:
        self.identities = IdentityArena(key=self.key)
        self.fills = FillRegistry(self.scene.create_fill, self.scene.destroy_fill)
        self.reconciler = Reconciler(identities=self.identities, fills=self.fills, clock=self.clock)
        self.collector = SweepCollector(
            arena=self.reconciler.arena,
            identities=self.identities,
            destroy_element=self._destroy_node,
            scheduler=self.scheduler,
            fills=self.fills,
            timing=self.timing,
            clock=self.clock,
            delay=self.options.gc_delay_ms,
            max_delay=self.options.gc_max_idle_ms,
        )

    def normalize(self, items: Sequence[Any]) -> list[Entry]:
        return normalize_bars(items)

    def live_count(self) -> int:
        return len(self.reconciler.arena.live)

    def baseline_value(self) -> float:
        return max(0.0, self.scales.limits.ymin)

    def fill_key(self, entry: Entry, height: float) -> FillKey:
        return (entry.color or self.options.color, "down" if height < 0 else "up")

    def do_render(
        self,
        entries: Sequence[Entry],
        *,
        stable_items: bool,
        resampled: bool,
        disable_animation: bool,
    ) -> Layout:
        scales = self.scales
        base_y = scales.to_y(self.baseline_value())

        def geometry(entry: Entry) -> tuple[BarAttrs, FillKey]:
            x1 = scales.to_x(entry.x)
            x2 = scales.to_x(entry.x + entry.width)
            y = scales.to_y(entry.y)
            height = base_y - y
            key = self.fill_key(entry, height)
            return BarAttrs(x=x1, y=y, width=x2 - x1, height=height, fill=key), key

        layout = self.reconciler.reconcile(
            entries,
            geometry,
            stable_items=stable_items,
            resampled=resampled,
            disable_animation=disable_animation,
        )
        self._apply_layout(layout, base_y, disable_animation=disable_animation)
        self.collector.instant = disable_animation
        if disable_animation:
            self.collector.collect(immediate=True)
        else:
            self.collector.schedule()
        return layout

    def _apply_layout(self, layout: Layout, base_y: float, *, disable_animation: bool) -> None:
        scales = self.scales
        previous = scales.previous_limits
        shift_y = 0.0
        if previous is not None:
            shift_y = scales.to_y(self.baseline_value(), previous) - base_y

        for element in layout.add:
            element.node = self.scene.create_node("bar")
            start = None
            if not disable_animation:
                a = element.attrs
                start = BarAttrs(x=a.x + a.width / 2, y=base_y + shift_y, width=0.0, height=0.0, fill=a.fill)
            self.scene.insert(element.node, start=start)

        pad = self.options.bar_padding
        for element in layout.update:
            a = element.attrs
            width = max(0.0, a.width - pad)
            drawn = BarAttrs(
                x=a.x + pad / 2,
                y=a.y,
                width=width,
                height=a.height,
                fill=a.fill,
                radius=min(self.options.bar_radius, width / 2, abs(a.height)),
            )
            self.scene.update(element.node, drawn, fill=self.fills.acquire(a.fill).resource)

        for element in layout.remove:
            end = None
            if not disable_animation:
                a = element.attrs
                end = BarAttrs(x=a.x + a.width / 2, y=base_y, width=0.0, height=0.0, fill=a.fill)
            self.scene.exit(element.node, end=end)

    def do_reset(self) -> None:
        self.collector.cancel()
        for element in self.reconciler.reset():
            self._destroy_node(element)
        self.fills.clear()
        super().do_reset()
