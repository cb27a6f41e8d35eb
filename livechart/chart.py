from __future__ import annotations

from dataclasses import dataclass
import itertools
import logging
from typing import Any, Sequence

from livechart.adapters import as_items
from livechart.collector import TransitionTiming
from livechart.config import ChartOptions
from livechart.downsample import downsample
from livechart.identity import KeyFunc
from livechart.locate import ProbeHit, RenderSnapshot, probe_overlay
from livechart.reconcile import Layout, Reconciler
from livechart.scales import AxisTicks, PlotArea, ScaleMapper
from livechart.scene import RecordingScene, SceneGraph
from livechart.scheduler import Clock, IdleScheduler, monotonic_ms
from livechart.series import ChartKind, Entry


LOGGER = logging.getLogger(__name__)

_chart_ids = itertools.count()


@dataclass(frozen=True)
class RenderResult:
    added: int
    updated: int
    removed: int
    recycled: int
    revived: int
    drawn: int
    live: int
    resampled: bool
    limits_changed: bool


class Chart:
    """Shared render pipeline: normalize, resample, fit scales, reconcile.

    Subclasses supply ``normalize``, ``do_render`` and ``do_reset``. Renders
    must be serialized by the caller; one chart never runs two at once.
    """

    kind: ChartKind = "line"
    reconciler: Reconciler

    def __init__(
        self,
        options: ChartOptions | None = None,
        *,
        scene: SceneGraph | None = None,
        scheduler: IdleScheduler | None = None,
        clock: Clock | None = None,
        timing: TransitionTiming | None = None,
        key: KeyFunc | None = None,
        **overrides: Any,
    ) -> None:
        self.options = (options or ChartOptions()).merged(**overrides)
        self.id = next(_chart_ids)
        self.scene: SceneGraph = scene if scene is not None else RecordingScene()
        self.clock: Clock = clock or (scheduler.clock if scheduler is not None else monotonic_ms)
        self.scheduler = scheduler or IdleScheduler(clock=self.clock)
        self.timing: TransitionTiming = timing or (lambda: self.options.transition_duration_ms)
        self.key = key
        self.scales = ScaleMapper(
            kind=self.kind,
            x_min=self.options.x_min,
            x_max=self.options.x_max,
            y_min=self.options.y_min,
            y_max=self.options.y_max,
        )
        self.area: PlotArea | None = None
        self.data: Any = None
        self.snapshot = RenderSnapshot()
        self.ticks: AxisTicks | None = None
        self.child_charts: list[tuple[Chart, float]] = []
        self.last_result: RenderResult | None = None
        self.init()

    def init(self) -> None:
        pass

    def set_size(self, width: float, height: float) -> None:
        self.area = PlotArea(float(width), float(height), self.options.padding)
        self.scales.area = self.area

    def set_data(self, series: Any) -> RenderResult | None:
        self.data = series
        return self.render()

    def render(self, series: Any = None, *, disable_animation: bool | None = None) -> RenderResult | None:
        if series is not None:
            self.data = series
        if self.area is None or not self.area.is_drawable():
            return None
        items = as_items(self.data)
        if len(items) == 0:
            self.do_reset()
            return None
        disable = self.options.disable_animation if disable_animation is None else disable_animation
        # Plain sequences are the caller's own objects; arrays and frames are copied on every read.
        stable = items is self.data

        entries = self.normalize(items)
        drawn: Sequence[Entry] = entries
        resampled = False
        threshold = self.options.resample_threshold
        if threshold and len(entries) > threshold:
            drawn = downsample(entries, threshold)
            resampled = True
        self.validate(drawn, items, stable_items=stable)

        limits_changed = self.scales.fit(drawn)
        if limits_changed:
            LOGGER.debug("chart %d limits changed to %s", self.id, self.scales.limits)
        if limits_changed or self.ticks is None:
            self.ticks = self.scales.ticks(self.options.tick_target)

        layout = self.do_render(drawn, stable_items=stable, resampled=resampled, disable_animation=disable)
        self.snapshot = RenderSnapshot.build(drawn, self.scales, centered=self.kind == "bar")
        self.last_result = RenderResult(
            added=len(layout.add),
            updated=len(layout.update),
            removed=len(layout.remove),
            recycled=layout.recycled,
            revived=layout.revived,
            drawn=len(drawn),
            live=self.live_count(),
            resampled=resampled,
            limits_changed=limits_changed,
        )
        return self.last_result

    def normalize(self, items: Sequence[Any]) -> list[Entry]:
        raise NotImplementedError

    def validate(self, entries: Sequence[Entry], items: Sequence[Any], *, stable_items: bool = True) -> None:
        """Raise ``ChartInvariantError`` before any scale or scene state changes."""
        self.reconciler.validate(entries, items, stable_items=stable_items)

    def do_render(
        self,
        entries: Sequence[Entry],
        *,
        stable_items: bool,
        resampled: bool,
        disable_animation: bool,
    ) -> Layout:
        raise NotImplementedError

    def do_reset(self) -> None:
        self.scales.reset()
        self.snapshot = RenderSnapshot()
        self.ticks = None

    def live_count(self) -> int:
        return 0

    def reset(self) -> None:
        self.data = None
        self.do_reset()

    def add_chart(self, chart: "Chart", *, offset: float = 0.0) -> None:
        """Overlay ``chart`` on this one; ``offset`` is its plot-space x origin."""
        if chart is self:
            raise ValueError("a chart cannot overlay itself")
        self.child_charts.append((chart, float(offset)))

    def nearest(self, search_x: float) -> ProbeHit | None:
        return self.snapshot.nearest(search_x, chart=self)

    def entry_at(self, index: int) -> ProbeHit | None:
        return self.snapshot.at_index(index, chart=self)

    def probe(self, search_x: float) -> list[ProbeHit]:
        snapshots = [(self, self.snapshot)] + [(c, c.snapshot) for c, _ in self.child_charts]
        offsets = [0.0] + [off for _, off in self.child_charts]
        return probe_overlay(snapshots, search_x, offsets=offsets)

    def _destroy_node(self, element) -> None:
        if element.node is not None:
            node = element.node
            element.node = None
            self.scene.destroy(node)
