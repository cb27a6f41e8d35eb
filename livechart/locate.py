from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np

from livechart.series import Entry

if TYPE_CHECKING:
    from livechart.scales import ScaleMapper


def find_nearest_index(xs: np.ndarray | Sequence[float], search_x: float) -> int | None:
    """Index of the value in ascending ``xs`` closest to ``search_x``.

    Equidistant neighbours resolve to the right-hand one.
    """
    arr = np.asarray(xs, dtype=np.float64)
    n = int(arr.size)
    if n == 0:
        return None
    right = int(np.searchsorted(arr, search_x, side="left"))
    if right == 0:
        return 0
    if right >= n:
        return n - 1
    left = right - 1
    if search_x - arr[left] < arr[right] - search_x:
        return left
    return right


@dataclass(frozen=True)
class ProbeHit:
    index: int
    entry: Entry
    x: float
    y: float
    chart: Any = None


@dataclass
class RenderSnapshot:
    """Entries drawn by the last render and their plot-space midpoints."""

    entries: Sequence[Entry] = field(default_factory=list)
    xs: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))
    ys: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.float64))

    @classmethod
    def build(cls, entries: Sequence[Entry], scales: "ScaleMapper", *, centered: bool = False) -> "RenderSnapshot":
        count = len(entries)
        raw_x = np.fromiter((e.center if centered else e.x for e in entries), dtype=np.float64, count=count)
        raw_y = np.fromiter((e.y for e in entries), dtype=np.float64, count=count)
        return cls(entries=entries, xs=scales.map_x(raw_x), ys=scales.map_y(raw_y))

    def __len__(self) -> int:
        return len(self.entries)

    def nearest_index(self, search_x: float) -> int | None:
        return find_nearest_index(self.xs, search_x)

    def nearest(self, search_x: float, *, chart: Any = None) -> ProbeHit | None:
        index = self.nearest_index(search_x)
        if index is None:
            return None
        return self.at_index(index, chart=chart)

    def at_index(self, index: int, *, chart: Any = None) -> ProbeHit | None:
        if not 0 <= index < len(self.entries):
            return None
        return ProbeHit(
            index=index,
            entry=self.entries[index],
            x=float(self.xs[index]),
            y=float(self.ys[index]),
            chart=chart,
        )


def probe_overlay(
    snapshots: Sequence[tuple[Any, RenderSnapshot]],
    search_x: float,
    *,
    offsets: Sequence[float] | None = None,
) -> list[ProbeHit]:
    """Query each overlaid series at the same x, translated by its own offset."""
    hits: list[ProbeHit] = []
    for i, (chart, snapshot) in enumerate(snapshots):
        offset = 0.0 if offsets is None else float(offsets[i])
        hit = snapshot.nearest(search_x - offset, chart=chart)
        if hit is not None:
            hits.append(hit)
    return hits
