from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from livechart.series import ChartKind, Entry


Inset = tuple[float, float, float, float]


@dataclass(frozen=True)
class DataLimits:
    xmin: float
    xmax: float
    ymin: float
    ymax: float

    def signature(self) -> tuple[float, float, float, float]:
        return (self.xmin, self.xmax, self.ymin, self.ymax)


@dataclass(frozen=True)
class PlotArea:
    """Box size plus ``(top, right, bottom, left)`` padding, in plot units."""

    width: float
    height: float
    inset: Inset = (0.0, 0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("plot area width/height must be >= 0")
        if len(self.inset) != 4:
            raise ValueError("inset must be (top, right, bottom, left)")

    @property
    def plot_width(self) -> float:
        return max(0.0, self.width - self.inset[1] - self.inset[3])

    @property
    def plot_height(self) -> float:
        return max(0.0, self.height - self.inset[0] - self.inset[2])

    @property
    def left(self) -> float:
        return self.inset[3]

    @property
    def top(self) -> float:
        return self.inset[0]

    @property
    def bottom(self) -> float:
        return self.inset[0] + self.plot_height

    def is_drawable(self) -> bool:
        return self.plot_width > 0 and self.plot_height > 0


@dataclass(frozen=True)
class AxisTicks:
    x: np.ndarray
    y: np.ndarray


def resolve_limits(
    entries: Sequence[Entry],
    *,
    kind: ChartKind,
    x_min: float | None = None,
    x_max: float | None = None,
    y_min: float | None = None,
    y_max: float | None = None,
) -> DataLimits:
    if not entries:
        raise ValueError("cannot resolve limits of an empty series")
    if y_min is None or y_max is None:
        ys = np.fromiter((e.y for e in entries), dtype=np.float64, count=len(entries))
        lo = float(np.min(ys))
        hi = float(np.max(ys))
    ymin = lo if y_min is None else float(y_min)
    ymax = hi if y_max is None else float(y_max)
    first = entries[0]
    last = entries[-1]
    xmin = first.x if x_min is None else float(x_min)
    if x_max is not None:
        xmax = float(x_max)
    elif kind == "bar":
        xmax = last.x + last.width
    else:
        xmax = last.x

    if ymin == ymax:
        if kind == "bar":
            ymin -= 1.0
        else:
            ymin -= 0.5
            ymax += 0.5
    if xmin == xmax:
        xmin -= 0.5
        xmax += 0.5
    return DataLimits(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


class ScaleMapper:
    """Affine mapping between data values and plot coordinates.

    Plot y grows downward, so ``to_y`` flips the data axis. Limits are only
    replaced when their four bounds change, which lets callers skip axis work.
    """

    def __init__(
        self,
        *,
        kind: ChartKind = "line",
        x_min: float | None = None,
        x_max: float | None = None,
        y_min: float | None = None,
        y_max: float | None = None,
        area: PlotArea | None = None,
    ) -> None:
        self.kind = kind
        self.x_min = x_min
        self.x_max = x_max
        self.y_min = y_min
        self.y_max = y_max
        self.area = area or PlotArea(0.0, 0.0)
        self._limits: DataLimits | None = None
        self._previous: DataLimits | None = None

    @property
    def limits(self) -> DataLimits:
        if self._limits is None:
            raise RuntimeError("scale has no limits yet; call fit() first")
        return self._limits

    @property
    def previous_limits(self) -> DataLimits | None:
        return self._previous

    @property
    def has_limits(self) -> bool:
        return self._limits is not None

    def fit(self, entries: Sequence[Entry]) -> bool:
        limits = resolve_limits(
            entries,
            kind=self.kind,
            x_min=self.x_min,
            x_max=self.x_max,
            y_min=self.y_min,
            y_max=self.y_max,
        )
        return self.set_limits(limits)

    def set_limits(self, limits: DataLimits) -> bool:
        self._previous = self._limits
        if self._limits is not None and self._limits.signature() == limits.signature():
            return False
        self._limits = limits
        return True

    def reset(self) -> None:
        self._limits = None
        self._previous = None

    def x_scale(self, limits: DataLimits | None = None) -> float:
        lim = limits or self.limits
        return self.area.plot_width / (lim.xmax - lim.xmin)

    def y_scale(self, limits: DataLimits | None = None) -> float:
        lim = limits or self.limits
        return self.area.plot_height / (lim.ymax - lim.ymin)

    def to_x(self, value: float, limits: DataLimits | None = None) -> float:
        lim = limits or self.limits
        return (value - lim.xmin) * self.x_scale(lim) + self.area.left

    def to_y(self, value: float, limits: DataLimits | None = None) -> float:
        lim = limits or self.limits
        return self.area.bottom - (value - lim.ymin) * self.y_scale(lim)

    def x_span(self, delta: float) -> float:
        return delta * self.x_scale()

    def y_span(self, delta: float) -> float:
        return delta * self.y_scale()

    def from_x(self, coord: float) -> float:
        sx = self.x_scale()
        if sx == 0:
            return self.limits.xmin
        return (coord - self.area.left) / sx + self.limits.xmin

    def from_y(self, coord: float) -> float:
        sy = self.y_scale()
        if sy == 0:
            return self.limits.ymin
        return (self.area.bottom - coord) / sy + self.limits.ymin

    def to_coordinates(self, entry: Entry) -> tuple[float, float]:
        return (self.to_x(entry.x), self.to_y(entry.y))

    def map_x(self, values: np.ndarray) -> np.ndarray:
        lim = self.limits
        return (np.asarray(values, dtype=np.float64) - lim.xmin) * self.x_scale(lim) + self.area.left

    def map_y(self, values: np.ndarray) -> np.ndarray:
        lim = self.limits
        return self.area.bottom - (np.asarray(values, dtype=np.float64) - lim.ymin) * self.y_scale(lim)

    def ticks(self, target: int = 5) -> AxisTicks:
        lim = self.limits
        return AxisTicks(
            x=generate_nice_ticks(lim.xmin, lim.xmax, target),
            y=generate_nice_ticks(lim.ymin, lim.ymax, target),
        )


def generate_nice_ticks(vmin: float, vmax: float, target: int) -> np.ndarray:
    """Round-number ticks covering ``[vmin, vmax]`` (inside the range only)."""
    if target <= 0:
        raise ValueError("target must be > 0")
    if vmin == vmax:
        return np.asarray([vmin], dtype=np.float64)
    lo, hi = min(vmin, vmax), max(vmin, vmax)
    span = _nice_number(hi - lo, round_result=False)
    step = _nice_number(span / max(target - 1, 1), round_result=True)
    first = np.ceil(lo / step) * step
    ticks = np.arange(first, hi + step * 1e-9, step, dtype=np.float64)
    # Snap floating-point drift such as -4.44e-16 to the step grid.
    ticks = np.rint(ticks / step) * step
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks


def _nice_number(value: float, *, round_result: bool) -> float:
    exp = np.floor(np.log10(value))
    frac = value / (10**exp)
    if round_result:
        bounds = ((1.5, 1.0), (3.0, 2.0), (7.0, 5.0))
        nice = next((n for limit, n in bounds if frac < limit), 10.0)
    else:
        bounds = ((1.0, 1.0), (2.0, 2.0), (5.0, 5.0))
        nice = next((n for limit, n in bounds if frac <= limit), 10.0)
    return float(nice * (10**exp))
