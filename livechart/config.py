from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
import tomllib
from typing import Any


@dataclass(frozen=True)
class ChartOptions:
    padding: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    x_min: float | None = None
    x_max: float | None = None
    y_min: float | None = None
    y_max: float | None = None
    color: str = "#3e95ff"
    resample_threshold: int | None = None
    disable_animation: bool = False
    hide_points: bool = False
    bar_padding: float = 6.0
    bar_radius: float = 4.0
    tick_target: int = 5
    transition_duration_ms: float | None = None
    gc_delay_ms: float = 1100.0
    gc_max_idle_ms: float = 1000.0

    def __post_init__(self) -> None:
        if len(self.padding) != 4:
            raise ValueError("padding must be (top, right, bottom, left)")
        if any(p < 0 for p in self.padding):
            raise ValueError("padding must be >= 0")
        if self.resample_threshold is not None and self.resample_threshold < 2:
            raise ValueError("resample_threshold must be >= 2")
        if self.bar_padding < 0:
            raise ValueError("bar_padding must be >= 0")
        if self.bar_radius < 0:
            raise ValueError("bar_radius must be >= 0")
        if self.tick_target <= 0:
            raise ValueError("tick_target must be > 0")
        if self.transition_duration_ms is not None and self.transition_duration_ms < 0:
            raise ValueError("transition_duration_ms must be >= 0")
        if self.gc_delay_ms < 0 or self.gc_max_idle_ms < 0:
            raise ValueError("gc delays must be >= 0")

    def merged(self, **overrides: Any) -> "ChartOptions":
        if not overrides:
            return self
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"unknown chart options: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)


_FLOAT_OR_NONE = {"x_min", "x_max", "y_min", "y_max", "transition_duration_ms"}
_FLOAT = {"bar_padding", "bar_radius", "gc_delay_ms", "gc_max_idle_ms"}
_BOOL = {"disable_animation", "hide_points"}


def options_from_mapping(raw: dict[str, Any]) -> ChartOptions:
    known = {f.name for f in fields(ChartOptions)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"unknown chart options: {', '.join(sorted(unknown))}")
    values: dict[str, Any] = {}
    for name, value in raw.items():
        if name == "padding":
            values[name] = _coerce_padding(value)
        elif name in _FLOAT_OR_NONE:
            values[name] = None if value is None else _coerce_float(value, name)
        elif name in _FLOAT:
            values[name] = _coerce_float(value, name)
        elif name in _BOOL:
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be a boolean")
            values[name] = value
        elif name in ("resample_threshold", "tick_target"):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
            values[name] = value
        elif name == "color":
            if not isinstance(value, str):
                raise ValueError("color must be a string")
            values[name] = value
    return ChartOptions(**values)


def load_options(path: str | Path, *, table: str | None = "chart") -> ChartOptions:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"chart config not found: {config_path}")
    with config_path.open("rb") as f:
        raw = tomllib.load(f)
    if table is not None:
        if table not in raw:
            raise ValueError(f"config missing [{table}] table")
        raw = raw[table]
    if not isinstance(raw, dict):
        raise ValueError("chart config must be a table")
    return options_from_mapping(raw)


def _coerce_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number")
    return float(value)


def _coerce_padding(value: Any) -> tuple[float, float, float, float]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        p = float(value)
        return (p, p, p, p)
    if not isinstance(value, list) or len(value) != 4:
        raise ValueError("padding must be a number or a list of 4 numbers")
    top, right, bottom, left = (_coerce_float(v, "padding") for v in value)
    return (top, right, bottom, left)
