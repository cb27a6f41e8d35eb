from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
import math
from typing import Any, Literal

import numpy as np

from livechart.errors import ChartDataError
from livechart.series import Datum, Entry


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


LOGGER = logging.getLogger(__name__)

ItemShape = Literal["value", "pair", "record"]

_RESERVED = frozenset({"x", "y", "width", "index", "ref"})
_MISSING = object()


def as_items(series: Any) -> Sequence[Any]:
    """Return an indexable view of ``series`` without copying plain sequences."""
    if series is None:
        return []
    if torch is not None and isinstance(series, torch.Tensor):
        tensor = series.detach()
        if tensor.ndim != 1:
            raise ChartDataError("tensor series must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).tolist()
    if pd is not None and isinstance(series, pd.Series):
        return series.to_list()
    if isinstance(series, np.ndarray):
        if series.ndim != 1:
            raise ChartDataError("array series must be 1-D")
        return series.tolist()
    if isinstance(series, (str, bytes, bytearray)) or not isinstance(series, Sequence):
        raise ChartDataError(f"unsupported series type: {type(series)!r}")
    return series


def detect_shape(item: Any) -> ItemShape:
    if isinstance(item, Datum):
        return "value"
    if isinstance(item, Mapping):
        return "record"
    if isinstance(item, (str, bytes, bytearray)):
        return "value"
    if isinstance(item, Sequence) or isinstance(item, np.ndarray):
        return "pair" if len(item) == 2 else "value"
    if hasattr(item, "y") or hasattr(item, "width"):
        return "record"
    return "value"


class _Coercer:
    def __init__(self) -> None:
        self.malformed = 0

    def number(self, raw: Any) -> float:
        if isinstance(raw, Datum):
            raw = raw.value
        if raw is None:
            return 0.0
        try:
            value = float(raw.item()) if isinstance(raw, np.generic) else float(raw)
        except (TypeError, ValueError, OverflowError):
            self.malformed += 1
            return 0.0
        if not math.isfinite(value):
            self.malformed += 1
            return 0.0
        return value

    def optional(self, raw: Any, default: float) -> float:
        if raw is _MISSING or raw is None:
            return default
        return self.number(raw)

    def report(self, label: str) -> None:
        if self.malformed:
            LOGGER.debug("%s: coerced %d malformed numeric fields to 0", label, self.malformed)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, _MISSING)
    return getattr(item, name, _MISSING)


def _extras(item: Any) -> dict[str, Any]:
    if isinstance(item, Mapping):
        return {k: v for k, v in item.items() if k not in _RESERVED}
    out: dict[str, Any] = {}
    for name in ("color", "tooltip", "label"):
        value = getattr(item, name, None)
        if value is not None:
            out[name] = value
    return out


def _pair(item: Any) -> tuple[Any, Any]:
    try:
        return item[0], item[1]
    except (IndexError, KeyError, TypeError):
        return None, None


def normalize_line(series: Any, *, x: Any = None) -> list[Entry]:
    items = as_items(series)
    if len(items) == 0:
        return []
    xs = None if x is None else as_items(x)
    if xs is not None and len(xs) != len(items):
        raise ChartDataError(f"x and y length mismatch: {len(xs)} != {len(items)}")

    coerce = _Coercer()
    shape = detect_shape(items[0])
    out: list[Entry] = []
    for i, item in enumerate(items):
        default_x = float(i) if xs is None else coerce.number(xs[i])
        if shape == "pair":
            raw_x, raw_y = _pair(item)
            entry = Entry(index=i, x=coerce.optional(raw_x, default_x), y=coerce.number(raw_y), ref=item)
        elif shape == "record":
            entry = Entry(
                index=i,
                x=coerce.optional(_field(item, "x"), default_x),
                y=coerce.optional(_field(item, "y"), 0.0),
                ref=item,
                extra=_extras(item),
            )
        else:
            entry = Entry(index=i, x=default_x, y=coerce.number(item), ref=item)
        out.append(entry)
    coerce.report("line series")
    return out


def normalize_bars(series: Any) -> list[Entry]:
    items = as_items(series)
    if len(items) == 0:
        return []

    coerce = _Coercer()
    shape = detect_shape(items[0])
    out: list[Entry] = []
    if shape == "pair":
        # [[width, y], ...] laid edge to edge
        offset = 0.0
        for i, item in enumerate(items):
            raw_w, raw_y = _pair(item)
            width = coerce.optional(raw_w, 1.0)
            out.append(Entry(index=i, x=offset, y=coerce.number(raw_y), ref=item, width=width))
            offset += width
    elif shape == "record":
        first = items[0]
        has_x = _field(first, "x") is not _MISSING
        has_width = _field(first, "width") is not _MISSING
        if has_x and not has_width:
            # width is the gap to the next entry; the last entry is a sentinel
            xs = [coerce.optional(_field(item, "x"), float(i)) for i, item in enumerate(items)]
            for i, item in enumerate(items):
                width = xs[i + 1] - xs[i] if i + 1 < len(items) else 0.0
                out.append(
                    Entry(
                        index=i,
                        x=xs[i],
                        y=coerce.optional(_field(item, "y"), 0.0),
                        ref=item,
                        width=width,
                        extra=_extras(item),
                    )
                )
        elif has_x and has_width:
            for i, item in enumerate(items):
                out.append(
                    Entry(
                        index=i,
                        x=coerce.optional(_field(item, "x"), float(i)),
                        y=coerce.optional(_field(item, "y"), 0.0),
                        ref=item,
                        width=coerce.optional(_field(item, "width"), 1.0),
                        extra=_extras(item),
                    )
                )
        else:
            offset = 0.0
            for i, item in enumerate(items):
                width = coerce.optional(_field(item, "width"), 1.0)
                out.append(
                    Entry(
                        index=i,
                        x=offset,
                        y=coerce.optional(_field(item, "y"), 0.0),
                        ref=item,
                        width=width,
                        extra=_extras(item),
                    )
                )
                offset += width
    else:
        for i, item in enumerate(items):
            out.append(Entry(index=i, x=float(i), y=coerce.number(item), ref=item, width=1.0))
    coerce.report("bar series")
    return out


def normalize_segments(series: Any) -> list[Entry]:
    """Segments are ``{x, width, color}`` records shading spans under a line."""
    items = as_items(series)
    coerce = _Coercer()
    out: list[Entry] = []
    for i, item in enumerate(items):
        if detect_shape(item) == "pair":
            raw_x, raw_w = _pair(item)
            out.append(Entry(index=i, x=coerce.number(raw_x), y=0.0, ref=item, width=coerce.number(raw_w)))
            continue
        out.append(
            Entry(
                index=i,
                x=coerce.optional(_field(item, "x"), 0.0),
                y=0.0,
                ref=item,
                width=coerce.optional(_field(item, "width"), 0.0),
                extra=_extras(item),
            )
        )
    coerce.report("segments")
    return out
