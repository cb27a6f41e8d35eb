from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from livechart.series import Entry


LOGGER = logging.getLogger(__name__)


def lttb_indices(x: np.ndarray, y: np.ndarray, target: int) -> np.ndarray:
    """Largest-triangle-three-buckets selection over ordered ``x``/``y``.

    Returns the indices of the kept points. The first and last points are
    always kept and the interior is split into ``target - 2`` buckets whose
    bounds use integer floor arithmetic so every bucket is non-empty whenever
    ``len(x) > target``.
    """
    n = int(x.size)
    if y.size != n:
        raise ValueError(f"x and y length mismatch: {n} != {y.size}")
    if n == 0:
        return np.empty(0, dtype=np.intp)
    if target >= n:
        return np.arange(n, dtype=np.intp)
    if target <= 2:
        return np.asarray([0, n - 1] if n > 1 else [0], dtype=np.intp)

    span = n - 2
    buckets = target - 2
    out = np.empty(target, dtype=np.intp)
    out[0] = 0
    out[-1] = n - 1
    a = 0
    for i in range(1, target - 1):
        start = ((i - 1) * span) // buckets + 1
        end = (i * span) // buckets + 1
        next_end = min(((i + 1) * span) // buckets + 1, n)

        avg_x = float(x[end:next_end].mean())
        avg_y = float(y[end:next_end].mean())
        ax = float(x[a])
        ay = float(y[a])

        bx = x[start:end]
        by = y[start:end]
        area = np.abs((ax - avg_x) * (by - ay) - (ax - bx) * (avg_y - ay))
        a = start + int(np.argmax(area))
        out[i] = a
    return out


def downsample(entries: Sequence[Entry], target: int | None) -> Sequence[Entry]:
    """Reduce ``entries`` to ``target`` points, or return them untouched."""
    if not target or target >= len(entries):
        return entries
    x = np.fromiter((e.x for e in entries), dtype=np.float64, count=len(entries))
    y = np.fromiter((e.y for e in entries), dtype=np.float64, count=len(entries))
    keep = lttb_indices(x, y, int(target))
    LOGGER.debug("resampled %d entries to %d", len(entries), keep.size)
    return [entries[i] for i in keep.tolist()]
