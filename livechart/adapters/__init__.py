from livechart.adapters.normalize import as_items, detect_shape, normalize_bars, normalize_line, normalize_segments

__all__ = [
    "as_items",
    "detect_shape",
    "normalize_bars",
    "normalize_line",
    "normalize_segments",
]
