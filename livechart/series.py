from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


ChartKind = Literal["line", "bar"]


class Datum:
    """Mutable holder that gives a bare value a stable identity across frames."""

    __slots__ = ("value",)

    def __init__(self, value: Any = 0.0) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Datum({self.value!r})"


@dataclass
class Entry:
    index: int
    x: float
    y: float
    ref: Any
    width: float = 0.0
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def color(self) -> str | None:
        value = self.extra.get("color")
        return None if value is None else str(value)

    @property
    def center(self) -> float:
        return self.x + self.width / 2.0
