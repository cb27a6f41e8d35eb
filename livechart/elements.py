from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Hashable, Iterator

from livechart.errors import ChartInvariantError
from livechart.series import Entry


FillKey = tuple[Hashable, ...]


@dataclass(frozen=True)
class BarAttrs:
    x: float
    y: float
    width: float
    height: float
    fill: FillKey | None = None
    radius: float = 0.0


@dataclass(frozen=True)
class PointAttrs:
    cx: float
    cy: float


@dataclass(frozen=True)
class SegmentAttrs:
    x: float
    width: float
    fill: FillKey | None = None


@dataclass(eq=False)
class VisualElement:
    handle: int
    slot: int = -1
    attrs: Any = None
    sig: Any = None
    fill_key: FillKey | None = None
    node: Any = None
    last_used: float | None = None
    entry: Entry | None = None


class ElementArena:
    """Dense slot storage for visual elements with live and purgatory indexes.

    ``live`` and ``purgatory`` map identity handles to slot numbers. Freeing an
    element invalidates its slot and recycles the slot number; the slot list is
    never compacted.
    """

    def __init__(self) -> None:
        self._slots: list[VisualElement | None] = []
        self._free: list[int] = []
        self.live: dict[int, int] = {}
        self.purgatory: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self.live) + len(self.purgatory)

    @property
    def capacity(self) -> int:
        return len(self._slots)

    def allocate(self, handle: int) -> VisualElement:
        element = VisualElement(handle=handle)
        if self._free:
            element.slot = self._free.pop()
            self._slots[element.slot] = element
        else:
            element.slot = len(self._slots)
            self._slots.append(element)
        self.live[handle] = element.slot
        return element

    def slot(self, index: int) -> VisualElement | None:
        return self._slots[index]

    def get_live(self, handle: int) -> VisualElement | None:
        slot = self.live.get(handle)
        return None if slot is None else self._slots[slot]

    def get_purgatory(self, handle: int) -> VisualElement | None:
        slot = self.purgatory.get(handle)
        return None if slot is None else self._slots[slot]

    def to_purgatory(self, handle: int, now: float) -> VisualElement:
        slot = self.live.pop(handle)
        element = self._slots[slot]
        if element is None:
            raise ChartInvariantError(f"live handle {handle} points at freed slot {slot}")
        element.last_used = now
        self.purgatory[handle] = slot
        return element

    def revive(self, handle: int) -> VisualElement | None:
        slot = self.purgatory.pop(handle, None)
        if slot is None:
            return None
        element = self._slots[slot]
        if element is None:
            raise ChartInvariantError(f"purged handle {handle} points at freed slot {slot}")
        element.last_used = None
        element.sig = None
        self.live[handle] = slot
        return element

    def rekey(self, element: VisualElement, handle: int) -> int:
        """Move ``element`` (live or purgatory) to a new live ``handle``.

        Returns the handle it had before.
        """
        old = element.handle
        if self.live.get(old) == element.slot:
            del self.live[old]
        elif self.purgatory.get(old) == element.slot:
            del self.purgatory[old]
            element.last_used = None
        else:
            raise KeyError(f"element handle {old} is not tracked")
        element.handle = handle
        self.live[handle] = element.slot
        return old

    def drop_purgatory(self, handle: int) -> VisualElement | None:
        slot = self.purgatory.pop(handle, None)
        return None if slot is None else self._slots[slot]

    def free(self, element: VisualElement) -> None:
        if element.slot < 0 or self._slots[element.slot] is not element:
            return
        self._slots[element.slot] = None
        self._free.append(element.slot)
        element.slot = -1

    def live_elements(self) -> Iterator[VisualElement]:
        for slot in self.live.values():
            element = self._slots[slot]
            if element is not None:
                yield element

    def purgatory_elements(self) -> Iterator[VisualElement]:
        for slot in self.purgatory.values():
            element = self._slots[slot]
            if element is not None:
                yield element

    def clear(self) -> list[VisualElement]:
        dropped = [e for e in self._slots if e is not None]
        self._slots.clear()
        self._free.clear()
        self.live.clear()
        self.purgatory.clear()
        return dropped
