from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Sequence

from livechart.elements import ElementArena, FillKey, VisualElement
from livechart.errors import ChartInvariantError
from livechart.fills import FillRegistry
from livechart.identity import IdentityArena
from livechart.scheduler import Clock, monotonic_ms
from livechart.series import Entry


LOGGER = logging.getLogger(__name__)

Geometry = Callable[[Entry], tuple[Any, FillKey | None]]


@dataclass
class Layout:
    add: list[VisualElement] = field(default_factory=list)
    update: list[VisualElement] = field(default_factory=list)
    remove: list[VisualElement] = field(default_factory=list)
    recycled: int = 0
    revived: int = 0


@dataclass
class _Pending:
    handle: int
    entry: Entry
    attrs: Any
    fill_key: FillKey | None


class Reconciler:
    """Diffs one frame of entries against the elements of the previous frame.

    Elements are keyed by identity handle. A key that vanishes moves its
    element to purgatory; a key that comes back before the element is
    destroyed revives it. When the frame was resampled, new keys take over
    unclaimed live elements first and purged elements second so element
    count stays bounded by the resampled size.
    """

    def __init__(
        self,
        *,
        identities: IdentityArena,
        arena: ElementArena | None = None,
        fills: FillRegistry | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.identities = identities
        self.arena = arena or ElementArena()
        self.fills = fills
        self.clock = clock or monotonic_ms

    def reconcile(
        self,
        entries: Sequence[Entry],
        geometry: Geometry,
        *,
        items: Sequence[Any] | None = None,
        stable_items: bool = True,
        resampled: bool = False,
        disable_animation: bool = False,
        now: float | None = None,
    ) -> Layout:
        if items is not None:
            self.validate(entries, items, stable_items=stable_items)
        stamp = self.clock() if now is None else now
        arena = self.arena
        unclaimed: dict[int, VisualElement] = {h: arena.slot(s) for h, s in arena.live.items()}
        layout = Layout()
        seen: set[int] = set()
        adding: list[_Pending] = []

        for entry in entries:
            handle = self.identities.observe(entry.ref, entry.index, stable=stable_items)
            if handle in seen:
                handle = self.identities.observe_duplicate(entry.ref, entry.index, stable=stable_items)
            seen.add(handle)
            attrs, fill_key = geometry(entry)
            if fill_key is not None and self.fills is not None:
                self.fills.acquire(fill_key)

            element = arena.get_live(handle)
            if element is not None:
                unclaimed.pop(handle, None)
            else:
                element = arena.revive(handle)
                if element is not None:
                    layout.revived += 1
            if element is None:
                adding.append(_Pending(handle, entry, attrs, fill_key))
                continue
            self._assign(element, entry, attrs, fill_key, layout)

        for pending in adding:
            element = self._recycle(pending.handle, unclaimed, seen) if resampled else None
            if element is not None:
                layout.recycled += 1
                self._assign(element, pending.entry, pending.attrs, pending.fill_key, layout)
                continue
            element = arena.allocate(pending.handle)
            element.sig = pending.attrs
            element.attrs = pending.attrs
            element.fill_key = pending.fill_key
            element.entry = pending.entry
            layout.add.append(element)
            layout.update.append(element)

        for handle, element in unclaimed.items():
            arena.to_purgatory(handle, stamp)
            layout.remove.append(element)

        if disable_animation:
            # Cut short exit animations still running from earlier frames.
            removing = {id(e) for e in layout.remove}
            layout.remove.extend(e for e in arena.purgatory_elements() if id(e) not in removing)

        if layout.recycled:
            LOGGER.debug("recycled %d elements", layout.recycled)
        return layout

    def validate(
        self,
        entries: Sequence[Entry],
        items: Sequence[Any],
        *,
        stable_items: bool = True,
    ) -> None:
        size = len(items)
        for entry in entries:
            if not 0 <= entry.index < size:
                raise ChartInvariantError(f"entry index {entry.index} outside series of length {size}")
            tracked = self.identities.tracks_reference(entry.ref, stable=stable_items)
            if tracked and items[entry.index] is not entry.ref:
                raise ChartInvariantError(f"entry {entry.index} does not reference its series item")

    def reset(self) -> list[VisualElement]:
        dropped = self.arena.clear()
        self.identities.clear()
        return dropped

    def _assign(
        self,
        element: VisualElement,
        entry: Entry,
        attrs: Any,
        fill_key: FillKey | None,
        layout: Layout,
    ) -> None:
        element.entry = entry
        if element.sig == attrs:
            return
        element.sig = attrs
        element.attrs = attrs
        element.fill_key = fill_key
        if element.node is not None:
            layout.update.append(element)

    def _recycle(
        self,
        handle: int,
        unclaimed: dict[int, VisualElement],
        seen: set[int],
    ) -> VisualElement | None:
        if unclaimed:
            old_handle = next(iter(unclaimed))
            element = unclaimed.pop(old_handle)
        else:
            element = None
            for candidate in self.arena.purgatory_elements():
                if candidate.handle not in seen:
                    element = candidate
                    break
            if element is None:
                return None
            element.sig = None
        old = self.arena.rekey(element, handle)
        self.identities.release(old)
        return element
