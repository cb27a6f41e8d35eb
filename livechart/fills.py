from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Iterable

from livechart.elements import FillKey


LOGGER = logging.getLogger(__name__)


@dataclass
class FillResource:
    key: FillKey
    resource: Any


class FillRegistry:
    """Lazily created paint resources shared by every element with the same key."""

    def __init__(
        self,
        create: Callable[[FillKey], Any],
        destroy: Callable[[Any], None],
    ) -> None:
        self._create = create
        self._destroy = destroy
        self._fills: dict[FillKey, FillResource] = {}

    def __len__(self) -> int:
        return len(self._fills)

    def __contains__(self, key: FillKey) -> bool:
        return key in self._fills

    def keys(self) -> list[FillKey]:
        return list(self._fills)

    def get(self, key: FillKey) -> FillResource | None:
        return self._fills.get(key)

    def acquire(self, key: FillKey) -> FillResource:
        fill = self._fills.get(key)
        if fill is None:
            fill = FillResource(key=key, resource=self._create(key))
            self._fills[key] = fill
        return fill

    def discard(self, key: FillKey) -> None:
        """Destroy one fill. Errors from the destroyer propagate after removal."""
        fill = self._fills.pop(key, None)
        if fill is not None:
            self._destroy(fill.resource)

    def discard_unreferenced(self, referenced: Iterable[FillKey | None]) -> int:
        keep = set(referenced)
        dropped = 0
        for key in [k for k in self._fills if k not in keep]:
            try:
                self.discard(key)
            except Exception:
                LOGGER.exception("failed to destroy fill %r", key)
            dropped += 1
        return dropped

    def clear(self) -> None:
        self.discard_unreferenced(())
