from __future__ import annotations

from decimal import Decimal
import logging
import numbers
from typing import Any, Callable, Hashable

import numpy as np


LOGGER = logging.getLogger(__name__)

KeyFunc = Callable[[Any], Hashable]
Token = tuple[Hashable, ...]


def is_scalar_item(item: Any) -> bool:
    return item is None or isinstance(item, (numbers.Number, Decimal, str, bytes, np.generic))


class IdentityArena:
    """Issues stable integer handles for raw series items.

    Items resolve to a token in one of three ways: a caller supplied ``key``
    function, the object identity of the item, or the item position. Position
    is only used for scalars read out of a container that is copied every
    frame (numpy, pandas, torch), since those values are new objects on each
    read. Scalars held in the caller's own sequence keep their object
    identity; repeats of an interned value within one frame go through
    ``observe_duplicate``. While a handle is alive the arena pins
    reference-keyed items so their ``id()`` cannot be reused.
    """

    def __init__(self, key: KeyFunc | None = None) -> None:
        self._key = key
        self._handles: dict[Token, int] = {}
        self._tokens: dict[int, Token] = {}
        self._pins: dict[int, Any] = {}
        self._next_handle = 1
        self.positional_fallbacks = 0

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, handle: int) -> bool:
        return handle in self._tokens

    @property
    def keyed(self) -> bool:
        return self._key is not None

    def tracks_reference(self, item: Any, *, stable: bool = True) -> bool:
        return self._key is None and (stable or not is_scalar_item(item))

    def token_for(self, item: Any, index: int, *, stable: bool = True) -> Token:
        if self._key is not None:
            return ("key", self._key(item))
        if not stable and is_scalar_item(item):
            if self.positional_fallbacks == 0:
                LOGGER.debug("scalars from a copied series have no identity; falling back to positions")
            self.positional_fallbacks += 1
            return ("pos", index)
        return ("ref", id(item))

    def observe(self, item: Any, index: int, *, stable: bool = True) -> int:
        return self._issue(self.token_for(item, index, stable=stable), item)

    def observe_duplicate(self, item: Any, index: int, *, stable: bool = True) -> int:
        # Same token twice within one frame (interned scalars, shared tuples, repeated keys).
        token = ("dup", self.token_for(item, index, stable=stable), index)
        return self._issue(token, item)

    def peek(self, item: Any, index: int, *, stable: bool = True) -> int | None:
        return self._handles.get(self.token_for(item, index, stable=stable))

    def release(self, handle: int) -> None:
        token = self._tokens.pop(handle, None)
        if token is None:
            return
        if self._handles.get(token) == handle:
            del self._handles[token]
        self._pins.pop(handle, None)

    def clear(self) -> None:
        self._handles.clear()
        self._tokens.clear()
        self._pins.clear()

    def _issue(self, token: Token, item: Any) -> int:
        handle = self._handles.get(token)
        if handle is not None:
            return handle
        handle = self._next_handle
        self._next_handle += 1
        self._handles[token] = handle
        self._tokens[handle] = token
        if token[0] == "ref" or (token[0] == "dup" and token[1][0] == "ref"):
            self._pins[handle] = item
        return handle
