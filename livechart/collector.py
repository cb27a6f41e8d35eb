from __future__ import annotations

from collections import deque
from dataclasses import dataclass
import logging
import math
from typing import Callable

from livechart.elements import ElementArena, VisualElement
from livechart.fills import FillRegistry
from livechart.identity import IdentityArena
from livechart.scheduler import Clock, IdleHandle, IdleScheduler


LOGGER = logging.getLogger(__name__)

# Slack on top of the exit transition before a purged element is destroyed.
EXPIRATION_MARGIN_MS = 100.0

TransitionTiming = Callable[[], float | None]


def resolve_transition_duration(timing: TransitionTiming | None) -> float:
    if timing is None:
        return 0.0
    try:
        value = timing()
    except Exception:
        LOGGER.debug("transition duration unavailable", exc_info=True)
        return 0.0
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


@dataclass(frozen=True)
class CollectStats:
    destroyed: int
    fills_destroyed: int
    remaining: int
    failures: int = 0


class _Collector:
    def __init__(
        self,
        *,
        arena: ElementArena,
        identities: IdentityArena,
        destroy_element: Callable[[VisualElement], None],
        scheduler: IdleScheduler,
        fills: FillRegistry | None = None,
        timing: TransitionTiming | None = None,
        clock: Clock | None = None,
        delay: float = 1100.0,
        max_delay: float = 1000.0,
    ) -> None:
        self.arena = arena
        self.identities = identities
        self.fills = fills
        self.timing = timing
        self.scheduler = scheduler
        self.clock = clock or scheduler.clock
        self.delay = delay
        self.max_delay = max_delay
        self.instant = False
        self.shared_pass: CollectionPass | None = None
        self._destroy_element = destroy_element
        self._pending: IdleHandle | None = None

    @property
    def pending(self) -> bool:
        if self.shared_pass is not None:
            return self.shared_pass.pending
        return self._pending is not None and self._pending.active

    def schedule(self, delay: float | None = None) -> bool:
        """Arm one collection pass; a no-op while another pass is pending."""
        if self.shared_pass is not None:
            return self.shared_pass.schedule(delay)
        if self.pending:
            return False
        self._pending = self.scheduler.call_when_idle(
            self._run,
            delay=self.delay if delay is None else max(0.0, delay),
            max_delay=self.max_delay,
        )
        return True

    def cancel(self) -> None:
        if self.shared_pass is not None:
            self.shared_pass.cancel()
            return
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def transition_duration(self) -> float:
        if self.instant:
            return 0.0
        return resolve_transition_duration(self.timing)

    def collect(self, now: float | None = None, *, immediate: bool = False) -> CollectStats:
        raise NotImplementedError

    def _run(self) -> None:
        self._pending = None
        self.collect(self.clock())

    def _destroy(self, element: VisualElement) -> bool:
        ok = True
        try:
            self._destroy_element(element)
        except Exception:
            ok = False
            LOGGER.exception("failed to destroy element handle=%s", element.handle)
        finally:
            self.arena.free(element)
            self.identities.release(element.handle)
        return ok

    def _collect_fills(self) -> int:
        if self.fills is None:
            return 0
        referenced = {e.fill_key for e in self.arena.live_elements()}
        referenced.update(e.fill_key for e in self.arena.purgatory_elements())
        return self.fills.discard_unreferenced(referenced)


class SweepCollector(_Collector):
    """Scans the whole purgatory on every pass."""

    def collect(self, now: float | None = None, *, immediate: bool = False) -> CollectStats:
        current = self.clock() if now is None else now
        if immediate:
            expiration = current
        else:
            expiration = current - self.transition_duration() - EXPIRATION_MARGIN_MS
        destroyed = failures = 0
        more = False
        for element in list(self.arena.purgatory_elements()):
            if element.last_used is not None and element.last_used > expiration:
                more = True
                continue
            self.arena.drop_purgatory(element.handle)
            if not self._destroy(element):
                failures += 1
            destroyed += 1
        fills_destroyed = self._collect_fills()
        if more:
            self.schedule()
        return CollectStats(
            destroyed=destroyed,
            fills_destroyed=fills_destroyed,
            remaining=len(self.arena.purgatory),
            failures=failures,
        )


class QueuedCollector(_Collector):
    """Processes purged elements in stamp order and stops at the first live one.

    Rows whose element was revived, recycled or re-purged since they were
    queued are skipped. The pass re-arms for exactly the remaining delay of the
    first unexpired row.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._queue: deque[tuple[float, int, VisualElement]] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, element: VisualElement) -> None:
        if element.last_used is None:
            raise ValueError("only purged elements can be queued")
        self._queue.append((element.last_used, element.handle, element))

    def clear(self) -> None:
        self._queue.clear()

    def collect(self, now: float | None = None, *, immediate: bool = False) -> CollectStats:
        current = self.clock() if now is None else now
        duration = 0.0 if immediate else self.transition_duration() + EXPIRATION_MARGIN_MS
        destroyed = failures = 0
        while self._queue:
            stamp, handle, element = self._queue[0]
            if element.last_used != stamp or self.arena.get_purgatory(handle) is not element:
                self._queue.popleft()
                continue
            expires_at = stamp + duration
            if current < expires_at:
                self.schedule(delay=expires_at - current)
                break
            self._queue.popleft()
            self.arena.drop_purgatory(handle)
            if not self._destroy(element):
                failures += 1
            destroyed += 1
        fills_destroyed = self._collect_fills()
        return CollectStats(
            destroyed=destroyed,
            fills_destroyed=fills_destroyed,
            remaining=len(self.arena.purgatory),
            failures=failures,
        )


class CollectionPass:
    """One single-flight idle pass that drains several collectors.

    A chart owning more than one collector attaches them all here so it never
    has more than one pass waiting on the scheduler. A request for an earlier
    wake-up replaces the pending pass; later requests are absorbed by it.
    """

    def __init__(self, scheduler: IdleScheduler, *, delay: float = 1100.0, max_delay: float = 1000.0) -> None:
        self.scheduler = scheduler
        self.delay = delay
        self.max_delay = max_delay
        self.collectors: list[_Collector] = []
        self._pending: IdleHandle | None = None

    def add(self, collector: _Collector) -> _Collector:
        collector.cancel()
        collector.shared_pass = self
        self.collectors.append(collector)
        return collector

    @property
    def pending(self) -> bool:
        return self._pending is not None and self._pending.active

    def schedule(self, delay: float | None = None) -> bool:
        wait = self.delay if delay is None else max(0.0, delay)
        if self.pending:
            if self.scheduler.clock() + wait >= self._pending.ready_at:
                return False
            self._pending.cancel()
        self._pending = self.scheduler.call_when_idle(self._run, delay=wait, max_delay=self.max_delay)
        return True

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _run(self) -> None:
        self._pending = None
        now = self.scheduler.clock()
        for collector in self.collectors:
            collector.collect(now)
