from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import time
from typing import Callable


Clock = Callable[[], float]


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass
class IdleHandle:
    callback: Callable[[], None]
    ready_at: float
    deadline: float
    seq: int = 0
    cancelled: bool = False
    done: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.done)


@dataclass
class IdleScheduler:
    """Single-threaded "run when idle, but no later than a deadline" task queue.

    Tasks become runnable ``delay`` ms after scheduling. The host runs them from
    ``run_idle()`` whenever it has spare time in a frame, and calls
    ``run_due()`` every frame so a task never waits past ``delay + max_delay``.
    Tasks scheduled while a pass is running wait for the next pass.
    """

    clock: Clock = monotonic_ms
    _tasks: list[IdleHandle] = field(default_factory=list)
    _seq: itertools.count = field(default_factory=itertools.count)

    def call_when_idle(
        self,
        callback: Callable[[], None],
        *,
        delay: float = 0.0,
        max_delay: float = 1000.0,
    ) -> IdleHandle:
        if delay < 0:
            raise ValueError("delay must be >= 0")
        if max_delay < 0:
            raise ValueError("max_delay must be >= 0")
        now = self.clock()
        handle = IdleHandle(
            callback=callback,
            ready_at=now + delay,
            deadline=now + delay + max_delay,
            seq=next(self._seq),
        )
        self._tasks.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if t.active)

    def next_ready(self) -> float | None:
        times = [t.ready_at for t in self._tasks if t.active]
        return min(times) if times else None

    def next_deadline(self) -> float | None:
        times = [t.deadline for t in self._tasks if t.active]
        return min(times) if times else None

    def compute_sleep(self, now: float | None = None) -> float | None:
        deadline = self.next_deadline()
        if deadline is None:
            return None
        current = self.clock() if now is None else now
        return max(0.0, deadline - current)

    def run_idle(self, now: float | None = None) -> int:
        current = self.clock() if now is None else now
        return self._run(lambda t: t.ready_at <= current)

    def run_due(self, now: float | None = None) -> int:
        current = self.clock() if now is None else now
        return self._run(lambda t: t.deadline <= current)

    def _run(self, predicate: Callable[[IdleHandle], bool]) -> int:
        self._tasks = [t for t in self._tasks if t.active]
        batch = sorted((t for t in self._tasks if predicate(t)), key=lambda t: (t.ready_at, t.seq))
        if not batch:
            return 0
        ran = set(id(t) for t in batch)
        self._tasks = [t for t in self._tasks if id(t) not in ran]
        count = 0
        for task in batch:
            if task.cancelled:
                continue
            task.done = True
            count += 1
            task.callback()
        return count
