"""
Cooperative timers for a single execution context.

Nothing here runs on its own thread. Callers pump the scheduler with
``advance()``; every timer due by then fires in due-time order, and while a
callback runs ``now()`` reports that callback's due time, so work it
schedules is anchored to the moment it was meant to happen rather than to
when the pump arrived.
"""

import heapq
import itertools
import logging
import time
from typing import Any, Callable, Hashable, List, Optional

from .scene import Scene, Shape

log = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class ManualClock:
    def __init__(self, start: float = 0.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


class TaskHandle:
    def __init__(
        self,
        scheduler: "Scheduler",
        due: float,
        callback: Callable[..., Any],
        interval: Optional[float],
        coalesce: bool = False,
    ):
        self._scheduler = scheduler
        self.due = due
        self.callback = callback
        self.interval = interval
        self.coalesce = coalesce
        self.cancelled = False

    @property
    def active(self) -> bool:
        return not self.cancelled and self in self._scheduler._live

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._scheduler._live.discard(self)


class Scheduler:
    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or monotonic_ms
        self._now = self._clock()
        self._queue: List[tuple] = []
        self._seq = itertools.count()
        self._live = set()

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        return len(self._live)

    def _push(self, handle: TaskHandle) -> TaskHandle:
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))
        self._live.add(handle)
        return handle

    def call_later(self, delay: float, callback: Callable[[], Any]) -> TaskHandle:
        return self._push(TaskHandle(self, self._now + max(0.0, delay), callback, None))

    def call_every(self, interval: float, callback: Callable[..., Any], coalesce: bool = False) -> TaskHandle:
        """Repeat every ``interval`` ms.

        With ``coalesce`` the runs missed since the last pump are folded into a
        single call that receives their count.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._push(TaskHandle(self, self._now + interval, callback, interval, coalesce))

    def advance(self, until: Optional[float] = None) -> int:
        """Fire every timer due at or before ``until`` (default: the clock). Returns the count fired."""
        target = self._clock() if until is None else until
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._live.discard(handle)
            runs = 1
            if handle.interval is not None and handle.coalesce:
                runs += int((target - due) // handle.interval)
                due += (runs - 1) * handle.interval
            self._now = max(self._now, due)
            if handle.interval is not None:
                handle.due = due + handle.interval
                self._push(handle)
            if handle.coalesce:
                handle.callback(runs)
            else:
                handle.callback()
            fired += 1
        self._now = max(self._now, target)
        return fired

    def cancel_all(self) -> None:
        for handle in list(self._live):
            handle.cancel()
        self._queue.clear()


class RenderScheduler:
    """Runs a pure ``render(state) -> shapes`` and owns swapping its output into a layer."""

    def __init__(self, scene: Scene, layer: str, render: Callable[[Any], List[Shape]]):
        self.scene = scene
        self.layer = layer
        self.render = render
        self._key: Any = None
        self._has_key = False
        self.renders = 0

    def request(self, state: Any, key: Hashable = None, force: bool = False) -> bool:
        if not force and self._has_key and key == self._key:
            return False
        shapes = self.render(state)
        self.scene.replace(self.layer, shapes)
        self._key = key
        self._has_key = True
        self.renders += 1
        log.debug("rendered %d shapes into %s", len(shapes), self.layer)
        return True

    def invalidate(self) -> None:
        self._has_key = False
