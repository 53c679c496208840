import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .scene import Shape
from .scheduler import Scheduler, TaskHandle

log = logging.getLogger(__name__)

Ease = Callable[[float], float]

_HEX = re.compile(r"^#([0-9a-fA-F]{6})$")


def ease_linear(t: float) -> float:
    return t


def ease_cubic_out(t: float) -> float:
    t -= 1
    return t * t * t + 1


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


def _rgb(value: str) -> Optional[Tuple[int, int, int]]:
    m = _HEX.match(value)
    if not m:
        return None
    raw = m.group(1)
    return int(raw[0:2], 16), int(raw[2:4], 16), int(raw[4:6], 16)


def interpolate(a: Any, b: Any) -> Callable[[float], Any]:
    if isinstance(a, (int, float)) and isinstance(b, (int, float)) and not isinstance(a, bool):
        a, b = float(a), float(b)
        return lambda t: a + (b - a) * t
    if isinstance(a, str) and isinstance(b, str):
        ca, cb = _rgb(a), _rgb(b)
        if ca and cb:
            def color(t: float) -> str:
                mixed = (round(x + (y - x) * t) for x, y in zip(ca, cb))
                return "#" + "".join(f"{c:02x}" for c in mixed)
            return color
    return lambda t: b if t >= 1 else a


@dataclass
class Transition:
    shape: Shape
    attr: str
    interpolator: Callable[[float], Any]
    end: Any
    started_at: float
    duration: float
    ease: Ease
    on_end: Optional[Callable[[], Any]]
    timer: Optional[TaskHandle] = None

    def value(self, now: float) -> Any:
        if self.duration <= 0:
            return self.end
        t = min(1.0, max(0.0, (now - self.started_at) / self.duration))
        return self.interpolator(self.ease(t))


class Animator:
    """Attribute tweening over scene shapes, driven by a Scheduler.

    One transition per (shape, attribute): starting another interrupts the
    running one and continues from wherever it had got to.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._active: Dict[Tuple[int, str], Transition] = {}

    def __len__(self) -> int:
        return len(self._active)

    def current(self, shape: Shape, attr: str) -> Any:
        running = self._active.get((id(shape), attr))
        if running is not None:
            return running.value(self.scheduler.now())
        return shape.attrs.get(attr)

    def start(
        self,
        shape: Shape,
        attr: str,
        end: Any,
        duration: float,
        ease: Ease = ease_cubic_in_out,
        on_end: Optional[Callable[[], Any]] = None,
    ) -> Transition:
        key = (id(shape), attr)
        begin = self.current(shape, attr)
        previous = self._active.pop(key, None)
        if previous is not None and previous.timer is not None:
            previous.timer.cancel()
        if begin is None:
            begin = end
        transition = Transition(
            shape=shape,
            attr=attr,
            interpolator=interpolate(begin, end),
            end=end,
            started_at=self.scheduler.now(),
            duration=duration,
            ease=ease,
            on_end=on_end,
        )
        self._active[key] = transition
        transition.timer = self.scheduler.call_later(duration, lambda: self._finish(key, transition))
        return transition

    def _finish(self, key, transition: Transition) -> None:
        if self._active.get(key) is not transition:
            return
        del self._active[key]
        transition.shape.attrs[transition.attr] = transition.end
        if transition.on_end is not None:
            transition.on_end()

    def step(self) -> None:
        now = self.scheduler.now()
        for transition in self._active.values():
            transition.shape.attrs[transition.attr] = transition.value(now)

    def forget(self, shapes: List[Shape]) -> None:
        gone = {id(s) for shape in shapes for s in shape.walk()}
        for key in [k for k in self._active if k[0] in gone]:
            transition = self._active.pop(key)
            if transition.timer is not None:
                transition.timer.cancel()

    def cancel_all(self) -> None:
        for transition in self._active.values():
            if transition.timer is not None:
                transition.timer.cancel()
        self._active.clear()
