import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

from . import config
from .models import ViewState
from .scene import Shape
from .scheduler import Scheduler, TaskHandle
from .transitions import Animator, ease_cubic_out

log = logging.getLogger(__name__)


class DrawInAnimation:
    """Reveal a line by sliding its dash offset to zero, then fade its markers in."""

    def __init__(
        self,
        animator: Animator,
        duration_ms: float = config.DRAW_IN_MS,
        fade_ms: float = config.FADE_IN_MS,
    ):
        self.animator = animator
        self.duration_ms = duration_ms
        self.fade_ms = fade_ms
        self.completed = False

    def supersede(self) -> None:
        """The animated shapes were redrawn at full visibility; count the reveal as done."""
        self.completed = True

    def start(self, line: Shape, markers: Sequence[Shape], length: float) -> None:
        self.completed = False
        line.attrs["stroke-dasharray"] = f"{length:.3f} {length:.3f}"
        line.attrs["stroke-dashoffset"] = length
        for marker in markers:
            marker.attrs["opacity"] = 0.0

        def reveal_markers():
            for marker in markers:
                self.animator.start(marker, "opacity", 1.0, self.fade_ms)
            self.completed = True

        self.animator.start(
            line,
            "stroke-dashoffset",
            0.0,
            self.duration_ms,
            ease=ease_cubic_out,
            on_end=reveal_markers,
        )


class PlaybackController:
    """Owns year advancement while playing.

    The repeating timer is acquired by ``play`` and released by ``pause`` or
    ``close``; at most one is alive at a time.
    """

    def __init__(
        self,
        state: ViewState,
        scheduler: Scheduler,
        interval_ms: float = config.PLAYBACK_INTERVAL_MS,
        on_change: Optional[Callable[[ViewState], None]] = None,
    ):
        self.state = state
        self.scheduler = scheduler
        self.interval_ms = interval_ms
        self.on_change = on_change
        self._handle: Optional[TaskHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.active

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.state)

    def _tick(self, runs: int = 1) -> None:
        year = self.state.advance(runs)
        log.debug("playback advanced %d step(s) to %d", runs, year)
        self._notify()

    def play(self) -> None:
        if self._handle is not None:
            return
        self.state.set_playing(True)
        self._handle = self.scheduler.call_every(self.interval_ms, self._tick, coalesce=True)

    def pause(self) -> None:
        self.state.set_playing(False)
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def toggle(self) -> bool:
        if self.state.is_playing:
            self.pause()
        else:
            self.play()
        return self.state.is_playing

    def select_year(self, year: int) -> None:
        self.state.select_year(year)
        self._notify()

    def close(self) -> None:
        self.pause()

    @contextmanager
    def playing(self) -> Iterator["PlaybackController"]:
        self.play()
        try:
            yield self
        finally:
            self.pause()
