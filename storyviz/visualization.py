import logging
from typing import Callable, Optional

from .interaction import HoverController
from .models import LoadResult, LoadStatus
from .scene import Scene
from .scheduler import Scheduler
from .transitions import Animator

log = logging.getLogger(__name__)

POINTER_EVENTS = {"enter", "move", "leave"}
TOOLTIP_LAYER = "tooltip"


class Visualization:
    """Lifecycle shared by both charts: mount, load, pump, interact, unmount."""

    kind = "base"

    def __init__(self, width: int, height: int, clock: Optional[Callable[[], float]] = None):
        self.width = width
        self.height = height
        self._clock = clock
        self.status: LoadStatus = "loading"
        self.error: Optional[str] = None
        self.mounted = False
        self.scene = Scene(width, height)
        self.scheduler = Scheduler(clock)
        self.animator = Animator(self.scheduler)
        self.hover: Optional[HoverController] = None

    def mount(self) -> "Visualization":
        if self.mounted:
            return self
        self.scene = Scene(self.width, self.height)
        self.scheduler = Scheduler(self._clock)
        self.animator = Animator(self.scheduler)
        self.status = "loading"
        self.error = None
        self.mounted = True
        return self

    def unmount(self) -> None:
        if not self.mounted:
            return
        self.teardown()
        self.animator.cancel_all()
        self.scheduler.cancel_all()
        self.scene.clear()
        self.hover = None
        self.mounted = False
        log.debug("%s unmounted", self.kind)

    def teardown(self) -> None:
        """Subclass hook for releasing owned resources before timers are cancelled."""

    def load(self, result: LoadResult) -> None:
        if not self.mounted:
            log.debug("%s ignoring load after unmount", self.kind)
            return
        if not result.ok:
            self.status = "error"
            self.error = result.error
            log.warning("%s failed to load: %s", self.kind, result.error)
            return
        self.on_loaded(result)
        self.status = "ready"

    def on_loaded(self, result: LoadResult) -> None:
        raise NotImplementedError

    def pump(self) -> None:
        if not self.mounted:
            return
        self.scheduler.advance()
        self.animator.step()
        if self.hover is not None:
            self.hover.sync()
            self._sync_tooltip()

    def _sync_tooltip(self) -> None:
        if self.hover is None or not self.scene.has_layer(TOOLTIP_LAYER):
            return
        tooltip = self.hover.tooltip
        self.scene.replace(TOOLTIP_LAYER, [tooltip.shape()] if tooltip.visible else [])

    def pointer(self, event: str, shape_id: Optional[str] = None, x: float = 0.0, y: float = 0.0) -> bool:
        if event not in POINTER_EVENTS:
            raise ValueError(f"unknown pointer event {event!r}")
        if self.hover is None:
            return False
        self.pump()
        if event == "enter":
            handled = self.hover.enter(shape_id or "", x, y)
        elif event == "move":
            handled = self.hover.move(x, y)
        else:
            handled = self.hover.leave()
        self.animator.step()
        self._sync_tooltip()
        return handled

    def view(self) -> dict:
        return {}

    def frame(self) -> dict:
        self.pump()
        return {
            "kind": self.kind,
            "status": self.status,
            "view": self.view(),
            "tooltip": self.hover.tooltip.to_dict() if self.hover else None,
            "scene": self.scene.to_dict(),
        }

    def svg(self) -> str:
        self.pump()
        return self.scene.to_svg()
