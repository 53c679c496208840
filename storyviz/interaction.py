import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from . import config
from .scene import Scene, Shape
from .transitions import Animator

log = logging.getLogger(__name__)

Placement = Callable[[Shape, float, float, float, float], Tuple[float, float]]


@dataclass
class Tooltip:
    visible: bool = False
    lines: List[str] = field(default_factory=list)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> dict:
        return {
            "visible": self.visible,
            "lines": list(self.lines),
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    def shape(self, shape_id: str = "tooltip") -> Shape:
        """SVG group for the tooltip box and its text lines."""
        line_height = config.TOOLTIP_FONT_SIZE * 1.2
        text = Shape(
            id=f"{shape_id}-text",
            tag="text",
            attrs={"fill": "white", "font-size": f"{config.TOOLTIP_FONT_SIZE}px"},
            children=[
                Shape(
                    id=f"{shape_id}-line-{i}",
                    tag="tspan",
                    attrs={
                        "x": config.TOOLTIP_PADDING,
                        "y": config.TOOLTIP_PADDING + line_height * (i + 1) - 3,
                        "font-weight": "bold" if i == 0 else None,
                    },
                    text=line,
                )
                for i, line in enumerate(self.lines)
            ],
        )
        rect = Shape(
            id=f"{shape_id}-box",
            tag="rect",
            attrs={
                "width": self.width,
                "height": self.height,
                "rx": 4,
                "ry": 4,
                "fill": "rgba(0,0,0,0.85)",
            },
        )
        return Shape(
            id=shape_id,
            tag="g",
            attrs={
                "transform": f"translate({self.x:.1f},{self.y:.1f})",
                "opacity": 1 if self.visible else 0,
                "pointer-events": "none",
            },
            children=[rect, text],
        )


def measure_text(lines: List[str], font_size: float = config.TOOLTIP_FONT_SIZE) -> Tuple[float, float]:
    """Approximate box size for the lines, padding included."""
    pad = config.TOOLTIP_PADDING
    width = max((len(line) for line in lines), default=0) * font_size * 0.6
    height = len(lines) * font_size * 1.2
    return width + pad * 2, height + pad * 2


def _clamp(value: float, low: float, high: float) -> float:
    if high < low:
        return low
    return min(max(value, low), high)


def quadrant_placement(
    anchor_x: float,
    anchor_y: float,
    box_w: float,
    box_h: float,
    width: float,
    height: float,
) -> Tuple[float, float]:
    """Put the box on the side of the anchor facing the canvas centre."""
    offset_x = -box_w - 15 if anchor_x > width / 2 else 15
    offset_y = -box_h - 10 if anchor_y > height / 2 else 10
    return (
        _clamp(anchor_x + offset_x, 0, width - box_w),
        _clamp(anchor_y + offset_y, 0, height - box_h),
    )


def cursor_placement(
    cursor_x: float,
    cursor_y: float,
    box_w: float,
    box_h: float,
    width: float,
    height: float,
    offset: Tuple[float, float] = config.CURSOR_OFFSET,
) -> Tuple[float, float]:
    """Follow the cursor, flipping left when the box would overflow the right edge."""
    dx, dy = offset
    x = cursor_x + dx
    if x + box_w > width:
        x = cursor_x - dx - box_w
    y = cursor_y + dy
    return _clamp(x, 0, width - box_w), _clamp(y, 0, height - box_h)


class HoverController:
    """Pointer hover over interactive shapes.

    Emphasis and tooltip are presentation only; the datum behind a shape is
    read, never written.
    """

    def __init__(
        self,
        scene: Scene,
        animator: Animator,
        emphasis: Callable[[Shape], Dict[str, Any]],
        baseline: Callable[[Shape], Dict[str, Any]],
        describe: Callable[[Shape], List[str]],
        place: Placement,
        duration_ms: float = config.HOVER_MS,
    ):
        self.scene = scene
        self.animator = animator
        self.emphasis = emphasis
        self.baseline = baseline
        self.describe = describe
        self.place = place
        self.duration_ms = duration_ms
        self.hovered: Optional[Shape] = None
        self.tooltip = Tooltip()

    def _animate(self, shape: Shape, attrs: Dict[str, Any]) -> None:
        for attr, value in attrs.items():
            self.animator.start(shape, attr, value, self.duration_ms)

    def _position(self, x: float, y: float) -> None:
        self.tooltip.x, self.tooltip.y = self.place(
            self.hovered, x, y, self.tooltip.width, self.tooltip.height
        )

    def enter(self, shape_id: str, x: float, y: float) -> bool:
        shape = self.scene.find(shape_id)
        if shape is None or not shape.interactive:
            log.debug("pointer enter on unknown shape %s", shape_id)
            return False
        if self.hovered is not None and self.hovered is not shape:
            self.leave()
        self.hovered = shape
        self._animate(shape, self.emphasis(shape))
        lines = self.describe(shape)
        w, h = measure_text(lines)
        self.tooltip = Tooltip(visible=True, lines=lines, width=w, height=h)
        self._position(x, y)
        return True

    def move(self, x: float, y: float) -> bool:
        if self.hovered is None:
            return False
        self._position(x, y)
        return True

    def leave(self) -> bool:
        if self.hovered is None:
            return False
        self._animate(self.hovered, self.baseline(self.hovered))
        self.hovered = None
        self.tooltip = Tooltip()
        return True

    def reset(self) -> None:
        """Drop hover state without animating, e.g. after the hovered shape was redrawn away."""
        self.hovered = None
        self.tooltip = Tooltip()

    def sync(self) -> None:
        if self.hovered is not None and self.scene.find(self.hovered.id) is not self.hovered:
            self.reset()
