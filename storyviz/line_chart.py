import logging
from typing import Callable, List, Optional, Sequence, Tuple

from . import config
from .animation import DrawInAnimation
from .interaction import HoverController, quadrant_placement
from .models import LoadResult, TimeSeriesPoint
from .paths import monotone_x
from .scales import LineChartScales, line_chart_scales
from .scene import Shape
from .scheduler import RenderScheduler
from .visualization import TOOLTIP_LAYER, Visualization

log = logging.getLogger(__name__)

AXES_LAYER = "axes"
SERIES_LAYER = "series"
LINE_ID = "line"

POINT_BASELINE = {"r": 4.0, "stroke-width": 2.0, "stroke": config.LINE_COLOR}
POINT_EMPHASIS = {"r": 7.0, "stroke-width": 3.0, "stroke": config.ARC_HOVER_COLOR}


def format_year(value: float) -> str:
    return str(int(round(value)))


def format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def build_axes(
    scales: LineChartScales,
    width: int = config.LINE_WIDTH,
    height: int = config.LINE_HEIGHT,
    margin=None,
) -> List[Shape]:
    margin = margin or config.LINE_MARGIN
    x, y = scales.x, scales.y
    baseline = height - margin["bottom"]
    axis_style = {"font-size": "12px", "fill": "#666"}

    x_ticks = [t for t in x.ticks() if float(t).is_integer()]
    x_axis = Shape(
        id="x-axis",
        tag="g",
        attrs={"transform": f"translate(0,{baseline})"},
        children=[
            Shape(
                id="x-domain",
                tag="path",
                attrs={"d": f"M{x.range[0]},6V0H{x.range[1]}V6", "stroke": "#666", "fill": "none"},
            )
        ],
    )
    for tick in x_ticks:
        px = x(tick)
        x_axis.children.append(Shape(
            id=f"x-tick-{format_year(tick)}",
            tag="g",
            attrs={"transform": f"translate({px:.2f},0)"},
            children=[
                Shape(id=f"x-tick-{format_year(tick)}-line", tag="line", attrs={"y2": 6, "stroke": "#666"}),
                Shape(
                    id=f"x-tick-{format_year(tick)}-label",
                    tag="text",
                    attrs={"y": 9, "dy": "0.71em", "text-anchor": "middle", **axis_style},
                    text=format_year(tick),
                ),
            ],
        ))

    y_axis = Shape(id="y-axis", tag="g", attrs={"transform": f"translate({margin['left']},0)"})
    for tick in y.ticks(config.Y_TICKS):
        py = y(tick)
        children = [
            Shape(
                id=f"y-tick-{format_number(tick)}-label",
                tag="text",
                attrs={"x": -9, "dy": "0.32em", "text-anchor": "end", **axis_style},
                text=format_number(tick),
            )
        ]
        if tick != 0:
            children.append(Shape(
                id=f"y-tick-{format_number(tick)}-grid",
                tag="line",
                attrs={
                    "x1": 0,
                    "x2": width - margin["left"] - margin["right"],
                    "y1": 0,
                    "y2": 0,
                    "stroke": "#e0e0e0",
                    "stroke-dasharray": "4,4",
                },
            ))
        y_axis.children.append(Shape(
            id=f"y-tick-{format_number(tick)}",
            tag="g",
            attrs={"transform": f"translate(0,{py:.2f})"},
            children=children,
        ))

    label_style = {"font-size": "12px", "fill": "#999", "text-anchor": "middle"}
    y_label = Shape(
        id="y-label",
        tag="text",
        attrs={"transform": "rotate(-90)", "x": -height / 2, "y": 0, "dy": "1em", **label_style},
        text=config.LINE_Y_LABEL,
    )
    x_label = Shape(
        id="x-label",
        tag="text",
        attrs={"x": width / 2, "y": height - 5, **label_style},
        text=config.LINE_X_LABEL,
    )
    return [x_axis, y_axis, y_label, x_label]


def render_series(state: Tuple[Sequence[TimeSeriesPoint], LineChartScales]) -> List[Shape]:
    """One connected monotone line through every point, then one marker per point."""
    points, scales = state
    coords = [(scales.x(p.year), scales.y(p.value)) for p in points]
    path = monotone_x(coords)
    line = Shape(
        id=LINE_ID,
        tag="path",
        attrs={
            "d": str(path),
            "fill": "none",
            "stroke": config.LINE_COLOR,
            "stroke-width": 3,
            "stroke-linecap": "round",
            "stroke-linejoin": "round",
        },
        datum={"length": path.length()},
    )
    markers = [
        Shape(
            id=f"point-{p.year}",
            tag="circle",
            attrs={"cx": cx, "cy": cy, "fill": "white", "opacity": 1.0, **POINT_BASELINE},
            datum=p,
            interactive=True,
        )
        for p, (cx, cy) in zip(points, coords)
    ]
    return [line] + markers


def describe_point(shape: Shape) -> List[str]:
    point: TimeSeriesPoint = shape.datum
    return [f"Year: {point.year}", f"GDP: ${point.value:.2f}B"]


class LineChart(Visualization):
    kind = "line"

    def __init__(
        self,
        width: int = config.LINE_WIDTH,
        height: int = config.LINE_HEIGHT,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(width, height, clock)
        self.points: List[TimeSeriesPoint] = []
        self.scales: Optional[LineChartScales] = None
        self.renderer: Optional[RenderScheduler] = None
        self.draw_in: Optional[DrawInAnimation] = None
        self._dataset = 0
        self._animated_dataset = 0

    def on_loaded(self, result: LoadResult) -> None:
        self.points = list(result.values.get("points") or [])
        self._dataset += 1
        self.scales = line_chart_scales(self.points, self.width, self.height)
        scales = self.scales
        # axes follow the dataset; state changes never touch them
        self.scene.ensure_static(AXES_LAYER, lambda: build_axes(scales, self.width, self.height), rebuild=True)
        self.scene.add_layer(SERIES_LAYER)
        self.scene.add_layer(TOOLTIP_LAYER)
        if self.renderer is None or self.renderer.scene is not self.scene:
            self.renderer = RenderScheduler(self.scene, SERIES_LAYER, self._render)
        self.hover = HoverController(
            self.scene,
            self.animator,
            emphasis=lambda s: dict(POINT_EMPHASIS),
            baseline=lambda s: dict(POINT_BASELINE),
            describe=describe_point,
            place=self._place,
        )
        self.draw_in = DrawInAnimation(self.animator)
        self.render()

    def _render(self, state) -> List[Shape]:
        return render_series(state)

    def _place(self, shape: Shape, x: float, y: float, w: float, h: float):
        return quadrant_placement(shape.attrs["cx"], shape.attrs["cy"], w, h, self.width, self.height)

    def render(self, force: bool = False) -> bool:
        if self.renderer is None or self.scales is None:
            return False
        previous = list(self.scene.layers[SERIES_LAYER].shapes)
        changed = self.renderer.request((self.points, self.scales), key=self._dataset, force=force)
        if not changed:
            return False
        self.animator.forget(previous)
        if self.draw_in is not None:
            self.draw_in.supersede()
        if self._animated_dataset != self._dataset and self.points:
            self._animated_dataset = self._dataset
            shapes = self.scene.layers[SERIES_LAYER].shapes
            line, markers = shapes[0], shapes[1:]
            self.draw_in.start(line, markers, line.datum["length"])
        return True

    def teardown(self) -> None:
        self.renderer = None
        self.draw_in = None

    def view(self) -> dict:
        out = {"points": len(self.points)}
        if self.scales is not None:
            out["x_domain"] = list(self.scales.x.domain)
            out["y_domain"] = list(self.scales.y.domain)
            out["raw_y_domain"] = list(self.scales.raw_y_domain)
        if self.draw_in is not None:
            out["drawn_in"] = self.draw_in.completed
        return out
