import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import config
from .animation import PlaybackController
from .interaction import HoverController, cursor_placement
from .models import BoundaryFeature, FlowRecord, LoadResult, ViewState
from .paths import flow_arc
from .scales import MercatorProjection, SqrtScale, flow_width_scale, make_projection
from .scene import Shape
from .scheduler import RenderScheduler
from .visualization import TOOLTIP_LAYER, Visualization

log = logging.getLogger(__name__)

MAP_LAYER = "map"
DEFS_LAYER = "defs"
ARROWS_LAYER = "arrows"
ORIGIN_ID = "origin-marker"
ARROWHEAD_ID = "arrowhead"


def derive_frame(
    records: Sequence[FlowRecord],
    year: int,
    min_value: float = config.FLOW_MIN_VALUE,
    top_n: int = config.FLOW_TOP_N,
) -> List[FlowRecord]:
    """Flows for one year above the threshold, largest first, at most ``top_n``."""
    frame = [r for r in records if r.year == year and r.value > min_value]
    frame.sort(key=lambda r: r.value, reverse=True)
    return frame[:top_n]


def year_total(records: Sequence[FlowRecord], year: int) -> float:
    return float(sum(r.value for r in records if r.year == year))


def build_base_map(boundaries: Dict[str, BoundaryFeature], projection: MercatorProjection) -> List[Shape]:
    shapes = []
    for code, feature in boundaries.items():
        d = projection.path(feature.geometry)
        if not d:
            continue
        shapes.append(Shape(
            id=f"country-{code}",
            tag="path",
            attrs={
                "d": d,
                "fill": config.LAND_FILL,
                "stroke": config.LAND_STROKE,
                "stroke-width": 0.5,
            },
        ))
    return shapes


def build_marker_defs() -> List[Shape]:
    return [
        Shape(
            id=ARROWHEAD_ID,
            tag="marker",
            attrs={
                "viewBox": "0 -5 10 10",
                "refX": 8,
                "refY": 0,
                "markerWidth": 4,
                "markerHeight": 4,
                "orient": "auto",
            },
            children=[
                Shape(id=f"{ARROWHEAD_ID}-tip", tag="path", attrs={"d": "M0,-5L10,0L0,5", "fill": config.ARC_COLOR}),
            ],
        )
    ]


class CentroidLookup:
    def __init__(self, boundaries: Dict[str, BoundaryFeature], projection: MercatorProjection):
        self.boundaries = boundaries
        self.projection = projection

    def __call__(self, code: str) -> Optional[Tuple[float, float]]:
        feature = self.boundaries.get(code)
        if feature is None:
            return None
        return self.projection.centroid(feature.geometry)


def arc_style(value: float, widths: SqrtScale) -> Dict[str, object]:
    return {"stroke": config.ARC_COLOR, "stroke-width": widths(value), "stroke-opacity": 0.6}


def arc_emphasis(value: float, widths: SqrtScale) -> Dict[str, object]:
    return {"stroke": config.ARC_HOVER_COLOR, "stroke-width": widths(value) + 2, "stroke-opacity": 1.0}


def render_arcs(
    frame: Sequence[FlowRecord],
    centroid: Callable[[str], Optional[Tuple[float, float]]],
    origin: str = config.FLOW_ORIGIN,
    widths: Optional[SqrtScale] = None,
) -> List[Shape]:
    """One arc per drawable record, then the origin marker on top."""
    widths = widths or flow_width_scale()
    source = centroid(origin)
    shapes: List[Shape] = []
    for i, record in enumerate(frame):
        target = centroid(record.dest_code)
        if source is None or target is None:
            log.debug("skipping arc %s -> %s: no boundary", origin, record.dest_code)
            continue
        shapes.append(Shape(
            id=f"arc-{i}-{record.dest_code}",
            tag="path",
            attrs={
                "d": str(flow_arc(source, target)),
                "fill": "none",
                "stroke-linecap": "round",
                "marker-end": f"url(#{ARROWHEAD_ID})",
                "cursor": "pointer",
                **arc_style(record.value, widths),
            },
            datum=record,
            interactive=True,
        ))
    if source is not None:
        shapes.append(Shape(
            id=ORIGIN_ID,
            tag="circle",
            attrs={
                "cx": source[0],
                "cy": source[1],
                "r": 5,
                "fill": config.ARC_HOVER_COLOR,
                "stroke": "white",
                "stroke-width": 2,
            },
        ))
    return shapes


def describe_flow(shape: Shape) -> List[str]:
    record: FlowRecord = shape.datum
    return [f"{record.dest_name} ({record.year})", f"Migrants: {record.value:,.0f}"]


class FlowMap(Visualization):
    kind = "flow"

    def __init__(
        self,
        width: int = config.MAP_WIDTH,
        height: int = config.MAP_HEIGHT,
        origin: str = config.FLOW_ORIGIN,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(width, height, clock)
        self.origin = origin
        # shared by the base map and the arcs so both line up
        self.projection = make_projection(width, height)
        self.widths = flow_width_scale()
        self.records: List[FlowRecord] = []
        self.boundaries: Dict[str, BoundaryFeature] = {}
        self.state: Optional[ViewState] = None
        self.playback: Optional[PlaybackController] = None
        self.renderer: Optional[RenderScheduler] = None

    def on_loaded(self, result: LoadResult) -> None:
        self.records = list(result.values.get("records") or [])
        self.boundaries = dict(result.values.get("boundaries") or {})
        if self.playback is not None:
            self.playback.close()
        self.state = ViewState.from_years((r.year for r in self.records), fallback=config.FLOW_MIN_YEAR)
        self.playback = PlaybackController(self.state, self.scheduler, on_change=lambda _: self.render())

        boundaries, projection = self.boundaries, self.projection
        # the base map follows the boundary set; year changes never touch it
        self.scene.ensure_static(MAP_LAYER, lambda: build_base_map(boundaries, projection), rebuild=True)
        self.scene.ensure_static(DEFS_LAYER, build_marker_defs)
        self.scene.add_layer(ARROWS_LAYER)
        self.scene.add_layer(TOOLTIP_LAYER)
        if self.renderer is None or self.renderer.scene is not self.scene:
            self.renderer = RenderScheduler(self.scene, ARROWS_LAYER, self._render)
        else:
            self.renderer.invalidate()
        self.hover = HoverController(
            self.scene,
            self.animator,
            emphasis=lambda s: arc_emphasis(s.datum.value, self.widths),
            baseline=lambda s: arc_style(s.datum.value, self.widths),
            describe=describe_flow,
            place=lambda s, x, y, w, h: cursor_placement(x, y, w, h, self.width, self.height),
        )
        self.render()

    @property
    def current(self) -> List[FlowRecord]:
        if self.state is None:
            return []
        return derive_frame(self.records, self.state.selected_year)

    def _render(self, state: ViewState) -> List[Shape]:
        frame = derive_frame(self.records, state.selected_year)
        centroid = CentroidLookup(self.boundaries, self.projection)
        return render_arcs(frame, centroid, self.origin, self.widths)

    def render(self, force: bool = False) -> bool:
        if self.renderer is None or self.state is None:
            return False
        previous = list(self.scene.layers[ARROWS_LAYER].shapes)
        changed = self.renderer.request(self.state, key=self.state.selected_year, force=force)
        if changed:
            self.animator.forget(previous)
            if self.hover is not None:
                self.hover.sync()
                self._sync_tooltip()
        return changed

    def toggle_play(self) -> bool:
        if self.playback is None:
            return False
        self.pump()
        return self.playback.toggle()

    def select_year(self, year: int) -> None:
        if self.playback is None:
            raise ValueError("flow data not loaded")
        self.pump()
        self.playback.select_year(year)

    def teardown(self) -> None:
        if self.playback is not None:
            self.playback.close()
        self.playback = None
        self.renderer = None

    def view(self) -> dict:
        if self.state is None:
            return {}
        out = self.state.to_dict()
        out["arcs"] = self.scene.count(ARROWS_LAYER, tag="path")
        out["flows"] = len(self.current)
        out["total"] = year_total(self.records, self.state.selected_year)
        return out
