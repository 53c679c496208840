import logging
import uuid
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from . import config
from .flow_map import FlowMap, derive_frame, year_total
from .line_chart import LineChart
from .loader import load_flow_sources, load_indicator_sources, read_geojson, year_range
from .visualization import Visualization

log = logging.getLogger(__name__)

CHART_KINDS = {
    "line": (LineChart, load_indicator_sources),
    "flow": (FlowMap, load_flow_sources),
}

app = FastAPI(title="Story Visualization API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_INSTANCES: Dict[str, Visualization] = {}
_INSTANCE_ORDER: List[str] = []


def get_instance(chart_id: str) -> Visualization:
    instance = _INSTANCES.get(chart_id)
    if instance is None:
        raise HTTPException(status_code=404, detail="Unknown chart")
    if chart_id in _INSTANCE_ORDER:
        _INSTANCE_ORDER.remove(chart_id)
        _INSTANCE_ORDER.append(chart_id)
    return instance


def drop_instance(chart_id: str) -> None:
    instance = _INSTANCES.pop(chart_id, None)
    if chart_id in _INSTANCE_ORDER:
        _INSTANCE_ORDER.remove(chart_id)
    if instance is not None:
        instance.unmount()


@app.get("/api/indicator")
def indicator():
    result = load_indicator_sources()
    points = result.values.get("points", []) if result.ok else []
    return {
        "status": result.status,
        "points": [{"year": p.year, "value": p.value} for p in points],
    }


@app.get("/api/geo")
def geo():
    try:
        return read_geojson(config.BOUNDARY_SOURCE)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Boundaries not available")


@app.get("/api/flow/options")
def flow_options():
    result = load_flow_sources()
    records = result.values.get("records", []) if result.ok else []
    bounds = year_range(records)
    return {
        "status": result.status,
        "years": sorted({r.year for r in records}),
        "range": list(bounds) if bounds else None,
    }


@app.get("/api/flow")
def flow_data(year: Optional[int] = None):
    result = load_flow_sources()
    if not result.ok:
        return {"status": result.status, "year": year, "flows": [], "stats": {"total": 0.0, "shown": 0}}
    records = result.values["records"]
    boundaries = result.values["boundaries"]
    if year is None:
        bounds = year_range(records)
        year = bounds[0] if bounds else config.FLOW_MIN_YEAR
    frame = derive_frame(records, year)
    return {
        "status": result.status,
        "year": year,
        "flows": [
            {
                "dest_code": r.dest_code,
                "dest_name": r.dest_name,
                "value": r.value,
                "has_boundary": r.dest_code in boundaries,
            }
            for r in frame
        ],
        "stats": {
            "total": year_total(records, year),
            "shown": len(frame),
        },
    }


@app.post("/api/charts")
async def mount_chart(kind: str):
    if kind not in CHART_KINDS:
        raise HTTPException(status_code=404, detail="Unknown chart kind")
    while _INSTANCE_ORDER and len(_INSTANCES) >= config.INSTANCE_LIMIT:
        evict = _INSTANCE_ORDER[0]
        log.info("evicting chart %s", evict)
        drop_instance(evict)
    cls, load = CHART_KINDS[kind]
    chart_id = uuid.uuid4().hex
    instance = cls().mount()
    _INSTANCES[chart_id] = instance
    _INSTANCE_ORDER.append(chart_id)
    result = await run_in_threadpool(load)
    if _INSTANCES.get(chart_id) is not instance:
        raise HTTPException(status_code=409, detail="Chart was evicted while loading")
    instance.load(result)
    log.info("mounted %s chart %s (%s)", kind, chart_id, instance.status)
    return {"id": chart_id, **instance.frame()}


@app.get("/api/charts/{chart_id}")
async def chart_frame(chart_id: str):
    return get_instance(chart_id).frame()


@app.get("/api/charts/{chart_id}/svg")
async def chart_svg(chart_id: str):
    return Response(content=get_instance(chart_id).svg(), media_type="image/svg+xml")


@app.post("/api/charts/{chart_id}/play")
async def toggle_play(chart_id: str):
    instance = get_instance(chart_id)
    if not isinstance(instance, FlowMap):
        raise HTTPException(status_code=400, detail="Chart has no playback")
    instance.toggle_play()
    return instance.frame()


@app.post("/api/charts/{chart_id}/year")
async def select_year(chart_id: str, year: int):
    instance = get_instance(chart_id)
    if not isinstance(instance, FlowMap):
        raise HTTPException(status_code=400, detail="Chart has no year selector")
    try:
        instance.select_year(year)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return instance.frame()


@app.post("/api/charts/{chart_id}/pointer")
async def pointer(chart_id: str, event: str, shape: Optional[str] = None, x: float = 0.0, y: float = 0.0):
    instance = get_instance(chart_id)
    try:
        handled = instance.pointer(event, shape, x, y)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"handled": handled, **instance.frame()}


@app.delete("/api/charts/{chart_id}")
async def unmount_chart(chart_id: str):
    get_instance(chart_id)
    drop_instance(chart_id)
    return {"id": chart_id, "unmounted": True}
