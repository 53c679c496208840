import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .models import TimeSeriesPoint

E10 = math.sqrt(50)
E5 = math.sqrt(10)
E2 = math.sqrt(2)

# Mercator y is unbounded at the poles; keep to the square world extent.
MAX_LATITUDE = 85.0511287798066


def _factor(error: float) -> int:
    if error >= E10:
        return 10
    if error >= E5:
        return 5
    if error >= E2:
        return 2
    return 1


def tick_increment(start: float, stop: float, count: int) -> float:
    """Positive: tick step. Negative: the reciprocal of a fractional step."""
    step = (stop - start) / max(0, count)
    if step <= 0 or not math.isfinite(step):
        return 0
    power = math.floor(math.log10(step))
    error = step / (10 ** power)
    factor = _factor(error)
    if power >= 0:
        return factor * (10 ** power)
    return -(10 ** -power) / factor


def _tick_spec(start: float, stop: float, count: float) -> Tuple[int, int, float]:
    step = (stop - start) / max(0, count)
    power = math.floor(math.log10(step))
    error = step / (10 ** power)
    factor = _factor(error)
    if power < 0:
        inc = (10 ** -power) / factor
        i1 = round(start * inc)
        i2 = round(stop * inc)
        if i1 / inc < start:
            i1 += 1
        if i2 / inc > stop:
            i2 -= 1
        inc = -inc
    else:
        inc = (10 ** power) * factor
        i1 = round(start / inc)
        i2 = round(stop / inc)
        if i1 * inc < start:
            i1 += 1
        if i2 * inc > stop:
            i2 -= 1
    if i2 < i1 and 0.5 <= count < 2:
        return _tick_spec(start, stop, count * 2)
    return i1, i2, inc


def ticks(start: float, stop: float, count: int = 10) -> List[float]:
    if count <= 0:
        return []
    if start == stop:
        return [start]
    reverse = stop < start
    if reverse:
        start, stop = stop, start
    i1, i2, inc = _tick_spec(start, stop, count)
    if not i2 >= i1:
        return []
    if inc < 0:
        out = [(i1 + i) / -inc for i in range(i2 - i1 + 1)]
    else:
        out = [(i1 + i) * inc for i in range(i2 - i1 + 1)]
    return out[::-1] if reverse else out


class LinearScale:
    def __init__(self, domain: Sequence[float], range: Sequence[float]):
        self.domain = (float(domain[0]), float(domain[1]))
        self.range = (float(range[0]), float(range[1]))

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        span = d1 - d0
        t = (value - d0) / span if span else 0.5
        return r0 + t * (r1 - r0)

    def invert(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        span = r1 - r0
        t = (pixel - r0) / span if span else 0.5
        return d0 + t * (d1 - d0)

    def nice(self, count: int = 10) -> "LinearScale":
        start, stop = self.domain
        if stop < start:
            lo, hi = stop, start
        else:
            lo, hi = start, stop
        prestep = None
        for _ in range(10):
            step = tick_increment(lo, hi, count)
            if step == prestep:
                break
            if step > 0:
                lo = math.floor(lo / step) * step
                hi = math.ceil(hi / step) * step
            elif step < 0:
                lo = math.ceil(lo * step) / step
                hi = math.floor(hi * step) / step
            else:
                break
            prestep = step
        self.domain = (hi, lo) if stop < start else (lo, hi)
        return self

    def ticks(self, count: int = 10) -> List[float]:
        return ticks(self.domain[0], self.domain[1], count)


class SqrtScale:
    def __init__(self, domain: Sequence[float], range: Sequence[float], clamp: bool = True):
        self.domain = (float(domain[0]), float(domain[1]))
        self.range = (float(range[0]), float(range[1]))
        self.clamp = clamp

    def __call__(self, value: float) -> float:
        d0, d1 = (math.sqrt(max(v, 0.0)) for v in self.domain)
        r0, r1 = self.range
        x = math.sqrt(max(float(value), 0.0))
        t = (x - d0) / (d1 - d0) if d1 != d0 else 0.5
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return r0 + t * (r1 - r0)


class MercatorProjection:
    """Spherical Mercator scaled by ``scale`` and centred on ``center`` at ``translate``."""

    def __init__(
        self,
        center: Tuple[float, float] = config.PROJECTION_CENTER,
        scale: float = config.PROJECTION_SCALE,
        translate: Tuple[float, float] = (config.MAP_WIDTH / 2, config.MAP_HEIGHT / 2),
    ):
        self.center = center
        self.scale = scale
        self.translate = translate
        cx, cy = self._raw(np.array([center[0]]), np.array([center[1]]))
        self._dx = translate[0] - scale * cx[0]
        self._dy = translate[1] + scale * cy[0]

    @staticmethod
    def _raw(lon: np.ndarray, lat: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        lam = np.radians(lon)
        phi = np.radians(np.clip(lat, -MAX_LATITUDE, MAX_LATITUDE))
        return lam, np.log(np.tan(np.pi / 4 + phi / 2))

    def project_many(self, coords) -> np.ndarray:
        arr = np.asarray(coords, dtype="float64").reshape(-1, 2)
        x, y = self._raw(arr[:, 0], arr[:, 1])
        return np.column_stack((self._dx + self.scale * x, self._dy - self.scale * y))

    def __call__(self, lon: float, lat: float) -> Tuple[float, float]:
        x, y = self.project_many([(lon, lat)])[0]
        return float(x), float(y)

    def rings(self, geometry: dict) -> List[np.ndarray]:
        gtype = (geometry or {}).get("type")
        coords = (geometry or {}).get("coordinates") or []
        if gtype == "Polygon":
            polygons = [coords]
        elif gtype == "MultiPolygon":
            polygons = coords
        else:
            return []
        out = []
        for polygon in polygons:
            for ring in polygon:
                if len(ring) >= 1:
                    out.append(self.project_many([pt[:2] for pt in ring]))
        return out

    def path(self, geometry: dict) -> str:
        parts = []
        for ring in self.rings(geometry):
            points = "L".join(f"{_fmt(x)},{_fmt(y)}" for x, y in ring)
            parts.append(f"M{points}Z")
        return "".join(parts)

    def centroid(self, geometry: dict) -> Optional[Tuple[float, float]]:
        """Planar area-weighted centroid of the projected rings."""
        rings = self.rings(geometry)
        if not rings:
            return None
        area_x = area_y = area_z = 0.0
        for ring in rings:
            x0, y0 = ring[:, 0], ring[:, 1]
            x1, y1 = np.roll(x0, -1), np.roll(y0, -1)
            z = x1 * y0 - x0 * y1
            area_x += float(np.sum(z * (x0 + x1)))
            area_y += float(np.sum(z * (y0 + y1)))
            area_z += float(np.sum(z) * 3)
        if abs(area_z) > 1e-12:
            return area_x / area_z, area_y / area_z
        points = np.vstack(rings)
        return float(points[:, 0].mean()), float(points[:, 1].mean())


def _fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def make_projection(width: int = config.MAP_WIDTH, height: int = config.MAP_HEIGHT) -> MercatorProjection:
    return MercatorProjection(
        center=config.PROJECTION_CENTER,
        scale=config.PROJECTION_SCALE,
        translate=(width / 2, height / 2),
    )


def flow_width_scale() -> SqrtScale:
    return SqrtScale(config.FLOW_WIDTH_DOMAIN, config.FLOW_WIDTH_RANGE)


class LineChartScales:
    def __init__(self, x: LinearScale, y: LinearScale, raw_y_domain: Tuple[float, float]):
        self.x = x
        self.y = y
        self.raw_y_domain = raw_y_domain


def line_chart_scales(
    points: Sequence[TimeSeriesPoint],
    width: int = config.LINE_WIDTH,
    height: int = config.LINE_HEIGHT,
    margin: Optional[Dict[str, int]] = None,
) -> LineChartScales:
    margin = margin or config.LINE_MARGIN
    years = [p.year for p in points]
    x_domain = (min(years), max(years)) if years else (0, 0)
    top = max((p.value for p in points), default=0.0) * config.Y_HEADROOM
    raw_y = (0.0, top)
    x = LinearScale(x_domain, (margin["left"], width - margin["right"]))
    y = LinearScale(raw_y, (height - margin["bottom"], margin["top"])).nice()
    return LineChartScales(x, y, raw_y)
