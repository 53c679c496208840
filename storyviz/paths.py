import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from . import config
from .scales import _fmt

Point = Tuple[float, float]

# Samples per curved segment when measuring length.
CURVE_SAMPLES = 64


class Path:
    """Accumulates path commands; ``str(path)`` is SVG path data."""

    def __init__(self):
        self._parts: List[str] = []
        self._segments: List[Tuple[str, Tuple[Point, ...]]] = []
        self._start: Optional[Point] = None
        self._current: Optional[Point] = None

    def move_to(self, x: float, y: float) -> "Path":
        self._parts.append(f"M{_fmt(x)},{_fmt(y)}")
        self._start = self._current = (x, y)
        return self

    def line_to(self, x: float, y: float) -> "Path":
        self._parts.append(f"L{_fmt(x)},{_fmt(y)}")
        self._segments.append(("L", (self._current, (x, y))))
        self._current = (x, y)
        return self

    def quadratic_curve_to(self, cx: float, cy: float, x: float, y: float) -> "Path":
        self._parts.append(f"Q{_fmt(cx)},{_fmt(cy)},{_fmt(x)},{_fmt(y)}")
        self._segments.append(("Q", (self._current, (cx, cy), (x, y))))
        self._current = (x, y)
        return self

    def bezier_curve_to(self, c1x: float, c1y: float, c2x: float, c2y: float, x: float, y: float) -> "Path":
        self._parts.append(
            f"C{_fmt(c1x)},{_fmt(c1y)},{_fmt(c2x)},{_fmt(c2y)},{_fmt(x)},{_fmt(y)}"
        )
        self._segments.append(("C", (self._current, (c1x, c1y), (c2x, c2y), (x, y))))
        self._current = (x, y)
        return self

    def close_path(self) -> "Path":
        if self._current is not None:
            self._parts.append("Z")
            if self._current != self._start:
                self._segments.append(("L", (self._current, self._start)))
            self._current = self._start
        return self

    def __str__(self) -> str:
        return "".join(self._parts)

    def length(self) -> float:
        total = 0.0
        t = np.linspace(0.0, 1.0, CURVE_SAMPLES + 1)[:, None]
        for kind, pts in self._segments:
            p = [np.array(pt, dtype="float64") for pt in pts]
            if kind == "L":
                total += float(np.hypot(*(p[1] - p[0])))
                continue
            if kind == "Q":
                curve = (1 - t) ** 2 * p[0] + 2 * (1 - t) * t * p[1] + t ** 2 * p[2]
            else:
                curve = (
                    (1 - t) ** 3 * p[0]
                    + 3 * (1 - t) ** 2 * t * p[1]
                    + 3 * (1 - t) * t ** 2 * p[2]
                    + t ** 3 * p[3]
                )
            total += float(np.sum(np.hypot(*np.diff(curve, axis=0).T)))
        return total


def _sign(x: float) -> int:
    return -1 if x < 0 else 1


def _slope3(x0, y0, x1, y1, x2, y2) -> float:
    h0 = x1 - x0
    h1 = x2 - x1
    s0 = (y1 - y0) / h0 if h0 else 0.0
    s1 = (y2 - y1) / h1 if h1 else 0.0
    p = (s0 * h1 + s1 * h0) / (h0 + h1) if (h0 + h1) else 0.0
    out = (_sign(s0) + _sign(s1)) * min(abs(s0), abs(s1), 0.5 * abs(p))
    return out if math.isfinite(out) else 0.0


def _slope2(x0, y0, x1, y1, t: float) -> float:
    h = x1 - x0
    return (3 * (y1 - y0) / h - t) / 2 if h else t


def monotone_x(points: Sequence[Point]) -> Path:
    """Cubic interpolation that preserves monotonicity in y between x-sorted points."""
    path = Path()
    n = len(points)
    if n == 0:
        return path
    (x0, y0) = points[0]
    path.move_to(x0, y0)
    if n == 1:
        return path.close_path()
    if n == 2:
        return path.line_to(*points[1])

    def segment(p0: Point, p1: Point, t0: float, t1: float):
        dx = (p1[0] - p0[0]) / 3
        path.bezier_curve_to(p0[0] + dx, p0[1] + dx * t0, p1[0] - dx, p1[1] - dx * t1, p1[0], p1[1])

    tangents = [0.0] * n
    for i in range(1, n - 1):
        tangents[i] = _slope3(*points[i - 1], *points[i], *points[i + 1])
    tangents[0] = _slope2(*points[0], *points[1], tangents[1])
    tangents[-1] = _slope2(*points[-2], *points[-1], tangents[-2])
    for i in range(n - 1):
        segment(points[i], points[i + 1], tangents[i], tangents[i + 1])
    return path


def flow_arc(source: Point, target: Point, bend: float = config.ARC_BEND) -> Path:
    """Quadratic arc bowed off the chord by ``bend`` times the chord length."""
    sx, sy = source
    tx, ty = target
    dx, dy = tx - sx, ty - sy
    dr = math.hypot(dx, dy)
    mx, my = (sx + tx) / 2, (sy + ty) / 2
    if dr:
        nx, ny = dy / dr, -dx / dr
        if ny > 0:
            nx, ny = -nx, -ny
        mx, my = mx + nx * dr * bend, my + ny * dr * bend
    return Path().move_to(sx, sy).quadratic_curve_to(mx, my, tx, ty)
