import io
import json
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import requests

from . import config
from .models import BoundaryFeature, FlowRecord, LoadResult, TimeSeriesPoint

log = logging.getLogger(__name__)

_SOURCE_CACHE: Dict[str, object] = {}
_SOURCE_CACHE_ORDER: List[str] = []
_CACHE_LOCK = threading.Lock()


def permissive_numeric(series: Optional[pd.Series], index: Optional[pd.Index] = None) -> pd.Series:
    """Numeric coercion policy: anything that does not parse as a finite number is 0.

    A missing column (``series is None``) is all zeros over ``index``.
    """
    if series is None:
        return pd.Series(0.0, index=index, dtype="float64")
    values = pd.to_numeric(series, errors="coerce").astype("float64")
    return values.replace([np.inf, -np.inf], np.nan).fillna(0.0)


def _column(df: pd.DataFrame, name: str) -> Optional[pd.Series]:
    return df[name] if name in df.columns else None


def _normalize_text(series: Optional[pd.Series], index: pd.Index) -> pd.Series:
    if series is None:
        return pd.Series("", index=index, dtype="string")
    return series.astype("string").fillna("").str.strip()


def normalize_indicator(
    df: pd.DataFrame,
    value_column: str = config.INDICATOR_VALUE_COLUMN,
) -> List[TimeSeriesPoint]:
    idx = df.index
    frame = pd.DataFrame({
        "year": permissive_numeric(_column(df, config.YEAR_COLUMN), idx).round().astype("int64"),
        "value": permissive_numeric(_column(df, value_column), idx),
    })
    frame = frame.sort_values(by="year", kind="stable")
    duplicated = frame["year"].duplicated(keep="first")
    if duplicated.any():
        log.warning(
            "dropping %d duplicate indicator rows for years %s",
            int(duplicated.sum()),
            sorted(set(frame.loc[duplicated, "year"].tolist())),
        )
        frame = frame[~duplicated]
    return [TimeSeriesPoint(year=int(row.year), value=float(row.value)) for row in frame.itertuples()]


def normalize_flows(
    df: pd.DataFrame,
    origin: str = config.FLOW_ORIGIN,
    min_year: int = config.FLOW_MIN_YEAR,
) -> List[FlowRecord]:
    idx = df.index
    total = pd.Series(0.0, index=idx, dtype="float64")
    for col in config.FLOW_VALUE_COLUMNS:
        total = total + permissive_numeric(_column(df, col), idx)
    frame = pd.DataFrame({
        "year": permissive_numeric(_column(df, config.YEAR_COLUMN), idx).round().astype("int64"),
        "origin_code": _normalize_text(_column(df, config.FLOW_ORIGIN_COLUMN), idx),
        "dest_code": _normalize_text(_column(df, config.FLOW_DEST_COLUMN), idx),
        "dest_name": _normalize_text(_column(df, config.FLOW_DEST_NAME_COLUMN), idx),
        "value": total,
    })
    # origin/destination filter drops internal displacement rows
    kept = frame[
        (frame["value"] > 0)
        & (frame["origin_code"] == origin)
        & (frame["dest_code"] != origin)
    ]
    kept = kept[kept["year"] >= min_year]
    if len(kept) < len(frame):
        log.debug("flow normalization kept %d of %d rows", len(kept), len(frame))
    return [
        FlowRecord(
            year=int(row.year),
            origin_code=str(row.origin_code),
            dest_code=str(row.dest_code),
            dest_name=str(row.dest_name),
            value=float(row.value),
        )
        for row in kept.itertuples()
    ]


def year_range(records) -> Optional[Tuple[int, int]]:
    years = [r.year for r in records]
    if not years:
        return None
    return min(years), max(years)


def parse_boundaries(geo: dict) -> Dict[str, BoundaryFeature]:
    features: Dict[str, BoundaryFeature] = {}
    for feature in geo.get("features", []):
        props = feature.get("properties") or {}
        raw_id = feature.get("id")
        if raw_id is None:
            raw_id = props.get("id")
        if raw_id is None:
            continue
        code = str(raw_id).strip().upper()
        if not code:
            continue
        features[code] = BoundaryFeature(
            id=code,
            geometry=feature.get("geometry") or {},
            name=str(props.get("name") or ""),
        )
    return features


def fetch_text(source: str, timeout: float = config.FETCH_TIMEOUT_SEC) -> str:
    if source.startswith(("http://", "https://")):
        resp = requests.get(source, timeout=timeout)
        resp.raise_for_status()
        return resp.text
    if not os.path.exists(source):
        raise FileNotFoundError(source)
    with open(source, "r", encoding="utf-8-sig") as f:
        return f.read()


def _cached(source: str, parse: Callable[[str], object]):
    with _CACHE_LOCK:
        if source in _SOURCE_CACHE:
            if source in _SOURCE_CACHE_ORDER:
                _SOURCE_CACHE_ORDER.remove(source)
                _SOURCE_CACHE_ORDER.append(source)
            return _SOURCE_CACHE[source]
    # fetch outside the lock; sibling sources load concurrently
    value = parse(fetch_text(source))
    with _CACHE_LOCK:
        if source not in _SOURCE_CACHE:
            while _SOURCE_CACHE_ORDER and len(_SOURCE_CACHE_ORDER) >= config.SOURCE_CACHE_LIMIT:
                evict = _SOURCE_CACHE_ORDER.pop(0)
                _SOURCE_CACHE.pop(evict, None)
            _SOURCE_CACHE[source] = value
            _SOURCE_CACHE_ORDER.append(source)
        return _SOURCE_CACHE[source]


def clear_cache() -> None:
    with _CACHE_LOCK:
        _SOURCE_CACHE.clear()
        _SOURCE_CACHE_ORDER.clear()


def read_table(source: str) -> pd.DataFrame:
    df = _cached(
        source,
        lambda text: pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False),
    )
    df = df.copy()
    df.columns = [str(c).strip() for c in df.columns]
    return df


def read_geojson(source: str) -> dict:
    return _cached(source, json.loads)


def load_sources(
    fetchers: Dict[str, Callable[[], object]],
    timeout: float = config.FETCH_TIMEOUT_SEC,
) -> LoadResult:
    """Run independent fetches concurrently and resolve once all of them have."""
    if not fetchers:
        return LoadResult(status="ready")
    pool = ThreadPoolExecutor(max_workers=len(fetchers))
    try:
        futures = {name: pool.submit(fn) for name, fn in fetchers.items()}
        done, not_done = wait(futures.values(), timeout=timeout)
        if not_done:
            pending = sorted(name for name, fut in futures.items() if fut in not_done)
            for fut in not_done:
                fut.cancel()
            log.warning("timed out after %.1fs waiting for %s", timeout, ", ".join(pending))
            return LoadResult(status="error", error=f"timeout: {', '.join(pending)}")
        values = {}
        for name, fut in futures.items():
            exc = fut.exception()
            if exc is not None:
                log.warning("failed to load %s: %s", name, exc)
                return LoadResult(status="error", error=f"{name}: {exc}")
            values[name] = fut.result()
        return LoadResult(status="ready", values=values)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def load_indicator_sources(
    source: Optional[str] = None,
    timeout: float = config.FETCH_TIMEOUT_SEC,
) -> LoadResult:
    source = source or config.INDICATOR_SOURCE
    return load_sources(
        {"points": lambda: normalize_indicator(read_table(source))},
        timeout=timeout,
    )


def load_flow_sources(
    flow_source: Optional[str] = None,
    boundary_source: Optional[str] = None,
    timeout: float = config.FETCH_TIMEOUT_SEC,
) -> LoadResult:
    flow_source = flow_source or config.FLOW_SOURCE
    boundary_source = boundary_source or config.BOUNDARY_SOURCE
    return load_sources(
        {
            "records": lambda: normalize_flows(read_table(flow_source)),
            "boundaries": lambda: parse_boundaries(read_geojson(boundary_source)),
        },
        timeout=timeout,
    )
