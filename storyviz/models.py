"""
Domain records shared by the loader, the scale engine and both visualizations.

Records are frozen: once the loader has normalized them nothing downstream
mutates them. ``ViewState`` is the one mutable object, and it only changes
through the transitions declared on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Literal, Optional, Tuple

LoadStatus = Literal["loading", "ready", "error"]


@dataclass(frozen=True)
class TimeSeriesPoint:
    year: int
    value: float


@dataclass(frozen=True)
class FlowRecord:
    year: int
    origin_code: str
    dest_code: str
    dest_name: str
    value: float


@dataclass(frozen=True)
class BoundaryFeature:
    id: str
    geometry: dict
    name: str = ""


@dataclass
class ViewState:
    selected_year: int
    year_range: Tuple[int, int]
    is_playing: bool = False

    @classmethod
    def from_years(cls, years: Iterable[int], fallback: int) -> "ViewState":
        years = list(years)
        if not years:
            return cls(selected_year=fallback, year_range=(fallback, fallback))
        lo, hi = min(years), max(years)
        return cls(selected_year=lo, year_range=(lo, hi))

    @property
    def span(self) -> int:
        return self.year_range[1] - self.year_range[0] + 1

    def select_year(self, year: int) -> None:
        lo, hi = self.year_range
        year = int(year)
        if year < lo or year > hi:
            raise ValueError(f"year {year} outside [{lo}, {hi}]")
        self.selected_year = year

    def advance(self, steps: int = 1) -> int:
        """Step forward ``steps`` years, wrapping from the last year to the first."""
        lo, _ = self.year_range
        self.selected_year = lo + (self.selected_year - lo + steps) % self.span
        return self.selected_year

    def set_playing(self, flag: bool) -> None:
        self.is_playing = bool(flag)

    def to_dict(self) -> dict:
        return {
            "selected_year": self.selected_year,
            "year_range": list(self.year_range),
            "is_playing": self.is_playing,
        }


@dataclass
class LoadResult:
    status: LoadStatus
    values: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ready"
