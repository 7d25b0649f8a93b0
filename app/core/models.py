from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Optional, Tuple

from core.config import DEFAULT_GRANULARITY, DEFAULT_ZOOM, ZOOM_FLOOR, ZOOM_STEP


class Granularity(str, Enum):
    MONTH = "month"
    WEEK = "week"
    DAY = "day"
    HOUR = "hour"
    MIN15 = "15min"

    @classmethod
    def coerce(cls, value: Any) -> "Granularity":
        """Map any value onto a member; unknown values become the default."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls(DEFAULT_GRANULARITY)


# Timeframe codes understood by `timeframe_to_ms`.
GRANULARITY_TIMEFRAMES = {
    Granularity.MONTH: "1M",
    Granularity.WEEK: "1w",
    Granularity.DAY: "1d",
    Granularity.HOUR: "1h",
    Granularity.MIN15: "15m",
}


@dataclass(frozen=True)
class Bar:
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def is_up(self) -> bool:
        return self.close > self.open


Series = Tuple[Bar, ...]


@dataclass(frozen=True)
class ViewState:
    zoom_level: float = DEFAULT_ZOOM
    granularity: Granularity = Granularity(DEFAULT_GRANULARITY)
    hovered_bar: Optional[Bar] = None


def zoomed_in(state: ViewState) -> ViewState:
    return replace(state, zoom_level=state.zoom_level + ZOOM_STEP)


def zoomed_out(state: ViewState) -> ViewState:
    return replace(state, zoom_level=max(ZOOM_FLOOR, state.zoom_level - ZOOM_STEP))


def with_granularity(state: ViewState, granularity: Any) -> ViewState:
    # A new granularity means a new series, so the hovered bar no longer belongs to it.
    return replace(state, granularity=Granularity.coerce(granularity), hovered_bar=None)


def with_hover(state: ViewState, bar: Optional[Bar]) -> ViewState:
    return replace(state, hovered_bar=bar)
