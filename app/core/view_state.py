from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from core.config import WINDOW_SPAN
from core.models import (
    Bar,
    Granularity,
    Series,
    ViewState,
    with_granularity,
    with_hover,
    zoomed_in,
    zoomed_out,
)
from core.series_generator import generate_series

Generator = Callable[..., Series]
Listener = Callable[[ViewState], None]


class ChartController:
    """
    Owns the chart's ViewState and the Series it is drawn from.

    The x position of a bar is its index in the series (a gap-free trading
    scale), so the visible window is expressed in index units.
    """

    def __init__(
        self,
        generator: Generator = generate_series,
        rng: Optional[np.random.Generator] = None,
        state: Optional[ViewState] = None,
    ) -> None:
        self._generator = generator
        self._rng = rng
        self._state = state if state is not None else ViewState()
        self._listeners: List[Listener] = []
        self._series: Series = self._generate(self._state.granularity)
        if self._state.hovered_bar is not None and self._state.hovered_bar not in self._series:
            self._state = with_hover(self._state, None)

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def series(self) -> Series:
        return self._series

    @property
    def zoom_level(self) -> float:
        return self._state.zoom_level

    @property
    def granularity(self) -> Granularity:
        return self._state.granularity

    @property
    def hovered_bar(self) -> Optional[Bar]:
        return self._state.hovered_bar

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_granularity(self, granularity: Any) -> None:
        state = with_granularity(self._state, granularity)
        self._series = self._generate(state.granularity)
        self._apply(state)

    def zoom_in(self) -> None:
        self._apply(zoomed_in(self._state))

    def zoom_out(self) -> None:
        self._apply(zoomed_out(self._state))

    def on_hover(self, bar: Optional[Bar]) -> None:
        if bar == self._state.hovered_bar:
            return
        self._apply(with_hover(self._state, bar))

    def x_accessor(self, bar: Bar) -> int:
        # Bars are frozen values; identity first keeps lookups O(1) for the common case.
        if self._series and self._series[-1] is bar:
            return len(self._series) - 1
        return self._series.index(bar)

    def bar_at(self, position: float) -> Optional[Bar]:
        if not self._series:
            return None
        try:
            idx = int(round(float(position)))
        except (ValueError, TypeError, OverflowError):
            return None
        if idx < 0 or idx >= len(self._series):
            return None
        return self._series[idx]

    def visible_window(self) -> Tuple[float, float]:
        if not self._series:
            return (0.0, 0.0)
        last_x = float(self.x_accessor(self._series[-1]))
        return (last_x - WINDOW_SPAN / self._state.zoom_level, last_x)

    def _visible_slice(self) -> Series:
        lo, hi = self.visible_window()
        start = max(0, int(np.ceil(lo)))
        end = min(len(self._series), int(np.floor(hi)) + 1)
        return self._series[start:end]

    def price_extents(self) -> Optional[Tuple[float, float]]:
        bars = self._visible_slice()
        if not bars:
            return None
        return (min(b.low for b in bars), max(b.high for b in bars))

    def volume_extents(self) -> Optional[Tuple[float, float]]:
        bars = self._visible_slice()
        if not bars:
            return None
        return (0.0, max(b.volume for b in bars))

    def _generate(self, granularity: Granularity) -> Series:
        if self._rng is not None:
            return tuple(self._generator(granularity, rng=self._rng))
        return tuple(self._generator(granularity))

    def _apply(self, state: ViewState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
