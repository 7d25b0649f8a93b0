from typing import Any, Optional

import numpy as np

from core.config import (
    BAR_COUNT,
    BASE_PRICE,
    BASE_TS_MS,
    CLOSE_STEP,
    VOLUME_MIN,
    VOLUME_SPAN,
    WICK_MAX,
)
from core.models import Bar, Granularity, GRANULARITY_TIMEFRAMES, Series


def timeframe_to_ms(timeframe: str) -> int:
    if not timeframe:
        return 86_400_000
    unit = timeframe[-1]
    try:
        mult = int(timeframe[:-1])
    except (ValueError, TypeError):
        return 86_400_000
    if unit == 'm':
        return mult * 60_000
    if unit == 'h':
        return mult * 3_600_000
    if unit == 'd':
        return mult * 86_400_000
    if unit == 'w':
        return mult * 7 * 86_400_000
    if unit == 'M':
        return mult * 30 * 86_400_000
    return 86_400_000


def granularity_to_ms(granularity: Any) -> int:
    return timeframe_to_ms(GRANULARITY_TIMEFRAMES[Granularity.coerce(granularity)])


def generate_series(
    granularity: Any = Granularity.DAY,
    rng: Optional[np.random.Generator] = None,
    bar_count: int = BAR_COUNT,
    base_price: float = BASE_PRICE,
    base_ts_ms: int = BASE_TS_MS,
) -> Series:
    """
    Random-walk OHLCV bars. Each bar opens at the previous close; the first
    opens at `base_price`. Pass a seeded `rng` for reproducible output.
    """
    if bar_count <= 0:
        return ()
    if rng is None:
        rng = np.random.default_rng()
    interval_ms = granularity_to_ms(granularity)

    deltas = rng.uniform(-CLOSE_STEP, CLOSE_STEP, bar_count)
    # Running sum seeded with the base price so that close[i] == open[i] + delta[i].
    close = np.cumsum(np.concatenate(([base_price], deltas)))[1:]
    open_ = np.concatenate(([base_price], close[:-1]))
    high = np.maximum(open_, close) + rng.uniform(0.0, WICK_MAX, bar_count)
    low = np.minimum(open_, close) - rng.uniform(0.0, WICK_MAX, bar_count)
    volume = rng.uniform(0.0, 1.0, bar_count) * VOLUME_SPAN + VOLUME_MIN
    ts = base_ts_ms + np.arange(bar_count, dtype=np.int64) * interval_ms

    return tuple(
        Bar(
            timestamp=int(ts[i]),
            open=float(open_[i]),
            high=float(high[i]),
            low=float(low[i]),
            close=float(close[i]),
            volume=float(volume[i]),
        )
        for i in range(bar_count)
    )


def series_to_array(series: Series) -> np.ndarray:
    # time, open, high, low, close, volume
    if not series:
        return np.empty((0, 6), dtype=np.float64)
    return np.asarray(
        [[b.timestamp, b.open, b.high, b.low, b.close, b.volume] for b in series],
        dtype=np.float64,
    )
