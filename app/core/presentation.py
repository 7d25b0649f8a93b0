from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Tuple

from core.models import Bar

UP_COLOR = 'green'
DOWN_COLOR = 'red'

# Selector options in display order: (label, value).
GRANULARITY_OPTIONS: List[Tuple[str, str]] = [
    ('Month', 'month'),
    ('Week', 'week'),
    ('Day', 'day'),
    ('Hour', 'hour'),
    ('15 Minutes', '15min'),
]


def close_color(bar: Bar) -> str:
    return UP_COLOR if bar.is_up else DOWN_COLOR


def format_date(ts_ms: float) -> str:
    try:
        return datetime.fromtimestamp(float(ts_ms) / 1000.0, tz=timezone.utc).strftime('%Y-%m-%d')
    except (ValueError, OverflowError, OSError):
        return ''


def format_price(value: float) -> str:
    return f'{value:.2f}'


def tooltip_lines(bar: Bar) -> List[str]:
    return [
        f'Date: {format_date(bar.timestamp)}',
        f'Open: {format_price(bar.open)}',
        f'High: {format_price(bar.high)}',
        f'Low: {format_price(bar.low)}',
        f'Close: {format_price(bar.close)}',
        f'Volume: {bar.volume:.0f}',
    ]


@dataclass(frozen=True)
class ChartLayout:
    height: int = 500
    margin: Dict[str, int] = field(
        default_factory=lambda: {'left': 50, 'right': 50, 'top': 10, 'bottom': 30}
    )
    volume_ratio: float = 0.2
    candle_width_ratio: float = 0.5

    @property
    def grid_height(self) -> int:
        return self.height - self.margin['top'] - self.margin['bottom']

    @property
    def volume_height(self) -> float:
        return self.grid_height * self.volume_ratio
