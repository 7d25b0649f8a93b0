from bisect import bisect_left, bisect_right
from typing import List, Optional, Tuple, Union

import numpy as np
import pyqtgraph as pg
from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QColor, QPainter, QPicture


class VolumeHistogramItem(pg.GraphicsObject):
    """
    Volume bars drawn in the bottom band of the view box.

    The band spans `volume_height_ratio` of the visible price range. Bar heights
    are scaled against `volume_scale` when one is set, otherwise against the
    largest volume in view.
    """

    def __init__(
        self,
        color: QColor,
        bar_width: float,
        volume_height_ratio: float,
    ) -> None:
        super().__init__()
        self._color = QColor(color)
        self._bar_width = float(bar_width)
        self._volume_height_ratio = float(volume_height_ratio)
        self._x: Optional[np.ndarray] = None
        self._vol: Optional[np.ndarray] = None
        self._x_cache: List[float] = []
        self._picture: Optional[QPicture] = None
        self._render_key: Optional[Tuple[int, int, float, float, float]] = None
        self._cached_bounds: QRectF = QRectF(0, 0, 1, 1)
        self._has_view_bounds = False
        self.volume_scale: Optional[float] = None

    def set_arrays(
        self,
        x_vals: Union[List[float], np.ndarray],
        vol_vals: Union[List[float], np.ndarray],
    ) -> None:
        if x_vals is None or vol_vals is None or len(x_vals) == 0:
            self._x = None
            self._vol = None
            self._x_cache = []
        else:
            self._x = np.asarray(x_vals, dtype=np.float64)
            self._vol = np.asarray(vol_vals, dtype=np.float64)
            self._x_cache = self._x.tolist()
        if not self._has_view_bounds:
            self.prepareGeometryChange()
            if self._x is not None:
                x_min = float(np.nanmin(self._x)) - self._bar_width
                x_max = float(np.nanmax(self._x)) + self._bar_width
                self._cached_bounds = QRectF(x_min, 0, x_max - x_min, 1)
            else:
                self._cached_bounds = QRectF(0, 0, 1, 1)
        self._picture = None
        self._render_key = None
        self.update()

    def set_volume_scale(self, volume_max: Optional[float]) -> None:
        if volume_max is not None and (not np.isfinite(volume_max) or volume_max <= 0):
            volume_max = None
        if volume_max != self.volume_scale:
            self.volume_scale = volume_max
            self.update()

    def set_view_bounds(self, x_min: float, x_max: float, y_min: float, y_max: float) -> None:
        # The band follows the visible range, so the item claims the whole view.
        try:
            x_min = float(x_min)
            x_max = float(x_max)
            y_min = float(y_min)
            y_max = float(y_max)
        except (ValueError, TypeError):
            return
        if not np.isfinite(x_min) or not np.isfinite(x_max) or not np.isfinite(y_min) or not np.isfinite(y_max):
            return
        if x_max <= x_min or y_max <= y_min:
            return
        rect = QRectF(x_min, y_min, x_max - x_min, y_max - y_min)
        self._has_view_bounds = True
        if self._cached_bounds != rect:
            self.prepareGeometryChange()
            self._cached_bounds = rect
            self.update()

    def boundingRect(self) -> QRectF:
        return self._cached_bounds

    def visible_range(self, x_min: float, x_max: float) -> Tuple[int, int]:
        start_idx = max(0, bisect_left(self._x_cache, x_min))
        end_idx = min(len(self._x_cache), bisect_right(self._x_cache, x_max))
        return start_idx, end_idx

    def _view_range(self) -> Optional[Tuple[float, float, float, float]]:
        try:
            view_box = self.getViewBox()
        except RuntimeError:
            return None
        if view_box is None:
            return None
        (x_range, y_range) = view_box.viewRange()
        return (float(x_range[0]), float(x_range[1]), float(y_range[0]), float(y_range[1]))

    def band_geometry(self) -> Optional[Tuple[float, float, float]]:
        """(bottom, height, volume at the top of the band) in view coordinates."""
        if self._x is None or self._vol is None or self._x.size == 0:
            return None
        view = self._view_range()
        if view is None:
            return None
        x_min, x_max, y_min, y_max = view
        if x_max <= x_min or y_max <= y_min:
            return None
        volume_max = self.volume_scale
        if volume_max is None:
            start_idx, end_idx = self.visible_range(x_min, x_max)
            visible = self._vol[start_idx:end_idx]
            volume_max = float(np.nanmax(visible)) if visible.size else 0.0
            if volume_max <= 0:
                volume_max = 1.0
        return (y_min, (y_max - y_min) * self._volume_height_ratio, float(volume_max))

    def paint(self, painter: QPainter, option, widget) -> None:
        geometry = self.band_geometry()
        if geometry is None:
            return
        bottom, band_height, volume_max = geometry
        x_min, x_max, _, _ = self._view_range()
        start_idx, end_idx = self.visible_range(x_min - self._bar_width, x_max + self._bar_width)
        if end_idx <= start_idx:
            return
        render_key = (start_idx, end_idx, bottom, band_height, volume_max)
        if render_key != self._render_key or self._picture is None:
            self._picture = self._render(start_idx, end_idx, bottom, band_height, volume_max)
            self._render_key = render_key
        painter.drawPicture(0, 0, self._picture)

    def _render(self, start_idx: int, end_idx: int, bottom: float, band_height: float, volume_max: float) -> QPicture:
        picture = QPicture()
        qp = QPainter(picture)
        try:
            qp.setPen(pg.mkPen(QColor(0, 0, 0, 0)))
            qp.setBrush(pg.mkBrush(self._color))
            half = self._bar_width / 2.0
            for idx in range(start_idx, end_idx):
                vol = float(self._vol[idx])
                if not np.isfinite(vol) or vol <= 0:
                    continue
                height = min(vol / volume_max, 1.0) * band_height
                x_val = float(self._x[idx])
                qp.drawRect(QRectF(x_val - half, bottom, self._bar_width, height))
        finally:
            qp.end()
        return picture


class VolumeAxis(pg.AxisItem):
    """Left axis labelling the volume band of the price view."""

    def __init__(self, *args, tick_count: int = 5, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.tick_count = int(tick_count)
        self.volume_item: Optional[VolumeHistogramItem] = None
        self._labels: dict[float, str] = {}

    def set_volume_item(self, item: Optional[VolumeHistogramItem]) -> None:
        self.volume_item = item
        self.refresh()

    def refresh(self) -> None:
        self.picture = None
        self.update()

    def band_ticks(self) -> List[Tuple[float, float]]:
        """(position in view coordinates, volume) for each tick of the band."""
        if self.volume_item is None:
            return []
        geometry = self.volume_item.band_geometry()
        if geometry is None:
            return []
        bottom, height, volume_max = geometry
        raw_step = volume_max / max(1, self.tick_count)
        if raw_step <= 0 or height <= 0:
            return []
        base = float(10 ** np.floor(np.log10(raw_step)))
        for mult in (1, 2, 5, 10):
            step = base * mult
            if step >= raw_step:
                break
        ticks = []
        current = 0.0
        while current <= volume_max * (1 + 1e-9):
            ticks.append((float(bottom + (current / volume_max) * height), float(current)))
            current += step
        return ticks

    def tickValues(self, minVal, maxVal, size):
        ticks = self.band_ticks()
        self._labels = {pos: f'{vol:.0f}' for pos, vol in ticks}
        return [(1.0, [pos for pos, _ in ticks])]

    def tickStrings(self, values, scale, spacing):
        return [self._labels.get(v, '') for v in values]


def update_volume_histogram(
    plot_widget: pg.PlotWidget,
    volume_item: Optional[VolumeHistogramItem],
    color: QColor,
    x_vals: Union[List[float], np.ndarray],
    vol_vals: Union[List[float], np.ndarray],
    volume_height_ratio: float = 0.2,
    bar_width: float = 0.5,
) -> Optional[VolumeHistogramItem]:
    if x_vals is None or vol_vals is None or len(x_vals) == 0:
        if volume_item is not None:
            try:
                plot_widget.removeItem(volume_item)
            except Exception:
                pass
        return None
    if volume_item is None:
        volume_item = VolumeHistogramItem(
            color=QColor(color),
            bar_width=bar_width,
            volume_height_ratio=volume_height_ratio,
        )
        volume_item.setZValue(-10)
        plot_widget.addItem(volume_item)
        (x_range, y_range) = plot_widget.getViewBox().viewRange()
        volume_item.set_view_bounds(x_range[0], x_range[1], y_range[0], y_range[1])
    volume_item.set_arrays(x_vals, vol_vals)
    return volume_item
