from typing import Callable, Optional, Tuple

import numpy as np
import pyqtgraph as pg
from PyQt6.QtCore import Qt, QRectF, QPointF, QTimer
from PyQt6.QtGui import QColor, QFont, QPainter, QPicture

from core.models import Bar, Series
from core.presentation import ChartLayout, close_color, format_date, format_price
from core.series_generator import series_to_array
from ..theme import theme
from .volume_histogram import update_volume_histogram, VolumeAxis, VolumeHistogramItem

HoverCallback = Callable[[Optional[Bar]], None]
BarLookup = Callable[[float], Optional[Bar]]

COLOR_MAP = {'green': theme.UP, 'red': theme.DOWN}


class CandlestickItem(pg.GraphicsObject):
    def __init__(self, bar_width: float = 0.5) -> None:
        super().__init__()
        self.bar_width = float(bar_width)
        self.series: Series = ()
        self.picture = QPicture()
        self._cached_bounds = QRectF(0, 0, 1, 1)
        self._pens = {key: pg.mkPen(QColor(val), width=1) for key, val in COLOR_MAP.items()}
        self._brushes = {key: pg.mkBrush(QColor(val)) for key, val in COLOR_MAP.items()}

    def set_data(self, series: Series) -> None:
        self.prepareGeometryChange()
        self.series = tuple(series)
        self.generate_picture()
        try:
            self.informViewBoundsChanged()
            self.update()
        except RuntimeError:
            pass

    def generate_picture(self) -> None:
        self.picture = QPicture()
        if not self.series:
            self._cached_bounds = QRectF(0, 0, 1, 1)
            return
        w = self.bar_width / 2.0
        painter = QPainter(self.picture)
        try:
            for idx, bar in enumerate(self.series):
                key = close_color(bar)
                painter.setPen(self._pens[key])
                painter.setBrush(self._brushes[key])
                if bar.high != bar.low:
                    painter.drawLine(QPointF(idx, bar.low), QPointF(idx, bar.high))
                body_bottom = min(bar.open, bar.close)
                body_height = max(bar.open, bar.close) - body_bottom
                if body_height > 0:
                    painter.drawRect(QRectF(idx - w, body_bottom, w * 2, body_height))
                else:
                    painter.drawLine(QPointF(idx - w, bar.close), QPointF(idx + w, bar.close))
        finally:
            painter.end()
        y_min = min(b.low for b in self.series)
        y_max = max(b.high for b in self.series)
        self._cached_bounds = QRectF(-w, y_min, len(self.series) - 1 + 2 * w, y_max - y_min)

    def paint(self, painter: QPainter, option, widget) -> None:
        if not self.series:
            return
        try:
            painter.drawPicture(0, 0, self.picture)
        except RuntimeError:
            pass

    def boundingRect(self) -> QRectF:
        return self._cached_bounds


def _whole_values(values) -> list[float]:
    out = []
    for v in values:
        nearest = round(float(v))
        if abs(float(v) - nearest) <= 1e-6 and float(nearest) not in out:
            out.append(float(nearest))
    return out


class DateIndexAxis(pg.AxisItem):
    """Bottom axis of the discontinuous scale: index positions labelled with bar dates."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._timestamps: list[float] = []

    def set_timestamps(self, timestamps: list[float]) -> None:
        self._timestamps = list(timestamps)
        self.picture = None
        self.update()

    def label_for(self, value: float) -> str:
        try:
            idx = int(round(float(value)))
        except (ValueError, TypeError, OverflowError):
            return ''
        if abs(float(value) - idx) > 1e-6 or idx < 0 or idx >= len(self._timestamps):
            return ''
        return format_date(self._timestamps[idx])

    def tickValues(self, minVal, maxVal, size):
        levels = super().tickValues(minVal, maxVal, size)
        # Only whole indices map to a bar.
        whole_levels = [(spacing, _whole_values(values)) for spacing, values in levels]
        out = [(spacing, values) for spacing, values in whole_levels if spacing >= 1 and values]
        if out:
            return out
        # Zoomed in below one bar per major tick: label every whole index in view.
        merged = sorted({v for _, values in whole_levels for v in values})
        return [(1.0, merged)] if merged else []

    def tickStrings(self, values, scale, spacing):
        return [self.label_for(v) for v in values]


class CandlestickChart:
    def __init__(
        self,
        plot_widget: pg.PlotWidget,
        layout: Optional[ChartLayout] = None,
        bar_lookup: Optional[BarLookup] = None,
        hover_callback: Optional[HoverCallback] = None,
    ) -> None:
        self.plot_widget = plot_widget
        self.layout = layout if layout is not None else ChartLayout()
        self.bar_lookup = bar_lookup
        self.hover_callback = hover_callback
        self.series: Series = ()
        self.volume_item: Optional[VolumeHistogramItem] = None
        self.empty_label: Optional[pg.QtWidgets.QGraphicsTextItem] = None
        self.crosshair_v: Optional[pg.InfiniteLine] = None
        self.crosshair_h: Optional[pg.InfiniteLine] = None
        self.cursor_time_label: Optional[pg.TextItem] = None
        self.cursor_price_label: Optional[pg.TextItem] = None
        self._pending_mouse_pos = None
        self._mouse_move_timer = QTimer()
        self._mouse_move_timer.setSingleShot(True)
        self._mouse_move_timer.timeout.connect(self._flush_mouse_move)
        self._mouse_move_delay_ms = 30

        self.plot_widget.setClipToView(True)
        try:
            self.plot_widget.setCursor(Qt.CursorShape.CrossCursor)
        except Exception:
            pass
        view_box = self.plot_widget.getViewBox()
        if view_box is not None:
            view_box.enableAutoRange('x', False)
            view_box.enableAutoRange('y', False)
            view_box.setMouseEnabled(x=True, y=False)
            view_box.setMenuEnabled(False)
            view_box.sigRangeChanged.connect(self._on_view_changed)
        self.plot_widget.scene().sigMouseMoved.connect(self._on_mouse_moved)

        self.item = CandlestickItem(bar_width=self.layout.candle_width_ratio)
        self.plot_widget.addItem(self.item)
        self._show_empty_state()

    def date_axis(self) -> Optional[DateIndexAxis]:
        axis = self.plot_widget.getAxis('bottom')
        return axis if isinstance(axis, DateIndexAxis) else None

    def volume_axis(self) -> Optional[VolumeAxis]:
        axis = self.plot_widget.getAxis('left')
        return axis if isinstance(axis, VolumeAxis) else None

    def volume_ratio(self) -> float:
        return self.layout.volume_height / self.layout.grid_height

    def set_series(self, series: Series) -> None:
        self.series = tuple(series)
        self.item.set_data(self.series)
        arr = series_to_array(self.series)
        axis = self.date_axis()
        if axis is not None:
            axis.set_timestamps(arr[:, 0].tolist())
        x_vals = np.arange(len(self.series), dtype=np.float64)
        self.volume_item = update_volume_histogram(
            self.plot_widget,
            self.volume_item,
            pg.mkColor(theme.VOLUME),
            x_vals,
            arr[:, 5],
            volume_height_ratio=self.volume_ratio(),
            bar_width=self.layout.candle_width_ratio,
        )
        volume_axis = self.volume_axis()
        if volume_axis is not None:
            volume_axis.set_volume_item(self.volume_item)
        if self.series:
            self._hide_empty_state()
        else:
            self._hide_crosshair()
            self._show_empty_state()

    def set_window(
        self,
        window: Tuple[float, float],
        price_extents: Optional[Tuple[float, float]],
        volume_extents: Optional[Tuple[float, float]] = None,
    ) -> None:
        lo, hi = window
        if not self.series or hi <= lo:
            return
        if self.volume_item is not None:
            self.volume_item.set_volume_scale(volume_extents[1] if volume_extents is not None else None)
        pad = self.layout.candle_width_ratio
        self.plot_widget.setXRange(lo - pad, hi + pad, padding=0)
        if price_extents is not None:
            y_min, y_max = price_extents
            span = max(y_max - y_min, 1e-6)
            # Leave the bottom band free for the volume panel.
            ratio = self.volume_ratio()
            band = span * ratio / (1.0 - ratio)
            self.plot_widget.setYRange(y_min - band, y_max + span * 0.02, padding=0)
        self._on_view_changed()

    def _on_view_changed(self) -> None:
        if self.volume_item is None:
            return
        view_box = self.plot_widget.getViewBox()
        if view_box is None:
            return
        (x_range, y_range) = view_box.viewRange()
        self.volume_item.set_view_bounds(x_range[0], x_range[1], y_range[0], y_range[1])
        volume_axis = self.volume_axis()
        if volume_axis is not None:
            volume_axis.refresh()

    def hover_at(self, x: float) -> Optional[Bar]:
        bar = self.bar_lookup(x) if self.bar_lookup is not None and self.series else None
        if self.hover_callback is not None:
            self.hover_callback(bar)
        return bar

    def _show_empty_state(self) -> None:
        if self.empty_label is None:
            self.empty_label = pg.QtWidgets.QGraphicsTextItem()
            self.empty_label.setDefaultTextColor(QColor(theme.MUTED))
            self.empty_label.setZValue(20)
            self.empty_label.setPlainText('Loading...')
            self.plot_widget.getPlotItem().scene().addItem(self.empty_label)
        scene_rect = self.plot_widget.getPlotItem().sceneBoundingRect()
        label_rect = self.empty_label.boundingRect()
        x = scene_rect.center().x() - (label_rect.width() / 2.0)
        y = scene_rect.center().y() - (label_rect.height() / 2.0)
        self.empty_label.setPos(x, y)
        self.empty_label.show()

    def _hide_empty_state(self) -> None:
        if self.empty_label is not None:
            self.empty_label.hide()

    def _ensure_crosshair(self) -> None:
        if self.crosshair_v is None:
            pen = pg.mkPen(QColor(theme.CROSSHAIR), width=1)
            pen.setStyle(Qt.PenStyle.DashLine)
            self.crosshair_v = pg.InfiniteLine(angle=90, pen=pen)
            self.crosshair_v.setZValue(55)
            self.plot_widget.addItem(self.crosshair_v, ignoreBounds=True)
        if self.crosshair_h is None:
            pen = pg.mkPen(QColor(theme.CROSSHAIR), width=1)
            pen.setStyle(Qt.PenStyle.DashLine)
            self.crosshair_h = pg.InfiniteLine(angle=0, pen=pen)
            self.crosshair_h.setZValue(55)
            self.plot_widget.addItem(self.crosshair_h, ignoreBounds=True)
        font = QFont()
        font.setPointSize(8)
        if self.cursor_time_label is None:
            self.cursor_time_label = pg.TextItem(color=theme.TEXT, fill=pg.mkBrush(QColor(0, 0, 0, 180)), anchor=(0.5, 1.0))
            self.cursor_time_label.setFont(font)
            self.cursor_time_label.setZValue(60)
            self.plot_widget.addItem(self.cursor_time_label, ignoreBounds=True)
        if self.cursor_price_label is None:
            self.cursor_price_label = pg.TextItem(color=theme.TEXT, fill=pg.mkBrush(QColor(0, 0, 0, 180)), anchor=(1.0, 0.5))
            self.cursor_price_label.setFont(font)
            self.cursor_price_label.setZValue(60)
            self.plot_widget.addItem(self.cursor_price_label, ignoreBounds=True)

    def _update_crosshair(self, x: float, y: float) -> None:
        self._ensure_crosshair()
        idx = int(round(x))
        snapped_x = float(min(max(idx, 0), len(self.series) - 1)) if self.series else x
        self.crosshair_v.setValue(snapped_x)
        self.crosshair_h.setValue(y)
        self.crosshair_v.show()
        self.crosshair_h.show()
        (x_range, y_range) = self.plot_widget.getViewBox().viewRange()
        axis = self.date_axis()
        time_text = axis.label_for(snapped_x) if axis is not None else ''
        self.cursor_time_label.setText(time_text)
        self.cursor_time_label.setPos(snapped_x, y_range[0])
        self.cursor_time_label.setVisible(bool(time_text))
        self.cursor_price_label.setText(format_price(y))
        self.cursor_price_label.setPos(x_range[1], y)
        self.cursor_price_label.show()

    def _hide_crosshair(self) -> None:
        for item in (self.crosshair_v, self.crosshair_h, self.cursor_time_label, self.cursor_price_label):
            if item is not None:
                item.hide()

    def _on_mouse_moved(self, scene_pos) -> None:
        self._pending_mouse_pos = scene_pos
        if self._mouse_move_timer.isActive():
            return
        self._mouse_move_timer.start(self._mouse_move_delay_ms)

    def _flush_mouse_move(self) -> None:
        scene_pos = self._pending_mouse_pos
        if scene_pos is None:
            return
        view_box = self.plot_widget.getPlotItem().getViewBox()
        if view_box is None:
            return
        if not self.series or not view_box.sceneBoundingRect().contains(scene_pos):
            self._hide_crosshair()
            self.hover_at(float('nan'))
            return
        view_pos = view_box.mapSceneToView(scene_pos)
        self._update_crosshair(view_pos.x(), view_pos.y())
        self.hover_at(view_pos.x())
