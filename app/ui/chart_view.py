from typing import Optional

import pyqtgraph as pg
from PyQt6.QtWidgets import QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QComboBox, QLabel
from PyQt6.QtGui import QColor, QLinearGradient, QBrush, QFont
from PyQt6.QtCore import Qt, pyqtSignal

from core.models import Series, ViewState
from core.presentation import ChartLayout, GRANULARITY_OPTIONS, tooltip_lines
from core.view_state import ChartController
from .theme import theme
from .charts.candlestick_chart import CandlestickChart, DateIndexAxis
from .charts.volume_histogram import VolumeAxis


class TimeScaleViewBox(pg.ViewBox):
    """Turns wheel steps into zoom requests instead of scaling the view directly."""

    zoomRequested = pyqtSignal(int)

    def wheelEvent(self, ev, axis=None) -> None:
        if ev is None:
            return
        try:
            delta = ev.angleDelta().y()
        except Exception:
            delta = ev.delta() if hasattr(ev, "delta") else 0
        if delta == 0:
            return
        self.zoomRequested.emit(1 if delta > 0 else -1)
        ev.accept()


class ChartView(QWidget):
    def __init__(self, controller: Optional[ChartController] = None, width: Optional[int] = None) -> None:
        super().__init__()
        self.controller = controller if controller is not None else ChartController()
        self.chart_layout = ChartLayout()
        self._rendered_series: Optional[Series] = None
        self._applied_zoom: Optional[float] = None

        layout = QVBoxLayout(self)
        margin = self.chart_layout.margin
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.toolbar = QWidget()
        self.toolbar.setObjectName('TopToolbar')
        toolbar_layout = QHBoxLayout(self.toolbar)
        toolbar_layout.setContentsMargins(6, 6, 6, 4)
        toolbar_layout.setSpacing(6)
        toolbar_layout.addStretch(1)

        self.granularity_box = QComboBox()
        for label, value in GRANULARITY_OPTIONS:
            self.granularity_box.addItem(label, value)
        self.granularity_box.setMinimumHeight(22)
        toolbar_layout.addWidget(self.granularity_box)

        self.zoom_in_button = QPushButton('+')
        self.zoom_out_button = QPushButton('-')
        for button in (self.zoom_in_button, self.zoom_out_button):
            button.setObjectName('ZoomButton')
            button.setFixedSize(30, 30)
            toolbar_layout.addWidget(button)
        layout.addWidget(self.toolbar)

        self.view_box = TimeScaleViewBox()
        self.date_axis = DateIndexAxis(orientation='bottom')
        self.volume_axis = VolumeAxis(orientation='left', tick_count=5)
        self.plot_widget = pg.PlotWidget(
            viewBox=self.view_box,
            axisItems={'bottom': self.date_axis, 'left': self.volume_axis},
        )
        gradient = QLinearGradient(0, 0, 0, 1)
        gradient.setCoordinateMode(QLinearGradient.CoordinateMode.ObjectBoundingMode)
        gradient.setColorAt(0.0, QColor(theme.BG_TOP))
        gradient.setColorAt(1.0, QColor(theme.BG_BOTTOM))
        self.plot_widget.setBackground(QBrush(gradient))
        self.plot_widget.showGrid(x=True, y=True, alpha=0.2)
        self.plot_widget.showAxis('right')
        self.plot_widget.showAxis('left')
        self.plot_widget.setFixedHeight(self.chart_layout.height)
        if width is not None:
            self.plot_widget.setMinimumWidth(int(width))
        self.plot_widget.getPlotItem().setContentsMargins(
            margin['left'], margin['top'], margin['right'], margin['bottom']
        )
        self._apply_axis_style()
        layout.addWidget(self.plot_widget)
        layout.addStretch(1)

        self.tooltip = QLabel(self.plot_widget)
        self.tooltip.setObjectName('HoverTooltip')
        self.tooltip.setStyleSheet(
            f'background-color: {theme.TOOLTIP_BG}; color: {theme.TEXT}; padding: 5px; border-radius: 5px;'
        )
        self.tooltip.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.tooltip.move(10, 10)
        self.tooltip.hide()

        self.candles = CandlestickChart(
            self.plot_widget,
            layout=self.chart_layout,
            bar_lookup=self.controller.bar_at,
            hover_callback=self.controller.on_hover,
        )

        self.granularity_box.currentIndexChanged.connect(self._on_granularity_changed)
        self.zoom_in_button.clicked.connect(self.controller.zoom_in)
        self.zoom_out_button.clicked.connect(self.controller.zoom_out)
        self.view_box.zoomRequested.connect(self._on_wheel_zoom)
        self._unsubscribe = self.controller.subscribe(self._on_state_changed)
        self._on_state_changed(self.controller.state)

    def _apply_axis_style(self) -> None:
        axis_pen = pg.mkPen(theme.TEXT)
        text_pen = pg.mkPen(theme.TEXT)
        font = QFont()
        font.setPointSize(8)
        for axis_name in ('left', 'bottom', 'right'):
            axis = self.plot_widget.getAxis(axis_name)
            axis.setPen(axis_pen)
            axis.setTextPen(text_pen)
            axis.setTickFont(font)

    def _on_granularity_changed(self, index: int) -> None:
        value = self.granularity_box.itemData(index)
        self.controller.set_granularity(value)

    def _on_wheel_zoom(self, direction: int) -> None:
        if direction > 0:
            self.controller.zoom_in()
        else:
            self.controller.zoom_out()

    def _on_state_changed(self, state: ViewState) -> None:
        series = self.controller.series
        series_changed = series is not self._rendered_series
        if series_changed:
            self.candles.set_series(series)
            self._rendered_series = series
        self._sync_granularity_box(state)
        # Hover-only updates leave the window alone so a manual pan survives.
        if series_changed or state.zoom_level != self._applied_zoom:
            self.candles.set_window(
                self.controller.visible_window(),
                self.controller.price_extents(),
                self.controller.volume_extents(),
            )
            self._applied_zoom = state.zoom_level
        self._update_tooltip(state)

    def _sync_granularity_box(self, state: ViewState) -> None:
        idx = self.granularity_box.findData(state.granularity.value)
        if idx >= 0 and idx != self.granularity_box.currentIndex():
            self.granularity_box.blockSignals(True)
            self.granularity_box.setCurrentIndex(idx)
            self.granularity_box.blockSignals(False)

    def _update_tooltip(self, state: ViewState) -> None:
        bar = state.hovered_bar
        if bar is None:
            self.tooltip.hide()
            return
        self.tooltip.setText('\n'.join(tooltip_lines(bar)))
        self.tooltip.adjustSize()
        self.tooltip.show()
        self.tooltip.raise_()

    def shutdown(self) -> None:
        self._unsubscribe()
