from typing import Optional

from PyQt6.QtWidgets import QMainWindow, QVBoxLayout, QLabel, QWidget
from PyQt6.QtCore import Qt

from core.view_state import ChartController
from .chart_view import ChartView


class MainWindow(QMainWindow):
    def __init__(self, controller: Optional[ChartController] = None, width: Optional[int] = None) -> None:
        super().__init__()
        self.setWindowTitle('Candlestick Chart Example')
        self.resize(1200, 640)

        self.chart_view = ChartView(controller=controller, width=width)

        central = QWidget()
        central.setObjectName('AppContainer')
        central_layout = QVBoxLayout(central)
        central_layout.setContentsMargins(12, 12, 12, 12)
        central_layout.setSpacing(8)
        title = QLabel('Candlestick Chart Example')
        title.setObjectName('ChartTitle')
        title.setAlignment(Qt.AlignmentFlag.AlignHCenter)
        central_layout.addWidget(title)
        central_layout.addWidget(self.chart_view)
        self.setCentralWidget(central)

    def closeEvent(self, event) -> None:
        try:
            self.chart_view.shutdown()
        except Exception:
            pass
        super().closeEvent(event)
