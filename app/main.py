import argparse
import os
import faulthandler
import sys
import traceback
from typing import Optional

import numpy as np
from PyQt6.QtWidgets import QApplication

from core.config import DEFAULT_GRANULARITY
from core.models import Granularity, ViewState
from core.view_state import ChartController
from ui.main_window import MainWindow

_FAULT_LOG_HANDLE = None


def _install_exception_logging() -> None:
    log_path = os.path.join(os.path.dirname(__file__), "exception.log")
    def _hook(exc_type, exc_value, exc_tb):
        try:
            with open(log_path, "a", encoding="utf-8") as handle:
                handle.write("\n=== Unhandled Exception ===\n")
                traceback.print_exception(exc_type, exc_value, exc_tb, file=handle)
        except Exception:
            pass
    sys.excepthook = _hook
    try:
        import threading
        def _thread_hook(args):
            _hook(args.exc_type, args.exc_value, args.exc_traceback)
        threading.excepthook = _thread_hook
    except Exception:
        pass


def _enable_faulthandler() -> None:
    global _FAULT_LOG_HANDLE
    try:
        log_path = os.path.join(os.path.dirname(__file__), "faulthandler.log")
        # Overwrite each run so the log reflects the current crash only.
        _FAULT_LOG_HANDLE = open(log_path, "w", encoding="utf-8")
        _FAULT_LOG_HANDLE.write(f"pid={os.getpid()}\n")
        _FAULT_LOG_HANDLE.flush()
        faulthandler.enable(_FAULT_LOG_HANDLE, all_threads=True)
    except Exception:
        faulthandler.enable(all_threads=True)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Synthetic candlestick chart.")
    ap.add_argument(
        "--granularity",
        default=DEFAULT_GRANULARITY,
        help="Initial interval: " + ", ".join(g.value for g in Granularity) + " (unknown values fall back to day)",
    )
    ap.add_argument("--seed", type=int, default=None, help="Seed the price generator for a reproducible series.")
    ap.add_argument("--width", type=int, default=None, help="Minimum chart canvas width in pixels.")
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _enable_faulthandler()
    _install_exception_logging()
    rng = np.random.default_rng(args.seed) if args.seed is not None else None
    controller = ChartController(rng=rng, state=ViewState(granularity=Granularity.coerce(args.granularity)))

    app = QApplication(sys.argv[:1])
    qss_path = os.path.join(os.path.dirname(__file__), 'ui', 'app.qss')
    if os.path.exists(qss_path):
        with open(qss_path, 'r', encoding='utf-8') as handle:
            app.setStyleSheet(handle.read())
    window = MainWindow(controller=controller, width=args.width)
    window.show()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
