"""
Convenience package shim.

Like `core`, the Qt widgets live under `app/ui`. This shim makes `import ui.*`
work from repo-root tools.
"""

from __future__ import annotations

import os

_HERE = os.path.abspath(os.path.dirname(__file__))
_APP_UI = os.path.normpath(os.path.join(_HERE, "..", "app", "ui"))

if os.path.isdir(_APP_UI):
    __path__.append(_APP_UI)  # type: ignore[name-defined]
