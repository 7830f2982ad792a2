"""Qt bindings: application focus bridge and the qasync event loop.

PySide6 and qasync are optional; both are imported lazily so the core
package works without a desktop stack.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .focus import FocusSignal

__all__ = ["QtFocusSource", "install_event_loop"]

LOGGER = logging.getLogger(__name__)


def _require_qt() -> Any:
    try:  # Local import to avoid mandatory PySide6 dependency at import time.
        from PySide6 import QtCore, QtGui
    except ImportError as exc:  # pragma: no cover - depends on desktop stack
        raise RuntimeError(
            "PySide6 must be installed to bridge Qt focus changes (pip install livefile[qt])."
        ) from exc
    return QtCore, QtGui


class QtFocusSource:
    """Forwards ``QGuiApplication.applicationStateChanged`` into a :class:`FocusSignal`.

    ``Qt.ApplicationActive`` counts as focused; every other state (inactive,
    hidden, suspended) counts as blurred.
    """

    def __init__(self, signal: FocusSignal, app: Any | None = None) -> None:
        self._signal = signal
        self._app = app
        self._attached = False

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> None:
        if self._attached:
            return
        QtCore, QtGui = _require_qt()
        app = self._app or QtGui.QGuiApplication.instance()
        if app is None:
            raise RuntimeError("A QGuiApplication must exist before attaching the focus source.")
        self._app = app
        self._active_state = QtCore.Qt.ApplicationState.ApplicationActive
        app.applicationStateChanged.connect(self._on_state_changed)
        self._attached = True
        LOGGER.debug("QtFocusSource attached")

    def detach(self) -> None:
        if not self._attached:
            return
        try:
            self._app.applicationStateChanged.disconnect(self._on_state_changed)
        except (RuntimeError, TypeError):  # pragma: no cover - app already torn down
            LOGGER.debug("QtFocusSource: signal already disconnected")
        self._attached = False
        LOGGER.debug("QtFocusSource detached")

    def _on_state_changed(self, state: Any) -> None:
        self._signal.notify(state == self._active_state)


def install_event_loop(app: Any) -> asyncio.AbstractEventLoop:
    """Install a qasync loop on ``app`` so focus refreshes can schedule tasks."""

    try:
        from qasync import QEventLoop
    except ImportError as exc:  # pragma: no cover - depends on env setup
        raise RuntimeError("qasync is required to run the async Qt event loop.") from exc

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    try:
        app.aboutToQuit.connect(loop.stop)
    except AttributeError:  # pragma: no cover - in case of mock QApplication
        pass
    return loop
