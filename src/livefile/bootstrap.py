"""Assemble the live file stack for a host application.

``bootstrap`` loads settings, configures logging from them, and wires one
event bus, gateway, focus signal and controller together. Qt hosts then
attach a :class:`~livefile.qt.QtFocusSource` to ``runtime.focus_signal``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping

from .controller import ReconciliationController
from .events import EventBus
from .focus import FocusSignal
from .gateway import PairingGateway
from .handles import LocalFileHandle
from .models import LiveFileId
from .settings import LiveFileSettings, load_settings
from .utils.logging import configure_logging

__all__ = ["LiveFileRuntime", "bootstrap"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class LiveFileRuntime:
    """The wired services backing one buffer."""

    settings: LiveFileSettings
    event_bus: EventBus
    gateway: PairingGateway
    focus_signal: FocusSignal
    controller: ReconciliationController
    log_path: Path | None = None

    async def open_path(self, path: Path | str) -> LiveFileId | None:
        """Pair a local file using the handle options from ``settings``."""

        return await self.controller.pair(LocalFileHandle.from_settings(path, self.settings))

    def shutdown(self) -> None:
        self.controller.close()
        self.controller.dispose()


def bootstrap(
    *,
    set_buffer_text: Callable[[str], None],
    buffer_text: str | None = None,
    settings: LiveFileSettings | None = None,
    settings_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    log_dir: Path | str | None = None,
    console: bool = True,
    configure_logs: bool = True,
    replace_live_file_id: Callable[[LiveFileId], None] | None = None,
) -> LiveFileRuntime:
    """Build a :class:`LiveFileRuntime`.

    Args:
        set_buffer_text: Callback replacing the buffer's text.
        buffer_text: Current buffer text, if already known.
        settings: Explicit settings; loaded from ``settings_path`` (or the
            default location) when omitted.
        settings_path: Settings file to load when ``settings`` is omitted.
        overrides: Field overrides applied on top of the loaded settings.
        log_dir: Directory for the rotating log file.
        console: Also log to stderr.
        configure_logs: Set to False when the host owns logging setup.
        replace_live_file_id: Notified with the new identifier after pairing.
    """

    active = settings or load_settings(settings_path, overrides=overrides)
    log_path = configure_logging(active, log_dir=log_dir, console=console) if configure_logs else None

    event_bus = EventBus()
    gateway = PairingGateway(event_bus)
    focus_signal = FocusSignal(event_bus)
    controller = ReconciliationController(
        gateway,
        set_buffer_text=set_buffer_text,
        buffer_text=buffer_text,
        settings=active,
        focus_signal=focus_signal,
        replace_live_file_id=replace_live_file_id,
    )
    LOGGER.debug("Live file runtime ready (debug_logging=%s)", active.debug_logging)
    return LiveFileRuntime(
        settings=active,
        event_bus=event_bus,
        gateway=gateway,
        focus_signal=focus_signal,
        controller=controller,
        log_path=log_path,
    )
