"""Logging setup for hosts embedding the live file engine.

Hosts normally call :func:`configure_logging` once with their
:class:`~livefile.settings.LiveFileSettings`; :func:`livefile.bootstrap.bootstrap`
does so on their behalf. The log file lives under ``~/.livefile/logs`` unless
``LIVEFILE_LOG_DIR`` or an explicit ``log_dir`` points elsewhere.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..settings import LiveFileSettings

__all__ = ["configure_logging", "setup_logging", "get_log_path"]

_DEFAULT_LOG_DIR = Path.home() / ".livefile" / "logs"
_LOG_FILENAME = "livefile.log"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
# Loggers that flood DEBUG output while the qasync loop is running.
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_CONFIGURED = False
_LOG_PATH: Path | None = None
_HANDLERS: list[logging.Handler] = []


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install a rotating log file (and optionally a console stream) on the root logger.

    Once configured, later calls keep the existing handlers and only move
    them to ``level``. Pass ``force`` to rebuild the handlers, e.g. to switch
    ``log_dir``.
    """

    global _CONFIGURED, _LOG_PATH
    if _CONFIGURED and not force and _LOG_PATH is not None:
        _apply_level(level)
        return _LOG_PATH

    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILENAME

    _HANDLERS[:] = _build_handlers(log_path, console=console, max_bytes=max_bytes, backup_count=backup_count)
    logging.basicConfig(level=level, handlers=_HANDLERS, force=True)
    logging.captureWarnings(True)
    _apply_level(level)

    _CONFIGURED = True
    _LOG_PATH = log_path
    return log_path


def configure_logging(
    settings: LiveFileSettings | None = None,
    *,
    force: bool = False,
    log_dir: Path | str | None = None,
    console: bool = True,
) -> Path:
    """Configure logging at DEBUG when ``settings.debug_logging`` is set, INFO otherwise."""

    debug = bool(settings is not None and settings.debug_logging)
    level = logging.DEBUG if debug else logging.INFO
    log_path = setup_logging(level, log_dir=log_dir, console=console, force=force)
    logging.getLogger(__name__).debug(
        "Logging configured (level=%s, file=%s)", logging.getLevelName(level), log_path
    )
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, if logging was configured."""

    return _LOG_PATH


def _build_handlers(
    log_path: Path, *, console: bool, max_bytes: int, backup_count: int
) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _apply_level(level: int) -> None:
    logging.getLogger().setLevel(level)
    for handler in _HANDLERS:
        handler.setLevel(level)
    quiet_level = max(level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    return Path(log_dir or os.environ.get("LIVEFILE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
