"""Capability handles granting read/write access to one external file.

The reconciliation engine accepts any object satisfying :class:`FileHandle`.
:class:`LocalFileHandle` is the bundled implementation for files on the
local filesystem.
"""

from __future__ import annotations

import asyncio
import codecs
import locale
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from .settings import LiveFileSettings

__all__ = [
    "PermissionMode",
    "PermissionState",
    "FileHandle",
    "LocalFileHandle",
    "is_file_handle",
    "read_text",
    "write_text",
]

LOGGER = logging.getLogger(__name__)

_BOM_MAP: dict[bytes, str] = {
    codecs.BOM_UTF8: "utf-8-sig",
    codecs.BOM_UTF32_LE: "utf-32",
    codecs.BOM_UTF32_BE: "utf-32",
    codecs.BOM_UTF16_LE: "utf-16",
    codecs.BOM_UTF16_BE: "utf-16",
}


class PermissionMode(str, Enum):
    READ = "read"
    READWRITE = "readwrite"


class PermissionState(str, Enum):
    """Result of a permission query, mirroring platform permission prompts."""

    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


@runtime_checkable
class FileHandle(Protocol):
    """Minimal capability surface the pairing gateway relies on."""

    @property
    def name(self) -> str:  # pragma: no cover - Protocol placeholder
        """Display name of the underlying resource."""

    async def query_permission(self, mode: PermissionMode = PermissionMode.READWRITE) -> PermissionState:
        """Report the current permission without prompting."""

    async def request_permission(self, mode: PermissionMode = PermissionMode.READWRITE) -> PermissionState:
        """Ask for permission, prompting the user where the platform supports it."""

    async def read_text(self) -> str:
        """Return the full text of the resource."""

    async def write_text(self, text: str) -> None:
        """Replace the full text of the resource."""


def is_file_handle(candidate: object) -> bool:
    """Return True when ``candidate`` exposes the full :class:`FileHandle` surface."""

    return isinstance(candidate, FileHandle)


class LocalFileHandle:
    """A :class:`FileHandle` backed by a path on the local filesystem.

    Permission is granted while the file exists, is readable and writable
    by this process, and the handle has not been revoked. Blocking I/O runs
    in a worker thread so the event loop stays responsive.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        encoding: str | None = None,
        newline: str = "\n",
        atomic: bool = True,
    ) -> None:
        self._path = Path(path).expanduser()
        self._encoding = encoding
        self._newline = newline
        self._atomic = atomic
        self._revoked = False

    @classmethod
    def from_settings(cls, path: Path | str, settings: LiveFileSettings) -> LocalFileHandle:
        """Build a handle whose encoding, newline and write policy follow ``settings``."""

        return cls(
            path,
            encoding=settings.encoding,
            newline=settings.newline,
            atomic=settings.atomic_writes,
        )

    def __repr__(self) -> str:
        return f"LocalFileHandle({str(self._path)!r})"

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def revoked(self) -> bool:
        return self._revoked

    def revoke(self) -> None:
        """Withdraw access, as a platform would when the user revokes a grant."""

        self._revoked = True
        LOGGER.debug("LocalFileHandle.revoke: %s", self._path)

    async def query_permission(self, mode: PermissionMode = PermissionMode.READWRITE) -> PermissionState:
        return self._check_permission(PermissionMode(mode))

    async def request_permission(self, mode: PermissionMode = PermissionMode.READWRITE) -> PermissionState:
        # Local files cannot prompt; a request reports the same answer as a query.
        return self._check_permission(PermissionMode(mode))

    async def read_text(self) -> str:
        self._ensure_not_revoked()
        return await asyncio.to_thread(read_text, self._path, encoding=self._encoding)

    async def write_text(self, text: str) -> None:
        self._ensure_not_revoked()
        await asyncio.to_thread(
            write_text,
            self._path,
            text,
            encoding=self._encoding or "utf-8",
            newline=self._newline,
            atomic=self._atomic,
        )

    def _check_permission(self, mode: PermissionMode) -> PermissionState:
        if self._revoked:
            return PermissionState.DENIED
        if not self._path.is_file():
            return PermissionState.DENIED
        flags = os.R_OK if mode is PermissionMode.READ else os.R_OK | os.W_OK
        if not os.access(self._path, flags):
            return PermissionState.DENIED
        return PermissionState.GRANTED

    def _ensure_not_revoked(self) -> None:
        if self._revoked:
            raise PermissionError(f"Access to {self._path.name} was revoked")


# -----------------------------------------------------------------------------
# Text helpers
# -----------------------------------------------------------------------------


def read_text(
    path: Path | str,
    *,
    encoding: str | None = None,
    errors: str = "strict",
    normalize_newlines: bool = True,
) -> str:
    """Read a text file with encoding detection and optional newline normalization."""

    raw = Path(path).read_bytes()
    text = raw.decode(encoding or _detect_encoding(raw), errors=errors)
    if text.startswith("\ufeff"):
        text = text[1:]
    return _normalize_newlines(text) if normalize_newlines else text


def write_text(
    path: Path | str,
    content: str,
    *,
    encoding: str = "utf-8",
    newline: str = "\n",
    atomic: bool = True,
) -> Path:
    """Write ``content`` replacing the file, atomically unless told otherwise."""

    target = Path(path)
    normalized = _apply_newline_policy(content, newline)
    if not atomic:
        with target.open("w", encoding=encoding, newline="") as handle:
            handle.write(normalized)
            handle.flush()
            os.fsync(handle.fileno())
        return target

    descriptor, tmp_name = tempfile.mkstemp(
        dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(descriptor, "w", encoding=encoding, newline="") as handle:
            handle.write(normalized)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    finally:
        if os.path.exists(tmp_name):  # pragma: no cover - cleanup path
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
    return target


def _detect_encoding(raw: bytes) -> str:
    for bom, encoding in _BOM_MAP.items():
        if raw.startswith(bom):
            return encoding

    preferred = locale.getpreferredencoding(False) or "utf-8"
    seen: set[str] = set()
    for candidate in ("utf-8", preferred):
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        try:
            raw.decode(candidate)
            return candidate
        except UnicodeDecodeError:
            continue
    # Undecodable bytes surface as a read failure rather than mojibake.
    return "utf-8"


def _normalize_newlines(text: str) -> str:
    if "\r" not in text:
        return text
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _apply_newline_policy(content: str, newline: str) -> str:
    normalized = _normalize_newlines(content)
    if newline == "\n":
        return normalized
    if newline == "\r\n":
        return normalized.replace("\n", "\r\n")
    if newline == "\r":
        return normalized.replace("\n", "\r")
    raise ValueError(f"Unsupported newline policy: {newline!r}")
