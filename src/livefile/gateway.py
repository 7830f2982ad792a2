"""Pairing gateway domain service.

Registers capability handles, owns the per-pairing session records, and
performs every read and write against the external files. Each field
update on a session is announced on the event bus so observers can
re-derive their state.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from .errors import (
    ErrorCode,
    PairingError,
    ReadError,
    UnknownLiveFileError,
    WriteError,
    describe_exception,
)
from .events import EventBus, LiveFileClosed, LiveFilePaired, LiveFileSessionChanged
from .handles import FileHandle, PermissionMode, PermissionState, is_file_handle
from .models import LiveFileId, LiveFileSession, new_live_file_id

LOGGER = logging.getLogger(__name__)

_SESSION_FIELDS = ("content", "error", "is_loading", "is_saving")


def _coerce_permission(value: Any) -> PermissionState | None:
    """Map a handle's permission answer onto :class:`PermissionState`; unknown answers map to None."""
    try:
        return PermissionState(value)
    except ValueError:
        LOGGER.warning("Unrecognised permission state from handle: %r", value)
        return None


class LiveSessionStore:
    """Keyed store of live sessions.

    Every mutation goes through :meth:`set_field`, which replaces exactly
    one attribute and publishes a :class:`LiveFileSessionChanged` event.
    Only the :class:`PairingGateway` is expected to call the mutators.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self._bus = event_bus
        self._sessions: dict[LiveFileId, LiveFileSession] = {}
        self._handles: dict[LiveFileId, FileHandle] = {}

    def __contains__(self, live_file_id: object) -> bool:
        return live_file_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, live_file_id: LiveFileId | None) -> LiveFileSession | None:
        if live_file_id is None:
            return None
        return self._sessions.get(live_file_id)

    def handle(self, live_file_id: LiveFileId) -> FileHandle | None:
        return self._handles.get(live_file_id)

    def ids(self) -> tuple[LiveFileId, ...]:
        return tuple(self._sessions)

    def add(self, handle: FileHandle) -> LiveFileSession:
        live_file_id = new_live_file_id()
        session = LiveFileSession(live_file_id=live_file_id)
        self._sessions[live_file_id] = session
        self._handles[live_file_id] = handle
        return session

    def discard(self, live_file_id: LiveFileId) -> bool:
        self._handles.pop(live_file_id, None)
        return self._sessions.pop(live_file_id, None) is not None

    def set_field(self, live_file_id: LiveFileId, name: str, value: Any) -> None:
        if name not in _SESSION_FIELDS:
            raise AttributeError(f"Unknown session field: {name}")
        session = self._sessions.get(live_file_id)
        if session is None:
            # The pairing was closed while an operation was in flight.
            LOGGER.debug("LiveSessionStore.set_field: dropping %s for closed %s", name, live_file_id)
            return
        setattr(session, name, value)
        if name == "content":
            session.last_read_at = datetime.now(timezone.utc)
        self._bus.publish(LiveFileSessionChanged(live_file_id=live_file_id, field=name))


class PairingGateway:
    """Domain service for pairing handles and performing live file I/O.

    Events Emitted:
        - LiveFilePaired: After a handle is registered
        - LiveFileClosed: After a pairing is discarded
        - LiveFileSessionChanged: On every session field update
    """

    def __init__(self, event_bus: EventBus, *, store: LiveSessionStore | None = None) -> None:
        self._bus = event_bus
        self._store = store or LiveSessionStore(event_bus)
        self._reads: dict[LiveFileId, asyncio.Task[str]] = {}

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def store(self) -> LiveSessionStore:
        return self._store

    def session(self, live_file_id: LiveFileId | None) -> LiveFileSession | None:
        return self._store.get(live_file_id)

    def is_open(self, live_file_id: LiveFileId | None) -> bool:
        return live_file_id is not None and live_file_id in self._store

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    async def pair_with_handle(self, handle: Any) -> LiveFileId:
        """Register ``handle`` and return the identifier of its new session.

        Raises:
            PairingError: If the handle lacks the live file surface or
                read/write permission is not granted.
        """
        if not is_file_handle(handle):
            raise PairingError(
                error_code=ErrorCode.PAIRING_UNSUPPORTED,
                message="The handle does not support live file operations",
            )
        try:
            state = await handle.request_permission(PermissionMode.READWRITE)
        except Exception as exc:
            raise PairingError(
                error_code=ErrorCode.PERMISSION_DENIED,
                message=f"Permission request failed: {describe_exception(exc)}",
            ) from exc
        if _coerce_permission(state) is not PermissionState.GRANTED:
            raise PairingError(
                error_code=ErrorCode.PERMISSION_DENIED,
                message=f"Read/write permission was not granted for {handle.name}",
            )

        session = self._store.add(handle)
        LOGGER.debug("PairingGateway.pair_with_handle: %s -> %s", handle.name, session.live_file_id)
        self._bus.publish(LiveFilePaired(live_file_id=session.live_file_id, name=handle.name))
        return session.live_file_id

    async def is_valid(self, live_file_id: LiveFileId | None) -> bool:
        """Return True if the pairing exists and its handle still grants access.

        Permission is queried on every call since platforms may revoke it
        at any time.
        """
        if live_file_id is None:
            return False
        handle = self._store.handle(live_file_id)
        if handle is None:
            return False
        try:
            state = await handle.query_permission(PermissionMode.READWRITE)
        except Exception as exc:
            LOGGER.warning("PairingGateway.is_valid: permission query failed for %s: %s", live_file_id, exc)
            return False
        # The pairing may have been closed while the query was pending.
        if live_file_id not in self._store:
            return False
        return _coerce_permission(state) is PermissionState.GRANTED

    def close(self, live_file_id: LiveFileId | None) -> None:
        """Forget the pairing and its session. Closing twice is harmless."""
        if live_file_id is None:
            return
        self._reads.pop(live_file_id, None)
        if not self._store.discard(live_file_id):
            LOGGER.debug("PairingGateway.close: %s already closed", live_file_id)
            return
        LOGGER.debug("PairingGateway.close: %s", live_file_id)
        self._bus.publish(LiveFileClosed(live_file_id=live_file_id))

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    async def read(self, live_file_id: LiveFileId) -> str:
        """Read the external file into the session.

        Concurrent callers for the same pairing share one underlying read.
        On failure the previous content is kept and ``error`` is recorded.

        Raises:
            UnknownLiveFileError: If the pairing is not open.
            ReadError: If the read failed.
        """
        handle = self._require_handle(live_file_id)
        pending = self._reads.get(live_file_id)
        if pending is None or pending.done():
            # Flagged before the task starts so a second caller sees the read in flight.
            self._store.set_field(live_file_id, "is_loading", True)
            pending = asyncio.ensure_future(self._perform_read(live_file_id, handle))
            self._reads[live_file_id] = pending
        try:
            return await asyncio.shield(pending)
        finally:
            if pending.done() and self._reads.get(live_file_id) is pending:
                del self._reads[live_file_id]

    async def write(self, live_file_id: LiveFileId, text: str) -> bool:
        """Write ``text`` to the external file.

        Returns False and records ``error`` on failure. A successful write
        does not refresh ``content``; the next read observes the new text.
        """
        try:
            handle = self._require_handle(live_file_id)
        except UnknownLiveFileError as exc:
            LOGGER.warning("PairingGateway.write: %s", exc.message)
            return False

        with self._flag(live_file_id, "is_saving"):
            try:
                await handle.write_text(text)
            except Exception as exc:
                error = WriteError(
                    message=f"Error saving file: {describe_exception(exc)}",
                    live_file_id=live_file_id,
                )
                LOGGER.warning("PairingGateway.write: %s failed: %s", live_file_id, exc)
                self._store.set_field(live_file_id, "error", error.message)
                return False
        LOGGER.debug("PairingGateway.write: %s wrote %d chars", live_file_id, len(text))
        return True

    async def _perform_read(self, live_file_id: LiveFileId, handle: FileHandle) -> str:
        try:
            try:
                text = await handle.read_text()
            except Exception as exc:
                error = ReadError(
                    message=f"Error reading file: {describe_exception(exc)}",
                    live_file_id=live_file_id,
                )
                LOGGER.warning("PairingGateway.read: %s failed: %s", live_file_id, exc)
                self._store.set_field(live_file_id, "error", error.message)
                raise error from exc
            # Always announced, even when the text is unchanged.
            self._store.set_field(live_file_id, "content", text)
            session = self._store.get(live_file_id)
            if session is not None and session.error is not None:
                self._store.set_field(live_file_id, "error", None)
            LOGGER.debug("PairingGateway.read: %s read %d chars", live_file_id, len(text))
            return text
        finally:
            self._store.set_field(live_file_id, "is_loading", False)

    @contextmanager
    def _flag(self, live_file_id: LiveFileId, name: str) -> Iterator[None]:
        self._store.set_field(live_file_id, name, True)
        try:
            yield
        finally:
            self._store.set_field(live_file_id, name, False)

    def _require_handle(self, live_file_id: LiveFileId) -> FileHandle:
        handle = self._store.handle(live_file_id)
        if handle is None:
            raise UnknownLiveFileError(
                message=f"No live file is paired as {live_file_id}",
                live_file_id=live_file_id,
            )
        return handle


__all__ = ["LiveSessionStore", "PairingGateway"]
