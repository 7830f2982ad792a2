"""Reconciliation controller domain service.

Orchestrates a single buffer paired with at most one external file:
derives the divergence summary and status line from the buffer text and
the gateway's session record, and exposes the pair, reload, load, save
and close operations a UI binds to its controls.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .diffing import DiffSummarizer
from .errors import PairingError, ReadError, UnknownLiveFileError
from .events import (
    DiffSummaryChanged,
    EventBus,
    LiveFileClosed,
    LiveFileSessionChanged,
    LiveFileStatusChanged,
)
from .focus import FocusRefreshScheduler, FocusSignal
from .gateway import PairingGateway
from .handles import is_file_handle
from .models import (
    DiffSummary,
    LiveFileId,
    LiveFileSession,
    LiveFileState,
    OperationStatus,
    Paired,
    StatusKind,
    Unpaired,
)
from .presentation import ActionBoxState, ControlButtonState, build_action_box, build_control_button
from .settings import LiveFileSettings

LOGGER = logging.getLogger(__name__)

Summarizer = Callable[[str, str], DiffSummary]
Picker = Callable[[], Awaitable[Any]]

MSG_IDENTICAL = "The File is identical to this Document."
MSG_IDENTICAL_COMPACT = "Identical to File."
MSG_NO_CHANGES = "No changes."
MSG_ALREADY_LOADING = "Already loading file..."
MSG_READING = "Reading file..."
MSG_NO_CONTENT = "No file content loaded. Please preview changes first."
MSG_NOT_PAIRED = "No file paired. Please choose a file first."
MSG_NOTHING_TO_SAVE = "No document text to save."
MSG_SAVING = "Saving to file..."
MSG_SAVED = "Content saved to file."
MSG_UNSUPPORTED = "This platform does not support live file operations."


def describe_divergence(summary: DiffSummary) -> OperationStatus:
    """Narrate a non-identical diff summary."""

    if summary.insertions and summary.deletions:
        return OperationStatus.changes(
            f"Document has {summary.insertions} insertions and {summary.deletions} deletions."
        )
    if summary.insertions:
        return OperationStatus.changes(f"Document has {summary.insertions} insertions.")
    if summary.deletions:
        return OperationStatus.changes(f"Document has {summary.deletions} deletions.")
    return OperationStatus.info(MSG_NO_CHANGES)


class ReconciliationController:
    """Keeps a text buffer and its paired external file reconciled.

    The buffer owner pushes text through :meth:`on_buffer_changed` and
    receives text back through the ``set_buffer_text`` callback when the
    user loads from disk. Divergence is re-derived whenever the buffer or
    the session content changes; a newly recorded session error always
    replaces the status line.

    Events Emitted:
        - LiveFileStatusChanged: Whenever the status line is replaced or cleared
        - DiffSummaryChanged: Whenever divergence is recomputed or cleared
    """

    def __init__(
        self,
        gateway: PairingGateway,
        *,
        set_buffer_text: Callable[[str], None],
        buffer_text: str | None = None,
        live_file_id: LiveFileId | None = None,
        settings: LiveFileSettings | None = None,
        summarizer: Summarizer | None = None,
        focus_signal: FocusSignal | None = None,
        replace_live_file_id: Callable[[LiveFileId], None] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            gateway: Pairing gateway owning sessions and performing I/O.
            set_buffer_text: Callback replacing the buffer's text.
            buffer_text: Current buffer text, if already known.
            live_file_id: An existing pairing to attach to.
            settings: Diff and narration settings.
            summarizer: Callable computing a :class:`DiffSummary`; defaults to a
                :class:`DiffSummarizer` built from ``settings``.
            focus_signal: When given, the pairing is refreshed on refocus.
            replace_live_file_id: Notified with the new identifier after pairing.
        """
        self._gateway = gateway
        self._bus: EventBus = gateway.event_bus
        self._settings = settings or LiveFileSettings()
        self._set_buffer_text = set_buffer_text
        self._replace_live_file_id = replace_live_file_id
        self._summarizer: Summarizer = summarizer or DiffSummarizer(
            timeout=self._settings.diff_timeout,
            edit_cost=self._settings.diff_edit_cost,
            check_lines=self._settings.diff_check_lines,
        )
        self._buffer_text = buffer_text
        self._live_file_id: LiveFileId | None = None
        self._is_pairing_valid = False
        self._diff_summary: DiffSummary | None = None
        self._status: OperationStatus | None = None
        self._scheduler: FocusRefreshScheduler | None = None
        if focus_signal is not None and self._settings.refresh_on_focus:
            self._scheduler = FocusRefreshScheduler(self, focus_signal)

        self._bus.subscribe(LiveFileSessionChanged, self._on_session_changed)
        self._bus.subscribe(LiveFileClosed, self._on_live_file_closed)

        if live_file_id is not None and gateway.is_open(live_file_id):
            self._live_file_id = live_file_id
            if self._scheduler is not None:
                self._scheduler.start()
            self._recompute()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def live_file_id(self) -> LiveFileId | None:
        return self._live_file_id

    @property
    def buffer_text(self) -> str | None:
        return self._buffer_text

    @property
    def diff_summary(self) -> DiffSummary | None:
        return self._diff_summary

    @property
    def status(self) -> OperationStatus | None:
        return self._status

    @property
    def settings(self) -> LiveFileSettings:
        return self._settings

    @property
    def session(self) -> LiveFileSession | None:
        return self._gateway.session(self._live_file_id)

    @property
    def file_content(self) -> str | None:
        session = self.session
        return session.content if session is not None else None

    @property
    def has_content(self) -> bool:
        return self.file_content is not None

    @property
    def is_loading(self) -> bool:
        session = self.session
        return bool(session and session.is_loading)

    @property
    def is_saving(self) -> bool:
        session = self.session
        return bool(session and session.is_saving)

    @property
    def is_pairing_valid(self) -> bool:
        """Last known validity; refreshed by :meth:`refresh_validity`."""
        return self._live_file_id is not None and self._is_pairing_valid

    @property
    def file_is_different(self) -> bool:
        return self._diff_summary is not None and self._diff_summary.is_different

    @property
    def should_update_on_refocus(self) -> bool:
        return self.is_pairing_valid and self.has_content

    @property
    def focus_scheduler(self) -> FocusRefreshScheduler | None:
        return self._scheduler

    @property
    def state(self) -> LiveFileState:
        session = self.session
        if session is None:
            return Unpaired()
        return Paired.from_session(session, valid=self.is_pairing_valid)

    def action_box(self) -> ActionBoxState:
        return build_action_box(self, compact=self._settings.compact_messages)

    def control_button(self) -> ControlButtonState:
        return build_control_button(self)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def on_buffer_changed(self, text: str | None) -> None:
        """Record the buffer's current text and re-derive divergence."""
        self._buffer_text = text
        self._recompute()

    async def refresh_validity(self) -> bool:
        """Re-check that the active handle still grants read/write access."""
        live_file_id = self._live_file_id
        valid = await self._gateway.is_valid(live_file_id)
        if live_file_id == self._live_file_id:
            if valid != self._is_pairing_valid:
                LOGGER.debug("ReconciliationController: pairing %s valid=%s", live_file_id, valid)
            self._is_pairing_valid = valid
        return valid

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def pair(self, handle: Any) -> LiveFileId | None:
        """Pair ``handle`` with the buffer and load its content for comparison."""
        try:
            live_file_id = await self._gateway.pair_with_handle(handle)
        except PairingError as exc:
            LOGGER.warning("ReconciliationController.pair: %s", exc.message)
            self._set_status(OperationStatus.error(f"Error pairing the file: {exc.message}"))
            return None

        previous = self._live_file_id
        self._activate(live_file_id)
        if previous is not None and previous != live_file_id:
            self._gateway.close(previous)
        await self.reload(live_file_id)
        return live_file_id

    async def pair_with_picker(self, picker: Picker) -> LiveFileId | None:
        """Ask ``picker`` for a handle and pair it; a dismissed picker is a no-op."""
        try:
            picked = await picker()
        except Exception:
            LOGGER.debug("ReconciliationController.pair_with_picker: picker dismissed", exc_info=True)
            return None
        if picked is None:
            return None
        if not is_file_handle(picked):
            self._set_status(OperationStatus.error(MSG_UNSUPPORTED))
            return None
        return await self.pair(picked)

    async def reload(self, live_file_id: LiveFileId | None = None) -> None:
        """Re-read the paired file; errors are narrated, never raised.

        While a read is in flight a second request only reports that the
        file is already loading. Unknown or closed identifiers are ignored.
        """
        target = live_file_id or self._live_file_id
        session = self._gateway.session(target)
        if target is None or session is None:
            LOGGER.debug("ReconciliationController.reload: no open pairing for %s", target)
            return
        if session.is_loading:
            self._set_status(OperationStatus.info(MSG_ALREADY_LOADING))
            return
        if session.content is None:
            self._set_status(OperationStatus.info(MSG_READING))

        try:
            await self._gateway.read(target)
        except ReadError as exc:
            # Narrated through the session error.
            LOGGER.debug("ReconciliationController.reload: %s", exc.message)
        except UnknownLiveFileError:
            LOGGER.debug("ReconciliationController.reload: %s closed during read", target)
            return
        if target == self._live_file_id:
            await self.refresh_validity()

    def load_from_disk(self) -> bool:
        """Replace the buffer with the last read file content."""
        content = self.file_content
        if content is None:
            self._set_status(OperationStatus.info(MSG_NO_CONTENT))
            return False
        LOGGER.debug("ReconciliationController.load_from_disk: %d chars", len(content))
        self._set_buffer_text(content)
        self.on_buffer_changed(content)
        return True

    async def save_to_disk(self, text: str | None = None) -> bool:
        """Write ``text`` (default: the current buffer) to the paired file.

        The cached file content is not refreshed by a save, so divergence
        keeps reflecting the pre-save file until the next reload.
        """
        live_file_id = self._live_file_id
        if live_file_id is None or not await self.refresh_validity():
            self._set_status(OperationStatus.info(MSG_NOT_PAIRED))
            return False
        payload = text if text is not None else self._buffer_text
        if payload is None:
            self._set_status(OperationStatus.info(MSG_NOTHING_TO_SAVE))
            return False

        self._set_status(OperationStatus.info(MSG_SAVING))
        saved = await self._gateway.write(live_file_id, payload)
        if saved:
            self._set_status(OperationStatus.success(MSG_SAVED))
        elif self._status is None or self._status.kind is not StatusKind.ERROR:
            session = self._gateway.session(live_file_id)
            if session is not None and session.error:
                self._set_status(OperationStatus.error(session.error))
        return saved

    def close(self) -> None:
        """Close the pairing and clear divergence and status."""
        live_file_id = self._live_file_id
        self._deactivate()
        if live_file_id is not None:
            self._gateway.close(live_file_id)
        self._set_summary(None)
        self._set_status(None)

    def dispose(self) -> None:
        """Release subscriptions; the pairing itself is left open."""
        if self._scheduler is not None:
            self._scheduler.stop()
        self._bus.unsubscribe(LiveFileSessionChanged, self._on_session_changed)
        self._bus.unsubscribe(LiveFileClosed, self._on_live_file_closed)

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def _recompute(self) -> None:
        content = self.file_content
        buffer_text = self._buffer_text
        if content is None or buffer_text is None:
            self._set_summary(None)
            return

        if content == buffer_text:
            self._set_summary(DiffSummary(0, 0))
            message = MSG_IDENTICAL_COMPACT if self._settings.compact_messages else MSG_IDENTICAL
            self._set_status(OperationStatus.info(message))
            return

        summary = self._summarizer(content, buffer_text)
        self._set_summary(summary)
        self._set_status(describe_divergence(summary))

    def _on_session_changed(self, event: LiveFileSessionChanged) -> None:
        if event.live_file_id != self._live_file_id:
            return
        if event.field == "content":
            self._recompute()
        elif event.field == "error":
            session = self.session
            if session is not None and session.error:
                self._set_status(OperationStatus.error(session.error))

    def _on_live_file_closed(self, event: LiveFileClosed) -> None:
        if event.live_file_id != self._live_file_id:
            return
        LOGGER.debug("ReconciliationController: active pairing %s closed elsewhere", event.live_file_id)
        self._deactivate()
        self._set_summary(None)
        self._set_status(None)

    def _activate(self, live_file_id: LiveFileId) -> None:
        self._live_file_id = live_file_id
        # Permission was granted moments ago by the pairing itself.
        self._is_pairing_valid = True
        self._set_summary(None)
        if self._replace_live_file_id is not None:
            self._replace_live_file_id(live_file_id)
        if self._scheduler is not None:
            self._scheduler.start()

    def _deactivate(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()
        self._live_file_id = None
        self._is_pairing_valid = False

    def _set_summary(self, summary: DiffSummary | None) -> None:
        if summary == self._diff_summary:
            return
        self._diff_summary = summary
        self._bus.publish(DiffSummaryChanged(
            live_file_id=self._live_file_id,
            insertions=summary.insertions if summary is not None else None,
            deletions=summary.deletions if summary is not None else None,
        ))

    def _set_status(self, status: OperationStatus | None) -> None:
        self._status = status
        if status is not None:
            LOGGER.debug("ReconciliationController status [%s]: %s", status.kind.value, status.message)
        self._bus.publish(LiveFileStatusChanged(
            live_file_id=self._live_file_id,
            message=status.message if status is not None else None,
            kind=status.kind.value if status is not None else None,
        ))


__all__ = [
    "ReconciliationController",
    "describe_divergence",
]
