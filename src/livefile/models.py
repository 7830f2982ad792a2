"""Dataclasses describing live file sessions, divergence, and status.

These models are shared by the gateway (which owns sessions), the
reconciliation controller (which derives summaries and statuses from
them), and the presentation layer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Union

# Opaque identifier handed out by the pairing gateway.
LiveFileId = str


def _utcnow() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


def new_live_file_id() -> LiveFileId:
    return f"livefile-{uuid.uuid4().hex[:12]}"


class StatusKind(Enum):
    """Category of the status line currently narrated to the user.

    Values:
        INFO: Neutral progress or guidance.
        CHANGES: The buffer diverges from the file.
        SUCCESS: A reconciliation completed.
        ERROR: The last operation failed.
    """

    INFO = "info"
    CHANGES = "changes"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class DiffSummary:
    """Character counts describing how the buffer diverges from the file."""

    insertions: int = 0
    deletions: int = 0

    def __post_init__(self) -> None:
        if self.insertions < 0 or self.deletions < 0:
            raise ValueError("Diff counts must be non-negative")

    @property
    def is_different(self) -> bool:
        return bool(self.insertions or self.deletions)


@dataclass(slots=True, frozen=True)
class OperationStatus:
    """The single user-facing status line."""

    message: str
    kind: StatusKind = StatusKind.INFO

    @classmethod
    def info(cls, message: str) -> OperationStatus:
        return cls(message, StatusKind.INFO)

    @classmethod
    def changes(cls, message: str) -> OperationStatus:
        return cls(message, StatusKind.CHANGES)

    @classmethod
    def success(cls, message: str) -> OperationStatus:
        return cls(message, StatusKind.SUCCESS)

    @classmethod
    def error(cls, message: str) -> OperationStatus:
        return cls(message, StatusKind.ERROR)


@dataclass(slots=True)
class LiveFileSession:
    """Mutable per-pairing record owned by the pairing gateway.

    Attributes:
        live_file_id: Identifier of the pairing this record belongs to.
        content: Last successfully read file text, ``None`` until the first read.
        error: Description of the last failure; may coexist with stale content.
        is_loading: True while a read is in flight.
        is_saving: True while a write is in flight.
        paired_at: When the handle was registered.
        last_read_at: When ``content`` was last refreshed.
    """

    live_file_id: LiveFileId
    content: str | None = None
    error: str | None = None
    is_loading: bool = False
    is_saving: bool = False
    paired_at: datetime = field(default_factory=_utcnow)
    last_read_at: datetime | None = None

    @property
    def has_content(self) -> bool:
        return self.content is not None


# -----------------------------------------------------------------------------
# Tagged reconciliation state
# -----------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Unpaired:
    """No external file is associated with the buffer."""


@dataclass(slots=True, frozen=True)
class Paired:
    """A file is paired; mirrors the session record at a point in time."""

    live_file_id: LiveFileId
    valid: bool
    content: str | None = None
    error: str | None = None
    loading: bool = False
    saving: bool = False
    paired_at: datetime | None = None
    last_read_at: datetime | None = None

    @classmethod
    def from_session(cls, session: LiveFileSession, *, valid: bool) -> Paired:
        return cls(
            live_file_id=session.live_file_id,
            valid=valid,
            content=session.content,
            error=session.error,
            loading=session.is_loading,
            saving=session.is_saving,
            paired_at=session.paired_at,
            last_read_at=session.last_read_at,
        )


LiveFileState = Union[Unpaired, Paired]


__all__ = [
    "LiveFileId",
    "new_live_file_id",
    "StatusKind",
    "DiffSummary",
    "OperationStatus",
    "LiveFileSession",
    "Unpaired",
    "Paired",
    "LiveFileState",
]
