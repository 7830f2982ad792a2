"""Live file reconciliation between an in-memory buffer and an external file."""

from .controller import ReconciliationController, describe_divergence
from .diffing import DiffSummarizer, summarize
from .errors import (
    ErrorCode,
    LiveFileError,
    PairingError,
    ReadError,
    UnknownLiveFileError,
    WriteError,
)
from .events import (
    DiffSummaryChanged,
    EventBus,
    FocusChanged,
    LiveFileClosed,
    LiveFilePaired,
    LiveFileSessionChanged,
    LiveFileStatusChanged,
)
from .focus import FocusRefreshScheduler, FocusSignal
from .gateway import LiveSessionStore, PairingGateway
from .handles import FileHandle, LocalFileHandle, PermissionMode, PermissionState
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
from .presentation import ActionBoxState, ControlButtonState, format_status_line
from .settings import LiveFileSettings, SettingsStore, load_settings

__all__ = [
    # Controller
    "ReconciliationController",
    "describe_divergence",
    # Diffing
    "DiffSummarizer",
    "summarize",
    # Errors
    "ErrorCode",
    "LiveFileError",
    "PairingError",
    "ReadError",
    "WriteError",
    "UnknownLiveFileError",
    # Events
    "EventBus",
    "FocusChanged",
    "LiveFilePaired",
    "LiveFileClosed",
    "LiveFileSessionChanged",
    "LiveFileStatusChanged",
    "DiffSummaryChanged",
    # Focus
    "FocusSignal",
    "FocusRefreshScheduler",
    # Gateway
    "PairingGateway",
    "LiveSessionStore",
    # Handles
    "FileHandle",
    "LocalFileHandle",
    "PermissionMode",
    "PermissionState",
    # Models
    "DiffSummary",
    "LiveFileId",
    "LiveFileSession",
    "LiveFileState",
    "OperationStatus",
    "Paired",
    "StatusKind",
    "Unpaired",
    # Presentation
    "ActionBoxState",
    "ControlButtonState",
    "format_status_line",
    # Settings
    "LiveFileSettings",
    "SettingsStore",
    "load_settings",
]
