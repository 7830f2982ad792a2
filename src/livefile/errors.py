"""Standardized error types for live file operations.

Errors are raised at the gateway boundary and absorbed by the
reconciliation controller, which narrates them through the status line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# -----------------------------------------------------------------------------
# Error Code Constants
# -----------------------------------------------------------------------------

class ErrorCode:
    """Constants for machine-readable live file error codes."""

    # Pairing errors
    PAIRING_UNSUPPORTED = "pairing_unsupported"
    PERMISSION_DENIED = "permission_denied"

    # I/O errors
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"

    # Lookup errors
    UNKNOWN_LIVE_FILE = "unknown_live_file"


# -----------------------------------------------------------------------------
# Base Error Class
# -----------------------------------------------------------------------------

@dataclass
class LiveFileError(Exception):
    """Base exception class for all live file errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description, suitable for a status line.
        live_file_id: The pairing the error relates to, when known.
        details: Additional structured error information.
    """

    error_code: str
    message: str
    live_file_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.live_file_id is not None:
            result["live_file_id"] = self.live_file_id
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# -----------------------------------------------------------------------------
# Concrete Errors
# -----------------------------------------------------------------------------

@dataclass
class PairingError(LiveFileError):
    """Raised when a handle is rejected or permission is denied at registration."""

    error_code: str = field(default=ErrorCode.PAIRING_UNSUPPORTED)
    message: str = field(default="The file handle cannot be paired")


@dataclass
class ReadError(LiveFileError):
    """Raised when reading the external file fails."""

    error_code: str = field(default=ErrorCode.READ_FAILED)
    message: str = field(default="Error reading file")


@dataclass
class WriteError(LiveFileError):
    """Raised when writing the external file fails."""

    error_code: str = field(default=ErrorCode.WRITE_FAILED)
    message: str = field(default="Error writing file")


@dataclass
class UnknownLiveFileError(LiveFileError):
    """Raised when an identifier does not map to an open session."""

    error_code: str = field(default=ErrorCode.UNKNOWN_LIVE_FILE)
    message: str = field(default="The live file is not paired")


def describe_exception(exc: BaseException) -> str:
    """Return a short human-readable description of ``exc``."""

    if isinstance(exc, LiveFileError):
        return exc.message
    text = str(exc).strip()
    if isinstance(exc, OSError) and exc.strerror:
        text = exc.strerror
        if exc.filename:
            text = f"{text}: {exc.filename}"
    return text or type(exc).__name__


__all__ = [
    "ErrorCode",
    "LiveFileError",
    "PairingError",
    "ReadError",
    "WriteError",
    "UnknownLiveFileError",
    "describe_exception",
]
