"""Helper models + formatting for the live file action box."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import OperationStatus, StatusKind

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from .controller import ReconciliationController

__all__ = [
    "ActionBoxState",
    "ControlButtonState",
    "build_action_box",
    "build_control_button",
    "format_status_line",
    "status_tone",
]

_TONES = {
    StatusKind.ERROR: "warning",
    StatusKind.SUCCESS: "success",
}


@dataclass(slots=True, frozen=True)
class ActionBoxState:
    """Everything a view needs to render the reconciliation box.

    ``visible`` is False when there is neither a status line nor loaded
    file content; every other field is then irrelevant.
    """

    visible: bool
    tone: str = "neutral"
    message: str = ""
    show_reload: bool = False
    show_warning_icon: bool = False
    show_load: bool = False
    show_save: bool = False
    save_enabled: bool = True
    load_label: str = "Load from File"
    save_label: str = "Save to File"


@dataclass(slots=True, frozen=True)
class ControlButtonState:
    """State of the button that pairs a file or refreshes the pairing."""

    visible: bool
    enabled: bool
    label: str


def status_tone(status: OperationStatus | None) -> str:
    if status is None:
        return "neutral"
    return _TONES.get(status.kind, "neutral")


def format_status_line(status: OperationStatus | None, *, prefix: str = "Live file") -> str:
    """Render ``status`` as a single line, e.g. ``"Live file [error]: ..."``."""

    if status is None:
        return f"{prefix}: idle"
    return f"{prefix} [{status.kind.value}]: {status.message}"


def build_action_box(controller: ReconciliationController, *, compact: bool = False) -> ActionBoxState:
    status = controller.status
    if status is None and not controller.has_content:
        return ActionBoxState(visible=False)

    different = controller.file_is_different
    return ActionBoxState(
        visible=True,
        tone=status_tone(status),
        message=status.message if status is not None else "",
        show_reload=controller.is_pairing_valid,
        show_warning_icon=status is not None and status.kind is StatusKind.ERROR,
        show_load=different,
        show_save=different,
        save_enabled=not controller.is_saving,
        load_label="Update" if compact else "Load from File",
        save_label="Save" if compact else "Save to File",
    )


def build_control_button(controller: ReconciliationController) -> ControlButtonState:
    # Once content is loaded the action box carries its own reload control.
    return ControlButtonState(
        visible=not controller.has_content,
        enabled=not controller.is_saving,
        label="Refresh" if controller.is_pairing_valid else "Pair File",
    )
