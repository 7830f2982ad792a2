"""Event bus and event types connecting live file components.

The gateway announces session mutations, the controller announces status
and divergence updates, and focus sources announce focus transitions. All
of them flow through a single :class:`EventBus` so no component needs a
direct reference to its observers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, TYPE_CHECKING
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all live file events."""

    pass


# Events published on every keystroke or session field flip; not logged per publish.
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Host Events
# =============================================================================


@dataclass(slots=True)
class FocusChanged(Event):
    """Emitted when the host application gains or loses OS focus.

    Attributes:
        focused: True when the application became active.
    """

    focused: bool


# =============================================================================
# Pairing Events
# =============================================================================


@dataclass(slots=True)
class LiveFilePaired(Event):
    """Emitted after a handle was registered with the pairing gateway.

    Attributes:
        live_file_id: Identifier of the new pairing.
        name: Display name reported by the handle.
    """

    live_file_id: str
    name: str


@dataclass(slots=True)
class LiveFileClosed(Event):
    """Emitted after a pairing was closed and its session discarded."""

    live_file_id: str


@dataclass(slots=True)
class LiveFileSessionChanged(Event):
    """Emitted whenever one field of a live session record changes.

    Attributes:
        live_file_id: Identifier of the session.
        field: Name of the field that changed (``content``, ``error``,
            ``is_loading`` or ``is_saving``).
    """

    live_file_id: str
    field: str


_QUIET_EVENT_TYPES.add(LiveFileSessionChanged)


# =============================================================================
# Reconciliation Events
# =============================================================================


@dataclass(slots=True)
class LiveFileStatusChanged(Event):
    """Emitted when the controller replaces the status line.

    ``message`` and ``kind`` are ``None`` when the status was cleared.
    """

    live_file_id: str | None
    message: str | None
    kind: str | None


@dataclass(slots=True)
class DiffSummaryChanged(Event):
    """Emitted when divergence between buffer and file is recomputed.

    Both counts are ``None`` when there is nothing to compare.
    """

    live_file_id: str | None
    insertions: int | None
    deletions: int | None


_QUIET_EVENT_TYPES.add(DiffSummaryChanged)


class EventBus(Generic[E]):
    """A typed, synchronous publish-subscribe bus.

    Bound-method handlers are held through weak references so a component
    that is garbage collected stops receiving events without an explicit
    unsubscribe. Plain functions and lambdas are held strongly.

    Example::

        bus = EventBus()
        bus.subscribe(FocusChanged, lambda event: print(event.focused))
        bus.publish(FocusChanged(focused=True))

    Thread Safety:
        Not thread-safe. Publish from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Subscribing the same handler twice results in two invocations.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return
        for index, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(index)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Invoke every handler registered for the event's type, in order.

        A handler that raises is logged and the remaining handlers still run.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        is_quiet = event_type in _QUIET_EVENT_TYPES
        if not handlers:
            if not is_quiet:
                logger.debug("No handlers for event type %s", event_type.__name__)
            return
        if not is_quiet:
            logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead: list[_HandlerRef] = []
        # Handlers may unsubscribe while we iterate.
        for handler_ref in list(handlers):
            handler = handler_ref.resolve()
            if handler is None:
                dead.append(handler_ref)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for handler_ref in dead:
            if handler_ref in handlers:
                handlers.remove(handler_ref)

    def clear(self) -> None:
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Return the number of handlers for ``event_type``, or all handlers."""
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "FocusChanged",
    "LiveFilePaired",
    "LiveFileClosed",
    "LiveFileSessionChanged",
    "LiveFileStatusChanged",
    "DiffSummaryChanged",
]
