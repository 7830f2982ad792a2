"""Focus signal and the scheduler that refreshes a pairing on refocus."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Callable

from .events import EventBus, FocusChanged

if TYPE_CHECKING:  # pragma: no cover
    from .controller import ReconciliationController

LOGGER = logging.getLogger(__name__)


class FocusSignal:
    """Single logical channel announcing application focus transitions.

    Hosts call :meth:`notify` with the current focus state as often as they
    like; subscribers only see :class:`FocusChanged` events for actual
    transitions. Subscribing never replays the current state.
    """

    def __init__(self, event_bus: EventBus | None = None, *, focused: bool = True) -> None:
        self._bus = event_bus or EventBus()
        self._focused = focused

    @property
    def focused(self) -> bool:
        return self._focused

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    def notify(self, focused: bool) -> bool:
        """Record the focus state; returns True if it was a transition."""
        focused = bool(focused)
        if focused == self._focused:
            return False
        self._focused = focused
        LOGGER.debug("FocusSignal: %s", "focused" if focused else "blurred")
        self._bus.publish(FocusChanged(focused=focused))
        return True

    def subscribe(self, handler: Callable[[FocusChanged], None]) -> Callable[[], None]:
        """Register ``handler`` and return a callable that unsubscribes it."""
        self._bus.subscribe(FocusChanged, handler)

        def _unsubscribe() -> None:
            self._bus.unsubscribe(FocusChanged, handler)

        return _unsubscribe


class FocusRefreshScheduler:
    """Reloads the controller's pairing when the application regains focus.

    The reload happens if and only if the pairing is still valid (checked
    when the focus arrives) and content was already loaded once. The
    subscription is scoped: use :meth:`start`/:meth:`stop` or the
    scheduler as a context manager.
    """

    def __init__(self, controller: ReconciliationController, signal: FocusSignal) -> None:
        self._controller = controller
        self._signal = signal
        self._unsubscribe: Callable[[], None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._signal.subscribe(self._on_focus_changed)
        LOGGER.debug("FocusRefreshScheduler.start")

    def stop(self) -> None:
        """Unsubscribe and cancel refreshes that have not reached the gateway yet."""
        if self._unsubscribe is None:
            return
        self._unsubscribe()
        self._unsubscribe = None
        for task in list(self._tasks):
            task.cancel()
        LOGGER.debug("FocusRefreshScheduler.stop")

    async def drain(self) -> None:
        """Wait for scheduled refreshes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __enter__(self) -> FocusRefreshScheduler:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _on_focus_changed(self, event: FocusChanged) -> None:
        if not event.focused or self._unsubscribe is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("FocusRefreshScheduler: no running loop, skipping refresh")
            return
        task = loop.create_task(self._refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh(self) -> None:
        controller = self._controller
        live_file_id = controller.live_file_id
        if live_file_id is None:
            return
        await controller.refresh_validity()
        # The pairing may have been replaced or closed while validity was checked.
        if controller.live_file_id != live_file_id or self._unsubscribe is None:
            return
        if not controller.should_update_on_refocus:
            LOGGER.debug("FocusRefreshScheduler: skipping refresh for %s", live_file_id)
            return
        LOGGER.debug("FocusRefreshScheduler: refreshing %s", live_file_id)
        await controller.reload()


__all__ = ["FocusSignal", "FocusRefreshScheduler"]
