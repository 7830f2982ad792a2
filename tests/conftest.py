"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any, Callable, Iterator

import pytest

from livefile.controller import ReconciliationController
from livefile.events import EventBus
from livefile.gateway import PairingGateway
from livefile.settings import LiveFileSettings
from tests.helpers import BufferRecorder, CountingSummarizer, FakeHandle


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def gateway(event_bus: EventBus) -> PairingGateway:
    return PairingGateway(event_bus)


@pytest.fixture
def handle() -> FakeHandle:
    return FakeHandle("hello")


@pytest.fixture
def summarizer() -> CountingSummarizer:
    return CountingSummarizer()


@pytest.fixture
def buffer_recorder() -> BufferRecorder:
    return BufferRecorder()


@pytest.fixture
def make_controller(
    gateway: PairingGateway,
    summarizer: CountingSummarizer,
    buffer_recorder: BufferRecorder,
) -> Iterator[Callable[..., ReconciliationController]]:
    created: list[ReconciliationController] = []

    def _factory(**kwargs: Any) -> ReconciliationController:
        kwargs.setdefault("set_buffer_text", buffer_recorder)
        kwargs.setdefault("summarizer", summarizer)
        kwargs.setdefault("settings", LiveFileSettings())
        controller = ReconciliationController(gateway, **kwargs)
        created.append(controller)
        return controller

    yield _factory
    for controller in created:
        controller.dispose()
