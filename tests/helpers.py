"""Shared test helpers and fakes.

Import from here instead of duplicating these classes in individual test files::

    from tests.helpers import FakeHandle
"""

from __future__ import annotations

import asyncio

from livefile.diffing import DiffSummarizer
from livefile.handles import PermissionMode, PermissionState
from livefile.models import DiffSummary


class FakeHandle:
    """In-memory file handle with controllable permission and failures.

    When ``gate`` is set, reads block until the gate is opened so tests
    can observe a read in flight.
    """

    def __init__(self, content: str = "", *, name: str = "notes.txt") -> None:
        self.content = content
        self._name = name
        self.permission = PermissionState.GRANTED
        self.request_result: PermissionState | None = None
        self.read_error: Exception | None = None
        self.write_error: Exception | None = None
        self.query_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.read_calls = 0
        self.query_calls = 0
        self.writes: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    async def query_permission(self, mode: PermissionMode = PermissionMode.READWRITE) -> PermissionState:
        self.query_calls += 1
        if self.query_error is not None:
            raise self.query_error
        return self.permission

    async def request_permission(self, mode: PermissionMode = PermissionMode.READWRITE) -> PermissionState:
        if self.request_result is not None:
            return self.request_result
        return self.permission

    async def read_text(self) -> str:
        self.read_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.read_error is not None:
            raise self.read_error
        return self.content

    async def write_text(self, text: str) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.writes.append(text)
        self.content = text


class CountingSummarizer:
    """Summarizer probe recording how often the diff is computed."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self._inner = DiffSummarizer()

    def __call__(self, from_text: str, to_text: str) -> DiffSummary:
        self.calls.append((from_text, to_text))
        return self._inner.summarize(from_text, to_text)


class BufferRecorder:
    """Stands in for the buffer owner's ``set_buffer_text`` callback."""

    def __init__(self) -> None:
        self.texts: list[str] = []

    def __call__(self, text: str) -> None:
        self.texts.append(text)


