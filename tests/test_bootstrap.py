"""Tests for assembling the live file runtime."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from livefile import bootstrap as bootstrap_module
from livefile.bootstrap import bootstrap
from livefile.models import StatusKind
from livefile.settings import LiveFileSettings
from tests.helpers import BufferRecorder


@pytest.fixture
def logging_calls(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> list[tuple[Any, dict[str, Any]]]:
    calls: list[tuple[Any, dict[str, Any]]] = []

    def _configure(settings: Any, **kwargs: Any) -> Path:
        calls.append((settings, kwargs))
        return tmp_path / "livefile.log"

    monkeypatch.setattr(bootstrap_module, "configure_logging", _configure)
    return calls


class TestBootstrap:
    def test_logging_is_configured_from_settings(
        self, logging_calls: list[tuple[Any, dict[str, Any]]], tmp_path: Path
    ) -> None:
        settings = LiveFileSettings(debug_logging=True)

        runtime = bootstrap(set_buffer_text=BufferRecorder(), settings=settings, log_dir=tmp_path, console=False)

        assert logging_calls == [(settings, {"log_dir": tmp_path, "console": False})]
        assert runtime.log_path == tmp_path / "livefile.log"
        assert runtime.settings is settings
        assert runtime.controller.settings is settings
        runtime.shutdown()

    def test_logging_can_be_left_to_the_host(self, logging_calls: list[tuple[Any, dict[str, Any]]]) -> None:
        runtime = bootstrap(set_buffer_text=BufferRecorder(), settings=LiveFileSettings(), configure_logs=False)

        assert logging_calls == []
        assert runtime.log_path is None
        runtime.shutdown()

    def test_settings_are_loaded_when_not_given(
        self, logging_calls: list[tuple[Any, dict[str, Any]]], tmp_path: Path
    ) -> None:
        settings_path = tmp_path / "settings.json"
        settings_path.write_text(json.dumps({"version": 1, "debug_logging": True}), encoding="utf-8")

        runtime = bootstrap(set_buffer_text=BufferRecorder(), settings_path=settings_path)

        assert runtime.settings.debug_logging
        assert logging_calls[0][0] is runtime.settings
        runtime.shutdown()

    def test_services_share_one_event_bus(self, logging_calls: list[tuple[Any, dict[str, Any]]]) -> None:
        runtime = bootstrap(set_buffer_text=BufferRecorder(), settings=LiveFileSettings())

        assert runtime.gateway.event_bus is runtime.event_bus
        assert runtime.focus_signal.event_bus is runtime.event_bus
        runtime.shutdown()


class TestRuntimeFiles:
    @pytest.mark.asyncio
    async def test_open_path_pairs_and_compares(
        self, logging_calls: list[tuple[Any, dict[str, Any]]], tmp_path: Path
    ) -> None:
        target = tmp_path / "notes.txt"
        target.write_text("hello", encoding="utf-8")
        runtime = bootstrap(set_buffer_text=BufferRecorder(), buffer_text="hello world", settings=LiveFileSettings())

        live_file_id = await runtime.open_path(target)

        assert live_file_id is not None
        assert runtime.controller.file_content == "hello"
        assert runtime.controller.status.kind is StatusKind.CHANGES
        assert runtime.controller.status.message == "Document has 6 insertions."
        runtime.shutdown()
        assert not runtime.gateway.is_open(live_file_id)

    @pytest.mark.asyncio
    async def test_saved_text_uses_configured_newline(
        self, logging_calls: list[tuple[Any, dict[str, Any]]], tmp_path: Path
    ) -> None:
        target = tmp_path / "dos.txt"
        target.write_bytes(b"one\r\n")
        runtime = bootstrap(
            set_buffer_text=BufferRecorder(),
            buffer_text="one\ntwo\n",
            settings=LiveFileSettings(newline="\r\n"),
        )
        await runtime.open_path(target)

        assert await runtime.controller.save_to_disk()

        assert target.read_bytes() == b"one\r\ntwo\r\n"
        runtime.shutdown()
