"""Tests for the capability handle protocol and the local file handle."""

from __future__ import annotations

import codecs
import os
from pathlib import Path

import pytest

from livefile.handles import (
    FileHandle,
    LocalFileHandle,
    PermissionMode,
    PermissionState,
    is_file_handle,
    read_text,
    write_text,
)
from livefile.settings import LiveFileSettings

from tests.helpers import FakeHandle


class TestFileHandleProtocol:
    def test_fake_and_local_handles_satisfy_protocol(self, tmp_path: Path) -> None:
        assert is_file_handle(FakeHandle())
        assert isinstance(LocalFileHandle(tmp_path / "a.txt"), FileHandle)

    def test_objects_missing_methods_are_rejected(self) -> None:
        class ReadOnly:
            name = "readonly.txt"

            async def read_text(self) -> str:
                return ""

        assert not is_file_handle(ReadOnly())
        assert not is_file_handle("path/to/file.txt")


class TestLocalFileHandlePermissions:
    @pytest.mark.asyncio
    async def test_existing_file_is_granted(self, tmp_path: Path) -> None:
        target = tmp_path / "draft.md"
        target.write_text("draft", encoding="utf-8")
        handle = LocalFileHandle(target)

        assert handle.name == "draft.md"
        assert await handle.query_permission() is PermissionState.GRANTED
        assert await handle.request_permission(PermissionMode.READ) is PermissionState.GRANTED

    @pytest.mark.asyncio
    async def test_missing_file_is_denied(self, tmp_path: Path) -> None:
        handle = LocalFileHandle(tmp_path / "missing.md")
        assert await handle.query_permission() is PermissionState.DENIED

    @pytest.mark.asyncio
    async def test_revoked_handle_is_denied_and_refuses_io(self, tmp_path: Path) -> None:
        target = tmp_path / "draft.md"
        target.write_text("draft", encoding="utf-8")
        handle = LocalFileHandle(target)

        handle.revoke()

        assert handle.revoked
        assert await handle.query_permission() is PermissionState.DENIED
        with pytest.raises(PermissionError):
            await handle.read_text()
        with pytest.raises(PermissionError):
            await handle.write_text("new")
        assert target.read_text(encoding="utf-8") == "draft"

    @pytest.mark.asyncio
    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="requires POSIX permissions as non-root")
    async def test_read_only_file_is_denied_for_readwrite(self, tmp_path: Path) -> None:
        target = tmp_path / "locked.md"
        target.write_text("locked", encoding="utf-8")
        target.chmod(0o444)
        handle = LocalFileHandle(target)

        assert await handle.query_permission(PermissionMode.READ) is PermissionState.GRANTED
        assert await handle.query_permission(PermissionMode.READWRITE) is PermissionState.DENIED


class TestLocalFileHandleIO:
    @pytest.mark.asyncio
    async def test_read_and_write_round_trip(self, tmp_path: Path) -> None:
        target = tmp_path / "notes.txt"
        target.write_text("before", encoding="utf-8")
        handle = LocalFileHandle(target)

        assert await handle.read_text() == "before"
        await handle.write_text("after")
        assert target.read_text(encoding="utf-8") == "after"

    @pytest.mark.asyncio
    async def test_write_applies_newline_policy(self, tmp_path: Path) -> None:
        target = tmp_path / "dos.txt"
        target.write_bytes(b"")
        handle = LocalFileHandle(target, newline="\r\n")

        await handle.write_text("one\ntwo\n")

        assert target.read_bytes() == b"one\r\ntwo\r\n"
        assert await handle.read_text() == "one\ntwo\n"


class TestLocalFileHandleFromSettings:
    @pytest.mark.asyncio
    async def test_newline_setting_is_honoured(self, tmp_path: Path) -> None:
        target = tmp_path / "dos.txt"
        target.write_bytes(b"")
        handle = LocalFileHandle.from_settings(target, LiveFileSettings(newline="\r\n"))

        await handle.write_text("one\ntwo\n")

        assert target.read_bytes() == b"one\r\ntwo\r\n"

    @pytest.mark.asyncio
    async def test_encoding_setting_is_honoured(self, tmp_path: Path) -> None:
        target = tmp_path / "legacy.txt"
        target.write_bytes("café".encode("latin-1"))
        handle = LocalFileHandle.from_settings(target, LiveFileSettings(encoding="latin-1"))

        assert await handle.read_text() == "café"
        await handle.write_text("naïve")
        assert target.read_bytes() == "naïve".encode("latin-1")

    @pytest.mark.asyncio
    async def test_non_atomic_setting_writes_through_symlink(self, tmp_path: Path) -> None:
        real = tmp_path / "real.txt"
        real.write_text("before", encoding="utf-8")
        link = tmp_path / "link.txt"
        link.symlink_to(real)
        handle = LocalFileHandle.from_settings(link, LiveFileSettings(atomic_writes=False))

        await handle.write_text("after")

        assert link.is_symlink()
        assert real.read_text(encoding="utf-8") == "after"


class TestTextHelpers:
    def test_read_text_strips_utf8_bom(self, tmp_path: Path) -> None:
        target = tmp_path / "bom.txt"
        target.write_bytes(codecs.BOM_UTF8 + "café".encode("utf-8"))
        assert read_text(target) == "café"

    def test_read_text_detects_utf16(self, tmp_path: Path) -> None:
        target = tmp_path / "wide.txt"
        target.write_bytes("wide text".encode("utf-16"))
        assert read_text(target) == "wide text"

    def test_read_text_normalizes_newlines(self, tmp_path: Path) -> None:
        target = tmp_path / "mixed.txt"
        target.write_bytes(b"a\r\nb\rc\n")
        assert read_text(target) == "a\nb\nc\n"
        assert read_text(target, normalize_newlines=False) == "a\r\nb\rc\n"

    def test_write_text_replaces_atomically(self, tmp_path: Path) -> None:
        target = tmp_path / "atomic.txt"
        target.write_text("old", encoding="utf-8")

        write_text(target, "new")

        assert target.read_text(encoding="utf-8") == "new"
        assert sorted(path.name for path in tmp_path.iterdir()) == ["atomic.txt"]

    def test_write_text_non_atomic(self, tmp_path: Path) -> None:
        target = tmp_path / "direct.txt"
        write_text(target, "direct", atomic=False)
        assert target.read_text(encoding="utf-8") == "direct"

    def test_unknown_newline_policy_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            write_text(tmp_path / "bad.txt", "text", newline="\n\r")
