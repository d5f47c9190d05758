from __future__ import annotations

import pyperclip
import pytest

import panggap.clipboard as clipboard_module
from fakes import FakeClipboard
from panggap.clipboard import (
    ClipboardSnapshot,
    SystemClipboard,
    preserved_clipboard,
    restore,
    snapshot,
)
from panggap.errors import ClipboardError


def test_snapshot_captures_current_text() -> None:
    clipboard = FakeClipboard("keep me")
    assert snapshot(clipboard) == ClipboardSnapshot("keep me")


def test_snapshot_returns_none_when_read_fails() -> None:
    clipboard = FakeClipboard("keep me", fail_read=True)
    assert snapshot(clipboard) is None


def test_restore_none_is_noop() -> None:
    clipboard = FakeClipboard("current")
    restore(clipboard, None)
    assert clipboard.text == "current"
    assert clipboard.writes == []


def test_restore_swallows_write_failure() -> None:
    clipboard = FakeClipboard("current", fail_write=True)
    restore(clipboard, ClipboardSnapshot("old"))  # must not raise
    assert clipboard.text == "current"


def test_restore_twice_is_safe() -> None:
    clipboard = FakeClipboard("keep me")
    saved = snapshot(clipboard)
    clipboard.write("scratch")

    restore(clipboard, saved)
    restore(clipboard, saved)

    assert clipboard.text == "keep me"


def test_preserved_clipboard_restores_after_exception() -> None:
    clipboard = FakeClipboard("keep me")

    with pytest.raises(RuntimeError):
        with preserved_clipboard(clipboard):
            clipboard.write("payload")
            raise RuntimeError("boom")

    assert clipboard.text == "keep me"


def test_system_clipboard_wraps_pyperclip_errors(monkeypatch) -> None:  # noqa: ANN001
    def _fail(*_args: object) -> str:
        raise pyperclip.PyperclipException("no clipboard mechanism")

    monkeypatch.setattr(clipboard_module.pyperclip, "paste", _fail)
    monkeypatch.setattr(clipboard_module.pyperclip, "copy", _fail)

    clip = SystemClipboard()
    with pytest.raises(ClipboardError):
        clip.read()
    with pytest.raises(ClipboardError):
        clip.write("x")
    assert snapshot(clip) is None
