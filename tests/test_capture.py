from __future__ import annotations

import time

import pytest

from fakes import FakeClipboard, FakeTextField
from panggap.capture import CaptureKind, TextCapture


def _capture(field: FakeTextField, **kwargs: object) -> TextCapture:
    kwargs.setdefault("check_permissions", True)
    return TextCapture(field.clipboard, field, **kwargs)  # type: ignore[arg-type]


def test_captures_field_text_and_restores_clipboard() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "Hello world")

    result = _capture(field).capture_active_text()

    assert result.kind is CaptureKind.TEXT
    assert result.text == "Hello world"
    assert clipboard.text == "keep me"
    assert field.calls == ["select_all", "copy", "deselect"]
    assert not field.selected


def test_blocked_keystrokes_report_permission_denied() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "Hello world", blocked=True)

    result = _capture(field).capture_active_text()

    assert result.kind is CaptureKind.PERMISSION_DENIED
    assert clipboard.text == "keep me"
    assert "deselect" not in field.calls


def test_field_text_equal_to_clipboard_is_treated_as_denied() -> None:
    clipboard = FakeClipboard("same text")
    field = FakeTextField(clipboard, "same text")

    result = _capture(field).capture_active_text()

    assert result.kind is CaptureKind.PERMISSION_DENIED


def test_empty_clipboard_and_empty_field_is_denied_when_checking() -> None:
    clipboard = FakeClipboard("")
    field = FakeTextField(clipboard, "")

    result = _capture(field).capture_active_text()

    assert result.kind is CaptureKind.PERMISSION_DENIED


def test_empty_field_is_empty_without_permission_check() -> None:
    clipboard = FakeClipboard("")
    field = FakeTextField(clipboard, "")

    result = _capture(field, check_permissions=False).capture_active_text()

    assert result.kind is CaptureKind.EMPTY
    assert result.text == ""


def test_whitespace_only_text_is_empty() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "   \n\t ")

    result = _capture(field).capture_active_text()

    assert result.kind is CaptureKind.EMPTY
    assert clipboard.text == "keep me"


def test_oversized_text_is_empty() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "x" * 11)

    result = _capture(field, max_chars=10).capture_active_text()

    assert result.kind is CaptureKind.EMPTY
    assert result.reason == "too_large"
    assert clipboard.text == "keep me"


def test_text_at_limit_is_captured() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "x" * 10)

    result = _capture(field, max_chars=10).capture_active_text()

    assert result.kind is CaptureKind.TEXT


def test_timeout_reports_denied_and_skips_remaining_steps() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "Hello world", delays={"select_all": 0.3})

    started = time.monotonic()
    result = _capture(field, timeout=0.05).capture_active_text()
    elapsed = time.monotonic() - started

    assert result.kind is CaptureKind.PERMISSION_DENIED
    assert "timed out" in result.reason
    assert elapsed < 0.25
    assert clipboard.text == "keep me"

    # The abandoned worker finishes select-all, then notices cancellation.
    time.sleep(0.4)
    assert "copy" not in field.calls
    assert clipboard.text == "keep me"


def test_keystroke_error_propagates_with_clipboard_restored() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "Hello world", fail_on={"copy"})

    with pytest.raises(RuntimeError, match="copy failed"):
        _capture(field).capture_active_text()

    assert clipboard.text == "keep me"
