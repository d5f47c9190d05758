"""Capture protocol: extract the text of the focused field via select-all + copy."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

from panggap.clipboard import Clipboard, ClipboardSnapshot, restore, snapshot
from panggap.errors import CaptureUnavailable, ClipboardError, OperationTimeout
from panggap.keystrokes import KeystrokeInjector
from panggap.platform import requires_accessibility_permission
from panggap.timeouts import run_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_CAPTURE_TIMEOUT = 5.0
MAX_CAPTURE_CHARS = 50_000


class CaptureKind(str, Enum):
    TEXT = "text"
    EMPTY = "empty"
    PERMISSION_DENIED = "permission_denied"


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of one capture attempt.

    ``reason`` is for logs only; it is never shown to the user.
    """

    kind: CaptureKind
    text: str = ""
    reason: str = ""

    @classmethod
    def captured(cls, text: str) -> CaptureResult:
        return cls(CaptureKind.TEXT, text=text)

    @classmethod
    def empty(cls, reason: str = "") -> CaptureResult:
        return cls(CaptureKind.EMPTY, reason=reason)

    @classmethod
    def permission_denied(cls, reason: str = "") -> CaptureResult:
        return cls(CaptureKind.PERMISSION_DENIED, reason=reason)


def _is_blank(text: str | None) -> bool:
    return not text or not text.strip()


class TextCapture:
    """Captures the focused field's text without disturbing the clipboard.

    Args:
        clipboard: Clipboard to borrow for the copy.
        keystrokes: Injector used for select-all, copy and deselect.
        timeout: Overall time limit in seconds.
        max_chars: Captures longer than this are treated as empty.
        check_permissions: Apply the "clipboard unchanged means no
            permission" heuristic.  Defaults to whether the host platform
            gates synthetic input behind an accessibility grant.
    """

    def __init__(
        self,
        clipboard: Clipboard,
        keystrokes: KeystrokeInjector,
        timeout: float = DEFAULT_CAPTURE_TIMEOUT,
        max_chars: int = MAX_CAPTURE_CHARS,
        check_permissions: bool | None = None,
    ) -> None:
        self._clipboard = clipboard
        self._keystrokes = keystrokes
        self._timeout = timeout
        self._max_chars = max_chars
        if check_permissions is None:
            check_permissions = requires_accessibility_permission()
        self._check_permissions = check_permissions

    def capture_active_text(self) -> CaptureResult:
        """Select all text in the focused field, copy it and return it.

        The clipboard is restored before this method returns, whatever the
        outcome.  A timeout is reported as ``PERMISSION_DENIED``: to the user
        "too slow" and "blocked" look the same.
        """
        original = snapshot(self._clipboard)
        cancelled = threading.Event()
        try:
            candidate = run_with_timeout(
                lambda: self._select_and_copy(original, cancelled),
                self._timeout,
                name="Text capture",
            )
        except (OperationTimeout, CaptureUnavailable) as exc:
            cancelled.set()
            logger.warning("Text capture failed: %s", exc)
            return CaptureResult.permission_denied(str(exc))
        finally:
            restore(self._clipboard, original)

        return self._classify(candidate)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _select_and_copy(
        self,
        original: ClipboardSnapshot | None,
        cancelled: threading.Event,
    ) -> str | None:
        """Run the keystroke part of the protocol on the timeout worker.

        *cancelled* is set once the caller has given up; later steps are then
        skipped.  A keystroke already sent is not undone.
        """
        self._keystrokes.select_all()
        if cancelled.is_set():
            return None
        self._keystrokes.copy()
        if cancelled.is_set():
            return None

        candidate = self._read_candidate()

        if self._check_permissions:
            original_text = original.text if original is not None else None
            # Unchanged clipboard: the keystrokes most likely had no effect.
            if candidate == original_text:
                raise CaptureUnavailable("clipboard unchanged after copy")
            # Both blank is ambiguous, but the user pressed the hotkey
            # expecting something to be captured.
            if _is_blank(original_text) and _is_blank(candidate):
                raise CaptureUnavailable("clipboard empty before and after copy")

        if cancelled.is_set():
            return None
        self._keystrokes.deselect()
        return candidate

    def _read_candidate(self) -> str | None:
        try:
            return self._clipboard.read()
        except ClipboardError as exc:
            logger.error("Failed to read clipboard: %s", exc)
            return None

    def _classify(self, candidate: str | None) -> CaptureResult:
        if _is_blank(candidate):
            logger.info("No text found in the focused field")
            return CaptureResult.empty("blank")
        assert candidate is not None
        if len(candidate) > self._max_chars:
            logger.info(
                "Captured text too long (%d > %d chars), skipping",
                len(candidate),
                self._max_chars,
            )
            return CaptureResult.empty("too_large")
        logger.info("Captured %d chars", len(candidate))
        return CaptureResult.captured(candidate)
