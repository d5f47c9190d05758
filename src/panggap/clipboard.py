"""Clipboard transaction helper.

Every protocol that touches the system clipboard snapshots it first and
restores it afterwards, on every exit path.  :func:`preserved_clipboard` is
the scoped form of that discipline.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Protocol

import pyperclip

from panggap.errors import ClipboardError

logger = logging.getLogger(__name__)


class Clipboard(Protocol):
    def read(self) -> str: ...

    def write(self, text: str) -> None: ...


@dataclass(frozen=True)
class ClipboardSnapshot:
    """Clipboard text captured at the start of a transaction."""

    text: str


class SystemClipboard:
    """The OS clipboard, accessed through pyperclip."""

    def read(self) -> str:
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"Clipboard read failed: {exc}") from exc

    def write(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            raise ClipboardError(f"Clipboard write failed: {exc}") from exc


def snapshot(clipboard: Clipboard) -> ClipboardSnapshot | None:
    """Save the current clipboard text; ``None`` if it could not be read."""
    try:
        return ClipboardSnapshot(clipboard.read())
    except Exception as exc:
        logger.warning("Failed to preserve clipboard: %s", exc)
        return None


def restore(clipboard: Clipboard, saved: ClipboardSnapshot | None) -> None:
    """Write *saved* back to the clipboard.

    A ``None`` snapshot is a no-op.  Write failures are logged, never raised,
    so restoration can sit in a ``finally`` block without masking the
    original error.
    """
    if saved is None:
        return
    try:
        clipboard.write(saved.text)
    except Exception as exc:
        logger.warning("Failed to restore clipboard: %s", exc)


@contextmanager
def preserved_clipboard(clipboard: Clipboard) -> Iterator[ClipboardSnapshot | None]:
    """Snapshot the clipboard on entry and restore it on any exit."""
    saved = snapshot(clipboard)
    try:
        yield saved
    finally:
        restore(clipboard, saved)
