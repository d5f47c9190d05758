"""Replacement protocol: paste new text over the focused field's contents."""

from __future__ import annotations

import logging

from panggap.clipboard import Clipboard, preserved_clipboard
from panggap.errors import ReplacementFailed
from panggap.keystrokes import KeystrokeInjector

logger = logging.getLogger(__name__)


class TextReplacer:
    """Writes text into the focused field through the clipboard."""

    def __init__(self, clipboard: Clipboard, keystrokes: KeystrokeInjector) -> None:
        self._clipboard = clipboard
        self._keystrokes = keystrokes

    def replace_active_text(self, new_text: str) -> None:
        """Replace everything in the focused field with *new_text*.

        Clicks at the pointer first, since focus may have drifted to the
        suggestion window.  The user's clipboard is restored on every path.

        Raises:
            ReplacementFailed: If any clipboard or keystroke step failed.
                The clipboard has already been restored when this is raised.
        """
        try:
            with preserved_clipboard(self._clipboard):
                self._keystrokes.click_at_pointer()
                self._clipboard.write(new_text)
                self._keystrokes.select_all()
                self._keystrokes.paste()
        except Exception as exc:
            logger.error("Text replacement failed: %s", exc)
            raise ReplacementFailed(f"Could not replace text: {exc}") from exc
        logger.info("Replaced focused text (%d chars)", len(new_text))
