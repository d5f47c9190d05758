"""Synthetic keystroke injection into whatever window has OS input focus.

There is no target addressing: every combo goes to the focused application.
OS event delivery is asynchronous with respect to the injection call, so each
action is followed by a fixed settle delay before the caller may read the
clipboard or treat the action as done.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

from panggap.platform import get_modifier_name

logger = logging.getLogger(__name__)

# Settle delays (seconds), tuned empirically.
SELECT_ALL_SETTLE = 0.05
COPY_SETTLE = 0.10
PASTE_SETTLE = 0.05
DESELECT_SETTLE = 0.03
CLICK_SETTLE = 0.05

# Gaps between the individual press/release events of one combo.
_PRESS_GAP = 0.02


class KeystrokeInjector(Protocol):
    def select_all(self) -> None: ...

    def copy(self) -> None: ...

    def paste(self) -> None: ...

    def deselect(self) -> None: ...

    def click_at_pointer(self) -> None: ...


class PynputKeystrokeInjector:
    """Keystroke injector backed by pynput's keyboard and mouse controllers."""

    def __init__(self, platform_name: str | None = None) -> None:
        # Imported here: pynput picks its backend at import time and fails
        # without a display server.
        from pynput import keyboard, mouse

        self._Key = keyboard.Key
        self._keyboard = keyboard.Controller()
        self._mouse = mouse.Controller()
        self._Button = mouse.Button
        modifier = get_modifier_name(platform_name)
        self._modifier = keyboard.Key.cmd if modifier == "cmd" else keyboard.Key.ctrl

    def select_all(self) -> None:
        self._combo("a")
        time.sleep(SELECT_ALL_SETTLE)

    def copy(self) -> None:
        self._combo("c")
        time.sleep(COPY_SETTLE)

    def paste(self) -> None:
        self._combo("v")
        time.sleep(PASTE_SETTLE)

    def deselect(self) -> None:
        """Move the caret right, collapsing the selection to its end."""
        self._keyboard.tap(self._Key.right)
        time.sleep(DESELECT_SETTLE)

    def click_at_pointer(self) -> None:
        """Click at the current pointer location to pull focus back."""
        self._mouse.click(self._Button.left)
        time.sleep(CLICK_SETTLE)

    def _combo(self, char: str) -> None:
        """Send modifier+*char* after releasing any physically held modifiers.

        The user is usually still holding the hotkey's modifiers when capture
        starts; an extra Shift or Alt would turn Ctrl+A into something else.
        """
        self._release_all_modifiers()
        time.sleep(_PRESS_GAP)
        self._keyboard.press(self._modifier)
        time.sleep(_PRESS_GAP)
        self._keyboard.press(char)
        time.sleep(_PRESS_GAP)
        self._keyboard.release(char)
        time.sleep(_PRESS_GAP)
        self._keyboard.release(self._modifier)
        logger.debug("Sent %s+%s", self._modifier, char)

    def _release_all_modifiers(self) -> None:
        """Send key-up events for all common modifier keys."""
        key = self._Key
        for mod in (
            key.alt_l, key.alt_r,
            key.ctrl_l, key.ctrl_r,
            key.shift_l, key.shift_r,
            key.cmd_l, key.cmd_r,
        ):
            try:
                self._keyboard.release(mod)
            except Exception:
                logger.debug("Could not release %s", mod)
