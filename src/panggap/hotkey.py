"""Global hotkey registration using pynput.

Accelerators use the familiar ``Modifier+Modifier+Key`` form, e.g.
``"CommandOrControl+Shift+E"`` or ``"alt+space"``.  At most one binding is
active at a time; :class:`HotkeyDispatcher` owns it.
"""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

# Accelerator modifier spelling -> canonical modifier name.
# "CommandOrControl" is resolved per platform in parse_hotkey().
_MODIFIER_ALIASES: dict[str, str] = {
    "command": "cmd",
    "cmd": "cmd",
    "super": "cmd",
    "meta": "cmd",
    "win": "cmd",
    "control": "ctrl",
    "ctrl": "ctrl",
    "alt": "alt",
    "option": "alt",
    "altgr": "alt",
    "shift": "shift",
}

_PLATFORM_MODIFIERS = {"commandorcontrol", "cmdorctrl"}

# Named special keys that aren't modifiers (value = pynput Key name)
_SPECIAL_KEYS: dict[str, str] = {
    "space": "space",
    "enter": "enter",
    "return": "enter",
    "tab": "tab",
    "backspace": "backspace",
    "delete": "delete",
    "escape": "esc",
    "esc": "esc",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
    "home": "home",
    "end": "end",
    "pageup": "page_up",
    "page_up": "page_up",
    "pagedown": "page_down",
    "page_down": "page_down",
    "insert": "insert",
    "plus": "+",
}
_SPECIAL_KEYS.update({f"f{n}": f"f{n}" for n in range(1, 21)})

# pynput Key name prefix -> canonical modifier name
_KEY_NAME_TO_MODIFIER: dict[str, str] = {
    "alt": "alt",
    "ctrl": "ctrl",
    "shift": "shift",
    "cmd": "cmd",
}


@dataclass(frozen=True)
class HotkeyBinding:
    """A parsed accelerator: canonical modifier names plus one trigger key."""

    accelerator: str
    modifiers: frozenset[str]
    key: str


@dataclass(frozen=True)
class HotkeyStatus:
    is_registered: bool
    accelerator: str | None
    platform: str


def parse_hotkey(accelerator: str, platform_name: str | None = None) -> HotkeyBinding:
    """Parse an accelerator like ``"CommandOrControl+Shift+E"``.

    The last component is always the trigger key.  All preceding components
    must be recognized modifiers.

    Args:
        accelerator: Combo string such as ``"alt+space"`` or ``"Ctrl+Shift+A"``.
        platform_name: Platform used to resolve ``CommandOrControl``;
            defaults to ``sys.platform``.

    Raises:
        ValueError: If the string is empty, has an unknown modifier, or has
            no usable trigger key.
    """
    if not isinstance(accelerator, str) or not accelerator.strip():
        raise ValueError(f"Empty hotkey string: {accelerator!r}")

    # A trailing "+" is the plus key itself ("Ctrl++").
    text = accelerator.strip()
    if text.endswith("++"):
        text = text[:-2] + "+plus"
    parts = [p.strip().lower() for p in text.split("+")]
    if any(not p for p in parts):
        raise ValueError(f"Malformed hotkey string: {accelerator!r}")

    *modifier_parts, trigger_part = parts

    platform_cmd = "cmd" if (platform_name or sys.platform) == "darwin" else "ctrl"
    modifiers: set[str] = set()
    for mod in modifier_parts:
        if mod in _PLATFORM_MODIFIERS:
            modifiers.add(platform_cmd)
        elif mod in _MODIFIER_ALIASES:
            modifiers.add(_MODIFIER_ALIASES[mod])
        else:
            raise ValueError(
                f"Unknown modifier {mod!r} in hotkey {accelerator!r}. "
                f"Supported modifiers: CommandOrControl, Command, Control, Alt, Shift, Super"
            )

    if trigger_part in _MODIFIER_ALIASES or trigger_part in _PLATFORM_MODIFIERS:
        raise ValueError(
            f"Trigger key {trigger_part!r} is a modifier. "
            f"The last component of {accelerator!r} must be a non-modifier key."
        )
    if trigger_part in _SPECIAL_KEYS:
        key = _SPECIAL_KEYS[trigger_part]
    elif len(trigger_part) == 1:
        key = trigger_part
    else:
        raise ValueError(f"Unknown trigger key {trigger_part!r} in hotkey {accelerator!r}")

    return HotkeyBinding(accelerator=accelerator, modifiers=frozenset(modifiers), key=key)


def _modifier_of(key: Any) -> str | None:
    """Return the canonical modifier name if *key* is a modifier, else None."""
    name = getattr(key, "name", None)
    if not isinstance(name, str):
        return None
    return _KEY_NAME_TO_MODIFIER.get(name.split("_")[0])


def _key_id(key: Any) -> str | None:
    """Return a comparable identifier for *key*: its char, or its Key name."""
    char = getattr(key, "char", None)
    if isinstance(char, str) and char:
        # With Ctrl held, some backends report the control character
        # ("\x05" for Ctrl+E) instead of the letter.
        if len(char) == 1 and ord(char) < 32:
            char = chr(ord(char) + 96)
        return char.lower()
    name = getattr(key, "name", None)
    return name if isinstance(name, str) else None


class Listener(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


class HotkeyListener:
    """Fires *on_activate* each time the full combo goes down.

    Auto-repeat while the combo is held does not re-fire; the trigger key
    has to be released first.
    """

    def __init__(self, binding: HotkeyBinding, on_activate: Callable[[], None]) -> None:
        self._binding = binding
        self._on_activate = on_activate

        # Currently held modifier names (canonical)
        self._held_modifiers: set[str] = set()
        self._trigger_held = False
        self._active = False

        self._lock = threading.Lock()
        self._listener: Any = None

    def start(self) -> None:
        """Start listening on a daemon background thread.

        Raises:
            RuntimeError: If the OS refuses to deliver key events (macOS
                without the Input Monitoring / Accessibility grant).
        """
        if self._listener is not None:
            logger.warning("Listener already running")
            return

        # Imported here: pynput picks its backend at import time and fails
        # without a display server.
        from pynput import keyboard

        listener = keyboard.Listener(
            on_press=self._on_key_press,
            on_release=self._on_key_release,
        )
        listener.daemon = True
        listener.start()
        listener.wait()
        if not getattr(listener, "IS_TRUSTED", True):
            listener.stop()
            raise RuntimeError("Process is not trusted to monitor keyboard input")
        self._listener = listener
        logger.info("Hotkey listener started for %r", self._binding.accelerator)

    def stop(self) -> None:
        """Stop the listener and reset state."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            logger.info("Hotkey listener stopped")
        with self._lock:
            self._held_modifiers.clear()
            self._trigger_held = False
            self._active = False

    # ------------------------------------------------------------------
    # Internal key handlers
    # ------------------------------------------------------------------

    def _canonical(self, key: Any) -> Any:
        listener = self._listener
        if listener is not None and hasattr(listener, "canonical"):
            return listener.canonical(key)
        return key

    def _is_trigger(self, key: Any) -> bool:
        if _key_id(key) == self._binding.key:
            return True
        return _key_id(self._canonical(key)) == self._binding.key

    def _on_key_press(self, key: Any) -> None:
        fire = False

        with self._lock:
            mod = _modifier_of(key)
            if mod is not None:
                self._held_modifiers.add(mod)

            if self._is_trigger(key):
                self._trigger_held = True

            combo_pressed = (
                self._trigger_held
                and self._binding.modifiers <= self._held_modifiers
            )
            if combo_pressed and not self._active:
                self._active = True
                fire = True

        # Fire callback outside the lock to avoid deadlocks.
        if fire:
            logger.debug("Hotkey activated: %s", self._binding.accelerator)
            try:
                self._on_activate()
            except Exception:
                logger.exception("Error in hotkey callback")

    def _on_key_release(self, key: Any) -> None:
        with self._lock:
            mod = _modifier_of(key)
            if mod is not None:
                self._held_modifiers.discard(mod)
            if self._is_trigger(key):
                self._trigger_held = False
                self._active = False


ListenerFactory = Callable[[HotkeyBinding, Callable[[], None]], Listener]


class HotkeyDispatcher:
    """Owns the single global hotkey binding and dispatches its presses.

    The press callback returns immediately: *on_trigger* runs on a worker
    thread, and anything it raises is logged, never handed back to the OS
    hook (on Windows a slow or failing low-level hook gets removed).

    Args:
        on_trigger: Called on a worker thread for each hotkey press.
        listener_factory: Builds the OS listener for a binding.
        platform_name: Used to resolve ``CommandOrControl``.
        on_registration_failed: Called when the OS listener could not be
            installed (e.g. to open the accessibility settings).
    """

    def __init__(
        self,
        on_trigger: Callable[[], None],
        listener_factory: ListenerFactory = HotkeyListener,
        platform_name: str | None = None,
        on_registration_failed: Callable[[], Any] | None = None,
    ) -> None:
        self._on_trigger = on_trigger
        self._listener_factory = listener_factory
        self._platform = platform_name or sys.platform
        self._on_registration_failed = on_registration_failed

        self._lock = threading.RLock()
        self._binding: HotkeyBinding | None = None
        self._listener: Listener | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register(self, accelerator: str) -> bool:
        """Register *accelerator* as the global hotkey, replacing any other.

        Returns ``False`` if the accelerator is malformed or the OS listener
        could not be installed; no binding is active afterwards.
        """
        with self._lock:
            self.unregister()

            try:
                binding = parse_hotkey(accelerator, self._platform)
            except ValueError as exc:
                logger.error("Invalid hotkey %r: %s", accelerator, exc)
                return False

            listener = self._listener_factory(binding, self._handle_trigger)
            try:
                listener.start()
            except Exception:
                logger.exception("Failed to register global hotkey %r", accelerator)
                if self._on_registration_failed is not None:
                    try:
                        self._on_registration_failed()
                    except Exception:
                        logger.exception("Error in registration-failure callback")
                return False

            self._binding = binding
            self._listener = listener
            logger.info("Registered global hotkey %r", accelerator)
            return True

    def update(self, accelerator: str) -> bool:
        """Swap the active binding for *accelerator*."""
        return self.register(accelerator)

    def unregister(self) -> None:
        """Remove the active binding, if any.  Safe to call repeatedly."""
        with self._lock:
            listener, binding = self._listener, self._binding
            # Forget the binding even if stopping the listener fails.
            self._listener = None
            self._binding = None
        if listener is None:
            return
        try:
            listener.stop()
            logger.info("Unregistered global hotkey %r", binding.accelerator if binding else None)
        except Exception:
            logger.exception("Error unregistering global hotkey")

    def cleanup(self) -> None:
        """Release everything; must run before the process exits."""
        self.unregister()
        logger.info("All global hotkeys cleaned up")

    def is_registered(self) -> bool:
        return self._binding is not None

    def status(self) -> HotkeyStatus:
        binding = self._binding
        return HotkeyStatus(
            is_registered=binding is not None,
            accelerator=binding.accelerator if binding else None,
            platform=self._platform,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _handle_trigger(self) -> None:
        """Called from the OS hook thread; must return immediately."""
        threading.Thread(
            target=self._run_trigger,
            name="panggap-enhance",
            daemon=True,
        ).start()

    def _run_trigger(self) -> None:
        try:
            self._on_trigger()
        except Exception:
            logger.exception("Error handling hotkey press")
