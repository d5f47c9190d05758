"""Main entry point: wires the Panggap collaborators together."""

from __future__ import annotations

import logging

from panggap.capture import TextCapture
from panggap.clipboard import SystemClipboard
from panggap.config import SettingsStore
from panggap.hotkey import HotkeyDispatcher
from panggap.keystrokes import PynputKeystrokeInjector
from panggap.llm import TextEnhancer
from panggap.pipeline import EnhancementPipeline, PipelineState
from panggap.platform import (
    open_accessibility_settings,
    open_path,
    requires_accessibility_permission,
)
from panggap.replacement import TextReplacer
from panggap.suggestion import SuggestionPresenter
from panggap.suggestion_window import SuggestionWindow
from panggap.tray import TrayApp, status_for_state

logger = logging.getLogger(__name__)


class PanggapApp:
    """Main application orchestrator.

    Each process-wide resource (clipboard, keyboard, hotkey, suggestion
    window) is created once here and handed to the components that use it.
    """

    def __init__(self, settings: SettingsStore | None = None) -> None:
        self._settings = settings or SettingsStore()
        logger.info("Loading configuration from %s", self._settings.path)
        config = self._settings.load()

        clipboard = SystemClipboard()
        keystrokes = PynputKeystrokeInjector()

        self._capture = TextCapture(
            clipboard,
            keystrokes,
            timeout=config.capture.timeout,
            max_chars=config.capture.max_chars,
        )
        self._replacer = TextReplacer(clipboard, keystrokes)
        self._enhancer = TextEnhancer(self._settings)

        self._presenter = SuggestionPresenter(
            self._replacer,
            idle_timeout=config.presentation.idle_timeout,
            focus_grace=config.presentation.focus_grace,
        )
        self._window = SuggestionWindow(
            self._presenter, poll_interval_ms=config.presentation.poll_interval_ms,
        )
        self._presenter.attach_surface(self._window)

        self._pipeline = EnhancementPipeline(
            self._capture,
            self._enhancer,
            self._presenter,
            # Read per run so a changed timeout applies without restart.
            enhance_timeout=lambda: self._settings.load().llm.timeout,
            on_state_change=self._on_state_change,
        )

        self._hotkey = HotkeyDispatcher(
            on_trigger=self._pipeline.enhance_active_text,
            on_registration_failed=open_accessibility_settings,
        )

        self._tray = TrayApp(
            on_enhance=self._pipeline.enhance_active_text,
            on_edit_settings=self._on_edit_settings,
            on_reload_settings=self._on_reload_settings,
            on_quit=self._on_quit,
            hotkey_label=self._hotkey_label,
            on_open_accessibility=(
                open_accessibility_settings if requires_accessibility_permission() else None
            ),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Start the application; blocks until the user quits."""
        self._window.start()
        accelerator = self._settings.load().hotkey.accelerator
        if self._hotkey.register(accelerator):
            logger.info("Panggap is ready.  Press %s to enhance the focused text.", accelerator)
        else:
            logger.warning(
                "Failed to register global hotkey %r; use the tray menu instead",
                accelerator,
            )
            self._tray.update_status("Hotkey unavailable")

        try:
            # tray.run() blocks until the user selects Quit.
            self._tray.run()
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Release the global hotkey and background resources."""
        self._hotkey.cleanup()
        self._presenter.hide()
        self._window.stop()
        self._enhancer.close()

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: PipelineState, to_state: PipelineState) -> None:
        self._tray.update_status(status_for_state(to_state))

    def _hotkey_label(self) -> str:
        status = self._hotkey.status()
        return status.accelerator if status.is_registered and status.accelerator else "(none)"

    def _on_edit_settings(self) -> None:
        # load() creates the file with defaults if it is missing.
        self._settings.load()
        open_path(self._settings.path)

    def _on_reload_settings(self) -> None:
        accelerator = self._settings.load().hotkey.accelerator
        logger.info("Reloading settings (hotkey %r)", accelerator)
        if self._hotkey.update(accelerator):
            self._tray.update_status("Ready")
        else:
            self._tray.update_status("Hotkey unavailable")

    def _on_quit(self) -> None:
        """Handle the Quit action from the tray menu."""
        logger.info("Shutting down...")
        self._hotkey.cleanup()
        self._tray.stop()


# ======================================================================
# Entry point
# ======================================================================


def main() -> None:
    """Entry point for the Panggap application."""
    settings = SettingsStore()
    level = settings.load().log_level.upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    app = PanggapApp(settings)
    app.run()
    logger.info("Goodbye.")


if __name__ == "__main__":
    main()
