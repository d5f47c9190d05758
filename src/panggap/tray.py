"""System tray icon with status display and the app's few menu actions."""

from __future__ import annotations

import logging
import threading
from typing import Callable

import pystray
from PIL import Image, ImageDraw

from panggap.pipeline import PipelineState

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Icon colours for each application state
# ---------------------------------------------------------------------------

_STATUS_LABELS: dict[PipelineState, str] = {
    PipelineState.IDLE: "Ready",
    PipelineState.CAPTURING: "Capturing...",
    PipelineState.ENHANCING: "Enhancing...",
    PipelineState.PRESENTING: "Ready",
}

_STATUS_COLORS: dict[str, str] = {
    "Ready": "#4CAF50",  # green
    "Capturing...": "#FF9800",  # orange
    "Enhancing...": "#9C27B0",  # purple
    "Hotkey unavailable": "#F44336",  # red
}

_DEFAULT_ICON_COLOR = "#4CAF50"


def _create_icon_image(color: str = _DEFAULT_ICON_COLOR, size: int = 64) -> Image.Image:
    """Create a simple colored circle icon on a transparent background."""
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    margin = size // 8
    draw.ellipse(
        [margin, margin, size - margin, size - margin],
        fill=color,
    )
    return image


def status_for_state(state: PipelineState) -> str:
    """Return the tray status label for a pipeline state."""
    return _STATUS_LABELS.get(state, "Ready")


class TrayApp:
    """System tray application manager.

    Provides a pystray-based tray icon with a right-click context menu
    showing the current status and hotkey, an "enhance now" action, settings
    actions and quit.
    """

    def __init__(
        self,
        on_enhance: Callable[[], None],
        on_edit_settings: Callable[[], None],
        on_reload_settings: Callable[[], None],
        on_quit: Callable[[], None],
        hotkey_label: Callable[[], str],
        on_open_accessibility: Callable[[], object] | None = None,
    ) -> None:
        self._on_enhance = on_enhance
        self._on_edit_settings = on_edit_settings
        self._on_reload_settings = on_reload_settings
        self._on_quit = on_quit
        self._hotkey_label = hotkey_label
        self._on_open_accessibility = on_open_accessibility
        self._status: str = "Ready"
        self._icon: pystray.Icon | None = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def run(self) -> None:
        """Run the system tray icon (**blocks** the calling thread)."""
        self._icon = pystray.Icon(
            name="Panggap",
            icon=_create_icon_image(_STATUS_COLORS.get(self._status, _DEFAULT_ICON_COLOR)),
            title=f"Panggap - {self._status}",
            menu=self._build_menu(),
        )
        logger.info("Starting system tray icon")
        self._icon.run()

    def update_status(self, status: str) -> None:
        """Update the status text and icon colour shown in the tray."""
        self._status = status
        icon = self._icon
        if icon is None:
            return

        color = _STATUS_COLORS.get(status, _DEFAULT_ICON_COLOR)
        icon.icon = _create_icon_image(color)
        icon.title = f"Panggap - {status}"

        # Rebuild the menu so the status line reflects the new state.
        icon.menu = self._build_menu()
        icon.update_menu()
        logger.debug("Tray status updated to %r", status)

    def stop(self) -> None:
        """Stop the tray icon and unblock :meth:`run`."""
        icon = self._icon
        if icon is not None:
            icon.stop()
            logger.info("System tray icon stopped")

    # ------------------------------------------------------------------ #
    # Menu construction
    # ------------------------------------------------------------------ #

    def _build_menu(self) -> pystray.Menu:
        """Build the right-click context menu."""
        items = [
            pystray.MenuItem(f"Panggap - {self._status}", action=None, enabled=False),
            pystray.MenuItem(f"Hotkey: {self._hotkey_label()}", action=None, enabled=False),
            pystray.MenuItem("Enhance text now", self._on_enhance_clicked),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Edit settings...", self._on_edit_settings_clicked),
            pystray.MenuItem("Reload settings", self._on_reload_clicked),
        ]
        if self._on_open_accessibility is not None:
            items.append(
                pystray.MenuItem("Accessibility settings...", self._on_accessibility_clicked)
            )
        items += [
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Quit", self._on_quit_clicked),
        ]
        return pystray.Menu(*items)

    # ------------------------------------------------------------------ #
    # Menu action handlers
    # ------------------------------------------------------------------ #

    def _on_enhance_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        """Run the pipeline on a worker thread; the menu callback must return."""
        threading.Thread(
            target=self._run_safely,
            args=(self._on_enhance, "enhance"),
            name="panggap-tray-enhance",
            daemon=True,
        ).start()

    def _on_edit_settings_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        self._run_safely(self._on_edit_settings, "edit settings")

    def _on_reload_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        self._run_safely(self._on_reload_settings, "reload settings")

    def _on_accessibility_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        if self._on_open_accessibility is not None:
            self._run_safely(self._on_open_accessibility, "open accessibility settings")

    def _on_quit_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        """Handle the Quit menu item."""
        logger.info("Quit requested from tray menu")
        self._on_quit()

    @staticmethod
    def _run_safely(action: Callable[[], object], label: str) -> None:
        try:
            action()
        except Exception:
            logger.exception("Tray action %r failed", label)
