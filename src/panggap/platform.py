"""Platform-specific operations: shortcut modifier, accessibility, file opening.

Everything here is a thin function over ``sys.platform`` so callers (and tests)
can pass an explicit platform name instead of relying on the host.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

_ACCESSIBILITY_SETTINGS_URL = (
    "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility"
)


def get_platform() -> str:
    """Return the current platform name (``sys.platform``)."""
    return sys.platform


def get_modifier_name(platform_name: str | None = None) -> str:
    """Return the primary shortcut modifier: ``"cmd"`` on macOS, else ``"ctrl"``."""
    name = platform_name or sys.platform
    return "cmd" if name == "darwin" else "ctrl"


def requires_accessibility_permission(platform_name: str | None = None) -> bool:
    """Return True where synthetic input needs an OS-granted accessibility capability.

    Only macOS gates synthetic keystrokes this way; on Windows and X11 they
    are delivered unconditionally.
    """
    return (platform_name or sys.platform) == "darwin"


def open_accessibility_settings() -> bool:
    """Open the macOS Accessibility privacy pane.

    Returns ``False`` (and does nothing) on other platforms or when the
    ``open`` command fails.
    """
    if not requires_accessibility_permission():
        return False
    try:
        subprocess.Popen(["open", _ACCESSIBILITY_SETTINGS_URL])
    except OSError:
        logger.exception("Failed to open macOS accessibility settings")
        return False
    logger.info("Opened macOS accessibility settings")
    return True


def open_path(path: Path) -> None:
    """Open *path* with the operating system's default handler."""
    if sys.platform == "win32":
        os.startfile(path)  # type: ignore[attr-defined]
    elif sys.platform == "darwin":
        subprocess.Popen(["open", str(path)])
    else:
        subprocess.Popen(["xdg-open", str(path)])
