"""Exception hierarchy and the fixed user-facing guidance messages."""

from __future__ import annotations

NO_TEXT_FOUND_MESSAGE = (
    "No text found to enhance.\n\n"
    "Please:\n"
    "• Click in a text field\n"
    "• Type some text\n"
    "• Press the hotkey again"
)

CAPTURE_UNAVAILABLE_MESSAGE = (
    "Could not capture text from the active window.\n\n"
    "Please check that:\n"
    "• A text field is in focus (click in a text field first)\n"
    "• Accessibility permissions are granted for Panggap\n"
    "• The active app allows text selection\n\n"
    "On macOS, you can check accessibility permissions in:\n"
    "System Settings → Privacy & Security → Accessibility"
)

CONFIGURATION_MISSING_MESSAGE = (
    "API key is not configured. Add it to the [llm] section of the "
    "settings file and reload settings from the tray menu."
)


class PanggapError(Exception):
    """Base class for all errors raised by Panggap."""


class ClipboardError(PanggapError):
    """The system clipboard could not be read or written."""


class OperationTimeout(PanggapError):
    """A bounded operation did not settle within its time limit."""


class CaptureUnavailable(PanggapError):
    """Synthetic capture had no observable effect (permissions or timeout)."""

    user_message = CAPTURE_UNAVAILABLE_MESSAGE


class NoTextFound(PanggapError):
    """Capture succeeded but there was no usable text."""

    user_message = NO_TEXT_FOUND_MESSAGE


class EnhancementFailed(PanggapError):
    """The remote enhancement call failed; the message is shown verbatim."""


class ConfigurationMissing(EnhancementFailed):
    """No API key is configured."""

    def __init__(self, message: str = CONFIGURATION_MISSING_MESSAGE) -> None:
        super().__init__(message)


class ReplacementFailed(PanggapError):
    """Pasting the replacement text back into the target field failed."""
