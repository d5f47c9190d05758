"""Floating suggestion window: renders the presenter's current state.

Runs its own tkinter event loop on a dedicated daemon thread.  All public
methods are thread-safe (they enqueue commands that the tkinter thread drains
via ``after()`` polling).  The window does not receive state pushes: it polls
:meth:`SuggestionPresenter.get_current` on the same timer.
"""

from __future__ import annotations

import logging
import queue
import threading
import tkinter as tk

from panggap.errors import ReplacementFailed
from panggap.platform import get_platform
from panggap.suggestion import SuggestionKind, SuggestionPresenter, SuggestionState

logger = logging.getLogger(__name__)

_WINDOW_W = 480
_WINDOW_H = 280

_BG = "#1e1e1e"
_FG = "#e0e0e0"
_MUTED_FG = "#9a9a9a"
_ERROR_FG = "#ff6b6b"
_ACCENT = "#4a7dff"

_FONT = ("Segoe UI", 11)
_TITLE_FONT = ("Segoe UI", 10, "bold")


class SuggestionWindow:
    """Thread-safe tkinter surface for a :class:`SuggestionPresenter`."""

    def __init__(self, presenter: SuggestionPresenter, poll_interval_ms: int = 100) -> None:
        self._presenter = presenter
        self._poll_interval_ms = poll_interval_ms

        self._queue: queue.Queue[tuple] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._root: tk.Tk | None = None
        self._started = threading.Event()
        self._focused = False

        # Widgets (set on the window thread)
        self._window: tk.Toplevel | None = None
        self._title: tk.Label | None = None
        self._text: tk.Text | None = None
        self._accept_button: tk.Button | None = None
        self._rendered: SuggestionState | None = None

    # ------------------------------------------------------------------
    # Thread-safe public API (callable from any thread)
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the window thread and wait until the tkinter root is ready."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="panggap-suggestion", daemon=True,
        )
        self._thread.start()
        self._started.wait(timeout=5.0)

    def stop(self) -> None:
        """Shut down the window thread."""
        self._queue.put(("QUIT",))

    def show(self) -> None:
        self._queue.put(("SHOW",))

    def hide(self) -> None:
        self._queue.put(("HIDE",))

    def is_focused(self) -> bool:
        return self._focused

    # ------------------------------------------------------------------
    # Window thread internals
    # ------------------------------------------------------------------

    def _run(self) -> None:
        """Entry point for the window thread; creates the tkinter root."""
        try:
            root = tk.Tk()
            root.withdraw()
            self._root = root

            self._setup_window(root)
            self._started.set()

            root.after(self._poll_interval_ms, self._poll)
            root.mainloop()
        except Exception:
            logger.exception("Suggestion window thread crashed")
            self._started.set()  # unblock start() even on failure

    def _setup_window(self, root: tk.Tk) -> None:
        win = tk.Toplevel(root, bg=_BG)
        win.title("Panggap Suggestion")
        win.overrideredirect(True)
        win.attributes("-topmost", True)
        win.withdraw()

        self._title = tk.Label(win, text="", font=_TITLE_FONT, bg=_BG, fg=_MUTED_FG, anchor="w")
        self._title.pack(fill="x", padx=12, pady=(10, 4))

        self._text = tk.Text(
            win,
            wrap="word",
            font=_FONT,
            bg="#2a2a2a",
            fg=_FG,
            insertbackground=_FG,
            relief="flat",
            padx=8,
            pady=8,
            height=8,
            undo=True,
        )
        self._text.pack(fill="both", expand=True, padx=12)

        buttons = tk.Frame(win, bg=_BG)
        buttons.pack(fill="x", padx=12, pady=10)
        tk.Button(buttons, text="Close (Esc)", command=self._on_close).pack(side="right")
        self._accept_button = tk.Button(
            buttons, text="Accept (Ctrl+Enter)", fg=_ACCENT, command=self._on_accept,
        )
        self._accept_button.pack(side="right", padx=(0, 8))

        win.bind("<Escape>", lambda _e: self._on_close())
        win.bind("<Control-Return>", lambda _e: self._on_accept())
        if get_platform() == "darwin":
            win.bind("<Command-Return>", lambda _e: self._on_accept())
        win.bind("<FocusIn>", self._on_focus_in)
        win.bind("<FocusOut>", self._on_focus_out)

        self._window = win

    def _poll(self) -> None:
        """Drain the command queue, then render the presenter's current state."""
        root = self._root
        if root is None:
            return

        try:
            while True:
                cmd = self._queue.get_nowait()
                if cmd[0] == "SHOW":
                    self._do_show()
                elif cmd[0] == "HIDE":
                    self._do_hide()
                elif cmd[0] == "QUIT":
                    self._do_quit()
                    return
        except queue.Empty:
            pass

        self._render(self._presenter.get_current())
        root.after(self._poll_interval_ms, self._poll)

    def _render(self, state: SuggestionState) -> None:
        if state.kind is SuggestionKind.ABSENT:
            # Never leave the window mapped over an absent state.
            self._rendered = state
            win = self._window
            if win is not None and win.winfo_ismapped():
                self._focused = False
                win.withdraw()
            return

        # Re-render only on change so the user's edits are not overwritten.
        if state == self._rendered:
            return
        self._rendered = state
        title, text, accept = self._title, self._text, self._accept_button
        if title is None or text is None or accept is None:
            return

        if state.kind is SuggestionKind.LOADING:
            title.configure(text="Enhancing…", fg=_MUTED_FG)
            body, editable = "Loading suggestion...", False
        elif state.kind is SuggestionKind.ERROR:
            title.configure(text="Something went wrong", fg=_ERROR_FG)
            body, editable = state.message, False
        else:
            title.configure(text="Suggestion", fg=_MUTED_FG)
            body, editable = state.enhanced_text, True

        text.configure(state="normal")
        text.delete("1.0", "end")
        text.insert("1.0", body)
        text.configure(state="normal" if editable else "disabled")
        accept.configure(state="normal" if editable else "disabled")

    def _do_show(self) -> None:
        win = self._window
        if win is None:
            return
        # Centre on the primary screen (the user may have moved monitors).
        x = (win.winfo_screenwidth() - _WINDOW_W) // 2
        y = (win.winfo_screenheight() - _WINDOW_H) // 2
        win.geometry(f"{_WINDOW_W}x{_WINDOW_H}+{x}+{y}")
        win.deiconify()
        win.lift()
        win.focus_force()

    def _do_hide(self) -> None:
        self._focused = False
        self._rendered = None
        win = self._window
        if win is not None:
            win.withdraw()

    def _do_quit(self) -> None:
        root = self._root
        if root is not None:
            root.quit()
            root.destroy()
            self._root = None
            self._window = None

    # ------------------------------------------------------------------
    # Event handlers (window thread)
    # ------------------------------------------------------------------

    def _on_focus_in(self, _event: object = None) -> None:
        self._focused = True

    def _on_focus_out(self, _event: object = None) -> None:
        self._focused = False
        self._presenter.notify_focus_lost()

    def _on_close(self) -> None:
        self._presenter.hide()

    def _on_accept(self) -> None:
        state = self._presenter.get_current()
        text = self._text
        if state.kind is not SuggestionKind.RESULT or text is None:
            return
        payload = text.get("1.0", "end-1c")
        # Replacement sends keystrokes with settle delays; keep the tk loop free.
        threading.Thread(
            target=self._accept, args=(payload,), name="panggap-accept", daemon=True,
        ).start()

    def _accept(self, payload: str) -> None:
        try:
            self._presenter.accept(payload)
        except ReplacementFailed as exc:
            logger.error("Replacement failed: %s", exc)
            self._presenter.show_error(str(exc))
