"""Suggestion state machine: what the floating window should show right now.

The state is one of absent, loading, result or error, never a mix.  Each new
non-absent state replaces the previous one outright (latest wins, nothing is
queued).  The render surface polls :meth:`SuggestionPresenter.get_current`
instead of receiving pushes, so a surface can be torn down and recreated
without losing the session.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT = 60.0
DEFAULT_FOCUS_GRACE = 0.1
# Pause between hiding the window and sending keystrokes, so focus has
# returned to the target application.
DEFAULT_ACCEPT_DELAY = 0.05


class SuggestionKind(str, Enum):
    ABSENT = "absent"
    LOADING = "loading"
    RESULT = "result"
    ERROR = "error"


@dataclass(frozen=True)
class SuggestionState:
    kind: SuggestionKind
    original_text: str = ""
    enhanced_text: str = ""
    message: str = ""

    @property
    def visible(self) -> bool:
        return self.kind is not SuggestionKind.ABSENT

    @classmethod
    def result(cls, original_text: str, enhanced_text: str) -> SuggestionState:
        return cls(
            SuggestionKind.RESULT,
            original_text=original_text,
            enhanced_text=enhanced_text,
        )

    @classmethod
    def error(cls, message: str) -> SuggestionState:
        return cls(SuggestionKind.ERROR, message=message)


ABSENT = SuggestionState(SuggestionKind.ABSENT)
LOADING = SuggestionState(SuggestionKind.LOADING)


class PresentationSurface(Protocol):
    def show(self) -> None: ...

    def hide(self) -> None: ...

    def is_focused(self) -> bool: ...


class Replacer(Protocol):
    def replace_active_text(self, new_text: str) -> None: ...


class _Timer(Protocol):
    daemon: bool

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], _Timer]


class SuggestionPresenter:
    """Owns the current :class:`SuggestionState` and its lifecycle timers.

    Thread-safe: the pipeline thread, the window thread and timer threads
    all call into it.

    Args:
        replacer: Replacement protocol used by :meth:`accept`.
        surface: Window to show/hide alongside the state.  May be attached
            later with :meth:`attach_surface`.
        idle_timeout: Seconds an untouched suggestion stays visible.
        focus_grace: Seconds of focus loss tolerated before hiding.
        accept_delay: Pause between hiding and replacing on accept.
        timer_factory: Creates one-shot timers; ``threading.Timer`` by default.
    """

    def __init__(
        self,
        replacer: Replacer,
        surface: PresentationSurface | None = None,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
        focus_grace: float = DEFAULT_FOCUS_GRACE,
        accept_delay: float = DEFAULT_ACCEPT_DELAY,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self._replacer = replacer
        self._surface = surface
        self._idle_timeout = idle_timeout
        self._focus_grace = focus_grace
        self._accept_delay = accept_delay
        self._timer_factory = timer_factory

        self._lock = threading.Lock()
        self._state: SuggestionState = ABSENT
        # Bumped on every transition; stale timers compare against it.
        self._generation = 0
        self._idle_timer: _Timer | None = None
        self._focus_timer: _Timer | None = None

    def attach_surface(self, surface: PresentationSurface) -> None:
        self._surface = surface

    # ------------------------------------------------------------------
    # State queries and transitions
    # ------------------------------------------------------------------

    def get_current(self) -> SuggestionState:
        with self._lock:
            return self._state

    def show_loading(self) -> None:
        self._enter(LOADING)

    def show_result(self, original_text: str, enhanced_text: str) -> None:
        self._enter(SuggestionState.result(original_text, enhanced_text))

    def show_error(self, message: str) -> None:
        self._enter(SuggestionState.error(message))

    def hide(self) -> None:
        self._reset()

    def notify_focus_lost(self) -> None:
        """Hide after the grace period unless the surface regains focus.

        Short focus churn (a tooltip, a window manager animation) must not
        dismiss the suggestion.
        """
        with self._lock:
            if not self._state.visible:
                return
            generation = self._generation
            self._cancel(self._focus_timer)
            self._focus_timer = self._start_timer(
                self._focus_grace, lambda: self._check_focus(generation)
            )

    def accept(self, text: str) -> None:
        """Hide the suggestion, then paste *text* over the target field.

        The state goes to absent before replacement starts so the window
        cannot hold focus while keystrokes are being sent.

        Raises:
            ReplacementFailed: Propagated from the replacement protocol.
        """
        logger.info("Suggestion accepted (%d chars)", len(text))
        self._reset()
        if self._accept_delay:
            time.sleep(self._accept_delay)
        self._replacer.replace_active_text(text)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _enter(self, state: SuggestionState) -> None:
        with self._lock:
            self._state = state
            self._generation += 1
            generation = self._generation
            self._cancel(self._focus_timer)
            self._focus_timer = None
            self._cancel(self._idle_timer)
            self._idle_timer = self._start_timer(
                self._idle_timeout, lambda: self._expire(generation)
            )
        logger.debug("Suggestion state -> %s", state.kind.value)
        surface = self._surface
        if surface is None:
            return
        surface.show()
        # A reset that landed while show() ran has already sent its hide.
        with self._lock:
            stale = self._generation != generation and not self._state.visible
        if stale:
            surface.hide()

    def _reset(self, generation: int | None = None) -> bool:
        """Go to absent.  With *generation*, only if nothing changed since."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._state = ABSENT
            self._generation += 1
            self._cancel(self._idle_timer)
            self._cancel(self._focus_timer)
            self._idle_timer = None
            self._focus_timer = None
        logger.debug("Suggestion state -> absent")
        if self._surface is not None:
            self._surface.hide()
        return True

    def _expire(self, generation: int) -> None:
        if self._reset(generation):
            logger.info("Suggestion expired after %.0fs idle", self._idle_timeout)

    def _check_focus(self, generation: int) -> None:
        surface = self._surface
        if surface is not None and surface.is_focused():
            return
        if self._reset(generation):
            logger.debug("Suggestion dismissed on focus loss")

    def _start_timer(self, delay: float, callback: Callable[[], None]) -> _Timer:
        timer = self._timer_factory(delay, callback)
        timer.daemon = True
        timer.start()
        return timer

    @staticmethod
    def _cancel(timer: _Timer | None) -> None:
        if timer is not None:
            timer.cancel()
