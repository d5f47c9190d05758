"""Single-flight enhancement pipeline: capture -> enhance -> present."""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Protocol

from panggap.capture import CaptureKind, CaptureResult
from panggap.errors import (
    CaptureUnavailable,
    EnhancementFailed,
    NoTextFound,
    OperationTimeout,
)
from panggap.timeouts import run_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_ENHANCE_TIMEOUT = 30.0


class PipelineState(str, Enum):
    IDLE = "IDLE"
    CAPTURING = "CAPTURING"
    ENHANCING = "ENHANCING"
    PRESENTING = "PRESENTING"


class Capturer(Protocol):
    def capture_active_text(self) -> CaptureResult: ...


class Enhancer(Protocol):
    def enhance(self, text: str) -> str: ...


class Presenter(Protocol):
    def show_loading(self) -> None: ...

    def show_result(self, original_text: str, enhanced_text: str) -> None: ...

    def show_error(self, message: str) -> None: ...


StateCallback = Callable[[PipelineState, PipelineState], None]


class EnhancementPipeline:
    """Runs at most one capture -> enhance -> present session at a time.

    A trigger that arrives while a session is running is absorbed: the
    loading indicator is shown again so the hotkey visibly did something,
    but no second capture or request is started.
    """

    def __init__(
        self,
        capturer: Capturer,
        enhancer: Enhancer,
        presenter: Presenter,
        enhance_timeout: float | Callable[[], float] = DEFAULT_ENHANCE_TIMEOUT,
        on_state_change: Optional[StateCallback] = None,
    ) -> None:
        self._capturer = capturer
        self._enhancer = enhancer
        self._presenter = presenter
        self._enhance_timeout = enhance_timeout
        self._on_state_change = on_state_change

        self._busy = threading.Lock()
        self._state = PipelineState.IDLE

    @property
    def state(self) -> PipelineState:
        return self._state

    def is_enhancing(self) -> bool:
        return self._busy.locked()

    def enhance_active_text(self) -> None:
        """Capture the focused text, enhance it and present the result.

        Never raises: every failure ends as an error presentation.
        """
        # Non-blocking acquire is the check-and-set; no window for two runs.
        if not self._busy.acquire(blocking=False):
            logger.info("Enhancement already in progress, absorbing trigger")
            self._presenter.show_loading()
            return

        try:
            self._transition(PipelineState.CAPTURING)
            original_text = self._capture()

            # Only show the window once there is something to work on.
            self._transition(PipelineState.ENHANCING)
            self._presenter.show_loading()
            enhanced_text = self._enhance(original_text)

            self._transition(PipelineState.PRESENTING)
            self._presenter.show_result(original_text, enhanced_text)
        except NoTextFound as exc:
            logger.info("Nothing to enhance: %s", exc)
            self._presenter.show_error(NoTextFound.user_message)
        except CaptureUnavailable as exc:
            logger.warning("Text capture unavailable: %s", exc)
            self._presenter.show_error(CaptureUnavailable.user_message)
        except (EnhancementFailed, OperationTimeout) as exc:
            logger.error("Text enhancement failed: %s", exc)
            self._presenter.show_error(str(exc))
        except Exception as exc:
            logger.exception("Text enhancement failed")
            self._presenter.show_error(str(exc) or "Unknown error")
        finally:
            self._transition(PipelineState.IDLE)
            self._busy.release()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _capture(self) -> str:
        result = self._capturer.capture_active_text()
        if result.kind is CaptureKind.PERMISSION_DENIED:
            raise CaptureUnavailable(result.reason or "capture had no effect")
        if result.kind is CaptureKind.EMPTY or not result.text.strip():
            raise NoTextFound(result.reason or "blank")
        return result.text

    def _enhance(self, text: str) -> str:
        timeout = self._enhance_timeout
        if callable(timeout):
            timeout = timeout()
        return run_with_timeout(
            lambda: self._enhancer.enhance(text),
            timeout,
            name="Enhancement request",
        )

    def _transition(self, to_state: PipelineState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("Pipeline %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            try:
                self._on_state_change(from_state, to_state)
            except Exception:
                logger.exception("Error in state-change callback")
