"""First-settled-wins timeout helper.

The operation runs on a daemon worker thread while the caller waits on an
event.  When the timer wins, the worker is abandoned rather than killed: its
eventual result or exception is discarded, and any side effect it already
produced (a keystroke that was sent, say) stays produced.  Operations that can
cooperate should accept a cancellation :class:`threading.Event` and check it
between steps.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, TypeVar

from panggap.errors import OperationTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_timeout(func: Callable[[], T], timeout: float, *, name: str) -> T:
    """Run *func* on a worker thread and return its result.

    Args:
        func: Zero-argument callable to run.
        timeout: Seconds to wait before giving up.
        name: Human-readable operation name, used in the timeout message.

    Raises:
        OperationTimeout: If *func* has not returned within *timeout*.
        Exception: Whatever *func* raised, if it settled first.
    """
    done = threading.Event()
    outcome: dict[str, object] = {}

    def _target() -> None:
        try:
            outcome["value"] = func()
        except Exception as exc:
            outcome["error"] = exc
        finally:
            done.set()

    worker = threading.Thread(
        target=_target,
        name=f"panggap-{name.lower().replace(' ', '-')}",
        daemon=True,
    )
    worker.start()

    if not done.wait(timeout):
        logger.warning("%s did not finish within %.1fs, abandoning", name, timeout)
        raise OperationTimeout(f"{name} timed out ({timeout:g} seconds)")

    if "error" in outcome:
        raise outcome["error"]  # type: ignore[misc]
    return outcome["value"]  # type: ignore[return-value]
