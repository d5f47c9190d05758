from __future__ import annotations

import threading

import pytest

from fakes import FakeClipboard, FakeSurface, FakeTextField, TimerFactory
from panggap.errors import ReplacementFailed
from panggap.replacement import TextReplacer
from panggap.suggestion import SuggestionKind, SuggestionPresenter


class RecordingReplacer:
    def __init__(self, presenter_ref: list[SuggestionPresenter], error: Exception | None = None) -> None:
        self._presenter_ref = presenter_ref
        self.error = error
        self.calls: list[tuple[str, SuggestionKind]] = []

    def replace_active_text(self, new_text: str) -> None:
        self.calls.append((new_text, self._presenter_ref[0].get_current().kind))
        if self.error is not None:
            raise self.error


def _presenter(
    surface: FakeSurface | None = None,
    error: Exception | None = None,
) -> tuple[SuggestionPresenter, TimerFactory, RecordingReplacer]:
    timers = TimerFactory()
    ref: list[SuggestionPresenter] = []
    replacer = RecordingReplacer(ref, error)
    presenter = SuggestionPresenter(
        replacer,
        surface=surface,
        idle_timeout=60.0,
        focus_grace=0.1,
        accept_delay=0,
        timer_factory=timers,
    )
    ref.append(presenter)
    return presenter, timers, replacer


def test_starts_absent() -> None:
    presenter, _, _ = _presenter()
    assert presenter.get_current().kind is SuggestionKind.ABSENT
    assert not presenter.get_current().visible


def test_latest_state_replaces_previous() -> None:
    surface = FakeSurface()
    presenter, _, _ = _presenter(surface)

    presenter.show_loading()
    assert presenter.get_current().kind is SuggestionKind.LOADING

    presenter.show_result("Hello world", "Hello, world!")
    current = presenter.get_current()
    assert current.kind is SuggestionKind.RESULT
    assert current.enhanced_text == "Hello, world!"
    assert current.message == ""

    presenter.show_error("boom")
    current = presenter.get_current()
    assert current.kind is SuggestionKind.ERROR
    assert current.message == "boom"
    assert current.enhanced_text == ""
    assert surface.events == ["show", "show", "show"]


def test_idle_timer_hides_suggestion() -> None:
    surface = FakeSurface()
    presenter, timers, _ = _presenter(surface)

    presenter.show_result("a", "b")
    (idle,) = timers.pending()
    assert idle.delay == 60.0
    assert idle.daemon

    idle.fire()

    assert presenter.get_current().kind is SuggestionKind.ABSENT
    assert surface.events[-1] == "hide"


def test_new_state_restarts_idle_timer() -> None:
    presenter, timers, _ = _presenter()

    presenter.show_loading()
    first = timers.timers[0]
    presenter.show_result("a", "b")

    assert first.cancelled
    assert len(timers.pending()) == 1


def test_stale_idle_callback_is_ignored() -> None:
    presenter, timers, _ = _presenter()

    presenter.show_loading()
    stale = timers.timers[0]
    presenter.show_result("a", "b")

    # A timer thread may already be running its callback when cancelled.
    stale.callback()

    assert presenter.get_current().kind is SuggestionKind.RESULT


def test_focus_loss_hides_after_grace_period() -> None:
    surface = FakeSurface(focused=False)
    presenter, timers, _ = _presenter(surface)

    presenter.show_result("a", "b")
    presenter.notify_focus_lost()
    focus_timer = timers.timers[-1]
    assert focus_timer.delay == 0.1
    assert presenter.get_current().visible

    focus_timer.fire()

    assert presenter.get_current().kind is SuggestionKind.ABSENT


def test_focus_regained_within_grace_keeps_suggestion() -> None:
    surface = FakeSurface(focused=False)
    presenter, timers, _ = _presenter(surface)

    presenter.show_result("a", "b")
    presenter.notify_focus_lost()
    surface.focused = True
    timers.timers[-1].fire()

    assert presenter.get_current().kind is SuggestionKind.RESULT


def test_focus_loss_while_absent_starts_no_timer() -> None:
    presenter, timers, _ = _presenter(FakeSurface(focused=False))

    presenter.notify_focus_lost()

    assert timers.timers == []


def test_hide_is_idempotent() -> None:
    surface = FakeSurface()
    presenter, timers, _ = _presenter(surface)

    presenter.show_error("boom")
    presenter.hide()
    presenter.hide()

    assert presenter.get_current().kind is SuggestionKind.ABSENT
    assert timers.pending() == []


def test_accept_hides_before_replacing() -> None:
    surface = FakeSurface()
    presenter, timers, replacer = _presenter(surface)

    presenter.show_result("Hello world", "Hello, world!")
    presenter.accept("Hello, world!")

    assert replacer.calls == [("Hello, world!", SuggestionKind.ABSENT)]
    assert surface.events == ["show", "hide"]
    assert timers.pending() == []


def test_accept_propagates_replacement_failure() -> None:
    presenter, _, _ = _presenter(error=ReplacementFailed("Could not replace text: paste failed"))

    presenter.show_result("a", "b")
    with pytest.raises(ReplacementFailed):
        presenter.accept("b")

    assert presenter.get_current().kind is SuggestionKind.ABSENT


def test_accept_replaces_field_and_keeps_clipboard() -> None:
    clipboard = FakeClipboard("keep me")
    field = FakeTextField(clipboard, "Hello world")
    presenter = SuggestionPresenter(
        TextReplacer(clipboard, field), accept_delay=0, timer_factory=TimerFactory(),
    )
    kinds_at_replace: list[SuggestionKind] = []
    click = field.click_at_pointer

    def _click() -> None:
        kinds_at_replace.append(presenter.get_current().kind)
        click()

    field.click_at_pointer = _click  # type: ignore[method-assign]

    presenter.show_result("Hello world", "Hello, world!")
    presenter.accept("Hello, world!")

    assert kinds_at_replace == [SuggestionKind.ABSENT]
    assert field.text == "Hello, world!"
    assert clipboard.text == "keep me"


class SlowShowSurface(FakeSurface):
    """Blocks inside show() until released, to interleave a hide()."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def show(self) -> None:
        self.entered.set()
        self.release.wait(2)
        self.events.append("show")


def test_hide_during_show_leaves_surface_hidden() -> None:
    surface = SlowShowSurface()
    presenter, _, _ = _presenter(surface)

    worker = threading.Thread(target=presenter.show_result, args=("a", "b"))
    worker.start()
    assert surface.entered.wait(2)

    presenter.hide()
    surface.release.set()
    worker.join(2)

    assert presenter.get_current().kind is SuggestionKind.ABSENT
    assert surface.events[-1] == "hide"
