from __future__ import annotations

import threading
import time

from spinup.runtime.sync import CANCELLED, EXITED, CancelToken, CompletionSignal, ExitOutcome, wait_any


def test_completion_signal_fires_once_and_broadcasts() -> None:
    signal = CompletionSignal()
    seen: list[ExitOutcome | None] = []

    def observer() -> None:
        seen.append(signal.wait(timeout=5))

    threads = [threading.Thread(target=observer) for _ in range(3)]
    for t in threads:
        t.start()
    assert signal.fire(ExitOutcome(reason=EXITED, node="scraper-1", returncode=2)) is True
    assert signal.fire(ExitOutcome(reason=CANCELLED)) is False
    for t in threads:
        t.join(timeout=5)

    assert signal.is_set()
    assert signal.outcome == ExitOutcome(reason=EXITED, node="scraper-1", returncode=2)
    assert seen == [signal.outcome] * 3


def test_token_deadline() -> None:
    token = CancelToken.with_timeout(0.05)
    assert not token.done()
    assert token.wait(2.0) is True
    assert token.deadline_exceeded()
    assert not token.cancelled()
    assert token.reason() == "deadline exceeded"


def test_child_follows_parent_but_not_reverse() -> None:
    parent = CancelToken()
    child = parent.child()
    sibling = parent.child()
    child.cancel()
    assert child.done()
    assert not parent.done()
    assert not sibling.done()
    parent.cancel()
    assert sibling.done()
    assert sibling.reason() == "cancelled"


def test_child_remaining_is_bounded_by_parent() -> None:
    parent = CancelToken.with_timeout(1.0)
    child = parent.child(timeout=60.0)
    remaining = child.remaining()
    assert remaining is not None and remaining <= 1.0
    assert CancelToken().remaining() is None


def test_wait_any_returns_on_first_event() -> None:
    token = CancelToken()
    signal = CompletionSignal()
    threading.Timer(0.05, lambda: signal.fire(ExitOutcome(reason=EXITED))).start()
    start = time.monotonic()
    assert wait_any(5.0, token, signal) is True
    assert time.monotonic() - start < 2.0
    assert wait_any(0.01, CancelToken()) is False
