from __future__ import annotations

import time

import pytest

from spinup.errors import (
    HardMismatch,
    PrematureExit,
    TimeoutExceeded,
    TransientQueryError,
    UnexpectedWarnings,
)
from spinup.runtime.sync import CANCELLED, EXITED, CancelToken, CompletionSignal, ExitOutcome
from spinup.verify.retry import retry


def test_retries_transient_errors_until_accepted() -> None:
    calls = {"n": 0}

    def probe() -> bool:
        calls["n"] += 1
        if calls["n"] < 3:
            raise TransientQueryError("connection refused")
        return True

    retry(0.01, CancelToken.with_timeout(5), CompletionSignal(), probe)
    assert calls["n"] == 3


def test_false_result_is_retried_like_transient() -> None:
    answers = iter([False, False, True])
    retry(0.01, CancelToken.with_timeout(5), CompletionSignal(), lambda: next(answers))


def test_timeout_carries_last_error() -> None:
    def probe() -> bool:
        raise TransientQueryError("unexpected result size 2, expected 4")

    with pytest.raises(TimeoutExceeded, match="expected 4") as info:
        retry(0.01, CancelToken.with_timeout(0.1), CompletionSignal(), probe)
    assert isinstance(info.value.last_error, TransientQueryError)


def test_cancelled_token_reports_timeout_not_premature_exit() -> None:
    token = CancelToken()
    token.cancel()
    with pytest.raises(TimeoutExceeded, match="cancelled"):
        retry(0.01, token, CompletionSignal(), lambda: True)


def test_premature_exit_wins_even_if_probe_would_succeed() -> None:
    done = CompletionSignal()
    done.fire(ExitOutcome(reason=EXITED, node="querier-1", returncode=1))
    calls = {"n": 0}

    def probe() -> bool:
        calls["n"] += 1
        return True

    with pytest.raises(PrematureExit, match="querier-1"):
        retry(0.01, CancelToken.with_timeout(5), done, probe)
    assert calls["n"] == 0


def test_exit_during_polling_aborts_next_attempt() -> None:
    done = CompletionSignal()
    calls = {"n": 0}

    def probe() -> bool:
        calls["n"] += 1
        done.fire(ExitOutcome(reason=EXITED, node="sidecar-2", returncode=137))
        raise TransientQueryError("no data yet")

    with pytest.raises(PrematureExit):
        retry(10.0, CancelToken.with_timeout(30), done, probe)
    assert calls["n"] == 1


@pytest.mark.parametrize(
    "exc",
    [HardMismatch("series 0 mismatch"), UnexpectedWarnings(["partial response"]), KeyError("x")],
)
def test_non_transient_errors_are_never_retried(exc: Exception) -> None:
    calls = {"n": 0}

    def probe() -> bool:
        calls["n"] += 1
        raise exc

    with pytest.raises(type(exc)):
        retry(0.01, CancelToken.with_timeout(5), CompletionSignal(), probe)
    assert calls["n"] == 1


def test_exit_reported_even_when_deadline_passes_during_attempt() -> None:
    done = CompletionSignal()

    def probe() -> bool:
        done.fire(ExitOutcome(reason=EXITED, node="querier-1", returncode=2))
        time.sleep(0.3)
        raise TransientQueryError("connection refused")

    with pytest.raises(PrematureExit, match="querier-1"):
        retry(0.01, CancelToken.with_timeout(0.2), done, probe)


def test_cancelled_outcome_reports_timeout() -> None:
    done = CompletionSignal()
    done.fire(ExitOutcome(reason=CANCELLED))
    with pytest.raises(TimeoutExceeded):
        retry(0.01, CancelToken.with_timeout(5), done, lambda: True)
