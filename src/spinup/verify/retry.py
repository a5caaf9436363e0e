from __future__ import annotations

import logging
from typing import Callable

from spinup.errors import PrematureExit, TimeoutExceeded, TransientQueryError
from spinup.runtime.sync import EXITED, CancelToken, CompletionSignal, wait_any

Probe = Callable[[], bool]

_LOG = logging.getLogger("spinup.verify")


def retry(
    interval: float,
    token: CancelToken,
    done: CompletionSignal,
    probe: Probe,
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Call ``probe`` every ``interval`` seconds until it returns True.

    TransientQueryError and a False result are retried; any other exception
    propagates on the spot. Raises PrematureExit once a process exit has fired
    ``done``, even when the deadline passed during the last attempt, and
    TimeoutExceeded when ``token`` ended first."""
    log = logger or _LOG
    last_error: BaseException | None = None
    attempts = 0
    while not token.done():
        if done.is_set():
            break
        attempts += 1
        try:
            if probe():
                log.debug("probe accepted after %d attempt(s)", attempts)
                return
            last_error = TransientQueryError("probe not satisfied")
        except TransientQueryError as exc:
            last_error = exc
        log.info("attempt %d failed: %s", attempts, last_error)
        wait_any(interval, token, done)

    outcome = done.outcome
    if outcome is not None and outcome.reason == EXITED:
        raise PrematureExit(f"topology exited prematurely ({outcome.describe()})")
    raise TimeoutExceeded(
        f"no success after {attempts} attempt(s): {token.reason() or 'cancelled'}",
        last_error,
    )
