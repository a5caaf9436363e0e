from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol

WAIT_SLICE_S = 0.02

EXITED = "exited"
CANCELLED = "cancelled"


class Waitable(Protocol):
    def is_set(self) -> bool: ...


def wait_any(timeout: float | None, *waitables: Waitable) -> bool:
    """Block until one of ``waitables`` is set or ``timeout`` elapses.

    Returns True when something fired."""
    end = None if timeout is None else time.monotonic() + max(0.0, timeout)
    while True:
        if any(w.is_set() for w in waitables):
            return True
        if end is None:
            time.sleep(WAIT_SLICE_S)
            continue
        left = end - time.monotonic()
        if left <= 0:
            return False
        time.sleep(min(WAIT_SLICE_S, left))


class CancelToken:
    """Explicit cancellation scope with an optional monotonic deadline.

    A child is done whenever its parent is; cancelling a child leaves the parent
    untouched."""

    def __init__(
        self,
        deadline: float | None = None,
        parent: "CancelToken | None" = None,
    ) -> None:
        self._event = threading.Event()
        self._deadline = deadline
        self._parent = parent

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        return cls(deadline=time.monotonic() + float(seconds))

    def child(self, timeout: float | None = None) -> "CancelToken":
        deadline = None if timeout is None else time.monotonic() + float(timeout)
        return CancelToken(deadline=deadline, parent=self)

    def cancel(self) -> None:
        self._event.set()

    def cancelled(self) -> bool:
        """True when this token or an ancestor was explicitly cancelled."""
        if self._event.is_set():
            return True
        return self._parent.cancelled() if self._parent is not None else False

    def deadline_exceeded(self) -> bool:
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return True
        return self._parent.deadline_exceeded() if self._parent is not None else False

    def done(self) -> bool:
        return self.cancelled() or self.deadline_exceeded()

    is_set = done

    def remaining(self) -> float | None:
        left = None
        if self._deadline is not None:
            left = max(0.0, self._deadline - time.monotonic())
        if self._parent is not None:
            parent_left = self._parent.remaining()
            if parent_left is not None:
                left = parent_left if left is None else min(left, parent_left)
        return left

    def wait(self, timeout: float | None = None) -> bool:
        return wait_any(timeout, self)

    def reason(self) -> str:
        if self.deadline_exceeded() and not self.cancelled():
            return "deadline exceeded"
        if self.cancelled():
            return "cancelled"
        return ""


@dataclass(frozen=True)
class ExitOutcome:
    reason: str
    node: Optional[str] = None
    returncode: Optional[int] = None

    def describe(self) -> str:
        if self.node is None:
            return self.reason
        return f"{self.reason}: {self.node} returncode={self.returncode}"


class CompletionSignal:
    """Broadcast-once terminal event; every observer sees the same outcome."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._outcome: ExitOutcome | None = None

    def fire(self, outcome: ExitOutcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                return False
            self._outcome = outcome
            self._event.set()
            return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> ExitOutcome | None:
        self._event.wait(timeout)
        return self._outcome

    @property
    def outcome(self) -> ExitOutcome | None:
        return self._outcome
